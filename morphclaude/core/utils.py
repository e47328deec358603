# morphclaude/core/utils.py
"""通用工具函数：安全读取文本 / JSON / YAML 文件"""

import json
from pathlib import Path
from typing import Dict, Any, Optional

import yaml


def read_file_safely(path: Path, encoding: str = "utf-8") -> Optional[str]:
    """安全读取文件内容；二进制或不可读文件返回 None"""
    try:
        if path.exists() and path.is_file():
            return path.read_text(encoding=encoding)
    except (UnicodeDecodeError, PermissionError, OSError):
        pass
    return None


def load_json_safely(path: Path) -> Optional[Dict[Any, Any]]:
    """安全加载 JSON 文件"""
    content = read_file_safely(path)
    if content:
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            return None
        return data if isinstance(data, dict) else None
    return None


def load_yaml_safely(path: Path) -> Optional[Dict[Any, Any]]:
    """安全加载 YAML 文件"""
    content = read_file_safely(path)
    if content:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError:
            return None
        return data if isinstance(data, dict) else None
    return None


def is_within(path: Path, root: Path) -> bool:
    """path 与 root 都应已 resolve()"""
    return path == root or root in path.parents
