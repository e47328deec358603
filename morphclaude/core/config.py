# morphclaude/core/config.py
"""
morphclaude 配置管理

用户级配置位于 `~/.morph/config.json`，项目可在工作区根目录用 `.morph/config.yaml` 覆盖。
`resolve_settings` 把这些配置、环境变量和 API key 合并为一个不可变的 Settings，
每次调用构建一次后传入核心。
"""

import json
import os
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Dict, Any, Optional

from .keychain import get_api_key
from .utils import load_json_safely, load_yaml_safely

DEFAULT_API_BASE = "https://api.morphllm.com"
DEFAULT_MERGE_MODEL = "morph-v3-large"
MERGE_TIMEOUT = 60.0

PROJECT_DIR_NAME = ".morph"
PROJECT_CONFIG_NAME = "config.yaml"

_TRUTHY = ("1", "true", "yes", "on")


@dataclass
class Config:
    account: str = ""
    api_base: str = DEFAULT_API_BASE
    merge_model: str = DEFAULT_MERGE_MODEL

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Config":
        data = data or {}
        # 兼容原 JSON 配置中的 camelCase 键
        return cls(
            account=str(data.get("account") or ""),
            api_base=str(data.get("api_base") or data.get("apiBase") or DEFAULT_API_BASE),
            merge_model=str(data.get("merge_model") or data.get("mergeModel") or DEFAULT_MERGE_MODEL),
        )


def config_dir() -> Path:
    return Path.home() / ".morph"


def config_path() -> Path:
    """Path to the user configuration file."""
    return config_dir() / "config.json"


def load_config() -> Config:
    """加载 `~/.morph/config.json`；文件缺失或损坏时返回默认值，缺失字段用默认值补齐"""
    return Config.from_dict(load_json_safely(config_path()))


def save_config(config: Config) -> None:
    path = config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(config), indent=2), encoding="utf-8")


def load_project_config(workspace_root: Path) -> Dict[str, Any]:
    return load_yaml_safely(workspace_root / PROJECT_DIR_NAME / PROJECT_CONFIG_NAME) or {}


@dataclass(frozen=True)
class Settings:
    """Everything the core needs for one invocation."""
    workspace_root: Path
    account: str = ""
    api_base: str = DEFAULT_API_BASE
    api_key: Optional[str] = field(default=None, repr=False)
    merge_model: str = DEFAULT_MERGE_MODEL
    merge_timeout: float = MERGE_TIMEOUT
    dry_run: bool = False

    @property
    def merge_url(self) -> str:
        return f"{self.api_base.rstrip('/')}/v1/chat/completions"


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def resolve_settings(
    workspace_root: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Settings:
    """
    Build Settings with precedence: explicit overrides > environment
    (MORPH_ACCOUNT, MORPH_API_BASE, MORPH_MERGE_MODEL, MORPH_DRY_RUN) >
    project `.morph/config.yaml` > `~/.morph/config.json` > defaults.
    """
    root = Path(workspace_root or os.getcwd()).resolve()

    merged: Dict[str, Any] = asdict(load_config())
    project = load_project_config(root)
    for key in ("account", "api_base", "merge_model", "dry_run"):
        if project.get(key) not in (None, ""):
            merged[key] = project[key]

    env_map = {
        "account": "MORPH_ACCOUNT",
        "api_base": "MORPH_API_BASE",
        "merge_model": "MORPH_MERGE_MODEL",
        "dry_run": "MORPH_DRY_RUN",
    }
    for key, env_name in env_map.items():
        value = os.environ.get(env_name)
        if value:
            merged[key] = value

    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    account = str(merged.get("account") or "")
    api_key = merged.get("api_key")
    if api_key is None:
        api_key = get_api_key(account)

    return Settings(
        workspace_root=root,
        account=account,
        api_base=str(merged.get("api_base") or DEFAULT_API_BASE),
        api_key=api_key,
        merge_model=str(merged.get("merge_model") or DEFAULT_MERGE_MODEL),
        merge_timeout=float(merged.get("merge_timeout") or MERGE_TIMEOUT),
        dry_run=_as_bool(merged.get("dry_run", False)),
    )
