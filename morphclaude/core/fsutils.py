# morphclaude/core/fsutils.py
from pathlib import Path
from typing import Iterable, List

from .models import FilePayload
from .utils import read_file_safely


def resolve_globs(patterns: Iterable[str], cwd: Path) -> List[str]:
    """
    Expand glob patterns relative to `cwd` into unique absolute file paths.
    Directories are skipped; hidden files are included. Order follows the
    patterns, then the sorted matches of each pattern.
    """
    seen = {}
    root = Path(cwd).resolve()
    for pattern in patterns:
        if Path(pattern).is_absolute():
            matches = [Path(pattern)]
        else:
            matches = sorted(root.glob(pattern))
        for match in matches:
            if match.is_file():
                seen.setdefault(str(match.resolve()), None)
    return list(seen)


def read_files(paths: Iterable[str]) -> List[FilePayload]:
    """按 UTF-8 读取文件为 payload；二进制或不可读文件直接跳过"""
    payloads = []
    for path in paths:
        content = read_file_safely(Path(path))
        if content is not None:
            payloads.append(FilePayload(path=str(path), content=content))
    return payloads
