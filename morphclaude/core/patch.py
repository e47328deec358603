# morphclaude/core/patch.py
"""
将后端返回的 edits 落盘。

看起来像 unified diff 的 patch 永远不会被应用，只记录在 diff 报告中供人工处理；
dry-run 模式下所有 patch 同样只记录不写入。其余 patch 视为文件的完整新内容。
任何写入之前，所有目标路径都必须位于工作区根目录之内。
"""

import re
from pathlib import Path
from typing import Dict, Iterable, Optional

from .errors import WorkspaceEscapeError
from .models import Edit
from .utils import is_within

DIFF_SIGNATURE = re.compile(r"^(diff --git|@@|---\s|\+\+\+\s)", re.MULTILINE)


def is_unified_diff(patch: str) -> bool:
    return bool(DIFF_SIGNATURE.search(patch))


def ensure_in_workspace(path: str, workspace_root: Path) -> Path:
    """
    将 path 相对 workspace_root 解析为绝对路径并返回。

    Raises:
        WorkspaceEscapeError: 解析后的路径不在根目录之内
    """
    root = Path(workspace_root).resolve()
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = root / candidate
    resolved = candidate.resolve()
    if not is_within(resolved, root):
        raise WorkspaceEscapeError(path, str(root))
    return resolved


def resolve_edit_path(path: str, workspace_root: Optional[Path] = None) -> Path:
    if workspace_root is not None:
        return ensure_in_workspace(path, workspace_root)
    return Path(path)


def apply_edits(
    edits: Iterable[Edit],
    dry_run: bool = False,
    workspace_root: Optional[Path] = None,
) -> Dict[str, str]:
    """
    落盘 edits 并返回 diff 报告（path -> patch 文本）。

    报告为空表示所有 edit 都以完整内容写入；非空则列出需要人工处理的 edit。
    给定 workspace_root 时，先检查全部路径，任何越界都会在第一次写入前抛出。

    Raises:
        WorkspaceEscapeError: 某个 edit 路径在工作区之外
    """
    edits = list(edits)
    targets = [resolve_edit_path(edit.path, workspace_root) for edit in edits]

    diffs: Dict[str, str] = {}
    for edit, target in zip(edits, targets):
        if dry_run or is_unified_diff(edit.patch):
            diffs[edit.path] = edit.patch
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(edit.patch, encoding="utf-8")
    return diffs
