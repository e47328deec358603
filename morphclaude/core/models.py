# morphclaude/core/models.py
"""
请求级数据结构：在 normalizer、后端、materializer 和决策引擎之间传递。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import InputError


@dataclass(frozen=True)
class FilePayload:
    """ 一个目标文件及为其提议的内容 """
    path: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "content": self.content}


@dataclass(frozen=True)
class EditRequest:
    """Caller-agnostic edit request; consumed by exactly one backend call."""
    goal: str
    files: Tuple[FilePayload, ...] = ()


@dataclass(frozen=True)
class Edit:
    """
    One backend edit. `patch` is either the full new file content or a
    unified diff; see core.patch.is_unified_diff.
    """
    path: str
    patch: str


@dataclass
class ApplyResult:
    edits: List[Edit] = field(default_factory=list)
    logs: str = ""

    @property
    def has_edits(self) -> bool:
        return bool(self.edits)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StructuredEdits":
        """Parse the JSON body returned by the `/apply` endpoint."""
        if not isinstance(data, dict):
            raise InputError(f"Expected a JSON object from /apply, got {type(data).__name__}")
        edits = []
        for item in data.get("edits") or []:
            if not isinstance(item, dict):
                continue
            path = item.get("path")
            patch = item.get("patch")
            if isinstance(path, str) and isinstance(patch, str):
                edits.append(Edit(path=path, patch=patch))
        return StructuredEdits(edits=edits, logs=str(data.get("logs") or ""))


@dataclass
class StructuredEdits(ApplyResult):
    """Backend returned machine-readable edits."""


@dataclass
class LogsOnly(ApplyResult):
    """
    Backend only produced human-readable output (local executable).
    There is nothing to materialize; `logs` is informational.
    """

    @property
    def has_edits(self) -> bool:
        return False


@dataclass
class EditResult:
    """What the decision engine reports back for one request."""
    success: bool
    modified_files: List[FilePayload] = field(default_factory=list)
    diffs: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass(frozen=True)
class ToolCallEvent:
    """A PreToolUse/PostToolUse hook event as delivered on stdin."""
    tool_name: str
    tool_input: Dict[str, Any] = field(default_factory=dict)
    tool_response: Dict[str, Any] = field(default_factory=dict)
    cwd: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "ToolCallEvent":
        if not isinstance(data, dict):
            raise InputError("Hook input must be a JSON object")
        tool_input = data.get("tool_input")
        tool_response = data.get("tool_response")
        cwd = data.get("cwd")
        return cls(
            tool_name=str(data.get("tool_name") or ""),
            tool_input=tool_input if isinstance(tool_input, dict) else {},
            tool_response=tool_response if isinstance(tool_response, dict) else {},
            cwd=cwd if isinstance(cwd, str) and cwd else None,
        )


# ==================== Outcome (verdict) ====================

@dataclass(frozen=True)
class Outcome:
    reason: str = ""

    @property
    def handled(self) -> bool:
        return False


@dataclass(frozen=True)
class Handled(Outcome):
    """The core applied the edit; the caller must suppress its own write."""
    result: Optional[EditResult] = None

    @property
    def handled(self) -> bool:
        return True


@dataclass(frozen=True)
class Declined(Outcome):
    """Ordinary miss or failure; the caller proceeds with its native edit."""


@dataclass(frozen=True)
class Blocked(Outcome):
    """Security-relevant stop (workspace escape). Never silently skipped."""
