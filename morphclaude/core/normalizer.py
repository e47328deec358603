# morphclaude/core/normalizer.py
"""
工具调用规范化

把助手产生的各种工具调用形状统一成一个 EditRequest。按工具类型分派，每种类型有自己的 payload 规则。
只有路径查找会依次尝试多个字段，顺序固定：

    tool_response.filePath
    tool_response.file_path
    tool_input.file_path
    tool_input.path
    tool_input.filePath
    tool_input.target_file

第一个非空字符串胜出。
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ClassificationMiss
from .models import EditRequest, FilePayload, ToolCallEvent


class ToolKind(Enum):
    WRITE = "write"
    REPLACE = "replace"
    EDIT = "edit"
    MULTI_EDIT = "multi-edit"


TOOL_KINDS: Dict[str, ToolKind] = {
    "Write": ToolKind.WRITE,
    "write_file": ToolKind.WRITE,
    "create_file": ToolKind.WRITE,
    "Edit": ToolKind.REPLACE,
    "str_replace": ToolKind.REPLACE,
    "replace": ToolKind.REPLACE,
    "replace_in_file": ToolKind.REPLACE,
    "edit_file": ToolKind.EDIT,
    "morph_edit": ToolKind.EDIT,
    "MultiEdit": ToolKind.MULTI_EDIT,
    "multi_edit": ToolKind.MULTI_EDIT,
}

PATH_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("tool_response", "filePath"),
    ("tool_response", "file_path"),
    ("tool_input", "file_path"),
    ("tool_input", "path"),
    ("tool_input", "filePath"),
    ("tool_input", "target_file"),
)

REPLACEMENT_FIELDS = ("new_string", "new_str", "replacement")
BATCH_FIELDS = ("files", "edits")
ENTRY_PATH_FIELDS = ("path", "file_path")


def classify(tool_name: str) -> Optional[ToolKind]:
    return TOOL_KINDS.get(tool_name)


def is_edit_tool(tool_name: str) -> bool:
    return classify(tool_name) is not None


def _first_str(mapping: Mapping[str, Any], fields) -> Optional[str]:
    for name in fields:
        value = mapping.get(name)
        if isinstance(value, str) and value:
            return value
    return None


def resolve_path(event: ToolCallEvent) -> Optional[str]:
    sources = {"tool_response": event.tool_response, "tool_input": event.tool_input}
    for source, name in PATH_FIELDS:
        value = sources[source].get(name)
        if isinstance(value, str) and value.strip():
            return value
    return None


# ==================== payload rules per kind ====================

def _write_payload(event: ToolCallEvent, path: Optional[str]) -> List[FilePayload]:
    content = event.tool_input.get("content")
    if path and isinstance(content, str) and content:
        return [FilePayload(path=path, content=content)]
    return []


def _replace_payload(event: ToolCallEvent, path: Optional[str]) -> List[FilePayload]:
    # old_string 被丢弃：new_string 只是合并目标，不是精确补丁。
    # 空 new_string（纯删除）无法作为合并目标表达，交回原生编辑
    replacement = _first_str(event.tool_input, REPLACEMENT_FIELDS)
    if path and replacement is not None:
        return [FilePayload(path=path, content=replacement)]
    return []


def _entry_payload(entry: Any) -> Optional[FilePayload]:
    if not isinstance(entry, dict):
        return None
    path = _first_str(entry, ENTRY_PATH_FIELDS)
    content = entry.get("content")
    if path and isinstance(content, str) and content:
        return FilePayload(path=path, content=content)
    return None


def _edit_payload(event: ToolCallEvent, path: Optional[str]) -> List[FilePayload]:
    tool_input = event.tool_input

    # 1. batch list of {path, content}
    for field_name in BATCH_FIELDS:
        entries = tool_input.get(field_name)
        if isinstance(entries, list) and entries:
            payloads = [_entry_payload(e) for e in entries]
            if all(p is not None for p in payloads):
                return payloads

    # 2. single {path, content} pair
    single = _entry_payload(tool_input)
    if single is not None:
        return [single]

    # 3. assistant-style edits: [{old_string, new_string}] against the resolved path
    entries = tool_input.get("edits")
    if path and isinstance(entries, list) and entries:
        fragments = [_first_str(e, REPLACEMENT_FIELDS) if isinstance(e, dict) else None for e in entries]
        if all(f is not None for f in fragments):
            return [FilePayload(path=path, content="\n\n".join(fragments))]
    return []


_PAYLOAD_RULES = {
    ToolKind.WRITE: _write_payload,
    ToolKind.REPLACE: _replace_payload,
    ToolKind.EDIT: _edit_payload,
    ToolKind.MULTI_EDIT: _edit_payload,
}


def build_goal(tool_name: str, kind: ToolKind) -> str:
    return f"Merge the {tool_name} ({kind.value}) tool call into the target file(s)"


def normalize(event: ToolCallEvent) -> EditRequest:
    """
    将编辑类工具调用转换为 EditRequest。
    纯函数：同一事件规范化两次得到相等的请求。

    Raises:
        ClassificationMiss: 不是编辑工具，或找不到路径 / payload
    """
    kind = classify(event.tool_name)
    if kind is None:
        raise ClassificationMiss(f"Tool '{event.tool_name}' is not a file-edit tool")

    path = resolve_path(event)
    payloads = _PAYLOAD_RULES[kind](event, path)
    if not payloads:
        if path is None and kind in (ToolKind.WRITE, ToolKind.REPLACE):
            raise ClassificationMiss(f"No file path found in {event.tool_name} tool call")
        raise ClassificationMiss(f"No change payload found in {event.tool_name} tool call")

    return EditRequest(goal=build_goal(event.tool_name, kind), files=tuple(payloads))
