# morphclaude/core/interceptor.py
"""
单个工具调用事件的决策引擎。

    Received -> Classified -> (Normalized | Declined)
             -> BackendInvoked -> (Success | BackendFailed) -> Outcome

拦截失败绝不能让用户丢失编辑：普通的未命中、后端失败，以及无法完整落盘的结果
都变成 `Declined`，由调用方执行原生写入。唯一的例外是工作区之外的目标，变成 `Blocked`。
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional

from .backend import Backend, create_backend
from .config import Settings
from .errors import ClassificationMiss, MorphError, WorkspaceEscapeError
from .models import (
    ApplyResult, Blocked, Declined, EditRequest, EditResult, FilePayload,
    Handled, LogsOnly, Outcome, ToolCallEvent,
)
from .normalizer import is_edit_tool, normalize
from .patch import apply_edits, ensure_in_workspace, is_unified_diff
from ..utils.console import error, info, success, warning

BackendFactory = Callable[[Settings], Backend]


def _fast_apply_backend(settings: Settings) -> Backend:
    return create_backend(settings, http_transport="merge")


class EditInterceptor:
    """
    串联 normalizer -> backend -> materializer，处理 hook 事件。

    后端延迟构建（每个实例只构建一次），被拒绝的事件不会触发后端探测。
    """

    def __init__(
        self,
        settings: Settings,
        backend: Optional[Backend] = None,
        backend_factory: BackendFactory = _fast_apply_backend,
    ) -> None:
        self.settings = settings
        self._backend = backend
        self._backend_factory = backend_factory

    @property
    def backend(self) -> Backend:
        if self._backend is None:
            self._backend = self._backend_factory(self.settings)
        return self._backend

    # ==================== public API ====================

    def handle(self, event: ToolCallEvent) -> Outcome:
        """对单个事件执行完整决策流程并返回 Outcome"""
        try:
            request = self._normalize(event)
        except ClassificationMiss as e:
            return Declined(reason=str(e))

        try:
            result = self.intercept_and_apply(request)
        except WorkspaceEscapeError as e:
            error(str(e))
            return Blocked(reason=str(e))

        if result.success:
            return Handled(reason=request.goal, result=result)
        return Declined(reason=result.error or "edit not applied")

    def on_tool_use(self, tool_name: str, tool_input: dict, tool_response: Optional[dict] = None) -> bool:
        """
        Boolean verdict: True when the edit was handled here and the caller
        must suppress its own write.

        Raises:
            WorkspaceEscapeError: the target is outside the workspace.
        """
        event = ToolCallEvent(
            tool_name=tool_name or "",
            tool_input=tool_input if isinstance(tool_input, dict) else {},
            tool_response=tool_response if isinstance(tool_response, dict) else {},
        )
        try:
            request = self._normalize(event)
        except ClassificationMiss:
            return False
        return self.intercept_and_apply(request).success

    def intercept_and_apply(self, request: EditRequest) -> EditResult:
        """
        Send an already-normalized request through the backend and
        materialize the result.

        Backend and write failures are reported in the returned EditResult;
        only WorkspaceEscapeError is raised.
        """
        root = self.settings.workspace_root
        for payload in request.files:
            ensure_in_workspace(payload.path, root)

        try:
            result = self.backend.apply(request.goal, list(request.files), self.settings.dry_run)
        except MorphError as e:
            error(f"Morph apply failed, falling back to native edit: {e}")
            return EditResult(success=False, error=str(e))

        try:
            return self._materialize(result)
        except WorkspaceEscapeError:
            raise
        except (MorphError, OSError) as e:
            error(f"Failed to write merged result, falling back to native edit: {e}")
            return EditResult(success=False, error=str(e))

    # ==================== internals ====================

    def _materialize(self, result: ApplyResult) -> EditResult:
        root = self.settings.workspace_root
        if isinstance(result, LogsOnly):
            if result.logs.strip():
                info(result.logs.strip())
            success(f"Morph {self.backend.name} backend completed")
            return EditResult(success=True)

        if not result.has_edits:
            warning("Morph backend returned no edits, falling back to native edit")
            return EditResult(success=False, error="backend returned no edits")

        resolved: Dict[str, Path] = {}
        for edit in result.edits:
            resolved[edit.path] = ensure_in_workspace(edit.path, root)

        # diff 形式的结果无法落盘；整体放弃，避免部分写入后又吞掉原生编辑
        unapplied = {e.path: e.patch for e in result.edits if is_unified_diff(e.patch)}
        if unapplied and not self.settings.dry_run:
            warning("Diff left for manual review, falling back to native edit: " + ", ".join(unapplied))
            return EditResult(
                success=False,
                diffs=unapplied,
                error="backend result looks like a unified diff and was not written",
            )

        diffs = apply_edits(result.edits, dry_run=self.settings.dry_run, workspace_root=root)
        modified: List[FilePayload] = [
            FilePayload(path=str(resolved[edit.path]), content=edit.patch)
            for edit in result.edits
            if edit.path not in diffs
        ]

        if modified:
            success("Morph merged: " + ", ".join(f.path for f in modified))
        if diffs:
            info("Dry run, not written: " + ", ".join(diffs))
        return EditResult(success=True, modified_files=modified, diffs=diffs)

    @staticmethod
    def _normalize(event: ToolCallEvent) -> EditRequest:
        try:
            return normalize(event)
        except ClassificationMiss as e:
            # 非编辑类工具静默放行；编辑类工具但提取失败时给出警告
            if is_edit_tool(event.tool_name):
                warning(f"Skipping {event.tool_name}: {e}")
            raise
