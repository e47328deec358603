# tests/test_interceptor.py
"""
EditInterceptor 决策流程：分类 -> 规范化 -> 后端 -> 写入 -> Outcome
后端全部使用 mock，不发起任何网络请求。
"""

from unittest.mock import MagicMock

import pytest

from morphclaude.core.errors import EmptyMergeError, HttpError, WorkspaceEscapeError
from morphclaude.core.backend import FastApplyBackend
from morphclaude.core.interceptor import EditInterceptor
from morphclaude.core.models import (
    Blocked, Declined, Edit, EditRequest, FilePayload, Handled, StructuredEdits, ToolCallEvent,
)

DIFF = "--- a/app.py\n+++ b/app.py\n@@ -1 +1 @@\n-x = 1\n+x = 2\n"


def _write_event(path, content="x = 2\n"):
    return ToolCallEvent(tool_name="Write", tool_input={"file_path": path, "content": content})


# --- handle ---

def test_handled_writes_merged_content(settings, workspace, fake_backend):
    (workspace / "app.py").write_text("x = 1\n", encoding="utf-8")
    outcome = EditInterceptor(settings, backend=fake_backend).handle(_write_event("app.py"))

    assert isinstance(outcome, Handled)
    assert outcome.handled
    assert (workspace / "app.py").read_text(encoding="utf-8") == "x = 2\n"
    assert [f.path for f in outcome.result.modified_files] == [str(workspace / "app.py")]
    fake_backend.apply.assert_called_once()


def test_non_edit_tool_declined_without_backend(settings):
    factory = MagicMock()
    interceptor = EditInterceptor(settings, backend_factory=factory)

    outcome = interceptor.handle(ToolCallEvent(tool_name="Bash", tool_input={"command": "ls"}))

    assert isinstance(outcome, Declined)
    assert not outcome.handled
    factory.assert_not_called()


def test_escape_is_blocked_before_backend(settings, fake_backend):
    outcome = EditInterceptor(settings, backend=fake_backend).handle(_write_event("/etc/passwd", "pwned"))

    assert isinstance(outcome, Blocked)
    assert "/etc/passwd" in outcome.reason
    fake_backend.apply.assert_not_called()


def test_escape_in_backend_edits_is_blocked(settings, workspace, fake_backend):
    fake_backend.apply.side_effect = None
    fake_backend.apply.return_value = StructuredEdits(edits=[Edit(path="../../evil.py", patch="evil")])

    outcome = EditInterceptor(settings, backend=fake_backend).handle(_write_event("app.py"))

    assert isinstance(outcome, Blocked)
    assert not (workspace.parent.parent / "evil.py").exists()


def test_empty_merge_declines_and_leaves_file(settings, workspace, fake_backend):
    (workspace / "app.py").write_text("x = 1\n", encoding="utf-8")
    fake_backend.apply.side_effect = EmptyMergeError("near-empty")

    outcome = EditInterceptor(settings, backend=fake_backend).handle(_write_event("app.py"))

    assert isinstance(outcome, Declined)
    assert "near-empty" in outcome.reason
    assert (workspace / "app.py").read_text(encoding="utf-8") == "x = 1\n"


def test_http_error_declines(settings, fake_backend):
    fake_backend.apply.side_effect = HttpError(502, "bad gateway")
    outcome = EditInterceptor(settings, backend=fake_backend).handle(_write_event("app.py"))
    assert isinstance(outcome, Declined)


def test_logs_only_is_handled(settings, workspace, logs_only_backend):
    outcome = EditInterceptor(settings, backend=logs_only_backend).handle(_write_event("app.py"))
    assert isinstance(outcome, Handled)
    assert outcome.result.modified_files == []
    assert not (workspace / "app.py").exists()


def test_diff_patch_declines_and_leaves_file(settings, workspace, fake_backend):
    (workspace / "app.py").write_text("x = 1\n", encoding="utf-8")
    fake_backend.apply.side_effect = None
    fake_backend.apply.return_value = StructuredEdits(edits=[Edit(path="app.py", patch=DIFF)])
    interceptor = EditInterceptor(settings, backend=fake_backend)

    outcome = interceptor.handle(_write_event("app.py"))

    assert isinstance(outcome, Declined)
    assert (workspace / "app.py").read_text(encoding="utf-8") == "x = 1\n"

    result = interceptor.intercept_and_apply(EditRequest(goal="g", files=(FilePayload("app.py", "x = 2\n"),)))
    assert not result.success
    assert result.diffs == {"app.py": DIFF}


def test_mixed_diff_and_content_writes_nothing(settings, workspace, fake_backend):
    fake_backend.apply.side_effect = None
    fake_backend.apply.return_value = StructuredEdits(edits=[
        Edit(path="full.py", patch="ok = True\n"),
        Edit(path="app.py", patch=DIFF),
    ])

    outcome = EditInterceptor(settings, backend=fake_backend).handle(_write_event("app.py"))

    assert isinstance(outcome, Declined)
    assert not (workspace / "full.py").exists()


def test_merged_front_matter_is_not_swallowed(settings, workspace):
    (workspace / "README.md").write_text("---\ntitle: x\n---\n\nIntro\n", encoding="utf-8")
    executor = MagicMock()
    executor.model = "morph-v3-large"
    executor.merge.return_value = "---\ntitle: x\n---\n\nIntro\n\nNew paragraph\n"
    backend = FastApplyBackend(executor, workspace)

    outcome = EditInterceptor(settings, backend=backend).handle(
        _write_event("README.md", "Intro\n\nNew paragraph\n")
    )

    # 合并结果形似 diff 而未写入，必须交回原生编辑
    assert isinstance(outcome, Declined)
    assert not outcome.handled


def test_undecodable_original_declines_and_keeps_bytes(settings, workspace):
    original = "# caf\u00e9\nx = 1\ny = 2\nz = 3\n".encode("latin-1")
    (workspace / "legacy.py").write_bytes(original)
    executor = MagicMock()
    executor.merge.return_value = "y = 222222"
    backend = FastApplyBackend(executor, workspace)

    outcome = EditInterceptor(settings, backend=backend).handle(ToolCallEvent(
        tool_name="Edit",
        tool_input={"file_path": "legacy.py", "old_string": "y = 2", "new_string": "y = 222222"},
    ))

    assert isinstance(outcome, Declined)
    assert "UTF-8" in outcome.reason
    executor.merge.assert_not_called()
    assert (workspace / "legacy.py").read_bytes() == original


def test_no_edits_declines(settings, fake_backend):
    assert not StructuredEdits(edits=[]).has_edits
    fake_backend.apply.side_effect = None
    fake_backend.apply.return_value = StructuredEdits(edits=[], logs="nothing to do")

    outcome = EditInterceptor(settings, backend=fake_backend).handle(_write_event("app.py"))

    assert isinstance(outcome, Declined)


def test_dry_run_passes_flag_and_writes_nothing(workspace, fake_backend):
    from morphclaude.core.config import Settings

    settings = Settings(workspace_root=workspace, api_key="k", dry_run=True)
    outcome = EditInterceptor(settings, backend=fake_backend).handle(_write_event("app.py"))

    assert isinstance(outcome, Handled)
    assert fake_backend.apply.call_args[0][2] is True
    assert not (workspace / "app.py").exists()


def test_dry_run_reports_every_edit(workspace, fake_backend):
    from morphclaude.core.config import Settings

    settings = Settings(workspace_root=workspace, api_key="k", dry_run=True)
    fake_backend.apply.side_effect = None
    fake_backend.apply.return_value = StructuredEdits(edits=[
        Edit(path="a.py", patch="a = 1\n"),
        Edit(path="b.py", patch=DIFF),
    ])

    outcome = EditInterceptor(settings, backend=fake_backend).handle(_write_event("a.py"))

    assert isinstance(outcome, Handled)
    assert outcome.result.diffs == {"a.py": "a = 1\n", "b.py": DIFF}
    assert outcome.result.modified_files == []
    assert not (workspace / "a.py").exists()
    assert not (workspace / "b.py").exists()


def test_backend_built_lazily_once(settings, fake_backend):
    factory = MagicMock(return_value=fake_backend)
    interceptor = EditInterceptor(settings, backend_factory=factory)

    interceptor.handle(_write_event("a.py"))
    interceptor.handle(_write_event("b.py"))

    factory.assert_called_once_with(settings)


# --- on_tool_use / intercept_and_apply ---

def test_on_tool_use_true_when_handled(settings, workspace, fake_backend):
    interceptor = EditInterceptor(settings, backend=fake_backend)
    assert interceptor.on_tool_use("Edit", {"file_path": "app.py", "new_string": "y = 1\n"}) is True
    assert (workspace / "app.py").read_text(encoding="utf-8") == "y = 1\n"


def test_on_tool_use_false_for_miss(settings, fake_backend):
    interceptor = EditInterceptor(settings, backend=fake_backend)
    assert interceptor.on_tool_use("Read", {"file_path": "app.py"}) is False
    assert interceptor.on_tool_use("Write", {"content": "no path"}) is False


def test_on_tool_use_raises_on_escape(settings, fake_backend):
    interceptor = EditInterceptor(settings, backend=fake_backend)
    with pytest.raises(WorkspaceEscapeError):
        interceptor.on_tool_use("Write", {"file_path": "/etc/passwd", "content": "x"})


def test_intercept_and_apply_reports_failure(settings, fake_backend):
    fake_backend.apply.side_effect = HttpError(500, "oops")
    result = EditInterceptor(settings, backend=fake_backend).intercept_and_apply(
        EditRequest(goal="g", files=(FilePayload("a.py", "x"),))
    )
    assert not result.success
    assert "500" in result.error
