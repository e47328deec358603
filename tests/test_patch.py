# tests/test_patch.py
import pytest

from morphclaude.core.errors import WorkspaceEscapeError
from morphclaude.core.models import Edit
from morphclaude.core.patch import apply_edits, ensure_in_workspace, is_unified_diff

DIFF = """diff --git a/app.py b/app.py
--- a/app.py
+++ b/app.py
@@ -1 +1 @@
-x = 1
+x = 2
"""


def test_unified_diff_detection():
    assert is_unified_diff(DIFF)
    assert is_unified_diff("context\n@@ -1,2 +1,2 @@\n")
    assert not is_unified_diff("x = 1\n")
    # "---" 必须后跟空白才算 diff 头
    assert not is_unified_diff("---title---\nbody\n")


def test_full_content_is_written(workspace):
    (workspace / "app.py").write_text("x = 1\n", encoding="utf-8")
    diffs = apply_edits([Edit(path="app.py", patch="x = 2\n")], workspace_root=workspace)
    assert diffs == {}
    assert (workspace / "app.py").read_text(encoding="utf-8") == "x = 2\n"


def test_missing_parent_directories_are_created(workspace):
    apply_edits([Edit(path="pkg/sub/new.py", patch="y = 1\n")], workspace_root=workspace)
    assert (workspace / "pkg" / "sub" / "new.py").read_text(encoding="utf-8") == "y = 1\n"


def test_diff_is_reported_not_applied(workspace):
    (workspace / "app.py").write_text("x = 1\n", encoding="utf-8")
    diffs = apply_edits([Edit(path="app.py", patch=DIFF)], workspace_root=workspace)
    assert diffs == {"app.py": DIFF}
    assert (workspace / "app.py").read_text(encoding="utf-8") == "x = 1\n"


def test_dry_run_writes_nothing(workspace):
    diffs = apply_edits(
        [Edit(path="a.py", patch="a = 1\n"), Edit(path="b.py", patch=DIFF)],
        dry_run=True,
        workspace_root=workspace,
    )
    assert set(diffs) == {"a.py", "b.py"}
    assert not (workspace / "a.py").exists()


# --- workspace containment ---

def test_relative_path_resolves_under_root(workspace):
    assert ensure_in_workspace("src/a.py", workspace) == workspace / "src" / "a.py"


def test_root_itself_is_inside(workspace):
    assert ensure_in_workspace(str(workspace), workspace) == workspace


@pytest.mark.parametrize("path", ["/etc/passwd", "../outside.py", "src/../../outside.py"])
def test_escaping_paths_are_rejected(workspace, path):
    with pytest.raises(WorkspaceEscapeError):
        ensure_in_workspace(path, workspace)


def test_sibling_with_common_prefix_is_outside(workspace):
    sibling = workspace.parent / (workspace.name + "-evil") / "a.py"
    with pytest.raises(WorkspaceEscapeError):
        ensure_in_workspace(str(sibling), workspace)


def test_escaping_edit_aborts_before_any_write(workspace):
    edits = [
        Edit(path="inside.py", patch="ok = True\n"),
        Edit(path="../escaped.py", patch="pwned = True\n"),
    ]
    with pytest.raises(WorkspaceEscapeError):
        apply_edits(edits, workspace_root=workspace)
    assert not (workspace / "inside.py").exists()
    assert not (workspace.parent / "escaped.py").exists()


def test_escaping_edit_rejected_in_dry_run(workspace):
    with pytest.raises(WorkspaceEscapeError):
        apply_edits([Edit(path="/etc/passwd", patch="x")], dry_run=True, workspace_root=workspace)
