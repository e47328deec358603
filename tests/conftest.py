# morphclaude/tests/conftest.py
"""
morphclaude 测试配置和共享 fixtures
每个测试都在隔离的工作区和 HOME 中运行，不会碰到真实的 ~/.morph 或钥匙串。
"""

import pytest
from unittest.mock import MagicMock

from morphclaude.core.backend import Backend
from morphclaude.core.config import Settings
from morphclaude.core.models import Edit, LogsOnly, StructuredEdits

MORPH_ENV_VARS = (
    "MORPH_API_KEY", "MORPH_LLM_API_KEY", "MORPH_ACCOUNT",
    "MORPH_API_BASE", "MORPH_MERGE_MODEL", "MORPH_DRY_RUN",
)

# --- Pytest Fixtures ---

@pytest.fixture(scope="function")
def workspace(tmp_path, monkeypatch):
    """
    提供一个隔离的工作区目录并切换当前工作目录。
    HOME 指向临时目录，MORPH_* 环境变量全部清除。
    """
    root = tmp_path / "project"
    root.mkdir()
    home = tmp_path / "home"
    home.mkdir()

    monkeypatch.setenv("HOME", str(home))
    for name in MORPH_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(root)

    return root.resolve()


@pytest.fixture
def settings(workspace):
    """带测试 API key 的 Settings，工作区根目录为隔离目录"""
    return Settings(workspace_root=workspace, api_key="test-key")


@pytest.fixture
def fake_backend():
    """
    Mock Backend：默认把每个 payload 原样作为完整内容返回。
    需要特殊行为时在测试里覆盖 apply.side_effect / return_value。
    """
    backend = MagicMock(spec=Backend)
    backend.name = "fake"

    def _apply(goal, files, dry_run=False):
        return StructuredEdits(
            edits=[Edit(path=f.path, patch=f.content) for f in files],
            logs=f"applied {len(files)} file(s)",
        )

    backend.apply.side_effect = _apply
    return backend


@pytest.fixture
def logs_only_backend():
    backend = MagicMock(spec=Backend)
    backend.name = "cli"
    backend.apply.return_value = LogsOnly(logs="--- a/app.py\n+++ b/app.py\n")
    return backend


# --- CLI 测试的特殊 Fixture ---
@pytest.fixture
def runner():
    """提供一个 Click CliRunner 实例用于测试 CLI 命令"""
    from click.testing import CliRunner
    return CliRunner()

