# morphclaude/core/backend.py
"""
Backend abstraction: one `apply(goal, files, dry_run)` contract over the
transports that can reconcile edits.

- CliBackend:       local `morph-apply` executable (logs only)
- HttpBackend:      Morph `/apply` endpoint (structured edits)
- FastApplyBackend: per-file merge through the fast-apply MergeExecutor

None of them retries; retry policy belongs to the caller.
"""

import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

import httpx

from .config import Settings
from .errors import AuthError, BackendError, HttpError, InputError, SourceReadError
from .merge import MergeExecutor
from .models import ApplyResult, Edit, FilePayload, LogsOnly, StructuredEdits

CLI_CANDIDATES = ("morph-apply",)
PROBE_TIMEOUT = 10.0
APPLY_TIMEOUT = 120.0


class Backend(ABC):
    """Uniform contract over the apply transports."""

    name = "backend"

    @abstractmethod
    def apply(self, goal: str, files: Sequence[FilePayload], dry_run: bool = False) -> ApplyResult:
        """
        Reconcile `files` towards `goal`.

        Raises:
            BackendError: the transport could not complete.
        """
        pass


class CliBackend(Backend):
    name = "cli"

    def __init__(self, binary: str) -> None:
        self.binary = binary

    def build_args(self, goal: str, files: Sequence[FilePayload], dry_run: bool) -> List[str]:
        args = [self.binary, "--goal", goal, "--files", *[f.path for f in files]]
        if dry_run:
            args.append("--dry-run")
        return args

    def apply(self, goal: str, files: Sequence[FilePayload], dry_run: bool = False) -> ApplyResult:
        try:
            proc = subprocess.run(
                self.build_args(goal, files, dry_run),
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise BackendError(f"Failed to run {self.binary}: {e}") from e
        if proc.returncode != 0:
            raise BackendError(f"{self.binary} exited with code {proc.returncode}\n{proc.stderr}")
        # 输出是给人看的 diff/日志，无法解析成结构化 edits
        return LogsOnly(logs=proc.stdout)


class HttpBackend(Backend):
    name = "http"

    def __init__(self, api_base: str, api_key: Optional[str], timeout: float = APPLY_TIMEOUT) -> None:
        self.api_base = api_base
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpBackend":
        return cls(api_base=settings.api_base, api_key=settings.api_key)

    @property
    def url(self) -> str:
        return f"{self.api_base.rstrip('/')}/apply"

    def apply(self, goal: str, files: Sequence[FilePayload], dry_run: bool = False) -> ApplyResult:
        if not self.api_key:
            raise AuthError("No Morph API key available. Run `morphclaude install` first.")
        payload = {
            "goal": goal,
            "dryRun": dry_run,
            "files": [f.to_dict() for f in files],
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise BackendError(f"Morph API request failed: {e}") from e

        if not response.is_success:
            raise HttpError(response.status_code, response.text)
        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(f"Morph API returned invalid JSON: {e}") from e
        try:
            return ApplyResult.from_dict(data)
        except InputError as e:
            raise BackendError(f"Unexpected /apply response: {e}") from e


class FastApplyBackend(Backend):
    """
    将每个 payload 合并进对应文件当前的磁盘内容。
    原始内容在每次合并前现读，不做缓存；文件不存在时视为空内容。
    """

    name = "fast-apply"

    def __init__(self, executor: MergeExecutor, workspace_root: Optional[Path] = None) -> None:
        self.executor = executor
        self.workspace_root = workspace_root

    @classmethod
    def from_settings(cls, settings: Settings) -> "FastApplyBackend":
        return cls(MergeExecutor.from_settings(settings), workspace_root=settings.workspace_root)

    def _resolve(self, path: str) -> Path:
        p = Path(path)
        if not p.is_absolute() and self.workspace_root is not None:
            p = self.workspace_root / p
        return p

    @staticmethod
    def _read_original(path: Path) -> str:
        # 只有不存在的文件才算空内容；存在但读不出的文件不能被覆盖
        if not path.exists():
            return ""
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise SourceReadError(f"{path} is not valid UTF-8 text; refusing to merge into it") from e
        except OSError as e:
            raise SourceReadError(f"Failed to read {path}: {e}") from e

    def apply(self, goal: str, files: Sequence[FilePayload], dry_run: bool = False) -> ApplyResult:
        edits = []
        for payload in files:
            original = self._read_original(self._resolve(payload.path))
            merged = self.executor.merge(original, payload.content, goal=goal)
            if original.endswith("\n") and not merged.endswith("\n"):
                merged += "\n"
            edits.append(Edit(path=payload.path, patch=merged))
        return StructuredEdits(
            edits=edits,
            logs=f"Merged {len(edits)} file(s) via fast-apply ({self.executor.model})",
        )


def find_morph_cli(candidates: Sequence[str] = CLI_CANDIDATES) -> Optional[str]:
    """Return the first candidate executable that answers `--help` with exit 0."""
    for candidate in candidates:
        try:
            proc = subprocess.run(
                [candidate, "--help"],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=PROBE_TIMEOUT,
            )
        except (OSError, subprocess.SubprocessError):
            continue
        if proc.returncode == 0:
            return candidate
    return None


def create_backend(settings: Settings, http_transport: str = "apply") -> Backend:
    """
    Prefer the local executable; otherwise fall back to an HTTP transport.
    `http_transport` is "apply" (HttpBackend) or "merge" (FastApplyBackend).
    """
    cli_path = find_morph_cli()
    if cli_path:
        return CliBackend(cli_path)
    if http_transport == "merge":
        return FastApplyBackend.from_settings(settings)
    if http_transport == "apply":
        return HttpBackend.from_settings(settings)
    raise ValueError(f"Unknown HTTP transport: {http_transport}")
