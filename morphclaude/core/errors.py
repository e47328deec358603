# morphclaude/core/errors.py
"""
Error taxonomy for the edit interception core.

Only WorkspaceEscapeError is allowed to surface past the decision engine;
everything else is turned into a "not handled" outcome there.
"""

from typing import Any


class MorphError(Exception):
    """Base class for every error raised by morphclaude."""


class InputError(MorphError):
    """Malformed or absent hook event payload."""


class ClassificationMiss(MorphError):
    """Tool kind is not an edit, or no path/payload could be extracted."""


class WorkspaceEscapeError(MorphError):
    """A target path resolves outside the workspace root."""

    def __init__(self, path: str, workspace_root: str) -> None:
        self.path = path
        self.workspace_root = workspace_root
        super().__init__(f"Refusing to touch '{path}': outside workspace root '{workspace_root}'")


class BackendError(MorphError):
    """The backend transport could not complete the apply call."""


class AuthError(BackendError):
    """No API credential is available for a remote transport."""


class HttpError(BackendError):
    """Raised when the Morph API returns a non-2xx response."""

    def __init__(self, status: int, body: Any) -> None:
        self.status = status
        self.body = body
        super().__init__(f"Morph API responded with {status}: {body}")


class MergeExecutionError(BackendError):
    """Transport or timeout failure while talking to the merge endpoint."""


class EmptyMergeError(BackendError):
    """The merge produced empty or near-empty output."""


class SourceReadError(BackendError):
    """An existing target file could not be read as UTF-8 text."""
