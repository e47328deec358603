# morphclaude/hook.py
"""
Hook entrypoint: reads one tool-call event from stdin and reports the
verdict through the exit code.

    0  handled (the assistant must not perform its own write)
       also used when stdin is empty, so a bare invocation is harmless
    1  not handled (the assistant proceeds with its native edit)
    2  blocked (target outside the workspace); reason on stderr
"""

import json
import sys
from pathlib import Path
from typing import Callable, Optional, TextIO

from .core.config import Settings, resolve_settings
from .core.errors import InputError
from .core.interceptor import EditInterceptor
from .core.models import Blocked, ToolCallEvent
from .utils.console import error, warning

EXIT_HANDLED = 0
EXIT_NOT_HANDLED = 1
EXIT_BLOCKED = 2


def parse_event(raw: str) -> ToolCallEvent:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InputError(f"Failed to parse hook input JSON: {e}") from e
    return ToolCallEvent.from_dict(data)


def run_hook(
    raw: str,
    settings_factory: Callable[[Optional[Path]], Settings] = resolve_settings,
    interceptor_factory: Callable[[Settings], EditInterceptor] = EditInterceptor,
) -> int:
    """Process one raw stdin payload and return the exit code."""
    if not raw or not raw.strip():
        warning("No hook input on stdin; skipping.")
        return EXIT_HANDLED

    try:
        event = parse_event(raw)
    except InputError as e:
        error(str(e))
        return EXIT_NOT_HANDLED

    settings = settings_factory(Path(event.cwd) if event.cwd else None)
    outcome = interceptor_factory(settings).handle(event)

    if isinstance(outcome, Blocked):
        return EXIT_BLOCKED
    return EXIT_HANDLED if outcome.handled else EXIT_NOT_HANDLED


def main(stdin: Optional[TextIO] = None) -> None:
    stream = stdin if stdin is not None else sys.stdin
    try:
        code = run_hook(stream.read())
    except Exception as e:
        # 拦截失败绝不能阻断原始编辑
        error(f"Unexpected error: {e}")
        code = EXIT_NOT_HANDLED
    sys.exit(code)


if __name__ == "__main__":
    main()
