# morphclaude/core/queue.py
"""
基于目录的意图队列。

`enqueue` 将 `<id>.json` 写入 `.morph/queue`；watcher 按最旧优先逐个取出，
交给后端处理，写入 `ok`/`error` 日志后删除队列文件。
"""

import json
import time
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .backend import Backend
from .errors import InputError, MorphError
from .fsutils import read_files, resolve_globs
from .log import format_report, write_log
from .patch import apply_edits
from ..utils.console import error, info, success

QUEUE_DIR = Path(".morph") / "queue"
DEFAULT_PATTERNS = ["src/**/*", "*.py", "*.ts", "*.js"]
DEBOUNCE_SECONDS = 0.15
POLL_INTERVAL = 0.5


def generate_intent_id() -> str:
    stamp = datetime.now().isoformat().replace(":", "-").replace(".", "-")
    return f"{stamp}_{uuid.uuid4()}"


@dataclass
class Intent:
    goal: str
    id: Optional[str] = None
    workdir: Optional[str] = None
    files: List[str] = field(default_factory=list)
    hints: List[str] = field(default_factory=list)
    dry_run: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Intent":
        if not isinstance(data, dict) or not isinstance(data.get("goal"), str) or not data["goal"].strip():
            raise InputError("Intent must be a JSON object with a non-empty 'goal'")
        return cls(
            goal=data["goal"],
            id=data.get("id"),
            workdir=data.get("workdir"),
            files=[str(f) for f in data.get("files") or []],
            hints=[str(h) for h in data.get("hints") or []],
            dry_run=bool(data.get("dryRun", data.get("dry_run", False))),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["dryRun"] = data.pop("dry_run")
        return data


def enqueue(
    goal: str,
    files: Optional[List[str]] = None,
    intent_id: Optional[str] = None,
    dry_run: bool = False,
    queue_dir: Optional[Path] = None,
    workdir: Optional[str] = None,
) -> Path:
    """Write an intent file into the queue and return its path."""
    directory = Path(queue_dir) if queue_dir is not None else QUEUE_DIR.resolve()
    directory.mkdir(parents=True, exist_ok=True)
    intent = Intent(
        goal=goal,
        id=intent_id or generate_intent_id(),
        workdir=workdir,
        files=list(files or []),
        dry_run=dry_run,
    )
    path = directory / f"{intent.id}.json"
    path.write_text(json.dumps(intent.to_dict(), indent=2), encoding="utf-8")
    return path


def process_intent_file(path: Path, backend: Backend, out_dir: Optional[Path] = None) -> str:
    """
    Run one queued intent. Returns "ok" or "error"; either way the queue file
    is removed and a log is written.
    """
    intent_id = path.stem
    try:
        intent = Intent.from_dict(json.loads(path.read_text(encoding="utf-8")))
        workdir = Path(intent.workdir or ".").resolve()
        patterns = intent.files or DEFAULT_PATTERNS
        payloads = read_files(resolve_globs(patterns, workdir))

        result = backend.apply(intent.goal, payloads, intent.dry_run)
        diffs = apply_edits(result.edits, dry_run=intent.dry_run, workspace_root=workdir)

        write_log(intent_id, "ok", format_report(intent.goal, "Files", len(payloads), result.logs, diffs), out_dir)
        status = "ok"
        success(f"processed {intent_id}")
    except (MorphError, OSError, ValueError) as e:
        write_log(intent_id, "error", str(e), out_dir)
        status = "error"
        error(f"error processing {intent_id}: {e}")

    path.unlink(missing_ok=True)
    return status


class QueueWatcher:
    """
    Polls a queue directory and processes intents strictly one at a time.

    Files already present at start-up are processed immediately; a file that
    appears later is only acted on once it has been visible for `debounce`
    seconds, so partially written intents are not read.
    """

    def __init__(
        self,
        queue_dir: Path,
        backend: Backend,
        poll_interval: float = POLL_INTERVAL,
        debounce: float = DEBOUNCE_SECONDS,
        out_dir: Optional[Path] = None,
    ) -> None:
        self.queue_dir = Path(queue_dir)
        self.backend = backend
        self.poll_interval = poll_interval
        self.debounce = debounce
        self.out_dir = out_dir
        self._first_seen: Dict[str, float] = {}

    def pending(self) -> List[Path]:
        """Queued intent files in FIFO order (modification time, then name)."""
        if not self.queue_dir.exists():
            return []
        files = [p for p in self.queue_dir.iterdir() if p.is_file() and p.suffix == ".json"]
        return sorted(files, key=lambda p: (p.stat().st_mtime, p.name))

    def scan_existing(self) -> List[Tuple[str, str]]:
        return [(p.stem, process_intent_file(p, self.backend, self.out_dir)) for p in self.pending()]

    def run_once(self) -> List[Tuple[str, str]]:
        processed = []
        now = time.monotonic()
        pending = self.pending()
        # 去抖期内消失的文件不会再出现在 pending 中，清掉它们的记录
        current = {str(p) for p in pending}
        for key in [k for k in self._first_seen if k not in current]:
            del self._first_seen[key]

        for path in pending:
            key = str(path)
            first_seen = self._first_seen.setdefault(key, now)
            if now - first_seen < self.debounce:
                continue
            if not path.exists():
                self._first_seen.pop(key, None)
                continue
            processed.append((path.stem, process_intent_file(path, self.backend, self.out_dir)))
            self._first_seen.pop(key, None)
        return processed

    def watch(self) -> None:
        """Block forever (until KeyboardInterrupt) processing new intents."""
        self.queue_dir.mkdir(parents=True, exist_ok=True)
        info(f"Watching {self.queue_dir} for intents...")
        self.scan_existing()
        while True:
            self.run_once()
            time.sleep(self.poll_interval)
