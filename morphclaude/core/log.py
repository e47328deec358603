# morphclaude/core/log.py
"""
`.morph/out` 下的操作日志：每个处理过的 intent 一个文件 `<id>.<status>.log`，首行为目标。
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

OUT_DIR = Path(".morph") / "out"


@dataclass
class LogEntry:
    id: str
    status: str
    time: datetime
    goal: str
    file: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "status": self.status,
            "time": self.time.isoformat(),
            "goal": self.goal,
            "file": self.file,
        }


def _out_dir(out_dir: Optional[Path]) -> Path:
    return Path(out_dir) if out_dir is not None else OUT_DIR.resolve()


def write_log(log_id: str, status: str, content: str, out_dir: Optional[Path] = None) -> Path:
    """写入一个日志文件，必要时创建输出目录"""
    directory = _out_dir(out_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{log_id}.{status}.log"
    path.write_text(content, encoding="utf-8")
    return path


def read_recent_logs(limit: int = 10, out_dir: Optional[Path] = None) -> List[LogEntry]:
    """Return the `limit` most recently modified log entries, newest first."""
    directory = _out_dir(out_dir)
    if not directory.exists():
        return []

    files = sorted(
        (p for p in directory.iterdir() if p.is_file() and p.name.endswith(".log")),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )[:limit]

    entries = []
    for path in files:
        stem = path.name[: -len(".log")]
        log_id, _, status = stem.rpartition(".")
        if not log_id:
            log_id, status = stem, "unknown"
        content = path.read_text(encoding="utf-8", errors="replace")
        goal = content.splitlines()[0] if content else ""
        entries.append(LogEntry(
            id=log_id,
            status=status,
            time=datetime.fromtimestamp(path.stat().st_mtime),
            goal=goal,
            file=path.name,
        ))
    return entries


def format_report(goal: str, files_label: str, files_count: int, logs: str, diffs: Dict[str, str]) -> str:
    """Text body shared by the watch and precommit logs."""
    report = f"{goal}\n{files_label}: {files_count}\n{logs or ''}"
    if diffs:
        report += "\nDiffs:\n"
        for path, diff in diffs.items():
            report += f"=== {path} ===\n{diff}\n"
    return report
