# morphclaude/cli.py
"""
morphclaude CLI 主入口：hook 入口、意图队列、precommit 与状态查看。
"""
import subprocess
from pathlib import Path
from typing import List

import click
from keyring.errors import KeyringError

from morphclaude.core.backend import create_backend
from morphclaude.core.config import load_config, resolve_settings, save_config
from morphclaude.core.errors import MorphError
from morphclaude.core.fsutils import read_files
from morphclaude.core.keychain import default_account, delete_api_key, get_api_key, set_api_key
from morphclaude.core.log import format_report, read_recent_logs, write_log
from morphclaude.core.patch import apply_edits
from morphclaude.core.queue import QUEUE_DIR, QueueWatcher, enqueue, generate_intent_id
from morphclaude.hook import run_hook
from morphclaude.utils.console import (
    console, error, heading, info, print_json, print_table, success, warning,
)

PLAN_FILE = Path(".morph") / "plan.md"
DEFAULT_PRECOMMIT_GOAL = "Reconcile staged changes; fix imports/renames/formatting."
SOURCE_EXTENSIONS = {".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".rs"}

# ------------------------------
# CLI 主入口
# ------------------------------

@click.group(invoke_without_command=True)
@click.version_option("0.1.0", message="morphclaude v%(version)s")
@click.pass_context
def cli(ctx):
    """Mighty-Morphin-Claude: Morph fast-apply hook and command integration"""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())

# ------------------------------
# 命令 1: hook
# ------------------------------

@cli.command()
@click.pass_context
def hook(ctx):
    """🪝 Handle one tool-call event from stdin (exit 0 handled, 1 not handled, 2 blocked)"""
    raw = click.get_text_stream("stdin").read()
    ctx.exit(run_hook(raw))

# ------------------------------
# 命令 2: install
# ------------------------------

@cli.command()
@click.option("--account", "-a", help="Override account name (default: current user)")
@click.option("--reset", "-r", is_flag=True, help="Replace the stored key even if one exists")
@click.option("--print", "-p", "print_only", is_flag=True, help="Report whether a key is stored and exit")
@click.pass_context
def install(ctx, account: str, reset: bool, print_only: bool):
    """🔧 Configure the account and store your Morph API key"""
    account = account or default_account()
    config = load_config()
    config.account = account
    save_config(config)

    if print_only:
        if get_api_key(account):
            console.print(f'An API key is stored for account "{account}".')
        else:
            console.print(f'No API key found for account "{account}".')
        return

    if reset:
        delete_api_key(account)
    elif get_api_key(account):
        info(f'An API key already exists for account "{account}". Use --reset to replace it.')
        return

    key = click.prompt("Enter your Morph API key", hide_input=True, default="", show_default=False)
    if not key.strip():
        error("No key entered.")
        ctx.exit(1)
    try:
        set_api_key(account, key.strip())
    except KeyringError as e:
        error(f"Failed to store API key: {e}")
        ctx.exit(1)
    success(f'API key stored for account "{account}".')

# ------------------------------
# 命令 3: enqueue
# ------------------------------

@cli.command(name="enqueue")
@click.argument("goal")
@click.option("--files", "-f", default="", help="Comma-separated list of glob patterns")
@click.option("--id", "-i", "intent_id", help="Custom identifier for the intent")
@click.option("--dry-run", "-d", is_flag=True, help="Compute changes without modifying files")
@click.option("--workdir", "-w", type=click.Path(file_okay=False), help="Directory the globs are relative to")
def enqueue_cmd(goal: str, files: str, intent_id: str, dry_run: bool, workdir: str):
    """📥 Enqueue an edit intent for the watcher"""
    patterns = [s.strip() for s in files.split(",") if s.strip()]
    path = enqueue(
        goal,
        files=patterns,
        intent_id=intent_id,
        dry_run=dry_run,
        workdir=str(Path(workdir).resolve()) if workdir else None,
    )
    console.print(f"Enqueued intent {path.stem} -> {path}")

# ------------------------------
# 命令 4: watch
# ------------------------------

@cli.command()
@click.option("--queue", "-q", "queue_dir", default=str(QUEUE_DIR), help="Path to queue directory")
def watch(queue_dir: str):
    """👀 Watch the queue for edit intents and process them one at a time"""
    settings = resolve_settings()
    backend = create_backend(settings)
    watcher = QueueWatcher(Path(queue_dir).resolve(), backend)
    try:
        watcher.watch()
    except KeyboardInterrupt:
        info("Stopped watching.")

# ------------------------------
# 命令 5: precommit
# ------------------------------

def _staged_files() -> List[str]:
    proc = subprocess.run(
        ["git", "diff", "--cached", "--name-only"],
        capture_output=True, text=True, check=True,
    )
    files = [line.strip() for line in proc.stdout.splitlines()]
    return [f for f in files if f and not f.startswith(".") and Path(f).suffix in SOURCE_EXTENSIONS]


@cli.command()
@click.pass_context
def precommit(ctx):
    """🧹 Reconcile staged changes with Morph before committing"""
    try:
        staged = _staged_files()
    except (OSError, subprocess.CalledProcessError):
        error("Failed to list staged files. Is this a Git repository?")
        ctx.exit(1)
    if not staged:
        return

    goal = PLAN_FILE.read_text(encoding="utf-8") if PLAN_FILE.exists() else DEFAULT_PRECOMMIT_GOAL
    settings = resolve_settings()
    backend = create_backend(settings)
    payloads = read_files(staged)

    try:
        result = backend.apply(goal, payloads, False)
        diffs = apply_edits(result.edits, dry_run=False, workspace_root=settings.workspace_root)
    except (MorphError, OSError) as e:
        error(f"Morph precommit failed: {e}")
        ctx.exit(1)

    if diffs:
        log_id = generate_intent_id().split("_")[0] + "_precommit"
        write_log(log_id, "error", format_report(goal, "Staged files", len(staged), result.logs, diffs))
        error("Morph produced unified diffs during precommit. Commit aborted.")
        ctx.exit(1)

    # 文件可能被改写，重新加入暂存区
    subprocess.run(["git", "add", "-A"], check=False)
    success(f"Reconciled {len(staged)} staged file(s).")

# ------------------------------
# 命令 6: status
# ------------------------------

@cli.command()
@click.option("--limit", "-n", default=10, type=int, help="Number of entries to show")
@click.option("--json", "as_json", is_flag=True, help="Output in JSON format")
def status(limit: int, as_json: bool):
    """📊 Show recent Morph operations"""
    entries = read_recent_logs(limit)
    if as_json:
        print_json([e.to_dict() for e in entries])
        return
    if not entries:
        warning("No Morph operations recorded yet.")
        return
    heading("Recent Morph operations")
    print_table(
        [(e.time.strftime("%Y-%m-%d %H:%M:%S"), e.status, e.id, e.goal) for e in entries],
        headers=["Time", "Status", "ID", "Goal"],
    )

# ------------------------------
# 主入口
# ------------------------------
if __name__ == '__main__':
    cli(obj={})
