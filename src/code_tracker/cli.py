"""Command-line interface for the code tracker."""

from __future__ import annotations

import asyncio
import json
import logging
import signal
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import typer

from .config import DATE_FMT, TrackerSettings
from .paths import get_snapshot_dir
from .store import JsonSnapshotStore, SnapshotStore, read_range

if TYPE_CHECKING:
    from .collector import ActivityCollector

app = typer.Typer(help="Local-first coding activity tracker.")

logger = logging.getLogger(__name__)


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _open_store(data_dir: Optional[Path], db_path: Optional[Path]) -> SnapshotStore:
    if db_path is not None:
        from .db import SqliteSnapshotStore

        return SqliteSnapshotStore(db_path)
    return JsonSnapshotStore(data_dir or get_snapshot_dir())


def _parse_day(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, DATE_FMT).date()
    except ValueError as exc:
        raise typer.BadParameter(f"expected YYYY-MM-DD, got {value!r}") from exc


def _warn(message: str) -> None:
    typer.secho(message, fg=typer.colors.YELLOW, err=True)


DATA_DIR_OPTION = typer.Option(
    None,
    "--data-dir",
    path_type=Path,
    help="Directory holding one <date>/activity.json document per day.",
)
DB_OPTION = typer.Option(
    None,
    "--db",
    path_type=Path,
    help="Store snapshots in this SQLite database instead of JSON files.",
)


@app.command()
def watch(
    workspace: Path = typer.Argument(
        Path("."),
        path_type=Path,
        exists=True,
        file_okay=False,
        help="Directory tree to watch for edits.",
    ),
    data_dir: Optional[Path] = DATA_DIR_OPTION,
    db_path: Optional[Path] = DB_OPTION,
    project: Optional[str] = typer.Option(
        None, "--project", help="Project name for every change (defaults to the workspace name)."
    ),
    flush_minutes: float = typer.Option(
        5.0,
        "--flush-interval",
        min=0.1,
        help="Minutes between flushes of buffered changes.",
    ),
    idle_minutes: float = typer.Option(
        5.0,
        "--idle-threshold",
        min=0.5,
        help="Gap in minutes after which time stops counting as active.",
    ),
) -> None:
    """Watch a workspace and record coding activity until interrupted."""
    from .collector import ActivityCollector

    store = _open_store(data_dir, db_path)
    if isinstance(store, JsonSnapshotStore):
        try:
            store.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            _warn(f"Snapshot directory {store.root} cannot be created: {exc}")

    settings = TrackerSettings.from_intervals(
        flush_minutes=flush_minutes, idle_minutes=idle_minutes
    )
    root = workspace.resolve()
    collector = ActivityCollector(
        store,
        settings,
        project_name=project,
        workspace_root=root,
        notifier=_warn,
    )
    excluded = store.local_paths()
    try:
        asyncio.run(_watch_workspace(collector, root, excluded))
    except KeyboardInterrupt:
        logger.info("Watcher interrupted.")


async def _watch_workspace(
    collector: "ActivityCollector", root: Path, excluded: tuple[Path, ...]
) -> None:
    from .watcher import WorkspaceWatcher

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no signal handlers; Ctrl-C cancels instead.
            pass

    watcher = WorkspaceWatcher(
        root,
        collector.observe,
        loop,
        debounce=collector.settings.debounce,
        excluded_paths=excluded,
    )
    watcher.start()
    try:
        await collector.run_until_stopped(stop_event)
    finally:
        watcher.stop()


@app.command()
def summary(
    day: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to summarize. Defaults to today.",
    ),
    data_dir: Optional[Path] = DATA_DIR_OPTION,
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Print a high-level summary for a specific day."""
    from .reporting import SummaryPrinter

    SummaryPrinter(_open_store(data_dir, db_path)).print_daily_summary(_parse_day(day))


@app.command()
def history(
    start: str = typer.Option(..., "--start", help="First date (YYYY-MM-DD), inclusive."),
    end: Optional[str] = typer.Option(
        None, "--end", help="Last date (YYYY-MM-DD), inclusive. Defaults to today."
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit the stored snapshots as JSON."),
    data_dir: Optional[Path] = DATA_DIR_OPTION,
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Show every stored day between two dates."""
    from .reporting import SummaryPrinter

    store = _open_store(data_dir, db_path)
    start_day, end_day = _parse_day(start), _parse_day(end)
    if end_day < start_day:
        raise typer.BadParameter("--end must be on or after --start")

    if as_json:
        snapshots = read_range(store, start_day, end_day)
        typer.echo(json.dumps([s.to_dict() for s in snapshots], indent=2, ensure_ascii=False))
        return
    SummaryPrinter(store).print_range_summary(start_day, end_day)


@app.command()
def status(
    day: Optional[str] = typer.Option(None, "--date", help="Date (YYYY-MM-DD). Defaults to today."),
    data_dir: Optional[Path] = DATA_DIR_OPTION,
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Print the active coding time stored for a day."""
    from .reporting import format_active_time

    key = _parse_day(day).strftime(DATE_FMT)
    snapshot = _open_store(data_dir, db_path).get(key)
    minutes = snapshot.total_active_time if snapshot else 0
    typer.echo(f"Code Tracking: {format_active_time(minutes)} ({key})")


@app.command()
def serve(
    workspace: Optional[Path] = typer.Argument(
        None,
        path_type=Path,
        exists=True,
        file_okay=False,
        help="Optional directory tree to watch while serving.",
    ),
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    data_dir: Optional[Path] = DATA_DIR_OPTION,
    db_path: Optional[Path] = DB_OPTION,
    project: Optional[str] = typer.Option(None, "--project", help="Project name for every change."),
    flush_minutes: float = typer.Option(
        5.0,
        "--flush-interval",
        min=0.1,
        help="Minutes between flushes of buffered changes.",
    ),
) -> None:
    """Start the local API with the collector running in the background."""
    from .server_runner import run_server

    run_server(
        host=host,
        port=port,
        store=_open_store(data_dir, db_path),
        settings=TrackerSettings.from_intervals(flush_minutes=flush_minutes),
        workspace=workspace.resolve() if workspace else None,
        project_name=project,
    )
