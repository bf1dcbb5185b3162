"""CLI for restic-exporter."""

from pathlib import Path
from typing import List, NoReturn, Optional
import logging
import time

import typer
from prometheus_client import generate_latest, start_http_server
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .config import ExporterConfig, load_config
from .constants import RESTIC_EXECUTABLE
from .errors import ConfigError, ProcessFailedError, ResticError
from .events import StatusEvent, SummaryEvent
from .metrics import ResticMetrics, scrape
from .repository import ResticRepository, restic_version
from .utils import humanize_size


app = typer.Typer(help="""\
Run restic backups and expose repository statistics as Prometheus
metrics. Wraps the restic command line; restic must be on PATH.""")

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

RepoOpt = typer.Option(None, "--repo", "-r", help="Repository location (default: $RESTIC_REPOSITORY or config)")
ConfigOpt = typer.Option(None, "--config", "-c", help="Path to restic-exporter.yaml")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """restic-exporter command line."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def _load(repo: Optional[str], config: Optional[Path], **overrides) -> ExporterConfig:
    try:
        return load_config(config, repository=repo, **overrides)
    except ConfigError as e:
        err_console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _fail(e: ResticError) -> NoReturn:
    err_console.print(f"[red]✗[/red] {escape(str(e))}")
    raise typer.Exit(1)


def _summary_table(summary: SummaryEvent) -> Table:
    short_id = summary.snapshot_id[:8] if summary.snapshot_id else "(dry run)"
    table = Table(title=f"Snapshot {short_id}")
    table.add_column("", style="cyan")
    table.add_column("New", justify="right")
    table.add_column("Changed", justify="right")
    table.add_column("Unmodified", justify="right")
    table.add_row("Files", str(summary.files_new), str(summary.files_changed), str(summary.files_unmodified))
    table.add_row("Dirs", str(summary.dirs_new), str(summary.dirs_changed), str(summary.dirs_unmodified))
    table.caption = (
        f"{summary.total_files_processed} files, "
        f"{humanize_size(summary.total_bytes_processed)} processed, "
        f"{humanize_size(summary.data_added)} added "
        f"in {summary.total_duration:.2f}s"
    )
    return table


@app.command()
def init(
    repo: Optional[str] = RepoOpt,
    config: Optional[Path] = ConfigOpt,
):
    """Initialize a new restic repository.

    Example:
        restic-exporter init --repo /srv/backups/repo
    """
    cfg = _load(repo, config)
    try:
        ResticRepository(cfg.handle()).init()
    except ResticError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Initialized repository at {cfg.repository}")


@app.command()
def backup(
    path: Path = typer.Argument(..., help="File or directory to back up"),
    repo: Optional[str] = RepoOpt,
    config: Optional[Path] = ConfigOpt,
    flag: List[str] = typer.Option([], "--flag", "-f", help="Extra restic flag (repeatable)"),
    as_json: bool = typer.Option(False, "--json", help="Print events as JSON lines"),
):
    """Back up PATH and print the run summary.

    Examples:
        restic-exporter backup ~/data --repo /srv/backups/repo
        restic-exporter backup ~/data --flag=--tag --flag=nightly
    """
    cfg = _load(repo, config)
    try:
        events = ResticRepository(cfg.handle()).backup(path, flags=flag)
    except ProcessFailedError as e:
        statuses = [ev for ev in e.events if isinstance(ev, StatusEvent)]
        if statuses:
            err_console.print(
                f"[yellow]Backup reached {statuses[-1].percent_done:.0%} before failing[/yellow]"
            )
        _fail(e)
    except ResticError as e:
        _fail(e)

    if as_json:
        for ev in events:
            typer.echo(ev.model_dump_json())
        return

    console.print(_summary_table(events[-1]))


@app.command()
def stats(
    repo: Optional[str] = RepoOpt,
    config: Optional[Path] = ConfigOpt,
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
):
    """Show repository statistics."""
    cfg = _load(repo, config)
    try:
        result = ResticRepository(cfg.handle()).stats()
    except ResticError as e:
        _fail(e)

    if as_json:
        console.print_json(result.model_dump_json())
        return

    table = Table(title=f"Repository {cfg.repository}")
    table.add_column("Snapshots", justify="right")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")
    table.add_row(str(result.snapshots_count), str(result.total_file_count), humanize_size(result.total_size))
    console.print(table)


@app.command()
def version(
    executable: str = typer.Option(RESTIC_EXECUTABLE, "--executable", help="restic binary to query"),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
):
    """Show the restic version."""
    try:
        info = restic_version(executable)
    except ResticError as e:
        _fail(e)

    if as_json:
        console.print_json(info.model_dump_json())
        return
    platform = f" ({info.go_os}/{info.go_arch})" if info.go_os and info.go_arch else ""
    console.print(f"restic {info.version}{platform}")


@app.command()
def check(
    repo: Optional[str] = RepoOpt,
    config: Optional[Path] = ConfigOpt,
):
    """Check repository integrity; exits 1 when restic reports problems."""
    cfg = _load(repo, config)
    try:
        ok = ResticRepository(cfg.handle()).check(flags=cfg.check_flags)
    except ResticError as e:
        _fail(e)

    if not ok:
        console.print(f"[red]✗[/red] Repository {cfg.repository} has errors")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Repository {cfg.repository} is healthy")


@app.command()
def metrics(
    repo: Optional[str] = RepoOpt,
    config: Optional[Path] = ConfigOpt,
):
    """Scrape once and print the metrics in Prometheus text format."""
    cfg = _load(repo, config)
    instruments = ResticMetrics()
    try:
        scrape(ResticRepository(cfg.handle()), instruments, check_flags=cfg.check_flags)
    except ResticError as e:
        _fail(e)
    typer.echo(generate_latest(instruments.registry).decode("utf-8"), nl=False)


@app.command()
def serve(
    repo: Optional[str] = RepoOpt,
    config: Optional[Path] = ConfigOpt,
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Listen port"),
):
    """Serve metrics over HTTP, refreshing every interval_seconds.

    Example:
        restic-exporter serve --repo /srv/backups/repo --port 9150
    """
    cfg = _load(repo, config, listen_port=port)

    repository = ResticRepository(cfg.handle())
    instruments = ResticMetrics()
    start_http_server(cfg.listen_port, addr=cfg.listen_addr, registry=instruments.registry)
    console.print(
        f"[green]✓[/green] Serving metrics for {cfg.repository} "
        f"on http://{cfg.listen_addr}:{cfg.listen_port}/metrics"
    )

    while True:
        try:
            scrape(repository, instruments, check_flags=cfg.check_flags)
        except ResticError as e:
            logger.error("Scrape failed: %s", e)
        time.sleep(cfg.interval_seconds)


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
