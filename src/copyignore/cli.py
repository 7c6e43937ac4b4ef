"""CLI for copy-ignore."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from copyignore.config import AppConfig, load_app_config, prepare_filesystem
from copyignore.constants import PACKAGE_VERSION
from copyignore.errors import ConfigInvalid, CopySetupFailed, TraversalFailed
from copyignore.observability import RunSummary, configure_logging, write_summary
from copyignore.runner import BackupRunner
from copyignore.schemas.copy_models import CounterSnapshot
from copyignore.schemas.scan_models import DiscoveredEntry, ScanReport
from copyignore.transfer.progress import CoalescingReporter

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="copy-ignore: back up git-ignored files from every repository under a root.",
)
console = Console()

_MAX_PATH_DISPLAY = 100


@app.command()
def version() -> None:
    """Print the copy-ignore version."""
    typer.echo(PACKAGE_VERSION)


@app.command("validate-config")
def validate_config(
    config: Path | None = typer.Option(
        None, "--config", help="Path to a settings YAML file."
    ),
) -> None:
    """Validate configuration from file and environment and print it."""
    try:
        config_model = load_app_config(config)
    except ConfigInvalid as exc:
        console.print(
            f"[red]Configuration validation failed:[/red] {escape(str(exc))}"
        )
        raise typer.Exit(code=1) from exc

    table = Table(title="Effective Configuration")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in config_model.model_dump(mode="json").items():
        table.add_row(key, escape(str(value)))
    console.print(table)


@app.command("scan")
def scan(
    search_root: Path = typer.Argument(
        ..., help="Directory to search for repositories."
    ),
    exclude: list[str] | None = typer.Option(
        None, "--exclude", "-e", help="Exclusion pattern; repeatable."
    ),
    scan_workers: int | None = typer.Option(
        None, "--scan-workers", help="Repositories enumerated in parallel."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every decision."),
    config: Path | None = typer.Option(
        None, "--config", help="Path to a settings YAML file."
    ),
) -> None:
    """List the ignored entries a backup would copy, without copying."""
    cfg = _load_or_exit(
        config,
        {
            "search_root": search_root,
            "excludes": exclude or None,
            "scan_workers": scan_workers,
            "verbose": verbose or None,
            "dry_run": True,
        },
    )
    runner = BackupRunner(cfg)
    try:
        with _scan_progress() as on_directory:
            report, entries = runner.scan(on_directory)
    except TraversalFailed as exc:
        console.print(f"[red]Scan failed:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    _render_entries(entries)
    _render_scan_report(report)


@app.command("backup")
def backup(
    search_root: Path = typer.Argument(
        ..., help="Directory to search for repositories."
    ),
    backup_root: Path = typer.Argument(..., help="Directory mirroring ignored files."),
    exclude: list[str] | None = typer.Option(
        None, "--exclude", "-e", help="Exclusion pattern; repeatable."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Only list what would be copied."
    ),
    concurrency: int | None = typer.Option(
        None, "--concurrency", help="Number of copy workers."
    ),
    scan_workers: int | None = typer.Option(
        None, "--scan-workers", help="Repositories enumerated in parallel."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every decision."),
    backup_keep: int | None = typer.Option(
        None, "--backup-keep", help="History versions kept per path."
    ),
    history_subdir: str | None = typer.Option(
        None, "--history-subdir", help="History directory name inside BACKUP_ROOT."
    ),
    history_dir: Path | None = typer.Option(
        None, "--history-dir", help="Explicit history root; overrides --history-subdir."
    ),
    config: Path | None = typer.Option(
        None, "--config", help="Path to a settings YAML file."
    ),
    summary_json: Path | None = typer.Option(
        None, "--summary-json", help="Write a JSON run summary to this path."
    ),
) -> None:
    """Copy ignored files of every repository under SEARCH_ROOT to BACKUP_ROOT."""
    cfg = _load_or_exit(
        config,
        {
            "search_root": search_root,
            "backup_root": backup_root,
            "excludes": exclude or None,
            "dry_run": dry_run or None,
            "concurrency": concurrency,
            "scan_workers": scan_workers,
            "verbose": verbose or None,
            "backup_keep": backup_keep,
            "history_subdir": history_subdir,
            "history_dir": history_dir,
        },
    )
    runner = BackupRunner(cfg)
    console.print(f"Scanning [bold]{escape(str(cfg.search_root))}[/bold]")
    if cfg.dry_run:
        console.print("Dry run: nothing will be copied.")
    else:
        console.print(f"Copying to [bold]{escape(str(cfg.backup_root))}[/bold]")

    try:
        if cfg.dry_run:
            with _scan_progress() as on_directory:
                summary, entries = runner.dry_run(on_directory)
            _render_entries(entries)
        else:
            summary = _run_with_progress(runner)
    except (TraversalFailed, CopySetupFailed) as exc:
        console.print(f"[red]Backup failed:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    _render_summary(summary)
    if summary_json is not None:
        path = write_summary(summary_json, summary)
        panel = Panel.fit(
            f"summary.json: [bold]{escape(str(path))}[/bold]", title="Artifacts"
        )
        console.print(panel)


def _load_or_exit(config_path: Path | None, overrides: dict[str, Any]) -> AppConfig:
    try:
        cfg = prepare_filesystem(
            load_app_config(config_path, cli_overrides=overrides)
        )
    except ConfigInvalid as exc:
        console.print(
            f"[red]Configuration validation failed:[/red] {escape(str(exc))}"
        )
        raise typer.Exit(code=1) from exc
    configure_logging(cfg.verbose)
    return cfg


@contextmanager
def _scan_progress() -> Iterator[Callable[[Path], None]]:
    """Spinner showing the directory currently being visited."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        transient=True,
        console=console,
    ) as progress:
        task = progress.add_task(description="Scanning", total=None)

        def on_directory(path: Path) -> None:
            progress.update(task, description=f"Scanning {escape(_shorten(path))}")

        yield on_directory


def _run_with_progress(runner: BackupRunner) -> RunSummary:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        transient=True,
        console=console,
    ) as progress:
        scan_task = progress.add_task(description="Scanning", total=None)
        copy_task = progress.add_task(description="Waiting for entries", total=None)

        def on_directory(path: Path) -> None:
            progress.update(scan_task, description=f"Scanning {escape(_shorten(path))}")

        def on_copy(snapshot: CounterSnapshot, source: Path, destination: Path) -> None:
            del source, destination
            progress.update(copy_task, description=_format_counts(snapshot))

        reporter = CoalescingReporter(on_copy)
        summary = runner.run(on_directory, reporter)
        reporter.flush()
    return summary


def _shorten(path: Path) -> str:
    text = str(path)
    if len(text) > _MAX_PATH_DISPLAY:
        return text[: _MAX_PATH_DISPLAY - 3] + "..."
    return text


def _format_counts(snapshot: CounterSnapshot) -> str:
    return (
        f"Copied {snapshot.copied}/{snapshot.total}, "
        f"skipped {snapshot.skipped}, errors {snapshot.errors}"
    )


def _render_entries(entries: list[DiscoveredEntry]) -> None:
    table = Table(title=f"Ignored Entries ({len(entries)})")
    table.add_column("Relative Path")
    table.add_column("Repository")
    for entry in entries:
        table.add_row(
            escape(entry.relative_path.as_posix()), escape(str(entry.repository_root))
        )
    console.print(table)


def _render_scan_report(report: ScanReport) -> None:
    table = Table(title="Scan")
    table.add_column("Metric")
    table.add_column("Count", justify="right")
    table.add_row("directories visited", str(report.directories_visited))
    table.add_row("repositories found", str(report.repositories_found))
    table.add_row("repositories excluded", str(report.repositories_excluded))
    table.add_row("repositories failed", str(report.repositories_failed))
    table.add_row("entries discovered", str(report.entries_discovered))
    console.print(table)
    for repository in report.failed_repositories:
        console.print(f"[yellow]Skipped repository:[/yellow] {escape(repository)}")


def _render_summary(summary: RunSummary) -> None:
    _render_scan_report(summary.scan)
    result = summary.copy_result
    if result is None:
        console.print(
            f"Dry run complete: {summary.scan.entries_discovered} entries "
            f"in {summary.duration_seconds:.2f}s"
        )
        return
    for detail in result.error_details:
        console.print(f"[red]Error:[/red] {escape(detail)}")
    line = (
        f"Done: {result.copied} copied, {result.skipped} skipped, "
        f"{result.errors} errors, {result.vanished} vanished "
        f"of {result.total} entries"
    )
    if summary.orphans_retired:
        line += f"; {summary.orphans_retired} orphaned backup file(s) retired"
    style = "red" if result.errors else "green"
    console.print(f"[{style}]{line}[/{style}] in {summary.duration_seconds:.2f}s")
