"""Typer CLI for earshot event-listener profiling."""

from __future__ import annotations

import importlib
import logging
import runpy
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from earshot.config import ProfilerConfig
from earshot.core.interceptor import Primitives
from earshot.core.profiler import PERFORMANCE_WARNING, Profiler
from earshot.errors import InstrumentationError, UnsupportedExportFormatError
from earshot.events import EventTarget
from earshot.logging_setup import setup_logging
from earshot.models.enums import ExportFormat
from earshot.models.runtime import PerformanceWarning, ProfilingReport

app = typer.Typer(
    name="earshot",
    help="Event listener profiler: time handlers and flag listener anomalies.",
    no_args_is_help=True,
)
console = Console(stderr=True)


def _config() -> ProfilerConfig:
    return ProfilerConfig.load()


def _resolve_owner(dotted: str | None) -> type:
    """Import ``package.module:ClassName``; default is earshot's EventTarget."""
    if not dotted:
        return EventTarget
    module_name, _, attr = dotted.partition(":")
    if not attr:
        raise typer.BadParameter(f"Expected module:Class, got {dotted!r}")
    try:
        module = importlib.import_module(module_name)
        owner = getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        raise typer.BadParameter(f"Cannot import {dotted}: {exc}") from exc
    if not isinstance(owner, type):
        raise typer.BadParameter(f"{dotted} is not a class")
    return owner


def _print_report(report: ProfilingReport) -> None:
    from rich.table import Table

    snap = report.snapshot
    table = Table(title="Profiling Report")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Monitored", f"{report.monitoring_duration:.0f} ms")
    table.add_row("Listeners", str(snap.listener_count))
    table.add_row("Events fired", str(snap.events_fired))
    table.add_row("Avg handler time", f"{snap.avg_handler_time:.3f} ms")
    table.add_row("Event frequency", f"{snap.event_frequency}/s")
    table.add_row("Memory", f"{snap.memory.used} MB" if snap.memory else "—")
    table.add_row("Warnings", str(report.warnings_issued))
    console.print(table)

    for rec in report.recommendations:
        console.print(f"  [yellow]{rec.priority.value}[/yellow] {rec.message} ({rec.details})")


@app.command()
def run(
    script: Annotated[Path, typer.Argument(help="Python script to run under the profiler")],
    args: Annotated[Optional[list[str]], typer.Argument(help="Arguments passed to the script")] = None,
    target: Annotated[
        Optional[str], typer.Option("--target", "-t", help="Emitter class as module:Class")
    ] = None,
    add: Annotated[str, typer.Option("--add", help="Register primitive name")] = "add_event_listener",
    remove: Annotated[str, typer.Option("--remove", help="Unregister primitive name")] = "remove_event_listener",
    export: Annotated[Optional[Path], typer.Option("--export", "-o", help="Write data to file")] = None,
    fmt: Annotated[str, typer.Option("--format", "-f", help="Export format: json or csv")] = "json",
    markdown: Annotated[bool, typer.Option("--markdown", help="Print the report as markdown")] = False,
) -> None:
    """Run a script with listener profiling enabled and print the final report."""
    from earshot.core.report import parse_format

    if not script.is_file():
        console.print(f"[red]Script not found:[/red] {script}")
        raise typer.Exit(1)
    try:
        export_format = parse_format(fmt)
    except UnsupportedExportFormatError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(2)

    profiler = Profiler(_config(), Primitives(_resolve_owner(target), add=add, remove=remove))

    def _on_warning(warning: PerformanceWarning) -> None:
        console.print(f"[yellow]⚠ {warning.kind.value}:[/yellow] {warning.message}")

    profiler.on(PERFORMANCE_WARNING, _on_warning)

    try:
        profiler.start_monitoring()
    except InstrumentationError as exc:
        console.print(f"[red]Cannot instrument:[/red] {exc}")
        raise typer.Exit(1)

    exit_code = 0
    saved_argv = sys.argv
    sys.argv = [str(script), *(args or [])]
    try:
        runpy.run_path(str(script), run_name="__main__")
    except SystemExit as exc:
        exit_code = exc.code if isinstance(exc.code, int) else (0 if exc.code is None else 1)
    except Exception as exc:
        console.print(f"[red]Script failed:[/red] {type(exc).__name__}: {exc}")
        exit_code = 1
    finally:
        sys.argv = saved_argv
        report = profiler.stop_monitoring()

    if export is not None:
        export.write_text(profiler.export_data(export_format), encoding="utf-8")
    if report is not None:
        if markdown:
            from earshot.cli.formatters import format_report

            typer.echo(format_report(report))
        else:
            _print_report(report)
    if export is not None:
        console.print(f"[green]Exported {export_format.value} to[/green] {export}")

    if exit_code:
        raise typer.Exit(exit_code)


@app.command()
def config() -> None:
    """Show the effective configuration."""
    from rich.table import Table

    cfg = _config()
    table = Table(title="Effective Configuration")
    table.add_column("Setting", style="bold")
    table.add_column("Value", justify="right")

    for name in (
        "update_interval", "max_history_size", "sample_size", "memory_history_size",
        "max_errors_per_listener", "track_timing", "track_memory", "enable_warnings",
    ):
        table.add_row(name, str(getattr(cfg, name)))
    for name in ("listener_count", "handler_time", "memory_growth", "event_frequency"):
        table.add_row(f"thresholds.{name}", str(getattr(cfg.thresholds, name)))
    console.print(table)


@app.command()
def formats() -> None:
    """List supported export formats."""
    for f in ExportFormat:
        typer.echo(f.value)


def main() -> None:
    """Entry point for the earshot CLI."""
    setup_logging(default=logging.ERROR)
    app()


if __name__ == "__main__":
    main()
