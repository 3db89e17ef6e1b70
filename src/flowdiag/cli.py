# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Command line entry point for running Flow checks from a terminal or editor."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .binary import resolve_flow_binary
from .collect import FlowChecker, ProgramOffset
from .config import FlowSettings, load_settings
from .errors import ConfigError, FlowBinaryNotFoundError
from .logging import fail, info, ok, warn
from .report import CoverageReport, LintReport, ReportStatus, coverage_report, lint_source
from .severity import Severity

app = typer.Typer(
    help="Normalise Flow type-checker output into per-file diagnostics.",
    no_args_is_help=True,
    add_completion=False,
)

PATH_ARGUMENT = Annotated[Path, typer.Argument(metavar="FILE", help="File to check.")]
ROOT_OPTION = Annotated[
    Path | None,
    typer.Option("--root", "-r", help="Flow project root (defaults to the current directory).", show_default=False),
]
STOP_OPTION = Annotated[
    bool | None,
    typer.Option(
        "--stop-on-exit/--keep-server",
        help="Stop the Flow server for the root when the command exits.",
        show_default=False,
    ),
]
STDIN_OPTION = Annotated[
    bool,
    typer.Option("--stdin", help="Read the source text from standard input instead of FILE."),
]
JSON_OPTION = Annotated[bool, typer.Option("--json", help="Emit JSON instead of a table.")]
EMOJI_OPTION = Annotated[bool, typer.Option("--emoji/--no-emoji", help="Toggle emoji output.")]

_SEVERITY_STYLES = {Severity.ERROR: "red", Severity.WARNING: "yellow"}


def _load(root: Path) -> FlowSettings:
    try:
        return load_settings(root)
    except ConfigError as exc:
        fail(str(exc))
        raise typer.Exit(code=2) from exc


def _build_checker(settings: FlowSettings, root: Path) -> FlowChecker:
    try:
        binary = resolve_flow_binary(settings, search_from=root)
    except FlowBinaryNotFoundError as exc:
        fail(str(exc))
        raise typer.Exit(code=1) from exc
    return FlowChecker(binary=binary, debug=settings.debug)


def _read_source(path: Path, from_stdin: bool) -> str:
    if from_stdin:
        return typer.get_text_stream("stdin").read()
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        fail(f"Unable to read {path}: {exc}")
        raise typer.Exit(code=2) from exc


def _emit_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _render_lint(report: LintReport, console: Console) -> None:
    table = Table(title=report.path, box=box.SIMPLE, expand=True)
    table.add_column("Line", justify="right")
    table.add_column("Col", justify="right")
    table.add_column("Level", style="bold")
    table.add_column("Rule")
    table.add_column("Message", overflow="fold")
    for diagnostic in report.diagnostics:
        start = diagnostic.location.start
        level = diagnostic.severity.value
        table.add_row(
            str(start.line),
            str(start.column),
            Text(level, style=_SEVERITY_STYLES[diagnostic.severity]),
            diagnostic.category or "-",
            Text(diagnostic.message),
        )
    console.print(table)


@app.command("check")
def check_command(
    path: PATH_ARGUMENT,
    root: ROOT_OPTION = None,
    offset_line: Annotated[int, typer.Option("--offset-line", help="Line offset of the snippet.")] = 0,
    offset_column: Annotated[int, typer.Option("--offset-column", help="Column offset of the snippet.")] = 0,
    stop_on_exit: STOP_OPTION = None,
    from_stdin: STDIN_OPTION = False,
    as_json: JSON_OPTION = False,
    emoji: EMOJI_OPTION = True,
) -> None:
    """Type-check FILE with Flow and report its diagnostics.

    Exits with status 1 when an error-level diagnostic is reported.
    """

    resolved_root = (root or Path.cwd()).resolve()
    settings = _load(resolved_root)
    checker = _build_checker(settings, resolved_root)
    # FILE is relative to the working directory, not to --root.
    target = path.resolve()
    source = _read_source(target, from_stdin)
    report = lint_source(
        checker,
        source,
        root=str(resolved_root),
        filepath=str(target),
        offset=ProgramOffset(line=offset_line, column=offset_column),
        stop_on_exit=settings.stop_on_exit if stop_on_exit is None else stop_on_exit,
    )

    if as_json:
        _emit_json(report.to_payload())
    elif report.status is ReportStatus.SKIPPED:
        info(f"{path}: nothing to check", use_emoji=emoji)
    elif report.status is ReportStatus.UNSUPPORTED:
        warn("Flow produced no output; this platform may not be supported", use_emoji=emoji)
    elif not report.diagnostics:
        ok(f"{path}: no Flow errors", use_emoji=emoji)
    else:
        _render_lint(report, Console())
        summary = f"{report.error_count} error(s), {report.warning_count} warning(s)"
        if report.failed:
            fail(summary, use_emoji=emoji)
        else:
            warn(summary, use_emoji=emoji)
    raise typer.Exit(code=1 if report.failed else 0)


def _render_coverage(report: CoverageReport, minimum: float | None, emoji: bool) -> None:
    if report.status is ReportStatus.SKIPPED:
        info(f"{report.path}: nothing to measure", use_emoji=emoji)
        return
    if report.status is ReportStatus.UNSUPPORTED:
        warn("Flow produced no output; this platform may not be supported", use_emoji=emoji)
        return
    result = report.result
    summary = f"{report.path}: {result.percent}% covered ({result.covered_count}/{result.total} expressions)"
    if minimum is not None:
        diagnostic = report.threshold_diagnostic(minimum)
        if diagnostic is not None:
            fail(f"{summary}. {diagnostic.message}", use_emoji=emoji)
            return
    ok(summary, use_emoji=emoji)


@app.command("coverage")
def coverage_command(
    path: PATH_ARGUMENT,
    root: ROOT_OPTION = None,
    min_coverage: Annotated[
        float | None,
        typer.Option("--min-coverage", min=0, max=100, help="Fail when coverage is below this percentage."),
    ] = None,
    stop_on_exit: STOP_OPTION = None,
    from_stdin: STDIN_OPTION = False,
    as_json: JSON_OPTION = False,
    emoji: EMOJI_OPTION = True,
) -> None:
    """Report Flow expression coverage for FILE."""

    resolved_root = (root or Path.cwd()).resolve()
    settings = _load(resolved_root)
    checker = _build_checker(settings, resolved_root)
    target = path.resolve()
    source = _read_source(target, from_stdin)
    report = coverage_report(
        checker,
        source,
        root=str(resolved_root),
        filepath=str(target),
        stop_on_exit=settings.stop_on_exit if stop_on_exit is None else stop_on_exit,
    )
    minimum = settings.min_coverage if min_coverage is None else min_coverage

    if as_json:
        _emit_json(report.to_payload())
    else:
        _render_coverage(report, minimum, emoji)
    raise typer.Exit(code=0 if report.meets(minimum) else 1)


def main() -> None:
    """Console script entry point."""
    app()


__all__ = ["app", "main"]
