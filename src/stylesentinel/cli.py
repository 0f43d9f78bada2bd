from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Annotated, TypeVar, cast

import click
import typer
from rich.console import Console

from stylesentinel import __version__
from stylesentinel.autofix import AutoFixResult, autofix_files
from stylesentinel.config import (
    ConfigError,
    StyleSentinelConfig,
    compute_enabled_rule_ids,
    load_config,
    load_override_file,
)
from stylesentinel.engine.parser import TreeSitterError
from stylesentinel.engine.types import Severity
from stylesentinel.linter import LintResult, exit_status, lint_files
from stylesentinel.logging_utils import configure_logging
from stylesentinel.reporters.json_reporter import render_fix_json, render_json
from stylesentinel.reporters.terminal import render_fix_terminal, render_terminal
from stylesentinel.rules.registry import all_rules
from stylesentinel.scanner import discover_files, prepare_target, worker_count_from_env

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="StyleSentinel: CSS/SCSS style linter and autofixer.",
)
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

T = TypeVar("T")

_SEVERITIES = ("warning", "error")
_FORMATS = ("text", "json")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose logs (printed to stderr)."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Reduce non-essential output."),
    ] = False,
    progress: Annotated[
        bool,
        typer.Option("--progress/--no-progress", help="Show a progress bar for multi-file runs.", show_default=True),
    ] = True,
) -> None:
    """StyleSentinel CLI."""

    if verbose and quiet:
        raise typer.BadParameter("Choose at most one: --verbose or --quiet.")
    configure_logging(verbose=verbose, quiet=quiet)
    ctx.obj = {"verbose": verbose, "quiet": quiet, "progress": progress}


def _cli_settings() -> dict[str, bool]:
    ctx = click.get_current_context(silent=True)
    if ctx is None or not isinstance(ctx.obj, dict):
        return {"verbose": False, "quiet": False, "progress": True}
    return {
        "verbose": bool(ctx.obj.get("verbose", False)),
        "quiet": bool(ctx.obj.get("quiet", False)),
        "progress": bool(ctx.obj.get("progress", True)),
    }


def _normalize_choice(value: str, *, choices: tuple[str, ...], option: str) -> str:
    normalized = value.strip().lower()
    if normalized == "warn":
        normalized = "warning"
    if normalized not in choices:
        raise typer.BadParameter(f"Unsupported {option}. Use: {', '.join(choices)}.")
    return normalized


def _run_or_exit(action: Callable[[], T]) -> T:
    """Run `action`, turning a configuration or grammar error into exit code 2."""

    try:
        return action()
    except ConfigError as exc:
        err_console.print(f"[bold red]Configuration error:[/bold red] {exc}", highlight=False)
        raise typer.Exit(code=2) from exc
    except TreeSitterError as exc:
        err_console.print(f"[bold red]Parser unavailable:[/bold red] {exc}", highlight=False)
        raise typer.Exit(code=2) from exc


@app.command()
def lint(
    paths: Annotated[
        list[Path] | None,
        typer.Argument(help="Files or directories to lint (default: current directory)."),
    ] = None,
    severity: Annotated[
        str,
        typer.Option("--severity", help="Lowest severity to report: warning, error.", show_default=True),
    ] = "warning",
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: text, json.", show_default=True),
    ] = "text",
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
            help="Rule-set override file (.toml or .json).",
        ),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", min=1, help="Parallel workers (default: STYLESENTINEL_WORKERS or 2 x CPU)."),
    ] = None,
) -> None:
    """
    Lint stylesheets and report diagnostics.

    Exits 1 when any error-severity diagnostic is found, 2 on configuration errors.
    """

    min_severity = cast(Severity, _normalize_choice(severity, choices=_SEVERITIES, option="severity"))
    fmt = _normalize_choice(output_format, choices=_FORMATS, option="format")
    settings = _cli_settings()
    show_progress = settings["progress"] and not settings["quiet"] and fmt == "text"

    result = _run_or_exit(
        lambda: _lint_with_optional_progress(
            paths or [Path(".")],
            config_file=config_file,
            workers=workers,
            show_progress=show_progress,
        )
    )

    if fmt == "json":
        typer.echo(render_json(result.summary, project_root=result.target.project_root, min_severity=min_severity))
    else:
        render_terminal(
            result.summary,
            project_root=result.target.project_root,
            console=console,
            min_severity=min_severity,
        )

    raise typer.Exit(code=exit_status(result.summary))


@app.command()
def fix(
    paths: Annotated[
        list[Path] | None,
        typer.Argument(help="Files or directories to fix (default: current directory)."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Print the diff without writing files."),
    ] = False,
    backup: Annotated[
        bool,
        typer.Option("--backup", help="Keep a `.stylesentinel.bak` copy of each changed file."),
    ] = False,
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
            help="Rule-set override file (.toml or .json).",
        ),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: text, json.", show_default=True),
    ] = "text",
    severity: Annotated[
        str,
        typer.Option("--severity", help="Lowest severity of remaining issues to report: warning, error.", show_default=True),
    ] = "warning",
) -> None:
    """
    Apply automatic fixes, then report what is left.

    Exits 1 when error-severity diagnostics remain after fixing.
    """

    min_severity = cast(Severity, _normalize_choice(severity, choices=_SEVERITIES, option="severity"))
    fmt = _normalize_choice(output_format, choices=_FORMATS, option="format")

    def run() -> AutoFixResult:
        target = prepare_target(paths or [Path(".")], config_file=config_file)
        return autofix_files(target, discover_files(target), dry_run=dry_run, backup=backup)

    result = _run_or_exit(run)

    if fmt == "json":
        typer.echo(render_fix_json(result, dry_run=dry_run, min_severity=min_severity))
    else:
        render_fix_terminal(result, console=console, dry_run=dry_run, min_severity=min_severity)

    raise typer.Exit(code=exit_status(result.summary))


@app.command()
def rules(
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: text, json.", show_default=True),
    ] = "text",
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
            help="Rule-set override file (.toml or .json).",
        ),
    ] = None,
) -> None:
    """
    List the built-in rules, their default severity and whether they are enabled.
    """

    from rich.table import Table

    fmt = _normalize_choice(output_format, choices=_FORMATS, option="format")

    def load() -> StyleSentinelConfig:
        config = load_config(Path("."))
        if config_file is not None:
            config = load_override_file(config_file, base=config)
        return config

    config = _run_or_exit(load)
    available = list(all_rules())
    enabled_ids = compute_enabled_rule_ids(config, available_rule_ids={r.meta.rule_id for r in available})

    rows = []
    for rule in available:
        meta = rule.meta
        rows.append(
            {
                "rule_id": meta.rule_id,
                "enabled": meta.rule_id in enabled_ids,
                "title": meta.title,
                "description": meta.description,
                "severity": config.rules.severity_overrides.get(meta.rule_id, meta.default_severity),
                "default_severity": meta.default_severity,
                "syntaxes": sorted(meta.syntaxes),
                "fixable": meta.fixable,
            }
        )

    if fmt == "json":
        typer.echo(json.dumps(rows, indent=2, sort_keys=True))
        return

    table = Table(title="StyleSentinel Rules")
    table.add_column("ID", style="bold")
    table.add_column("Enabled", justify="center")
    table.add_column("Severity")
    table.add_column("Fixable", justify="center")
    table.add_column("Syntax")
    table.add_column("Title")
    for row in rows:
        table.add_row(
            str(row["rule_id"]),
            "yes" if row["enabled"] else "no",
            str(row["severity"]),
            "yes" if row["fixable"] else "no",
            ", ".join(row["syntaxes"]),
            str(row["title"]),
        )
    console.print(table)


def _lint_with_optional_progress(
    paths: list[Path],
    *,
    config_file: Path | None,
    workers: int | None,
    show_progress: bool,
) -> LintResult:
    from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn

    target = prepare_target(paths, config_file=config_file)
    files = discover_files(target)
    worker_count = workers if workers is not None else worker_count_from_env()
    logger.debug("linting %d file(s) with %d worker(s)", len(files), worker_count)

    if not show_progress or len(files) <= 1:
        summary = lint_files(target, files, workers=worker_count)
        return LintResult(target=target, files=tuple(files), summary=summary)

    progress = Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=Console(stderr=True),
        transient=True,
    )
    task = progress.add_task("Lint", total=len(files))

    def _on_file_done(_path: Path) -> None:
        progress.advance(task, 1)

    with progress:
        summary = lint_files(target, files, workers=worker_count, on_file_done=_on_file_done)
    return LintResult(target=target, files=tuple(files), summary=summary)
