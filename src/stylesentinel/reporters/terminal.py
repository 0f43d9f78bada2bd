from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from stylesentinel import __version__
from stylesentinel.autofix import AutoFixResult
from stylesentinel.engine.types import SEVERITY_RANK, Diagnostic, LintSummary, Severity
from stylesentinel.utils import safe_relpath

_SEVERITY_ICON = {"error": "✖", "warning": "⚠"}
_SEVERITY_STYLE = {"error": "bold red", "warning": "yellow"}


def visible_diagnostics(diagnostics: Iterable[Diagnostic], *, min_severity: Severity) -> list[Diagnostic]:
    floor = SEVERITY_RANK[min_severity]
    return [d for d in diagnostics if SEVERITY_RANK[d.severity] >= floor]


def render_terminal(
    summary: LintSummary,
    *,
    project_root: Path,
    console: Console,
    min_severity: Severity = "warning",
    title: str = "style lint",
    sources: Mapping[Path, str] | None = None,
) -> None:
    """
    Print diagnostics grouped by file, in the order the files were linted.

    Source snippets come from `sources` when a file is listed there (the
    fixed text of a fix run), otherwise from disk.
    """

    header = Text()
    header.append("StyleSentinel ", style="bold")
    header.append(f"v{__version__}", style="dim")
    header.append(f" · {title}", style="dim")
    console.print(Panel(header, subtitle=f"Linted {summary.files_linted} files", border_style="cyan"))

    for file_result in summary.files:
        shown = visible_diagnostics(file_result.diagnostics, min_severity=min_severity)
        if not shown:
            continue
        console.print(Text(safe_relpath(file_result.path, project_root), style="bold"))
        if sources is not None and file_result.path in sources:
            file_lines = sources[file_result.path].splitlines()
        else:
            file_lines = _read_lines(file_result.path)
        for diagnostic in shown:
            _print_diagnostic(console, diagnostic, file_lines=file_lines)
        console.print()

    _print_summary(summary, console=console)


def render_fix_terminal(
    result: AutoFixResult,
    *,
    console: Console,
    dry_run: bool,
    min_severity: Severity = "warning",
) -> None:
    project_root = result.target.project_root
    if result.diff:
        console.print(result.diff, markup=False, highlight=False)
        console.print()

    for file_result in result.file_results:
        for note in file_result.notes:
            console.print(Text(f"{safe_relpath(file_result.path, project_root)}: {note}", style="yellow"))

    verb = "Would fix" if dry_run else "Fixed"
    changed = len(result.changed_files)
    applied = sum(fr.applied for fr in result.file_results)
    console.print(Text(f"{verb} {applied} issue(s) in {changed} file(s).", style="bold"))

    if result.summary.diagnostics:
        render_terminal(
            result.summary,
            project_root=project_root,
            console=console,
            min_severity=min_severity,
            title="remaining issues",
            sources={fr.path: fr.text for fr in result.file_results if fr.text is not None},
        )


def _print_diagnostic(console: Console, d: Diagnostic, *, file_lines: list[str]) -> None:
    icon = _SEVERITY_ICON.get(d.severity, "•")
    style = _SEVERITY_STYLE.get(d.severity, "")

    loc = ""
    if d.location is not None and d.location.start_line is not None:
        loc = f"{d.location.start_line}"
        if d.location.start_col is not None:
            loc += f":{d.location.start_col}"

    line = Text()
    line.append(f"  {icon} ", style=style)
    line.append(d.rule_id, style="bold")
    if loc:
        line.append(f"  ({loc})", style="dim")
    line.append(f"  {d.message}")
    if d.fixable:
        line.append("  [fixable]", style="green")
    console.print(line)

    if d.location is not None and d.location.start_line is not None:
        idx = d.location.start_line - 1
        if 0 <= idx < len(file_lines):
            console.print(Text(f"     {d.location.start_line:>4} │ {file_lines[idx]}", style="dim"))


def _print_summary(summary: LintSummary, *, console: Console) -> None:
    errors = summary.count("error")
    warnings = summary.count("warning")
    fixable = sum(1 for d in summary.diagnostics if d.fixable)

    console.print(Text("─" * 60, style="dim"))
    style = "bold red" if errors else ("yellow" if warnings else "bold green")
    console.print(Text(f"{errors} error(s), {warnings} warning(s), {fixable} fixable", style=style))
    if summary.cancelled:
        console.print(Text("Run cancelled: some files were not linted.", style="yellow"))
    console.print(Text("─" * 60, style="dim"))


def _read_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return []
