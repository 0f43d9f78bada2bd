from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path

from stylesentinel.config import StyleSentinelConfig, compute_enabled_rule_ids
from stylesentinel.engine.collector import DiagnosticCollector
from stylesentinel.engine.context import FileContext
from stylesentinel.engine.nodes import SourceMap
from stylesentinel.engine.parser import ParseError, parse_stylesheet
from stylesentinel.engine.types import Diagnostic, FileResult, LintSummary, Location, Span, Syntax
from stylesentinel.engine.walker import walk
from stylesentinel.rules.base import BaseRule
from stylesentinel.rules.registry import PARSE_ERROR_RULE_ID, all_rules
from stylesentinel.scanner import ScanTarget, discover_files, prepare_target, syntax_for_path
from stylesentinel.suppressions import parse_suppressions
from stylesentinel.utils import safe_relpath

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LintResult:
    target: ScanTarget
    files: tuple[Path, ...]
    summary: LintSummary


def enabled_rules(config: StyleSentinelConfig) -> tuple[BaseRule, ...]:
    rules = all_rules()
    enabled = compute_enabled_rule_ids(config, available_rule_ids={r.meta.rule_id for r in rules})
    return tuple(r for r in rules if r.meta.rule_id in enabled)


def lint_text(
    text: str,
    *,
    path: Path,
    syntax: Syntax,
    config: StyleSentinelConfig | None = None,
    relative_path: str | None = None,
    rules: Sequence[BaseRule] | None = None,
) -> FileResult:
    """
    Lint one stylesheet held in memory.

    A parse failure yields a single `E00` diagnostic and no rule runs.
    Otherwise every enabled rule is walked over the tree; suppressed
    diagnostics are dropped and configured severities applied.
    """

    config = config or StyleSentinelConfig()
    if rules is None:
        rules = enabled_rules(config)

    try:
        stylesheet = parse_stylesheet(text, syntax=syntax)
    except ParseError as exc:
        logger.warning("%s: %s", relative_path or path.as_posix(), exc)
        return FileResult(
            path=path,
            syntax=syntax,
            diagnostics=(_parse_error(path, exc),),
            parse_failed=True,
        )

    source = SourceMap(text)
    ctx = FileContext(
        path=path,
        relative_path=relative_path or path.as_posix(),
        syntax=syntax,
        text=text,
        source=source,
        stylesheet=stylesheet,
        config=config,
        suppressions=parse_suppressions(stylesheet.comments, source),
        is_color_file=config.is_color_file(path),
    )

    overrides = config.rules.severity_overrides
    collector = DiagnosticCollector()
    for diagnostic in walk(stylesheet, rules, ctx):
        line = diagnostic.location.start_line if diagnostic.location is not None else None
        if ctx.suppressions.is_suppressed(diagnostic.rule_id, line=line):
            continue
        severity = overrides.get(diagnostic.rule_id)
        if severity is not None and not diagnostic.internal and severity != diagnostic.severity:
            diagnostic = replace(diagnostic, severity=severity)
        collector.add(diagnostic)

    return FileResult(path=path, syntax=syntax, diagnostics=collector.sorted())


def lint_file(
    path: Path,
    *,
    config: StyleSentinelConfig,
    project_root: Path,
    rules: Sequence[BaseRule] | None = None,
) -> FileResult:
    syntax = syntax_for_path(path)
    relative = safe_relpath(path, project_root)
    if syntax is None:
        return FileResult(path=path, syntax=None, diagnostics=())

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("%s: cannot read file: %s", relative, exc)
        return FileResult(
            path=path,
            syntax=syntax,
            diagnostics=(
                Diagnostic(
                    rule_id=PARSE_ERROR_RULE_ID,
                    severity="error",
                    message=f"Cannot read file: {exc}",
                    span=Span(0, 0),
                    location=Location(path=path, start_line=1, start_col=1, end_line=1, end_col=1),
                ),
            ),
            parse_failed=True,
        )

    started = time.perf_counter()
    result = lint_text(text, path=path, syntax=syntax, config=config, relative_path=relative, rules=rules)
    logger.debug("linted %s in %.1fms", relative, (time.perf_counter() - started) * 1000)
    return result


def lint_files(
    target: ScanTarget,
    files: Sequence[Path],
    *,
    workers: int = 1,
    cancel_event: threading.Event | None = None,
    on_file_done: Callable[[Path], None] | None = None,
) -> LintSummary:
    """
    Lint `files`, optionally in parallel.

    Results follow the input order regardless of `workers`. Setting
    `cancel_event` stops the run between files: files that have not started
    are skipped and the summary is marked cancelled.
    """

    config = target.config
    rules = enabled_rules(config)

    def run(path: Path) -> FileResult | None:
        if cancel_event is not None and cancel_event.is_set():
            return None
        return lint_file(path, config=config, project_root=target.project_root, rules=rules)

    results: list[FileResult] = []
    if workers <= 1 or len(files) <= 1:
        outcomes = map(run, files)
        for path, outcome in zip(files, outcomes, strict=True):
            if on_file_done is not None:
                on_file_done(path)
            if outcome is not None:
                results.append(outcome)
    else:
        max_workers = min(max(1, workers), len(files))
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            for path, outcome in zip(files, executor.map(run, files), strict=True):
                if on_file_done is not None:
                    on_file_done(path)
                if outcome is not None:
                    results.append(outcome)

    cancelled = cancel_event is not None and cancel_event.is_set()
    if cancelled:
        logger.info("lint cancelled after %d of %d file(s)", len(results), len(files))
    return LintSummary(files=tuple(results), cancelled=cancelled)


def lint_paths(
    paths: Sequence[Path],
    *,
    config_file: Path | None = None,
    workers: int = 1,
    cancel_event: threading.Event | None = None,
    on_files_discovered: Callable[[int], None] | None = None,
    on_file_done: Callable[[Path], None] | None = None,
) -> LintResult:
    target = prepare_target(paths, config_file=config_file)
    files = discover_files(target)
    if on_files_discovered is not None:
        on_files_discovered(len(files))
    summary = lint_files(target, files, workers=workers, cancel_event=cancel_event, on_file_done=on_file_done)
    return LintResult(target=target, files=tuple(files), summary=summary)


def _parse_error(path: Path, exc: ParseError) -> Diagnostic:
    return Diagnostic(
        rule_id=PARSE_ERROR_RULE_ID,
        severity="error",
        message=f"Parse error: {exc.reason}",
        span=Span(exc.offset, exc.offset),
        location=Location(path=path, start_line=exc.line, start_col=exc.col, end_line=exc.line, end_col=exc.col),
    )


def exit_status(summary: LintSummary) -> int:
    """0 when no error-severity diagnostic remains, 1 otherwise."""
    return 1 if summary.count("error") else 0
