from __future__ import annotations

import difflib
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from stylesentinel.config import StyleSentinelConfig
from stylesentinel.engine.types import Diagnostic, FileResult, Fix, LintSummary, Syntax
from stylesentinel.linter import enabled_rules, lint_file, lint_text
from stylesentinel.rules.base import BaseRule
from stylesentinel.scanner import ScanTarget, syntax_for_path
from stylesentinel.utils import safe_relpath

logger = logging.getLogger(__name__)

# Fixes from different rules can uncover each other (splitting a line exposes
# a blank-line problem), so the fixer re-lints until stable.
MAX_FIX_PASSES = 10

BACKUP_SUFFIX = ".stylesentinel.bak"


@dataclass(frozen=True, slots=True)
class FixOutcome:
    text: str
    applied: tuple[Diagnostic, ...]
    notes: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class FixTextResult:
    text: str
    passes: int
    applied: int
    notes: tuple[str, ...]
    remaining: FileResult


@dataclass(frozen=True, slots=True)
class AutoFixFileResult:
    """`text` is the fixed content (what `remaining` was linted against), None if unreadable."""

    path: Path
    changed: bool
    diff: str
    applied: int
    notes: tuple[str, ...]
    remaining: FileResult
    text: str | None = None


@dataclass(frozen=True, slots=True)
class AutoFixResult:
    target: ScanTarget
    file_results: tuple[AutoFixFileResult, ...]

    @property
    def changed_files(self) -> tuple[Path, ...]:
        return tuple(fr.path for fr in self.file_results if fr.changed)

    @property
    def diff(self) -> str:
        chunks = [fr.diff for fr in self.file_results if fr.diff]
        return "\n".join(chunks)

    @property
    def summary(self) -> LintSummary:
        return LintSummary(files=tuple(fr.remaining for fr in self.file_results))


def apply_fixes(text: str, diagnostics: Iterable[Diagnostic]) -> FixOutcome:
    """
    Splice every non-conflicting fix into `text`.

    Fixes are considered in span order. A fix overlapping one already kept
    is dropped with a note, so the lower offset wins. Identical duplicates
    collapse into one edit. Kept edits are applied from the end of the text
    backwards so earlier offsets stay valid.
    """

    candidates = sorted(
        (d for d in diagnostics if d.fix is not None),
        key=lambda d: (_fix(d).span.start, _fix(d).span.end, d.rule_id, _fix(d).replacement),
    )

    kept: list[Diagnostic] = []
    seen: set[Fix] = set()
    notes: list[str] = []
    for diagnostic in candidates:
        fix = _fix(diagnostic)
        if fix in seen:
            continue
        conflict = next((k for k in kept if _fix(k).span.overlaps(fix.span)), None)
        if conflict is not None:
            notes.append(
                f"fix skipped: overlapping edit ({diagnostic.rule_id} at {_where(diagnostic)} "
                f"conflicts with {conflict.rule_id})"
            )
            continue
        seen.add(fix)
        kept.append(diagnostic)

    updated = text
    for diagnostic in sorted(kept, key=lambda d: _fix(d).span.start, reverse=True):
        fix = _fix(diagnostic)
        updated = updated[: fix.span.start] + fix.replacement + updated[fix.span.end :]

    return FixOutcome(text=updated, applied=tuple(kept), notes=tuple(notes))


def fix_text(
    text: str,
    *,
    path: Path,
    syntax: Syntax,
    config: StyleSentinelConfig | None = None,
    relative_path: str | None = None,
    rules: tuple[BaseRule, ...] | None = None,
) -> FixTextResult:
    """Lint and fix `text` repeatedly until no fixable diagnostic remains."""

    config = config or StyleSentinelConfig()
    if rules is None:
        rules = enabled_rules(config)

    def lint(source: str) -> FileResult:
        return lint_text(source, path=path, syntax=syntax, config=config, relative_path=relative_path, rules=rules)

    current = text
    result = lint(current)
    passes = 0
    applied = 0
    notes: list[str] = []
    while passes < MAX_FIX_PASSES and not result.parse_failed:
        fixable = [d for d in result.diagnostics if d.fixable]
        if not fixable:
            break
        outcome = apply_fixes(current, fixable)
        notes.extend(outcome.notes)
        if outcome.text == current:
            break

        passes += 1
        candidate = lint(outcome.text)
        if candidate.parse_failed:
            notes.append(f"fix pass {passes} discarded: the edited text no longer parses")
            break
        logger.debug("%s: fix pass %d applied %d edit(s)", relative_path or path, passes, len(outcome.applied))
        current, result = outcome.text, candidate
        applied += len(outcome.applied)

    return FixTextResult(text=current, passes=passes, applied=applied, notes=tuple(notes), remaining=result)


def autofix_files(
    target: ScanTarget,
    files: Iterable[Path],
    *,
    dry_run: bool,
    backup: bool,
) -> AutoFixResult:
    rules = enabled_rules(target.config)
    file_results = tuple(
        _autofix_file(path, target=target, rules=rules, dry_run=dry_run, backup=backup) for path in files
    )
    return AutoFixResult(target=target, file_results=file_results)


def _autofix_file(
    path: Path,
    *,
    target: ScanTarget,
    rules: tuple[BaseRule, ...],
    dry_run: bool,
    backup: bool,
) -> AutoFixFileResult:
    syntax = syntax_for_path(path)
    relative = safe_relpath(path, target.project_root)
    try:
        original = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        original = None
    if syntax is None or original is None:
        remaining = lint_file(path, config=target.config, project_root=target.project_root, rules=rules)
        return AutoFixFileResult(path=path, changed=False, diff="", applied=0, notes=(), remaining=remaining)

    fixed = fix_text(original, path=path, syntax=syntax, config=target.config, relative_path=relative, rules=rules)
    changed = fixed.text != original
    diff = _unified_diff(original, fixed.text, path=relative)

    if changed and not dry_run:
        if backup:
            backup_path = path.with_name(path.name + BACKUP_SUFFIX)
            if not backup_path.exists():
                backup_path.write_text(original, encoding="utf-8")
        path.write_text(fixed.text, encoding="utf-8")
        logger.debug("%s: wrote %d fix(es) in %d pass(es)", relative, fixed.applied, fixed.passes)

    return AutoFixFileResult(
        path=path,
        changed=changed,
        diff=diff,
        applied=fixed.applied,
        notes=fixed.notes,
        remaining=fixed.remaining,
        text=fixed.text,
    )


def _fix(diagnostic: Diagnostic) -> Fix:
    assert diagnostic.fix is not None
    return diagnostic.fix


def _where(diagnostic: Diagnostic) -> str:
    loc = diagnostic.location
    if loc is None or loc.start_line is None:
        return f"offset {diagnostic.span.start}"
    return f"line {loc.start_line}"


def _unified_diff(before: str, after: str, *, path: str) -> str:
    if before == after:
        return ""
    diff = difflib.unified_diff(
        before.splitlines(keepends=False),
        after.splitlines(keepends=False),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
        lineterm="",
    )
    return "\n".join(diff)
