from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

Severity = Literal["warning", "error"]
Syntax = Literal["css", "scss"]

SEVERITY_RANK: dict[str, int] = {"warning": 1, "error": 2}


@dataclass(frozen=True, slots=True)
class Span:
    """Half-open `[start, end)` character offsets into the file text."""

    start: int
    end: int

    def overlaps(self, other: Span) -> bool:
        # Edits sharing a start offset conflict even when one of them is a
        # pure insertion: their relative order would be ambiguous.
        if self.start == other.start:
            return True
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True, slots=True)
class Location:
    path: Path | None = None
    start_line: int | None = None  # 1-based
    start_col: int | None = None  # 1-based
    end_line: int | None = None  # 1-based
    end_col: int | None = None  # 1-based


@dataclass(frozen=True, slots=True)
class Fix:
    span: Span
    replacement: str


@dataclass(frozen=True, slots=True)
class Diagnostic:
    rule_id: str
    severity: Severity
    message: str
    span: Span
    location: Location | None = None
    fix: Fix | None = None
    internal: bool = False

    @property
    def fixable(self) -> bool:
        return self.fix is not None


@dataclass(frozen=True, slots=True)
class FileResult:
    path: Path
    syntax: Syntax | None
    diagnostics: tuple[Diagnostic, ...]
    parse_failed: bool = False


@dataclass(frozen=True, slots=True)
class LintSummary:
    files: tuple[FileResult, ...]
    cancelled: bool = False

    @property
    def diagnostics(self) -> tuple[Diagnostic, ...]:
        return tuple(d for fr in self.files for d in fr.diagnostics)

    @property
    def files_linted(self) -> int:
        return len(self.files)

    def count(self, severity: Severity) -> int:
        return sum(1 for d in self.diagnostics if d.severity == severity)
