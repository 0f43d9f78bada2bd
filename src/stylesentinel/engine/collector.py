from __future__ import annotations

from collections.abc import Iterable

from stylesentinel.engine.types import Diagnostic


class DiagnosticCollector:
    """
    Accumulates diagnostics for one file.

    A diagnostic is dropped when one with the same rule id, span and message
    was already added. `sorted()` gives a stable document-order view.
    """

    __slots__ = ("_items", "_seen")

    def __init__(self) -> None:
        self._items: list[Diagnostic] = []
        self._seen: set[tuple[str, int, int, str]] = set()

    def add(self, diagnostic: Diagnostic) -> bool:
        key = (diagnostic.rule_id, diagnostic.span.start, diagnostic.span.end, diagnostic.message)
        if key in self._seen:
            return False
        self._seen.add(key)
        self._items.append(diagnostic)
        return True

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            self.add(diagnostic)

    def __len__(self) -> int:
        return len(self._items)

    def sorted(self) -> tuple[Diagnostic, ...]:
        return tuple(sorted(self._items, key=sort_key))


def sort_key(d: Diagnostic) -> tuple[int, int, str, str]:
    return d.span.start, d.span.end, d.rule_id, d.message
