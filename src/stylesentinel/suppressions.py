from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from stylesentinel.engine.nodes import Comment, SourceMap


@dataclass(frozen=True, slots=True)
class Suppressions:
    """
    Line-level rule suppressions extracted from stylesheet comments.

    Directives are read from parsed comments only, so text inside strings or
    selectors never counts. Supported directives (case-insensitive):
    - `stylesentinel: disable-file=F01,S01` (suppresses violations anywhere in the file)
    - `stylesentinel: disable=F01` (suppresses violations on that same line)
    - `stylesentinel: disable-next-line=S01` (suppresses violations on the line after the comment ends)
    """

    disabled_in_file: frozenset[str]
    disabled_on_line: Mapping[int, frozenset[str]]

    def is_suppressed(self, rule_id: str, *, line: int | None) -> bool:
        normalized_id = rule_id.upper()
        if "all" in self.disabled_in_file or normalized_id in self.disabled_in_file:
            return True
        if line is None:
            return False
        disabled = self.disabled_on_line.get(line)
        if not disabled:
            return False
        return "all" in disabled or normalized_id in disabled


NO_SUPPRESSIONS = Suppressions(disabled_in_file=frozenset(), disabled_on_line=MappingProxyType({}))

_DISABLE_FILE_RE = re.compile(r"stylesentinel:\s*disable[-_]?file\s*=\s*(?P<ids>[a-z0-9_,\s]+)", re.IGNORECASE)
_DISABLE_RE = re.compile(r"stylesentinel:\s*disable\s*=\s*(?P<ids>[a-z0-9_,\s]+)", re.IGNORECASE)
_DISABLE_NEXT_RE = re.compile(r"stylesentinel:\s*disable-next-line\s*=\s*(?P<ids>[a-z0-9_,\s]+)", re.IGNORECASE)


def parse_suppressions(comments: Iterable[Comment], source: SourceMap) -> Suppressions:
    disabled_in_file: set[str] = set()
    disabled_on_line: dict[int, set[str]] = {}

    for comment in comments:
        if "stylesentinel:" not in comment.text.lower():
            continue
        # comment text starts right after `/*` or `//`
        text_start = comment.span.start + 2

        match_file = _DISABLE_FILE_RE.search(comment.text)
        if match_file:
            disabled_in_file.update(_parse_ids(match_file.group("ids")))

        match = _DISABLE_RE.search(comment.text)
        if match:
            line = source.line_of(text_start + match.start())
            disabled_on_line.setdefault(line, set()).update(_parse_ids(match.group("ids")))

        match_next = _DISABLE_NEXT_RE.search(comment.text)
        if match_next:
            line = source.line_of(max(comment.span.end - 1, comment.span.start)) + 1
            disabled_on_line.setdefault(line, set()).update(_parse_ids(match_next.group("ids")))

    frozen = {line: frozenset(ids) for line, ids in disabled_on_line.items()}
    return Suppressions(disabled_in_file=frozenset(sorted(disabled_in_file)), disabled_on_line=MappingProxyType(frozen))


def _parse_ids(value: str) -> set[str]:
    ids = set()
    for token in re.split(r"[,\s]+", value.strip()):
        if not token:
            continue
        if token.lower() == "all":
            ids.add("all")
        else:
            ids.add(token.upper())
    return ids
