from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import Literal

from stylesentinel.engine.types import Span

CommentKind = Literal["line", "block"]


@dataclass(frozen=True, slots=True)
class Selector:
    text: str
    span: Span


@dataclass(frozen=True, slots=True)
class Comment:
    text: str
    kind: CommentKind
    span: Span


@dataclass(frozen=True, slots=True)
class Declaration:
    prop: str
    value: str
    span: Span
    prop_span: Span
    colon: int
    value_span: Span


@dataclass(frozen=True, slots=True)
class VariableDeclaration:
    """A Sass `$name: value;` assignment. `name` keeps the leading `$`."""

    name: str
    value: str
    span: Span
    prop_span: Span
    colon: int
    value_span: Span


@dataclass(frozen=True, slots=True)
class AtRule:
    name: str
    params: str
    span: Span
    children: tuple[StyleNode, ...] | None = None
    open_brace: int | None = None
    close_brace: int | None = None

    @property
    def has_body(self) -> bool:
        return self.children is not None


@dataclass(frozen=True, slots=True)
class StyleRule:
    """A selector group plus its block (the CSS "rule" construct)."""

    selectors: tuple[Selector, ...]
    children: tuple[StyleNode, ...]
    span: Span
    open_brace: int
    close_brace: int

    @property
    def prelude_span(self) -> Span:
        return Span(self.selectors[0].span.start, self.selectors[-1].span.end)


@dataclass(frozen=True, slots=True)
class Stylesheet:
    """
    Root of a parsed file.

    `comments` lists every comment in document order, including those that
    sit inside selectors or values and so never appear in `children`.
    """

    children: tuple[StyleNode, ...]
    span: Span
    comments: tuple[Comment, ...] = ()


StyleNode = Stylesheet | StyleRule | AtRule | Declaration | Comment | VariableDeclaration
BlockNode = Stylesheet | StyleRule | AtRule

NODE_KINDS: dict[type, str] = {
    Stylesheet: "stylesheet",
    StyleRule: "rule",
    AtRule: "at-rule",
    Declaration: "declaration",
    Comment: "comment",
    VariableDeclaration: "variable",
}


def node_kind(node: StyleNode) -> str:
    return NODE_KINDS[type(node)]


def children_of(node: StyleNode) -> tuple[StyleNode, ...]:
    if isinstance(node, Stylesheet | StyleRule):
        return node.children
    if isinstance(node, AtRule):
        return node.children or ()
    return ()


class SourceMap:
    """Offset <-> line/column conversion for one file's text."""

    __slots__ = ("text", "_line_starts")

    def __init__(self, text: str) -> None:
        self.text = text
        starts = [0]
        for idx, ch in enumerate(text):
            if ch == "\n":
                starts.append(idx + 1)
        self._line_starts = tuple(starts)

    def line_of(self, offset: int) -> int:
        """1-based line number containing `offset`."""
        return bisect_right(self._line_starts, offset)

    def position(self, offset: int) -> tuple[int, int]:
        line = self.line_of(offset)
        return line, offset - self._line_starts[line - 1] + 1

    def line_start(self, offset: int) -> int:
        return self._line_starts[self.line_of(offset) - 1]

    def leading_whitespace(self, offset: int) -> str | None:
        """
        Return the whitespace between the start of the line and `offset`, or
        None when something other than whitespace precedes it on that line.
        """

        prefix = self.text[self.line_start(offset) : offset]
        if prefix.strip(" \t"):
            return None
        return prefix

    def starts_line(self, offset: int) -> bool:
        return self.leading_whitespace(offset) is not None

    def indent_of_line(self, offset: int) -> str:
        start = self.line_start(offset)
        end = start
        while end < len(self.text) and self.text[end] in " \t":
            end += 1
        return self.text[start:end]
