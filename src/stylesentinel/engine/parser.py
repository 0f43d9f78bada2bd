from __future__ import annotations

import re
import threading
from functools import lru_cache

from tree_sitter import Language, Node, Parser
from tree_sitter_language_pack import get_language

from stylesentinel.engine.nodes import (
    AtRule,
    Comment,
    Declaration,
    Selector,
    SourceMap,
    StyleNode,
    StyleRule,
    Stylesheet,
    VariableDeclaration,
)
from stylesentinel.engine.types import Span, Syntax

_AT_NAME_RE = re.compile(r"@([-A-Za-z0-9_]+)")
_WHITESPACE = " \t\r\n\f"

# Grammar node types. Comments are tree-sitter "extras" and may show up under
# any node; `//` comments are `single_line_comment` in SCSS, `js_comment` in CSS.
_COMMENT_TYPES = frozenset({"comment", "single_line_comment", "js_comment"})
_BODY_TYPES = frozenset({"block", "keyframe_block_list"})


class ParseError(ValueError):
    """Raised when stylesheet text is not valid CSS/SCSS."""

    def __init__(self, message: str, *, offset: int, line: int, col: int) -> None:
        super().__init__(f"{message} (line {line}, column {col})")
        self.reason = message
        self.offset = offset
        self.line = line
        self.col = col


class TreeSitterError(RuntimeError):
    """Raised when the tree-sitter grammar for a syntax cannot be loaded."""


@lru_cache(maxsize=4)
def _get_language(syntax: Syntax) -> Language:
    try:
        return get_language(syntax)
    except (LookupError, ValueError, RuntimeError, OSError) as exc:
        raise TreeSitterError(f"tree-sitter grammar not available: {syntax!r}") from exc


_PARSER_LOCAL = threading.local()


def _get_parser(syntax: Syntax) -> Parser:
    """
    Return a per-thread Parser instance for `syntax`.

    tree-sitter Parser objects are not thread-safe, and files are linted from
    a thread pool.
    """

    parsers: dict[str, Parser] | None = getattr(_PARSER_LOCAL, "parsers", None)
    if parsers is None:
        parsers = {}
        _PARSER_LOCAL.parsers = parsers

    parser = parsers.get(syntax)
    if parser is None:
        parser = Parser(_get_language(syntax))
        parsers[syntax] = parser
    return parser


def parse_stylesheet(text: str, *, syntax: Syntax) -> Stylesheet:
    """
    Parse CSS or SCSS source into a span-annotated `Stylesheet`.

    The tree-sitter tree is reduced to what the style rules need: selectors,
    blocks, declarations, variables, at-rules and comments. Values and at-rule
    parameters are kept as raw text. Any ERROR or MISSING node in the tree
    raises `ParseError` at the first such node.
    """

    data = text.encode("utf-8", errors="surrogatepass")
    tree = _get_parser(syntax).parse(data)
    return _Converter(text, data, syntax).stylesheet(tree.root_node)


class _Converter:
    def __init__(self, text: str, data: bytes, syntax: Syntax) -> None:
        self.text = text
        self.syntax = syntax
        self.source = SourceMap(text)
        self._char_at = _char_offsets(text, data)

    # -- offsets ---------------------------------------------------------

    def offset(self, byte_offset: int) -> int:
        if self._char_at is None:
            return byte_offset
        return self._char_at[byte_offset]

    def span(self, node: Node) -> Span:
        return Span(self.offset(node.start_byte), self.offset(node.end_byte))

    def error(self, message: str, offset: int) -> ParseError:
        offset = min(offset, len(self.text))
        line, col = self.source.position(offset)
        return ParseError(message, offset=offset, line=line, col=col)

    # -- tree --------------------------------------------------------------

    def stylesheet(self, root: Node) -> Stylesheet:
        if root.has_error:
            raise self._first_error(root)
        children = self.items(root, top_level=True)
        return Stylesheet(
            children=tuple(children),
            span=Span(0, len(self.text)),
            comments=tuple(self.comment(node) for node in _comment_nodes(root)),
        )

    def _first_error(self, root: Node) -> ParseError:
        stack = [root]
        while stack:
            node = stack.pop()
            if node.is_missing:
                if node.type == "}" and node.parent is not None:
                    return self.error("unclosed block", self.offset(node.parent.start_byte))
                return self.error(f"missing {node.type!r}", self.offset(node.start_byte))
            if node.is_error:
                return self.error(f"unexpected {self._leading_token(node)!r}", self.offset(node.start_byte))
            stack.extend(reversed([c for c in node.children if c.has_error or c.is_missing]))
        return self.error("syntax error", 0)

    def _leading_token(self, node: Node) -> str:
        while node.children:
            node = node.children[0]
        span = self.span(node)
        token = self.text[span.start : span.end].split("\n", 1)[0]
        return token[:20] or node.type

    def items(self, container: Node, *, top_level: bool) -> list[StyleNode]:
        nodes: list[StyleNode] = []
        for child in container.named_children:
            nodes.extend(self.item(child, top_level=top_level))
        return nodes

    def item(self, node: Node, *, top_level: bool) -> list[StyleNode]:
        start = self.offset(node.start_byte)
        if node.type in _COMMENT_TYPES:
            return [self.comment(node)]
        if self.text.startswith("@", start):
            return self.at_rules(node)
        if _body_of(node) is not None:
            return [self.style_rule(node)]
        if any(c.type == ":" for c in node.children):
            return [self.declaration(node, top_level=top_level)]
        raise self.error(f"unexpected {node.type.replace('_', ' ')}", start)

    def comment(self, node: Node) -> Comment:
        span = self.span(node)
        raw = self.text[span.start : span.end]
        if raw.startswith("//"):
            return Comment(text=raw[2:], kind="line", span=span)
        return Comment(text=raw[2:-2] if raw.endswith("*/") else raw[2:], kind="block", span=span)

    def style_rule(self, node: Node) -> StyleRule:
        body = _body_of(node)
        assert body is not None
        open_brace, close_brace = self.braces(body)
        return StyleRule(
            selectors=self.selectors(node, open_brace),
            children=tuple(self.items(body, top_level=False)),
            span=Span(self.offset(node.start_byte), close_brace + 1),
            open_brace=open_brace,
            close_brace=close_brace,
        )

    def selectors(self, node: Node, open_brace: int) -> tuple[Selector, ...]:
        group = next((c for c in node.children if c.type == "selectors"), None)
        if group is None:
            # keyframe blocks (`from`, `50%`) carry a bare prelude
            start = self.offset(node.start_byte)
            end = _rstrip_offset(self.text, start, open_brace)
            if start == end:
                raise self.error("empty selector", start)
            return (Selector(text=self.text[start:end], span=Span(start, end)),)

        pieces = [c for c in group.named_children if c.type not in _COMMENT_TYPES]
        if not pieces:
            raise self.error("empty selector", self.offset(group.start_byte))
        selectors = []
        for piece in pieces:
            span = self.span(piece)
            selectors.append(Selector(text=self.text[span.start : span.end], span=span))
        return tuple(selectors)

    def braces(self, body: Node) -> tuple[int, int]:
        span = self.span(body)
        return span.start, span.end - 1

    def declaration(self, node: Node, *, top_level: bool) -> Declaration | VariableDeclaration:
        text = self.text
        span = self.span(node)
        colon_node = next(c for c in node.children if c.type == ":")
        colon = self.offset(colon_node.start_byte)

        prop_end = _rstrip_offset(text, span.start, colon)
        prop = text[span.start : prop_end]
        if not prop:
            raise self.error("missing property name", span.start)

        after = [c for c in node.children if c.start_byte > colon_node.start_byte and c.type != ";"]
        if after:
            value_start = self.offset(after[0].start_byte)
            value_end = self.offset(after[-1].end_byte)
        else:
            value_start = value_end = colon + 1

        is_variable = prop.startswith("$")
        if is_variable and self.syntax != "scss":
            raise self.error("Sass variable in plain CSS", span.start)
        if top_level and not is_variable:
            raise self.error("declaration outside of a rule", span.start)

        cls = VariableDeclaration if is_variable else Declaration
        return cls(
            prop,
            text[value_start:value_end],
            span=span,
            prop_span=Span(span.start, prop_end),
            colon=colon,
            value_span=Span(value_start, value_end),
        )

    def at_rules(self, node: Node) -> list[StyleNode]:
        """
        Convert an at-rule statement.

        `@else` clauses are nested under their `@if` in the grammar; they are
        returned as sibling at-rules so each clause keeps its own block.
        """

        text = self.text
        span = self.span(node)
        match = _AT_NAME_RE.match(text, span.start)
        if match is None:
            raise self.error("expected at-rule name after '@'", span.start)
        name = match.group(1).lower()
        body = _body_of(node)

        if body is None:
            end = span.end - 1 if text[span.end - 1 : span.end] == ";" else span.end
            params_start = _lstrip_offset(text, match.end(), end)
            params = text[params_start : _rstrip_offset(text, params_start, end)]
            return [AtRule(name=name, params=params, span=span)]

        open_brace, close_brace = self.braces(body)
        params_start = _lstrip_offset(text, match.end(), open_brace)
        params = text[params_start : _rstrip_offset(text, params_start, open_brace)]
        rules: list[StyleNode] = [
            AtRule(
                name=name,
                params=params,
                span=Span(span.start, close_brace + 1),
                children=tuple(self.items(body, top_level=False)),
                open_brace=open_brace,
                close_brace=close_brace,
            )
        ]
        for clause in node.named_children:
            if clause.start_byte >= body.end_byte and text.startswith("@", self.offset(clause.start_byte)):
                rules.extend(self.at_rules(clause))
        return rules


def _body_of(node: Node) -> Node | None:
    return next((c for c in node.children if c.type in _BODY_TYPES), None)


def _comment_nodes(root: Node) -> list[Node]:
    found: list[Node] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type in _COMMENT_TYPES:
            found.append(node)
            continue
        stack.extend(reversed(node.children))
    return found


def _char_offsets(text: str, data: bytes) -> list[int] | None:
    """Byte offset -> character offset table, or None for pure ASCII text."""

    if len(data) == len(text):
        return None
    table: list[int] = []
    for index, ch in enumerate(text):
        table.extend([index] * len(ch.encode("utf-8", errors="surrogatepass")))
    table.append(len(text))
    return table


def _lstrip_offset(text: str, start: int, end: int) -> int:
    while start < end and text[start] in _WHITESPACE:
        start += 1
    return start


def _rstrip_offset(text: str, start: int, end: int) -> int:
    while end > start and text[end - 1] in _WHITESPACE:
        end -= 1
    return end
