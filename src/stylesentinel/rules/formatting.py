from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from stylesentinel.engine.context import FileContext, NestingContext
from stylesentinel.engine.nodes import AtRule, Declaration, StyleNode, StyleRule, VariableDeclaration
from stylesentinel.engine.types import Diagnostic, Fix, Span
from stylesentinel.rules.base import BaseRule, RuleMeta

_STATEMENT_KINDS = frozenset({"rule", "at-rule", "declaration", "variable"})
_BLOCK_KINDS = frozenset({"rule", "at-rule"})


def _rstrip_to(text: str, start: int, end: int) -> int:
    while end > start and text[end - 1] in " \t\r\n\f":
        end -= 1
    return end


def _block_braces(node: StyleNode) -> tuple[int, int] | None:
    if isinstance(node, StyleRule):
        return node.open_brace, node.close_brace
    if isinstance(node, AtRule) and node.open_brace is not None and node.close_brace is not None:
        return node.open_brace, node.close_brace
    return None


@dataclass(frozen=True, slots=True)
class F01Indentation(BaseRule):
    meta = RuleMeta(
        rule_id="F01",
        title="Indentation",
        description="Nested statements are indented two spaces deeper than their parent; tabs are not allowed.",
        default_severity="error",
        node_kinds=_STATEMENT_KINDS | {"comment"},
        fixable=True,
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        start = node.span.start
        lead = ctx.source.leading_whitespace(start)
        if lead is None or lead == nesting.indent:
            return []

        if "\t" in lead:
            message = "Indent with spaces, not tabs."
        else:
            message = f"Expected indentation of {len(nesting.indent)} spaces, found {len(lead)}."
        fix = Fix(Span(start - len(lead), start), nesting.indent)
        return [self._diagnostic(ctx, Span(start - len(lead), start), message=message, fix=fix)]


@dataclass(frozen=True, slots=True)
class F02OpeningBrace(BaseRule):
    meta = RuleMeta(
        rule_id="F02",
        title="Opening brace placement",
        description="An opening brace follows its selector or at-rule on the same line, after exactly one space.",
        default_severity="error",
        node_kinds=_BLOCK_KINDS,
        fixable=True,
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        braces = _block_braces(node)
        if braces is None:
            return []
        brace = braces[0]
        gap_start = _rstrip_to(ctx.text, node.span.start, brace)
        gap = ctx.text[gap_start:brace]
        if gap == " ":
            return []

        if "\n" in gap:
            message = "Opening brace belongs on the same line as the selector."
        elif not gap:
            message = "Missing space before opening brace."
        else:
            message = "Use exactly one space before opening brace."
        fix = Fix(Span(gap_start, brace), " ")
        return [self._diagnostic(ctx, Span(gap_start, brace + 1), message=message, fix=fix)]


@dataclass(frozen=True, slots=True)
class F03ClosingBrace(BaseRule):
    meta = RuleMeta(
        rule_id="F03",
        title="Closing brace placement",
        description="A closing brace sits alone on its own line, aligned with the start of its rule.",
        default_severity="error",
        node_kinds=_BLOCK_KINDS,
        fixable=True,
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        braces = _block_braces(node)
        if braces is None:
            return []
        open_brace, close = braces
        expected = ctx.source.indent_of_line(node.span.start)
        lead = ctx.source.leading_whitespace(close)

        if lead is None:
            content_end = _rstrip_to(ctx.text, open_brace + 1, close)
            fix = Fix(Span(content_end, close), "\n" + expected)
            return [
                self._diagnostic(
                    ctx,
                    Span(close, close + 1),
                    message="Closing brace belongs on its own line.",
                    fix=fix,
                )
            ]
        if lead != expected:
            fix = Fix(Span(close - len(lead), close), expected)
            return [
                self._diagnostic(
                    ctx,
                    Span(close, close + 1),
                    message="Closing brace should line up with the start of its rule.",
                    fix=fix,
                )
            ]
        return []


@dataclass(frozen=True, slots=True)
class F04ColonSpacing(BaseRule):
    meta = RuleMeta(
        rule_id="F04",
        title="Colon spacing",
        description="No space before a declaration's colon and exactly one space after it.",
        default_severity="error",
        node_kinds=frozenset({"declaration", "variable"}),
        fixable=True,
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        if not isinstance(node, Declaration | VariableDeclaration):
            return []
        if node.value_span.start == node.value_span.end:
            return []

        before = ctx.text[node.prop_span.end : node.colon]
        after = ctx.text[node.colon + 1 : node.value_span.start]
        if not before and after == " ":
            return []

        label = node.prop if isinstance(node, Declaration) else node.name
        if before:
            message = f"Unexpected space before ':' in `{label}`."
        elif not after:
            message = f"Missing space after ':' in `{label}`."
        else:
            message = f"Use exactly one space after ':' in `{label}`."
        span = Span(node.prop_span.end, node.value_span.start)
        return [self._diagnostic(ctx, span, message=message, fix=Fix(span, ": "))]


@dataclass(frozen=True, slots=True)
class F05BlankLineBetweenRules(BaseRule):
    meta = RuleMeta(
        rule_id="F05",
        title="Blank line between rules",
        description="Adjacent sibling rules are separated by exactly one blank line.",
        default_severity="error",
        node_kinds=frozenset({"rule"}),
        fixable=True,
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        if sibling_index == 0:
            return []
        previous = nesting.siblings[sibling_index - 1]
        if not isinstance(previous, StyleRule):
            return []
        # Rules sharing a line are reported by F07 first.
        if not ctx.source.starts_line(node.span.start):
            return []
        if ctx.text[previous.span.end : node.span.start].strip():
            return []

        source = ctx.source
        blank_lines = source.line_of(node.span.start) - source.line_of(previous.span.end - 1) - 1
        if blank_lines == 1:
            return []

        message = "Add a blank line between rules." if blank_lines == 0 else "Use exactly one blank line between rules."
        fix = Fix(Span(previous.span.end, source.line_start(node.span.start)), "\n\n")
        return [self._diagnostic(ctx, node.selectors[0].span, message=message, fix=fix)]


@dataclass(frozen=True, slots=True)
class F06SelectorGrouping(BaseRule):
    meta = RuleMeta(
        rule_id="F06",
        title="Grouped selectors on one line",
        description="A rule with several selectors keeps them on a single line, separated by `, `.",
        default_severity="error",
        node_kinds=frozenset({"rule"}),
        fixable=True,
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        if not isinstance(node, StyleRule) or len(node.selectors) < 2:
            return []
        span = node.prelude_span
        actual = ctx.text[span.start : span.end]
        expected = ", ".join(" ".join(sel.text.split()) for sel in node.selectors)
        if actual == expected:
            return []

        message = (
            "Keep grouped selectors on a single line."
            if "\n" in actual
            else "Separate grouped selectors with a comma and one space."
        )
        fix = None if ("/*" in actual or "//" in actual) else Fix(span, expected)
        return [self._diagnostic(ctx, span, message=message, fix=fix)]


@dataclass(frozen=True, slots=True)
class F07OneStatementPerLine(BaseRule):
    meta = RuleMeta(
        rule_id="F07",
        title="One statement per line",
        description="Every declaration, rule and at-rule starts on its own line.",
        default_severity="error",
        node_kinds=_STATEMENT_KINDS,
        fixable=True,
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        start = node.span.start
        if ctx.source.starts_line(start):
            return []
        # `} @else {` is the idiomatic layout for Sass conditionals.
        if isinstance(node, AtRule) and node.name == "else":
            return []

        gap_start = start
        while gap_start > 0 and ctx.text[gap_start - 1] in " \t":
            gap_start -= 1
        what = "declaration" if isinstance(node, Declaration | VariableDeclaration) else "rule"
        fix = Fix(Span(gap_start, start), "\n" + nesting.indent)
        return [
            self._diagnostic(
                ctx,
                Span(start, node.span.end),
                message=f"Put each {what} on its own line.",
                fix=fix,
            )
        ]


def builtin_formatting_rules() -> list[BaseRule]:
    return [
        F01Indentation(),
        F02OpeningBrace(),
        F03ClosingBrace(),
        F04ColonSpacing(),
        F05BlankLineBetweenRules(),
        F06SelectorGrouping(),
        F07OneStatementPerLine(),
    ]
