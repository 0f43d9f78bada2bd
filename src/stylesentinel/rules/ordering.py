from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from stylesentinel.engine.context import FileContext, NestingContext
from stylesentinel.engine.nodes import AtRule, Declaration, StyleNode, StyleRule, VariableDeclaration
from stylesentinel.engine.types import Diagnostic
from stylesentinel.rules.base import BaseRule, RuleMeta
from stylesentinel.rules.utils import is_modifier

DECLARATIONS = 1
INCLUDES = 2
MODIFIERS = 3
MEDIA_QUERIES = 4
NESTED_SELECTORS = 5

CATEGORY_LABELS = {
    DECLARATIONS: "declarations",
    INCLUDES: "@include",
    MODIFIERS: "modifiers (&...)",
    MEDIA_QUERIES: "@media queries",
    NESTED_SELECTORS: "nested selectors",
}


def child_category(node: StyleNode) -> int | None:
    """Ordering category of a rule's direct child; None for children that may go anywhere."""
    if isinstance(node, Declaration | VariableDeclaration):
        return DECLARATIONS
    if isinstance(node, AtRule):
        if node.name == "extend":
            return DECLARATIONS
        if node.name == "include":
            return INCLUDES
        if node.name == "media":
            return MEDIA_QUERIES
        return None
    if isinstance(node, StyleRule):
        return MODIFIERS if is_modifier(node.selectors[0].text) else NESTED_SELECTORS
    return None


@dataclass(frozen=True, slots=True)
class O01DeclarationOrder(BaseRule):
    meta = RuleMeta(
        rule_id="O01",
        title="Declaration order",
        description=(
            "Inside a rule list declarations first, then @include, then modifiers (&:hover), "
            "then @media queries, then nested selectors."
        ),
        default_severity="error",
        node_kinds=frozenset({"rule"}),
        styling=True,
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        if not isinstance(node, StyleRule):
            return []

        diagnostics: list[Diagnostic] = []
        highest = 0
        highest_line = 0
        for child in node.children:
            category = child_category(child)
            if category is None:
                continue
            if category >= highest:
                if category > highest:
                    highest = category
                    highest_line = ctx.source.line_of(child.span.start)
                continue
            diagnostics.append(
                self._diagnostic(
                    ctx,
                    child.span,
                    message=(
                        f"{CATEGORY_LABELS[category].capitalize()} must come before "
                        f"{CATEGORY_LABELS[highest]} (line {highest_line})."
                    ),
                )
            )
        return diagnostics


def builtin_ordering_rules() -> list[BaseRule]:
    return [O01DeclarationOrder()]
