from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from stylesentinel.engine.context import FileContext, NestingContext
from stylesentinel.engine.nodes import Declaration, StyleNode, StyleRule
from stylesentinel.engine.types import Diagnostic
from stylesentinel.rules.base import BaseRule, RuleMeta
from stylesentinel.rules.utils import compound_selectors, element_with_class, id_tokens, is_bare_id


@dataclass(frozen=True, slots=True)
class S01IdSelector(BaseRule):
    meta = RuleMeta(
        rule_id="S01",
        title="ID selectors",
        description=(
            "Prefer classes over IDs. A lone top-level `#id` wrapping other rules is tolerated; "
            "nested ID selectors never are."
        ),
        default_severity="warning",
        node_kinds=frozenset({"rule"}),
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        if not isinstance(node, StyleRule):
            return []

        diagnostics: list[Diagnostic] = []
        for selector in node.selectors:
            ids = id_tokens(selector.text)
            if not ids:
                continue
            names = ", ".join(ids)

            if nesting.rule_depth >= 1:
                scope = " (already inside an ID-scoped rule)" if nesting.in_id_selector else ""
                diagnostics.append(
                    self._diagnostic(
                        ctx,
                        selector.span,
                        message=f"Never nest ID selectors ({names}){scope}.",
                        severity="error",
                    )
                )
                continue

            if self._is_structural_wrapper(node, nesting, selector.text):
                continue
            diagnostics.append(
                self._diagnostic(ctx, selector.span, message=f"Avoid ID selectors ({names}); use a class instead.")
            )
        return diagnostics

    @staticmethod
    def _is_structural_wrapper(node: StyleRule, nesting: NestingContext, selector_text: str) -> bool:
        if nesting.depth != 0 or len(node.selectors) != 1 or not is_bare_id(selector_text):
            return False
        return not any(isinstance(child, Declaration) for child in node.children)


@dataclass(frozen=True, slots=True)
class S02NestingDepth(BaseRule):
    meta = RuleMeta(
        rule_id="S02",
        title="Nesting depth",
        description="Rules are nested at most three levels deep (rules and at-rule blocks both count).",
        default_severity="error",
        node_kinds=frozenset({"rule"}),
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        if not isinstance(node, StyleRule):
            return []
        level = nesting.depth + 1
        limit = ctx.config.max_nesting_depth
        if level <= limit:
            return []

        where = " inside @media" if nesting.in_media else ""
        return [
            self._diagnostic(
                ctx,
                node.prelude_span,
                message=f"Rule is nested {level} levels deep{where}; the limit is {limit}.",
            )
        ]


@dataclass(frozen=True, slots=True)
class S03ElementClassCoupling(BaseRule):
    meta = RuleMeta(
        rule_id="S03",
        title="Element coupled with class",
        description="Don't qualify a class with an element name (`a.button`); use the class alone.",
        default_severity="warning",
        node_kinds=frozenset({"rule"}),
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        if not isinstance(node, StyleRule):
            return []

        diagnostics: list[Diagnostic] = []
        for selector in node.selectors:
            for compound in compound_selectors(selector.text):
                element = element_with_class(compound)
                if element is None:
                    continue
                diagnostics.append(
                    self._diagnostic(
                        ctx,
                        selector.span,
                        message=f"Avoid qualifying classes with the `{element}` element in `{selector.text}`.",
                    )
                )
                break
        return diagnostics


def builtin_selector_rules() -> list[BaseRule]:
    return [
        S01IdSelector(),
        S02NestingDepth(),
        S03ElementClassCoupling(),
    ]
