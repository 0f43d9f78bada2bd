from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from stylesentinel.engine.context import FileContext, NestingContext
from stylesentinel.engine.nodes import Declaration, StyleNode
from stylesentinel.engine.types import Diagnostic, Fix
from stylesentinel.rules.base import BaseRule, RuleMeta

BORDER_PROPERTIES = frozenset({"border", "border-top", "border-right", "border-bottom", "border-left"})


@dataclass(frozen=True, slots=True)
class V01BorderReset(BaseRule):
    meta = RuleMeta(
        rule_id="V01",
        title="Border reset value",
        description=(
            "Remove borders with one spelling: `border: none` by default, or `border: 0` "
            "when `border-reset = \"zero\"` is configured."
        ),
        default_severity="warning",
        node_kinds=frozenset({"declaration"}),
        fixable=True,
        styling=True,
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        if not isinstance(node, Declaration) or node.prop.lower() not in BORDER_PROPERTIES:
            return []

        value = node.value.strip().lower()
        if ctx.config.border_reset == "none":
            found, wanted = "0", "none"
        else:
            found, wanted = "none", "0"
        if value != found:
            return []

        return [
            self._diagnostic(
                ctx,
                node.value_span,
                message=f"Use `{node.prop}: {wanted}` instead of `{node.prop}: {found}`.",
                fix=Fix(node.value_span, wanted),
            )
        ]


def builtin_value_rules() -> list[BaseRule]:
    return [V01BorderReset()]
