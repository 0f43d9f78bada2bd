from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from stylesentinel.engine.context import FileContext, NestingContext
from stylesentinel.engine.nodes import StyleNode, Stylesheet, VariableDeclaration
from stylesentinel.engine.types import Diagnostic
from stylesentinel.rules.base import BaseRule, RuleMeta

Tier = Literal["lighter", "light", "base", "dark", "darker"]

TIERS: tuple[Tier, ...] = ("lighter", "light", "base", "dark", "darker")

# Longest suffix first so `-lighter` is never read as `-light`.
_TIER_SUFFIXES: tuple[tuple[str, Tier], ...] = (
    ("-lighter", "lighter"),
    ("-darker", "darker"),
    ("-light", "light"),
    ("-dark", "dark"),
)


@dataclass(slots=True)
class ColorVariantGroup:
    family: str
    first: VariableDeclaration
    tiers: dict[Tier, VariableDeclaration] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return all(tier in self.tiers for tier in TIERS)

    @property
    def missing(self) -> tuple[Tier, ...]:
        return tuple(tier for tier in TIERS if tier not in self.tiers)


def split_tier(name: str) -> tuple[str, Tier]:
    """`$blue-dark` -> ("blue", "dark"); `$blue` -> ("blue", "base")."""
    bare = name.lstrip("$")
    for suffix, tier in _TIER_SUFFIXES:
        if bare.endswith(suffix) and len(bare) > len(suffix):
            return bare[: -len(suffix)], tier
    return bare, "base"


def tier_variable(family: str, tier: Tier) -> str:
    return f"${family}" if tier == "base" else f"${family}-{tier}"


def color_groups(stylesheet: Stylesheet) -> list[ColorVariantGroup]:
    """Group top-level variables by color family, in order of first appearance."""
    groups: dict[str, ColorVariantGroup] = {}
    for node in stylesheet.children:
        if not isinstance(node, VariableDeclaration):
            continue
        family, tier = split_tier(node.name)
        group = groups.get(family)
        if group is None:
            group = ColorVariantGroup(family=family, first=node)
            groups[family] = group
        group.tiers.setdefault(tier, node)
    return list(groups.values())


@dataclass(frozen=True, slots=True)
class C01ColorTierCompleteness(BaseRule):
    meta = RuleMeta(
        rule_id="C01",
        title="Complete color tiers",
        description="Every color family in the color file defines lighter, light, base, dark and darker variants.",
        default_severity="error",
        node_kinds=frozenset({"stylesheet"}),
        syntaxes=frozenset({"scss"}),
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        if not isinstance(node, Stylesheet) or not ctx.is_color_file:
            return []

        diagnostics: list[Diagnostic] = []
        for group in color_groups(node):
            for tier in group.missing:
                diagnostics.append(
                    self._diagnostic(
                        ctx,
                        group.first.prop_span,
                        message=(
                            f"Color `{group.family}` is missing its `{tier}` tier "
                            f"(expected `{tier_variable(group.family, tier)}`)."
                        ),
                    )
                )
        return diagnostics


@dataclass(frozen=True, slots=True)
class C02ColorFamilyOrder(BaseRule):
    meta = RuleMeta(
        rule_id="C02",
        title="Alphabetical color families",
        description="Color families in the color file are listed in alphabetical order.",
        default_severity="warning",
        node_kinds=frozenset({"stylesheet"}),
        syntaxes=frozenset({"scss"}),
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        if not isinstance(node, Stylesheet) or not ctx.is_color_file:
            return []

        groups = color_groups(node)
        diagnostics: list[Diagnostic] = []
        for idx, group in enumerate(groups):
            earlier = [g.family for g in groups[idx + 1 :] if g.family < group.family]
            if not earlier:
                continue
            diagnostics.append(
                self._diagnostic(
                    ctx,
                    group.first.prop_span,
                    message=f"Color `{group.family}` should come after `{min(earlier)}` (alphabetical order).",
                )
            )
        return diagnostics


def builtin_color_rules() -> list[BaseRule]:
    return [
        C01ColorTierCompleteness(),
        C02ColorFamilyOrder(),
    ]
