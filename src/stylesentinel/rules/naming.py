from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from stylesentinel.engine.context import FileContext, NestingContext
from stylesentinel.engine.nodes import StyleNode, VariableDeclaration
from stylesentinel.engine.types import Diagnostic
from stylesentinel.rules.base import BaseRule, RuleMeta

VARIABLE_NAME_RE = re.compile(r"^\$_?[a-z][a-z0-9-]*$")

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def dash_case(name: str) -> str:
    """`$fooBar_baz` -> `$foo-bar-baz` (a leading `_` is kept)."""
    bare = name.lstrip("$")
    private = bare.startswith("_")
    bare = bare.lstrip("_")
    bare = _CAMEL_BOUNDARY_RE.sub("-", bare).replace("_", "-").lower()
    bare = re.sub(r"-{2,}", "-", bare).strip("-")
    return "$" + ("_" if private else "") + bare


@dataclass(frozen=True, slots=True)
class N01VariableNaming(BaseRule):
    meta = RuleMeta(
        rule_id="N01",
        title="Variable naming",
        description="Sass variables are dash-case (`$link-color`); a leading underscore marks file-private ones.",
        default_severity="error",
        node_kinds=frozenset({"variable"}),
        syntaxes=frozenset({"scss"}),
    )

    def check(self, node: StyleNode, nesting: NestingContext, sibling_index: int, ctx: FileContext) -> Iterable[Diagnostic]:
        if not isinstance(node, VariableDeclaration) or VARIABLE_NAME_RE.match(node.name):
            return []
        return [
            self._diagnostic(
                ctx,
                node.prop_span,
                message=f"Variable `{node.name}` should be dash-case, e.g. `{dash_case(node.name)}`.",
            )
        ]


def builtin_naming_rules() -> list[BaseRule]:
    return [N01VariableNaming()]
