from __future__ import annotations

from abc import ABC
from collections.abc import Iterable
from dataclasses import dataclass

from stylesentinel.engine.context import FileContext, NestingContext
from stylesentinel.engine.nodes import StyleNode
from stylesentinel.engine.types import Diagnostic, Fix, Severity, Span, Syntax


@dataclass(frozen=True, slots=True)
class RuleMeta:
    rule_id: str
    title: str
    description: str
    default_severity: Severity
    node_kinds: frozenset[str]  # values of `engine.nodes.NODE_KINDS`
    syntaxes: frozenset[Syntax] = frozenset({"css", "scss"})
    fixable: bool = False
    styling: bool = False  # skipped inside rules that only target `.js-` hooks

    def applies_to(self, kind: str, syntax: Syntax) -> bool:
        return kind in self.node_kinds and syntax in self.syntaxes


class BaseRule(ABC):
    """
    A lint rule. Rules are stateless: everything they need arrives through
    the arguments of `check`, so one instance can serve many files at once.
    """

    meta: RuleMeta

    def check(
        self,
        node: StyleNode,
        nesting: NestingContext,
        sibling_index: int,
        ctx: FileContext,
    ) -> Iterable[Diagnostic]:
        return ()

    def _diagnostic(
        self,
        ctx: FileContext,
        span: Span,
        *,
        message: str,
        fix: Fix | None = None,
        severity: Severity | None = None,
    ) -> Diagnostic:
        return Diagnostic(
            rule_id=self.meta.rule_id,
            severity=severity or self.meta.default_severity,
            message=message,
            span=span,
            location=ctx.location(span),
            fix=fix,
        )
