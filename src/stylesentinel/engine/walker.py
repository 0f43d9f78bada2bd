from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from stylesentinel.engine.context import FileContext, NestingContext
from stylesentinel.engine.nodes import AtRule, StyleNode, StyleRule, Stylesheet, children_of, node_kind
from stylesentinel.engine.types import Diagnostic
from stylesentinel.rules.base import BaseRule
from stylesentinel.rules.utils import has_id_selector, is_js_hook_rule

logger = logging.getLogger(__name__)


def walk(stylesheet: Stylesheet, rules: Sequence[BaseRule], ctx: FileContext) -> Iterator[Diagnostic]:
    """
    Lazily yield diagnostics for `stylesheet` in document order.

    Traversal is pre-order and depth-first. Each node is offered to every rule
    whose metadata matches the node kind and file syntax, together with its
    `NestingContext` and its index among its siblings. A rule that raises is
    reported as an internal-error diagnostic and the walk carries on.
    """

    root_nesting = NestingContext()
    yield from _visit(stylesheet, root_nesting, 0, rules, ctx, enclosing_js_hook=False)


def _visit(
    node: StyleNode,
    nesting: NestingContext,
    sibling_index: int,
    rules: Sequence[BaseRule],
    ctx: FileContext,
    *,
    enclosing_js_hook: bool,
) -> Iterator[Diagnostic]:
    kind = node_kind(node)
    js_hook = is_js_hook_rule(node) if isinstance(node, StyleRule) else enclosing_js_hook

    for rule in rules:
        if not rule.meta.applies_to(kind, ctx.syntax):
            continue
        if js_hook and rule.meta.styling:
            continue
        try:
            found = list(rule.check(node, nesting, sibling_index, ctx))
        except Exception as exc:  # noqa: BLE001
            logger.warning("rule %s failed on %s: %s", rule.meta.rule_id, ctx.relative_path, exc)
            yield _internal_error(rule, node, ctx, exc)
            continue
        yield from found

    children = children_of(node)
    if not children:
        return

    child_nesting = _nest(node, nesting, ctx)
    for index, child in enumerate(children):
        yield from _visit(child, child_nesting, index, rules, ctx, enclosing_js_hook=js_hook)


def _nest(node: StyleNode, nesting: NestingContext, ctx: FileContext) -> NestingContext:
    children = children_of(node)
    if isinstance(node, Stylesheet):
        return NestingContext(parent=node, siblings=children)

    indent = ctx.source.indent_of_line(node.span.start) + " " * ctx.config.indent_width
    if isinstance(node, StyleRule):
        return NestingContext(
            depth=nesting.depth + 1,
            rule_depth=nesting.rule_depth + 1,
            in_id_selector=nesting.in_id_selector or has_id_selector(node),
            in_media=nesting.in_media,
            parent=node,
            siblings=children,
            indent=indent,
        )

    assert isinstance(node, AtRule)
    return NestingContext(
        depth=nesting.depth + 1,
        rule_depth=nesting.rule_depth,
        in_id_selector=nesting.in_id_selector,
        in_media=nesting.in_media or node.name == "media",
        parent=node,
        siblings=children,
        indent=indent,
    )


def _internal_error(rule: BaseRule, node: StyleNode, ctx: FileContext, exc: Exception) -> Diagnostic:
    return Diagnostic(
        rule_id=rule.meta.rule_id,
        severity="error",
        message=f"Internal error in rule {rule.meta.rule_id}: {type(exc).__name__}: {exc}",
        span=node.span,
        location=ctx.location(node.span),
        internal=True,
    )
