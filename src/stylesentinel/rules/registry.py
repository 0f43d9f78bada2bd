from __future__ import annotations

import re
from collections.abc import Mapping
from functools import lru_cache
from types import MappingProxyType

from stylesentinel.rules.base import BaseRule, RuleMeta
from stylesentinel.rules.colors import builtin_color_rules
from stylesentinel.rules.formatting import builtin_formatting_rules
from stylesentinel.rules.naming import builtin_naming_rules
from stylesentinel.rules.ordering import builtin_ordering_rules
from stylesentinel.rules.selectors import builtin_selector_rules
from stylesentinel.rules.values import builtin_value_rules

_RULE_ID_RE = re.compile(r"^[A-Z][0-9]{2,}$")

# Reserved for files that cannot be read or parsed; never a registered rule.
PARSE_ERROR_RULE_ID = "E00"


@lru_cache(maxsize=1)
def builtin_rules() -> tuple[BaseRule, ...]:
    rules: list[BaseRule] = []
    rules.extend(builtin_formatting_rules())
    rules.extend(builtin_selector_rules())
    rules.extend(builtin_ordering_rules())
    rules.extend(builtin_naming_rules())
    rules.extend(builtin_color_rules())
    rules.extend(builtin_value_rules())

    by_id: dict[str, BaseRule] = {}
    for rule in rules:
        rule_id = rule.meta.rule_id
        if not _RULE_ID_RE.match(rule_id):  # pragma: no cover
            raise RuntimeError(f"Rule id must match {_RULE_ID_RE.pattern}: {rule_id!r}")
        if rule_id == PARSE_ERROR_RULE_ID:  # pragma: no cover
            raise RuntimeError(f"Rule id {rule_id} is reserved for parse errors")
        if rule_id in by_id:  # pragma: no cover
            raise RuntimeError(f"Duplicate rule id: {rule_id}")
        by_id[rule_id] = rule

    return tuple(by_id[k] for k in sorted(by_id))


def all_rules() -> tuple[BaseRule, ...]:
    return builtin_rules()


def rule_ids() -> set[str]:
    return {r.meta.rule_id for r in all_rules()}


@lru_cache(maxsize=1)
def rule_meta_by_id() -> Mapping[str, RuleMeta]:
    return MappingProxyType({r.meta.rule_id: r.meta for r in all_rules()})


@lru_cache(maxsize=1)
def _rule_by_id_map() -> dict[str, BaseRule]:
    return {r.meta.rule_id: r for r in all_rules()}


def rule_by_id(rule_id: str) -> BaseRule | None:
    return _rule_by_id_map().get(rule_id)
