from __future__ import annotations

import re

from stylesentinel.engine.nodes import StyleNode, StyleRule

_ID_RE = re.compile(r"#-?[_a-zA-Z][-\w]*")
_CLASS_RE = re.compile(r"\.(-?[_a-zA-Z][-\w]*)")
_ELEMENT_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9-]*")
_COMBINATOR_RE = re.compile(r"\s*[>+~]\s*|\s+")

JS_HOOK_PREFIX = "js-"


def mask_selector(text: str) -> str:
    """
    Return `text` with the insides of strings, `(...)`, `[...]` and whole
    `#{...}` interpolations replaced by `_`, keeping offsets intact.

    Pseudo-class arguments such as `:not(.a .b)` and attribute values thus
    never look like classes, IDs or combinators.
    """

    out = list(text)
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if text.startswith("#{", i):
            end = _matching(text, i + 1, "{", "}")
            for j in range(i, end):
                out[j] = "_"
            i = end
            continue
        if ch in "([":
            end = _matching(text, i, ch, ")" if ch == "(" else "]")
            for j in range(i + 1, max(i + 1, end - 1)):
                out[j] = "_"
            i = end
            continue
        if ch in "\"'":
            close = text.find(ch, i + 1)
            end = n if close < 0 else close + 1
            for j in range(i, end):
                out[j] = "_"
            i = end
            continue
        i += 1
    return "".join(out)


def _matching(text: str, start: int, opener: str, closer: str) -> int:
    """Offset just past the `closer` matching the `opener` at `start`."""
    depth = 0
    for i in range(start, len(text)):
        if text[i] == opener:
            depth += 1
        elif text[i] == closer:
            depth -= 1
            if depth == 0:
                return i + 1
    return len(text)


def compound_selectors(text: str) -> list[str]:
    """Split a complex selector into its compound parts (combinators dropped)."""
    masked = mask_selector(text.strip())
    parts: list[str] = []
    cursor = 0
    for match in _COMBINATOR_RE.finditer(masked):
        if match.start() > cursor:
            parts.append(masked[cursor : match.start()])
        cursor = match.end()
    if cursor < len(masked):
        parts.append(masked[cursor:])
    return parts


def id_tokens(text: str) -> list[str]:
    return _ID_RE.findall(mask_selector(text))


def class_tokens(text: str) -> list[str]:
    return _CLASS_RE.findall(mask_selector(text))


def has_id_selector(rule: StyleRule) -> bool:
    return any(id_tokens(sel.text) for sel in rule.selectors)


def is_bare_id(text: str) -> bool:
    stripped = text.strip()
    ids = id_tokens(stripped)
    return len(ids) == 1 and ids[0] == stripped


def element_with_class(compound: str) -> str | None:
    """Return the element name when `compound` couples a tag with a class (`a.btn`)."""
    match = _ELEMENT_RE.match(compound)
    if match is None:
        return None
    if _CLASS_RE.search(compound, match.end()) is None:
        return None
    return match.group(0)


def is_modifier(text: str) -> bool:
    return text.lstrip().startswith("&")


def is_js_hook_rule(node: StyleNode) -> bool:
    """
    True when every selector of `node` only targets `.js-` hook classes.

    Hooks are presentation-free markers for scripts, so declaration rules
    skip them. Selector rules still apply.
    """

    if not isinstance(node, StyleRule):
        return False
    for selector in node.selectors:
        classes = class_tokens(selector.text)
        if not classes or id_tokens(selector.text):
            return False
        if not all(cls.startswith(JS_HOOK_PREFIX) for cls in classes):
            return False
    return True
