from __future__ import annotations

from helpers import ids, lint_source

from stylesentinel.config import StyleSentinelConfig


def _by_rule(content: str, rule_id: str, **kwargs):
    return [d for d in lint_source(content, **kwargs) if d.rule_id == rule_id]


def test_s01_top_level_id_with_declarations_is_a_warning() -> None:
    (found,) = _by_rule("#main {\n  color: red;\n}\n", "S01")
    assert found.severity == "warning"
    assert "#main" in found.message


def test_s01_bare_top_level_id_wrapper_is_allowed() -> None:
    content = "#app {\n  .header {\n    color: red;\n  }\n}\n"
    assert _by_rule(content, "S01") == []


def test_s01_nested_id_is_an_error() -> None:
    content = ".page {\n  #sidebar {\n    color: red;\n  }\n}\n"
    (found,) = _by_rule(content, "S01")
    assert found.severity == "error"
    assert found.message.startswith("Never nest ID selectors")


def test_s01_compound_id_at_top_level_is_reported() -> None:
    (found,) = _by_rule("div#main {\n  .x {\n    color: red;\n  }\n}\n", "S01")
    assert found.severity == "warning"


def test_s01_ignores_ids_inside_attribute_selectors() -> None:
    assert _by_rule('a[href="#top"] {\n  color: red;\n}\n', "S01") == []


def _nest(levels: int) -> str:
    lines: list[str] = []
    for depth in range(levels):
        lines.append("  " * depth + f".l{depth} {{")
    lines.append("  " * levels + "color: red;")
    for depth in reversed(range(levels)):
        lines.append("  " * depth + "}")
    return "\n".join(lines) + "\n"


def test_s02_three_levels_pass_four_levels_fail_once() -> None:
    assert _by_rule(_nest(3), "S02") == []

    (found,) = _by_rule(_nest(4), "S02")
    assert "4 levels deep" in found.message
    assert found.location is not None and found.location.start_line == 4


def test_s02_counts_media_blocks_as_nesting() -> None:
    content = (
        ".a {\n"
        "  .b {\n"
        "    @media print {\n"
        "      .c {\n"
        "        color: red;\n"
        "      }\n"
        "    }\n"
        "  }\n"
        "}\n"
    )
    (found,) = _by_rule(content, "S02")
    assert "inside @media" in found.message


def test_s02_limit_is_configurable() -> None:
    config = StyleSentinelConfig(max_nesting_depth=2)
    assert len(_by_rule(_nest(3), "S02", config=config)) == 1


def test_s03_element_qualified_class() -> None:
    (found,) = _by_rule("a.button {\n  color: red;\n}\n", "S03")
    assert "`a`" in found.message
    assert found.severity == "warning"


def test_s03_reports_each_offending_selector_once() -> None:
    content = "ul.nav li.item, .ok, p.note {\n  color: red;\n}\n"
    assert ids(lint_source(content)) == ["S03", "S03"]


def test_s03_ignores_pseudo_class_arguments_and_modifiers() -> None:
    content = ".list {\n  &.is-open {\n    color: red;\n  }\n}\n\nli:not(.active) {\n  color: blue;\n}\n"
    assert _by_rule(content, "S03") == []


def test_s01_mentions_enclosing_id_scope() -> None:
    content = "#app {\n  #menu {\n    color: red;\n  }\n}\n"
    (found,) = _by_rule(content, "S01")
    assert found.severity == "error"
    assert "already inside an ID-scoped rule" in found.message
