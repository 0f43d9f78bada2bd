from __future__ import annotations

import threading

import pytest

from stylesentinel.engine.nodes import AtRule, Comment, Declaration, SourceMap, StyleRule, VariableDeclaration
from stylesentinel.engine.parser import ParseError, parse_stylesheet


def test_parse_rule_with_declarations_keeps_spans() -> None:
    text = ".btn {\n  color: red;\n}\n"
    sheet = parse_stylesheet(text, syntax="css")

    assert len(sheet.children) == 1
    rule = sheet.children[0]
    assert isinstance(rule, StyleRule)
    assert [s.text for s in rule.selectors] == [".btn"]
    assert text[rule.span.start : rule.span.end] == ".btn {\n  color: red;\n}"
    assert text[rule.open_brace] == "{"
    assert text[rule.close_brace] == "}"

    decl = rule.children[0]
    assert isinstance(decl, Declaration)
    assert decl.prop == "color"
    assert decl.value == "red"
    assert text[decl.span.start : decl.span.end] == "color: red;"
    assert text[decl.value_span.start : decl.value_span.end] == "red"
    assert text[decl.colon] == ":"


def test_parse_scss_nesting_variables_and_at_rules() -> None:
    text = (
        "$link-color: #00f;\n"
        "// a line comment\n"
        ".nav {\n"
        "  @include clearfix;\n"
        "  &:hover {\n"
        "    color: $link-color;\n"
        "  }\n"
        "  @media (min-width: 40em) {\n"
        "    display: flex;\n"
        "  }\n"
        "}\n"
    )
    sheet = parse_stylesheet(text, syntax="scss")

    variable, comment, rule = sheet.children
    assert isinstance(variable, VariableDeclaration)
    assert variable.name == "$link-color"
    assert variable.value == "#00f"
    assert isinstance(comment, Comment) and comment.kind == "line"
    assert comment.text == " a line comment"
    assert isinstance(rule, StyleRule)

    include, modifier, media = rule.children
    assert isinstance(include, AtRule) and include.name == "include" and not include.has_body
    assert include.params == "clearfix"
    assert isinstance(modifier, StyleRule) and modifier.selectors[0].text == "&:hover"
    assert isinstance(media, AtRule) and media.name == "media" and media.has_body
    assert media.params == "(min-width: 40em)"


def test_parse_splits_grouped_selectors_outside_parentheses() -> None:
    sheet = parse_stylesheet("a:not(.x, .y), .b {\n  color: red;\n}\n", syntax="css")
    rule = sheet.children[0]
    assert isinstance(rule, StyleRule)
    assert [s.text for s in rule.selectors] == ["a:not(.x, .y)", ".b"]


def test_parse_ignores_braces_inside_strings() -> None:
    text = '.a {\n  content: "}";\n}\n.b {\n  color: red;\n}\n'
    sheet = parse_stylesheet(text, syntax="scss")
    assert len(sheet.children) == 2
    first = sheet.children[0]
    assert isinstance(first, StyleRule)
    assert isinstance(first.children[0], Declaration)
    assert first.children[0].value == '"}"'


def test_last_declaration_may_omit_semicolon() -> None:
    sheet = parse_stylesheet(".a { color: red }", syntax="css")
    decl = sheet.children[0].children[0]  # type: ignore[union-attr]
    assert isinstance(decl, Declaration)
    assert decl.value == "red"
    assert decl.span.end == len(".a { color: red")


def test_spans_are_character_offsets_for_non_ascii_text() -> None:
    text = '/* café */\n.a {\n  content: "ü";\n  color: red;\n}\n'
    sheet = parse_stylesheet(text, syntax="css")
    comment, rule = sheet.children
    assert isinstance(comment, Comment) and comment.text == " café "
    assert isinstance(rule, StyleRule)
    assert rule.selectors[0].text == ".a"

    content, color = rule.children
    assert isinstance(content, Declaration) and content.value == '"ü"'
    assert isinstance(color, Declaration)
    assert text[color.span.start : color.span.end] == "color: red;"
    assert text[rule.close_brace] == "}"


def test_every_comment_is_collected_in_document_order() -> None:
    text = "/* head */\n.a {\n  color: /* inline */ red;\n  // tail\n}\n"
    sheet = parse_stylesheet(text, syntax="scss")
    assert [(c.kind, c.text) for c in sheet.comments] == [
        ("block", " head "),
        ("block", " inline "),
        ("line", " tail"),
    ]


def test_else_clauses_become_sibling_at_rules() -> None:
    text = "@mixin m($x) {\n  @if $x {\n    color: red;\n  } @else {\n    color: blue;\n  }\n}\n"
    sheet = parse_stylesheet(text, syntax="scss")
    mixin = sheet.children[0]
    assert isinstance(mixin, AtRule) and mixin.name == "mixin"
    assert mixin.params == "m($x)"

    branch_if, branch_else = mixin.children or ()
    assert isinstance(branch_if, AtRule) and branch_if.name == "if"
    assert isinstance(branch_else, AtRule) and branch_else.name == "else"
    assert text[branch_if.span.end - 1] == "}"
    assert text[branch_else.span.start : branch_else.span.start + 5] == "@else"


def test_keyframe_blocks_parse_as_rules() -> None:
    text = "@keyframes spin {\n  from {\n    opacity: 0;\n  }\n}\n"
    sheet = parse_stylesheet(text, syntax="css")
    keyframes = sheet.children[0]
    assert isinstance(keyframes, AtRule) and keyframes.name == "keyframes"
    (frame,) = keyframes.children or ()
    assert isinstance(frame, StyleRule)
    assert frame.selectors[0].text == "from"


@pytest.mark.parametrize(
    ("text", "syntax"),
    [
        (".a {\n  color: red;\n", "css"),
        ("}\n", "css"),
        (".a {\n  color red;\n}\n", "css"),
        ("$x: 1;\n", "css"),
        ("color: red;\n", "scss"),
        ("/* open\n", "css"),
        (".a, {\n}\n", "css"),
    ],
)
def test_parse_errors_carry_reason_and_position(text: str, syntax: str) -> None:
    with pytest.raises(ParseError) as excinfo:
        parse_stylesheet(text, syntax=syntax)  # type: ignore[arg-type]
    assert excinfo.value.reason
    assert excinfo.value.line >= 1
    assert excinfo.value.col >= 1
    assert 0 <= excinfo.value.offset <= len(text)


def test_parsers_are_usable_from_several_threads() -> None:
    text = ".a {\n  color: red;\n}\n"
    results: list[int] = []

    def work() -> None:
        for _ in range(20):
            results.append(len(parse_stylesheet(text, syntax="scss").children))

    threads = [threading.Thread(target=work) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results == [1] * 80


def test_source_map_positions_are_one_based() -> None:
    source = SourceMap("ab\n  cd\n")
    assert source.position(0) == (1, 1)
    assert source.position(5) == (2, 3)
    assert source.line_start(5) == 3
    assert source.leading_whitespace(5) == "  "
    assert source.leading_whitespace(6) is None
    assert source.indent_of_line(6) == "  "
