from __future__ import annotations

from pathlib import Path

from stylesentinel.autofix import BACKUP_SUFFIX, apply_fixes, autofix_files, fix_text
from stylesentinel.engine.types import Diagnostic, Fix, Location, Span
from stylesentinel.linter import lint_text
from stylesentinel.scanner import discover_files, prepare_target

AVATAR = ".avatar{border-radius:50%;border:2px solid white; }"
AVATAR_FIXED = ".avatar {\n  border-radius: 50%;\n  border: 2px solid white;\n}"


def _fixable(rule_id: str, start: int, end: int, replacement: str, line: int = 1) -> Diagnostic:
    span = Span(start, end)
    return Diagnostic(
        rule_id=rule_id,
        severity="error",
        message="m",
        span=span,
        location=Location(start_line=line),
        fix=Fix(span, replacement),
    )


def test_apply_fixes_splices_from_the_end() -> None:
    outcome = apply_fixes("abcde", [_fixable("F01", 0, 1, "AA"), _fixable("F02", 3, 4, "DD")])
    assert outcome.text == "AAbcDDe"
    assert len(outcome.applied) == 2
    assert outcome.notes == ()


def test_apply_fixes_keeps_lower_offset_on_overlap() -> None:
    outcome = apply_fixes("abcdef", [_fixable("F04", 2, 5, "Y"), _fixable("F03", 0, 3, "X")])
    assert outcome.text == "Xdef"
    assert [d.rule_id for d in outcome.applied] == ["F03"]
    (note,) = outcome.notes
    assert note.startswith("fix skipped: overlapping edit")
    assert "F04" in note


def test_apply_fixes_insertions_at_same_offset_conflict() -> None:
    outcome = apply_fixes("ab", [_fixable("F07", 1, 1, "\n"), _fixable("F02", 1, 1, " ")])
    assert len(outcome.applied) == 1
    assert len(outcome.notes) == 1


def test_apply_fixes_collapses_identical_duplicates() -> None:
    outcome = apply_fixes("ab", [_fixable("F01", 0, 1, "x"), _fixable("F05", 0, 1, "x")])
    assert outcome.text == "xb"
    assert len(outcome.applied) == 1
    assert outcome.notes == ()


def test_avatar_is_reported_and_fixed_to_canonical_block() -> None:
    path = Path("avatar.scss")
    before = lint_text(AVATAR, path=path, syntax="scss")
    assert len(before.diagnostics) >= 3
    assert {"F02", "F03", "F04", "F07"} <= {d.rule_id for d in before.diagnostics}

    fixed = fix_text(AVATAR, path=path, syntax="scss")
    assert fixed.text == AVATAR_FIXED
    assert fixed.remaining.diagnostics == ()


def test_fixing_is_idempotent() -> None:
    source = (
        ".a{color:red;\n"
        "    .b{color:blue}\n"
        "}\n"
        ".c,\n"
        ".d{\n"
        "\tborder:0;}\n"
    )
    path = Path("style.scss")
    once = fix_text(source, path=path, syntax="scss")
    assert not any(d.fixable for d in once.remaining.diagnostics)

    twice = fix_text(once.text, path=path, syntax="scss")
    assert twice.text == once.text
    assert twice.applied == 0


def test_fix_text_leaves_unparsable_source_alone() -> None:
    fixed = fix_text(".a {", path=Path("x.scss"), syntax="scss")
    assert fixed.text == ".a {"
    assert fixed.remaining.parse_failed
    assert fixed.passes == 0


def test_autofix_files_dry_run_writes_nothing(write_file) -> None:
    path = write_file("avatar.scss", AVATAR)
    target = prepare_target([path.parent])
    result = autofix_files(target, discover_files(target), dry_run=True, backup=False)

    assert path.read_text(encoding="utf-8") == AVATAR
    assert result.changed_files == (path.resolve(),)
    assert "+  border-radius: 50%;" in result.diff
    assert result.summary.diagnostics == ()


def test_autofix_files_writes_and_keeps_backup(write_file) -> None:
    path = write_file("avatar.scss", AVATAR)
    target = prepare_target([path])
    result = autofix_files(target, discover_files(target), dry_run=False, backup=True)

    assert path.read_text(encoding="utf-8") == AVATAR_FIXED
    backup = path.with_name(path.name + BACKUP_SUFFIX)
    assert backup.read_text(encoding="utf-8") == AVATAR
    assert result.file_results[0].applied >= 6
