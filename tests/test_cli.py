from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from stylesentinel import __version__
from stylesentinel.cli import app

AVATAR = ".avatar{border-radius:50%;border:2px solid white; }"


def test_version_flag() -> None:
    res = CliRunner().invoke(app, ["--version"])
    assert res.exit_code == 0
    assert __version__ in res.stdout


def test_lint_clean_directory_exits_zero(write_file, tmp_path: Path) -> None:
    write_file("a.scss", ".a {\n  color: red;\n}\n")
    res = CliRunner().invoke(app, ["--no-progress", "lint", str(tmp_path)])
    assert res.exit_code == 0, res.output
    assert "0 error(s), 0 warning(s)" in res.stdout


def test_lint_with_errors_exits_one_and_shows_rule_ids(write_file, tmp_path: Path) -> None:
    write_file("avatar.scss", AVATAR)
    res = CliRunner().invoke(app, ["--no-progress", "lint", str(tmp_path)])
    assert res.exit_code == 1
    assert "avatar.scss" in res.stdout
    assert "F04" in res.stdout


def test_lint_warnings_only_exits_zero(write_file, tmp_path: Path) -> None:
    write_file("a.scss", "a.link {\n  color: red;\n}\n")
    res = CliRunner().invoke(app, ["lint", str(tmp_path), "--format", "json"])
    assert res.exit_code == 0

    data = json.loads(res.stdout)
    (diag,) = data["diagnostics"]
    assert diag == {
        "rule_id": "S03",
        "severity": "warning",
        "file": "a.scss",
        "line": 1,
        "column": 1,
        "end_line": 1,
        "end_column": 7,
        "message": diag["message"],
        "fixable": False,
    }


def test_lint_severity_filter_hides_warnings(write_file, tmp_path: Path) -> None:
    write_file("a.scss", "a.link {\n  color: red;\n}\n")
    res = CliRunner().invoke(app, ["lint", str(tmp_path), "--format", "json", "--severity", "error"])
    assert res.exit_code == 0
    assert json.loads(res.stdout)["diagnostics"] == []


def test_lint_config_override_changes_severity(write_file, tmp_path: Path) -> None:
    write_file("a.scss", "a.link {\n  color: red;\n}\n")
    override = write_file("rules.json", '{"S03": "error"}')
    res = CliRunner().invoke(app, ["lint", str(tmp_path), "--config", str(override), "--format", "json"])
    assert res.exit_code == 1
    assert json.loads(res.stdout)["counts"] == {"error": 1, "warning": 0}


def test_config_errors_exit_two(write_file, tmp_path: Path) -> None:
    write_file("old.sass", ".a\n  color: red\n")
    res = CliRunner().invoke(app, ["lint", str(tmp_path), "--format", "json"])
    assert res.exit_code == 2
    assert "Configuration error" in res.output

    (tmp_path / "old.sass").unlink()
    (tmp_path / "pyproject.toml").write_text('[tool.stylesentinel.rules]\nQ01 = "off"\n', encoding="utf-8")
    res = CliRunner().invoke(app, ["lint", str(tmp_path)])
    assert res.exit_code == 2


def test_lint_rejects_unknown_format(tmp_path: Path) -> None:
    res = CliRunner().invoke(app, ["lint", str(tmp_path), "--format", "xml"])
    assert res.exit_code != 0


def test_lint_workers_option(write_file, tmp_path: Path) -> None:
    for idx in range(4):
        write_file(f"p{idx}.scss", ".a {\n  border: 0;\n}\n")
    res = CliRunner().invoke(app, ["lint", str(tmp_path), "--workers", "3", "--format", "json"])
    assert res.exit_code == 0
    data = json.loads(res.stdout)
    assert [d["file"] for d in data["diagnostics"]] == ["p0.scss", "p1.scss", "p2.scss", "p3.scss"]
    assert all(d["fixable"] for d in data["diagnostics"])


def test_fix_dry_run_prints_diff_and_keeps_file(write_file, tmp_path: Path) -> None:
    path = write_file("avatar.scss", AVATAR)
    res = CliRunner().invoke(app, ["fix", str(tmp_path), "--dry-run"])
    assert res.exit_code == 0, res.output
    assert "+  border-radius: 50%;" in res.stdout
    assert "Would fix" in res.stdout
    assert path.read_text(encoding="utf-8") == AVATAR


def test_fix_writes_files_and_reports_json(write_file, tmp_path: Path) -> None:
    path = write_file("avatar.scss", AVATAR)
    res = CliRunner().invoke(app, ["fix", str(path), "--format", "json"])
    assert res.exit_code == 0, res.output

    data = json.loads(res.stdout)
    assert data["fix"]["changed_files"] == ["avatar.scss"]
    assert data["diagnostics"] == []
    assert path.read_text(encoding="utf-8") == ".avatar {\n  border-radius: 50%;\n  border: 2px solid white;\n}"

    res = CliRunner().invoke(app, ["--no-progress", "lint", str(path)])
    assert res.exit_code == 0


def test_fix_exits_one_when_errors_remain(write_file, tmp_path: Path) -> None:
    write_file("ids.scss", ".page {\n  #nav {\n    color: red;\n  }\n}\n")
    res = CliRunner().invoke(app, ["fix", str(tmp_path)])
    assert res.exit_code == 1
    assert "S01" in res.stdout


def test_rules_command_json_lists_builtins(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    res = CliRunner().invoke(app, ["rules", "--format", "json"])
    assert res.exit_code == 0, res.output

    data = json.loads(res.stdout)
    by_id = {row["rule_id"]: row for row in data}
    assert {"F01", "S02", "O01", "N01", "C01", "V01"} <= set(by_id)
    assert by_id["F01"]["fixable"] is True
    assert by_id["S01"]["enabled"] is True


def test_rules_command_reflects_config(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "pyproject.toml").write_text('[tool.stylesentinel.rules]\ncolors = "off"\n', encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    res = CliRunner().invoke(app, ["rules", "--format", "json"])
    assert res.exit_code == 0, res.output
    enabled = {row["rule_id"] for row in json.loads(res.stdout) if row["enabled"]}
    assert "C01" not in enabled
    assert "F01" in enabled


def test_rules_command_table(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    res = CliRunner().invoke(app, ["rules"])
    assert res.exit_code == 0
    assert "StyleSentinel Rules" in res.stdout


def test_verbose_and_quiet_are_mutually_exclusive(tmp_path: Path) -> None:
    res = CliRunner().invoke(app, ["-v", "-q", "lint", str(tmp_path)])
    assert res.exit_code != 0


def test_lint_reports_files_in_the_order_given(write_file, tmp_path: Path) -> None:
    b = write_file("b.scss", "a.link {\n  color: red;\n}\n")
    a = write_file("a.scss", "a.link {\n  color: red;\n}\n")
    res = CliRunner().invoke(app, ["lint", str(b), str(a), "--format", "json"])
    assert res.exit_code == 0, res.output
    assert [d["file"] for d in json.loads(res.stdout)["diagnostics"]] == ["b.scss", "a.scss"]


def test_fix_severity_filter_hides_remaining_warnings(write_file, tmp_path: Path) -> None:
    write_file("a.scss", "a.link {\n  color: red;\n}\n")

    res = CliRunner().invoke(app, ["fix", str(tmp_path), "--format", "json", "--severity", "error"])
    assert res.exit_code == 0, res.output
    assert json.loads(res.stdout)["diagnostics"] == []

    res = CliRunner().invoke(app, ["fix", str(tmp_path), "--format", "json"])
    assert [d["rule_id"] for d in json.loads(res.stdout)["diagnostics"]] == ["S03"]
