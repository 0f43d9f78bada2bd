from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from stylesentinel import __version__
from stylesentinel.autofix import AutoFixResult
from stylesentinel.engine.types import Diagnostic, LintSummary, Severity
from stylesentinel.reporters.terminal import visible_diagnostics
from stylesentinel.utils import safe_relpath

REPORT_SCHEMA_VERSION = 1


def render_json(summary: LintSummary, *, project_root: Path, min_severity: Severity = "warning") -> str:
    return json.dumps(_summary_payload(summary, project_root=project_root, min_severity=min_severity), indent=2)


def render_fix_json(result: AutoFixResult, *, dry_run: bool, min_severity: Severity = "warning") -> str:
    project_root = result.target.project_root
    payload = _summary_payload(result.summary, project_root=project_root, min_severity=min_severity)
    payload["fix"] = {
        "dry_run": dry_run,
        "changed_files": [safe_relpath(p, project_root) for p in result.changed_files],
        "applied": sum(fr.applied for fr in result.file_results),
        "notes": [
            {"file": safe_relpath(fr.path, project_root), "note": note}
            for fr in result.file_results
            for note in fr.notes
        ],
        "diff": result.diff,
    }
    return json.dumps(payload, indent=2)


def _summary_payload(summary: LintSummary, *, project_root: Path, min_severity: Severity) -> dict[str, Any]:
    diagnostics = [
        _diagnostic_to_dict(d, path=fr.path, project_root=project_root)
        for fr in summary.files
        for d in visible_diagnostics(fr.diagnostics, min_severity=min_severity)
    ]
    return {
        "schema_version": REPORT_SCHEMA_VERSION,
        "tool": _tool(),
        "files_linted": summary.files_linted,
        "cancelled": summary.cancelled,
        "counts": {"error": summary.count("error"), "warning": summary.count("warning")},
        "diagnostics": diagnostics,
    }


def _diagnostic_to_dict(d: Diagnostic, *, path: Path, project_root: Path) -> dict[str, Any]:
    loc = d.location
    return {
        "rule_id": d.rule_id,
        "severity": d.severity,
        "file": safe_relpath(path, project_root),
        "line": loc.start_line if loc else None,
        "column": loc.start_col if loc else None,
        "end_line": loc.end_line if loc else None,
        "end_column": loc.end_col if loc else None,
        "message": d.message,
        "fixable": d.fixable,
    }


def _tool() -> dict[str, str]:
    return {"name": "StyleSentinel", "version": __version__}
