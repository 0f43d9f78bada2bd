from __future__ import annotations

from pathlib import Path

from stylesentinel.config import StyleSentinelConfig
from stylesentinel.engine.context import FileContext
from stylesentinel.engine.nodes import SourceMap
from stylesentinel.engine.parser import parse_stylesheet
from stylesentinel.engine.types import Diagnostic
from stylesentinel.linter import lint_text
from stylesentinel.scanner import syntax_for_path
from stylesentinel.suppressions import parse_suppressions


def make_file_ctx(content: str, *, relpath: str = "style.scss", config: StyleSentinelConfig | None = None) -> FileContext:
    config = config or StyleSentinelConfig()
    path = Path(relpath)
    syntax = syntax_for_path(path)
    assert syntax is not None
    source = SourceMap(content)
    stylesheet = parse_stylesheet(content, syntax=syntax)
    return FileContext(
        path=path,
        relative_path=relpath,
        syntax=syntax,
        text=content,
        source=source,
        stylesheet=stylesheet,
        config=config,
        suppressions=parse_suppressions(stylesheet.comments, source),
        is_color_file=config.is_color_file(path),
    )


def lint_source(
    content: str,
    *,
    relpath: str = "style.scss",
    config: StyleSentinelConfig | None = None,
) -> tuple[Diagnostic, ...]:
    path = Path(relpath)
    syntax = syntax_for_path(path)
    assert syntax is not None
    return lint_text(content, path=path, syntax=syntax, config=config).diagnostics


def ids(diagnostics) -> list[str]:
    return [d.rule_id for d in diagnostics]
