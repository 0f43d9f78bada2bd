from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from stylesentinel.config import StyleSentinelConfig
from stylesentinel.engine.nodes import SourceMap, StyleNode, Stylesheet
from stylesentinel.engine.types import Location, Span, Syntax
from stylesentinel.suppressions import NO_SUPPRESSIONS, Suppressions


@dataclass(frozen=True, slots=True)
class FileContext:
    """Everything a rule may read about the file being linted. Never mutated."""

    path: Path
    relative_path: str
    syntax: Syntax
    text: str
    source: SourceMap
    stylesheet: Stylesheet
    config: StyleSentinelConfig = field(default_factory=StyleSentinelConfig)
    suppressions: Suppressions = NO_SUPPRESSIONS
    is_color_file: bool = False

    def location(self, span: Span) -> Location:
        start_line, start_col = self.source.position(span.start)
        end_line, end_col = self.source.position(max(span.start, span.end))
        return Location(path=self.path, start_line=start_line, start_col=start_col, end_line=end_line, end_col=end_col)


@dataclass(frozen=True, slots=True)
class NestingContext:
    """
    Ambient state for one visited node.

    `depth` counts enclosing rule/at-rule blocks (top-level nodes have depth
    0); `rule_depth` counts enclosing style rules only. `indent` is the
    whitespace the node is expected to start with.
    """

    depth: int = 0
    rule_depth: int = 0
    in_id_selector: bool = False
    in_media: bool = False
    parent: StyleNode | None = None
    siblings: tuple[StyleNode, ...] = ()
    indent: str = ""
