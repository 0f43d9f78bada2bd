from __future__ import annotations

import fnmatch
import json
import re
import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal, cast

from stylesentinel.engine.types import Severity


class ConfigError(ValueError):
    """Raised when configuration is invalid; fatal for the whole run."""


RuleId = str
RuleGroup = str
RuleSetting = Literal["off", "warning", "error"]
BorderReset = Literal["none", "zero"]

_RULE_ID_RE = re.compile(r"^[A-Z][0-9]{2,}$")

DEFAULT_BORDER_RESET: BorderReset = "none"
DEFAULT_MAX_NESTING_DEPTH = 3
DEFAULT_INDENT_WIDTH = 2
DEFAULT_COLOR_FILES: tuple[str, ...] = ("_colors.scss", "colors.scss", "_colours.scss", "colours.scss")


# Keep this list in config (not in rules) so configuration can be validated
# without importing the rule set. Tests assert it matches the registry.
DEFAULT_RULE_GROUPS: dict[RuleGroup, tuple[RuleId, ...]] = {
    "formatting": ("F01", "F02", "F03", "F04", "F05", "F06", "F07"),
    "selectors": ("S01", "S02", "S03"),
    "ordering": ("O01",),
    "naming": ("N01",),
    "colors": ("C01", "C02"),
    "values": ("V01",),
}
DEFAULT_RULE_GROUPS["all"] = tuple(
    rule_id
    for group in ("formatting", "selectors", "ordering", "naming", "colors", "values")
    for rule_id in DEFAULT_RULE_GROUPS[group]
)
KNOWN_RULE_IDS = frozenset(DEFAULT_RULE_GROUPS["all"])

_TABLE_KEYS = frozenset(
    {
        "border-reset",
        "border_reset",
        "max-nesting-depth",
        "max_nesting_depth",
        "indent-width",
        "indent_width",
        "color-files",
        "color_files",
        "ignore",
        "rules",
    }
)


@dataclass(frozen=True, slots=True)
class RulesConfig:
    disable: tuple[RuleId, ...] = ()
    severity_overrides: Mapping[RuleId, Severity] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True, slots=True)
class IgnoreConfig:
    paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class StyleSentinelConfig:
    border_reset: BorderReset = DEFAULT_BORDER_RESET
    max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH
    indent_width: int = DEFAULT_INDENT_WIDTH
    color_files: tuple[str, ...] = DEFAULT_COLOR_FILES
    rules: RulesConfig = field(default_factory=RulesConfig)
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)

    def is_color_file(self, path: Path) -> bool:
        name = path.name
        return any(fnmatch.fnmatch(name, pattern) for pattern in self.color_files)


def load_config(project_dir: Path | str = ".") -> StyleSentinelConfig:
    """
    Load configuration from `pyproject.toml` within `project_dir`.

    If no file / no `[tool.stylesentinel]` table exists, returns defaults.
    """

    pyproject_path = Path(project_dir) / "pyproject.toml"
    if not pyproject_path.exists():
        return StyleSentinelConfig()

    try:
        data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {pyproject_path}: {exc}") from exc

    tool_table = data.get("tool", {})
    if not isinstance(tool_table, dict):
        return StyleSentinelConfig()
    table = tool_table.get("stylesentinel", {})
    if not isinstance(table, dict) or not table:
        return StyleSentinelConfig()

    return _parse_table(table, base=StyleSentinelConfig(), prefix="tool.stylesentinel")


def load_override_file(path: Path, *, base: StyleSentinelConfig) -> StyleSentinelConfig:
    """
    Layer a rule-set override file on top of `base`.

    `.toml` files use the same keys as `[tool.stylesentinel]`. `.json` files
    are either an object with a `rules` key or a bare `{rule_id: setting}`
    mapping.
    """

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    suffix = path.suffix.lower()
    if suffix == ".json":
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: top level must be an object.")
        if "rules" not in data:
            data = {"rules": data}
    elif suffix == ".toml":
        try:
            data = tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    else:
        raise ConfigError(f"Unsupported config file type: {path.name} (use .toml or .json).")

    return _parse_table(data, base=base, prefix=path.name)


def _parse_table(table: dict[str, Any], *, base: StyleSentinelConfig, prefix: str) -> StyleSentinelConfig:
    for key in table:
        if key not in _TABLE_KEYS:
            raise ConfigError(f"`{prefix}.{key}` is not a known setting.")

    config = base

    border_reset = table.get("border-reset", table.get("border_reset"))
    if border_reset is not None:
        if not isinstance(border_reset, str) or border_reset.strip().lower() not in {"none", "zero", "0"}:
            raise ConfigError(f"`{prefix}.border-reset` must be one of: none, zero.")
        normalized = border_reset.strip().lower()
        config = replace(config, border_reset=cast(BorderReset, "zero" if normalized == "0" else normalized))

    depth = table.get("max-nesting-depth", table.get("max_nesting_depth"))
    if depth is not None:
        if not isinstance(depth, int) or isinstance(depth, bool) or depth < 1:
            raise ConfigError(f"`{prefix}.max-nesting-depth` must be an integer >= 1.")
        config = replace(config, max_nesting_depth=depth)

    indent = table.get("indent-width", table.get("indent_width"))
    if indent is not None:
        if not isinstance(indent, int) or isinstance(indent, bool) or not (1 <= indent <= 8):
            raise ConfigError(f"`{prefix}.indent-width` must be an integer between 1 and 8.")
        config = replace(config, indent_width=indent)

    color_files = table.get("color-files", table.get("color_files"))
    if color_files is not None:
        config = replace(config, color_files=_validate_str_list(color_files, field_name=f"{prefix}.color-files"))

    ignore = table.get("ignore")
    if ignore is not None:
        if not isinstance(ignore, dict):
            raise ConfigError(f"`{prefix}.ignore` must be a table.")
        paths = _validate_str_list(ignore.get("paths", []), field_name=f"{prefix}.ignore.paths")
        config = replace(config, ignore=IgnoreConfig(paths=paths))

    rules = table.get("rules")
    if rules is not None:
        config = replace(config, rules=_parse_rules(rules, base=config.rules, field_name=f"{prefix}.rules"))

    return config


def _parse_rules(value: Any, *, base: RulesConfig, field_name: str) -> RulesConfig:
    if not isinstance(value, dict):
        raise ConfigError(f"`{field_name}` must be a table.")

    disabled: list[RuleId] = list(base.disable)
    severities: dict[RuleId, Severity] = dict(base.severity_overrides)

    extra_disable = _validate_str_list(value.get("disable", []), field_name=f"{field_name}.disable")
    for token in extra_disable:
        disabled.extend(_expand_token(token, field_name=f"{field_name}.disable"))

    for raw_key, raw_setting in value.items():
        if raw_key == "disable":
            continue
        key_field = f"{field_name}.{raw_key}"
        rule_ids = _expand_token(str(raw_key), field_name=key_field)
        setting = _validate_setting(raw_setting, field_name=key_field)
        for rule_id in rule_ids:
            if setting == "off":
                disabled.append(rule_id)
                severities.pop(rule_id, None)
                continue
            if rule_id in disabled:
                disabled = [r for r in disabled if r != rule_id]
            severities[rule_id] = cast(Severity, setting)

    return RulesConfig(
        disable=tuple(dict.fromkeys(disabled)),
        severity_overrides=MappingProxyType(severities),
    )


def _expand_token(token: str, *, field_name: str) -> tuple[RuleId, ...]:
    stripped = token.strip()
    group = stripped.lower().replace("-", "_")
    if group in DEFAULT_RULE_GROUPS:
        return DEFAULT_RULE_GROUPS[group]

    rule_id = stripped.upper()
    if not _RULE_ID_RE.match(rule_id):
        groups = ", ".join(sorted(DEFAULT_RULE_GROUPS))
        raise ConfigError(
            f"`{field_name}`: {token!r} is neither a rule group ({groups}) nor a rule id like F01."
        )
    if rule_id not in KNOWN_RULE_IDS:
        raise ConfigError(f"`{field_name}`: unknown rule id {rule_id!r}.")
    return (rule_id,)


def _validate_setting(value: Any, *, field_name: str) -> RuleSetting:
    if not isinstance(value, str):
        raise ConfigError(f"`{field_name}` must be a string.")
    normalized = value.strip().lower()
    if normalized == "warn":
        normalized = "warning"
    if normalized not in {"off", "warning", "error"}:
        raise ConfigError(f"`{field_name}` must be one of: off, warning, error.")
    return cast(RuleSetting, normalized)


def _validate_str_list(value: Any, *, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or any(not isinstance(v, str) for v in value):
        raise ConfigError(f"`{field_name}` must be a list of strings.")
    return tuple(v.strip() for v in value)


def compute_enabled_rule_ids(
    config: StyleSentinelConfig,
    *,
    available_rule_ids: Iterable[RuleId] | None = None,
) -> set[RuleId]:
    """
    Resolve the enabled rule set: everything except `rules.disable`.

    If `available_rule_ids` is provided, the result is intersected with it.
    """

    enabled = set(DEFAULT_RULE_GROUPS["all"])
    if available_rule_ids is not None:
        enabled = set(available_rule_ids)
    enabled.difference_update(config.rules.disable)
    return enabled


def path_is_ignored(path: Path, *, project_root: Path, ignore_patterns: Iterable[str]) -> bool:
    """
    Return True if `path` matches any ignore patterns.

    Patterns are evaluated against the POSIX-style relative path from `project_root`.

    Supported patterns:
    - Directory prefixes: "vendor/" matches "vendor/..." under root.
    - Globs without slashes: "*.min.css" matches basenames.
    - Globs with slashes: "assets/**/legacy/*.scss" matches full relative paths.
    """

    try:
        relative = path.resolve().relative_to(project_root.resolve())
    except (ValueError, OSError, RuntimeError):
        # If the path isn't under root (or can't be resolved), don't ignore it implicitly.
        return False

    rel_posix = relative.as_posix()
    basename = relative.name

    for raw_pattern in ignore_patterns:
        pattern = raw_pattern.strip().replace("\\", "/")
        if not pattern:
            continue
        if pattern.startswith("./"):
            pattern = pattern[2:]

        if pattern.endswith("/"):
            if rel_posix.startswith(pattern):
                return True
            continue

        if "/" in pattern:
            if fnmatch.fnmatch(rel_posix, pattern):
                return True
        else:
            if fnmatch.fnmatch(basename, pattern) or fnmatch.fnmatch(rel_posix, pattern):
                return True

    return False
