from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from stylesentinel.config import (
    ConfigError,
    StyleSentinelConfig,
    load_config,
    load_override_file,
    path_is_ignored,
)
from stylesentinel.engine.types import Syntax

logger = logging.getLogger(__name__)

DEFAULT_SKIP_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".vscode",
    ".venv",
    "venv",
    "node_modules",
    "bower_components",
    "dist",
    "build",
    ".sass-cache",
    "__pycache__",
}

SYNTAX_BY_EXTENSION: dict[str, Syntax] = {
    ".css": "css",
    ".scss": "scss",
}
UNSUPPORTED_EXTENSIONS = {".sass"}

STYLESENTINEL_WORKERS_ENV = "STYLESENTINEL_WORKERS"
DEFAULT_MAX_WORKERS = 32


@dataclass(frozen=True, slots=True)
class ScanTarget:
    project_root: Path
    scan_paths: tuple[Path, ...]
    config: StyleSentinelConfig


def syntax_for_path(path: Path) -> Syntax | None:
    return SYNTAX_BY_EXTENSION.get(path.suffix.lower())


def resolve_worker_count(
    raw_value: str | None,
    *,
    default: int | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> int:
    """
    Resolve a safe worker count from an env var-style string.

    - None/""/"auto" fall back to the default (2 x CPU)
    - Values <= 0 or non-integers fall back to the default
    - Values above `max_workers` are clamped
    """

    cpu = os.cpu_count() or 1
    resolved_default = min(max(1, default if default is not None else (cpu * 2)), max_workers)
    if raw_value is None:
        return resolved_default

    normalized = raw_value.strip().lower()
    if not normalized or normalized in {"auto", "default"}:
        return resolved_default

    try:
        workers = int(normalized)
    except ValueError:
        return resolved_default

    if workers <= 0:
        return resolved_default
    return min(workers, max_workers)


def worker_count_from_env(*, default: int | None = None) -> int:
    return resolve_worker_count(os.environ.get(STYLESENTINEL_WORKERS_ENV), default=default)


def prepare_target(scan_paths: Iterable[Path], *, config_file: Path | None = None) -> ScanTarget:
    """
    Resolve the project root and load configuration.

    The project root is the nearest directory holding a `pyproject.toml`,
    searched upwards from the first scan path. `config_file` is layered on
    top of the `[tool.stylesentinel]` table.
    """

    resolved = tuple(p.resolve() for p in scan_paths)
    if not resolved:
        resolved = (Path.cwd().resolve(),)

    for path in resolved:
        if not path.exists():
            raise ConfigError(f"Path does not exist: {path}")

    project_root = _detect_project_root(resolved[0])
    config = load_config(project_root)
    if config_file is not None:
        config = load_override_file(config_file, base=config)

    logger.debug("project root: %s", project_root)
    return ScanTarget(project_root=project_root, scan_paths=resolved, config=config)


def discover_files(target: ScanTarget) -> list[Path]:
    """
    Collect `.css`/`.scss` files in the order the scan paths were given.

    Files found by walking a directory are sorted by path; a file reached
    through more than one scan path is kept at its first position.

    Raises `ConfigError` when any `.sass` (indented syntax) file is found.
    """

    root = target.project_root
    ignore_patterns = target.config.ignore.paths

    files: dict[Path, None] = {}
    for scan_path in target.scan_paths:
        if scan_path.is_file():
            candidates: Iterable[Path] = [scan_path]
        else:
            candidates = _walk(scan_path)

        for path in candidates:
            suffix = path.suffix.lower()
            if suffix in UNSUPPORTED_EXTENSIONS:
                raise ConfigError(f"{path}: the indented .sass syntax is not supported; convert it to .scss.")
            if suffix not in SYNTAX_BY_EXTENSION:
                continue
            if path_is_ignored(path, project_root=root, ignore_patterns=ignore_patterns):
                continue
            files.setdefault(path, None)

    discovered = list(files)
    logger.debug("discovered %d stylesheet(s)", len(discovered))
    return discovered


def _walk(directory: Path) -> Iterable[Path]:
    for dirpath, dirnames, filenames in os.walk(directory, topdown=True):
        dirnames[:] = sorted(d for d in dirnames if d not in DEFAULT_SKIP_DIRS)
        base = Path(dirpath)
        for filename in sorted(filenames):
            yield base / filename


def _detect_project_root(start: Path) -> Path:
    base = start if start.is_dir() else start.parent
    for candidate in [base, *base.parents]:
        if (candidate / "pyproject.toml").exists():
            return candidate
    return base
