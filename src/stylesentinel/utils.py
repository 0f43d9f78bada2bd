from __future__ import annotations

from pathlib import Path


def safe_relpath(path: Path, root: Path) -> str:
    """
    Return a POSIX-style path for reporting, relative to `root` when possible.

    Falls back to `path.as_posix()` for paths outside the root or paths that
    cannot be resolved.
    """

    try:
        resolved_path = path.resolve()
        resolved_root = root.resolve()
    except OSError:
        return path.as_posix()

    try:
        return resolved_path.relative_to(resolved_root).as_posix()
    except ValueError:
        return path.as_posix()
