from __future__ import annotations

import logging
from pathlib import Path

from stylesentinel.logging_utils import configure_logging
from stylesentinel.utils import safe_relpath


def test_safe_relpath_prefers_relative_posix(tmp_path: Path) -> None:
    assert safe_relpath(tmp_path / "a" / "b.scss", tmp_path) == "a/b.scss"


def test_safe_relpath_falls_back_outside_root(tmp_path: Path) -> None:
    other = Path("/elsewhere/site.css")
    assert safe_relpath(other, tmp_path) == other.as_posix()


def test_configure_logging_levels() -> None:
    configure_logging(verbose=True, quiet=False)
    assert logging.getLogger().level == logging.DEBUG
    configure_logging(verbose=False, quiet=True)
    assert logging.getLogger().level == logging.WARNING
    configure_logging(verbose=False, quiet=False)
    assert logging.getLogger().level == logging.INFO
