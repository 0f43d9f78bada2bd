from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest


@pytest.fixture()
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    def _write(relpath: str, content: str) -> Path:
        path = tmp_path / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def _no_worker_env(monkeypatch) -> None:
    monkeypatch.delenv("STYLESENTINEL_WORKERS", raising=False)
