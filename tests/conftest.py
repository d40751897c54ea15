"""Shared fixtures for DocScout tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict

import pytest


@pytest.fixture
def write_docs(tmp_path: Path) -> Callable[[Dict[str, str]], Path]:
    """Create a docs tree under ``tmp_path`` from a mapping of relative paths."""

    def _write(files: Dict[str, str]) -> Path:
        root = tmp_path / "docs"
        root.mkdir(exist_ok=True)
        for relative, text in files.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        return root

    return _write
