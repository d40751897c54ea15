"""Utility helpers for working with files."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

DOCUMENT_SUFFIXES = frozenset({".md"})
IGNORED_DIRECTORIES = frozenset({"node_modules", "__pycache__", "venv"})


def is_document_path(path: str | Path) -> bool:
    return Path(path).suffix.lower() in DOCUMENT_SUFFIXES


def _is_ignored_dir(name: str) -> bool:
    return name.startswith(".") or name in IGNORED_DIRECTORIES


def iter_markdown_paths(root: Path) -> Iterator[Path]:
    """Yield markdown paths under ``root`` relative to it, in a stable order.

    Hidden and dependency directories are not descended into.
    """
    root = Path(root)
    if not root.is_dir():
        return
    yield from _walk(root, Path())


def _walk(root: Path, relative: Path) -> Iterator[Path]:
    current = root / relative
    for child in sorted(current.iterdir(), key=lambda item: item.name):
        if child.is_dir():
            if not _is_ignored_dir(child.name):
                yield from _walk(root, relative / child.name)
        elif child.is_file() and is_document_path(child):
            yield relative / child.name
