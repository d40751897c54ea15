"""Loader for markdown documentation stored on the local filesystem."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from docscout.ingestion.markdown import extract_metadata
from docscout.models import ScannedDocument
from docscout.utils.files import iter_markdown_paths

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LocalSnapshot:
    """Immutable view of one completed scan."""

    documents: tuple[ScannedDocument, ...] = ()
    contents: Mapping[str, str] = field(default_factory=dict)


class DocsLoader:
    """Scans a docs directory and keeps an in-memory index of its markdown files.

    Every scan builds a fresh :class:`LocalSnapshot` and swaps it in under a
    lock, so readers see either the previous index or the new one.
    """

    def __init__(self, base_path: Path, *, scan: bool = True) -> None:
        self.base_path = Path(base_path)
        self._snapshot = LocalSnapshot()
        self._lock = threading.Lock()
        if scan:
            self.rescan()

    @property
    def snapshot(self) -> LocalSnapshot:
        with self._lock:
            return self._snapshot

    def documents(self) -> tuple[ScannedDocument, ...]:
        return self.snapshot.documents

    def categories(self) -> list[str]:
        return sorted({doc.category for doc in self.documents() if doc.category})

    def content(self, path: str) -> Optional[str]:
        """Text captured for ``path`` by the last scan."""
        return self.snapshot.contents.get(path)

    def read(self, path: str) -> Optional[str]:
        """Read a document from disk, or ``None`` when it does not exist."""
        full_path = self._resolve(path)
        if full_path is None or not full_path.is_file():
            return None
        try:
            return full_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.error("Failed to load document at %s: %s", full_path, exc)
            return None

    def rescan(self) -> int:
        snapshot = self._scan()
        with self._lock:
            self._snapshot = snapshot
        LOGGER.info("Indexed %d local documents from %s", len(snapshot.documents), self.base_path)
        return len(snapshot.documents)

    def _scan(self) -> LocalSnapshot:
        documents: list[ScannedDocument] = []
        contents: dict[str, str] = {}
        for relative in iter_markdown_paths(self.base_path):
            path = relative.as_posix()
            text = self.read(path)
            if not text:
                LOGGER.debug("Skipping empty or unreadable document %s", path)
                continue
            documents.append(extract_metadata(path, text))
            contents[path] = text
        return LocalSnapshot(documents=tuple(documents), contents=contents)

    def _resolve(self, path: str) -> Optional[Path]:
        base = Path(os.path.realpath(self.base_path))
        candidate = Path(os.path.realpath(base / path))
        if candidate != base and base not in candidate.parents:
            LOGGER.warning("Refusing to read outside of docs root: %s", path)
            return None
        return candidate
