"""Text helpers shared by metadata extraction and snippet building."""

from __future__ import annotations

import re
from typing import Iterable, Iterator

FRONTMATTER_RE = re.compile(r"^---\r?\n([\s\S]*?)\r?\n---")
_FRONTMATTER_BLOCK_RE = re.compile(r"^---\r?\n[\s\S]*?\r?\n---(?:\r?\n)?")


def strip_frontmatter(text: str) -> str:
    """Return ``text`` without a leading ``---`` delimited preamble."""
    return _FRONTMATTER_BLOCK_RE.sub("", text, count=1)


def first_paragraph(text: str, *, max_chars: int) -> str:
    """Join the first run of non-empty, non-heading lines after the preamble.

    The paragraph is truncated to ``max_chars`` with a trailing ellipsis.
    """
    paragraph: list[str] = []
    for line in strip_frontmatter(text).split("\n"):
        stripped = line.strip()
        if not paragraph:
            if stripped.startswith("#") or not stripped:
                continue
        elif not stripped or stripped.startswith("#"):
            break
        paragraph.append(stripped)

    joined = " ".join(paragraph)
    if len(joined) > max_chars:
        return joined[:max_chars] + "..."
    return joined


def split_words(text: str) -> list[str]:
    """Lowercase ``text`` and split it on whitespace."""
    return [word for word in text.lower().split() if word]


def iter_long_words(text: str, *, min_length: int) -> Iterator[str]:
    for word in split_words(text):
        if len(word) > min_length:
            yield word


def dedupe(items: Iterable[str]) -> tuple[str, ...]:
    """Drop repeated items while keeping first-seen order."""
    return tuple(dict.fromkeys(items))
