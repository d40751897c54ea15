"""Keyword-in-context snippet extraction."""

from __future__ import annotations

from typing import List, Optional, Tuple

from docscout.utils.text import first_paragraph, split_words, strip_frontmatter

MAX_SNIPPETS = 3
SNIPPET_WINDOW = 150
FALLBACK_MAX_CHARS = 300
MAX_MATCHES = 10
# Share of the window in which a newline is used as a cut point.
EDGE_RATIO = 0.3
ELLIPSIS = "..."


def first_paragraph_snippet(text: str) -> str:
    snippet = first_paragraph(text, max_chars=FALLBACK_MAX_CHARS)
    if snippet:
        return snippet
    body = strip_frontmatter(text).strip() or text.strip()
    if body:
        return body[:FALLBACK_MAX_CHARS]
    return text[:FALLBACK_MAX_CHARS]


def _find_ranges(text: str, terms: List[str], window: int) -> List[Tuple[int, int]]:
    lowered = text.lower()
    ranges: List[Tuple[int, int]] = []
    for term in terms:
        pos = 0
        while pos < len(lowered) and len(ranges) < MAX_MATCHES:
            idx = lowered.find(term, pos)
            if idx == -1:
                break
            ranges.append((max(0, idx - window), min(len(text), idx + len(term) + window)))
            pos = idx + len(term)
    return ranges


def merge_ranges(ranges: List[Tuple[int, int]]) -> List[Tuple[int, int]]:
    """Merge ranges that overlap or touch, returned in start order."""
    merged: List[Tuple[int, int]] = []
    for start, end in sorted(ranges):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def _cut(text: str, start: int, end: int, window: int) -> str:
    piece = text[start:end]
    if start > 0:
        newline = piece.find("\n")
        if newline != -1 and newline < window * EDGE_RATIO:
            piece = piece[newline + 1 :]
        else:
            piece = ELLIPSIS + piece
    if end < len(text):
        newline = piece.rfind("\n")
        if newline != -1 and newline > len(piece) * (1 - EDGE_RATIO):
            piece = piece[:newline]
        else:
            piece = piece + ELLIPSIS
    return piece.strip()


def extract_snippets(
    text: str,
    query: Optional[str] = None,
    *,
    max_snippets: int = MAX_SNIPPETS,
    window: int = SNIPPET_WINDOW,
) -> List[str]:
    """Return up to ``max_snippets`` excerpts of ``text`` around ``query`` matches.

    The full phrase is searched first; individual words are used only when the
    phrase never occurs. Without a query, or without any match, a single
    snippet built from the first paragraph is returned.
    """
    phrase = (query or "").lower().strip()
    if not phrase:
        return [first_paragraph_snippet(text)]

    terms = [phrase] if phrase in text.lower() else split_words(phrase)
    ranges = _find_ranges(text, terms, window)
    snippets = [
        snippet
        for snippet in (_cut(text, start, end, window) for start, end in merge_ranges(ranges))
        if snippet
    ][:max_snippets]
    return snippets or [first_paragraph_snippet(text)]
