"""Metadata extraction for markdown documents.

Everything here is a pure function of the document path and text. Malformed
input never raises; each field degrades to the weakest value that can still be
derived (an empty description, the ``general`` category, a name built from the
filename).
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Union

from docscout.models import ScannedDocument
from docscout.utils.text import (
    FRONTMATTER_RE,
    dedupe,
    first_paragraph,
    iter_long_words,
    strip_frontmatter,
)

DESCRIPTION_MAX_CHARS = 200
DEFAULT_CATEGORY = "general"

_KEY_VALUE_RE = re.compile(r"^(\w+):\s*(.+)$")
_NUMERIC_PREFIX_RE = re.compile(r"^\d+-")
_H1_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_HEADING_RE = re.compile(r"^#{1,3}\s+(.+)$", re.MULTILINE)
_QUOTES_RE = re.compile(r"['\"]")

FrontmatterValue = Union[str, List[str]]


def parse_frontmatter(text: str) -> Dict[str, FrontmatterValue]:
    """Parse a flat ``key: value`` / ``key: [a, b]`` preamble."""
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}

    frontmatter: Dict[str, FrontmatterValue] = {}
    for line in match.group(1).split("\n"):
        kv = _KEY_VALUE_RE.match(line)
        if not kv:
            continue
        key, value = kv.group(1), kv.group(2).strip()
        if value.startswith("[") and value.endswith("]"):
            items = (_QUOTES_RE.sub("", item).strip() for item in value[1:-1].split(","))
            frontmatter[key] = [item for item in items if item]
        else:
            frontmatter[key] = _QUOTES_RE.sub("", value).strip()
    return frontmatter


def first_heading(text: str) -> Optional[str]:
    match = _H1_RE.search(strip_frontmatter(text))
    return match.group(1).strip() if match else None


def strip_numeric_prefix(segment: str) -> str:
    return _NUMERIC_PREFIX_RE.sub("", segment)


def format_name(filename: str) -> str:
    """Turn ``01-getting_started`` into ``Getting Started``."""
    spaced = re.sub(r"[-_]", " ", filename)
    spaced = re.sub(r"^\d+\s*", "", spaced)
    return " ".join(word[:1].upper() + word[1:] for word in spaced.split(" "))


def _directory_parts(path: str, root_segment: Optional[str]) -> List[str]:
    parts = PurePosixPath(path).parts[:-1]
    if root_segment and parts and parts[0] == root_segment:
        parts = parts[1:]
    return list(parts)


def extract_category(path: str, *, root_segment: Optional[str] = None) -> str:
    """Top-level directory without its ordering prefix, else ``general``."""
    parts = _directory_parts(path, root_segment)
    if not parts:
        return DEFAULT_CATEGORY
    return strip_numeric_prefix(parts[0]) or DEFAULT_CATEGORY


def extract_tags(
    path: str,
    frontmatter: Dict[str, FrontmatterValue],
    *,
    root_segment: Optional[str] = None,
) -> tuple[str, ...]:
    tags: List[str] = []
    declared = frontmatter.get("tags")
    if isinstance(declared, list):
        tags.extend(tag.lower() for tag in declared)

    for part in PurePosixPath(path).parts:
        cleaned = strip_numeric_prefix(part)
        if cleaned.lower().endswith(".md"):
            cleaned = cleaned[:-3]
        if not cleaned or cleaned.lower() == "readme" or cleaned == root_segment:
            continue
        tags.append(cleaned.lower())
    return dedupe(tags)


def extract_keywords(name: str, description: str, text: str) -> tuple[str, ...]:
    keywords: List[str] = list(iter_long_words(name, min_length=2))
    keywords.extend(iter_long_words(description, min_length=3))
    for heading in _HEADING_RE.findall(text):
        keywords.extend(iter_long_words(heading, min_length=3))
    return dedupe(keywords)


def extract_metadata(
    path: str,
    text: str,
    *,
    root_segment: Optional[str] = None,
    revision_id: Optional[str] = None,
) -> ScannedDocument:
    """Build a :class:`ScannedDocument` from a source-relative path and its text.

    ``root_segment`` names a leading directory (``docs`` for GitHub sources)
    that is ignored for category and tag derivation.
    """
    frontmatter = parse_frontmatter(text)
    filename = PurePosixPath(path).name
    if filename.lower().endswith(".md"):
        filename = filename[:-3]

    title = frontmatter.get("title")
    name = (title if isinstance(title, str) and title else None) or first_heading(text) or format_name(filename)

    summary = frontmatter.get("description")
    description = (
        (summary if isinstance(summary, str) and summary else None)
        or first_paragraph(text, max_chars=DESCRIPTION_MAX_CHARS)
    )

    return ScannedDocument(
        path=path,
        name=name,
        description=description,
        category=extract_category(path, root_segment=root_segment),
        tags=extract_tags(path, frontmatter, root_segment=root_segment),
        keywords=extract_keywords(name, description, text),
        revision_id=revision_id,
    )
