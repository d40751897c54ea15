"""Core DocScout data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional, Tuple

Phase = Literal["initialization", "setup", "implementation", "testing", "deployment"]
WorkingContext = Literal["api", "app", "admin", "full-stack"]

PHASES: Tuple[str, ...] = ("initialization", "setup", "implementation", "testing", "deployment")
WORKING_CONTEXTS: Tuple[str, ...] = ("api", "app", "admin", "full-stack")

DEFAULT_LIMIT = 5


class Source(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True, slots=True)
class ScannedDocument:
    """Metadata derived from one markdown document."""

    path: str
    name: str
    description: str
    category: str
    tags: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    # Blob sha for remote documents; only used to invalidate cached metadata.
    revision_id: Optional[str] = None


@dataclass(slots=True)
class SearchQuery:
    """Filters and ranking hints; every field is optional."""

    text: Optional[str] = None
    framework: Optional[str] = None
    slice_name: Optional[str] = None
    phase: Optional[str] = None
    feature: Optional[str] = None
    working_on: Optional[str] = None
    category: Optional[str] = None
    tags: Tuple[str, ...] = ()
    limit: int = DEFAULT_LIMIT
    offset: int = 0


@dataclass(slots=True)
class SearchResult:
    name: str
    path: str
    snippets: list[str]
    description: str
    category: str
    tags: list[str]
    score: int
    source: Source


@dataclass(slots=True)
class SearchPage:
    results: list[SearchResult] = field(default_factory=list)
    total: int = 0
    limit: int = DEFAULT_LIMIT
    offset: int = 0


@dataclass(slots=True)
class GettingStarted:
    title: str
    overview: str = ""
    # Sub-topic name -> text, filled when no rules document exists.
    sections: dict[str, str] = field(default_factory=dict)
