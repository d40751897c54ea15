"""Search over the documents of a single source."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from docscout.config import SUPPORTED_FRAMEWORKS
from docscout.index.scoring import score_document, validate_framework
from docscout.index.snippets import extract_snippets
from docscout.models import ScannedDocument, SearchQuery, SearchResult, Source
from docscout.sources.github import GitHubLoader
from docscout.sources.local import DocsLoader

LOGGER = logging.getLogger(__name__)


class SourceRepository(Protocol):
    """What the gateway needs from a document source."""

    source: Source

    async def search(self, query: SearchQuery) -> List[SearchResult]: ...

    async def categories(self) -> List[str]: ...

    async def read(self, path: str) -> Optional[str]: ...

    async def rescan(self) -> None: ...


def rank_documents(
    query: SearchQuery,
    documents: Iterable[ScannedDocument],
    *,
    supported_frameworks: Sequence[str] = SUPPORTED_FRAMEWORKS,
) -> List[Tuple[ScannedDocument, int]]:
    """Score every document and keep the positive ones, best first.

    Equal scores keep scan order.
    """
    scored = []
    for doc in documents:
        score = score_document(query, doc, supported_frameworks=supported_frameworks)
        if score > 0:
            scored.append((doc, score))
    return sorted(scored, key=lambda pair: -pair[1])


def build_result(doc: ScannedDocument, score: int, snippets: List[str], source: Source) -> SearchResult:
    return SearchResult(
        name=doc.name,
        path=doc.path,
        snippets=snippets,
        description=doc.description,
        category=doc.category,
        tags=list(doc.tags),
        score=score,
        source=source,
    )


class LocalRepository:
    source = Source.LOCAL

    def __init__(self, loader: DocsLoader, *, supported_frameworks: Sequence[str] = SUPPORTED_FRAMEWORKS) -> None:
        self.loader = loader
        self.supported_frameworks = tuple(supported_frameworks)

    async def search(self, query: SearchQuery) -> List[SearchResult]:
        return await asyncio.to_thread(self.search_sync, query)

    def search_sync(self, query: SearchQuery) -> List[SearchResult]:
        if query.framework:
            validate_framework(query.framework, self.supported_frameworks)

        snapshot = self.loader.snapshot
        results = []
        for doc, score in rank_documents(query, snapshot.documents, supported_frameworks=self.supported_frameworks):
            text = snapshot.contents.get(doc.path, "")
            results.append(build_result(doc, score, extract_snippets(text, query.text), self.source))
        return results

    async def categories(self) -> List[str]:
        return self.loader.categories()

    async def read(self, path: str) -> Optional[str]:
        return self.loader.read(path)

    async def rescan(self) -> None:
        await asyncio.to_thread(self.loader.rescan)


class RemoteRepository:
    source = Source.REMOTE

    def __init__(self, loader: GitHubLoader, *, supported_frameworks: Sequence[str] = SUPPORTED_FRAMEWORKS) -> None:
        self.loader = loader
        self.supported_frameworks = tuple(supported_frameworks)

    async def search(self, query: SearchQuery) -> List[SearchResult]:
        if query.framework:
            validate_framework(query.framework, self.supported_frameworks)

        documents = await self.loader.documents()
        results = []
        for doc, score in rank_documents(query, documents, supported_frameworks=self.supported_frameworks):
            text = await self.loader.read(doc.path)
            if text:
                snippets = extract_snippets(text, query.text)
            else:
                LOGGER.debug("No content available for %s, using description as snippet", doc.path)
                snippets = [doc.description] if doc.description else []
            results.append(build_result(doc, score, snippets, self.source))
        return results

    async def categories(self) -> List[str]:
        return await self.loader.categories()

    async def read(self, path: str) -> Optional[str]:
        return await self.loader.read(path)

    async def rescan(self) -> None:
        await self.loader.rescan()

    def start_background_init(self) -> asyncio.Task[None]:
        return self.loader.start_background_init()

    async def aclose(self) -> None:
        await self.loader.aclose()
