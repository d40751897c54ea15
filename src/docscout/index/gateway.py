"""Aggregates search results from the local and GitHub documentation sources."""

from __future__ import annotations

import asyncio
import logging
from pathlib import PurePosixPath
from typing import Dict, List, Mapping, Optional, Sequence

from docscout.config import DEFAULT_GETTING_STARTED_TOPICS, SUPPORTED_FRAMEWORKS, AppConfig
from docscout.index.repository import LocalRepository, RemoteRepository, SourceRepository
from docscout.index.scoring import validate_framework
from docscout.models import GettingStarted, SearchPage, SearchQuery, SearchResult
from docscout.sources.github import GitHubLoader
from docscout.sources.local import DocsLoader

LOGGER = logging.getLogger(__name__)

GETTING_STARTED_TITLE = "CleanSlice Architecture"
RULES_TOKEN = "rules"
BOOTSTRAP_LIMIT = 10


def dedupe_key(result: SearchResult) -> str:
    """Lowercased filename; the same file in both sources shares a key."""
    return PurePosixPath(result.path).name.lower()


def merge_results(local: Sequence[SearchResult], remote: Sequence[SearchResult]) -> List[SearchResult]:
    """Union of both result lists without duplicates, best score first.

    Local results are visited first, so a local copy always wins over a remote
    one with the same key whatever their scores.
    """
    seen: set[str] = set()
    merged: List[SearchResult] = []
    for result in [*local, *remote]:
        key = dedupe_key(result)
        if key in seen:
            continue
        seen.add(key)
        merged.append(result)
    return sorted(merged, key=lambda result: -result.score)


def paginate(results: Sequence[SearchResult], *, limit: int, offset: int) -> SearchPage:
    limit = max(0, limit)
    offset = max(0, offset)
    return SearchPage(
        results=list(results[offset : offset + limit]),
        total=len(results),
        limit=limit,
        offset=offset,
    )


def _matches(result: SearchResult, keyword: str) -> bool:
    keyword = keyword.lower()
    return keyword in result.path.lower() or keyword in result.name.lower()


class KnowledgeGateway:
    """Fans queries out to both sources and merges the answers.

    The remote source is optional and never allowed to fail a query: any error
    it raises is logged and treated as an empty answer.
    """

    def __init__(
        self,
        local: SourceRepository,
        remote: Optional[SourceRepository] = None,
        *,
        supported_frameworks: Sequence[str] = SUPPORTED_FRAMEWORKS,
        getting_started_topics: Optional[Mapping[str, Sequence[str]]] = None,
        title: str = GETTING_STARTED_TITLE,
    ) -> None:
        self.local = local
        self.remote = remote
        self.supported_frameworks = tuple(supported_frameworks)
        self.getting_started_topics: Dict[str, tuple[str, ...]] = {
            name: tuple(keywords)
            for name, keywords in (getting_started_topics or DEFAULT_GETTING_STARTED_TOPICS).items()
        }
        self.title = title

    async def search(self, query: SearchQuery) -> SearchPage:
        if query.framework:
            validate_framework(query.framework, self.supported_frameworks)

        local_results, remote_results = await asyncio.gather(
            self.local.search(query),
            self._remote_search(query),
        )
        merged = merge_results(local_results, remote_results)
        return paginate(merged, limit=query.limit, offset=query.offset)

    async def categories(self) -> List[str]:
        local_categories, remote_categories = await asyncio.gather(
            self.local.categories(),
            self._remote_categories(),
        )
        return sorted(set(local_categories) | set(remote_categories))

    async def read_document(self, path: str) -> Optional[str]:
        """Full text of ``path``, local copy first; ``None`` when neither source has it."""
        content = await self.local.read(path)
        if content:
            return content
        if self.remote is None:
            return None
        try:
            return await self.remote.read(path)
        except Exception as exc:
            LOGGER.warning("Failed to load document from GitHub: %s (%s)", path, exc)
            return None

    async def rescan(self) -> None:
        await self.local.rescan()
        if self.remote is None:
            return
        try:
            await self.remote.rescan()
        except Exception as exc:
            LOGGER.warning("GitHub rescan failed, remote source will retry on next request: %s", exc)

    def warm_up(self) -> None:
        """Start loading the remote source in the background, if it supports that."""
        starter = getattr(self.remote, "start_background_init", None)
        if starter is not None:
            starter()

    async def aclose(self) -> None:
        closer = getattr(self.remote, "aclose", None)
        if closer is not None:
            await closer()

    async def getting_started(self) -> GettingStarted:
        page = await self.search(
            SearchQuery(text="get-started", category="quickstart", limit=BOOTSTRAP_LIMIT)
        )
        rules = next((result for result in page.results if _matches(result, RULES_TOKEN)), None)
        if rules is not None:
            content = await self.read_document(rules.path)
            return GettingStarted(title=self.title, overview=content or "\n\n".join(rules.snippets))

        fallback = await self.search(
            SearchQuery(phase="initialization", category="quickstart", limit=BOOTSTRAP_LIMIT)
        )
        sections = {
            name: self._topic_text(fallback.results, keywords)
            for name, keywords in self.getting_started_topics.items()
        }
        overview = sections.get("overview") or next((text for text in sections.values() if text), "")
        return GettingStarted(title=self.title, overview=overview, sections=sections)

    @staticmethod
    def _topic_text(results: Sequence[SearchResult], keywords: Sequence[str]) -> str:
        for keyword in keywords:
            match = next((result for result in results if _matches(result, keyword)), None)
            if match is not None:
                return "\n\n".join(match.snippets)
        return ""

    async def _remote_search(self, query: SearchQuery) -> List[SearchResult]:
        if self.remote is None:
            return []
        try:
            return await self.remote.search(query)
        except Exception as exc:
            LOGGER.warning("GitHub search failed, using local results only: %s", exc)
            return []

    async def _remote_categories(self) -> List[str]:
        if self.remote is None:
            return []
        try:
            return await self.remote.categories()
        except Exception as exc:
            LOGGER.warning("GitHub categories unavailable: %s", exc)
            return []


def build_gateway(config: AppConfig) -> KnowledgeGateway:
    """Wire loaders and repositories for ``config``.

    Raises :class:`~docscout.errors.DocsPathNotFoundError` when no local docs
    root can be found.
    """
    local = LocalRepository(
        DocsLoader(config.resolve_docs_path()),
        supported_frameworks=config.supported_frameworks,
    )
    remote = None
    if config.github_enabled:
        loader = GitHubLoader(
            config.github_repo,
            config.github_branch,
            token=config.github_token,
            cache_ttl=config.cache_ttl,
            timeout=config.http_timeout,
        )
        remote = RemoteRepository(loader, supported_frameworks=config.supported_frameworks)
    return KnowledgeGateway(
        local,
        remote,
        supported_frameworks=config.supported_frameworks,
        getting_started_topics=config.getting_started_topics,
    )
