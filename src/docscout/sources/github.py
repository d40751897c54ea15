"""Loader for markdown documentation hosted in a GitHub repository.

The repository tree is listed through the GitHub REST API and file bodies are
pulled from ``raw.githubusercontent.com`` on demand. Both are kept in TTL
caches. Metadata is extracted lazily the first time a document is needed and
reused until the blob sha in the tree listing changes.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional

import httpx

from docscout.errors import RemoteSourceError
from docscout.ingestion.markdown import extract_metadata
from docscout.models import ScannedDocument
from docscout.utils.cache import TTLCache
from docscout.utils.files import is_document_path

LOGGER = logging.getLogger(__name__)

TREE_URL = "https://api.github.com/repos/{repo}/git/trees/{branch}?recursive=1"
RAW_URL = "https://raw.githubusercontent.com/{repo}/{branch}/{path}"
ROOT_SEGMENT = "docs"
_TREE_KEY = "tree"


class LoaderState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class TreeEntry:
    path: str
    sha: str


def filter_tree(items: Iterable[Any]) -> tuple[TreeEntry, ...]:
    """Keep markdown blobs under ``docs/`` or at the repository root."""
    entries = []
    for item in items:
        if not isinstance(item, dict):
            continue
        path = item.get("path") or ""
        if item.get("type") != "blob" or not is_document_path(path):
            continue
        if path.startswith(f"{ROOT_SEGMENT}/") or "/" not in path:
            entries.append(TreeEntry(path=path, sha=item.get("sha") or ""))
    return tuple(entries)


class GitHubLoader:
    """Fetches and caches markdown documents from ``owner/repo`` at ``branch``."""

    max_concurrent_fetches = 8

    def __init__(
        self,
        repo: str,
        branch: str = "main",
        *,
        token: Optional[str] = None,
        cache_ttl: float = 3600,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.repo = repo
        self.branch = branch
        self.token = token
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._tree_cache: TTLCache[tuple[TreeEntry, ...]] = TTLCache(cache_ttl, clock=clock)
        self._content_cache: TTLCache[str] = TTLCache(cache_ttl, clock=clock)
        self._metadata: Dict[str, ScannedDocument] = {}
        self._entries: tuple[TreeEntry, ...] = ()
        self._state = LoaderState.UNINITIALIZED
        self._init_lock = asyncio.Lock()
        self._fetch_locks: Dict[str, asyncio.Lock] = {}
        self._fetch_users: Dict[str, int] = {}
        self._background: Optional[asyncio.Task[None]] = None

    @property
    def state(self) -> LoaderState:
        return self._state

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def start_background_init(self) -> asyncio.Task[None]:
        """Begin initializing without waiting for it; failures are only logged."""
        self._background = asyncio.get_running_loop().create_task(self._initialize_quietly())
        return self._background

    async def _initialize_quietly(self) -> None:
        try:
            await self.initialize()
        except Exception as exc:
            LOGGER.warning("GitHubLoader: failed to initialize, will retry on first request: %s", exc)

    async def initialize(self) -> None:
        """Fetch the tree listing once; concurrent callers share a single attempt."""
        if self._state is LoaderState.READY:
            return
        async with self._init_lock:
            if self._state is LoaderState.READY:
                return
            self._state = LoaderState.INITIALIZING
            try:
                entries = await self._fetch_tree()
            except Exception:
                self._state = LoaderState.FAILED
                raise
            self._install(entries)
            LOGGER.info("GitHubLoader: found %d documents in %s@%s", len(entries), self.repo, self.branch)

    async def rescan(self) -> None:
        """Drop every cache and rebuild the listing from scratch."""
        async with self._init_lock:
            self._tree_cache.clear()
            self._content_cache.clear()
            self._state = LoaderState.INITIALIZING
            try:
                entries = await self._fetch_tree()
            except Exception:
                self._entries = ()
                self._metadata = {}
                self._state = LoaderState.FAILED
                raise
            self._metadata = {}
            self._install(entries)

    async def entries(self) -> tuple[TreeEntry, ...]:
        await self.initialize()
        if self._tree_cache.get(_TREE_KEY) is None:
            await self._refresh_tree()
        return self._entries

    async def documents(self) -> list[ScannedDocument]:
        entries = await self.entries()
        semaphore = asyncio.Semaphore(self.max_concurrent_fetches)

        async def load(entry: TreeEntry) -> Optional[ScannedDocument]:
            async with semaphore:
                return await self._document_for(entry)

        loaded = await asyncio.gather(*(load(entry) for entry in entries))
        return [doc for doc in loaded if doc is not None]

    async def categories(self) -> list[str]:
        documents = await self.documents()
        return sorted({doc.category for doc in documents if doc.category})

    async def read(self, path: str) -> Optional[str]:
        """Return the body of ``path``, from cache when fresh; ``None`` if unavailable."""
        cached = self._content_cache.get(path)
        if cached is not None:
            LOGGER.debug("GitHubLoader: cache hit for %s", path)
            return cached

        lock = self._fetch_locks.setdefault(path, asyncio.Lock())
        self._fetch_users[path] = self._fetch_users.get(path, 0) + 1
        try:
            async with lock:
                cached = self._content_cache.get(path)
                if cached is not None:
                    return cached
                content = await self._fetch_raw(path)
                if content:
                    self._content_cache.set(path, content)
                return content
        finally:
            # Drop the lock once nobody holds or waits on it.
            self._fetch_users[path] -= 1
            if not self._fetch_users[path]:
                del self._fetch_users[path]
                del self._fetch_locks[path]

    def _install(self, entries: tuple[TreeEntry, ...]) -> None:
        self._tree_cache.set(_TREE_KEY, entries)
        self._entries = entries
        self._state = LoaderState.READY

    async def _refresh_tree(self) -> None:
        async with self._init_lock:
            if self._tree_cache.get(_TREE_KEY) is not None:
                return
            try:
                entries = await self._fetch_tree()
            except RemoteSourceError as exc:
                LOGGER.warning("GitHubLoader: tree refresh failed, keeping previous listing: %s", exc)
                return
            self._install(entries)

    async def _document_for(self, entry: TreeEntry) -> Optional[ScannedDocument]:
        cached = self._metadata.get(entry.path)
        if cached is not None and cached.revision_id == entry.sha:
            return cached
        content = await self.read(entry.path)
        if not content:
            return None
        document = extract_metadata(entry.path, content, root_segment=ROOT_SEGMENT, revision_id=entry.sha)
        self._metadata[entry.path] = document
        return document

    def _headers(self, *, api: bool) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if api:
            headers["Accept"] = "application/vnd.github.v3+json"
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    async def _fetch_tree(self) -> tuple[TreeEntry, ...]:
        url = TREE_URL.format(repo=self.repo, branch=self.branch)
        try:
            response = await self.client.get(url, headers=self._headers(api=True))
        except httpx.HTTPError as exc:
            raise RemoteSourceError(f"GitHub tree request failed: {exc}") from exc

        if response.status_code != 200:
            raise RemoteSourceError(f"GitHub API error: {response.status_code} {response.reason_phrase}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteSourceError(f"GitHub API returned invalid JSON: {exc}") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("tree") or [], list):
            raise RemoteSourceError("GitHub API returned an unexpected tree payload")
        return filter_tree(payload.get("tree") or [])

    async def _fetch_raw(self, path: str) -> Optional[str]:
        url = RAW_URL.format(repo=self.repo, branch=self.branch, path=path)
        try:
            response = await self.client.get(url, headers=self._headers(api=False))
        except httpx.HTTPError as exc:
            LOGGER.error("GitHubLoader: failed to fetch content for %s: %s", path, exc)
            return None

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            LOGGER.error("GitHubLoader: raw content error %s for %s", response.status_code, path)
            return None
        return response.text
