"""Tests for the aggregation gateway."""

from __future__ import annotations

from typing import Dict, List, Optional

import httpx
import pytest

from docscout.config import AppConfig
from docscout.errors import FrameworkNotFoundError, RemoteSourceError
from docscout.index.gateway import KnowledgeGateway, build_gateway, dedupe_key, merge_results, paginate
from docscout.index.repository import LocalRepository, RemoteRepository
from docscout.models import SearchQuery, SearchResult, Source
from docscout.sources.github import GitHubLoader
from docscout.sources.local import DocsLoader


def result(path: str, score: int, source: Source = Source.LOCAL, name: Optional[str] = None) -> SearchResult:
    return SearchResult(
        name=name or path,
        path=path,
        snippets=[f"snippet of {path}"],
        description="",
        category="general",
        tags=[],
        score=score,
        source=source,
    )


class FakeRepository:
    """In-memory source used to drive the gateway."""

    def __init__(
        self,
        source: Source,
        results: Optional[List[SearchResult]] = None,
        categories: Optional[List[str]] = None,
        documents: Optional[Dict[str, str]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.source = source
        self.results = results or []
        self._categories = categories or []
        self.documents = documents or {}
        self.error = error
        self.queries: List[SearchQuery] = []
        self.rescans = 0

    async def search(self, query: SearchQuery) -> List[SearchResult]:
        self.queries.append(query)
        if self.error:
            raise self.error
        return list(self.results)

    async def categories(self) -> List[str]:
        if self.error:
            raise self.error
        return list(self._categories)

    async def read(self, path: str) -> Optional[str]:
        if self.error:
            raise self.error
        return self.documents.get(path)

    async def rescan(self) -> None:
        self.rescans += 1
        if self.error:
            raise self.error


class TestMergeHelpers:
    """Test dedupe_key, merge_results and paginate."""

    def test_dedupe_key_is_lowercased_filename(self) -> None:
        """Directories are ignored and case is folded."""
        assert dedupe_key(result("docs/00-quickstart/Rules.md", 1)) == "rules.md"

    def test_local_wins_regardless_of_score(self) -> None:
        """The local copy is kept even when the remote one scores higher."""
        local = [result("a/rules.md", 5)]
        remote = [result("docs/b/RULES.md", 50, Source.REMOTE), result("docs/other.md", 7, Source.REMOTE)]

        merged = merge_results(local, remote)

        assert [(r.path, r.source) for r in merged] == [
            ("docs/other.md", Source.REMOTE),
            ("a/rules.md", Source.LOCAL),
        ]

    def test_sort_is_stable(self) -> None:
        """Equal scores keep local-then-remote, then scan order."""
        local = [result("a.md", 5), result("b.md", 5)]
        remote = [result("c.md", 5, Source.REMOTE)]

        assert [r.path for r in merge_results(local, remote)] == ["a.md", "b.md", "c.md"]

    def test_pagination_law(self) -> None:
        """Pages have the expected size and concatenate to the full list."""
        merged = [result(f"{i}.md", 100 - i) for i in range(7)]

        for limit in (1, 2, 3, 5):
            for offset in range(0, 10):
                page = paginate(merged, limit=limit, offset=offset)
                assert len(page.results) == max(0, min(limit, 7 - offset))
                assert page.total == 7

            rebuilt = []
            for offset in range(0, 7, limit):
                rebuilt.extend(paginate(merged, limit=limit, offset=offset).results)
            assert rebuilt == merged


class TestKnowledgeGatewaySearch:
    """Test KnowledgeGateway.search."""

    @pytest.mark.asyncio
    async def test_merges_both_sources(self) -> None:
        """Both sources are queried and merged by score."""
        local = FakeRepository(Source.LOCAL, [result("a.md", 5)])
        remote = FakeRepository(Source.REMOTE, [result("docs/b.md", 9, Source.REMOTE)])
        gateway = KnowledgeGateway(local, remote)

        page = await gateway.search(SearchQuery(text="x"))

        assert [r.path for r in page.results] == ["docs/b.md", "a.md"]
        assert (page.total, page.limit, page.offset) == (2, 5, 0)
        assert local.queries and remote.queries

    @pytest.mark.asyncio
    async def test_remote_failure_is_local_only(self) -> None:
        """A failing remote source contributes nothing."""
        local = FakeRepository(Source.LOCAL, [result("a.md", 5), result("b.md", 3)], categories=["patterns"])
        remote = FakeRepository(Source.REMOTE, error=RemoteSourceError("network down"))
        gateway = KnowledgeGateway(local, remote)

        page = await gateway.search(SearchQuery(text="anything"))

        assert page.total == 2
        assert await gateway.categories() == ["patterns"]

    @pytest.mark.asyncio
    async def test_unexpected_remote_error_is_swallowed(self) -> None:
        """Any remote error, not only network ones, is absorbed."""
        local = FakeRepository(Source.LOCAL, [result("a.md", 5)])
        remote = FakeRepository(Source.REMOTE, error=RuntimeError("boom"))

        page = await KnowledgeGateway(local, remote).search(SearchQuery(text="x"))

        assert page.total == 1

    @pytest.mark.asyncio
    async def test_unknown_framework_propagates(self) -> None:
        """Caller errors are reported, not swallowed."""
        gateway = KnowledgeGateway(FakeRepository(Source.LOCAL), FakeRepository(Source.REMOTE))

        with pytest.raises(FrameworkNotFoundError):
            await gateway.search(SearchQuery(framework="angular"))

    @pytest.mark.asyncio
    async def test_offset_past_sorted_results(self) -> None:
        """limit=2, offset=2 over three results returns only the third."""
        local = FakeRepository(Source.LOCAL, [result("a.md", 9), result("b.md", 5)])
        remote = FakeRepository(Source.REMOTE, [result("docs/c.md", 7, Source.REMOTE)])
        gateway = KnowledgeGateway(local, remote)

        page = await gateway.search(SearchQuery(text="x", limit=2, offset=2))

        assert [r.path for r in page.results] == ["b.md"]
        assert (page.total, page.limit, page.offset) == (3, 2, 2)

    @pytest.mark.asyncio
    async def test_without_remote(self) -> None:
        """The remote source is optional."""
        gateway = KnowledgeGateway(FakeRepository(Source.LOCAL, [result("a.md", 1)]))

        page = await gateway.search(SearchQuery(text="x"))

        assert page.total == 1


class TestKnowledgeGatewayOther:
    """Categories, reads, rescans and the getting-started answer."""

    @pytest.mark.asyncio
    async def test_categories_union_sorted(self) -> None:
        """Categories from both sources are merged case-sensitively."""
        local = FakeRepository(Source.LOCAL, categories=["quickstart", "patterns"])
        remote = FakeRepository(Source.REMOTE, categories=["patterns", "Patterns", "deploy"])

        categories = await KnowledgeGateway(local, remote).categories()

        assert categories == ["Patterns", "deploy", "patterns", "quickstart"]

    @pytest.mark.asyncio
    async def test_read_document_prefers_local(self) -> None:
        """Local content wins; remote is the fallback; absence is None."""
        local = FakeRepository(Source.LOCAL, documents={"a.md": "local a"})
        remote = FakeRepository(Source.REMOTE, documents={"a.md": "remote a", "docs/b.md": "remote b"})
        gateway = KnowledgeGateway(local, remote)

        assert await gateway.read_document("a.md") == "local a"
        assert await gateway.read_document("docs/b.md") == "remote b"
        assert await gateway.read_document("missing.md") is None

    @pytest.mark.asyncio
    async def test_read_document_remote_error(self) -> None:
        """Remote read failures are reported as absence."""
        gateway = KnowledgeGateway(
            FakeRepository(Source.LOCAL), FakeRepository(Source.REMOTE, error=RemoteSourceError("down"))
        )

        assert await gateway.read_document("a.md") is None

    @pytest.mark.asyncio
    async def test_rescan_tolerates_remote_failure(self) -> None:
        """Both sources are rescanned; remote failures are logged."""
        local = FakeRepository(Source.LOCAL)
        remote = FakeRepository(Source.REMOTE, error=RemoteSourceError("down"))

        await KnowledgeGateway(local, remote).rescan()

        assert (local.rescans, remote.rescans) == (1, 1)

    @pytest.mark.asyncio
    async def test_getting_started_rules_document(self) -> None:
        """A rules document is returned in full."""
        local = FakeRepository(
            Source.LOCAL,
            [result("00-quickstart/rules.md", 6, name="CleanSlice Architecture Rules")],
            documents={"00-quickstart/rules.md": "# Rules\n\nFull rules text."},
        )
        gateway = KnowledgeGateway(local, FakeRepository(Source.REMOTE))

        data = await gateway.getting_started()

        assert data.title == "CleanSlice Architecture"
        assert data.overview == "# Rules\n\nFull rules text."
        assert local.queries[0].text == "get-started"
        assert local.queries[0].category == "quickstart"

    @pytest.mark.asyncio
    async def test_getting_started_fallback_sections(self) -> None:
        """Without a rules document, sub-topics are filled from the fallback query."""
        local = FakeRepository(
            Source.LOCAL,
            [
                result("00-quickstart/when-to-use.md", 8),
                result("00-quickstart/overview.md", 8),
                result("00-quickstart/backend-checklist.md", 8),
            ],
        )
        gateway = KnowledgeGateway(local)

        data = await gateway.getting_started()

        assert data.sections == {
            "overview": "snippet of 00-quickstart/overview.md",
            "when_to_use": "snippet of 00-quickstart/when-to-use.md",
            "checklist": "snippet of 00-quickstart/backend-checklist.md",
        }
        assert data.overview == "snippet of 00-quickstart/overview.md"
        assert local.queries[1].phase == "initialization"
        assert local.queries[1].category == "quickstart"

    @pytest.mark.asyncio
    async def test_getting_started_custom_topics(self) -> None:
        """The sub-topic keywords are configurable."""
        local = FakeRepository(Source.LOCAL, [result("00-quickstart/install.md", 8)])
        gateway = KnowledgeGateway(local, getting_started_topics={"install": ["setup", "install"]})

        data = await gateway.getting_started()

        assert data.sections == {"install": "snippet of 00-quickstart/install.md"}
        assert data.overview == "snippet of 00-quickstart/install.md"

    def test_warm_up_without_remote(self) -> None:
        """Warm-up is a no-op when there is nothing to warm."""
        KnowledgeGateway(FakeRepository(Source.LOCAL)).warm_up()


def github_client(files: Dict[str, str], *, fail_tree: bool = False) -> httpx.AsyncClient:
    tree = {"tree": [{"path": path, "type": "blob", "sha": path} for path in files]}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.github.com":
            if fail_tree:
                raise httpx.ConnectError("network down", request=request)
            return httpx.Response(200, json=tree)
        path = request.url.path.split("/", 4)[4]
        return httpx.Response(200, text=files[path]) if path in files else httpx.Response(404)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


LOCAL_CORPUS = {
    "00-quickstart/rules.md": "# CleanSlice Architecture Rules\n\nAlways use singular slice names.\n",
    "00-quickstart/overview.md": "# Overview\n\nWhat CleanSlice is.\n",
    "01-patterns/gateway.md": "# Gateway\n\nGateways wrap repositories.\n",
    "01-patterns/mapper.md": "# Mapper\n\nMappers convert types.\n",
    "02-testing/unit.md": "# Unit Tests\n\nTest slices in isolation.\n",
    "03-deploy/docker.md": "# Docker\n\nShip containers.\n",
    "intro.md": "# Intro\n\nWelcome to the docs.\n",
}

REMOTE_CORPUS = {
    "docs/guides/rules.md": "# Old Rules\n\nOutdated remote rules.\n",
    "docs/guides/remote-only.md": "# Remote Guide\n\nOnly on GitHub, mentions get-started.\n",
}


class TestEndToEnd:
    """Gateway over real loaders with a faked GitHub."""

    def make_gateway(self, root, *, fail_tree: bool = False) -> KnowledgeGateway:
        local = LocalRepository(DocsLoader(root))
        remote = RemoteRepository(GitHubLoader("acme/docs", client=github_client(REMOTE_CORPUS, fail_tree=fail_tree)))
        return KnowledgeGateway(local, remote)

    @pytest.mark.asyncio
    async def test_rules_document_deduplicated_local_wins(self, write_docs) -> None:
        """Only the local rules document is returned, with local content."""
        root = write_docs(LOCAL_CORPUS)
        gateway = self.make_gateway(root)

        page = await gateway.search(SearchQuery(text="get-started", category="quickstart", limit=10))

        rules = [r for r in page.results if dedupe_key(r) == "rules.md"]
        assert len(rules) == 1
        assert rules[0].source is Source.LOCAL
        assert rules[0].path == "00-quickstart/rules.md"
        assert any(r.path == "docs/guides/remote-only.md" for r in page.results)

        data = await gateway.getting_started()
        assert data.overview == LOCAL_CORPUS["00-quickstart/rules.md"]
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_remote_tree_failure(self, write_docs) -> None:
        """A network error on the listing leaves local results intact."""
        root = write_docs(LOCAL_CORPUS)
        gateway = self.make_gateway(root, fail_tree=True)
        local_only = KnowledgeGateway(LocalRepository(DocsLoader(root)))

        page = await gateway.search(SearchQuery(text="anything slices", limit=50))
        expected = await local_only.search(SearchQuery(text="anything slices", limit=50))

        assert page.total == expected.total > 0
        assert await gateway.categories() == ["deploy", "general", "patterns", "quickstart", "testing"]

    @pytest.mark.asyncio
    async def test_category_filter(self, write_docs) -> None:
        """A category query returns exactly that category's documents."""
        gateway = self.make_gateway(write_docs(LOCAL_CORPUS), fail_tree=True)

        page = await gateway.search(SearchQuery(category="patterns"))

        assert sorted(r.path for r in page.results) == ["01-patterns/gateway.md", "01-patterns/mapper.md"]
        assert {r.category for r in page.results} == {"patterns"}

    @pytest.mark.asyncio
    async def test_rescan_idempotent(self, write_docs) -> None:
        """Two rescans of an unchanged corpus give identical answers."""
        gateway = self.make_gateway(write_docs(LOCAL_CORPUS))
        query = SearchQuery(text="rules", limit=50)

        await gateway.rescan()
        first = await gateway.search(query)
        await gateway.rescan()
        second = await gateway.search(query)

        assert first == second


class TestBuildGateway:
    """Test build_gateway factory."""

    def test_local_only(self, write_docs) -> None:
        """Disabling GitHub leaves no remote source."""
        config = AppConfig(docs_path=write_docs(LOCAL_CORPUS), github_enabled=False)

        gateway = build_gateway(config)

        assert gateway.remote is None
        assert isinstance(gateway.local, LocalRepository)

    def test_with_remote(self, write_docs) -> None:
        """The GitHub loader is configured from the app config."""
        config = AppConfig(docs_path=write_docs(LOCAL_CORPUS), github_repo="acme/x", github_token="t", cache_ttl=5)

        gateway = build_gateway(config)

        assert isinstance(gateway.remote, RemoteRepository)
        assert gateway.remote.loader.repo == "acme/x"
        assert gateway.remote.loader.token == "t"
