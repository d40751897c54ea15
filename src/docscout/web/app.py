"""FastAPI application exposing DocScout search."""

from __future__ import annotations

import logging
from typing import Any, List, Literal

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from docscout.config import AppConfig
from docscout.errors import DocScoutError
from docscout.index.gateway import KnowledgeGateway, build_gateway
from docscout.models import DEFAULT_LIMIT, GettingStarted, SearchPage, SearchQuery

LOGGER = logging.getLogger(__name__)

MAX_LIMIT = 50

app = FastAPI(title="DocScout", version="0.1.0")

_gateway: KnowledgeGateway | None = None


class SearchPayload(BaseModel):
    query: str | None = None
    framework: str | None = None
    slice_name: str | None = None
    phase: Literal["initialization", "setup", "implementation", "testing", "deployment"] | None = None
    feature: str | None = None
    working_on: Literal["api", "app", "admin", "full-stack"] | None = None
    category: str | None = None
    tags: List[str] = []
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    def to_query(self) -> SearchQuery:
        return SearchQuery(
            text=(self.query or "").strip() or None,
            framework=self.framework,
            slice_name=self.slice_name,
            phase=self.phase,
            feature=self.feature,
            working_on=self.working_on,
            category=self.category,
            tags=tuple(self.tags),
            limit=max(1, min(self.limit, MAX_LIMIT)),
            offset=max(0, self.offset),
        )


def get_gateway() -> KnowledgeGateway:
    global _gateway
    if _gateway is None:
        _gateway = build_gateway(AppConfig.from_env())
    return _gateway


def _http_error(exc: DocScoutError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    # A missing docs root is fatal: refuse to start rather than serve an empty index.
    get_gateway().warm_up()


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if _gateway is not None:
        await _gateway.aclose()


@app.post("/search")
async def search_documents(
    payload: SearchPayload, gateway: KnowledgeGateway = Depends(get_gateway)
) -> SearchPage:
    try:
        return await gateway.search(payload.to_query())
    except DocScoutError as exc:
        raise _http_error(exc) from exc


@app.get("/categories")
async def list_categories(gateway: KnowledgeGateway = Depends(get_gateway)) -> dict[str, List[str]]:
    return {"categories": await gateway.categories()}


@app.get("/get-started")
async def get_started(gateway: KnowledgeGateway = Depends(get_gateway)) -> GettingStarted:
    return await gateway.getting_started()


@app.get("/documents/{path:path}")
async def read_document(path: str, gateway: KnowledgeGateway = Depends(get_gateway)) -> dict[str, str]:
    content = await gateway.read_document(path)
    if content is None:
        raise HTTPException(status_code=404, detail=f"Document not found: {path}")
    return {"path": path, "content": content}


@app.post("/rescan")
async def rescan(gateway: KnowledgeGateway = Depends(get_gateway)) -> dict[str, Any]:
    await gateway.rescan()
    return {"status": "ok", "categories": await gateway.categories()}
