"""Command line interface for DocScout."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from docscout.config import AppConfig
from docscout.errors import DocScoutError
from docscout.index.gateway import KnowledgeGateway, build_gateway
from docscout.models import PHASES, WORKING_CONTEXTS, SearchQuery

T = TypeVar("T")

console = Console()
app = typer.Typer(help="DocScout - search local and GitHub markdown documentation")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load_config(docs: Optional[Path], local_only: bool) -> AppConfig:
    config = AppConfig.from_env()
    if docs is not None:
        config.docs_path = docs
    if local_only:
        config.github_enabled = False
    return config


def _check_choice(value: Optional[str], choices: tuple[str, ...], option: str) -> Optional[str]:
    if value is not None and value not in choices:
        raise typer.BadParameter(f"must be one of: {', '.join(choices)}", param_hint=option)
    return value


def _run(config: AppConfig, operation: Callable[[KnowledgeGateway], Awaitable[T]]) -> T:
    try:
        gateway = build_gateway(config)
    except DocScoutError as exc:
        raise typer.BadParameter(exc.message) from exc

    async def runner() -> T:
        try:
            return await operation(gateway)
        finally:
            await gateway.aclose()

    try:
        return asyncio.run(runner())
    except DocScoutError as exc:
        raise typer.BadParameter(exc.message) from exc


DocsOption = typer.Option(None, "--docs", help="Local docs directory (defaults to DOCS_PATH or discovery)")
LocalOnlyOption = typer.Option(False, "--local-only", help="Skip the GitHub source")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Verbose logging")


@app.command()
def search(
    query: Optional[str] = typer.Argument(None, help="Query text"),
    framework: Optional[str] = typer.Option(None, help="Framework identifier (nestjs, nuxt)"),
    slice_name: Optional[str] = typer.Option(None, "--slice", help="Slice name"),
    phase: Optional[str] = typer.Option(None, help="Development phase"),
    feature: Optional[str] = typer.Option(None, help="Feature name"),
    working_on: Optional[str] = typer.Option(None, "--working-on", help="api, app, admin or full-stack"),
    category: Optional[str] = typer.Option(None, help="Category filter"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", help="Tag filter, may be repeated"),
    limit: int = typer.Option(5, min=1, help="Number of results to display"),
    offset: int = typer.Option(0, min=0, help="Results to skip"),
    docs: Optional[Path] = DocsOption,
    local_only: bool = LocalOnlyOption,
    verbose: bool = VerboseOption,
) -> None:
    """Search the documentation."""
    _setup_logging(verbose)
    phase = _check_choice(phase, PHASES, "--phase")
    working_on = _check_choice(working_on, WORKING_CONTEXTS, "--working-on")
    search_query = SearchQuery(
        text=query,
        framework=framework,
        slice_name=slice_name,
        phase=phase,
        feature=feature,
        working_on=working_on,
        category=category,
        tags=tuple(tags or ()),
        limit=limit,
        offset=offset,
    )
    page = _run(_load_config(docs, local_only), lambda gateway: gateway.search(search_query))
    if not page.results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Source")
    table.add_column("Document")
    table.add_column("Path")
    table.add_column("Snippet")

    for result in page.results:
        snippet = result.snippets[0].replace("\n", " ") if result.snippets else ""
        table.add_row(str(result.score), result.source.value, result.name, result.path, snippet[:180])

    console.print(table)
    console.print(f"Showing {len(page.results)} of {page.total} (offset {page.offset})")


@app.command()
def categories(
    docs: Optional[Path] = DocsOption,
    local_only: bool = LocalOnlyOption,
    verbose: bool = VerboseOption,
) -> None:
    """List documentation categories."""
    _setup_logging(verbose)
    names = _run(_load_config(docs, local_only), lambda gateway: gateway.categories())
    if not names:
        console.print("[yellow]No categories found.[/yellow]")
        return
    for name in names:
        console.print(f"- [bold]{name}[/bold]")


@app.command("get-started")
def get_started(
    docs: Optional[Path] = DocsOption,
    local_only: bool = LocalOnlyOption,
    verbose: bool = VerboseOption,
) -> None:
    """Print the getting-started rules."""
    _setup_logging(verbose)
    data = _run(_load_config(docs, local_only), lambda gateway: gateway.getting_started())
    console.print(f"[bold]{data.title}[/bold]")
    if data.overview:
        console.print(Markdown(data.overview))
    for name, text in data.sections.items():
        if text and text != data.overview:
            console.print(f"\n[bold]{name.replace('_', ' ').title()}[/bold]")
            console.print(Markdown(text))


@app.command()
def read(
    path: str = typer.Argument(..., help="Document path relative to its source"),
    docs: Optional[Path] = DocsOption,
    local_only: bool = LocalOnlyOption,
    verbose: bool = VerboseOption,
) -> None:
    """Print the full text of a document."""
    _setup_logging(verbose)
    content = _run(_load_config(docs, local_only), lambda gateway: gateway.read_document(path))
    if content is None:
        console.print(f"[red]Document not found: {path}[/red]")
        raise typer.Exit(code=1)
    console.print(content, markup=False, highlight=False)


@app.command()
def scan(
    docs: Optional[Path] = DocsOption,
    local_only: bool = LocalOnlyOption,
    verbose: bool = VerboseOption,
) -> None:
    """Rescan every source and summarize the categories found."""
    _setup_logging(verbose)

    async def rescan_and_count(gateway: KnowledgeGateway) -> Dict[str, int]:
        await gateway.rescan()
        counts = {}
        for name in await gateway.categories():
            page = await gateway.search(SearchQuery(category=name, limit=1))
            counts[name] = page.total
        return counts

    counts = _run(_load_config(docs, local_only), rescan_and_count)
    console.print(f"Found {len(counts)} categories: {', '.join(counts)}")
    if not counts:
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Category")
    table.add_column("Documents", justify="right")
    for name, total in counts.items():
        table.add_row(name, str(total))
    console.print(table)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the web API."""
    try:
        import uvicorn
    except ImportError as exc:
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    console.print(f"Starting web API on http://{host}:{port}")
    uvicorn.run(
        "docscout.web.app:app",
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
