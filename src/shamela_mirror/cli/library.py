"""
shamela-mirror CLI - Catalog commands.

Browse the local mirror. These commands read persisted snapshots only;
run `shamela-mirror sync master` first to populate the catalog.
"""

import asyncio
from typing import Annotated

import typer
from rich.table import Table
from rich.tree import Tree

from shamela_mirror.cli import common
from shamela_mirror.cli.common import console, handle_error
from shamela_mirror.core.library.catalog import SearchScope
from shamela_mirror.core.outline import TitleNode


def books(
    search: Annotated[
        str | None,
        typer.Option("--search", "-s", help="Substring of the name or bibliography"),
    ] = None,
    category: Annotated[
        int | None,
        typer.Option("--category", "-c", help="Only books in this category id"),
    ] = None,
    author: Annotated[
        int | None,
        typer.Option("--author", "-a", help="Only books by this author id"),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Maximum number of books to show"),
    ] = 50,
) -> None:
    """
    List books in the local catalog, ordered by date.

    Examples:
        shamela-mirror books --search "صحيح"
        shamela-mirror books --category 3 --limit 10
    """
    try:
        catalog = common.get_catalog(common.get_config())
        page = catalog.books(search=search, category=category, author=author, limit=limit)
    except Exception as e:
        handle_error(e, "books")
        raise typer.Exit(1)

    if not page.data:
        console.print("[yellow]No books found[/yellow]")
        return

    table = Table(title=f"Books ({len(page.data)} of {page.total})")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Author")
    table.add_column("Category", style="dim")
    table.add_column("Local", justify="center")
    for b in page.data:
        table.add_row(
            str(b.id),
            b.name or "",
            b.author or "",
            b.category or "",
            "✓" if b.is_downloaded else "",
        )
    console.print(table)


def search(
    query: Annotated[str, typer.Argument(help="Text to search for (at least 2 characters)")],
    scope: Annotated[
        SearchScope,
        typer.Option("--type", "-t", help="What to search: all, books or authors"),
    ] = SearchScope.ALL,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum hits per kind")] = 20,
) -> None:
    """
    Search book and author names.

    Examples:
        shamela-mirror search البخاري
        shamela-mirror search --type authors ابن
    """
    try:
        results = common.get_catalog(common.get_config()).search(query, scope=scope, limit=limit)
    except Exception as e:
        handle_error(e, "search")
        raise typer.Exit(1)

    if results.is_empty():
        console.print(f"[yellow]No results for '{query}'[/yellow]")
        return

    table = Table(title=f"Results for '{query}'")
    table.add_column("Kind", style="dim")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Details")
    for hit in results.books:
        table.add_row("book", str(hit.id), hit.name or "", hit.author or "")
    for hit in results.authors:
        table.add_row("author", str(hit.id), hit.name or "", hit.death_text or "")
    console.print(table)


async def _outline(book_id: int) -> list[TitleNode]:
    async with common.get_service(common.get_config()) as mirror:
        return mirror.orchestrator.get_outline(book_id)


def _add_nodes(tree: Tree, nodes: list[TitleNode]) -> None:
    # Explicit stack keeps deep outlines off the Python call stack
    stack = [(tree, node) for node in reversed(nodes)]
    while stack:
        parent, node = stack.pop()
        label = node.content or f"#{node.id}"
        if node.page_id is not None:
            label += f" [dim](page {node.page_id})[/dim]"
        branch = parent.add(label)
        stack.extend((branch, child) for child in reversed(node.children))


def outline(
    book_id: Annotated[int, typer.Argument(help="Id of a downloaded book")],
) -> None:
    """
    Show the table of contents of a downloaded book.

    Examples:
        shamela-mirror outline 6387
    """
    try:
        nodes = asyncio.run(_outline(book_id))
    except Exception as e:
        handle_error(e, "outline")
        raise typer.Exit(1)

    if not nodes:
        console.print(
            f"[yellow]Book {book_id} has no outline. "
            f"Download it with: shamela-mirror sync book {book_id}[/yellow]"
        )
        return

    tree = Tree(f"[bold]Book {book_id}[/bold]")
    _add_nodes(tree, nodes)
    console.print(tree)


def stats() -> None:
    """
    Show catalog table sizes and the number of downloaded books.

    Examples:
        shamela-mirror stats
    """
    try:
        library_stats = common.get_catalog(common.get_config()).stats()
    except Exception as e:
        handle_error(e, "stats")
        raise typer.Exit(1)

    table = Table(title="Library Statistics", show_header=False, box=None)
    table.add_column("Metric", style="cyan", no_wrap=True, width=20)
    table.add_column("Count", justify="right", style="bold")
    table.add_row("Categories", str(library_stats.categories))
    table.add_row("Authors", str(library_stats.authors))
    table.add_row("Books", str(library_stats.books))
    table.add_row("Downloaded books", str(library_stats.downloaded_books))
    console.print(table)
