# pyright: reportUnusedCallResult=false
# ruff: noqa: A002, D415
"""Document inspection and repair commands."""

from typing import Annotated

import anyio
from cyclopts import Parameter
from rich.table import Table

from deckstore.cli._context import CLIContext, OutputFormat
from deckstore.cli._shared import fail, format_json
from deckstore.config import StoreBackend
from deckstore.documents import Collection, Item
from deckstore.exceptions import ConfigValidationError, DeckstoreError
from deckstore.repository import StudyRepository

_FormatOption = Annotated[
    OutputFormat,
    Parameter(name=["--format", "-f"], help="Output format (table, json)"),
]


def _open_repository(ctx: CLIContext) -> StudyRepository:
    if ctx.store is None and ctx.config.store.backend == StoreBackend.MEMORY:
        msg = (
            "The memory backend keeps nothing between runs; set store.backend "
            'to "http" with an endpoint and bucket'
        )
        raise ConfigValidationError(
            msg, key="store.backend", value=StoreBackend.MEMORY.value, expected="http"
        )
    return StudyRepository.from_config(ctx.config, store=ctx.store, logger=ctx.logger)


def _timestamp(document: Collection | Item) -> str:
    return document.created_at.strftime("%Y-%m-%d %H:%M")


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


def collections(owner: str, /, *, format: _FormatOption = OutputFormat.TABLE) -> None:
    """List an owner's collections with their item counts

    Args:
        owner: Owner whose collections to list.
        format: Output format (table, json).
    """
    ctx = CLIContext.get_current()

    async def _run() -> list[Collection]:
        async with _open_repository(ctx) as repository:
            return await repository.collections.list(owner)

    try:
        found = anyio.run(_run)
    except DeckstoreError as e:
        fail(e, console=ctx.error_console)

    if format == OutputFormat.JSON:
        ctx.console.out(format_json([c.model_dump(mode="json") for c in found]))
        return

    if not found:
        ctx.console.print("[dim]No collections found.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", overflow="fold")
    table.add_column("Name")
    table.add_column("Items", justify="right")
    table.add_column("Created")
    for collection in found:
        table.add_row(
            collection.id,
            collection.name,
            str(collection.item_count),
            _timestamp(collection),
        )
    ctx.console.print(table)


def items(
    owner: str,
    collection: str,
    /,
    *,
    format: _FormatOption = OutputFormat.TABLE,
) -> None:
    """List the items in a collection

    Args:
        owner: Owner of the collection.
        collection: Collection ID.
        format: Output format (table, json).
    """
    ctx = CLIContext.get_current()

    async def _run() -> list[Item]:
        async with _open_repository(ctx) as repository:
            _ = await repository.collections.get(owner, collection)
            return await repository.items.list(owner, collection)

    try:
        found = anyio.run(_run)
    except DeckstoreError as e:
        fail(e, console=ctx.error_console)

    if format == OutputFormat.JSON:
        ctx.console.out(format_json([i.model_dump(mode="json") for i in found]))
        return

    if not found:
        ctx.console.print("[dim]No items found.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Question")
    table.add_column("Answer")
    table.add_column("Difficulty")
    for item in found:
        table.add_row(item.question, item.answer, item.difficulty.value)
    ctx.console.print(table)


def recount(
    owner: str,
    collection: str | None = None,
    /,
    *,
    format: _FormatOption = OutputFormat.TABLE,
) -> None:
    """Recount item_count from the stored items

    Repairs collections whose count drifted from the items actually stored,
    for example after a crash between an item write and its count update.

    Args:
        owner: Owner of the collections.
        collection: Collection ID. Recounts every collection if omitted.
        format: Output format (table, json).
    """
    ctx = CLIContext.get_current()

    async def _run() -> list[tuple[Collection, Collection]]:
        async with _open_repository(ctx) as repository:
            if collection is None:
                targets = await repository.collections.list(owner)
            else:
                targets = [await repository.collections.get(owner, collection)]
            return [
                (before, await repository.collections.recount(owner, before.id))
                for before in targets
            ]

    try:
        results = anyio.run(_run)
    except DeckstoreError as e:
        fail(e, console=ctx.error_console)

    if format == OutputFormat.JSON:
        rows = [
            {
                "id": after.id,
                "name": after.name,
                "before": before.item_count,
                "after": after.item_count,
            }
            for before, after in results
        ]
        ctx.console.out(format_json(rows))
        return

    if not results:
        ctx.console.print("[dim]No collections found.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Collection")
    table.add_column("Before", justify="right")
    table.add_column("After", justify="right")
    for before, after in results:
        marker = "" if before.item_count == after.item_count else " [yellow]*[/yellow]"
        table.add_row(
            after.name, str(before.item_count), f"{after.item_count}{marker}"
        )
    ctx.console.print(table)
