import asyncio
import json
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from itemstore.application import ItemRepository
from itemstore.config import StoreConfig
from itemstore.domain.exceptions import EmptyAggregateError, ItemNotFoundError, ItemStoreError
from itemstore.logger import get_logger, setup_logger

load_dotenv()

T = TypeVar("T")

cli = typer.Typer(
    name="itemstore",
    help="Cached JSON record store with live invalidation on external edits",
    epilog="""
    Examples:
    $ itemstore list --q desk --limit 5
    $ itemstore add --name "Standing Desk" --price 1199 --category Furniture
    $ itemstore stats
    """,
    add_completion=False,
)

console = Console()


def _config(data_path: Optional[str], watch: Optional[bool] = None, create_missing: Optional[bool] = None) -> StoreConfig:
    config = StoreConfig.from_env(data_path=data_path, watch=watch, create_missing=create_missing)
    setup_logger(log_file=config.log_file, log_level=config.log_level)
    return config


def _run(config: StoreConfig, action: Callable[[ItemRepository], Awaitable[T]]) -> T:
    async def runner() -> T:
        async with ItemRepository(config) as repo:
            return await action(repo)

    try:
        return asyncio.run(runner())
    except ItemNotFoundError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=2)
    except ItemStoreError as e:
        get_logger("main").error(f"Command failed: {e}")
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)


DataPathOption = typer.Option(None, "--data", "-d", help="Items file (default: ITEMSTORE_DATA_PATH or data/items.json)")


@cli.command("list")
def list_items(
    q: Optional[str] = typer.Option(None, "--q", "-q", help="Case-insensitive name filter"),
    page: int = typer.Option(1, "--page", min=1),
    limit: int = typer.Option(10, "--limit", min=1),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
    data: Optional[str] = DataPathOption,
):
    """List items, optionally filtered by name, one page at a time."""
    result = _run(_config(data, watch=False), lambda repo: repo.service.list_items(q=q, page=page, limit=limit))

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    table = Table(title=f"Items (page {result.pagination.page}/{max(result.pagination.total_pages, 1)})")
    for column in ("id", "name", "category", "price"):
        table.add_column(column)
    for item in result.items:
        table.add_row(*(str(item.get(column, "")) for column in ("id", "name", "category", "price")))
    console.print(table)
    typer.echo(f"{result.pagination.total} matching item(s)")


@cli.command()
def show(
    item_id: int = typer.Argument(..., help="Item id"),
    data: Optional[str] = DataPathOption,
):
    """Show one item as JSON."""
    item = _run(_config(data, watch=False), lambda repo: repo.service.get_item(item_id))
    typer.echo(json.dumps(item, indent=2, ensure_ascii=False))


@cli.command()
def add(
    name: str = typer.Option(..., "--name", help="Item name"),
    price: float = typer.Option(..., "--price", help="Item price"),
    category: Optional[str] = typer.Option(None, "--category", help="Item category"),
    data: Optional[str] = DataPathOption,
):
    """Create an item with a generated id."""
    payload: dict[str, Any] = {"name": name, "price": price, "category": category}
    item = _run(_config(data, watch=False, create_missing=True), lambda repo: repo.service.create_item(payload))
    typer.echo(f"✅ Created item {item['id']}")
    typer.echo(json.dumps(item, indent=2, ensure_ascii=False))


@cli.command()
def stats(data: Optional[str] = DataPathOption):
    """Print item count and average price."""

    async def action(repo: ItemRepository) -> Optional[dict]:
        try:
            return (await repo.service.stats()).to_dict()
        except EmptyAggregateError:
            return None

    result = _run(_config(data, watch=False), action)
    if result is None:
        typer.echo("No items yet.")
        return
    typer.echo(json.dumps(result, indent=2))


@cli.command()
def status(data: Optional[str] = DataPathOption):
    """Print cache and watcher diagnostics."""

    async def action(repo: ItemRepository) -> dict:
        await repo.cache.read()
        return repo.status()

    typer.echo(json.dumps(_run(_config(data), action), indent=2))


@cli.command()
def watch(
    interval: float = typer.Option(1.0, "--interval", min=0.1, help="Seconds between token checks"),
    duration: Optional[float] = typer.Option(None, "--duration", help="Stop after this many seconds"),
    data: Optional[str] = DataPathOption,
):
    """Follow the items file and print stats whenever it changes."""
    logger = get_logger("main.watch")

    async def action(repo: ItemRepository) -> None:
        if repo.cache.watcher_degraded:
            typer.echo(f"⚠️  {repo.cache.degraded_reason}; external edits will not be seen", err=True)

        deadline = None if duration is None else time.monotonic() + duration
        last_token = object()
        while deadline is None or time.monotonic() < deadline:
            token = repo.cache.freshness_token()
            if token != last_token:
                last_token = token
                try:
                    typer.echo(json.dumps((await repo.service.stats()).to_dict()))
                except EmptyAggregateError:
                    typer.echo("No items yet.")
                except ItemStoreError as e:
                    logger.warning(f"Stats unavailable: {e}")
                    typer.echo(f"❌ {e}", err=True)
            await asyncio.sleep(interval)

    try:
        _run(_config(data, watch=True), action)
    except KeyboardInterrupt:
        typer.echo("Stopped.")


def run() -> None:
    cli()


if __name__ == "__main__":
    run()
