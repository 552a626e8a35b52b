"""Command-line entry point for the transaction tracker client.

Settings come from the environment (see ``Settings``); each command builds
its own API client and closes it before returning.
"""

import asyncio
import json
from collections.abc import Coroutine
from pathlib import Path
from typing import Annotated, Any

import typer

from tracker.api.client import ApiClient
from tracker.api.exceptions import ApiError
from tracker.api.portfolio_service import PortfolioService
from tracker.api.transaction_service import HistoryQuery, TransactionService
from tracker.config.settings import Settings
from tracker.logging.logger import Log
from tracker.processing.exceptions import ProcessingError, TransactionImportError
from tracker.processing.processor import UploadProcessor, build_processor
from tracker.search.fuzzy import fuzzy_search

app = typer.Typer(help="Upload, review and browse portfolio transactions.", no_args_is_help=True)


def _settings() -> Settings:
    settings = Settings()
    Log.configure(settings.log_level)
    return settings


@app.command()
def upload(
    files: Annotated[list[Path], typer.Argument(help="Screenshots or statements to extract.")],
    dry_run: Annotated[bool, typer.Option(help="Extract and validate only; import nothing.")] = False,
) -> None:
    """Extract transactions from FILES and import every file whose rows validate."""
    settings = _settings()
    try:
        asyncio.run(_upload(settings, files, dry_run))
    except (ProcessingError, ApiError) as exc:
        typer.echo(f"Upload failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc


async def _upload(settings: Settings, files: list[Path], dry_run: bool) -> None:
    async with ApiClient.from_settings(settings) as client:
        processor = build_processor(settings, client)
        processor.register(files)
        await processor.process(on_navigate=lambda: typer.echo("Extraction results ready for review"))
        _print_file_states(processor)
        if dry_run:
            return
        await _import_all(processor)


def _print_file_states(processor: UploadProcessor) -> None:
    results = processor.store.extract_results
    for index, state in enumerate(processor.store.file_states):
        if index in results:
            detail = f"{results[index].transaction_count} transactions"
        else:
            detail = state.error or ""
        typer.echo(f"[{state.status.value:>10}] {state.file.name}: {detail}")


async def _import_all(processor: UploadProcessor) -> None:
    review = processor.start_review()
    imported = 0
    try:
        while not review.is_empty:
            name = review.current_file.name if review.current_file else ""
            try:
                outcome = await review.import_current()
            except TransactionImportError as exc:
                typer.echo(f"Skipped {name}: {exc}", err=True)
                for key, message in review.errors.items():
                    typer.echo(f"  {key}: {message}", err=True)
                following = processor.store.find_completed_index(review.current_file_index + 1)
                if following is None:
                    break
                review.select_file(following)
                continue
            imported += outcome.imported_count
            typer.echo(f"Imported {outcome.imported_count} transactions from {name}")
            if outcome.finished:
                break
    finally:
        review.close()
    typer.echo(f"Done: {imported} transactions imported")


@app.command()
def history(
    page: int = 1,
    page_size: int = 100,
    symbol: Annotated[list[str] | None, typer.Option(help="Filter by symbol (repeatable).")] = None,
    trade_type: Annotated[list[str] | None, typer.Option("--type", help="Filter by trade type.")] = None,
    broker: Annotated[list[str] | None, typer.Option(help="Filter by broker (repeatable).")] = None,
    timeframe: Annotated[str | None, typer.Option(help="YYYY-MM-DD or YYYY-MM-DD,YYYY-MM-DD")] = None,
    sort_by: str = "transaction_date",
    sort_order: str = "desc",
) -> None:
    """List stored transactions."""
    settings = _settings()
    query = HistoryQuery(
        page=page,
        page_size=page_size,
        symbol=symbol or [],
        type=trade_type or [],
        broker=broker or [],
        timeframe=timeframe,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    try:
        query.validate()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    async def run() -> None:
        async with ApiClient.from_settings(settings) as client:
            result = await TransactionService(client).get_transaction_history(query)
        for tx in result.transactions:
            typer.echo(
                f"{tx.transaction_date}  {tx.trade_type:<9} {tx.symbol:<8} "
                f"{tx.quantity:>12.4f} @ {tx.price:>10.4f}  {tx.amount:>12.2f} {tx.currency}"
            )
        p = result.pagination
        typer.echo(f"Page {p.page}/{p.total_pages} ({p.total_records} records)")

    _run_api(run())


@app.command()
def delete(ids: Annotated[list[str], typer.Argument(help="Transaction ids to delete.")]) -> None:
    """Delete one or more stored transactions."""
    settings = _settings()

    async def run() -> None:
        async with ApiClient.from_settings(settings) as client:
            service = TransactionService(client)
            if len(ids) == 1:
                deleted = await service.delete_transaction(ids[0])
            else:
                deleted = await service.delete_transactions(ids)
        typer.echo(f"Deleted {len(deleted)} transactions")

    _run_api(run())


@app.command()
def portfolio(
    symbol: Annotated[str | None, typer.Option(help="Show one holding instead of the summary.")] = None,
) -> None:
    """Print the portfolio summary, or one holding's basic figures, as JSON."""
    settings = _settings()

    async def run() -> None:
        async with ApiClient.from_settings(settings) as client:
            service = PortfolioService(client)
            data = await (service.get_holding_basic_info(symbol) if symbol else service.get_summary())
        typer.echo(json.dumps(data, indent=2, default=str))

    _run_api(run())


@app.command()
def search(
    query: str,
    option: Annotated[list[str], typer.Option(help="Candidate value (repeatable).")],
) -> None:
    """Rank candidate values against QUERY."""
    settings = _settings()
    for match in fuzzy_search(query, option, lambda value: value, limit=settings.fuzzy_search_limit):
        typer.echo(match)


def _run_api(coro: Coroutine[Any, Any, None]) -> None:
    try:
        asyncio.run(coro)
    except ApiError as exc:
        typer.echo(f"Request failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def main() -> None:
    app()


if __name__ == "__main__":
    main()
