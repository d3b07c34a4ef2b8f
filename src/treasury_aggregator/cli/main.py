"""CLI for the treasury aggregator."""

import json
from enum import StrEnum

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.traceback import install

from treasury_aggregator.config import load_settings
from treasury_aggregator.core.models import CollectionMeta, NftCollection, TokenHolding
from treasury_aggregator.core.outcome import Outcome
from treasury_aggregator.logging_setup import configure_logging
from treasury_aggregator.services import Services
from treasury_aggregator.transport.parallel import run_parallel

install(show_locals=False)

app = typer.Typer(
    name="treasury-aggregator",
    help="Aggregate Chia and Base wallet holdings, NFT collections and token prices",
    add_completion=False,
)

console = Console()


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


class HoldingKind(StrEnum):
    TOKENS = "tokens"
    NFTS = "nfts"
    FULL = "full"


def _with_spinner(description: str, call):
    with Progress(
        SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console, transient=True
    ) as progress:
        progress.add_task(description, total=None)
        return call()


def _print_json(body: dict | list) -> None:
    console.print_json(json.dumps(body))


def _print_notes(outcome: Outcome) -> None:
    if outcome.error:
        console.print(f"[bold red]Error:[/bold red] {outcome.error}")
    for warning in outcome.warnings:
        console.print(f"[yellow]warning:[/yellow] {warning}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int = typer.Option(3000, "--port", "-p", help="Port to listen on"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable Flask debug mode"),
) -> None:
    """Serve every endpoint locally under /api/<name>."""
    from treasury_aggregator.web import create_app

    create_app().run(host=host, port=port, debug=debug)


@app.command()
def prices(
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
) -> None:
    """Resolve prices for the configured market asset list."""
    settings = load_settings()
    configure_logging(settings.log_level)

    with Services.create(settings=settings) as services:
        outcome = _with_spinner(
            f"Resolving {len(settings.market_asset_ids)} asset prices...",
            lambda: services.prices.resolve(settings.market_asset_ids),
        )

    if format == OutputFormat.JSON:
        _print_json(outcome.to_body())
        return

    market = outcome.data
    table = Table(title=f"Market prices (XCH ${market.xch_usd:,.2f})", show_header=True, header_style="bold magenta")
    table.add_column("Asset", style="cyan")
    table.add_column("Price", style="bold green", justify="right")
    table.add_column("24h", style="yellow", justify="right")
    table.add_column("Market Cap", justify="right")
    table.add_column("Source", style="blue")

    for asset_id, price in market.prices.items():
        table.add_row(
            f"{asset_id[:10]}...{asset_id[-6:]}",
            f"${price:,.6f}" if price else "-",
            f"{market.changes.get(asset_id, 0.0):+.2f}%",
            f"${market.mcaps.get(asset_id, 0.0):,.0f}",
            str(market.sources.get(asset_id, "")),
        )

    console.print(table)
    _print_notes(outcome)


@app.command()
def holdings(
    chain: str = typer.Argument(..., help="Chain to query (chia or base)"),
    address: str = typer.Argument(..., help="Wallet address to query"),
    kind: HoldingKind = typer.Option(HoldingKind.TOKENS, "--type", "-t", help="Chia holdings to fetch"),
    address2: str | None = typer.Option(None, "--address2", help="Second Chia wallet for --type full"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
) -> None:
    """
    Show the holdings of a wallet.

    Examples:

        # Base tokens and LP positions
        treasury-aggregator holdings base 0xABC...

        # Both Chia wallets combined
        treasury-aggregator holdings chia xch1... --type full --address2 xch1...
    """
    settings = load_settings()
    configure_logging(settings.log_level)

    with Services.create(settings=settings) as services:
        if chain == "base":
            fetch = lambda: services.base.fetch(address)  # noqa: E731
        elif chain == "chia" and kind == HoldingKind.FULL:
            fetch = lambda: services.chia.fetch_full(address, address2)  # noqa: E731
        elif chain == "chia" and kind == HoldingKind.NFTS:
            fetch = lambda: services.chia.fetch_nfts(address)  # noqa: E731
        elif chain == "chia":
            fetch = lambda: services.chia.fetch_tokens(address)  # noqa: E731
        else:
            console.print(f"[bold red]Unsupported chain:[/bold red] {chain}")
            raise typer.Exit(code=1)

        outcome = _with_spinner(f"Fetching {chain} holdings...", fetch)

    if format == OutputFormat.JSON:
        _print_json(outcome.to_body())
        return

    data = outcome.data
    tokens = getattr(data, "tokens", [])
    nfts = getattr(data, "nfts", [])
    if tokens:
        _output_tokens(address, tokens, data.total)
    if nfts:
        _output_nfts(nfts)
    if not tokens and not nfts:
        console.print("\n[yellow]No holdings found[/yellow]")
    _print_notes(outcome)


@app.command()
def collections(
    ids: list[str] = typer.Argument(..., help="Collection ids to look up"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
) -> None:
    """Look up NFT collection metadata."""
    settings = load_settings()
    configure_logging(settings.log_level)

    with Services.create(settings=settings) as services:
        results: list[CollectionMeta | None] = _with_spinner(
            f"Fetching {len(ids)} collections...",
            lambda: run_parallel([lambda cid=cid: services.mintgarden.collection(cid) for cid in ids], default=None),
        )

    found = [meta for meta in results if meta is not None and meta.id and meta.name]
    if format == OutputFormat.JSON:
        _print_json({meta.id: meta.to_json() for meta in found})
        return

    table = Table(title="Collections", show_header=True, header_style="bold magenta")
    table.add_column("Collection", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Floor (XCH)", justify="right")
    table.add_column("Items", justify="right")
    for meta in found:
        table.add_row(meta.id, meta.name, f"{meta.floor_xch:,.3f}", str(meta.nft_count))
    console.print(table)


def _output_tokens(address: str, tokens: list[TokenHolding], total: float) -> None:
    """Output token holdings as a rich table."""
    table = Table(
        title=f"Holdings for {address[:10]}...{address[-8:]}",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Token", style="cyan")
    table.add_column("Type", style="yellow")
    table.add_column("Balance", style="white", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("USD Value", style="bold green", justify="right")

    for token in tokens:
        table.add_row(
            token.symbol,
            token.type.value,
            f"{token.balance:,.4f}",
            f"${token.price:,.6f}" if token.price else "-",
            f"${token.value:,.2f}" if token.value else "-",
        )

    console.print("\n")
    console.print(table)
    console.print(f"[bold]Total Value:[/bold] [bold green]${total:,.2f}[/bold green]\n")


def _output_nfts(nfts: list[NftCollection]) -> None:
    """Output NFT collections as a rich table."""
    table = Table(title="NFT Collections", show_header=True, header_style="bold magenta")
    table.add_column("Collection", style="cyan")
    table.add_column("Count", style="green", justify="right")

    for collection in nfts:
        table.add_row(collection.name, str(collection.count))

    console.print(table)
    console.print(f"[bold]Total NFTs:[/bold] {sum(c.count for c in nfts)}\n")


if __name__ == "__main__":
    app()
