"""Click-based CLI for market-gateway.

Thin wrapper around library modules: serving the API, one-off price and
chart lookups, and balance ledger maintenance.
"""

from __future__ import annotations

import asyncio
import json
import os

import click
from rich.console import Console
from rich.table import Table

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from market_gateway.core import configure_logging, load_config

        config = load_config(config_path=ctx.obj.get("config_path"))
        configure_logging("DEBUG" if ctx.obj.get("verbose") else config.logging.level)
        ctx.obj["config"] = config
    return ctx.obj["config"]


def _create_ledger(ctx: click.Context):
    from market_gateway.ledger import JsonBalanceLedger

    return JsonBalanceLedger(_load_config(ctx).ledger.path)


def _fail(exc: Exception) -> None:
    console.print(f"[red]Error:[/red] {exc}")
    raise SystemExit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="MARKET_GATEWAY_CONFIG",
    default=None,
    help="Path to market-gateway.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
@click.version_option(package_name="market-gateway")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """Market Gateway: caching proxy for Yahoo Finance chart data."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# price / chart
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("symbol")
@click.option("--json", "as_json", is_flag=True, default=False, help="Output JSON.")
@click.pass_context
def price(ctx: click.Context, symbol: str, as_json: bool) -> None:
    """Fetch the latest price and percent change for SYMBOL."""
    from market_gateway.core import GatewayError
    from market_gateway.prices import SpotPriceCache, YahooChartClient

    config = _load_config(ctx)

    async def _run():
        async with YahooChartClient(config.upstream) as client:
            cache = SpotPriceCache(client, freshness_ms=config.cache.freshness_ms)
            return await cache.get_price(symbol)

    try:
        snapshot = _run_async(_run())
    except GatewayError as e:
        _fail(e)

    if as_json:
        click.echo(json.dumps(snapshot.model_dump(by_alias=True)))
        return

    colour = "green" if snapshot.change_percent >= 0 else "red"
    console.print(
        f"[bold]{snapshot.symbol}[/bold] {snapshot.price:,.4f} "
        f"[{colour}]{snapshot.change_percent:+.2f}%[/{colour}]"
    )


@cli.command()
@click.argument("symbol")
@click.option("--from", "from_", required=True, help="Range start (epoch seconds).")
@click.option("--to", "to", required=True, help="Range end (epoch seconds).")
@click.option(
    "--interval",
    "-i",
    default="1d",
    show_default=True,
    help="Candle interval token (1m, 5m, 15m, 30m, 1h, 1d).",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Output JSON.")
@click.pass_context
def chart(
    ctx: click.Context,
    symbol: str,
    from_: str,
    to: str,
    interval: str,
    as_json: bool,
) -> None:
    """Fetch formatted OHLC candles for SYMBOL."""
    from market_gateway.core import GatewayError
    from market_gateway.prices import YahooChartClient, normalize_chart, resolve_interval

    config = _load_config(ctx)

    async def _run():
        resolve_interval(interval)
        async with YahooChartClient(config.upstream) as client:
            raw = await client.fetch_series(
                symbol, period1=from_, period2=to, interval=interval
            )
        return normalize_chart(interval, raw)

    try:
        result = _run_async(_run())
    except GatewayError as e:
        _fail(e)

    if as_json:
        payload = {
            "interval": result.interval,
            "data": [c.model_dump() for c in result.candles],
        }
        click.echo(json.dumps(payload, indent=2))
        return

    table = Table(title=f"{symbol} ({result.interval})")
    table.add_column("Time (UTC)", style="bold")
    for name in ("Open", "High", "Low", "Close"):
        table.add_column(name, justify="right")
    for c in result.candles:
        table.add_row(c.time, f"{c.open:.4f}", f"{c.high:.4f}", f"{c.low:.4f}", f"{c.close:.4f}")
    console.print(table)
    console.print(f"{len(result.candles)} candles")


# ---------------------------------------------------------------------------
# balance
# ---------------------------------------------------------------------------


@cli.group()
def balance() -> None:
    """Inspect and edit the balance ledger."""


@balance.command("get")
@click.argument("user_id")
@click.pass_context
def balance_get(ctx: click.Context, user_id: str) -> None:
    """Show the balance for USER_ID."""
    from market_gateway.core import LedgerError

    ledger = _create_ledger(ctx)
    try:
        amount = _run_async(ledger.get_balance(user_id))
    except LedgerError as e:
        _fail(e)
    click.echo(json.dumps({"userId": user_id, "balance": amount}))


@balance.command("set")
@click.argument("user_id")
@click.argument("amount", type=float)
@click.pass_context
def balance_set(ctx: click.Context, user_id: str, amount: float) -> None:
    """Overwrite the balance for USER_ID."""
    from market_gateway.core import InvalidInput, LedgerError

    ledger = _create_ledger(ctx)
    try:
        amount = _run_async(ledger.set_balance(user_id, amount))
    except (InvalidInput, LedgerError) as e:
        _fail(e)
    click.echo(json.dumps({"userId": user_id, "balance": amount}))


@balance.command("adjust")
@click.argument("user_id")
@click.argument("delta", type=float)
@click.pass_context
def balance_adjust(ctx: click.Context, user_id: str, delta: float) -> None:
    """Add DELTA (may be negative) to the balance for USER_ID."""
    from market_gateway.core import InvalidInput, LedgerError

    ledger = _create_ledger(ctx)
    try:
        amount = _run_async(ledger.adjust_balance(user_id, delta))
    except (InvalidInput, LedgerError) as e:
        _fail(e)
    click.echo(json.dumps({"userId": user_id, "balance": amount}))


@balance.command("list")
@click.pass_context
def balance_list(ctx: click.Context) -> None:
    """List every balance in the ledger."""
    from market_gateway.core import LedgerError

    ledger = _create_ledger(ctx)
    try:
        balances = _run_async(ledger.all_balances())
    except LedgerError as e:
        _fail(e)

    table = Table(title=f"Balances ({ledger.path})")
    table.add_column("User", style="bold")
    table.add_column("Balance", justify="right")
    for user_id, amount in sorted(balances.items()):
        table.add_row(user_id, f"{amount:,.2f}")
    console.print(table)


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", type=str, default=None, help="Bind address. [default: api.host]")
@click.option("--port", "-p", type=int, default=None, help="Port number. [default: api.port]")
@click.option("--reload", is_flag=True, default=False, help="Auto-reload on code changes.")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, reload: bool) -> None:
    """Start the REST API server."""
    import uvicorn

    config = _load_config(ctx)
    host = host or config.api.host
    port = port or config.api.port

    # The app factory reads config on its own; point it at the same file
    if ctx.obj.get("config_path"):
        os.environ["MARKET_GATEWAY_CONFIG"] = ctx.obj["config_path"]

    console.print(f"Starting market-gateway API on [bold]{host}:{port}[/bold]")
    console.print(f"API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "market_gateway.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="debug" if ctx.obj.get("verbose") else config.logging.level.lower(),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
