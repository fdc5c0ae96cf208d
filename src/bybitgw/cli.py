"""Bybit Gateway CLI.

Commands:
    bybitgw serve        - Start the gateway web service
    bybitgw tickers      - Show latest tickers
    bybitgw kline        - Show candlesticks
    bybitgw balance      - Show wallet balance (signed)
    bybitgw positions    - Show open positions (signed)
    bybitgw orders       - Show open or historical orders (signed)
    bybitgw call         - Call any V5 endpoint
    bybitgw config init  - Write a config file with defaults
    bybitgw config show  - Show effective settings (secret masked)
"""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bybitgw import __version__
from bybitgw.api import BybitClient
from bybitgw.api.market import CATEGORY_LINEAR, CATEGORY_SPOT
from bybitgw.auth import mask_string
from bybitgw.config import (
    TESTNET_BASE_URL,
    ConfigError,
    Settings,
    get_settings,
    load_settings,
    save_settings,
    set_settings,
    settings_to_dict,
)
from bybitgw.gateway import GatewayError, HttpMethod
from bybitgw.gateway.dispatcher import normalize_method
from bybitgw.gateway.params import build_params
from bybitgw.logging import setup_logging
from bybitgw.models import Order, Position, Ticker, WalletBalance, decode_list

app = typer.Typer(
    name="bybitgw",
    help="Bybit Gateway - Signed Bybit V5 REST client and service",
    no_args_is_help=True,
)
console = Console()

DEFAULT_CONFIG_PATH = Path("config.yaml")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        rprint(f"Bybit Gateway v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    _version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-V", help="Enable verbose logging"),
    ] = False,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="YAML or JSON config file"),
    ] = None,
    testnet: Annotated[
        bool,
        typer.Option("--testnet", help="Use the testnet API base URL"),
    ] = False,
) -> None:
    """Bybit Gateway - Signed Bybit V5 REST client and service."""
    if config is not None:
        try:
            set_settings(load_settings(config))
        except ConfigError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(1) from e

    settings = get_settings()
    if testnet:
        settings.bybit.base_url = TESTNET_BASE_URL
    log_level = "DEBUG" if verbose else settings.logger.level
    setup_logging(level=log_level, output=settings.logger.output)


def make_client() -> BybitClient:
    """Build a client from the current settings."""
    return BybitClient.from_settings(get_settings())


@contextmanager
def gateway_errors() -> Iterator[None]:
    """Turn gateway failures into a red message and exit code 1."""
    try:
        yield
    except GatewayError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e


def _ms_to_iso(value: str) -> str:
    try:
        return datetime.fromtimestamp(int(value) / 1000, UTC).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return value


# =============================================================================
# Serve Command
# =============================================================================


@app.command()
def serve(
    host: Annotated[
        str | None,
        typer.Option("--host", "-h", help="Host to bind to (default from config)"),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="Port to bind to (default from config)"),
    ] = None,
) -> None:
    """Start the gateway web service.

    Exposes /api/health, /api/operations and /api/rpc.

    Example:
        bybitgw serve --port 50051
    """
    import uvicorn

    from bybitgw.web import create_app

    settings = get_settings()
    bind_host = host or settings.server.host
    bind_port = port or settings.server.port

    console.print(f"[bold green]Starting gateway at http://{bind_host}:{bind_port}[/bold green]")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    web_app = create_app(settings=settings)
    uvicorn.run(web_app, host=bind_host, port=bind_port, log_level="info")


# =============================================================================
# Market Commands
# =============================================================================


@app.command()
def tickers(
    category: Annotated[
        str,
        typer.Option("--category", help="spot, linear, inverse or option"),
    ] = CATEGORY_SPOT,
    symbol: Annotated[
        str,
        typer.Option("--symbol", "-s", help="Symbol (all when omitted)"),
    ] = "",
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", help="Max rows to show"),
    ] = 20,
) -> None:
    """Show latest tickers.

    Example:
        bybitgw tickers --category linear --symbol BTCUSDT
    """
    with gateway_errors(), make_client() as client:
        rows = decode_list(client.market.get_tickers(category, symbol), Ticker)

    table = Table(title=f"Tickers ({category})")
    table.add_column("Symbol", style="cyan")
    table.add_column("Last", justify="right")
    table.add_column("Bid", justify="right")
    table.add_column("Ask", justify="right")
    table.add_column("24h %", justify="right")
    table.add_column("24h Volume", justify="right")

    for t in rows[:limit]:
        pct_style = "green" if t.price_24h_pcnt >= 0 else "red"
        table.add_row(
            t.symbol,
            f"{t.last_price:g}",
            f"{t.bid1_price:g}",
            f"{t.ask1_price:g}",
            f"[{pct_style}]{t.price_24h_pcnt * 100:+.2f}%[/{pct_style}]",
            f"{t.volume_24h:,.2f}",
        )

    console.print(table)


@app.command()
def kline(
    symbol: Annotated[str, typer.Argument(help="Symbol (e.g. BTCUSDT)")],
    category: Annotated[
        str,
        typer.Option("--category", help="spot, linear or inverse"),
    ] = CATEGORY_SPOT,
    interval: Annotated[
        str,
        typer.Option("--interval", "-i", help="1,3,5,15,30,60,120,240,360,720,D,W,M"),
    ] = "60",
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", help="Number of candles"),
    ] = 20,
) -> None:
    """Show candlesticks."""
    with gateway_errors(), make_client() as client:
        envelope = client.market.get_kline(category, symbol, interval, limit=limit)

    candles = (envelope.payload or {}).get("list", [])
    if not candles:
        console.print("[yellow]No candles returned[/yellow]")
        return

    table = Table(title=f"{symbol} {interval}")
    table.add_column("Start", style="dim")
    for name in ("Open", "High", "Low", "Close", "Volume"):
        table.add_column(name, justify="right")

    for candle in candles:
        table.add_row(_ms_to_iso(candle[0]), *candle[1:6])

    console.print(table)


# =============================================================================
# Account Commands (signed)
# =============================================================================


@app.command()
def balance(
    account_type: Annotated[
        str,
        typer.Option("--account-type", "-a", help="UNIFIED, CONTRACT or SPOT"),
    ] = "UNIFIED",
    coin: Annotated[
        str,
        typer.Option("--coin", help="Comma-separated coin filter"),
    ] = "",
) -> None:
    """Show wallet balance."""
    with gateway_errors(), make_client() as client:
        wallets = decode_list(client.account.get_wallet_balance(account_type, coin), WalletBalance)

    for wallet in wallets:
        table = Table(title=f"{wallet.account_type} equity {wallet.total_equity:,.2f}")
        table.add_column("Coin", style="cyan")
        table.add_column("Wallet", justify="right")
        table.add_column("Equity", justify="right")
        table.add_column("USD Value", justify="right", style="green")
        table.add_column("Unrealised PnL", justify="right")

        for c in wallet.coin:
            table.add_row(
                c.coin,
                f"{c.wallet_balance:g}",
                f"{c.equity:g}",
                f"{c.usd_value:,.2f}",
                f"{c.unrealised_pnl:,.4f}",
            )
        console.print(table)


@app.command()
def positions(
    category: Annotated[
        str,
        typer.Option("--category", help="linear or inverse"),
    ] = CATEGORY_LINEAR,
    symbol: Annotated[
        str,
        typer.Option("--symbol", "-s", help="Symbol filter"),
    ] = "",
    settle_coin: Annotated[
        str,
        typer.Option("--settle-coin", help="Settle coin (used when no symbol)"),
    ] = "USDT",
) -> None:
    """Show open positions."""
    with gateway_errors(), make_client() as client:
        envelope = client.position.get_positions(
            category, symbol=symbol, settle_coin="" if symbol else settle_coin
        )
        rows = [p for p in decode_list(envelope, Position) if p.size > 0]

    if not rows:
        console.print("[yellow]No open positions[/yellow]")
        return

    table = Table(title="Positions")
    table.add_column("Symbol", style="cyan")
    table.add_column("Side")
    table.add_column("Size", justify="right")
    table.add_column("Entry", justify="right")
    table.add_column("Mark", justify="right")
    table.add_column("Leverage", justify="right")
    table.add_column("Unrealised PnL", justify="right")

    for p in rows:
        pnl_style = "green" if p.unrealised_pnl >= 0 else "red"
        table.add_row(
            p.symbol,
            p.side,
            f"{p.size:g}",
            f"{p.avg_price:g}",
            f"{p.mark_price:g}",
            f"{p.leverage:g}x",
            f"[{pnl_style}]{p.unrealised_pnl:,.4f}[/{pnl_style}]",
        )

    console.print(table)


@app.command()
def orders(
    category: Annotated[
        str,
        typer.Option("--category", help="spot, linear, inverse or option"),
    ] = CATEGORY_LINEAR,
    symbol: Annotated[
        str,
        typer.Option("--symbol", "-s", help="Symbol filter"),
    ] = "",
    history: Annotated[
        bool,
        typer.Option("--history", help="Show closed orders instead of open ones"),
    ] = False,
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", help="Max orders"),
    ] = 20,
) -> None:
    """Show open or historical orders."""
    with gateway_errors(), make_client() as client:
        if history:
            envelope = client.order.get_order_history(category, symbol=symbol, limit=limit)
        else:
            envelope = client.order.get_open_orders(category, symbol=symbol, limit=limit)
        rows = decode_list(envelope, Order)

    if not rows:
        console.print("[yellow]No orders[/yellow]")
        return

    table = Table(title="Order History" if history else "Open Orders")
    table.add_column("Order ID", style="dim")
    table.add_column("Symbol", style="cyan")
    table.add_column("Side")
    table.add_column("Type")
    table.add_column("Price", justify="right")
    table.add_column("Qty", justify="right")
    table.add_column("Filled", justify="right")
    table.add_column("Status")

    for o in rows:
        side_style = "green" if o.side == "Buy" else "red"
        table.add_row(
            o.order_id[:12],
            o.symbol,
            f"[{side_style}]{o.side}[/{side_style}]",
            o.order_type,
            f"{o.price:g}",
            f"{o.qty:g}",
            f"{o.cum_exec_qty:g}",
            o.order_status,
        )

    console.print(table)


# =============================================================================
# Raw Call
# =============================================================================


def parse_key_values(items: list[str]) -> dict[str, str]:
    """Parse ``key=value`` arguments."""
    params: dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {item!r}")
        params[key] = value
    return params


@app.command()
def call(
    method: Annotated[str, typer.Argument(help="GET or POST")],
    endpoint: Annotated[str, typer.Argument(help="Path below /v5/ (e.g. market/time)")],
    params: Annotated[
        list[str] | None,
        typer.Argument(help="Parameters as key=value"),
    ] = None,
    auth: Annotated[
        bool,
        typer.Option("--auth/--no-auth", help="Sign the request (POST is always signed)"),
    ] = False,
) -> None:
    """Call any V5 endpoint and print the envelope as JSON.

    Example:
        bybitgw call GET market/tickers category=spot symbol=BTCUSDT
    """
    param_set = build_params(parse_key_values(params or []))

    with gateway_errors(), make_client() as client:
        http_method = normalize_method(method)
        needs_auth = auth or http_method == HttpMethod.POST
        envelope = client.gateway.execute(http_method, endpoint, param_set, needs_auth=needs_auth)

    console.print_json(json.dumps(envelope.to_wire()))


# =============================================================================
# Config Commands
# =============================================================================

config_app = typer.Typer(help="Configuration file commands")
app.add_typer(config_app, name="config")


@config_app.command("init")
def config_init(
    path: Annotated[
        Path,
        typer.Option("--path", "-p", help="Where to write the config file"),
    ] = DEFAULT_CONFIG_PATH,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing file"),
    ] = False,
) -> None:
    """Write a config file with default settings."""
    if path.exists() and not force:
        console.print(f"[red]{path} already exists (use --force to overwrite)[/red]")
        raise typer.Exit(1)

    save_settings(Settings(), path)
    console.print(f"[green]✓ Wrote {path}[/green]")


@config_app.command("show")
def config_show() -> None:
    """Show effective settings with the API secret masked."""
    data = settings_to_dict(get_settings())
    if data["bybit"]["api_key"]:
        data["bybit"]["api_key"] = mask_string(data["bybit"]["api_key"])
    console.print(yaml.safe_dump(data, sort_keys=False), markup=False)


if __name__ == "__main__":
    app()
