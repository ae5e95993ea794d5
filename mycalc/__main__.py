"""CLI for the mycalc decimal calculator.

Usage:
    python -m mycalc                          # Interactive menu
    python -m mycalc list                     # Show operations by category
    python -m mycalc run Add 0.1 0.2          # Run one operation
    python -m mycalc run Square -- -5         # Negative numbers after --
    python -m mycalc price solana             # USD price of any asset id
    python -m mycalc --settings my.json menu  # Use another settings file
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import structlog
import typer
from rich.console import Console
from rich.markup import escape

from mycalc.engine import ExecutionEngine
from mycalc.errors import CalcError, SettingsError
from mycalc.log import configure_logging
from mycalc.menu import error_message, format_decimal, parse_decimal, render_operations, run_menu
from mycalc.operations import financial
from mycalc.pricing import RetryingPriceClient
from mycalc.settings import load_settings, with_log_level

app = typer.Typer(
    name="mycalc",
    help="Decimal calculator with categorised operations and live crypto prices",
    add_completion=False,
)
console = Console(stderr=True)
stdout = Console()
logger = structlog.get_logger(__name__)


def _engine() -> ExecutionEngine:
    engine = ExecutionEngine()
    logger.info("Discovered operations", count=len(engine.list_operations()))
    return engine


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    settings_path: Optional[Path] = typer.Option(
        None, "--settings", "-s", help="Settings file (default: ./appsettings.json)"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l", help="DEBUG, INFO, WARNING, ERROR or CRITICAL"
    ),
) -> None:
    """Load settings, configure logging and install the shared price client."""
    try:
        settings = load_settings(settings_path)
        if log_level:
            settings = with_log_level(settings, log_level)
    except SettingsError as exc:
        console.print(f"[red]Settings error:[/red] {escape(str(exc))}")
        raise typer.Exit(1)

    configure_logging(settings.logging.level, settings.logging.format)
    financial.use_price_client(RetryingPriceClient(settings.crypto_api))
    ctx.call_on_close(lambda: financial.use_price_client(None))
    ctx.obj = settings
    logger.info("MyCalc starting", command=ctx.invoked_subcommand or "menu")

    if ctx.invoked_subcommand is None:
        run_menu(_engine(), stdout)


@app.command("list")
def cmd_list() -> None:
    """Show every operation grouped by category."""
    render_operations(ExecutionEngine().groups(), stdout)


@app.command("run")
def cmd_run(
    name: str = typer.Argument(help="Operation name (e.g., 'Add', 'Bitcoin Price')"),
    arguments: Optional[list[str]] = typer.Argument(
        None, help="Numeric arguments; ',' or '.' as decimal separator"
    ),
) -> None:
    """Run one operation with the given arguments."""
    engine = _engine()
    try:
        descriptor = engine.find(name)
        values = [parse_decimal(a) for a in arguments or []]
        result = engine.execute(descriptor, values)
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1)
    except CalcError as exc:
        logger.error("Operation failed", operation=name, error=str(exc))
        console.print(f"[red]Error:[/red] {escape(error_message(exc))}")
        raise typer.Exit(1)

    logger.info("Operation completed", operation=descriptor.name, result=str(result))
    stdout.print(format_decimal(result), highlight=False)


@app.command("price")
def cmd_price(
    asset_id: str = typer.Argument(help="Provider asset id (e.g., 'bitcoin', 'solana')"),
) -> None:
    """Fetch the current USD price of any asset."""
    try:
        price = financial.get_price_client().fetch_price(asset_id.strip().lower())
    except CalcError as exc:
        console.print(f"[red]Error:[/red] {escape(error_message(exc))}")
        raise typer.Exit(1)
    stdout.print(format_decimal(price), highlight=False)


@app.command("menu")
def cmd_menu() -> None:
    """Interactive category and operation menu."""
    run_menu(_engine(), stdout)


if __name__ == "__main__":
    app()
