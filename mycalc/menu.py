"""Interactive menu and Rich rendering for mycalc.

Category menu → operation menu → one prompt per parameter → result, then
back to the operation menu. Errors are shown and the loop carries on; only
choosing Exit leaves it.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

import structlog
from rich.console import Console
from rich.markup import escape
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from mycalc.engine import ExecutionEngine
from mycalc.errors import CalcError
from mycalc.models import CategoryGroup, OperationDescriptor

logger = structlog.get_logger(__name__)


def parse_decimal(text: str) -> Decimal:
    """Parse user input as a Decimal, accepting ',' as the decimal separator.

    Raises:
        ValueError: Not a finite number.
    """
    normalized = text.strip().replace(",", ".")
    try:
        value = Decimal(normalized)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid number format: {text!r}") from exc
    if not value.is_finite():
        raise ValueError(f"Invalid number format: {text!r}")
    return value


def format_decimal(value: Decimal) -> str:
    """Fixed-point text, never scientific notation."""
    return f"{value:f}"


def error_message(exc: BaseException) -> str:
    """Message shown to the user; wrapped computation errors show their cause."""
    return getattr(exc, "message", None) or str(exc)


def render_operations(groups: Sequence[CategoryGroup], console: Console) -> None:
    """Render a Rich table of every operation, grouped by category."""
    if not groups:
        console.print("[yellow]No operations registered.[/yellow]")
        return

    table = Table(title="Available Operations", show_header=True, header_style="bold")
    table.add_column("Category", style="cyan", no_wrap=True)
    table.add_column("Operation", style="green", no_wrap=True)
    table.add_column("Description")
    table.add_column("Params", justify="right")

    for group in groups:
        for i, op in enumerate(group.operations):
            table.add_row(
                group.name if i == 0 else "",
                op.name,
                op.description or "",
                str(op.arity),
            )
        table.add_section()

    console.print()
    console.print(table)
    console.print()


def prompt_decimal(label: str, console: Console) -> Decimal:
    """Ask until the answer parses as a number."""
    while True:
        answer = Prompt.ask(escape(label), console=console)
        try:
            value = parse_decimal(answer)
        except ValueError:
            logger.debug("Invalid number input", input=answer)
            console.print("[red]Invalid number format. Please try again.[/red]")
            continue
        logger.debug("Parsed number input", input=answer, value=str(value))
        return value


def _choose(console: Console, title: str, options: Sequence[str], back_label: str) -> Optional[int]:
    """Numbered menu; returns the 0-based index picked, or None for ``back_label``."""
    console.print(f"\n[bold]{escape(title)}[/bold]")
    for i, label in enumerate(options, 1):
        console.print(f"  {i}. {escape(label)}")
    console.print(f"  0. {escape(back_label)}")
    choice = IntPrompt.ask(
        "Choice",
        console=console,
        choices=[str(i) for i in range(len(options) + 1)],
        show_choices=False,
    )
    return None if choice == 0 else choice - 1


def run_operation(
    engine: ExecutionEngine,
    descriptor: OperationDescriptor,
    console: Console,
) -> Optional[Decimal]:
    """Prompt for the operation's parameters, execute it and print the outcome.

    Returns the result, or None when the operation failed.
    """
    arguments = [prompt_decimal(descriptor.label_for(i), console) for i in range(descriptor.arity)]
    logger.debug(
        "Executing operation",
        operation=descriptor.name,
        arguments=[str(a) for a in arguments],
    )
    try:
        result = engine.execute(descriptor, arguments)
    except CalcError as exc:
        logger.error("Operation failed", operation=descriptor.name, error=str(exc))
        console.print(f"[red]Error: {escape(error_message(exc))}[/red]")
        return None

    logger.info("Operation completed", operation=descriptor.name, result=str(result))
    console.print(f"[green]Result: {format_decimal(result)}[/green]")
    return result


def _operation_menu(engine: ExecutionEngine, group: CategoryGroup, console: Console) -> None:
    while True:
        console.print(f"\n[blue]MyCalc > {escape(group.name)}[/blue]")
        index = _choose(
            console,
            f"Choose an operation from {group.name}:",
            [op.display_name for op in group.operations],
            "Back to Categories",
        )
        if index is None:
            logger.debug("Back to categories")
            return
        descriptor = group.operations[index]
        logger.info("Operation selected", operation=descriptor.name, category=group.name)
        run_operation(engine, descriptor, console)


def run_menu(engine: ExecutionEngine, console: Console) -> None:
    """Run the interactive loop until the user picks Exit."""
    groups = engine.groups()
    while True:
        index = _choose(
            console,
            "MyCalc - Choose a category:",
            [g.display_name for g in groups],
            "Exit",
        )
        if index is None:
            logger.info("User requested exit")
            console.print("[green]Goodbye![/green]")
            return
        group = groups[index]
        logger.info("Category selected", category=group.name)
        _operation_menu(engine, group, console)
