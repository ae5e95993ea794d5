"""Basic arithmetic — addition and subtraction on Decimal operands."""

from __future__ import annotations

from decimal import Decimal

from mycalc.models import Category, OperationDef

CATEGORY = Category("Basic Arithmetic", "Fundamental mathematical operations", sort_order=1)


def add(a: Decimal, b: Decimal) -> Decimal:
    return a + b


def subtract(a: Decimal, b: Decimal) -> Decimal:
    return a - b


OPERATIONS = (
    OperationDef(
        "Add",
        add,
        "Adds two decimal numbers",
        ("First number", "Second number"),
    ),
    OperationDef(
        "Subtract",
        subtract,
        "Subtracts second number from first",
        ("Number to subtract from", "Number to subtract"),
    ),
)
