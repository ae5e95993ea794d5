"""Advanced math functions."""

from __future__ import annotations

from decimal import Decimal

from mycalc.models import Category, OperationDef

CATEGORY = Category("Advanced Math", "Advanced mathematical functions", sort_order=2)


def square(number: Decimal) -> Decimal:
    return number * number


OPERATIONS = (
    OperationDef("Square", square, "Calculates the square of a number", ("Number to square",)),
)
