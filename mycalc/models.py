"""Data models for the mycalc operation registry.

Category, OperationDef, OperationDescriptor, CategoryGroup — the typed
structures that flow through registry → engine → CLI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Optional, Sequence

UNCATEGORIZED = "Uncategorized"
UNCATEGORIZED_SORT_ORDER = 999

OperationFunction = Callable[..., Decimal]


@dataclass(frozen=True)
class Category:
    """Category declaration shared by every operation of one module."""

    name: str
    description: Optional[str] = None
    sort_order: int = 0


@dataclass(frozen=True)
class OperationDef:
    """One row of the static declaration table.

    ``arity`` is optional; when given it must agree with the function's
    positional parameter count or the registry refuses to build.
    """

    name: str
    function: OperationFunction
    description: Optional[str] = None
    parameter_labels: tuple[str, ...] = ()
    arity: Optional[int] = None


@dataclass(frozen=True)
class OperationDescriptor:
    """Immutable description of one callable operation."""

    name: str
    function: OperationFunction = field(repr=False, compare=False)
    arity: int = 0
    description: Optional[str] = None
    parameter_labels: tuple[str, ...] = ()
    category_name: str = UNCATEGORIZED
    category_description: Optional[str] = None
    category_sort_order: int = UNCATEGORIZED_SORT_ORDER

    def label_for(self, index: int) -> str:
        """Prompt for the parameter at ``index`` (0-based)."""
        if index < len(self.parameter_labels):
            return self.parameter_labels[index]
        return f"Parameter {index + 1}"

    @property
    def display_name(self) -> str:
        if self.description:
            return f"{self.name} - {self.description}"
        return self.name

    def invoke(self, arguments: Sequence[Decimal]) -> Decimal:
        """Call the wrapped function with ``arguments`` spread positionally."""
        return self.function(*arguments)


@dataclass(frozen=True)
class CategoryGroup:
    """Operations sharing one category, in registry order."""

    name: str
    description: Optional[str]
    sort_order: int
    operations: tuple[OperationDescriptor, ...] = ()

    @property
    def display_name(self) -> str:
        if self.description:
            return f"{self.name} - {self.description}"
        return self.name
