"""Execution engine: validate arguments, then dispatch to the operation.

The engine adds no retries, logging or caching. Retrying belongs to the
operations that need it (see mycalc.pricing).
"""

from __future__ import annotations

from decimal import Decimal, Inexact, localcontext
from typing import Optional, Sequence

from mycalc.errors import InvocationError, OperationNotFoundError, ValidationError
from mycalc.models import CategoryGroup, OperationDescriptor
from mycalc.operations import build_registry, group_by_category

# Significant digits an operation result may carry; anything longer is an error
DECIMAL_PRECISION = 29


def execute(descriptor: OperationDescriptor, arguments: Sequence[Decimal]) -> Decimal:
    """Run one operation.

    Args:
        descriptor: Operation to run.
        arguments: Exactly ``descriptor.arity`` Decimal values.

    Returns:
        The operation's result.

    Raises:
        ValidationError: Wrong number of arguments; nothing was invoked.
        InvocationError: The computation raised, or its exact result needs more
            than DECIMAL_PRECISION significant digits. The original exception is
            chained as ``__cause__`` and kept on ``.cause``.
    """
    if len(arguments) != descriptor.arity:
        raise ValidationError(descriptor.name, descriptor.arity, len(arguments))
    try:
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            ctx.traps[Inexact] = True
            return descriptor.invoke(arguments)
    except Inexact as exc:
        raise InvocationError(
            descriptor.name,
            exc,
            f"Result needs more than {DECIMAL_PRECISION} significant digits",
        ) from exc
    except Exception as exc:
        raise InvocationError(descriptor.name, exc) from exc


class ExecutionEngine:
    """Read-only registry plus the execute() contract.

    Safe to share between threads once constructed; the descriptor list is
    never modified.
    """

    def __init__(self, descriptors: Optional[Sequence[OperationDescriptor]] = None) -> None:
        self._operations: tuple[OperationDescriptor, ...] = tuple(
            build_registry() if descriptors is None else descriptors
        )

    def list_operations(self) -> list[OperationDescriptor]:
        return list(self._operations)

    def groups(self) -> list[CategoryGroup]:
        return group_by_category(self._operations)

    def find(self, name: str) -> OperationDescriptor:
        """Return the first operation called ``name`` (case-insensitive)."""
        wanted = name.strip().lower()
        for descriptor in self._operations:
            if descriptor.name.lower() == wanted:
                return descriptor
        raise OperationNotFoundError(f"Unknown operation: {name}")

    def execute(self, descriptor: OperationDescriptor, arguments: Sequence[Decimal]) -> Decimal:
        return execute(descriptor, arguments)
