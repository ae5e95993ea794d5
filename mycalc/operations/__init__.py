"""Operation registry for mycalc.

Each category lives in its own module under mycalc/operations/ and defines:
    CATEGORY    — Category(name, description, sort_order)
    OPERATIONS  — tuple of OperationDef(name, function, description, labels)

CATALOG lists those modules explicitly; nothing is discovered at runtime.
Adding an operation means adding an OperationDef to a module, adding a
category means adding a module and a CATALOG entry.
"""

from __future__ import annotations

import inspect
from typing import Iterable, Optional, Sequence

from mycalc.errors import RegistryError
from mycalc.models import (
    UNCATEGORIZED,
    UNCATEGORIZED_SORT_ORDER,
    Category,
    CategoryGroup,
    OperationDef,
    OperationDescriptor,
)
from mycalc.operations import advanced_arithmetic, basic_arithmetic, financial

CatalogEntry = tuple[Optional[Category], Sequence[OperationDef]]

CATALOG: tuple[CatalogEntry, ...] = (
    (basic_arithmetic.CATEGORY, basic_arithmetic.OPERATIONS),
    (advanced_arithmetic.CATEGORY, advanced_arithmetic.OPERATIONS),
    (financial.CATEGORY, financial.OPERATIONS),
)


def _positional_arity(definition: OperationDef) -> int:
    """Count the positional parameters of a declared function.

    Functions taking *args, **kwargs or required keyword-only parameters
    cannot be called with a fixed list of numbers and are rejected.
    """
    try:
        signature = inspect.signature(definition.function)
    except (TypeError, ValueError) as exc:
        raise RegistryError(f"Operation {definition.name}: cannot inspect function: {exc}") from exc

    count = 0
    for param in signature.parameters.values():
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            count += 1
        elif param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            raise RegistryError(
                f"Operation {definition.name}: variadic parameter '{param.name}' is not supported"
            )
        elif param.default is param.empty:
            raise RegistryError(
                f"Operation {definition.name}: required keyword-only parameter '{param.name}'"
            )
    return count


def _describe(definition: OperationDef, category: Optional[Category]) -> OperationDescriptor:
    arity = _positional_arity(definition)
    if definition.arity is not None and definition.arity != arity:
        raise RegistryError(
            f"Operation {definition.name} declares {definition.arity} parameters "
            f"but its function takes {arity}"
        )
    labels = tuple(definition.parameter_labels)
    if len(labels) > arity:
        raise RegistryError(
            f"Operation {definition.name} has {len(labels)} parameter labels "
            f"for {arity} parameters"
        )

    return OperationDescriptor(
        name=definition.name,
        function=definition.function,
        arity=arity,
        description=definition.description,
        parameter_labels=labels,
        category_name=category.name if category else UNCATEGORIZED,
        category_description=category.description if category else None,
        category_sort_order=category.sort_order if category else UNCATEGORIZED_SORT_ORDER,
    )


def build_registry(catalog: Iterable[CatalogEntry] = CATALOG) -> list[OperationDescriptor]:
    """Build descriptors for every declared operation, in declaration order.

    Args:
        catalog: (category, operations) pairs. Defaults to CATALOG.

    Returns:
        One OperationDescriptor per OperationDef. Duplicate names are kept.

    Raises:
        RegistryError: A declaration does not match its function.
    """
    return [
        _describe(definition, category)
        for category, definitions in catalog
        for definition in definitions
    ]


def group_by_category(descriptors: Iterable[OperationDescriptor]) -> list[CategoryGroup]:
    """Group descriptors by category for display.

    Groups are ordered by sort order, then category name; operations keep the
    order they had in ``descriptors``.
    """
    buckets: dict[tuple[str, Optional[str], int], list[OperationDescriptor]] = {}
    for descriptor in descriptors:
        key = (
            descriptor.category_name,
            descriptor.category_description,
            descriptor.category_sort_order,
        )
        buckets.setdefault(key, []).append(descriptor)

    groups = [
        CategoryGroup(name=name, description=description, sort_order=sort_order, operations=tuple(ops))
        for (name, description, sort_order), ops in buckets.items()
    ]
    groups.sort(key=lambda g: (g.sort_order, g.name))
    return groups
