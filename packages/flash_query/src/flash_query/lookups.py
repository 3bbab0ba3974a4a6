from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence, Set
from typing import TYPE_CHECKING, Any, Callable

from sqlalchemy import func

from .exceptions import UnknownAttributeError, UnsupportedLookupError

if TYPE_CHECKING:
    from sqlalchemy.sql import ColumnElement

    from .metadata import EntityDescriptor


OPERATORS: dict[str, Callable[[Any, Any], "ColumnElement[bool]"]] = {
    "exact": lambda c, v: c.is_(None) if v is None else c == v,
    "iexact": lambda c, v: func.lower(c) == func.lower(v),
    "contains": lambda c, v: c.contains(v),
    "icontains": lambda c, v: func.lower(c).contains(func.lower(v)),
    "gt": lambda c, v: c > v,
    "gte": lambda c, v: c >= v,
    "lt": lambda c, v: c < v,
    "lte": lambda c, v: c <= v,
    "in": lambda c, v: c.in_(list(v)),
    "startswith": lambda c, v: c.startswith(v),
    "istartswith": lambda c, v: func.lower(c).startswith(func.lower(v)),
    "endswith": lambda c, v: c.endswith(v),
    "iendswith": lambda c, v: func.lower(c).endswith(func.lower(v)),
    "isnull": lambda c, v: c.is_(None) if v else c.isnot(None),
}


def is_inclusion_value(value: Any) -> bool:
    """True for collections that translate to IN rather than equality."""
    if isinstance(value, (str, bytes, bytearray, Mapping)):
        return False
    return isinstance(value, (Sequence, Set))


def is_membership_value(value: Any) -> bool:
    """True for values accepted by an explicit '__in' lookup."""
    if isinstance(value, (str, bytes, bytearray, Mapping)):
        return False
    return isinstance(value, Iterable)


def parse_lookup(key: str) -> tuple[str, str | None]:
    """
    Split a condition key into (attribute, lookup).

    Supported format: 'field' or 'field__lookup' (e.g. 'price' or 'price__gt').
    The lookup is None when the key names a bare attribute.
    """
    field_name, sep, lookup = key.partition("__")
    if not sep:
        return key, None
    if lookup not in OPERATORS:
        supported = ", ".join(OPERATORS)
        msg = f"Unsupported lookup '{lookup}' in '{key}'. Supported: {supported}"
        raise UnsupportedLookupError(msg)
    return field_name, lookup


def build_conditions(
    descriptor: EntityDescriptor, conditions: Mapping[str, Any]
) -> list[ColumnElement[bool]]:
    """
    Translate an attribute mapping into WHERE expressions, one per entry.

    Every key is validated before any expression is built, so an unknown
    attribute never yields a partial result.
    """
    parsed = []
    for key, value in conditions.items():
        field_name, lookup = parse_lookup(str(key))
        if field_name not in descriptor.attributes:
            msg = f"Attribute '{field_name}' not found on entity '{descriptor.name}'"
            raise UnknownAttributeError(msg)
        if lookup is None:
            lookup = "in" if is_inclusion_value(value) else "exact"
        elif lookup == "in" and not is_membership_value(value):
            msg = (
                f"Lookup 'in' on '{field_name}' needs a collection of values, "
                f"got {type(value).__name__}"
            )
            raise UnsupportedLookupError(msg)
        parsed.append((field_name, lookup, value))

    return [
        OPERATORS[lookup](descriptor.column(field_name), value)
        for field_name, lookup, value in parsed
    ]
