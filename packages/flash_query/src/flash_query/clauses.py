from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Iterator

from sqlalchemy.sql import ClauseElement

from .exceptions import ClauseKindMismatch


class ClauseKind(Enum):
    """
    Closed vocabulary of query state a Relation can carry.

    Multi-valued kinds accumulate an ordered list of entries; single-valued
    kinds hold at most one value. The two groups never overlap.
    """

    # multi-valued
    SELECT = "select"
    JOINS = "joins"
    WHERE = "where"
    HAVING = "having"
    GROUP = "group"
    ORDER = "order"
    INCLUDES = "includes"
    PRELOAD = "preload"
    EAGER_LOAD = "eager_load"
    REFERENCES = "references"

    # single-valued
    LIMIT = "limit"
    OFFSET = "offset"
    LOCK = "lock"
    READONLY = "readonly"
    FROM = "from"
    DISTINCT = "distinct"
    REORDERING = "reordering"
    REVERSE_ORDER = "reverse_order"
    CREATE_WITH = "create_with"

    @property
    def is_multi(self) -> bool:
        return self in _MULTI

    @classmethod
    def coerce(cls, value: ClauseKind | str) -> ClauseKind | None:
        """Return the kind for ``value`` or None when it names no known kind."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return _BY_NAME.get(value.lower().lstrip(":"))
        return None


MULTI_VALUE_KINDS: tuple[ClauseKind, ...] = (
    ClauseKind.SELECT,
    ClauseKind.JOINS,
    ClauseKind.WHERE,
    ClauseKind.HAVING,
    ClauseKind.GROUP,
    ClauseKind.ORDER,
    ClauseKind.INCLUDES,
    ClauseKind.PRELOAD,
    ClauseKind.EAGER_LOAD,
    ClauseKind.REFERENCES,
)
SINGLE_VALUE_KINDS: tuple[ClauseKind, ...] = tuple(
    kind for kind in ClauseKind if kind not in MULTI_VALUE_KINDS
)

_MULTI = frozenset(MULTI_VALUE_KINDS)
_BY_NAME = {kind.value: kind for kind in ClauseKind}


def coerce_kinds(kinds: Iterable[ClauseKind | str]) -> set[ClauseKind]:
    """Resolve kinds or kind names, silently dropping anything unknown."""
    resolved = set()
    for value in kinds:
        kind = ClauseKind.coerce(value)
        if kind is not None:
            resolved.add(kind)
    return resolved


def same_entry(left: Any, right: Any) -> bool:
    """
    Value equality for clause entries.

    SQLAlchemy overloads ``==`` on column expressions to build SQL, so
    clause elements are compared structurally through ``compare()``.
    """
    if left is right:
        return True
    if isinstance(left, ClauseElement) or isinstance(right, ClauseElement):
        return (
            isinstance(left, ClauseElement)
            and isinstance(right, ClauseElement)
            and left.compare(right)
        )
    if isinstance(left, (tuple, list)) and isinstance(right, (tuple, list)):
        return len(left) == len(right) and all(
            same_entry(a, b) for a, b in zip(left, right)
        )
    return bool(left == right)


class ClauseSet:
    """
    Accumulated clause values of a single query.

    Each kind is read and written through the accessor matching its arity;
    using the other one raises ``ClauseKindMismatch``.
    """

    __slots__ = ("_multi", "_single")

    def __init__(self) -> None:
        self._multi: dict[ClauseKind, list[Any]] = {}
        self._single: dict[ClauseKind, Any] = {}

    @staticmethod
    def _require(kind: ClauseKind, *, multi: bool) -> None:
        if kind.is_multi is not multi:
            expected = "multi" if kind.is_multi else "single"
            msg = f"Clause kind '{kind.value}' is {expected}-valued"
            raise ClauseKindMismatch(msg)

    def get_multi(self, kind: ClauseKind) -> tuple[Any, ...]:
        self._require(kind, multi=True)
        return tuple(self._multi.get(kind, ()))

    def set_multi(self, kind: ClauseKind, values: Iterable[Any]) -> None:
        self._require(kind, multi=True)
        entries = list(values)
        if entries:
            self._multi[kind] = entries
        else:
            self._multi.pop(kind, None)

    def append_multi(self, kind: ClauseKind, *values: Any) -> None:
        self._require(kind, multi=True)
        if values:
            self._multi.setdefault(kind, []).extend(values)

    def get_single(self, kind: ClauseKind) -> Any:
        self._require(kind, multi=False)
        return self._single.get(kind)

    def set_single(self, kind: ClauseKind, value: Any) -> None:
        self._require(kind, multi=False)
        if value is None:
            self._single.pop(kind, None)
        else:
            self._single[kind] = value

    def has_single(self, kind: ClauseKind) -> bool:
        self._require(kind, multi=False)
        return kind in self._single

    def clear_single(self, kind: ClauseKind) -> None:
        self.set_single(kind, None)

    def kinds(self) -> Iterator[ClauseKind]:
        """Yield, in vocabulary order, every kind that currently holds a value."""
        for kind in ClauseKind:
            if kind in self._multi or kind in self._single:
                yield kind

    def copy(self) -> ClauseSet:
        """Copy the containers; entries are shared since they are never mutated."""
        clone = ClauseSet()
        clone._multi = {kind: list(values) for kind, values in self._multi.items()}
        clone._single = dict(self._single)
        return clone

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClauseSet):
            return NotImplemented
        if list(self.kinds()) != list(other.kinds()):
            return False
        for kind in self.kinds():
            if kind.is_multi:
                if not same_entry(self._multi[kind], other._multi[kind]):
                    return False
            elif not same_entry(self._single[kind], other._single[kind]):
                return False
        return True

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        parts = []
        for kind in self.kinds():
            value = self._multi[kind] if kind.is_multi else self._single[kind]
            parts.append(f"{kind.value}={value!r}")
        return f"ClauseSet({', '.join(parts)})"
