from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping

from sqlalchemy.sql import ColumnElement, operators

from .clauses import MULTI_VALUE_KINDS, SINGLE_VALUE_KINDS, ClauseKind, ClauseSet
from .config import query_settings
from .exceptions import IncompatibleMergeTargetError
from .logging import get_logger
from .lookups import build_conditions

if TYPE_CHECKING:
    from .relation.base import RelationBase

logger = get_logger(__name__)

MergeRule = Callable[[ClauseKind, ClauseSet, ClauseSet], list[Any]]

# Predicates that pin a single column to a value or set of values.
COLUMN_OPERATORS = frozenset(
    {
        operators.eq,
        operators.ne,
        operators.in_op,
        operators.not_in_op,
        operators.is_,
        operators.is_not,
    }
)


def column_key(entry: Any) -> tuple[str | None, str] | None:
    """
    Return (table, column) for a column-level predicate, else None.

    Only binary predicates whose left side is a plain table column qualify;
    function calls, ranges and raw SQL never do.
    """
    if not isinstance(entry, ColumnElement):
        return None
    if getattr(entry, "operator", None) not in COLUMN_OPERATORS:
        return None
    left = getattr(entry, "left", None)
    table = getattr(left, "table", None)
    key = getattr(left, "key", None)
    if table is None or key is None:
        return None
    return getattr(table, "name", None), key


def concatenate(kind: ClauseKind, base: ClauseSet, incoming: ClauseSet) -> list[Any]:
    return [*base.get_multi(kind), *incoming.get_multi(kind)]


def merge_wheres(kind: ClauseKind, base: ClauseSet, incoming: ClauseSet) -> list[Any]:
    """
    Concatenate WHERE clauses, letting incoming column predicates win.

    A base predicate such as ``status = 'open'`` is dropped when the incoming
    side also pins ``status`` (``status = 'closed'``, ``status != 'open'``,
    ``status IN (...)``). Range and free-form conditions always accumulate.
    """
    incoming_entries = incoming.get_multi(kind)
    overridden = {column_key(e) for e in incoming_entries} - {None}
    if not overridden:
        return concatenate(kind, base, incoming)

    kept = [e for e in base.get_multi(kind) if column_key(e) not in overridden]
    return [*kept, *incoming_entries]


def merge_orders(kind: ClauseKind, base: ClauseSet, incoming: ClauseSet) -> list[Any]:
    """
    Incoming orders replace base orders when incoming was reordered.

    ``relation.merge(other.reorder())`` therefore clears the ordering.
    """
    if incoming.get_single(ClauseKind.REORDERING):
        return list(incoming.get_multi(kind))
    return concatenate(kind, base, incoming)


MERGE_RULES: dict[ClauseKind, MergeRule] = {
    ClauseKind.WHERE: merge_wheres,
    ClauseKind.ORDER: merge_orders,
}


def union_extensions(base: Iterable[Any], incoming: Iterable[Any]) -> tuple[Any, ...]:
    merged: list[Any] = []
    for extension in (*base, *incoming):
        if extension not in merged:
            merged.append(extension)
    return tuple(merged)


class Merger:
    """
    Combines two relations into a new one.

    Multi-valued kinds go through ``MERGE_RULES`` (plain concatenation when a
    kind has no rule); single-valued kinds take the incoming value when it is
    set. Neither input is modified.
    """

    def __init__(self, relation: RelationBase, other: RelationBase):
        self.relation = relation
        self.other = other

    def merge(self) -> Any:
        base, incoming = self.relation, self.other
        if not base.target.compatible_with(incoming.target):
            msg = (
                f"Cannot merge relation on '{incoming.target.name}' "
                f"(store '{incoming.target.store}') into relation on "
                f"'{base.target.name}' (store '{base.target.store}')"
            )
            raise IncompatibleMergeTargetError(msg)

        left, right = base.clauses, incoming.clauses
        merged = ClauseSet()

        for kind in MULTI_VALUE_KINDS:
            rule = MERGE_RULES.get(kind, concatenate)
            merged.set_multi(kind, rule(kind, left, right))

        for kind in SINGLE_VALUE_KINDS:
            source = right if right.has_single(kind) else left
            merged.set_single(kind, source.get_single(kind))

        if query_settings.LOG_MERGES:
            logger.debug(
                "Merged %s into %s: %r", incoming.target.name, base.target.name, merged
            )

        return base._spawn(
            merged,
            extensions=union_extensions(base.extensions, incoming.extensions),
            default_scoped=base.default_scoped and incoming.default_scoped,
            engine=base.engine if base.engine is not None else incoming.engine,
        )


class HashMerger:
    """
    Merges an attribute mapping into a relation.

    Each entry becomes one WHERE condition (equality, or IN for collections).
    All keys are checked against the target before anything is built.
    """

    def __init__(self, relation: RelationBase, conditions: Mapping[str, Any]):
        self.relation = relation
        self.conditions = conditions

    def other(self) -> Any:
        """The synthetic relation holding only the derived conditions."""
        clauses = ClauseSet()
        clauses.set_multi(
            ClauseKind.WHERE, build_conditions(self.relation.target, self.conditions)
        )
        # Carry the base flag so the merge leaves default_scoped unchanged.
        return self.relation.__class__(
            self.relation.target,
            clauses,
            default_scoped=self.relation.default_scoped,
        )

    def merge(self) -> Any:
        return Merger(self.relation, self.other()).merge()
