from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, Callable

from flash_query.clauses import (
    MULTI_VALUE_KINDS,
    SINGLE_VALUE_KINDS,
    ClauseKind,
    ClauseSet,
    coerce_kinds,
)
from flash_query.exceptions import UnsupportedMergeArgument
from flash_query.merger import HashMerger, Merger

from .base import RelationBase
from .construction import RelationConstruction


class MergeArgument(Enum):
    """Shapes of value accepted by ``merge()``."""

    NOTHING = "nothing"
    MAPPING = "mapping"
    RELATION = "relation"
    ENTITIES = "entities"


def classify_merge_argument(other: Any) -> MergeArgument:
    """
    Tag a merge argument with the arm of ``merge()`` that handles it.

    Raises:
        UnsupportedMergeArgument: For strings, bytes and non-iterables.
    """
    if other is None:
        return MergeArgument.NOTHING
    if isinstance(other, RelationBase):
        return MergeArgument.RELATION
    if isinstance(other, Mapping):
        return MergeArgument.MAPPING
    if isinstance(other, Iterable) and not isinstance(other, (str, bytes, bytearray)):
        return MergeArgument.ENTITIES
    msg = f"Cannot merge a relation with {type(other).__name__}"
    raise UnsupportedMergeArgument(msg)


def _flatten(kinds: tuple[Any, ...]) -> list[Any]:
    # Accepts both except_("order", "limit") and except_(["order", "limit"]).
    flat: list[Any] = []
    for kind in kinds:
        if isinstance(kind, (list, tuple, set, frozenset)):
            flat.extend(kind)
        else:
            flat.append(kind)
    return flat


class RelationSpawn(RelationConstruction):
    """
    Operations that derive one relation from others: merge and projection.
    """

    def merge(self, other: Any) -> Any:
        """
        Combine this relation with ``other``.

        Args:
            other: One of
                - None: this relation is returned unchanged.
                - a mapping of attribute lookups: merged as WHERE conditions.
                - a Relation: merged clause by clause, incoming values winning.
                - an iterable of entities: this relation is materialized and
                  the entities also present in ``other`` are returned, in this
                  relation's order.

        Raises:
            UnsupportedMergeArgument: If ``other`` has none of these shapes.
            IncompatibleMergeTargetError: If ``other`` queries another store.
            UnknownAttributeError: If a mapping key is not an attribute.

        Examples:
            >>> open_articles.merge(recent_articles)
            >>> articles.merge({"status": "open", "tag": ["a", "b"]})
            >>> articles.merge([row_1, row_2])  # executes the query
        """
        arm = classify_merge_argument(other)
        if arm is MergeArgument.NOTHING:
            return self
        if arm is MergeArgument.ENTITIES:
            return self._intersect(other)
        if arm is MergeArgument.MAPPING:
            return HashMerger(self, other).merge()
        return Merger(self, other).merge()

    def _intersect(self, entities: Iterable[Any]) -> list[Any]:
        candidates = list(entities)
        result: list[Any] = []
        for entity in self.to_a():
            if entity in candidates and entity not in result:
                result.append(entity)
        return result

    def except_(self, *kinds: ClauseKind | str) -> Any:
        """
        Drop the named clause kinds, keeping everything else.

        Unknown kind names are ignored.

        Example:
            >>> relation.where(status="open").order("id").except_("order")
            # keeps the WHERE condition, discards the ordering
        """
        skipped = coerce_kinds(_flatten(kinds))
        return self._project(lambda kind: kind not in skipped)

    def only(self, *kinds: ClauseKind | str) -> Any:
        """
        Keep only the named clause kinds.

        Example:
            >>> relation.where(status="open").order("id").only("order")
            # keeps the ordering, discards the WHERE condition
        """
        kept = coerce_kinds(_flatten(kinds))
        return self._project(lambda kind: kind in kept)

    def _project(self, keep: Callable[[ClauseKind], bool]) -> Any:
        result = ClauseSet()
        for kind in MULTI_VALUE_KINDS:
            if keep(kind):
                result.set_multi(kind, self._clauses.get_multi(kind))
        for kind in SINGLE_VALUE_KINDS:
            if keep(kind):
                result.set_single(kind, self._clauses.get_single(kind))
        return self._spawn(result)

    def unscoped(self) -> Any:
        """Return a relation on the same target with no clauses or default scope."""
        return self._spawn(ClauseSet(), default_scoped=False)
