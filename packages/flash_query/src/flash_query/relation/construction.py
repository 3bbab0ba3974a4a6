from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from sqlalchemy import not_, text
from sqlalchemy.sql import operators
from sqlalchemy.sql.elements import BinaryExpression, BindParameter

from flash_query.clauses import ClauseKind
from flash_query.lookups import build_conditions

from .execution import RelationExecution

if TYPE_CHECKING:
    from sqlalchemy.sql import ColumnElement


def _as_condition(condition: Any) -> Any:
    return text(condition) if isinstance(condition, str) else condition


class RelationConstruction(RelationExecution):
    """
    Fluent API for accumulating clause state.

    Every method returns a new Relation through ``clone_with``; multi-valued
    kinds are appended to, single-valued kinds are overwritten.
    """

    def _conditions(
        self, conditions: tuple[Any, ...], lookups: Mapping[str, Any]
    ) -> list[ColumnElement[bool]]:
        # Lookups are validated before anything is appended.
        derived = build_conditions(self.target, lookups) if lookups else []
        return [_as_condition(c) for c in conditions] + derived

    def where(self, *conditions: Any, **lookups: Any) -> Any:
        """
        Add WHERE criteria.

        Positional arguments are SQLAlchemy expressions or raw SQL strings;
        keyword arguments are attribute lookups validated against the target.

        Examples:
            >>> relation.where(articles.c.price > 10)
            >>> relation.where(status="open", tag__in=["a", "b"])
        """
        if not conditions and not lookups:
            return self
        entries = self._conditions(conditions, lookups)
        return self.clone_with(lambda c: c.append_multi(ClauseKind.WHERE, *entries))

    def where_not(self, *conditions: Any, **lookups: Any) -> Any:
        """
        Add negated WHERE criteria.

        Example:
            >>> relation.where_not(status="archived")
            # WHERE articles.status != :status_1
        """
        if not conditions and not lookups:
            return self
        entries = [not_(e) for e in self._conditions(conditions, lookups)]
        return self.clone_with(lambda c: c.append_multi(ClauseKind.WHERE, *entries))

    def having(self, *conditions: Any) -> Any:
        if not conditions:
            return self
        entries = [_as_condition(c) for c in conditions]
        return self.clone_with(lambda c: c.append_multi(ClauseKind.HAVING, *entries))

    def select(self, *columns: Any) -> Any:
        """Restrict the selected columns (names or expressions)."""
        return self._append(ClauseKind.SELECT, columns)

    def joins(self, *targets: Any) -> Any:
        """
        Add JOINs. Each target is a table, a table name, or a
        ``(table, onclause)`` tuple.

        Example:
            >>> relation.joins((comments, comments.c.article_id == articles.c.id))
        """
        return self._append(ClauseKind.JOINS, targets)

    def group(self, *columns: Any) -> Any:
        return self._append(ClauseKind.GROUP, columns)

    def order(self, *orderings: Any) -> Any:
        """
        Add ORDER BY criteria.

        Strings may be a name (``"title"``), a name with a direction
        (``"id desc"``) or a leading "-" for descending. Other strings are
        raw SQL.

        Example:
            >>> relation.order("-created_at", articles.c.id)
        """
        return self._append(ClauseKind.ORDER, orderings)

    def reorder(self, *orderings: Any) -> Any:
        """
        Replace any existing ordering.

        The relation is flagged as reordering, so merging it into another
        relation also replaces that relation's ordering. ``reorder()`` with no
        arguments clears it.
        """

        def mutate(clauses):
            clauses.set_multi(ClauseKind.ORDER, orderings)
            clauses.set_single(ClauseKind.REORDERING, True)

        return self.clone_with(mutate)

    def includes(self, *names: str) -> Any:
        return self._append(ClauseKind.INCLUDES, names)

    def preload(self, *names: str) -> Any:
        return self._append(ClauseKind.PRELOAD, names)

    def eager_load(self, *names: str) -> Any:
        return self._append(ClauseKind.EAGER_LOAD, names)

    def references(self, *names: str) -> Any:
        return self._append(ClauseKind.REFERENCES, names)

    def _append(self, kind: ClauseKind, values: tuple[Any, ...]) -> Any:
        if not values:
            return self
        return self.clone_with(lambda c: c.append_multi(kind, *values))

    def _set(self, kind: ClauseKind, value: Any) -> Any:
        return self.clone_with(lambda c: c.set_single(kind, value))

    def limit(self, count: int | None) -> Any:
        """
        Limit the number of rows; None removes the limit.

        Example:
            >>> relation.limit(10)
            # SELECT ... LIMIT 10
        """
        return self._set(ClauseKind.LIMIT, count)

    def offset(self, count: int | None) -> Any:
        return self._set(ClauseKind.OFFSET, count)

    def lock(self, mode: bool | str = True) -> Any:
        """Lock selected rows: True/"update", "share", "nowait" or "skip_locked"."""
        return self._set(ClauseKind.LOCK, mode or None)

    def readonly(self, flag: bool = True) -> Any:
        return self._set(ClauseKind.READONLY, flag or None)

    def from_(self, source: Any) -> Any:
        """Query from another table, alias or subquery instead of the target."""
        return self._set(ClauseKind.FROM, source)

    def distinct(self, flag: bool = True) -> Any:
        return self._set(ClauseKind.DISTINCT, flag or None)

    def reverse_order(self) -> Any:
        """Toggle reversal of the relation's ordering."""
        reversed_ = self._clauses.get_single(ClauseKind.REVERSE_ORDER)
        return self._set(ClauseKind.REVERSE_ORDER, None if reversed_ else True)

    def create_with(self, attributes: Mapping[str, Any] | None) -> Any:
        """
        Set attributes used when building records from this relation;
        None clears them.
        """
        if attributes is None:
            return self._set(ClauseKind.CREATE_WITH, None)
        current = self._clauses.get_single(ClauseKind.CREATE_WITH) or {}
        return self._set(ClauseKind.CREATE_WITH, {**current, **attributes})

    def extending(self, *extensions: Any) -> Any:
        """
        Attach extension objects whose callables become relation capabilities.

        Example:
            >>> class Published:
            ...     @staticmethod
            ...     def published(relation):
            ...         return relation.where(status="published")
            >>> relation.extending(Published).published()
        """
        added = [e for e in extensions if e not in self._extensions]
        if not added:
            return self
        return self._spawn(self._clauses.copy(), extensions=(*self._extensions, *added))

    def scope_attributes(self) -> dict[str, Any]:
        """
        Attribute values implied by the relation.

        Collects ``column = literal`` WHERE conditions on the target table,
        then applies ``create_with`` values on top.

        Example:
            >>> relation.where(status="open").create_with({"tag": "a"}).scope_attributes()
            {'status': 'open', 'tag': 'a'}
        """
        attributes: dict[str, Any] = {}
        for entry in self._clauses.get_multi(ClauseKind.WHERE):
            if (
                isinstance(entry, BinaryExpression)
                and entry.operator is operators.eq
                and getattr(entry.left, "table", None) is self.target.table
                and isinstance(entry.right, BindParameter)
            ):
                attributes[entry.left.key] = entry.right.effective_value
        attributes.update(self._clauses.get_single(ClauseKind.CREATE_WITH) or {})
        return attributes
