from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sqlalchemy import literal_column, select, text
from sqlalchemy.sql import FromClause, operators
from sqlalchemy.sql.elements import TextClause, UnaryExpression

from .clauses import ClauseKind, ClauseSet
from .exceptions import IrreversibleOrderError
from .logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy import Engine, Select

    from .metadata import EntityDescriptor

logger = get_logger(__name__)

# "title", "id desc", "comments.id ASC"
NAMED_ORDER = re.compile(r"^\s*([\w.]+)(?:\s+(asc|desc))?\s*$", re.IGNORECASE)


@runtime_checkable
class Executor(Protocol):
    """Protocol for objects that materialize assembled clause state."""

    def execute(self, clauses: ClauseSet, target: EntityDescriptor) -> list[Any]:
        """Run the query and return its result entities in order."""
        ...


def _column(target: EntityDescriptor, entry: Any) -> Any:
    """
    Resolve a string entry to a target column; pass expressions through.

    A bare name must be an attribute of the target. Anything else
    (``"count(*)"``, ``"comments.id"``) is emitted as written.
    """
    if not isinstance(entry, str):
        return entry
    if entry.isidentifier():
        return target.column(entry)
    return literal_column(entry)


def _condition(entry: Any) -> Any:
    return text(entry) if isinstance(entry, str) else entry


def _ordering(target: EntityDescriptor, entry: Any) -> Any:
    # "-title" orders descending, like the family's order_by strings.
    if not isinstance(entry, str):
        return entry
    if entry.startswith("-"):
        return target.column(entry[1:]).desc()

    match = NAMED_ORDER.match(entry)
    if match is None or "." in match.group(1):
        return text(entry)
    column = target.column(match.group(1))
    direction = (match.group(2) or "").lower()
    if direction == "desc":
        return column.desc()
    if direction == "asc":
        return column.asc()
    return column


def _reverse_text(ordering: TextClause) -> TextClause:
    reversed_parts = []
    for part in ordering.text.split(","):
        match = NAMED_ORDER.match(part)
        if match is None:
            msg = (
                f"Cannot reverse ordering {ordering.text!r}; "
                "use reorder() with explicit directions instead"
            )
            raise IrreversibleOrderError(msg)
        descending = (match.group(2) or "").lower() == "desc"
        reversed_parts.append(f"{match.group(1)} {'ASC' if descending else 'DESC'}")
    return text(", ".join(reversed_parts))


def _reverse(ordering: Any) -> Any:
    if isinstance(ordering, UnaryExpression):
        if ordering.modifier is operators.desc_op:
            return ordering.element.asc()
        if ordering.modifier is operators.asc_op:
            return ordering.element.desc()
    if isinstance(ordering, TextClause):
        return _reverse_text(ordering)
    if not hasattr(ordering, "desc"):
        msg = f"Cannot reverse ordering {ordering!r}"
        raise IrreversibleOrderError(msg)
    return ordering.desc()


def _source(target: EntityDescriptor, entry: Any) -> FromClause:
    if isinstance(entry, str):
        return target.table.metadata.tables[entry]
    return entry


def _apply_lock(stmt: Select, lock: Any) -> Select:
    if lock is True or lock == "update":
        return stmt.with_for_update()
    if lock == "share":
        return stmt.with_for_update(read=True)
    if lock == "nowait":
        return stmt.with_for_update(nowait=True)
    if lock == "skip_locked":
        return stmt.with_for_update(skip_locked=True)
    msg = f"Unsupported lock mode {lock!r}"
    raise ValueError(msg)


def compile_select(clauses: ClauseSet, target: EntityDescriptor) -> Select:
    """
    Assemble a SQLAlchemy ``Select`` from clause state.

    Loader kinds (includes, preload, eager_load, references) and the
    readonly/create_with values describe how results are used rather than
    which rows are read, so they do not affect the statement.

    Example:
        >>> stmt = compile_select(relation.clauses, relation.target)
        # SELECT articles.* FROM articles WHERE articles.status = :status_1
    """
    source = target.table
    if clauses.has_single(ClauseKind.FROM):
        source = _source(target, clauses.get_single(ClauseKind.FROM))
    columns = [_column(target, c) for c in clauses.get_multi(ClauseKind.SELECT)]
    stmt = select(*columns).select_from(source) if columns else select(source)

    for join in clauses.get_multi(ClauseKind.JOINS):
        if isinstance(join, tuple):
            right, onclause = join
            stmt = stmt.join(_source(target, right), onclause)
        else:
            stmt = stmt.join(_source(target, join))

    wheres = [_condition(w) for w in clauses.get_multi(ClauseKind.WHERE)]
    if wheres:
        stmt = stmt.where(*wheres)

    groups = [_column(target, g) for g in clauses.get_multi(ClauseKind.GROUP)]
    if groups:
        stmt = stmt.group_by(*groups)

    havings = [_condition(h) for h in clauses.get_multi(ClauseKind.HAVING)]
    if havings:
        stmt = stmt.having(*havings)

    orders = [_ordering(target, o) for o in clauses.get_multi(ClauseKind.ORDER)]
    if clauses.get_single(ClauseKind.REVERSE_ORDER):
        # Without an explicit order, reversing falls back to the primary key.
        if not orders:
            orders = list(target.table.primary_key.columns)
        orders = [_reverse(o) for o in orders]
    if orders:
        stmt = stmt.order_by(*orders)

    if clauses.has_single(ClauseKind.LIMIT):
        stmt = stmt.limit(clauses.get_single(ClauseKind.LIMIT))
    if clauses.has_single(ClauseKind.OFFSET):
        stmt = stmt.offset(clauses.get_single(ClauseKind.OFFSET))
    if clauses.get_single(ClauseKind.DISTINCT):
        stmt = stmt.distinct()
    if clauses.has_single(ClauseKind.LOCK):
        stmt = _apply_lock(stmt, clauses.get_single(ClauseKind.LOCK))
    return stmt


def row_to_entity(row: Any) -> dict[str, Any]:
    return dict(row._mapping)


class SqlEngine(Executor):
    """
    Executor running compiled statements on a synchronous SQLAlchemy engine.

    Each result row is returned as a plain ``dict`` keyed by column name, so
    results compare by value.
    """

    def __init__(self, bind: Engine):
        self.bind = bind

    def execute(self, clauses: ClauseSet, target: EntityDescriptor) -> list[Any]:
        stmt = compile_select(clauses, target)
        logger.debug("Executing query on %s: %s", target.name, stmt)
        with self.bind.connect() as conn:
            result = conn.execute(stmt)
            return [row_to_entity(row) for row in result]

