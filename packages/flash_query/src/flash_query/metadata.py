from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Protocol, runtime_checkable

from .config import query_settings
from .exceptions import UnknownAttributeError, UnknownEntityError
from .logging import get_logger, scoped_trace

if TYPE_CHECKING:
    from sqlalchemy import MetaData, Table
    from sqlalchemy.sql import ColumnElement

    from .engine import Executor
    from .relation import Relation

logger = get_logger(__name__)

Scope = Callable[["Relation"], "Relation"]


@dataclass(frozen=True)
class EntityDescriptor:
    """
    Identity of the table a Relation queries.

    ``store`` names the backing store; relations are only mergeable when
    their descriptors share it.
    """

    name: str
    store: str
    table: Table = field(compare=False, repr=False)
    attributes: frozenset[str] = field(default_factory=frozenset, repr=False)

    @classmethod
    def from_table(cls, table: Table, *, store: str | None = None) -> EntityDescriptor:
        return cls(
            name=table.name,
            store=store or query_settings.DEFAULT_STORE,
            table=table,
            attributes=frozenset(table.columns.keys()),
        )

    def column(self, name: str) -> ColumnElement[Any]:
        if name not in self.attributes:
            msg = f"Attribute '{name}' not found on entity '{self.name}'"
            raise UnknownAttributeError(msg)
        return self.table.c[name]

    def compatible_with(self, other: EntityDescriptor) -> bool:
        return self.store == other.store


@runtime_checkable
class MetadataProvider(Protocol):
    """Protocol for objects that resolve entity names to descriptors."""

    def describe(self, name: str) -> EntityDescriptor:
        """Return the descriptor for ``name`` or raise UnknownEntityError."""
        ...


class SchemaRegistry(MetadataProvider):
    """
    Metadata provider backed by a SQLAlchemy ``MetaData`` collection.

    Besides resolving descriptors, the registry is the entry point for
    building relations: it binds them to an executor and applies any
    default scope registered for the entity.

    Example:
        >>> registry = SchemaRegistry(metadata, engine=SqlEngine(engine))
        >>> registry.default_scope("articles", lambda r: r.where(deleted=False))
        >>> registry.relation("articles").order(articles.c.id)
    """

    def __init__(
        self,
        metadata: MetaData,
        *,
        store: str | None = None,
        engine: Executor | None = None,
    ):
        self.metadata = metadata
        self.store = store or query_settings.DEFAULT_STORE
        self.engine = engine
        self._descriptors: dict[str, EntityDescriptor] = {}
        self._default_scopes: dict[str, Scope] = {}

    def __contains__(self, name: object) -> bool:
        return name in self.metadata.tables

    def describe(self, name: str) -> EntityDescriptor:
        descriptor = self._descriptors.get(name)
        if descriptor is not None:
            return descriptor

        table = self.metadata.tables.get(name)
        if table is None:
            msg = f"Entity '{name}' is not registered in store '{self.store}'"
            raise UnknownEntityError(msg)

        descriptor = EntityDescriptor.from_table(table, store=self.store)
        self._descriptors[name] = descriptor
        return descriptor

    def default_scope(self, name: str, scope: Scope) -> None:
        """Register the scope applied by relation() for ``name``."""
        self.describe(name)
        self._default_scopes[name] = scope

    def unscoped(self, name: str) -> Relation:
        """Return a bare relation over ``name`` without its default scope."""
        from .relation import Relation

        return Relation(self.describe(name), engine=self.engine)

    def relation(self, name: str) -> Relation:
        """Return a relation over ``name`` with its default scope applied."""
        relation = self.unscoped(name)
        scope = self._default_scopes.get(name)
        if scope is None:
            return relation

        with scoped_trace(f"{name}.default_scope"):
            logger.debug("Applying default scope")
            relation = scope(relation)
        return relation.with_default_scoped(True)
