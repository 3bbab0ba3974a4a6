from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from flash_query.engine import compile_select, row_to_entity
from flash_query.exceptions import UnboundRelationError

from .base import RelationBase

if TYPE_CHECKING:
    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession


class RelationExecution(RelationBase):
    """
    Materialization of a relation.

    ``to_a()`` goes through the executor the relation is bound to; the async
    methods take a session explicitly, the way the family's query sets do.
    """

    def to_select(self) -> Select:
        """
        Compile the relation into a SQLAlchemy ``Select`` without running it.

        Example:
            >>> print(registry.relation("articles").where(status="open").to_select())
            # SELECT ... FROM articles WHERE articles.status = :status_1
        """
        return compile_select(self._clauses, self.target)

    def to_a(self) -> list[Any]:
        """
        Execute the relation through its bound executor.

        Raises:
            UnboundRelationError: If the relation has no executor.
        """
        if self.engine is None:
            msg = f"Relation on '{self.target.name}' is not bound to an executor"
            raise UnboundRelationError(msg)
        return self.engine.execute(self._clauses.copy(), self.target)

    async def fetch(self, db: AsyncSession) -> list[dict[str, Any]]:
        """
        Execute the relation on an async session and return rows as dicts.

        Example:
            >>> rows = await registry.relation("articles").limit(5).fetch(db)
        """
        result = await db.execute(self.to_select())
        return [row_to_entity(row) for row in result]

    async def first(self, db: AsyncSession) -> dict[str, Any] | None:
        """Return the first row or None."""
        result = await db.execute(self.to_select().limit(1))
        row = result.first()
        return None if row is None else row_to_entity(row)

    async def count(self, db: AsyncSession) -> int:
        """
        Return the number of rows the relation matches.

        Wrapped in a subquery so DISTINCT, GROUP BY and LIMIT are honored.
        """
        count_stmt = select(func.count()).select_from(self.to_select().subquery())
        return await db.scalar(count_stmt) or 0

    async def exists(self, db: AsyncSession) -> bool:
        return await self.count(db) > 0
