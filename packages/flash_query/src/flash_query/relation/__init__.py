from __future__ import annotations

from .spawn import MergeArgument, RelationSpawn, classify_merge_argument

__all__ = ["MergeArgument", "Relation", "classify_merge_argument"]


class Relation(RelationSpawn):
    """
    Lazy, immutable query over one entity.

    A Relation holds clause state (a ``ClauseSet``) for a target table and
    lets it be composed without running SQL. Every operation, whether a
    builder such as ``where()``/``order()``, a ``merge()`` or a projection
    with ``only()``/``except_()``, returns a new Relation; the original is
    never modified.

    Execution happens only through:
        - to_a() (bound executor)
        - fetch() / first() / count() / exists() (async session)
        - merge() with a list of entities, which materializes the relation

    Examples:
        >>> articles = registry.relation("articles")
        >>> recent = articles.order("-created_at").limit(10)
        >>> open_recent = recent.merge({"status": "open"})
        >>> unordered = open_recent.except_("order")
        >>> rows = open_recent.to_a()
    """
