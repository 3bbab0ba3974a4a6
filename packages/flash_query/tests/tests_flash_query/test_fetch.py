import pytest

pytestmark = pytest.mark.asyncio


class TestAsyncExecution:
    """Running relations on an async session."""

    async def test_fetch_returns_rows_in_order(self, registry, db_session):
        """Test that fetch() returns filtered rows in the requested order."""
        relation = registry.relation("articles").where(status="open").order("-id")
        rows = await relation.fetch(db_session)

        assert [row["id"] for row in rows] == [4, 3, 1]
        assert rows[0]["title"] == "Delta"

    async def test_fetch_merged_relation(self, registry, db_session):
        """Test that a relation merged from a mapping and an ordering can be fetched."""
        articles = registry.relation("articles")
        merged = articles.merge({"tag": "b"}).merge(articles.order("id"))

        rows = await merged.fetch(db_session)
        assert [row["id"] for row in rows] == [2, 3]

    async def test_first_returns_row_or_none(self, registry, db_session):
        """Test that first() returns the first row, or None when nothing matches."""
        relation = registry.relation("articles").order("title")
        first = await relation.first(db_session)
        assert first is not None
        assert first["title"] == "Alpha"

        missing = await relation.where(status="missing").first(db_session)
        assert missing is None

    async def test_count_honors_limit(self, registry, db_session):
        """Test that count() counts the rows the relation would return."""
        relation = registry.relation("articles")
        assert await relation.count(db_session) == 4
        assert await relation.limit(2).count(db_session) == 2
        assert await relation.where(status="open").count(db_session) == 3

    async def test_exists(self, registry, db_session):
        """Test that exists() reports whether any row matches."""
        relation = registry.relation("articles")
        assert await relation.where(tag="c").exists(db_session) is True
        assert await relation.where(tag="z").exists(db_session) is False

    async def test_projection_before_fetch(self, registry, db_session):
        """Test that a projected relation runs without the dropped clauses."""
        relation = registry.relation("articles").where(status="closed").order("id")
        rows = await relation.except_("where").fetch(db_session)
        assert [row["id"] for row in rows] == [1, 2, 3, 4]
