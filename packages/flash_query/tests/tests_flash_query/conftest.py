import pytest
import pytest_asyncio
from flash_query import SchemaRegistry, SqlEngine
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from models import (
    ARTICLE_ROWS,
    COMMENT_ROWS,
    archive_metadata,
    articles,
    comments,
    metadata,
)

DATABASE_URL = "sqlite://"  # in-memory DB for tests
ASYNC_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
def registry():
    """Registry over the test schema, not bound to any database."""
    return SchemaRegistry(metadata)


@pytest.fixture
def archive_registry():
    """Registry over an unrelated store."""
    return SchemaRegistry(archive_metadata, store="archive")


@pytest.fixture
def article_relation(registry):
    return registry.unscoped("articles")


@pytest.fixture
def sql_engine():
    """Synchronous in-memory SQLite engine seeded with articles and comments."""
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(articles.insert(), ARTICLE_ROWS)
        conn.execute(comments.insert(), COMMENT_ROWS)

    yield engine

    engine.dispose()


@pytest.fixture
def bound_registry(sql_engine):
    """Registry whose relations execute against the seeded database."""
    return SchemaRegistry(metadata, engine=SqlEngine(sql_engine))


@pytest_asyncio.fixture
async def db_session():
    """Async session on a seeded in-memory database."""
    engine = create_async_engine(ASYNC_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
        await conn.execute(articles.insert(), ARTICLE_ROWS)
        await conn.execute(comments.insert(), COMMENT_ROWS)

    async with AsyncSession(engine) as session:
        yield session

    await engine.dispose()
