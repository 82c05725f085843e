"""
Integration test configuration with testcontainers.

Provides a session-scoped PostgreSQL 16 container and a per-test
session factory whose audit tables are created fresh and dropped
afterwards.

Usage:
    @pytest.mark.integration
    async def test_example(session_factory: async_sessionmaker[AsyncSession]) -> None:
        log = PostgresTransactionLog(session_factory)
        ...

Note: Docker must be running for these fixtures to work.
"""

from collections.abc import AsyncGenerator, Generator

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from testcontainers.postgres import PostgresContainer

from modal_context.bootstrap.database import to_async_url


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """Session-scoped PostgreSQL 16 container, started once per test run."""
    with PostgresContainer("postgres:16-alpine") as postgres:
        yield postgres


@pytest.fixture(scope="session")
def postgres_async_url(postgres_container: PostgresContainer) -> str:
    """asyncpg URL for the container (testcontainers returns a psycopg2 URL)."""
    return to_async_url(postgres_container.get_connection_url())


@pytest.fixture
async def session_factory(
    postgres_async_url: str,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Per-test session factory; audit tables are dropped after each test."""
    engine = create_async_engine(postgres_async_url, echo=False)
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    yield factory

    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE IF EXISTS transition_attempts"))
        await conn.execute(text("DROP TABLE IF EXISTS compliance_records"))
    await engine.dispose()
