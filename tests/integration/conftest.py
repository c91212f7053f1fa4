"""Session-scoped fixtures for integration tests."""

from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine
from testcontainers.core.container import DockerContainer

from kg_builder.db import PostgresGraphDatabase, get_engine
from kg_builder.db.cypher import execute_cypher
from tests.conftest import AgeTestBase


@pytest.fixture(scope="session")
def postgres_container() -> Generator[DockerContainer, None, None]:
    """Start the Apache AGE container for the session."""
    container = AgeTestBase.create_container(AgeTestBase.database_image())
    container.start()
    AgeTestBase.wait_for_postgres(container)
    yield container
    container.stop()


@pytest.fixture(scope="session")
def test_db_url(postgres_container: DockerContainer) -> str:
    """Async connection URL for the test database."""
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    return f"postgresql+asyncpg://postgres:postgres@{host}:{port}/postgres"


@pytest_asyncio.fixture
async def engine(test_db_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Per-test engine so each event loop gets its own connection pool."""
    instance = get_engine(test_db_url)
    yield instance
    await instance.dispose()


@pytest_asyncio.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[PostgresGraphDatabase, None]:
    """Per-test PostgresGraphDatabase on an emptied graph."""
    instance = PostgresGraphDatabase(engine)
    await instance.ensure_ready()
    await execute_cypher(engine, "MATCH (n) DETACH DELETE n")
    yield instance
