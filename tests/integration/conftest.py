"""Session-scoped PostgreSQL container loaded with the sample database."""

import asyncio
import time
import warnings
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import asyncpg
import pytest
import pytest_asyncio
from sqlalchemy.exc import SQLAlchemyError
from testcontainers.core.container import DockerContainer
from testcontainers.core.waiting_utils import wait_for_logs

from dbdrill.core.catalog import Catalog
from dbdrill.db import PostgresDatabase, get_engine

_SAMPLE_SQL = Path(__file__).parent.parent.parent / "docs" / "sample-db.sql"


async def _load_sample(dsn: str) -> None:
    engine = get_engine(dsn)
    try:
        async with engine.connect() as conn:
            raw = await conn.get_raw_connection()
            await raw.driver_connection.execute(_SAMPLE_SQL.read_text(encoding="utf-8"))
    finally:
        await engine.dispose()


@pytest.fixture(scope="session")
def postgres_container() -> Generator[DockerContainer, None, None]:
    container = (
        DockerContainer("postgres:16-alpine").with_exposed_ports(5432).with_env("POSTGRES_PASSWORD", "postgres")
    )
    container.start()
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DeprecationWarning)
        wait_for_logs(container, "database system is ready to accept connections", timeout=60)
    yield container
    container.stop()


@pytest.fixture(scope="session")
def test_db_url(postgres_container: DockerContainer) -> str:
    """Sample-loaded connection URL; retries while the server finishes its init restart."""
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    url = f"postgres://postgres:postgres@{host}:{port}/postgres"
    for attempt in range(30):
        try:
            asyncio.run(_load_sample(url))
            return url
        except (OSError, SQLAlchemyError, asyncpg.PostgresError):
            if attempt == 29:
                raise
            time.sleep(1)
    return url


@pytest_asyncio.fixture
async def db(test_db_url: str) -> AsyncGenerator[PostgresDatabase, None]:
    """Per-test database so each event loop gets its own connection pool."""
    instance = PostgresDatabase(get_engine(test_db_url))
    yield instance
    await instance.dispose()


@pytest.fixture
def sample_catalog(sample_resources_file: Path) -> Catalog:
    return Catalog.load_file(sample_resources_file)
