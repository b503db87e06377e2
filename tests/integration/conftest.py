"""
Integration Test Fixtures
Provides a Postgres testcontainer and a connected failed event store
"""

from typing import AsyncGenerator, Generator

import pytest
from testcontainers.postgres import PostgresContainer

from vehicle_data_receiver.store.postgres import TABLE_NAME, PostgresFailedEventStore


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start a Postgres testcontainer for the test session

    Yields:
        Running PostgresContainer instance
    """
    container = PostgresContainer("postgres:15", driver=None)
    container.start()
    yield container
    container.stop()


@pytest.fixture(scope="session")
def postgres_url(postgres_container: PostgresContainer) -> str:
    return postgres_container.get_connection_url().replace("psycopg2", "")


@pytest.fixture
async def pg_store(postgres_url: str) -> AsyncGenerator[PostgresFailedEventStore, None]:
    """
    Connected store with an empty failed_event table

    Yields:
        PostgresFailedEventStore
    """
    store = PostgresFailedEventStore(connection_url=postgres_url)
    await store.connect()
    await store.create_schema()
    await store._execute(f"TRUNCATE {TABLE_NAME} RESTART IDENTITY")

    yield store

    await store.disconnect()
