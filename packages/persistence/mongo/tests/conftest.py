"""Test configuration for the MongoDB adapter."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from mongomock_motor import AsyncMongoMockClient

from esdoc_persistence_mongo import MongoConnectionManager, MongoDocumentStore


@pytest.fixture
async def mongo_connection() -> AsyncIterator[MongoConnectionManager]:
    """Connection manager backed by mongomock instead of a server."""
    connection = MongoConnectionManager(
        "mongodb://mock:27017", database="test_db"
    )
    connection._client = AsyncMongoMockClient(default_database_name="test_db")
    yield connection
    connection.close()


@pytest.fixture
def mongo_store(mongo_connection: MongoConnectionManager) -> MongoDocumentStore:
    # mongomock has no sessions, so transactions fall back to the local lock.
    return MongoDocumentStore(mongo_connection, use_transactions=False)
