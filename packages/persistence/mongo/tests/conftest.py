"""Test configuration for MongoDB persistence package."""

import pytest
from mongomock_motor import AsyncMongoMockClient

from commagg_persistence_mongo import MongoConnectionManager


@pytest.fixture
def mongo_connection():
    """Connection manager backed by mongomock instead of a real server."""
    return MongoConnectionManager(
        "mongodb://mock:27017",
        database="test_db",
        client=AsyncMongoMockClient(default_database_name="test_db"),
    )
