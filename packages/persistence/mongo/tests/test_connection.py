"""Unit tests for MongoConnectionManager (without real MongoDB)."""

from __future__ import annotations

import pytest

from commagg_persistence_mongo.connection import MongoConnectionManager
from commagg_persistence_mongo.exceptions import MongoConnectionError


def test_client_raises_before_connect() -> None:
    mgr = MongoConnectionManager(url="mongodb://localhost:27017")
    assert mgr.connected is False
    with pytest.raises(MongoConnectionError, match="Not connected"):
        _ = mgr.client


def test_close_when_not_connected() -> None:
    mgr = MongoConnectionManager()
    mgr.close()
    mgr.close()
    assert mgr.connected is False


@pytest.mark.asyncio
async def test_connect_returns_injected_client(mongo_connection) -> None:
    injected = mongo_connection.client
    assert await mongo_connection.connect() is injected


@pytest.mark.asyncio
async def test_health_check_false_when_not_connected() -> None:
    assert await MongoConnectionManager().health_check() is False


@pytest.mark.asyncio
async def test_collection_is_on_configured_database(mongo_connection) -> None:
    coll = mongo_connection.collection("messages")
    await coll.insert_one({"_id": "m-1"})
    found = await mongo_connection.get_database("test_db")["messages"].find_one(
        {"_id": "m-1"}
    )
    assert found == {"_id": "m-1"}
