"""Pytest configuration and fixtures for unit tests."""

from datetime import UTC, datetime

import pytest

from cortex.core.live_query import snapshot_hub
from tests.unit.mocks import InMemoryDBClient


OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches cortex.core.db_client functions to use InMemoryDBClient."""
    monkeypatch.setattr("cortex.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("cortex.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("cortex.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("cortex.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("cortex.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("cortex.core.db_client.get_first_record", in_memory_db.get_first_record)
    return in_memory_db


@pytest.fixture(autouse=True)
def clean_snapshot_hub():
    """Drops live subscriptions left behind by a test."""
    yield
    snapshot_hub.clear()


@pytest.fixture
def owner_id() -> str:
    return OWNER_ID


@pytest.fixture
def fixed_now() -> datetime:
    """Monday 2 March 2026, 10:30 UTC."""
    return datetime(2026, 3, 2, 10, 30, tzinfo=UTC)
