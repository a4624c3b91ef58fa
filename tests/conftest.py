"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncIterator

import pytest

from cortex.core import db_client
from cortex.core.config import settings


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch) -> AsyncIterator[str]:
    """A fresh SQLite file with the full schema, used as the default database."""
    db_path = str(tmp_path / "cortex-test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)

    await db_client.init_db()
    yield db_path
    await db_client.close_connection()
