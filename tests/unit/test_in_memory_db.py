"""Tests for InMemoryDBClient implementation."""

import pytest

from cortex.core.db_client import DatabaseError, RecordNotFoundError


@pytest.mark.unit
class TestInMemoryDBClient:
    """Test suite for InMemoryDBClient."""

    async def test_create_record(self, in_memory_db):
        record = await in_memory_db.create_record(collection="tasks", data={"title": "Plan", "progress": 0})

        assert record["id"] is not None
        assert record["title"] == "Plan"
        assert "created" in record
        assert "updated" in record

    async def test_create_record_generates_unique_ids(self, in_memory_db):
        first = await in_memory_db.create_record(collection="tasks", data={"title": "A"})
        second = await in_memory_db.create_record(collection="tasks", data={"title": "B"})

        assert first["id"] != second["id"]

    async def test_create_record_invalid_data(self, in_memory_db):
        with pytest.raises(DatabaseError, match="Data must be a dictionary"):
            await in_memory_db.create_record(collection="tasks", data="invalid")

    async def test_get_record_returns_copy(self, in_memory_db):
        created = await in_memory_db.create_record(collection="tasks", data={"title": "Plan"})

        fetched = await in_memory_db.get_record(collection="tasks", record_id=created["id"])
        fetched["title"] = "Mutated"

        again = await in_memory_db.get_record(collection="tasks", record_id=created["id"])
        assert again["title"] == "Plan"

    async def test_get_missing_record(self, in_memory_db):
        with pytest.raises(RecordNotFoundError):
            await in_memory_db.get_record(collection="tasks", record_id="nope")

    async def test_update_record(self, in_memory_db):
        created = await in_memory_db.create_record(collection="tasks", data={"title": "Plan", "progress": 0})

        updated = await in_memory_db.update_record(
            collection="tasks", record_id=created["id"], data={"progress": 40}
        )

        assert updated["progress"] == 40
        assert updated["title"] == "Plan"

    async def test_update_with_empty_payload(self, in_memory_db):
        created = await in_memory_db.create_record(collection="tasks", data={"title": "Plan"})

        with pytest.raises(ValueError, match="Empty update payload"):
            await in_memory_db.update_record(collection="tasks", record_id=created["id"], data={})

    async def test_delete_record(self, in_memory_db):
        created = await in_memory_db.create_record(collection="tasks", data={"title": "Plan"})

        await in_memory_db.delete_record(collection="tasks", record_id=created["id"])

        with pytest.raises(RecordNotFoundError):
            await in_memory_db.get_record(collection="tasks", record_id=created["id"])

    async def test_list_records_with_and_filter(self, in_memory_db):
        await in_memory_db.create_record(collection="tasks", data={"owner_id": "u1", "scope": "day"})
        await in_memory_db.create_record(collection="tasks", data={"owner_id": "u1", "scope": "week"})
        await in_memory_db.create_record(collection="tasks", data={"owner_id": "u2", "scope": "day"})

        records = await in_memory_db.list_records(collection="tasks", filter_query='owner_id = "u1" && scope = "day"')

        assert len(records) == 1
        assert records[0]["scope"] == "day"

    async def test_list_records_with_or_group(self, in_memory_db):
        await in_memory_db.create_record(collection="tasks", data={"status": "todo"})
        await in_memory_db.create_record(collection="tasks", data={"status": "in_progress"})
        await in_memory_db.create_record(collection="tasks", data={"status": "done"})

        records = await in_memory_db.list_records(
            collection="tasks", filter_query='(status = "todo" || status = "in_progress")'
        )

        assert {r["status"] for r in records} == {"todo", "in_progress"}

    async def test_boolean_fields_compare_lowercase(self, in_memory_db):
        await in_memory_db.create_record(collection="tasks", data={"is_milestone": True})
        await in_memory_db.create_record(collection="tasks", data={"is_milestone": False})

        records = await in_memory_db.list_records(collection="tasks", filter_query='is_milestone = "true"')

        assert len(records) == 1

    async def test_escaped_quote_in_filter_value(self, in_memory_db):
        await in_memory_db.create_record(collection="tasks", data={"title": 'say "hi"'})

        record = await in_memory_db.get_first_record(collection="tasks", filter_query='title = "say \\"hi\\""')

        assert record is not None

    async def test_sort_and_pagination(self, in_memory_db):
        for key in ("2026-03-03", "2026-03-01", "2026-03-02"):
            await in_memory_db.create_record(collection="tasks", data={"scope_key": key})

        first_page = await in_memory_db.list_records(collection="tasks", sort="-scope_key", per_page=2)
        second_page = await in_memory_db.list_records(collection="tasks", sort="-scope_key", page=2, per_page=2)

        assert [r["scope_key"] for r in first_page] == ["2026-03-03", "2026-03-02"]
        assert [r["scope_key"] for r in second_page] == ["2026-03-01"]

    async def test_invalid_filter_syntax(self, in_memory_db):
        with pytest.raises(DatabaseError, match="Invalid filter syntax"):
            await in_memory_db.list_records(collection="tasks", filter_query="title = unquoted")
