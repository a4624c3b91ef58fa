"""Unit tests for the outreach service."""

import logging
from datetime import UTC, datetime

import pytest

from cortex.core.config import settings
from cortex.domain.create_models import OutreachCreate
from cortex.modules.outreach import service as outreach_service


async def _log(owner_id, program="nova", day="2026-03-02", **fields):
    return await outreach_service.log_outreach(
        owner_id=owner_id, data=OutreachCreate(program=program, date=day, **fields)
    )


@pytest.mark.unit
class TestLogOutreach:
    """Tests for log_outreach function."""

    async def test_log_with_explicit_day(self, patched_db, owner_id):
        entry = await _log(owner_id, business_name="Acme", channel="email")

        assert entry.date == "2026-03-02"
        assert entry.status == "sent"
        assert entry.business_name == "Acme"

    async def test_day_defaults_to_local_today(self, patched_db, owner_id, monkeypatch):
        monkeypatch.setattr(settings, "user_timezone", "America/New_York")
        entry = await outreach_service.log_outreach(
            owner_id=owner_id,
            data=OutreachCreate(program="nova"),
            now=datetime(2026, 3, 3, 2, 0, tzinfo=UTC),
        )
        assert entry.date == "2026-03-02"

    async def test_untracked_program_is_logged(self, patched_db, owner_id, caplog):
        with caplog.at_level(logging.WARNING, logger="cortex.modules.outreach.service"):
            entry = await _log(owner_id, program="side_project")
        assert entry.program == "side_project"
        assert "untracked program" in caplog.text

    def test_malformed_day_rejected(self):
        with pytest.raises(ValueError):
            OutreachCreate(program="nova", date="03/02/2026")


@pytest.mark.unit
class TestDailyProgress:
    """Tests for get_daily_progress function."""

    async def test_counts_against_targets(self, patched_db, owner_id):
        for _ in range(3):
            await _log(owner_id, program="nova")
        await _log(owner_id, program="amaka_ai")
        await _log(owner_id, program="nova", day="2026-03-03")

        progress = await outreach_service.get_daily_progress(owner_id=owner_id, day="2026-03-02")

        by_program = {p.program: p for p in progress.programs}
        assert by_program["nova"].count == 3
        assert by_program["nova"].target == 20
        assert not by_program["nova"].met
        assert by_program["amaka_ai"].count == 1
        assert progress.total == 4

    async def test_target_met(self, patched_db, owner_id):
        for _ in range(10):
            await _log(owner_id, program="amaka_ai")

        progress = await outreach_service.get_daily_progress(owner_id=owner_id, day="2026-03-02")

        assert next(p for p in progress.programs if p.program == "amaka_ai").met

    async def test_list_by_program(self, patched_db, owner_id):
        await _log(owner_id, program="nova")
        await _log(owner_id, program="amaka_ai")

        entries = await outreach_service.list_outreach(owner_id=owner_id, program="amaka_ai")

        assert [e.program for e in entries] == ["amaka_ai"]

    async def test_stream_outreach(self, patched_db, owner_id):
        snapshots = []
        await outreach_service.stream_outreach(owner_id=owner_id, callback=snapshots.append)
        await _log(owner_id)
        assert len(snapshots[-1]) == 1
