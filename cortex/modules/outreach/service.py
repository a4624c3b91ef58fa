"""Outreach service: log contacts and track daily program targets."""

import logging
from collections import Counter
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from cortex.core import db_client
from cortex.core.config import constants
from cortex.core.db_client import sanitize_param
from cortex.core.live_query import Subscription, snapshot_hub
from cortex.core.logging import span
from cortex.domain.create_models import OutreachCreate
from cortex.domain.outreach import OutreachEntry
from cortex.models.service_models import DailyOutreachProgress, ProgramProgress
from cortex.modules.achievements.periods import local_date


logger = logging.getLogger(__name__)

COLLECTION = "outreach_entries"


async def log_outreach(*, owner_id: str, data: OutreachCreate, now: datetime | None = None) -> OutreachEntry:
    """Record one outreach contact. The day defaults to today in the user's timezone."""
    with span("outreach_service.log_outreach"):
        if data.program not in constants.OUTREACH_DAILY_TARGETS:
            logger.warning("Outreach logged for untracked program", extra={"program": data.program})

        payload: dict[str, Any] = data.model_dump(mode="json")
        payload["owner_id"] = owner_id
        payload["date"] = data.date or local_date(now or datetime.now(UTC)).isoformat()

        record = await db_client.create_record(collection=COLLECTION, data=payload)
        logger.info("Logged outreach: %s via %s (%s)", data.business_name, data.channel, data.program)

        await snapshot_hub.notify(owner_id=owner_id, collection=COLLECTION)
        return OutreachEntry.model_validate(record)


async def list_outreach(
    *,
    owner_id: str,
    day: str | None = None,
    program: str | None = None,
) -> list[OutreachEntry]:
    """List outreach entries, optionally for one day or program."""
    with span("outreach_service.list_outreach"):
        filters = [f'owner_id = "{sanitize_param(owner_id)}"']
        if day:
            filters.append(f'date = "{sanitize_param(day)}"')
        if program:
            filters.append(f'program = "{sanitize_param(program)}"')

        records = await db_client.list_all_records(collection=COLLECTION, filter_query=" && ".join(filters))
        return [OutreachEntry.model_validate(record) for record in records]


async def get_daily_progress(
    *,
    owner_id: str,
    day: str | None = None,
    now: datetime | None = None,
) -> DailyOutreachProgress:
    """Counts per tracked program for one local day, against the daily targets."""
    with span("outreach_service.get_daily_progress"):
        day = day or local_date(now or datetime.now(UTC)).isoformat()
        entries = await list_outreach(owner_id=owner_id, day=day)
        counts = Counter(entry.program for entry in entries)

        programs = [
            ProgramProgress(program=program, count=counts.get(program, 0), target=target)
            for program, target in constants.OUTREACH_DAILY_TARGETS.items()
        ]
        return DailyOutreachProgress(date=day, programs=programs, total=len(entries))


async def stream_outreach(
    *,
    owner_id: str,
    callback: Callable[[list[OutreachEntry]], Any],
) -> Subscription:
    """Subscribe to full snapshots of the owner's outreach log."""

    async def fetch() -> list[OutreachEntry]:
        return await list_outreach(owner_id=owner_id)

    with span("outreach_service.stream_outreach"):
        return await snapshot_hub.subscribe(owner_id=owner_id, collection=COLLECTION, fetch=fetch, callback=callback)
