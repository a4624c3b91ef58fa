"""Achievement service: history loading, progress, and idempotent unlock recording."""

import logging
from datetime import UTC, datetime

from cortex.core import db_client
from cortex.core.db_client import sanitize_param
from cortex.core.logging import log_with_owner_context, span
from cortex.domain.achievement import AchievementTier, UserAchievement
from cortex.models.service_models import AchievementProgress
from cortex.modules.achievements import catalog, tracker
from cortex.modules.achievements.periods import local_date, period_key, tier_of
from cortex.modules.outreach import service as outreach_service
from cortex.modules.tasks import service as task_service


logger = logging.getLogger(__name__)

COLLECTION = "user_achievements"

# Monthly unlocks must exist before yearly progress is computed
TIER_ORDER = (AchievementTier.WEEKLY, AchievementTier.MONTHLY, AchievementTier.YEARLY)


async def list_unlocks(*, owner_id: str, period_key: str | None = None) -> list[UserAchievement]:
    """Recorded unlocks, optionally for one period."""
    with span("achievement_service.list_unlocks"):
        filter_query = f'owner_id = "{sanitize_param(owner_id)}"'
        if period_key:
            filter_query += f' && period_key = "{sanitize_param(period_key)}"'
        records = await db_client.list_all_records(collection=COLLECTION, filter_query=filter_query)
        return [UserAchievement.model_validate(record) for record in records]


async def load_history(*, owner_id: str) -> tracker.ActivityHistory:
    """Build the owner's activity history from persisted tasks, outreach and unlocks."""
    with span("achievement_service.load_history"):
        tasks = await task_service.list_tasks(owner_id=owner_id)
        outreach = await outreach_service.list_outreach(owner_id=owner_id)
        unlocked = await list_unlocks(owner_id=owner_id)
        return tracker.build_history(tasks=tasks, outreach=outreach, unlocked=unlocked)


async def get_achievement_progress(*, owner_id: str, period_key: str) -> list[AchievementProgress]:
    """Progress toward every achievement of the period's tier.

    Raises:
        ValueError: If the period key is malformed
    """
    with span("achievement_service.get_achievement_progress"):
        tier_of(period_key)
        history = await load_history(owner_id=owner_id)
        return tracker.compute_achievement_progress(history, period_key)


async def record_unlock(
    *,
    owner_id: str,
    achievement_id: str,
    period_key: str,
    unlocked_at: datetime | None = None,
) -> UserAchievement:
    """Record an unlock once per ``(achievement_id, period_key)``.

    Returns the existing record when the unlock is already recorded.

    Raises:
        ValueError: If the achievement is unknown or the period has the wrong tier
    """
    with span("achievement_service.record_unlock"):
        achievement = catalog.get_achievement(achievement_id)
        if achievement is None:
            msg = f"Unknown achievement: {achievement_id}"
            raise ValueError(msg)
        if tier_of(period_key) != achievement.tier:
            msg = f"Period {period_key} does not match {achievement.tier} achievement {achievement_id}"
            raise ValueError(msg)

        filter_query = (
            f'owner_id = "{sanitize_param(owner_id)}" && '
            f'achievement_id = "{sanitize_param(achievement_id)}" && '
            f'period_key = "{sanitize_param(period_key)}"'
        )
        existing = await db_client.get_first_record(collection=COLLECTION, filter_query=filter_query)
        if existing is not None:
            return UserAchievement.model_validate(existing)

        data = {
            "owner_id": owner_id,
            "achievement_id": achievement_id,
            "period_key": period_key,
            "unlocked_at": (unlocked_at or datetime.now(UTC)).isoformat(),
        }
        try:
            record = await db_client.create_record(collection=COLLECTION, data=data)
        except db_client.DatabaseError:
            # A concurrent writer may have inserted the same unlock
            existing = await db_client.get_first_record(collection=COLLECTION, filter_query=filter_query)
            if existing is None:
                raise
            return UserAchievement.model_validate(existing)

        log_with_owner_context(
            logger,
            "info",
            "Achievement unlocked",
            owner_id=owner_id,
            achievement_id=achievement_id,
            period_key=period_key,
            reward_xp=achievement.reward_xp,
        )
        return UserAchievement.model_validate(record)


async def refresh_achievements(*, owner_id: str, as_of: datetime | None = None) -> list[UserAchievement]:
    """Evaluate the week, month and year containing ``as_of`` and record new unlocks.

    Returns:
        Unlocks recorded by this call
    """
    with span("achievement_service.refresh_achievements"):
        now = as_of or datetime.now(UTC)
        today = local_date(now)
        history = await load_history(owner_id=owner_id)

        recorded: list[UserAchievement] = []
        for tier in TIER_ORDER:
            progress = tracker.compute_achievement_progress(history, period_key(tier, today))
            for unlock in tracker.detect_unlocks(progress, history.unlocked, now=now):
                record = await record_unlock(
                    owner_id=owner_id,
                    achievement_id=unlock.achievement_id,
                    period_key=unlock.period_key,
                    unlocked_at=now,
                )
                history.unlocked.append(record)
                recorded.append(record)

        if recorded:
            logger.info("Recorded %d new achievement unlocks for %s", len(recorded), owner_id)
        return recorded


async def get_total_xp(*, owner_id: str) -> int:
    """Experience earned across all recorded unlocks."""
    with span("achievement_service.get_total_xp"):
        return tracker.total_xp(await list_unlocks(owner_id=owner_id))
