"""Unit tests for achievement progress and unlock detection."""

import logging
from datetime import UTC, datetime

import pytest

from cortex.domain.achievement import AchievementTier, UserAchievement
from cortex.domain.outreach import OutreachEntry
from cortex.modules.achievements import catalog, tracker
from tests.unit.factories import make_task


NOW = datetime(2026, 3, 8, 20, 0, tzinfo=UTC)


def _done(task_id, completed_at, **overrides):
    return make_task(task_id, status="done", progress=100, completed_at=completed_at, **overrides)


def _outreach(entry_id, program, day):
    return OutreachEntry(id=entry_id, owner_id="owner-1", program=program, date=day)


def _progress_by_id(history, key):
    return {item.achievement_id: item for item in tracker.compute_achievement_progress(history, key)}


@pytest.fixture
def streak_history():
    """Completions on days 1, 2, 3 and 5 of ISO week 2026-W10."""
    tasks = [
        _done("t1", "2026-03-02T09:00:00Z"),
        _done("t2", "2026-03-03T09:00:00Z", scope_key="2026-03-03"),
        _done("t3", "2026-03-04T09:00:00Z", scope_key="2026-03-04"),
        _done("t4", "2026-03-06T09:00:00Z", scope_key="2026-03-06"),
    ]
    return tracker.build_history(tasks=tasks, tz_name="UTC")


@pytest.mark.unit
class TestMaxStreak:
    """Tests for consecutive-day streaks."""

    def test_gap_resets_streak(self, streak_history):
        days = [task.completed_on for task in streak_history.completions]
        assert tracker.max_streak(days) == 3

    def test_duplicate_days_count_once(self):
        day = datetime(2026, 3, 2).date()
        assert tracker.max_streak([day, day]) == 1

    def test_empty(self):
        assert tracker.max_streak([]) == 0


@pytest.mark.unit
class TestBuildHistory:
    """Tests for history validation."""

    def test_completion_uses_local_day(self):
        history = tracker.build_history(tasks=[_done("t1", "2026-03-03T03:00:00Z")], tz_name="America/New_York")
        assert history.completions[0].completed_on.isoformat() == "2026-03-02"

    def test_malformed_records_are_skipped(self):
        history = tracker.build_history(
            tasks=[
                make_task("ok"),
                make_task("no-stamp", status="done"),
                {"id": "bad", "owner_id": "owner-1", "title": "Bad", "status": "exploded"},
            ],
            outreach=[
                _outreach("o1", "nova", "2026-03-02"),
                {"id": "o2", "owner_id": "owner-1", "program": "nova", "date": "yesterday"},
            ],
            unlocked=[{"achievement_id": "streak_starter"}],
            tz_name="UTC",
        )
        assert [task.task_id for task in history.tasks] == ["ok"]
        assert len(history.outreach) == 1
        assert history.unlocked == []

    def test_date_only_deadline_met_on_the_day(self):
        history = tracker.build_history(
            tasks=[_done("t1", "2026-03-10T22:00:00Z", deadline="2026-03-10")], tz_name="UTC"
        )
        assert history.tasks[0].deadline_met

    def test_timestamp_deadline_missed(self):
        history = tracker.build_history(
            tasks=[_done("t1", "2026-03-10T18:00:00Z", deadline="2026-03-10T17:00:00Z")], tz_name="UTC"
        )
        assert not history.tasks[0].deadline_met

    def test_completion_with_mismatched_scope_key_still_counts(self, caplog):
        task = _done("w1", "2026-03-04T09:00:00Z", scope="week", scope_key="2026-03-02")

        with caplog.at_level(logging.WARNING, logger="cortex.modules.achievements.tracker"):
            history = tracker.build_history(tasks=[task], tz_name="UTC")

        assert [t.task_id for t in history.tasks] == ["w1"]
        assert history.tasks[0].bucket_start is None
        assert _progress_by_id(history, "2026-W10")["productive_week"].current == 1
        assert "Unparseable scope key in history" in caplog.text

    def test_unparseable_deadline_is_ignored(self):
        task = _done("t1", "2026-03-04T09:00:00Z", deadline="next friday")
        history = tracker.build_history(tasks=[task], tz_name="UTC")

        assert history.tasks[0].deadline_on is None
        assert not history.tasks[0].deadline_met


@pytest.mark.unit
class TestComputeAchievementProgress:
    """Tests for per-period progress."""

    def test_weekly_streak_and_count(self, streak_history):
        progress = _progress_by_id(streak_history, "2026-W10")
        assert progress["streak_starter"].current == 3
        assert progress["streak_starter"].unlocked
        assert progress["productive_week"].current == 4
        assert not progress["productive_week"].unlocked

    def test_only_tier_achievements_returned(self, streak_history):
        ids = [item.achievement_id for item in tracker.compute_achievement_progress(streak_history, "2026-W10")]
        assert ids == [a.id for a in catalog.achievements_for_tier(AchievementTier.WEEKLY)]

    def test_completions_outside_period_are_ignored(self, streak_history):
        progress = _progress_by_id(streak_history, "2026-W11")
        assert progress["streak_starter"].current == 0
        assert progress["productive_week"].current == 0

    def test_recomputation_is_identical(self, streak_history):
        first = tracker.compute_achievement_progress(streak_history, "2026-03")
        second = tracker.compute_achievement_progress(streak_history, "2026-03")
        assert first == second

    def test_outreach_targets(self):
        outreach = [_outreach(f"n{i}", "nova", "2026-03-02") for i in range(20)]
        outreach += [_outreach(f"a{i}", "amaka_ai", "2026-03-03") for i in range(9)]
        outreach.append(_outreach("x1", "other", "2026-03-03"))
        history = tracker.build_history(outreach=outreach, tz_name="UTC")

        weekly = _progress_by_id(history, "2026-W10")
        assert weekly["outreach_champion"].current == 1
        monthly = _progress_by_id(history, "2026-03")
        assert monthly["networking_pro"].current == 29

    def test_deadline_percentage(self):
        tasks = [
            _done("t1", "2026-03-09T12:00:00Z", deadline="2026-03-10"),
            make_task("t2", deadline="2026-03-12"),
        ]
        history = tracker.build_history(tasks=tasks, tz_name="UTC")
        progress = _progress_by_id(history, "2026-03")
        assert progress["deadline_keeper"].current == 50

    def test_deadline_keeper_without_deadlines(self, streak_history):
        assert _progress_by_id(streak_history, "2026-03")["deadline_keeper"].current == 0

    def test_progress_master_uses_weakest_goal(self):
        tasks = [
            make_task("m1", scope="month", scope_key="2026-03", progress=80),
            make_task("m2", scope="month", scope_key="2026-03", progress=40),
        ]
        history = tracker.build_history(tasks=tasks, tz_name="UTC")
        assert _progress_by_id(history, "2026-03")["progress_master"].current == 40

    def test_monthly_maven_reads_unlock_records(self):
        monthly_ids = [a.id for a in catalog.achievements_for_tier(AchievementTier.MONTHLY)]
        unlocked = [
            UserAchievement(achievement_id=achievement_id, period_key="2026-03", unlocked_at=NOW.isoformat())
            for achievement_id in monthly_ids
        ]
        history = tracker.build_history(unlocked=unlocked, tz_name="UTC")
        assert _progress_by_id(history, "2026")["monthly_maven"].unlocked

        partial = tracker.build_history(unlocked=unlocked[:-1], tz_name="UTC")
        maven = _progress_by_id(partial, "2026")["monthly_maven"]
        assert maven.current == len(monthly_ids) - 1
        assert not maven.unlocked

    def test_veteran_counts_days_since_first_activity(self):
        tasks = [_done("t1", "2025-03-01T09:00:00Z"), _done("t2", "2026-03-02T09:00:00Z")]
        history = tracker.build_history(tasks=tasks, tz_name="UTC")
        veteran = _progress_by_id(history, "2026")["veteran"]
        assert veteran.current == 366
        assert veteran.unlocked

    def test_invalid_period_key(self, streak_history):
        with pytest.raises(ValueError):
            tracker.compute_achievement_progress(streak_history, "March")


@pytest.mark.unit
class TestUnlocks:
    """Tests for unlock detection and experience totals."""

    def test_detect_unlock_once(self, streak_history):
        progress = tracker.compute_achievement_progress(streak_history, "2026-W10")
        unlocks = tracker.detect_unlocks(progress, [], now=NOW)
        assert [(u.achievement_id, u.period_key) for u in unlocks] == [("streak_starter", "2026-W10")]
        assert unlocks[0].reward_xp == 50

        recorded = [UserAchievement(achievement_id=u.achievement_id, period_key=u.period_key,
                                    unlocked_at=u.unlocked_at) for u in unlocks]
        assert tracker.detect_unlocks(progress, recorded, now=NOW) == []

    def test_duplicate_progress_items_emit_one_unlock(self, streak_history):
        progress = tracker.compute_achievement_progress(streak_history, "2026-W10")
        assert len(tracker.detect_unlocks(progress + progress, [], now=NOW)) == 1

    def test_total_xp_counts_distinct_unlocks(self):
        unlocked = [
            UserAchievement(achievement_id="streak_starter", period_key="2026-W10", unlocked_at=NOW.isoformat()),
            UserAchievement(achievement_id="streak_starter", period_key="2026-W10", unlocked_at=NOW.isoformat()),
            UserAchievement(achievement_id="streak_starter", period_key="2026-W11", unlocked_at=NOW.isoformat()),
            UserAchievement(achievement_id="goal_crusher", period_key="2026-W10", unlocked_at=NOW.isoformat()),
        ]
        assert tracker.total_xp(unlocked) == 200
