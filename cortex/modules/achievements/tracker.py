"""Achievement progress tracker.

Progress is a pure function of an ``ActivityHistory`` and a period key.
Unlock detection compares progress with the recorded unlocks and emits at
most one unlock per ``(achievement_id, period_key)``.
"""

import logging
import math
from collections import Counter, defaultdict
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from cortex.core.config import constants
from cortex.domain.achievement import AchievementTier, UserAchievement
from cortex.domain.outreach import OutreachEntry
from cortex.domain.task import CALENDAR_SCOPES, Task, TaskScope, TaskStatus
from cortex.models.service_models import AchievementProgress, AchievementUnlock
from cortex.modules.achievements import catalog
from cortex.modules.achievements.periods import local_date, parse_timestamp, period_bounds, scope_key_bounds, tier_of


logger = logging.getLogger(__name__)


class TrackedTask(BaseModel):
    """Task fields the tracker reads, with timestamps resolved to local days."""

    task_id: str
    scope: TaskScope
    scope_key: str = ""
    bucket_start: date | None = Field(default=None, description="First day of the task's calendar bucket")
    status: TaskStatus
    progress: int = 0
    completed_on: date | None = None
    deadline_on: date | None = None
    deadline_met: bool = False

    @property
    def effective_progress(self) -> int:
        return constants.PROGRESS_MAX if self.status == TaskStatus.DONE else self.progress


class OutreachDay(BaseModel):
    program: str
    day: date


class ActivityHistory(BaseModel):
    """Validated history the tracker computes over."""

    tasks: list[TrackedTask] = Field(default_factory=list)
    outreach: list[OutreachDay] = Field(default_factory=list)
    unlocked: list[UserAchievement] = Field(default_factory=list)

    @property
    def completions(self) -> list[TrackedTask]:
        return [task for task in self.tasks if task.completed_on is not None]


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def _track_task(task: Task, tz_name: str | None) -> TrackedTask:
    completed_on = None
    completed_at: datetime | None = None
    if task.status == TaskStatus.DONE:
        if not task.completed_at:
            msg = f"Done task {task.id} has no completion timestamp"
            raise ValueError(msg)
        completed_at = parse_timestamp(task.completed_at)
        completed_on = local_date(completed_at, tz_name)

    deadline_on = None
    deadline_met = False
    if task.deadline:
        has_clock = len(task.deadline) > len("YYYY-MM-DD")
        try:
            deadline_on = local_date(task.deadline, tz_name) if has_clock else date.fromisoformat(task.deadline)
        except ValueError:
            logger.warning("Unparseable deadline in history", extra={"task_id": task.id, "deadline": task.deadline})
        if deadline_on is not None and completed_at is not None and completed_on is not None:
            # Date-only deadlines run to the end of that local day
            if has_clock:
                deadline_met = completed_at <= parse_timestamp(task.deadline)
            else:
                deadline_met = completed_on <= deadline_on

    bucket_start = None
    if task.scope in CALENDAR_SCOPES and task.scope_key:
        try:
            bucket_start = scope_key_bounds(task.scope, task.scope_key)[0]
        except ValueError:
            # Still counts as a completion, just not for bucket-based metrics
            logger.warning("Unparseable scope key in history", extra={"task_id": task.id, "scope_key": task.scope_key})

    return TrackedTask(
        task_id=task.id,
        scope=task.scope,
        scope_key=task.scope_key,
        bucket_start=bucket_start,
        status=task.status,
        progress=task.progress,
        completed_on=completed_on,
        deadline_on=deadline_on,
        deadline_met=deadline_met,
    )


def build_history(
    *,
    tasks: Iterable[Task | Mapping[str, Any]] = (),
    outreach: Iterable[OutreachEntry | Mapping[str, Any]] = (),
    unlocked: Iterable[UserAchievement | Mapping[str, Any]] = (),
    tz_name: str | None = None,
) -> ActivityHistory:
    """Validate raw records into an ``ActivityHistory``.

    Completions are done tasks with a ``completed_at`` timestamp. Malformed
    records are logged and left out instead of failing the computation.
    """
    history = ActivityHistory()

    for raw in tasks:
        try:
            task = raw if isinstance(raw, Task) else Task.model_validate(raw)
            history.tasks.append(_track_task(task, tz_name))
        except (ValidationError, ValueError) as e:
            logger.warning("Skipping malformed task in history", extra={"error": str(e)})

    for raw in outreach:
        try:
            entry = raw if isinstance(raw, OutreachEntry) else OutreachEntry.model_validate(raw)
            history.outreach.append(OutreachDay(program=entry.program, day=date.fromisoformat(entry.date)))
        except (ValidationError, ValueError) as e:
            logger.warning("Skipping malformed outreach entry in history", extra={"error": str(e)})

    for raw in unlocked:
        try:
            record = raw if isinstance(raw, UserAchievement) else UserAchievement.model_validate(raw)
            history.unlocked.append(record)
        except ValidationError as e:
            logger.warning("Skipping malformed unlock record in history", extra={"error": str(e)})

    return history


def _in(day: date | None, first: date, last: date) -> bool:
    return day is not None and first <= day <= last


def max_streak(days: Iterable[date]) -> int:
    """Longest run of consecutive calendar days."""
    ordered = sorted(set(days))
    best = 0
    run = 0
    previous: date | None = None
    for day in ordered:
        run = run + 1 if previous is not None and (day - previous).days == 1 else 1
        best = max(best, run)
        previous = day
    return best


class _Window:
    """Per-period view over a history."""

    def __init__(self, history: ActivityHistory, key: str) -> None:
        self.history = history
        self.key = key
        self.first, self.last = period_bounds(key)
        self.completions = [t for t in history.completions if _in(t.completed_on, self.first, self.last)]
        self.outreach = [o for o in history.outreach if _in(o.day, self.first, self.last)]

    @property
    def completion_days(self) -> set[date]:
        return {t.completed_on for t in self.completions if t.completed_on is not None}

    def scope_completions(self, scope: TaskScope) -> int:
        return sum(1 for t in self.completions if t.scope == scope)

    def deadlines(self) -> list[TrackedTask]:
        return [t for t in self.history.tasks if _in(t.deadline_on, self.first, self.last)]


def _outreach_target_days(w: _Window) -> int:
    per_day: Counter[tuple[date, str]] = Counter((o.day, o.program) for o in w.outreach)
    met_days = {
        day
        for (day, program), count in per_day.items()
        if program in constants.OUTREACH_DAILY_TARGETS and count >= constants.OUTREACH_DAILY_TARGETS[program]
    }
    return len(met_days)


def _month_goal_floor(w: _Window) -> int:
    goals = [t for t in w.history.tasks if t.scope == TaskScope.MONTH and t.scope_key == w.key]
    if not goals:
        return 0
    return min(t.effective_progress for t in goals)


def _best_week_completion(w: _Window) -> int:
    weeks: dict[tuple[int, int], list[TrackedTask]] = defaultdict(list)
    for task in w.history.tasks:
        if task.scope == TaskScope.DAY and _in(task.bucket_start, w.first, w.last):
            iso = task.bucket_start.isocalendar()  # type: ignore[union-attr]
            weeks[(iso[0], iso[1])].append(task)
    if not weeks:
        return 0
    return max(_round(sum(1 for t in ts if t.status == TaskStatus.DONE) / len(ts) * 100) for ts in weeks.values())


def _deadline_percentage(w: _Window) -> int:
    due = w.deadlines()
    if not due:
        return 0
    return _round(sum(1 for t in due if t.deadline_met) / len(due) * 100)


def _goal_average(w: _Window) -> int:
    goals = [
        t
        for t in w.history.tasks
        if t.scope in (TaskScope.WEEK, TaskScope.MONTH, TaskScope.YEAR) and _in(t.bucket_start, w.first, w.last)
    ]
    if not goals:
        return 0
    return _round(sum(t.effective_progress for t in goals) / len(goals))


def _veteran_days(w: _Window) -> int:
    activity = [t.completed_on for t in w.history.completions if t.completed_on is not None]
    activity.extend(o.day for o in w.history.outreach)
    if not activity:
        return 0
    first = min(activity)
    in_window = [day for day in activity if day <= w.last]
    if not in_window:
        return 0
    return (max(in_window) - first).days


def _monthly_maven(w: _Window) -> int:
    monthly_ids = {a.id for a in catalog.achievements_for_tier(AchievementTier.MONTHLY)}
    per_month: dict[str, set[str]] = defaultdict(set)
    for record in w.history.unlocked:
        if record.achievement_id not in monthly_ids or not record.period_key.startswith(f"{w.key}-"):
            continue
        per_month[record.period_key].add(record.achievement_id)
    return max((len(ids) for ids in per_month.values()), default=0)


_METRICS: dict[str, Callable[[_Window], int]] = {
    # weekly
    "streak_starter": lambda w: max_streak(w.completion_days),
    "productive_week": lambda w: len(w.completions),
    "goal_crusher": lambda w: w.scope_completions(TaskScope.WEEK),
    "outreach_champion": _outreach_target_days,
    # monthly
    "consistent": lambda w: len(w.completion_days),
    "progress_master": _month_goal_floor,
    "perfect_week": _best_week_completion,
    "overachiever": lambda w: len(w.completions),
    "deadline_keeper": _deadline_percentage,
    "networking_pro": lambda w: sum(1 for o in w.outreach if o.program in constants.OUTREACH_DAILY_TARGETS),
    # yearly
    "year_champion": lambda w: w.scope_completions(TaskScope.YEAR),
    "veteran": _veteran_days,
    "productivity_legend": lambda w: len(w.completions),
    "monthly_maven": _monthly_maven,
    "century_club": lambda w: len(w.completion_days),
    "diverse_achiever": lambda w: len({t.scope for t in w.completions if t.scope in CALENDAR_SCOPES}),
    "time_master": lambda w: sum(1 for t in w.deadlines() if t.deadline_met),
    "streak_legend": lambda w: max_streak(w.completion_days),
    "data_driven": _goal_average,
    "celebration": lambda w: w.scope_completions(TaskScope.MONTH),
}


def compute_achievement_progress(history: ActivityHistory, period_key: str) -> list[AchievementProgress]:
    """Progress for every achievement of the period's tier, in catalog order."""
    window = _Window(history, period_key)
    tier = tier_of(period_key)
    return [
        AchievementProgress(
            achievement_id=achievement.id,
            current=_METRICS[achievement.id](window),
            target=achievement.requirement,
            period_key=period_key,
        )
        for achievement in catalog.achievements_for_tier(tier)
    ]


def detect_unlocks(
    progress: Iterable[AchievementProgress],
    unlocked: Iterable[UserAchievement],
    *,
    now: datetime,
) -> list[AchievementUnlock]:
    """New unlocks for progress that reached its target and is not yet recorded."""
    seen = {(record.achievement_id, record.period_key) for record in unlocked}
    unlocks: list[AchievementUnlock] = []
    for item in progress:
        key = (item.achievement_id, item.period_key)
        if not item.unlocked or key in seen:
            continue
        seen.add(key)
        achievement = catalog.get_achievement(item.achievement_id)
        unlocks.append(
            AchievementUnlock(
                achievement_id=item.achievement_id,
                period_key=item.period_key,
                unlocked_at=now.isoformat(),
                reward_xp=achievement.reward_xp if achievement else 0,
            )
        )
    return unlocks


def total_xp(unlocked: Iterable[UserAchievement]) -> int:
    """Experience earned across distinct unlocks."""
    distinct = {(record.achievement_id, record.period_key) for record in unlocked}
    total = 0
    for achievement_id, _ in distinct:
        achievement = catalog.get_achievement(achievement_id)
        if achievement is not None:
            total += achievement.reward_xp
    return total
