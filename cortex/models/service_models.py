"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting raw
computations into typed objects for the presentation collaborator.
"""

from typing import Any

from pydantic import BaseModel, Field, computed_field


class TimeSlot(BaseModel):
    """A start/end pair on the day canvas."""

    start_time: str
    end_time: str


class TaskPosition(BaseModel):
    """Rendered block geometry in pixels."""

    top: float
    height: float


class BlockingState(BaseModel):
    """Resolver verdict for one task."""

    task_id: str
    blocked: bool
    milestone_ids: list[str] = Field(default_factory=list, description="Unfinished milestone ancestors")
    conditional_id: str | None = Field(default=None, description="Conditional still gating the task")
    status: str = Field(..., description="Status the task should have after the overlay")


class ResolutionPlan(BaseModel):
    """Writes produced by resolving a conditional."""

    conditional_id: str
    outcome_id: str
    conditional_update: dict[str, Any]
    task_updates: dict[str, dict[str, Any]] = Field(default_factory=dict)
    switched_to_fallback: str | None = None


class AchievementProgress(BaseModel):
    """Derived progress toward one achievement in one period."""

    achievement_id: str
    current: int
    target: int
    period_key: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def unlocked(self) -> bool:
        return self.current >= self.target


class ProgramProgress(BaseModel):
    """Outreach count for one program on one day."""

    program: str
    count: int
    target: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def met(self) -> bool:
        return self.count >= self.target


class DailyOutreachProgress(BaseModel):
    """Outreach counts per program for one local day."""

    date: str
    programs: list[ProgramProgress]
    total: int


class AchievementUnlock(BaseModel):
    """Unlock emitted by the tracker, ready to be recorded."""

    achievement_id: str
    period_key: str
    unlocked_at: str
    reward_xp: int = 0
