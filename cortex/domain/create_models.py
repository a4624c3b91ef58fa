"""Pydantic models for creating records in database."""

from typing import Annotated

from dateutil import parser as dateutil_parser
from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator

from cortex.domain.conditional import ConditionalOutcome, ConditionalUrgency
from cortex.domain.task import CALENDAR_SCOPES, MilestoneCondition, TaskContent, TaskPriority, TaskScope
from cortex.modules.achievements.periods import scope_key_bounds


def check_deadline(value: str) -> str:
    """Accept ISO dates (``YYYY-MM-DD``) and ISO datetimes only."""
    try:
        dateutil_parser.isoparse(value)
    except ValueError as e:
        msg = f"Deadline must be an ISO date or datetime, got {value!r}"
        raise ValueError(msg) from e
    return value


def check_scope_key(scope: TaskScope, scope_key: str) -> None:
    """Calendar scopes need a key in their own format; an empty key is allowed."""
    if scope in CALENDAR_SCOPES and scope_key:
        scope_key_bounds(scope, scope_key)


IsoDeadline = Annotated[str, AfterValidator(check_deadline)]


class TaskCreate(BaseModel):
    """Payload for creating a task."""

    title: str = Field(..., min_length=1, description="Task title")
    description: str = Field(default="", description="Detailed task description")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    scope: TaskScope = Field(default=TaskScope.DAY)
    scope_key: str = Field(default="", description="Bucket key for the scope")
    start_time: str | None = Field(default=None, description="Start time HH:MM")
    end_time: str | None = Field(default=None, description="End time HH:MM")
    deadline: IsoDeadline | None = Field(default=None, description="Deadline (ISO format)")
    parent_task_id: str | None = None
    contribution_percent: int | None = Field(default=None, ge=0, le=100)
    is_milestone: bool = False
    milestone_conditions: list[MilestoneCondition] = Field(default_factory=list)
    blocked_by_milestone_id: str | None = None
    blocked_by_conditional_id: str | None = None
    content: TaskContent = Field(default_factory=TaskContent)
    color: str | None = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        """Reject blank titles."""
        stripped = v.strip()
        if not stripped:
            msg = "Title must not be blank"
            raise ValueError(msg)
        return stripped

    @model_validator(mode="after")
    def scope_key_matches_scope(self) -> "TaskCreate":
        check_scope_key(self.scope, self.scope_key)
        return self


class ConditionalCreate(BaseModel):
    """Payload for creating a conditional."""

    title: str = Field(..., min_length=1)
    description: str = ""
    expected_date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="YYYY-MM-DD")
    urgency: ConditionalUrgency = Field(default=ConditionalUrgency.MEDIUM)
    outcomes: list[ConditionalOutcome] = Field(..., min_length=1)
    fallback_conditional_id: str | None = None
    fallback_postpone_days: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def unique_outcome_ids(self) -> "ConditionalCreate":
        """Outcome IDs must be unique within a conditional."""
        ids = [o.id for o in self.outcomes]
        if len(ids) != len(set(ids)):
            msg = "Outcome IDs must be unique"
            raise ValueError(msg)
        return self


class OutreachCreate(BaseModel):
    """Payload for logging an outreach contact."""

    program: str = Field(..., min_length=1)
    business_name: str = ""
    channel: str = ""
    status: str = "sent"
    date: str | None = Field(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$", description="Local day; today if omitted")
