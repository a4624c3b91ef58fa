"""Task domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


class TaskStatus(StrEnum):
    """Task lifecycle status. ``blocked`` is only ever set by the blocking resolver."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    BLOCKED = "blocked"


class TaskPriority(StrEnum):
    """How urgent a task is."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TaskScope(StrEnum):
    """Bucket axis a task is filed under."""

    DAY = "day"  # scope_key: YYYY-MM-DD
    WEEK = "week"  # scope_key: YYYY-Www
    MONTH = "month"  # scope_key: YYYY-MM
    YEAR = "year"  # scope_key: YYYY
    CLIENT = "client"  # scope_key: client id


# Scopes whose scope_key encodes a calendar date
CALENDAR_SCOPES = frozenset({TaskScope.DAY, TaskScope.WEEK, TaskScope.MONTH, TaskScope.YEAR})


class ConfidenceLevel(StrEnum):
    """Displayed likelihood of a milestone condition. Never affects blocking."""

    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class MilestoneCondition(BaseModel):
    """A gate listed on a milestone task."""

    description: str = Field(default="", description="What has to be true")
    confidence: ConfidenceLevel = Field(default=ConfidenceLevel.MEDIUM, description="Displayed likelihood")
    expected_outcome: str | None = Field(default=None, description="Free-text expected result")


class ChecklistItem(BaseModel):
    """One checklist entry on a task."""

    id: str
    text: str
    done: bool = False


class TaskLink(BaseModel):
    """A link attached to a task."""

    label: str = ""
    url: str
    type: str = Field(default="link", description="Link kind, e.g. doc, video, link")


class TaskContent(BaseModel):
    """Optional attachments; every kind is an explicit, possibly empty list."""

    checklist: list[ChecklistItem] = Field(default_factory=list)
    links: list[TaskLink] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    videos: list[str] = Field(default_factory=list)


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    owner_id: str = Field(..., description="Owning account ID")
    created: str = Field(default="", description="Creation timestamp (ISO format)")
    updated: str = Field(default="", description="Last update timestamp (ISO format)")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Detailed task description")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Current lifecycle status")
    progress: int = Field(default=0, ge=0, le=100, description="Stored progress percentage")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    scope: TaskScope = Field(default=TaskScope.DAY, description="Bucket axis")
    scope_key: str = Field(default="", description="Bucket key for the scope")
    start_time: str | None = Field(default=None, description="Start time HH:MM")
    end_time: str | None = Field(default=None, description="End time HH:MM")
    deadline: str | None = Field(default=None, description="Deadline (ISO format)")
    parent_task_id: str | None = Field(default=None, description="Parent task for rollup")
    contribution_percent: int | None = Field(
        default=None, ge=0, le=100, description="Weight of this task in the parent's rollup"
    )
    is_milestone: bool = Field(default=False, description="Whether this task gates its dependents")
    milestone_conditions: list[MilestoneCondition] = Field(default_factory=list)
    blocked_by_milestone_id: str | None = Field(default=None, description="Explicit gating milestone")
    blocked_by_conditional_id: str | None = Field(default=None, description="Gating conditional")
    original_scheduled_date: str | None = Field(
        default=None, description="Scope key before the first postponement"
    )
    completed_at: str | None = Field(default=None, description="When the task last entered done")
    content: TaskContent = Field(default_factory=TaskContent)
    color: str | None = Field(default=None, description="Presentation hint")

    @field_validator("content", mode="before")
    @classmethod
    def default_content(cls, v: object) -> object:
        """Treat a missing content column as no attachments."""
        return v if v is not None else {}

    @field_validator("milestone_conditions", mode="before")
    @classmethod
    def default_conditions(cls, v: object) -> object:
        """Treat a missing conditions column as an empty list."""
        return v if v is not None else []
