"""Update models for database operations."""

from pydantic import BaseModel, Field, field_validator, model_validator

from cortex.domain.create_models import IsoDeadline, check_scope_key
from cortex.domain.task import MilestoneCondition, TaskContent, TaskPriority, TaskScope, TaskStatus


class TaskUpdate(BaseModel):
    """Partial task update. Only fields that were set are written.

    ``title``, ``priority``, ``scope`` and ``scope_key`` may be omitted but not
    cleared; the other optional fields accept an explicit ``null``.
    """

    title: str | None = None
    description: str | None = None
    priority: TaskPriority | None = None
    scope: TaskScope | None = None
    scope_key: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    deadline: IsoDeadline | None = None
    parent_task_id: str | None = None
    contribution_percent: int | None = Field(default=None, ge=0, le=100)
    progress: int | None = Field(default=None, ge=0, le=100)
    is_milestone: bool | None = None
    milestone_conditions: list[MilestoneCondition] | None = None
    blocked_by_milestone_id: str | None = None
    content: TaskContent | None = None
    color: str | None = None

    @field_validator("title", "priority", "scope", "scope_key")
    @classmethod
    def reject_null(cls, v: object) -> object:
        if v is None:
            msg = "Field cannot be cleared"
            raise ValueError(msg)
        return v

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            msg = "Title must not be blank"
            raise ValueError(msg)
        return stripped

    @model_validator(mode="after")
    def scope_key_matches_scope(self) -> "TaskUpdate":
        if self.scope is not None and self.scope_key is not None:
            check_scope_key(self.scope, self.scope_key)
        return self


class TaskMove(BaseModel):
    """Drag/drop payload: pointer offset in pixels on the day canvas."""

    pointer_offset: float = Field(..., description="Pointer offset from the top of the canvas")
    scope_key: str | None = Field(default=None, description="Target day when dropped on another column")


class TaskStatusUpdate(BaseModel):
    """User-requested status change."""

    status: TaskStatus
