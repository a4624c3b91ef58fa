"""Domain models and DTOs."""

from cortex.domain.achievement import Achievement, AchievementTier, UserAchievement
from cortex.domain.conditional import (
    Conditional,
    ConditionalOutcome,
    ConditionalStatus,
    ConditionalUrgency,
    OutcomeAction,
    OutcomeType,
)
from cortex.domain.create_models import ConditionalCreate, OutreachCreate, TaskCreate
from cortex.domain.outreach import OutreachEntry, OutreachProgram
from cortex.domain.task import (
    ChecklistItem,
    ConfidenceLevel,
    MilestoneCondition,
    Task,
    TaskContent,
    TaskLink,
    TaskPriority,
    TaskScope,
    TaskStatus,
)
from cortex.domain.update_models import TaskMove, TaskStatusUpdate, TaskUpdate


__all__ = [
    "Achievement",
    "AchievementTier",
    "ChecklistItem",
    "ConditionalCreate",
    "Conditional",
    "ConditionalOutcome",
    "ConditionalStatus",
    "ConditionalUrgency",
    "ConfidenceLevel",
    "MilestoneCondition",
    "OutcomeAction",
    "OutcomeType",
    "OutreachCreate",
    "OutreachEntry",
    "OutreachProgram",
    "Task",
    "TaskContent",
    "TaskCreate",
    "TaskLink",
    "TaskMove",
    "TaskPriority",
    "TaskScope",
    "TaskStatus",
    "TaskStatusUpdate",
    "UserAchievement",
]
