"""Conditional domain models: uncertain external events that gate tasks."""

from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


class ConditionalUrgency(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ConditionalStatus(StrEnum):
    """A conditional is pending until exactly one outcome is selected."""

    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


class OutcomeType(StrEnum):
    SUCCESS = "success"
    DELAYED = "delayed"
    FAILED = "failed"


class OutcomeAction(StrEnum):
    """What happens to dependent tasks when the outcome is selected."""

    ACTIVATE = "activate"
    POSTPONE = "postpone"
    SWITCH_FALLBACK = "switch_fallback"


class ConditionalOutcome(BaseModel):
    """One possible outcome of a conditional."""

    id: str = Field(..., description="Outcome ID, unique within its conditional")
    label: str = Field(..., description="Human-readable outcome")
    type: OutcomeType = Field(..., description="success, delayed or failed")
    action: OutcomeAction = Field(..., description="Effect on dependent tasks")
    postpone_days: int | None = Field(default=None, ge=0, description="Days to shift dependents")
    notes: str | None = None


class Conditional(BaseModel):
    """Conditional data transfer object."""

    id: str = Field(..., description="Unique conditional ID from database")
    owner_id: str = Field(..., description="Owning account ID")
    created: str = Field(default="", description="Creation timestamp (ISO format)")
    updated: str = Field(default="", description="Last update timestamp (ISO format)")
    title: str = Field(..., description="Conditional title")
    description: str = Field(default="", description="What the event is")
    expected_date: str = Field(..., description="Date the outcome is expected (YYYY-MM-DD)")
    urgency: ConditionalUrgency = Field(default=ConditionalUrgency.MEDIUM)
    status: ConditionalStatus = Field(default=ConditionalStatus.PENDING)
    outcomes: list[ConditionalOutcome] = Field(default_factory=list)
    selected_outcome_id: str | None = Field(default=None, description="Outcome chosen on resolution")
    resolved_at: str | None = Field(default=None, description="Resolution timestamp (ISO format)")
    fallback_conditional_id: str | None = Field(default=None, description="Conditional to switch to")
    fallback_postpone_days: int | None = Field(default=None, ge=0, description="Shift applied on fallback")

    @field_validator("outcomes", mode="before")
    @classmethod
    def default_outcomes(cls, v: object) -> object:
        """Treat a missing outcomes column as an empty list."""
        return v if v is not None else []

    @property
    def is_terminal(self) -> bool:
        return self.status != ConditionalStatus.PENDING

    def get_outcome(self, outcome_id: str) -> ConditionalOutcome | None:
        """Return the outcome with the given ID, if any."""
        return next((o for o in self.outcomes if o.id == outcome_id), None)

    @property
    def selected_outcome(self) -> ConditionalOutcome | None:
        if self.selected_outcome_id is None:
            return None
        return self.get_outcome(self.selected_outcome_id)
