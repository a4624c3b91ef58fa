"""Achievement domain models."""

from enum import StrEnum

from pydantic import BaseModel, Field


class AchievementTier(StrEnum):
    """Period length an achievement is evaluated over."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Achievement(BaseModel):
    """Catalog entry for an achievement."""

    id: str
    name: str
    description: str
    tier: AchievementTier
    requirement: int = Field(..., gt=0, description="Target value for the metric")
    reward_xp: int = Field(..., ge=0, description="Experience awarded on unlock")
    icon: str = ""


class UserAchievement(BaseModel):
    """Persisted unlock record, unique per owner, achievement and period."""

    id: str | None = None
    owner_id: str | None = None
    achievement_id: str
    period_key: str
    unlocked_at: str = Field(..., description="Unlock timestamp (ISO format)")
