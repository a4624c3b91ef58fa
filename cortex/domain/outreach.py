"""Outreach log domain models."""

from enum import StrEnum

from pydantic import BaseModel, Field


class OutreachProgram(StrEnum):
    """Programs with a daily outreach target."""

    NOVA = "nova"
    AMAKA_AI = "amaka_ai"


class OutreachEntry(BaseModel):
    """A single logged outreach contact."""

    id: str = Field(..., description="Unique entry ID from database")
    owner_id: str = Field(..., description="Owning account ID")
    created: str = Field(default="", description="Creation timestamp (ISO format)")
    updated: str = Field(default="", description="Last update timestamp (ISO format)")
    program: str = Field(..., description="Program the contact was made for")
    business_name: str = Field(default="", description="Who was contacted")
    channel: str = Field(default="", description="Channel, e.g. email or linkedin")
    status: str = Field(default="sent", description="Contact status")
    date: str = Field(..., description="Local day of the contact (YYYY-MM-DD)")
