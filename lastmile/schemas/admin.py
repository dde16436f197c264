"""Admin request payloads."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SuspensionRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)

    model_config = ConfigDict(extra="forbid")


class AnnouncementCreate(BaseModel):
    """Platform-wide message; ``role`` narrows the audience."""

    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=2000)
    role: Literal["business", "rider"] | None = None
    priority: Literal["low", "medium", "high", "urgent"] = "medium"

    model_config = ConfigDict(extra="forbid")
