from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class UsageRecord(BaseModel):
    """Plan usage as last written to the HUD usage cache."""

    five_hour: float = Field(default=0, description="5-hour window usage percent.")
    weekly: float = Field(default=0, description="Weekly usage percent.")
    five_hour_resets_at: datetime | None = None
    weekly_resets_at: datetime | None = None
    timestamp: float | str | None = None
    error: bool = False


class ThresholdResult(BaseModel):
    """Outcome of comparing a usage record against a threshold."""

    exceeded: bool = False
    type: Literal["fiveHour", "weekly"] | None = None
    percent: float = 0
