"""Hypothesis and UserSettings Pydantic models."""

from datetime import datetime

from pydantic import BaseModel

HYPOTHESIS_STATUSES = ("active", "paused", "completed")


class Hypothesis(BaseModel):
    id: str = ""
    user_id: str = ""
    title: str = ""
    description: str | None = None
    status: str = "active"  # active, paused, completed
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserSettings(BaseModel):
    user_id: str = ""
    last_model: str | None = None
    last_locations: list[str] = []
    last_aggression: list[str] = []
    last_risk_tier: str | None = None
