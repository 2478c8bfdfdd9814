from datetime import datetime
from typing import Any
from pydantic import BaseModel, Field


class MatchStatusResponse(BaseModel):
    status: str
    last_completed_at: datetime | None = None
    last_failed_at: datetime | None = None
    running_since: datetime | None = None


class RunRoundResponse(BaseModel):
    triggered: bool
    status: str
    summary: dict[str, Any] = Field(default_factory=dict)
