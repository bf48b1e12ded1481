"""Training access Pydantic models."""
from datetime import datetime

from pydantic import BaseModel, Field


class TrainingCodeRequest(BaseModel):
    """Model for redeeming a training code."""

    code: str = Field(..., min_length=1, max_length=64)


class TrainingTokenResponse(BaseModel):
    """Model for a granted training token."""

    token: str
    expiresAt: datetime
    description: str | None = None
    usesRemaining: int | None = None
