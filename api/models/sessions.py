"""Quiz session Pydantic models."""
from pydantic import BaseModel, Field


class AnswerRequest(BaseModel):
    """Model for answering the current question (1-based option)."""

    option: int


class JumpRequest(BaseModel):
    """Model for moving directly to a question index."""

    index: int


class TimeRequest(BaseModel):
    """Model for the remaining exam time in seconds."""

    timeLeft: int = Field(..., ge=0)


class SessionResponse(BaseModel):
    """Model for a session view plus persistence status."""

    session: dict[str, object]
    resumed: bool = False
    saved: bool = True
    warning: str | None = None
    summary: dict[str, object] | None = None
