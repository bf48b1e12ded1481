"""Pydantic models."""
from api.models.sessions import AnswerRequest, JumpRequest, SessionResponse, TimeRequest
from api.models.training import TrainingCodeRequest, TrainingTokenResponse

__all__ = [
    "AnswerRequest",
    "JumpRequest",
    "SessionResponse",
    "TimeRequest",
    "TrainingCodeRequest",
    "TrainingTokenResponse",
]
