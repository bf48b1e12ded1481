"""Training access routes."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.models.training import TrainingCodeRequest, TrainingTokenResponse
from api.services.training_service import redeem_code

router = APIRouter(prefix="/api/training", tags=["training"])


@router.post("/redeem", response_model=TrainingTokenResponse)
def redeem(
    data: TrainingCodeRequest,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Exchange a training code for a time-limited training token."""
    training_code, token, expires_at = redeem_code(db, data.code)
    return {
        "token": token,
        "expiresAt": expires_at,
        "description": training_code.description,
        "usesRemaining": training_code.uses_remaining,
    }
