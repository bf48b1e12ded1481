"""Client identification and training access dependencies for FastAPI."""
from typing import Annotated

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import sessionmaker

from api.database import get_session_factory
from api.services.progress_service import SqlProgressStore
from api.services.training_service import gate_from_token
from api.utils import validate_id
from models import TrainingGate

# HTTP Bearer scheme for training tokens
security = HTTPBearer(auto_error=False)


async def get_client_id(
    x_client_id: Annotated[str | None, Header()] = None,
) -> str:
    """Get the anonymous client identifier.

    Raises:
        HTTPException: 400 if the header is missing or malformed.
    """
    return validate_id("X-Client-Id", x_client_id)


async def get_training_gate(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> TrainingGate:
    """Get the training gate for the request; closed without a valid token."""
    if credentials is None:
        return TrainingGate()
    return gate_from_token(credentials.credentials)


def get_progress_store(
    client_id: Annotated[str, Depends(get_client_id)],
    session_factory: Annotated[sessionmaker, Depends(get_session_factory)],
) -> SqlProgressStore:
    """Get the progress store scoped to the requesting client."""
    return SqlProgressStore(session_factory, client_id)
