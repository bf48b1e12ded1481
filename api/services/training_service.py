"""Training code redemption and training token handling."""
import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession

from api.config import ALGORITHM, SECRET_KEY, TRAINING_TOKEN_EXPIRE_HOURS
from api.models.db.training_code import TrainingCode
from exceptions import AuthRequiredError
from models import TrainingGate

logger = logging.getLogger(__name__)

TOKEN_SCOPE = "training"


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def create_training_token(code_id: int, now: datetime | None = None) -> tuple[str, datetime]:
    """Create a JWT granting training access.

    Returns:
        Tuple of (token, expires_at)
    """
    now = now or datetime.now(timezone.utc)
    expire = now + timedelta(hours=TRAINING_TOKEN_EXPIRE_HOURS)
    to_encode = {
        "sub": str(code_id),
        "scope": TOKEN_SCOPE,
        "exp": expire,
    }
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt, expire


def gate_from_token(token: str | None) -> TrainingGate:
    """Turn a bearer token into a training gate (closed when invalid)."""
    if not token:
        return TrainingGate()
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return TrainingGate()
    if payload.get("scope") != TOKEN_SCOPE or "exp" not in payload:
        return TrainingGate()
    expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
    return TrainingGate(token_present=True, expires_at=expires_at)


def get_code(db: DbSession, code: str) -> TrainingCode | None:
    return db.execute(
        select(TrainingCode).where(TrainingCode.code == code)
    ).scalar_one_or_none()


def create_code(
    db: DbSession,
    code: str,
    description: str | None = None,
    max_uses: int | None = None,
    expires_at: datetime | None = None,
) -> TrainingCode:
    training_code = TrainingCode(
        code=code,
        description=description,
        max_uses=max_uses,
        expires_at=expires_at,
    )
    db.add(training_code)
    db.commit()
    db.refresh(training_code)
    return training_code


def redeem_code(
    db: DbSession, code: str, now: datetime | None = None
) -> tuple[TrainingCode, str, datetime]:
    """Validate a training code, count the use and issue a token.

    Raises:
        AuthRequiredError: unknown, inactive, expired or exhausted code.
    """
    now = now or datetime.now(timezone.utc)
    training_code = get_code(db, code.strip())
    if training_code is None or not training_code.is_active:
        raise AuthRequiredError("Invalid training code")
    if training_code.expires_at and _as_aware(training_code.expires_at) < now:
        raise AuthRequiredError("Training code has expired")
    if (
        training_code.max_uses is not None
        and training_code.current_uses >= training_code.max_uses
    ):
        raise AuthRequiredError("Training code has reached maximum usage limit")

    training_code.current_uses += 1
    db.commit()
    db.refresh(training_code)

    token, expires_at = create_training_token(training_code.id, now)
    logger.info("Training code %s redeemed", training_code.id)
    return training_code, token, expires_at
