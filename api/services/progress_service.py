"""Service layer for exam progress snapshots stored in the database."""
import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession, sessionmaker

from api.models.db.progress import ExamProgress
from exceptions import PersistenceUnavailable
from models import ExamKey

logger = logging.getLogger(__name__)


def _key_filter(client_id: str, key: ExamKey) -> tuple:
    return (
        ExamProgress.client_id == client_id,
        ExamProgress.category == key.category,
        ExamProgress.subcategory == key.subcategory,
        ExamProgress.exam_id == key.exam_id,
    )


class SqlProgressStore:
    """Progress store backed by the ``exam_progress`` table.

    Each call opens its own database session so saves can run after the
    request that triggered them has finished.
    """

    def __init__(self, session_factory: sessionmaker, client_id: str):
        self.session_factory = session_factory
        self.client_id = client_id

    def load(self, key: ExamKey) -> dict[str, Any] | None:
        db = self.session_factory()
        try:
            row = db.execute(
                select(ExamProgress).where(*_key_filter(self.client_id, key))
            ).scalar_one_or_none()
            return row.snapshot if row else None
        except SQLAlchemyError as exc:
            raise PersistenceUnavailable(str(exc)) from exc
        finally:
            db.close()

    def save(self, key: ExamKey, snapshot: dict[str, Any]) -> None:
        db = self.session_factory()
        try:
            row = db.execute(
                select(ExamProgress).where(*_key_filter(self.client_id, key))
            ).scalar_one_or_none()
            if row is None:
                row = ExamProgress(
                    client_id=self.client_id,
                    category=key.category,
                    subcategory=key.subcategory,
                    exam_id=key.exam_id,
                )
                db.add(row)
            row.snapshot = snapshot
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise PersistenceUnavailable(str(exc)) from exc
        finally:
            db.close()

    def clear(self, key: ExamKey) -> None:
        db = self.session_factory()
        try:
            db.execute(delete(ExamProgress).where(*_key_filter(self.client_id, key)))
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise PersistenceUnavailable(str(exc)) from exc
        finally:
            db.close()


def list_snapshots(
    db: DBSession, client_id: str, category: str, subcategory: str
) -> list[dict[str, Any]]:
    """All stored snapshots for a client within one subcategory."""
    rows = db.execute(
        select(ExamProgress)
        .where(
            ExamProgress.client_id == client_id,
            ExamProgress.category == category,
            ExamProgress.subcategory == subcategory,
        )
        .order_by(ExamProgress.updated_at)
    ).scalars().all()

    snapshots = []
    for row in rows:
        snapshot = row.snapshot
        if snapshot is None:
            logger.warning("Ignoring unreadable progress row %s", row.id)
            continue
        snapshots.append(snapshot)
    return snapshots
