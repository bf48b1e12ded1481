"""
Exam progress records: the persisted snapshot of a quiz session.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import sqlalchemy as sa
from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from api.database import Base
from api.utils.json_utils import compact_json_dump


class ExamProgress(Base):
    """
    Latest snapshot for one client and one (category, subcategory, exam).
    Starting a new session for the same key overwrites it.
    """

    __tablename__ = "exam_progress"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    client_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    subcategory: Mapped[str] = mapped_column(String(64), nullable=False)
    exam_id: Mapped[str] = mapped_column(String(64), nullable=False)

    snapshot_json: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "client_id", "category", "subcategory", "exam_id", name="uq_exam_progress_key"
        ),
    )

    @property
    def snapshot(self) -> dict[str, Any] | None:
        """Parse snapshot from JSON."""
        try:
            value = json.loads(self.snapshot_json)
        except (json.JSONDecodeError, TypeError):
            return None
        return value if isinstance(value, dict) else None

    @snapshot.setter
    def snapshot(self, value: dict[str, Any]) -> None:
        """Serialize snapshot to JSON."""
        self.snapshot_json = compact_json_dump(value)
