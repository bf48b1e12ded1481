"""Progress persistence contract and resume policy.

A snapshot is resumed only when it is structurally valid for the working set
being reviewed and recent enough. Otherwise a fresh working set is built and
the stale snapshot is overwritten on the next save.
"""
from __future__ import annotations

import copy
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol

from api.utils.time_utils import parse_iso_timestamp
from engine import EXAM_TIME_LIMIT, start_session
from exceptions import PersistenceUnavailable
from models import ExamKey, Question, QuizSession
from serialization import deserialize_snapshot, serialize_snapshot, working_set_fingerprint

logger = logging.getLogger(__name__)

PROGRESS_MAX_AGE = timedelta(hours=24)

Snapshot = dict[str, Any]


class ProgressStore(Protocol):
    """Get/set-by-key storage for session snapshots.

    Implementations raise ``PersistenceUnavailable`` when the backend fails.
    """

    def load(self, key: ExamKey) -> Snapshot | None: ...

    def save(self, key: ExamKey, snapshot: Snapshot) -> None: ...

    def clear(self, key: ExamKey) -> None: ...


class MemoryProgressStore:
    """Process-local store keyed by ExamKey."""

    def __init__(self) -> None:
        self._snapshots: dict[ExamKey, Snapshot] = {}

    def load(self, key: ExamKey) -> Snapshot | None:
        snapshot = self._snapshots.get(key)
        return copy.deepcopy(snapshot) if snapshot is not None else None

    def save(self, key: ExamKey, snapshot: Snapshot) -> None:
        self._snapshots[key] = copy.deepcopy(snapshot)

    def clear(self, key: ExamKey) -> None:
        self._snapshots.pop(key, None)


def is_progress_valid(
    snapshot: Snapshot | None,
    expected_length: int,
    allow_partial_match: bool = False,
    expected_fingerprint: str | None = None,
) -> bool:
    """Check that ``snapshot`` can be resumed for the expected working set.

    ``allow_partial_match`` skips the length comparison for modes whose
    working set is derived (random, comprehensive, saved, wrong).
    """
    if not snapshot or not isinstance(snapshot, dict):
        return False
    working_set = snapshot.get("workingSet")
    if not isinstance(working_set, list) or not working_set:
        return False

    cursor = snapshot.get("cursor", 0)
    if not isinstance(cursor, int) or isinstance(cursor, bool):
        return False
    if cursor < 0 or cursor > len(working_set):
        return False

    time_left = snapshot.get("timeLeft")
    if time_left is not None and (
        not isinstance(time_left, int) or isinstance(time_left, bool) or time_left < 0
    ):
        return False
    visited = snapshot.get("visited", [])
    if not isinstance(visited, list) or not all(
        isinstance(index, int) and not isinstance(index, bool) and 0 <= index < len(working_set)
        for index in visited
    ):
        return False

    if not allow_partial_match and len(working_set) != expected_length:
        return False

    stored_fingerprint = snapshot.get("fingerprint")
    if stored_fingerprint is not None or expected_fingerprint is not None:
        try:
            session = deserialize_snapshot(snapshot, ExamKey("", "", ""))
        except ValueError:
            return False
        actual = working_set_fingerprint(session.working_set)
        if stored_fingerprint is not None and stored_fingerprint != actual:
            return False
        if expected_fingerprint is not None and expected_fingerprint != actual:
            return False
    return True


def is_progress_recent(
    snapshot: Snapshot | None,
    max_age: timedelta = PROGRESS_MAX_AGE,
    now: datetime | None = None,
) -> bool:
    """True when the snapshot was updated no longer than ``max_age`` ago."""
    if not snapshot or not isinstance(snapshot, dict):
        return False
    updated_at = parse_iso_timestamp(snapshot.get("lastUpdatedAt"))
    if updated_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    return now - updated_at <= max_age


def resume_or_start(
    store: ProgressStore,
    key: ExamKey,
    build: Callable[[], list[Question]],
    *,
    allow_partial_match: bool,
    now: datetime | None = None,
    max_age: timedelta = PROGRESS_MAX_AGE,
    time_limit: int = EXAM_TIME_LIMIT,
) -> tuple[QuizSession, bool]:
    """Resume the stored session for ``key`` or start a new one.

    Returns the session and whether it was resumed. A failing store is
    treated as an absent snapshot and leaves the session degraded to
    in-memory operation.
    """
    degraded = False
    try:
        snapshot = store.load(key)
    except PersistenceUnavailable as exc:
        logger.warning("Could not load progress for %s: %s", key.as_tuple(), exc)
        snapshot = None
        degraded = True

    fresh: list[Question] | None = None
    expected_length = 0
    expected_fingerprint = None
    if not allow_partial_match:
        fresh = build()
        expected_length = len(fresh)
        expected_fingerprint = working_set_fingerprint(fresh)

    if (
        snapshot is not None
        and not snapshot.get("finished")
        and is_progress_valid(
            snapshot, expected_length, allow_partial_match, expected_fingerprint
        )
        and is_progress_recent(snapshot, max_age, now)
    ):
        try:
            session = deserialize_snapshot(snapshot, key)
        except ValueError as exc:
            logger.warning("Discarding unreadable progress for %s: %s", key.as_tuple(), exc)
        else:
            logger.info("Resuming %s at question %d", key.as_tuple(), session.cursor)
            return session, True
    elif snapshot is not None:
        logger.info("Discarding stale progress for %s", key.as_tuple())

    if fresh is None:
        fresh = build()
    session = start_session(key, fresh, now, time_limit)
    session.persistence_degraded = degraded
    logger.info("Started %s with %d question(s)", key.as_tuple(), len(fresh))
    return session, False


def persist(store: ProgressStore, session: QuizSession) -> bool:
    """Save the session snapshot; failures degrade the session, never raise."""
    if session.persistence_degraded:
        return False
    try:
        store.save(session.key, serialize_snapshot(session))
    except PersistenceUnavailable as exc:
        logger.warning(
            "Could not save progress for %s, continuing without saving: %s",
            session.key.as_tuple(),
            exc,
        )
        session.persistence_degraded = True
        return False
    return True

