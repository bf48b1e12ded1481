"""Service layer for live quiz sessions.

Live sessions are kept in memory per (client, exam key). The persisted
snapshot is read once when a session starts and written after every
mutation; a failing store only downgrades the session to in-memory mode.
"""
import logging
import threading
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from api.config import EXAM_TIME_LIMIT_SECONDS, PROGRESS_MAX_AGE_HOURS, RANDOM_EXAM_SIZE
from api.services import history_service
from engine import (
    advance,
    current_question,
    finish,
    jump_to,
    record_time_left,
    retreat,
    submit_answer,
    summarize,
    toggle_bookmark,
)
from exceptions import BoundaryError, NotFoundError
from models import AnswerRecord, Corpus, ExamKey, ExamSummary, QuizSession, TrainingGate
from progress import ProgressStore, resume_or_start
from working_set import build_working_set, ensure_access

logger = logging.getLogger(__name__)

SAVE_WARNING = "Could not save progress, continuing without saving"
EMPTY_FILTER_WARNING = "No questions available for this filter"


class SessionRegistry:
    """Thread-safe map of live sessions.

    Sessions idle for longer than ``max_age`` are evicted; they could not be
    resumed from their snapshot anyway.
    """

    def __init__(self, max_age: timedelta = timedelta(hours=PROGRESS_MAX_AGE_HOURS)) -> None:
        self._sessions: dict[tuple[str, ExamKey], QuizSession] = {}
        self._lock = threading.Lock()
        self.max_age = max_age

    def _expired(self, session: QuizSession, now: datetime) -> bool:
        return now - session.last_updated_at > self.max_age

    def get(
        self, client_id: str, key: ExamKey, now: datetime | None = None
    ) -> QuizSession | None:
        now = now or datetime.now(timezone.utc)
        with self._lock:
            session = self._sessions.get((client_id, key))
            if session is not None and self._expired(session, now):
                del self._sessions[(client_id, key)]
                return None
            return session

    def put(self, client_id: str, session: QuizSession, now: datetime | None = None) -> None:
        now = now or datetime.now(timezone.utc)
        with self._lock:
            self._prune(now)
            self._sessions[(client_id, session.key)] = session

    def _prune(self, now: datetime) -> int:
        """Drop expired sessions; the caller holds the lock."""
        expired = [
            entry for entry, session in self._sessions.items() if self._expired(session, now)
        ]
        for entry in expired:
            del self._sessions[entry]
        if expired:
            logger.debug("Evicted %d idle session(s)", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


registry = SessionRegistry()


def allows_partial_match(key: ExamKey) -> bool:
    """Derived working sets are resumed from the snapshot's own content."""
    return key.mode != "literal"


def start_session(
    db: DBSession,
    store: ProgressStore,
    corpus: Corpus,
    client_id: str,
    key: ExamKey,
    gate: TrainingGate | None = None,
    now: datetime | None = None,
) -> tuple[QuizSession, bool]:
    """Resume or create the session for ``key`` and register it."""
    ensure_access(key, gate, now)

    def build() -> list:
        history = None
        if key.mode == "saved":
            history = history_service.load_bookmarks(
                db, client_id, key.category, key.subcategory
            )
        elif key.mode == "wrong":
            history = history_service.load_wrong_answers(
                db, client_id, key.category, key.subcategory
            )
        return build_working_set(
            corpus,
            key,
            history=history,
            gate=gate,
            now=now,
            random_size=RANDOM_EXAM_SIZE,
        )

    session, resumed = resume_or_start(
        store,
        key,
        build,
        allow_partial_match=allows_partial_match(key),
        now=now,
        max_age=timedelta(hours=PROGRESS_MAX_AGE_HOURS),
        time_limit=EXAM_TIME_LIMIT_SECONDS,
    )
    registry.put(client_id, session, now)
    return session, resumed


def get_session(client_id: str, key: ExamKey) -> QuizSession:
    session = registry.get(client_id, key)
    if session is None:
        raise NotFoundError("Session not started")
    return session


def answer(
    client_id: str, key: ExamKey, option: int, now: datetime | None = None
) -> AnswerRecord:
    return submit_answer(get_session(client_id, key), option, now)


def move(client_id: str, key: ExamKey, direction: str, now: datetime | None = None) -> int:
    """Step one question forward or back; a move past either end is a no-op."""
    session = get_session(client_id, key)
    step = advance if direction == "next" else retreat
    try:
        return step(session, now)
    except BoundaryError:
        return session.cursor


def jump(client_id: str, key: ExamKey, index: int, now: datetime | None = None) -> int:
    return jump_to(get_session(client_id, key), index, now)


def report_time(
    client_id: str, key: ExamKey, seconds: int, now: datetime | None = None
) -> int:
    return record_time_left(get_session(client_id, key), seconds, now)


def bookmark(
    db: DBSession, client_id: str, key: ExamKey, now: datetime | None = None
) -> tuple[bool, bool]:
    """Toggle the bookmark of the current question.

    Returns (bookmarked, history_saved).
    """
    session = get_session(client_id, key)
    question = current_question(session)
    bookmarked = toggle_bookmark(session, now)
    try:
        history_service.set_bookmark(
            db, client_id, key.category, key.subcategory, question, bookmarked
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Could not store bookmark for %s: %s", key.as_tuple(), exc)
        return bookmarked, False
    return bookmarked, True


def finish_session(
    db: DBSession, client_id: str, key: ExamKey, now: datetime | None = None
) -> tuple[ExamSummary, bool]:
    """Finish the run and fold its answers into the client's history.

    Finishing again returns the same summary without touching history.

    Returns (summary, history_saved).
    """
    session = get_session(client_id, key)
    if session.finished:
        return summarize(session), True
    summary = finish(session, now)
    try:
        _record_history(db, client_id, session, summary)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Could not record history for %s: %s", key.as_tuple(), exc)
        return summary, False
    return summary, True


def _record_history(
    db: DBSession, client_id: str, session: QuizSession, summary: ExamSummary
) -> None:
    key = session.key
    for question in session.working_set:
        record = session.answers.get(question.key)
        if record is None:
            continue
        if not record.correct:
            history_service.record_wrong_answer(
                db, client_id, key.category, key.subcategory, question
            )
        elif key.mode == "wrong":
            history_service.clear_wrong_answer(
                db, client_id, key.category, key.subcategory, question
            )
    # random sets differ every run, so their score is not kept
    if key.mode != "random":
        history_service.record_last_score(db, client_id, key, summary)


def warnings_for(session: QuizSession) -> str | None:
    if not session.working_set:
        return EMPTY_FILTER_WARNING
    if session.persistence_degraded:
        return SAVE_WARNING
    return None
