"""Answer recording, grading and navigation for a quiz session."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from exceptions import BoundaryError, InvalidSelectionError
from models import AnswerRecord, ExamKey, ExamSummary, Question, QuizSession

logger = logging.getLogger(__name__)

EXAM_TIME_LIMIT = 40 * 60  # seconds


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def start_session(
    key: ExamKey,
    working_set: list[Question],
    now: datetime | None = None,
    time_limit: int = EXAM_TIME_LIMIT,
) -> QuizSession:
    started = _now(now)
    return QuizSession(
        key=key,
        working_set=list(working_set),
        started_at=started,
        last_updated_at=started,
        visited=[0] if working_set else [],
        time_left=time_limit,
    )


def _ensure_open(session: QuizSession) -> None:
    if session.finished:
        raise InvalidSelectionError("Exam already finished")


def current_question(session: QuizSession) -> Question | None:
    if 0 <= session.cursor < len(session.working_set):
        return session.working_set[session.cursor]
    return None


def submit_answer(
    session: QuizSession, selected_option: int, now: datetime | None = None
) -> AnswerRecord:
    """Grade ``selected_option`` (1-based) for the current question.

    Re-answering before navigating overwrites the earlier record. The cursor
    is left where it is.
    """
    _ensure_open(session)
    question = current_question(session)
    if question is None:
        raise InvalidSelectionError("No current question to answer")
    if not question.has_option(selected_option):
        raise InvalidSelectionError(
            f"Option {selected_option} does not exist for this question"
        )

    record = AnswerRecord(
        selected_option=selected_option,
        correct=selected_option == question.correct_option,
    )
    session.answers[question.key] = record
    session.last_updated_at = _now(now)
    return record


def jump_to(session: QuizSession, index: int, now: datetime | None = None) -> int:
    _ensure_open(session)
    if not isinstance(index, int) or index < 0 or index > len(session.working_set):
        raise BoundaryError(f"Question index {index} is out of range")
    session.cursor = index
    if index < len(session.working_set) and index not in session.visited:
        session.visited.append(index)
    session.last_updated_at = _now(now)
    logger.debug("Session %s moved to %d", session.key.as_tuple(), index)
    return session.cursor


def advance(session: QuizSession, now: datetime | None = None) -> int:
    _ensure_open(session)
    if session.cursor >= len(session.working_set):
        raise BoundaryError("Already past the last question")
    return jump_to(session, session.cursor + 1, now)


def retreat(session: QuizSession, now: datetime | None = None) -> int:
    _ensure_open(session)
    if session.cursor <= 0:
        raise BoundaryError("Already at the first question")
    return jump_to(session, session.cursor - 1, now)


def toggle_bookmark(session: QuizSession, now: datetime | None = None) -> bool:
    """Flag or unflag the current question. Returns the new flag state."""
    _ensure_open(session)
    question = current_question(session)
    if question is None:
        raise InvalidSelectionError("No current question to bookmark")
    if question.key in session.bookmarks:
        session.bookmarks.remove(question.key)
        bookmarked = False
    else:
        session.bookmarks.append(question.key)
        bookmarked = True
    session.last_updated_at = _now(now)
    return bookmarked


def record_time_left(
    session: QuizSession, seconds: int, now: datetime | None = None
) -> int:
    """Store the remaining exam time reported by the client's countdown."""
    _ensure_open(session)
    if not isinstance(seconds, int) or isinstance(seconds, bool) or seconds < 0:
        raise InvalidSelectionError(f"Invalid remaining time {seconds}")
    session.time_left = seconds
    session.last_updated_at = _now(now)
    return seconds


def score(session: QuizSession) -> float:
    """Running score: correct answers over answered questions."""
    if not session.answers:
        return 0.0
    correct = sum(1 for record in session.answers.values() if record.correct)
    return correct / len(session.answers)


def summarize(session: QuizSession) -> ExamSummary:
    """End-of-exam result; unanswered questions count against the score."""
    keys = {question.key for question in session.working_set}
    answered = [record for key, record in session.answers.items() if key in keys]
    return ExamSummary(
        correct=sum(1 for record in answered if record.correct),
        answered=len(answered),
        total=len(session.working_set),
    )


def finish(session: QuizSession, now: datetime | None = None) -> ExamSummary:
    _ensure_open(session)
    session.finished = True
    session.last_updated_at = _now(now)
    summary = summarize(session)
    logger.info(
        "Finished %s: %d/%d correct",
        "/".join(session.key.as_tuple()),
        summary.correct,
        summary.total,
    )
    return summary
