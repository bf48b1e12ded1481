"""Service layer for bookmarks, wrong answers and last scores."""
import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session as DBSession

from api.models.db.history import Bookmark, LastScore, WrongAnswer
from api.services.progress_service import list_snapshots
from history import Bookmarks, WrongAnswers, collect_bookmarks, collect_wrong_answers
from models import ExamKey, ExamSummary, Question

logger = logging.getLogger(__name__)


def load_bookmarks(
    db: DBSession, client_id: str, category: str, subcategory: str
) -> Bookmarks:
    """Bookmarks as ``{exam: [position, ...]}`` in the order they were added."""
    rows = db.execute(
        select(Bookmark)
        .where(
            Bookmark.client_id == client_id,
            Bookmark.category == category,
            Bookmark.subcategory == subcategory,
        )
        .order_by(Bookmark.id)
    ).scalars().all()

    mapping: Bookmarks = {}
    for row in rows:
        mapping.setdefault(row.exam_number, []).append(row.position)
    return mapping


def set_bookmark(
    db: DBSession,
    client_id: str,
    category: str,
    subcategory: str,
    question: Question,
    bookmarked: bool,
) -> None:
    """Add or remove a bookmark for ``question``."""
    existing = db.execute(
        select(Bookmark).where(
            Bookmark.client_id == client_id,
            Bookmark.category == category,
            Bookmark.subcategory == subcategory,
            Bookmark.exam_number == question.exam,
            Bookmark.position == question.position,
        )
    ).scalar_one_or_none()

    if bookmarked and existing is None:
        db.add(
            Bookmark(
                client_id=client_id,
                category=category,
                subcategory=subcategory,
                exam_number=question.exam,
                position=question.position,
            )
        )
    elif not bookmarked and existing is not None:
        db.delete(existing)
    db.commit()


def load_wrong_answers(
    db: DBSession, client_id: str, category: str, subcategory: str
) -> WrongAnswers:
    """Wrong answers as ``{exam: {position: count}}``."""
    rows = db.execute(
        select(WrongAnswer)
        .where(
            WrongAnswer.client_id == client_id,
            WrongAnswer.category == category,
            WrongAnswer.subcategory == subcategory,
        )
        .order_by(WrongAnswer.id)
    ).scalars().all()

    mapping: WrongAnswers = {}
    for row in rows:
        mapping.setdefault(row.exam_number, {})[str(row.position)] = row.count
    return mapping


def _wrong_row(
    db: DBSession, client_id: str, category: str, subcategory: str, question: Question
) -> WrongAnswer | None:
    return db.execute(
        select(WrongAnswer).where(
            WrongAnswer.client_id == client_id,
            WrongAnswer.category == category,
            WrongAnswer.subcategory == subcategory,
            WrongAnswer.exam_number == question.exam,
            WrongAnswer.position == question.position,
        )
    ).scalar_one_or_none()


def record_wrong_answer(
    db: DBSession, client_id: str, category: str, subcategory: str, question: Question
) -> None:
    row = _wrong_row(db, client_id, category, subcategory, question)
    if row is None:
        db.add(
            WrongAnswer(
                client_id=client_id,
                category=category,
                subcategory=subcategory,
                exam_number=question.exam,
                position=question.position,
                count=1,
            )
        )
    else:
        row.count += 1
    db.commit()


def clear_wrong_answer(
    db: DBSession, client_id: str, category: str, subcategory: str, question: Question
) -> None:
    """Decrement the miss count, removing the row when it reaches zero."""
    row = _wrong_row(db, client_id, category, subcategory, question)
    if row is None:
        return
    row.count -= 1
    if row.count <= 0:
        db.delete(row)
    db.commit()


def record_last_score(
    db: DBSession, client_id: str, key: ExamKey, summary: ExamSummary
) -> LastScore:
    score = db.execute(
        select(LastScore).where(
            LastScore.client_id == client_id,
            LastScore.category == key.category,
            LastScore.subcategory == key.subcategory,
            LastScore.exam_id == key.exam_id,
        )
    ).scalar_one_or_none()

    if score is None:
        score = LastScore(
            client_id=client_id,
            category=key.category,
            subcategory=key.subcategory,
            exam_id=key.exam_id,
        )
        db.add(score)
    score.correct = summary.correct
    score.total = summary.total
    score.finished_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(score)
    return score


def load_last_scores(
    db: DBSession, client_id: str, category: str, subcategory: str
) -> dict[str, dict[str, object]]:
    rows = db.execute(
        select(LastScore).where(
            LastScore.client_id == client_id,
            LastScore.category == category,
            LastScore.subcategory == subcategory,
        )
    ).scalars().all()
    return {
        row.exam_id: {
            "grade": row.correct,
            "total": row.total,
            "time": row.finished_at.isoformat(),
        }
        for row in rows
    }


def rebuild_history(
    db: DBSession, client_id: str, category: str, subcategory: str
) -> tuple[Bookmarks, WrongAnswers]:
    """Recompute bookmarks and wrong answers from stored snapshots."""
    snapshots = list_snapshots(db, client_id, category, subcategory)
    bookmarks = collect_bookmarks(snapshots)
    wrong_answers = collect_wrong_answers(snapshots)

    scope = (
        ("client_id", client_id),
        ("category", category),
        ("subcategory", subcategory),
    )
    for model in (Bookmark, WrongAnswer):
        db.execute(
            delete(model).where(*(getattr(model, name) == value for name, value in scope))
        )

    for exam_number, positions in bookmarks.items():
        for position in positions:
            db.add(
                Bookmark(
                    client_id=client_id,
                    category=category,
                    subcategory=subcategory,
                    exam_number=exam_number,
                    position=position,
                )
            )
    for exam_number, counts in wrong_answers.items():
        for position, count in counts.items():
            db.add(
                WrongAnswer(
                    client_id=client_id,
                    category=category,
                    subcategory=subcategory,
                    exam_number=exam_number,
                    position=int(position),
                    count=count,
                )
            )
    db.commit()
    logger.info(
        "Rebuilt history for %s %s/%s from %d snapshot(s)",
        client_id,
        category,
        subcategory,
        len(snapshots),
    )
    return bookmarks, wrong_answers
