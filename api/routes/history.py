"""Bookmark, wrong-answer and last-score endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.dependencies.auth import get_client_id
from api.services import history_service
from history import count_bookmarks, count_wrong

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("/{category}/{subcategory}")
def get_history(
    category: str,
    subcategory: str,
    client_id: Annotated[str, Depends(get_client_id)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Get bookmark and wrong-answer counts plus the last score per exam.

    Returns:
        Dictionary with counts, the raw mappings and last scores
    """
    bookmarks = history_service.load_bookmarks(db, client_id, category, subcategory)
    wrong_answers = history_service.load_wrong_answers(
        db, client_id, category, subcategory
    )
    return {
        "bookmarkCount": count_bookmarks(bookmarks),
        "wrongCount": count_wrong(wrong_answers),
        "bookmarks": bookmarks,
        "wrongAnswers": wrong_answers,
        "lastScores": history_service.load_last_scores(
            db, client_id, category, subcategory
        ),
    }


@router.post("/{category}/{subcategory}/rebuild")
def rebuild_history(
    category: str,
    subcategory: str,
    client_id: Annotated[str, Depends(get_client_id)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Recompute bookmarks and wrong answers from stored snapshots."""
    bookmarks, wrong_answers = history_service.rebuild_history(
        db, client_id, category, subcategory
    )
    return {
        "bookmarkCount": count_bookmarks(bookmarks),
        "wrongCount": count_wrong(wrong_answers),
        "bookmarks": bookmarks,
        "wrongAnswers": wrong_answers,
    }
