"""Quiz session endpoints."""
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.dependencies.auth import get_client_id, get_progress_store, get_training_gate
from api.models import AnswerRequest, JumpRequest, SessionResponse, TimeRequest
from api.services import session_service
from api.services.corpus_service import get_corpus
from api.services.progress_service import SqlProgressStore
from models import Corpus, ExamKey, QuizSession, TrainingGate
from progress import persist
from serialization import serialize_session, serialize_summary

router = APIRouter(
    prefix="/api/sessions/{category}/{subcategory}/{exam_id}", tags=["sessions"]
)


def _respond(
    session: QuizSession,
    store: SqlProgressStore,
    background_tasks: BackgroundTasks,
    **extra: object,
) -> dict[str, object]:
    """Schedule the snapshot write and build the response."""
    if session.working_set:
        background_tasks.add_task(persist, store, session)
    return {
        "session": serialize_session(session),
        "saved": not session.persistence_degraded,
        "warning": session_service.warnings_for(session),
        **extra,
    }


@router.post("/start", response_model=SessionResponse)
def start_session(
    category: str,
    subcategory: str,
    exam_id: str,
    background_tasks: BackgroundTasks,
    client_id: Annotated[str, Depends(get_client_id)],
    store: Annotated[SqlProgressStore, Depends(get_progress_store)],
    gate: Annotated[TrainingGate, Depends(get_training_gate)],
    corpus: Annotated[Corpus, Depends(get_corpus)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Resume saved progress or start a new run of an exam."""
    key = ExamKey(category, subcategory, exam_id)
    session, resumed = session_service.start_session(
        db, store, corpus, client_id, key, gate
    )
    return _respond(session, store, background_tasks, resumed=resumed)


@router.get("", response_model=SessionResponse)
def get_session(
    category: str,
    subcategory: str,
    exam_id: str,
    client_id: Annotated[str, Depends(get_client_id)],
) -> dict[str, object]:
    """Get the live session."""
    session = session_service.get_session(
        client_id, ExamKey(category, subcategory, exam_id)
    )
    return {
        "session": serialize_session(session),
        "saved": not session.persistence_degraded,
        "warning": session_service.warnings_for(session),
    }


@router.post("/answer", response_model=SessionResponse)
def answer_question(
    category: str,
    subcategory: str,
    exam_id: str,
    payload: AnswerRequest,
    background_tasks: BackgroundTasks,
    client_id: Annotated[str, Depends(get_client_id)],
    store: Annotated[SqlProgressStore, Depends(get_progress_store)],
) -> dict[str, object]:
    """Answer the current question."""
    key = ExamKey(category, subcategory, exam_id)
    session_service.answer(client_id, key, payload.option)
    session = session_service.get_session(client_id, key)
    return _respond(session, store, background_tasks)


@router.post("/next", response_model=SessionResponse)
def next_question(
    category: str,
    subcategory: str,
    exam_id: str,
    background_tasks: BackgroundTasks,
    client_id: Annotated[str, Depends(get_client_id)],
    store: Annotated[SqlProgressStore, Depends(get_progress_store)],
) -> dict[str, object]:
    """Move to the next question."""
    key = ExamKey(category, subcategory, exam_id)
    session_service.move(client_id, key, "next")
    session = session_service.get_session(client_id, key)
    return _respond(session, store, background_tasks)


@router.post("/previous", response_model=SessionResponse)
def previous_question(
    category: str,
    subcategory: str,
    exam_id: str,
    background_tasks: BackgroundTasks,
    client_id: Annotated[str, Depends(get_client_id)],
    store: Annotated[SqlProgressStore, Depends(get_progress_store)],
) -> dict[str, object]:
    """Move to the previous question."""
    key = ExamKey(category, subcategory, exam_id)
    session_service.move(client_id, key, "previous")
    session = session_service.get_session(client_id, key)
    return _respond(session, store, background_tasks)


@router.post("/jump", response_model=SessionResponse)
def jump_to_question(
    category: str,
    subcategory: str,
    exam_id: str,
    payload: JumpRequest,
    background_tasks: BackgroundTasks,
    client_id: Annotated[str, Depends(get_client_id)],
    store: Annotated[SqlProgressStore, Depends(get_progress_store)],
) -> dict[str, object]:
    """Move directly to a question index."""
    key = ExamKey(category, subcategory, exam_id)
    session_service.jump(client_id, key, payload.index)
    session = session_service.get_session(client_id, key)
    return _respond(session, store, background_tasks)


@router.post("/time", response_model=SessionResponse)
def report_time(
    category: str,
    subcategory: str,
    exam_id: str,
    payload: TimeRequest,
    background_tasks: BackgroundTasks,
    client_id: Annotated[str, Depends(get_client_id)],
    store: Annotated[SqlProgressStore, Depends(get_progress_store)],
) -> dict[str, object]:
    """Store the countdown so a resumed exam continues from it."""
    key = ExamKey(category, subcategory, exam_id)
    session_service.report_time(client_id, key, payload.timeLeft)
    session = session_service.get_session(client_id, key)
    return _respond(session, store, background_tasks)


@router.post("/bookmark", response_model=SessionResponse)
def bookmark_question(
    category: str,
    subcategory: str,
    exam_id: str,
    background_tasks: BackgroundTasks,
    client_id: Annotated[str, Depends(get_client_id)],
    store: Annotated[SqlProgressStore, Depends(get_progress_store)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Flag or unflag the current question."""
    key = ExamKey(category, subcategory, exam_id)
    _, history_saved = session_service.bookmark(db, client_id, key)
    session = session_service.get_session(client_id, key)
    response = _respond(session, store, background_tasks)
    if not history_saved:
        response["saved"] = False
        response["warning"] = session_service.SAVE_WARNING
    return response


@router.post("/finish", response_model=SessionResponse)
def finish_session(
    category: str,
    subcategory: str,
    exam_id: str,
    background_tasks: BackgroundTasks,
    client_id: Annotated[str, Depends(get_client_id)],
    store: Annotated[SqlProgressStore, Depends(get_progress_store)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Finish the run and return the end-of-exam summary."""
    key = ExamKey(category, subcategory, exam_id)
    summary, history_saved = session_service.finish_session(db, client_id, key)
    session = session_service.get_session(client_id, key)
    response = _respond(
        session, store, background_tasks, summary=serialize_summary(summary)
    )
    if not history_saved:
        response["saved"] = False
        response["warning"] = session_service.SAVE_WARNING
    return response
