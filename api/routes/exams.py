"""Exam corpus endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from api.dependencies.auth import get_training_gate
from api.services.corpus_service import get_corpus
from corpus import corpus_structure
from models import Corpus, ExamKey, TrainingGate
from serialization import serialize_question
from working_set import ensure_access, literal

router = APIRouter(prefix="/api/exams", tags=["exams"])


@router.get("")
def list_exams(
    corpus: Annotated[Corpus, Depends(get_corpus)],
) -> dict[str, object]:
    """List categories, subcategories and exams with question counts."""
    return corpus_structure(corpus)


@router.get("/{category}/{subcategory}/{exam_id}")
def get_exam(
    category: str,
    subcategory: str,
    exam_id: str,
    corpus: Annotated[Corpus, Depends(get_corpus)],
    gate: Annotated[TrainingGate, Depends(get_training_gate)],
    reveal: bool = Query(False),
) -> dict[str, object]:
    """Get the questions of an authored exam."""
    key = ExamKey(category, subcategory, exam_id)
    ensure_access(key, gate)
    questions = literal(corpus, key)
    return {
        "category": category,
        "subcategory": subcategory,
        "examId": exam_id,
        "questionCount": len(questions),
        "questions": [serialize_question(q, reveal=reveal) for q in questions],
    }
