"""Service layer for the question corpus."""
import logging
import threading

from sqlalchemy import delete, select
from sqlalchemy.orm import Session as DBSession

from api.config import CORPUS_PATH, CORPUS_SOURCE
from api.database import SessionLocal
from api.models.db.question import QuestionRow
from corpus import corpus_from_rows, count_questions, load_corpus_file
from models import Corpus

logger = logging.getLogger(__name__)

_corpus: Corpus | None = None
_corpus_lock = threading.Lock()


def load_corpus_from_database(db: DBSession) -> Corpus:
    rows = db.execute(
        select(QuestionRow).order_by(
            QuestionRow.category,
            QuestionRow.subcategory,
            QuestionRow.exam_number,
            QuestionRow.position,
        )
    ).scalars().all()
    corpus = corpus_from_rows(rows)
    logger.info("Loaded corpus from database: %d question(s)", count_questions(corpus))
    return corpus


def load_configured_corpus() -> Corpus:
    """Load the corpus from the configured source."""
    if CORPUS_SOURCE == "database":
        db = SessionLocal()
        try:
            return load_corpus_from_database(db)
        finally:
            db.close()

    if not CORPUS_PATH.exists():
        logger.warning("Corpus file %s not found, serving an empty corpus", CORPUS_PATH)
        return {}
    return load_corpus_file(CORPUS_PATH)


def get_corpus() -> Corpus:
    """Dependency returning the cached corpus."""
    global _corpus
    if _corpus is None:
        with _corpus_lock:
            if _corpus is None:
                _corpus = load_configured_corpus()
    return _corpus


def reload_corpus() -> Corpus:
    global _corpus
    with _corpus_lock:
        _corpus = load_configured_corpus()
    return _corpus


def import_corpus(db: DBSession, corpus: Corpus) -> int:
    """Replace the ``questions`` table with the given corpus."""
    db.execute(delete(QuestionRow))
    imported = 0
    for category, subcategories in corpus.items():
        for subcategory, exams in subcategories.items():
            for exam_number, questions in exams.items():
                for question in questions:
                    options = list(question.options) + [None] * (4 - len(question.options))
                    db.add(
                        QuestionRow(
                            category=category,
                            subcategory=subcategory,
                            exam_number=exam_number,
                            position=question.position,
                            original_id=question.id,
                            question=question.prompt,
                            option_a=options[0],
                            option_b=options[1],
                            option_c=options[2],
                            option_d=options[3],
                            correct_answer=question.correct_option,
                        )
                    )
                    imported += 1
    db.commit()
    logger.info("Imported %d question(s) into the database", imported)
    return imported
