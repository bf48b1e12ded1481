"""Working-set construction for new quiz sessions."""
from __future__ import annotations

import random
from datetime import datetime
from typing import Mapping, MutableSequence, Sequence, TypeVar

from corpus import sorted_exam_ids
from exceptions import AuthRequiredError, NotFoundError
from models import Corpus, ExamKey, Question, TrainingGate

T = TypeVar("T")

RANDOM_EXAM_SIZE = 30
TRAINING_CATEGORY = "training"

# {exam: [position, ...]} for bookmarks, {exam: {position: count}} for
# wrong answers; both iterate as exam -> positions.
HistoryMapping = Mapping[str, object]


def fisher_yates(items: MutableSequence[T], rng: random.Random | None = None) -> None:
    """Shuffle ``items`` in place with an unbiased Fisher-Yates pass."""
    rng = rng or random.Random()
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]


def _exams(corpus: Corpus, key: ExamKey) -> Mapping[str, list[Question]]:
    exams = corpus.get(key.category, {}).get(key.subcategory)
    if exams is None:
        raise NotFoundError(
            f"Category {key.category}/{key.subcategory} not found"
        )
    return exams


def literal(corpus: Corpus, key: ExamKey) -> list[Question]:
    questions = _exams(corpus, key).get(key.exam_id)
    if not questions:
        raise NotFoundError()
    return list(questions)


def comprehensive(corpus: Corpus, key: ExamKey) -> list[Question]:
    exams = _exams(corpus, key)
    working_set: list[Question] = []
    for exam_id in sorted_exam_ids(exams):
        working_set.extend(exams[exam_id])
    return working_set


def random_selection(
    corpus: Corpus,
    key: ExamKey,
    rng: random.Random | None = None,
    size: int = RANDOM_EXAM_SIZE,
) -> list[Question]:
    pool = comprehensive(corpus, key)
    fisher_yates(pool, rng)
    return pool[:size]


def _positions(entry: object) -> Sequence[int]:
    if isinstance(entry, Mapping):
        raw = list(entry.keys())
    elif isinstance(entry, (list, tuple)):
        raw = list(entry)
    else:
        return []
    positions = []
    for value in raw:
        try:
            positions.append(int(value))
        except (TypeError, ValueError):
            continue
    return positions


def from_history(
    corpus: Corpus, key: ExamKey, history: HistoryMapping | None
) -> list[Question]:
    """Resolve bookmarked or missed question references against the corpus.

    References to questions no longer in the corpus are skipped.
    """
    exams = _exams(corpus, key)
    if not history:
        return []
    working_set: list[Question] = []
    for exam_id, entry in history.items():
        questions = exams.get(str(exam_id))
        if not questions:
            continue
        by_position = {question.position: question for question in questions}
        for position in _positions(entry):
            question = by_position.get(position)
            if question is not None:
                working_set.append(question)
    return working_set


def ensure_access(
    key: ExamKey, gate: TrainingGate | None, now: datetime | None = None
) -> None:
    """Refuse training exams unless the training gate is open."""
    if key.category == TRAINING_CATEGORY and (gate is None or not gate.is_open(now)):
        raise AuthRequiredError()


def build_working_set(
    corpus: Corpus,
    key: ExamKey,
    *,
    history: HistoryMapping | None = None,
    gate: TrainingGate | None = None,
    rng: random.Random | None = None,
    now: datetime | None = None,
    random_size: int = RANDOM_EXAM_SIZE,
) -> list[Question]:
    """Produce the ordered question sequence for a new session.

    Raises:
        AuthRequiredError: training category requested with a closed gate.
        NotFoundError: unknown category, or a literal exam that is missing
            or empty.
    """
    ensure_access(key, gate, now)

    mode = key.mode
    if mode == "comprehensive":
        return comprehensive(corpus, key)
    if mode == "random":
        return random_selection(corpus, key, rng, random_size)
    if mode in ("saved", "wrong"):
        return from_history(corpus, key, history)
    return literal(corpus, key)
