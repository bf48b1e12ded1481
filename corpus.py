"""Question corpus loading and validation.

The corpus is a nested mapping ``category -> subcategory -> exam -> [Question]``.
Records that cannot be graded are dropped here so a single bad entry never
reaches a quiz session.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from models import Corpus, Question

logger = logging.getLogger(__name__)

# (current spelling, static JSON spelling)
_PROMPT_FIELDS = ("prompt", "question")
_OPTION_FIELDS = (
    ("optionA", "a"),
    ("optionB", "b"),
    ("optionC", "c"),
    ("optionD", "d"),
)
_CORRECT_FIELDS = ("correctOption", "answer")


def _first_present(record: Mapping[str, Any], names: Iterable[str]) -> Any:
    for name in names:
        if name in record and record[name] is not None:
            return record[name]
    return None


def _clean_option(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    if not text.strip():
        return None
    return text


def _parse_correct(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def parse_question(
    record: object, exam: str, position: int
) -> Question | None:
    """Build a Question from a raw record, or None when it is malformed."""
    if not isinstance(record, Mapping):
        return None

    prompt = _first_present(record, _PROMPT_FIELDS)
    if not isinstance(prompt, str) or not prompt.strip():
        return None

    options = [
        _clean_option(_first_present(record, names)) for names in _OPTION_FIELDS
    ]
    if options[0] is None or options[1] is None:
        return None
    while options and options[-1] is None:
        options.pop()

    correct = _parse_correct(_first_present(record, _CORRECT_FIELDS))
    if correct is None or correct < 1 or correct > len(options):
        return None
    if options[correct - 1] is None:
        return None

    raw_id = record.get("id")
    question_id = str(raw_id) if raw_id is not None else str(position + 1)

    return Question(
        id=question_id,
        prompt=prompt,
        options=tuple(options),
        correct_option=correct,
        exam=str(exam),
        position=position,
    )


def exam_sort_key(exam_id: str) -> tuple[int, int, str]:
    """Numeric exam ids first in numeric order, then the rest by name."""
    text = str(exam_id)
    if text.isdigit():
        return (0, int(text), "")
    return (1, 0, text)


def sorted_exam_ids(exams: Mapping[str, object]) -> list[str]:
    return sorted(exams.keys(), key=exam_sort_key)


def _add_exam(
    corpus: Corpus,
    category: str,
    subcategory: str,
    exam_id: str,
    records: Iterable[tuple[int, object]],
) -> None:
    questions = []
    seen: set[str] = set()
    dropped = 0
    for position, record in records:
        question = parse_question(record, exam_id, position)
        if question is None:
            dropped += 1
            continue
        # answers and history are keyed by id, so the first record wins
        if question.id in seen:
            logger.warning(
                "Dropping duplicate question id %s at position %d in %s/%s/%s",
                question.id,
                position,
                category,
                subcategory,
                exam_id,
            )
            continue
        seen.add(question.id)
        questions.append(question)
    if dropped:
        logger.warning(
            "Dropped %d malformed question(s) from %s/%s/%s",
            dropped,
            category,
            subcategory,
            exam_id,
        )
    if not questions:
        logger.warning(
            "Exam %s/%s/%s has no usable questions", category, subcategory, exam_id
        )
        return
    corpus.setdefault(category, {}).setdefault(subcategory, {})[exam_id] = questions


def load_corpus(payload: object) -> Corpus:
    """Validate a nested corpus payload and drop malformed records."""
    corpus: Corpus = {}
    if not isinstance(payload, Mapping):
        logger.warning("Corpus payload is not an object, ignoring it")
        return corpus

    for category, subcategories in payload.items():
        if not isinstance(subcategories, Mapping):
            logger.warning("Skipping category %s: not an object", category)
            continue
        for subcategory, exams in subcategories.items():
            if not isinstance(exams, Mapping):
                logger.warning(
                    "Skipping %s/%s: not an object", category, subcategory
                )
                continue
            for exam_id, records in exams.items():
                if not isinstance(records, list):
                    logger.warning(
                        "Skipping exam %s/%s/%s: not a list",
                        category,
                        subcategory,
                        exam_id,
                    )
                    continue
                _add_exam(
                    corpus,
                    str(category),
                    str(subcategory),
                    str(exam_id),
                    enumerate(records),
                )
    return corpus


def load_corpus_file(path: Path) -> Corpus:
    """Load and validate a corpus JSON file."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    corpus = load_corpus(payload)
    logger.info(
        "Loaded corpus from %s: %d question(s)", path, count_questions(corpus)
    )
    return corpus


def corpus_from_rows(rows: Iterable[object]) -> Corpus:
    """Build a corpus from ``questions`` table rows.

    Rows must already be ordered by category, subcategory, exam and position.
    Stored positions are kept so history references stay stable.
    """
    grouped: dict[tuple[str, str, str], list[tuple[int, dict[str, object]]]] = {}
    for row in rows:
        exam = grouped.setdefault(
            (row.category, row.subcategory, str(row.exam_number)), []
        )
        exam.append(
            (
                row.position,
                {
                    "id": row.original_id,
                    "prompt": row.question,
                    "optionA": row.option_a,
                    "optionB": row.option_b,
                    "optionC": row.option_c,
                    "optionD": row.option_d,
                    "correctOption": row.correct_answer,
                },
            )
        )

    corpus: Corpus = {}
    for (category, subcategory, exam_id), records in grouped.items():
        _add_exam(corpus, category, subcategory, exam_id, records)
    return corpus


def count_questions(corpus: Corpus) -> int:
    return sum(
        len(questions)
        for subcategories in corpus.values()
        for exams in subcategories.values()
        for questions in exams.values()
    )


def corpus_structure(corpus: Corpus) -> dict[str, dict[str, list[dict[str, object]]]]:
    """Summarize exams per category/subcategory with question counts."""
    structure: dict[str, dict[str, list[dict[str, object]]]] = {}
    for category, subcategories in corpus.items():
        structure[category] = {}
        for subcategory, exams in subcategories.items():
            structure[category][subcategory] = [
                {"examId": exam_id, "questionCount": len(exams[exam_id])}
                for exam_id in sorted_exam_ids(exams)
            ]
    return structure
