"""Bookmark and wrong-answer history per (category, subcategory).

Wrong answers map ``exam -> {position: count}``; bookmarks map
``exam -> [position, ...]``. Both are views that can be rebuilt from stored
session snapshots.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable

from models import Question, QuizSession
from serialization import deserialize_snapshot

logger = logging.getLogger(__name__)

WrongAnswers = dict[str, dict[str, int]]
Bookmarks = dict[str, list[int]]


def _sessions(snapshots: Iterable[dict[str, Any]]) -> Iterable[QuizSession]:
    for snapshot in snapshots:
        try:
            yield deserialize_snapshot(snapshot)
        except ValueError as exc:
            logger.warning("Skipping unreadable snapshot: %s", exc)


def record_wrong(mapping: WrongAnswers, question: Question) -> int:
    exam = mapping.setdefault(question.exam, {})
    position = str(question.position)
    exam[position] = exam.get(position, 0) + 1
    return exam[position]


def clear_wrong(mapping: WrongAnswers, question: Question) -> int:
    """Decrement the miss count, dropping the entry when it reaches zero."""
    exam = mapping.get(question.exam)
    position = str(question.position)
    if not exam or position not in exam:
        return 0
    exam[position] -= 1
    if exam[position] <= 0:
        del exam[position]
        if not exam:
            del mapping[question.exam]
        return 0
    return exam[position]


def collect_wrong_answers(snapshots: Iterable[dict[str, Any]]) -> WrongAnswers:
    mapping: WrongAnswers = {}
    for session in _sessions(snapshots):
        for question in session.working_set:
            record = session.answers.get(question.key)
            if record is not None and not record.correct:
                record_wrong(mapping, question)
    return mapping


def collect_bookmarks(snapshots: Iterable[dict[str, Any]]) -> Bookmarks:
    mapping: Bookmarks = {}
    for session in _sessions(snapshots):
        flagged = set(session.bookmarks)
        for question in session.working_set:
            if question.key not in flagged:
                continue
            positions = mapping.setdefault(question.exam, [])
            if question.position not in positions:
                positions.append(question.position)
    return mapping


def count_bookmarks(mapping: Bookmarks) -> int:
    return sum(len(positions) for positions in mapping.values())


def count_wrong(mapping: WrongAnswers) -> int:
    # each question counts once regardless of how often it was missed
    return sum(len(positions) for positions in mapping.values())
