from __future__ import annotations

import hashlib
import re
from typing import Any, Iterable

from api.utils.time_utils import format_timestamp, parse_iso_timestamp
from engine import current_question, score, summarize
from models import AnswerRecord, ExamKey, ExamSummary, Question, QuizSession


INLINE_TEXT_TYPE = "text"
INLINE_ICON_TYPE = "icon"

BLOCK_PARAGRAPH_TYPE = "paragraph"

SNAPSHOT_VERSION = 1

ICON_TOKEN_RE = re.compile(r"\[\[([a-zA-Z0-9]+)\]\]")
EMPTY_SPAN_RE = re.compile(r"<span[^>]*></span>")


def parse_inline_markup(text: str | None) -> list[dict[str, Any]]:
    """Split text into text and icon inlines.

    ``[[identifier]]`` becomes an icon reference; everything else passes
    through verbatim. Empty ``<span>`` tags are dropped.
    """
    if not text:
        return [{"type": INLINE_TEXT_TYPE, "text": ""}]
    processed = EMPTY_SPAN_RE.sub("", text)
    inlines: list[dict[str, Any]] = []
    last_index = 0
    for match in ICON_TOKEN_RE.finditer(processed):
        if match.start() > last_index:
            inlines.append(
                {"type": INLINE_TEXT_TYPE, "text": processed[last_index:match.start()]}
            )
        inlines.append({"type": INLINE_ICON_TYPE, "id": match.group(1)})
        last_index = match.end()
    if last_index < len(processed):
        inlines.append({"type": INLINE_TEXT_TYPE, "text": processed[last_index:]})
    if not inlines:
        inlines.append({"type": INLINE_TEXT_TYPE, "text": ""})
    return inlines


def text_to_blocks(text: str | None) -> list[dict[str, Any]]:
    lines = text.splitlines() if text else [""]
    return [
        {"type": BLOCK_PARAGRAPH_TYPE, "inlines": parse_inline_markup(line)}
        for line in lines or [""]
    ]


def working_set_fingerprint(questions: Iterable[Question]) -> str:
    digest = hashlib.sha1()
    for question in questions:
        digest.update(question.key.encode("utf-8"))
        digest.update(b"\n")
    return digest.hexdigest()


def _question_to_dict(question: Question) -> dict[str, Any]:
    return {
        "id": question.id,
        "prompt": question.prompt,
        "options": list(question.options),
        "correctOption": question.correct_option,
        "exam": question.exam,
        "position": question.position,
    }


def _question_from_dict(payload: dict[str, Any]) -> Question:
    return Question(
        id=str(payload["id"]),
        prompt=payload["prompt"],
        options=tuple(payload["options"]),
        correct_option=int(payload["correctOption"]),
        exam=str(payload.get("exam", "")),
        position=int(payload.get("position", 0)),
    )


def serialize_snapshot(session: QuizSession) -> dict[str, Any]:
    """Serialize session progress into a JSON-friendly snapshot."""
    return {
        "version": SNAPSHOT_VERSION,
        "key": {
            "category": session.key.category,
            "subcategory": session.key.subcategory,
            "examId": session.key.exam_id,
        },
        "workingSet": [_question_to_dict(q) for q in session.working_set],
        "cursor": session.cursor,
        "answers": {
            key: {"selectedOption": record.selected_option, "correct": record.correct}
            for key, record in session.answers.items()
        },
        "bookmarks": list(session.bookmarks),
        "visited": list(session.visited),
        "timeLeft": session.time_left,
        "startedAt": format_timestamp(session.started_at),
        "lastUpdatedAt": format_timestamp(session.last_updated_at),
        "finished": session.finished,
        "fingerprint": working_set_fingerprint(session.working_set),
    }


def deserialize_snapshot(
    payload: dict[str, Any], key: ExamKey | None = None
) -> QuizSession:
    """Rebuild a session from a snapshot produced by ``serialize_snapshot``.

    Raises:
        ValueError: the snapshot is structurally broken.
    """
    try:
        if key is None:
            raw_key = payload["key"]
            key = ExamKey(
                category=raw_key["category"],
                subcategory=raw_key["subcategory"],
                exam_id=raw_key["examId"],
            )
        working_set = [_question_from_dict(item) for item in payload["workingSet"]]
        answers = {
            str(question_key): AnswerRecord(
                selected_option=int(record["selectedOption"]),
                correct=bool(record["correct"]),
            )
            for question_key, record in (payload.get("answers") or {}).items()
        }
        cursor = int(payload.get("cursor", 0))
        bookmarks = [str(item) for item in payload.get("bookmarks") or []]
        visited = [int(index) for index in payload.get("visited") or []]
        time_left = payload.get("timeLeft")
        if time_left is not None:
            time_left = int(time_left)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Malformed progress snapshot: {exc}") from exc

    started_at = parse_iso_timestamp(payload.get("startedAt"))
    last_updated_at = parse_iso_timestamp(payload.get("lastUpdatedAt"))
    session = QuizSession(
        key=key,
        working_set=working_set,
        cursor=cursor,
        answers=answers,
        bookmarks=bookmarks,
        visited=visited,
        time_left=time_left,
        finished=bool(payload.get("finished", False)),
    )
    if started_at is not None:
        session.started_at = started_at
    if last_updated_at is not None:
        session.last_updated_at = last_updated_at
    return session


def serialize_question(question: Question, reveal: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": question.id,
        "key": question.key,
        "exam": question.exam,
        "position": question.position,
        "prompt": {"text": question.prompt, "blocks": text_to_blocks(question.prompt)},
        "options": [
            {
                "id": index,
                "text": option,
                "blocks": text_to_blocks(option),
            }
            for index, option in enumerate(question.options, start=1)
            if option
        ],
    }
    if reveal:
        payload["correctOption"] = question.correct_option
    return payload


def serialize_session(session: QuizSession, reveal_answers: bool = True) -> dict[str, Any]:
    """API view of a live session."""
    question = current_question(session)
    current_answer = session.answers.get(question.key) if question else None
    summary = summarize(session)
    return {
        "category": session.key.category,
        "subcategory": session.key.subcategory,
        "examId": session.key.exam_id,
        "mode": session.key.mode,
        "cursor": session.cursor,
        "total": len(session.working_set),
        "answered": summary.answered,
        "score": score(session),
        "finished": session.finished,
        "bookmarked": bool(question and question.key in session.bookmarks),
        "visited": list(session.visited),
        "timeLeft": session.time_left,
        "question": (
            serialize_question(question, reveal=reveal_answers and current_answer is not None)
            if question
            else None
        ),
        "answer": (
            {
                "selectedOption": current_answer.selected_option,
                "correct": current_answer.correct,
            }
            if current_answer
            else None
        ),
        "startedAt": format_timestamp(session.started_at),
        "lastUpdatedAt": format_timestamp(session.last_updated_at),
    }


def serialize_summary(summary: ExamSummary) -> dict[str, Any]:
    return {
        "correct": summary.correct,
        "answered": summary.answered,
        "total": summary.total,
        "score": summary.score,
    }
