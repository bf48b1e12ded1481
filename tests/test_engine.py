from datetime import datetime, timezone

import pytest

from corpus import load_corpus
from engine import (
    advance,
    current_question,
    finish,
    jump_to,
    record_time_left,
    retreat,
    score,
    start_session,
    submit_answer,
    summarize,
    toggle_bookmark,
)
from exceptions import BoundaryError, InvalidSelectionError
from engine import EXAM_TIME_LIMIT
from models import ExamKey
from working_set import literal

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def exam_three():
    corpus = load_corpus(
        {
            "theory": {
                "car": {
                    "3": [
                        {"id": "a", "prompt": "Two options", "optionA": "yes", "optionB": "no", "correctOption": 1},
                        {
                            "id": "b",
                            "prompt": "Four options",
                            "optionA": "1",
                            "optionB": "2",
                            "optionC": "3",
                            "optionD": "4",
                            "correctOption": 3,
                        },
                    ]
                }
            }
        }
    )
    key = ExamKey("theory", "car", "3")
    return start_session(key, literal(corpus, key), NOW)


def test_exam_three_scores_half(exam_three) -> None:
    assert [q.option_count for q in exam_three.working_set] == [2, 4]

    assert submit_answer(exam_three, 1).correct is True
    advance(exam_three)
    assert submit_answer(exam_three, 2).correct is False

    assert score(exam_three) == pytest.approx(0.5)
    assert exam_three.cursor == 1


def test_answer_does_not_move_cursor_and_can_be_overwritten(exam_three) -> None:
    submit_answer(exam_three, 2)
    submit_answer(exam_three, 1)
    assert exam_three.cursor == 0
    assert len(exam_three.answers) == 1
    assert exam_three.answers["3:a"].selected_option == 1
    assert exam_three.answers["3:a"].correct is True


@pytest.mark.parametrize("option", [0, 3, -1, True])
def test_answer_rejects_missing_options(exam_three, option) -> None:
    with pytest.raises(InvalidSelectionError):
        submit_answer(exam_three, option)
    assert exam_three.answers == {}


def test_navigation_bounds(exam_three) -> None:
    with pytest.raises(BoundaryError):
        retreat(exam_three)

    assert advance(exam_three) == 1
    assert advance(exam_three) == 2
    assert current_question(exam_three) is None
    with pytest.raises(BoundaryError):
        advance(exam_three)
    with pytest.raises(InvalidSelectionError):
        submit_answer(exam_three, 1)

    assert retreat(exam_three) == 1
    assert jump_to(exam_three, 0) == 0
    with pytest.raises(BoundaryError):
        jump_to(exam_three, 3)
    with pytest.raises(BoundaryError):
        jump_to(exam_three, -1)


def test_running_score_vs_summary(exam_three) -> None:
    submit_answer(exam_three, 1)
    assert score(exam_three) == 1.0

    summary = summarize(exam_three)
    assert (summary.correct, summary.answered, summary.total) == (1, 1, 2)
    assert summary.score == pytest.approx(0.5)


def test_score_without_answers_is_zero(exam_three) -> None:
    assert score(exam_three) == 0.0


def test_toggle_bookmark(exam_three) -> None:
    assert toggle_bookmark(exam_three) is True
    assert exam_three.bookmarks == ["3:a"]
    assert toggle_bookmark(exam_three) is False
    assert exam_three.bookmarks == []


def test_finish_marks_session(exam_three) -> None:
    submit_answer(exam_three, 1)
    later = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    summary = finish(exam_three, later)
    assert exam_three.finished is True
    assert exam_three.last_updated_at == later
    assert summary.total == 2


def test_finished_session_rejects_changes(exam_three) -> None:
    submit_answer(exam_three, 2)
    finish(exam_three)

    for action in (
        lambda: submit_answer(exam_three, 1),
        lambda: advance(exam_three),
        lambda: jump_to(exam_three, 1),
        lambda: toggle_bookmark(exam_three),
        lambda: record_time_left(exam_three, 60),
        lambda: finish(exam_three),
    ):
        with pytest.raises(InvalidSelectionError):
            action()
    assert exam_three.answers["3:a"].selected_option == 2
    assert exam_three.cursor == 0
    assert exam_three.bookmarks == []


def test_visited_tracks_opened_questions(exam_three) -> None:
    assert exam_three.visited == [0]
    advance(exam_three)
    retreat(exam_three)
    advance(exam_three)
    assert exam_three.visited == [0, 1]
    # the position past the last question is not a question
    advance(exam_three)
    assert exam_three.visited == [0, 1]


def test_record_time_left(exam_three) -> None:
    assert exam_three.time_left == EXAM_TIME_LIMIT
    later = datetime(2024, 5, 1, 12, 5, tzinfo=timezone.utc)
    assert record_time_left(exam_three, 2100, later) == 2100
    assert exam_three.time_left == 2100
    assert exam_three.last_updated_at == later
    for bad in (-1, True, "60", 1.5):
        with pytest.raises(InvalidSelectionError):
            record_time_left(exam_three, bad)
    assert exam_three.time_left == 2100
