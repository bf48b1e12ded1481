import random
from collections import Counter
from datetime import datetime, timedelta, timezone

import pytest

from corpus import load_corpus
from exceptions import AuthRequiredError, NotFoundError
from models import ExamKey, TrainingGate
from working_set import RANDOM_EXAM_SIZE, build_working_set, fisher_yates


def test_literal_returns_authored_questions_in_order(corpus) -> None:
    working_set = build_working_set(corpus, ExamKey("theory", "car", "3"))
    assert working_set == corpus["theory"]["car"]["3"]
    for built, authored in zip(working_set, corpus["theory"]["car"]["3"]):
        assert built is authored


def test_literal_unknown_exam(corpus) -> None:
    with pytest.raises(NotFoundError):
        build_working_set(corpus, ExamKey("theory", "car", "99"))


def test_unknown_category(corpus) -> None:
    with pytest.raises(NotFoundError):
        build_working_set(corpus, ExamKey("theory", "bike", "1"))


def test_comprehensive_concatenates_in_numeric_exam_order(corpus) -> None:
    working_set = build_working_set(corpus, ExamKey("theory", "car", "comprehensive"))
    assert [q.prompt for q in working_set] == [
        "Q1.1",
        "Q1.2",
        "Q2.1",
        "Q3.1",
        "Q3.2",
        "Q3.3",
        "Q10.1 [[stop]] sign",
    ]
    assert [(q.exam, q.position) for q in working_set][3] == ("3", 0)


def test_random_cardinality_and_uniqueness(corpus) -> None:
    key = ExamKey("theory", "car", "random")
    pool = build_working_set(corpus, ExamKey("theory", "car", "comprehensive"))

    small = build_working_set(corpus, key, rng=random.Random(1), random_size=4)
    assert len(small) == 4
    assert len({q.key for q in small}) == 4

    full = build_working_set(corpus, key, rng=random.Random(2))
    assert len(full) == len(pool)
    assert {q.key for q in full} == {q.key for q in pool}


def _large_corpus(exams: int = 4, per_exam: int = 10):
    payload = {
        str(exam): [
            {
                "id": str(number),
                "prompt": f"Q{exam}.{number}",
                "optionA": "a",
                "optionB": "b",
                "correctOption": 1,
            }
            for number in range(1, per_exam + 1)
        ]
        for exam in range(1, exams + 1)
    }
    return load_corpus({"theory": {"car": payload}})


def test_random_default_draws_thirty_distinct_questions() -> None:
    corpus = _large_corpus()
    key = ExamKey("theory", "car", "random")
    working_set = build_working_set(corpus, key, rng=random.Random(7))
    assert RANDOM_EXAM_SIZE == 30
    assert len(working_set) == 30
    assert len({q.key for q in working_set}) == 30
    pool = {q.key for q in build_working_set(corpus, ExamKey("theory", "car", "comprehensive"))}
    assert len(pool) == 40
    assert {q.key for q in working_set} <= pool


def test_random_selection_is_unbiased_over_questions_and_positions() -> None:
    corpus = _large_corpus()
    key = ExamKey("theory", "car", "random")
    rng = random.Random(2024)
    trials = 4000
    included: Counter = Counter()
    # positions of the first authored question, folded into thirds
    thirds: Counter = Counter()
    for _ in range(trials):
        working_set = build_working_set(corpus, key, rng=rng)
        for index, question in enumerate(working_set):
            included[question.key] += 1
            if question.key == "1:1":
                thirds[index // 10] += 1

    assert len(included) == 40
    expected = trials * 30 / 40
    for count in included.values():
        assert abs(count - expected) < 150

    assert sorted(thirds) == [0, 1, 2]
    expected_third = included["1:1"] / 3
    for count in thirds.values():
        assert abs(count - expected_third) < 150


def test_fisher_yates_is_uniform() -> None:
    rng = random.Random(1234)
    counts: Counter = Counter()
    trials = 12000
    for _ in range(trials):
        items = [0, 1, 2]
        fisher_yates(items, rng)
        counts[tuple(items)] += 1

    assert len(counts) == 6
    expected = trials / 6
    for permutation_count in counts.values():
        assert abs(permutation_count - expected) < expected * 0.1


def test_saved_and_wrong_resolve_history(corpus) -> None:
    saved = build_working_set(
        corpus,
        ExamKey("theory", "car", "saved"),
        history={"3": [2, 0], "1": [1], "99": [0], "2": [5]},
    )
    assert [q.prompt for q in saved] == ["Q3.3", "Q3.1", "Q1.2"]

    wrong = build_working_set(
        corpus,
        ExamKey("theory", "car", "wrong"),
        history={"10": {"0": 3}},
    )
    assert [q.key for q in wrong] == ["10:1"]


def test_saved_without_history_is_empty(corpus) -> None:
    assert build_working_set(corpus, ExamKey("theory", "car", "saved")) == []


def test_training_requires_open_gate(corpus) -> None:
    key = ExamKey("training", "car", "1")
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    with pytest.raises(AuthRequiredError):
        build_working_set(corpus, key, now=now)
    with pytest.raises(AuthRequiredError):
        build_working_set(
            corpus,
            key,
            gate=TrainingGate(token_present=True, expires_at=now),
            now=now,
        )

    gate = TrainingGate(token_present=True, expires_at=now + timedelta(hours=1))
    working_set = build_working_set(corpus, key, gate=gate, now=now)
    assert [q.prompt for q in working_set] == ["T1.1"]
