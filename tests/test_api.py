from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from api.models.db.progress import ExamProgress
from api.services import history_service
from api.services.training_service import create_code

HEADERS = {"X-Client-Id": "client-1"}
BASE = "/api/sessions/theory/car"


def test_list_exams(client) -> None:
    response = client.get("/api/exams")
    assert response.status_code == 200
    assert response.json()["theory"]["car"][3] == {"examId": "10", "questionCount": 1}


def test_get_exam_hides_answers(client) -> None:
    response = client.get("/api/exams/theory/car/3")
    assert response.status_code == 200
    payload = response.json()
    assert payload["questionCount"] == 3
    assert "correctOption" not in payload["questions"][0]

    revealed = client.get("/api/exams/theory/car/3", params={"reveal": "true"}).json()
    assert revealed["questions"][0]["correctOption"] == 2


def test_unknown_exam_is_404(client) -> None:
    response = client.post(f"{BASE}/42/start", headers=HEADERS)
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_missing_client_id(client) -> None:
    response = client.post(f"{BASE}/3/start")
    assert response.status_code == 400


def test_session_flow_resumes_after_restart(client) -> None:
    started = client.post(f"{BASE}/3/start", headers=HEADERS).json()
    assert started["resumed"] is False
    assert started["saved"] is True
    assert started["session"]["total"] == 3

    answered = client.post(f"{BASE}/3/answer", headers=HEADERS, json={"option": 2}).json()
    assert answered["session"]["answer"] == {"selectedOption": 2, "correct": True}
    assert answered["session"]["cursor"] == 0

    moved = client.post(f"{BASE}/3/next", headers=HEADERS).json()
    assert moved["session"]["cursor"] == 1

    from api.services.session_service import registry

    registry.clear()
    resumed = client.post(f"{BASE}/3/start", headers=HEADERS).json()
    assert resumed["resumed"] is True
    assert resumed["session"]["cursor"] == 1
    assert resumed["session"]["answered"] == 1

    other_client = client.post(
        f"{BASE}/3/start", headers={"X-Client-Id": "client-2"}
    ).json()
    assert other_client["resumed"] is False


def test_navigation_past_ends_is_ignored(client) -> None:
    client.post(f"{BASE}/1/start", headers=HEADERS)
    response = client.post(f"{BASE}/1/previous", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["session"]["cursor"] == 0

    jumped = client.post(f"{BASE}/1/jump", headers=HEADERS, json={"index": 2}).json()
    assert jumped["session"]["question"] is None
    assert client.post(f"{BASE}/1/next", headers=HEADERS).json()["session"]["cursor"] == 2

    response = client.post(f"{BASE}/1/jump", headers=HEADERS, json={"index": 5})
    assert response.status_code == 409
    assert response.json()["code"] == "BOUNDARY"


def test_invalid_option_is_rejected(client) -> None:
    client.post(f"{BASE}/1/start", headers=HEADERS)
    response = client.post(f"{BASE}/1/answer", headers=HEADERS, json={"option": 4})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_SELECTION"


def test_session_must_be_started(client) -> None:
    response = client.post(f"{BASE}/1/answer", headers=HEADERS, json={"option": 1})
    assert response.status_code == 404


def test_finish_records_history_and_saved_mode(client) -> None:
    client.post(f"{BASE}/3/start", headers=HEADERS)
    client.post(f"{BASE}/3/answer", headers=HEADERS, json={"option": 1})
    client.post(f"{BASE}/3/bookmark", headers=HEADERS)
    client.post(f"{BASE}/3/next", headers=HEADERS)
    client.post(f"{BASE}/3/answer", headers=HEADERS, json={"option": 1})

    finished = client.post(f"{BASE}/3/finish", headers=HEADERS).json()
    assert finished["summary"] == {"correct": 1, "answered": 2, "total": 3, "score": pytest.approx(1 / 3)}
    assert finished["session"]["finished"] is True

    history = client.get("/api/history/theory/car", headers=HEADERS).json()
    assert history["bookmarkCount"] == 1
    assert history["wrongCount"] == 1
    assert history["lastScores"]["3"]["grade"] == 1

    saved = client.post(f"{BASE}/saved/start", headers=HEADERS).json()
    assert saved["session"]["total"] == 1
    assert saved["session"]["question"]["key"] == "3:1"

    wrong = client.post(f"{BASE}/wrong/start", headers=HEADERS).json()
    assert wrong["session"]["total"] == 1
    client.post(f"{BASE}/wrong/answer", headers=HEADERS, json={"option": 2})
    client.post(f"{BASE}/wrong/finish", headers=HEADERS)

    history = client.get("/api/history/theory/car", headers=HEADERS).json()
    assert history["wrongCount"] == 0


def test_random_finish_keeps_no_last_score(client) -> None:
    client.post(f"{BASE}/random/start", headers=HEADERS)
    client.post(f"{BASE}/random/finish", headers=HEADERS)
    history = client.get("/api/history/theory/car", headers=HEADERS).json()
    assert "random" not in history["lastScores"]


def test_empty_filter_returns_warning(client) -> None:
    response = client.post(f"{BASE}/wrong/start", headers=HEADERS)
    assert response.status_code == 200
    payload = response.json()
    assert payload["session"]["total"] == 0
    assert payload["warning"] == "No questions available for this filter"


def test_rebuild_history(client) -> None:
    client.post(f"{BASE}/1/start", headers=HEADERS)
    client.post(f"{BASE}/1/answer", headers=HEADERS, json={"option": 3})
    client.post(f"{BASE}/1/finish", headers=HEADERS)

    rebuilt = client.post("/api/history/theory/car/rebuild", headers=HEADERS).json()
    assert rebuilt["wrongAnswers"] == {"1": {"0": 1}}


def test_training_requires_token(client, db_factory) -> None:
    response = client.post("/api/sessions/training/car/1/start", headers=HEADERS)
    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_REQUIRED"

    db = db_factory()
    try:
        create_code(db, "CODE1", description="Spring class", max_uses=1)
        create_code(
            db,
            "OLD",
            expires_at=datetime.now(timezone.utc) - timedelta(days=1),
        )
    finally:
        db.close()

    assert client.post("/api/training/redeem", json={"code": "nope"}).status_code == 401
    assert client.post("/api/training/redeem", json={"code": "OLD"}).status_code == 401

    granted = client.post("/api/training/redeem", json={"code": "CODE1"})
    assert granted.status_code == 200
    payload = granted.json()
    assert payload["usesRemaining"] == 0
    assert payload["description"] == "Spring class"

    exhausted = client.post("/api/training/redeem", json={"code": "CODE1"})
    assert exhausted.status_code == 401

    auth = {**HEADERS, "Authorization": f"Bearer {payload['token']}"}
    started = client.post("/api/sessions/training/car/1/start", headers=auth)
    assert started.status_code == 200
    assert client.get("/api/exams/training/car/1", headers=auth).status_code == 200


def test_save_failure_continues_in_memory(client, monkeypatch: pytest.MonkeyPatch) -> None:
    from api.services.progress_service import SqlProgressStore

    def broken_save(self, key, snapshot):
        from exceptions import PersistenceUnavailable

        raise PersistenceUnavailable("database is locked")

    monkeypatch.setattr(SqlProgressStore, "save", broken_save)

    first = client.post(f"{BASE}/3/start", headers=HEADERS)
    assert first.status_code == 200
    answered = client.post(f"{BASE}/3/answer", headers=HEADERS, json={"option": 2}).json()
    assert answered["saved"] is False
    assert answered["warning"] == "Could not save progress, continuing without saving"
    assert answered["session"]["answer"]["correct"] is True


def test_snapshot_is_stored_per_client(client, db_factory) -> None:
    client.post(f"{BASE}/3/start", headers=HEADERS)
    client.post(f"{BASE}/3/answer", headers=HEADERS, json={"option": 2})

    db = db_factory()
    try:
        rows = db.query(ExamProgress).all()
    finally:
        db.close()
    assert len(rows) == 1
    assert rows[0].client_id == "client-1"
    assert rows[0].snapshot["answers"] == {"3:1": {"selectedOption": 2, "correct": True}}


def test_bookmark_history_failure_is_reported(client, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_bookmark(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(history_service, "set_bookmark", broken_bookmark)
    client.post(f"{BASE}/3/start", headers=HEADERS)
    response = client.post(f"{BASE}/3/bookmark", headers=HEADERS).json()
    assert response["saved"] is False
    assert response["session"]["bookmarked"] is True


def test_finished_session_is_closed(client) -> None:
    client.post(f"{BASE}/3/start", headers=HEADERS)
    client.post(f"{BASE}/3/answer", headers=HEADERS, json={"option": 1})

    first = client.post(f"{BASE}/3/finish", headers=HEADERS).json()
    again = client.post(f"{BASE}/3/finish", headers=HEADERS)
    assert again.status_code == 200
    assert again.json()["summary"] == first["summary"]

    history = client.get("/api/history/theory/car", headers=HEADERS).json()
    assert history["wrongAnswers"] == {"3": {"0": 1}}

    for path, body in (("answer", {"option": 2}), ("next", None), ("bookmark", None), ("time", {"timeLeft": 10})):
        response = client.post(f"{BASE}/3/{path}", headers=HEADERS, json=body)
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SELECTION"

    session = client.get(f"{BASE}/3", headers=HEADERS).json()["session"]
    assert session["answer"] == {"selectedOption": 1, "correct": False}
    assert session["bookmarked"] is False


def test_time_left_survives_resume(client) -> None:
    started = client.post(f"{BASE}/3/start", headers=HEADERS).json()
    assert started["session"]["timeLeft"] == 40 * 60
    assert started["session"]["visited"] == [0]

    reported = client.post(f"{BASE}/3/time", headers=HEADERS, json={"timeLeft": 1805})
    assert reported.status_code == 200
    assert reported.json()["session"]["timeLeft"] == 1805
    client.post(f"{BASE}/3/jump", headers=HEADERS, json={"index": 2})

    assert client.post(f"{BASE}/3/time", headers=HEADERS, json={"timeLeft": -1}).status_code == 422

    from api.services.session_service import registry

    registry.clear()
    resumed = client.post(f"{BASE}/3/start", headers=HEADERS).json()
    assert resumed["resumed"] is True
    assert resumed["session"]["timeLeft"] == 1805
    assert resumed["session"]["visited"] == [0, 2]
