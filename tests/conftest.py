import os
import tempfile
from pathlib import Path

os.environ.setdefault("DB_DIR", tempfile.mkdtemp(prefix="teoria_test_"))
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from corpus import load_corpus


def _record(prompt: str, correct: int, options: int = 3) -> dict[str, object]:
    record: dict[str, object] = {"prompt": prompt, "correctOption": correct}
    for index, field in enumerate(("optionA", "optionB", "optionC", "optionD")[:options]):
        record[field] = f"{prompt} option {index + 1}"
    return record


def sample_payload() -> dict[str, object]:
    return {
        "theory": {
            "car": {
                "1": [
                    {**_record("Q1.1", 1), "id": "1"},
                    {**_record("Q1.2", 2), "id": "2"},
                ],
                "2": [
                    {**_record("Q2.1", 3), "id": "1"},
                ],
                "3": [
                    {**_record("Q3.1", 2, options=4), "id": "1"},
                    {**_record("Q3.2", 1, options=4), "id": "2"},
                    {**_record("Q3.3", 4, options=4), "id": "3"},
                ],
                "10": [
                    {**_record("Q10.1 [[stop]] sign", 1), "id": "1"},
                ],
            },
        },
        "training": {
            "car": {
                "1": [{**_record("T1.1", 1), "id": "1"}],
            },
        },
    }


@pytest.fixture()
def corpus():
    return load_corpus(sample_payload())


@pytest.fixture()
def db_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    from api.database import init_db

    init_db(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture()
def db(db_factory):
    session = db_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(corpus, db_factory):
    from fastapi.testclient import TestClient

    from api.app import app
    from api.database import get_db, get_session_factory
    from api.services.corpus_service import get_corpus
    from api.services.session_service import registry

    def override_get_db():
        session = db_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: db_factory
    app.dependency_overrides[get_corpus] = lambda: corpus
    registry.clear()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    registry.clear()


@pytest.fixture()
def corpus_file(tmp_path: Path) -> Path:
    from api.utils import write_json_file

    path = tmp_path / "questions.json"
    write_json_file(path, sample_payload())
    return path
