"""Application configuration and constants."""
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Corpus
CORPUS_PATH = Path(
    os.environ.get("CORPUS_PATH", Path.cwd() / "data" / "questions.json")
)
CORPUS_SOURCE = os.environ.get("CORPUS_SOURCE", "json")  # "json" | "database"

# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'teoria.db'}"
)

# Quiz policy
RANDOM_EXAM_SIZE = _parse_int_env("RANDOM_EXAM_SIZE", 30)
PROGRESS_MAX_AGE_HOURS = _parse_int_env("PROGRESS_MAX_AGE_HOURS", 24)
EXAM_TIME_LIMIT_SECONDS = _parse_int_env("EXAM_TIME_LIMIT_SECONDS", 40 * 60)

# Training access
SECRET_KEY = os.environ.get(
    "SECRET_KEY",
    "CHANGE_ME_IN_PRODUCTION_USE_openssl_rand_hex_32"
)
ALGORITHM = "HS256"
TRAINING_TOKEN_EXPIRE_HOURS = _parse_int_env("TRAINING_TOKEN_EXPIRE_HOURS", 24)

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

