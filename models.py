from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple


SYNTHETIC_MODES = ("random", "comprehensive", "saved", "wrong")
LITERAL_MODE = "literal"


@dataclass(frozen=True)
class Question:
    id: str
    prompt: str
    options: Tuple[Optional[str], ...]
    correct_option: int  # 1-based
    exam: str = ""
    position: int = 0

    @property
    def key(self) -> str:
        # ids are only unique inside one exam
        return f"{self.exam}:{self.id}"

    @property
    def option_count(self) -> int:
        return sum(1 for option in self.options if option)

    def has_option(self, number: int) -> bool:
        if not isinstance(number, int) or isinstance(number, bool):
            return False
        if number < 1 or number > len(self.options):
            return False
        return bool(self.options[number - 1])


@dataclass(frozen=True)
class ExamKey:
    category: str
    subcategory: str
    exam_id: str

    @property
    def mode(self) -> str:
        if self.exam_id in SYNTHETIC_MODES:
            return self.exam_id
        return LITERAL_MODE

    def as_tuple(self) -> Tuple[str, str, str]:
        return (self.category, self.subcategory, self.exam_id)


@dataclass
class AnswerRecord:
    selected_option: int
    correct: bool


@dataclass
class QuizSession:
    key: ExamKey
    working_set: List[Question]
    cursor: int = 0
    answers: Dict[str, AnswerRecord] = field(default_factory=dict)
    bookmarks: List[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_updated_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    visited: List[int] = field(default_factory=list)
    time_left: Optional[int] = None  # seconds
    finished: bool = False
    persistence_degraded: bool = False


@dataclass(frozen=True)
class ExamSummary:
    correct: int
    answered: int
    total: int

    @property
    def score(self) -> float:
        if self.total == 0:
            return 0.0
        return self.correct / self.total


@dataclass(frozen=True)
class TrainingGate:
    token_present: bool = False
    expires_at: Optional[datetime] = None

    def is_open(self, now: Optional[datetime] = None) -> bool:
        if not self.token_present or self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now < self.expires_at


Corpus = Dict[str, Dict[str, Dict[str, List[Question]]]]
