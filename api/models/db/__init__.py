"""Database models."""
from api.models.db.history import Bookmark, LastScore, WrongAnswer
from api.models.db.progress import ExamProgress
from api.models.db.question import QuestionRow
from api.models.db.training_code import TrainingCode

__all__ = [
    "Bookmark",
    "ExamProgress",
    "LastScore",
    "QuestionRow",
    "TrainingCode",
    "WrongAnswer",
]
