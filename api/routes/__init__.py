"""API route modules."""
from api.routes import exams, history, sessions, training

__all__ = ["exams", "history", "sessions", "training"]
