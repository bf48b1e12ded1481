"""FastAPI dependencies."""
from api.dependencies.auth import get_client_id, get_progress_store, get_training_gate

__all__ = ["get_client_id", "get_progress_store", "get_training_gate"]
