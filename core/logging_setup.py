"""Console logging shared by the API server and the CLI."""
from __future__ import annotations

import logging

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
# engine logs every statement at INFO
_QUIET_LOGGERS = ("sqlalchemy.engine",)


def resolve_level(level: int | str) -> int:
    """Accept ``logging.INFO`` as well as ``"info"`` from the environment."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    if isinstance(resolved, int):
        return resolved
    logging.getLogger(__name__).warning("Unknown log level %r, using INFO", level)
    return logging.INFO


def setup_console_logging(level: int | str = logging.INFO) -> int:
    """
    Call once at process start. Later calls only change the level.
    Returns the level now in effect.
    """
    resolved = resolve_level(level)
    root = logging.getLogger()
    root.setLevel(resolved)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        root.addHandler(handler)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
    return resolved
