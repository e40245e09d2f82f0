"""Process-wide logging: one stdout handler, optional file handler, request ids on every line."""

import logging
import os
import sys
from contextvars import ContextVar
from logging.handlers import WatchedFileHandler
from typing import Optional


# Set per request by RequestLoggingMiddleware, read by utils.logging_helpers
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOG_FORMAT = "[%(asctime)s.%(msecs)03d] [%(levelname)-5s] [%(name)-20s] [%(request_id)-8s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

QUIET_LOGGERS = {
    "urllib3": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "passlib": logging.ERROR,
    "redis": logging.WARNING,
}

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get() or "-"
        return True


def _has_handler(logger: logging.Logger, kind: type, path: Optional[str] = None) -> bool:
    for existing in logger.handlers:
        if not isinstance(existing, kind):
            continue
        if path is None or getattr(existing, "baseFilename", None) == path:
            return True
    return False


def _install(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    handler.addFilter(RequestIdFilter())
    logger.addHandler(handler)


def _install_file_handler(root: logging.Logger, level: int) -> None:
    path = os.getenv("APP_LOG_PATH", "").strip()
    if not path:
        return
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        if not _has_handler(root, WatchedFileHandler, path):
            _install(root, WatchedFileHandler(path), level)
    except OSError as exc:
        root.warning("Could not open APP_LOG_PATH %s: %s", path, exc)


def configure_logging(*, environment: str, log_level: str) -> int:
    """Configure the root logger once per process and return the numeric level."""
    level = getattr(logging, (log_level or "INFO").upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    if not _has_handler(root, logging.StreamHandler):
        _install(root, logging.StreamHandler(sys.stdout), level)
    _install_file_handler(root, level)

    if environment == "production":
        logging.getLogger("db.slow_query").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    # uvicorn logs through our handlers; access lines are replaced by the request middleware
    for name in UVICORN_LOGGERS:
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True
        uv_logger.setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return level
