"""
Logging helpers for consistent "message | id=.. | account_id=.. | key=value" lines.
"""

import logging
from typing import Optional

from core.logging import request_id_var


def get_request_id() -> str:
    """Get the current request ID from context."""
    return request_id_var.get("")


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    account_id: Optional[int] = None,
    exc_info: bool = False,
    **kwargs,
):
    """
    Log a message with structured context.

    Args:
        logger: The logger instance
        level: Log level (logging.INFO, logging.WARNING, etc.)
        message: The log message
        account_id: Optional account id for context
        exc_info: Attach the active exception's traceback
        **kwargs: Additional context key-value pairs (None values are skipped)
    """
    context_parts = []
    request_id = get_request_id()
    if request_id:
        context_parts.append(f"id={request_id}")
    if account_id:
        context_parts.append(f"account_id={account_id}")

    for key, value in kwargs.items():
        if value is not None:
            context_parts.append(f"{key}={value}")

    context_str = " | ".join(context_parts)
    full_message = f"{message} | {context_str}" if context_str else message

    logger.log(level, full_message, exc_info=exc_info)


def log_info(logger: logging.Logger, message: str, account_id: Optional[int] = None, **kwargs):
    log_with_context(logger, logging.INFO, message, account_id, **kwargs)


def log_warning(logger: logging.Logger, message: str, account_id: Optional[int] = None, **kwargs):
    log_with_context(logger, logging.WARNING, message, account_id, **kwargs)


def log_error(
    logger: logging.Logger,
    message: str,
    account_id: Optional[int] = None,
    exc_info: bool = False,
    **kwargs,
):
    log_with_context(logger, logging.ERROR, message, account_id, exc_info=exc_info, **kwargs)
