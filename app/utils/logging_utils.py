"""
Logging utilities for the media knowledge API.

This module provides centralized logging configuration for the FastAPI
application. It ensures consistent log formatting with request ID tracing
across every step of a media request, from metadata lookup to persistence.
"""
import logging
import uuid
from typing import Optional, Union


APP_LOGGER_NAME = "media_api"


class _RequestIdDefaultFilter(logging.Filter):
    """Fill in request_id for records logged outside a request adapter."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


def setup_logger(
    log_level: Union[int, str] = logging.INFO,
    logger_name: str = APP_LOGGER_NAME
) -> logging.Logger:
    """
    Configure the application logger.

    Args:
        log_level: Logging level constant or name. Defaults to logging.INFO.
        logger_name: Name for the logger instance. Defaults to "media_api".

    Returns:
        Configured Logger instance ready for use with get_request_logger().

    Example:
        >>> logger = setup_logger(log_level="DEBUG")
        >>> request_logger = get_request_logger("a1b2c3d4")
        >>> request_logger.info("Processing started")
        2026-10-19 10:30:45 | INFO | [a1b2c3d4] Processing started
    """
    log_format = logging.Formatter(
        '%(asctime)s | %(levelname)s | [%(request_id)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logger = logging.getLogger(logger_name)
    if isinstance(log_level, str):
        log_level = logging.getLevelName(log_level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO
    logger.setLevel(log_level)

    # Prevent duplicate handlers if logger already configured
    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(log_format)
        console_handler.addFilter(_RequestIdDefaultFilter())
        logger.addHandler(console_handler)

    return logger


def new_request_id() -> str:
    """Short random identifier used to correlate log lines of one request."""
    return uuid.uuid4().hex[:8]


def get_request_logger(
    request_id: Optional[str] = None,
    base_logger: Optional[logging.Logger] = None
) -> logging.LoggerAdapter:
    """
    Create a logger adapter with the request ID for tracing.

    The LoggerAdapter injects the request_id into all log messages, enabling
    end-to-end tracing of a single request through the processing pipeline.

    Args:
        request_id: Identifier for the request. A new one is generated if None.
        base_logger: Optional base logger to wrap. If None, uses the
                    application logger.

    Returns:
        LoggerAdapter configured to inject request_id into all log messages.
    """
    if base_logger is None:
        base_logger = logging.getLogger(APP_LOGGER_NAME)

    return logging.LoggerAdapter(base_logger, {"request_id": request_id or new_request_id()})
