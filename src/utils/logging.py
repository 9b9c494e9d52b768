"""
Logging configuration utilities for the Prismatik API client.
"""

import logging
import sys
from typing import Optional, TextIO


PACKAGE_LOGGERS = ['src.prismatik', 'src.tui']


def setup_logger(
    name: str,
    level: int = logging.INFO,
    format_string: Optional[str] = None,
    include_timestamp: bool = True,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Set up a logger with consistent formatting.

    Args:
        name: Logger name
        level: Logging level
        format_string: Custom format string
        include_timestamp: Whether to include timestamp in logs
        stream: Output stream, stdout by default

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding multiple handlers
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setLevel(level)

    if format_string is None:
        if include_timestamp:
            format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        else:
            format_string = '%(name)s - %(levelname)s - %(message)s'

    handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(handler)

    return logger


class EndpointLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with the server endpoint it concerns."""

    def process(self, msg, kwargs):
        return f"[{self.extra['endpoint']}] {msg}", kwargs


def endpoint_logger(logger: logging.Logger, host: str, port: int) -> EndpointLoggerAdapter:
    return EndpointLoggerAdapter(logger, {"endpoint": f"{host}:{port}"})


def set_global_log_level(level: int) -> None:
    """
    Set the global logging level for all loggers.

    Args:
        level: Logging level (e.g., logging.DEBUG, logging.INFO)
    """
    logging.getLogger().setLevel(level)

    for logger_name in PACKAGE_LOGGERS:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)

    # Child loggers configured through setup_logger carry their own level.
    for logger_name, logger in logging.root.manager.loggerDict.items():
        if isinstance(logger, logging.Logger) and logger_name.startswith(tuple(PACKAGE_LOGGERS)):
            logger.setLevel(level)
            for handler in logger.handlers:
                handler.setLevel(level)


def configure_debug_logging() -> None:
    """Configure debug-level logging for development, including every wire line."""
    set_global_log_level(logging.DEBUG)

    debug_format = '%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s'

    root_logger = logging.getLogger()
    if root_logger.handlers:
        for handler in root_logger.handlers:
            handler.setFormatter(logging.Formatter(debug_format))


def silence_external_loggers() -> None:
    """Silence noisy external library loggers."""
    for logger_name in ('rich', 'markdown_it'):
        logging.getLogger(logger_name).setLevel(logging.WARNING)
