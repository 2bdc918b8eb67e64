"""Centralized logging setup for the certification OCR pipeline.

Configures one stream handler on the root logger and hands out named
loggers; page-scoped messages carry the file name and page number.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a standard format.

    Args:
        level: Logging level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger instance.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(name)


class PageLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with ``[file p.N]``."""

    def process(self, msg, kwargs):
        return f"[{self.extra['file']} p.{self.extra['page']}] {msg}", kwargs


def page_logger(logger: logging.Logger, file_name: str, page: int) -> PageLoggerAdapter:
    """Wrap a logger so messages identify the page being processed."""
    return PageLoggerAdapter(logger, {"file": file_name, "page": page})
