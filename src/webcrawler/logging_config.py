"""Logging setup for the crawl engine and its CLI."""

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

from webcrawler.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that log every request at INFO
HTTP_STACK_LOGGERS = ("httpx", "httpcore", "asyncio", "playwright")


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    format_string: str = LOG_FORMAT,
    quiet_loggers: Iterable[str] = HTTP_STACK_LOGGERS,
) -> None:
    """Route crawler logs to stdout and, optionally, a file.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (default: CRAWLER_LOG_LEVEL)
        log_file: Extra file destination (default: CRAWLER_LOG_FILE)
        format_string: Record format for every handler
        quiet_loggers: Loggers capped at WARNING unless level is DEBUG
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)
    log_file = log_file or settings.LOG_FILE

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=numeric_level,
        format=format_string,
        handlers=handlers,
        force=True,
    )

    if numeric_level > logging.DEBUG:
        for name in quiet_loggers:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
