"""Structured crawl events and the default logging sink."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from webcrawler.models import utc_now

logger = logging.getLogger(__name__)


class CrawlEventType(str, Enum):
    JOB_START = "job_start"
    PAGE_SUCCEEDED = "page_succeeded"
    PAGE_BLOCKED = "page_blocked"
    PAGE_FAILED = "page_failed"
    PAGE_RETRY = "page_retry"
    AUTH_FAILED = "auth_failed"
    JOB_COMPLETE = "job_complete"


@dataclass(frozen=True)
class CrawlEvent:
    """One thing that happened during a crawl."""

    type: CrawlEventType
    url: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "url": self.url,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


EventSink = Callable[[CrawlEvent], None]

_LEVELS = {
    CrawlEventType.PAGE_BLOCKED: logging.WARNING,
    CrawlEventType.PAGE_RETRY: logging.WARNING,
    CrawlEventType.PAGE_FAILED: logging.ERROR,
    CrawlEventType.AUTH_FAILED: logging.ERROR,
}


def log_event(event: CrawlEvent) -> None:
    """Write an event as a single log line."""
    level = _LEVELS.get(event.type, logging.INFO)
    details = ", ".join(f"{k}={v}" for k, v in event.details.items())
    target = f" {event.url}" if event.url else ""
    logger.log(level, f"[{event.type.value}]{target}" + (f" ({details})" if details else ""))
