"""Data models for crawl traversal and extracted pages."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from webcrawler.constants import METADATA_KEYS
from webcrawler.exceptions import FetchErrorKind


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FrontierEntry:
    """A URL admitted for traversal."""

    url: str  # normalized
    depth: int
    parent_url: Optional[str] = None


@dataclass(frozen=True)
class AuthContext:
    """Headers and cookies attached to every protected request.

    When cookies are present, `headers["Cookie"]` carries them joined
    with "; "; `cookies` is the same data as a mapping.
    """

    headers: Dict[str, str] = field(default_factory=dict)
    cookies: Dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.headers and not self.cookies

    def request_headers(self) -> Dict[str, str]:
        return dict(self.headers)


@dataclass(frozen=True)
class Document:
    """Raw document returned by a fetch strategy."""

    url: str
    body: str
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def content_type(self) -> str:
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value
        return "text/html"


@dataclass(frozen=True)
class LinkRecord:
    """An anchor found on a page."""

    text: str
    absolute_url: str
    title: str = ""
    target: str = "_self"


@dataclass(frozen=True)
class ImageRecord:
    """An image element found on a page."""

    absolute_src: str
    alt: str = ""
    title: str = ""
    width: str = ""
    height: str = ""


@dataclass(frozen=True)
class PageRecord:
    """Structured result of extracting one fetched document.

    `links` and `images` are in document order. `metadata` always holds
    every key in METADATA_KEYS (missing tags map to "").
    """

    title: str
    url: str
    timestamp: datetime
    extracted_text: str
    links: Tuple[LinkRecord, ...] = ()
    images: Tuple[ImageRecord, ...] = ()
    metadata: Dict[str, str] = field(default_factory=lambda: {key: "" for key in METADATA_KEYS})
    status_code: int = 200
    content_type: str = "text/html"
    raw_html: Optional[str] = None
    depth: int = 0

    def unique_links(self) -> List[str]:
        """Absolute link URLs with duplicates removed, first occurrence kept."""
        seen = set()
        unique = []
        for link in self.links:
            if link.absolute_url not in seen:
                seen.add(link.absolute_url)
                unique.append(link.absolute_url)
        return unique

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    def summary_row(self) -> dict:
        """Flattened summary used by the CSV writer."""
        return {
            "url": self.url,
            "title": self.title,
            "timestamp": self.timestamp.isoformat(),
            "statusCode": self.status_code,
            "linkCount": len(self.links),
            "imageCount": len(self.images),
        }


@dataclass(frozen=True)
class FailedUrl:
    """A URL whose fetch failed after all retries (or outside the fetch)."""

    url: str
    depth: int
    kind: FetchErrorKind
    message: str
    status_code: Optional[int] = None
    attempts: int = 1
    failed_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "depth": self.depth,
            "kind": self.kind.value,
            "message": self.message,
            "status_code": self.status_code,
            "attempts": self.attempts,
            "failed_at": self.failed_at.isoformat(),
        }


@dataclass
class CrawlStats:
    """Summary counters for a finished session."""

    total_pages: int = 0
    total_links: int = 0
    total_images: int = 0
    visited_count: int = 0
    failed_count: int = 0
    blocked_count: int = 0
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CrawlResult:
    """Everything a crawl session produced."""

    seed_url: str
    pages: List[PageRecord] = field(default_factory=list)
    failed: List[FailedUrl] = field(default_factory=list)
    blocked: List[str] = field(default_factory=list)
    visited: frozenset = frozenset()
    events: list = field(default_factory=list)
    cancelled: bool = False
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        """Seconds from start to finish (to now while still running)."""
        finished_at = self.finished_at or utc_now()
        return (finished_at - self.started_at).total_seconds()

    def stats(self) -> CrawlStats:
        return CrawlStats(
            total_pages=len(self.pages),
            total_links=sum(len(page.links) for page in self.pages),
            total_images=sum(len(page.images) for page in self.pages),
            visited_count=len(self.visited),
            failed_count=len(self.failed),
            blocked_count=len(self.blocked),
            duration_seconds=round(self.duration_seconds, 2),
        )
