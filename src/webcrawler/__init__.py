"""Breadth-first web crawl engine with pluggable fetch strategies."""

__version__ = "0.1.0"

from webcrawler.session import CrawlSession, crawl
from webcrawler.frontier import Frontier
from webcrawler.extractor import extract
from webcrawler.robots import RobotsGate
from webcrawler.auth import AuthResolver
from webcrawler.retry import with_retry
from webcrawler.throttle import RequestThrottle
from webcrawler.output_manager import OutputManager
from webcrawler.report_generator import ReportGenerator
from webcrawler.config import (
    AuthConfig,
    AuthMode,
    CookiePair,
    CrawlConfig,
    FetchMethod,
    settings,
)
from webcrawler.events import CrawlEvent, CrawlEventType
from webcrawler.exceptions import (
    AuthError,
    AuthErrorReason,
    CrawlerError,
    FetchError,
    FetchErrorKind,
    InvalidUrl,
)
from webcrawler.models import (
    AuthContext,
    CrawlResult,
    CrawlStats,
    Document,
    FailedUrl,
    FrontierEntry,
    ImageRecord,
    LinkRecord,
    PageRecord,
)

# Fetch strategies
from webcrawler.fetchers import (
    FetchStrategy,
    DirectHttpStrategy,
    HeadlessBrowserStrategy,
    ExternalProcessStrategy,
    create_strategy,
)

__all__ = [
    # Core
    "CrawlSession",
    "crawl",
    "Frontier",
    "extract",
    "RobotsGate",
    "AuthResolver",
    "with_retry",
    "RequestThrottle",
    "OutputManager",
    "ReportGenerator",
    # Config
    "AuthConfig",
    "AuthMode",
    "CookiePair",
    "CrawlConfig",
    "FetchMethod",
    "settings",
    # Events and errors
    "CrawlEvent",
    "CrawlEventType",
    "AuthError",
    "AuthErrorReason",
    "CrawlerError",
    "FetchError",
    "FetchErrorKind",
    "InvalidUrl",
    # Models
    "AuthContext",
    "CrawlResult",
    "CrawlStats",
    "Document",
    "FailedUrl",
    "FrontierEntry",
    "ImageRecord",
    "LinkRecord",
    "PageRecord",
    # Fetch strategies
    "FetchStrategy",
    "DirectHttpStrategy",
    "HeadlessBrowserStrategy",
    "ExternalProcessStrategy",
    "create_strategy",
]
