"""Crawl session: breadth-first traversal with concurrent fetch workers."""

import asyncio
import logging
from typing import Iterable, List, Optional, Set

import httpx

from webcrawler.auth import AuthResolver
from webcrawler.config import CrawlConfig
from webcrawler.constants import LOGIN_MAX_REDIRECTS
from webcrawler.events import CrawlEvent, CrawlEventType, EventSink, log_event
from webcrawler.exceptions import AuthError, FetchError, FetchErrorKind, InvalidUrl
from webcrawler.extractor import extract
from webcrawler.fetchers import FetchStrategy, create_strategy
from webcrawler.frontier import Frontier
from webcrawler.http_client import build_client
from webcrawler.models import AuthContext, CrawlResult, Document, FailedUrl, FrontierEntry, utc_now
from webcrawler.retry import with_retry
from webcrawler.robots import RobotsGate
from webcrawler.throttle import RequestThrottle
from webcrawler.url_utils import host_of, is_crawlable, normalize_url

logger = logging.getLogger(__name__)


class CrawlSession:
    """Runs one crawl from a seed URL.

    Per URL the pipeline is: robots check -> auth context -> throttled
    fetch with retry -> extract -> admit children at depth + 1. Levels
    are processed in order: every pending URL at depth d is handed to a
    worker before any URL at depth d + 1.

    Auth headers go only to the seed and login hosts unless
    config.send_auth_off_site is set.

    The session owns its Frontier, robots cache, auth context and
    results; nothing is shared between sessions. A session runs once.

        session = CrawlSession(config)
        result = await session.run("https://example.com/")
    """

    def __init__(
        self,
        config: CrawlConfig,
        strategy: Optional[FetchStrategy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        event_sinks: Optional[Iterable[EventSink]] = None,
    ):
        """Initialize the session.

        Args:
            config: Immutable crawl configuration
            strategy: Fetch strategy (built from config.fetch_strategy if None)
            transport: httpx transport for robots.txt, login and direct HTTP
                fetches (tests pass httpx.MockTransport)
            event_sinks: Callables receiving every CrawlEvent (default: log_event)
        """
        self.config = config
        self._transport = transport
        self.strategy = strategy or create_strategy(config, transport=transport)
        self._sinks: List[EventSink] = list(event_sinks) if event_sinks is not None else [log_event]

        self.throttle = RequestThrottle(config.delay_ms)
        self.frontier: Optional[Frontier] = None
        self.result: Optional[CrawlResult] = None
        self.robots: Optional[RobotsGate] = None
        self.auth: Optional[AuthResolver] = None

        self._auth_hosts: Set[str] = set()
        self._started = False
        self._cancelled = False
        self._workers: Set[asyncio.Task] = set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop the session: in-flight fetches are aborted, no new work starts.

        Pages collected so far stay on `result`.
        """
        if not self._cancelled:
            logger.warning("Crawl cancellation requested")
        self._cancelled = True
        for task in list(self._workers):
            task.cancel()

    async def run(self, seed_url: str) -> CrawlResult:
        """Crawl from `seed_url` until the frontier is empty or full.

        Returns:
            CrawlResult with pages, failures, blocked URLs and events

        Raises:
            InvalidUrl: If the seed URL is malformed or not http(s)
            AuthError: If authentication cannot be resolved; nothing is
                fetched in that case
        """
        if self._started:
            raise RuntimeError("A CrawlSession can only run once")
        self._started = True

        seed = normalize_url(seed_url)
        if not is_crawlable(seed):
            raise InvalidUrl(seed_url, "only http and https URLs can be crawled")

        config = self.config
        self.frontier = Frontier(
            max_depth=config.max_depth,
            max_pages=config.max_pages,
            allowed_host=host_of(seed) if config.stay_on_domain else None,
        )
        self.result = CrawlResult(seed_url=seed)
        self._auth_hosts = {host_of(seed)}
        if config.auth.login_url:
            self._auth_hosts.add(host_of(config.auth.login_url))

        self._emit(
            CrawlEventType.JOB_START,
            seed,
            strategy=self.strategy.name,
            max_depth=config.max_depth,
            max_pages=config.max_pages,
            concurrency=config.concurrency,
        )

        try:
            async with build_client(
                config.user_agent,
                timeout=config.timeout_seconds,
                max_redirects=LOGIN_MAX_REDIRECTS,
                proxy=config.proxy,
                transport=self._transport,
            ) as client:
                self.robots = RobotsGate(client, config.robots_agent or config.user_agent)
                self.auth = AuthResolver(config, client)

                # Resolved before the first fetch; failure aborts the session
                try:
                    auth_context = await self.auth.resolve()
                except AuthError as e:
                    self._emit(CrawlEventType.AUTH_FAILED, seed, reason=e.reason.value, error=e.message)
                    raise

                self.frontier.admit(seed, 0)

                async with self.strategy:
                    await self._traverse(auth_context)
        except asyncio.CancelledError:
            self._cancelled = True
            raise
        finally:
            self._finish()

        return self.result

    async def _traverse(self, auth_context: AuthContext) -> None:
        while not self._cancelled:
            depth = self.frontier.lowest_pending_depth()
            if depth is None:
                break

            worker_count = min(self.config.concurrency, len(self.frontier.pending_at(depth)))
            logger.info(f"--- Depth {depth}: {self.frontier.pending_count} pending, {worker_count} worker(s) ---")

            workers = [
                asyncio.create_task(self._worker(depth, auth_context))
                for _ in range(worker_count)
            ]
            self._workers.update(workers)
            try:
                # Cancelled workers come back as CancelledError results
                await asyncio.gather(*workers, return_exceptions=True)
            finally:
                self._workers.difference_update(workers)

    async def _worker(self, depth: int, auth_context: AuthContext) -> None:
        while not self._cancelled:
            entry = self.frontier.next_entry(depth)
            if entry is None:
                return
            await self._process(entry, auth_context)

    async def _process(self, entry: FrontierEntry, auth_context: AuthContext) -> None:
        url = entry.url
        logger.info(f"[D{entry.depth}] Crawling ({len(self.result.pages) + 1}/{self.config.max_pages}): {url}")

        try:
            if self.config.respect_robots and not await self.robots.is_allowed(url):
                self.frontier.reject(url)
                self.result.blocked.append(url)
                self._emit(CrawlEventType.PAGE_BLOCKED, url, depth=entry.depth)
                return

            document = await with_retry(
                lambda: self._fetch_once(url, auth_context),
                max_retries=self.config.max_retries,
                base_delay_ms=self.config.delay_ms,
                on_retry=lambda attempt, error, delay: self._emit(
                    CrawlEventType.PAGE_RETRY,
                    url,
                    attempt=attempt,
                    kind=error.kind.value,
                    delay_s=round(delay, 3),
                ),
            )
        except FetchError as e:
            self._record_failure(entry, e.kind, e.message, e.status_code, e.attempts)
            return
        except asyncio.CancelledError:
            logger.warning(f"Fetch cancelled: {url}")
            raise
        except Exception as e:
            logger.exception(f"Unexpected error crawling {url}")
            self._record_failure(entry, FetchErrorKind.OTHER, f"{type(e).__name__}: {e}")
            return

        try:
            page = extract(
                document,
                url,
                depth=entry.depth,
                keep_raw_html=self.config.keep_raw_html,
            )
        except Exception as e:
            logger.exception(f"Extraction failed for {url}")
            self._record_failure(entry, FetchErrorKind.OTHER, f"Extraction failed: {e}")
            return

        self.result.pages.append(page)

        admitted = [
            link for link in page.unique_links()
            if self.frontier.admit(link, entry.depth + 1, parent_url=url)
        ]

        self._emit(
            CrawlEventType.PAGE_SUCCEEDED,
            url,
            depth=entry.depth,
            status=page.status_code,
            title=page.title,
            links=len(page.links),
            images=len(page.images),
            admitted=len(admitted),
        )

    async def _fetch_once(self, url: str, auth_context: AuthContext) -> Document:
        host = host_of(url)
        await self.throttle.wait(host)
        if host not in self._auth_hosts and not self.config.send_auth_off_site:
            auth_context = AuthContext()
        return await self.strategy.fetch(url, auth_context)

    def _record_failure(
        self,
        entry: FrontierEntry,
        kind: FetchErrorKind,
        message: str,
        status_code: Optional[int] = None,
        attempts: int = 1,
    ) -> None:
        self.result.failed.append(FailedUrl(
            url=entry.url,
            depth=entry.depth,
            kind=kind,
            message=message,
            status_code=status_code,
            attempts=attempts,
        ))
        self._emit(
            CrawlEventType.PAGE_FAILED,
            entry.url,
            depth=entry.depth,
            kind=kind.value,
            attempts=attempts,
            error=message,
        )

    def _finish(self) -> None:
        result = self.result
        result.visited = self.frontier.visited
        result.cancelled = self._cancelled
        result.finished_at = utc_now()

        stats = result.stats()
        self._emit(
            CrawlEventType.JOB_COMPLETE,
            result.seed_url,
            cancelled=result.cancelled,
            **stats.to_dict(),
        )

    def _emit(self, event_type: CrawlEventType, url: Optional[str] = None, **details) -> None:
        event = CrawlEvent(type=event_type, url=url, details=details)
        if self.result is not None:
            self.result.events.append(event)
        for sink in self._sinks:
            sink(event)


async def crawl(seed_url: str, config: Optional[CrawlConfig] = None, **kwargs) -> CrawlResult:
    """Run a single crawl session.

    Args:
        seed_url: Starting URL
        config: Crawl configuration (defaults to CrawlConfig())
        **kwargs: Passed to CrawlSession (strategy, transport, event_sinks)

    Returns:
        CrawlResult for the session
    """
    session = CrawlSession(config or CrawlConfig(), **kwargs)
    return await session.run(seed_url)
