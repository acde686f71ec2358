"""Frontier and visited-set bookkeeping for one crawl session."""

import logging
import threading
from collections import deque
from typing import Deque, Dict, List, Optional, Set

from webcrawler.exceptions import InvalidUrl
from webcrawler.models import FrontierEntry
from webcrawler.url_utils import host_of, is_crawlable, normalize_url

logger = logging.getLogger(__name__)


class Frontier:
    """Owns which URLs are pending, visited, or rejected.

    Traversal is breadth-first: pending entries are kept per depth and
    `next_entry(depth)` only hands out entries of the requested level.

    A URL is either pending or visited, never both, and enters the
    visited set at most once. All state changes happen under a single
    lock, so admission (check + insert) and hand-out (pending -> visited)
    are atomic with respect to concurrent workers.
    """

    def __init__(self, max_depth: int, max_pages: int, allowed_host: Optional[str] = None):
        """
        Args:
            max_depth: Deepest level that may be admitted (seed is 0)
            max_pages: Cap on visited + pending URLs
            allowed_host: If set, only URLs on this host are admitted
        """
        self.max_depth = max_depth
        self.max_pages = max_pages
        self.allowed_host = allowed_host

        self._lock = threading.Lock()
        self._pending: Dict[int, Deque[FrontierEntry]] = {}
        self._pending_urls: Set[str] = set()
        self._visited: Set[str] = set()
        self._rejected: Set[str] = set()

    def admit(self, candidate_url: str, depth: int, parent_url: Optional[str] = None) -> bool:
        """Admit a URL for traversal at `depth`.

        Admitted iff it is crawlable, not visited, not pending,
        depth <= max_depth and visited + pending < max_pages.

        Returns:
            True if the URL was added to the frontier
        """
        try:
            url = normalize_url(candidate_url)
        except InvalidUrl as e:
            logger.debug(f"Not admitting {candidate_url!r}: {e}")
            return False

        if not is_crawlable(url):
            return False
        if self.allowed_host is not None and host_of(url) != self.allowed_host:
            return False
        if depth > self.max_depth:
            return False

        with self._lock:
            if url in self._visited or url in self._pending_urls:
                return False
            if len(self._visited) + len(self._pending_urls) >= self.max_pages:
                return False

            self._pending.setdefault(depth, deque()).append(
                FrontierEntry(url=url, depth=depth, parent_url=parent_url)
            )
            self._pending_urls.add(url)
            return True

    def next_entry(self, depth: int) -> Optional[FrontierEntry]:
        """Pop the next pending entry at `depth` and mark it visited.

        Returns:
            The entry, or None when that level is exhausted
        """
        with self._lock:
            level = self._pending.get(depth)
            if not level:
                return None
            entry = level.popleft()
            self._pending_urls.discard(entry.url)
            self._visited.add(entry.url)
            return entry

    def reject(self, url: str) -> None:
        """Record a visited URL that was not fetched (e.g. robots denial)."""
        with self._lock:
            self._rejected.add(url)

    def lowest_pending_depth(self) -> Optional[int]:
        with self._lock:
            levels = [depth for depth, entries in self._pending.items() if entries]
            return min(levels) if levels else None

    def pending_at(self, depth: int) -> List[FrontierEntry]:
        with self._lock:
            return list(self._pending.get(depth, ()))

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return bool(self._pending_urls)

    @property
    def visited(self) -> frozenset:
        with self._lock:
            return frozenset(self._visited)

    @property
    def rejected(self) -> frozenset:
        with self._lock:
            return frozenset(self._rejected)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending_urls)

    @property
    def admitted_count(self) -> int:
        """Visited + pending."""
        with self._lock:
            return len(self._visited) + len(self._pending_urls)

    def is_full(self) -> bool:
        with self._lock:
            return len(self._visited) + len(self._pending_urls) >= self.max_pages
