"""URL absolutization and normalization helpers."""

from urllib.parse import SplitResult, urljoin, urlsplit, urlunsplit

from webcrawler.constants import CRAWLABLE_SCHEMES, ROBOTS_TXT_PATH
from webcrawler.exceptions import InvalidUrl

DEFAULT_PORTS = {"http": 80, "https": 443}


def _canonical_parts(url: str) -> SplitResult:
    """Split a URL and canonicalize its scheme, authority and path.

    Raises:
        InvalidUrl: If the URL cannot be parsed or lacks a scheme or host
    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as e:
        raise InvalidUrl(url, str(e)) from e

    scheme = parts.scheme.lower()
    if not scheme:
        raise InvalidUrl(url, "missing scheme")

    if scheme not in CRAWLABLE_SCHEMES:
        return parts._replace(scheme=scheme)

    hostname = parts.hostname
    if not hostname:
        raise InvalidUrl(url, "missing host")
    if any(ch.isspace() for ch in parts.netloc):
        raise InvalidUrl(url, "whitespace in host")

    if ":" in hostname:
        hostname = f"[{hostname}]"
    netloc = hostname
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{port}"
    if "@" in parts.netloc:
        userinfo = parts.netloc.rsplit("@", 1)[0]
        netloc = f"{userinfo}@{netloc}"

    return parts._replace(scheme=scheme, netloc=netloc, path=parts.path or "/")


def absolutize(href: str, base_url: str) -> str:
    """Resolve an href against a base URL.

    The result keeps its fragment; use normalize_url() for the form used
    in visited-set membership.

    Args:
        href: Raw attribute value (relative or absolute)
        base_url: URL of the document the href appeared in

    Returns:
        Absolute, canonicalized URL

    Raises:
        InvalidUrl: If the href is empty or resolves to a malformed URL
    """
    if href is None or not href.strip():
        raise InvalidUrl(href or "", "empty reference")

    try:
        joined = urljoin(base_url, href.strip())
    except ValueError as e:
        raise InvalidUrl(href, str(e)) from e

    return urlunsplit(_canonical_parts(joined))


def normalize_url(url: str) -> str:
    """Canonical form of an absolute URL, without its fragment.

    Raises:
        InvalidUrl: If the URL is malformed
    """
    return urlunsplit(_canonical_parts(url.strip())._replace(fragment=""))


def is_crawlable(url: str) -> bool:
    """True for http(s) URLs the frontier can schedule."""
    return urlsplit(url).scheme.lower() in CRAWLABLE_SCHEMES


def host_of(url: str) -> str:
    """Lowercased host[:port] of a URL, used as the per-host cache key."""
    return urlsplit(url).netloc.lower()


def robots_url_for(url: str) -> str:
    """Location of the robots.txt governing a URL."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}{ROBOTS_TXT_PATH}"
