"""Factory for the httpx clients used by the engine."""

from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Dict, Optional

import httpx

from webcrawler.constants import ACCEPT_HEADERS


class RejectAllCookiesPolicy(DefaultCookiePolicy):
    """Cookie policy that never stores or sends cookies.

    Session cookies travel only in the AuthContext, never in a client jar.
    """

    def set_ok(self, cookie, request):
        return False

    def return_ok(self, cookie, request):
        return False


def build_client(
    user_agent: str,
    timeout: float,
    follow_redirects: bool = True,
    max_redirects: int = 5,
    proxy: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    headers: Optional[Dict[str, str]] = None,
) -> httpx.AsyncClient:
    """Create an AsyncClient with browser-like headers and no cookie jar.

    Args:
        user_agent: User-Agent header value
        timeout: Per-request timeout in seconds
        follow_redirects: Whether redirects are followed
        max_redirects: Redirect hop limit
        proxy: Optional proxy URL
        transport: Optional transport (tests pass httpx.MockTransport)
        headers: Extra default headers

    Returns:
        Configured httpx.AsyncClient (caller closes it)
    """
    default_headers = {"User-Agent": user_agent, **ACCEPT_HEADERS, **(headers or {})}

    kwargs = {
        "headers": default_headers,
        "timeout": timeout,
        "follow_redirects": follow_redirects,
        "max_redirects": max_redirects,
        "cookies": CookieJar(policy=RejectAllCookiesPolicy()),
    }
    if transport is not None:
        kwargs["transport"] = transport
    elif proxy:
        kwargs["proxy"] = proxy

    return httpx.AsyncClient(**kwargs)
