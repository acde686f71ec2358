"""
Authentication context resolution.

Turns the configured AuthConfig into an AuthContext (headers + cookies)
that every fetch carries explicitly. Basic, Bearer and Cookie modes are
computed locally without network access. Form login performs a single
POST exchange, and the resulting context is cached for the session.

Usage:
    resolver = AuthResolver(config, client)
    context = await resolver.resolve()   # safe to await from many workers
"""

import asyncio
import base64
import logging
from typing import Dict, Optional

import httpx

from webcrawler.config import AuthConfig, AuthMode, CrawlConfig
from webcrawler.constants import LOGIN_MAX_REDIRECTS
from webcrawler.exceptions import AuthError, AuthErrorReason
from webcrawler.http_client import build_client
from webcrawler.models import AuthContext

logger = logging.getLogger(__name__)


def _missing(message: str) -> AuthError:
    return AuthError(AuthErrorReason.MISSING_CREDENTIALS, message)


def _cookie_header(cookies: Dict[str, str]) -> str:
    return "; ".join(f"{name}={value}" for name, value in cookies.items())


def _parse_cookie_string(raw: str) -> Dict[str, str]:
    cookies = {}
    for part in raw.split(";"):
        name, sep, value = part.strip().partition("=")
        if name and sep:
            cookies[name.strip()] = value.strip()
    return cookies


def basic_context(auth: AuthConfig) -> AuthContext:
    """Authorization: Basic base64(username:password)."""
    if not auth.username or not auth.password:
        raise _missing("Basic auth requires username and password")

    encoded = base64.b64encode(f"{auth.username}:{auth.password}".encode("utf-8")).decode("ascii")
    return AuthContext(headers={"Authorization": f"Basic {encoded}"})


def bearer_context(auth: AuthConfig) -> AuthContext:
    """Authorization: Bearer <token>."""
    if not auth.token:
        raise _missing("Bearer auth requires token")

    return AuthContext(headers={"Authorization": f"Bearer {auth.token}"})


def cookie_context(auth: AuthConfig) -> AuthContext:
    """Single Cookie header from a list of pairs or a delimited string."""
    if not auth.cookies:
        raise _missing("Cookie auth requires a cookie list or string")

    if isinstance(auth.cookies, str):
        header = auth.cookies.strip()
        cookies = _parse_cookie_string(header)
    else:
        cookies = {pair.name: pair.value for pair in auth.cookies}
        header = _cookie_header(cookies)

    if not header:
        raise _missing("Cookie auth requires a cookie list or string")

    return AuthContext(headers={"Cookie": header}, cookies=cookies)


def session_cookies(response: httpx.Response) -> Dict[str, str]:
    """name=value pairs from Set-Cookie headers along the redirect chain."""
    cookies = {}
    for hop in [*response.history, response]:
        for raw in hop.headers.get_list("set-cookie"):
            name, sep, value = raw.split(";", 1)[0].strip().partition("=")
            if name and sep:
                cookies[name] = value
    return cookies


async def form_login_context(
    auth: AuthConfig,
    client: httpx.AsyncClient,
    user_agent: str,
) -> AuthContext:
    """POST the login form once and turn Set-Cookie into a Cookie header.

    Any 2xx or 3xx final status counts as success.

    Raises:
        AuthError: MISSING_CREDENTIALS without login_url/login_data,
            LOGIN_FAILED on a transport error or non-success status
    """
    if not auth.login_url or not auth.login_data:
        raise _missing("Form auth requires login_url and login_data")

    logger.info(f"Logging in via {auth.login_url}")

    try:
        response = await client.post(
            auth.login_url,
            data=auth.login_data,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "User-Agent": user_agent,
            },
            follow_redirects=True,
        )
    except httpx.HTTPError as e:
        raise AuthError(
            AuthErrorReason.LOGIN_FAILED,
            f"Form authentication failed: {e}"
        ) from e

    if not 200 <= response.status_code < 400:
        raise AuthError(
            AuthErrorReason.LOGIN_FAILED,
            f"Form authentication failed: HTTP {response.status_code} from {auth.login_url}"
        )

    cookies = session_cookies(response)
    if not cookies:
        logger.warning(f"Login to {auth.login_url} succeeded but set no cookies")
        return AuthContext()

    logger.info(f"Login succeeded, {len(cookies)} session cookie(s): {', '.join(cookies)}")
    return AuthContext(headers={"Cookie": _cookie_header(cookies)}, cookies=cookies)


class AuthResolver:
    """Resolves the session's AuthContext exactly once.

    Concurrent callers of resolve() share one resolution: the first
    caller performs it (including the form-login exchange) while the
    rest wait on the lock and then read the cached context. A failed
    resolution is cached too, so no caller retries the login.
    """

    def __init__(
        self,
        config: CrawlConfig,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            config: Session configuration (auth settings and user agent)
            client: Client for the form-login exchange (a short-lived one is built if None)
        """
        self._config = config
        self._client = client
        self._lock = asyncio.Lock()
        self._context: Optional[AuthContext] = None
        self._error: Optional[AuthError] = None
        self.login_attempts = 0

    @property
    def resolved(self) -> bool:
        return self._context is not None

    async def resolve(self) -> AuthContext:
        """Return the session AuthContext, resolving it on first use.

        Raises:
            AuthError: If credentials are missing or login fails
        """
        async with self._lock:
            if self._context is not None:
                return self._context
            if self._error is not None:
                raise self._error

            try:
                self._context = await self._resolve()
            except AuthError as e:
                self._error = e
                raise

            return self._context

    async def _resolve(self) -> AuthContext:
        auth = self._config.auth

        if auth.mode == AuthMode.NONE:
            return AuthContext()
        if auth.mode == AuthMode.BASIC:
            return basic_context(auth)
        if auth.mode == AuthMode.BEARER:
            return bearer_context(auth)
        if auth.mode == AuthMode.COOKIE:
            return cookie_context(auth)

        # FORM
        self.login_attempts += 1
        if self._client is not None:
            return await form_login_context(auth, self._client, self._config.user_agent)

        async with build_client(
            self._config.user_agent,
            timeout=self._config.timeout_seconds,
            max_redirects=LOGIN_MAX_REDIRECTS,
            proxy=self._config.proxy,
        ) as client:
            return await form_login_context(auth, client, self._config.user_agent)


async def resolve(config: CrawlConfig, client: Optional[httpx.AsyncClient] = None) -> AuthContext:
    """One-shot resolution of an AuthContext from a CrawlConfig."""
    return await AuthResolver(config, client).resolve()
