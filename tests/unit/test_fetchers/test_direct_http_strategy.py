"""Unit tests for DirectHttpStrategy."""

import httpx
import pytest

pytest_plugins = ('pytest_asyncio',)

from webcrawler.config import CrawlConfig
from webcrawler.exceptions import FetchError, FetchErrorKind
from webcrawler.fetchers import DirectHttpStrategy, create_strategy
from webcrawler.fetchers.browser import HeadlessBrowserStrategy
from webcrawler.fetchers.process import ExternalProcessStrategy
from webcrawler.models import AuthContext

URL = "https://example.com/page"


def strategy_for(handler, **config_kwargs) -> DirectHttpStrategy:
    return DirectHttpStrategy(CrawlConfig(**config_kwargs), transport=httpx.MockTransport(handler))


class TestDirectHttpStrategy:
    """Test cases for DirectHttpStrategy."""

    @pytest.mark.asyncio
    async def test_success(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, html="<html><title>Hi</title></html>")

        async with strategy_for(handler, user_agent="TestBot/1.0") as strategy:
            document = await strategy.fetch(URL, AuthContext(headers={"Authorization": "Bearer t"}))

        assert document.url == URL
        assert document.status_code == 200
        assert "<title>Hi</title>" in document.body
        assert document.content_type.startswith("text/html")

        request = seen[0]
        assert request.headers["user-agent"] == "TestBot/1.0"
        assert request.headers["authorization"] == "Bearer t"
        assert "text/html" in request.headers["accept"]

    @pytest.mark.asyncio
    async def test_redirect_is_followed(self):
        def handler(request):
            if request.url.path == "/old":
                return httpx.Response(301, headers={"location": "/new"})
            return httpx.Response(200, html="<p>new</p>")

        async with strategy_for(handler) as strategy:
            document = await strategy.fetch("https://example.com/old", AuthContext())

        assert document.url == "https://example.com/new"

    @pytest.mark.asyncio
    async def test_redirect_not_followed_is_error(self):
        def handler(request):
            return httpx.Response(302, headers={"location": "/elsewhere"})

        async with strategy_for(handler, follow_redirects=False) as strategy:
            with pytest.raises(FetchError) as exc_info:
                await strategy.fetch(URL, AuthContext())

        assert exc_info.value.kind == FetchErrorKind.HTTP_ERROR
        assert exc_info.value.status_code == 302

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [404, 500, 503])
    async def test_error_status(self, status):
        async with strategy_for(lambda request: httpx.Response(status)) as strategy:
            with pytest.raises(FetchError) as exc_info:
                await strategy.fetch(URL, AuthContext())

        assert exc_info.value.kind == FetchErrorKind.HTTP_ERROR
        assert exc_info.value.status_code == status
        assert exc_info.value.url == URL

    @pytest.mark.asyncio
    @pytest.mark.parametrize("exception,kind", [
        (httpx.ReadTimeout, FetchErrorKind.TIMEOUT),
        (httpx.ConnectTimeout, FetchErrorKind.TIMEOUT),
        (httpx.ConnectError, FetchErrorKind.CONNECTION_REFUSED),
        (httpx.RemoteProtocolError, FetchErrorKind.OTHER),
    ])
    async def test_transport_errors(self, exception, kind):
        def handler(request):
            raise exception("failure", request=request)

        async with strategy_for(handler) as strategy:
            with pytest.raises(FetchError) as exc_info:
                await strategy.fetch(URL, AuthContext())

        assert exc_info.value.kind == kind

    @pytest.mark.asyncio
    async def test_close_releases_client(self):
        strategy = strategy_for(lambda request: httpx.Response(200, text="x"))
        await strategy.open()
        await strategy.close()

        assert strategy._client is None


class TestCreateStrategy:
    """Test cases for create_strategy()."""

    @pytest.mark.parametrize("method,cls", [
        ("http", DirectHttpStrategy),
        ("browser", HeadlessBrowserStrategy),
        ("curl", ExternalProcessStrategy),
    ])
    def test_factory(self, method, cls):
        assert isinstance(create_strategy(CrawlConfig(fetch_strategy=method)), cls)
