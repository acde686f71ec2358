"""Tests for robots.txt compliance."""

import asyncio

import httpx
import pytest

pytest_plugins = ('pytest_asyncio',)

from webcrawler.constants import DEFAULT_USER_AGENT
from webcrawler.http_client import build_client
from webcrawler.robots import RobotsGate, robots_product_token

USER_AGENT = "TestBot/1.0"

ROBOTS_TXT = """
User-agent: *
Disallow: /private

User-agent: OtherBot
Disallow: /
"""


class RobotsServer:
    """Serves robots.txt per host from a mapping (missing host -> 404)."""

    def __init__(self, bodies=None, delay: float = 0.0):
        self.bodies = bodies or {}
        self.delay = delay
        self.requests = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        if self.delay:
            await asyncio.sleep(self.delay)
        body = self.bodies.get(request.url.host)
        if body is None:
            return httpx.Response(404, text="not found")
        if isinstance(body, int):
            return httpx.Response(body, text="error")
        return httpx.Response(200, text=body)


def make_gate(handler) -> tuple:
    client = build_client(USER_AGENT, 5.0, transport=httpx.MockTransport(handler))
    return client, RobotsGate(client, USER_AGENT)


class TestRobotsGate:
    """Test cases for RobotsGate."""

    @pytest.mark.asyncio
    async def test_disallow_rules(self):
        client, gate = make_gate(RobotsServer({"example.com": ROBOTS_TXT}))
        async with client:
            assert not await gate.is_allowed("https://example.com/private/page")
            assert await gate.is_allowed("https://example.com/public")

    @pytest.mark.asyncio
    async def test_agent_specific_group(self):
        server = RobotsServer({"example.com": ROBOTS_TXT})
        client = build_client("OtherBot/2.0", 5.0, transport=httpx.MockTransport(server))
        gate = RobotsGate(client, "OtherBot/2.0")
        async with client:
            assert not await gate.is_allowed("https://example.com/public")

    @pytest.mark.asyncio
    async def test_missing_robots_allows_all(self):
        client, gate = make_gate(RobotsServer())
        async with client:
            assert await gate.is_allowed("https://example.com/anything")
            rules = await gate.rules_for("https://example.com/")

        assert rules.permissive

    @pytest.mark.asyncio
    async def test_server_error_allows_all(self):
        client, gate = make_gate(RobotsServer({"example.com": 503}))
        async with client:
            assert await gate.is_allowed("https://example.com/private")

    @pytest.mark.asyncio
    async def test_timeout_allows_all(self):
        def timeout(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client, gate = make_gate(timeout)
        async with client:
            assert await gate.is_allowed("https://example.com/private")

    @pytest.mark.asyncio
    async def test_garbage_body_allows_all(self):
        client, gate = make_gate(RobotsServer({"example.com": "\x00\x01 this is { not robots"}))
        async with client:
            assert await gate.is_allowed("https://example.com/private")

    @pytest.mark.asyncio
    async def test_fetched_once_per_host(self):
        server = RobotsServer({"example.com": ROBOTS_TXT}, delay=0.01)
        client, gate = make_gate(server)

        async with client:
            results = await asyncio.gather(*(
                gate.is_allowed(f"https://example.com/page{i}") for i in range(10)
            ))

        assert all(results)
        assert server.requests == ["https://example.com/robots.txt"]
        assert gate.fetch_count == 1

    @pytest.mark.asyncio
    async def test_hosts_are_cached_separately(self):
        server = RobotsServer({"a.example.com": ROBOTS_TXT})
        client, gate = make_gate(server)

        async with client:
            assert not await gate.is_allowed("https://a.example.com/private")
            assert await gate.is_allowed("https://b.example.com/private")
            assert not await gate.is_allowed("https://a.example.com/private/2")

        assert gate.fetch_count == 2
        assert set(gate.cached_hosts()) == {"a.example.com", "b.example.com"}

    @pytest.mark.asyncio
    async def test_default_user_agent_matches_its_own_group(self):
        server = RobotsServer({"example.com": "User-agent: WebCrawler\nDisallow: /\n"})
        client = build_client(DEFAULT_USER_AGENT, 5.0, transport=httpx.MockTransport(server))
        gate = RobotsGate(client, DEFAULT_USER_AGENT)

        async with client:
            assert not await gate.is_allowed("https://example.com/page")

        assert gate.agent == "WebCrawler"


@pytest.mark.parametrize("user_agent,token", [
    (DEFAULT_USER_AGENT, "WebCrawler"),
    ("Mozilla/5.0 (Compatible;  MyBot/3.1)", "MyBot"),
    ("TestBot/1.0", "TestBot"),
    ("PlainBot", "PlainBot"),
    ("Mozilla/5.0 (X11; Linux x86_64)", "Mozilla"),
])
def test_robots_product_token(user_agent, token):
    assert robots_product_token(user_agent) == token
