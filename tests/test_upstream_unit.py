import asyncio

import httpx
import pytest
from starlette.requests import ClientDisconnect

import module_registry.upstream as upstream
from module_registry.upstream import (
    build_async_client,
    fetch_text,
    fetch_unless_disconnected,
    open_stream,
)


class _FakeResponse:
    def __init__(self, payload: bytes):
        self.payload = payload

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def read(self):
        return self.payload


async def _never_disconnects():
    await asyncio.Event().wait()


async def _disconnects():
    return {"type": "http.disconnect"}


def test_build_async_client_sets_defaults():
    client = build_async_client(timeout_seconds=7)
    assert client.timeout.read == 7
    assert client.follow_redirects is True
    assert client.headers["user-agent"] == upstream.USER_AGENT
    asyncio.run(client.aclose())


def test_open_stream_returns_error_statuses_without_raising():
    def handler(request):
        return httpx.Response(
            404, headers={"Content-Type": "text/plain"}, content=b"404: Not Found"
        )

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            response = await open_stream(client, "https://gitee.com/acme/lib/raw/master/x.ts")
            try:
                body = await response.aread()
                return response.status_code, response.headers["content-type"], body
            finally:
                await response.aclose()

    assert asyncio.run(scenario()) == (404, "text/plain", b"404: Not Found")


def test_fetch_unless_disconnected_returns_upstream_response():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, content=b"export {};\n")

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            response = await fetch_unless_disconnected(
                client, "https://gitlab.com/acme/lib/raw/v1/mod.ts", _never_disconnects
            )
            try:
                return await response.aread()
            finally:
                await response.aclose()

    assert asyncio.run(scenario()) == b"export {};\n"
    assert seen == ["https://gitlab.com/acme/lib/raw/v1/mod.ts"]


def test_fetch_unless_disconnected_abandons_fetch_when_client_leaves():
    state = {"cancelled": False}

    async def handler(request):
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            state["cancelled"] = True
            raise
        return httpx.Response(200)

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            try:
                await fetch_unless_disconnected(
                    client, "https://github.com/acme/lib/slow.ts", _disconnects
                )
            finally:
                await asyncio.sleep(0)

    with pytest.raises(ClientDisconnect):
        asyncio.run(scenario())
    assert state["cancelled"] is True


def test_fetch_unless_disconnected_propagates_network_errors():
    def handler(request):
        raise httpx.ConnectError("Name or service not known")

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await fetch_unless_disconnected(
                client, "https://gitlab.invalid/acme/lib/raw/master/mod.ts", _never_disconnects
            )

    with pytest.raises(httpx.ConnectError):
        asyncio.run(scenario())


def test_fetch_text_decodes_utf8_and_falls_back_to_latin1(monkeypatch):
    captured = {}

    def fake_urlopen(request, timeout):
        captured["headers"] = {k.lower(): v for k, v in request.header_items()}
        captured["timeout"] = timeout
        return _FakeResponse("hej ✓".encode("utf-8"))

    monkeypatch.setattr(upstream, "urlopen", fake_urlopen)
    assert fetch_text("https://example.com/database.json", timeout_seconds=7) == "hej ✓"
    assert captured["headers"]["user-agent"] == upstream.USER_AGENT
    assert captured["timeout"] == 7

    monkeypatch.setattr(upstream, "urlopen", lambda request, timeout: _FakeResponse(b"\xff"))
    assert fetch_text("https://example.com/database.json") == "ÿ"
