"""Tests for HttpDocumentTransport against an httpx.MockTransport."""

import json

import httpx
import pytest

from keyward.cloud.transport import HttpDocumentTransport
from keyward.core.exceptions import ConnectionFailed


def make_transport(handler, token=""):
    return HttpDocumentTransport(
        "https://docs.example.com/",
        token=token,
        transport=httpx.MockTransport(handler),
    )


class TestHttpDocumentTransport:

    @pytest.mark.asyncio
    async def test_connect_pings_database(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        transport = make_transport(handler, token="t0k3n")
        await transport.connect("vault")

        assert seen[0].url.path == "/vault/ping"
        assert seen[0].headers["Authorization"] == "Bearer t0k3n"
        await transport.disconnect()

    @pytest.mark.asyncio
    async def test_connect_unconfigured(self):
        transport = HttpDocumentTransport("")
        with pytest.raises(ConnectionFailed, match="not configured"):
            await transport.connect("vault")

    @pytest.mark.asyncio
    async def test_connect_server_error_raises(self):
        transport = make_transport(lambda request: httpx.Response(503))
        with pytest.raises(httpx.HTTPStatusError):
            await transport.connect("vault")

    @pytest.mark.asyncio
    async def test_crud_requests(self):
        requests = []

        def handler(request):
            requests.append(request)
            path = request.url.path
            if path.endswith("/ping"):
                return httpx.Response(200, json={})
            if path.endswith("/documents"):
                return httpx.Response(200, json={"_id": "abc"})
            if path.endswith("/find"):
                return httpx.Response(200, json={"documents": [{"_id": "abc"}]})
            if path.endswith("/update"):
                return httpx.Response(200, json={"matched": 1})
            return httpx.Response(200, json={"deleted": 1})

        transport = make_transport(handler)
        await transport.connect("vault")

        assert await transport.insert("passwords", {"userId": "u1"}) == "abc"
        assert await transport.find("passwords", {"userId": "u1"}) == [{"_id": "abc"}]
        assert await transport.update("passwords", {"_id": "abc"}, {"password": "x"}) == 1
        assert await transport.delete("passwords", {"_id": "abc"}) == 1

        update_request = requests[3]
        assert update_request.url.path == "/vault/collections/passwords/update"
        assert json.loads(update_request.content) == {
            "filter": {"_id": "abc"}, "set": {"password": "x"},
        }
        await transport.disconnect()

    @pytest.mark.asyncio
    async def test_request_before_connect(self):
        transport = make_transport(lambda request: httpx.Response(200, json={}))
        with pytest.raises(ConnectionFailed, match="not connected"):
            await transport.find("passwords", {})

    @pytest.mark.asyncio
    async def test_http_error_becomes_connection_failed(self):
        def handler(request):
            if request.url.path.endswith("/ping"):
                return httpx.Response(200, json={})
            return httpx.Response(500)

        transport = make_transport(handler)
        await transport.connect("vault")
        with pytest.raises(ConnectionFailed):
            await transport.insert("users", {"username": "alice"})
        await transport.disconnect()
