"""Tests for the bounded JSON fetch helper."""

from __future__ import annotations

import asyncio
import time

import httpx
import pytest

from preplan.core.errors import (
    MalformedResponse,
    UpstreamHttpError,
    UpstreamTimeout,
    UpstreamTransportError,
)
from preplan.gis.http import BoundedFetcher

URL = "https://upstream.test/data"


class TestBoundedFetcher:
    @pytest.mark.asyncio
    async def test_returns_parsed_json(self, httpx_mock):
        httpx_mock.add_response(url=URL, json={"features": [1, 2]})
        async with httpx.AsyncClient() as client:
            result = await BoundedFetcher(client).get_json(URL)
        assert result == {"features": [1, 2]}

    @pytest.mark.asyncio
    async def test_sends_user_agent_and_accept(self, httpx_mock):
        httpx_mock.add_response(url=URL, json={})
        async with httpx.AsyncClient() as client:
            await BoundedFetcher(client, user_agent="PrePlan-Test/1.0").get_json(URL)
        request = httpx_mock.get_request()
        assert request.headers["User-Agent"] == "PrePlan-Test/1.0"
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_per_call_headers_override_defaults(self, httpx_mock):
        httpx_mock.add_response(url=URL, json={})
        async with httpx.AsyncClient() as client:
            fetcher = BoundedFetcher(client, user_agent="default-agent")
            await fetcher.get_json(URL, headers={"User-Agent": "override"})
        assert httpx_mock.get_request().headers["User-Agent"] == "override"

    @pytest.mark.asyncio
    async def test_non_json_body_is_malformed(self, httpx_mock):
        body = "<html>" + "x" * 500 + "</html>"
        httpx_mock.add_response(url=URL, status_code=502, text=body)
        async with httpx.AsyncClient() as client:
            with pytest.raises(MalformedResponse) as info:
                await BoundedFetcher(client).get_json(URL)
        err = info.value
        assert err.status == 502
        assert err.url == URL
        assert err.body_excerpt == body[:200]
        assert "Non-JSON response" in err.message

    @pytest.mark.asyncio
    async def test_non_2xx_with_json_body_is_http_error(self, httpx_mock):
        httpx_mock.add_response(url=URL, status_code=503, json={"error": "down"})
        async with httpx.AsyncClient() as client:
            with pytest.raises(UpstreamHttpError) as info:
                await BoundedFetcher(client).get_json(URL)
        assert info.value.status == 503
        assert "down" in info.value.body_excerpt

    @pytest.mark.asyncio
    async def test_connection_error_is_transport_error(self, httpx_mock):
        httpx_mock.add_exception(httpx.ConnectError("connection refused"), url=URL)
        async with httpx.AsyncClient() as client:
            with pytest.raises(UpstreamTransportError) as info:
                await BoundedFetcher(client).get_json(URL)
        assert info.value.status is None
        assert info.value.error_code == "upstream_transport_error"

    @pytest.mark.asyncio
    async def test_httpx_timeout_is_upstream_timeout(self, httpx_mock):
        httpx_mock.add_exception(httpx.ReadTimeout("read timed out"), url=URL)
        async with httpx.AsyncClient() as client:
            with pytest.raises(UpstreamTimeout):
                await BoundedFetcher(client).get_json(URL)

    @pytest.mark.asyncio
    async def test_decoding_error_is_transport_error(self, httpx_mock):
        httpx_mock.add_exception(httpx.DecodingError("bad gzip stream"), url=URL)
        async with httpx.AsyncClient() as client:
            with pytest.raises(UpstreamTransportError) as info:
                await BoundedFetcher(client).get_json(URL)
        assert isinstance(info.value.__cause__, httpx.DecodingError)

    @pytest.mark.asyncio
    async def test_redirect_loop_is_transport_error(self):
        async def loop(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={"Location": URL})

        transport = httpx.MockTransport(loop)
        async with httpx.AsyncClient(transport=transport, follow_redirects=True) as client:
            with pytest.raises(UpstreamTransportError) as info:
                await BoundedFetcher(client).get_json(URL)
        assert isinstance(info.value.__cause__, httpx.TooManyRedirects)
        assert info.value.url == URL

    @pytest.mark.asyncio
    async def test_fetch_json_reports_status(self, httpx_mock):
        httpx_mock.add_response(url=URL, status_code=203, json={"ok": True})
        async with httpx.AsyncClient() as client:
            status, payload = await BoundedFetcher(client).fetch_json(URL)
        assert status == 203
        assert payload == {"ok": True}


class TestHardDeadline:
    @pytest.mark.asyncio
    async def test_hanging_upstream_is_cancelled_at_deadline(self):
        cancelled = asyncio.Event()

        async def hang(request: httpx.Request) -> httpx.Response:
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return httpx.Response(200, json={})

        async with httpx.AsyncClient(transport=httpx.MockTransport(hang)) as client:
            start = time.monotonic()
            with pytest.raises(UpstreamTimeout) as info:
                await BoundedFetcher(client).get_json(URL, timeout=0.2)
            elapsed = time.monotonic() - start

        assert elapsed < 2.0
        assert cancelled.is_set()
        assert info.value.url == URL
