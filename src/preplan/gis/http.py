"""Bounded JSON fetch over a shared httpx client.

Each call carries its own hard deadline covering connect, send and the full
body read. Failures are mapped onto the upstream error taxonomy; there are no
retries at this layer.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

import httpx

from preplan.core.errors import (
    MalformedResponse,
    UpstreamHttpError,
    UpstreamTimeout,
    UpstreamTransportError,
    excerpt,
)

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"Accept": "application/json"}


class BoundedFetcher:
    """Issues GET requests and returns parsed JSON, or raises a typed error."""

    def __init__(self, client: httpx.AsyncClient, user_agent: str | None = None) -> None:
        self._client = client
        self._headers = dict(DEFAULT_HEADERS)
        if user_agent:
            self._headers["User-Agent"] = user_agent

    async def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 15.0,
    ) -> Any:
        _, payload = await self.fetch_json(url, params=params, headers=headers, timeout=timeout)
        return payload

    async def fetch_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 15.0,
    ) -> tuple[int, Any]:
        """Like ``get_json`` but also returns the (2xx) HTTP status."""
        merged = dict(self._headers)
        if headers:
            merged.update(headers)

        start = time.monotonic()
        try:
            async with asyncio.timeout(timeout):
                resp = await self._client.get(
                    url,
                    params=params,
                    headers=merged,
                    timeout=httpx.Timeout(timeout),
                )
                text = resp.text
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise UpstreamTimeout(
                f"Timed out after {timeout:.1f}s waiting for {url}",
                url=url,
            ) from exc
        except httpx.RequestError as exc:
            raise UpstreamTransportError(
                f"Transport error calling {url}: {type(exc).__name__}: {exc}",
                url=url,
            ) from exc

        logger.debug(
            "GET %s -> %d in %.0fms",
            url, resp.status_code, (time.monotonic() - start) * 1000,
        )

        try:
            payload = json.loads(text)
        except ValueError as exc:
            raise MalformedResponse(
                f"Non-JSON response from {url}. Status {resp.status_code}. "
                f"Body starts: {excerpt(text)}",
                url=url,
                status=resp.status_code,
                body_excerpt=excerpt(text),
            ) from exc

        if not resp.is_success:
            raise UpstreamHttpError(
                f"HTTP {resp.status_code} from {url}. Body starts: {excerpt(text)}",
                url=url,
                status=resp.status_code,
                body_excerpt=excerpt(text),
            )

        return resp.status_code, payload
