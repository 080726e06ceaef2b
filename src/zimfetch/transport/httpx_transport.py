from __future__ import annotations

import logging
from typing import Optional

import httpx

from zimfetch.domain.errors import TransportFailure
from zimfetch.transport.base import TransportRequest, TransportResponse

logger = logging.getLogger(__name__)


class HttpxTransport:
    """
    ``Transport`` over ``httpx.AsyncClient``.

    Without an injected client a fresh ``AsyncClient`` is opened per request,
    so nothing is shared between calls. Deadlines are owned by the executor,
    hence ``timeout=None`` on the httpx side.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self._client = client

    async def send(self, request: TransportRequest) -> TransportResponse:
        if self._client is not None:
            return await self._send(self._client, request)
        async with httpx.AsyncClient(timeout=None) as client:
            return await self._send(client, request)

    async def _send(self, client: httpx.AsyncClient, request: TransportRequest) -> TransportResponse:
        try:
            response = await client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.content,
                timeout=None,
            )
        except httpx.TransportError as exc:
            logger.debug("httpx transport error for %s %s: %r", request.method, request.url, exc)
            raise TransportFailure(f"{type(exc).__name__}: {exc}") from exc

        return TransportResponse(
            status=response.status_code,
            headers=dict(response.headers),
            content=response.content,
            reason=response.reason_phrase,
        )
