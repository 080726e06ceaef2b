"""
Request executor: one network call, one result.

The response, a transport failure and the deadline race through a
``SettleOnce`` latch. Whichever arrives first fixes the outcome; the others
find the latch closed and are dropped, so a late response can never replace
a timeout that was already reported.

Status handling:
    >= 400      -> HTTPError, body parsed for diagnostics (raw text on failure)
    otherwise   -> body parsed as JSON or text, ParseError on malformed JSON
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional, Union

from zimfetch.domain.errors import TransportFailure
from zimfetch.domain.models import EndpointResponse, ErrorKind, ErrorShape
from zimfetch.http.request import is_json_content_type, looks_like_json
from zimfetch.transport.base import Transport, TransportRequest, TransportResponse

logger = logging.getLogger(__name__)

Outcome = Union[TransportResponse, EndpointResponse]


class SettleOnce:
    """
    One-shot completion latch.

    ``settle``, ``fail`` and ``cancel`` return True only for the call that closed the latch.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def settled(self) -> bool:
        return self._future.done()

    def settle(self, outcome: Any) -> bool:
        if self._future.done():
            return False
        self._future.set_result(outcome)
        return True

    def fail(self, exc: BaseException) -> bool:
        if self._future.done():
            return False
        self._future.set_exception(exc)
        return True

    def cancel(self) -> bool:
        if self._future.done():
            return False
        return self._future.cancel()

    async def wait(self) -> Any:
        return await self._future


def timeout_failure(timeout_ms: float) -> EndpointResponse:
    return EndpointResponse.failure(
        ErrorShape(kind=ErrorKind.TIMEOUT, message=f"Request timed out after {timeout_ms:g}ms"),
        status=0,
    )


def network_failure(exc: BaseException) -> EndpointResponse:
    return EndpointResponse.failure(
        ErrorShape(kind=ErrorKind.NETWORK, message=f"Network error: {exc}", cause=exc),
        status=0,
    )


async def dispatch(
    transport: Transport,
    request: TransportRequest,
    timeout_ms: Optional[float],
) -> Outcome:
    """
    Send ``request`` under a deadline.

    Returns the raw ``TransportResponse``, or a status-0 failure for
    timeouts and transport errors. Unexpected exceptions from the transport
    propagate.
    """
    loop = asyncio.get_running_loop()
    latch = SettleOnce()
    task = asyncio.ensure_future(transport.send(request))

    def _on_done(t: asyncio.Future) -> None:
        if t.cancelled():
            latch.cancel()
            return
        exc = t.exception()
        if exc is None:
            latch.settle(t.result())
        elif isinstance(exc, (TransportFailure, OSError)):
            if latch.settle(network_failure(exc)):
                logger.warning("%s %s failed before a response: %s", request.method, request.url, exc)
        else:
            latch.fail(exc)

    def _on_deadline() -> None:
        if latch.settle(timeout_failure(timeout_ms)):
            logger.warning("%s %s timed out after %gms", request.method, request.url, timeout_ms)

    task.add_done_callback(_on_done)
    timer = loop.call_later(timeout_ms / 1000.0, _on_deadline) if timeout_ms is not None else None

    logger.debug("dispatch %s %s (timeout=%s)", request.method, request.url, timeout_ms)
    try:
        return await latch.wait()
    finally:
        if timer is not None:
            timer.cancel()
        # abandon the request whichever way the latch closed
        if not task.done():
            task.cancel()


def parse_body(response: TransportResponse) -> Any:
    """Raises ValueError when a JSON body is malformed."""
    if not response.content:
        return None
    text = response.text
    if is_json_content_type(response.header("content-type")) or looks_like_json(text):
        return json.loads(text)
    return text


def _http_failure(response: TransportResponse) -> EndpointResponse:
    try:
        body = parse_body(response)
    except ValueError:
        body = response.text
    message = f"HTTP {response.status} {response.reason}".strip()
    return EndpointResponse.failure(
        ErrorShape(kind=ErrorKind.HTTP, message=message, status=response.status, cause=body),
        status=response.status,
    )


async def execute_request(
    transport: Transport,
    request: TransportRequest,
    timeout_ms: Optional[float] = None,
) -> EndpointResponse:
    outcome = await dispatch(transport, request, timeout_ms)
    if isinstance(outcome, EndpointResponse):
        return outcome

    logger.debug("%s %s -> %d", request.method, request.url, outcome.status)
    if outcome.status >= 400:
        return _http_failure(outcome)

    try:
        data = parse_body(outcome)
    except ValueError as exc:
        return EndpointResponse.failure(
            ErrorShape(
                kind=ErrorKind.PARSE,
                message=f"Failed to parse response body: {exc}",
                status=outcome.status,
                cause=outcome.text,
            ),
            status=outcome.status,
        )
    return EndpointResponse.success(data, outcome.status)
