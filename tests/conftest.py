from typing import Callable

import httpx
import pytest

from zimfetch.client import Client
from zimfetch.transport.httpx_transport import HttpxTransport

BASE_URL = "https://api.example.com"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def make_client() -> Callable[..., Client]:
    """Client whose requests go to an in-process ``httpx.MockTransport`` handler."""

    def _make(handler, **kwargs) -> Client:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        kwargs.setdefault("base_url", BASE_URL)
        return Client(transport=HttpxTransport(http), **kwargs)

    return _make
