from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol, Union, runtime_checkable


@dataclass(frozen=True)
class TransportRequest:
    method: str
    url: str                              # absolute, query string included
    headers: dict[str, str] = field(default_factory=dict)
    content: Optional[Union[str, bytes]] = None


@dataclass(frozen=True)
class TransportResponse:
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    content: bytes = b""
    reason: str = ""

    def header(self, name: str, default: str = "") -> str:
        lname = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lname:
                return v
        return default

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


@runtime_checkable
class Transport(Protocol):
    """
    Minimal network capability used by the executor.

    ``send`` performs exactly one request and returns once the whole body has
    been read. Failures that happen before any status line is received must
    raise ``TransportFailure``. Cancellation arrives as ``asyncio.CancelledError``.
    """

    async def send(self, request: TransportRequest) -> TransportResponse:
        ...
