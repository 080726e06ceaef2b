"""
Error taxonomy.

Endpoints never raise for request failures: they return an
``EndpointResponse`` whose ``error`` is an ``ErrorShape``. Exceptions only
appear at two seams:

- TransportFailure: a transport could not obtain any response
- EndpointError: raised by adapted leaves (query/mutation functions) that
  convert a failed result into the raising convention
"""

from __future__ import annotations

from typing import Optional

from zimfetch.domain.models import ErrorKind, ErrorShape


class ZimfetchError(Exception):
    """Base class for zimfetch exceptions."""


class TransportFailure(ZimfetchError):
    """The request failed before any status line was received."""


class EndpointError(ZimfetchError):
    def __init__(self, error: ErrorShape, status: int = 0) -> None:
        super().__init__(error.message)
        self.error = error
        self.status = status

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def issues(self) -> Optional[list]:
        return self.error.issues

    def __repr__(self) -> str:
        return f"EndpointError(kind={self.kind.value!r}, status={self.status}, message={self.error.message!r})"
