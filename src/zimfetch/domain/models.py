from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]

# methods that never carry a request body
BODYLESS_METHODS = frozenset({"GET", "HEAD"})


class ErrorKind(str, Enum):
    VALIDATION = "ValidationError"
    HTTP = "HTTPError"
    PARSE = "ParseError"
    TIMEOUT = "TimeoutError"
    NETWORK = "NetworkError"


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: tuple[Union[int, str], ...] = ()
    message: str


class ErrorShape(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: ErrorKind
    message: str
    issues: Optional[list[Issue]] = None
    status: Optional[int] = None
    cause: Any = None


class RouteDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: HttpMethod = "GET"
    path: str = "/"

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, v: Any) -> Any:
        return v.upper().strip() if isinstance(v, str) else v

    @field_validator("path")
    @classmethod
    def _slash_rooted(cls, v: str) -> str:
        v = v.strip()
        return v if v.startswith("/") else "/" + v


class RequestSpec(BaseModel):
    """
    One-off request description accepted by ``Client.execute``.

    ``body`` plays the role of an endpoint's input; it is never validated.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: str
    method: HttpMethod = "GET"
    body: Any = None
    params: Optional[dict[str, Any]] = None
    headers: dict[str, str] = Field(default_factory=dict)
    timeout_ms: Optional[float] = None

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, v: Any) -> Any:
        return v.upper().strip() if isinstance(v, str) else v

    @property
    def descriptor(self) -> RouteDescriptor:
        return RouteDescriptor(method=self.method, path=self.path)


class EndpointResponse(BaseModel):
    """
    Discriminated outcome of one endpoint call.

    Exactly one of ``data``/``error`` carries the outcome; ``error is None``
    means success. ``status`` is 0 when no response was ever received.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    data: Any = None
    error: Optional[ErrorShape] = None
    status: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _one_outcome(self) -> "EndpointResponse":
        if self.error is not None and self.data is not None:
            raise ValueError("EndpointResponse cannot carry both data and error")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any, status: int) -> "EndpointResponse":
        return cls(data=data, error=None, status=status)

    @classmethod
    def failure(cls, error: ErrorShape, status: int = 0) -> "EndpointResponse":
        return cls(data=None, error=error, status=status)
