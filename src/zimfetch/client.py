from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Union

from zimfetch.config import DEFAULT_TIMEOUT_MS, ClientConfig, load_client_config
from zimfetch.domain.models import EndpointResponse, ErrorKind, ErrorShape, RequestSpec, RouteDescriptor
from zimfetch.http.executor import execute_request
from zimfetch.http.request import build_url, encode_body, has_header, merge_headers
from zimfetch.schema.validator import SchemaValidator, as_validator, run_validator
from zimfetch.transport.base import Transport, TransportRequest
from zimfetch.transport.httpx_transport import HttpxTransport

logger = logging.getLogger(__name__)

# sentinel so .execute(timeout_ms=None) can mean "no deadline"
_UNSET: Any = object()


@dataclass(frozen=True)
class Endpoint:
    """
    Immutable description of one HTTP operation.

    ``input``/``output`` return new endpoints; the receiver is never touched,
    so partially configured endpoints can be reused as templates. Equality
    covers method, path and validators only.
    """

    descriptor: RouteDescriptor
    config: ClientConfig = field(default_factory=ClientConfig, compare=False, repr=False)
    transport: Transport = field(default_factory=HttpxTransport, compare=False, repr=False)
    input_validator: Optional[SchemaValidator] = None
    output_validator: Optional[SchemaValidator] = None

    @property
    def method(self) -> str:
        return self.descriptor.method

    @property
    def path(self) -> str:
        return self.descriptor.path

    def input(self, validator: Any) -> "Endpoint":
        return replace(self, input_validator=as_validator(validator))

    def output(self, validator: Any) -> "Endpoint":
        return replace(self, output_validator=as_validator(validator))

    async def execute(
        self,
        input: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        *,
        headers: Optional[Mapping[str, str]] = None,
        timeout_ms: Optional[float] = _UNSET,
    ) -> EndpointResponse:
        if self.input_validator is not None:
            checked = run_validator(self.input_validator, input)
            if not checked.success:
                logger.debug("%s %s rejected input: %d issue(s)", self.method, self.path, len(checked.issues))
                return EndpointResponse.failure(
                    ErrorShape(
                        kind=ErrorKind.VALIDATION,
                        message="Input validation failed",
                        issues=list(checked.issues),
                    ),
                    status=0,
                )
            input = checked.data

        url = build_url(self.config.base_url, self.path, params)

        body = encode_body(self.method, input)
        request_headers = merge_headers(self.config.default_headers, headers)
        if body.content_type and not has_header(request_headers, "content-type"):
            request_headers["Content-Type"] = body.content_type

        if timeout_ms is _UNSET:
            timeout_ms = self.config.default_timeout_ms

        result = await execute_request(
            self.transport,
            TransportRequest(method=self.method, url=url, headers=request_headers, content=body.content),
            timeout_ms=timeout_ms,
        )
        if not result.ok or self.output_validator is None:
            return result

        checked = run_validator(self.output_validator, result.data)
        if not checked.success:
            return EndpointResponse.failure(
                ErrorShape(
                    kind=ErrorKind.VALIDATION,
                    message="Output validation failed",
                    issues=list(checked.issues),
                    status=result.status,
                ),
                status=result.status,
            )
        return EndpointResponse.success(checked.data, result.status)


class Client:
    """Factory for endpoints sharing one read-only ``ClientConfig``."""

    def __init__(
        self,
        base_url: str = "",
        headers: Optional[Mapping[str, str]] = None,
        timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS,
        transport: Optional[Transport] = None,
        *,
        config: Optional[ClientConfig] = None,
    ) -> None:
        if config is None:
            config = ClientConfig(
                base_url=base_url,
                default_headers=dict(headers or {}),
                default_timeout_ms=timeout_ms,
            )
        self.config = config
        self.transport: Transport = transport if transport is not None else HttpxTransport()

    @classmethod
    def from_config(cls, config: ClientConfig, transport: Optional[Transport] = None) -> "Client":
        return cls(transport=transport, config=config)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, transport: Optional[Transport] = None) -> "Client":
        return cls.from_config(load_client_config(environ), transport=transport)

    def route(
        self,
        descriptor: Union[RouteDescriptor, Mapping[str, Any], None] = None,
        **fields: Any,
    ) -> Endpoint:
        if descriptor is None:
            descriptor = RouteDescriptor(**fields)
        elif not isinstance(descriptor, RouteDescriptor):
            descriptor = RouteDescriptor.model_validate({**dict(descriptor), **fields})
        elif fields:
            raise TypeError("route() takes either a descriptor or keyword fields, not both")
        return Endpoint(descriptor=descriptor, config=self.config, transport=self.transport)

    async def execute(
        self,
        spec: Union[RequestSpec, Mapping[str, Any], None] = None,
        **fields: Any,
    ) -> EndpointResponse:
        if spec is None:
            spec = RequestSpec(**fields)
        elif not isinstance(spec, RequestSpec):
            spec = RequestSpec.model_validate({**dict(spec), **fields})

        endpoint = self.route(spec.descriptor)
        timeout_ms = spec.timeout_ms if spec.timeout_ms is not None else self.config.default_timeout_ms
        return await endpoint.execute(
            spec.body,
            spec.params,
            headers=spec.headers,
            timeout_ms=timeout_ms,
        )

    def __repr__(self) -> str:
        return f"Client(base_url={self.config.base_url!r})"
