from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Literal, Mapping, Optional

from zimfetch.client import Endpoint
from zimfetch.domain.models import EndpointResponse

logger = logging.getLogger(__name__)

NodeKind = Literal["endpoint", "router", "opaque"]
PathTrace = tuple[str, ...]


@dataclass(frozen=True)
class EnhancedEndpoint:
    """
    Leaf produced by decoration: the original endpoint plus its position.

    Adapters subclass this and add their calling convention. ``execute`` is
    always the wrapped endpoint's, so a decorated tree can be decorated
    again by another adapter.
    """

    endpoint: Endpoint
    trace: PathTrace = ()

    @property
    def method(self) -> str:
        return self.endpoint.method

    @property
    def path(self) -> str:
        return self.endpoint.path

    async def execute(
        self,
        input: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> EndpointResponse:
        return await self.endpoint.execute(input, params, **kwargs)


@dataclass(frozen=True)
class CallableEndpoint(EnhancedEndpoint):
    """Direct-call leaf: ``await api.users.get(input, params)``."""

    async def __call__(
        self,
        input: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> EndpointResponse:
        return await self.endpoint.execute(input, params, **kwargs)


class RouterApi(dict):
    """
    Read-only decorated tree.

    Attribute access reaches entries before methods, so ``api.users.get`` is
    the ``get`` entry, not ``dict.get``. Mapping operations (iteration,
    ``dict(api)``, ``==``, ``in``) go through dict's own slots and never see
    the shadowing.
    """

    def __getattribute__(self, name: str) -> Any:
        if not name.startswith("__") and dict.__contains__(self, name):
            return dict.__getitem__(self, name)
        return object.__getattribute__(self, name)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("decorated router trees are read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("decorated router trees are read-only")

    def _read_only(self, *args: Any, **kwargs: Any) -> None:
        raise TypeError("decorated router trees are read-only")

    __setitem__ = __delitem__ = __ior__ = _read_only
    clear = pop = popitem = setdefault = update = _read_only

    def __repr__(self) -> str:
        return f"RouterApi({dict.__repr__(self)})"


def classify(value: Any) -> NodeKind:
    if isinstance(value, (Endpoint, EnhancedEndpoint)):
        return "endpoint"
    if isinstance(value, Mapping):
        return "router"
    return "opaque"


def unwrap(value: Any) -> Endpoint:
    # a previous decoration's leaf: adapt the endpoint, not its surface
    return value.endpoint if isinstance(value, EnhancedEndpoint) else value


def decorate_tree(
    tree: Mapping[str, Any],
    adapt: Callable[[Endpoint, PathTrace], Any],
    base_trace: PathTrace = (),
) -> RouterApi:
    """
    Shape-preserving walk of a router tree.

    Every endpoint at trace ``p`` becomes ``adapt(endpoint, p)``; nested
    mappings recurse; anything else is carried over by reference. The
    source tree is never modified. Cycles are not detected.
    """
    if classify(tree) != "router":
        raise TypeError(f"Router tree must be a mapping, got {type(tree).__name__}")

    out: dict[str, Any] = {}
    for key in tree:
        value = tree[key]
        trace = (*base_trace, str(key))
        kind = classify(value)
        if kind == "endpoint":
            endpoint = unwrap(value)
            out[key] = adapt(endpoint, trace)
            logger.debug("enhanced %s -> %s %s", ".".join(trace), endpoint.method, endpoint.path)
        elif kind == "router":
            out[key] = decorate_tree(value, adapt, trace)
        else:
            out[key] = value
    return RouterApi(out)


def walk_endpoints(tree: Mapping[str, Any], base_trace: PathTrace = ()) -> Iterator[tuple[PathTrace, Endpoint]]:
    """Yield ``(trace, endpoint)`` in traversal order."""
    for key in tree:
        value = tree[key]
        trace = (*base_trace, str(key))
        kind = classify(value)
        if kind == "endpoint":
            yield trace, unwrap(value)
        elif kind == "router":
            yield from walk_endpoints(value, trace)


def create_client_api(tree: Mapping[str, Any]) -> RouterApi:
    """Flatten a router tree into directly callable leaves."""
    return decorate_tree(tree, CallableEndpoint)
