"""
Pull-style ("query") adapter.

Each endpoint becomes a ``QueryEndpoint`` whose ``query_options()`` produces
the options dict a query cache expects:

    {"query_key": ("users", "list", "page=2"), "query_fn": <async fn>, ...}

The key defaults to the endpoint's trace in the router tree, followed by the
encoded params when there are any. ``query_fn`` returns the data or raises
``EndpointError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from zimfetch.adapters.base import inject, raise_for_error
from zimfetch.client import Endpoint
from zimfetch.http.request import encode_query
from zimfetch.router.tree import EnhancedEndpoint, PathTrace, RouterApi, decorate_tree

QueryKey = tuple[Any, ...]


@dataclass(frozen=True)
class QueryEndpoint(EnhancedEndpoint):
    def get_key(self, params: Optional[Mapping[str, Any]] = None) -> QueryKey:
        query = encode_query(params)
        return (*self.trace, query) if query else tuple(self.trace)

    def query_options(
        self,
        *,
        params: Optional[Mapping[str, Any]] = None,
        input: Any = None,
        query_key: Union[str, QueryKey, None] = None,
        **options: Any,
    ) -> dict[str, Any]:
        endpoint = self.endpoint

        async def query_fn(context: Any = None) -> Any:
            return raise_for_error(await endpoint.execute(input, params))

        out = inject(options, "query_fn", query_fn)
        if query_key is None:
            out["query_key"] = self.get_key(params)
        elif isinstance(query_key, (str, bytes)):
            out["query_key"] = (query_key,)
        else:
            out["query_key"] = tuple(query_key)
        return out


def enhance_with_query(endpoint: Endpoint, trace: PathTrace) -> QueryEndpoint:
    return QueryEndpoint(endpoint=endpoint, trace=trace)


def create_query_api(tree: Mapping[str, Any]) -> RouterApi:
    return decorate_tree(tree, enhance_with_query)
