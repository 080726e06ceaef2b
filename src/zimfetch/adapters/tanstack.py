from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from zimfetch.adapters.mutation import MutationEndpoint
from zimfetch.adapters.query import QueryEndpoint
from zimfetch.client import Endpoint
from zimfetch.router.tree import PathTrace, RouterApi, decorate_tree


@dataclass(frozen=True)
class TanStackEndpoint(QueryEndpoint, MutationEndpoint):
    """Leaf exposing both ``query_options`` and ``mutation_options``."""


def enhance_endpoint(endpoint: Endpoint, trace: PathTrace) -> TanStackEndpoint:
    return TanStackEndpoint(endpoint=endpoint, trace=trace)


def create_tanstack_api(tree: Mapping[str, Any]) -> RouterApi:
    """
    Decorate every endpoint for use with a query/mutation cache::

        api = create_tanstack_api({"users": {"list": list_users, "create": create_user}})
        opts = api.users.list.query_options(params={"page": 2})
        await opts["query_fn"]()
    """
    return decorate_tree(tree, enhance_endpoint)
