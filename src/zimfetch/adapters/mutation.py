from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from zimfetch.adapters.base import inject, raise_for_error
from zimfetch.client import Endpoint
from zimfetch.router.tree import EnhancedEndpoint, PathTrace, RouterApi, decorate_tree


@dataclass(frozen=True)
class MutationEndpoint(EnhancedEndpoint):
    """Push-style leaf; variables arrive at call time, no cache key."""

    def mutation_options(self, **options: Any) -> dict[str, Any]:
        endpoint = self.endpoint

        async def mutation_fn(variables: Any = None) -> Any:
            return raise_for_error(await endpoint.execute(variables))

        return inject(options, "mutation_fn", mutation_fn)


def enhance_with_mutation(endpoint: Endpoint, trace: PathTrace) -> MutationEndpoint:
    return MutationEndpoint(endpoint=endpoint, trace=trace)


def create_mutation_api(tree: Mapping[str, Any]) -> RouterApi:
    return decorate_tree(tree, enhance_with_mutation)
