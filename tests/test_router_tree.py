import copy

import httpx
import pytest

from zimfetch.adapters.mutation import MutationEndpoint, create_mutation_api
from zimfetch.adapters.query import QueryEndpoint, create_query_api
from zimfetch.client import Client
from zimfetch.router.tree import (
    CallableEndpoint,
    RouterApi,
    classify,
    create_client_api,
    decorate_tree,
    walk_endpoints,
)


def build_tree(client=None):
    client = client or Client(base_url="https://a.test")
    return {
        "a": client.route(method="GET", path="/a"),
        "b": {"c": client.route(method="POST", path="/b/c")},
    }


def test_classify_is_explicit_about_node_kinds():
    client = Client()
    ep = client.route(method="GET", path="/x")
    assert classify(ep) == "endpoint"
    assert classify(CallableEndpoint(ep, ("x",))) == "endpoint"
    assert classify({"x": ep}) == "router"
    assert classify("v1") == "opaque"
    assert classify(None) == "opaque"
    assert classify(lambda: None) == "opaque"


def test_flatten_preserves_shape_and_leaves_source_untouched():
    tree = build_tree()
    a, c = tree["a"], tree["b"]["c"]
    snapshot = copy.copy(tree)
    inner_snapshot = copy.copy(tree["b"])

    api = create_client_api(tree)

    assert set(api) == {"a", "b"}
    assert set(api["b"]) == {"c"}
    assert callable(api.a)
    assert callable(api.b.c)

    # source tree and endpoints unchanged
    assert tree == snapshot
    assert tree["b"] == inner_snapshot
    assert tree["a"] is a
    assert tree["b"]["c"] is c
    assert not isinstance(tree["a"], CallableEndpoint)


def test_opaque_values_are_carried_by_reference():
    meta = ["not", "an", "endpoint"]
    marker = object()
    tree = {**build_tree(), "meta": meta, "version": "v1", "marker": marker}

    api = create_client_api(tree)

    assert api["meta"] is meta
    assert api["version"] == "v1"
    assert api["marker"] is marker


def test_trace_follows_keys_and_ignores_siblings():
    tree = build_tree()
    api = create_query_api(tree)
    assert api.b.c.trace == ("b", "c")
    assert api.a.trace == ("a",)

    renamed = {"z": tree["a"], "b": tree["b"]}
    assert create_query_api(renamed).b.c.trace == ("b", "c")


def test_decoration_is_fresh_each_time():
    tree = build_tree()
    first = create_client_api(tree)
    second = create_client_api(tree)
    assert first is not second
    assert first.a is not second.a
    assert first.a.endpoint is second.a.endpoint is tree["a"]


def test_decorators_stack_on_the_endpoint_not_the_previous_surface():
    tree = build_tree()
    query_api = create_query_api(tree)
    stacked = create_mutation_api(query_api)

    leaf = stacked.b.c
    assert isinstance(leaf, MutationEndpoint)
    assert not isinstance(leaf, QueryEndpoint)
    assert leaf.endpoint is tree["b"]["c"]
    assert leaf.trace == ("b", "c")


def test_decorate_tree_passes_trace_to_adapt():
    seen = []

    def adapt(endpoint, trace):
        seen.append((trace, endpoint.path))
        return trace

    api = decorate_tree(build_tree(), adapt)
    assert seen == [(("a",), "/a"), (("b", "c"), "/b/c")]
    assert api.b.c == ("b", "c")


def test_decorate_tree_rejects_non_mapping_root():
    with pytest.raises(TypeError):
        decorate_tree([Client().route(method="GET", path="/x")], lambda e, t: e)


def test_walk_endpoints_in_traversal_order():
    tree = build_tree()
    assert [(t, ep.path) for t, ep in walk_endpoints(tree)] == [(("a",), "/a"), (("b", "c"), "/b/c")]


def test_router_api_entries_shadow_mapping_methods_and_are_read_only():
    client = Client()
    api = create_client_api({"users": {"get": client.route(method="GET", path="/users"), "keys": "opaque"}})

    assert isinstance(api.users, RouterApi)
    assert isinstance(api.users.get, CallableEndpoint)
    assert api.users["keys"] == "opaque"

    with pytest.raises(AttributeError):
        api.users = {}
    with pytest.raises(TypeError):
        api["users"] = {}


@pytest.mark.anyio
async def test_flattened_leaf_calls_endpoint_execute(make_client):
    def handler(request):
        return httpx.Response(200, json={"path": request.url.path, "query": request.url.query.decode()})

    api = create_client_api(build_tree(make_client(handler)))

    res = await api.a(params={"page": 2})
    assert res.data == {"path": "/a", "query": "page=2"}

    res = await api.b.c({"x": 1})
    assert res.status == 200
    assert res.data["path"] == "/b/c"


def test_decorators_stack_over_keys_named_like_mapping_methods():
    client = Client()
    listing = client.route(method="GET", path="/items")
    tree = {"items": {"list": listing}, "keys": {"rotate": client.route(method="POST", path="/keys/rotate")}}

    stacked = create_mutation_api(create_query_api(tree))

    assert isinstance(stacked.items.list, MutationEndpoint)
    assert stacked.items.list.endpoint is listing
    assert stacked.keys.rotate.trace == ("keys", "rotate")
    assert [t for t, _ in walk_endpoints(stacked)] == [("items", "list"), ("keys", "rotate")]


def test_router_api_behaves_as_mapping_with_shadowing_entries():
    client = Client()
    api = create_client_api(
        {
            "users": {
                "keys": client.route(method="GET", path="/users/keys"),
                "items": client.route(method="GET", path="/users/items"),
                "values": "opaque",
            }
        }
    )
    users = api.users

    assert isinstance(users.keys, CallableEndpoint)
    assert set(dict(users)) == {"keys", "items", "values"}
    assert "items" in users
    assert len(users) == 3
    assert users == dict(users)
    assert users["values"] == "opaque"
    assert [k for k in users] == ["keys", "items", "values"]
