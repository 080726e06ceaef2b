import json

import httpx
import pytest
from pydantic import BaseModel

from zimfetch.domain.errors import TransportFailure
from zimfetch.domain.models import ErrorKind
from zimfetch.schema.validator import ParseResult


class CreatePost(BaseModel):
    title: str
    body: str
    userId: int


class Post(BaseModel):
    id: int
    title: str


class CountingValidator:
    def __init__(self):
        self.calls = 0

    def parse(self, value):
        self.calls += 1
        return ParseResult.ok(value)


@pytest.mark.anyio
async def test_success_json_body_is_returned_as_data(make_client):
    body = {"id": 1, "title": "hello"}
    client = make_client(lambda request: httpx.Response(200, json=body))

    res = await client.route(method="GET", path="/posts/1").execute()

    assert res.ok
    assert res.error is None
    assert res.status == 200
    assert res.data == body


@pytest.mark.anyio
async def test_text_and_json_like_bodies(make_client):
    client = make_client(lambda request: httpx.Response(200, text="plain hello"))
    res = await client.route(method="GET", path="/txt").execute()
    assert res.data == "plain hello"

    # no content type, but syntactically JSON
    client = make_client(lambda request: httpx.Response(200, content=b'[1, 2, 3]'))
    res = await client.route(method="GET", path="/list").execute()
    assert res.data == [1, 2, 3]


@pytest.mark.anyio
async def test_empty_body_is_none(make_client):
    client = make_client(lambda request: httpx.Response(204))
    res = await client.route(method="DELETE", path="/posts/1").execute()
    assert res.ok
    assert res.status == 204
    assert res.data is None


@pytest.mark.anyio
async def test_malformed_json_is_parse_error(make_client):
    client = make_client(
        lambda request: httpx.Response(200, content=b"{not json", headers={"content-type": "application/json"})
    )
    res = await client.route(method="GET", path="/broken").execute()
    assert res.data is None
    assert res.error.kind == ErrorKind.PARSE
    assert res.status == 200
    assert res.error.status == 200


@pytest.mark.anyio
async def test_http_error_skips_output_validation(make_client):
    validator = CountingValidator()
    client = make_client(lambda request: httpx.Response(404, json={"detail": "missing"}))

    res = await client.route(method="GET", path="/posts/999").output(validator).execute()

    assert res.error.kind == ErrorKind.HTTP
    assert res.error.status == 404
    assert res.status == 404
    assert res.error.cause == {"detail": "missing"}
    assert "404" in res.error.message
    assert validator.calls == 0


@pytest.mark.anyio
async def test_http_error_falls_back_to_raw_text(make_client):
    client = make_client(
        lambda request: httpx.Response(502, content=b"{bad gateway", headers={"content-type": "application/json"})
    )
    res = await client.route(method="GET", path="/x").execute()
    assert res.error.kind == ErrorKind.HTTP
    assert res.error.cause == "{bad gateway"


@pytest.mark.anyio
async def test_output_validation_failure_keeps_real_status(make_client):
    client = make_client(lambda request: httpx.Response(200, json={"id": "not-an-int"}))
    res = await client.route(method="GET", path="/posts/1").output(Post).execute()

    assert res.error.kind == ErrorKind.VALIDATION
    assert res.status == 200
    assert res.error.status == 200
    assert {i.path for i in res.error.issues} == {("id",), ("title",)}


@pytest.mark.anyio
async def test_output_validation_success_returns_validated_value(make_client):
    client = make_client(lambda request: httpx.Response(200, json={"id": "3", "title": "t"}))
    res = await client.route(method="GET", path="/posts/3").output(Post).execute()
    assert res.data == Post(id=3, title="t")


@pytest.mark.anyio
async def test_rejected_input_never_reaches_network(make_client):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(201, json={})

    client = make_client(handler, base_url="https://jsonplaceholder.typicode.com")
    create = client.route({"method": "POST", "path": "/posts"}).input(CreatePost)

    res = await create.execute({"title": "foo"})

    assert calls == []
    assert res.status == 0
    assert res.data is None
    assert res.error.kind == ErrorKind.VALIDATION
    paths = [i.path for i in res.error.issues]
    assert ("body",) in paths
    assert ("userId",) in paths


@pytest.mark.anyio
async def test_valid_input_is_sent_as_json(make_client):
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["content_type"] = request.headers.get("content-type")
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": 101, **seen["body"]})

    client = make_client(handler)
    create = client.route(method="POST", path="/posts").input(CreatePost)

    res = await create.execute({"title": "foo", "body": "bar", "userId": "1"})

    assert res.status == 201
    assert seen["method"] == "POST"
    assert seen["url"] == "https://api.example.com/posts"
    assert seen["content_type"] == "application/json"
    # validated (coerced) input is what gets sent
    assert seen["body"] == {"title": "foo", "body": "bar", "userId": 1}


@pytest.mark.anyio
async def test_caller_content_type_is_preserved(make_client):
    seen = {}

    def handler(request):
        seen["content_type"] = request.headers.get("content-type")
        return httpx.Response(200, json={})

    client = make_client(handler)
    await client.route(method="PUT", path="/doc").execute(
        {"a": 1}, headers={"content-type": "application/merge-patch+json"}
    )
    assert seen["content_type"] == "application/merge-patch+json"


@pytest.mark.anyio
async def test_get_sends_params_and_no_body(make_client):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["content"] = request.content
        return httpx.Response(200, json=[])

    client = make_client(handler)
    await client.route(method="GET", path="/posts").execute({"ignored": True}, {"userId": 1, "draft": None})

    assert seen["url"] == "https://api.example.com/posts?userId=1"
    assert seen["content"] == b""


@pytest.mark.anyio
async def test_default_headers_merge_with_per_call_headers(make_client):
    seen = {}

    def handler(request):
        seen["x-api-key"] = request.headers.get("x-api-key")
        seen["accept"] = request.headers.get("accept")
        return httpx.Response(200, json={})

    client = make_client(handler, headers={"X-Api-Key": "demo-key", "Accept": "text/plain"})
    await client.route(method="GET", path="/x").execute(headers={"accept": "application/json"})

    assert seen["x-api-key"] == "demo-key"
    assert seen["accept"] == "application/json"


@pytest.mark.anyio
async def test_transport_failure_is_network_error(make_client):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    res = await client.route(method="GET", path="/x").execute()

    assert res.status == 0
    assert res.data is None
    assert res.error.kind == ErrorKind.NETWORK
    assert isinstance(res.error.cause, TransportFailure)


@pytest.mark.anyio
async def test_client_execute_without_route(make_client):
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": 101})

    client = make_client(handler, headers={"Authorization": "Bearer default"})
    res = await client.execute(
        path="/posts",
        method="post",
        body={"title": "foo", "body": "bar", "userId": 1},
        headers={"authorization": "Bearer token123"},
        timeout_ms=3000,
    )

    assert res.data == {"id": 101}
    assert res.status == 201
    assert seen["method"] == "POST"
    assert seen["url"] == "https://api.example.com/posts"
    assert seen["auth"] == "Bearer token123"
    assert seen["body"]["userId"] == 1
