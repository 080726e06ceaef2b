from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlencode

from pydantic import BaseModel

from zimfetch.domain.models import BODYLESS_METHODS

JSON_CONTENT_TYPE = "application/json"

_LEADING_SLASHES = re.compile(r"^/+")
_TRAILING_SLASHES = re.compile(r"/+$")


@dataclass(frozen=True)
class EncodedBody:
    content: Optional[Union[str, bytes]]
    content_type: Optional[str] = None


def join_url(base_url: str, path: str) -> str:
    """Join base and path with exactly one slash between them."""
    base = _TRAILING_SLASHES.sub("", (base_url or "").strip())
    tail = _LEADING_SLASHES.sub("", (path or "").strip())
    return f"{base}/{tail}"


def _query_value(v: Any) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)


def encode_query(params: Optional[Mapping[str, Any]]) -> str:
    """
    URL-encode params in insertion order.

    None values are dropped; lists/tuples repeat the key.
    """
    if not params:
        return ""
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((str(key), _query_value(v)) for v in value if v is not None)
        else:
            pairs.append((str(key), _query_value(value)))
    return urlencode(pairs)


def build_url(base_url: str, path: str, params: Optional[Mapping[str, Any]] = None) -> str:
    url = join_url(base_url, path)
    query = encode_query(params)
    if not query:
        return url
    return f"{url}{'&' if '?' in url else '?'}{query}"


def has_header(headers: Mapping[str, str], name: str) -> bool:
    lname = name.lower()
    return any(k.lower() == lname for k in headers)


def merge_headers(base: Mapping[str, str], override: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Per-call headers win; keys compare case-insensitively."""
    if not override:
        return dict(base)
    replaced = {k.lower() for k in override}
    merged = {k: v for k, v in base.items() if k.lower() not in replaced}
    merged.update(override)
    return merged


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, Mapping):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def encode_body(method: str, value: Any) -> EncodedBody:
    """
    Structured values become JSON; str/bytes pass through untouched; other
    primitives are sent as text. GET/HEAD never carry a body.
    """
    if value is None or method.upper() in BODYLESS_METHODS:
        return EncodedBody(content=None)
    if isinstance(value, (BaseModel, Mapping, list, tuple)):
        return EncodedBody(content=json.dumps(_jsonable(value)), content_type=JSON_CONTENT_TYPE)
    if isinstance(value, (str, bytes)):
        return EncodedBody(content=value)
    if isinstance(value, bool):
        return EncodedBody(content="true" if value else "false")
    return EncodedBody(content=str(value))


def is_json_content_type(content_type: str) -> bool:
    media = content_type.split(";", 1)[0].strip().lower()
    return media == JSON_CONTENT_TYPE or media.endswith("+json")


def looks_like_json(text: str) -> bool:
    stripped = text.lstrip()
    return stripped.startswith("{") or stripped.startswith("[")
