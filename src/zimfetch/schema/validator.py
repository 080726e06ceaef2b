from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Protocol, get_origin, runtime_checkable

from pydantic import BaseModel, TypeAdapter, ValidationError

from zimfetch.domain.models import Issue


@dataclass(frozen=True)
class ParseResult:
    success: bool
    data: Any = None
    issues: tuple[Issue, ...] = ()

    @classmethod
    def ok(cls, data: Any) -> "ParseResult":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, issues: Iterable[Any]) -> "ParseResult":
        return cls(success=False, issues=tuple(_to_issue(i) for i in issues))


@runtime_checkable
class SchemaValidator(Protocol):
    """Anything exposing ``parse(value) -> {success, data | issues}``."""

    def parse(self, value: Any) -> Any:
        ...


class PydanticSchema:
    """
    Validator capability over a pydantic model or any type pydantic can
    validate (``TypedDict``, ``list[int]``, dataclasses, ...).
    """

    def __init__(self, schema: Any) -> None:
        self.schema = schema
        self._adapter = TypeAdapter(schema)

    def parse(self, value: Any) -> ParseResult:
        try:
            return ParseResult.ok(self._adapter.validate_python(value))
        except ValidationError as exc:
            return ParseResult.failed(
                Issue(path=tuple(err.get("loc", ())), message=err.get("msg", "invalid"))
                for err in exc.errors()
            )

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PydanticSchema) and other.schema == self.schema

    def __hash__(self) -> int:
        try:
            return hash(("PydanticSchema", self.schema))
        except TypeError:
            return hash(("PydanticSchema", id(self.schema)))

    def __repr__(self) -> str:
        name = getattr(self.schema, "__name__", repr(self.schema))
        return f"PydanticSchema({name})"


def _to_issue(raw: Any) -> Issue:
    if isinstance(raw, Issue):
        return raw
    if isinstance(raw, Mapping):
        path = raw.get("path", raw.get("loc", ()))
        message = raw.get("message", raw.get("msg", "invalid"))
    else:
        path = getattr(raw, "path", ())
        message = getattr(raw, "message", str(raw))
    if isinstance(path, (str, int)):
        path = (path,)
    return Issue(path=tuple(path or ()), message=str(message))


def _has_parse(value: Any) -> bool:
    if not callable(getattr(value, "parse", None)):
        return False
    if isinstance(value, type):
        # a class qualifies only if parse can be called without an instance
        return isinstance(inspect.getattr_static(value, "parse"), (classmethod, staticmethod))
    return True


def as_validator(value: Any) -> SchemaValidator:
    """
    Coerce a builder argument into a validator capability.

    pydantic models are wrapped in ``PydanticSchema``; anything else with a
    callable ``parse`` is used as-is (for classes, a classmethod or
    staticmethod ``parse``); remaining types are handed to pydantic.
    """
    if isinstance(value, type) and issubclass(value, BaseModel):
        return PydanticSchema(value)
    if _has_parse(value):
        return value
    if isinstance(value, type) or get_origin(value) is not None:
        return PydanticSchema(value)
    raise TypeError(
        f"Expected a validator with parse(value) or a pydantic model, got {type(value).__name__}"
    )


def run_validator(validator: SchemaValidator, value: Any) -> ParseResult:
    """Run ``validator.parse`` and normalize whatever shape it returns."""
    raw = validator.parse(value)
    if isinstance(raw, ParseResult):
        return raw

    success: Optional[bool]
    if isinstance(raw, Mapping):
        success = raw.get("success")
        data = raw.get("data")
        issues = raw.get("issues") or ()
    else:
        success = getattr(raw, "success", None)
        data = getattr(raw, "data", None)
        issues = getattr(raw, "issues", None) or ()

    if success is None:
        raise TypeError(f"{type(validator).__name__}.parse returned {type(raw).__name__} without 'success'")
    if success:
        return ParseResult.ok(data)
    return ParseResult.failed(issues or [Issue(message="validation failed")])
