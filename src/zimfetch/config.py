from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional

DEFAULT_TIMEOUT_MS: float = 30_000

ENV_BASE_URL = "ZIMFETCH_BASE_URL"
ENV_TIMEOUT_MS = "ZIMFETCH_TIMEOUT_MS"
ENV_HEADERS = "ZIMFETCH_HEADERS"


@dataclass(frozen=True)
class ClientConfig:
    """
    Shared, read-only settings of one Client.

    Every Endpoint created by the client holds a reference to the same
    instance; headers are frozen into a read-only mapping.
    """

    base_url: str = ""
    default_headers: Mapping[str, str] = field(default_factory=dict)
    default_timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS

    def __post_init__(self) -> None:
        if self.default_timeout_ms is not None and self.default_timeout_ms < 0:
            raise ValueError(f"default_timeout_ms must be >= 0, got {self.default_timeout_ms}")
        object.__setattr__(self, "default_headers", MappingProxyType(dict(self.default_headers)))

    def with_overrides(
        self,
        base_url: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout_ms: Optional[float] = None,
    ) -> "ClientConfig":
        return replace(
            self,
            base_url=self.base_url if base_url is None else base_url,
            default_headers={**self.default_headers, **(headers or {})},
            default_timeout_ms=self.default_timeout_ms if timeout_ms is None else timeout_ms,
        )


def _parse_timeout(raw: str) -> Optional[float]:
    text = raw.strip().lower()
    if text in ("", "0", "none", "off"):
        return None
    try:
        value = float(text)
    except ValueError as exc:
        raise ValueError(f"{ENV_TIMEOUT_MS} must be a number of milliseconds, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{ENV_TIMEOUT_MS} must be >= 0, got {raw!r}")
    return value


def parse_header(line: str) -> tuple[str, str]:
    name, sep, value = line.partition(":")
    if not sep or not name.strip():
        raise ValueError(f"Malformed header {line!r}, expected 'Name: value'")
    return name.strip(), value.strip()


def parse_header_pairs(raw: str) -> dict[str, str]:
    # "Key: value; Other: value"
    return dict(parse_header(chunk.strip()) for chunk in raw.split(";") if chunk.strip())


def load_client_config(environ: Optional[Mapping[str, str]] = None) -> ClientConfig:
    env = os.environ if environ is None else environ

    timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS
    if ENV_TIMEOUT_MS in env:
        timeout_ms = _parse_timeout(env[ENV_TIMEOUT_MS])

    return ClientConfig(
        base_url=env.get(ENV_BASE_URL, "").strip(),
        default_headers=parse_header_pairs(env.get(ENV_HEADERS, "")),
        default_timeout_ms=timeout_ms,
    )
