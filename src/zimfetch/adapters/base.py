from __future__ import annotations

import logging
from typing import Any, Mapping

from zimfetch.domain.errors import EndpointError
from zimfetch.domain.models import EndpointResponse

logger = logging.getLogger(__name__)


def raise_for_error(result: EndpointResponse) -> Any:
    """
    Convert a discriminated result into the raising convention: return
    ``data`` on success, raise ``EndpointError`` otherwise.
    """
    if result.error is not None:
        raise EndpointError(result.error, status=result.status)
    return result.data


def inject(options: Mapping[str, Any], name: str, fn: Any) -> dict[str, Any]:
    """Copy caller options and set the one function member the adapter owns."""
    out = dict(options)
    if name in out:
        logger.debug("replacing caller-supplied %s", name)
    out[name] = fn
    return out
