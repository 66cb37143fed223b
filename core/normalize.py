"""Collapse the envelopes n8n uses into one list / one mapping."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

Normalized = Union[List[Any], Dict[str, Any]]


class NormalizationError(ValueError):
    """Raised when a successful response body has no usable shape."""


def normalize_body(body: Any, resource_key: Optional[str] = None) -> Normalized:
    """
    Normalize a decoded JSON body.

    Precedence:
        1. a bare list is the collection itself
        2. a list under ``data``
        3. a list under ``resource_key`` (e.g. ``credentials``, ``nodeTypes``)
        4. otherwise the mapping is a single resource

    Raises:
        NormalizationError: for scalars and null
    """
    if isinstance(body, list):
        return body
    if not isinstance(body, dict):
        raise NormalizationError(f"unexpected body type: {type(body).__name__}")

    data = body.get("data")
    if isinstance(data, list):
        return data
    if resource_key:
        named = body.get(resource_key)
        if isinstance(named, list):
            return named
    return body


def as_collection(body: Any, resource_key: Optional[str] = None) -> List[Any]:
    normalized = normalize_body(body, resource_key)
    if not isinstance(normalized, list):
        raise NormalizationError("expected a collection, got a single object")
    return normalized


def as_resource(body: Any) -> Dict[str, Any]:
    """Single-resource view: unwraps ``{"data": {...}}`` and treats empty as ``{}``."""
    if body is None or body == "":
        return {}
    normalized = normalize_body(body)
    if not isinstance(normalized, dict):
        raise NormalizationError("expected a single object, got a collection")
    inner = normalized.get("data")
    if isinstance(inner, dict) and len(normalized) == 1:
        return inner
    return normalized
