"""Shared utilities for the MCP and HTTP surfaces."""
from __future__ import annotations

from typing import Any, Callable, Dict, Union

from client.errors import HTTP_STATUS, EndpointsExhausted
from client.n8n_client import N8nClient


def id_or_raise(
    resource: Dict[str, Any],
    kind: str = "workflow",
    raise_fn: Callable[[str], Exception] = ValueError,
) -> Union[str, int]:
    """Extract the ``id`` of an n8n resource.

    Raises:
        Exception created by raise_fn if the id is missing or not a str/int
    """
    identifier = resource.get("id")
    if isinstance(identifier, (str, int)) and not isinstance(identifier, bool):
        return identifier
    raise raise_fn(f"{kind} response missing id")


def _all_not_found(exc: EndpointsExhausted) -> bool:
    return bool(exc.failures) and all(
        f.kind == HTTP_STATUS and f.status_code == 404 for f in exc.failures
    )


async def get_workflow_by_identifier(
    client: N8nClient,
    identifier: str,
    raise_fn: Callable[[str], Exception] = ValueError,
) -> Dict[str, Any]:
    """Fetch a workflow by id, or by exact name when no endpoint knows the id.

    The id lookup fails closed, so an unreachable n8n surfaces as
    ``EndpointsExhausted``. The name search only runs when every candidate
    answered 404.

    Raises:
        EndpointsExhausted: the id lookup failed for a reason other than 404
        Exception created by raise_fn if nothing matches
    """
    try:
        return await client.get_workflow(identifier)
    except EndpointsExhausted as exc:
        if not _all_not_found(exc):
            raise

    workflows = await client.list_workflows()
    workflow = next(
        (wf for wf in workflows if isinstance(wf, dict) and wf.get("name") == identifier),
        None,
    )
    if not workflow:
        raise raise_fn(f"workflow {identifier} not found")
    return await client.get_workflow(id_or_raise(workflow, raise_fn=raise_fn))


def require_str(arguments: Dict[str, Any], key: str) -> str:
    value = arguments.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{key} must be a non-empty string")
    return value


def optional_str(arguments: Dict[str, Any], key: str) -> Union[str, None]:
    value = arguments.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{key} must be a string if provided")
    return value


def require_dict(arguments: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = arguments.get(key)
    if not isinstance(value, dict):
        raise ValueError(f"{key} must be an object")
    return value


def optional_dict(arguments: Dict[str, Any], key: str) -> Union[Dict[str, Any], None]:
    value = arguments.get(key)
    if value is not None and not isinstance(value, dict):
        raise ValueError(f"{key} must be an object if provided")
    return value


def require_bool(arguments: Dict[str, Any], key: str) -> bool:
    value = arguments.get(key)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")
    return value


def optional_bool(arguments: Dict[str, Any], key: str) -> Union[bool, None]:
    value = arguments.get(key)
    if value is not None and not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean if provided")
    return value


def optional_int(arguments: Dict[str, Any], key: str, default: int) -> int:
    value = arguments.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{key} must be a positive integer")
    return value


def require_str_list(arguments: Dict[str, Any], key: str) -> list:
    value = arguments.get(key)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{key} must be an array of strings")
    return value


def optional_str_list(arguments: Dict[str, Any], key: str) -> Union[list, None]:
    if arguments.get(key) is None:
        return None
    return require_str_list(arguments, key)


def require_dict_list(arguments: Dict[str, Any], key: str) -> list:
    value = arguments.get(key)
    if not isinstance(value, list) or not value or not all(isinstance(v, dict) for v in value):
        raise ValueError(f"{key} must be a non-empty array of objects")
    return value
