"""Static fallback table: logical n8n operation -> ordered endpoint candidates.

The n8n API surface differs between versions and deployments (public API
under ``/api/v1``, internal ``/rest`` routes, older camelCase paths). Each
operation lists every shape known to work somewhere, in the order they
should be tried. Nothing in this module performs I/O, so the fallback policy
can be inspected and tested on its own.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

DISCOVERY = "discovery"
STANDARD = "standard"


class Shape(Enum):
    """Shape of a normalized operation result."""

    COLLECTION = "collection"
    RESOURCE = "resource"


class FailurePolicy(Enum):
    """What happens once every candidate has failed."""

    FAIL_OPEN = "fail_open"  # return an empty result
    FAIL_CLOSED = "fail_closed"  # raise EndpointsExhausted


@dataclass(frozen=True)
class EndpointCandidate:
    """One (method, path template) guess for reaching an operation."""

    method: str
    path: str
    params: Tuple[Tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        if not self.path.startswith("/"):
            raise ValueError(f"candidate path must start with '/': {self.path!r}")

    @property
    def label(self) -> str:
        if not self.params:
            return f"{self.method} {self.path}"
        query = "&".join(f"{k}={v}" for k, v in self.params)
        return f"{self.method} {self.path}?{query}"

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class Operation:
    """A logical operation and the ordered candidates that may serve it."""

    name: str
    candidates: Tuple[EndpointCandidate, ...]
    shape: Shape = Shape.RESOURCE
    resource_key: Optional[str] = None
    timeout_class: str = STANDARD
    policy: Optional[FailurePolicy] = field(default=None)

    def __post_init__(self) -> None:
        if not self.candidates:
            raise ValueError(f"operation {self.name} has no endpoint candidates")
        if self.policy is None:
            default = (
                FailurePolicy.FAIL_OPEN
                if self.shape is Shape.COLLECTION
                else FailurePolicy.FAIL_CLOSED
            )
            object.__setattr__(self, "policy", default)

    @property
    def fails_open(self) -> bool:
        return self.policy is FailurePolicy.FAIL_OPEN

    def empty_result(self) -> Any:
        return [] if self.shape is Shape.COLLECTION else {}


def _c(method: str, path: str, **params: str) -> EndpointCandidate:
    return EndpointCandidate(method, path, tuple(params.items()))


def _op(name: str, *candidates: EndpointCandidate, **kwargs: Any) -> Operation:
    return Operation(name=name, candidates=tuple(candidates), **kwargs)


_COLLECTION = Shape.COLLECTION

OPERATIONS: Dict[str, Operation] = {
    op.name: op
    for op in (
        # Connectivity
        _op(
            "check_connectivity",
            _c("GET", "/workflows", limit="1"),
            shape=_COLLECTION,
            resource_key="workflows",
            policy=FailurePolicy.FAIL_CLOSED,
        ),
        _op("get_n8n_version", _c("GET", "/"), _c("GET", "/rest/settings")),
        # Workflows
        _op(
            "list_workflows",
            _c("GET", "/workflows"),
            _c("GET", "/rest/workflows"),
            shape=_COLLECTION,
            resource_key="workflows",
        ),
        _op("get_workflow", _c("GET", "/workflows/{id}"), _c("GET", "/rest/workflows/{id}")),
        _op("create_workflow", _c("POST", "/workflows"), _c("POST", "/rest/workflows")),
        _op(
            "update_workflow",
            _c("PUT", "/workflows/{id}"),
            _c("PATCH", "/workflows/{id}"),
            _c("PATCH", "/rest/workflows/{id}"),
        ),
        _op("delete_workflow", _c("DELETE", "/workflows/{id}"), _c("DELETE", "/rest/workflows/{id}")),
        _op(
            "activate_workflow",
            _c("POST", "/workflows/{id}/activate"),
            _c("POST", "/rest/workflows/{id}/activate"),
        ),
        _op(
            "deactivate_workflow",
            _c("POST", "/workflows/{id}/deactivate"),
            _c("POST", "/rest/workflows/{id}/deactivate"),
        ),
        _op(
            "execute_workflow",
            _c("POST", "/workflows/{id}/run"),
            _c("POST", "/workflows/{id}/execute"),
            _c("POST", "/rest/workflows/{id}/run"),
        ),
        _op(
            "export_workflows",
            _c("POST", "/workflows/export"),
            _c("POST", "/rest/workflows/export"),
            shape=_COLLECTION,
            resource_key="workflows",
            policy=FailurePolicy.FAIL_CLOSED,
        ),
        _op(
            "import_workflows",
            _c("POST", "/workflows/import"),
            _c("POST", "/rest/workflows/import"),
        ),
        # Executions
        _op(
            "list_executions",
            _c("GET", "/executions"),
            _c("GET", "/rest/executions"),
            shape=_COLLECTION,
            resource_key="executions",
        ),
        _op("get_execution", _c("GET", "/executions/{id}"), _c("GET", "/rest/executions/{id}")),
        _op("delete_execution", _c("DELETE", "/executions/{id}"), _c("DELETE", "/rest/executions/{id}")),
        _op("stop_execution", _c("POST", "/executions/{id}/stop"), _c("POST", "/rest/executions/{id}/stop")),
        _op("retry_execution", _c("POST", "/executions/{id}/retry"), _c("POST", "/rest/executions/{id}/retry")),
        # Credentials
        _op(
            "list_credentials",
            _c("GET", "/credentials"),
            _c("GET", "/rest/credentials"),
            _c("GET", "/api/v1/credentials"),
            _c("GET", "/credentials", includeData="false"),
            _c("GET", "/credentials/all"),
            _c("GET", "/credential"),
            shape=_COLLECTION,
            resource_key="credentials",
        ),
        _op("get_credential", _c("GET", "/credentials/{id}"), _c("GET", "/rest/credentials/{id}")),
        _op(
            "create_credential",
            _c("POST", "/credentials"),
            _c("POST", "/rest/credentials"),
            _c("POST", "/api/v1/credentials"),
            _c("PUT", "/credentials"),
        ),
        _op(
            "update_credential",
            _c("PATCH", "/credentials/{id}"),
            _c("PUT", "/credentials/{id}"),
            _c("PATCH", "/rest/credentials/{id}"),
            _c("PUT", "/rest/credentials/{id}"),
            _c("POST", "/credentials/{id}/update"),
        ),
        _op(
            "delete_credential",
            _c("DELETE", "/credentials/{id}"),
            _c("DELETE", "/rest/credentials/{id}"),
            _c("DELETE", "/api/v1/credentials/{id}"),
        ),
        _op(
            "test_credential",
            _c("POST", "/credentials/test"),
            _c("POST", "/rest/credentials/test"),
            _c("POST", "/api/v1/credentials/test"),
            _c("PUT", "/credentials/test"),
        ),
        _op(
            "get_credential_schema",
            _c("GET", "/credentials/schema/{type}"),
            _c("GET", "/rest/credentials/schema/{type}"),
        ),
        # Credential types
        _op(
            "list_credential_types",
            _c("GET", "/credential-types"),
            _c("GET", "/rest/credential-types"),
            _c("GET", "/api/v1/credential-types"),
            _c("GET", "/credentialTypes"),
            _c("GET", "/credentials/types"),
            _c("GET", "/types/credentials"),
            shape=_COLLECTION,
            resource_key="credentialTypes",
            timeout_class=DISCOVERY,
        ),
        # Node types
        _op(
            "list_node_types",
            _c("GET", "/node-types"),
            _c("GET", "/rest/node-types"),
            _c("GET", "/api/v1/node-types"),
            _c("GET", "/node-types/all"),
            _c("GET", "/nodes"),
            _c("GET", "/api/nodes"),
            _c("GET", "/nodeTypes"),
            shape=_COLLECTION,
            resource_key="nodeTypes",
            timeout_class=DISCOVERY,
        ),
        _op(
            "get_node_type",
            _c("GET", "/node-types/{name}"),
            _c("GET", "/rest/node-types/{name}"),
            timeout_class=DISCOVERY,
        ),
        # Variables
        _op(
            "list_variables",
            _c("GET", "/variables"),
            _c("GET", "/rest/variables"),
            shape=_COLLECTION,
            resource_key="variables",
        ),
        _op("get_variable", _c("GET", "/variables/{id}"), _c("GET", "/rest/variables/{id}")),
        _op("create_variable", _c("POST", "/variables"), _c("POST", "/rest/variables")),
        _op(
            "update_variable",
            _c("PUT", "/variables/{id}"),
            _c("PATCH", "/variables/{id}"),
            _c("PATCH", "/rest/variables/{id}"),
        ),
        _op("delete_variable", _c("DELETE", "/variables/{id}"), _c("DELETE", "/rest/variables/{id}")),
        # Tags
        _op("list_tags", _c("GET", "/tags"), _c("GET", "/rest/tags"), shape=_COLLECTION, resource_key="tags"),
        _op("get_tag", _c("GET", "/tags/{id}"), _c("GET", "/rest/tags/{id}")),
        _op("create_tag", _c("POST", "/tags"), _c("POST", "/rest/tags")),
        _op("update_tag", _c("PUT", "/tags/{id}"), _c("PATCH", "/tags/{id}"), _c("PATCH", "/rest/tags/{id}")),
        _op("delete_tag", _c("DELETE", "/tags/{id}"), _c("DELETE", "/rest/tags/{id}")),
    )
}


# Reachability checks: each is tried on its own, none falls back to another
ENDPOINT_CHECKS: Tuple[EndpointCandidate, ...] = tuple(
    _c("GET", path, limit="1")
    for path in (
        "/workflows",
        "/nodes",
        "/node-types",
        "/credentials/types",
        "/executions",
        "/active-workflows",
    )
)


def get_operation(name: str) -> Operation:
    try:
        return OPERATIONS[name]
    except KeyError:
        raise KeyError(f"unknown operation: {name}") from None


def timeout_for(operation: Operation, standard: float, discovery: float) -> float:
    return discovery if operation.timeout_class == DISCOVERY else standard


def merged_params(
    candidate: EndpointCandidate, extra: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    """Candidate's literal query params overlaid with call-time params."""
    params: Dict[str, Any] = dict(candidate.params)
    for key, value in (extra or {}).items():
        if value is not None:
            params[key] = value
    return params
