"""Tests for the static endpoint fallback table."""
import pytest

from core.endpoints import (
    ENDPOINT_CHECKS,
    OPERATIONS,
    EndpointCandidate,
    FailurePolicy,
    Operation,
    Shape,
    get_operation,
    merged_params,
    timeout_for,
)


def test_every_operation_has_candidates_with_absolute_paths():
    for op in OPERATIONS.values():
        assert op.candidates, op.name
        for candidate in op.candidates:
            assert candidate.path.startswith("/")
            assert candidate.method in {"GET", "POST", "PUT", "PATCH", "DELETE"}


MUST_SUCCEED_COLLECTIONS = {"check_connectivity", "export_workflows"}


def test_collections_fail_open_and_resources_fail_closed():
    for op in OPERATIONS.values():
        if op.name in MUST_SUCCEED_COLLECTIONS:
            continue
        expected = FailurePolicy.FAIL_OPEN if op.shape is Shape.COLLECTION else FailurePolicy.FAIL_CLOSED
        assert op.policy is expected, op.name


@pytest.mark.parametrize("name", sorted(MUST_SUCCEED_COLLECTIONS))
def test_must_succeed_collections_fail_closed(name):
    op = get_operation(name)
    assert op.shape is Shape.COLLECTION
    assert not op.fails_open


def test_list_workflows_tries_internal_route_second():
    labels = [c.label for c in get_operation("list_workflows").candidates]
    assert labels == ["GET /workflows", "GET /rest/workflows"]


def test_workflow_transfer_and_version_operations():
    assert [c.label for c in get_operation("export_workflows").candidates] == [
        "POST /workflows/export",
        "POST /rest/workflows/export",
    ]
    assert [c.label for c in get_operation("import_workflows").candidates] == [
        "POST /workflows/import",
        "POST /rest/workflows/import",
    ]
    assert get_operation("get_n8n_version").candidates[0].label == "GET /"


def test_endpoint_checks_request_a_single_item():
    assert [c.path for c in ENDPOINT_CHECKS] == [
        "/workflows",
        "/nodes",
        "/node-types",
        "/credentials/types",
        "/executions",
        "/active-workflows",
    ]
    assert all(c.params == (("limit", "1"),) for c in ENDPOINT_CHECKS)


def test_list_credentials_candidates_in_order():
    labels = [c.label for c in get_operation("list_credentials").candidates]
    assert labels == [
        "GET /credentials",
        "GET /rest/credentials",
        "GET /api/v1/credentials",
        "GET /credentials?includeData=false",
        "GET /credentials/all",
        "GET /credential",
    ]


def test_create_credential_candidates_in_order():
    labels = [c.label for c in get_operation("create_credential").candidates]
    assert labels == [
        "POST /credentials",
        "POST /rest/credentials",
        "POST /api/v1/credentials",
        "PUT /credentials",
    ]


@pytest.mark.parametrize("resource", ["workflows", "executions", "credentials", "variables", "tags"])
def test_crud_operations_exist_for_each_resource(resource):
    singular = resource[:-1]
    for name in (f"list_{resource}", f"get_{singular}", f"delete_{singular}"):
        assert name in OPERATIONS


def test_discovery_operations_use_discovery_timeout():
    assert timeout_for(get_operation("list_node_types"), 30.0, 10.0) == 10.0
    assert timeout_for(get_operation("list_credential_types"), 30.0, 10.0) == 10.0
    assert timeout_for(get_operation("create_workflow"), 30.0, 10.0) == 30.0


def test_unknown_operation_raises_key_error():
    with pytest.raises(KeyError, match="unknown operation"):
        get_operation("reticulate_splines")


def test_operation_without_candidates_is_rejected():
    with pytest.raises(ValueError):
        Operation(name="nothing", candidates=())


def test_candidate_method_is_upper_cased_and_path_checked():
    assert EndpointCandidate("get", "/x").method == "GET"
    with pytest.raises(ValueError):
        EndpointCandidate("GET", "relative/path")


def test_candidates_are_immutable():
    candidate = get_operation("list_tags").candidates[0]
    with pytest.raises(AttributeError):
        candidate.path = "/other"  # type: ignore[misc]


def test_merged_params_lets_call_values_win_and_drops_none():
    candidate = EndpointCandidate("GET", "/credentials", (("includeData", "false"),))
    assert merged_params(candidate, {"includeData": "true", "cursor": None}) == {"includeData": "true"}
    assert merged_params(candidate) == {"includeData": "false"}
