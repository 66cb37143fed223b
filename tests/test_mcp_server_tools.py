from __future__ import annotations

import json
from typing import Any, Dict, List

import httpx
import pytest
from pytest import MonkeyPatch

from client.errors import CandidateFailure, EndpointsExhausted
from client.n8n_client import N8nClient
from core.cache import DiscoveryCache
from core.endpoints import EndpointCandidate
from core.rate_limiter import RateLimiter, RateLimitExceeded
from mcp_server import server
from n8n_fakes import ScriptedTransport


class DummyClient:
    """Stands in for N8nClient; records calls in the class-level log."""

    calls: List[Any] = []
    workflows: List[Dict[str, Any]] = [
        {"id": "1", "name": "Example"},
        {"id": "2", "name": "Other example"},
    ]
    credential_types: List[Dict[str, Any]] = [{"name": "slackApi"}]

    def __init__(self, settings: object, metrics: object = None) -> None:
        self.settings = settings

    async def list_workflows(self, **kwargs: Any) -> List[Dict[str, Any]]:
        self.calls.append(("list_workflows", kwargs))
        return list(self.workflows)

    async def get_workflow(self, workflow_id: str) -> Dict[str, Any]:
        self.calls.append(("get_workflow", workflow_id))
        for workflow in self.workflows:
            if workflow["id"] == workflow_id:
                return dict(workflow)
        raise EndpointsExhausted(
            "get_workflow",
            [CandidateFailure(EndpointCandidate("GET", "/workflows/{id}"), "http", "", 404)],
        )

    async def execute_workflow(self, workflow_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("execute_workflow", workflow_id, payload))
        return {"status": "ok"}

    async def set_activation(self, workflow_id: str, active: bool) -> Dict[str, Any]:
        if workflow_id == "2":
            raise EndpointsExhausted(
                "activate_workflow",
                [CandidateFailure(EndpointCandidate("POST", "/workflows/2/activate"), "http", "", 500)],
            )
        return {"id": workflow_id, "active": active}

    async def create_workflow(self, workflow: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("create_workflow", workflow))
        return {"id": "new", **workflow}

    async def list_credential_types(self) -> List[Dict[str, Any]]:
        self.calls.append(("list_credential_types",))
        return list(self.credential_types)

    async def check_endpoints(self) -> Dict[str, Dict[str, Any]]:
        return {
            "/workflows": {"ok": True, "status": 200, "error": None},
            "/nodes": {"ok": False, "status": 404, "error": None},
        }

    async def close(self) -> None:
        self.calls.append(("close",))


@pytest.fixture(autouse=True)
def dummy_client(monkeypatch: MonkeyPatch) -> type:
    DummyClient.calls = []
    DummyClient.credential_types = [{"name": "slackApi"}]
    monkeypatch.setattr(server, "N8nClient", DummyClient)
    monkeypatch.setattr(server, "discovery_cache", DiscoveryCache())
    monkeypatch.setattr(server, "rate_limiter", RateLimiter(1000))
    return DummyClient


@pytest.mark.asyncio
async def test_execute_workflow_tool_resolves_name_and_closes_client() -> None:
    result = await server.dispatch("execute_workflow", {"identifier": "Example", "payload": {"foo": "bar"}})

    assert ("execute_workflow", "1", {"foo": "bar"}) in DummyClient.calls
    assert DummyClient.calls[-1] == ("close",)
    assert result["execution"]["status"] == "ok"


@pytest.mark.asyncio
async def test_unknown_tool_is_rejected() -> None:
    with pytest.raises(server.UnknownToolError, match="Unknown tool: nope"):
        await server.dispatch("nope", {})


@pytest.mark.asyncio
async def test_invalid_arguments_raise_value_error() -> None:
    with pytest.raises(ValueError, match="identifier must be a non-empty string"):
        await server.dispatch("get_workflow", {})


@pytest.mark.asyncio
async def test_dispatch_applies_rate_limit(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setattr(server, "rate_limiter", RateLimiter(1))
    await server.dispatch("list_workflows", {})

    with pytest.raises(RateLimitExceeded):
        await server.dispatch("list_workflows", {})


@pytest.mark.asyncio
async def test_list_workflows_filters_by_name() -> None:
    result = await server.dispatch("list_workflows", {"filters": {"name_contains": "other"}})

    assert result == {"data": [{"id": "2", "name": "Other example"}], "count": 1}


@pytest.mark.asyncio
async def test_create_workflow_fills_defaults_without_mutating_input() -> None:
    workflow = {"name": "New flow"}
    await server.dispatch("create_workflow", {"workflow": workflow})

    sent = next(call[1] for call in DummyClient.calls if call[0] == "create_workflow")
    assert sent == {"name": "New flow", "nodes": [], "connections": {}, "settings": {}}
    assert workflow == {"name": "New flow"}


@pytest.mark.asyncio
async def test_bulk_activation_reports_partial_failure() -> None:
    result = await server.dispatch("bulk_activate_workflows", {"identifiers": ["1", "2", "ghost"], "active": True})

    assert result["total"] == 3
    assert result["success_count"] == 1
    assert result["failure_count"] == 2
    errors = {f["identifier"]: f["error"] for f in result["failures"]}
    assert "all endpoints failed" in errors["2"]
    assert errors["ghost"] == "workflow ghost not found"


@pytest.mark.asyncio
async def test_credential_types_are_cached() -> None:
    first = await server.dispatch("list_credential_types", {})
    second = await server.dispatch("list_credential_types", {})

    assert first["cached"] is False
    assert second["cached"] is True
    assert second["data"] == [{"name": "slackApi"}]
    assert DummyClient.calls.count(("list_credential_types",)) == 1


@pytest.mark.asyncio
async def test_empty_credential_types_are_not_cached() -> None:
    DummyClient.credential_types = []
    await server.dispatch("list_credential_types", {})
    second = await server.dispatch("list_credential_types", {})

    assert second["cached"] is False
    assert DummyClient.calls.count(("list_credential_types",)) == 2


@pytest.mark.asyncio
async def test_endpoint_stats_include_cache_stats() -> None:
    result = await server.dispatch("get_endpoint_stats", {"recent": 5})

    assert "operations" in result
    assert "recent_attempts" in result
    assert result["cache"]["entries"] == 0


@pytest.mark.asyncio
async def test_list_tools_exposes_registered_schemas() -> None:
    tools = await server._list_tools()
    by_name = {tool.name: tool for tool in tools}

    assert set(by_name) == set(server.registered_tools())
    assert by_name["get_workflow"].inputSchema["required"] == ["identifier"]
    assert "list_credential_types" in by_name


@pytest.mark.asyncio
async def test_call_tool_returns_json_text() -> None:
    content = await server._call_tool("list_workflows", {})

    assert json.loads(content[0].text)["count"] == 2


def _use_real_client(monkeypatch: MonkeyPatch, transport: ScriptedTransport) -> None:
    def factory(settings: Any, metrics: Any = None) -> N8nClient:
        return N8nClient(settings, transport=httpx.MockTransport(transport))

    monkeypatch.setattr(server, "N8nClient", factory)


@pytest.mark.asyncio
async def test_get_workflow_by_id_does_not_depend_on_listing(monkeypatch: MonkeyPatch) -> None:
    transport = ScriptedTransport([(200, {"id": "w1", "name": "Flow"})], default=(500, {"message": "boom"}))
    _use_real_client(monkeypatch, transport)

    result = await server.dispatch("get_workflow", {"identifier": "w1"})

    assert result == {"workflow": {"id": "w1", "name": "Flow"}}
    assert transport.calls == [("GET", "/api/v1/workflows/w1")]


@pytest.mark.asyncio
async def test_unreachable_n8n_is_not_reported_as_missing_workflow(monkeypatch: MonkeyPatch) -> None:
    transport = ScriptedTransport([], default=(500, {"message": "boom"}))
    _use_real_client(monkeypatch, transport)

    with pytest.raises(EndpointsExhausted, match="get_workflow"):
        await server.dispatch("delete_workflow", {"identifier": "w1"})

    assert transport.calls == [("GET", "/api/v1/workflows/w1"), ("GET", "/api/v1/rest/workflows/w1")]


@pytest.mark.asyncio
async def test_name_is_resolved_through_listing_after_not_found(monkeypatch: MonkeyPatch) -> None:
    transport = ScriptedTransport(
        [
            (404, None),
            (404, None),
            (200, {"data": [{"id": "7", "name": "Flow"}]}),
            (200, {"id": "7", "name": "Flow", "nodes": []}),
        ]
    )
    _use_real_client(monkeypatch, transport)

    result = await server.dispatch("get_workflow", {"identifier": "Flow"})

    assert result["workflow"]["nodes"] == []
    assert transport.calls == [
        ("GET", "/api/v1/workflows/Flow"),
        ("GET", "/api/v1/rest/workflows/Flow"),
        ("GET", "/api/v1/workflows"),
        ("GET", "/api/v1/workflows/7"),
    ]


@pytest.mark.asyncio
async def test_check_endpoints_counts_reachable() -> None:
    result = await server.dispatch("check_endpoints", {})

    assert result["reachable"] == 1
    assert result["total"] == 2


@pytest.mark.asyncio
async def test_import_workflows_requires_workflow_objects() -> None:
    with pytest.raises(ValueError, match="workflows must be a non-empty array of objects"):
        await server.dispatch("import_workflows", {"workflows": []})
