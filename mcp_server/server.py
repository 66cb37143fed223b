from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from dotenv import load_dotenv
from loguru import logger
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from client.n8n_client import N8nClient
from core.cache import DiscoveryCache
from core.config import Settings
from core.logging import audit_log, configure_logging
from core.metrics import endpoint_metrics
from core.rate_limiter import RateLimiter
from mcp_server.utils import (
    get_workflow_by_identifier,
    id_or_raise,
    optional_bool,
    optional_dict,
    optional_int,
    optional_str,
    optional_str_list,
    require_bool,
    require_dict,
    require_dict_list,
    require_str,
    require_str_list,
)


load_dotenv()

server = Server("n8n-resilient-mcp")
_settings = Settings.load_from_env()
configure_logging(_settings.log_level, _settings.audit_log_path)
rate_limiter = RateLimiter(_settings.rate_limit_per_minute)
discovery_cache = DiscoveryCache(default_ttl=_settings.cache_ttl_seconds)


@asynccontextmanager
async def _client() -> AsyncIterator[N8nClient]:
    client = N8nClient(_settings, metrics=endpoint_metrics)
    try:
        yield client
    finally:
        await client.close()


# System actions
async def check_connectivity_action() -> Dict[str, Any]:
    async with _client() as client:
        return await client.check_connectivity()


async def check_endpoints_action() -> Dict[str, Any]:
    """Which well-known endpoints answer on this instance, without fallback."""
    async with _client() as client:
        report = await client.check_endpoints()
        return {
            "endpoints": report,
            "reachable": sum(1 for entry in report.values() if entry["ok"]),
            "total": len(report),
        }


async def get_n8n_version_action() -> Dict[str, Any]:
    async with _client() as client:
        return await client.get_n8n_version()


async def get_endpoint_stats_action(recent: int = 20) -> Dict[str, Any]:
    """Attempt counts per operation and the endpoint that last answered each."""
    summary = endpoint_metrics.get_summary()
    summary["recent_attempts"] = endpoint_metrics.recent_attempts(recent)
    summary["cache"] = discovery_cache.stats()
    return summary


async def reset_endpoint_stats_action() -> Dict[str, Any]:
    endpoint_metrics.reset()
    discovery_cache.invalidate()
    audit_log("reset_endpoint_stats", actor="mcp", details={})
    return {"status": "reset"}


# Workflow actions
async def list_workflows_action(filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    filters = filters or {}
    async with _client() as client:
        workflows = await client.list_workflows(active=filters.get("active"), tags=filters.get("tags"))
        name_contains = filters.get("name_contains")
        if name_contains:
            workflows = [
                wf for wf in workflows if name_contains.lower() in str(wf.get("name", "")).lower()
            ]
        return {"data": workflows, "count": len(workflows)}


async def get_workflow_action(identifier: str) -> Dict[str, Any]:
    async with _client() as client:
        return {"workflow": await get_workflow_by_identifier(client, identifier)}


async def create_workflow_action(
    workflow_json: Dict[str, Any], activate: bool = False
) -> Dict[str, Any]:
    if not workflow_json.get("name"):
        raise ValueError("workflow must have a name")
    workflow_json = dict(workflow_json)
    workflow_json.setdefault("nodes", [])
    workflow_json.setdefault("connections", {})
    workflow_json.setdefault("settings", {})
    async with _client() as client:
        response = await client.create_workflow(workflow_json)
        if activate:
            await client.set_activation(id_or_raise(response), True)
        audit_log(
            "create_workflow",
            actor="mcp",
            details={"name": workflow_json.get("name"), "id": response.get("id")},
        )
        return {"workflow": response}


async def update_workflow_action(identifier: str, patch: Dict[str, Any]) -> Dict[str, Any]:
    async with _client() as client:
        workflow_id = id_or_raise(await get_workflow_by_identifier(client, identifier))
        response = await client.update_workflow(workflow_id, patch)
        audit_log("update_workflow", actor="mcp", details={"id": workflow_id})
        return {"workflow": response}


async def delete_workflow_action(identifier: str) -> Dict[str, Any]:
    async with _client() as client:
        workflow_id = id_or_raise(await get_workflow_by_identifier(client, identifier))
        response = await client.delete_workflow(workflow_id)
        audit_log("delete_workflow", actor="mcp", details={"id": workflow_id})
        return response


async def activate_workflow_action(identifier: str, active: bool) -> Dict[str, Any]:
    async with _client() as client:
        workflow_id = id_or_raise(await get_workflow_by_identifier(client, identifier))
        response = await client.set_activation(workflow_id, active)
        audit_log("activate_workflow", actor="mcp", details={"id": workflow_id, "active": active})
        return {"workflow": response}


async def duplicate_workflow_action(identifier: str, suffix: str) -> Dict[str, Any]:
    async with _client() as client:
        full = await get_workflow_by_identifier(client, identifier)
        source_id = id_or_raise(full)
        copy = {
            key: full[key]
            for key in ("nodes", "connections", "settings", "staticData")
            if key in full
        }
        copy["name"] = f"{full.get('name')}{suffix}"
        response = await client.create_workflow(copy)
        audit_log(
            "duplicate_workflow",
            actor="mcp",
            details={"src": source_id, "new": response.get("id")},
        )
        return {"workflow": response}


async def execute_workflow_action(
    identifier: str, payload: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    async with _client() as client:
        workflow_id = id_or_raise(await get_workflow_by_identifier(client, identifier))
        response = await client.execute_workflow(workflow_id, payload or {})
        audit_log("execute_workflow", actor="mcp", details={"id": workflow_id, "payload": payload})
        return {"execution": response}


async def export_workflows_action(workflow_ids: Optional[List[str]] = None) -> Dict[str, Any]:
    async with _client() as client:
        workflows = await client.export_workflows(workflow_ids)
        return {"workflows": workflows, "count": len(workflows)}


async def import_workflows_action(workflows: List[Dict[str, Any]]) -> Dict[str, Any]:
    async with _client() as client:
        response = await client.import_workflows(workflows)
        audit_log(
            "import_workflows",
            actor="mcp",
            details={"names": [wf.get("name") for wf in workflows], "count": len(workflows)},
        )
        return {"result": response}


async def _bulk(
    identifiers: List[str], action: Callable[[str], Awaitable[Dict[str, Any]]]
) -> Dict[str, Any]:
    # Each identifier is an independent operation; candidate scans stay sequential
    results = await asyncio.gather(*(action(i) for i in identifiers), return_exceptions=True)
    successes: List[Dict[str, Any]] = []
    failures: List[Dict[str, Any]] = []
    for identifier, result in zip(identifiers, results):
        if isinstance(result, Exception):
            failures.append({"identifier": identifier, "error": str(result)})
        elif isinstance(result, BaseException):
            raise result
        else:
            successes.append({"identifier": identifier, "result": result})
    return {
        "successes": successes,
        "failures": failures,
        "total": len(identifiers),
        "success_count": len(successes),
        "failure_count": len(failures),
    }


async def bulk_activate_workflows_action(identifiers: List[str], active: bool) -> Dict[str, Any]:
    return await _bulk(identifiers, lambda i: activate_workflow_action(i, active))


async def bulk_delete_workflows_action(identifiers: List[str]) -> Dict[str, Any]:
    return await _bulk(identifiers, delete_workflow_action)


# Execution actions
async def list_executions_action(
    workflow_id: Optional[str] = None, status: Optional[str] = None, limit: int = 100
) -> Dict[str, Any]:
    async with _client() as client:
        executions = await client.list_executions(workflow_id, status, limit)
        return {"data": executions, "count": len(executions)}


async def get_execution_action(execution_id: str, include_data: bool = True) -> Dict[str, Any]:
    async with _client() as client:
        return {"execution": await client.get_execution(execution_id, include_data)}


async def delete_execution_action(execution_id: str) -> Dict[str, Any]:
    async with _client() as client:
        response = await client.delete_execution(execution_id)
        audit_log("delete_execution", actor="mcp", details={"id": execution_id})
        return response


async def stop_execution_action(execution_id: str) -> Dict[str, Any]:
    async with _client() as client:
        response = await client.stop_execution(execution_id)
        audit_log("stop_execution", actor="mcp", details={"id": execution_id})
        return {"execution": response}


async def retry_execution_action(execution_id: str, load_workflow: bool = True) -> Dict[str, Any]:
    async with _client() as client:
        response = await client.retry_execution(execution_id, load_workflow)
        audit_log("retry_execution", actor="mcp", details={"id": execution_id})
        return {"execution": response}


# Credential actions
async def list_credentials_action(credential_type: Optional[str] = None) -> Dict[str, Any]:
    async with _client() as client:
        credentials = await client.list_credentials(credential_type)
        return {"data": credentials, "count": len(credentials)}


async def get_credential_action(credential_id: str) -> Dict[str, Any]:
    async with _client() as client:
        return {"credential": await client.get_credential(credential_id)}


async def create_credential_action(credential_data: Dict[str, Any]) -> Dict[str, Any]:
    async with _client() as client:
        response = await client.create_credential(credential_data)
        audit_log(
            "create_credential",
            actor="mcp",
            details={"name": credential_data.get("name"), "type": credential_data.get("type")},
        )
        return {"credential": response}


async def update_credential_action(
    credential_id: str, credential_data: Dict[str, Any]
) -> Dict[str, Any]:
    async with _client() as client:
        response = await client.update_credential(credential_id, credential_data)
        audit_log("update_credential", actor="mcp", details={"id": credential_id})
        return {"credential": response}


async def delete_credential_action(credential_id: str) -> Dict[str, Any]:
    async with _client() as client:
        response = await client.delete_credential(credential_id)
        audit_log("delete_credential", actor="mcp", details={"id": credential_id})
        return response


async def test_credential_action(credential: Dict[str, Any]) -> Dict[str, Any]:
    async with _client() as client:
        return {"result": await client.test_credential(credential)}


async def get_credential_schema_action(credential_type: str) -> Dict[str, Any]:
    async with _client() as client:
        schema, cached = await discovery_cache.get_or_load(
            f"credential_schema:{credential_type}",
            lambda: client.get_credential_schema(credential_type),
        )
        return {"schema": schema, "cached": cached}


# Discovery actions
async def list_credential_types_action() -> Dict[str, Any]:
    async with _client() as client:
        types, cached = await discovery_cache.get_or_load("credential_types", client.list_credential_types)
        return {"data": types, "count": len(types), "cached": cached}


async def list_node_types_action() -> Dict[str, Any]:
    async with _client() as client:
        node_types, cached = await discovery_cache.get_or_load("node_types", client.list_node_types)
        return {"data": node_types, "count": len(node_types), "cached": cached}


async def get_node_type_action(node_type: str) -> Dict[str, Any]:
    async with _client() as client:
        info, cached = await discovery_cache.get_or_load(
            f"node_type:{node_type}", lambda: client.get_node_type(node_type)
        )
        return {"node_type": info, "cached": cached}


# Variable actions
async def list_variables_action() -> Dict[str, Any]:
    async with _client() as client:
        variables = await client.list_variables()
        return {"data": variables, "count": len(variables)}


async def get_variable_action(variable_id: str) -> Dict[str, Any]:
    async with _client() as client:
        return {"variable": await client.get_variable(variable_id)}


async def create_variable_action(
    key: str, value: str, variable_type: Optional[str] = None
) -> Dict[str, Any]:
    async with _client() as client:
        response = await client.create_variable(key, value, variable_type)
        audit_log("create_variable", actor="mcp", details={"key": key})
        return {"variable": response}


async def update_variable_action(variable_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    async with _client() as client:
        response = await client.update_variable(variable_id, changes)
        audit_log("update_variable", actor="mcp", details={"id": variable_id})
        return {"variable": response}


async def delete_variable_action(variable_id: str) -> Dict[str, Any]:
    async with _client() as client:
        response = await client.delete_variable(variable_id)
        audit_log("delete_variable", actor="mcp", details={"id": variable_id})
        return response


# Tag actions
async def list_tags_action() -> Dict[str, Any]:
    async with _client() as client:
        tags = await client.list_tags()
        return {"data": tags, "count": len(tags)}


async def get_tag_action(tag_id: str) -> Dict[str, Any]:
    async with _client() as client:
        return {"tag": await client.get_tag(tag_id)}


async def create_tag_action(name: str) -> Dict[str, Any]:
    async with _client() as client:
        response = await client.create_tag(name)
        audit_log("create_tag", actor="mcp", details={"name": name})
        return {"tag": response}


async def update_tag_action(tag_id: str, name: str) -> Dict[str, Any]:
    async with _client() as client:
        response = await client.update_tag(tag_id, name)
        audit_log("update_tag", actor="mcp", details={"id": tag_id, "name": name})
        return {"tag": response}


async def delete_tag_action(tag_id: str) -> Dict[str, Any]:
    async with _client() as client:
        response = await client.delete_tag(tag_id)
        audit_log("delete_tag", actor="mcp", details={"id": tag_id})
        return response


ToolHandler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]
_tool_registry: Dict[str, tuple[ToolHandler, Dict[str, Any], str]] = {}


def register_tool(
    name: str, description: str, input_schema: Dict[str, Any]
) -> Callable[[ToolHandler], ToolHandler]:
    def decorator(func: ToolHandler) -> ToolHandler:
        _tool_registry[name] = (func, input_schema, description)
        return func

    return decorator


def _schema(required: Optional[List[str]] = None, **properties: Any) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


_STR = {"type": "string"}
_OBJ = {"type": "object"}
_BOOL = {"type": "boolean"}
_STR_LIST = {"type": "array", "items": {"type": "string"}}


class UnknownToolError(ValueError):
    """Raised when a tool name is not registered."""


def registered_tools() -> List[str]:
    return list(_tool_registry)


async def dispatch(name: str, arguments: Optional[Dict[str, Any]], actor: str = "mcp") -> Dict[str, Any]:
    """Rate-limit, look up and run a registered tool."""
    if name not in _tool_registry:
        raise UnknownToolError(f"Unknown tool: {name}")
    rate_limiter.check(actor)
    handler, _, _ = _tool_registry[name]
    return await handler(arguments or {})


def _text_payload(payload: Dict[str, Any]) -> List[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, default=str))]


# System tools
@register_tool(
    "check_connectivity",
    "Check that the n8n API is reachable with the configured key.",
    _schema(),
)
async def check_connectivity_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await check_connectivity_action()


@register_tool(
    "check_endpoints",
    "Check which well-known n8n list endpoints answer on this instance.",
    _schema(),
)
async def check_endpoints_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await check_endpoints_action()


@register_tool("get_n8n_version", "Get the version of the connected n8n instance.", _schema())
async def get_n8n_version_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await get_n8n_version_action()


@register_tool(
    "get_endpoint_stats",
    "Show which n8n endpoints answered each operation and how many candidates failed.",
    _schema(recent={"type": "integer", "default": 20}),
)
async def get_endpoint_stats_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await get_endpoint_stats_action(optional_int(arguments, "recent", 20))


@register_tool(
    "reset_endpoint_stats",
    "Clear endpoint attempt statistics and the discovery cache.",
    _schema(),
)
async def reset_endpoint_stats_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await reset_endpoint_stats_action()


# Workflow tools
@register_tool(
    "list_workflows",
    "List workflows available in the connected n8n instance.",
    _schema(filters={"type": "object", "properties": {"name_contains": _STR, "active": _BOOL, "tags": _STR}}),
)
async def list_workflows_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await list_workflows_action(optional_dict(arguments, "filters"))


@register_tool(
    "get_workflow",
    "Fetch the full JSON of a workflow by id or name.",
    _schema(["identifier"], identifier=_STR),
)
async def get_workflow_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await get_workflow_action(require_str(arguments, "identifier"))


@register_tool(
    "create_workflow",
    "Create a workflow from n8n workflow JSON, optionally activating it.",
    _schema(["workflow"], workflow=_OBJ, activate=_BOOL),
)
async def create_workflow_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    workflow = require_dict(arguments, "workflow")
    return await create_workflow_action(workflow, bool(optional_bool(arguments, "activate")))


@register_tool(
    "update_workflow",
    "Apply an update to an existing workflow by id or name.",
    _schema(["identifier", "patch"], identifier=_STR, patch=_OBJ),
)
async def update_workflow_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await update_workflow_action(
        require_str(arguments, "identifier"), require_dict(arguments, "patch")
    )


@register_tool(
    "delete_workflow",
    "Delete a workflow by id or name.",
    _schema(["identifier"], identifier=_STR),
)
async def delete_workflow_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await delete_workflow_action(require_str(arguments, "identifier"))


@register_tool(
    "activate_workflow",
    "Activate or deactivate a workflow.",
    _schema(["identifier", "active"], identifier=_STR, active=_BOOL),
)
async def activate_workflow_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await activate_workflow_action(
        require_str(arguments, "identifier"), require_bool(arguments, "active")
    )


@register_tool(
    "duplicate_workflow",
    "Duplicate a workflow with a suffix appended to its name.",
    _schema(["identifier", "suffix"], identifier=_STR, suffix=_STR),
)
async def duplicate_workflow_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await duplicate_workflow_action(
        require_str(arguments, "identifier"), require_str(arguments, "suffix")
    )


@register_tool(
    "execute_workflow",
    "Execute a workflow by id or name with an optional payload.",
    _schema(["identifier"], identifier=_STR, payload=_OBJ),
)
async def execute_workflow_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await execute_workflow_action(
        require_str(arguments, "identifier"), optional_dict(arguments, "payload")
    )


@register_tool(
    "export_workflows",
    "Export workflow definitions, all of them unless workflow ids are given.",
    _schema(workflow_ids=_STR_LIST),
)
async def export_workflows_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await export_workflows_action(optional_str_list(arguments, "workflow_ids"))


@register_tool(
    "import_workflows",
    "Import workflow definitions (n8n workflow JSON objects).",
    _schema(["workflows"], workflows={"type": "array", "items": _OBJ}),
)
async def import_workflows_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await import_workflows_action(require_dict_list(arguments, "workflows"))


@register_tool(
    "bulk_activate_workflows",
    "Activate or deactivate several workflows at once.",
    _schema(["identifiers", "active"], identifiers=_STR_LIST, active=_BOOL),
)
async def bulk_activate_workflows_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await bulk_activate_workflows_action(
        require_str_list(arguments, "identifiers"), require_bool(arguments, "active")
    )


@register_tool(
    "bulk_delete_workflows",
    "Delete several workflows at once. This cannot be undone.",
    _schema(["identifiers"], identifiers=_STR_LIST),
)
async def bulk_delete_workflows_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await bulk_delete_workflows_action(require_str_list(arguments, "identifiers"))


# Execution tools
@register_tool(
    "list_executions",
    "List workflow executions, optionally filtered by workflow id and status.",
    _schema(workflow_id=_STR, status=_STR, limit={"type": "integer", "default": 100}),
)
async def list_executions_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await list_executions_action(
        optional_str(arguments, "workflow_id"),
        optional_str(arguments, "status"),
        optional_int(arguments, "limit", 100),
    )


@register_tool(
    "get_execution",
    "Get detailed information about a specific execution.",
    _schema(["execution_id"], execution_id=_STR, include_data=_BOOL),
)
async def get_execution_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    include_data = optional_bool(arguments, "include_data")
    return await get_execution_action(
        require_str(arguments, "execution_id"), True if include_data is None else include_data
    )


@register_tool(
    "delete_execution",
    "Delete an execution by id.",
    _schema(["execution_id"], execution_id=_STR),
)
async def delete_execution_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await delete_execution_action(require_str(arguments, "execution_id"))


@register_tool(
    "stop_execution",
    "Stop a running execution.",
    _schema(["execution_id"], execution_id=_STR),
)
async def stop_execution_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await stop_execution_action(require_str(arguments, "execution_id"))


@register_tool(
    "retry_execution",
    "Retry a failed execution.",
    _schema(["execution_id"], execution_id=_STR, load_workflow=_BOOL),
)
async def retry_execution_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    load_workflow = optional_bool(arguments, "load_workflow")
    return await retry_execution_action(
        require_str(arguments, "execution_id"), True if load_workflow is None else load_workflow
    )


# Credential tools
@register_tool(
    "list_credentials",
    "List credentials, optionally filtered by credential type.",
    _schema(credential_type=_STR),
)
async def list_credentials_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await list_credentials_action(optional_str(arguments, "credential_type"))


@register_tool(
    "get_credential",
    "Get a specific credential by id.",
    _schema(["credential_id"], credential_id=_STR),
)
async def get_credential_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await get_credential_action(require_str(arguments, "credential_id"))


@register_tool(
    "create_credential",
    "Create a new credential with the specified name, type and data.",
    _schema(["credential_data"], credential_data=_OBJ),
)
async def create_credential_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await create_credential_action(require_dict(arguments, "credential_data"))


@register_tool(
    "update_credential",
    "Update an existing credential.",
    _schema(["credential_id", "credential_data"], credential_id=_STR, credential_data=_OBJ),
)
async def update_credential_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await update_credential_action(
        require_str(arguments, "credential_id"), require_dict(arguments, "credential_data")
    )


@register_tool(
    "delete_credential",
    "Delete a credential by id.",
    _schema(["credential_id"], credential_id=_STR),
)
async def delete_credential_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await delete_credential_action(require_str(arguments, "credential_id"))


@register_tool(
    "test_credential",
    "Test a credential payload ({type, data}) against n8n.",
    _schema(["credential"], credential=_OBJ),
)
async def test_credential_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await test_credential_action(require_dict(arguments, "credential"))


@register_tool(
    "get_credential_schema",
    "Get the data schema n8n expects for a credential type.",
    _schema(["credential_type"], credential_type=_STR),
)
async def get_credential_schema_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await get_credential_schema_action(require_str(arguments, "credential_type"))


# Discovery tools
@register_tool(
    "list_credential_types",
    "List credential types known to the n8n instance.",
    _schema(),
)
async def list_credential_types_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await list_credential_types_action()


@register_tool(
    "list_node_types",
    "List all available node types in the n8n instance.",
    _schema(),
)
async def list_node_types_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await list_node_types_action()


@register_tool(
    "get_node_type",
    "Get detailed information about a specific node type.",
    _schema(["node_type"], node_type=_STR),
)
async def get_node_type_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await get_node_type_action(require_str(arguments, "node_type"))


# Variable tools
@register_tool("list_variables", "List instance variables.", _schema())
async def list_variables_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await list_variables_action()


@register_tool("get_variable", "Get an instance variable by id.", _schema(["variable_id"], variable_id=_STR))
async def get_variable_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await get_variable_action(require_str(arguments, "variable_id"))


@register_tool(
    "create_variable",
    "Create an instance variable.",
    _schema(["key", "value"], key=_STR, value=_STR, type=_STR),
)
async def create_variable_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await create_variable_action(
        require_str(arguments, "key"), require_str(arguments, "value"), optional_str(arguments, "type")
    )


@register_tool(
    "update_variable",
    "Update an instance variable.",
    _schema(["variable_id", "changes"], variable_id=_STR, changes=_OBJ),
)
async def update_variable_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await update_variable_action(
        require_str(arguments, "variable_id"), require_dict(arguments, "changes")
    )


@register_tool(
    "delete_variable",
    "Delete an instance variable.",
    _schema(["variable_id"], variable_id=_STR),
)
async def delete_variable_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await delete_variable_action(require_str(arguments, "variable_id"))


# Tag tools
@register_tool("list_tags", "List workflow tags.", _schema())
async def list_tags_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await list_tags_action()


@register_tool("get_tag", "Get a workflow tag by id.", _schema(["tag_id"], tag_id=_STR))
async def get_tag_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await get_tag_action(require_str(arguments, "tag_id"))


@register_tool("create_tag", "Create a workflow tag.", _schema(["name"], name=_STR))
async def create_tag_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await create_tag_action(require_str(arguments, "name"))


@register_tool(
    "update_tag",
    "Rename a workflow tag.",
    _schema(["tag_id", "name"], tag_id=_STR, name=_STR),
)
async def update_tag_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await update_tag_action(require_str(arguments, "tag_id"), require_str(arguments, "name"))


@register_tool("delete_tag", "Delete a workflow tag.", _schema(["tag_id"], tag_id=_STR))
async def delete_tag_tool(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return await delete_tag_action(require_str(arguments, "tag_id"))


# mypy struggles with dynamic decorator types exposed by the MCP library.
@server.list_tools()  # type: ignore[misc,no-untyped-call]
async def _list_tools() -> List[Tool]:
    return [
        Tool(name=name, description=desc, inputSchema=schema)
        for name, (_, schema, desc) in _tool_registry.items()
    ]


@server.call_tool()  # type: ignore[misc,no-untyped-call]
async def _call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    return _text_payload(await dispatch(name, arguments))


def main() -> None:
    async def runner() -> None:
        try:
            info = await check_connectivity_action()
        except Exception as e:
            raise SystemExit(f"n8n connectivity check failed: {e}")
        logger.info(f"connected to n8n at {info['base_url']}")

        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )

    asyncio.run(runner())


if __name__ == "__main__":
    main()
