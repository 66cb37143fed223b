from __future__ import annotations

from typing import Any, Dict, List, Optional, Union, cast
from urllib.parse import urlparse

import httpx
from loguru import logger

from client.errors import CredentialValidationError
from client.fallback import CallContext, FallbackRequester
from core.config import Settings
from core.endpoints import ENDPOINT_CHECKS, get_operation
from core.metrics import EndpointMetrics

Identifier = Union[str, int]


def _deleted(identifier: Identifier, response: Dict[str, Any]) -> Dict[str, Any]:
    return {**response, "status": "deleted", "id": identifier}


def validate_credential_for_test(credential: Dict[str, Any]) -> None:
    """Reject credential payloads that cannot possibly be tested."""
    if not credential.get("type"):
        raise CredentialValidationError("credential type is required for testing")
    data = credential.get("data")
    if not isinstance(data, dict):
        raise CredentialValidationError("credential data is required and must be an object")

    cred_type = credential["type"]
    if cred_type in ("webhook", "httpHeaderAuth") and data.get("url"):
        parsed = urlparse(str(data["url"]))
        if not (parsed.scheme and parsed.netloc):
            raise CredentialValidationError("invalid webhook URL provided")
    if cred_type in ("apiKey", "httpBasicAuth"):
        if not (data.get("apiKey") or data.get("user") or data.get("password")):
            raise CredentialValidationError("API key or basic auth credentials are required")


def credential_types_from_node_types(node_types: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Derive credential type stubs from the ``credentials`` entries of node types."""
    names: List[str] = []
    for node_type in node_types:
        if not isinstance(node_type, dict):
            continue
        for cred in node_type.get("credentials") or []:
            name = cred if isinstance(cred, str) else cred.get("name") if isinstance(cred, dict) else None
            if name and name not in names:
                names.append(name)
    return [
        {
            "name": name,
            "displayName": name,
            "description": f"Credential type: {name}",
            "properties": [],
        }
        for name in names
    ]


class N8nClient:
    """n8n REST operations, each routed through the endpoint fallback table."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[EndpointMetrics] = None,
    ) -> None:
        self._base_url = settings.api_base_url
        self._headers = {
            "X-N8N-API-KEY": settings.n8n_api_key,
            "Accept": "application/json",
        }
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=settings.request_timeout,
            transport=transport,
        )
        self._requester = FallbackRequester(
            self._client,
            request_timeout=settings.request_timeout,
            discovery_timeout=settings.discovery_timeout,
            scan_deadline=settings.scan_deadline,
            log=logger.bind(component="n8n_client", base_url=self._base_url),
            metrics=metrics,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "N8nClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _collection(
        self, name: str, params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        result = await self._requester.call(get_operation(name), CallContext(params=params or {}))
        return cast(List[Dict[str, Any]], result)

    async def _resource(
        self,
        name: str,
        path_params: Optional[Dict[str, Any]] = None,
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        context = CallContext(path_params=path_params or {}, params=params or {}, body=body)
        return cast(Dict[str, Any], await self._requester.call(get_operation(name), context))

    # Health & Info
    async def check_connectivity(self) -> Dict[str, Any]:
        """Request one workflow; raises EndpointsExhausted when unreachable."""
        workflows = await self._collection("check_connectivity")
        return {"ok": True, "base_url": self._base_url, "workflows_visible": len(workflows)}

    async def check_endpoints(self) -> Dict[str, Dict[str, Any]]:
        """Report which of the well-known list endpoints answer on this instance."""
        return await self._requester.check_reachable(ENDPOINT_CHECKS)

    async def get_n8n_version(self) -> Dict[str, Any]:
        info = await self._resource("get_n8n_version")
        version = info.get("version") or info.get("versionCli") or "unknown"
        return {"version": version, "base_url": self._base_url}

    # Workflows
    async def list_workflows(
        self,
        active: Optional[bool] = None,
        tags: Optional[str] = None,
        name: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params = {"active": active, "tags": tags, "name": name, "limit": limit}
        return await self._collection("list_workflows", params)

    async def get_workflow(self, workflow_id: Identifier) -> Dict[str, Any]:
        return await self._resource("get_workflow", {"id": workflow_id})

    async def create_workflow(self, workflow_json: Dict[str, Any]) -> Dict[str, Any]:
        return await self._resource("create_workflow", body=workflow_json)

    async def update_workflow(
        self, workflow_id: Identifier, patch: Dict[str, Any]
    ) -> Dict[str, Any]:
        return await self._resource("update_workflow", {"id": workflow_id}, body=patch)

    async def delete_workflow(self, workflow_id: Identifier) -> Dict[str, Any]:
        response = await self._resource("delete_workflow", {"id": workflow_id})
        return _deleted(workflow_id, response)

    async def set_activation(self, workflow_id: Identifier, active: bool) -> Dict[str, Any]:
        name = "activate_workflow" if active else "deactivate_workflow"
        return await self._resource(name, {"id": workflow_id})

    async def execute_workflow(
        self, workflow_id: Identifier, payload: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return await self._resource("execute_workflow", {"id": workflow_id}, body=payload or {})

    async def export_workflows(
        self, workflow_ids: Optional[List[Identifier]] = None
    ) -> List[Dict[str, Any]]:
        """Export workflow definitions; all workflows when no ids are given."""
        body = {"workflowIds": [str(i) for i in workflow_ids]} if workflow_ids else {}
        context = CallContext(body=body)
        result = await self._requester.call(get_operation("export_workflows"), context)
        return cast(List[Dict[str, Any]], result)

    async def import_workflows(self, workflows: List[Dict[str, Any]]) -> Dict[str, Any]:
        return await self._resource("import_workflows", body={"workflows": workflows})

    # Executions
    async def list_executions(
        self,
        workflow_id: Optional[Identifier] = None,
        status: Optional[str] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """List workflow executions, optionally filtered by workflow and status."""
        params: Dict[str, Any] = {"limit": limit, "status": status}
        if workflow_id:
            params["workflowId"] = str(workflow_id)
        return await self._collection("list_executions", params)

    async def get_execution(
        self, execution_id: Identifier, include_data: bool = True
    ) -> Dict[str, Any]:
        params = {"includeData": True} if include_data else None
        return await self._resource("get_execution", {"id": execution_id}, params=params)

    async def delete_execution(self, execution_id: Identifier) -> Dict[str, Any]:
        response = await self._resource("delete_execution", {"id": execution_id})
        return _deleted(execution_id, response)

    async def stop_execution(self, execution_id: Identifier) -> Dict[str, Any]:
        return await self._resource("stop_execution", {"id": execution_id})

    async def retry_execution(
        self, execution_id: Identifier, load_workflow: bool = True
    ) -> Dict[str, Any]:
        return await self._resource(
            "retry_execution", {"id": execution_id}, body={"loadWorkflow": load_workflow}
        )

    # Credentials
    async def list_credentials(self, credential_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """List credentials; the type filter is applied locally since few endpoints honour it."""
        credentials = await self._collection("list_credentials")
        if credential_type:
            credentials = [
                c for c in credentials if isinstance(c, dict) and c.get("type") == credential_type
            ]
        return credentials

    async def get_credential(self, credential_id: Identifier) -> Dict[str, Any]:
        return await self._resource("get_credential", {"id": credential_id})

    async def create_credential(self, credential_data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._resource("create_credential", body=credential_data)

    async def update_credential(
        self, credential_id: Identifier, credential_data: Dict[str, Any]
    ) -> Dict[str, Any]:
        return await self._resource("update_credential", {"id": credential_id}, body=credential_data)

    async def delete_credential(self, credential_id: Identifier) -> Dict[str, Any]:
        response = await self._resource("delete_credential", {"id": credential_id})
        return _deleted(credential_id, response)

    async def test_credential(self, credential: Dict[str, Any]) -> Dict[str, Any]:
        validate_credential_for_test(credential)
        return await self._resource("test_credential", body=credential)

    async def get_credential_schema(self, credential_type: str) -> Dict[str, Any]:
        return await self._resource("get_credential_schema", {"type": credential_type})

    # Credential types
    async def list_credential_types(self) -> List[Dict[str, Any]]:
        """List credential types, falling back to the ones node types reference."""
        credential_types = await self._collection("list_credential_types")
        if credential_types:
            return credential_types
        logger.info("no credential-type endpoint answered, deriving from node types")
        return credential_types_from_node_types(await self.list_node_types())

    # Node Types
    async def list_node_types(self) -> List[Dict[str, Any]]:
        return await self._collection("list_node_types")

    async def get_node_type(self, node_type: str) -> Dict[str, Any]:
        return await self._resource("get_node_type", {"name": node_type})

    # Variables
    async def list_variables(self) -> List[Dict[str, Any]]:
        return await self._collection("list_variables")

    async def get_variable(self, variable_id: Identifier) -> Dict[str, Any]:
        return await self._resource("get_variable", {"id": variable_id})

    async def create_variable(
        self, key: str, value: str, variable_type: Optional[str] = None
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"key": key, "value": value}
        if variable_type:
            body["type"] = variable_type
        return await self._resource("create_variable", body=body)

    async def update_variable(
        self, variable_id: Identifier, changes: Dict[str, Any]
    ) -> Dict[str, Any]:
        return await self._resource("update_variable", {"id": variable_id}, body=changes)

    async def delete_variable(self, variable_id: Identifier) -> Dict[str, Any]:
        response = await self._resource("delete_variable", {"id": variable_id})
        return _deleted(variable_id, response)

    # Tags
    async def list_tags(self) -> List[Dict[str, Any]]:
        return await self._collection("list_tags")

    async def get_tag(self, tag_id: Identifier) -> Dict[str, Any]:
        return await self._resource("get_tag", {"id": tag_id})

    async def create_tag(self, name: str) -> Dict[str, Any]:
        return await self._resource("create_tag", body={"name": name})

    async def update_tag(self, tag_id: Identifier, name: str) -> Dict[str, Any]:
        return await self._resource("update_tag", {"id": tag_id}, body={"name": name})

    async def delete_tag(self, tag_id: Identifier) -> Dict[str, Any]:
        response = await self._resource("delete_tag", {"id": tag_id})
        return _deleted(tag_id, response)
