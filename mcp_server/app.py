from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from fastapi import Depends, FastAPI, HTTPException
from loguru import logger
from pydantic import BaseModel, Field

from client.errors import EndpointsExhausted
from client.n8n_client import N8nClient
from core.metrics import endpoint_metrics
from core.rate_limiter import RateLimitExceeded
from mcp_server import server as tools


app = FastAPI(title="n8n-resilient-mcp")


class ToolCallRequest(BaseModel):
    arguments: Dict[str, Any] = Field(default_factory=dict)


def _client() -> N8nClient:
    return N8nClient(tools._settings, metrics=endpoint_metrics)


@asynccontextmanager
async def n8n_client_manager() -> AsyncIterator[N8nClient]:
    """FastAPI dependency for managing N8nClient lifecycle."""
    client = _client()
    try:
        yield client
    finally:
        try:
            await client.close()
        except Exception as exc:
            logger.warning(f"closing n8n client failed: {exc}")


async def _client_dependency() -> AsyncIterator[N8nClient]:
    async with n8n_client_manager() as client:
        yield client


@app.get("/health")
async def health(client: N8nClient = Depends(_client_dependency)) -> Dict[str, Any]:
    try:
        info = await client.check_connectivity()
    except EndpointsExhausted as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    return {"status": "ok", "info": info}


@app.get("/tools")
async def list_tools() -> Dict[str, Any]:
    return {"tools": tools.registered_tools()}


@app.post("/tools/{name}")
async def call_tool(name: str, req: ToolCallRequest) -> Dict[str, Any]:
    try:
        result = await tools.dispatch(name, req.arguments, actor="http")
    except tools.UnknownToolError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except RateLimitExceeded as exc:
        raise HTTPException(
            status_code=429,
            detail=str(exc),
            headers={"Retry-After": str(int(exc.retry_after) + 1)},
        )
    except EndpointsExhausted as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"tool": name, "result": result}
