from __future__ import annotations

import copy
import json
import sys
import time
from typing import Any, Dict, Optional

from loguru import logger


# Keys whose values never reach a log sink
SENSITIVE_FIELDS = {
	"password",
	"api_key",
	"apiKey",
	"secret",
	"token",
	"accessToken",
	"refreshToken",
	"privateKey",
	"clientSecret",
	"data",  # credential payloads
	"X-N8N-API-KEY",
}

REDACTED = "[REDACTED]"
MAX_DEPTH = 10


def redact(obj: Any, depth: int = 0) -> Any:
	"""
	Return a copy of obj with sensitive mapping keys replaced by a marker.

	Lists are walked element by element. Anything nested deeper than
	MAX_DEPTH collapses to "[MAX_DEPTH_EXCEEDED]".
	"""
	if depth > MAX_DEPTH:
		return "[MAX_DEPTH_EXCEEDED]"

	if isinstance(obj, dict):
		return {
			key: REDACTED if key in SENSITIVE_FIELDS else redact(value, depth + 1)
			for key, value in obj.items()
		}
	if isinstance(obj, (list, tuple)):
		return [redact(item, depth + 1) for item in obj]
	return obj


def configure_logging(level: str = "info", audit_log_path: Optional[str] = None) -> None:
	# stdout belongs to the MCP stdio transport
	logger.remove()
	logger.add(sys.stderr, level=level.upper(), serialize=True, enqueue=True)
	if audit_log_path:
		logger.add(
			audit_log_path,
			level=level.upper(),
			serialize=True,
			enqueue=True,
			filter=lambda record: record["extra"].get("audit", False),
		)


def audit_log(event: str, actor: str, details: Dict[str, Any], status: str = "ok") -> None:
	"""
	Log an audit event with sensitive data redacted.

	Args:
		event: The event name (e.g., "delete_credential")
		actor: Who triggered it (e.g., "mcp", "http")
		details: Event details, redacted before logging
		status: Outcome of the operation
	"""
	logger.bind(audit=True).info(
		json.dumps(
			{
				"event": event,
				"actor": actor,
				"status": status,
				"details": redact(copy.deepcopy(details)),
				"timestamp": int(time.time() * 1000),
			},
			default=str,
		)
	)
