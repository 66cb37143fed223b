from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _float_env(name: str, default: Optional[str]) -> Optional[float]:
	raw = os.getenv(name, default)
	if raw is None or raw == "":
		return None
	try:
		value = float(raw)
	except ValueError:
		raise RuntimeError(f"{name} must be a number, got {raw!r}") from None
	if value <= 0:
		raise RuntimeError(f"{name} must be positive")
	return value


def _int_env(name: str, default: str) -> int:
	raw = os.getenv(name, default)
	try:
		value = int(raw)
	except ValueError:
		raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None
	if value <= 0:
		raise RuntimeError(f"{name} must be positive")
	return value


@dataclass(frozen=True)
class Settings:
	"""Environment-driven configuration for the service."""

	# n8n
	n8n_api_url: str
	n8n_api_key: str
	n8n_api_path: str = "/api/v1"

	# per-candidate timeouts (seconds); no overall bound unless scan_deadline is set
	request_timeout: float = 30.0
	discovery_timeout: float = 10.0
	scan_deadline: Optional[float] = None

	# ops
	log_level: str = "info"
	audit_log_path: Optional[str] = None
	rate_limit_per_minute: int = 60
	cache_ttl_seconds: float = 3600.0

	@property
	def api_base_url(self) -> str:
		path = self.n8n_api_path.strip("/")
		return f"{self.n8n_api_url}/{path}" if path else self.n8n_api_url

	@staticmethod
	def load_from_env() -> "Settings":
		n8n_api_url = os.getenv("N8N_API_URL", "").rstrip("/")
		n8n_api_key = os.getenv("N8N_API_KEY", "")

		if not n8n_api_url or not n8n_api_key:
			raise RuntimeError("N8N_API_URL and N8N_API_KEY must be set in environment")

		return Settings(
			n8n_api_url=n8n_api_url,
			n8n_api_key=n8n_api_key,
			n8n_api_path=os.getenv("N8N_API_PATH", "/api/v1"),
			request_timeout=_float_env("N8N_TIMEOUT", "30") or 30.0,
			discovery_timeout=_float_env("N8N_DISCOVERY_TIMEOUT", "10") or 10.0,
			scan_deadline=_float_env("N8N_SCAN_DEADLINE", None),
			log_level=os.getenv("LOG_LEVEL", "info"),
			audit_log_path=os.getenv("AUDIT_LOG_PATH"),
			rate_limit_per_minute=_int_env("RATE_LIMIT", "60"),
			cache_ttl_seconds=_float_env("CACHE_TTL", "3600") or 3600.0,
		)
