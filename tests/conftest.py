from __future__ import annotations

import os

# mcp_server.server reads its settings at import time
os.environ.setdefault("N8N_API_URL", "https://n8n.test")
os.environ.setdefault("N8N_API_KEY", "test-key")
os.environ.setdefault("RATE_LIMIT", "10000")
