"""Per-candidate attempt metrics for the fallback client."""
from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from dataclasses import asdict, dataclass, field
from typing import Any, Deque, Dict, List, Optional


@dataclass
class AttemptRecord:
    """One HTTP attempt against one endpoint candidate."""

    operation: str
    endpoint: str
    ok: bool
    latency_ms: float
    status_code: Optional[int] = None
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


class EndpointMetrics:
    """
    Collects candidate attempts and remembers which endpoint answered.

    Tracks:
    - attempts and failures per operation
    - the endpoint that most recently served each operation
    - recent attempts (bounded) for inspection
    - how often a scan ran out of candidates
    """

    def __init__(self, history: int = 200):
        self._lock = threading.Lock()
        self._attempts: Dict[str, int] = defaultdict(int)
        self._failures: Dict[str, int] = defaultdict(int)
        self._exhausted: Dict[str, int] = defaultdict(int)
        self._resolved: Dict[str, str] = {}
        self._latencies: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=100))
        self._recent: Deque[AttemptRecord] = deque(maxlen=history)

    def record_attempt(self, record: AttemptRecord) -> None:
        with self._lock:
            self._attempts[record.operation] += 1
            self._latencies[record.operation].append(record.latency_ms)
            if record.ok:
                self._resolved[record.operation] = record.endpoint
            else:
                self._failures[record.operation] += 1
            self._recent.append(record)

    def record_exhausted(self, operation: str) -> None:
        with self._lock:
            self._exhausted[operation] += 1

    def resolved_endpoint(self, operation: str) -> Optional[str]:
        """Endpoint that last answered ``operation``, if any."""
        with self._lock:
            return self._resolved.get(operation)

    def recent_attempts(self, limit: int = 20) -> List[Dict[str, Any]]:
        with self._lock:
            items = list(self._recent)[-limit:] if limit > 0 else []
        return [asdict(item) for item in items]

    def get_summary(self) -> Dict[str, Any]:
        with self._lock:
            operations: Dict[str, Dict[str, Any]] = {}
            for name, attempts in self._attempts.items():
                samples = list(self._latencies[name])
                operations[name] = {
                    "attempts": attempts,
                    "failures": self._failures.get(name, 0),
                    "exhausted": self._exhausted.get(name, 0),
                    "resolved_endpoint": self._resolved.get(name),
                    "average_latency_ms": sum(samples) / len(samples) if samples else 0.0,
                }
            for name, count in self._exhausted.items():
                operations.setdefault(
                    name,
                    {
                        "attempts": 0,
                        "failures": 0,
                        "exhausted": count,
                        "resolved_endpoint": None,
                        "average_latency_ms": 0.0,
                    },
                )
            return {
                "total_attempts": sum(self._attempts.values()),
                "total_failures": sum(self._failures.values()),
                "operations": operations,
            }

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()
            self._failures.clear()
            self._exhausted.clear()
            self._resolved.clear()
            self._latencies.clear()
            self._recent.clear()


# Process-wide collector shared by the server actions
endpoint_metrics = EndpointMetrics()
