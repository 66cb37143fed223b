"""Errors surfaced by the n8n client."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from core.endpoints import EndpointCandidate

TRANSPORT = "transport"
HTTP_STATUS = "http"
BAD_BODY = "body"
DEADLINE = "deadline"


class N8nClientError(RuntimeError):
    """Base class for client errors."""


@dataclass(frozen=True)
class CandidateFailure:
    """Why one endpoint candidate was rejected."""

    candidate: EndpointCandidate
    kind: str
    detail: str
    status_code: Optional[int] = None

    def describe(self) -> str:
        if self.kind == HTTP_STATUS:
            snippet = " ".join(self.detail.split())[:120]
            suffix = f" {snippet}" if snippet else ""
            return f"{self.candidate.label} -> {self.status_code}{suffix}"
        if self.kind == BAD_BODY:
            return f"{self.candidate.label} -> {self.status_code} with unusable body"
        return f"{self.candidate.label} -> {self.detail}"


class EndpointsExhausted(N8nClientError):
    """Every candidate for a must-succeed operation failed."""

    def __init__(self, operation: str, failures: Sequence[CandidateFailure]):
        self.operation = operation
        self.failures: List[CandidateFailure] = list(failures)
        attempted = "; ".join(f.describe() for f in self.failures) or "no endpoints attempted"
        super().__init__(f"{operation} failed: all endpoints failed ({attempted})")

    @property
    def last_status(self) -> Optional[int]:
        for failure in reversed(self.failures):
            if failure.kind == HTTP_STATUS:
                return failure.status_code
        return None


class CredentialValidationError(N8nClientError, ValueError):
    """Credential payload rejected before any request was sent."""
