"""Multi-endpoint fallback requests against an API of uncertain shape.

``FallbackRequester.call`` walks an operation's candidates strictly in
order and returns the first usable answer. Candidates are never tried
concurrently: several of them may be non-idempotent (create, delete).
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import quote

import httpx
from loguru import logger

from client.errors import (
    BAD_BODY,
    DEADLINE,
    HTTP_STATUS,
    TRANSPORT,
    CandidateFailure,
    EndpointsExhausted,
)
from core.endpoints import EndpointCandidate, Operation, Shape, merged_params, timeout_for
from core.metrics import AttemptRecord, EndpointMetrics
from core.normalize import NormalizationError, as_collection, as_resource

if TYPE_CHECKING:
    from loguru import Logger

Result = Union[List[Any], Dict[str, Any]]

MAX_ERROR_BODY = 500


@dataclass(frozen=True)
class CallContext:
    """Per-invocation inputs: path placeholders, query params and JSON body."""

    path_params: Mapping[str, Any] = field(default_factory=dict)
    params: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None


def build_path(template: str, path_params: Mapping[str, Any]) -> str:
    """Substitute ``{name}`` placeholders with percent-encoded values.

    A placeholder without a value raises ``KeyError``.
    """
    encoded = {key: quote(str(value), safe="") for key, value in path_params.items()}
    return template.format(**encoded)


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        raise NormalizationError(f"body is not JSON: {exc}") from exc


def normalize_response(operation: Operation, response: httpx.Response) -> Result:
    body = _decode(response)
    if operation.shape is Shape.COLLECTION:
        return as_collection(body, operation.resource_key)
    return as_resource(body)


class FallbackRequester:
    """
    Issues one logical operation across its ordered endpoint candidates.

    The requester holds no per-call state; its configuration is fixed at
    construction so one instance can serve concurrent calls.

    Parameters:
    - http: the transport; base URL and auth header live on it
    - request_timeout / discovery_timeout: per-candidate timeouts (seconds)
    - scan_deadline: optional bound on a whole scan (seconds)
    - log: loguru logger used for the per-candidate diagnostic lines
    - metrics: optional attempt sink
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        request_timeout: float = 30.0,
        discovery_timeout: float = 10.0,
        scan_deadline: Optional[float] = None,
        log: Optional["Logger"] = None,
        metrics: Optional[EndpointMetrics] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._http = http
        self._request_timeout = request_timeout
        self._discovery_timeout = discovery_timeout
        self._scan_deadline = scan_deadline
        self._log = log if log is not None else logger.bind(component="n8n_fallback")
        self._metrics = metrics
        self._clock = clock

    async def call(self, operation: Operation, context: Optional[CallContext] = None) -> Result:
        """
        Run ``operation`` and return its normalized result.

        Returns:
            A list for collection operations, a mapping for resource ones.
            Fail-open operations return an empty result once every
            candidate has failed.

        Raises:
            EndpointsExhausted: every candidate of a fail-closed operation failed
            KeyError: a path placeholder has no value in ``context``
        """
        context = context or CallContext()
        log = self._log.bind(operation=operation.name)
        timeout = timeout_for(operation, self._request_timeout, self._discovery_timeout)
        failures: List[CandidateFailure] = []
        started = self._clock()

        for candidate in operation.candidates:
            if self._deadline_passed(started):
                failures.append(CandidateFailure(candidate, DEADLINE, "scan deadline exceeded"))
                log.warning(f"{candidate.label} skipped: scan deadline exceeded")
                continue

            url = build_path(candidate.path, context.path_params)
            log.debug(f"trying {candidate.method} {url}")
            result, failure = await self._attempt(operation, candidate, url, context, timeout)
            if failure is None:
                log.info(f"{candidate.label} answered {operation.name}")
                return result
            failures.append(failure)
            log.warning(f"{candidate.label} failed: {failure.describe()}")

        if self._metrics is not None:
            self._metrics.record_exhausted(operation.name)

        if operation.fails_open:
            log.warning(
                f"all {len(failures)} endpoints failed for {operation.name}, returning empty result"
            )
            return operation.empty_result()

        log.warning(f"all {len(failures)} endpoints failed for {operation.name}")
        raise EndpointsExhausted(operation.name, failures)

    async def check_reachable(
        self, candidates: Sequence[EndpointCandidate]
    ) -> Dict[str, Dict[str, Any]]:
        """
        Request every candidate once and report which ones answer with 2xx.

        Unlike ``call`` this never stops early and never normalizes bodies.
        Candidates are checked one after another with the discovery timeout.
        """
        log = self._log.bind(operation="check_endpoints")
        report: Dict[str, Dict[str, Any]] = {}
        for candidate in candidates:
            try:
                response = await self._http.request(
                    candidate.method,
                    candidate.path,
                    params=merged_params(candidate) or None,
                    timeout=self._discovery_timeout,
                )
            except httpx.HTTPError as exc:
                entry = {"ok": False, "status": None, "error": f"{type(exc).__name__}: {exc}"}
            else:
                entry = {"ok": response.is_success, "status": response.status_code, "error": None}

            if entry["ok"]:
                log.info(f"{candidate.label} reachable")
            else:
                log.warning(f"{candidate.label} unreachable: {entry['error'] or entry['status']}")
            report[candidate.path] = entry
        return report

    def _deadline_passed(self, started: float) -> bool:
        return (
            self._scan_deadline is not None
            and self._clock() - started >= self._scan_deadline
        )

    async def _attempt(
        self,
        operation: Operation,
        candidate: EndpointCandidate,
        url: str,
        context: CallContext,
        timeout: float,
    ) -> Tuple[Result, Optional[CandidateFailure]]:
        params = merged_params(candidate, context.params)
        start = time.perf_counter()
        status: Optional[int] = None
        failure: Optional[CandidateFailure] = None
        result: Result = operation.empty_result()

        try:
            response = await self._http.request(
                candidate.method,
                url,
                params=params or None,
                json=context.body,
                timeout=timeout,
            )
        except httpx.HTTPError as exc:
            failure = CandidateFailure(candidate, TRANSPORT, f"{type(exc).__name__}: {exc}")
        else:
            status = response.status_code
            if not response.is_success:
                failure = CandidateFailure(
                    candidate, HTTP_STATUS, response.text[:MAX_ERROR_BODY], status
                )
            else:
                try:
                    result = normalize_response(operation, response)
                except NormalizationError as exc:
                    failure = CandidateFailure(candidate, BAD_BODY, str(exc), status)

        if self._metrics is not None:
            self._metrics.record_attempt(
                AttemptRecord(
                    operation=operation.name,
                    endpoint=candidate.label,
                    ok=failure is None,
                    latency_ms=(time.perf_counter() - start) * 1000,
                    status_code=status,
                    error=failure.describe() if failure else None,
                )
            )
        return result, failure
