"""Shared wait for the pipeline's eventually-consistent write path.

The collector, ETL and query API converge asynchronously. Rather than have
every scenario poll on its own, a single :class:`ConvergenceGate` performs the
wait once per process and hands the resolved outcome (or the terminal
failure) to every caller, including callers that arrive after resolution.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from threading import Lock
from typing import Optional

import httpx

from harness.client import GraphQLClient
from harness.errors import (
    ConvergenceTimeoutError,
    HarnessError,
    QueryProtocolError,
    QueryTransportError,
)
from harness.liveness import wait_healthy
from harness.query import ALL_TIME, TOTAL_COUNT, StormReportFilter, TimeRange
from settings import get_expectations, get_settings

logger = logging.getLogger(__name__)


def is_transient(exc: HarnessError) -> bool:
    """Whether a failed probe may succeed on a later attempt.

    Connection failures and 5xx answers happen while the API is still starting
    or redeploying. GraphQL errors, undecodable envelopes and 4xx answers mean
    the query contract is broken and retrying cannot fix it.
    """
    if isinstance(exc, QueryTransportError):
        return True
    if isinstance(exc, QueryProtocolError):
        status_code = exc.status_code
        return status_code is not None and status_code >= 500
    return False


class ConvergenceState(str, Enum):
    uninitialized = "uninitialized"
    polling = "polling"
    succeeded = "succeeded"
    failed = "failed"


@dataclass(frozen=True)
class ConvergenceOutcome:
    observed_count: int
    expected_count: int
    attempts: int
    elapsed_s: float


class ConvergenceGate:
    """Run-once, deadline-bounded wait for ``totalCount >= expected_total``.

    ``ensure`` may be called from any number of threads. The first caller
    creates the shared future under the lock and performs the polling; all
    others block on that future. Once resolved, the future is only read.
    """

    def __init__(
        self,
        client: GraphQLClient,
        expected_total: int,
        health_url: str,
        time_range: TimeRange = ALL_TIME,
        timeout: float = 120.0,
        interval: float = 5.0,
        health_timeout: float = 60.0,
        health_interval: float = 2.0,
        request_timeout: float = 5.0,
        probe_client: Optional[httpx.Client] = None,
    ) -> None:
        self.client = client
        self.expected_total = expected_total
        self.health_url = health_url
        self.time_range = time_range
        self.timeout = timeout
        self.interval = interval
        self.health_timeout = health_timeout
        self.health_interval = health_interval
        self.request_timeout = request_timeout
        self._probe_client = probe_client
        self._future: Optional[Future[ConvergenceOutcome]] = None
        self._lock = Lock()

    @property
    def state(self) -> ConvergenceState:
        future = self._future
        if future is None:
            return ConvergenceState.uninitialized
        if not future.done():
            return ConvergenceState.polling
        if future.exception() is not None:
            return ConvergenceState.failed
        return ConvergenceState.succeeded

    def ensure(self) -> ConvergenceOutcome:
        """Block until the gate resolves; raise its failure if it failed."""
        with self._lock:
            future = self._future
            owner = future is None
            if future is None:
                future = Future()
                future.set_running_or_notify_cancel()
                self._future = future

        if owner:
            try:
                outcome = self._poll()
            except BaseException as exc:
                future.set_exception(exc)
                if not isinstance(exc, Exception):
                    raise
            else:
                future.set_result(outcome)

        return future.result()

    def _poll(self) -> ConvergenceOutcome:
        started = time.monotonic()
        wait_healthy(
            "api",
            self.health_url,
            timeout=self.health_timeout,
            interval=self.health_interval,
            request_timeout=self.request_timeout,
            client=self._probe_client,
        )

        report_filter = StormReportFilter(time_range=self.time_range)
        deadline = time.monotonic() + self.timeout
        observed = 0
        attempts = 0
        last_error: Optional[HarnessError] = None
        while time.monotonic() < deadline:
            attempts += 1
            context = {"attempt": attempts, "expected_count": self.expected_total}
            try:
                result = self.client.storm_reports(report_filter, TOTAL_COUNT)
            except HarnessError as exc:
                if not is_transient(exc):
                    logger.error("Convergence probe failed permanently: %s", exc, extra=context)
                    raise
                last_error = exc
                logger.warning("Convergence probe failed: %s", exc, extra=context)
            else:
                observed = result.total_count
                context["observed_count"] = observed
                if observed >= self.expected_total:
                    elapsed = round(time.monotonic() - started, 3)
                    logger.info(
                        "Data propagated", extra={**context, "elapsed_s": elapsed}
                    )
                    return ConvergenceOutcome(
                        observed_count=observed,
                        expected_count=self.expected_total,
                        attempts=attempts,
                        elapsed_s=elapsed,
                    )
                logger.info("Waiting for data propagation", extra=context)
            time.sleep(self.interval)

        logger.error(
            "Data did not propagate",
            extra={
                "observed_count": observed,
                "expected_count": self.expected_total,
                "attempt": attempts,
            },
        )
        raise ConvergenceTimeoutError(observed, self.expected_total, self.timeout) from last_error


@lru_cache
def build_default_client() -> GraphQLClient:
    settings = get_settings()
    return GraphQLClient(settings.api_url, timeout=settings.query_timeout)


@lru_cache
def get_default_gate() -> ConvergenceGate:
    """Process-wide gate shared by every scenario in a run."""
    settings = get_settings()
    return ConvergenceGate(
        client=build_default_client(),
        expected_total=get_expectations().total,
        health_url=settings.api_url,
        timeout=settings.convergence_timeout,
        interval=settings.convergence_interval,
        health_timeout=settings.health_timeout,
        health_interval=settings.health_interval,
        request_timeout=settings.request_timeout,
    )


def ensure_data_propagated() -> ConvergenceOutcome:
    return get_default_gate().ensure()
