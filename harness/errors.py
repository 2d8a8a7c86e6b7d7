"""Failure taxonomy for the verification harness."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from harness.checks import Violation


class HarnessError(Exception):
    """Base class for every terminal harness failure."""


class ServiceUnavailableError(HarnessError):
    """A service never answered its liveness probe with HTTP 200."""

    def __init__(self, name: str, endpoint: str, timeout: float) -> None:
        self.name = name
        self.endpoint = endpoint
        self.timeout = timeout
        super().__init__(
            f"{name} did not become healthy within {timeout:g}s (endpoint: {endpoint})"
        )


class QueryTransportError(HarnessError):
    """The query request never produced an HTTP response."""


class QueryProtocolError(HarnessError):
    """The query API answered, but not with a usable GraphQL envelope."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        detail = f"{message}: {body}" if body else message
        super().__init__(detail)


class GraphQLErrorsError(QueryProtocolError):
    """The envelope carried a non-empty ``errors`` array."""

    def __init__(self, messages: Sequence[str], body: str = "") -> None:
        self.messages = list(messages)
        super().__init__(f"GraphQL errors: {self.messages}", status_code=200)
        self.body = body


class ConvergenceTimeoutError(HarnessError):
    """The pipeline never reported the expected record count in time."""

    def __init__(self, observed: int, expected: int, timeout: float) -> None:
        self.observed = observed
        self.expected = expected
        self.timeout = timeout
        super().__init__(
            f"data did not propagate within {timeout:g}s: got {observed}/{expected} records"
        )


class InvariantViolationError(HarnessError, AssertionError):
    """One or more invariant checks failed."""

    def __init__(self, violations: Sequence["Violation"]) -> None:
        self.violations = list(violations)
        lines = [f"  - [{v.check}] {v.message}" for v in self.violations]
        super().__init__(
            f"{len(self.violations)} invariant violation(s):\n" + "\n".join(lines)
        )
