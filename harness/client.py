from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from harness.errors import GraphQLErrorsError, QueryProtocolError, QueryTransportError
from harness.query import Selection, StormReportFilter, storm_reports_query
from models.reports import GraphQLResponse, StormReportsResult

logger = logging.getLogger(__name__)


class GraphQLClient:
    """Minimal GraphQL-over-HTTP client for the storm query API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def __enter__(self) -> "GraphQLClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def execute(self, query: str) -> GraphQLResponse:
        """POST a query document and decode the envelope.

        Any failure is terminal for the caller: transport problems raise
        :class:`QueryTransportError`; a non-200 status, an undecodable body
        or a non-empty ``errors`` array raise :class:`QueryProtocolError`.
        """
        try:
            response = self._client.post("/query", json={"query": query})
        except httpx.HTTPError as exc:
            raise QueryTransportError(f"GraphQL request to {self.base_url}/query failed: {exc}") from exc

        body = response.text
        if response.status_code != httpx.codes.OK:
            raise QueryProtocolError(
                f"GraphQL returned status {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        try:
            envelope = GraphQLResponse.model_validate_json(body)
        except ValidationError as exc:
            raise QueryProtocolError(
                f"Unable to decode GraphQL response ({exc.error_count()} error(s))",
                status_code=response.status_code,
                body=body,
            ) from exc

        if envelope.errors:
            raise GraphQLErrorsError([error.message for error in envelope.errors], body=body)
        return envelope

    def storm_reports(
        self, report_filter: StormReportFilter, selection: Selection
    ) -> StormReportsResult:
        query = storm_reports_query(report_filter, selection)
        logger.debug("Executing GraphQL query: %s", query)
        envelope = self.execute(query)
        if envelope.data is None:
            raise QueryProtocolError("GraphQL response carried no data", status_code=200)
        return envelope.data.storm_reports
