from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Callable, List

import pytest

from harness import query, scenarios
from harness.errors import ConvergenceTimeoutError, GraphQLErrorsError
from harness.query import EventType, SortOrder, StormReportFilter
from harness.scenarios import ScenarioContext, run_scenarios
from models.reports import StormReportsResult
from settings import Expectations

EXPECTATIONS = Expectations(
    total=9,
    by_event_type={"hail": 4, "tornado": 3, "wind": 2},
    state_count=3,
    top_states={"NE": 5},
    fixture_date=date(2024, 4, 26),
)

Responder = Callable[[StormReportFilter, query.Selection], StormReportsResult]


class StubGate:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0

    def ensure(self) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error


class StubClient:
    def __init__(self, responder: Responder) -> None:
        self.responder = responder
        self.calls: List[tuple[StormReportFilter, query.Selection]] = []

    def storm_reports(self, report_filter: StormReportFilter, selection: query.Selection) -> StormReportsResult:
        self.calls.append((report_filter, selection))
        return self.responder(report_filter, selection)


def _result(**payload: Any) -> StormReportsResult:
    return StormReportsResult.model_validate(payload)


def _context(responder: Responder, gate: StubGate | None = None) -> ScenarioContext:
    return ScenarioContext(
        client=StubClient(responder),  # type: ignore[arg-type]
        gate=gate or StubGate(),  # type: ignore[arg-type]
        expectations=EXPECTATIONS,
    )


def test_fetch_waits_on_gate_and_uses_fixture_day() -> None:
    gate = StubGate()
    ctx = _context(lambda f, s: _result(totalCount=9), gate)

    ctx.fetch(query.TOTAL_COUNT, limit=5)

    report_filter, selection = ctx.client.calls[0]  # type: ignore[attr-defined]
    assert gate.calls == 1
    assert report_filter.time_range.start == datetime(2024, 4, 26, tzinfo=timezone.utc)
    assert report_filter.time_range.end == datetime(2024, 4, 27, tzinfo=timezone.utc)
    assert report_filter.limit == 5
    assert selection is query.TOTAL_COUNT


def test_report_counts_passes_on_expected_dataset() -> None:
    result = _result(
        totalCount=9,
        aggregations={
            "byEventType": [
                {"eventType": "hail", "count": 4},
                {"eventType": "tornado", "count": 3},
                {"eventType": "wind", "count": 2},
            ]
        },
    )

    assert scenarios.report_counts(_context(lambda f, s: result)) == []


def test_event_type_filter_queries_each_type() -> None:
    counts = {EventType.hail: 4, EventType.tornado: 3, EventType.wind: 1}

    def responder(report_filter: StormReportFilter, selection: query.Selection) -> StormReportsResult:
        (event_type,) = report_filter.event_types
        return _result(
            totalCount=counts[event_type],
            reports=[{"eventType": event_type.response_value}] * counts[event_type],
        )

    ctx = _context(responder)
    violations = scenarios.event_type_filter(ctx)

    assert [v.message for v in violations] == ["wind filter totalCount = 1, want 2"]
    assert len(ctx.client.calls) == 3  # type: ignore[attr-defined]


def test_pagination_requests_two_windows() -> None:
    def responder(report_filter: StormReportFilter, selection: query.Selection) -> StormReportsResult:
        start = report_filter.offset or 0
        ids = [{"id": f"r-{i}"} for i in range(start, start + (report_filter.limit or 0))]
        return _result(totalCount=9, hasMore=start + 5 < 9, reports=ids)

    ctx = _context(responder)

    assert scenarios.pagination(ctx) == []
    offsets = [call[0].offset for call in ctx.client.calls]  # type: ignore[attr-defined]
    assert offsets == [0, 5]


def test_sort_by_magnitude_uses_descending_hail_filter() -> None:
    def responder(report_filter: StormReportFilter, selection: query.Selection) -> StormReportsResult:
        return _result(reports=[{"measurement": {"magnitude": m}} for m in (2.0, 1.75, 2.5)])

    ctx = _context(responder)
    violations = scenarios.sort_by_magnitude(ctx)

    report_filter = ctx.client.calls[0][0]  # type: ignore[attr-defined]
    assert report_filter.sort_by == "MAGNITUDE"
    assert report_filter.sort_order is SortOrder.desc
    assert report_filter.event_types == (EventType.hail,)
    assert len(violations) == 1


def test_spot_check_without_matches() -> None:
    violations = scenarios.spot_check_hail_report(_context(lambda f, s: _result(totalCount=0)))

    assert violations[0].message == "expected at least 1 San Saba hail report, got 0"


def test_geo_radius_filter_applies_tolerance() -> None:
    # About 53 miles north of the centre: outside 50, inside the 55 mile bound.
    result = _result(totalCount=1, reports=[{"geo": {"lat": 41.77, "lon": -99.0}}])

    ctx = _context(lambda f, s: result)

    assert scenarios.geo_radius_filter(ctx) == []
    assert ctx.client.calls[0][0].near.radius_miles == 50.0  # type: ignore[attr-defined]


def test_run_scenarios_isolates_failures() -> None:
    def responder(report_filter: StormReportFilter, selection: query.Selection) -> StormReportsResult:
        if selection is query.META:
            raise GraphQLErrorsError(["Cannot query field \"meta\""])
        return _result(totalCount=9, hasMore=True, reports=[{"id": "dup"}] * 5)

    results = run_scenarios(_context(responder), ["meta_freshness", "pagination", "hourly_aggregation"])

    by_name = {result.name: result for result in results}
    assert isinstance(by_name["meta_freshness"].error, GraphQLErrorsError)
    assert not by_name["pagination"].passed
    assert any("duplicate ID dup" in v.message for v in by_name["pagination"].violations)
    assert by_name["hourly_aggregation"].violations[0].message == "aggregations is nil"


def test_run_scenarios_surfaces_convergence_failure_for_every_scenario() -> None:
    error = ConvergenceTimeoutError(observed=3, expected=9, timeout=120)
    ctx = _context(lambda f, s: pytest.fail("no query expected after a failed gate"), StubGate(error))

    results = run_scenarios(ctx)

    assert len(results) == len(scenarios.SCENARIOS)
    assert all(result.error is error for result in results)
    assert ctx.client.calls == []  # type: ignore[attr-defined]
