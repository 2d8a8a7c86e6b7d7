"""Verification scenarios run against a live pipeline.

Every scenario passes through the shared convergence gate, issues its
queries and returns the violations found by the applicable checks.
Transport, protocol and convergence failures propagate as exceptions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from harness import checks, query
from harness.checks import SpotCheck, Violation
from harness.client import GraphQLClient
from harness.convergence import ConvergenceGate
from harness.errors import HarnessError
from harness.query import EventType, GeoRadius, SortOrder, StormReportFilter, TimeRange
from models.reports import StormReportsResult
from settings import Expectations

logger = logging.getLogger(__name__)

PAGE_SIZE = 5
GEO_CENTER = (41.0, -99.0)
GEO_RADIUS_MILES = 50.0
GEO_TOLERANCE_MILES = 5.0
SORT_LIMIT = 10

SAN_SABA_HAIL = SpotCheck(
    event_type="hail",
    magnitude=1.25,
    unit="in",
    source_office="SJT",
    name="Chappel",
    state="TX",
    county="San Saba",
    direction="ESE",
)


@dataclass
class ScenarioContext:
    client: GraphQLClient
    gate: ConvergenceGate
    expectations: Expectations

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.for_day(self.expectations.fixture_date)

    def fetch(self, selection: query.Selection, **filter_args: object) -> StormReportsResult:
        self.gate.ensure()
        report_filter = StormReportFilter(time_range=self.time_range, **filter_args)  # type: ignore[arg-type]
        return self.client.storm_reports(report_filter, selection)


Scenario = Callable[[ScenarioContext], List[Violation]]


def report_counts(ctx: ScenarioContext) -> List[Violation]:
    result = ctx.fetch(query.EVENT_TYPE_AGGREGATION)
    return (
        checks.check_total_count(result, ctx.expectations.total)
        + checks.check_event_type_counts(result, ctx.expectations.by_event_type)
        + checks.check_event_type_sum(result)
    )


def state_aggregations(ctx: ScenarioContext) -> List[Violation]:
    result = ctx.fetch(query.STATE_AGGREGATION)
    return checks.check_state_counts(
        result, ctx.expectations.state_count, ctx.expectations.top_states
    ) + checks.check_state_counties(result)


def report_enrichment(ctx: ScenarioContext) -> List[Violation]:
    result = ctx.fetch(query.ENRICHED_REPORT)
    return checks.check_enrichment(result.reports)


def spot_check_hail_report(ctx: ScenarioContext) -> List[Violation]:
    result = ctx.fetch(
        query.SPOT_CHECK,
        event_types=(EventType.hail,),
        counties=(SAN_SABA_HAIL.county,),
    )
    if result.total_count < 1:
        return [
            Violation(
                "spot_check",
                f"expected at least 1 San Saba hail report, got {result.total_count}",
            )
        ]
    return checks.check_spot_report(result.reports, SAN_SABA_HAIL)


def hourly_aggregation(ctx: ScenarioContext) -> List[Violation]:
    result = ctx.fetch(query.HOUR_AGGREGATION)
    return checks.check_hour_sum(result)


def event_type_filter(ctx: ScenarioContext) -> List[Violation]:
    violations: List[Violation] = []
    for event_type in EventType:
        expected = ctx.expectations.by_event_type.get(event_type.response_value)
        if expected is None:
            continue
        result = ctx.fetch(query.EVENT_TYPES, event_types=(event_type,))
        violations += checks.check_event_type_filter(result, event_type.response_value, expected)
    return violations


def meta_freshness(ctx: ScenarioContext) -> List[Violation]:
    result = ctx.fetch(query.META)
    return checks.check_meta_present(result)


def pagination(ctx: ScenarioContext) -> List[Violation]:
    first = ctx.fetch(query.PAGE, limit=PAGE_SIZE, offset=0)
    second = ctx.fetch(query.PAGE, limit=PAGE_SIZE, offset=PAGE_SIZE)
    return checks.check_pages_disjoint(first, second, PAGE_SIZE, ctx.expectations.total)


def severity_filter(ctx: ScenarioContext) -> List[Violation]:
    result = ctx.fetch(query.SEVERITY, severity=("SEVERE",))
    return checks.check_severity_filter(result, "severe", ctx.expectations.total)


def sort_by_magnitude(ctx: ScenarioContext) -> List[Violation]:
    result = ctx.fetch(
        query.MAGNITUDE,
        event_types=(EventType.hail,),
        sort_by="MAGNITUDE",
        sort_order=SortOrder.desc,
        limit=SORT_LIMIT,
    )
    if len(result.reports) < 2:
        return [Violation("sort_order", "expected at least 2 hail reports")]
    return checks.check_sorted_descending([r.measurement.magnitude for r in result.reports])


def geo_radius_filter(ctx: ScenarioContext) -> List[Violation]:
    lat, lon = GEO_CENTER
    result = ctx.fetch(query.GEO, near=GeoRadius(lat=lat, lon=lon, radius_miles=GEO_RADIUS_MILES))
    return checks.check_within_radius(
        result,
        GEO_CENTER,
        GEO_RADIUS_MILES + GEO_TOLERANCE_MILES,
        ctx.expectations.total,
    )


def aggregation_consistency(ctx: ScenarioContext) -> List[Violation]:
    result = ctx.fetch(query.FULL_AGGREGATION, limit=ctx.expectations.total)
    return (
        checks.check_event_type_sum(result)
        + checks.check_state_counties(result)
        + checks.check_aggregations_match_reports(result)
    )


SCENARIOS: Dict[str, Scenario] = {
    "report_counts": report_counts,
    "state_aggregations": state_aggregations,
    "report_enrichment": report_enrichment,
    "spot_check_hail_report": spot_check_hail_report,
    "hourly_aggregation": hourly_aggregation,
    "event_type_filter": event_type_filter,
    "meta_freshness": meta_freshness,
    "pagination": pagination,
    "severity_filter": severity_filter,
    "sort_by_magnitude": sort_by_magnitude,
    "geo_radius_filter": geo_radius_filter,
    "aggregation_consistency": aggregation_consistency,
}


@dataclass
class ScenarioResult:
    name: str
    violations: List[Violation]
    error: Optional[HarnessError] = None

    @property
    def passed(self) -> bool:
        return self.error is None and not self.violations


def run_scenarios(ctx: ScenarioContext, names: Optional[Iterable[str]] = None) -> List[ScenarioResult]:
    """Run the selected scenarios (all by default), isolating their failures."""
    selected = list(names) if names is not None else list(SCENARIOS)
    results: List[ScenarioResult] = []
    for name in selected:
        scenario = SCENARIOS[name]
        try:
            violations = scenario(ctx)
        except HarnessError as exc:
            logger.error("Scenario %s failed: %s", name, exc)
            results.append(ScenarioResult(name=name, violations=[], error=exc))
            continue
        if violations:
            logger.warning("Scenario %s found %d violation(s)", name, len(violations))
        results.append(ScenarioResult(name=name, violations=violations))
    return results
