"""Invariant checks over decoded ``stormReports`` results.

Checks never raise. Each returns the violations it found so that a scenario
can run every applicable check and report all failures together through
:func:`raise_for_violations`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence

from harness.errors import InvariantViolationError
from models.reports import StormReport, StormReportsResult
from services.aggregator import Aggregator

EARTH_RADIUS_MILES = 3959.0


@dataclass(frozen=True)
class Violation:
    check: str
    message: str


def raise_for_violations(violations: Iterable[Violation]) -> None:
    collected = list(violations)
    if collected:
        raise InvariantViolationError(collected)


def _missing_aggregations(check: str) -> List[Violation]:
    return [Violation(check, "aggregations is nil")]


def check_total_count(result: StormReportsResult, expected: int) -> List[Violation]:
    if result.total_count != expected:
        return [Violation("total_count", f"totalCount = {result.total_count}, want {expected}")]
    return []


def check_event_type_counts(
    result: StormReportsResult, expected: Mapping[str, int]
) -> List[Violation]:
    if result.aggregations is None:
        return _missing_aggregations("event_type_counts")
    counts = {group.event_type: group.count for group in result.aggregations.by_event_type}
    return [
        Violation("event_type_counts", f"{event_type} count = {counts.get(event_type, 0)}, want {want}")
        for event_type, want in expected.items()
        if counts.get(event_type, 0) != want
    ]


def check_event_type_sum(result: StormReportsResult) -> List[Violation]:
    if result.aggregations is None:
        return _missing_aggregations("event_type_sum")
    grouped = sum(group.count for group in result.aggregations.by_event_type)
    if grouped != result.total_count:
        return [
            Violation(
                "event_type_sum",
                f"event type group total = {grouped}, totalCount = {result.total_count}",
            )
        ]
    return []


def check_hour_sum(result: StormReportsResult) -> List[Violation]:
    if result.aggregations is None:
        return _missing_aggregations("hour_sum")
    buckets = result.aggregations.by_hour
    if not buckets:
        return [Violation("hour_sum", "expected at least one hourly bucket")]

    violations = [
        Violation("hour_sum", f"hourly bucket #{index} has empty timestamp")
        for index, bucket in enumerate(buckets)
        if not bucket.bucket
    ]
    hour_total = sum(bucket.count for bucket in buckets)
    if hour_total != result.total_count:
        violations.append(
            Violation(
                "hour_sum",
                f"hourly bucket total = {hour_total}, totalCount = {result.total_count}",
            )
        )
    return violations


def check_state_counties(result: StormReportsResult) -> List[Violation]:
    if result.aggregations is None:
        return _missing_aggregations("state_counties")
    violations: List[Violation] = []
    for group in result.aggregations.by_state:
        if not group.counties:
            violations.append(
                Violation("state_counties", f"state {group.state} has no county breakdown")
            )
            continue
        county_total = sum(county.count for county in group.counties)
        if county_total != group.count:
            violations.append(
                Violation(
                    "state_counties",
                    f"state {group.state} count = {group.count}, county total = {county_total}",
                )
            )
    return violations


def check_state_counts(
    result: StormReportsResult,
    expected_state_count: int,
    expected_states: Mapping[str, int],
) -> List[Violation]:
    if result.aggregations is None:
        return _missing_aggregations("state_counts")
    counts = {group.state: group.count for group in result.aggregations.by_state}
    violations: List[Violation] = []
    if len(counts) != expected_state_count:
        violations.append(
            Violation(
                "state_counts",
                f"expected {expected_state_count} states, got {len(counts)}: {counts}",
            )
        )
    for state, want in expected_states.items():
        if counts.get(state, 0) != want:
            violations.append(
                Violation("state_counts", f"{state} count = {counts.get(state, 0)}, want {want}")
            )
    grouped = sum(counts.values())
    if result.total_count and grouped != result.total_count:
        violations.append(
            Violation(
                "state_counts",
                f"state group total = {grouped}, totalCount = {result.total_count}",
            )
        )
    return violations


def check_event_type_filter(
    result: StormReportsResult, event_type: str, expected_total: int
) -> List[Violation]:
    violations: List[Violation] = []
    if result.total_count != expected_total:
        violations.append(
            Violation(
                "event_type_filter",
                f"{event_type} filter totalCount = {result.total_count}, want {expected_total}",
            )
        )
    for report in result.reports:
        if report.event_type != event_type:
            violations.append(
                Violation(
                    "event_type_filter",
                    f"filtered report {report.id or '?'} has eventType {report.event_type!r}, want {event_type!r}",
                )
            )
    return violations


def check_severity_filter(
    result: StormReportsResult, severity: str, unfiltered_total: int
) -> List[Violation]:
    violations: List[Violation] = []
    if result.total_count == 0:
        violations.append(Violation("severity_filter", f"expected at least one {severity} report"))
    elif result.total_count >= unfiltered_total:
        violations.append(
            Violation(
                "severity_filter",
                f"severity filter should narrow results: got {result.total_count}/{unfiltered_total}",
            )
        )
    for report in result.reports:
        actual = report.measurement.severity
        if actual != severity:
            violations.append(
                Violation(
                    "severity_filter",
                    f"filtered report has severity {actual if actual is not None else '<nil>'!r}, want {severity!r}",
                )
            )
    return violations


def check_enrichment(reports: Sequence[StormReport]) -> List[Violation]:
    if not reports:
        return [Violation("enrichment", "no reports returned")]
    violations: List[Violation] = []
    for report in reports:
        label = report.id or "<no id>"
        if not report.id:
            violations.append(Violation("enrichment", "report has empty ID"))
        required = (
            ("measurement.unit", report.measurement.unit),
            ("timeBucket", report.time_bucket),
            ("processedAt", report.processed_at),
            ("state", report.location.state),
            ("county", report.location.county),
        )
        for field_name, value in required:
            if not value:
                violations.append(Violation("enrichment", f"report {label} has empty {field_name}"))
        if report.geo.lat == 0 and report.geo.lon == 0:
            violations.append(Violation("enrichment", f"report {label} has zero geo coordinates"))
    return violations


def check_sorted_descending(values: Sequence[float], label: str = "magnitude") -> List[Violation]:
    violations: List[Violation] = []
    for index in range(1, len(values)):
        previous, current = values[index - 1], values[index]
        if previous < current:
            violations.append(
                Violation(
                    "sort_order",
                    f"not sorted DESC by {label}: index {index - 1} ({previous:.2f}) < index {index} ({current:.2f})",
                )
            )
    return violations


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in miles between two points."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def check_within_radius(
    result: StormReportsResult,
    center: tuple[float, float],
    max_miles: float,
    unfiltered_total: Optional[int] = None,
) -> List[Violation]:
    violations: List[Violation] = []
    if result.total_count == 0:
        violations.append(Violation("geo_radius", "expected at least one report within the radius"))
    elif unfiltered_total is not None and result.total_count >= unfiltered_total:
        violations.append(
            Violation(
                "geo_radius",
                f"geo filter should narrow results: got {result.total_count}/{unfiltered_total}",
            )
        )
    lat0, lon0 = center
    for report in result.reports:
        distance = haversine_miles(lat0, lon0, report.geo.lat, report.geo.lon)
        if distance > max_miles:
            violations.append(
                Violation(
                    "geo_radius",
                    f"report at ({report.geo.lat:.4f}, {report.geo.lon:.4f}) is {distance:.1f} miles away, exceeds {max_miles:.1f}",
                )
            )
    return violations


def check_pages_disjoint(
    first: StormReportsResult,
    second: StormReportsResult,
    page_size: int,
    expected_total: Optional[int] = None,
) -> List[Violation]:
    violations: List[Violation] = []
    if expected_total is not None and first.total_count != expected_total:
        violations.append(
            Violation("pagination", f"page 1 totalCount = {first.total_count}, want {expected_total}")
        )
    for number, page in ((1, first), (2, second)):
        more_expected = number * page_size < page.total_count
        if page.has_more != more_expected:
            violations.append(
                Violation("pagination", f"page {number} hasMore should be {str(more_expected).lower()}")
            )
        if len(page.reports) != page_size:
            violations.append(
                Violation("pagination", f"page {number} reports = {len(page.reports)}, want {page_size}")
            )
    seen = {report.id for report in first.reports}
    for report in second.reports:
        if report.id in seen:
            violations.append(
                Violation("pagination", f"page 2 contains duplicate ID {report.id} from page 1")
            )
    return violations


def check_meta_present(result: StormReportsResult) -> List[Violation]:
    if result.meta is None:
        return [Violation("meta", "meta is nil")]
    violations: List[Violation] = []
    if result.meta.last_updated is None:
        violations.append(Violation("meta", "meta.lastUpdated is nil"))
    if result.meta.data_lag_minutes is None:
        violations.append(Violation("meta", "meta.dataLagMinutes is nil"))
    return violations


@dataclass(frozen=True)
class SpotCheck:
    """Known values of one specific report in the fixture set."""

    event_type: str
    magnitude: float
    unit: str
    source_office: str
    name: str
    state: str
    county: str
    direction: Optional[str] = None


def check_spot_report(reports: Sequence[StormReport], expected: SpotCheck) -> List[Violation]:
    match = next(
        (report for report in reports if report.measurement.magnitude == expected.magnitude),
        None,
    )
    if match is None:
        return [
            Violation(
                "spot_check",
                f"expected a {expected.county} {expected.event_type} report with magnitude {expected.magnitude}",
            )
        ]
    pairs = (
        ("eventType", match.event_type, expected.event_type),
        ("measurement.unit", match.measurement.unit, expected.unit),
        ("sourceOffice", match.source_office, expected.source_office),
        ("location.name", match.location.name, expected.name),
        ("location.state", match.location.state, expected.state),
    )
    violations = [
        Violation("spot_check", f"{name} = {actual!r}, want {want!r}")
        for name, actual, want in pairs
        if actual != want
    ]
    direction = match.location.direction
    # Direction is optional in the response; only a present value is compared.
    if expected.direction is not None and direction is not None and direction != expected.direction:
        violations.append(
            Violation("spot_check", f"location.direction = {direction!r}, want {expected.direction!r}")
        )
    return violations


def check_aggregations_match_reports(result: StormReportsResult) -> List[Violation]:
    """Compare server-side aggregations with ones recomputed from ``reports``.

    Only meaningful when ``reports`` holds the whole result set.
    """
    if result.aggregations is None:
        return _missing_aggregations("aggregation_consistency")
    violations: List[Violation] = []
    if len(result.reports) != result.total_count:
        violations.append(
            Violation(
                "aggregation_consistency",
                f"reports = {len(result.reports)}, totalCount = {result.total_count}",
            )
        )
    summary = Aggregator().aggregate(result.reports)

    for group in result.aggregations.by_event_type:
        local = summary.per_event_type.get(group.event_type, 0)
        if local != group.count:
            violations.append(
                Violation(
                    "aggregation_consistency",
                    f"{group.event_type} aggregation count = {group.count}, reports = {local}",
                )
            )
        if group.max_measurement is not None:
            local_max = summary.max_magnitude.get(group.event_type)
            if local_max is not None and not math.isclose(local_max, group.max_measurement.magnitude):
                violations.append(
                    Violation(
                        "aggregation_consistency",
                        f"{group.event_type} maxMeasurement = {group.max_measurement.magnitude}, reports max = {local_max}",
                    )
                )

    for state_group in result.aggregations.by_state:
        local = summary.per_state.get(state_group.state, 0)
        if local != state_group.count:
            violations.append(
                Violation(
                    "aggregation_consistency",
                    f"state {state_group.state} aggregation count = {state_group.count}, reports = {local}",
                )
            )
        local_counties = summary.per_county.get(state_group.state, {})
        for county_group in state_group.counties:
            county_local = local_counties.get(county_group.county, 0)
            if county_local != county_group.count:
                violations.append(
                    Violation(
                        "aggregation_consistency",
                        f"{state_group.state}/{county_group.county} aggregation count = {county_group.count}, reports = {county_local}",
                    )
                )
    return violations
