"""Client-side aggregation of storm reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable

from models.reports import StormReport


@dataclass
class AggregationSummary:
    """Counts recomputed from a complete list of reports."""

    row_count: int = 0
    per_event_type: Dict[str, int] = field(default_factory=dict)
    max_magnitude: Dict[str, float] = field(default_factory=dict)
    per_state: Dict[str, int] = field(default_factory=dict)
    per_county: Dict[str, Dict[str, int]] = field(default_factory=dict)


class Aggregator:
    """Pure aggregation component used to cross-check server aggregations."""

    def aggregate(self, reports: Iterable[StormReport]) -> AggregationSummary:
        summary = AggregationSummary()

        for report in reports:
            summary.row_count += 1
            event_type = report.event_type
            magnitude = report.measurement.magnitude

            summary.per_event_type[event_type] = summary.per_event_type.get(event_type, 0) + 1
            current_max = summary.max_magnitude.get(event_type)
            if current_max is None or magnitude > current_max:
                summary.max_magnitude[event_type] = magnitude

            state = report.location.state
            county = report.location.county
            summary.per_state[state] = summary.per_state.get(state, 0) + 1
            counties = summary.per_county.setdefault(state, {})
            counties[county] = counties.get(county, 0) + 1

        return summary
