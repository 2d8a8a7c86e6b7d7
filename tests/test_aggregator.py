"""Unit tests for the aggregation logic."""

from __future__ import annotations

from models.reports import StormReport
from services.aggregator import Aggregator


def _report(event_type: str, magnitude: float, state: str, county: str) -> StormReport:
    """Helper to build deterministic storm reports."""

    return StormReport.model_validate(
        {
            "eventType": event_type,
            "measurement": {"magnitude": magnitude, "unit": "in"},
            "location": {"state": state, "county": county},
        }
    )


def test_aggregate_empty_iterable_returns_default_summary() -> None:
    aggregator = Aggregator()

    summary = aggregator.aggregate([])

    assert summary.row_count == 0
    assert summary.per_event_type == {}
    assert summary.max_magnitude == {}
    assert summary.per_state == {}
    assert summary.per_county == {}


def test_aggregate_groups_by_type_and_location() -> None:
    aggregator = Aggregator()
    reports = [
        _report("hail", 1.25, "TX", "San Saba"),
        _report("hail", 2.75, "NE", "Adams"),
        _report("tornado", 0.0, "NE", "Adams"),
        _report("wind", 65.0, "NE", "Valley"),
    ]

    summary = aggregator.aggregate(reports)

    assert summary.row_count == 4
    assert summary.per_event_type == {"hail": 2, "tornado": 1, "wind": 1}
    assert summary.max_magnitude == {"hail": 2.75, "tornado": 0.0, "wind": 65.0}
    assert summary.per_state == {"TX": 1, "NE": 3}
    assert summary.per_county == {"TX": {"San Saba": 1}, "NE": {"Adams": 2, "Valley": 1}}
