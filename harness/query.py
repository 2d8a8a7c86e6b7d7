"""Structured construction of ``stormReports`` GraphQL documents.

Filters are serialised from typed values instead of being spliced together
as strings: text is JSON-quoted and enum literals are validated, so a county
name containing quotes cannot change the shape of the query.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Mapping, Optional, Sequence, Union

_ENUM_LITERAL = re.compile(r"^[A-Z][A-Z0-9_]*$")

Selection = Sequence[Union[str, Mapping[str, "Selection"]]]


class EventType(str, Enum):
    hail = "HAIL"
    tornado = "TORNADO"
    wind = "WIND"

    @property
    def response_value(self) -> str:
        """Spelling used by the API in ``eventType`` response fields."""
        return self.name


class SortOrder(str, Enum):
    asc = "ASC"
    desc = "DESC"


def _iso(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _enum_literal(value: Union[str, Enum]) -> str:
    literal = value.value if isinstance(value, Enum) else str(value).upper()
    if not _ENUM_LITERAL.match(literal):
        raise ValueError(f"{literal!r} is not a valid GraphQL enum value.")
    return literal


def _number(value: float) -> str:
    return json.dumps(value)


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime

    @classmethod
    def for_day(cls, day: date) -> "TimeRange":
        start = datetime.combine(day, time(), tzinfo=timezone.utc)
        return cls(start=start, end=start + timedelta(days=1))

    def to_graphql(self) -> str:
        return f"timeRange: {{ from: {json.dumps(_iso(self.start))}, to: {json.dumps(_iso(self.end))} }}"


# Wide window used to count everything the pipeline has stored.
ALL_TIME = TimeRange(
    start=datetime(2020, 1, 1, tzinfo=timezone.utc),
    end=datetime(2030, 1, 1, tzinfo=timezone.utc),
)


@dataclass(frozen=True)
class GeoRadius:
    lat: float
    lon: float
    radius_miles: float

    def to_graphql(self) -> str:
        return (
            f"near: {{ lat: {_number(self.lat)}, lon: {_number(self.lon)}, "
            f"radiusMiles: {_number(self.radius_miles)} }}"
        )


@dataclass(frozen=True)
class StormReportFilter:
    time_range: TimeRange
    event_types: Sequence[EventType] = field(default_factory=tuple)
    counties: Sequence[str] = field(default_factory=tuple)
    severity: Sequence[str] = field(default_factory=tuple)
    near: Optional[GeoRadius] = None
    sort_by: Optional[str] = None
    sort_order: Optional[SortOrder] = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    def to_graphql(self) -> str:
        parts = [self.time_range.to_graphql()]
        if self.event_types:
            parts.append(f"eventTypes: [{', '.join(_enum_literal(e) for e in self.event_types)}]")
        if self.counties:
            parts.append(f"counties: [{', '.join(json.dumps(c) for c in self.counties)}]")
        if self.severity:
            parts.append(f"severity: [{', '.join(_enum_literal(s) for s in self.severity)}]")
        if self.near is not None:
            parts.append(self.near.to_graphql())
        if self.sort_by is not None:
            parts.append(f"sortBy: {_enum_literal(self.sort_by)}")
        if self.sort_order is not None:
            parts.append(f"sortOrder: {_enum_literal(self.sort_order)}")
        if self.limit is not None:
            parts.append(f"limit: {int(self.limit)}")
        if self.offset is not None:
            parts.append(f"offset: {int(self.offset)}")
        return "{ " + " ".join(parts) + " }"


def render_selection(fields: Selection) -> str:
    rendered: list[str] = []
    for item in fields:
        if isinstance(item, str):
            rendered.append(item)
            continue
        for name, nested in item.items():
            rendered.append(f"{name} {render_selection(nested)}")
    return "{ " + " ".join(rendered) + " }"


def storm_reports_query(report_filter: StormReportFilter, selection: Selection) -> str:
    return (
        f"{{ stormReports(filter: {report_filter.to_graphql()}) "
        f"{render_selection(selection)} }}"
    )


TOTAL_COUNT: Selection = ["totalCount"]

EVENT_TYPE_AGGREGATION: Selection = [
    "totalCount",
    {
        "aggregations": [
            {"byEventType": ["eventType", "count", {"maxMeasurement": ["magnitude", "unit"]}]}
        ]
    },
]

STATE_AGGREGATION: Selection = [
    "totalCount",
    {"aggregations": [{"byState": ["state", "count", {"counties": ["county", "count"]}]}]},
]

HOUR_AGGREGATION: Selection = [
    "totalCount",
    {"aggregations": [{"byHour": ["bucket", "count"]}]},
]

FULL_AGGREGATION: Selection = [
    "totalCount",
    {
        "reports": [
            "id",
            "eventType",
            "timeBucket",
            {"measurement": ["magnitude", "unit"]},
            {"location": ["state", "county"]},
        ]
    },
    {
        "aggregations": [
            "totalCount",
            {"byEventType": ["eventType", "count", {"maxMeasurement": ["magnitude", "unit"]}]},
            {"byState": ["state", "count", {"counties": ["county", "count"]}]},
            {"byHour": ["bucket", "count"]},
        ]
    },
]

ENRICHED_REPORT: Selection = [
    {
        "reports": [
            "id",
            "eventType",
            {"measurement": ["magnitude", "unit", "severity"]},
            "sourceOffice",
            "timeBucket",
            "processedAt",
            {"geo": ["lat", "lon"]},
            {"location": ["raw", "name", "state", "county"]},
        ]
    },
]

SPOT_CHECK: Selection = [
    "totalCount",
    {
        "reports": [
            "eventType",
            {"measurement": ["magnitude", "unit"]},
            "sourceOffice",
            {"location": ["raw", "name", "state", "county", "direction", "distance"]},
        ]
    },
]

EVENT_TYPES: Selection = ["totalCount", {"reports": ["eventType"]}]

META: Selection = [{"meta": ["lastUpdated", "dataLagMinutes"]}]

PAGE: Selection = ["totalCount", "hasMore", {"reports": ["id"]}]

SEVERITY: Selection = ["totalCount", {"reports": [{"measurement": ["severity"]}]}]

MAGNITUDE: Selection = [{"reports": [{"measurement": ["magnitude"]}]}]

GEO: Selection = ["totalCount", {"reports": [{"geo": ["lat", "lon"]}]}]

SUMMARY: Selection = [
    "totalCount",
    "hasMore",
    {
        "aggregations": [
            {"byEventType": ["eventType", "count", {"maxMeasurement": ["magnitude", "unit"]}]},
            {"byState": ["state", "count", {"counties": ["county", "count"]}]},
            {"byHour": ["bucket", "count"]},
        ]
    },
    {"meta": ["lastUpdated", "dataLagMinutes"]},
]
