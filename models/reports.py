"""Typed view of the ``stormReports`` GraphQL response.

Queries select only the fields a check needs, so every field carries a
default: unselected scalars decode to their zero value and optional
sub-objects decode to ``None``.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GraphQLModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Geo(GraphQLModel):
    lat: float = 0.0
    lon: float = 0.0


class Measurement(GraphQLModel):
    magnitude: float = 0.0
    unit: str = ""
    severity: Optional[str] = None


class Location(GraphQLModel):
    raw: str = ""
    name: str = ""
    distance: Optional[float] = None
    direction: Optional[str] = None
    state: str = ""
    county: str = ""


class Geocoding(GraphQLModel):
    formatted_address: str = ""
    place_name: str = ""
    confidence: float = 0.0
    source: str = ""


class StormReport(GraphQLModel):
    """A single enriched storm report as served by the query API."""

    id: str = ""
    event_type: str = ""
    geo: Geo = Field(default_factory=Geo)
    measurement: Measurement = Field(default_factory=Measurement)
    begin_time: str = ""
    end_time: str = ""
    source: str = ""
    source_office: str = ""
    location: Location = Field(default_factory=Location)
    comments: str = ""
    time_bucket: str = ""
    processed_at: str = ""
    geocoding: Optional[Geocoding] = None


class CountyGroup(GraphQLModel):
    county: str = ""
    count: int = 0


class StateGroup(GraphQLModel):
    state: str = ""
    count: int = 0
    counties: List[CountyGroup] = Field(default_factory=list)


class EventTypeGroup(GraphQLModel):
    event_type: str = ""
    count: int = 0
    max_measurement: Optional[Measurement] = None


class TimeGroup(GraphQLModel):
    bucket: str = ""
    count: int = 0


class StormAggregations(GraphQLModel):
    total_count: int = 0
    by_event_type: List[EventTypeGroup] = Field(default_factory=list)
    by_state: List[StateGroup] = Field(default_factory=list)
    by_hour: List[TimeGroup] = Field(default_factory=list)


class QueryMeta(GraphQLModel):
    """Freshness metadata; both fields are expected once data has landed."""

    last_updated: Optional[str] = None
    data_lag_minutes: Optional[int] = None


class StormReportsResult(GraphQLModel):
    total_count: int = 0
    has_more: bool = False
    reports: List[StormReport] = Field(default_factory=list)
    aggregations: Optional[StormAggregations] = None
    meta: Optional[QueryMeta] = None


class StormReportsData(GraphQLModel):
    storm_reports: StormReportsResult = Field(default_factory=StormReportsResult)


class GraphQLError(GraphQLModel):
    message: str = ""
    path: Optional[List[str | int]] = None


class GraphQLResponse(GraphQLModel):
    """Envelope returned by ``POST /query``."""

    data: Optional[StormReportsData] = None
    errors: Optional[List[GraphQLError]] = None
