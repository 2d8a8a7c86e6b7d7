from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date
from functools import lru_cache
from typing import Dict, Optional


_API_URL_ENV = "API_URL"
_COLLECTOR_URL_ENV = "COLLECTOR_URL"
_ETL_URL_ENV = "ETL_URL"
_DATA_DIR_ENV = "DATA_DIR"
_HOST_ENV = "HOST"
_PORT_ENV = "PORT"
_HEALTH_TIMEOUT_ENV = "HEALTH_TIMEOUT"
_HEALTH_INTERVAL_ENV = "HEALTH_INTERVAL"
_REQUEST_TIMEOUT_ENV = "REQUEST_TIMEOUT"
_QUERY_TIMEOUT_ENV = "QUERY_TIMEOUT"
_CONVERGENCE_TIMEOUT_ENV = "CONVERGENCE_TIMEOUT"
_CONVERGENCE_INTERVAL_ENV = "CONVERGENCE_INTERVAL"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_EXPECTED_TOTAL_ENV = "EXPECTED_TOTAL"
_EXPECTED_HAIL_ENV = "EXPECTED_HAIL"
_EXPECTED_TORNADO_ENV = "EXPECTED_TORNADO"
_EXPECTED_WIND_ENV = "EXPECTED_WIND"
_EXPECTED_STATE_COUNT_ENV = "EXPECTED_STATE_COUNT"
_EXPECTED_TOP_STATES_ENV = "EXPECTED_TOP_STATES"
_FIXTURE_DATE_ENV = "FIXTURE_DATE"


@dataclass(frozen=True)
class Settings:
    api_url: str
    collector_url: str
    etl_url: str
    data_dir: str
    host: str
    port: int
    health_timeout: float
    health_interval: float
    request_timeout: float
    query_timeout: float
    convergence_timeout: float
    convergence_interval: float
    log_level: str

    def service_urls(self) -> Dict[str, str]:
        """Pipeline services in the order they are probed."""
        return {
            "api": self.api_url,
            "collector": self.collector_url,
            "etl": self.etl_url,
        }


@dataclass(frozen=True)
class Expectations:
    """Known shape of the fixture dataset loaded into the pipeline."""

    total: int
    by_event_type: Dict[str, int]
    state_count: int
    top_states: Dict[str, int] = field(default_factory=dict)
    fixture_date: date = date(2024, 4, 26)


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_url_env(name: str, default: str) -> str:
    return _read_str_env(name, default).rstrip("/")


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_non_negative_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def _read_state_counts(name: str, default: Dict[str, int]) -> Dict[str, int]:
    """Parse ``NE:100,IA:69`` style pairs, ignoring malformed entries.

    An explicitly empty value disables the per-state expectations.
    """
    value = os.getenv(name)
    if value is None:
        return dict(default)
    if not value.strip():
        return {}
    parsed: Dict[str, int] = {}
    for chunk in value.split(","):
        state, _, count = chunk.partition(":")
        state = state.strip().upper()
        try:
            parsed[state] = int(count.strip())
        except ValueError:
            continue
    return parsed or dict(default)


def _read_date(name: str, default: date) -> date:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        return date.fromisoformat(candidate)
    except ValueError:
        return default


@lru_cache
def get_settings() -> Settings:
    return Settings(
        api_url=_read_url_env(_API_URL_ENV, "http://localhost:8080"),
        collector_url=_read_url_env(_COLLECTOR_URL_ENV, "http://localhost:3000"),
        etl_url=_read_url_env(_ETL_URL_ENV, "http://localhost:8081"),
        data_dir=_read_str_env(_DATA_DIR_ENV, "/data"),
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_positive_int(_PORT_ENV, 8080),
        health_timeout=_read_positive_float(_HEALTH_TIMEOUT_ENV, 60.0),
        health_interval=_read_positive_float(_HEALTH_INTERVAL_ENV, 2.0),
        request_timeout=_read_positive_float(_REQUEST_TIMEOUT_ENV, 5.0),
        query_timeout=_read_positive_float(_QUERY_TIMEOUT_ENV, 10.0),
        convergence_timeout=_read_positive_float(_CONVERGENCE_TIMEOUT_ENV, 120.0),
        convergence_interval=_read_positive_float(_CONVERGENCE_INTERVAL_ENV, 5.0),
        log_level=_read_log_level("INFO"),
    )


@lru_cache
def get_expectations() -> Expectations:
    # Defaults describe the NOAA SPC reports for 2024-04-26.
    hail = _read_non_negative_int(_EXPECTED_HAIL_ENV, 79)
    tornado = _read_non_negative_int(_EXPECTED_TORNADO_ENV, 149)
    wind = _read_non_negative_int(_EXPECTED_WIND_ENV, 43)
    return Expectations(
        total=_read_positive_int(_EXPECTED_TOTAL_ENV, hail + tornado + wind),
        by_event_type={"hail": hail, "tornado": tornado, "wind": wind},
        state_count=_read_positive_int(_EXPECTED_STATE_COUNT_ENV, 11),
        top_states=_read_state_counts(
            _EXPECTED_TOP_STATES_ENV, {"NE": 100, "IA": 69, "TX": 39}
        ),
        fixture_date=_read_date(_FIXTURE_DATE_ENV, date(2024, 4, 26)),
    )
