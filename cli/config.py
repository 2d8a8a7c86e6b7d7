from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from settings import Expectations, Settings, get_expectations, get_settings


@dataclass(frozen=True)
class CLIConfig:
    settings: Settings
    expectations: Expectations


def _positive(value: Optional[float]) -> Optional[float]:
    if value is None or value <= 0:
        return None
    return value


def load_config(
    api_url: Optional[str] = None,
    convergence_timeout: Optional[float] = None,
    convergence_interval: Optional[float] = None,
    expected_total: Optional[int] = None,
) -> CLIConfig:
    """Layer command-line overrides on top of the environment settings."""
    settings = get_settings()
    overrides: dict[str, object] = {}
    if api_url:
        overrides["api_url"] = api_url.rstrip("/")
    timeout = _positive(convergence_timeout)
    if timeout is not None:
        overrides["convergence_timeout"] = timeout
    interval = _positive(convergence_interval)
    if interval is not None:
        overrides["convergence_interval"] = interval
    if overrides:
        settings = replace(settings, **overrides)

    expectations = get_expectations()
    if expected_total is not None and expected_total > 0:
        expectations = replace(expectations, total=expected_total)
    return CLIConfig(settings=settings, expectations=expectations)
