"""Pydantic schemas for the fixture server."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ReportType(str, Enum):
    """Report kinds published by the upstream source, keyed by file suffix."""

    torn = "torn"
    hail = "hail"
    wind = "wind"


class HealthResponse(BaseModel):
    """Fixed liveness payload."""

    status: str = "healthy"
