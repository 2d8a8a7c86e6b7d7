"""HTTP route definitions for the fixture server."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import PlainTextResponse

from app.schemas import HealthResponse
from services.time_normalizer import expand_times, parse_fixture_date
from storage.fixtures import (
    FixtureNotFoundError,
    FixtureStore,
    build_default_store,
    resolve_report_type,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store() -> FixtureStore:
    return build_default_store()


@router.get(
    "/healthz",
    response_model=HealthResponse,
    summary="Liveness probe.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> HealthResponse:
    return HealthResponse()


@router.get(
    "/{request_path:path}",
    summary="Serve the fixture matching a report file name.",
    response_class=Response,
)
def serve_fixture(
    request_path: str,
    store: FixtureStore = Depends(get_store),
) -> Response:
    report_type = resolve_report_type(request_path)
    if report_type is None:
        return PlainTextResponse("404 page not found", status_code=status.HTTP_404_NOT_FOUND)

    context = {"request_path": request_path, "report_type": report_type.value}
    try:
        fixture = store.find(report_type)
    except FixtureNotFoundError:
        logger.warning("No fixture found", extra=context)
        return PlainTextResponse("fixture not found", status_code=status.HTTP_404_NOT_FOUND)

    context["fixture"] = fixture.name
    try:
        data = store.read(fixture)
    except OSError as exc:
        logger.error("Error reading fixture: %s", exc, extra=context)
        return PlainTextResponse(
            "fixture not found", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    fixture_date = parse_fixture_date(fixture.name)
    if fixture_date is not None:
        data = expand_times(data, fixture_date)

    logger.info("Serving fixture", extra=context)
    return Response(content=data, media_type="text/csv")
