from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from storage.fixtures import build_default_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    store = build_default_store()
    context = {"fixture": str(store.root_path)}
    if store.root_path.is_dir():
        logger.info("Fixture server ready", extra=context)
    else:
        # Requests are still answered; every fixture lookup will 404.
        logger.warning("Fixture directory does not exist", extra=context)
    try:
        yield
    finally:
        build_default_store.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Storm Report Fixtures",
        description="Deterministic stand-in for the upstream storm report source.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
