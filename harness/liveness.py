from __future__ import annotations

import logging
import time
from typing import Mapping, Optional

import httpx

from harness.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

HEALTH_PATH = "/healthz"


def wait_healthy(
    name: str,
    base_url: str,
    timeout: float = 60.0,
    interval: float = 2.0,
    request_timeout: float = 5.0,
    client: Optional[httpx.Client] = None,
) -> None:
    """Poll ``{base_url}/healthz`` until it answers 200 or ``timeout`` elapses.

    Connection errors and non-200 answers both count as "not yet healthy".
    Each probe is bounded by ``request_timeout`` so a hung connection costs at
    most one probe, and probes are spaced by a constant ``interval``.
    """
    endpoint = base_url.rstrip("/") + HEALTH_PATH
    owns_client = client is None
    http = client or httpx.Client()
    deadline = time.monotonic() + timeout
    attempt = 0
    try:
        while time.monotonic() < deadline:
            attempt += 1
            try:
                response = http.get(endpoint, timeout=request_timeout)
            except httpx.HTTPError as exc:
                logger.debug(
                    "Health probe failed: %s",
                    exc,
                    extra={"service": name, "endpoint": endpoint, "attempt": attempt},
                )
            else:
                if response.status_code == httpx.codes.OK:
                    logger.info(
                        "%s is healthy",
                        name,
                        extra={"service": name, "endpoint": endpoint, "attempt": attempt},
                    )
                    return
                logger.debug(
                    "Health probe returned non-200",
                    extra={
                        "service": name,
                        "endpoint": endpoint,
                        "status_code": response.status_code,
                        "attempt": attempt,
                    },
                )
            time.sleep(interval)
    finally:
        if owns_client:
            http.close()

    logger.error(
        "%s did not become healthy",
        name,
        extra={"service": name, "endpoint": endpoint, "attempt": attempt},
    )
    raise ServiceUnavailableError(name, endpoint, timeout)


def wait_all_healthy(
    services: Mapping[str, str],
    timeout: float = 60.0,
    interval: float = 2.0,
    request_timeout: float = 5.0,
    client: Optional[httpx.Client] = None,
) -> None:
    for name, base_url in services.items():
        wait_healthy(
            name,
            base_url,
            timeout=timeout,
            interval=interval,
            request_timeout=request_timeout,
            client=client,
        )
