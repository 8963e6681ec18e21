"""HTTP health probing.

Bounded poll: fixed attempt count, fixed interval, no backoff. A probe that
runs out of attempts simply reports `healthy=False`; the caller decides what
that means.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import httpx

from core.domain.models import HealthProbeResult
from core.logging import get_logger

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]

SECURITY_HEADERS: tuple[str, ...] = (
    "Strict-Transport-Security",
    "X-Content-Type-Options",
    "X-Frame-Options",
    "Content-Security-Policy",
)


def missing_security_headers(headers: httpx.Headers) -> list[str]:
    return [name for name in SECURITY_HEADERS if name not in headers]


async def probe_health(
    url: str,
    *,
    client: httpx.AsyncClient,
    retries: int,
    interval_seconds: float,
    sleep: Sleep = asyncio.sleep,
) -> HealthProbeResult:
    """GET `url` until it answers 200 or `retries` attempts are used."""

    last_status: int | None = None
    last_error: str | None = None

    for attempt in range(1, retries + 1):
        try:
            response = await client.get(url)
            last_status = response.status_code
            last_error = None
            if response.status_code == 200:
                missing = missing_security_headers(response.headers)
                logger.info("Health check passed", url=url, attempt=attempt)
                return HealthProbeResult(
                    url=url,
                    healthy=True,
                    attempts=attempt,
                    last_status=last_status,
                    missing_security_headers=missing,
                )
            logger.info("Health check not ready", url=url, attempt=attempt, status=last_status)
        except httpx.HTTPError as exc:
            last_error = f"{type(exc).__name__}: {exc}"
            logger.info("Health check error", url=url, attempt=attempt, error=last_error)

        if attempt < retries:
            await sleep(interval_seconds)

    logger.warning("Health check timed out", url=url, attempts=retries, status=last_status)
    return HealthProbeResult(
        url=url,
        healthy=False,
        attempts=retries,
        last_status=last_status,
        last_error=last_error,
    )
