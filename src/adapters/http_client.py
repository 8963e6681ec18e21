"""httpx wrapper.

Why a wrapper:
- Standardizes timeouts and headers for health probes, load tests and doctor.
- Eases testing: a `httpx.MockTransport` can be injected.
"""

from __future__ import annotations

from typing import Any

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    max_connections: int | None = None,
) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` with the toolkit's defaults.

    Why a builder:
    - Every probe behaves the same (timeouts, User-Agent, redirects).
    - The load tester sizes the connection pool to its worker count.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "*/*",
    }
    if extra_headers:
        headers.update(extra_headers)
    kwargs: dict[str, Any] = {}
    if max_connections:
        kwargs["limits"] = httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_connections,
        )
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
        **kwargs,
    )


def normalize_base_url(host_or_url: str) -> str:
    """`app.example.net` -> `https://app.example.net`; URLs pass through."""

    value = host_or_url.strip().rstrip("/")
    if value.startswith(("http://", "https://")):
        return value
    return f"https://{value}"
