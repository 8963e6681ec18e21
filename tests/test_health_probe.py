"""
Tests for bounded health polling.
"""
import httpx
import pytest

from adapters.health_probe import SECURITY_HEADERS, missing_security_headers, probe_health


def _sequence_transport(responses):
    remaining = list(responses)
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        item = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(item, Exception):
            raise item
        return item

    return httpx.MockTransport(handler), seen


@pytest.mark.asyncio
async def test_healthy_after_retries(no_sleep):
    transport, seen = _sequence_transport(
        [
            httpx.Response(503),
            httpx.ConnectError("refused"),
            httpx.Response(200, headers={"Strict-Transport-Security": "max-age=31536000"}),
        ]
    )
    async with httpx.AsyncClient(transport=transport) as client:
        result = await probe_health(
            "https://app.example.net/health", client=client, retries=5, interval_seconds=2.0, sleep=no_sleep
        )

    assert result.healthy is True
    assert result.attempts == 3
    assert result.last_status == 200
    assert no_sleep.calls == [2.0, 2.0]
    assert len(seen) == 3
    assert "Strict-Transport-Security" not in result.missing_security_headers
    assert "X-Frame-Options" in result.missing_security_headers


@pytest.mark.asyncio
async def test_times_out_without_sleeping_after_last_attempt(no_sleep):
    transport, seen = _sequence_transport([httpx.Response(500)])
    async with httpx.AsyncClient(transport=transport) as client:
        result = await probe_health(
            "https://app.example.net/", client=client, retries=3, interval_seconds=1.0, sleep=no_sleep
        )

    assert result.healthy is False
    assert result.attempts == 3
    assert result.last_status == 500
    assert len(seen) == 3
    assert no_sleep.calls == [1.0, 1.0]


@pytest.mark.asyncio
async def test_other_2xx_status_is_not_healthy(no_sleep):
    transport, _ = _sequence_transport([httpx.Response(204)])
    async with httpx.AsyncClient(transport=transport) as client:
        result = await probe_health("https://x.example.net/", client=client, retries=1, interval_seconds=1.0, sleep=no_sleep)

    assert result.healthy is False
    assert no_sleep.calls == []


@pytest.mark.asyncio
async def test_transport_error_is_recorded(no_sleep):
    transport, _ = _sequence_transport([httpx.ConnectError("connection refused")])
    async with httpx.AsyncClient(transport=transport) as client:
        result = await probe_health("https://x.example.net/", client=client, retries=2, interval_seconds=0.5, sleep=no_sleep)

    assert result.healthy is False
    assert result.last_status is None
    assert "ConnectError" in result.last_error


def test_missing_security_headers_is_case_insensitive():
    headers = httpx.Headers({name.lower(): "x" for name in SECURITY_HEADERS})

    assert missing_security_headers(headers) == []
    assert missing_security_headers(httpx.Headers()) == list(SECURITY_HEADERS)
