"""Load and performance testing.

N workers hit one URL until a shared stop event is set. Each worker appends
to its own sample list; lists are concatenated after every worker returns, so
no counter is shared between tasks. Percentiles use nearest-rank indexing on
the sorted latencies, which keeps every sample in memory: fine for runs
bounded to minutes.
"""

from __future__ import annotations

import asyncio
import math
import random
import time
from collections import Counter
from dataclasses import dataclass
from typing import Sequence

import httpx

from core.domain.models import LoadSummary, RequestSample
from core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class LoadTestOptions:
    concurrency: int = 10
    duration_seconds: float = 60.0
    think_time_min_seconds: float = 0.5
    think_time_max_seconds: float = 2.0


def percentile(sorted_values: Sequence[float], pct: float) -> float:
    """Nearest-rank percentile of an already sorted, non-empty sequence."""

    if not sorted_values:
        raise ValueError("percentile of an empty sequence")
    rank = math.ceil(pct / 100.0 * len(sorted_values))
    index = min(max(rank, 1), len(sorted_values)) - 1
    return sorted_values[index]


def summarize(
    samples: Sequence[RequestSample],
    *,
    url: str,
    concurrency: int,
    duration_seconds: float,
) -> LoadSummary:
    total = len(samples)
    successes = sum(1 for s in samples if s.success)
    failures = total - successes
    codes = Counter(str(s.status_code) if s.status_code is not None else "error" for s in samples)

    summary = LoadSummary(
        url=url,
        concurrency=concurrency,
        total=total,
        successes=successes,
        failures=failures,
        error_rate=(failures / total) if total else 0.0,
        duration_seconds=duration_seconds,
        requests_per_second=(total / duration_seconds) if duration_seconds > 0 else 0.0,
        status_codes=dict(sorted(codes.items())),
    )
    if not samples:
        return summary

    latencies = sorted(s.latency_ms for s in samples)
    summary.mean_ms = sum(latencies) / total
    summary.min_ms = latencies[0]
    summary.max_ms = latencies[-1]
    summary.p50_ms = percentile(latencies, 50)
    summary.p95_ms = percentile(latencies, 95)
    summary.p99_ms = percentile(latencies, 99)
    return summary


async def _worker(
    client: httpx.AsyncClient,
    url: str,
    stop: asyncio.Event,
    options: LoadTestOptions,
    rng: random.Random,
) -> list[RequestSample]:
    samples: list[RequestSample] = []
    while not stop.is_set():
        started = time.perf_counter()
        try:
            response = await client.get(url)
            latency_ms = (time.perf_counter() - started) * 1000.0
            samples.append(
                RequestSample(
                    latency_ms=latency_ms,
                    status_code=response.status_code,
                    success=response.status_code < 400,
                )
            )
        except httpx.HTTPError as exc:
            latency_ms = (time.perf_counter() - started) * 1000.0
            samples.append(
                RequestSample(
                    latency_ms=latency_ms,
                    success=False,
                    error=type(exc).__name__,
                )
            )

        think = rng.uniform(options.think_time_min_seconds, options.think_time_max_seconds)
        if think <= 0:
            await asyncio.sleep(0)
            continue
        try:
            await asyncio.wait_for(stop.wait(), timeout=think)
        except asyncio.TimeoutError:
            pass
    return samples


async def run_load_test(
    url: str,
    *,
    client: httpx.AsyncClient,
    options: LoadTestOptions,
    rng: random.Random | None = None,
) -> tuple[LoadSummary, list[RequestSample]]:
    rng = rng or random.Random()
    stop = asyncio.Event()
    logger.info(
        "Load test started",
        url=url,
        concurrency=options.concurrency,
        duration=options.duration_seconds,
    )

    started = time.perf_counter()
    tasks = [
        asyncio.create_task(_worker(client, url, stop, options, random.Random(rng.random())))
        for _ in range(options.concurrency)
    ]
    try:
        await asyncio.sleep(options.duration_seconds)
    finally:
        stop.set()
    per_worker = await asyncio.gather(*tasks)
    elapsed = time.perf_counter() - started

    samples = [sample for worker_samples in per_worker for sample in worker_samples]
    summary = summarize(
        samples,
        url=url,
        concurrency=options.concurrency,
        duration_seconds=elapsed,
    )
    logger.info(
        "Load test finished",
        url=url,
        total=summary.total,
        failures=summary.failures,
        p95_ms=summary.p95_ms,
    )
    return summary, samples
