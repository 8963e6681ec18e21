"""CSV export of raw load-test samples (one row per request)."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from core.domain.models import RequestSample

_COLUMNS = ("latency_ms", "status_code", "success", "error")


def export_samples_csv(*, samples: Iterable[RequestSample], output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=_COLUMNS)
        writer.writeheader()
        for sample in samples:
            row = sample.model_dump()
            row["latency_ms"] = f"{sample.latency_ms:.3f}"
            writer.writerow({key: "" if row[key] is None else row[key] for key in _COLUMNS})
    return output_path
