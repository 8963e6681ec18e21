"""JSON export of result models.

Why JSON:
- Reports and manifests are read by humans and by whatever pipeline the
  operator wires around the toolkit.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel


def export_model_json(*, model: BaseModel, output_path: Path) -> Path:
    """Export a Pydantic model as UTF-8 JSON with stable formatting."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = model.model_dump(mode="json")
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
