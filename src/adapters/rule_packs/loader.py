"""Loading of sandbox rule packs (JSON, data-driven).

Supported format:
    {"name": "enterprise", "rules": [{"name": ..., "category": ..., "functions": [...]}]}

Note:
- A file pack replaces the built-in pack entirely, so a team can keep one
  authoritative list instead of several drifting ones.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from core.domain.catalog import DEFAULT_RULE_PACK
from core.domain.rules import RulePack
from core.errors import ErrorCategory, MigrationError
from core.resources_loader import get_default_rule_pack_path


def load_rule_pack(path: Path) -> RulePack:
    if not path.is_file():
        raise MigrationError.file_not_found(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return RulePack.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise MigrationError(ErrorCategory.VALIDATION_FAILED, f"invalid rule pack {path}: {exc}") from exc


def resolve_rule_pack(path: Path | None = None) -> RulePack:
    """Explicit path, then a pack in a default location, then the built-in one."""

    path = path or get_default_rule_pack_path()
    if path is None:
        return DEFAULT_RULE_PACK
    return load_rule_pack(path)
