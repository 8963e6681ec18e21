"""Filesystem lookup for dependency DLLs and rule packs.

This module lives in `core/` because:
- it centralizes *where* the toolkit looks for files without coupling the CLI
- the packager and the validator share the same search order.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from core.config import AppSettings, get_user_config_dir


def dependency_search_dirs(
    binary_path: Path,
    *,
    settings: AppSettings | None = None,
    extra: Iterable[Path] = (),
) -> list[Path]:
    """Ordered, de-duplicated locations searched for a dependency.

    Order:
    1) the binary's own directory
    2) `--search-path` options
    3) ISAPI_MIGRATE_DEPENDENCY_SEARCH_PATHS
    4) the current directory
    """

    settings = settings or AppSettings()
    candidates = [
        binary_path.resolve().parent,
        *extra,
        *settings.dependency_search_paths,
        Path.cwd(),
    ]
    out: list[Path] = []
    seen: set[str] = set()
    for directory in candidates:
        key = str(directory.resolve()).lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(directory)
    return out


def find_dependency(name: str, search_dirs: Iterable[Path]) -> Path | None:
    """First file named `name` (case-insensitive, as on Windows) in `search_dirs`."""

    wanted = name.lower()
    for directory in search_dirs:
        if not directory.is_dir():
            continue
        exact = directory / name
        if exact.is_file():
            return exact
        for candidate in sorted(directory.iterdir()):
            if candidate.is_file() and candidate.name.lower() == wanted:
                return candidate
    return None


def get_default_rule_pack_path(filename: str = "sandbox-rules.json") -> Path | None:
    """Looks for an operator rule pack in common places.

    Order:
    1) the per-user config directory
    2) ./<filename> (cwd)
    """

    candidates = [
        get_user_config_dir() / filename,
        Path.cwd() / filename,
    ]
    for p in candidates:
        if p.exists() and p.is_file():
            return p
    return None
