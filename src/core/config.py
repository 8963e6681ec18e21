"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without leaking into the CLI.
- Lets adapters (inspectors, HTTP, platform commands) read config consistently.
"""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no extra dependencies).

    Goal: operators on a jump box can store platform templates once without
    editing a `.env` inside the project.
    """

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "isapi-migrate"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "isapi-migrate"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "isapi-migrate"
    return Path.home() / ".config" / "isapi-migrate"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _quote_env_value(value: str) -> str:
    if not any(ch in value for ch in " #'\"{"):
        return value
    if "'" not in value:
        return f"'{value}'"
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == "'":
            value = value[1:-1]
        elif len(value) >= 2 and value[0] == value[-1] == '"':
            value = re.sub(r'\\(["\\])', r"\1", value[1:-1])
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Write/update variables in the per-user `.env`."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# isapi-migrate user config (.env)"]
    for key in sorted(existing.keys()):
        # JSON values (command templates) must come back byte-identical through dotenv.
        lines.append(f"{key}={_quote_env_value(existing[key])}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Central application settings.

    Why pydantic-settings:
    - Typing + validation at the edge (env vars) keeps services free of parsing.
    - One configuration contract shared by CLI, services and adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="ISAPI_MIGRATE_",
        extra="ignore",
        case_sensitive=False,
        # Order: project first (dev), then the per-user config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Per-request timeout (seconds).",
    )
    user_agent: str = Field(
        default="isapi-migrate/0.1",
        min_length=1,
        description="User-Agent for health probes and load tests.",
    )

    # Validator
    target_architecture: str = Field(
        default="x64",
        description="Machine type the managed host loads (x86, x64, arm64).",
    )
    inspector: str = Field(
        default="pefile",
        pattern="^(pefile|dumpbin)$",
        description="Binary inspector backend.",
    )
    dumpbin_path: str = Field(
        default="dumpbin",
        min_length=1,
        description="Executable used by the dumpbin inspector.",
    )
    rule_pack_path: Path | None = Field(
        default=None,
        description="Optional JSON rule pack for the sandbox scanner.",
    )

    # Packager
    dependency_search_paths: list[Path] = Field(
        default_factory=list,
        description="Extra directories searched for runtime/unrecognized DLLs.",
    )

    # Deployer
    staging_slot: str = Field(
        default="staging",
        min_length=1,
        description="Deployment slot used for blue-green deploys.",
    )
    health_path: str = Field(
        default="/",
        description="Path polled on the slot hostname during health checks.",
    )
    health_retries: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Fixed number of health-check attempts.",
    )
    health_interval_seconds: float = Field(
        default=10.0,
        ge=0,
        description="Fixed sleep between health-check attempts.",
    )
    command_templates: dict[str, str] = Field(
        default_factory=dict,
        description="Platform command templates keyed by operation (JSON object).",
    )
    hostname_field: str = Field(
        default="defaultHostName",
        min_length=1,
        description="JSON field holding the hostname in the platform's output.",
    )

    # Load tester
    load_concurrency: int = Field(default=10, ge=1, le=1000)
    load_duration_seconds: float = Field(default=60.0, gt=0)
    think_time_min_seconds: float = Field(default=0.5, ge=0)
    think_time_max_seconds: float = Field(default=2.0, ge=0)

    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console", pattern="^(console|json)$")
    log_file: Path | None = Field(
        default=None,
        description="Optional flat log file in addition to stderr.",
    )
