"""Hosting platform driven by operator command templates.

Why templates instead of a provider SDK:
- The toolkit stays provider-neutral; operators paste the commands their
  platform CLI already documents.
- Every call is a plain argv (no shell), so substituted names cannot inject.

Template keys: `get_hostname`, `get_slot_hostname`, `create_slot`,
`deploy_package`, `swap_slots`, `create_alert_rule`.
Placeholders: `{app}`, `{slot}`, `{target}`, `{package}` and, for alert
rules, every `AlertRule` field (`{name}`, `{metric}`, `{threshold}`, ...).
Literal braces (JMESPath queries and the like) are doubled: `{{ }}`.
"""

from __future__ import annotations

import json
import shlex
import subprocess
from pathlib import Path
from typing import Any, Callable

from core.config import AppSettings
from core.domain.models import AlertRule
from core.errors import ErrorCategory, MigrationError
from core.logging import get_logger

logger = get_logger(__name__)

Runner = Callable[[list[str]], subprocess.CompletedProcess]

TEMPLATE_KEYS: tuple[str, ...] = (
    "get_hostname",
    "get_slot_hostname",
    "create_slot",
    "deploy_package",
    "swap_slots",
    "create_alert_rule",
)


def _default_runner(argv: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(argv, capture_output=True, text=True, check=False)


class CommandPlatform:
    def __init__(
        self,
        templates: dict[str, str],
        *,
        hostname_field: str = "defaultHostName",
        runner: Runner | None = None,
    ) -> None:
        self._templates = templates
        self._hostname_field = hostname_field
        self._runner = runner or _default_runner

    @classmethod
    def from_settings(cls, settings: AppSettings | None = None) -> "CommandPlatform":
        settings = settings or AppSettings()
        return cls(settings.command_templates, hostname_field=settings.hostname_field)

    def missing_templates(self) -> list[str]:
        return [key for key in TEMPLATE_KEYS if not self._templates.get(key)]

    def _argv(self, operation: str, **fields: Any) -> list[str]:
        template = self._templates.get(operation)
        if not template:
            raise MigrationError(
                ErrorCategory.VALIDATION_FAILED,
                f"no command template configured for '{operation}' (ISAPI_MIGRATE_COMMAND_TEMPLATES)",
            )
        # Split first, substitute per token: values with spaces stay one argument.
        try:
            return [token.format(**fields) for token in shlex.split(template)]
        except (KeyError, IndexError, ValueError) as exc:
            raise MigrationError(
                ErrorCategory.VALIDATION_FAILED,
                f"bad template for '{operation}': {exc}",
            ) from exc

    def _run(self, operation: str, **fields: Any) -> str:
        argv = self._argv(operation, **fields)
        logger.info("Platform command", operation=operation, program=argv[0] if argv else "")
        try:
            proc = self._runner(argv)
        except FileNotFoundError as exc:
            raise MigrationError(
                ErrorCategory.REMOTE_CALL_FAILED,
                f"{operation}: command not found: {argv[0]}",
            ) from exc
        if proc.returncode != 0:
            detail = (proc.stderr or proc.stdout or "").strip()
            raise MigrationError(
                ErrorCategory.REMOTE_CALL_FAILED,
                f"{operation} exited {proc.returncode}: {detail[:500]}",
            )
        return proc.stdout or ""

    def _parse_hostname(self, operation: str, output: str) -> str:
        try:
            payload = json.loads(output)
        except json.JSONDecodeError as exc:
            raise MigrationError(
                ErrorCategory.REMOTE_CALL_FAILED,
                f"{operation}: output is not JSON",
            ) from exc
        if isinstance(payload, str) and payload:
            return payload
        if isinstance(payload, dict):
            value = payload.get(self._hostname_field)
            if isinstance(value, str) and value:
                return value
        raise MigrationError(
            ErrorCategory.REMOTE_CALL_FAILED,
            f"{operation}: field '{self._hostname_field}' missing from output",
        )

    def get_default_hostname(self, app: str, slot: str | None = None) -> str:
        if slot is None:
            return self._parse_hostname("get_hostname", self._run("get_hostname", app=app))
        return self._parse_hostname(
            "get_slot_hostname",
            self._run("get_slot_hostname", app=app, slot=slot),
        )

    def create_slot(self, app: str, slot: str) -> None:
        self._run("create_slot", app=app, slot=slot)

    def deploy_package(self, app: str, slot: str, package: Path) -> None:
        self._run("deploy_package", app=app, slot=slot, package=str(package))

    def swap_slots(self, app: str, slot: str, target: str = "production") -> None:
        self._run("swap_slots", app=app, slot=slot, target=target)

    def create_alert_rule(self, app: str, rule: AlertRule) -> None:
        self._run("create_alert_rule", app=app, **rule.template_fields())
