"""Hosting platform contract.

The toolkit never talks to a cloud provider directly. Deploy, rollback and
alert setup call this contract; the shipped adapter runs operator-configured
commands (`adapters.command_platform`).
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from core.domain.models import AlertRule


@runtime_checkable
class HostingPlatform(Protocol):
    """Remote operations used by the orchestrator.

    Every method raises `core.errors.MigrationError` with
    `REMOTE_CALL_FAILED` when the platform reports a failure.
    """

    def get_default_hostname(self, app: str, slot: str | None = None) -> str:
        ...

    def create_slot(self, app: str, slot: str) -> None:
        ...

    def deploy_package(self, app: str, slot: str, package: Path) -> None:
        ...

    def swap_slots(self, app: str, slot: str, target: str = "production") -> None:
        ...

    def create_alert_rule(self, app: str, rule: AlertRule) -> None:
        ...
