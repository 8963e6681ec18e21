"""
Pytest configuration and shared fakes.

The fakes implement the `BinaryInspector` and `HostingPlatform` protocols so
services run without dumpbin, real DLLs or a cloud account.
"""
from pathlib import Path

import httpx
import pytest

from core.domain.models import AlertRule, BinaryImage
from core.errors import ErrorCategory, MigrationError
from core.interfaces.inspector import ImageFormatError


class FakeInspector:
    def __init__(self, image: BinaryImage | None = None, error: str | None = None):
        self.image = image or BinaryImage()
        self.error = error
        self.calls: list[Path] = []

    def inspect(self, path: Path) -> BinaryImage:
        self.calls.append(path)
        if self.error is not None:
            raise ImageFormatError(self.error)
        return self.image


class FakePlatform:
    """Two slots holding build labels; swaps exchange them."""

    def __init__(self, production: str = "v1", fail_on: set[str] | None = None):
        self.production = production
        self.staging: str | None = None
        self.fail_on = fail_on or set()
        self.calls: list[tuple] = []
        self.alert_rules: list[AlertRule] = []

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise MigrationError(ErrorCategory.REMOTE_CALL_FAILED, f"{operation} rejected")

    def get_default_hostname(self, app, slot=None):
        self.calls.append(("get_default_hostname", app, slot))
        self._maybe_fail("get_default_hostname")
        if slot is None:
            return f"{app}.example.net"
        return f"{app}-{slot}.example.net"

    def create_slot(self, app, slot):
        self.calls.append(("create_slot", app, slot))
        self._maybe_fail("create_slot")
        self.staging = "empty"

    def deploy_package(self, app, slot, package):
        self.calls.append(("deploy_package", app, slot, Path(package).name))
        self._maybe_fail("deploy_package")
        self.staging = Path(package).stem

    def swap_slots(self, app, slot, target="production"):
        self.calls.append(("swap_slots", app, slot, target))
        self._maybe_fail("swap_slots")
        self.production, self.staging = self.staging, self.production

    def create_alert_rule(self, app, rule):
        self.calls.append(("create_alert_rule", app, rule.name))
        self._maybe_fail("create_alert_rule")
        self.alert_rules.append(rule)


def make_health_transport(platform: FakePlatform, healthy: set[tuple[str, str]]) -> httpx.MockTransport:
    """Answer 200 when (slot, build label served there) is in `healthy`, else 503."""

    def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if "-staging." in host:
            key = ("staging", platform.staging or "")
        else:
            key = ("production", platform.production or "")
        if key in healthy:
            return httpx.Response(200, headers={"X-Content-Type-Options": "nosniff"}, text="ok")
        return httpx.Response(503, text="unavailable")

    return httpx.MockTransport(handler)


@pytest.fixture
def fake_platform():
    return FakePlatform()


@pytest.fixture
def dll_file(tmp_path):
    path = tmp_path / "legacy.dll"
    path.write_bytes(b"MZ" + b"\x00" * 126)
    return path


@pytest.fixture
def no_sleep():
    calls: list[float] = []

    async def _sleep(seconds: float) -> None:
        calls.append(seconds)

    _sleep.calls = calls  # type: ignore[attr-defined]
    return _sleep
