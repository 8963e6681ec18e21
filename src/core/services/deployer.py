"""Blue-green deploy and rollback orchestration.

Linear flow:

    validating -> staging_deployed -> health_checking -> swapped -> done

`failed` is entered from `staging_deployed` or `health_checking`, with at
most one compensating action:
- staging upload or staging health fails: staging is left for inspection,
  production was never touched;
- production health fails right after the swap: swap back once.

Nothing here is idempotent. Re-running after a partial failure may create the
slot again or swap twice.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

import httpx

from adapters.health_probe import Sleep, probe_health
from adapters.http_client import normalize_base_url
from core.domain.models import (
    Compensation,
    DeploymentError,
    DeploymentRecord,
    DeploymentState,
    HealthProbeResult,
    RollbackResult,
)
from core.errors import ErrorCategory, MigrationError
from core.interfaces.platform import HostingPlatform
from core.logging import get_logger

logger = get_logger(__name__)

PRODUCTION_SLOT = "production"


@dataclass
class DeployOptions:
    slot: str = "staging"
    health_path: str = "/"
    retries: int = 10
    interval_seconds: float = 10.0


class DeployOrchestrator:
    def __init__(
        self,
        platform: HostingPlatform,
        *,
        client: httpx.AsyncClient,
        options: DeployOptions | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._platform = platform
        self._client = client
        self._options = options or DeployOptions()
        self._sleep = sleep

    def _health_url(self, hostname: str) -> str:
        path = self._options.health_path or "/"
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{normalize_base_url(hostname)}{path}"

    async def _probe(self, hostname: str) -> HealthProbeResult:
        return await probe_health(
            self._health_url(hostname),
            client=self._client,
            retries=self._options.retries,
            interval_seconds=self._options.interval_seconds,
            sleep=self._sleep,
        )

    @staticmethod
    def _fail(
        record: DeploymentRecord,
        category: ErrorCategory,
        context: str,
        compensation: Compensation,
    ) -> DeploymentRecord:
        record.error = DeploymentError(category=category.value, context=context)
        record.compensation = compensation
        record.advance(DeploymentState.FAILED)
        logger.error(
            "Deployment failed",
            app=record.app,
            category=category.value,
            context=context,
            compensation=compensation.value,
        )
        return record

    async def deploy(self, app: str, package: Path) -> DeploymentRecord:
        """Run the whole flow.

        Raises `MigrationError` only while validating (missing package, app
        not resolvable); later failures are reported on the returned record.
        """

        slot = self._options.slot
        record = DeploymentRecord(app=app, slot=slot, package=str(package))

        if not package.is_file():
            raise MigrationError.file_not_found(package)
        production_host = await asyncio.to_thread(self._platform.get_default_hostname, app)
        await asyncio.to_thread(self._platform.create_slot, app, slot)
        record.advance(DeploymentState.STAGING_DEPLOYED)
        logger.info("Staging slot ready", app=app, slot=slot)

        try:
            await asyncio.to_thread(self._platform.deploy_package, app, slot, package)
            staging_host = await asyncio.to_thread(self._platform.get_default_hostname, app, slot)
        except MigrationError as exc:
            return self._fail(record, exc.category, exc.context, Compensation.LEFT_STAGING)

        record.advance(DeploymentState.HEALTH_CHECKING)
        staging_probe = await self._probe(staging_host)
        record.probes.append(staging_probe)
        if not staging_probe.healthy:
            return self._fail(
                record,
                ErrorCategory.HEALTH_CHECK_TIMEOUT,
                f"staging {staging_probe.url} not healthy after {staging_probe.attempts} attempts",
                Compensation.LEFT_STAGING,
            )

        try:
            await asyncio.to_thread(self._platform.swap_slots, app, slot, PRODUCTION_SLOT)
        except MigrationError as exc:
            # Swaps are atomic on the platform side: production still serves the old build.
            return self._fail(record, exc.category, exc.context, Compensation.LEFT_STAGING)

        production_probe = await self._probe(production_host)
        record.probes.append(production_probe)
        if not production_probe.healthy:
            compensation = Compensation.SWAPPED_BACK
            try:
                await asyncio.to_thread(self._platform.swap_slots, app, slot, PRODUCTION_SLOT)
            except MigrationError as exc:
                compensation = Compensation.NONE
                record.warnings.append(f"Swap back failed, production needs manual attention: {exc.context}")
            else:
                restored_probe = await self._probe(production_host)
                record.probes.append(restored_probe)
                if not restored_probe.healthy:
                    record.warnings.append(
                        f"Production {restored_probe.url} still not healthy after swapping back; check the previous build."
                    )
            return self._fail(
                record,
                ErrorCategory.HEALTH_CHECK_TIMEOUT,
                f"production {production_probe.url} not healthy after swap",
                compensation,
            )

        for header in production_probe.missing_security_headers:
            record.warnings.append(f"Production response is missing security header {header}.")

        record.advance(DeploymentState.SWAPPED)
        record.advance(DeploymentState.DONE)
        logger.info("Deployment finished", app=app, slot=slot)
        return record

    async def rollback(self, app: str) -> RollbackResult:
        """Swap staging back into production and verify production answers."""

        slot = self._options.slot
        production_host = await asyncio.to_thread(self._platform.get_default_hostname, app)
        await asyncio.to_thread(self._platform.swap_slots, app, slot, PRODUCTION_SLOT)
        logger.info("Slots swapped back", app=app, slot=slot)
        probe = await self._probe(production_host)
        return RollbackResult(app=app, slot=slot, probe=probe)
