"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Strict validation and self-documenting fields (Field) without coupling the
  Core to I/O libraries.
- Reports serialize straight to JSON for the exporters.

Note:
- These models describe *what* the toolkit produces, not *how* it is obtained.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, computed_field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CheckStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    UNKNOWN = "unknown"


class ReportStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"


class ModuleKind(str, Enum):
    FILTER = "filter"
    EXTENSION = "extension"


class BinaryImage(BaseModel):
    """What an inspector extracted from a native image."""

    machine: str = Field(
        default="unknown",
        description="Architecture label (x86, x64, arm64, arm, unknown).",
    )
    machine_code: int | None = Field(
        default=None,
        description="Raw IMAGE_FILE_HEADER.Machine value.",
    )
    exports: list[str] = Field(default_factory=list)
    imports: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Imported DLL name -> imported function names.",
    )


class ArchitectureCheck(BaseModel):
    status: CheckStatus
    detected: str = "unknown"
    required: str


class ExportCheck(BaseModel):
    status: CheckStatus
    kind: ModuleKind
    required: list[str] = Field(default_factory=list)
    present: list[str] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)


class DependencyReport(BaseModel):
    """Imports partitioned by how much the host can be trusted to provide them."""

    known_safe: list[str] = Field(default_factory=list)
    known_runtime: list[str] = Field(default_factory=list)
    unrecognized: list[str] = Field(
        default_factory=list,
        description="Needs manual review before migration.",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> CheckStatus:
        return CheckStatus.FAIL if self.unrecognized else CheckStatus.PASS

    @property
    def to_bundle(self) -> list[str]:
        """DLLs the packager tries to ship next to the binary."""

        return [*self.known_runtime, *self.unrecognized]


class SandboxFinding(BaseModel):
    category: str
    dll: str
    function: str
    rule: str
    message: str


class ValidationReport(BaseModel):
    """Validation-result record for one binary (lives for one invocation)."""

    binary: str
    scanned_at: datetime = Field(default_factory=_utcnow)
    architecture: ArchitectureCheck
    exports: ExportCheck
    dependencies: DependencyReport = Field(default_factory=DependencyReport)
    sandbox_findings: list[SandboxFinding] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    status: ReportStatus = ReportStatus.OK

    @computed_field  # type: ignore[prop-decorator]
    @property
    def suitable(self) -> bool:
        return self.status is not ReportStatus.CRITICAL


class PackageManifest(BaseModel):
    package_name: str = Field(..., min_length=1)
    created_at: datetime
    file_count: int = Field(..., ge=1)
    primary_binary: str = Field(..., min_length=1)


class PackageResult(BaseModel):
    archive_path: Path
    manifest_path: Path
    manifest: PackageManifest
    copied_dependencies: list[str] = Field(default_factory=list)
    missing_dependencies: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


# Legacy on-prem locations remapped to the host's writable storage.
DEFAULT_HOST_ENVIRONMENT: dict[str, str] = {
    "ISAPI_LOG_DIR": r"D:\home\LogFiles\isapi",
    "ISAPI_DATA_DIR": r"D:\home\data\isapi",
    "ISAPI_TEMP_DIR": r"D:\local\Temp",
    "ISAPI_CONFIG_DIR": r"D:\home\site\wwwroot\config",
}


class HandlerConfig(BaseModel):
    """Typed input for the generated `web.config`."""

    handler_name: str = Field(..., min_length=1, max_length=128)
    binary_name: str = Field(..., min_length=1, max_length=255)
    kind: ModuleKind = ModuleKind.EXTENSION
    path: str = Field(default="*", min_length=1)
    verbs: list[str] = Field(default_factory=lambda: ["GET", "POST", "HEAD"])
    bitness: str = Field(default="bitness64", pattern="^bitness(32|64)$")
    environment: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_HOST_ENVIRONMENT))

    @field_validator("binary_name")
    @classmethod
    def _plain_filename(cls, value: str) -> str:
        if "/" in value or "\\" in value:
            raise ValueError("binary_name must be a file name, not a path")
        return value

    @property
    def verb_list(self) -> str:
        return ",".join(v.upper() for v in self.verbs) or "*"


class DeploymentState(str, Enum):
    VALIDATING = "validating"
    STAGING_DEPLOYED = "staging_deployed"
    HEALTH_CHECKING = "health_checking"
    SWAPPED = "swapped"
    DONE = "done"
    FAILED = "failed"


class Compensation(str, Enum):
    NONE = "none"
    LEFT_STAGING = "left_staging"
    SWAPPED_BACK = "swapped_back"


class DeploymentError(BaseModel):
    category: str
    context: str


class HealthProbeResult(BaseModel):
    url: str
    healthy: bool
    attempts: int = Field(..., ge=0)
    last_status: int | None = None
    last_error: str | None = None
    missing_security_headers: list[str] = Field(default_factory=list)


class DeploymentRecord(BaseModel):
    """Progress of one blue-green deploy through its linear states."""

    app: str
    slot: str
    package: str
    state: DeploymentState = DeploymentState.VALIDATING
    history: list[DeploymentState] = Field(default_factory=lambda: [DeploymentState.VALIDATING])
    compensation: Compensation = Compensation.NONE
    error: DeploymentError | None = None
    probes: list[HealthProbeResult] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def advance(self, state: DeploymentState) -> None:
        self.state = state
        self.history.append(state)


class RollbackResult(BaseModel):
    app: str
    slot: str
    probe: HealthProbeResult


class RequestSample(BaseModel):
    latency_ms: float = Field(..., ge=0)
    status_code: int | None = None
    success: bool
    error: str | None = None


class LoadSummary(BaseModel):
    url: str
    concurrency: int
    total: int = 0
    successes: int = 0
    failures: int = 0
    error_rate: float = 0.0
    duration_seconds: float = 0.0
    requests_per_second: float = 0.0
    mean_ms: float | None = None
    min_ms: float | None = None
    max_ms: float | None = None
    p50_ms: float | None = None
    p95_ms: float | None = None
    p99_ms: float | None = None
    status_codes: dict[str, int] = Field(default_factory=dict)


class AlertRule(BaseModel):
    name: str = Field(..., min_length=1)
    metric: str = Field(..., min_length=1)
    operator: str = Field(..., pattern="^(GreaterThan|LessThan|GreaterThanOrEqual|LessThanOrEqual)$")
    threshold: float
    window_minutes: int = Field(default=5, ge=1)
    severity: int = Field(default=2, ge=0, le=4)
    description: str = ""

    def template_fields(self) -> dict[str, Any]:
        return self.model_dump()
