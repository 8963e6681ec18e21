"""Binary compatibility validation.

Answers one question for an ISAPI DLL: is the managed host likely to load it?
Three independent checks (architecture, required exports, dependency
partition) plus the sandbox scan. A failing check never stops the others;
the overall status is decided at the end.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, Sequence

from core.domain.catalog import (
    DEFAULT_RULE_PACK,
    OPTIONAL_EXPORTS,
    REQUIRED_EXPORTS,
    is_known_runtime,
    is_known_safe,
)
from core.domain.models import (
    ArchitectureCheck,
    BinaryImage,
    CheckStatus,
    DependencyReport,
    ExportCheck,
    ModuleKind,
    ReportStatus,
    SandboxFinding,
    ValidationReport,
)
from core.domain.rules import RulePack
from core.errors import MigrationError
from core.interfaces.inspector import BinaryInspector, ImageFormatError
from core.logging import get_logger
from core.services.sandbox import scan_sandbox_violations

logger = get_logger(__name__)

# x86 __stdcall decoration: _HttpFilterProc@12
_STDCALL_RE = re.compile(r"^_([A-Za-z_][A-Za-z0-9_]*)@\d+$")


def undecorate(name: str) -> str:
    m = _STDCALL_RE.match(name)
    return m.group(1) if m else name


def detect_kind(exports: Iterable[str]) -> ModuleKind:
    """Filter if any filter entry point is exported, extension otherwise."""

    names = {undecorate(e) for e in exports}
    if names & set(REQUIRED_EXPORTS[ModuleKind.FILTER]):
        return ModuleKind.FILTER
    return ModuleKind.EXTENSION


def check_architecture(image: BinaryImage | None, required: str) -> ArchitectureCheck:
    if image is None or image.machine == "unknown":
        return ArchitectureCheck(status=CheckStatus.UNKNOWN, detected="unknown", required=required)
    status = CheckStatus.PASS if image.machine == required.lower() else CheckStatus.FAIL
    return ArchitectureCheck(status=status, detected=image.machine, required=required)


def check_exports(
    image: BinaryImage | None,
    kind: ModuleKind,
    required: Sequence[str],
) -> ExportCheck:
    if image is None:
        return ExportCheck(status=CheckStatus.UNKNOWN, kind=kind, required=list(required))

    exported = {undecorate(e) for e in image.exports}
    present = [name for name in required if name in exported]
    missing = [name for name in required if name not in exported]
    return ExportCheck(
        status=CheckStatus.FAIL if missing else CheckStatus.PASS,
        kind=kind,
        required=list(required),
        present=present,
        missing=missing,
    )


def partition_dependencies(dlls: Iterable[str]) -> DependencyReport:
    report = DependencyReport()
    for dll in sorted({d.lower() for d in dlls}):
        if is_known_safe(dll):
            report.known_safe.append(dll)
        elif is_known_runtime(dll):
            report.known_runtime.append(dll)
        else:
            report.unrecognized.append(dll)
    return report


def overall_status(
    architecture: ArchitectureCheck,
    exports: ExportCheck,
    dependencies: DependencyReport,
    findings: Sequence[SandboxFinding],
) -> ReportStatus:
    if CheckStatus.FAIL in (architecture.status, exports.status):
        return ReportStatus.CRITICAL
    if (
        CheckStatus.UNKNOWN in (architecture.status, exports.status)
        or dependencies.unrecognized
        or findings
    ):
        return ReportStatus.WARNING
    return ReportStatus.OK


def validate_binary(
    path: Path,
    *,
    inspector: BinaryInspector,
    required_architecture: str = "x64",
    kind: ModuleKind | None = None,
    required_exports: Sequence[str] | None = None,
    rule_pack: RulePack = DEFAULT_RULE_PACK,
) -> ValidationReport:
    """Run every check on `path` and return the report.

    Raises `MigrationError(FILE_NOT_FOUND)` only when the file is missing; an
    unreadable header degrades the affected checks to `unknown`.
    """

    if not path.is_file():
        raise MigrationError.file_not_found(path)

    notes: list[str] = []
    image: BinaryImage | None
    try:
        image = inspector.inspect(path)
    except ImageFormatError as exc:
        logger.warning("Unreadable image header", binary=str(path), error=str(exc))
        notes.append(f"Image header could not be read ({exc}); architecture and exports are unknown.")
        image = None

    architecture = check_architecture(image, required_architecture)
    if image is not None and architecture.status is CheckStatus.UNKNOWN:
        notes.append(f"Unrecognized machine type 0x{image.machine_code or 0:04x}.")

    if kind is None:
        if image is None and not required_exports:
            notes.append("Module kind could not be detected; assumed extension.")
        kind = detect_kind(image.exports) if image is not None else ModuleKind.EXTENSION
    required = list(required_exports) if required_exports else list(REQUIRED_EXPORTS[kind])
    exports = check_exports(image, kind, required)

    if image is not None:
        exported = {undecorate(e) for e in image.exports}
        for optional in OPTIONAL_EXPORTS[kind]:
            if optional not in exported:
                notes.append(f"Optional entry point {optional} not exported; shutdown cleanup will not run.")

    dependencies = partition_dependencies(image.imports if image is not None else [])
    for dll in dependencies.unrecognized:
        notes.append(f"{dll}: unrecognized dependency, review manually and ship it with the package.")

    findings = scan_sandbox_violations(image, rule_pack) if image is not None else []

    status = overall_status(architecture, exports, dependencies, findings)
    report = ValidationReport(
        binary=str(path),
        architecture=architecture,
        exports=exports,
        dependencies=dependencies,
        sandbox_findings=findings,
        notes=notes,
        status=status,
    )
    logger.info(
        "Validation finished",
        binary=str(path),
        status=status.value,
        architecture=architecture.status.value,
        exports=exports.status.value,
        unrecognized=len(dependencies.unrecognized),
        findings=len(findings),
    )
    return report
