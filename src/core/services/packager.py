"""Package assembly.

Builds a self-contained deployable unit:

    <output>/<name>/bin/<binary + dependencies>
    <output>/<name>/web.config
    <output>/<name>.zip
    <output>/<name>.manifest.json

Missing dependencies are warnings; the archive is produced regardless.
"""

from __future__ import annotations

import shutil
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from adapters.config_renderer import write_web_config
from adapters.json_exporter import export_model_json
from core.domain.models import HandlerConfig, PackageManifest, PackageResult, ValidationReport
from core.errors import ErrorCategory, MigrationError
from core.logging import get_logger
from core.resources_loader import find_dependency

logger = get_logger(__name__)


def _write_zip(source_dir: Path, archive_path: Path) -> int:
    files = sorted(p for p in source_dir.rglob("*") if p.is_file())
    archive_path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for file in files:
            zf.write(file, arcname=file.relative_to(source_dir).as_posix())
    return len(files)


def _check_package_name(name: str) -> str:
    if not name or name in (".", "..") or "/" in name or "\\" in name or ":" in name:
        raise MigrationError(
            ErrorCategory.VALIDATION_FAILED,
            f"package name must be a plain file name, got {name!r}",
        )
    return name


def assemble_package(
    binary_path: Path,
    *,
    report: ValidationReport,
    output_dir: Path,
    search_dirs: Iterable[Path],
    package_name: str | None = None,
    handler_config: HandlerConfig | None = None,
    now: datetime | None = None,
) -> PackageResult:
    if not binary_path.is_file():
        raise MigrationError.file_not_found(binary_path)

    package_name = _check_package_name(package_name or binary_path.stem)
    created_at = now or datetime.now(timezone.utc)
    search_dirs = list(search_dirs)

    stage_dir = output_dir / package_name
    if stage_dir.exists():
        # Only ever clear a previous stage nested under the output directory.
        if stage_dir.resolve().parent != output_dir.resolve():
            raise MigrationError(
                ErrorCategory.VALIDATION_FAILED,
                f"refusing to replace {stage_dir}: not directly under {output_dir}",
            )
        shutil.rmtree(stage_dir)
    bin_dir = stage_dir / "bin"
    bin_dir.mkdir(parents=True)

    shutil.copy2(binary_path, bin_dir / binary_path.name)

    copied: list[str] = []
    missing: list[str] = []
    warnings: list[str] = []
    for dll in report.dependencies.to_bundle:
        if dll.lower() == binary_path.name.lower():
            continue
        found = find_dependency(dll, search_dirs)
        if found is None:
            missing.append(dll)
            warnings.append(f"{dll}: not found in search paths; the host must provide it.")
            logger.warning("Dependency not found", dll=dll)
            continue
        shutil.copy2(found, bin_dir / found.name)
        copied.append(found.name)
        logger.info("Dependency bundled", dll=dll, source=str(found))

    config = handler_config or HandlerConfig(
        handler_name=package_name,
        binary_name=binary_path.name,
        kind=report.exports.kind,
    )
    write_web_config(config, stage_dir / "web.config", generated_at=created_at)

    archive_path = output_dir / f"{package_name}.zip"
    file_count = _write_zip(stage_dir, archive_path)

    manifest = PackageManifest(
        package_name=package_name,
        created_at=created_at,
        file_count=file_count,
        primary_binary=binary_path.name,
    )
    manifest_path = export_model_json(
        model=manifest,
        output_path=output_dir / f"{package_name}.manifest.json",
    )

    logger.info(
        "Package assembled",
        archive=str(archive_path),
        files=file_count,
        missing=len(missing),
    )
    return PackageResult(
        archive_path=archive_path,
        manifest_path=manifest_path,
        manifest=manifest,
        copied_dependencies=copied,
        missing_dependencies=missing,
        warnings=warnings,
    )
