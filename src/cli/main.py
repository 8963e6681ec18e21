"""isapi-migrate command-line interface.

Every command is a thin shell: build settings/adapters, call one service,
render the result with Rich, translate `MigrationError` into exit code 1.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from adapters.command_platform import CommandPlatform
from adapters.csv_exporter import export_samples_csv
from adapters.dumpbin_inspector import DumpbinInspector
from adapters.http_client import build_async_client
from adapters.json_exporter import export_model_json
from adapters.pe_inspector import PefileInspector
from adapters.report_exporter import export_report_html, export_report_pdf
from adapters.rule_packs import resolve_rule_pack
from cli import doctor
from cli.ui_components import (
    build_alerts_table,
    build_deployment_table,
    build_findings_table,
    build_load_summary_table,
    build_package_panel,
    build_validation_table,
    print_banner,
    print_error,
    print_warning,
)
from core.config import AppSettings
from core.domain.models import (
    DeploymentState,
    HandlerConfig,
    ModuleKind,
    ReportStatus,
    ValidationReport,
)
from core.errors import ErrorCategory, MigrationError
from core.interfaces.inspector import BinaryInspector
from core.interfaces.platform import HostingPlatform
from core.logging import get_logger, setup_logging
from core.resources_loader import dependency_search_dirs
from core.services.alerts import apply_alert_rules, default_alert_rules
from core.services.deployer import DeployOptions, DeployOrchestrator
from core.services.load_tester import LoadTestOptions, run_load_test
from core.services.packager import assemble_package
from core.services.validator import validate_binary

app = typer.Typer(
    name="isapi-migrate",
    no_args_is_help=True,
    add_completion=False,
    help="Move ISAPI filters/extensions to managed app hosting.",
)
app.add_typer(doctor.app, name="doctor")

_console = Console()
logger = get_logger(__name__)


def _build_inspector(settings: AppSettings) -> BinaryInspector:
    if settings.inspector == "dumpbin":
        return DumpbinInspector(settings.dumpbin_path)
    return PefileInspector()


def _build_platform(settings: AppSettings) -> HostingPlatform:
    return CommandPlatform.from_settings(settings)


def _fail(exc: MigrationError) -> typer.Exit:
    print_error(_console, f"[{exc.category.value}] {exc.context}")
    return typer.Exit(code=1)


def _export_report_document(report: ValidationReport, *, html: Path | None, pdf: Path | None) -> None:
    if html is not None:
        path = export_report_html(report=report, output_path=html)
        _console.print(f"[green]HTML report:[/green] {path}")
    if pdf is not None:
        try:
            path = export_report_pdf(report=report, output_path=pdf)
            _console.print(f"[green]PDF report:[/green] {path}")
        except (OSError, ImportError) as exc:
            fallback = pdf.with_suffix(".html")
            export_report_html(report=report, output_path=fallback)
            print_warning(_console, f"PDF export unavailable ({exc}); wrote HTML instead: {fallback}")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also append logs to this file."),
    no_banner: bool = typer.Option(False, "--no-banner", help="Skip the banner."),
) -> None:
    settings = AppSettings()
    setup_logging(
        log_level or settings.log_level,
        settings.log_format,
        log_file or settings.log_file,
    )
    if not no_banner and sys.stdout.isatty():
        print_banner(_console)


@app.command()
def validate(
    binary: Path = typer.Argument(..., help="ISAPI DLL to inspect."),
    kind: Optional[ModuleKind] = typer.Option(None, "--kind", help="filter or extension (auto-detected)."),
    require_export: Optional[List[str]] = typer.Option(
        None, "--require-export", help="Required entry point (repeatable); overrides --kind defaults."
    ),
    report_path: Optional[Path] = typer.Option(None, "--report", help="Write the JSON report here."),
    export_html: Optional[Path] = typer.Option(None, "--export-html", help="Write an HTML report."),
    export_pdf: Optional[Path] = typer.Option(None, "--export-pdf", help="Write a PDF report (HTML fallback)."),
    rule_pack: Optional[Path] = typer.Option(None, "--rule-pack", help="JSON sandbox rule pack."),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON."),
) -> None:
    """Check architecture, entry points, dependencies and sandbox restrictions."""

    settings = AppSettings()
    try:
        pack = resolve_rule_pack(rule_pack or settings.rule_pack_path)
        report = validate_binary(
            binary,
            inspector=_build_inspector(settings),
            required_architecture=settings.target_architecture,
            kind=kind,
            required_exports=require_export or None,
            rule_pack=pack,
        )
    except MigrationError as exc:
        raise _fail(exc)

    if report_path is not None:
        export_model_json(model=report, output_path=report_path)
    _export_report_document(report, html=export_html, pdf=export_pdf)

    if json_output:
        typer.echo(report.model_dump_json(indent=2))
    else:
        _console.print(build_validation_table(report))
        if report.sandbox_findings:
            _console.print(build_findings_table(report))
        for note in report.notes:
            print_warning(_console, note)
        if report_path is not None:
            _console.print(f"[green]Report:[/green] {report_path}")

    if report.status is ReportStatus.CRITICAL:
        raise typer.Exit(code=1)


@app.command()
def package(
    binary: Path = typer.Argument(..., help="ISAPI DLL to package."),
    output_dir: Path = typer.Option(Path("dist"), "--output", "-o", help="Output directory."),
    name: Optional[str] = typer.Option(None, "--name", help="Package name (defaults to the DLL stem)."),
    search_path: Optional[List[Path]] = typer.Option(
        None, "--search-path", help="Extra directory searched for dependencies (repeatable)."
    ),
    kind: Optional[ModuleKind] = typer.Option(None, "--kind", help="filter or extension (auto-detected)."),
    handler_name: Optional[str] = typer.Option(None, "--handler-name", help="Handler name in web.config."),
    handler_path: str = typer.Option("*", "--handler-path", help="Request path mapped to the extension."),
    strict: bool = typer.Option(False, "--strict", help="Refuse to package a critical binary."),
) -> None:
    """Bundle the DLL, its dependencies and a generated web.config into a zip."""

    settings = AppSettings()
    try:
        report = validate_binary(
            binary,
            inspector=_build_inspector(settings),
            required_architecture=settings.target_architecture,
            kind=kind,
            rule_pack=resolve_rule_pack(settings.rule_pack_path),
        )
        if report.status is ReportStatus.CRITICAL:
            message = "binary failed validation; run `isapi-migrate validate` for details"
            if strict:
                print_error(_console, message)
                raise typer.Exit(code=1)
            print_warning(_console, message)

        package_name = name or binary.stem
        try:
            config = HandlerConfig(
                handler_name=handler_name or package_name,
                binary_name=binary.name,
                kind=report.exports.kind,
                path=handler_path,
            )
        except ValidationError as exc:
            problems = "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors())
            raise MigrationError(ErrorCategory.VALIDATION_FAILED, f"invalid handler settings: {problems}") from exc
        result = assemble_package(
            binary,
            report=report,
            output_dir=output_dir,
            search_dirs=dependency_search_dirs(binary, settings=settings, extra=search_path or []),
            package_name=package_name,
            handler_config=config,
        )
    except MigrationError as exc:
        raise _fail(exc)

    for warning in result.warnings:
        print_warning(_console, warning)
    _console.print(build_package_panel(result))


def _deploy_options(settings: AppSettings, slot: Optional[str], retries: Optional[int], interval: Optional[float]) -> DeployOptions:
    return DeployOptions(
        slot=slot or settings.staging_slot,
        health_path=settings.health_path,
        retries=retries or settings.health_retries,
        interval_seconds=settings.health_interval_seconds if interval is None else interval,
    )


@app.command()
def deploy(
    app_name: str = typer.Argument(..., metavar="APP", help="Target app name."),
    package_path: Path = typer.Argument(..., metavar="PACKAGE", help="Zip produced by `package`."),
    slot: Optional[str] = typer.Option(None, "--slot", help="Staging slot name."),
    health_path: Optional[str] = typer.Option(None, "--health-path", help="Path polled for health."),
    retries: Optional[int] = typer.Option(None, "--retries", min=1, help="Health-check attempts."),
    interval: Optional[float] = typer.Option(None, "--interval", min=0, help="Seconds between attempts."),
) -> None:
    """Blue-green deploy: staging slot, health check, swap, verify."""

    settings = AppSettings()
    if health_path is not None:
        settings.health_path = health_path
    options = _deploy_options(settings, slot, retries, interval)

    async def _run():
        async with build_async_client(settings) as client:
            orchestrator = DeployOrchestrator(_build_platform(settings), client=client, options=options)
            return await orchestrator.deploy(app_name, package_path)

    try:
        record = asyncio.run(_run())
    except MigrationError as exc:
        raise _fail(exc)

    _console.print(build_deployment_table(record))
    for warning in record.warnings:
        print_warning(_console, warning)
    if record.state is DeploymentState.FAILED:
        raise typer.Exit(code=1)
    _console.print(f"[green]Deployed[/green] {package_path.name} to {app_name}")


@app.command()
def rollback(
    app_name: str = typer.Argument(..., metavar="APP", help="Target app name."),
    slot: Optional[str] = typer.Option(None, "--slot", help="Slot holding the previous build."),
    retries: Optional[int] = typer.Option(None, "--retries", min=1, help="Health-check attempts."),
    interval: Optional[float] = typer.Option(None, "--interval", min=0, help="Seconds between attempts."),
) -> None:
    """Swap the staging slot back into production and verify health."""

    settings = AppSettings()
    options = _deploy_options(settings, slot, retries, interval)

    async def _run():
        async with build_async_client(settings) as client:
            orchestrator = DeployOrchestrator(_build_platform(settings), client=client, options=options)
            return await orchestrator.rollback(app_name)

    try:
        result = asyncio.run(_run())
    except MigrationError as exc:
        raise _fail(exc)

    if not result.probe.healthy:
        print_error(
            _console,
            f"[health_check_timeout] production {result.probe.url} not healthy after {result.probe.attempts} attempts",
        )
        raise typer.Exit(code=1)
    _console.print(f"[green]Rolled back[/green] {app_name}: production healthy at {result.probe.url}")


@app.command()
def loadtest(
    url: str = typer.Argument(..., help="URL to load."),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-c", min=1, help="Concurrent workers."),
    duration: Optional[float] = typer.Option(None, "--duration", "-d", min=0.1, help="Seconds to run."),
    think_min: Optional[float] = typer.Option(None, "--think-min", min=0, help="Min think time (s)."),
    think_max: Optional[float] = typer.Option(None, "--think-max", min=0, help="Max think time (s)."),
    summary_path: Optional[Path] = typer.Option(None, "--summary", help="Write the JSON summary here."),
    csv_path: Optional[Path] = typer.Option(None, "--csv", help="Write raw samples as CSV."),
) -> None:
    """Run concurrent synthetic clients and report latency percentiles."""

    settings = AppSettings()
    options = LoadTestOptions(
        concurrency=concurrency or settings.load_concurrency,
        duration_seconds=duration or settings.load_duration_seconds,
        think_time_min_seconds=settings.think_time_min_seconds if think_min is None else think_min,
        think_time_max_seconds=settings.think_time_max_seconds if think_max is None else think_max,
    )
    if options.think_time_max_seconds < options.think_time_min_seconds:
        raise typer.BadParameter("--think-max must be >= --think-min")

    async def _run():
        async with build_async_client(settings, max_connections=options.concurrency) as client:
            return await run_load_test(url, client=client, options=options)

    _console.print(f"Running {options.concurrency} workers for {options.duration_seconds:g}s against {url}")
    summary, samples = asyncio.run(_run())

    _console.print(build_load_summary_table(summary))
    if summary_path is not None:
        export_model_json(model=summary, output_path=summary_path)
        _console.print(f"[green]Summary:[/green] {summary_path}")
    if csv_path is not None:
        export_samples_csv(samples=samples, output_path=csv_path)
        _console.print(f"[green]Samples:[/green] {csv_path}")
    if summary.total == 0:
        print_warning(_console, "no requests completed")


@app.command()
def alerts(
    app_name: str = typer.Argument(..., metavar="APP", help="Target app name."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only print the rules."),
) -> None:
    """Create the baseline alert rules for a migrated app."""

    settings = AppSettings()
    rules = default_alert_rules(app_name)
    _console.print(build_alerts_table(rules))
    if dry_run:
        return
    try:
        created = apply_alert_rules(_build_platform(settings), app_name, rules)
    except MigrationError as exc:
        raise _fail(exc)
    _console.print(f"[green]Created {len(created)} alert rule(s)[/green]")


def run() -> None:
    app()
