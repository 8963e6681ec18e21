"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
import json
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from adapters.command_platform import TEMPLATE_KEYS, CommandPlatform
from adapters.http_client import build_async_client
from adapters.report_exporter import export_report_pdf
from core.config import AppSettings, write_user_env_vars
from core.domain.models import (
    ArchitectureCheck,
    CheckStatus,
    ExportCheck,
    ModuleKind,
    ValidationReport,
)

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


def _check_pefile() -> tuple[bool, str]:
    try:
        import pefile  # noqa: PLC0415
    except ImportError as exc:
        return False, str(exc)
    return True, f"pefile {getattr(pefile, '__version__', '?')}"


def _check_pdf() -> tuple[bool, str]:
    """Render a minimal PDF to detect WeasyPrint/native library issues."""

    report = ValidationReport(
        binary="doctor.dll",
        architecture=ArchitectureCheck(status=CheckStatus.UNKNOWN, required="x64"),
        exports=ExportCheck(status=CheckStatus.UNKNOWN, kind=ModuleKind.EXTENSION),
    )
    try:
        with tempfile.TemporaryDirectory() as tmp:
            export_report_pdf(report=report, output_path=Path(tmp) / "doctor.pdf")
        return True, "OK"
    except Exception as exc:
        return False, str(exc)


@app.command()
def run(
    url: Optional[str] = typer.Option(None, "--url", help="Also check HTTP connectivity to this URL."),
) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="isapi-migrate doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    ok_pe, detail_pe = _check_pefile()
    table.add_row("pefile inspector", "OK" if ok_pe else "FAIL", detail_pe)

    dumpbin = shutil.which(settings.dumpbin_path)
    table.add_row(
        "dumpbin inspector",
        "OK" if dumpbin else "OPTIONAL",
        dumpbin or "not on PATH (only needed with ISAPI_MIGRATE_INSPECTOR=dumpbin)",
    )
    table.add_row("Inspector in use", "OK", settings.inspector)
    table.add_row("Target architecture", "OK", settings.target_architecture)

    missing = CommandPlatform.from_settings(settings).missing_templates()
    if missing:
        table.add_row("Platform templates", "MISSING", ", ".join(missing))
    else:
        table.add_row("Platform templates", "OK", f"{len(TEMPLATE_KEYS)} configured")

    if url:
        ok_http, detail_http = asyncio.run(_check_http(url, settings))
        table.add_row("HTTP connectivity", "OK" if ok_http else "FAIL", detail_http)

    ok_pdf, detail_pdf = _check_pdf()
    table.add_row("WeasyPrint PDF", "OK" if ok_pdf else "FAIL", detail_pdf)

    _console.print(table)

    if missing:
        _console.print(
            "\n[yellow]Note:[/yellow] deploy/rollback/alerts need command templates; "
            "run `isapi-migrate doctor setup-platform`."
        )
    if not ok_pdf:
        _console.print(
            "\n[yellow]Note:[/yellow] When PDF export fails, `--export-pdf` automatically falls back to HTML."
        )


@app.command(name="setup-platform")
def setup_platform() -> None:
    """Interactive platform setup (stores templates in the per-user .env).

    Each template is a command line with {app}, {slot}, {target}, {package}
    placeholders; leave blank to skip.
    """

    settings = AppSettings()
    templates = dict(settings.command_templates)

    hostname_field = typer.prompt(
        "JSON field holding the hostname",
        default=settings.hostname_field,
        show_default=True,
    ).strip()

    for key in TEMPLATE_KEYS:
        value = typer.prompt(
            f"Command for {key}",
            default=templates.get(key, ""),
            show_default=bool(templates.get(key)),
        ).strip()
        if value:
            templates[key] = value

    if not hostname_field:
        raise typer.BadParameter("hostname field is required")

    env_path = write_user_env_vars(
        {
            "ISAPI_MIGRATE_HOSTNAME_FIELD": hostname_field,
            "ISAPI_MIGRATE_COMMAND_TEMPLATES": json.dumps(templates, sort_keys=True),
        }
    )

    _console.print(f"[green]Saved platform config to:[/green] {env_path}")
