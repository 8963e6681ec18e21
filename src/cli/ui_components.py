"""Rich UI components for the CLI.

Why separate components:
- Keeps command logic apart from visual details.
- Tables/panels are reused by several commands (validate + package).
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import (
    AlertRule,
    CheckStatus,
    DeploymentRecord,
    DeploymentState,
    LoadSummary,
    PackageResult,
    ReportStatus,
    ValidationReport,
)

_STATUS_STYLE = {
    CheckStatus.PASS: "green",
    CheckStatus.FAIL: "red",
    CheckStatus.UNKNOWN: "yellow",
    ReportStatus.OK: "green",
    ReportStatus.WARNING: "yellow",
    ReportStatus.CRITICAL: "bold red",
}


def _styled(status: CheckStatus | ReportStatus) -> Text:
    return Text(status.value.upper(), style=_STATUS_STYLE[status])


def print_banner(console: Console) -> None:
    """Print the welcome banner.

    Why here:
    - Avoids circular imports (main <-> doctor).
    - Lets non-interactive modes (JSON/pipelines) skip it.
    """

    title = Text("ISAPI-MIGRATE", style="bold cyan")
    subtitle = Text("Validate • Package • Deploy • Measure", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def print_warning(console: Console, message: str) -> None:
    console.print(f"[yellow]warning:[/yellow] {escape(message)}")


def print_error(console: Console, message: str) -> None:
    console.print(f"[bold red]error:[/bold red] {escape(message)}")


def build_validation_table(report: ValidationReport) -> Table:
    table = Table(title=f"Compatibility: {report.binary}")
    table.add_column("Check", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Details", style="white")

    arch = report.architecture
    table.add_row("architecture", _styled(arch.status), f"{arch.detected} (requires {arch.required})")

    exports = report.exports
    if exports.missing:
        detail = f"missing: {', '.join(exports.missing)}"
    else:
        detail = f"{exports.kind.value}: {', '.join(exports.present) or '-'}"
    table.add_row("exports", _styled(exports.status), detail)

    deps = report.dependencies
    table.add_row(
        "dependencies",
        _styled(deps.status),
        f"safe {len(deps.known_safe)} / runtime {len(deps.known_runtime)} / unrecognized {len(deps.unrecognized)}",
    )
    table.add_row(
        "sandbox",
        _styled(CheckStatus.FAIL if report.sandbox_findings else CheckStatus.PASS),
        f"{len(report.sandbox_findings)} restricted call(s)",
    )
    table.add_section()
    table.add_row("status", _styled(report.status), "suitable" if report.suitable else "NOT suitable")
    return table


def build_findings_table(report: ValidationReport) -> Table:
    table = Table(title="Sandbox restrictions")
    table.add_column("Category", style="magenta", no_wrap=True)
    table.add_column("Function", style="white")
    table.add_column("DLL", style="dim")
    table.add_column("Note", style="yellow")
    for finding in report.sandbox_findings:
        table.add_row(finding.category, finding.function, finding.dll, finding.message)
    return table


def build_package_panel(result: PackageResult) -> Panel:
    body = Text()
    body.append(f"Archive:  {result.archive_path}\n")
    body.append(f"Manifest: {result.manifest_path}\n")
    body.append(f"Files:    {result.manifest.file_count}\n")
    if result.copied_dependencies:
        body.append(f"Bundled:  {', '.join(result.copied_dependencies)}\n", style="green")
    if result.missing_dependencies:
        body.append(f"Missing:  {', '.join(result.missing_dependencies)}\n", style="yellow")
    return Panel(body, title=Text(result.manifest.package_name, style="bold cyan"), border_style="cyan")


def build_deployment_table(record: DeploymentRecord) -> Table:
    table = Table(title=f"Deployment: {record.app} ({record.slot})")
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("State", style="cyan")
    for idx, state in enumerate(record.history, start=1):
        style = "red" if state is DeploymentState.FAILED else "green" if state is DeploymentState.DONE else "white"
        table.add_row(str(idx), Text(state.value, style=style))
    for probe in record.probes:
        status = "healthy" if probe.healthy else f"unhealthy ({probe.last_status or probe.last_error})"
        table.add_row("-", Text(f"probe {probe.url}: {status} after {probe.attempts}", style="dim"))
    if record.error:
        table.add_section()
        table.add_row("!", Text(f"{record.error.category}: {record.error.context}", style="red"))
        table.add_row("!", Text(f"compensation: {record.compensation.value}", style="yellow"))
    return table


def build_load_summary_table(summary: LoadSummary) -> Table:
    def ms(value: float | None) -> str:
        return "-" if value is None else f"{value:.1f} ms"

    table = Table(title=f"Load test: {summary.url}")
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_row("workers", str(summary.concurrency))
    table.add_row("requests", str(summary.total))
    table.add_row("successes", str(summary.successes))
    table.add_row("failures", Text(str(summary.failures), style="red" if summary.failures else "green"))
    table.add_row("error rate", f"{summary.error_rate:.2%}")
    table.add_row("throughput", f"{summary.requests_per_second:.1f} req/s")
    table.add_section()
    table.add_row("mean", ms(summary.mean_ms))
    table.add_row("min", ms(summary.min_ms))
    table.add_row("max", ms(summary.max_ms))
    table.add_row("p50", ms(summary.p50_ms))
    table.add_row("p95", ms(summary.p95_ms))
    table.add_row("p99", ms(summary.p99_ms))
    if summary.status_codes:
        table.add_section()
        for code, count in summary.status_codes.items():
            table.add_row(f"status {code}", str(count))
    return table


def build_alerts_table(rules: list[AlertRule]) -> Table:
    table = Table(title="Alert rules")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Metric", style="white")
    table.add_column("Condition", style="white")
    table.add_column("Window", style="dim")
    table.add_column("Sev", style="magenta")
    for rule in rules:
        table.add_row(
            rule.name,
            rule.metric,
            f"{rule.operator} {rule.threshold:g}",
            f"{rule.window_minutes}m",
            str(rule.severity),
        )
    return table
