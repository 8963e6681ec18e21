"""Validation report export (HTML/PDF).

Why it lives in adapters:
- PDF/HTML are infrastructure details (WeasyPrint/Jinja2).
- The Core only knows the `ValidationReport` model.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.domain.models import ValidationReport

_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def _get_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
    )


def render_report_html(*, report: ValidationReport) -> str:
    """Render a self-contained HTML page for one validation report."""

    generated_at = datetime.now(timezone.utc).isoformat(timespec="seconds")

    findings_by_category: dict[str, list] = {}
    for finding in report.sandbox_findings:
        findings_by_category.setdefault(finding.category, []).append(finding)

    if report.exports.missing:
        exports_detail = f"missing: {', '.join(report.exports.missing)}"
    else:
        exports_detail = f"{report.exports.kind.value}: {', '.join(report.exports.present) or '-'}"

    checks = [
        (
            "Architecture",
            report.architecture.status,
            f"{report.architecture.detected} (requires {report.architecture.required})",
        ),
        ("Entry points", report.exports.status, exports_detail),
        (
            "Dependencies",
            report.dependencies.status,
            f"{len(report.dependencies.unrecognized)} unrecognized",
        ),
    ]

    template = _get_env().get_template("report.html")
    return template.render(
        report=report,
        checks=checks,
        generated_at=generated_at,
        findings_by_category=sorted(findings_by_category.items()),
    )


def export_report_html(*, report: ValidationReport, output_path: Path) -> Path:
    """Export the report as HTML.

    Why it exists:
    - Fallback when PDF rendering is not supported by the environment.
    - Handy to debug the template itself.
    """

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_report_html(report=report), encoding="utf-8")
    return output_path


def export_report_pdf(*, report: ValidationReport, output_path: Path) -> Path:
    """Export the report as PDF.

    Design:
    - Synchronous: WeasyPrint is local CPU/IO.
    - Imported lazily so HTML export works where WeasyPrint's native
      libraries (Pango/Cairo) are missing.
    """

    from weasyprint import HTML  # noqa: PLC0415

    output_path.parent.mkdir(parents=True, exist_ok=True)
    html = render_report_html(report=report)
    HTML(string=html, base_url=str(_TEMPLATES_DIR)).write_pdf(str(output_path))
    return output_path
