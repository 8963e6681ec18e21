"""Handler configuration rendering.

Why Jinja2 with autoescape:
- Operator-supplied names (handler, binary, env values) end up inside XML
  attributes; escaping is the template engine's job, not string formatting.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from core.domain.models import HandlerConfig

_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

# Where the host unpacks the archive's bin/ directory.
HOST_BIN_DIR = r"%HOME%\site\wwwroot\bin"


def _get_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


def render_web_config(config: HandlerConfig, *, generated_at: datetime | None = None) -> str:
    generated_at = generated_at or datetime.now(timezone.utc)
    template = _get_env().get_template("web.config.xml")
    return template.render(
        config=config,
        binary_path=f"{HOST_BIN_DIR}\\{config.binary_name}",
        generated_at=generated_at.isoformat(timespec="seconds"),
    )


def write_web_config(config: HandlerConfig, output_path: Path, *, generated_at: datetime | None = None) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_web_config(config, generated_at=generated_at), encoding="utf-8")
    return output_path
