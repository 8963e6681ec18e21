"""
Tests for `isapi-migrate doctor`.
"""
import json
import logging

import pytest
import structlog
from typer.testing import CliRunner

import cli.doctor as cli_doctor
import cli.main as cli_main
from core.config import AppSettings

runner = CliRunner()

TEMPLATES = {
    "get_hostname": "hostctl app show {app} --output json",
    "get_slot_hostname": "hostctl slot show {app} {slot} --output json",
    "create_slot": "hostctl slot create {app} {slot}",
    "deploy_package": "hostctl deploy {app} --slot {slot} --src {package}",
    "swap_slots": "hostctl slot swap {app} {slot} --target {target}",
    "create_alert_rule": "hostctl alert create {app} --name '{rule_name}'",
}


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("APPDATA", str(tmp_path / "config"))
    monkeypatch.delenv("ISAPI_MIGRATE_COMMAND_TEMPLATES", raising=False)
    monkeypatch.delenv("ISAPI_MIGRATE_HOSTNAME_FIELD", raising=False)
    monkeypatch.setattr(cli_doctor, "AppSettings", lambda: AppSettings(_env_file=None))
    monkeypatch.setattr(cli_doctor, "_check_pdf", lambda: (True, "OK"))
    yield
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()


def _templates_row(output: str) -> str:
    lines = [line for line in output.splitlines() if "Platform templates" in line]
    assert len(lines) == 1, output
    return lines[0]


def test_run_reports_missing_templates():
    result = runner.invoke(cli_main.app, ["doctor", "run"])

    assert result.exit_code == 0, result.output
    assert "MISSING" in _templates_row(result.output)
    assert "setup-platform" in result.output


def test_run_reports_configured_templates(monkeypatch):
    monkeypatch.setenv("ISAPI_MIGRATE_COMMAND_TEMPLATES", json.dumps(TEMPLATES))

    result = runner.invoke(cli_main.app, ["doctor", "run"])

    assert result.exit_code == 0, result.output
    row = _templates_row(result.output)
    assert "OK" in row
    assert "MISSING" not in result.output
    assert "6 configured" in row


def test_setup_platform_writes_user_env_file(tmp_path):
    answers = ["hostName"] + [TEMPLATES[key] for key in cli_doctor.TEMPLATE_KEYS]

    result = runner.invoke(cli_doctor.app, ["setup-platform"], input="\n".join(answers) + "\n")

    assert result.exit_code == 0, result.output
    env_path = tmp_path / "config" / "isapi-migrate" / ".env"
    assert env_path.is_file()

    settings = AppSettings(_env_file=env_path)
    assert settings.command_templates == TEMPLATES
    assert settings.hostname_field == "hostName"


def test_setup_platform_blank_answers_keep_nothing(tmp_path):
    answers = ["hostName"] + [""] * len(cli_doctor.TEMPLATE_KEYS)

    result = runner.invoke(cli_doctor.app, ["setup-platform"], input="\n".join(answers) + "\n")

    assert result.exit_code == 0, result.output
    settings = AppSettings(_env_file=tmp_path / "config" / "isapi-migrate" / ".env")
    assert settings.command_templates == {}
