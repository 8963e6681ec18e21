"""
Tests for settings and the per-user .env writer.
"""
import json

import pytest
from pydantic import ValidationError

from core.config import AppSettings, _parse_env_lines, write_user_env_vars


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("COMMAND_TEMPLATES", "HEALTH_RETRIES", "INSPECTOR", "DEPENDENCY_SEARCH_PATHS", "TARGET_ARCHITECTURE"):
        monkeypatch.delenv(f"ISAPI_MIGRATE_{name}", raising=False)


def test_defaults():
    settings = AppSettings(_env_file=None)

    assert settings.target_architecture == "x64"
    assert settings.inspector == "pefile"
    assert settings.staging_slot == "staging"
    assert settings.health_retries == 10
    assert settings.health_interval_seconds == 10.0
    assert settings.command_templates == {}


def test_environment_overrides(monkeypatch, tmp_path):
    templates = {"create_slot": "hostctl slot create {app} {slot}"}
    monkeypatch.setenv("ISAPI_MIGRATE_COMMAND_TEMPLATES", json.dumps(templates))
    monkeypatch.setenv("ISAPI_MIGRATE_HEALTH_RETRIES", "3")
    monkeypatch.setenv("ISAPI_MIGRATE_DEPENDENCY_SEARCH_PATHS", json.dumps([str(tmp_path)]))

    settings = AppSettings(_env_file=None)

    assert settings.command_templates == templates
    assert settings.health_retries == 3
    assert settings.dependency_search_paths == [tmp_path]


def test_unknown_inspector_is_rejected(monkeypatch):
    monkeypatch.setenv("ISAPI_MIGRATE_INSPECTOR", "objdump")

    with pytest.raises(ValidationError):
        AppSettings(_env_file=None)


def test_user_env_round_trips_json_templates(tmp_path):
    templates = {
        "deploy_package": "hostctl deploy --name {app} --src '{package}'",
        "get_hostname": "hostctl show {app} --query \"{{defaultHostName: host}}\"",
    }
    env_path = tmp_path / "user" / ".env"

    write_user_env_vars(
        {"ISAPI_MIGRATE_COMMAND_TEMPLATES": json.dumps(templates, sort_keys=True)},
        env_path=env_path,
    )
    write_user_env_vars({"ISAPI_MIGRATE_HOSTNAME_FIELD": "host"}, env_path=env_path)

    parsed = _parse_env_lines(env_path.read_text(encoding="utf-8"))
    assert json.loads(parsed["ISAPI_MIGRATE_COMMAND_TEMPLATES"]) == templates
    assert parsed["ISAPI_MIGRATE_HOSTNAME_FIELD"] == "host"

    settings = AppSettings(_env_file=env_path)
    assert settings.command_templates == templates
    assert settings.hostname_field == "host"


def test_parse_env_lines_skips_comments_and_junk():
    text = "# comment\n\nNOT_A_PAIR\nA=1\nB='two words'\n"

    assert _parse_env_lines(text) == {"A": "1", "B": "two words"}
