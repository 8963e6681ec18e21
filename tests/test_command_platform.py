"""
Tests for the command-template hosting platform.
"""
import json
import subprocess
from pathlib import Path

import pytest

from adapters.command_platform import TEMPLATE_KEYS, CommandPlatform
from core.domain.models import AlertRule
from core.errors import ErrorCategory, MigrationError

TEMPLATES = {
    "get_hostname": "hostctl webapp show --name {app} --output json",
    "get_slot_hostname": "hostctl webapp show --name {app} --slot {slot} --output json",
    "create_slot": "hostctl slot create --name {app} --slot {slot}",
    "deploy_package": "hostctl deploy --name {app} --slot {slot} --src '{package}'",
    "swap_slots": "hostctl slot swap --name {app} --slot {slot} --target-slot {target}",
    "create_alert_rule": "hostctl alert create --app {app} --name {name} --condition '{metric} {operator} {threshold}'",
}


class RecordingRunner:
    def __init__(self, stdout="", returncode=0, stderr=""):
        self.stdout = stdout
        self.returncode = returncode
        self.stderr = stderr
        self.calls: list[list[str]] = []

    def __call__(self, argv):
        self.calls.append(argv)
        return subprocess.CompletedProcess(argv, self.returncode, stdout=self.stdout, stderr=self.stderr)


def test_values_with_spaces_stay_one_argument():
    runner = RecordingRunner()
    platform = CommandPlatform(TEMPLATES, runner=runner)

    platform.deploy_package("shop", "staging", Path("/tmp/my builds/v2.zip"))

    assert runner.calls == [
        ["hostctl", "deploy", "--name", "shop", "--slot", "staging", "--src", str(Path("/tmp/my builds/v2.zip"))]
    ]


def test_shell_metacharacters_are_not_interpreted():
    runner = RecordingRunner()
    platform = CommandPlatform(TEMPLATES, runner=runner)

    platform.create_slot("shop; rm -rf /", "staging")

    assert runner.calls[0][4] == "shop; rm -rf /"


def test_swap_passes_target():
    runner = RecordingRunner()
    CommandPlatform(TEMPLATES, runner=runner).swap_slots("shop", "staging")

    assert runner.calls[0][-1] == "production"


def test_hostname_from_json_object_field():
    runner = RecordingRunner(stdout=json.dumps({"defaultHostName": "shop.example.net", "state": "Running"}))
    platform = CommandPlatform(TEMPLATES, runner=runner)

    assert platform.get_default_hostname("shop") == "shop.example.net"
    assert platform.get_default_hostname("shop", "staging") == "shop.example.net"
    assert runner.calls[1][5:7] == ["--slot", "staging"]


def test_hostname_from_json_string_and_custom_field():
    assert CommandPlatform(TEMPLATES, runner=RecordingRunner(stdout='"a.example.net"\n')).get_default_hostname("a") == (
        "a.example.net"
    )
    platform = CommandPlatform(
        TEMPLATES,
        hostname_field="host",
        runner=RecordingRunner(stdout='{"host": "b.example.net"}'),
    )
    assert platform.get_default_hostname("b") == "b.example.net"


def test_non_json_hostname_output_fails():
    platform = CommandPlatform(TEMPLATES, runner=RecordingRunner(stdout="shop.example.net"))

    with pytest.raises(MigrationError) as excinfo:
        platform.get_default_hostname("shop")

    assert excinfo.value.category is ErrorCategory.REMOTE_CALL_FAILED


def test_nonzero_exit_is_remote_call_failure():
    platform = CommandPlatform(TEMPLATES, runner=RecordingRunner(returncode=3, stderr="ResourceNotFound: shop"))

    with pytest.raises(MigrationError) as excinfo:
        platform.create_slot("shop", "staging")

    assert excinfo.value.category is ErrorCategory.REMOTE_CALL_FAILED
    assert "ResourceNotFound" in excinfo.value.context


def test_missing_program_is_remote_call_failure():
    def runner(argv):
        raise FileNotFoundError(argv[0])

    with pytest.raises(MigrationError) as excinfo:
        CommandPlatform(TEMPLATES, runner=runner).create_slot("shop", "staging")

    assert excinfo.value.category is ErrorCategory.REMOTE_CALL_FAILED


def test_missing_template_is_validation_failure():
    platform = CommandPlatform({}, runner=RecordingRunner())

    with pytest.raises(MigrationError) as excinfo:
        platform.swap_slots("shop", "staging")

    assert excinfo.value.category is ErrorCategory.VALIDATION_FAILED
    assert platform.missing_templates() == list(TEMPLATE_KEYS)


def test_unknown_placeholder_is_validation_failure():
    platform = CommandPlatform({"create_slot": "hostctl slot create {region}"}, runner=RecordingRunner())

    with pytest.raises(MigrationError) as excinfo:
        platform.create_slot("shop", "staging")

    assert excinfo.value.category is ErrorCategory.VALIDATION_FAILED


def test_alert_rule_fields_are_substituted():
    runner = RecordingRunner()
    rule = AlertRule(name="shop-cpu", metric="CpuPercentage", operator="GreaterThan", threshold=80)

    CommandPlatform(TEMPLATES, runner=runner).create_alert_rule("shop", rule)

    assert runner.calls[0][-1] == "CpuPercentage GreaterThan 80.0"
    assert runner.calls[0][6] == "shop-cpu"
