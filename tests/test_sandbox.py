"""
Tests for the sandbox scanner and rule-pack loading.
"""
import json

import pytest

from adapters.rule_packs import load_rule_pack, resolve_rule_pack
from core.domain.catalog import DEFAULT_RULE_PACK
from core.domain.models import BinaryImage
from core.domain.rules import RulePack, SandboxRule
from core.errors import ErrorCategory, MigrationError
from core.services.sandbox import scan_sandbox_violations


def test_default_pack_flags_restricted_calls():
    image = BinaryImage(
        imports={
            "advapi32.dll": ["RegCreateKeyExW", "RegQueryValueExW", "ReportEventW"],
            "kernel32.dll": ["CreateProcessW", "GetLastError"],
            "ws2_32.dll": ["connect", "#23", "bind"],
        }
    )

    findings = scan_sandbox_violations(image, DEFAULT_RULE_PACK)

    flagged = {(f.rule, f.function) for f in findings}
    assert flagged == {
        ("registry-write", "RegCreateKeyExW"),
        ("event-log", "ReportEventW"),
        ("process-spawn", "CreateProcessW"),
        ("listening-socket", "bind"),
    }


def test_dll_filter_limits_rule():
    rule = SandboxRule(name="r", category="network", dlls=["ws2_32.dll"], functions=["bind"])

    assert rule.matches("WS2_32.DLL", "bind") is True
    assert rule.matches("mylib.dll", "bind") is False


def test_same_call_reported_once():
    pack = RulePack(rules=[SandboxRule(name="r", category="c", functions=["Foo*"])])
    image = BinaryImage(imports={"a.dll": ["FooBar", "FooBar"]})

    assert len(scan_sandbox_violations(image, pack)) == 1


def test_load_rule_pack_from_json(tmp_path):
    path = tmp_path / "enterprise.json"
    path.write_text(
        json.dumps(
            {
                "name": "enterprise",
                "rules": [
                    {"name": "pipes", "category": "ipc", "functions": ["CreateNamedPipe*"], "message": "no pipes"}
                ],
            }
        ),
        encoding="utf-8",
    )

    pack = load_rule_pack(path)

    assert pack.name == "enterprise"
    assert pack.rules[0].matches("kernel32.dll", "CreateNamedPipeW")


def test_invalid_rule_pack_is_validation_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(MigrationError) as excinfo:
        load_rule_pack(path)

    assert excinfo.value.category is ErrorCategory.VALIDATION_FAILED


def test_missing_rule_pack_is_file_not_found(tmp_path):
    with pytest.raises(MigrationError) as excinfo:
        load_rule_pack(tmp_path / "missing.json")

    assert excinfo.value.category is ErrorCategory.FILE_NOT_FOUND


def test_resolve_falls_back_to_builtin(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("APPDATA", str(tmp_path / "config"))

    assert resolve_rule_pack(None) is DEFAULT_RULE_PACK


def test_outbound_client_sockets_are_allowed():
    image = BinaryImage(
        imports={
            "ws2_32.dll": ["WSAStartup", "socket", "WSASocketW", "connect", "send", "recv", "closesocket"],
        }
    )

    assert scan_sandbox_violations(image, DEFAULT_RULE_PACK) == []


def test_listening_socket_calls_are_flagged():
    image = BinaryImage(imports={"ws2_32.dll": ["socket", "bind", "listen"], "mswsock.dll": ["AcceptEx"]})

    findings = scan_sandbox_violations(image, DEFAULT_RULE_PACK)

    assert sorted(f.function for f in findings) == ["AcceptEx", "bind", "listen"]
    assert {f.rule for f in findings} == {"listening-socket"}
