"""Static knowledge about ISAPI modules and the managed host sandbox."""

from __future__ import annotations

import fnmatch

from core.domain.models import ModuleKind
from core.domain.rules import RulePack, SandboxRule

# IMAGE_FILE_HEADER.Machine
MACHINE_TYPES: dict[int, str] = {
    0x014C: "x86",
    0x8664: "x64",
    0xAA64: "arm64",
    0x01C4: "arm",
}

REQUIRED_EXPORTS: dict[ModuleKind, tuple[str, ...]] = {
    ModuleKind.FILTER: ("GetFilterVersion", "HttpFilterProc"),
    ModuleKind.EXTENSION: ("GetExtensionVersion", "HttpExtensionProc"),
}

OPTIONAL_EXPORTS: dict[ModuleKind, tuple[str, ...]] = {
    ModuleKind.FILTER: ("TerminateFilter",),
    ModuleKind.EXTENSION: ("TerminateExtension",),
}

# System DLLs the host sandbox provides.
KNOWN_SAFE_DLLS: frozenset[str] = frozenset(
    {
        "kernel32.dll",
        "kernelbase.dll",
        "ntdll.dll",
        "user32.dll",
        "advapi32.dll",
        "ole32.dll",
        "oleaut32.dll",
        "shlwapi.dll",
        "ws2_32.dll",
        "winhttp.dll",
        "crypt32.dll",
        "bcrypt.dll",
        "secur32.dll",
        "rpcrt4.dll",
        "version.dll",
        "httpapi.dll",
    }
)

# Compiler runtimes: usually present, but the packager ships them when found.
KNOWN_RUNTIME_PATTERNS: tuple[str, ...] = (
    "msvcr*.dll",
    "msvcp*.dll",
    "vcruntime*.dll",
    "ucrtbase.dll",
    "api-ms-win-crt-*.dll",
    "concrt*.dll",
    "mfc*.dll",
    "vcomp*.dll",
)


def is_known_safe(dll: str) -> bool:
    return dll.lower() in KNOWN_SAFE_DLLS


def is_known_runtime(dll: str) -> bool:
    name = dll.lower()
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in KNOWN_RUNTIME_PATTERNS)


DEFAULT_RULE_PACK = RulePack(
    name="default",
    rules=[
        SandboxRule(
            name="registry-write",
            category="registry",
            dlls=["advapi32.dll", "kernelbase.dll"],
            functions=["RegCreateKey*", "RegSetValue*", "RegDeleteKey*", "RegDeleteValue*", "RegSetKeyValue*"],
            message="Registry writes are blocked; move settings to app settings or files under D:\\home.",
        ),
        SandboxRule(
            name="process-spawn",
            category="process",
            functions=["CreateProcess*", "WinExec", "ShellExecute*", "CreateProcessAsUser*"],
            message="Child processes are restricted; review whether the call is needed.",
        ),
        SandboxRule(
            name="listening-socket",
            category="network",
            dlls=["ws2_32.dll", "wsock32.dll", "mswsock.dll"],
            functions=["bind", "listen", "accept", "WSAAccept", "AcceptEx"],
            message="Inbound listeners are not available; outbound TCP (socket, connect) is allowed.",
        ),
        SandboxRule(
            name="service-control",
            category="service",
            dlls=["advapi32.dll", "sechost.dll"],
            functions=["OpenSCManager*", "CreateService*", "StartService*", "ControlService"],
            message="Windows services cannot be managed from the sandbox.",
        ),
        SandboxRule(
            name="event-log",
            category="eventlog",
            dlls=["advapi32.dll"],
            functions=["RegisterEventSource*", "ReportEvent*"],
            message="Event log writes are dropped; log to files or the platform log stream.",
        ),
        SandboxRule(
            name="user-interface",
            category="ui",
            dlls=["user32.dll", "gdi32.dll"],
            functions=["MessageBox*", "CreateWindow*", "DialogBox*"],
            message="No interactive desktop is available to hosted code.",
        ),
        SandboxRule(
            name="privilege",
            category="security",
            dlls=["advapi32.dll"],
            functions=["AdjustTokenPrivileges", "LogonUser*", "ImpersonateLoggedOnUser"],
            message="Privilege changes and logons are denied for the worker identity.",
        ),
    ],
)
