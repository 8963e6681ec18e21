"""Inspector backed by Visual Studio's `dumpbin`.

Runs `dumpbin /headers /exports /imports` once and pattern-matches the text
output. Useful on build machines where operators already trust dumpbin's view
of an image.
"""

from __future__ import annotations

import re
import subprocess
from pathlib import Path
from typing import Callable

from adapters.pe_inspector import machine_label
from core.domain.models import BinaryImage
from core.errors import ErrorCategory, MigrationError
from core.interfaces.inspector import ImageFormatError
from core.logging import get_logger

logger = get_logger(__name__)

Runner = Callable[[list[str]], subprocess.CompletedProcess]

_MACHINE_RE = re.compile(r"^\s*([0-9A-Fa-f]+)\s+machine\s*\(", re.MULTILINE)
_EXPORT_RE = re.compile(r"^\s*\d+\s+(?:[0-9A-Fa-f]+\s+)?[0-9A-Fa-f]{8}\s+(\S+)")
_DLL_RE = re.compile(r"^\s+(\S+\.(?:dll|drv|exe|ocx|sys))\s*$", re.IGNORECASE)
_IMPORT_RE = re.compile(r"^\s+[0-9A-Fa-f]+\s+(\S+)\s*$")
_ORDINAL_RE = re.compile(r"^\s+Ordinal\s+(\d+)\s*$")


def _default_runner(argv: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(argv, capture_output=True, text=True, check=False)


def parse_dumpbin_output(text: str) -> BinaryImage:
    """Parse combined `/headers /exports /imports` output.

    Raises `ImageFormatError` when no machine line is present, which is what
    dumpbin prints for truncated or non-PE files.
    """

    match = _MACHINE_RE.search(text)
    if match is None:
        raise ImageFormatError("dumpbin output has no machine line")
    code = int(match.group(1), 16)

    exports: list[str] = []
    imports: dict[str, list[str]] = {}
    section: str | None = None
    current_dll: str | None = None

    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("ordinal hint RVA") or stripped.startswith("ordinal    RVA"):
            section = "exports"
            continue
        if stripped.startswith("Section contains the following imports"):
            section = "imports"
            current_dll = None
            continue
        if stripped.startswith("Summary") or stripped.startswith("Section contains the following"):
            section = None
            continue

        if section == "exports":
            m = _EXPORT_RE.match(line)
            if m and m.group(1) != "[NONAME]":
                exports.append(m.group(1))
        elif section == "imports":
            m = _DLL_RE.match(line)
            if m:
                current_dll = m.group(1).lower()
                imports.setdefault(current_dll, [])
                continue
            if current_dll is None:
                continue
            m = _ORDINAL_RE.match(line)
            if m:
                imports[current_dll].append(f"#{m.group(1)}")
                continue
            m = _IMPORT_RE.match(line)
            if m:
                imports[current_dll].append(m.group(1))

    return BinaryImage(
        machine=machine_label(code),
        machine_code=code,
        exports=exports,
        imports=imports,
    )


class DumpbinInspector:
    def __init__(self, executable: str = "dumpbin", runner: Runner | None = None) -> None:
        self._executable = executable
        self._runner = runner or _default_runner

    def inspect(self, path: Path) -> BinaryImage:
        argv = [self._executable, "/nologo", "/headers", "/exports", "/imports", str(path)]
        try:
            proc = self._runner(argv)
        except FileNotFoundError as exc:
            raise MigrationError(
                ErrorCategory.FILE_NOT_FOUND,
                f"dumpbin executable not found: {self._executable}",
            ) from exc

        if proc.returncode != 0:
            logger.warning("dumpbin failed", path=str(path), returncode=proc.returncode)
            detail = (proc.stdout or proc.stderr or "").strip().splitlines()
            raise ImageFormatError(detail[-1] if detail else f"dumpbin exit {proc.returncode}")
        return parse_dumpbin_output(proc.stdout)
