"""Inspector backed by `pefile`.

Why pefile:
- Pure Python, so validation runs on the Linux build agents too, not only on a
  workstation with Visual Studio installed.
"""

from __future__ import annotations

from pathlib import Path

import pefile

from core.domain.catalog import MACHINE_TYPES
from core.domain.models import BinaryImage
from core.interfaces.inspector import ImageFormatError


def machine_label(code: int | None) -> str:
    if code is None:
        return "unknown"
    return MACHINE_TYPES.get(code, "unknown")


def _decode(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("ascii", errors="replace")
    return value


class PefileInspector:
    """Reads machine type, export and import tables from a PE image."""

    _directories = [
        pefile.DIRECTORY_ENTRY["IMAGE_DIRECTORY_ENTRY_IMPORT"],
        pefile.DIRECTORY_ENTRY["IMAGE_DIRECTORY_ENTRY_EXPORT"],
    ]

    def inspect(self, path: Path) -> BinaryImage:
        try:
            pe = pefile.PE(name=str(path), fast_load=True)
        except pefile.PEFormatError as exc:
            raise ImageFormatError(f"{path}: {exc}") from exc
        except OSError as exc:
            raise ImageFormatError(f"{path}: {exc}") from exc

        try:
            pe.parse_data_directories(directories=self._directories)
            code = int(pe.FILE_HEADER.Machine)

            exports: list[str] = []
            export_dir = getattr(pe, "DIRECTORY_ENTRY_EXPORT", None)
            if export_dir is not None:
                for symbol in export_dir.symbols:
                    name = _decode(symbol.name)
                    if name:
                        exports.append(name)

            imports: dict[str, list[str]] = {}
            for entry in getattr(pe, "DIRECTORY_ENTRY_IMPORT", []):
                dll = _decode(entry.dll)
                if not dll:
                    continue
                functions = imports.setdefault(dll.lower(), [])
                for imp in entry.imports:
                    name = _decode(imp.name)
                    functions.append(name if name else f"#{imp.ordinal}")
        finally:
            pe.close()

        return BinaryImage(
            machine=machine_label(code),
            machine_code=code,
            exports=exports,
            imports=imports,
        )
