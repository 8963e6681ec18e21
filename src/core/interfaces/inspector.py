"""Binary inspector contract.

Why Protocol:
- Structural contract (duck typing) without rigid inheritance.
- The pefile and dumpbin backends are interchangeable, and tests can hand the
  validator an in-memory image.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from core.domain.models import BinaryImage


class ImageFormatError(Exception):
    """The file exists but its headers could not be read."""


@runtime_checkable
class BinaryInspector(Protocol):
    """Minimal contract for reading a native image.

    Design rules:
    - `inspect` is synchronous: it is local file/process I/O.
    - Raises `ImageFormatError` when the header is unreadable; never for a
      missing export or import table (those are just empty).
    """

    def inspect(self, path: Path) -> BinaryImage:
        ...
