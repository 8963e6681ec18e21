"""Error categories shared by every command.

Rules:
- Services raise `MigrationError` for fatal conditions; the CLI catches it at the
  command boundary, prints it and exits 1.
- Warnings never raise. They are collected on result models.
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    FILE_NOT_FOUND = "file_not_found"
    REMOTE_CALL_FAILED = "remote_call_failed"
    HEALTH_CHECK_TIMEOUT = "health_check_timeout"
    VALIDATION_FAILED = "validation_failed"


class MigrationError(Exception):
    """Fatal toolkit error: a closed category plus free-text context."""

    def __init__(self, category: ErrorCategory, context: str) -> None:
        super().__init__(f"{category.value}: {context}")
        self.category = category
        self.context = context

    @classmethod
    def file_not_found(cls, path: object) -> "MigrationError":
        return cls(ErrorCategory.FILE_NOT_FOUND, f"file not found: {path}")
