"""Sandbox rule models (data-driven).

Idea:
- Instead of one scanner per audience with its own hard-coded pattern list, a
  single scanner evaluates a rule pack. The default pack ships in
  `core.domain.catalog`; operators can point at a JSON file.
"""

from __future__ import annotations

import fnmatch

from pydantic import BaseModel, Field


class SandboxRule(BaseModel):
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    functions: list[str] = Field(
        default_factory=list,
        description="Glob patterns matched case-insensitively against imported function names.",
    )
    dlls: list[str] = Field(
        default_factory=list,
        description="Optional DLL globs; empty means any DLL.",
    )
    message: str = Field(default="")

    def matches(self, dll: str, function: str) -> bool:
        dll_l = dll.lower()
        if self.dlls and not any(fnmatch.fnmatchcase(dll_l, p.lower()) for p in self.dlls):
            return False
        func_l = function.lower()
        return any(fnmatch.fnmatchcase(func_l, p.lower()) for p in self.functions)


class RulePack(BaseModel):
    name: str = Field(default="custom")
    rules: list[SandboxRule] = Field(default_factory=list)
