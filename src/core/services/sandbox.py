"""Sandbox restriction scanner.

One parameterized scanner: the rule pack decides what is flagged, so the
quick-start and enterprise audiences share the same code path.
"""

from __future__ import annotations

from core.domain.models import BinaryImage, SandboxFinding
from core.domain.rules import RulePack


def scan_sandbox_violations(image: BinaryImage, pack: RulePack) -> list[SandboxFinding]:
    """Match every imported function against the pack; one finding per hit.

    Ordinal-only imports (`#115`) cannot be matched by name and are skipped.
    """

    findings: list[SandboxFinding] = []
    seen: set[tuple[str, str, str]] = set()
    for dll in sorted(image.imports):
        for function in image.imports[dll]:
            if function.startswith("#"):
                continue
            for rule in pack.rules:
                if not rule.matches(dll, function):
                    continue
                key = (rule.name, dll, function)
                if key in seen:
                    continue
                seen.add(key)
                findings.append(
                    SandboxFinding(
                        category=rule.category,
                        dll=dll,
                        function=function,
                        rule=rule.name,
                        message=rule.message or f"{function} is restricted ({rule.category})",
                    )
                )
    return findings
