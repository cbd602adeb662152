"""Result types for story integrity checks."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Literal

Severity = Literal["pass", "warn", "fail"]


@dataclass(frozen=True)
class ValidationCheck:
    """One finding of the integrity audit.

    Attributes:
        name: Check identifier, e.g. ``"start_scene"``.
        severity: ``"fail"`` breaks a graph invariant; ``"warn"`` is a
            state the editor tolerates (unlinked targets, trailing media).
        message: What was found.
    """

    name: str
    severity: Severity
    message: str = ""


@dataclass
class ValidationReport:
    checks: list[ValidationCheck] = field(default_factory=list)

    def with_severity(self, severity: Severity) -> list[ValidationCheck]:
        return [check for check in self.checks if check.severity == severity]

    @property
    def has_failures(self) -> bool:
        return bool(self.with_severity("fail"))

    @property
    def has_warnings(self) -> bool:
        return bool(self.with_severity("warn"))

    @property
    def summary(self) -> str:
        """E.g. ``"1 failed, 2 warnings, 5 passed"``."""
        counts = Counter(check.severity for check in self.checks)
        labels = (("fail", "failed"), ("warn", "warnings"), ("pass", "passed"))
        return ", ".join(f"{counts[key]} {label}" for key, label in labels if counts[key])
