"""
Issue Data Models — Severities, categories, rule metadata and findings.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def weight(self) -> int:
        return SEVERITY_WEIGHTS[self]

    @property
    def penalty(self) -> int:
        return SEVERITY_PENALTIES[self]

    def at_least(self, other: Severity) -> bool:
        return self.weight >= other.weight

    @classmethod
    def parse(cls, token: str) -> Severity:
        """Parse a case-insensitive severity token; raises ValueError."""
        return cls(str(token).strip().lower())


# Ordering only, never used as a score multiplier
SEVERITY_WEIGHTS: dict[Severity, int] = {
    Severity.CRITICAL: 100,
    Severity.HIGH: 75,
    Severity.MEDIUM: 50,
    Severity.LOW: 25,
    Severity.INFO: 0,
}

SEVERITY_PENALTIES: dict[Severity, int] = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
    Severity.MEDIUM: 8,
    Severity.LOW: 3,
    Severity.INFO: 0,
}


class Category(str, Enum):
    STRUCTURE = "Structure"
    DEPENDENCIES = "Dependencies"
    CONFIGURATION = "Configuration"
    TESTING = "Testing"
    SECURITY = "Security"
    DOCUMENTATION = "Documentation"

    @classmethod
    def parse(cls, token: str) -> Category:
        lowered = str(token).strip().lower()
        for member in cls:
            if member.value.lower() == lowered:
                return member
        raise ValueError(f"unknown category '{token}'")


# Fixed order used by the score breakdown; weights sum to 100
CATEGORY_WEIGHTS: dict[Category, int] = {
    Category.STRUCTURE: 20,
    Category.DEPENDENCIES: 20,
    Category.CONFIGURATION: 15,
    Category.TESTING: 25,
    Category.SECURITY: 15,
    Category.DOCUMENTATION: 5,
}


class Rule(BaseModel):
    """Static catalog entry owned by an analyzer."""

    model_config = {"frozen": True}

    id: str = Field(..., description="Stable rule identifier, e.g. 'SEC-001'")
    severity: Severity
    title: str
    category: Category | None = Field(
        default=None, description="Overrides the analyzer category when set"
    )
    auto_fixable: bool = False


class Issue(BaseModel):
    """A single finding emitted by one analyzer invocation."""

    model_config = {"frozen": True}

    id: str = Field(..., description="Rule id that produced this finding")
    analyzer: str
    category: Category
    severity: Severity
    title: str
    description: str = ""
    file: str | None = Field(default=None, description="Relative POSIX path")
    line: int | None = None
    suggestion: str | None = None
    auto_fixable: bool = False
    references: tuple[str, ...] = ()
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Rule-specific extra data consumed by fixers"
    )

    def sort_key(self) -> tuple:
        return (
            -self.severity.weight,
            self.analyzer,
            self.id,
            self.file or "",
            self.line or 0,
            self.title,
        )
