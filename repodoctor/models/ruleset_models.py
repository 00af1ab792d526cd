"""
Ruleset Data Models — The fully merged configuration governing one scan.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from repodoctor.models.issue_models import Category, Severity


class CustomRule(BaseModel):
    """A text-pattern rule declared in a preset or repository config."""

    model_config = {"frozen": True}

    id: str
    pattern: str = Field(..., description="Regular expression matched per line")
    files: str = Field(default="*", description="Glob selecting the files to search")
    severity: Severity = Severity.MEDIUM
    message: str
    category: Category = Category.SECURITY
    suggestion: str | None = None


class AnalyzerSettings(BaseModel):
    model_config = {"frozen": True}

    enabled: bool = True
    params: dict[str, Any] = Field(default_factory=dict)


class EffectiveRuleset(BaseModel):
    """Merged preset + repository config + overrides. Immutable."""

    model_config = {"frozen": True}

    preset: str = "balanced"
    severity_threshold: Severity = Severity.INFO
    ignore_paths: tuple[str, ...] = ()
    ignore_rules: tuple[str, ...] = ()
    analyzers: dict[str, AnalyzerSettings] = Field(default_factory=dict)
    custom_rules: tuple[CustomRule, ...] = ()
    fail_on: Severity = Severity.HIGH
    min_score: int | None = Field(default=None, ge=0, le=100)

    def analyzer_enabled(self, name: str) -> bool:
        entry = self.analyzers.get(name)
        return entry.enabled if entry is not None else True

    def param(self, analyzer: str, key: str, default: Any = None) -> Any:
        entry = self.analyzers.get(analyzer)
        if entry is None:
            return default
        return entry.params.get(key, default)
