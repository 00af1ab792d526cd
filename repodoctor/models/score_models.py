"""
Health Score Data Models — Per-category breakdown and letter grade.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Grade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class CategoryScore(BaseModel):
    """Clamped score of one category and the issues that drove it."""

    name: str
    weight: int
    score: int = Field(..., ge=0, le=100)
    issues_count: int = 0
    critical_count: int = 0


class HealthScore(BaseModel):
    """Full explainable health score."""

    total: int = Field(..., ge=0, le=100, description="Weighted total 0-100")
    grade: Grade
    breakdown: list[CategoryScore] = Field(default_factory=list)
    formula: str = Field(
        default="total = Σ(clamp(100 - Σpenalty) × weight) / Σweight",
        description="Human-readable formula used",
    )
    summary: str = Field(default="", description="Human-readable score summary")
