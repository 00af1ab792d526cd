"""
Health Scoring Engine — Explainable 0-100 score from the final issue list.

Per category:  score = max(0, 100 - Σ penalty(severity))
Total:         Σ(score × weight) / Σweight, rounded half-up

Penalties: critical=25, high=15, medium=8, low=3, info=0. Integer
arithmetic only, so identical issues always give the identical score.
"""

from __future__ import annotations

from repodoctor.models.issue_models import CATEGORY_WEIGHTS, Category, Issue, Severity
from repodoctor.models.ruleset_models import EffectiveRuleset
from repodoctor.models.score_models import CategoryScore, Grade, HealthScore

GRADE_THRESHOLDS: list[tuple[int, Grade]] = [
    (90, Grade.A),
    (80, Grade.B),
    (70, Grade.C),
    (60, Grade.D),
]


def grade_for(total: int) -> Grade:
    for minimum, grade in GRADE_THRESHOLDS:
        if total >= minimum:
            return grade
    return Grade.F


def calculate(
    issues: list[Issue],
    category_weights: dict[Category, int] | None = None,
) -> HealthScore:
    """
    Compute the health score.

    Args:
        issues: Final, already filtered issues.
        category_weights: Weight per category, CATEGORY_WEIGHTS by default.

    Returns:
        HealthScore with one CategoryScore per category in fixed order.
    """
    weights = category_weights or CATEGORY_WEIGHTS

    breakdown: list[CategoryScore] = []
    for category, weight in weights.items():
        in_category = [i for i in issues if i.category is category]
        penalty = sum(i.severity.penalty for i in in_category)
        breakdown.append(
            CategoryScore(
                name=category.value,
                weight=weight,
                score=max(0, 100 - penalty),
                issues_count=len(in_category),
                critical_count=sum(1 for i in in_category if i.severity is Severity.CRITICAL),
            )
        )

    total_weight = sum(c.weight for c in breakdown)
    if total_weight == 0:
        total = 100
    else:
        weighted = sum(c.score * c.weight for c in breakdown)
        total = (weighted + total_weight // 2) // total_weight
    total = max(0, min(100, total))
    grade = grade_for(total)

    worst = sorted(breakdown, key=lambda c: (c.score, c.name))[:2]
    if not issues:
        summary = f"No issues found. Health score {total}/100 (grade {grade.value})."
    else:
        summary = (
            f"{len(issues)} issue(s). Health score {total}/100 (grade {grade.value}). "
            f"Weakest: {', '.join(f'{c.name} {c.score}' for c in worst)}."
        )

    return HealthScore(total=total, grade=grade, breakdown=breakdown, summary=summary)


def passes_ci(issues: list[Issue], health: HealthScore, ruleset: EffectiveRuleset) -> bool:
    """False when any issue reaches fail_on, or the total is below min_score."""
    if any(i.severity.at_least(ruleset.fail_on) for i in issues):
        return False
    if ruleset.min_score is not None and health.total < ruleset.min_score:
        return False
    return True
