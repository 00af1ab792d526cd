"""
Tests for Health Scoring Engine — verify formula, clamping, grades and CI gating.
"""

from repodoctor.core.ruleset import resolve_ruleset
from repodoctor.core.scorer import calculate, grade_for, passes_ci
from repodoctor.models.issue_models import CATEGORY_WEIGHTS, Category, Issue, Severity
from repodoctor.models.score_models import Grade


def _issue(category, severity, rule_id="X-001"):
    return Issue(id=rule_id, analyzer="test", category=category, severity=severity, title=rule_id)


def test_no_issues_scores_100():
    health = calculate([])
    assert health.total == 100
    assert health.grade is Grade.A
    assert health.summary.startswith("No issues found")
    assert [c.name for c in health.breakdown] == [c.value for c in CATEGORY_WEIGHTS]
    assert all(c.score == 100 for c in health.breakdown)


def test_weights_sum_to_100():
    assert sum(CATEGORY_WEIGHTS.values()) == 100


def test_penalties_per_severity():
    health = calculate([
        _issue(Category.SECURITY, Severity.CRITICAL),
        _issue(Category.SECURITY, Severity.HIGH),
        _issue(Category.SECURITY, Severity.MEDIUM),
        _issue(Category.SECURITY, Severity.LOW),
        _issue(Category.SECURITY, Severity.INFO),
    ])
    security = next(c for c in health.breakdown if c.name == "Security")
    assert security.score == 100 - 25 - 15 - 8 - 3
    assert security.issues_count == 5
    assert security.critical_count == 1


def test_category_score_clamped_at_zero():
    issues = [_issue(Category.TESTING, Severity.CRITICAL) for _ in range(6)]
    health = calculate(issues)
    testing = next(c for c in health.breakdown if c.name == "Testing")
    assert testing.score == 0
    # Only Testing is affected: 100 - 25 weight points
    assert health.total == 75
    assert health.grade is Grade.C


def test_total_bounded_under_extreme_input():
    issues = [_issue(category, Severity.CRITICAL) for category in Category for _ in range(10)]
    health = calculate(issues)
    assert health.total == 0
    assert health.grade is Grade.F


def test_rounding_half_up():
    # Documentation at 97 with weight 5: 99.85 rounds to 100
    health = calculate([_issue(Category.DOCUMENTATION, Severity.LOW)])
    assert health.total == 100
    # Structure at 92 with weight 20: 98.4 rounds to 98
    health = calculate([_issue(Category.STRUCTURE, Severity.MEDIUM)])
    assert health.total == 98


def test_info_issues_do_not_change_score():
    health = calculate([_issue(Category.STRUCTURE, Severity.INFO)])
    assert health.total == 100
    assert health.summary.startswith("1 issue(s)")


def test_summary_names_weakest_categories():
    health = calculate([
        _issue(Category.SECURITY, Severity.CRITICAL),
        _issue(Category.TESTING, Severity.HIGH),
    ])
    assert "Weakest: Security 75, Testing 85." in health.summary


def test_custom_category_weights():
    health = calculate(
        [_issue(Category.SECURITY, Severity.CRITICAL)],
        category_weights={Category.SECURITY: 1},
    )
    assert health.total == 75
    assert len(health.breakdown) == 1


def test_same_issues_same_score():
    issues = [_issue(Category.STRUCTURE, Severity.HIGH), _issue(Category.SECURITY, Severity.LOW)]
    assert calculate(issues) == calculate(list(reversed(issues)))


def test_grade_boundaries():
    assert grade_for(100) is Grade.A
    assert grade_for(90) is Grade.A
    assert grade_for(89) is Grade.B
    assert grade_for(80) is Grade.B
    assert grade_for(70) is Grade.C
    assert grade_for(60) is Grade.D
    assert grade_for(59) is Grade.F
    assert grade_for(0) is Grade.F


# --- CI gating ---


def test_ci_fails_on_threshold_severity():
    ruleset = resolve_ruleset("balanced")
    issues = [_issue(Category.TESTING, Severity.HIGH)]
    assert not passes_ci(issues, calculate(issues), ruleset)


def test_ci_passes_below_threshold():
    ruleset = resolve_ruleset("balanced")
    issues = [_issue(Category.TESTING, Severity.MEDIUM)]
    assert passes_ci(issues, calculate(issues), ruleset)


def test_ci_min_score():
    ruleset = resolve_ruleset("balanced", cli_overrides={"ci": {"fail_on": "critical", "min_score": 99}})
    issues = [_issue(Category.STRUCTURE, Severity.MEDIUM)]
    assert not passes_ci(issues, calculate(issues), ruleset)
    assert passes_ci([], calculate([]), ruleset)
