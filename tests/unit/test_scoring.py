"""Unit tests for document scoring."""

import pytest

from loan_compliance.models.enums import IssueSeverity
from loan_compliance.models.issue import ComplianceIssue
from loan_compliance.scoring import ScoringPolicy, calculate_score


def issues_of(*severities):
    return [
        ComplianceIssue(id=str(i), severity=severity, category="Test", message="m")
        for i, severity in enumerate(severities)
    ]


class TestCalculateScore:
    """Tests for calculate_score."""

    def test_no_issues_scores_full(self):
        assert calculate_score([]) == 100

    def test_default_penalties(self):
        issues = issues_of(IssueSeverity.ERROR, IssueSeverity.WARNING, IssueSeverity.INFO)
        assert calculate_score(issues) == 100 - 15 - 8 - 3

    def test_clamped_at_zero(self):
        assert calculate_score(issues_of(*[IssueSeverity.ERROR] * 7)) == 0

    def test_order_independent(self):
        issues = issues_of(IssueSeverity.INFO, IssueSeverity.ERROR, IssueSeverity.INFO)
        assert calculate_score(issues) == calculate_score(list(reversed(issues)))

    def test_custom_policy(self):
        policy = ScoringPolicy(error_penalty=50, warning_penalty=0, info_penalty=1)
        issues = issues_of(IssueSeverity.ERROR, IssueSeverity.WARNING, IssueSeverity.INFO)
        assert calculate_score(issues, policy) == 49

    def test_zero_penalties_keep_full_score(self):
        policy = ScoringPolicy(error_penalty=0, warning_penalty=0, info_penalty=0)
        assert calculate_score(issues_of(IssueSeverity.ERROR), policy) == 100

    def test_policy_to_dict(self):
        assert ScoringPolicy().to_dict() == {
            "error_penalty": 15,
            "warning_penalty": 8,
            "info_penalty": 3,
        }

    @pytest.mark.parametrize("added", list(IssueSeverity))
    @pytest.mark.parametrize(
        "policy",
        [ScoringPolicy(), ScoringPolicy(error_penalty=40, warning_penalty=0, info_penalty=1)],
        ids=["default", "custom"],
    )
    def test_adding_an_issue_never_raises_score(self, added, policy):
        issues = []
        for existing in [IssueSeverity.INFO, IssueSeverity.ERROR, IssueSeverity.WARNING] * 4:
            before = calculate_score(issues, policy)
            assert calculate_score(issues + issues_of(added), policy) <= before
            issues = issues + issues_of(existing)
            assert calculate_score(issues, policy) <= before
