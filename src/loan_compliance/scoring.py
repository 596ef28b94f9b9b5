"""Document scoring from an issue set."""

from dataclasses import dataclass
from typing import Dict, Iterable

from .models.enums import IssueSeverity
from .models.issue import ComplianceIssue

MAX_SCORE = 100
MIN_SCORE = 0


@dataclass
class ScoringPolicy:
    """Penalty subtracted from the maximum score per issue, by severity."""
    error_penalty: int = 15
    warning_penalty: int = 8
    info_penalty: int = 3

    def penalties(self) -> Dict[IssueSeverity, int]:
        return {
            IssueSeverity.ERROR: self.error_penalty,
            IssueSeverity.WARNING: self.warning_penalty,
            IssueSeverity.INFO: self.info_penalty,
        }

    def to_dict(self) -> Dict[str, int]:
        return {
            "error_penalty": self.error_penalty,
            "warning_penalty": self.warning_penalty,
            "info_penalty": self.info_penalty,
        }


def calculate_score(issues: Iterable[ComplianceIssue], policy: ScoringPolicy = None) -> int:
    """
    Score a document from its issues.

    Starts at 100, subtracts the policy's penalty for each issue, and
    clamps the result to [0, 100]. Order-independent.

    Args:
        issues: Merged issue list of one analysis.
        policy: Penalties to apply; defaults to error 15, warning 8, info 3.

    Returns:
        Integer score in [0, 100].
    """
    penalties = (policy or ScoringPolicy()).penalties()
    deductions = sum(penalties.get(issue.severity, 0) for issue in issues)
    return max(MIN_SCORE, min(MAX_SCORE, MAX_SCORE - deductions))
