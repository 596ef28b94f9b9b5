"""
Multi-match scanners.

Where a rule reports only the first hit, these scanners report every hit
of a pattern (up to a per-pattern cap) so that each occurrence gets its
own highlight: fossil-fuel and weak-language terms in green-loan
documents, and clauses that tilt the agreement towards one party.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence, Set, Tuple

from ..flattening.text_flattener import FlattenedText
from ..models.enums import FavoredParty, IssueSeverity, IssueType
from ..models.issue import ComplianceIssue, new_issue_id
from ..rules.patterns import PatternLike, compile_pattern, contains, find_all_matches
from ..rules.rule_registry import GREEN_LOAN_CONTEXT

logger = logging.getLogger(__name__)

DEFAULT_CRITICAL_CAP = 5
DEFAULT_WARNING_CAP = 5
DEFAULT_INFO_CAP = 3
DEFAULT_DISPARITY_CAP = 3


@dataclass(frozen=True)
class ScanPattern:
    """A named pattern whose every hit becomes an issue."""
    pattern: Pattern
    category: str
    severity: IssueSeverity
    message: str
    suggestion: Optional[str] = None
    issue_type: IssueType = IssueType.REGULATORY
    favored_party: Optional[FavoredParty] = None

    def build_issue(self, text: str, start: int, end: int) -> ComplianceIssue:
        return ComplianceIssue(
            id=new_issue_id(),
            severity=self.severity,
            category=self.category,
            message=f'{self.message}: "{text}"',
            suggestion=self.suggestion,
            text_match=text,
            start_offset=start,
            end_offset=end,
            issue_type=self.issue_type,
            favored_party=self.favored_party,
        )


def scan_pattern(
    pattern: PatternLike,
    category: str,
    severity: IssueSeverity,
    message: str,
    suggestion: Optional[str] = None,
    favored_party: Optional[FavoredParty] = None,
) -> ScanPattern:
    """Build a scan pattern; a favored party marks it as a fairness pattern."""
    return ScanPattern(
        pattern=compile_pattern(pattern),
        category=category,
        severity=severity,
        message=message,
        suggestion=suggestion,
        issue_type=IssueType.FAIRNESS if favored_party else IssueType.REGULATORY,
        favored_party=favored_party,
    )


def scan_patterns(
    patterns: Sequence[ScanPattern],
    text: str,
    cap_per_pattern: int,
    seen: Optional[Set[Tuple[str, int]]] = None,
) -> List[ComplianceIssue]:
    """
    Report every hit of every pattern, up to ``cap_per_pattern`` each.

    The first ``cap_per_pattern`` hits of each pattern are considered; a
    hit whose (lowercased text, start) pair was already reported, by this
    or an earlier pattern sharing ``seen``, is dropped.

    Args:
        patterns: Patterns in reporting order.
        text: Position-mapped flattened text.
        cap_per_pattern: Maximum issues per pattern.
        seen: Dedup keys shared across calls belonging to one scan.

    Returns:
        One issue per retained hit.
    """
    if seen is None:
        seen = set()
    issues: List[ComplianceIssue] = []
    if not text or cap_per_pattern <= 0:
        return issues

    for scan in patterns:
        for match in find_all_matches(text, scan.pattern, limit=cap_per_pattern):
            key = (match.text.lower(), match.start)
            if key in seen:
                continue
            seen.add(key)
            issues.append(scan.build_issue(match.text, match.start, match.end))
    return issues


CRITICAL_PATTERNS: Tuple[ScanPattern, ...] = (
    scan_pattern(r"natural gas|NGCC|combined cycle|gas-fired|gas turbine",
                 "Fossil Fuel", IssueSeverity.ERROR,
                 "Fossil fuel reference incompatible with Green Loan"),
    scan_pattern(r"\bLNG\b|liquefied natural gas",
                 "Fossil Fuel", IssueSeverity.ERROR,
                 "LNG infrastructure not eligible for Green Loan"),
    scan_pattern(r"pipeline infrastructure|gas pipeline|compression facilities",
                 "Fossil Fuel", IssueSeverity.ERROR,
                 "Fossil infrastructure violates Green Loan Principles"),
    scan_pattern(r"general corporate purposes|working capital",
                 "Use of Proceeds", IssueSeverity.ERROR,
                 "Not permitted under Green Loan Principles"),
    scan_pattern(r"coal generation|coal-fired|coal facility",
                 "Fossil Fuel", IssueSeverity.ERROR,
                 "Coal absolutely incompatible with Green Loan"),
)

WARNING_PATTERNS: Tuple[ScanPattern, ...] = (
    scan_pattern(r"reasonable efforts|commercially reasonable",
                 "Weak Language", IssueSeverity.WARNING,
                 "Weak binding language reduces enforceability"),
    scan_pattern(r"\bmay obtain\b|\bmay consider\b",
                 "Weak Language", IssueSeverity.WARNING,
                 "Optional language weakens green commitment"),
    scan_pattern(r"within 150 days|within 180 days",
                 "Reporting", IssueSeverity.WARNING,
                 "Extended reporting timeline delays transparency"),
)

INFO_PATTERNS: Tuple[ScanPattern, ...] = (
    scan_pattern(r"believed to be accurate|generally consistent",
                 "Vague Language", IssueSeverity.INFO,
                 "Vague language lacks quantifiable metrics"),
)

HIGHLIGHTABLE_PATTERNS: Tuple[ScanPattern, ...] = CRITICAL_PATTERNS + WARNING_PATTERNS + INFO_PATTERNS


DISPARITY_PATTERNS: Tuple[ScanPattern, ...] = (
    scan_pattern(
        r"as determined by the Lender|at the Lender's discretion|in the Lender's sole discretion",
        "Unilateral Discretion", IssueSeverity.WARNING,
        "Unilateral lender discretion clause",
        "Replace with objective criteria or mutual agreement requirement",
        FavoredParty.LENDER,
    ),
    scan_pattern(
        r"as determined by the Borrower|at the Borrower's discretion|in the Borrower's sole discretion",
        "Unilateral Discretion", IssueSeverity.WARNING,
        "Unilateral borrower discretion clause",
        "Consider whether this discretion is appropriate for green loan obligations",
        FavoredParty.BORROWER,
    ),
    scan_pattern(
        r"subject to review and acceptance by the Lender",
        "Unilateral Discretion", IssueSeverity.WARNING,
        "Margin adjustment subject to lender acceptance",
        "Margin adjustments should be automatic upon meeting objective criteria",
        FavoredParty.LENDER,
    ),
    scan_pattern(
        r"may obtain.*external review|external review.*at its discretion",
        "Optional Obligation", IssueSeverity.WARNING,
        "External review is optional instead of mandatory",
        "Green Loan best practice requires mandatory annual external review",
        FavoredParty.BORROWER,
    ),
    scan_pattern(
        r"consult in good faith regarding remediation",
        "Weak Remedy", IssueSeverity.ERROR,
        "Weak remedy for breach - only requires good faith consultation",
        "Misapplication of proceeds should constitute an Event of Default",
        FavoredParty.BORROWER,
    ),
    scan_pattern(
        r"material changes.*as determined by the Lender",
        "Unilateral Discretion", IssueSeverity.WARNING,
        "Mandatory prepayment triggered at lender's sole discretion",
        "Define objective criteria for what constitutes material changes",
        FavoredParty.LENDER,
    ),
    scan_pattern(
        r"more than 15%.*without.*consent",
        "Threshold Disparity", IssueSeverity.INFO,
        "Asset disposal threshold set at 15% (higher than standard 10%)",
        "Consider reducing threshold to 10% with replacement requirement",
        FavoredParty.BORROWER,
    ),
    scan_pattern(
        r"Lender may assign.*without.*maintaining green",
        "Missing Protection", IssueSeverity.INFO,
        "Lender can assign without committing to maintain green terms",
        "Require assignee to maintain green loan terms and commitments",
        FavoredParty.LENDER,
    ),
    scan_pattern(
        r"up to 10%.*may be used for general corporate",
        "Use of Proceeds", IssueSeverity.ERROR,
        "Allows portion of proceeds for non-green corporate purposes",
        "Green Loan proceeds must be 100% allocated to Eligible Green Projects",
        FavoredParty.BORROWER,
    ),
    scan_pattern(
        r"endeavou?r to ensure|use reasonable efforts to ensure",
        "Weak Obligation", IssueSeverity.WARNING,
        'Weak obligation language - "endeavour" instead of "shall"',
        'Replace with mandatory "shall ensure" for key green obligations',
        FavoredParty.BORROWER,
    ),
    scan_pattern(
        r"to the extent reasonably available|to the extent practicable",
        "Weak Obligation", IssueSeverity.INFO,
        "Conditional reporting weakens transparency requirements",
        "Require specific metrics with defined reporting standards",
        FavoredParty.BORROWER,
    ),
    scan_pattern(
        r"may be increased by up to.*bps.*subject to Lender",
        "Asymmetric Mechanism", IssueSeverity.INFO,
        "Margin increase mechanism favors lender discretion",
        "Ensure symmetric and automatic margin adjustment in both directions",
        FavoredParty.LENDER,
    ),
    scan_pattern(
        r"no specific green obligations as Events of Default",
        "Missing Protection", IssueSeverity.WARNING,
        "Missing specific green breach Events of Default",
        "Add enumerated green obligation breaches as specific Events of Default",
        FavoredParty.BORROWER,
    ),
    scan_pattern(
        r"consider reallocating|may reallocate",
        "Optional Obligation", IssueSeverity.INFO,
        "Reallocation of proceeds is optional instead of mandatory",
        "Require mandatory reallocation if projects become ineligible",
        FavoredParty.BORROWER,
    ),
)


@dataclass
class ScanSettings:
    """Per-pattern caps for the scanners."""
    critical_cap: int = DEFAULT_CRITICAL_CAP
    warning_cap: int = DEFAULT_WARNING_CAP
    info_cap: int = DEFAULT_INFO_CAP
    disparity_cap: int = DEFAULT_DISPARITY_CAP


class DisparityScanner:
    """
    Runs the highlightable regulatory scan and the fairness scan.

    Args:
        settings: Per-pattern caps.
        extra_disparity_patterns: Patterns appended after the built-in
            fairness patterns (e.g. loaded from configuration).
    """

    def __init__(
        self,
        settings: Optional[ScanSettings] = None,
        extra_disparity_patterns: Optional[Sequence[ScanPattern]] = None,
    ):
        self.settings = settings or ScanSettings()
        self.disparity_patterns: Tuple[ScanPattern, ...] = DISPARITY_PATTERNS + tuple(
            extra_disparity_patterns or ()
        )

    def scan_highlightable(self, flattened: FlattenedText) -> List[ComplianceIssue]:
        """Report every fossil-fuel, weak-language and vague-language hit in a green-loan document."""
        if not contains(flattened.search_text, GREEN_LOAN_CONTEXT):
            return []
        seen: Set[Tuple[str, int]] = set()
        issues = scan_patterns(CRITICAL_PATTERNS, flattened.text, self.settings.critical_cap, seen)
        issues += scan_patterns(WARNING_PATTERNS, flattened.text, self.settings.warning_cap, seen)
        issues += scan_patterns(INFO_PATTERNS, flattened.text, self.settings.info_cap, seen)
        return issues

    def scan_disparities(self, flattened: FlattenedText) -> List[ComplianceIssue]:
        """Report clauses favoring one party."""
        return scan_patterns(self.disparity_patterns, flattened.text, self.settings.disparity_cap)

    def scan(self, flattened: FlattenedText) -> List[ComplianceIssue]:
        issues = self.scan_highlightable(flattened)
        issues.extend(self.scan_disparities(flattened))
        logger.debug(f"Scanners reported {len(issues)} issues")
        return issues
