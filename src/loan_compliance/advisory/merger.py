"""
Advisory merger.

Folds advisory issues into the locally detected ones, skipping any whose
quoted text has already been reported. The advisory call is the only
slow step of an analysis, so it runs on a worker thread bounded by the
caller's timeout and every failure degrades to "no advisory signal".
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..interfaces.advisory import IAdvisoryService
from ..models.enums import IssueType
from ..models.issue import AdvisoryResult, ComplianceIssue

logger = logging.getLogger(__name__)

DEFAULT_ADVISORY_TIMEOUT = 30.0


def merge_advisory_issues(
    local_issues: Sequence[ComplianceIssue],
    advisory_issues: Sequence[ComplianceIssue],
) -> List[ComplianceIssue]:
    """
    Append advisory issues that do not repeat an already-seen text match.

    The seen set starts with the local text matches and grows as advisory
    issues are accepted, so a quote repeated within the advisory list is
    kept only once. Matching is exact and case-sensitive. Advisory issues
    without a text match are always kept. Accepted advisory issues are
    tagged as regulatory findings.

    Args:
        local_issues: Rule and scanner issues.
        advisory_issues: Issues from the advisory service, in its order.

    Returns:
        Local issues followed by the accepted advisory issues.
    """
    merged = list(local_issues)
    seen = {issue.text_match for issue in local_issues if issue.text_match}

    for issue in advisory_issues:
        if issue.text_match and issue.text_match in seen:
            continue
        merged.append(issue.with_updates(issue_type=IssueType.REGULATORY))
        if issue.text_match:
            seen.add(issue.text_match)
    return merged


@dataclass
class AdvisoryOutcome:
    """What the advisory step contributed to one analysis."""
    used: bool = False
    result: Optional[AdvisoryResult] = None
    error: Optional[str] = None
    accepted: int = 0
    issues: List[ComplianceIssue] = field(default_factory=list)


def fetch_advisory(
    service: Optional[IAdvisoryService],
    document_text: str,
    timeout: float = DEFAULT_ADVISORY_TIMEOUT,
) -> AdvisoryOutcome:
    """
    Call the advisory service within ``timeout`` seconds.

    Never raises: an unconfigured service, an exception or a timeout all
    produce an outcome with ``used`` False and no issues.
    """
    if service is None:
        logger.info("Advisory service not configured; using rule-based results only")
        return AdvisoryOutcome(error="unavailable")

    future = None
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="advisory")
    try:
        if not service.is_available():
            logger.info("Advisory service not configured; using rule-based results only")
            return AdvisoryOutcome(error="unavailable")
        future = executor.submit(service.analyze, document_text, timeout)
        result = future.result(timeout=timeout)
        if result is None:
            raise ValueError("advisory service returned no result")
        issues = list(result.issues)
    except FutureTimeoutError:
        if future is not None:
            future.cancel()
        logger.warning(f"Advisory analysis timed out after {timeout}s; using rule-based results only")
        return AdvisoryOutcome(error="timeout")
    except Exception as exc:  # noqa: BLE001
        logger.warning(f"Advisory analysis failed, using rule-based results only: {exc}")
        return AdvisoryOutcome(error=str(exc) or type(exc).__name__)
    finally:
        executor.shutdown(wait=False)

    return AdvisoryOutcome(used=True, result=result, issues=issues)


def merge_with_advisory(
    local_issues: Sequence[ComplianceIssue],
    service: Optional[IAdvisoryService],
    document_text: str,
    timeout: float = DEFAULT_ADVISORY_TIMEOUT,
) -> Tuple[List[ComplianceIssue], AdvisoryOutcome]:
    """Fetch advisory issues and merge them; identity merge when unavailable."""
    outcome = fetch_advisory(service, document_text, timeout)
    if not outcome.used:
        return list(local_issues), outcome
    merged = merge_advisory_issues(local_issues, outcome.issues)
    outcome.accepted = len(merged) - len(local_issues)
    return merged, outcome
