"""Unit tests for the advisory merger."""

import threading

import pytest

from loan_compliance.advisory import fetch_advisory, merge_advisory_issues, merge_with_advisory
from loan_compliance.interfaces.advisory import IAdvisoryService
from loan_compliance.models.enums import IssueSeverity, IssueType
from loan_compliance.models.issue import AdvisoryResult, ComplianceIssue


def make_issue(issue_id, text_match=None, issue_type=None, severity=IssueSeverity.WARNING):
    return ComplianceIssue(
        id=issue_id,
        severity=severity,
        category="Test",
        message=f"Issue {issue_id}",
        text_match=text_match,
        issue_type=issue_type,
    )


class FakeAdvisoryService(IAdvisoryService):
    """In-memory advisory service."""

    def __init__(self, issues=None, available=True, error=None, release=None):
        self.issues = issues or []
        self.available = available
        self.error = error
        self.release = release
        self.calls = []

    def is_available(self):
        return self.available

    def analyze(self, document_text, timeout=None):
        self.calls.append((document_text, timeout))
        if self.release is not None:
            self.release.wait(5)
        if self.error is not None:
            raise self.error
        return AdvisoryResult(
            issues=list(self.issues),
            suggestions=["Add an SPO"],
            overall_assessment="Needs work",
        )

    def advise_on_clause(self, clause, concern):
        return "advice"


class FailingAvailabilityService(FakeAdvisoryService):
    """Advisory service whose availability check raises."""

    def __init__(self, error):
        super().__init__()
        self.availability_error = error

    def is_available(self):
        raise self.availability_error


class EmptyResultService(FakeAdvisoryService):
    """Advisory service that answers without a result."""

    def analyze(self, document_text, timeout=None):
        self.calls.append((document_text, timeout))
        return None


@pytest.fixture
def local_issues():
    return [
        make_issue("local-1", "natural gas", IssueType.REGULATORY, IssueSeverity.ERROR),
        make_issue("local-2", None, IssueType.REGULATORY),
    ]


class TestMergeAdvisoryIssues:
    """Tests for the text-match dedup merge."""

    def test_drops_repeated_text_match(self, local_issues):
        merged = merge_advisory_issues(local_issues, [make_issue("a-1", "natural gas")])
        assert [issue.id for issue in merged] == ["local-1", "local-2"]

    def test_match_is_case_sensitive(self, local_issues):
        merged = merge_advisory_issues(local_issues, [make_issue("a-1", "Natural Gas")])
        assert [issue.id for issue in merged] == ["local-1", "local-2", "a-1"]

    def test_duplicates_within_advisory_kept_once(self, local_issues):
        advisory = [make_issue("a-1", "working capital"), make_issue("a-2", "working capital")]
        merged = merge_advisory_issues(local_issues, advisory)
        assert [issue.id for issue in merged][2:] == ["a-1"]

    def test_issues_without_text_match_are_kept(self, local_issues):
        advisory = [make_issue("a-1"), make_issue("a-2")]
        merged = merge_advisory_issues(local_issues, advisory)
        assert [issue.id for issue in merged][2:] == ["a-1", "a-2"]

    def test_accepted_issues_are_tagged_regulatory(self):
        merged = merge_advisory_issues([], [make_issue("a-1", "coal", IssueType.FAIRNESS)])
        assert merged[0].issue_type == IssueType.REGULATORY

    def test_local_issues_unchanged(self, local_issues):
        merged = merge_advisory_issues(local_issues, [make_issue("a-1", "LNG")])
        assert merged[:2] == local_issues


class TestFetchAdvisory:
    """Tests for the bounded advisory call."""

    def test_no_service(self):
        outcome = fetch_advisory(None, "text")
        assert not outcome.used
        assert outcome.error == "unavailable"
        assert outcome.issues == []

    def test_unavailable_service_is_not_called(self):
        service = FakeAdvisoryService(available=False)
        outcome = fetch_advisory(service, "text")

        assert not outcome.used
        assert service.calls == []

    def test_service_error_degrades(self):
        service = FakeAdvisoryService(error=RuntimeError("quota exceeded"))
        outcome = fetch_advisory(service, "text")

        assert not outcome.used
        assert outcome.error == "quota exceeded"

    def test_timeout_degrades(self):
        release = threading.Event()
        service = FakeAdvisoryService(issues=[make_issue("a-1", "gas")], release=release)
        try:
            outcome = fetch_advisory(service, "text", timeout=0.05)
        finally:
            release.set()

        assert not outcome.used
        assert outcome.error == "timeout"
        assert outcome.issues == []

    def test_availability_check_error_degrades(self):
        service = FailingAvailabilityService(ConnectionError("dns failure"))

        outcome = fetch_advisory(service, "text")

        assert not outcome.used
        assert outcome.error == "dns failure"
        assert service.calls == []

    def test_availability_check_timeout_degrades(self):
        service = FailingAvailabilityService(TimeoutError())

        outcome = fetch_advisory(service, "text")

        assert not outcome.used
        assert outcome.issues == []

    def test_missing_result_degrades(self):
        outcome = fetch_advisory(EmptyResultService(), "text")

        assert not outcome.used
        assert outcome.error == "advisory service returned no result"
        assert outcome.issues == []

    def test_success_passes_text_and_timeout(self):
        service = FakeAdvisoryService(issues=[make_issue("a-1", "gas")])
        outcome = fetch_advisory(service, "document text", timeout=2.0)

        assert outcome.used
        assert outcome.error is None
        assert outcome.result.overall_assessment == "Needs work"
        assert [issue.id for issue in outcome.issues] == ["a-1"]
        assert service.calls == [("document text", 2.0)]


class TestMergeWithAdvisory:
    """Tests for fetch-and-merge."""

    def test_identity_merge_when_unavailable(self, local_issues):
        merged, outcome = merge_with_advisory(local_issues, None, "text")

        assert merged == local_issues
        assert merged is not local_issues
        assert outcome.accepted == 0

    def test_counts_accepted_issues(self, local_issues):
        service = FakeAdvisoryService(issues=[
            make_issue("a-1", "natural gas"),
            make_issue("a-2", "LNG terminal"),
            make_issue("a-3"),
        ])
        merged, outcome = merge_with_advisory(local_issues, service, "text")

        assert outcome.used
        assert outcome.accepted == 2
        assert [issue.id for issue in merged] == ["local-1", "local-2", "a-2", "a-3"]
