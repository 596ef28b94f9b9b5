"""Integration tests for the end-to-end compliance pipeline."""

import json
import threading

import pytest

from loan_compliance.audit import AuditLogger, DatabaseManager
from loan_compliance.flattening import flatten
from loan_compliance.interfaces.advisory import IAdvisoryService
from loan_compliance.interfaces.audit import AuditEventType
from loan_compliance.models.enums import IssueSeverity, IssueType
from loan_compliance.models.issue import AdvisoryResult, ComplianceIssue
from loan_compliance.pipeline import CompliancePipeline, PipelineConfig


GREEN_LOAN = {
    "type": "doc",
    "content": [
        {"type": "heading", "attrs": {"level": 1}, "content": [{"type": "text", "text": "Green Loan Agreement"}]},
        {"type": "paragraph", "content": [
            {"type": "text", "text": "The proceeds fund a natural gas plant and general corporate purposes."},
        ]},
        {"type": "paragraph", "content": [
            {"type": "text", "text": "Margin adjustments apply at the Lender's discretion."},
        ]},
    ],
}


class StaticAdvisoryService(IAdvisoryService):
    """Advisory service returning a fixed list of issues."""

    def __init__(self, issues):
        self.issues = issues
        self.texts = []
        self.timeouts = []

    def is_available(self):
        return True

    def analyze(self, document_text, timeout=None):
        self.texts.append(document_text)
        self.timeouts.append(timeout)
        return AdvisoryResult(issues=list(self.issues), suggestions=["Obtain an SPO"], overall_assessment="Weak")

    def advise_on_clause(self, clause, concern):
        return f"Negotiate: {concern}"


class SlowAdvisoryService(StaticAdvisoryService):
    """Advisory service that answers only once released."""

    def __init__(self, issues, release):
        super().__init__(issues)
        self.release = release

    def analyze(self, document_text, timeout=None):
        self.release.wait(5)
        return super().analyze(document_text, timeout)


@pytest.fixture
def pipeline():
    pipeline = CompliancePipeline(PipelineConfig(enable_advisory=False))
    yield pipeline
    pipeline.close()


class TestAnalysis:
    """Tests for CompliancePipeline.analyze."""

    def test_green_loan_with_fossil_fuel(self, pipeline):
        report = pipeline.analyze(GREEN_LOAN, document_id="loan-001")

        errors = [issue for issue in report.issues if issue.severity == IssueSeverity.ERROR]
        assert len(errors) >= 2
        assert report.score <= 70
        assert report.document_id == "loan-001"
        assert any(issue.text_match == "natural gas" for issue in errors)
        assert any(issue.favored_party is not None for issue in report.issues)
        assert report.metadata["advisory_used"] is False
        assert "gl-fossil-natural-gas" in report.metadata["applicable_rules"]

    def test_issue_offsets_point_at_their_text(self, pipeline):
        report, _, document = pipeline.analyze_and_highlight(GREEN_LOAN, document_id="loan-001")
        flattened = flatten(document)

        located = [issue for issue in report.issues if issue.start_offset is not None]
        assert located
        for issue in located:
            quoted = flattened.text[issue.start_offset:issue.end_offset]
            # Absence rules without an anchor hit point at a labelled prefix.
            assert quoted == issue.text_match or issue.start_offset == 0

    def test_rules_only_is_deterministic(self, pipeline):
        first = pipeline.analyze_rules_only(GREEN_LOAN, document_id="loan-001")
        second = pipeline.analyze_rules_only(GREEN_LOAN, document_id="loan-001")

        assert first.score == second.score
        assert [i.category for i in first.issues] == [i.category for i in second.issues]
        assert [i.text_match for i in first.issues] == [i.text_match for i in second.issues]

    def test_scans_can_be_disabled(self, pipeline):
        with_scans = pipeline.analyze(GREEN_LOAN)
        without_scans = pipeline.analyze(GREEN_LOAN, include_scans=False)

        assert len(without_scans.issues) < len(with_scans.issues)
        assert all(issue.favored_party is None for issue in without_scans.issues)

    def test_plain_text_input(self, pipeline):
        report = pipeline.analyze("Green loan for a gas turbine.\nSigned by the Borrower.")
        assert any(issue.text_match == "gas turbine" for issue in report.issues)

    def test_country_scoped_rules(self, pipeline):
        report = pipeline.analyze(GREEN_LOAN, provider_country="DE")
        assert "de-bgb-form" in report.metadata["applicable_rules"]
        assert "fr-code-consommation" not in report.metadata["applicable_rules"]
        assert "de-bgb-form" not in pipeline.analyze(GREEN_LOAN).metadata["applicable_rules"]


class TestHighlighting:
    """Tests for painting findings onto the document."""

    def test_marks_cover_issue_text(self, pipeline):
        report, result, document = pipeline.analyze_and_highlight(GREEN_LOAN, document_id="loan-001")
        flattened = flatten(document)

        assert result.applied_count > 0
        assert result.skipped_issue_ids == []
        assert len(document.compliance_marks) == result.applied_count

        gas = next(issue for issue in report.issues if issue.text_match == "natural gas")
        mark = next(mark for mark in document.compliance_marks if mark.issue_id == gas.id)
        assert mark.from_pos == flattened.position_map[gas.start_offset]
        assert mark.to_pos == flattened.position_map[gas.end_offset - 1] + 1

        found = pipeline.get_issue_at_position(document, mark.from_pos)
        assert found is not None
        assert found.text_match is not None

    def test_empty_document_has_no_marks(self, pipeline):
        report, result, document = pipeline.analyze_and_highlight({"type": "doc", "content": []})

        assert result.applied_count == 0
        assert document.compliance_marks == []
        assert all(issue.text_match is None for issue in report.issues)

    def test_reapplying_replaces_marks(self, pipeline):
        report, result, document = pipeline.analyze_and_highlight(GREEN_LOAN)

        again = pipeline.apply_highlights(document, list(report.issues))

        assert again.applied_count == result.applied_count
        assert len(document.compliance_marks) == result.applied_count

    def test_render_and_export(self, pipeline, tmp_path):
        report, _, document = pipeline.analyze_and_highlight(GREEN_LOAN, document_id="loan-001")

        html = pipeline.render_html(document, report)
        output = pipeline.export_docx(document, str(tmp_path / "loan.docx"))

        assert "data-compliance-highlight" in html
        assert f"{report.score}/100" in html
        assert (tmp_path / "loan.docx").exists()
        assert output.endswith("loan.docx")


class TestAdvisory:
    """Tests for the advisory merge inside the pipeline."""

    def test_advisory_issues_are_merged_and_deduplicated(self):
        advisory = StaticAdvisoryService([
            ComplianceIssue(id="a-1", severity=IssueSeverity.ERROR, category="Fossil Fuel",
                            message="Gas", text_match="natural gas"),
            ComplianceIssue(id="a-2", severity=IssueSeverity.WARNING, category="Reporting",
                            message="No annual report", text_match="Margin adjustments"),
            ComplianceIssue(id="a-3", severity=IssueSeverity.INFO, category="General",
                            message="Consider an SPO"),
        ])
        pipeline = CompliancePipeline(PipelineConfig(), advisory_service=advisory)

        report = pipeline.analyze(GREEN_LOAN, document_id="loan-001")

        ids = [issue.id for issue in report.issues]
        assert "a-1" not in ids
        assert ids[-2:] == ["a-2", "a-3"]
        assert report.issues[-1].issue_type == IssueType.REGULATORY
        assert report.metadata["advisory_used"] is True
        assert report.metadata["advisory_accepted"] == 2
        assert report.metadata["overall_assessment"] == "Weak"
        assert advisory.texts == [flatten(pipeline._as_document(GREEN_LOAN, None)).text]

    def test_advisory_skipped_for_rules_only(self):
        advisory = StaticAdvisoryService([])
        pipeline = CompliancePipeline(PipelineConfig(), advisory_service=advisory)

        pipeline.analyze_rules_only(GREEN_LOAN)

        assert advisory.texts == []

    def test_per_call_timeout_overrides_config(self):
        release = threading.Event()
        advisory = SlowAdvisoryService([], release)
        pipeline = CompliancePipeline(PipelineConfig(advisory_timeout=30.0), advisory_service=advisory)
        try:
            report = pipeline.analyze(GREEN_LOAN, advisory_timeout=0.05)
        finally:
            release.set()

        assert report.metadata["advisory_used"] is False
        assert report.metadata["advisory_error"] == "timeout"

    def test_configured_timeout_applies_by_default(self):
        advisory = StaticAdvisoryService([])
        pipeline = CompliancePipeline(PipelineConfig(advisory_timeout=12.5), advisory_service=advisory)

        report, _, _ = pipeline.analyze_and_highlight(GREEN_LOAN)
        pipeline.analyze_and_highlight(GREEN_LOAN, advisory_timeout=3.0)

        assert report.metadata["advisory_used"] is True
        assert advisory.timeouts == [12.5, 3.0]

    def test_negotiation_advice(self, pipeline):
        assert "unavailable" in pipeline.negotiation_advice("clause", "concern")
        assert not pipeline.is_advisory_available()

        advised = CompliancePipeline(PipelineConfig(), advisory_service=StaticAdvisoryService([]))
        assert advised.negotiation_advice("clause", "fees") == "Negotiate: fees"
        assert advised.is_advisory_available()


class TestConfiguration:
    """Tests for configuration-driven behaviour."""

    def test_config_directory_is_applied(self, tmp_path):
        (tmp_path / "rules.json").write_text(json.dumps({"rules": [{
            "id": "custom_sanctions",
            "name": "Sanctions Clause",
            "kind": "absence",
            "pattern": "sanctions",
            "severity": "warning",
            "message": "Missing sanctions clause",
        }]}), encoding="utf-8")
        (tmp_path / "scoring.json").write_text(json.dumps({
            "error_penalty": 0, "warning_penalty": 0, "info_penalty": 0,
        }), encoding="utf-8")

        pipeline = CompliancePipeline(PipelineConfig(enable_advisory=False, config_dir=str(tmp_path)))
        report = pipeline.analyze(GREEN_LOAN)

        assert report.score == 100
        assert any(issue.message == "Missing sanctions clause" for issue in report.issues)
        assert "custom_sanctions" in [rule["id"] for rule in pipeline.get_rules()]
        assert report.metadata["scoring_policy"]["error_penalty"] == 0


class TestPersistence:
    """Tests for report storage and audit logging."""

    def test_reports_and_audit_events(self, tmp_path):
        database_url = f"sqlite:///{tmp_path / 'compliance.db'}"
        pipeline = CompliancePipeline(PipelineConfig(
            database_url=database_url,
            enable_report_store=True,
            enable_audit_logging=True,
            enable_advisory=False,
        ))

        first = pipeline.analyze(GREEN_LOAN, document_id="loan-001")
        second = pipeline.analyze(GREEN_LOAN, document_id="loan-001")

        reports = pipeline.get_reports("loan-001")
        assert [r.id for r in reports] == [second.id, first.id]
        assert pipeline.get_latest_report("loan-001").id == second.id
        assert pipeline.get_reports("other") == []
        pipeline.close()

        manager = DatabaseManager(database_url=database_url)
        logger = AuditLogger(db_manager=manager)
        events = logger.get_events(document_id="loan-001", event_type=AuditEventType.ANALYSIS_COMPLETED)
        assert len(events) == 2
        assert {event.report_id for event in events} == {first.id, second.id}
        manager.close()

    def test_history_without_store(self, pipeline):
        pipeline.analyze(GREEN_LOAN, document_id="loan-001")
        assert pipeline.get_reports("loan-001") == []
        assert pipeline.get_latest_report("loan-001") is None
