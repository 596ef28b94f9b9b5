"""Unit tests for the HTML view renderer."""

import pytest

from loan_compliance.highlighting import ViewRenderer, highlight_css_class
from loan_compliance.highlighting.segments import split_text
from loan_compliance.models.document import DocumentNode, HighlightMark, StructuredDocument
from loan_compliance.models.enums import IssueSeverity
from loan_compliance.models.issue import ComplianceIssue, ComplianceReport


@pytest.fixture
def document():
    heading = DocumentNode(type="heading", attrs={"level": 2}, content=[DocumentNode(type="text", text="Terms")])
    paragraph = DocumentNode(type="paragraph", content=[
        DocumentNode(type="text", text="Fees <apply> ", marks=[{"type": "bold"}]),
        DocumentNode(type="hardBreak"),
        DocumentNode(type="text", text="at the Lender's discretion"),
    ])
    # heading spans 0..6, paragraph content starts at 8
    document = StructuredDocument(id="loan-001", root=DocumentNode(type="doc", content=[heading, paragraph]))
    document.replace_annotations([
        HighlightMark(from_pos=22, to_pos=48, severity="warning", issue_id="i-1",
                      message="Unilateral discretion", issue_type="Fairness", favored_party="lender"),
        HighlightMark(from_pos=1, to_pos=4, mark_type="comment", message="not rendered"),
    ])
    return document


class TestViewRenderer:
    """Tests for ViewRenderer."""

    def test_renders_structure(self, document):
        html = ViewRenderer().render_document(document)

        assert "<h2>Terms</h2>" in html
        assert "<strong>Fees &lt;apply&gt; </strong>" in html
        assert "<br>" in html
        assert 'data-document-id="loan-001"' in html
        assert 'data-highlight-count="1"' in html

    def test_renders_compliance_marks_only(self, document):
        html = ViewRenderer().render_document(document)

        assert html.count("data-compliance-highlight") == 1
        assert 'data-issue-id="i-1"' in html
        assert 'class="compliance-highlight fairness-warning"' in html
        assert 'data-favored-party="lender"' in html
        assert "not rendered" not in html
        assert "at the Lender&#39;s discretion</span>" in html

    def test_renders_report_summary(self, document):
        report = ComplianceReport(
            id="r-1",
            document_id="loan-001",
            score=62,
            issues=(
                ComplianceIssue(id="i-1", severity=IssueSeverity.WARNING, category="Unilateral Discretion",
                                message="Unilateral discretion", suggestion="Use objective criteria"),
                ComplianceIssue(id="i-2", severity=IssueSeverity.ERROR, category="CCD",
                                message="Missing APRC", jurisdiction="EU-wide"),
            ),
        )

        html = ViewRenderer().render_document(document, report, title="Loan review")

        assert "<title>Loan review</title>" in html
        assert "62/100" in html
        assert "1 errors, 1 warnings, 0 info" in html
        assert html.index("Missing APRC") < html.index("Use objective criteria")

    def test_empty_document(self):
        html = ViewRenderer().render_document(StructuredDocument(id="empty"))
        assert 'data-highlight-count="0"' in html


class TestHighlightHelpers:
    """Tests for CSS classes and text segmentation."""

    @pytest.mark.parametrize("severity, issue_type, expected", [
        ("error", "LMA Compliance", "compliance-highlight compliance-error"),
        ("info", "Fairness", "compliance-highlight fairness-info"),
        ("bogus", "", "compliance-highlight compliance-info"),
    ])
    def test_css_class(self, severity, issue_type, expected):
        assert highlight_css_class(severity, issue_type) == expected

    def test_split_text_at_mark_boundaries(self):
        marks = [
            HighlightMark(from_pos=12, to_pos=17, issue_id="a"),
            HighlightMark(from_pos=14, to_pos=30, issue_id="b"),
        ]
        segments = split_text("natural gas plant", 10, marks)

        assert [s.text for s in segments] == ["na", "tu", "ral", " gas plant"]
        assert [[m.issue_id for m in s.marks] for s in segments] == [[], ["a"], ["a", "b"], ["b"]]

    def test_split_text_without_marks(self):
        segments = split_text("plain", 1, [])
        assert [(s.text, s.start, s.end) for s in segments] == [("plain", 1, 6)]
