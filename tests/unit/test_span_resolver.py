"""Unit tests for span resolution."""

import pytest

from loan_compliance.flattening import FlattenedText, flatten
from loan_compliance.highlighting import SpanRange, find_text_in_document, map_offsets, resolve_issue_range
from loan_compliance.models.document import DocumentNode, StructuredDocument
from loan_compliance.models.enums import IssueSeverity
from loan_compliance.models.issue import ComplianceIssue


def paragraph(value):
    return DocumentNode(type="paragraph", content=[DocumentNode(type="text", text=value)])


@pytest.fixture
def hello_world():
    document = StructuredDocument(
        id="doc-1",
        root=DocumentNode(type="doc", content=[paragraph("Hello"), paragraph("World")]),
    )
    return flatten(document)


def issue(text_match, start=None, end=None):
    return ComplianceIssue(
        id="issue-1",
        severity=IssueSeverity.WARNING,
        category="Test",
        message="m",
        text_match=text_match,
        start_offset=start,
        end_offset=end,
    )


class TestMapOffsets:
    """Tests for direct offset mapping."""

    def test_maps_through_position_map(self):
        flattened = FlattenedText(
            text="x" * 20,
            position_map=tuple(range(90, 110)),
            search_text="x" * 20,
        )
        assert map_offsets(flattened, 10, 15) == SpanRange(100, 105)

    def test_across_block_boundary(self, hello_world):
        assert map_offsets(hello_world, 6, 11) == SpanRange(8, 13)
        assert map_offsets(hello_world, 0, 11) == SpanRange(1, 13)

    def test_unmapped_offsets(self, hello_world):
        assert map_offsets(hello_world, 5, 50) is None
        assert map_offsets(hello_world, -1, 3) is None


class TestFindTextInDocument:
    """Tests for the text-search fallback."""

    def test_case_insensitive(self, hello_world):
        assert find_text_in_document(hello_world, "WORLD") == SpanRange(8, 13)

    def test_not_found(self, hello_world):
        assert find_text_in_document(hello_world, "moon") is None
        assert find_text_in_document(hello_world, "") is None

    def test_window_prefers_hinted_occurrence(self):
        flattened = FlattenedText.from_plain_text("gas " + "x" * 100 + " gas")

        assert find_text_in_document(flattened, "GAS", start_offset=100) == SpanRange(105, 108)
        assert find_text_in_document(flattened, "GAS") == SpanRange(0, 3)

    def test_hint_without_window_hit_searches_everything(self):
        flattened = FlattenedText.from_plain_text("gas " + "x" * 200)
        assert find_text_in_document(flattened, "gas", start_offset=150) == SpanRange(0, 3)

    def test_out_of_range_hint_is_ignored(self):
        flattened = FlattenedText.from_plain_text("a gas b")
        assert find_text_in_document(flattened, "gas", start_offset=1000) == SpanRange(2, 5)


class TestResolveIssueRange:
    """Tests for offset-first, search-second resolution."""

    def test_offsets_win(self, hello_world):
        assert resolve_issue_range(issue("World", 6, 11), hello_world) == SpanRange(8, 13)

    def test_search_when_offsets_missing(self, hello_world):
        assert resolve_issue_range(issue("world"), hello_world) == SpanRange(8, 13)

    def test_search_when_offsets_unmapped(self, hello_world):
        assert resolve_issue_range(issue("Hello", 40, 45), hello_world) == SpanRange(1, 6)

    def test_search_when_mapped_range_is_empty(self, hello_world):
        assert resolve_issue_range(issue("Hello", 3, 3), hello_world) == SpanRange(1, 6)

    def test_no_text_match(self, hello_world):
        assert resolve_issue_range(issue(None, 0, 5), hello_world) is None


class TestSpanRange:
    """Tests for span validity."""

    @pytest.mark.parametrize("span, valid", [
        (SpanRange(0, 1), True),
        (SpanRange(1, 14), True),
        (SpanRange(3, 3), False),
        (SpanRange(5, 2), False),
        (SpanRange(-1, 2), False),
        (SpanRange(1, 15), False),
    ])
    def test_is_valid(self, span, valid):
        assert span.is_valid(14) is valid
