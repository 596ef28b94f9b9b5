"""Unit tests for .docx loading and highlighted export."""

import json

import pytest
from docx import Document
from docx.enum.text import WD_COLOR_INDEX

from loan_compliance.highlighting import ExportConfig, HighlightedDocxExporter
from loan_compliance.models.document import DocumentNode, HighlightMark, StructuredDocument
from loan_compliance.parsers import DocumentLoader
from loan_compliance.parsers.exceptions import DocumentCorruptedError, UnsupportedFormatError


@pytest.fixture
def sample_docx(tmp_path):
    path = tmp_path / "facility.docx"
    doc = Document()
    doc.add_heading("Green Loan Agreement", level=1)
    para = doc.add_paragraph("The Borrower shall use ")
    para.add_run("reasonable efforts").bold = True
    doc.add_paragraph("First condition", style="List Bullet")
    doc.add_paragraph("Second condition", style="List Bullet")
    doc.add_paragraph("Quoted clause", style="Quote")
    table = doc.add_table(rows=1, cols=2)
    table.cell(0, 0).text = "Margin"
    table.cell(0, 1).text = "2.5%"
    doc.save(str(path))
    return path


@pytest.fixture
def highlighted():
    paragraph = DocumentNode(type="paragraph", content=[
        DocumentNode(type="text", text="Proceeds fund a natural gas plant."),
    ])
    document = StructuredDocument(id="loan-001", root=DocumentNode(type="doc", content=[paragraph]))
    # "natural gas" sits at text offsets 16..27, coordinates 17..28
    document.replace_annotations([
        HighlightMark(from_pos=17, to_pos=28, severity="error", issue_id="i-1",
                      message="Fossil fuel reference", suggestion="Remove it"),
    ])
    return document


class TestDocxLoader:
    """Tests for loading Word documents."""

    def test_block_structure(self, sample_docx):
        document = DocumentLoader().load(str(sample_docx), document_id="facility")

        types = [node.type for node in document.root.content]
        assert types == ["heading", "paragraph", "bulletList", "blockquote", "table"]
        assert document.id == "facility"
        assert document.root.content[0].attrs == {"level": 1}
        assert len(document.root.content[2].content) == 2
        assert document.metadata["source_format"] == "docx"
        assert document.metadata["filename"] == "facility.docx"

    def test_run_formatting_kept(self, sample_docx):
        document = DocumentLoader().load(str(sample_docx))
        runs = document.root.content[1].content

        assert [run.text for run in runs] == ["The Borrower shall use ", "reasonable efforts"]
        assert runs[1].marks == [{"type": "bold"}]

    def test_table_cells(self, sample_docx):
        document = DocumentLoader().load(str(sample_docx))
        row = document.root.content[4].content[0]

        assert [cell.type for cell in row.content] == ["tableCell", "tableCell"]
        assert "".join(row.iter_text()) == "Margin2.5%"

    def test_corrupted_file(self, tmp_path):
        path = tmp_path / "broken.docx"
        path.write_bytes(b"not a zip archive")

        with pytest.raises(DocumentCorruptedError):
            DocumentLoader().load(str(path))


class TestDocumentLoader:
    """Tests for format dispatch."""

    def test_text_file(self, tmp_path):
        path = tmp_path / "terms.txt"
        path.write_text("Line one\nLine two\n", encoding="utf-8")

        document = DocumentLoader().load(str(path))

        assert document.id == "terms"
        assert len(document.root.content) == 2

    def test_json_editor_content(self, tmp_path):
        path = tmp_path / "editor.json"
        path.write_text(json.dumps({"type": "doc", "content": [
            {"type": "paragraph", "content": [{"type": "text", "text": "Hi"}]},
        ]}), encoding="utf-8")

        document = DocumentLoader().load(str(path))

        assert document.plain_text == "Hi"
        assert document.id == "editor"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{oops", encoding="utf-8")

        with pytest.raises(DocumentCorruptedError) as exc_info:
            DocumentLoader().load(str(path))
        assert exc_info.value.location.startswith("line 1")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "terms.rtf"
        path.write_text("{\\rtf1}", encoding="utf-8")

        with pytest.raises(UnsupportedFormatError) as exc_info:
            DocumentLoader().load(str(path))
        assert ".rtf" in exc_info.value.message
        assert ".docx" in exc_info.value.get_supported_formats()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            DocumentLoader().load(str(tmp_path / "nope.docx"))


class TestHighlightedDocxExporter:
    """Tests for exporting highlights to Word."""

    def test_export_highlights_runs(self, tmp_path, highlighted):
        output = HighlightedDocxExporter().export(highlighted, str(tmp_path / "out.docx"))

        runs = Document(output).paragraphs[0].runs
        texts = [run.text for run in runs]
        assert texts[:3] == ["Proceeds fund a ", "natural gas", "【ERROR: Fossil fuel reference | Remove it】"]
        assert runs[1].font.highlight_color == WD_COLOR_INDEX.RED
        assert runs[0].font.highlight_color is None
        assert texts[3] == " plant."

    def test_export_without_notes(self, tmp_path, highlighted):
        exporter = HighlightedDocxExporter(config=ExportConfig(inline_notes=False))
        output = exporter.export(highlighted, str(tmp_path / "out.docx"))

        texts = [run.text for run in Document(output).paragraphs[0].runs]
        assert texts == ["Proceeds fund a ", "natural gas", " plant."]

    def test_default_output_path(self, tmp_path, highlighted):
        output = HighlightedDocxExporter(output_dir=str(tmp_path / "exports")).export(highlighted)
        assert output.endswith("loan-001_highlighted.docx")
        assert (tmp_path / "exports" / "loan-001_highlighted.docx").exists()

    def test_fairness_marks_use_their_own_colour(self, tmp_path, highlighted):
        highlighted.replace_annotations([
            HighlightMark(from_pos=17, to_pos=28, severity="warning", issue_type="Fairness"),
        ])
        output = HighlightedDocxExporter().export(highlighted, str(tmp_path / "out.docx"))

        assert Document(output).paragraphs[0].runs[1].font.highlight_color == WD_COLOR_INDEX.VIOLET
