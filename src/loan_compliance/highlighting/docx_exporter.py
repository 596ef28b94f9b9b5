"""Export of highlighted documents to .docx format."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from docx import Document
from docx.enum.text import WD_COLOR_INDEX
from docx.shared import Pt, RGBColor
from docx.text.paragraph import Paragraph

from ..models.document import DocumentNode, HighlightMark, StructuredDocument
from ..models.enums import IssueType
from .segments import split_text

logger = logging.getLogger(__name__)


@dataclass
class ExportConfig:
    """Configuration for highlight export."""
    inline_notes: bool = True
    note_font_size: int = 8
    note_prefix: str = "【"
    note_suffix: str = "】"


class HighlightedDocxExporter:
    """
    Writes a structured document to .docx with its compliance marks.

    Highlighted runs get a Word highlight colour by severity (violet for
    fairness findings); with inline notes enabled, a small grey note with
    the issue message follows the last run of each mark.
    """

    SEVERITY_COLORS = {
        "error": WD_COLOR_INDEX.RED,
        "warning": WD_COLOR_INDEX.YELLOW,
        "info": WD_COLOR_INDEX.TURQUOISE,
    }
    FAIRNESS_COLOR = WD_COLOR_INDEX.VIOLET

    LIST_STYLES = {
        "bulletList": "List Bullet",
        "orderedList": "List Number",
    }

    def __init__(self, output_dir: str = "data/exports", config: Optional[ExportConfig] = None):
        """
        Initialize the exporter.

        Args:
            output_dir: Directory for exported files.
            config: Note display configuration.
        """
        self.output_dir = Path(output_dir)
        self.config = config or ExportConfig()

    def export(self, document: StructuredDocument, output_path: Optional[str] = None) -> str:
        """
        Export a document with highlights.

        Args:
            document: Document to export.
            output_path: Target file; defaults to ``<output_dir>/<id>_highlighted.docx``.

        Returns:
            Path of the written file.
        """
        if output_path is None:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            output_path = str(self.output_dir / f"{document.id}_highlighted.docx")

        docx_doc = Document()
        marks = document.compliance_marks
        pos = 0
        for node in document.root.content:
            self._write_block(docx_doc, node, pos, marks)
            pos += node.node_size

        docx_doc.save(output_path)
        logger.info(f"Exported {len(marks)} highlights for document {document.id} to {output_path}")
        return output_path

    def _write_block(self, docx_doc, node: DocumentNode, pos: int, marks: List[HighlightMark], style: Optional[str] = None) -> None:
        if node.type == "heading":
            level = min(max(int(node.attrs.get("level", 1)), 1), 9)
            para = docx_doc.add_heading(level=level)
            self._write_inline(para, node, pos + 1, marks)
        elif node.type in ("paragraph", "codeBlock"):
            para = docx_doc.add_paragraph(style=style)
            self._write_inline(para, node, pos + 1, marks)
        elif node.type in self.LIST_STYLES:
            self._write_children(docx_doc, node, pos + 1, marks, self.LIST_STYLES[node.type])
        elif node.type == "listItem":
            self._write_children(docx_doc, node, pos + 1, marks, style)
        elif node.type == "blockquote":
            self._write_children(docx_doc, node, pos + 1, marks, "Quote")
        elif node.type == "table":
            self._write_table(docx_doc, node, pos, marks)
        elif node.type == "horizontalRule":
            docx_doc.add_paragraph()
        elif node.is_text or node.is_hard_break:
            para = docx_doc.add_paragraph(style=style)
            self._write_inline(para, DocumentNode(type="paragraph", content=[node]), pos, marks)
        else:
            self._write_children(docx_doc, node, pos + 1, marks, style)

    def _write_children(self, docx_doc, node: DocumentNode, start: int, marks: List[HighlightMark], style: Optional[str]) -> None:
        pos = start
        for child in node.content:
            self._write_block(docx_doc, child, pos, marks, style)
            pos += child.node_size

    def _write_table(self, docx_doc, node: DocumentNode, pos: int, marks: List[HighlightMark]) -> None:
        rows = [row for row in node.content if row.type == "tableRow"]
        if not rows:
            return
        columns = max(len(row.content) for row in rows) or 1
        table = docx_doc.add_table(rows=len(rows), cols=columns)

        row_pos = pos + 1
        row_index = 0
        for row in node.content:
            if row.type != "tableRow":
                row_pos += row.node_size
                continue
            cell_pos = row_pos + 1
            for col_index, cell in enumerate(row.content):
                target = table.cell(row_index, col_index)
                para = target.paragraphs[0]
                block_pos = cell_pos + 1
                for block in cell.content:
                    self._write_inline(para, block, block_pos + 1, marks)
                    block_pos += block.node_size
                cell_pos += cell.node_size
            row_pos += row.node_size
            row_index += 1

    def _write_inline(self, para: Paragraph, node: DocumentNode, start: int, marks: List[HighlightMark]) -> None:
        """Write the inline content of a textblock starting at coordinate ``start``."""
        pos = start
        for child in node.content:
            if child.is_hard_break:
                para.add_run().add_break()
            elif child.is_text:
                formatting = {mark.get("type") for mark in child.marks if isinstance(mark, dict)}
                for segment in split_text(child.text or "", pos, marks):
                    run = para.add_run(segment.text)
                    run.bold = "bold" in formatting or None
                    run.italic = "italic" in formatting or None
                    if segment.marks:
                        run.font.highlight_color = self._highlight_color(segment.marks[0])
                    for mark in segment.marks:
                        if mark.to_pos == segment.end and self.config.inline_notes:
                            self._add_note(para, mark)
            pos += child.node_size

    def _highlight_color(self, mark: HighlightMark):
        if mark.issue_type == IssueType.FAIRNESS.value:
            return self.FAIRNESS_COLOR
        return self.SEVERITY_COLORS.get(mark.severity, WD_COLOR_INDEX.TURQUOISE)

    def _add_note(self, para: Paragraph, mark: HighlightMark) -> None:
        text = f"{mark.severity.upper()}: {mark.message}"
        if mark.suggestion:
            text += f" | {mark.suggestion}"
        run = para.add_run(f"{self.config.note_prefix}{text}{self.config.note_suffix}")
        run.font.size = Pt(self.config.note_font_size)
        run.font.color.rgb = RGBColor(128, 128, 128)
        run.italic = True
