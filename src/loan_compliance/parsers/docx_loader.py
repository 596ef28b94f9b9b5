"""Word document (.docx) loader."""

import re
import uuid
from pathlib import Path
from typing import List, Optional
from zipfile import BadZipFile

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.paragraph import Paragraph

from ..models.document import DocumentNode, StructuredDocument
from ..models.enums import DOC_NODE, HARD_BREAK, TEXT_NODE
from .exceptions import DocumentCorruptedError, ParseError, UnsupportedFormatError


class DocxDocumentLoader:
    """
    Loads Word (.docx) documents into the structured document tree.

    Headings, list paragraphs, quotes, tables and line breaks become the
    corresponding editor nodes; run-level bold and italic are kept as
    inline marks.
    """

    HEADING_STYLE_MAP = {
        "Title": 1,
        "Heading 1": 1,
        "Heading 2": 2,
        "Heading 3": 3,
        "Heading 4": 4,
    }

    LIST_STYLE_PATTERNS = [
        (re.compile(r'^List Bullet'), "bulletList"),
        (re.compile(r'^List Number'), "orderedList"),
    ]

    QUOTE_STYLES = {"Quote", "Intense Quote"}

    def load(self, file_path: str, document_id: Optional[str] = None) -> StructuredDocument:
        """
        Load a Word document.

        Args:
            file_path: Path to the .docx file.
            document_id: Identifier for the document; generated if omitted.

        Returns:
            StructuredDocument with the document's content.

        Raises:
            FileNotFoundError: If the file does not exist.
            UnsupportedFormatError: If the file is not a .docx file.
            DocumentCorruptedError: If the document is corrupted.
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        if path.suffix.lower() != ".docx":
            raise UnsupportedFormatError(
                message=f"Unsupported file format: {path.suffix}",
                file_path=file_path,
                location="file extension"
            )

        try:
            doc = Document(file_path)
        except (BadZipFile, PackageNotFoundError) as e:
            raise DocumentCorruptedError(
                message="Document is corrupted or not a valid Word file",
                file_path=file_path,
                location="file header",
                details={"original_error": str(e)}
            )
        except Exception as e:
            raise ParseError(
                message=f"Failed to open document: {str(e)}",
                file_path=file_path,
                details={"original_error": str(e)}
            )

        root = DocumentNode(type=DOC_NODE, content=self._parse_body(doc))
        return StructuredDocument(
            id=document_id or str(uuid.uuid4()),
            root=root,
            metadata=self._extract_metadata(doc, path),
        )

    def _parse_body(self, doc) -> List[DocumentNode]:
        """Walk body paragraphs and tables in document order."""
        blocks: List[DocumentNode] = []
        current_list: Optional[DocumentNode] = None

        for element in doc.element.body.iterchildren():
            if element.tag == qn('w:tbl'):
                current_list = None
                blocks.append(self._parse_table(Table(element, doc)))
                continue
            if element.tag != qn('w:p'):
                continue

            para = Paragraph(element, doc)
            inline = self._parse_runs(para)
            if not inline:
                continue

            style_name = para.style.name if para.style is not None else ""
            list_type = self._list_type(style_name)
            if list_type:
                if current_list is None or current_list.type != list_type:
                    current_list = DocumentNode(type=list_type)
                    blocks.append(current_list)
                current_list.content.append(
                    DocumentNode(type="listItem", content=[DocumentNode(type="paragraph", content=inline)])
                )
                continue

            current_list = None
            if style_name in self.HEADING_STYLE_MAP:
                blocks.append(DocumentNode(
                    type="heading",
                    attrs={"level": self.HEADING_STYLE_MAP[style_name]},
                    content=inline,
                ))
            elif style_name in self.QUOTE_STYLES:
                blocks.append(DocumentNode(
                    type="blockquote",
                    content=[DocumentNode(type="paragraph", content=inline)],
                ))
            else:
                blocks.append(DocumentNode(type="paragraph", content=inline))
        return blocks

    def _list_type(self, style_name: str) -> Optional[str]:
        for pattern, list_type in self.LIST_STYLE_PATTERNS:
            if pattern.match(style_name):
                return list_type
        return None

    def _parse_runs(self, para: Paragraph) -> List[DocumentNode]:
        """Convert runs to text and hard-break nodes."""
        nodes: List[DocumentNode] = []
        for run in para.runs:
            marks = []
            if run.bold:
                marks.append({"type": "bold"})
            if run.italic:
                marks.append({"type": "italic"})
            pieces = (run.text or "").split("\n")
            for index, piece in enumerate(pieces):
                if index > 0:
                    nodes.append(DocumentNode(type=HARD_BREAK))
                if piece:
                    nodes.append(DocumentNode(type=TEXT_NODE, text=piece, marks=list(marks)))
        if not any(node.text and node.text.strip() for node in nodes):
            return []
        return nodes

    def _parse_table(self, table: Table) -> DocumentNode:
        rows = []
        for row in table.rows:
            cells = []
            for cell in row.cells:
                paragraphs = [
                    DocumentNode(type="paragraph", content=inline)
                    for inline in (self._parse_runs(p) for p in cell.paragraphs)
                    if inline
                ]
                cells.append(DocumentNode(type="tableCell", content=paragraphs or [DocumentNode(type="paragraph")]))
            rows.append(DocumentNode(type="tableRow", content=cells))
        return DocumentNode(type="table", content=rows)

    def _extract_metadata(self, doc, path: Path) -> dict:
        """Extract document metadata."""
        core_props = doc.core_properties
        metadata = {
            "filename": path.name,
            "source_format": "docx",
            "paragraph_count": len(doc.paragraphs),
            "file_size": path.stat().st_size if path.exists() else 0,
        }
        if core_props.title:
            metadata["title"] = core_props.title
        if core_props.author:
            metadata["author"] = core_props.author
        return metadata
