"""PDF document loader."""

import re
import uuid
from pathlib import Path
from typing import List, Optional

import pdfplumber
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from ..models.document import DocumentNode, StructuredDocument
from ..models.enums import DOC_NODE, TEXT_NODE
from .exceptions import DocumentCorruptedError, ParseError, UnsupportedFormatError


class PDFDocumentLoader:
    """
    Loads PDF documents into the structured document tree.

    Uses PyPDF2 to validate the file and pdfplumber for text extraction.
    Lines are regrouped into paragraphs; short numbered or upper-case
    lines become headings.
    """

    NUMBERED_HEADING_PATTERNS = [
        (re.compile(r'^(\d+)\.?\s+[A-Z][^.]*$'), 1),
        (re.compile(r'^(\d+\.\d+)\.?\s+[A-Z][^.]*$'), 2),
        (re.compile(r'^(\d+\.\d+\.\d+)\.?\s+[A-Z][^.]*$'), 3),
    ]

    MAX_HEADING_LENGTH = 80
    PARAGRAPH_END = re.compile(r'[.:;!?]["\')\]]?$')

    def load(self, file_path: str, document_id: Optional[str] = None) -> StructuredDocument:
        """
        Load a PDF document.

        Args:
            file_path: Path to the PDF file.
            document_id: Identifier for the document; generated if omitted.

        Returns:
            StructuredDocument with the document's text content.

        Raises:
            FileNotFoundError: If the file does not exist.
            UnsupportedFormatError: If the file is not a PDF.
            DocumentCorruptedError: If the document is corrupted.
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        if path.suffix.lower() != ".pdf":
            raise UnsupportedFormatError(
                message=f"Unsupported file format: {path.suffix}",
                file_path=file_path,
                location="file extension"
            )

        try:
            pdf_reader = PdfReader(file_path)
            page_count = len(pdf_reader.pages)
        except PdfReadError as e:
            raise DocumentCorruptedError(
                message="PDF file is corrupted or encrypted",
                file_path=file_path,
                location="file header",
                details={"original_error": str(e)}
            )
        except Exception as e:
            raise ParseError(
                message=f"Failed to open PDF: {str(e)}",
                file_path=file_path,
                details={"original_error": str(e)}
            )

        try:
            with pdfplumber.open(file_path) as pdf:
                blocks = []
                for page in pdf.pages:
                    blocks.extend(self.blocks_from_text(page.extract_text() or ""))
        except Exception as e:
            raise ParseError(
                message=f"Failed to parse PDF content: {str(e)}",
                file_path=file_path,
                details={"original_error": str(e)}
            )

        return StructuredDocument(
            id=document_id or str(uuid.uuid4()),
            root=DocumentNode(type=DOC_NODE, content=blocks),
            metadata={
                "filename": path.name,
                "source_format": "pdf",
                "page_count": page_count,
                "file_size": path.stat().st_size,
            },
        )

    def blocks_from_text(self, page_text: str) -> List[DocumentNode]:
        """Regroup the extracted lines of one page into headings and paragraphs."""
        blocks: List[DocumentNode] = []
        pending: List[str] = []

        def flush():
            if pending:
                blocks.append(self._text_block("paragraph", " ".join(pending)))
                pending.clear()

        for raw_line in page_text.splitlines():
            line = raw_line.strip()
            if not line:
                flush()
                continue
            level = self._heading_level(line)
            if level is not None:
                flush()
                blocks.append(self._text_block("heading", line, {"level": level}))
                continue
            pending.append(line)
            if self.PARAGRAPH_END.search(line):
                flush()
        flush()
        return blocks

    def _heading_level(self, line: str) -> Optional[int]:
        if len(line) > self.MAX_HEADING_LENGTH:
            return None
        for pattern, level in reversed(self.NUMBERED_HEADING_PATTERNS):
            if pattern.match(line):
                return level
        if line.isupper() and len(line.split()) <= 8 and any(c.isalpha() for c in line):
            return 1
        return None

    @staticmethod
    def _text_block(node_type: str, text: str, attrs: Optional[dict] = None) -> DocumentNode:
        return DocumentNode(
            type=node_type,
            attrs=attrs or {},
            content=[DocumentNode(type=TEXT_NODE, text=text)],
        )
