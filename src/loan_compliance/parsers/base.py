"""Format-dispatching document loader."""

import json
from pathlib import Path
from typing import Optional

from ..models.document import StructuredDocument
from .docx_loader import DocxDocumentLoader
from .exceptions import DocumentCorruptedError, UnsupportedFormatError
from .pdf_loader import PDFDocumentLoader
from .serialization import DocumentSerializer

SUPPORTED_FORMATS = [".json", ".docx", ".pdf", ".txt"]


class DocumentLoader:
    """
    Main document loader that delegates to format-specific loaders.

    ``.json`` files hold editor content (or a serialized document with
    annotations), ``.txt`` files plain text.
    """

    def __init__(self):
        self._docx_loader = DocxDocumentLoader()
        self._pdf_loader = PDFDocumentLoader()
        self._serializer = DocumentSerializer()

    def load(self, file_path: str, document_id: Optional[str] = None) -> StructuredDocument:
        """
        Load a document, detecting its format from the file extension.

        Args:
            file_path: Path to the document file.
            document_id: Identifier for the document; defaults to the file stem
                for text formats and a generated id otherwise.

        Returns:
            StructuredDocument containing the document content.

        Raises:
            FileNotFoundError: If the file does not exist.
            UnsupportedFormatError: If the file format is not supported.
            DocumentCorruptedError: If the document is corrupted.
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        suffix = path.suffix.lower()

        if suffix == ".docx":
            return self._docx_loader.load(file_path, document_id)
        elif suffix == ".pdf":
            return self._pdf_loader.load(file_path, document_id)
        elif suffix == ".json":
            return self._load_json(path, document_id)
        elif suffix == ".txt":
            return self._serializer.from_content(
                path.read_text(encoding="utf-8"), document_id or path.stem
            )
        else:
            raise UnsupportedFormatError(
                message=f"Unsupported file format: {suffix}",
                file_path=file_path,
                location="file extension",
                details={"supported_formats": SUPPORTED_FORMATS}
            )

    def _load_json(self, path: Path, document_id: Optional[str]) -> StructuredDocument:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise DocumentCorruptedError(
                message="Document content is not valid JSON",
                file_path=str(path),
                location=f"line {e.lineno}, column {e.colno}",
                details={"original_error": str(e)}
            )

        # A serialized document wraps its content next to id and annotations.
        if isinstance(data, dict) and "annotations" in data and "content" in data:
            document = self._serializer.from_dict(data)
            if document_id:
                document.id = document_id
            return document
        return self._serializer.from_content(data, document_id or path.stem)

    def get_supported_formats(self) -> list[str]:
        """Return list of supported file formats."""
        return list(SUPPORTED_FORMATS)
