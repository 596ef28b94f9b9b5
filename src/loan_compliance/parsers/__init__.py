"""Document loaders and editor content serialization."""

from .base import DocumentLoader
from .docx_loader import DocxDocumentLoader
from .exceptions import DocumentCorruptedError, ParseError, UnsupportedFormatError
from .pdf_loader import PDFDocumentLoader
from .serialization import DocumentSerializer

__all__ = [
    "DocumentLoader",
    "DocxDocumentLoader",
    "PDFDocumentLoader",
    "DocumentSerializer",
    "ParseError",
    "DocumentCorruptedError",
    "UnsupportedFormatError",
]
