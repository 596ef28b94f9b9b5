"""Errors raised while turning an input file into a structured document."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ParseError(Exception):
    """
    A file could not be loaded.

    ``location`` narrows the failure down where the loader knows it: a
    page number, a JSON line and column, or the file header.
    """
    message: str
    file_path: Optional[str] = None
    location: Optional[str] = None
    details: Optional[Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        self.details = self.details or {}
        super().__init__(str(self))

    def __str__(self) -> str:
        text = self.message
        if self.file_path:
            text += f" | File: {self.file_path}"
        if self.location:
            text += f" | Location: {self.location}"
        return text

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe form, used as the API error body."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "file_path": self.file_path,
            "location": self.location,
            "details": self.details,
        }


@dataclass
class DocumentCorruptedError(ParseError):
    """The file has a supported extension but unreadable content."""


@dataclass
class UnsupportedFormatError(ParseError):
    """The file extension has no loader."""

    def get_supported_formats(self) -> List[str]:
        return list(self.details.get("supported_formats") or [".json", ".docx", ".pdf", ".txt"])
