"""Exhaustive multi-match scanners."""

from .disparity_scanner import (
    DISPARITY_PATTERNS,
    HIGHLIGHTABLE_PATTERNS,
    DisparityScanner,
    ScanPattern,
    ScanSettings,
    scan_pattern,
    scan_patterns,
)

__all__ = [
    "DISPARITY_PATTERNS",
    "HIGHLIGHTABLE_PATTERNS",
    "DisparityScanner",
    "ScanPattern",
    "ScanSettings",
    "scan_pattern",
    "scan_patterns",
]
