"""Regex helpers shared by the rule engine and the scanners."""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Union

PatternLike = Union[str, Pattern]


@dataclass(frozen=True)
class PatternMatch:
    """One regex hit in flattened text, as a half-open [start, end) range."""
    text: str
    start: int
    end: int


def compile_pattern(pattern: PatternLike) -> Pattern:
    """Compile a pattern case-insensitively; compiled patterns get the flag added."""
    if isinstance(pattern, str):
        return re.compile(pattern, re.IGNORECASE)
    if pattern.flags & re.IGNORECASE:
        return pattern
    return re.compile(pattern.pattern, pattern.flags | re.IGNORECASE)


def find_all_matches(text: str, pattern: PatternLike, limit: Optional[int] = None) -> List[PatternMatch]:
    """
    Find non-overlapping, case-insensitive matches of a pattern.

    Zero-length matches are skipped.

    Args:
        text: Text to scan.
        pattern: Regex source or compiled pattern.
        limit: Stop after this many matches.

    Returns:
        Matches in order of appearance.
    """
    matches: List[PatternMatch] = []
    if not text:
        return matches
    for found in compile_pattern(pattern).finditer(text):
        if found.end() == found.start():
            continue
        matches.append(PatternMatch(found.group(0), found.start(), found.end()))
        if limit is not None and len(matches) >= limit:
            break
    return matches


def first_match(text: str, pattern: PatternLike) -> Optional[PatternMatch]:
    found = find_all_matches(text, pattern, limit=1)
    return found[0] if found else None


def contains(text: str, pattern: PatternLike) -> bool:
    if not text:
        return False
    return compile_pattern(pattern).search(text) is not None
