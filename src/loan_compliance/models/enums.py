"""Enumerations for the Loan Document Compliance System."""

from enum import Enum
from typing import Optional


class IssueSeverity(Enum):
    """Severity levels assigned to compliance issues."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IssueType(Enum):
    """Issue-type tag distinguishing regulatory from fairness findings."""
    REGULATORY = "LMA Compliance"
    FAIRNESS = "Fairness"


class FavoredParty(Enum):
    """Party a fairness finding tilts the agreement towards."""
    LENDER = "lender"
    BORROWER = "borrower"
    NEUTRAL = "neutral"


class EUCountry(Enum):
    """ISO codes of the EU member states usable as jurisdiction hints."""
    GERMANY = "DE"
    FRANCE = "FR"
    SPAIN = "ES"
    ITALY = "IT"
    NETHERLANDS = "NL"
    BELGIUM = "BE"
    AUSTRIA = "AT"
    PORTUGAL = "PT"
    IRELAND = "IE"
    GREECE = "GR"
    POLAND = "PL"
    SWEDEN = "SE"
    FINLAND = "FI"
    DENMARK = "DK"
    CZECH_REPUBLIC = "CZ"
    ROMANIA = "RO"
    HUNGARY = "HU"
    SLOVAKIA = "SK"
    BULGARIA = "BG"
    CROATIA = "HR"
    SLOVENIA = "SI"
    LITHUANIA = "LT"
    LATVIA = "LV"
    ESTONIA = "EE"
    LUXEMBOURG = "LU"
    CYPRUS = "CY"
    MALTA = "MT"

    @classmethod
    def parse(cls, code) -> Optional["EUCountry"]:
        """
        Resolve a jurisdiction hint to a member state.

        Unknown or empty codes resolve to None so that callers fall back
        to the region-wide rule set.
        """
        if code is None:
            return None
        if isinstance(code, cls):
            return code
        try:
            return cls(str(code).strip().upper())
        except ValueError:
            return None


EU_COUNTRY_NAMES = {
    EUCountry.GERMANY: "Germany",
    EUCountry.FRANCE: "France",
    EUCountry.SPAIN: "Spain",
    EUCountry.ITALY: "Italy",
    EUCountry.NETHERLANDS: "Netherlands",
    EUCountry.BELGIUM: "Belgium",
    EUCountry.AUSTRIA: "Austria",
    EUCountry.PORTUGAL: "Portugal",
    EUCountry.IRELAND: "Ireland",
    EUCountry.GREECE: "Greece",
    EUCountry.POLAND: "Poland",
    EUCountry.SWEDEN: "Sweden",
    EUCountry.FINLAND: "Finland",
    EUCountry.DENMARK: "Denmark",
    EUCountry.CZECH_REPUBLIC: "Czech Republic",
    EUCountry.ROMANIA: "Romania",
    EUCountry.HUNGARY: "Hungary",
    EUCountry.SLOVAKIA: "Slovakia",
    EUCountry.BULGARIA: "Bulgaria",
    EUCountry.CROATIA: "Croatia",
    EUCountry.SLOVENIA: "Slovenia",
    EUCountry.LITHUANIA: "Lithuania",
    EUCountry.LATVIA: "Latvia",
    EUCountry.ESTONIA: "Estonia",
    EUCountry.LUXEMBOURG: "Luxembourg",
    EUCountry.CYPRUS: "Cyprus",
    EUCountry.MALTA: "Malta",
}

# Jurisdiction scope of a rule that applies across the whole region.
REGION_WIDE = "EU"
REGION_WIDE_LABEL = "EU-wide"

# Node types that open and close a block in the document tree.
BLOCK_NODE_TYPES = frozenset({
    "paragraph",
    "heading",
    "listItem",
    "bulletList",
    "orderedList",
    "blockquote",
    "horizontalRule",
    "table",
    "tableRow",
    "tableCell",
    "tableHeader",
    "codeBlock",
})

HARD_BREAK = "hardBreak"
TEXT_NODE = "text"
DOC_NODE = "doc"

# Leaf node types occupying a single coordinate.
LEAF_NODE_TYPES = frozenset({HARD_BREAK, "horizontalRule", "image"})

COMPLIANCE_MARK = "complianceHighlight"
