"""
Takeoff Lookup Tables
=====================

Material vocabulary, category keywords and coded member designators used by
the takeoff synthesizer. Deterministic lookup tables.
"""

import re
from typing import Dict, List, Tuple


# =====================================================================
# GENERIC MATERIAL VOCABULARY
# =====================================================================
# Matched case-insensitively; a phrase of up to two preceding words is
# captured with each hit ("5/8 gypsum board", "welded wire mesh").

MATERIAL_KEYWORDS: List[str] = [
    "warmboard", "plywood", "osb", "cedar", "concrete", "steel", "lumber",
    "sheathing", "decking", "framing", "drywall", "gypsum", "insulation",
    "rebar", "wire mesh", "anchor", "bolt", "beam", "joist", "stud",
    "siding", "roofing", "flashing", "membrane", "vapor barrier",
    "tile", "grout", "mortar", "adhesive", "sealant", "caulk",
    "paint", "primer", "stain", "finish", "coating",
    "door", "window", "glass", "hardware", "hinge", "lock",
    "pipe", "conduit", "wire", "cable", "duct", "vent",
]

# Leading words dropped from captured phrases before keying
PHRASE_STOPWORDS = {
    "a", "an", "the", "and", "or", "of", "to", "at", "in", "on", "for",
    "with", "by", "see", "per", "all", "new", "existing", "typ", "provide",
    "install", "is", "are", "be", "as",
}


# =====================================================================
# CATEGORY TABLE
# =====================================================================
# Ordered: first keyword contained in the material name wins.

CATEGORY_KEYWORDS: List[Tuple[str, List[str]]] = [
    ("Structural Steel", [
        "w-shape", "hss", "steel", "girder", "column", "anchor", "bolt", "weld", "beam",
    ]),
    ("Concrete", [
        "concrete", "rebar", "wire mesh", "footing", "slab", "grout", "mortar", "foundation",
    ]),
    ("Wood", [
        "warmboard", "plywood", "osb", "cedar", "lumber", "sheathing", "decking",
        "framing", "joist", "stud", "tji", "glulam", "rafter",
    ]),
    ("Openings", [
        "door", "window", "glass", "glazing", "hinge", "lock", "hardware",
    ]),
    ("MEP", [
        "pipe", "conduit", "wire", "cable", "duct", "vent", "plumbing", "electrical",
    ]),
    ("Finishes", [
        "drywall", "gypsum", "paint", "primer", "stain", "finish", "coating",
        "tile", "caulk", "sealant", "adhesive", "siding", "roofing", "flashing",
    ]),
]

DEFAULT_CATEGORY = "General"


def categorize(material: str) -> str:
    """Category for a material name via the keyword table."""
    lowered = material.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


# =====================================================================
# CODED STRUCTURAL MEMBERS
# =====================================================================
# Each entry: (kind, compiled pattern, category). Codes are normalized by
# MemberMatch builders in the synthesizer.

_X = r"\s?[xX×]\s?"

MEMBER_PATTERNS: List[Tuple[str, re.Pattern, str]] = [
    # W18x106 -> depth 18in, 106 lb/ft
    ("wide_flange", re.compile(rf"\bW\s?(\d{{1,2}}){_X}(\d{{1,3}}(?:\.\d+)?)\b"), "Structural Steel"),
    # HSS6x6x3/8, HSS8x4x.25
    ("hss", re.compile(
        rf"\bHSS\s?(\d{{1,2}}(?:\.\d+)?){_X}(\d{{1,2}}(?:\.\d+)?)(?:{_X}(\d+/\d+|\d*\.\d+))?"
    ), "Structural Steel"),
    # C10x15.3, MC12x10.6
    ("channel", re.compile(rf"\b(MC|C)(\d{{1,2}}){_X}(\d{{1,2}}(?:\.\d+)?)\b"), "Structural Steel"),
    # L4x4x1/4
    ("angle", re.compile(rf"\bL(\d{{1,2}}(?:-\d/\d)?){_X}(\d{{1,2}}(?:-\d/\d)?){_X}(\d+/\d+)"), "Structural Steel"),
    # 14" TJI 560
    ("tji", re.compile(r"\b(\d{1,2}(?:-\d/\d)?)\s?[\"”]?\s?TJI\s?(\d{3})\b", re.IGNORECASE), "Wood"),
    # 2x10, 4x12
    ("lumber", re.compile(r"\b([2-6])\s?[xX]\s?(\d{1,2})\b"), "Wood"),
]

# Quantity annotations after a member: "(QTY:2)", "QTY 4", "6 EA"
QUANTITY_AFTER_PATTERNS: List[re.Pattern] = [
    re.compile(r"\bQTY\.?\s*[:=]?\s*(\d+)", re.IGNORECASE),
    re.compile(r"\b(\d+)\s*(?:EA|PCS|PIECES)\b", re.IGNORECASE),
]

# Quantity annotations directly before a member: "(2) W18x106", "3 EA W12x26"
QUANTITY_BEFORE_PATTERNS: List[re.Pattern] = [
    re.compile(r"\((\d+)\)\s*$"),
    re.compile(r"\b(\d+)\s*(?:EA|PCS)\.?\s*$", re.IGNORECASE),
    re.compile(r"\bQTY\.?\s*[:=]?\s*(\d+)\s*[-,:]?\s*$", re.IGNORECASE),
]

CONTEXT_BEFORE_CHARS = 50
CONTEXT_AFTER_CHARS = 80

MEMBER_UNIT = "EA"
AREA_UNIT = "sq ft"

MAX_DIMENSIONS = 10
DIMENSIONS_PER_RESULT = 3
SPECIFICATION_MAX_CHARS = 200
INSTALLATION_MAX_CHARS = 100

INSTALLATION_PATTERNS: List[re.Pattern] = [
    re.compile(r"\b(fastener|screw|nail|bolt|lag)\b.*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"\b(install|attach|connect)\b.*$", re.IGNORECASE | re.MULTILINE),
]

# Drawing types that trigger specification / installation capture
SCHEDULE_TYPE = "Schedule"
DETAIL_TYPE = "Detail"
ASSEMBLY_FLAG = "ASSEMBL"
