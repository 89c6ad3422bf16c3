"""
Material Takeoff
================

Turns construction search results into aggregated material lines.
"""

from .models import MaterialTakeoff
from .mappings import categorize, MATERIAL_KEYWORDS, CATEGORY_KEYWORDS
from .synthesizer import TakeoffSynthesizer, group_by_category

__all__ = [
    "MaterialTakeoff",
    "TakeoffSynthesizer",
    "group_by_category",
    "categorize",
    "MATERIAL_KEYWORDS",
    "CATEGORY_KEYWORDS",
]
