"""
Takeoff Data Models
===================

Structured outputs of the takeoff synthesizer.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Set, Dict, Any


@dataclass
class MaterialTakeoff:
    """One aggregated material or member line, keyed by normalized code/name."""
    key: str                              # e.g. "w18x106", "plywood sheathing"
    material: str                         # display name, first spelling seen
    category: str = "General"
    specification: Optional[str] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    area: Optional[int] = None            # largest calculated area, sq ft
    weight: Optional[float] = None        # lb/ft for coded steel shapes
    installation: Optional[str] = None
    dimensions: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)   # drawing identifiers, unique

    # Excerpts already counted toward quantity
    source_excerpts: Set[str] = field(default_factory=set, repr=False, compare=False)

    def add_source(self, drawing: str) -> None:
        if drawing and drawing not in self.sources:
            self.sources.append(drawing)

    def add_dimension(self, token: str, cap: int) -> None:
        if token and token not in self.dimensions and len(self.dimensions) < cap:
            self.dimensions.append(token)

    def add_quantity(self, amount: float) -> None:
        self.quantity = (self.quantity or 0) + amount

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "key": self.key,
            "material": self.material,
            "category": self.category,
            "specification": self.specification,
            "quantity": self.quantity,
            "unit": self.unit,
            "area": self.area,
            "weight": self.weight,
            "installation": self.installation,
            "dimensions": list(self.dimensions),
            "sources": list(self.sources),
        }
