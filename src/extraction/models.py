"""
Extraction Data Models
======================

Records produced by the pure text extractors.
"""

from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any


@dataclass
class ExtractedDimension:
    """A feet/inches dimension token found in drawing text."""
    feet: int
    inches: int
    total_inches: int
    original: str                  # e.g. 25'-6"
    element: Optional[str] = None  # mark preceding the token, e.g. "B1"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractedDimension":
        return cls(
            feet=int(data["feet"]),
            inches=int(data["inches"]),
            total_inches=int(data["total_inches"]),
            original=data["original"],
            element=data.get("element"),
        )


@dataclass
class AreaCalculation:
    """Rectangular area from two consecutive distinct dimensions."""
    length: ExtractedDimension
    width: ExtractedDimension
    square_feet: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "length": self.length.to_dict(),
            "width": self.width.to_dict(),
            "square_feet": self.square_feet,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AreaCalculation":
        return cls(
            length=ExtractedDimension.from_dict(data["length"]),
            width=ExtractedDimension.from_dict(data["width"]),
            square_feet=int(data["square_feet"]),
        )


@dataclass
class CrossReference:
    """A reference to another sheet, schedule, detail or material."""
    type: str        # sheet, schedule, material, structural, detail
    reference: str   # upper-cased, e.g. "SCH-2"
    context: str     # surrounding text, 30 chars each side

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CrossReference":
        return cls(type=data["type"], reference=data["reference"], context=data.get("context", ""))
