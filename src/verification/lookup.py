"""
Verified Lookups
================

Index lookups cross-checked against the vision service, memoized for a few
minutes per designation / sheet:

- verify_member(designation): find the sheet a member appears on, ask the
  vision service to confirm it
- verify_sheet_inventory(sheet): synthesize the sheet's takeoff and
  spot-check the largest quantities
"""

import logging
from typing import Any, Dict, List, Optional

from ..cache.verification_cache import VerificationCache
from ..search.engine import ConstructionSearchEngine
from ..search.models import SearchQuery, SearchResult
from ..takeoff.models import MaterialTakeoff
from ..takeoff.synthesizer import TakeoffSynthesizer
from .verifier import VisionVerifier, VisionVerificationError, VerificationPayload, parse_verification_payload

logger = logging.getLogger(__name__)

MEMBER_DISCIPLINE = "Structural"
MEMBER_TOP_K = 5
INVENTORY_TOP_K = 20
DEFAULT_SPOT_CHECKS = 3

# Vision count accepted within +/-50% of the takeoff quantity
QUANTITY_TOLERANCE = 0.5

MEMBER_KEY = "member_verified:{}"
INVENTORY_KEY = "inventory_verified:{}:{}"


def _compact(value: str) -> str:
    return "".join(value.lower().split())


def _line_containing(text: str, needle: str) -> str:
    compact_needle = _compact(needle)
    for line in text.split("\n"):
        if compact_needle in _compact(line):
            return line.strip()
    return text.strip()[:200]


class VerifiedLookupService:

    def __init__(
        self,
        engine: ConstructionSearchEngine,
        verifier: VisionVerifier,
        cache: Optional[VerificationCache] = None,
        synthesizer: Optional[TakeoffSynthesizer] = None,
    ):
        self.engine = engine
        self.verifier = verifier
        self.cache = cache if cache is not None else VerificationCache()
        self.synthesizer = synthesizer if synthesizer is not None else TakeoffSynthesizer()
        self.vision_calls = 0

    # =========================================================================
    # MEMBERS
    # =========================================================================

    def verify_member(self, designation: str) -> Dict[str, Any]:
        designation = designation.strip()
        if not designation:
            raise ValueError("designation cannot be empty")
        return self.cache.get_or_set(
            MEMBER_KEY.format(designation.upper()),
            lambda: self._verify_member(designation),
        )

    def _verify_member(self, designation: str) -> Dict[str, Any]:
        query = SearchQuery(
            query_text=f"designation {designation}",
            discipline=MEMBER_DISCIPLINE,
            top_k=MEMBER_TOP_K,
        )
        results = self.engine.search(query)
        located = self._locate(results, designation)

        if located is None or not located.drawing_number:
            logger.info(f"No sheet found for member {designation}")
            return {
                "designation": designation,
                "sheet": None,
                "excerpt": None,
                "verification": None,
                "verified": False,
                "discrepancies": ["No sheet location found in index"],
            }

        sheet = located.drawing_number
        excerpt = _line_containing(located.text, designation)
        payload = self._ask(
            designation,
            sheet,
            f"Find designation {designation} and extract its specification",
        )

        discrepancies: List[str] = []
        verified = False
        if not payload.success:
            discrepancies.append("Vision analysis failed")
        elif _compact(designation) not in _compact(payload.text):
            discrepancies.append(f"{designation} not found on sheet {sheet}")
        else:
            verified = True

        logger.info(
            f"Member {designation} on {sheet}: verified={verified}",
            extra={"drawing_number": sheet, "stage": "verify_member"},
        )
        return {
            "designation": designation,
            "sheet": sheet,
            "excerpt": excerpt,
            "verification": payload.to_dict(),
            "verified": verified,
            "discrepancies": discrepancies,
        }

    @staticmethod
    def _locate(results: List[SearchResult], designation: str) -> Optional[SearchResult]:
        needle = _compact(designation)
        for result in results:
            if needle in _compact(result.text):
                return result
        return None

    # =========================================================================
    # SHEET INVENTORY
    # =========================================================================

    def verify_sheet_inventory(self, sheet: str, spot_checks: int = DEFAULT_SPOT_CHECKS) -> Dict[str, Any]:
        sheet = sheet.strip()
        if not sheet:
            raise ValueError("sheet cannot be empty")
        return self.cache.get_or_set(
            INVENTORY_KEY.format(sheet.upper(), spot_checks),
            lambda: self._verify_sheet_inventory(sheet, spot_checks),
        )

    def _verify_sheet_inventory(self, sheet: str, spot_checks: int) -> Dict[str, Any]:
        query = SearchQuery(
            query_text=f"sheet {sheet} material takeoff",
            sheet_numbers=(sheet,),
            top_k=INVENTORY_TOP_K,
        )
        results = self.engine.search(query)
        inventory = self.synthesizer.synthesize(results)

        checks = []
        for item in self.select_spot_checks(inventory, spot_checks):
            payload = self._ask(
                item.material,
                sheet,
                f'Count occurrences of "{item.material}" and verify quantity',
            )
            checks.append({
                "material": item.material,
                "quantity": item.quantity,
                "verification": payload.to_dict(),
                "verified": self.quantity_matches(item.quantity, payload),
            })

        verified_count = sum(1 for c in checks if c["verified"])
        confidence = verified_count / len(checks) if checks else 0.0

        logger.info(
            f"Sheet {sheet}: {len(inventory)} takeoff lines, {verified_count}/{len(checks)} spot checks verified",
            extra={"drawing_number": sheet, "stage": "verify_inventory"},
        )
        return {
            "sheet": sheet,
            "inventory": [t.to_dict() for t in inventory],
            "spot_checks": checks,
            "overall_confidence": confidence,
        }

    @staticmethod
    def select_spot_checks(inventory: List[MaterialTakeoff], count: int) -> List[MaterialTakeoff]:
        """Largest quantities first; ties keep takeoff order."""
        counted = [t for t in inventory if t.quantity]
        counted.sort(key=lambda t: -t.quantity)
        return counted[:max(count, 0)]

    @staticmethod
    def quantity_matches(expected: Optional[float], payload: VerificationPayload) -> bool:
        if not payload.success or not expected:
            return False
        observed = payload.find_count()
        if observed is None:
            return False
        return abs(observed - expected) <= expected * QUANTITY_TOLERANCE

    # =========================================================================
    # VISION
    # =========================================================================

    def _ask(self, designation: str, sheet: str, prompt: str) -> VerificationPayload:
        self.vision_calls += 1
        try:
            raw = self.verifier.verify(designation, sheet, prompt)
        except VisionVerificationError as e:
            logger.warning(f"Vision verification failed for {designation} on {sheet}: {e}")
            return VerificationPayload(success=False, error=str(e))
        return parse_verification_payload(raw)
