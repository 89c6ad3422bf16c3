"""
Tests for the takeoff synthesizer.

Tests both extraction passes and the merge rules:
- Member pass: coded shapes, nearby quantities, length tokens
- Material pass: phrase capture, specification/area/installation attachment
- Merging: additive quantities, unique sources, first-non-null scalars
- Idempotence: repeated runs and repeated excerpts never double count

Usage:
    pytest tests/test_takeoff_synthesizer.py -v
"""

import pytest

from src.extraction import DimensionExtractor
from src.search.models import SearchResult
from src.takeoff import TakeoffSynthesizer, categorize, group_by_category


def make_result(
    result_id: str,
    text: str,
    drawing_number: str = "S-201",
    drawing_type: str = "Plan",
    enrich: bool = True,
) -> SearchResult:
    result = SearchResult(
        id=result_id,
        text=text,
        project="Lake House",
        discipline="Structural",
        drawing_type=drawing_type,
        drawing_number=drawing_number,
        score=800.0,
    )
    if enrich:
        extractor = DimensionExtractor()
        result.dimensions = extractor.extract_dimensions(text)
        result.calculated_areas = extractor.calculate_areas(text)
    return result


def by_key(takeoffs):
    return {t.key: t for t in takeoffs}


# ============================================================================
# MEMBER PASS
# ============================================================================

class TestMemberPass:

    def setup_method(self):
        self.synth = TakeoffSynthesizer()

    def test_quantities_sum_across_drawings(self):
        """Same member on two drawings: quantities add, both sheets listed."""
        takeoffs = self.synth.synthesize([
            make_result("r1", "W18x106 (QTY:2)", drawing_number="S-201"),
            make_result("r2", "W18x106 (QTY:3)", drawing_number="S-202"),
        ])
        beam = by_key(takeoffs)["w18x106"]

        assert beam.material == "W18x106"
        assert beam.quantity == 5
        assert beam.sources == ["S-201", "S-202"]
        assert beam.unit == "EA"
        assert beam.weight == 106.0
        assert beam.category == "Structural Steel"

    def test_quantity_before_member(self):
        takeoffs = self.synth.synthesize([make_result("r1", "(4) W12x26 AT ROOF")])
        assert by_key(takeoffs)["w12x26"].quantity == 4

    def test_quantity_not_borrowed_from_next_member(self):
        takeoffs = self.synth.synthesize([make_result("r1", "W12x26 BEAM, W18x106 (QTY:2)")])
        members = by_key(takeoffs)
        assert members["w12x26"].quantity is None
        assert members["w18x106"].quantity == 2

    def test_length_token_recorded(self):
        takeoffs = self.synth.synthesize([make_result("r1", "W18x106 x 24'-6\" LONG (QTY:1)")])
        assert by_key(takeoffs)["w18x106"].dimensions == ["24'-6\""]

    def test_normalizes_spacing_and_case(self):
        takeoffs = self.synth.synthesize([
            make_result("r1", "W18 X 106 QTY 2", drawing_number="S-201"),
            make_result("r2", "W18x106 QTY 1", drawing_number="S-202"),
        ])
        assert by_key(takeoffs)["w18x106"].quantity == 3

    @pytest.mark.parametrize("text,key,category", [
        ("HSS6x6x3/8 POST", "hss6x6x3/8", "Structural Steel"),
        ("C10x15.3 LEDGER", "c10x15.3", "Structural Steel"),
        ("L4x4x1/4 ANGLE", "l4x4x1/4", "Structural Steel"),
        ("14\" TJI 560 @ 16\" O.C.", "14\" tji 560", "Wood"),
        ("2x10 @ 16\" O.C.", "2x10", "Wood"),
    ])
    def test_member_kinds(self, text, key, category):
        takeoffs = self.synth.synthesize([make_result("r1", text, enrich=False)])
        assert by_key(takeoffs)[key].category == category

    def test_hss_not_read_as_lumber(self):
        takeoffs = self.synth.synthesize([make_result("r1", "HSS6x6x3/8", enrich=False)])
        assert "6x6" not in by_key(takeoffs)


# ============================================================================
# MATERIAL PASS
# ============================================================================

class TestMaterialPass:

    def setup_method(self):
        self.synth = TakeoffSynthesizer()

    def test_phrase_keyed_lower_case(self):
        takeoffs = self.synth.synthesize([
            make_result("r1", "5/8 Gypsum board on all walls", drawing_number="A-101"),
            make_result("r2", "5/8 gypsum board at ceilings", drawing_number="A-102"),
        ])
        gypsum = by_key(takeoffs)["5/8 gypsum"]
        assert gypsum.material == "5/8 Gypsum"
        assert gypsum.sources == ["A-101", "A-102"]
        assert gypsum.category == "Finishes"

    def test_specification_from_schedule(self):
        text = "HEADER\nPLYWOOD SHEATHING 3/4\" T&G\nGLUE AND NAIL\n8d @ 6\" O.C.\nLAST LINE"
        takeoffs = self.synth.synthesize([
            make_result("r1", text, drawing_number="A-601", drawing_type="Schedule"),
        ])
        line = [t for t in takeoffs if t.key.endswith("plywood")][0]
        assert line.specification == "PLYWOOD SHEATHING 3/4\" T&G\nGLUE AND NAIL\n8d @ 6\" O.C."

    def test_specification_from_assembly_note(self):
        text = "FLOOR ASSEMBLY F1:\n1-1/8\" WARMBOARD SUBFLOOR\nTJI JOISTS"
        takeoffs = self.synth.synthesize([make_result("r1", text, drawing_type="Plan")])
        warmboard = [t for t in takeoffs if "warmboard" in t.key][0]
        assert warmboard.specification.startswith("1-1/8\" WARMBOARD")

    def test_no_specification_from_plain_plan(self):
        takeoffs = self.synth.synthesize([make_result("r1", "PLYWOOD SHEATHING", drawing_type="Plan")])
        assert all(t.specification is None for t in takeoffs)

    def test_first_specification_wins(self):
        takeoffs = self.synth.synthesize([
            make_result("r1", "CONCRETE 4000 PSI", drawing_number="S-001", drawing_type="Schedule"),
            make_result("r2", "CONCRETE 3000 PSI", drawing_number="S-002", drawing_type="Schedule"),
        ])
        assert by_key(takeoffs)["concrete"].specification == "CONCRETE 4000 PSI"

    def test_largest_area_attached(self):
        takeoffs = self.synth.synthesize([
            make_result("r1", "CONCRETE SLAB 20'-0\" x 10'-0\"", drawing_number="S-101"),
            make_result("r2", "CONCRETE SLAB 40'-0\" x 30'-0\"", drawing_number="S-102"),
        ])
        slab = by_key(takeoffs)["concrete"]
        assert slab.area == 1200
        assert slab.unit == "sq ft"

    def test_dimensions_capped_per_result(self):
        text = "GYPSUM 10' 11' 12' 13' 14'"
        takeoffs = self.synth.synthesize([make_result("r1", text, drawing_number="A-101")])
        assert by_key(takeoffs)["gypsum"].dimensions == ["10'", "11'", "12'"]

    def test_installation_from_detail(self):
        text = "CEDAR SIDING\nNAIL WITH 8d STAINLESS RING SHANK\nATTACH TO STUDS"
        takeoffs = self.synth.synthesize([
            make_result("r1", text, drawing_number="A-501", drawing_type="Detail"),
        ])
        cedar = by_key(takeoffs)["cedar"]
        assert cedar.installation == "NAIL WITH 8d STAINLESS RING SHANK"

    def test_no_installation_outside_details(self):
        text = "CEDAR SIDING\nATTACH WITH SCREWS"
        takeoffs = self.synth.synthesize([make_result("r1", text, drawing_type="Plan")])
        assert by_key(takeoffs)["cedar"].installation is None

    def test_insertion_order(self):
        takeoffs = self.synth.synthesize([
            make_result("r1", "W12x26 (QTY:1)", drawing_number="S-1"),
            make_result("r2", "W18x106 (QTY:1)", drawing_number="S-2"),
        ])
        assert [t.key for t in takeoffs][:2] == ["w12x26", "w18x106"]


# ============================================================================
# IDEMPOTENCE
# ============================================================================

class TestIdempotence:

    def setup_method(self):
        self.synth = TakeoffSynthesizer()

    def test_repeated_runs_equal_totals(self):
        results = [
            make_result("r1", "W18x106 (QTY:2)\nCONCRETE SLAB", drawing_number="S-201"),
            make_result("r2", "W18x106 (QTY:3)", drawing_number="S-202"),
        ]
        first = {t.key: t.quantity for t in self.synth.synthesize(results)}
        second = {t.key: t.quantity for t in self.synth.synthesize(results)}
        assert first == second
        assert first["w18x106"] == 5

    def test_same_excerpt_twice_counted_once(self):
        result = make_result("r1", "W18x106 (QTY:2)")
        takeoffs = self.synth.synthesize([result, result])
        assert by_key(takeoffs)["w18x106"].quantity == 2

    def test_sources_unique(self):
        takeoffs = self.synth.synthesize([
            make_result("r1", "W18x106 (QTY:2)", drawing_number="S-201"),
            make_result("r2", "W18x106 (QTY:1) AT GRID B", drawing_number="S-201"),
        ])
        beam = by_key(takeoffs)["w18x106"]
        assert beam.sources == ["S-201"]
        assert beam.quantity == 3


# ============================================================================
# HELPERS
# ============================================================================

class TestCategories:

    @pytest.mark.parametrize("material,expected", [
        ("structural steel", "Structural Steel"),
        ("rebar #5", "Concrete"),
        ("osb sheathing", "Wood"),
        ("door hardware", "Openings"),
        ("pvc conduit", "MEP"),
        ("latex paint", "Finishes"),
        ("misc item", "General"),
    ])
    def test_categorize(self, material, expected):
        assert categorize(material) == expected

    def test_group_by_category(self):
        takeoffs = TakeoffSynthesizer().synthesize([
            make_result("r1", "W18x106 (QTY:2) 2x10 JOISTS", enrich=False),
        ])
        grouped = group_by_category(takeoffs)
        assert [t.key for t in grouped["Structural Steel"]][0] == "w18x106"
        assert "2x10" in [t.key for t in grouped["Wood"]]
