"""
Unit tests for the cash flow mapping registry.
"""
import pytest

from atabai.exceptions import InvalidRegistryError
from atabai.mappings import (
    CASH_FLOW_LINES,
    FlowDirection,
    LineMapping,
    MappingRegistry,
    Section,
    normalize_code,
)


class TestNormalizeCode:
    """Tests for raw code normalization."""

    @pytest.mark.parametrize(
        "raw",
        ["010", " 010 ", "10", "0010", 10, 10.0, "10.0"],
    )
    def test_equivalent_forms(self, raw):
        """Test padded, trimmed and numeric forms map to the same key."""
        assert normalize_code(raw) == "010"

    @pytest.mark.parametrize(
        "raw",
        [None, "", "abc", "01a", 10.5, True, "-10", "²", "0¹0", "①", "١٠"],
    )
    def test_invalid_codes(self, raw):
        """Test non-code input returns None."""
        assert normalize_code(raw) is None


class TestMappingRegistry:
    """Tests for MappingRegistry lookups."""

    def test_every_code_resolves_to_itself(self, registry: MappingRegistry):
        """Test each registered code maps back to its own entry."""
        for mapping in CASH_FLOW_LINES:
            assert registry.lookup(mapping.source_code) == mapping

    def test_lookup_normalizes(self, registry: MappingRegistry):
        """Test lookup accepts under-padded and numeric codes."""
        assert registry.lookup(10).source_code == "010"
        assert registry.lookup(" 230").target_classification == "Cash at beginning of period"

    def test_unknown_code(self, registry: MappingRegistry):
        """Test unknown codes return None."""
        assert registry.lookup("999") is None
        assert registry.lookup("") is None
        assert "999" not in registry
        assert "010" in registry

    def test_footnote_markers(self, registry: MappingRegistry):
        """Test superscript and non-Latin digits are unknown codes."""
        for raw in ("²", "0¹0", "①", "١٠"):
            assert registry.lookup(raw) is None

    def test_size(self, registry: MappingRegistry):
        """Test registry holds every literal line."""
        assert len(registry) == len(CASH_FLOW_LINES) == 24

    def test_list_by_section_keeps_table_order(self, registry: MappingRegistry):
        """Test section listing order."""
        investing = [m.source_code for m in registry.list_by_section(Section.INVESTING)]

        assert investing == ["060", "070", "080", "090", "100"]

    def test_list_by_section_accepts_value(self, registry: MappingRegistry):
        """Test sections may be passed by their string value."""
        reconciliation = registry.list_by_section("RECONCILIATION")

        assert [m.source_code for m in reconciliation] == ["220", "221", "230", "240"]

    def test_section_skeleton(self, registry: MappingRegistry):
        """Test skeleton has one empty container per section."""
        skeleton = registry.section_skeleton()

        assert list(skeleton) == [
            "OPERATING ACTIVITIES",
            "INVESTING ACTIVITIES",
            "FINANCING ACTIVITIES",
            "RECONCILIATION",
        ]
        assert all(v == [] for v in skeleton.values())

    def test_computed_lines(self, registry: MappingRegistry):
        """Test subtotal and reconciliation totals are flagged computed."""
        computed = {m.source_code for m in registry if m.is_computed}

        assert computed == {"050", "180", "220", "240"}

    def test_registry_is_read_only(self, registry: MappingRegistry):
        """Test the underlying table cannot be mutated."""
        with pytest.raises(TypeError):
            registry._by_code["999"] = CASH_FLOW_LINES[0]


class TestRegistryInvariants:
    """Tests for invariants enforced at construction."""

    def test_duplicate_code_rejected(self):
        """Test duplicate source codes raise."""
        line = LineMapping("010", "Receipts", Section.OPERATING, FlowDirection.INFLOW)

        with pytest.raises(InvalidRegistryError) as exc_info:
            MappingRegistry([line, line])

        assert exc_info.value.details["source_code"] == "010"

    def test_sourced_total_rejected(self):
        """Test a sourced activity line cannot be a total."""
        line = LineMapping("050", "Subtotal", Section.OPERATING, FlowDirection.SUBTOTAL)

        with pytest.raises(InvalidRegistryError):
            MappingRegistry([line])

    def test_computed_total_allowed(self):
        """Test computed subtotals may use any direction."""
        line = LineMapping("050", "Subtotal", Section.OPERATING, FlowDirection.SUBTOTAL, is_computed=True)

        assert len(MappingRegistry([line])) == 1

    def test_reconciliation_balance_allowed(self):
        """Test reconciliation balances are not flow lines."""
        line = LineMapping("230", "Opening", Section.RECONCILIATION, FlowDirection.BALANCE)

        assert MappingRegistry([line]).lookup("230") == line
