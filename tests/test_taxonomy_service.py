"""
Unit tests for the taxonomy service.
"""
from pathlib import Path

import pytest

from ledgermap.exceptions import (
    InvalidTaxonomyError,
    TaxonomyError,
    TaxonomyNodeNotFoundError,
)
from ledgermap.models.taxonomy import TaxonomyLevel
from ledgermap.services.taxonomy_service import TaxonomyService, get_taxonomy_service


class TestTaxonomyLoading:
    """Tests for building a taxonomy."""

    def test_counts(self, sample_taxonomy: TaxonomyService):
        assert sample_taxonomy.counts() == {
            "major_head": 4,
            "minor_head": 7,
            "grouping": 11,
            "line_item": 3,
        }
        assert sample_taxonomy.node_count == 25

    def test_duplicate_code_rejected(self):
        data = {
            "majorHeads": [
                {"code": "EX", "name": "Expenses"},
                {"code": "EX", "name": "Expenditure"},
            ],
        }

        with pytest.raises(InvalidTaxonomyError) as exc_info:
            TaxonomyService.from_dict(data)

        assert exc_info.value.error_code == "LMP-101"

    def test_same_code_on_different_levels_allowed(self):
        taxonomy = TaxonomyService.from_dict({
            "majorHeads": [{"code": "X", "name": "Expenses"}],
            "minorHeads": [{"code": "X", "name": "Other Expenses", "majorHeadCode": "X"}],
        })

        assert taxonomy.get(TaxonomyLevel.MAJOR_HEAD, "X").name == "Expenses"
        assert taxonomy.get(TaxonomyLevel.MINOR_HEAD, "X").name == "Other Expenses"

    def test_missing_parent_code_rejected(self):
        data = {
            "majorHeads": [{"code": "EX", "name": "Expenses"}],
            "minorHeads": [{"code": "OE", "name": "Other Expenses"}],
        }

        with pytest.raises(InvalidTaxonomyError):
            TaxonomyService.from_dict(data)

    def test_malformed_entry_rejected(self):
        with pytest.raises(InvalidTaxonomyError):
            TaxonomyService.from_dict({"majorHeads": [{"name": "No code"}]})

    def test_dangling_parent_tolerated(self):
        taxonomy = TaxonomyService.from_dict({
            "majorHeads": [{"code": "EX", "name": "Expenses"}],
            "minorHeads": [{"code": "OE", "name": "Other Expenses", "majorHeadCode": "GONE"}],
        })

        assert [n.code for n in taxonomy.dangling_nodes()] == ["OE"]

    def test_from_yaml_missing_file(self, tmp_path: Path):
        with pytest.raises(TaxonomyError):
            TaxonomyService.from_yaml(tmp_path / "missing.yaml")

    def test_from_yaml_invalid(self, tmp_path: Path):
        path = tmp_path / "broken.yaml"
        path.write_text("majorHeads: [\n", encoding="utf-8")

        with pytest.raises(TaxonomyError):
            TaxonomyService.from_yaml(path)


class TestTaxonomyQueries:
    """Tests for lookups and navigation."""

    def test_get(self, sample_taxonomy: TaxonomyService):
        node = sample_taxonomy.get(TaxonomyLevel.GROUPING, "EX-OE-RENT")

        assert node.name == "Rent Expense"
        assert node.parent_code == "EX-OE"
        assert sample_taxonomy.get(TaxonomyLevel.GROUPING, "NOPE") is None
        assert sample_taxonomy.get(TaxonomyLevel.GROUPING, None) is None

    def test_require(self, sample_taxonomy: TaxonomyService):
        assert sample_taxonomy.require(TaxonomyLevel.MAJOR_HEAD, "EX").name == "Expenses"

        with pytest.raises(TaxonomyNodeNotFoundError) as exc_info:
            sample_taxonomy.require(TaxonomyLevel.GROUPING, "NOPE")

        assert exc_info.value.http_status == 404
        assert exc_info.value.details == {"level": "Grouping", "code": "NOPE"}

    def test_children_in_source_order(self, sample_taxonomy: TaxonomyService):
        minor = sample_taxonomy.get(TaxonomyLevel.MINOR_HEAD, "EX-EB")

        assert [g.code for g in sample_taxonomy.children(minor)] == ["EX-EB-SW", "EX-EB-STW"]

    def test_children_are_scoped_by_level(self, sample_taxonomy: TaxonomyService):
        current_assets = sample_taxonomy.get(TaxonomyLevel.MINOR_HEAD, "AS-CA")

        assert [g.code for g in sample_taxonomy.children(current_assets)] == [
            "AS-CA-TR",
            "AS-CA-CASH",
        ]

    def test_ancestors(self, sample_taxonomy: TaxonomyService):
        line_item = sample_taxonomy.get(TaxonomyLevel.LINE_ITEM, "LI-OFFICE")

        chain = sample_taxonomy.ancestors(line_item)

        assert chain[TaxonomyLevel.GROUPING].code == "EX-OE-RENT"
        assert chain[TaxonomyLevel.MINOR_HEAD].code == "EX-OE"
        assert chain[TaxonomyLevel.MAJOR_HEAD].code == "EX"

    def test_ancestors_broken_chain(self):
        taxonomy = TaxonomyService.from_dict({
            "majorHeads": [{"code": "EX", "name": "Expenses"}],
            "minorHeads": [{"code": "OE", "name": "Other Expenses", "majorHeadCode": "EX"}],
            "groupings": [{"code": "G1", "name": "Rent", "minorHeadCode": "GONE"}],
        })

        grouping = taxonomy.get(TaxonomyLevel.GROUPING, "G1")

        assert taxonomy.ancestors(grouping) is None
        assert taxonomy.parent(grouping) is None

    def test_is_child_of(self, sample_taxonomy: TaxonomyService):
        grouping = sample_taxonomy.get(TaxonomyLevel.GROUPING, "AS-CA-TR")
        current_assets = sample_taxonomy.get(TaxonomyLevel.MINOR_HEAD, "AS-CA")
        current_liabilities = sample_taxonomy.get(TaxonomyLevel.MINOR_HEAD, "EL-CL")

        assert sample_taxonomy.is_child_of(grouping, current_assets)
        assert not sample_taxonomy.is_child_of(grouping, current_liabilities)

    def test_to_dict_uses_source_keys(self, scenario_taxonomy: TaxonomyService):
        assert scenario_taxonomy.to_dict() == {
            "majorHeads": [{"code": "Maj1", "name": "Expenses"}],
            "minorHeads": [{"code": "M1", "name": "Other Expenses", "majorHeadCode": "Maj1"}],
            "groupings": [{"code": "G1", "name": "Rent Expense", "minorHeadCode": "M1"}],
            "lineItems": [],
        }


class TestBundledTaxonomy:
    """Tests for the bundled Schedule III taxonomy."""

    def test_loads_without_dangling_nodes(self, default_taxonomy: TaxonomyService):
        counts = default_taxonomy.counts()

        assert counts["major_head"] == 4
        assert counts["grouping"] > 30
        assert default_taxonomy.dangling_nodes() == []

    def test_rent_expense_chain(self, default_taxonomy: TaxonomyService):
        grouping = default_taxonomy.get(TaxonomyLevel.GROUPING, "GR040601")

        chain = default_taxonomy.ancestors(grouping)

        assert grouping.name == "Rent Expense"
        assert chain[TaxonomyLevel.MINOR_HEAD].name == "Other Expenses"
        assert chain[TaxonomyLevel.MAJOR_HEAD].name == "Expenses"

    def test_singleton_loads_configured_file(self):
        taxonomy = get_taxonomy_service()

        assert taxonomy is get_taxonomy_service()
        assert taxonomy.get(TaxonomyLevel.MAJOR_HEAD, "MH02").name == "Assets"
