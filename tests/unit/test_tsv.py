"""
Unit Tests for Taxon Constraint Tables
======================================
測試物種列表、物種約束表與覆寫表的讀寫
"""
import pytest
from pathlib import Path

from anatdev.core import OntologyConfigurationError, TaxonConstraintFormatError
from anatdev.taxon import (
    apply_taxon_overrides,
    extract_taxon_constraints,
    extract_taxon_ids,
    extract_taxon_ids_from_constraints,
    extract_taxon_ids_from_map,
    load_taxon_overrides,
    parse_bool,
    write_taxon_constraints,
)


# =============================================================================
# Fixtures
# =============================================================================
@pytest.fixture
def fixtures_dir() -> Path:
    """獲取 fixtures 目錄路徑"""
    return Path(__file__).parent.parent / "fixtures"


@pytest.fixture
def constraints(fixtures_dir: Path):
    return extract_taxon_constraints(fixtures_dir / "taxon_constraints.tsv")


# =============================================================================
# Test Booleans
# =============================================================================
class TestParseBool:
    """測試布林值解析"""

    @pytest.mark.parametrize("value", ["t", "T", "true", "TRUE", "1", "y", "Yes", " t "])
    def test_true(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["f", "F", "false", "0", "n", "NO"])
    def test_false(self, value):
        assert parse_bool(value) is False

    @pytest.mark.parametrize("value", ["", "maybe", "2"])
    def test_invalid(self, value):
        with pytest.raises(TaxonConstraintFormatError):
            parse_bool(value)


# =============================================================================
# Test Taxon List
# =============================================================================
class TestTaxonList:
    """測試物種列表"""

    def test_extract_taxon_ids(self, fixtures_dir: Path):
        assert extract_taxon_ids(fixtures_dir / "taxa.tsv") == [8, 13, 14, 15]

    def test_duplicates_and_no_header(self, tmp_path: Path):
        path = tmp_path / "taxa.tsv"
        path.write_text("9606\thuman\n10090\n9606\n")
        assert extract_taxon_ids(path) == [9606, 10090]

    def test_invalid_line(self, tmp_path: Path):
        path = tmp_path / "taxa.tsv"
        path.write_text("taxon_id\n9606\nhuman\n")
        with pytest.raises(TaxonConstraintFormatError):
            extract_taxon_ids(path)


# =============================================================================
# Test Constraint Table
# =============================================================================
class TestConstraintTable:
    """測試物種約束表"""

    def test_extract_taxon_constraints(self, constraints):
        assert constraints == {
            "U:1": {8, 13, 15},
            "U:22": {13, 15},
            "U:30": {15},
            "S:998": {8},
        }

    def test_extract_taxon_ids_from_constraints(self, fixtures_dir: Path):
        path = fixtures_dir / "taxon_constraints.tsv"
        assert extract_taxon_ids_from_constraints(path) == [8, 13, 15]

    def test_extract_with_overrides(self, fixtures_dir: Path):
        constraints = extract_taxon_constraints(
            fixtures_dir / "taxon_constraints.tsv",
            overrides={"U:2": {8, 99}},
        )
        # override taxa restricted to the table columns
        assert constraints["U:22"] == {8}
        assert constraints["U:1"] == {8, 13, 15}

    def test_extract_taxon_ids_from_map(self, constraints):
        assert extract_taxon_ids_from_map(constraints) == {8, 13, 15}
        with pytest.raises(TaxonConstraintFormatError):
            extract_taxon_ids_from_map({"U:1": set()})

    def test_invalid_header(self, tmp_path: Path):
        path = tmp_path / "constraints.tsv"
        path.write_text("uberon_id\tname\t8\nU:1\tx\tt\n")
        with pytest.raises(TaxonConstraintFormatError):
            extract_taxon_constraints(path)

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "constraints.tsv"
        path.write_text("# nothing here\n")
        with pytest.raises(TaxonConstraintFormatError):
            extract_taxon_constraints(path)

    def test_incomplete_row(self, tmp_path: Path):
        path = tmp_path / "constraints.tsv"
        path.write_text("domain_id\tdomain_name\t8\t13\nU:1\tx\tt\n")
        with pytest.raises(TaxonConstraintFormatError):
            extract_taxon_constraints(path)

    def test_duplicate_class(self, tmp_path: Path):
        path = tmp_path / "constraints.tsv"
        path.write_text("domain_id\tdomain_name\t8\nU:1\tx\tt\nU:1\tx\tf\n")
        with pytest.raises(TaxonConstraintFormatError):
            extract_taxon_constraints(path)

    def test_write_taxon_constraints(self, tmp_path: Path):
        path = tmp_path / "out" / "constraints.tsv"
        write_taxon_constraints(
            {"U:2": {15}, "U:1": {8, 15}, "S:9": set()},
            {"U:1": "anatomical entity", "U:2": None},
            [8, 15],
            path,
        )

        assert path.read_text(encoding="utf-8").splitlines() == [
            "domain_id\tdomain_name\t8\t15",
            "S:9\t-\tf\tf",
            "U:1\tanatomical entity\tt\tt",
            "U:2\t-\tf\tt",
        ]
        assert not (tmp_path / "out" / "constraints.tsv.tmp").exists()


# =============================================================================
# Test Overrides
# =============================================================================
class TestOverrides:
    """測試人工覆寫"""

    def test_load_taxon_overrides(self, fixtures_dir: Path):
        overrides = load_taxon_overrides(fixtures_dir / "taxon_overrides.tsv")
        assert overrides == {"U:": {8, 15}, "U:3": {15}, "S:998": set()}

    def test_longest_prefix_wins(self, fixtures_dir: Path, constraints):
        overrides = load_taxon_overrides(fixtures_dir / "taxon_overrides.tsv")
        result = apply_taxon_overrides(constraints, overrides)

        assert result == {
            "U:1": {8, 15},
            "U:22": {8, 15},
            "U:30": {15},
            "S:998": set(),
        }
        # input map left untouched
        assert constraints["S:998"] == {8}

    def test_restricted_to_allowed_taxa(self, constraints):
        result = apply_taxon_overrides(constraints, {"U:1": {8, 15}}, taxon_ids=[15])
        assert result["U:1"] == {15}
        assert result["U:22"] == {13, 15}

    def test_duplicate_prefix(self, tmp_path: Path):
        path = tmp_path / "overrides.tsv"
        path.write_text("U:\t8\nU:\t15\n")
        with pytest.raises(OntologyConfigurationError):
            load_taxon_overrides(path)

    def test_invalid_taxon_list(self, tmp_path: Path):
        path = tmp_path / "overrides.tsv"
        path.write_text("U:\t8,human\n")
        with pytest.raises(TaxonConstraintFormatError):
            load_taxon_overrides(path)
