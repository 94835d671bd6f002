"""
Integration Tests: Taxon Constraints + Stage Ranges
===================================================
End-to-end tests that verify:
  1. Ontology files → taxon constraint TSV (with overrides and snapshots)
  2. Stage ontology + constraint TSV → taxon-aware stage range queries
  3. Command line scripts: exit codes and console output

These tests use the small fixture ontologies and run in seconds.

Module: tests/integration/test_pipeline.py
"""
from __future__ import annotations

import importlib.util
import sys
import pytest
from pathlib import Path

from anatdev.ontology import OntologyLoader
from anatdev.stage import StageNestedSetBuilder, StageRangeResolver
from anatdev.taxon import (
    extract_taxon_constraints,
    extract_taxon_ids_from_constraints,
    generate_taxon_constraints_file,
    write_taxon_constraints,
)


PROJECT_ROOT = Path(__file__).parent.parent.parent


# =============================================================================
# Fixtures
# =============================================================================
@pytest.fixture
def fixtures_dir() -> Path:
    return PROJECT_ROOT / "tests" / "fixtures"


@pytest.fixture
def stage_constraints_file(fixtures_dir: Path, tmp_path: Path) -> Path:
    """
    Stage constraint table for two species:
      9606: every stage
      10090: no fetal stages (ST:0005, ST:0013, ST:0014)
    """
    stages = OntologyLoader().load(fixtures_dir / "stages.obo")
    constraints = {}
    for stage_id in stages.all_classes():
        constraints[stage_id] = {9606, 10090}
    for stage_id in ("ST:0005", "ST:0013", "ST:0014"):
        constraints[stage_id] = {9606}

    labels = {stage_id: stages.get_label(stage_id) for stage_id in constraints}
    path = tmp_path / "stage_constraints.tsv"
    write_taxon_constraints(constraints, labels, [9606, 10090], path)
    return path


def load_script(name: str):
    """Import a script of the scripts/ directory as a module"""
    path = PROJECT_ROOT / "scripts" / f"{name}.py"
    spec = importlib.util.spec_from_file_location(name, path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


# =============================================================================
# Library Pipeline
# =============================================================================
class TestConstraintPipeline:
    """物種約束表 → 階段區間查詢"""

    def test_constraints_file_then_query(self, fixtures_dir, tmp_path):
        output = tmp_path / "taxon_constraints.tsv"
        generate_taxon_constraints_file(
            fixtures_dir / "taxon_domain.obo",
            fixtures_dir / "taxonomy.obo",
            fixtures_dir / "taxa.tsv",
            output,
            output_dir=tmp_path / "snapshots",
        )

        assert extract_taxon_ids_from_constraints(output) == [8, 13, 14, 15]
        constraints = extract_taxon_constraints(output)
        assert constraints["U:22"] == {13, 14, 15}
        assert sorted(p.name for p in (tmp_path / "snapshots").iterdir()) == [
            "uberon_reasoning_source.owl",
            "uberon_subset13.owl",
            "uberon_subset14.owl",
            "uberon_subset15.owl",
            "uberon_subset8.owl",
        ]

    def test_stage_ranges_per_species(self, fixtures_dir, stage_constraints_file):
        stages = OntologyLoader().load(fixtures_dir / "stages.obo")
        constraints = extract_taxon_constraints(stage_constraints_file)
        resolver = StageRangeResolver(StageNestedSetBuilder(stages), constraints)

        assert resolver.get_stage_ids_between("ST:0004", "ST:0007", taxon_id=9606) == [
            "ST:0004", "ST:0005", "ST:0006", "ST:0007",
        ]
        assert resolver.get_stage_ids_between("ST:0004", "ST:0007", taxon_id=10090) == [
            "ST:0004", "ST:0006", "ST:0007",
        ]


# =============================================================================
# Scripts
# =============================================================================
class TestScripts:
    """命令列腳本"""

    def test_generate_taxon_constraints_script(self, fixtures_dir, tmp_path, monkeypatch):
        script = load_script("generate_taxon_constraints")
        output = tmp_path / "taxon_constraints.tsv"
        monkeypatch.setattr(sys, "argv", [
            "generate_taxon_constraints.py",
            "--domain", str(fixtures_dir / "taxon_domain.obo"),
            "--taxonomy", str(fixtures_dir / "taxonomy.obo"),
            "--taxa", str(fixtures_dir / "taxa.tsv"),
            "--overrides", str(fixtures_dir / "taxon_overrides.tsv"),
            "--output", str(output),
        ])

        assert script.main() == 0
        assert extract_taxon_constraints(output)["S:998"] == set()

    def test_generate_taxon_constraints_script_failure(self, fixtures_dir, tmp_path, monkeypatch):
        script = load_script("generate_taxon_constraints")
        monkeypatch.setattr(sys, "argv", [
            "generate_taxon_constraints.py",
            "--domain", str(tmp_path / "missing.obo"),
            "--taxonomy", str(fixtures_dir / "taxonomy.obo"),
            "--taxa", str(fixtures_dir / "taxa.tsv"),
            "--output", str(tmp_path / "out.tsv"),
        ])

        assert script.main() == 1
        assert not (tmp_path / "out.tsv").exists()

    def test_query_stage_range_script(
        self, fixtures_dir, stage_constraints_file, monkeypatch, capsys
    ):
        script = load_script("query_stage_range")
        monkeypatch.setattr(sys, "argv", [
            "query_stage_range.py",
            "--stages", str(fixtures_dir / "stages.obo"),
            "--constraints", str(stage_constraints_file),
            "--taxon", "10090",
            "--start", "ST:0004",
            "--end", "ST:0007",
        ])

        assert script.main() == 0
        assert capsys.readouterr().out.splitlines() == [
            "ST:0004\tembryonic stage",
            "ST:0006\tlate fetal stage",
            "ST:0007\tinfant stage",
        ]

    def test_query_stage_range_script_failure(self, fixtures_dir, monkeypatch):
        script = load_script("query_stage_range")
        monkeypatch.setattr(sys, "argv", [
            "query_stage_range.py",
            "--stages", str(fixtures_dir / "stages.obo"),
            "--start", "ST:0010",
            "--end", "ST:0004",
        ])

        assert script.main() == 1

    def test_unsupported_domain_format(self, fixtures_dir, tmp_path, monkeypatch):
        script = load_script("generate_taxon_constraints")
        domain = tmp_path / "domain.json"
        domain.write_text("{}")
        monkeypatch.setattr(sys, "argv", [
            "generate_taxon_constraints.py",
            "--domain", str(domain),
            "--taxonomy", str(fixtures_dir / "taxonomy.obo"),
            "--taxa", str(fixtures_dir / "taxa.tsv"),
            "--output", str(tmp_path / "out.tsv"),
        ])

        assert script.main() == 1
        assert not (tmp_path / "out.tsv").exists()

    def test_missing_config_file(self, fixtures_dir, tmp_path, monkeypatch):
        script = load_script("generate_taxon_constraints")
        monkeypatch.setattr(sys, "argv", [
            "generate_taxon_constraints.py",
            "--domain", str(fixtures_dir / "taxon_domain.obo"),
            "--taxonomy", str(fixtures_dir / "taxonomy.obo"),
            "--taxa", str(fixtures_dir / "taxa.tsv"),
            "--output", str(tmp_path / "out.tsv"),
            "--config", str(tmp_path / "missing.yaml"),
        ])

        assert script.main() == 1
        assert not (tmp_path / "out.tsv").exists()

    @pytest.mark.parametrize("content", [
        "log_level: VERBOSE\n",
        "stages: [unclosed\n",
    ])
    def test_invalid_config_file(self, fixtures_dir, tmp_path, monkeypatch, content):
        script = load_script("query_stage_range")
        config = tmp_path / "curation.yaml"
        config.write_text(content)
        monkeypatch.setattr(sys, "argv", [
            "query_stage_range.py",
            "--stages", str(fixtures_dir / "stages.obo"),
            "--start", "ST:0004",
            "--end", "ST:0007",
            "--config", str(config),
        ])

        assert script.main() == 1

    def test_query_stage_range_with_stage_roots(self, fixtures_dir, tmp_path, monkeypatch, capsys):
        script = load_script("query_stage_range")
        config = tmp_path / "curation.yaml"
        config.write_text("stages:\n  stage_roots: ['ST:0003']\n")
        argv = [
            "query_stage_range.py",
            "--stages", str(fixtures_dir / "stages.obo"),
            "--config", str(config),
        ]

        monkeypatch.setattr(sys, "argv", argv + ["--start", "ST:0007", "--end", "ST:0009"])
        assert script.main() == 0
        assert capsys.readouterr().out.splitlines() == [
            "ST:0007\tinfant stage",
            "ST:0008\tjuvenile stage",
            "ST:0009\tadult stage",
        ]

        # prenatal stages are cut out of the hierarchy
        monkeypatch.setattr(sys, "argv", argv + ["--start", "ST:0004", "--end", "ST:0007"])
        assert script.main() == 1
