"""
Unit Tests for Curation Settings
================================
測試設定物件與 YAML 讀寫
"""
import logging
import pytest
import yaml
from pathlib import Path

from anatdev.config import (
    DEFAULT_TEMPORAL_COMMENT_PATTERN,
    CurationConfig,
    StageConfig,
    TaxonConstraintConfig,
)
from anatdev.core import PART_OF_ID, PRECEDED_BY_ID


class TestDefaults:
    """測試預設值"""

    def test_taxon_constraint_defaults(self):
        config = TaxonConstraintConfig()

        assert config.taxonomy_prefix == "NCBITaxon:"
        assert config.propagating_relations == [PART_OF_ID]
        assert config.snapshot_prefix == "uberon_subset"
        assert config.store_reasoning_source

    def test_stage_defaults(self):
        config = StageConfig()

        assert config.stage_relations == [PART_OF_ID]
        assert config.preceded_by_id == PRECEDED_BY_ID
        assert config.temporal_comment_pattern == DEFAULT_TEMPORAL_COMMENT_PATTERN
        assert config.stage_roots == []
        assert config.ignored_stage_roots == []
        assert config.removed_children_of == []

    def test_prefilter_steps_coerced_to_int(self):
        config = TaxonConstraintConfig(prefilter_steps={"7955": ["9606", 10090]})
        assert config.prefilter_steps == {7955: [9606, 10090]}


class TestYaml:
    """測試 YAML 讀寫"""

    def test_save_and_load(self, tmp_path: Path):
        config = CurationConfig(
            taxon_constraints=TaxonConstraintConfig(
                ignored_subgraph_roots=["UBERON:0000466"],
                prefilter_steps={7955: [9606]},
            ),
            stages=StageConfig(
                stage_relations=[PART_OF_ID, "RO:0002092"],
                stage_roots=["UBERON:0000104"],
            ),
            log_level="DEBUG",
        )
        path = tmp_path / "configs" / "curation.yaml"
        config.save_to_yaml(path)

        raw = yaml.safe_load(path.read_text())
        assert raw["version"] == "1.0"
        assert "updated_at" in raw

        loaded = CurationConfig.load_from_yaml(path)
        assert loaded.to_dict() == config.to_dict()

    def test_partial_file(self, tmp_path: Path):
        path = tmp_path / "curation.yaml"
        path.write_text("taxon_constraints:\n  snapshot_prefix: subset_\nlog_level: warning\n")

        loaded = CurationConfig.load_from_yaml(path)
        assert loaded.taxon_constraints.snapshot_prefix == "subset_"
        assert loaded.taxon_constraints.propagating_relations == [PART_OF_ID]
        assert loaded.stages == StageConfig()
        assert loaded.log_level == "WARNING"

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "curation.yaml"
        path.write_text("")
        assert CurationConfig.load_from_yaml(path).to_dict() == CurationConfig().to_dict()

    def test_unknown_keys_ignored(self, tmp_path: Path, caplog):
        path = tmp_path / "curation.yaml"
        path.write_text("stages:\n  unknown_option: 1\nextra: true\n")

        with caplog.at_level(logging.WARNING):
            loaded = CurationConfig.load_from_yaml(path)

        assert loaded.stages == StageConfig()
        assert "stages.unknown_option" in caplog.text
        assert "extra" in caplog.text

    @pytest.mark.parametrize("content", ["stages: [unclosed\n", "- a list\n"])
    def test_malformed_file(self, tmp_path: Path, content):
        path = tmp_path / "curation.yaml"
        path.write_text(content)
        with pytest.raises(ValueError):
            CurationConfig.load_from_yaml(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            CurationConfig.load_from_yaml(tmp_path / "missing.yaml")
