"""
anatdev Curation Settings
=========================
Centralized settings for taxon constraint generation and stage modelling.

Module: anatdev/config/settings.py

Purpose:
    Provide explicit configuration objects that are passed to the engine
    entry points (no global instance):
    - Taxon constraint generation (relations, ignored subgraphs, pre-filters)
    - Developmental stage ordering (relations, comment pattern, stage hierarchy selection)
    - Persistence to YAML

Components:
    - TaxonConstraintConfig: taxon constraint generation parameters
    - StageConfig: nested set model / stage range parameters
    - CurationConfig: top-level container, YAML round-trip

Dependencies:
    - yaml: Configuration file I/O
    - pathlib: File path handling

Called by:
    - anatdev/taxon/constraints.py
    - anatdev/stage/nested_set.py
    - scripts/generate_taxon_constraints.py, scripts/query_stage_range.py

Version: 1.0.0
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from anatdev.core.types import (
    IMMEDIATELY_PRECEDED_BY_ID,
    PART_OF_ID,
    PRECEDED_BY_ID,
    TAXONOMY_PREFIX,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPORAL_COMMENT_PATTERN = r".*?Temporal ordering number - ([0-9]+?)\D*?$"


# =============================================================================
# Taxon Constraints
# =============================================================================
@dataclass
class TaxonConstraintConfig:
    """
    Taxon constraint generation parameters
    """
    taxonomy_prefix: str = TAXONOMY_PREFIX

    # Relations (with their sub-properties) along which taxon facts are inherited
    propagating_relations: List[str] = field(default_factory=lambda: [PART_OF_ID])

    # Roots of subgraphs left out of the computation (e.g. obsolete-ish branches)
    ignored_subgraph_roots: List[str] = field(default_factory=list)

    # {taxon id: [pre-filter taxon ids]}, expanded to taxonomy descendants
    prefilter_steps: Dict[int, List[int]] = field(default_factory=dict)

    # Snapshot files are named <snapshot_prefix><taxon id>.owl
    snapshot_prefix: str = "uberon_subset"
    store_reasoning_source: bool = True

    def __post_init__(self):
        # YAML keys come back as ints already, but CLI/JSON sources give strings
        self.prefilter_steps = {
            int(taxon): [int(step) for step in steps]
            for taxon, steps in self.prefilter_steps.items()
        }


# =============================================================================
# Developmental Stages
# =============================================================================
@dataclass
class StageConfig:
    """Nested set model and stage range parameters"""
    stage_relations: List[str] = field(default_factory=lambda: [PART_OF_ID])
    preceded_by_id: str = PRECEDED_BY_ID
    immediately_preceded_by_id: str = IMMEDIATELY_PRECEDED_BY_ID
    temporal_comment_pattern: str = DEFAULT_TEMPORAL_COMMENT_PATTERN

    # Stage ontology preparation (prepare_stage_ontology), empty lists skip a step
    ignored_stage_roots: List[str] = field(default_factory=list)  # removed with their subgraph
    removed_children_of: List[str] = field(default_factory=list)  # only descendants removed
    stage_roots: List[str] = field(default_factory=list)  # e.g. UBERON:0000104 life cycle


# =============================================================================
# Top-level Configuration
# =============================================================================
@dataclass
class CurationConfig:
    """
    Top-level configuration

    Usage:
        config = CurationConfig.load_from_yaml("configs/curation.yaml")
        engine = TaxonConstraintEngine(domain, taxonomy, config.taxon_constraints)
    """
    taxon_constraints: TaxonConstraintConfig = field(default_factory=TaxonConstraintConfig)
    stages: StageConfig = field(default_factory=StageConfig)
    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "taxon_constraints": asdict(self.taxon_constraints),
            "stages": asdict(self.stages),
            "log_level": self.log_level,
        }

    def save_to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to YAML file"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        config = {
            "version": "1.0",
            "updated_at": datetime.now().isoformat(),
            **self.to_dict(),
        }

        with open(path, "w") as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Configuration saved to {path}")

    @classmethod
    def load_from_yaml(cls, path: Union[str, Path]) -> "CurationConfig":
        """Load configuration from YAML file; unknown keys are ignored"""
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            try:
                config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in config file {path}: {e}") from e
        if not isinstance(config, dict):
            raise ValueError(f"Config file {path} must contain a mapping")

        result = cls(
            taxon_constraints=_build_section(
                TaxonConstraintConfig, config.get("taxon_constraints"), "taxon_constraints"
            ),
            stages=_build_section(StageConfig, config.get("stages"), "stages"),
        )
        if "log_level" in config:
            result.log_level = str(config["log_level"]).upper()

        for key in config:
            if key not in ("version", "updated_at", "taxon_constraints", "stages", "log_level"):
                logger.warning(f"Unknown configuration key ignored: {key}")

        logger.info(f"Configuration loaded from {path}")
        return result


def _build_section(section_cls, values, section_name: str):
    known = {f.name for f in fields(section_cls)}
    kwargs = {}
    for key, value in (values or {}).items():
        if key in known:
            kwargs[key] = value
        else:
            logger.warning(f"Unknown configuration key ignored: {section_name}.{key}")
    return section_cls(**kwargs)
