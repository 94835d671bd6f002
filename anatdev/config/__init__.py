"""
anatdev Configuration Module
============================
Configuration objects for taxon constraint generation and stage modelling.

Components (re-exported):
    From settings:
        - TaxonConstraintConfig: taxon constraint generation parameters
        - StageConfig: stage ordering parameters
        - CurationConfig: top-level container with YAML persistence

Usage:
    from anatdev.config import CurationConfig
    config = CurationConfig.load_from_yaml("configs/curation.yaml")

Version: 1.0.0
"""

from anatdev.config.settings import (
    DEFAULT_TEMPORAL_COMMENT_PATTERN,
    TaxonConstraintConfig,
    StageConfig,
    CurationConfig,
)


__all__ = [
    "DEFAULT_TEMPORAL_COMMENT_PATTERN",
    "TaxonConstraintConfig",
    "StageConfig",
    "CurationConfig",
]
