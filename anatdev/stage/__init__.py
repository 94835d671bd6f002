"""
anatdev Stage Module
====================
發育階段模組: preceded_by 排序、nested set model 與階段區間查詢

使用範例:
    from anatdev.stage import StageNestedSetBuilder, StageRangeResolver

    builder = StageNestedSetBuilder(stages, taxon_constraints)
    resolver = StageRangeResolver(builder)
    resolver.get_stage_ids_between("UBERON:0000106", "UBERON:0000113", taxon_id=9606)

版本: 1.0.0
"""

from anatdev.stage.nested_set import (
    NestedSetModel,
    compute_nested_set_model,
    prepare_stage_ontology,
    StageNestedSetBuilder,
)

from anatdev.stage.range_resolver import StageRangeResolver

__all__ = [
    "NestedSetModel",
    "compute_nested_set_model",
    "prepare_stage_ontology",
    "StageNestedSetBuilder",
    "StageRangeResolver",
]
