"""
Stage Range Resolver
====================
發育階段區間查詢: 利用 nested set model 取得兩個階段之間的所有階段

A stage lies between ``start`` and ``end`` when its left bound falls between
their left bounds, its right bound between their right bounds, and it is not
deeper than the deepest of the two. Only the most precise stages are kept.

版本: 1.0.0
"""
from __future__ import annotations

import logging
from typing import List, Optional

from anatdev.core.exceptions import StageRangeError
from anatdev.core.types import TaxonConstraintMap
from anatdev.stage.nested_set import NestedSetModel, StageNestedSetBuilder

logger = logging.getLogger(__name__)


class StageRangeResolver:
    """
    Usage:
        resolver = StageRangeResolver(StageNestedSetBuilder(stages, constraints))
        resolver.get_stage_ids_between("UBERON:0000106", "UBERON:0000113", taxon_id=9606)
    """

    def __init__(
        self,
        builder: StageNestedSetBuilder,
        taxon_constraints: Optional[TaxonConstraintMap] = None,
    ):
        self.builder = builder
        self.taxon_constraints = (
            taxon_constraints if taxon_constraints is not None else builder.taxon_constraints
        )

    @property
    def ontology(self):
        return self.builder.ontology

    def exists_in_taxon(self, stage_id: str, taxon_id: Optional[int]) -> bool:
        if self.taxon_constraints is None or not taxon_id:
            return True
        return taxon_id in self.taxon_constraints.get(stage_id, ())

    def _check_stage(self, stage_id: str, taxon_id: Optional[int], role: str) -> None:
        if not self.ontology.has_class(stage_id):
            raise StageRangeError(f"{role} stage not found in ontology", [stage_id])
        if not self.exists_in_taxon(stage_id, taxon_id):
            raise StageRangeError(
                f"{role} stage does not belong to the requested taxon {taxon_id}", [stage_id]
            )

    def get_stage_ids_between(
        self,
        start_id: str,
        end_id: str,
        taxon_id: Optional[int] = None,
        nested_model: Optional[NestedSetModel] = None,
    ) -> List[str]:
        """
        Stages occurring from ``start_id`` to ``end_id``, in chronological order

        Args:
            start_id: first stage
            end_id: last stage
            taxon_id: keep only stages existing in this taxon (None: any)
            nested_model: model to use instead of the one built from the least
                common part_of ancestor of both stages

        Raises:
            StageRangeError: unknown stage, stage absent from the taxon,
                no unique common ancestor, or disconnected stages
        """
        self._check_stage(start_id, taxon_id, "Start")
        self._check_stage(end_id, taxon_id, "End")

        if start_id == end_id:
            return [start_id]

        stage_relations = self.builder.stage_relations
        if nested_model is None:
            lcas = self.ontology.least_common_ancestors(start_id, end_id, stage_relations)
            # the part_of graph must be a tree
            if len(lcas) != 1:
                raise StageRangeError(
                    "The developmental stages do not represent a tree over part_of "
                    "relations, least common ancestors of start and end stages",
                    sorted(lcas),
                )
            nested_model = self.builder.generate_nested_set_model(next(iter(lcas)))

        for stage_id in (start_id, end_id):
            if stage_id not in nested_model:
                raise StageRangeError("Stage missing from the nested set model", [stage_id])
        start = nested_model[start_id]
        end = nested_model[end_id]
        max_level = max(start.level, end.level)

        selected = {
            stage_id for stage_id, entry in nested_model.items()
            if self.exists_in_taxon(stage_id, taxon_id)
            and start.left <= entry.left <= end.left
            and start.right <= entry.right <= end.right
            and entry.level <= max_level
        }

        # keep only the most precise stages
        ancestors = set()
        for stage_id in selected:
            ancestors |= self.ontology.ancestors_of(stage_id, stage_relations)
        selected -= ancestors

        if not selected:
            raise StageRangeError(
                "Start and end stages are not connected", [start_id, end_id]
            )

        result = sorted(selected, key=lambda stage_id: nested_model[stage_id].left)
        logger.debug(f"{len(result)} stages between {start_id} and {end_id}: {result}")
        return result
