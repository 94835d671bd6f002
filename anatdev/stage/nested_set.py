"""
# ==============================================================================
# Module: anatdev/stage/nested_set.py
# ==============================================================================
# Purpose: Order developmental stages by their preceded_by relations and
#          encode the stage part_of tree as a nested set model
#
# Dependencies:
#   - Internal: anatdev.ontology.graph (OntologyGraph)
#               anatdev.config (StageConfig)
#               anatdev.core (Edge, NestedSetEntry, StageRecord, errors)
#
# Input:
#   - Stage ontology with part_of, preceded_by and immediately_preceded_by
#     relations (optionally temporal ordering numbers in comments)
#   - Optional taxon constraints, so that stages of different species are
#     never ordered against each other
#
# Output:
#   - {stage id: NestedSetEntry(left, right, level)} per root, cached
#   - StageRecord transfer objects
#   - prepare_stage_ontology: stage hierarchy cut out of a full ontology
# ==============================================================================
"""
from __future__ import annotations

import logging
import re
from collections import deque
from typing import Dict, Iterable, List, Optional, Sequence, Set

from anatdev.config.settings import StageConfig
from anatdev.core.exceptions import (
    OntologyConfigurationError,
    OntologyDataError,
    StageOrderingError,
)
from anatdev.core.types import (
    Edge,
    NestedSetEntry,
    Quantifier,
    StageRecord,
    TaxonConstraintMap,
)
from anatdev.ontology.graph import OntologyGraph

logger = logging.getLogger(__name__)

NestedSetModel = Dict[str, NestedSetEntry]


# ==============================================================================
# Nested Set Computation
# ==============================================================================
def compute_nested_set_model(
    ontology: OntologyGraph,
    root_id: str,
    ordering: Sequence[str],
    over_properties: Optional[Iterable[str]] = None,
) -> NestedSetModel:
    """
    Nested set parameters of the tree under ``root_id``

    Children are found over subclass edges and ``over_properties``, restricted
    to the classes of ``ordering`` and visited in that order. The root has
    left bound 1 and level 1.

    Raises:
        OntologyDataError: the tree is not simple (a class is reached twice)
    """
    over_properties = list(over_properties or ())
    position = {class_id: index for index, class_id in enumerate(ordering)}
    model: NestedSetModel = {}
    counter = 0

    def visit(class_id: str, level: int) -> None:
        nonlocal counter
        counter += 1
        left = counter
        model[class_id] = NestedSetEntry(left, left, level)

        children = [
            child for child in ontology.direct_descendants_of(class_id, over_properties)
            if child in position
        ]
        for child in sorted(children, key=position.__getitem__):
            if child in model:
                raise OntologyDataError(
                    "The ontology is not a simple tree that can be represented "
                    f"as a nested set model, class already seen while inspecting {class_id}",
                    [child],
                )
            visit(child, level + 1)

        counter += 1
        model[class_id] = NestedSetEntry(left, counter, level)

    visit(root_id, 1)
    return model


# ==============================================================================
# Stage Ontology Preparation
# ==============================================================================
def prepare_stage_ontology(
    ontology: OntologyGraph,
    config: Optional[StageConfig] = None,
) -> int:
    """
    Reduce a full ontology to its developmental stage hierarchy, in place

    Steps, each skipped when its setting is empty:
    1. ``ignored_stage_roots``: remove these classes and their subgraphs
    2. ``removed_children_of``: remove the descendants, keep the classes
    3. ``stage_roots``: keep only the subgraphs under these roots

    All walks follow subclass edges and the stage relations.

    Raises:
        OntologyConfigurationError: a class of ``removed_children_of`` is unknown

    Returns:
        Number of classes removed
    """
    config = config or StageConfig()
    relations = list(config.stage_relations)
    removed = 0

    if config.ignored_stage_roots:
        removed += ontology.remove_subgraphs(config.ignored_stage_roots, over_properties=relations)

    for parent_id in config.removed_children_of:
        if parent_id not in ontology:
            raise OntologyConfigurationError(
                f"A class whose children should be removed could not be found: {parent_id}"
            )
        children = ontology.descendants_of(parent_id, over_properties=relations)
        removed += len(ontology.remove_classes(children))
        logger.debug(f"{len(children)} children of {parent_id} removed")

    if config.stage_roots:
        removed += ontology.filter_subgraphs(config.stage_roots, over_properties=relations)

    logger.info(f"Stage ontology prepared: {removed} classes removed, {ontology.num_classes} left")
    return removed


# ==============================================================================
# Builder
# ==============================================================================
class StageNestedSetBuilder:
    """
    Nested set models of developmental stage ontologies

    Models are cached per root for the lifetime of the builder; a new builder
    is needed after the ontology changes.

    Usage:
        builder = StageNestedSetBuilder(stages, taxon_constraints)
        model = builder.generate_nested_set_model("UBERON:0000104")
        print(model["UBERON:0000068"].left)
    """

    def __init__(
        self,
        ontology: OntologyGraph,
        taxon_constraints: Optional[TaxonConstraintMap] = None,
        config: Optional[StageConfig] = None,
    ):
        self.ontology = ontology
        self.taxon_constraints = taxon_constraints
        self.config = config or StageConfig()

        self._temporal_pattern = re.compile(self.config.temporal_comment_pattern)
        self._models: Dict[str, NestedSetModel] = {}

    @property
    def stage_relations(self) -> List[str]:
        return list(self.config.stage_relations)

    def _preceded_by_family(self) -> Set[str]:
        return set(self.ontology.sub_property_reflexive_closure_of(self.config.preceded_by_id))

    # ==========================================================================
    # Taxon Constraints
    # ==========================================================================
    def exists_in_taxon(self, stage_id: str, taxon_id: Optional[int]) -> bool:
        """Without constraints or taxon every stage exists"""
        if self.taxon_constraints is None or not taxon_id:
            return True
        return taxon_id in self.taxon_constraints.get(stage_id, ())

    def _species_key(self, stage_id: str) -> int:
        if self.taxon_constraints is None:
            return 0
        taxa = self.taxon_constraints.get(stage_id)
        if taxa is not None and len(taxa) == 1:
            return next(iter(taxa))
        return 0

    # ==========================================================================
    # Temporal Ordering
    # ==========================================================================
    def generate_preceded_by_from_comments(self, class_ids: Iterable[str]) -> List[Edge]:
        """
        Turn "Temporal ordering number - N" comments into preceded_by edges

        Each class with a numbered comment gets a preceded_by edge to the class
        with the previous number. Existing edges are left untouched.

        Returns:
            The edges added
        """
        ordering: Dict[int, str] = {}
        for class_id in sorted(class_ids):
            cls = self.ontology.get_class(class_id)
            if cls is None or not cls.comment or not cls.comment.strip():
                continue
            match = self._temporal_pattern.fullmatch(cls.comment)
            if match:
                ordering[int(match.group(1))] = class_id
                logger.debug(f"Temporal ordering {match.group(1)} found for {class_id}")

        ordered = [ordering[number] for number in sorted(ordering)]
        added: List[Edge] = []
        for previous, current in zip(ordered, ordered[1:]):
            edge = Edge(current, previous, self.config.preceded_by_id, Quantifier.SOME)
            if self.ontology.add_edge(edge):
                added.append(edge)
        if added:
            logger.debug(f"{len(added)} preceded_by relations generated from comments")
        return added

    def _outgoing(self, class_id: str, indirect: bool) -> List[Edge]:
        if indirect:
            return self.ontology.outgoing_edges_closure(class_id, [self.config.preceded_by_id])
        return self.ontology.outgoing_edges(class_id)

    def _equal_or_parents_in(self, class_id: str, classes: Set[str]) -> Set[str]:
        """class_id itself if in ``classes``, otherwise its part_of ancestors in ``classes``"""
        if class_id in classes:
            return {class_id}
        return self.ontology.ancestors_of(class_id, self.stage_relations) & classes

    def get_last_class_by_preceded_by(self, class_ids: Iterable[str]) -> str:
        """
        The class no other class of ``class_ids`` is preceded by

        Direct edges are tried first, then edges composed over preceded_by.

        Raises:
            StageOrderingError: cycle, or several unrelated chains
        """
        classes = set(class_ids)
        preceded_by = self._preceded_by_family()

        remaining: Set[str] = set()
        for indirect in (False, True):
            with_successors: Set[str] = set()
            for class_id in sorted(classes):
                for edge in self._outgoing(class_id, indirect):
                    if edge.property_id in preceded_by:
                        with_successors |= self._equal_or_parents_in(edge.target, classes)

            remaining = classes - with_successors
            if not remaining:
                raise StageOrderingError(
                    "Cycle of preceded_by relations among same level classes, "
                    "not possible to determine the last one", sorted(classes)
                )
            if len(remaining) == 1:
                last = remaining.pop()
                logger.debug(f"Last class of the chain identified: {last}")
                return last

        raise StageOrderingError(
            "Missing preceded_by relations: several classes with no preceded_by "
            "relations incoming from same level classes", sorted(remaining)
        )

    def _immediate_predecessor(
        self, class_id: str, edges: List[Edge], classes: Set[str]
    ) -> Optional[str]:
        found: Optional[str] = None
        for edge in edges:
            if edge.property_id != self.config.immediately_preceded_by_id:
                continue
            matching = self._equal_or_parents_in(edge.target, classes)
            if not matching:
                continue
            if len(matching) > 1 or (found is not None and found not in matching):
                raise StageOrderingError(
                    "A class has several immediately_preceded_by relations "
                    "to same level classes", [class_id]
                )
            found = next(iter(matching))
        return found

    def _preceded_by_predecessor(self, edges: List[Edge], classes: Set[str]) -> Optional[str]:
        preceded_by = self._preceded_by_family()
        candidates: Set[str] = set()
        for edge in edges:
            if edge.property_id in preceded_by:
                candidates |= self._equal_or_parents_in(edge.target, classes)
        if len(candidates) == 1:
            return next(iter(candidates))
        if len(candidates) > 1:
            return self.get_last_class_by_preceded_by(candidates)
        return None

    def order_by_preceded_by(self, class_ids: Iterable[str]) -> List[str]:
        """
        Order classes from first to last occurring

        Walks back from the last class, following immediately_preceded_by
        first and preceded_by otherwise; each step tries direct edges before
        composed ones.

        Raises:
            StageOrderingError: cycles, ambiguous or missing predecessors
        """
        classes = set(class_ids)
        self.generate_preceded_by_from_comments(classes)

        ordered: List[str] = []
        current: Optional[str] = self.get_last_class_by_preceded_by(classes)
        while current is not None:
            if current in ordered:
                raise StageOrderingError(
                    "Cycle of preceded_by relations", sorted(classes)
                )
            ordered.insert(0, current)
            complete = len(ordered) == len(classes)

            predecessor: Optional[str] = None
            for indirect in (False, True):
                edges = self._outgoing(current, indirect)
                predecessor = self._immediate_predecessor(current, edges, classes)
                if predecessor is None and not complete:
                    predecessor = self._preceded_by_predecessor(edges, classes)
                if predecessor is not None or complete:
                    break

            if predecessor is None and not complete:
                raise StageOrderingError(
                    "A class has no preceded_by relations to same level classes", [current]
                )
            current = predecessor

        return ordered

    # ==========================================================================
    # Nested Set Model
    # ==========================================================================
    def generate_nested_set_model(self, root_id: str) -> NestedSetModel:
        """
        Nested set model starting at ``root_id``

        A model cached for the root, or for one of its part_of ancestors, is
        returned as is.

        Raises:
            SubclassCycleError: cycle over subclass edges or stage relations
            OntologyDataError: the stages under the root do not form a tree
            StageOrderingError: sibling stages cannot be ordered
        """
        cached = self._models.get(root_id)
        if cached is not None:
            return cached
        ancestors = self.ontology.ancestors_of(root_id, self.stage_relations)
        for ancestor in sorted(ancestors & set(self._models)):
            logger.debug(f"Using nested set model cached for {ancestor}")
            return self._models[ancestor]

        self.ontology.assert_acyclic(self.stage_relations)

        global_ordering: List[str] = []
        walker = deque([root_id])
        queued = {root_id}
        while walker:
            class_id = walker.popleft()
            children_by_species: Dict[int, Set[str]] = {}
            for child in sorted(self.ontology.direct_descendants_of(class_id, self.stage_relations)):
                children_by_species.setdefault(self._species_key(child), set()).add(child)
                # a class with several parents is ordered under each of them,
                # compute_nested_set_model then rejects the tree
                if child not in queued:
                    queued.add(child)
                    walker.append(child)
            for species_key in sorted(children_by_species):
                global_ordering.extend(self.order_by_preceded_by(children_by_species[species_key]))

        model = compute_nested_set_model(
            self.ontology, root_id, global_ordering, self.stage_relations
        )
        self._models[root_id] = model
        logger.info(f"Nested set model computed from {root_id}: {len(model)} stages")
        return model

    def build_stage_records(
        self, model: NestedSetModel, taxon_ids: Iterable[int] = ()
    ) -> List[StageRecord]:
        """Stage records ordered by left bound, with per-taxon existence flags"""
        taxon_ids = list(taxon_ids)
        records = []
        for stage_id, entry in sorted(model.items(), key=lambda item: item[1].left):
            records.append(StageRecord(
                stage_id=stage_id,
                label=self.ontology.get_label(stage_id),
                left=entry.left,
                right=entry.right,
                level=entry.level,
                exists_in_taxa={t: self.exists_in_taxon(stage_id, t) for t in taxon_ids},
            ))
        return records
