"""
Species Subset Reducer
======================
物種子集化: 從合併本體 (domain + taxonomy) 移除在目標物種中不可能存在的類別

Exclusion rules, for a class C and a target taxon T:
- ``never_in_taxon X`` on C excludes C when T == X or T is a descendant of X
- a non-empty ``only_in_taxon`` set on C excludes C when none of its taxa is
  related to T (equal, ancestor or descendant)

Exclusion is inherited along subclass edges and the propagating relations
(part_of and its sub-properties by default): every descendant of an excluded
class is excluded as well.

版本: 1.0.0
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Dict, Iterable, List, Optional, Set

from anatdev.core.exceptions import OntologyConfigurationError
from anatdev.core.types import PART_OF_ID, TAXONOMY_PREFIX, get_tax_ontology_id
from anatdev.ontology.graph import OntologyGraph

logger = logging.getLogger(__name__)


class SpeciesSubsetReducer:
    """
    Stateless reducer; each call is an independent unit of work

    Both modes mutate the given ontology in place and return the removed ids.
    Run them on a working copy.
    """

    def __init__(
        self,
        taxonomy_prefix: str = TAXONOMY_PREFIX,
        propagating_relations: Iterable[str] = (PART_OF_ID,),
    ):
        self.taxonomy_prefix = taxonomy_prefix
        self.propagating_relations = list(propagating_relations)

    # =========================================================================
    # Public API
    # =========================================================================
    def remove_other_species(self, ontology: OntologyGraph, taxon_id: int) -> Set[str]:
        """
        Keep only the classes that can exist in ``taxon_id``

        Also removes the taxonomy classes outside the lineage of the taxon and
        the disjointness axioms between taxa.
        """
        taxon_class = self._require_taxon(ontology, taxon_id)
        lineage = self._lineage(ontology, taxon_class)
        seeds = self._exclusion_seeds(ontology, taxon_class)

        excluded = self._propagate(ontology, seeds)
        other_taxa = {
            cid for cid in ontology.all_classes(include_obsolete=True)
            if self.is_taxonomy_class(cid) and cid not in lineage
        }

        for first, second in ontology.disjoint_pairs():
            if self.is_taxonomy_class(first) and self.is_taxonomy_class(second):
                ontology.remove_disjoint(first, second)

        removed = ontology.remove_classes(excluded | other_taxa)
        logger.info(
            f"Taxon {taxon_id}: {len(excluded)} classes excluded "
            f"({len(seeds)} carrying taxon facts), {len(other_taxa)} other taxa removed"
        )
        return removed

    def remove_species(self, ontology: OntologyGraph, taxon_id: int) -> Set[str]:
        """
        Pre-filter: remove the subtree of ``taxon_id`` and the classes that can
        only exist inside it
        """
        taxon_class = self._require_taxon(ontology, taxon_id)
        subtree = ontology.descendants_of(taxon_class, include_self=True)

        seeds = {
            class_id
            for class_id, taxa in self._facts(ontology.iter_only_in_taxon()).items()
            if taxa and taxa <= subtree
        }
        excluded = self._propagate(ontology, seeds)

        removed = ontology.remove_classes(excluded | subtree)
        logger.info(
            f"Pre-filter taxon {taxon_id}: {len(excluded)} classes and "
            f"{len(subtree)} taxa removed"
        )
        return removed

    def explain_taxon_existence(
        self,
        ontology: OntologyGraph,
        class_ids: Iterable[str],
        taxon_ids: Iterable[int],
    ) -> List[List[str]]:
        """
        解釋類別為何不存在於物種中

        For each class excluded from a taxon, the shortest chain of subclass
        and propagating-relation edges from the class up to the class that
        carries the never_in_taxon / only_in_taxon fact. The ontology is not
        modified.

        Returns:
            One path per (class, taxon) pair where the class is excluded,
            starting with the class and ending with the fact carrier.
            Classes that can exist in a taxon yield no path.
        """
        taxon_ids = list(taxon_ids)
        seeds_by_taxon = {
            taxon_id: self._exclusion_seeds(ontology, self._require_taxon(ontology, taxon_id))
            for taxon_id in taxon_ids
        }

        explanations: List[List[str]] = []
        for class_id in class_ids:
            if self.is_taxonomy_class(class_id) or class_id not in ontology:
                continue
            for taxon_id in taxon_ids:
                path = self._path_to_seed(ontology, class_id, seeds_by_taxon[taxon_id])
                if path:
                    logger.debug(f"{class_id} excluded from taxon {taxon_id}: {' -> '.join(path)}")
                    explanations.append(path)
        return explanations

    def is_taxonomy_class(self, class_id: str) -> bool:
        return class_id.startswith(self.taxonomy_prefix)

    # =========================================================================
    # Helpers
    # =========================================================================
    def _require_taxon(self, ontology: OntologyGraph, taxon_id: int) -> str:
        taxon_class = get_tax_ontology_id(taxon_id, self.taxonomy_prefix)
        cls = ontology.get_class(taxon_class)
        if cls is None:
            raise OntologyConfigurationError(f"Taxon not found in ontology: {taxon_class}")
        if cls.is_obsolete:
            raise OntologyConfigurationError(f"Taxon is obsolete: {taxon_class}")
        return taxon_class

    def _lineage(self, ontology: OntologyGraph, taxon_class: str) -> Set[str]:
        return (
            ontology.ancestors_of(taxon_class, include_self=True)
            | ontology.descendants_of(taxon_class)
        )

    def _exclusion_seeds(self, ontology: OntologyGraph, taxon_class: str) -> Set[str]:
        """Classes whose own taxon facts exclude them from taxon_class"""
        lineage = self._lineage(ontology, taxon_class)
        taxon_and_ancestors = ontology.ancestors_of(taxon_class, include_self=True)

        seeds: Set[str] = set()
        for class_id, taxa in self._facts(ontology.iter_never_in_taxon()).items():
            if taxa & taxon_and_ancestors:
                seeds.add(class_id)
        for class_id, taxa in self._facts(ontology.iter_only_in_taxon()).items():
            if taxa and not (taxa & lineage):
                seeds.add(class_id)
        return seeds

    def _path_to_seed(
        self, ontology: OntologyGraph, class_id: str, seeds: Set[str]
    ) -> Optional[List[str]]:
        """Breadth-first search upward, over the edges _propagate follows down"""
        previous: Dict[str, Optional[str]] = {class_id: None}
        queue = deque([class_id])
        while queue:
            current = queue.popleft()
            if current in seeds:
                path = []
                node: Optional[str] = current
                while node is not None:
                    path.append(node)
                    node = previous[node]
                return path[::-1]
            parents = ontology.direct_ancestors_of(
                current, over_properties=self.propagating_relations
            )
            for parent in sorted(parents):
                if parent not in previous and not self.is_taxonomy_class(parent):
                    previous[parent] = current
                    queue.append(parent)
        return None

    @staticmethod
    def _facts(pairs) -> Dict[str, Set[str]]:
        facts: Dict[str, Set[str]] = {}
        for class_id, taxon in pairs:
            facts.setdefault(class_id, set()).add(taxon)
        return facts

    def _propagate(self, ontology: OntologyGraph, seeds: Set[str]) -> Set[str]:
        """Seeds plus their descendants, domain classes only"""
        excluded: Set[str] = set()
        for seed in seeds:
            if seed in excluded or self.is_taxonomy_class(seed):
                continue
            excluded.add(seed)
            excluded |= ontology.descendants_of(seed, over_properties=self.propagating_relations)
        excluded = {cid for cid in excluded if not self.is_taxonomy_class(cid)}
        logger.debug(f"{len(seeds)} seed classes propagated to {len(excluded)} classes")
        return excluded
