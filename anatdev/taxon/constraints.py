"""
# ==============================================================================
# Module: anatdev/taxon/constraints.py
# ==============================================================================
# Purpose: Compute, for every class of a domain ontology, the taxa in which it
#          can exist, by reducing a merged domain + taxonomy ontology once per
#          requested taxon
#
# Dependencies:
#   - Internal: anatdev.ontology (OntologyGraph, loader, snapshots)
#               anatdev.taxon.reducer (SpeciesSubsetReducer)
#               anatdev.taxon.tsv (taxon lists, constraint tables, overrides)
#               anatdev.config (TaxonConstraintConfig)
#
# Input:
#   - Domain ontology and taxonomy ontology
#   - Plan: {target taxon id: [pre-filter taxon ids]}, processed in order
#
# Output:
#   - TaxonConstraintMap {class id: {taxon ids}}
#   - Optional per-taxon OWL snapshots <snapshot_prefix><taxon id>.owl
#   - Constraint TSV (generate_taxon_constraints_file)
# ==============================================================================
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Set, Union

from anatdev.config.settings import TaxonConstraintConfig
from anatdev.core.exceptions import OntologyConfigurationError, RelatedPrefilterTaxonError
from anatdev.core.protocols import (
    OntologyLoaderProtocol,
    ReducerFactory,
    SnapshotWriterProtocol,
)
from anatdev.core.types import TaxonConstraintMap, get_tax_ncbi_id, get_tax_ontology_id
from anatdev.ontology.graph import OntologyGraph
from anatdev.ontology.loader import create_ontology_loader
from anatdev.ontology.snapshot import write_owl_snapshot
from anatdev.taxon.reducer import SpeciesSubsetReducer
from anatdev.taxon.tsv import (
    apply_taxon_overrides,
    extract_taxon_ids,
    load_taxon_overrides,
    write_taxon_constraints,
)

logger = logging.getLogger(__name__)

REASONING_SOURCE_FILE = "uberon_reasoning_source.owl"

# {target taxon id: [pre-filter taxon ids]}
TaxonPrefilterPlan = Mapping[int, Sequence[int]]


# ==============================================================================
# Engine
# ==============================================================================
class TaxonConstraintEngine:
    """
    Taxon constraint generation over a domain ontology and a taxonomy

    The inputs are never modified: a merged ontology is prepared once and each
    target taxon is reduced on its own copy of it.

    Usage:
        engine = TaxonConstraintEngine(uberon, ncbitaxon)
        constraints = engine.generate_taxon_constraints({9606: [], 7955: [9606]})
    """

    def __init__(
        self,
        domain: OntologyGraph,
        taxonomy: OntologyGraph,
        config: Optional[TaxonConstraintConfig] = None,
        reducer_factory: Optional[ReducerFactory] = None,
        snapshot_writer: SnapshotWriterProtocol = write_owl_snapshot,
    ):
        self.domain = domain
        self.taxonomy = taxonomy
        self.config = config or TaxonConstraintConfig()
        self.reducer_factory = reducer_factory or self._default_reducer
        self.snapshot_writer = snapshot_writer

        self._merged: Optional[OntologyGraph] = None

    def _default_reducer(self) -> SpeciesSubsetReducer:
        return SpeciesSubsetReducer(
            taxonomy_prefix=self.config.taxonomy_prefix,
            propagating_relations=self.config.propagating_relations,
        )

    def _is_taxon(self, class_id: str) -> bool:
        return class_id.startswith(self.config.taxonomy_prefix)

    # ==========================================================================
    # Merged Ontology
    # ==========================================================================
    def prepare_merged_ontology(self) -> OntologyGraph:
        """
        Domain ontology cleaned up and merged with the taxonomy

        Built once per engine; callers must work on a copy().
        """
        if self._merged is not None:
            return self._merged

        merged = self.domain.copy()

        # Taxa declared in the domain ontology must not bring their own hierarchy
        taxon_edges = [
            edge for edge in merged.iter_edges()
            if edge.is_subclass_edge and self._is_taxon(edge.source) and self._is_taxon(edge.target)
        ]
        for edge in taxon_edges:
            merged.remove_edge(edge)
        for first, second in merged.disjoint_pairs():
            if self._is_taxon(first) and self._is_taxon(second):
                merged.remove_disjoint(first, second)

        unknown_taxa = {
            cid for cid in merged.all_classes(include_obsolete=True)
            if self._is_taxon(cid) and not self.taxonomy.has_class(cid)
        }
        if unknown_taxa:
            logger.warning(
                f"{len(unknown_taxa)} taxa of the domain ontology are absent from "
                f"the taxonomy and are removed: {sorted(unknown_taxa)}"
            )
        for facts in (list(merged.iter_never_in_taxon()), list(merged.iter_only_in_taxon())):
            for class_id, taxon in facts:
                if not self.taxonomy.has_class(taxon):
                    logger.warning(f"Taxon fact on {class_id} names an unknown taxon, dropped: {taxon}")
                    merged.discard_taxon_fact(class_id, taxon)
        merged.remove_classes(unknown_taxa)

        merged.merge(self.taxonomy)

        obsolete = merged.all_classes(include_obsolete=True) - merged.all_classes()
        merged.remove_classes(obsolete)
        logger.info(f"{len(obsolete)} obsolete classes removed")

        if self.config.ignored_subgraph_roots:
            merged.remove_subgraphs(self.config.ignored_subgraph_roots, keep_shared=True)

        merged.assert_acyclic()
        logger.info(f"Merged ontology ready: {merged!r}")
        self._merged = merged
        return merged

    def constraint_keys(self) -> Set[str]:
        """Domain classes reported in the constraint map"""
        return {
            cid for cid in self.prepare_merged_ontology().all_classes()
            if not self._is_taxon(cid)
        }

    # ==========================================================================
    # Validation
    # ==========================================================================
    def _require_taxon(self, taxon_id: int) -> str:
        taxon_class = get_tax_ontology_id(taxon_id, self.config.taxonomy_prefix)
        cls = self.taxonomy.get_class(taxon_class)
        if cls is None:
            raise OntologyConfigurationError(f"Taxon not found in taxonomy: {taxon_class}")
        if cls.is_obsolete:
            raise OntologyConfigurationError(f"Taxon is obsolete: {taxon_class}")
        return taxon_class

    def validate_plan(self, plan: TaxonPrefilterPlan) -> None:
        """
        Raises:
            OntologyConfigurationError: unknown or obsolete taxon
            RelatedPrefilterTaxonError: a pre-filter taxon is related to its target
        """
        for taxon_id, prefilter_ids in plan.items():
            taxon_class = self._require_taxon(taxon_id)
            related = (
                self.taxonomy.ancestors_of(taxon_class, include_self=True)
                | self.taxonomy.descendants_of(taxon_class)
            )
            for prefilter_id in prefilter_ids:
                if self._require_taxon(prefilter_id) in related:
                    raise RelatedPrefilterTaxonError(taxon_id, prefilter_id)

    # ==========================================================================
    # Generation
    # ==========================================================================
    def generate_taxon_constraints(
        self,
        plan: TaxonPrefilterPlan,
        output_dir: Optional[Union[str, Path]] = None,
    ) -> TaxonConstraintMap:
        """
        Reduce the merged ontology once per target taxon

        Args:
            plan: {target taxon id: [pre-filter taxon ids]}, applied in order
            output_dir: where to store OWL snapshots; None disables them

        Returns:
            {class id: taxa in which the class exists}, with every domain
            class as a key (possibly mapped to an empty set)
        """
        self.validate_plan(plan)
        merged = self.prepare_merged_ontology()
        keys = self.constraint_keys()
        constraints: TaxonConstraintMap = {cid: set() for cid in sorted(keys)}

        output_dir = Path(output_dir) if output_dir is not None else None
        if output_dir is not None and self.config.store_reasoning_source:
            self.snapshot_writer(merged, output_dir / REASONING_SOURCE_FILE)

        for index, (taxon_id, prefilter_ids) in enumerate(plan.items(), start=1):
            logger.info(f"Generating constraints for taxon {taxon_id} ({index}/{len(plan)})")
            working = merged.copy()
            reducer = self.reducer_factory()
            for prefilter_id in prefilter_ids:
                reducer.remove_species(working, prefilter_id)
            reducer.remove_other_species(working, taxon_id)

            if output_dir is not None:
                self.snapshot_writer(
                    working, output_dir / f"{self.config.snapshot_prefix}{taxon_id}.owl"
                )

            existing = 0
            for class_id in keys:
                if class_id in working:
                    constraints[class_id].add(taxon_id)
                    existing += 1
            logger.info(f"Taxon {taxon_id}: {existing}/{len(keys)} classes exist")

        return constraints


# ==============================================================================
# Pre-filter Steps
# ==============================================================================
def propagate_prefilter_steps(
    steps: Mapping[int, Sequence[int]],
    taxonomy: OntologyGraph,
    taxonomy_prefix: str,
) -> Dict[int, List[int]]:
    """
    Extend configured pre-filter steps to taxonomy descendants

    A descendant without steps of its own inherits those of its configured
    ancestors; when several apply, the longest list wins.

    Raises:
        OntologyConfigurationError: a configured taxon is absent from the taxonomy
    """
    result: Dict[int, List[int]] = {taxon_id: list(s) for taxon_id, s in steps.items()}
    for taxon_id, taxon_steps in steps.items():
        taxon_class = get_tax_ontology_id(taxon_id, taxonomy_prefix)
        if not taxonomy.has_class(taxon_class):
            raise OntologyConfigurationError(
                f"Taxon with pre-filter steps not found in taxonomy: {taxon_class}"
            )
        for descendant in taxonomy.descendants_of(taxon_class):
            descendant_id = get_tax_ncbi_id(descendant, taxonomy_prefix)
            if descendant_id in steps:
                continue
            current = result.get(descendant_id)
            if current is None or len(taxon_steps) > len(current):
                result[descendant_id] = list(taxon_steps)
    return result


# ==============================================================================
# File-based Entry Point
# ==============================================================================
def generate_taxon_constraints_file(
    domain_path: Union[str, Path],
    taxonomy_path: Union[str, Path],
    taxon_file: Union[str, Path],
    output_tsv: Union[str, Path],
    override_file: Optional[Union[str, Path]] = None,
    output_dir: Optional[Union[str, Path]] = None,
    config: Optional[TaxonConstraintConfig] = None,
    loader: Optional[OntologyLoaderProtocol] = None,
) -> TaxonConstraintMap:
    """
    Load the ontologies, compute constraints for the listed taxa and write the TSV

    Returns:
        The constraint map written, overrides applied
    """
    config = config or TaxonConstraintConfig()
    loader = loader or create_ontology_loader()

    domain = loader.load(Path(domain_path))
    taxonomy = loader.load(Path(taxonomy_path))
    taxon_ids = extract_taxon_ids(taxon_file)

    steps = propagate_prefilter_steps(config.prefilter_steps, taxonomy, config.taxonomy_prefix)
    plan = {taxon_id: steps.get(taxon_id, []) for taxon_id in taxon_ids}

    engine = TaxonConstraintEngine(domain, taxonomy, config)
    constraints = engine.generate_taxon_constraints(plan, output_dir)

    if override_file is not None:
        overrides = load_taxon_overrides(override_file)
        constraints = apply_taxon_overrides(constraints, overrides, taxon_ids)

    labels = {class_id: domain.get_label(class_id) for class_id in constraints}
    write_taxon_constraints(constraints, labels, taxon_ids, output_tsv)
    return constraints
