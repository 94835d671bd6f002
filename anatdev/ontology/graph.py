"""
# ==============================================================================
# Module: anatdev/ontology/graph.py
# ==============================================================================
# Purpose: In-memory ontology graph with class/property hierarchy closure,
#          edge composition over quantified relations and subgraph removal
#
# Dependencies:
#   - External: networkx
#   - Internal: anatdev.core.types (OntologyClass, ObjectProperty, Edge, Quantifier)
#               anatdev.core.exceptions
#
# Input:
#   - Classes, object properties and edges added by the loaders
#   - never_in_taxon / only_in_taxon facts and disjointness axioms
#
# Output:
#   - Closure queries: sub/super properties, ancestors, descendants, roots
#   - Composed edges, least common ancestors
#   - Destructive subgraph filtering/removal (call on a copy())
# ==============================================================================
"""
from __future__ import annotations

import dataclasses
import logging
from collections import defaultdict, deque
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple

import networkx as nx

from anatdev.core.exceptions import (
    OntologyDataError,
    PropertyCombinationError,
    SubclassCycleError,
)
from anatdev.core.types import (
    IS_A_KEY,
    Edge,
    ObjectProperty,
    OntologyClass,
    Quantifier,
)

logger = logging.getLogger(__name__)


# ==============================================================================
# Ontology Graph
# ==============================================================================
class OntologyGraph:
    """
    Ontology graph over classes and object properties

    Storage:
    - classes: {class_id: OntologyClass}
    - properties: {property_id: ObjectProperty}, declaration order preserved
    - edges: networkx.MultiDiGraph, one edge per (source, target, key) where
      key is the property id, or ``is_a`` for subclass edges
    - taxon facts: never_in_taxon / only_in_taxon, class id -> taxon class ids
    - disjointness axioms: unordered pairs of class ids
    """

    def __init__(self, name: Optional[str] = None, version: Optional[str] = None):
        self.name = name
        self.version = version

        self._classes: Dict[str, OntologyClass] = {}
        self._properties: Dict[str, ObjectProperty] = {}
        # {property_id: [direct sub-property ids]}, declaration order
        self._sub_properties: Dict[str, List[str]] = defaultdict(list)

        self._graph = nx.MultiDiGraph()

        self._never_in_taxon: Dict[str, Set[str]] = defaultdict(set)
        self._only_in_taxon: Dict[str, Set[str]] = defaultdict(set)
        self._disjoint: Set[FrozenSet[str]] = set()

    # ==========================================================================
    # Properties
    # ==========================================================================
    @property
    def num_classes(self) -> int:
        return len(self._classes)

    @property
    def num_edges(self) -> int:
        return self._graph.number_of_edges()

    def __len__(self) -> int:
        return len(self._classes)

    def __contains__(self, class_id: object) -> bool:
        return class_id in self._classes

    def __repr__(self) -> str:
        return (
            f"OntologyGraph(name={self.name!r}, classes={self.num_classes}, "
            f"edges={self.num_edges}, properties={len(self._properties)})"
        )

    # ==========================================================================
    # Class Operations
    # ==========================================================================
    def add_class(self, cls: OntologyClass) -> OntologyClass:
        """Add a class, or fill in missing attributes of an existing placeholder"""
        existing = self._classes.get(cls.id)
        if existing is None:
            self._classes[cls.id] = cls
            self._graph.add_node(cls.id)
            return cls

        existing.label = existing.label or cls.label
        existing.description = existing.description or cls.description
        existing.comment = existing.comment or cls.comment
        existing.is_obsolete = existing.is_obsolete or cls.is_obsolete
        return existing

    def ensure_class(self, class_id: str) -> OntologyClass:
        """Return the class, creating a bare placeholder if unknown"""
        cls = self._classes.get(class_id)
        if cls is None:
            cls = self.add_class(OntologyClass(id=class_id))
        return cls

    def get_class(self, class_id: str) -> Optional[OntologyClass]:
        return self._classes.get(class_id)

    def has_class(self, class_id: str) -> bool:
        return class_id in self._classes

    def get_label(self, class_id: str) -> Optional[str]:
        cls = self._classes.get(class_id)
        return cls.label if cls else None

    def iter_classes(self) -> Iterator[OntologyClass]:
        return iter(list(self._classes.values()))

    def all_classes(self, include_obsolete: bool = False) -> Set[str]:
        """All class identifiers"""
        return {
            cid for cid, cls in self._classes.items()
            if include_obsolete or not cls.is_obsolete
        }

    def ontology_roots(self) -> Set[str]:
        """Non-obsolete classes without any superclass"""
        roots = set()
        for cid, cls in self._classes.items():
            if cls.is_obsolete:
                continue
            if not any(k == IS_A_KEY for _, _, k in self._graph.out_edges(cid, keys=True)):
                roots.add(cid)
        return roots

    def remove_classes(self, class_ids: Iterable[str]) -> Set[str]:
        """
        Remove classes along with their edges, taxon facts and disjointness axioms

        Returns:
            The identifiers actually removed
        """
        removed = {cid for cid in class_ids if cid in self._classes}
        if not removed:
            return removed

        for cid in removed:
            del self._classes[cid]
            self._never_in_taxon.pop(cid, None)
            self._only_in_taxon.pop(cid, None)
        self._graph.remove_nodes_from(removed)
        self._disjoint = {pair for pair in self._disjoint if not (pair & removed)}

        logger.debug(f"Removed {len(removed)} classes")
        return removed

    # ==========================================================================
    # Object Property Operations
    # ==========================================================================
    def add_property(self, prop: ObjectProperty) -> ObjectProperty:
        """Declare an object property; merges parents of an existing declaration"""
        existing = self._properties.get(prop.id)
        if existing is None:
            existing = ObjectProperty(
                id=prop.id,
                label=prop.label,
                is_transitive=prop.is_transitive,
                parents=[],
                transitive_over=list(prop.transitive_over),
            )
            self._properties[prop.id] = existing
        else:
            existing.label = existing.label or prop.label
            existing.is_transitive = existing.is_transitive or prop.is_transitive
            for other in prop.transitive_over:
                if other not in existing.transitive_over:
                    existing.transitive_over.append(other)

        for parent_id in prop.parents:
            if parent_id not in existing.parents:
                existing.parents.append(parent_id)
                self._sub_properties[parent_id].append(prop.id)
        return existing

    def get_property(self, property_id: str) -> Optional[ObjectProperty]:
        return self._properties.get(property_id)

    def iter_properties(self) -> Iterator[ObjectProperty]:
        return iter(list(self._properties.values()))

    def is_transitive(self, property_id: str) -> bool:
        prop = self._properties.get(property_id)
        return bool(prop and prop.is_transitive)

    # ==========================================================================
    # Property Hierarchy Closure
    # ==========================================================================
    def sub_properties_of(self, property_id: str) -> List[str]:
        """Direct sub-properties"""
        return list(self._sub_properties.get(property_id, []))

    def sub_property_closure_of(self, property_id: str) -> List[str]:
        """All sub-properties, breadth-first discovery order, excluding the property"""
        return self._property_bfs(property_id, upward=False)[1:]

    def sub_property_reflexive_closure_of(self, property_id: str) -> List[str]:
        """Same as sub_property_closure_of, with the property itself first"""
        return self._property_bfs(property_id, upward=False)

    def super_properties_of(self, property_id: str) -> List[str]:
        """Direct super-properties"""
        prop = self._properties.get(property_id)
        return list(prop.parents) if prop else []

    def super_property_closure_of(self, property_id: str) -> List[str]:
        return self._property_bfs(property_id, upward=True)[1:]

    def super_property_reflexive_closure_of(self, property_id: str) -> List[str]:
        return self._property_bfs(property_id, upward=True)

    def _property_bfs(self, property_id: str, upward: bool) -> List[str]:
        return list(self._property_distances(property_id, upward))

    def _property_distances(self, property_id: str, upward: bool) -> Dict[str, int]:
        """{property_id: hops}, insertion order = breadth-first discovery order"""
        distances: Dict[str, int] = {property_id: 0}
        queue = deque([property_id])
        while queue:
            current = queue.popleft()
            if upward:
                neighbors = self.super_properties_of(current)
            else:
                neighbors = self._sub_properties.get(current, [])
            for neighbor in neighbors:
                if neighbor not in distances:
                    distances[neighbor] = distances[current] + 1
                    queue.append(neighbor)
        return distances

    def combine_property_pair(self, first: str, second: str) -> str:
        """
        Property to use when composing an edge over ``first`` with an edge over ``second``

        A property declared transitive_over the second one wins. Otherwise the
        common transitive super-property with the fewest summed hops is used;
        remaining ties go to the first one found from ``first``.

        Raises:
            PropertyCombinationError: no transitive common super-property
        """
        first_prop = self._properties.get(first)
        if first_prop is not None:
            for over in first_prop.transitive_over:
                if over in self.super_property_reflexive_closure_of(second):
                    return first

        first_distances = self._property_distances(first, upward=True)
        second_distances = self._property_distances(second, upward=True)

        best: Optional[str] = None
        best_score: Optional[int] = None
        for candidate, distance in first_distances.items():
            if candidate not in second_distances or not self.is_transitive(candidate):
                continue
            score = distance + second_distances[candidate]
            if best_score is None or score < best_score:
                best, best_score = candidate, score

        if best is None:
            raise PropertyCombinationError(first, second)
        return best

    # ==========================================================================
    # Edge Operations
    # ==========================================================================
    def add_edge(self, edge: Edge) -> bool:
        """
        Add an edge; unknown endpoint classes are created as placeholders

        Returns:
            False if the edge was already present
        """
        if self.has_edge(edge):
            return False
        self.ensure_class(edge.source)
        self.ensure_class(edge.target)
        self._graph.add_edge(edge.source, edge.target, key=edge.key, quantifier=edge.quantifier)
        return True

    def add_edges(self, edges: Iterable[Edge]) -> int:
        return sum(1 for edge in edges if self.add_edge(edge))

    def has_edge(self, edge: Edge) -> bool:
        return self._graph.has_edge(edge.source, edge.target, key=edge.key)

    def remove_edge(self, edge: Edge) -> bool:
        if not self.has_edge(edge):
            return False
        self._graph.remove_edge(edge.source, edge.target, key=edge.key)
        return True

    def _to_edge(self, source: str, target: str, key: str, data: dict) -> Edge:
        if key == IS_A_KEY:
            return Edge(source, target)
        return Edge(source, target, key, data.get("quantifier", Quantifier.SOME))

    def iter_edges(self) -> Iterator[Edge]:
        for source, target, key, data in list(self._graph.edges(keys=True, data=True)):
            yield self._to_edge(source, target, key, data)

    def outgoing_edges(self, class_id: str) -> List[Edge]:
        if class_id not in self._graph:
            return []
        return [
            self._to_edge(s, t, k, d)
            for s, t, k, d in self._graph.out_edges(class_id, keys=True, data=True)
        ]

    def incoming_edges(self, class_id: str) -> List[Edge]:
        if class_id not in self._graph:
            return []
        return [
            self._to_edge(s, t, k, d)
            for s, t, k, d in self._graph.in_edges(class_id, keys=True, data=True)
        ]

    def combine_edge_pair(self, first: Edge, second: Edge) -> Edge:
        """
        Compose A -> B with B -> C into A -> C

        Subclass edges are transparent: ``is_a`` followed by ``R`` gives ``R``.
        """
        if first.target != second.source:
            raise OntologyDataError(
                "Edges do not share an intermediate class", [str(first), str(second)]
            )
        if first.is_subclass_edge and second.is_subclass_edge:
            return Edge(first.source, second.target)
        if first.is_subclass_edge:
            return Edge(first.source, second.target, second.property_id, second.quantifier)
        if second.is_subclass_edge:
            return Edge(first.source, second.target, first.property_id, first.quantifier)

        property_id = self.combine_property_pair(first.property_id, second.property_id)
        return Edge(first.source, second.target, property_id, Quantifier.SOME)

    def sub_rels_reflexive_closure_of(self, edge: Edge) -> List[Edge]:
        """
        The edge itself, then the same edge over each sub-property

        Sub-properties come in breadth-first order so siblings stay together.
        """
        if edge.is_subclass_edge:
            return [edge]
        return [
            Edge(edge.source, edge.target, prop_id, edge.quantifier)
            for prop_id in self.sub_property_reflexive_closure_of(edge.property_id)
        ]

    def outgoing_edges_closure(self, class_id: str, over_properties: Iterable[str]) -> List[Edge]:
        """
        Direct and composed outgoing edges over the given properties

        Each reachable (target, property) pair is reported once, composed with
        combine_edge_pair along the walk.
        """
        keys = self._relation_keys(over_properties, include_subclass=False)
        closure: List[Edge] = []
        seen: Set[Tuple[str, Optional[str]]] = set()

        queue = deque(e for e in self.outgoing_edges(class_id) if e.key in keys)
        while queue:
            edge = queue.popleft()
            marker = (edge.target, edge.property_id)
            if marker in seen:
                continue
            seen.add(marker)
            closure.append(edge)
            for next_edge in self.outgoing_edges(edge.target):
                if next_edge.key in keys:
                    queue.append(self.combine_edge_pair(edge, next_edge))
        return closure

    # ==========================================================================
    # Class Hierarchy Traversal
    # ==========================================================================
    def _relation_keys(
        self,
        over_properties: Optional[Iterable[str]],
        include_subclass: bool = True,
    ) -> Set[str]:
        keys = {IS_A_KEY} if include_subclass else set()
        for prop_id in over_properties or ():
            keys.update(self.sub_property_reflexive_closure_of(prop_id))
        return keys

    def _walk(
        self,
        start: str,
        upward: bool,
        keys: Optional[Set[str]],
    ) -> Set[str]:
        """
        Breadth-first walk from start; keys=None follows every relation

        Walks over restricted relations report a path back to the start as a
        cycle. A cycle entered further along the walk is not reported; call
        assert_acyclic to check the whole hierarchy. Unrestricted walks
        tolerate inverse-relation loops.
        """
        if start not in self._graph:
            return set()

        detect_cycles = keys is not None
        visited: Set[str] = set()
        queue = deque([start])
        while queue:
            current = queue.popleft()
            if upward:
                edges = self._graph.out_edges(current, keys=True)
            else:
                edges = self._graph.in_edges(current, keys=True)
            for source, target, key in edges:
                if keys is not None and key not in keys:
                    continue
                neighbor = target if upward else source
                if neighbor == start:
                    if detect_cycles:
                        raise SubclassCycleError(
                            "Cycle in class hierarchy", [start, current]
                        )
                    continue
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append(neighbor)
        return visited

    def ancestors_of(
        self,
        class_id: str,
        over_properties: Optional[Iterable[str]] = None,
        all_relations: bool = False,
        include_self: bool = False,
    ) -> Set[str]:
        """Ancestors over subclass edges, plus over_properties (and their sub-properties)"""
        keys = None if all_relations else self._relation_keys(over_properties)
        ancestors = self._walk(class_id, upward=True, keys=keys)
        if include_self and class_id in self._classes:
            ancestors.add(class_id)
        return ancestors

    def descendants_of(
        self,
        class_id: str,
        over_properties: Optional[Iterable[str]] = None,
        all_relations: bool = False,
        include_self: bool = False,
    ) -> Set[str]:
        """Descendants over subclass edges, plus over_properties (and their sub-properties)"""
        keys = None if all_relations else self._relation_keys(over_properties)
        descendants = self._walk(class_id, upward=False, keys=keys)
        if include_self and class_id in self._classes:
            descendants.add(class_id)
        return descendants

    def direct_descendants_of(
        self,
        class_id: str,
        over_properties: Optional[Iterable[str]] = None,
        all_relations: bool = False,
    ) -> Set[str]:
        if class_id not in self._graph:
            return set()
        keys = None if all_relations else self._relation_keys(over_properties)
        return {
            source for source, _, key in self._graph.in_edges(class_id, keys=True)
            if keys is None or key in keys
        }

    def direct_ancestors_of(
        self,
        class_id: str,
        over_properties: Optional[Iterable[str]] = None,
        all_relations: bool = False,
    ) -> Set[str]:
        if class_id not in self._graph:
            return set()
        keys = None if all_relations else self._relation_keys(over_properties)
        return {
            target for _, target, key in self._graph.out_edges(class_id, keys=True)
            if keys is None or key in keys
        }

    def least_common_ancestors(
        self,
        first: str,
        second: str,
        over_properties: Optional[Iterable[str]] = None,
    ) -> Set[str]:
        """Most specific common ancestors, both classes counting as their own ancestors"""
        over_properties = list(over_properties or ())
        common = (
            self.ancestors_of(first, over_properties, include_self=True)
            & self.ancestors_of(second, over_properties, include_self=True)
        )
        redundant: Set[str] = set()
        for candidate in common:
            redundant |= self.ancestors_of(candidate, over_properties)
        return common - redundant

    def assert_acyclic(self, over_properties: Optional[Iterable[str]] = None) -> None:
        """
        Check the hierarchy over subclass edges, plus over_properties (and
        their sub-properties)

        Raises:
            SubclassCycleError: the hierarchy contains a cycle
        """
        keys = self._relation_keys(over_properties)
        subclass_graph = nx.DiGraph()
        subclass_graph.add_edges_from(
            (s, t) for s, t, k in self._graph.edges(keys=True) if k in keys
        )
        try:
            cycle = nx.find_cycle(subclass_graph)
        except nx.NetworkXNoCycle:
            return
        raise SubclassCycleError(
            "Cycle in class hierarchy", [source for source, _ in cycle]
        )

    # ==========================================================================
    # Subgraph Filtering
    # ==========================================================================
    def filter_subgraphs(
        self,
        keep_root_ids: Iterable[str],
        over_properties: Optional[Iterable[str]] = None,
    ) -> int:
        """
        Keep only the subgraphs under the given roots, plus the roots' ancestors

        Relations from a retained ancestor to any other direct descendant are
        removed too, since they would represent an undesired subgraph.
        ``over_properties=None`` follows every relation.

        Returns:
            Number of classes removed
        """
        allowed = self._existing_roots(keep_root_ids)
        walk_kwargs = self._subgraph_walk_kwargs(over_properties)
        classes_count = self.num_classes
        logger.info(f"Start filtering subgraphs of allowed roots: {allowed}")

        subgraph_ids: Set[str] = set()
        ancestor_ids: Set[str] = set()
        for root in allowed:
            subgraph_ids |= self.descendants_of(root, include_self=True, **walk_kwargs)
            ancestor_ids |= self.ancestors_of(root, **walk_kwargs)

        to_keep = subgraph_ids | ancestor_ids
        removed = self.remove_classes(set(self._classes) - to_keep)

        allowed_set = set(allowed)
        undesired: List[Edge] = []
        for ancestor_id in ancestor_ids - subgraph_ids:
            for edge in self.incoming_edges(ancestor_id):
                if edge.source not in allowed_set and edge.source not in ancestor_ids:
                    undesired.append(edge)
        for edge in undesired:
            self.remove_edge(edge)

        logger.info(
            f"Done filtering subgraphs of allowed roots, {len(removed)} classes removed "
            f"over {classes_count} classes total, {len(undesired)} undesired relations removed"
        )
        return len(removed)

    def remove_subgraphs(
        self,
        root_ids: Iterable[str],
        keep_shared: bool = True,
        over_properties: Optional[Iterable[str]] = None,
    ) -> int:
        """
        Remove the subgraphs under the given roots

        Each root is handled on its own, in order. With ``keep_shared``, classes
        also reachable from a sibling subgraph hanging off one of the root's
        ancestors are kept. ``over_properties=None`` follows every relation.

        Returns:
            Number of classes removed
        """
        walk_kwargs = self._subgraph_walk_kwargs(over_properties)
        classes_count = self.num_classes
        roots = self._existing_roots(root_ids)
        logger.info(f"Start removing subgraphs of undesired roots: {roots}")

        removed_count = 0
        for root in roots:
            if root not in self._classes:
                # already removed as part of a previous subgraph
                continue
            to_remove = self.descendants_of(root, include_self=True, **walk_kwargs)

            if keep_shared:
                ancestor_ids = self.ancestors_of(root, **walk_kwargs)
                to_keep = set(ancestor_ids)
                for ancestor_id in ancestor_ids:
                    for child in self.direct_descendants_of(ancestor_id, **walk_kwargs):
                        if child in ancestor_ids or child == root:
                            continue
                        to_keep.add(child)
                        to_keep |= self.descendants_of(child, **walk_kwargs)
                to_remove -= to_keep

            removed_count += len(self.remove_classes(to_remove))

        logger.info(
            f"Done removing subgraphs of undesired roots, {removed_count} classes removed "
            f"over {classes_count} classes total"
        )
        return removed_count

    def _existing_roots(self, root_ids: Iterable[str]) -> List[str]:
        roots = []
        for root_id in root_ids:
            if root_id in self._classes:
                roots.append(root_id)
            else:
                logger.warning(f"Subgraph root not found in ontology, skipped: {root_id}")
        return roots

    @staticmethod
    def _subgraph_walk_kwargs(over_properties: Optional[Iterable[str]]) -> dict:
        if over_properties is None:
            return {"all_relations": True}
        return {"over_properties": list(over_properties)}

    # ==========================================================================
    # Taxon Facts and Disjointness
    # ==========================================================================
    def add_never_in_taxon(self, class_id: str, taxon_class_id: str) -> None:
        self.ensure_class(class_id)
        self._never_in_taxon[class_id].add(taxon_class_id)

    def add_only_in_taxon(self, class_id: str, taxon_class_id: str) -> None:
        self.ensure_class(class_id)
        self._only_in_taxon[class_id].add(taxon_class_id)

    def never_in_taxa(self, class_id: str) -> Set[str]:
        return set(self._never_in_taxon.get(class_id, ()))

    def only_in_taxa(self, class_id: str) -> Set[str]:
        return set(self._only_in_taxon.get(class_id, ()))

    def iter_never_in_taxon(self) -> Iterator[Tuple[str, str]]:
        for class_id, taxa in list(self._never_in_taxon.items()):
            for taxon in sorted(taxa):
                yield class_id, taxon

    def iter_only_in_taxon(self) -> Iterator[Tuple[str, str]]:
        for class_id, taxa in list(self._only_in_taxon.items()):
            for taxon in sorted(taxa):
                yield class_id, taxon

    def discard_taxon_fact(self, class_id: str, taxon_class_id: str) -> None:
        """Drop a never/only fact naming taxon_class_id for class_id"""
        for facts in (self._never_in_taxon, self._only_in_taxon):
            taxa = facts.get(class_id)
            if taxa is not None:
                taxa.discard(taxon_class_id)
                if not taxa:
                    del facts[class_id]

    def add_disjoint(self, first: str, second: str) -> None:
        self.ensure_class(first)
        self.ensure_class(second)
        self._disjoint.add(frozenset((first, second)))

    def remove_disjoint(self, first: str, second: str) -> bool:
        pair = frozenset((first, second))
        if pair in self._disjoint:
            self._disjoint.remove(pair)
            return True
        return False

    def disjoint_pairs(self) -> List[Tuple[str, str]]:
        return sorted(tuple(sorted(pair)) for pair in self._disjoint)

    # ==========================================================================
    # Copy and Merge
    # ==========================================================================
    def copy(self) -> "OntologyGraph":
        """Independent copy; mutating it never affects this graph"""
        clone = OntologyGraph(name=self.name, version=self.version)
        clone.merge(self)
        return clone

    def merge(self, other: "OntologyGraph") -> None:
        """Add every class, property, edge, fact and axiom of ``other``"""
        for cls in other.iter_classes():
            self.add_class(dataclasses.replace(cls))
        for prop in other.iter_properties():
            self.add_property(prop)
        for source, target, key, data in other._graph.edges(keys=True, data=True):
            self._graph.add_edge(source, target, key=key, **data)
        for class_id, taxon in other.iter_never_in_taxon():
            self._never_in_taxon[class_id].add(taxon)
        for class_id, taxon in other.iter_only_in_taxon():
            self._only_in_taxon[class_id].add(taxon)
        self._disjoint |= other._disjoint
