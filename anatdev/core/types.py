"""
anatdev Core Types
==================
統一的資料類型定義，所有模組共享

Shared value types for ontology classes, object properties, edges,
nested set entries and the transfer objects handed to persistence.

版本: 1.0.0
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set


# =============================================================================
# Relation Identifiers
# =============================================================================
PART_OF_ID = "BFO:0000050"
HAS_PART_ID = "BFO:0000051"
PRECEDED_BY_ID = "BFO:0000062"
IMMEDIATELY_PRECEDED_BY_ID = "RO:0002087"
OVERLAPS_ID = "RO:0002131"
DEVELOPS_FROM_ID = "RO:0002202"
TRANSFORMATION_OF_ID = "RO:0002494"
ONLY_IN_TAXON_ID = "RO:0002160"
NEVER_IN_TAXON_ID = "RO:0002161"
IN_TAXON_ID = "RO:0002162"

# Key used for subclass edges in the graph storage
IS_A_KEY = "is_a"

TAXONOMY_PREFIX = "NCBITaxon:"
TAXONOMY_ROOT_ID = "NCBITaxon:1"

# Type alias: class id -> NCBI taxon ids in which the class exists
TaxonConstraintMap = Dict[str, Set[int]]


def get_tax_ontology_id(ncbi_id: int, prefix: str = TAXONOMY_PREFIX) -> str:
    """9606 -> 'NCBITaxon:9606'"""
    return f"{prefix}{ncbi_id}"


def get_tax_ncbi_id(ontology_id: str, prefix: str = TAXONOMY_PREFIX) -> int:
    """'NCBITaxon:9606' -> 9606"""
    if not ontology_id.startswith(prefix):
        raise ValueError(f"Not a taxonomy identifier: {ontology_id}")
    return int(ontology_id[len(prefix):])


# =============================================================================
# Enums
# =============================================================================
class Quantifier(str, Enum):
    """
    邊的量詞

    SUBCLASS_OF: plain subsumption edge, no property
    SOME: existential restriction (A SubClassOf R some B)
    """
    SUBCLASS_OF = "subclass_of"
    SOME = "some"


# =============================================================================
# Ontology Entities
# =============================================================================
@dataclass(eq=False)
class OntologyClass:
    """
    本體類別

    Identity is by identifier only; ``is_obsolete`` is the only attribute
    expected to change after loading.
    """
    id: str
    label: Optional[str] = None
    description: Optional[str] = None
    comment: Optional[str] = None
    is_obsolete: bool = False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OntologyClass):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass
class ObjectProperty:
    """物件屬性 (relation)"""
    id: str
    label: Optional[str] = None
    is_transitive: bool = False
    # Direct super-properties, declaration order
    parents: List[str] = field(default_factory=list)
    # R transitive_over S: R followed by S gives R
    transitive_over: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Edge:
    """
    有向邊 source -> target

    ``property_id`` is None for a plain subclass edge.
    """
    source: str
    target: str
    property_id: Optional[str] = None
    quantifier: Quantifier = Quantifier.SUBCLASS_OF

    @property
    def is_subclass_edge(self) -> bool:
        return self.property_id is None

    @property
    def key(self) -> str:
        """Key of this edge in the underlying multigraph"""
        return self.property_id if self.property_id is not None else IS_A_KEY

    def __str__(self) -> str:
        rel = self.property_id or IS_A_KEY
        return f"{self.source} --{rel}--> {self.target}"


# =============================================================================
# Nested Set Model
# =============================================================================
@dataclass(frozen=True)
class NestedSetEntry:
    """Left bound, right bound and level of a class in a nested set model"""
    left: int
    right: int
    level: int

    def contains(self, other: "NestedSetEntry") -> bool:
        """True if this entry is a strict ancestor of ``other``"""
        return self.left < other.left and other.right < self.right


@dataclass
class StageRecord:
    """
    Transfer object for the persistence layer: one developmental stage with
    its nested set parameters and per-taxon existence flags.
    """
    stage_id: str
    label: Optional[str]
    left: int
    right: int
    level: int
    exists_in_taxa: Dict[int, bool] = field(default_factory=dict)
