"""
anatdev Core Module
===================
核心模組，包含 Protocol 定義、共享類型與錯誤類型

使用方式:
    from anatdev.core import OntologyClass, Edge, Quantifier
    from anatdev.core import SpeciesSubsetReducerProtocol
"""

from anatdev.core.types import (
    # Relation identifiers
    PART_OF_ID,
    HAS_PART_ID,
    PRECEDED_BY_ID,
    IMMEDIATELY_PRECEDED_BY_ID,
    OVERLAPS_ID,
    DEVELOPS_FROM_ID,
    TRANSFORMATION_OF_ID,
    ONLY_IN_TAXON_ID,
    NEVER_IN_TAXON_ID,
    IN_TAXON_ID,
    IS_A_KEY,
    TAXONOMY_PREFIX,
    TAXONOMY_ROOT_ID,
    # Types
    Quantifier,
    OntologyClass,
    ObjectProperty,
    Edge,
    NestedSetEntry,
    StageRecord,
    TaxonConstraintMap,
    # Utilities
    get_tax_ontology_id,
    get_tax_ncbi_id,
)

from anatdev.core.exceptions import (
    AnatDevError,
    OntologyConfigurationError,
    RelatedPrefilterTaxonError,
    PropertyCombinationError,
    OntologyDataError,
    SubclassCycleError,
    StageOrderingError,
    StageRangeError,
    TaxonConstraintFormatError,
)

from anatdev.core.protocols import (
    OntologyLoaderProtocol,
    OntologyGraphProtocol,
    SpeciesSubsetReducerProtocol,
    SnapshotWriterProtocol,
    ReducerFactory,
)

__all__ = [
    "PART_OF_ID",
    "HAS_PART_ID",
    "PRECEDED_BY_ID",
    "IMMEDIATELY_PRECEDED_BY_ID",
    "OVERLAPS_ID",
    "DEVELOPS_FROM_ID",
    "TRANSFORMATION_OF_ID",
    "ONLY_IN_TAXON_ID",
    "NEVER_IN_TAXON_ID",
    "IN_TAXON_ID",
    "IS_A_KEY",
    "TAXONOMY_PREFIX",
    "TAXONOMY_ROOT_ID",
    "Quantifier",
    "OntologyClass",
    "ObjectProperty",
    "Edge",
    "NestedSetEntry",
    "StageRecord",
    "TaxonConstraintMap",
    "get_tax_ontology_id",
    "get_tax_ncbi_id",
    "AnatDevError",
    "OntologyConfigurationError",
    "RelatedPrefilterTaxonError",
    "PropertyCombinationError",
    "OntologyDataError",
    "SubclassCycleError",
    "StageOrderingError",
    "StageRangeError",
    "TaxonConstraintFormatError",
    "OntologyLoaderProtocol",
    "OntologyGraphProtocol",
    "SpeciesSubsetReducerProtocol",
    "SnapshotWriterProtocol",
    "ReducerFactory",
]
