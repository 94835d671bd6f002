"""
anatdev Exceptions
==================
錯誤類型定義

Configuration errors abort a run before any output is produced; data errors
carry the identifiers of the classes or edges involved.

版本: 1.0.0
"""
from __future__ import annotations

from typing import Iterable, Tuple


class AnatDevError(Exception):
    """Base class for all errors raised by anatdev"""


# =============================================================================
# Configuration Errors
# =============================================================================
class OntologyConfigurationError(AnatDevError, ValueError):
    """Invalid arguments or configuration; the whole run must stop"""


class RelatedPrefilterTaxonError(OntologyConfigurationError):
    """A pre-filtering taxon is an ancestor or descendant of its target taxon"""

    def __init__(self, target_taxon: int, prefilter_taxon: int):
        self.target_taxon = target_taxon
        self.prefilter_taxon = prefilter_taxon
        super().__init__(
            f"Pre-filtering taxon {prefilter_taxon} is not independent from "
            f"the main taxon {target_taxon}"
        )


class PropertyCombinationError(OntologyConfigurationError):
    """No transitive common super-property exists for two properties"""

    def __init__(self, first: str, second: str):
        self.first = first
        self.second = second
        super().__init__(
            f"No transitive common super-property for {first} and {second}"
        )


# =============================================================================
# Data Errors
# =============================================================================
class OntologyDataError(AnatDevError, RuntimeError):
    """Inconsistent ontology data, reported with the implicated identifiers"""

    def __init__(self, message: str, entity_ids: Iterable[str] = ()):
        self.entity_ids: Tuple[str, ...] = tuple(entity_ids)
        if self.entity_ids:
            message = f"{message} [{', '.join(self.entity_ids)}]"
        super().__init__(message)


class SubclassCycleError(OntologyDataError):
    """A cycle was found while walking the class hierarchy"""


class StageOrderingError(OntologyDataError):
    """preceded_by relations do not define a total order among siblings"""


class StageRangeError(OntologyDataError):
    """A stage range query cannot be answered"""


class TaxonConstraintFormatError(OntologyDataError):
    """Malformed taxon list or taxon constraint table"""
