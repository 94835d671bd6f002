"""
anatdev Protocol Definitions
============================
模組間的接口契約 (Protocol)

設計原則:
1. 使用 typing.Protocol 實現結構性子類型 (structural subtyping)
2. 引擎透過 Protocol 依賴注入 reducer，測試可替換為 fake 實作

版本: 1.0.0
"""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterator, Optional, Protocol, Set, runtime_checkable

from anatdev.core.types import Edge, OntologyClass

if TYPE_CHECKING:
    from anatdev.ontology.graph import OntologyGraph


# =============================================================================
# Ontology Protocols
# =============================================================================
@runtime_checkable
class OntologyLoaderProtocol(Protocol):
    """
    本體載入器協議

    實現模組: anatdev/ontology/loader.py
    """

    def load(self, path: Path) -> "OntologyGraph":
        """載入本體檔案 (OBO/OWL)"""
        ...


@runtime_checkable
class OntologyGraphProtocol(Protocol):
    """
    本體圖協議: what a loaded ontology must expose to the core

    實現模組: anatdev/ontology/graph.py
    """

    def iter_classes(self) -> Iterator[OntologyClass]:
        """列舉所有類別"""
        ...

    def iter_edges(self) -> Iterator[Edge]:
        """列舉所有關係 (含量詞)"""
        ...

    def never_in_taxa(self, class_id: str) -> Set[str]:
        """never_in_taxon 事實"""
        ...

    def only_in_taxa(self, class_id: str) -> Set[str]:
        """only_in_taxon 事實"""
        ...


# =============================================================================
# Taxon Constraint Protocols
# =============================================================================
@runtime_checkable
class SpeciesSubsetReducerProtocol(Protocol):
    """
    物種子集化協議

    實現模組: anatdev/taxon/reducer.py

    Both methods mutate ``ontology`` in place and return the removed class ids.
    """

    def remove_other_species(self, ontology: "OntologyGraph", taxon_id: int) -> Set[str]:
        """Final reduction: keep only what can exist in ``taxon_id``"""
        ...

    def remove_species(self, ontology: "OntologyGraph", taxon_id: int) -> Set[str]:
        """Pre-filter: drop what can only exist in ``taxon_id``"""
        ...


# Factory returning a fresh reducer for each taxon processed
ReducerFactory = Callable[[], SpeciesSubsetReducerProtocol]


@runtime_checkable
class SnapshotWriterProtocol(Protocol):
    """
    本體快照寫入協議

    實現模組: anatdev/ontology/snapshot.py
    """

    def __call__(self, ontology: "OntologyGraph", path: Path, ontology_iri: Optional[str] = None) -> Path:
        ...
