"""
anatdev Ontology Module
=======================
本體處理模組，支援 Uberon/CL/ZFA 等解剖本體與 NCBITaxon 分類本體

主要功能:
- 載入 OBO / OWL 本體檔案
- 屬性層次閉包與邊的組合 (combine_property_pair, combine_edge_pair)
- 類別層次遍歷 (祖先、後代、LCA)
- 子圖過濾與移除
- OWL 快照讀寫

使用範例:
    from anatdev.ontology import OntologyLoader, write_owl_snapshot

    loader = OntologyLoader()
    uberon = loader.load(Path("uberon.obo"))

    # 獲取 part_of 祖先
    ancestors = uberon.ancestors_of("UBERON:0000948", over_properties=["BFO:0000050"])

    # 移除子圖
    uberon.remove_subgraphs(["UBERON:0000466"])
    write_owl_snapshot(uberon, Path("out/uberon_filtered.owl"))

版本: 1.0.0
"""

# Graph
from anatdev.ontology.graph import OntologyGraph

# Loader
from anatdev.ontology.loader import (
    OBOTerm,
    OBOTypedef,
    OBOHeader,
    OBOParser,
    OntologyLoader,
    create_ontology_loader,
)

# Snapshots
from anatdev.ontology.snapshot import (
    id_to_iri,
    iri_to_id,
    to_rdf_graph,
    write_owl_snapshot,
    read_owl_snapshot,
)

__all__ = [
    "OntologyGraph",
    "OBOTerm",
    "OBOTypedef",
    "OBOHeader",
    "OBOParser",
    "OntologyLoader",
    "create_ontology_loader",
    "id_to_iri",
    "iri_to_id",
    "to_rdf_graph",
    "write_owl_snapshot",
    "read_owl_snapshot",
]
