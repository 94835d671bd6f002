"""
anatdev Taxon Module
====================
物種約束模組: 計算每個解剖類別存在於哪些物種

主要功能:
- 物種子集化 (SpeciesSubsetReducer)
- 物種約束生成 (TaxonConstraintEngine)
- 物種約束表 TSV 讀寫與人工覆寫

使用範例:
    from anatdev.taxon import TaxonConstraintEngine

    engine = TaxonConstraintEngine(uberon, ncbitaxon)
    constraints = engine.generate_taxon_constraints({9606: [], 10090: []})
    print(constraints["UBERON:0000948"])  # {9606, 10090}

版本: 1.0.0
"""

from anatdev.taxon.reducer import SpeciesSubsetReducer

from anatdev.taxon.tsv import (
    parse_bool,
    extract_taxon_ids,
    extract_taxon_ids_from_constraints,
    extract_taxon_constraints,
    extract_taxon_ids_from_map,
    write_taxon_constraints,
    load_taxon_overrides,
    apply_taxon_overrides,
)

from anatdev.taxon.constraints import (
    REASONING_SOURCE_FILE,
    TaxonPrefilterPlan,
    TaxonConstraintEngine,
    propagate_prefilter_steps,
    generate_taxon_constraints_file,
)

__all__ = [
    "SpeciesSubsetReducer",
    "parse_bool",
    "extract_taxon_ids",
    "extract_taxon_ids_from_constraints",
    "extract_taxon_constraints",
    "extract_taxon_ids_from_map",
    "write_taxon_constraints",
    "load_taxon_overrides",
    "apply_taxon_overrides",
    "REASONING_SOURCE_FILE",
    "TaxonPrefilterPlan",
    "TaxonConstraintEngine",
    "propagate_prefilter_steps",
    "generate_taxon_constraints_file",
]
