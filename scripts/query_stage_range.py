#!/usr/bin/env python3
"""
anatdev Stage Range Query Script
================================
List the developmental stages occurring between two stages.

Script: scripts/query_stage_range.py

Usage:
    python scripts/query_stage_range.py --stages uberon.obo \\
        --start UBERON:0000106 --end UBERON:0000113
    python scripts/query_stage_range.py --stages uberon.obo \\
        --constraints taxon_constraints.tsv --taxon 9606 \\
        --start UBERON:0000106 --end UBERON:0000113
    python scripts/query_stage_range.py ... --config configs/curation.yaml

    The ``stages`` section of the config file selects the stage hierarchy
    of a full ontology (stage_roots, ignored_stage_roots, removed_children_of).

Dependencies:
    - anatdev.ontology: ontology loading
    - anatdev.stage: nested set model and range queries
    - anatdev.taxon.tsv: taxon constraint table

Output:
    - Console: one stage per line, chronological order

Version: 1.0.0
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from anatdev.config import CurationConfig
from anatdev.core.exceptions import AnatDevError
from anatdev.ontology import create_ontology_loader
from anatdev.stage import (
    StageNestedSetBuilder,
    StageRangeResolver,
    prepare_stage_ontology,
)
from anatdev.taxon.tsv import extract_taxon_constraints

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(),
    ],
)
logger = logging.getLogger(__name__)


# =============================================================================
# CLI
# =============================================================================
def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="List developmental stages between two stages",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--stages",
        type=str,
        required=True,
        help="Developmental stage ontology (OBO or OWL)",
    )
    parser.add_argument("--start", type=str, required=True, help="Start stage id")
    parser.add_argument("--end", type=str, required=True, help="End stage id")
    parser.add_argument(
        "--constraints",
        type=str,
        help="Taxon constraint TSV, needed for multi-species ontologies",
    )
    parser.add_argument(
        "--taxon",
        type=int,
        help="NCBI taxon id the stages must exist in",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="YAML configuration file",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (verbose logging)",
    )

    return parser.parse_args()


# =============================================================================
# Entry Point
# =============================================================================
def main():
    """Main entry point"""
    args = parse_args()

    try:
        config = CurationConfig.load_from_yaml(args.config) if args.config else CurationConfig()
        logging.getLogger().setLevel(config.log_level)

        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        ontology = create_ontology_loader().load(Path(args.stages))
        prepare_stage_ontology(ontology, config.stages)
        constraints = (
            extract_taxon_constraints(args.constraints) if args.constraints else None
        )
        builder = StageNestedSetBuilder(ontology, constraints, config.stages)
        stage_ids = StageRangeResolver(builder).get_stage_ids_between(
            args.start, args.end, taxon_id=args.taxon
        )
    except (AnatDevError, OSError, ValueError) as e:
        logger.exception(f"Stage range query failed: {e}")
        return 1

    for stage_id in stage_ids:
        print(f"{stage_id}\t{ontology.get_label(stage_id) or '-'}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
