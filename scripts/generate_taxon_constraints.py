#!/usr/bin/env python3
"""
anatdev Taxon Constraint Generation Script
==========================================
Compute the taxa in which each class of a domain ontology can exist.

Script: scripts/generate_taxon_constraints.py

Purpose:
    Reduce the domain ontology merged with the taxonomy once per requested
    taxon, then write the constraint table:
    - one row per non-obsolete domain class, sorted by id
    - one t/f column per taxon, in taxon file order
    - curated overrides applied last

Usage:
    python scripts/generate_taxon_constraints.py --domain uberon.obo \\
        --taxonomy ncbitaxon.obo --taxa taxa.tsv --output taxon_constraints.tsv
    python scripts/generate_taxon_constraints.py ... --overrides overrides.tsv \\
        --snapshot-dir out/ --config configs/curation.yaml

Dependencies:
    - anatdev.taxon.constraints: constraint generation
    - anatdev.config: configuration (YAML)

Output:
    - TSV constraint table
    - Optional: per-taxon OWL snapshots

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
from anatdev.taxon.constraints import generate_taxon_constraints_file

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
        description="Generate taxon constraints for a domain ontology",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--domain",
        type=str,
        required=True,
        help="Domain ontology (OBO or OWL)",
    )
    parser.add_argument(
        "--taxonomy",
        type=str,
        required=True,
        help="Taxonomy ontology (OBO or OWL)",
    )
    parser.add_argument(
        "--taxa",
        type=str,
        required=True,
        help="File listing the NCBI taxon ids to consider",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        required=True,
        help="Output TSV file",
    )
    parser.add_argument(
        "--overrides",
        type=str,
        help="TSV of curated overrides (id prefix, taxon ids)",
    )
    parser.add_argument(
        "--snapshot-dir",
        type=str,
        help="Directory where intermediate OWL snapshots are stored",
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

        # Set debug logging
        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        constraints = generate_taxon_constraints_file(
            domain_path=args.domain,
            taxonomy_path=args.taxonomy,
            taxon_file=args.taxa,
            output_tsv=args.output,
            override_file=args.overrides,
            output_dir=args.snapshot_dir,
            config=config.taxon_constraints,
        )
    except (AnatDevError, OSError, ValueError) as e:
        logger.exception(f"Taxon constraint generation failed: {e}")
        return 1

    logger.info(f"{len(constraints)} taxon constraints written to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
