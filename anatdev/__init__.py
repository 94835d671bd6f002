"""
anatdev
=======
Taxon constraints and developmental stage intervals for anatomical ontologies.

Subpackages:
    - anatdev.core: shared types, protocols and errors
    - anatdev.config: configuration dataclasses (YAML)
    - anatdev.ontology: ontology graph, loaders, OWL snapshots
    - anatdev.taxon: species subset reduction and taxon constraint generation
    - anatdev.stage: nested set model and stage range queries

版本: 1.0.0
"""

__version__ = "1.0.0"
