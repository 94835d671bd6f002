"""
anatdev Ontology Loader
=======================
本體載入器，支援 OBO 和 OWL 格式

- OBO (.obo, .obo.gz): in-house OBOParser
- OWL (.owl): pronto

Both produce an OntologyGraph. Relation short names (part_of, preceded_by...)
are normalised to their OBO identifiers, and never/only/in_taxon statements are
decoded into taxon facts instead of graph edges.

版本: 1.0.0
"""
from __future__ import annotations

import gzip
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pronto

from anatdev.core.types import (
    DEVELOPS_FROM_ID,
    HAS_PART_ID,
    IMMEDIATELY_PRECEDED_BY_ID,
    IN_TAXON_ID,
    NEVER_IN_TAXON_ID,
    ONLY_IN_TAXON_ID,
    OVERLAPS_ID,
    PART_OF_ID,
    PRECEDED_BY_ID,
    TRANSFORMATION_OF_ID,
    Edge,
    ObjectProperty,
    OntologyClass,
    Quantifier,
)
from anatdev.ontology.graph import OntologyGraph
from anatdev.ontology.snapshot import iri_to_id

logger = logging.getLogger(__name__)


# Relation short names used in OBO files
BUILTIN_RELATION_IDS: Dict[str, str] = {
    "part_of": PART_OF_ID,
    "has_part": HAS_PART_ID,
    "preceded_by": PRECEDED_BY_ID,
    "immediately_preceded_by": IMMEDIATELY_PRECEDED_BY_ID,
    "overlaps": OVERLAPS_ID,
    "develops_from": DEVELOPS_FROM_ID,
    "transformation_of": TRANSFORMATION_OF_ID,
    "only_in_taxon": ONLY_IN_TAXON_ID,
    "never_in_taxon": NEVER_IN_TAXON_ID,
    "in_taxon": IN_TAXON_ID,
}

TAXON_RELATION_IDS = (NEVER_IN_TAXON_ID, ONLY_IN_TAXON_ID, IN_TAXON_ID)

CURIE_PATTERN = re.compile(r'^[A-Za-z][\w.]*:[\w.]+$')


# =============================================================================
# OBO Term Data Structure
# =============================================================================
@dataclass
class OBOTerm:
    """
    OBO 格式的術語結構
    """
    id: str
    name: str
    namespace: Optional[str] = None
    definition: Optional[str] = None
    comment: Optional[str] = None

    # Relationships
    is_a: List[str] = field(default_factory=list)  # Parent terms
    relationships: List[Tuple[str, str]] = field(default_factory=list)  # (relation, target)
    # (relation or None for the genus, target)
    intersection_of: List[Tuple[Optional[str], str]] = field(default_factory=list)
    disjoint_from: List[str] = field(default_factory=list)

    # Alternative identifiers
    alt_ids: List[str] = field(default_factory=list)

    # Synonyms
    synonyms: List[Tuple[str, str]] = field(default_factory=list)  # (text, type)

    # Cross-references
    xrefs: List[str] = field(default_factory=list)

    # Status
    is_obsolete: bool = False
    replaced_by: Optional[str] = None
    consider: List[str] = field(default_factory=list)

    # property_value: (property, value)
    property_values: List[Tuple[str, str]] = field(default_factory=list)


@dataclass
class OBOTypedef:
    """OBO Typedef stanza (object property)"""
    id: str
    name: Optional[str] = None
    is_a: List[str] = field(default_factory=list)
    is_transitive: bool = False
    transitive_over: List[str] = field(default_factory=list)
    xrefs: List[str] = field(default_factory=list)
    is_obsolete: bool = False


@dataclass
class OBOHeader:
    """
    OBO 檔案 header 資訊
    """
    format_version: Optional[str] = None
    data_version: Optional[str] = None
    ontology: Optional[str] = None
    date: Optional[str] = None
    saved_by: Optional[str] = None
    subsetdef: List[str] = field(default_factory=list)
    default_namespace: Optional[str] = None
    remark: Optional[str] = None

    # Additional properties
    properties: Dict[str, str] = field(default_factory=dict)


# =============================================================================
# OBO Parser
# =============================================================================
class OBOParser:
    """
    OBO 格式解析器

    支援 OBO 1.2 和 1.4 格式
    """

    # Regex patterns
    TAG_VALUE_PATTERN = re.compile(r'^(\S+):\s*(.*)$')
    QUALIFIER_PATTERN = re.compile(r'\s*\{[^}]*\}\s*$')
    SYNONYM_PATTERN = re.compile(r'"([^"]+)"\s+(\w+)')
    QUOTED_PATTERN = re.compile(r'"((?:[^"\\]|\\.)*)"')

    def __init__(self):
        self.header: Optional[OBOHeader] = None
        self.terms: Dict[str, OBOTerm] = {}
        self.typedefs: Dict[str, OBOTypedef] = {}

    def parse_file(self, file_path: Path) -> Tuple[OBOHeader, Dict[str, OBOTerm]]:
        """
        解析 OBO 檔案

        Args:
            file_path: OBO 檔案路徑 (支援 .obo 和 .obo.gz)

        Returns:
            (header, terms_dict); Typedefs are available in ``self.typedefs``
        """
        logger.info(f"Parsing OBO file: {file_path}")

        self.header = OBOHeader()
        self.terms = {}
        self.typedefs = {}

        # Handle gzipped files
        if str(file_path).endswith('.gz'):
            open_func = lambda p: gzip.open(p, 'rt', encoding='utf-8')
        else:
            open_func = lambda p: open(p, 'r', encoding='utf-8')

        with open_func(file_path) as f:
            current_stanza = None
            current_data: Dict[str, List[str]] = {}

            for line in f:
                line = line.strip()

                # Skip empty lines and comments
                if not line or line.startswith('!'):
                    continue

                # Check for stanza start
                if line.startswith('[') and line.endswith(']'):
                    if current_stanza:
                        self._save_stanza(current_stanza, current_data)
                    current_stanza = line[1:-1]
                    current_data = {}
                    continue

                match = self.TAG_VALUE_PATTERN.match(line)
                if match:
                    tag, value = match.groups()
                    value = value.strip()

                    # Remove trailing comments, but never inside quoted text
                    if ' !' in value and not value.startswith('"'):
                        value = value.split(' !')[0].strip()

                    if current_stanza is None:
                        self._parse_header_tag(tag, value)
                    else:
                        current_data.setdefault(tag, []).append(value)

            if current_stanza:
                self._save_stanza(current_stanza, current_data)

        logger.info(
            f"Parsed {len(self.terms)} terms and {len(self.typedefs)} typedefs "
            f"from {Path(file_path).name}"
        )
        return self.header, self.terms

    def _parse_header_tag(self, tag: str, value: str) -> None:
        """解析 header tag"""
        if tag == 'format-version':
            self.header.format_version = value
        elif tag == 'data-version':
            self.header.data_version = value
        elif tag == 'ontology':
            self.header.ontology = value
        elif tag == 'date':
            self.header.date = value
        elif tag == 'saved-by':
            self.header.saved_by = value
        elif tag == 'default-namespace':
            self.header.default_namespace = value
        elif tag == 'subsetdef':
            self.header.subsetdef.append(value)
        elif tag == 'remark':
            self.header.remark = value
        else:
            self.header.properties[tag] = value

    def _save_stanza(self, stanza_type: str, data: Dict[str, List[str]]) -> None:
        """保存解析的 stanza"""
        if stanza_type == 'Term':
            term = self._parse_term(data)
            if term and term.id:
                self.terms[term.id] = term
                # Also index by alt_ids
                for alt_id in term.alt_ids:
                    if alt_id not in self.terms:
                        self.terms[alt_id] = term
        elif stanza_type == 'Typedef':
            typedef = self._parse_typedef(data)
            if typedef:
                self.typedefs[typedef.id] = typedef

    def _strip(self, value: str) -> str:
        return self.QUALIFIER_PATTERN.sub('', value).strip()

    def _quoted(self, value: str) -> Optional[str]:
        match = self.QUOTED_PATTERN.search(value)
        return match.group(1).replace('\\"', '"') if match else None

    def _parse_term(self, data: Dict[str, List[str]]) -> Optional[OBOTerm]:
        """解析 Term stanza"""
        term_id = data.get('id', [''])[0]
        if not term_id:
            return None

        term = OBOTerm(
            id=term_id,
            name=data.get('name', [''])[0],
            namespace=data.get('namespace', [self.header.default_namespace])[0],
        )

        if 'def' in data:
            term.definition = self._quoted(data['def'][0])
        if 'comment' in data:
            term.comment = data['comment'][0]

        # IS_A relationships. Format: HP:0000001 ! Term name
        for is_a in data.get('is_a', []):
            term.is_a.append(self._strip(is_a).split()[0])

        for rel in data.get('relationship', []):
            parts = self._strip(rel).split()
            if len(parts) >= 2:
                term.relationships.append((parts[0], parts[1]))

        for inter in data.get('intersection_of', []):
            parts = self._strip(inter).split()
            if len(parts) == 1:
                term.intersection_of.append((None, parts[0]))
            elif len(parts) >= 2:
                term.intersection_of.append((parts[0], parts[1]))

        term.disjoint_from = [self._strip(d).split()[0] for d in data.get('disjoint_from', [])]

        for prop_value in data.get('property_value', []):
            parts = self._strip(prop_value).split()
            if len(parts) >= 2:
                term.property_values.append((parts[0], parts[1].strip('"')))

        term.alt_ids = data.get('alt_id', [])

        for syn in data.get('synonym', []):
            syn_match = self.SYNONYM_PATTERN.search(syn)
            if syn_match:
                term.synonyms.append((syn_match.group(1), syn_match.group(2)))

        term.xrefs = [self._strip(x).split()[0] for x in data.get('xref', [])]

        if 'is_obsolete' in data and data['is_obsolete'][0].lower() == 'true':
            term.is_obsolete = True
        if 'replaced_by' in data:
            term.replaced_by = data['replaced_by'][0]
        term.consider = data.get('consider', [])

        return term

    def _parse_typedef(self, data: Dict[str, List[str]]) -> Optional[OBOTypedef]:
        """解析 Typedef stanza"""
        typedef_id = data.get('id', [''])[0]
        if not typedef_id:
            return None
        return OBOTypedef(
            id=typedef_id,
            name=data.get('name', [None])[0],
            is_a=[self._strip(v).split()[0] for v in data.get('is_a', [])],
            is_transitive=data.get('is_transitive', ['false'])[0].lower() == 'true',
            transitive_over=[self._strip(v).split()[0] for v in data.get('transitive_over', [])],
            xrefs=[self._strip(v).split()[0] for v in data.get('xref', [])],
            is_obsolete=data.get('is_obsolete', ['false'])[0].lower() == 'true',
        )


# =============================================================================
# Ontology Loader
# =============================================================================
class OntologyLoader:
    """
    本體載入器

    Builds an OntologyGraph from an OBO file (OBOParser) or an OWL file (pronto).
    """

    def __init__(self, relation_aliases: Optional[Dict[str, str]] = None):
        """
        Args:
            relation_aliases: extra relation short name -> identifier mappings
        """
        self.parser = OBOParser()
        self.relation_aliases = dict(BUILTIN_RELATION_IDS)
        if relation_aliases:
            self.relation_aliases.update(relation_aliases)

    def load(self, path: Path) -> OntologyGraph:
        """
        載入本體檔案

        Args:
            path: OBO/OWL 檔案路徑

        Returns:
            OntologyGraph
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Ontology file not found: {path}")

        name = str(path)
        if name.endswith('.obo') or name.endswith('.obo.gz'):
            header, terms = self.parser.parse_file(path)
            graph = self.build_from_obo(header, terms, self.parser.typedefs)
        elif name.endswith('.owl') or name.endswith('.owl.gz'):
            logger.info(f"Parsing OWL file with pronto: {path}")
            graph = self.build_from_pronto(pronto.Ontology(name))
        else:
            raise ValueError(f"Unsupported ontology format: {path.suffix}")

        if graph.name is None:
            graph.name = path.stem
        logger.info(f"Loaded {graph!r} from {path.name}")
        return graph

    # =========================================================================
    # Relation identifiers
    # =========================================================================
    def resolve_relation_id(self, relation: str, xrefs: Iterable[str] = ()) -> str:
        """Short name or identifier -> identifier, preferring a CURIE xref"""
        for xref in xrefs:
            if CURIE_PATTERN.match(xref):
                return xref
        return self.relation_aliases.get(relation, relation)

    def _add_relation(self, graph: OntologyGraph, source: str, relation_id: str, target: str) -> None:
        """Record a relation as an existential edge, or as a taxon fact"""
        if relation_id == NEVER_IN_TAXON_ID:
            graph.add_never_in_taxon(source, target)
        elif relation_id in (ONLY_IN_TAXON_ID, IN_TAXON_ID):
            graph.add_only_in_taxon(source, target)
        else:
            graph.add_edge(Edge(source, target, relation_id, Quantifier.SOME))

    # =========================================================================
    # OBO
    # =========================================================================
    def build_from_obo(
        self,
        header: OBOHeader,
        terms: Dict[str, OBOTerm],
        typedefs: Optional[Dict[str, OBOTypedef]] = None,
    ) -> OntologyGraph:
        """Convert parsed OBO stanzas into an OntologyGraph"""
        typedefs = typedefs or {}
        graph = OntologyGraph(name=header.ontology, version=header.data_version)

        relation_ids: Dict[str, str] = {
            tid: self.resolve_relation_id(tid, td.xrefs) for tid, td in typedefs.items()
        }

        def rel_id(short: str) -> str:
            return relation_ids.get(short) or self.resolve_relation_id(short)

        for typedef in typedefs.values():
            graph.add_property(ObjectProperty(
                id=rel_id(typedef.id),
                label=typedef.name,
                is_transitive=typedef.is_transitive,
                parents=[rel_id(p) for p in typedef.is_a],
                transitive_over=[rel_id(o) for o in typedef.transitive_over],
            ))

        for term_id, term in terms.items():
            # alt_id entries point to the same term object
            if term_id != term.id:
                continue

            graph.add_class(OntologyClass(
                id=term.id,
                label=term.name or None,
                description=term.definition,
                comment=term.comment,
                is_obsolete=term.is_obsolete,
            ))
            if term.is_obsolete:
                continue

            for parent_id in term.is_a:
                graph.add_edge(Edge(term.id, parent_id))
            for relation, target in term.relationships:
                self._add_relation(graph, term.id, rel_id(relation), target)
            for relation, target in term.intersection_of:
                if relation is None:
                    graph.add_edge(Edge(term.id, target))
                else:
                    self._add_relation(graph, term.id, rel_id(relation), target)
            for other in term.disjoint_from:
                graph.add_disjoint(term.id, other)
            for prop, value in term.property_values:
                if rel_id(prop) in TAXON_RELATION_IDS:
                    self._add_relation(graph, term.id, rel_id(prop), value)

        return graph

    # =========================================================================
    # OWL (pronto)
    # =========================================================================
    def build_from_pronto(self, ontology: "pronto.Ontology") -> OntologyGraph:
        """
        Convert a pronto.Ontology into an OntologyGraph

        pronto keeps OBO PURLs of annotation properties and their values as
        full IRIs; every identifier goes through iri_to_id so that the graph
        only holds CURIEs. never_in_taxon / only_in_taxon / in_taxon are read
        both from annotation assertions and from existential restrictions.
        """
        meta = ontology.metadata
        graph = OntologyGraph(name=meta.ontology, version=meta.data_version)

        def rel_id(relationship: Any) -> str:
            return self.resolve_relation_id(
                iri_to_id(relationship.id), [iri_to_id(x.id) for x in relationship.xrefs]
            )

        for relationship in ontology.relationships():
            graph.add_property(ObjectProperty(
                id=rel_id(relationship),
                label=relationship.name,
                is_transitive=bool(relationship.transitive),
                parents=[
                    rel_id(p) for p in relationship.superproperties(distance=1, with_self=False)
                ],
                transitive_over=[rel_id(o) for o in relationship.transitive_over],
            ))

        for term in ontology.terms():
            term_id = iri_to_id(term.id)
            graph.add_class(OntologyClass(
                id=term_id,
                label=term.name,
                description=str(term.definition) if term.definition else None,
                comment=term.comment,
                is_obsolete=term.obsolete,
            ))
            if term.obsolete:
                continue

            for parent in term.superclasses(distance=1, with_self=False):
                graph.add_edge(Edge(term_id, iri_to_id(parent.id)))
            for relationship, targets in term.relationships.items():
                relation_id = rel_id(relationship)
                for target in targets:
                    self._add_relation(graph, term_id, relation_id, iri_to_id(target.id))
            for other in term.disjoint_from:
                graph.add_disjoint(term_id, iri_to_id(other.id))
            for annotation in term.annotations:
                resource = getattr(annotation, 'resource', None)
                if not resource:
                    continue
                relation_id = self.resolve_relation_id(iri_to_id(annotation.property))
                if relation_id in TAXON_RELATION_IDS:
                    self._add_relation(graph, term_id, relation_id, iri_to_id(resource))

        return graph


# =============================================================================
# Factory Function
# =============================================================================
def create_ontology_loader(relation_aliases: Optional[Dict[str, str]] = None) -> OntologyLoader:
    """
    工廠函數: 創建本體載入器

    Args:
        relation_aliases: 額外的關係名稱對應

    Returns:
        OntologyLoader 實例
    """
    return OntologyLoader(relation_aliases)
