"""
anatdev OWL Snapshots
=====================
本體快照: OntologyGraph <-> RDF/XML OWL (rdflib)

Encoding:
- classes: owl:Class with rdfs:label, IAO:0000115 definition, rdfs:comment,
  owl:deprecated
- subclass edges: rdfs:subClassOf
- existential edges: rdfs:subClassOf [owl:Restriction onProperty/someValuesFrom]
- object properties: owl:ObjectProperty, owl:TransitiveProperty,
  rdfs:subPropertyOf, owl:propertyChainAxiom (R o S -> R) for transitive_over
- never_in_taxon / only_in_taxon facts: annotation assertions RO:0002161 / RO:0002160
- disjointness: owl:disjointWith

版本: 1.0.0
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from rdflib import BNode, Graph, Literal, Namespace, URIRef
from rdflib.collection import Collection
from rdflib.namespace import OWL, RDF, RDFS, XSD

from anatdev.core.types import (
    NEVER_IN_TAXON_ID,
    ONLY_IN_TAXON_ID,
    Edge,
    ObjectProperty,
    OntologyClass,
    Quantifier,
)
from anatdev.ontology.graph import OntologyGraph
from anatdev.utils.atomic import atomic_output

logger = logging.getLogger(__name__)

OBO = Namespace("http://purl.obolibrary.org/obo/")
# identifiers that are not CURIEs (e.g. relation short names)
LOCAL = Namespace("http://purl.obolibrary.org/obo/anatdev#")
IAO_DEFINITION = OBO["IAO_0000115"]


# =============================================================================
# Identifier <-> IRI
# =============================================================================
def id_to_iri(identifier: str) -> URIRef:
    """'UBERON:0000178' -> obo:UBERON_0000178; other identifiers go to the local namespace"""
    if identifier.startswith("http://") or identifier.startswith("https://"):
        return URIRef(identifier)
    prefix, sep, local = identifier.partition(":")
    if sep and prefix and local:
        return OBO[f"{prefix}_{local}"]
    return LOCAL[identifier]


def iri_to_id(iri: Union[URIRef, str]) -> str:
    """Inverse of id_to_iri"""
    iri = str(iri)
    if iri.startswith(str(LOCAL)):
        return iri[len(str(LOCAL)):]
    if iri.startswith(str(OBO)):
        local = iri[len(str(OBO)):]
        prefix, sep, rest = local.partition("_")
        return f"{prefix}:{rest}" if sep else local
    return iri


NEVER_IN_TAXON_IRI = id_to_iri(NEVER_IN_TAXON_ID)
ONLY_IN_TAXON_IRI = id_to_iri(ONLY_IN_TAXON_ID)


# =============================================================================
# Writer
# =============================================================================
def to_rdf_graph(ontology: OntologyGraph, ontology_iri: Optional[str] = None) -> Graph:
    """Build the rdflib Graph for an OntologyGraph"""
    g = Graph()
    g.bind("obo", OBO)
    g.bind("owl", OWL)

    onto = URIRef(ontology_iri or f"{OBO}{ontology.name or 'anatdev'}.owl")
    g.add((onto, RDF.type, OWL.Ontology))
    if ontology.version:
        g.add((onto, OWL.versionInfo, Literal(ontology.version)))

    for prop in ontology.iter_properties():
        p = id_to_iri(prop.id)
        g.add((p, RDF.type, OWL.ObjectProperty))
        if prop.label:
            g.add((p, RDFS.label, Literal(prop.label)))
        if prop.is_transitive:
            g.add((p, RDF.type, OWL.TransitiveProperty))
        for parent in prop.parents:
            g.add((p, RDFS.subPropertyOf, id_to_iri(parent)))
        for over in prop.transitive_over:
            chain = BNode()
            Collection(g, chain, [p, id_to_iri(over)])
            g.add((p, OWL.propertyChainAxiom, chain))

    for annotation in (NEVER_IN_TAXON_IRI, ONLY_IN_TAXON_IRI):
        g.add((annotation, RDF.type, OWL.AnnotationProperty))

    for cls in ontology.iter_classes():
        c = id_to_iri(cls.id)
        g.add((c, RDF.type, OWL.Class))
        if cls.label:
            g.add((c, RDFS.label, Literal(cls.label)))
        if cls.description:
            g.add((c, IAO_DEFINITION, Literal(cls.description)))
        if cls.comment:
            g.add((c, RDFS.comment, Literal(cls.comment)))
        if cls.is_obsolete:
            g.add((c, OWL.deprecated, Literal(True, datatype=XSD.boolean)))

    for edge in ontology.iter_edges():
        source, target = id_to_iri(edge.source), id_to_iri(edge.target)
        if edge.is_subclass_edge:
            g.add((source, RDFS.subClassOf, target))
            continue
        restriction = BNode()
        g.add((restriction, RDF.type, OWL.Restriction))
        g.add((restriction, OWL.onProperty, id_to_iri(edge.property_id)))
        g.add((restriction, OWL.someValuesFrom, target))
        g.add((source, RDFS.subClassOf, restriction))

    for class_id, taxon_id in ontology.iter_never_in_taxon():
        g.add((id_to_iri(class_id), NEVER_IN_TAXON_IRI, id_to_iri(taxon_id)))
    for class_id, taxon_id in ontology.iter_only_in_taxon():
        g.add((id_to_iri(class_id), ONLY_IN_TAXON_IRI, id_to_iri(taxon_id)))

    for first, second in ontology.disjoint_pairs():
        g.add((id_to_iri(first), OWL.disjointWith, id_to_iri(second)))

    return g


def write_owl_snapshot(
    ontology: OntologyGraph,
    path: Union[str, Path],
    ontology_iri: Optional[str] = None,
) -> Path:
    """
    Serialize an OntologyGraph as RDF/XML, atomically

    The abbreviated RDF/XML form (typed node elements) is written so that the
    snapshot can be reopened with OntologyLoader (pronto reads typed owl:Class
    elements).

    Returns:
        The written path
    """
    path = Path(path)
    g = to_rdf_graph(ontology, ontology_iri)
    with atomic_output(path) as tmp_path:
        g.serialize(destination=str(tmp_path), format="pretty-xml")
    logger.info(f"Ontology snapshot saved to {path} ({ontology.num_classes} classes)")
    return path


# =============================================================================
# Reader
# =============================================================================
def read_owl_snapshot(path: Union[str, Path]) -> OntologyGraph:
    """Load a snapshot written by write_owl_snapshot back into an OntologyGraph"""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Ontology snapshot not found: {path}")

    g = Graph()
    g.parse(str(path), format="xml")

    graph = OntologyGraph()
    for onto in g.subjects(RDF.type, OWL.Ontology):
        name = str(onto).rsplit("/", 1)[-1]
        graph.name = name[:-4] if name.endswith(".owl") else name
        version = g.value(onto, OWL.versionInfo)
        graph.version = str(version) if version is not None else None

    for p in sorted(g.subjects(RDF.type, OWL.ObjectProperty), key=str):
        label = g.value(p, RDFS.label)
        transitive_over = []
        for chain in g.objects(p, OWL.propertyChainAxiom):
            members = list(Collection(g, chain))
            if len(members) == 2 and members[0] == p:
                transitive_over.append(iri_to_id(members[1]))
        graph.add_property(ObjectProperty(
            id=iri_to_id(p),
            label=str(label) if label is not None else None,
            is_transitive=(p, RDF.type, OWL.TransitiveProperty) in g,
            parents=sorted(iri_to_id(o) for o in g.objects(p, RDFS.subPropertyOf)),
            transitive_over=transitive_over,
        ))

    for c in sorted(g.subjects(RDF.type, OWL.Class), key=str):
        if not isinstance(c, URIRef):
            continue
        label = g.value(c, RDFS.label)
        definition = g.value(c, IAO_DEFINITION)
        comment = g.value(c, RDFS.comment)
        deprecated = g.value(c, OWL.deprecated)
        graph.add_class(OntologyClass(
            id=iri_to_id(c),
            label=str(label) if label is not None else None,
            description=str(definition) if definition is not None else None,
            comment=str(comment) if comment is not None else None,
            is_obsolete=bool(deprecated is not None and deprecated.toPython()),
        ))

    for source, target in g.subject_objects(RDFS.subClassOf):
        if not isinstance(source, URIRef):
            continue
        if isinstance(target, URIRef):
            graph.add_edge(Edge(iri_to_id(source), iri_to_id(target)))
            continue
        on_property = g.value(target, OWL.onProperty)
        filler = g.value(target, OWL.someValuesFrom)
        if on_property is not None and isinstance(filler, URIRef):
            graph.add_edge(Edge(
                iri_to_id(source), iri_to_id(filler), iri_to_id(on_property), Quantifier.SOME
            ))

    for source, taxon in g.subject_objects(NEVER_IN_TAXON_IRI):
        graph.add_never_in_taxon(iri_to_id(source), iri_to_id(taxon))
    for source, taxon in g.subject_objects(ONLY_IN_TAXON_IRI):
        graph.add_only_in_taxon(iri_to_id(source), iri_to_id(taxon))
    for first, second in g.subject_objects(OWL.disjointWith):
        graph.add_disjoint(iri_to_id(first), iri_to_id(second))

    logger.info(f"Loaded snapshot {graph!r} from {path.name}")
    return graph
