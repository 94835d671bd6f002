"""
Unit Tests for Ontology Graph
=============================
測試屬性閉包、邊的組合、類別遍歷與子圖過濾
"""
import pytest
from pathlib import Path

from anatdev.core import (
    PART_OF_ID,
    OVERLAPS_ID,
    HAS_PART_ID,
    DEVELOPS_FROM_ID,
    TRANSFORMATION_OF_ID,
    Edge,
    OntologyClass,
    OntologyDataError,
    PropertyCombinationError,
    Quantifier,
    SubclassCycleError,
)
from anatdev.ontology import OntologyGraph, OntologyLoader

DEVELOPMENTAL_CONTRIBUTION_ID = "RO:0002254"


# =============================================================================
# Fixtures
# =============================================================================
@pytest.fixture
def fixtures_dir() -> Path:
    """獲取 fixtures 目錄路徑"""
    return Path(__file__).parent.parent / "fixtures"


@pytest.fixture
def graph(fixtures_dir: Path) -> OntologyGraph:
    """載入測試用本體"""
    return OntologyLoader().load(fixtures_dir / "closure.obo")


def foo(number: int) -> str:
    return f"FOO:{number:04d}"


# =============================================================================
# Test Property Closure
# =============================================================================
class TestPropertyClosure:
    """測試屬性層次閉包"""

    def test_sub_properties(self, graph: OntologyGraph):
        assert graph.sub_properties_of("fake_rel1") == ["fake_rel2"]
        assert graph.sub_properties_of("fake_rel2") == ["fake_rel3", "fake_rel4"]
        assert graph.sub_properties_of("fake_rel3") == []

    def test_sub_property_closure(self, graph: OntologyGraph):
        assert graph.sub_property_closure_of("fake_rel1") == [
            "fake_rel2", "fake_rel3", "fake_rel4"
        ]
        assert graph.sub_property_reflexive_closure_of("fake_rel1") == [
            "fake_rel1", "fake_rel2", "fake_rel3", "fake_rel4"
        ]

    def test_super_property_closure(self, graph: OntologyGraph):
        assert graph.super_property_reflexive_closure_of("fake_rel3") == [
            "fake_rel3", "fake_rel2", "fake_rel1"
        ]
        assert graph.super_property_closure_of("in_deep_part_of") == [PART_OF_ID, OVERLAPS_ID]

    def test_relation_ids_from_xrefs(self, graph: OntologyGraph):
        """Typedef short names are replaced by their xref identifiers"""
        part_of = graph.get_property(PART_OF_ID)
        assert part_of is not None
        assert part_of.is_transitive
        assert part_of.parents == [OVERLAPS_ID]
        assert graph.get_property(OVERLAPS_ID).transitive_over == [PART_OF_ID]


# =============================================================================
# Test Property Combination
# =============================================================================
class TestCombineProperties:
    """測試屬性組合"""

    def test_common_transitive_ancestor(self, graph: OntologyGraph):
        assert graph.combine_property_pair("fake_rel3", "fake_rel4") == "fake_rel1"

    def test_same_transitive_property(self, graph: OntologyGraph):
        assert graph.combine_property_pair(PART_OF_ID, PART_OF_ID) == PART_OF_ID

    def test_sub_property_of_transitive(self, graph: OntologyGraph):
        assert graph.combine_property_pair(PART_OF_ID, "in_deep_part_of") == PART_OF_ID
        assert graph.combine_property_pair(
            TRANSFORMATION_OF_ID, DEVELOPS_FROM_ID
        ) == DEVELOPS_FROM_ID
        assert graph.combine_property_pair(
            TRANSFORMATION_OF_ID, DEVELOPMENTAL_CONTRIBUTION_ID
        ) == DEVELOPMENTAL_CONTRIBUTION_ID

    def test_transitive_over(self, graph: OntologyGraph):
        """overlaps followed by part_of gives overlaps"""
        assert graph.combine_property_pair(OVERLAPS_ID, PART_OF_ID) == OVERLAPS_ID

    def test_no_transitive_common_ancestor(self, graph: OntologyGraph):
        with pytest.raises(PropertyCombinationError):
            graph.combine_property_pair(PART_OF_ID, OVERLAPS_ID)
        with pytest.raises(PropertyCombinationError):
            graph.combine_property_pair(PART_OF_ID, DEVELOPS_FROM_ID)

    def test_combination_error_is_configuration_error(self, graph: OntologyGraph):
        with pytest.raises(ValueError):
            graph.combine_property_pair("fake_rel3", PART_OF_ID)


# =============================================================================
# Test Edge Combination
# =============================================================================
class TestCombineEdges:
    """測試邊的組合"""

    def test_combine_some_edges(self, graph: OntologyGraph):
        first = Edge(foo(1), foo(2), OVERLAPS_ID, Quantifier.SOME)
        second = Edge(foo(2), foo(3), PART_OF_ID, Quantifier.SOME)
        combined = graph.combine_edge_pair(first, second)
        assert combined == Edge(foo(1), foo(3), OVERLAPS_ID, Quantifier.SOME)

    def test_subclass_edge_is_transparent(self, graph: OntologyGraph):
        first = Edge(foo(5), foo(4))
        second = Edge(foo(4), foo(9), PART_OF_ID, Quantifier.SOME)
        assert graph.combine_edge_pair(first, second) == Edge(
            foo(5), foo(9), PART_OF_ID, Quantifier.SOME
        )
        third = Edge(foo(9), foo(6))
        assert graph.combine_edge_pair(second, third) == Edge(
            foo(4), foo(6), PART_OF_ID, Quantifier.SOME
        )

    def test_two_subclass_edges(self, graph: OntologyGraph):
        combined = graph.combine_edge_pair(Edge(foo(5), foo(4)), Edge(foo(4), foo(2)))
        assert combined.is_subclass_edge
        assert (combined.source, combined.target) == (foo(5), foo(2))

    def test_edges_not_adjacent(self, graph: OntologyGraph):
        with pytest.raises(OntologyDataError):
            graph.combine_edge_pair(Edge(foo(5), foo(4)), Edge(foo(3), foo(2)))

    def test_sub_rels_reflexive_closure(self, graph: OntologyGraph):
        edge = Edge(foo(1), foo(2), OVERLAPS_ID, Quantifier.SOME)
        closure = graph.sub_rels_reflexive_closure_of(edge)
        assert [e.property_id for e in closure] == [
            OVERLAPS_ID, PART_OF_ID, HAS_PART_ID, "in_deep_part_of"
        ]
        assert all(e.source == foo(1) and e.target == foo(2) for e in closure)

    def test_outgoing_edges_closure(self, graph: OntologyGraph):
        graph.add_edge(Edge(foo(3), foo(5), PART_OF_ID, Quantifier.SOME))
        graph.add_edge(Edge(foo(5), foo(9), "in_deep_part_of", Quantifier.SOME))

        closure = graph.outgoing_edges_closure(foo(3), [PART_OF_ID])
        assert Edge(foo(3), foo(5), PART_OF_ID, Quantifier.SOME) in closure
        assert Edge(foo(3), foo(9), PART_OF_ID, Quantifier.SOME) in closure
        assert all(not e.is_subclass_edge for e in closure)


# =============================================================================
# Test Class Hierarchy
# =============================================================================
class TestClassHierarchy:
    """測試類別層次遍歷"""

    def test_all_classes(self, graph: OntologyGraph):
        assert len(graph.all_classes()) == 16
        assert foo(200) not in graph.all_classes()
        assert foo(200) in graph.all_classes(include_obsolete=True)

    def test_ontology_roots(self, graph: OntologyGraph):
        assert graph.ontology_roots() == {foo(1), foo(100)}

    def test_descendants(self, graph: OntologyGraph):
        assert graph.descendants_of(foo(2)) == {
            foo(3), foo(4), foo(5), foo(11), foo(14), foo(15)
        }
        assert graph.direct_descendants_of(foo(2)) == {foo(3), foo(4)}
        assert graph.descendants_of(foo(15)) == set()

    def test_ancestors(self, graph: OntologyGraph):
        assert graph.ancestors_of(foo(8)) == {foo(7), foo(6), foo(1)}
        assert graph.ancestors_of(foo(8), include_self=True) == {
            foo(8), foo(7), foo(6), foo(1)
        }
        assert graph.direct_ancestors_of(foo(11)) == {foo(4), foo(9)}

    def test_descendants_over_properties(self, graph: OntologyGraph):
        graph.add_edge(Edge(foo(100), foo(15), "in_deep_part_of", Quantifier.SOME))
        assert foo(100) not in graph.descendants_of(foo(2))
        assert foo(100) in graph.descendants_of(foo(2), over_properties=[PART_OF_ID])
        assert foo(100) in graph.descendants_of(foo(2), all_relations=True)

    def test_least_common_ancestors(self, graph: OntologyGraph):
        assert graph.least_common_ancestors(foo(3), foo(5)) == {foo(2)}
        assert graph.least_common_ancestors(foo(2), foo(5)) == {foo(2)}
        assert graph.least_common_ancestors(foo(11), foo(14)) == {foo(4), foo(9)}

    def test_cycle_detection(self, graph: OntologyGraph):
        graph.add_edge(Edge(foo(2), foo(15)))
        with pytest.raises(SubclassCycleError):
            graph.descendants_of(foo(2))
        with pytest.raises(SubclassCycleError):
            graph.assert_acyclic()

    def test_acyclic(self, graph: OntologyGraph):
        graph.assert_acyclic()

    def test_cycle_over_properties(self, graph: OntologyGraph):
        """part_of 循環只在檢查 part_of 時報告"""
        graph.add_edge(Edge(foo(100), foo(15), "in_deep_part_of", Quantifier.SOME))
        graph.add_edge(Edge(foo(15), foo(100), PART_OF_ID, Quantifier.SOME))

        graph.assert_acyclic()
        with pytest.raises(SubclassCycleError) as excinfo:
            graph.assert_acyclic(over_properties=[PART_OF_ID])
        assert set(excinfo.value.entity_ids) == {foo(15), foo(100)}

    def test_cycle_away_from_start(self, graph: OntologyGraph):
        """遍歷只報告經過起點的循環，其他循環由 assert_acyclic 檢查"""
        graph.add_edge(Edge(foo(3), foo(100), PART_OF_ID, Quantifier.SOME))
        graph.add_edge(Edge(foo(100), foo(3), PART_OF_ID, Quantifier.SOME))

        assert foo(100) in graph.ancestors_of(foo(15), over_properties=[PART_OF_ID])
        with pytest.raises(SubclassCycleError):
            graph.assert_acyclic(over_properties=[PART_OF_ID])


# =============================================================================
# Test Subgraph Filtering
# =============================================================================
class TestSubgraphs:
    """測試子圖過濾與移除"""

    def test_filter_subgraphs(self, graph: OntologyGraph):
        removed = graph.filter_subgraphs([foo(2), foo(13), foo(14)])

        # the obsolete FOO:0200 is outside every kept subgraph as well
        assert removed == 5
        for number in (7, 8, 12, 100, 200):
            assert foo(number) not in graph
        for number in (1, 2, 3, 4, 5, 6, 9, 10, 11, 13, 14, 15):
            assert foo(number) in graph
        # FOO:0011 is kept under FOO:0004, its edge to the ancestor FOO:0009 goes
        assert not graph.has_edge(Edge(foo(11), foo(9)))
        assert graph.has_edge(Edge(foo(11), foo(4)))
        assert graph.has_edge(Edge(foo(14), foo(10)))

    def test_filter_subgraphs_unknown_root(self, graph: OntologyGraph):
        before = graph.num_classes
        removed = graph.filter_subgraphs([foo(2), "FOO:9999"])
        assert graph.num_classes == before - removed
        assert foo(2) in graph

    def test_remove_subgraphs(self, graph: OntologyGraph):
        removed = graph.remove_subgraphs([foo(6)])

        assert removed == 6
        for number in (6, 7, 8, 9, 10, 12):
            assert foo(number) not in graph
        # shared with the FOO:0002 subgraph
        assert foo(11) in graph
        assert foo(14) in graph
        assert foo(1) in graph

    def test_remove_subgraphs_not_shared(self, graph: OntologyGraph):
        removed = graph.remove_subgraphs([foo(6)], keep_shared=False)
        assert removed == 8
        assert foo(11) not in graph
        assert foo(14) not in graph

    def test_remove_subgraphs_several_roots(self, graph: OntologyGraph):
        removed = graph.remove_subgraphs([foo(7), foo(8), foo(100)])
        assert removed == 4
        for number in (7, 8, 12, 100):
            assert foo(number) not in graph


# =============================================================================
# Test Copy and Facts
# =============================================================================
class TestCopyAndFacts:
    """測試複製與物種事實"""

    def test_copy_is_independent(self, graph: OntologyGraph):
        clone = graph.copy()
        clone.remove_classes([foo(2)])
        clone.get_class(foo(3)).label = "changed"

        assert foo(2) in graph
        assert graph.get_label(foo(3)) == "B"
        assert graph.num_edges > clone.num_edges

    def test_taxon_facts(self):
        graph = OntologyGraph()
        graph.add_class(OntologyClass("U:1"))
        graph.add_never_in_taxon("U:1", "NCBITaxon:8")
        graph.add_only_in_taxon("U:2", "NCBITaxon:15")

        assert graph.never_in_taxa("U:1") == {"NCBITaxon:8"}
        assert graph.only_in_taxa("U:2") == {"NCBITaxon:15"}
        assert "U:2" in graph

        graph.discard_taxon_fact("U:2", "NCBITaxon:15")
        assert graph.only_in_taxa("U:2") == set()
        assert list(graph.iter_only_in_taxon()) == []

    def test_remove_classes_drops_axioms(self):
        graph = OntologyGraph()
        graph.add_disjoint("A:1", "A:2")
        graph.add_never_in_taxon("A:1", "NCBITaxon:8")
        graph.add_edge(Edge("A:3", "A:1"))

        assert graph.remove_classes(["A:1", "A:9"]) == {"A:1"}
        assert graph.disjoint_pairs() == []
        assert list(graph.iter_never_in_taxon()) == []
        assert graph.outgoing_edges("A:3") == []
