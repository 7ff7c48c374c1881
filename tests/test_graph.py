"""Tests for graph building, layout depths and validation."""

import pytest

from csv_sankey.graph import (
    CircularFlowError,
    Edge,
    build_graph,
    find_cycle_nodes,
    node_depths,
    node_values,
    validate_graph,
)


def _pairs(graph):
    names = graph.names
    return [(names[e.source], names[e.target]) for e in graph.edges]


class TestBuildGraph:
    """Rows -> deduplicated nodes and unmerged edges."""

    def test_three_column_example(self) -> None:
        """Body rows X,Y,Z and X,Y,W give four nodes and four edges."""
        graph = build_graph([["X", "Y", "Z"], ["X", "Y", "W"]])

        assert graph.names == ["X", "Y", "Z", "W"]
        assert _pairs(graph) == [("X", "Y"), ("Y", "Z"), ("X", "Y"), ("Y", "W")]

    def test_parallel_edges_are_not_merged(self) -> None:
        """Two identical rows give two edges of weight 1, not one of weight 2."""
        graph = build_graph([["A", "B"], ["A", "B"]])

        assert graph.edges == [Edge(0, 1, 1), Edge(0, 1, 1)]

    def test_first_seen_order_across_rows(self) -> None:
        """Nodes are ordered by first appearance, left-to-right then top-to-bottom."""
        graph = build_graph([["B", "A"], ["C", "B"], ["A", "D"]])

        assert graph.names == ["B", "A", "C", "D"]
        assert _pairs(graph) == [("B", "A"), ("C", "B"), ("A", "D")]

    def test_short_rows_and_empty_fields_contribute_nothing(self) -> None:
        """Single fields and empty neighbours are skipped silently."""
        graph = build_graph([["A"], [], ["A", "", "B"], ["", "C", "D"]])

        assert graph.names == ["C", "D"]
        assert _pairs(graph) == [("C", "D")]

    def test_edge_indices_match_node_positions(self) -> None:
        """Edge endpoints index into the node list."""
        graph = build_graph([["P", "Q", "R"], ["R", "P"]])

        for e in graph.edges:
            assert 0 <= e.source < len(graph.nodes)
            assert 0 <= e.target < len(graph.nodes)
        assert _pairs(graph) == [("P", "Q"), ("Q", "R"), ("R", "P")]

    def test_accepts_tuples(self) -> None:
        """Rows may be any sequence type."""
        graph = build_graph([("A", "B", "C")])

        assert len(graph.edges) == 2

    def test_no_rows(self) -> None:
        """No input gives an empty graph."""
        graph = build_graph([])

        assert graph.is_empty
        assert graph.nodes == []


class TestNodeDepths:
    """Topological columns used by the fixed layout."""

    def test_longest_path_and_sink_justification(self) -> None:
        """Sinks are pushed to the last column."""
        graph = build_graph([["X", "Y", "Z"], ["X", "W"]])

        assert dict(zip(graph.names, node_depths(graph))) == {"X": 0, "Y": 1, "Z": 2, "W": 2}

    def test_cycle_raises(self) -> None:
        """A -> B -> A has no left-to-right layout."""
        graph = build_graph([["A", "B", "A"]])

        with pytest.raises(CircularFlowError):
            node_depths(graph)

    def test_self_loop_raises(self) -> None:
        """A row repeating a value next to itself is a self-loop."""
        with pytest.raises(CircularFlowError):
            node_depths(build_graph([["A", "A"]]))

    def test_circular_flow_error_is_value_error(self) -> None:
        """Callers catching ValueError also catch layout failures."""
        assert issubclass(CircularFlowError, ValueError)


class TestNodeValues:
    def test_value_is_max_of_in_and_out(self) -> None:
        """A node's size is the larger of its inflow and outflow."""
        graph = build_graph([["A", "B"], ["A", "B"], ["B", "C"]])

        assert node_values(graph) == [2.0, 2.0, 1.0]


class TestValidateGraph:
    """Summary stats, warnings and errors shown in the preview."""

    def test_stats(self) -> None:
        """Counts reflect rows, contributing rows, nodes and edges."""
        rows = [["X", "Y", "Z"], ["X", "Y", "W"], ["solo", "", ""]]
        result = validate_graph(build_graph(rows), rows)

        assert result.stats == {"rows": 3, "valid_rows": 2, "nodes": 4, "edges": 4, "total_flow": 4.0}

    def test_parallel_edges_warned(self) -> None:
        """Repeated pairs are reported, not merged."""
        rows = [["A", "B"], ["A", "B"]]
        result = validate_graph(build_graph(rows), rows)

        assert result.errors == []
        assert any("A → B" in w for w in result.warnings)

    def test_idle_rows_warned(self) -> None:
        """Rows without an adjacent non-empty pair are listed by index."""
        rows = [["A", "B"], ["C", ""]]
        result = validate_graph(build_graph(rows), rows)

        assert any("rows: 1" in w for w in result.warnings)

    def test_cycle_is_an_error(self) -> None:
        """Cycles are reported with the nodes involved."""
        rows = [["A", "B", "C", "A"], ["C", "D"]]
        result = validate_graph(build_graph(rows), rows)

        assert len(result.errors) == 1
        assert "A, B, C" in result.errors[0]
        assert find_cycle_nodes(build_graph(rows)) == ["A", "B", "C"]

    def test_clean_graph(self) -> None:
        """A simple chain has no issues."""
        rows = [["A", "B", "C"]]
        result = validate_graph(build_graph(rows), rows)

        assert result.errors == []
        assert result.warnings == []
