from __future__ import annotations

import math
from dataclasses import replace

import pytest

from figures.dart_unfold import DartSpec, unfold_dart
from figures.errors import InvalidDartSpecError, MalformedFigureError
from figures.figure_model import EdgeKind, FigureEdge
from figures.figure_validation import figure_issues
from figures.measurements import with_measures
from tests.helpers import dart_figure, open_path_figure, polygon_figure

SPEC = DartSpec(apex_id="n5", leg_a_id="n1", leg_b_id="n2")


def _dist(a, b) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def test_unfold_merges_legs() -> None:
    bodice = dart_figure()
    closed = unfold_dart(bodice, SPEC).unwrap()
    assert len(closed.nodes) == len(bodice.nodes) - 1 == 5
    assert closed.closed
    assert figure_issues(closed) == ()
    assert [node.id for node in closed.nodes] == ["n0", "n1", "n3", "n4", "n5"]
    assert "e1" not in closed.edge_map
    assert closed.edge_map["e2"].from_id == "n1"
    assert closed.node("n1").point == bodice.node("n1").point


def test_pivoted_side_keeps_distances_to_apex() -> None:
    bodice = dart_figure()
    closed = unfold_dart(bodice, SPEC).unwrap()
    apex = bodice.node("n5").point
    for node_id in ("n3", "n4"):
        assert _dist(closed.node(node_id).point, apex) == pytest.approx(_dist(bodice.node(node_id).point, apex))
    # The fixed side does not move.
    assert closed.node("n0") == bodice.node("n0")
    # n3 and n4 stay the same distance apart.
    assert _dist(closed.node("n3").point, closed.node("n4").point) == pytest.approx(
        _dist(bodice.node("n3").point, bodice.node("n4").point)
    )


def test_unfold_with_swapped_legs() -> None:
    bodice = dart_figure()
    closed = unfold_dart(bodice, DartSpec(apex_id="n5", leg_a_id="n2", leg_b_id="n1")).unwrap()
    assert [node.id for node in closed.nodes] == ["n0", "n2", "n3", "n4", "n5"]
    assert figure_issues(closed) == ()
    assert closed.node("n2").point == bodice.node("n2").point
    assert closed.node("n3") == bodice.node("n3")


def test_unfold_drops_cached_measures() -> None:
    closed = unfold_dart(with_measures(dart_figure()), SPEC).unwrap()
    assert closed.measures is None


@pytest.mark.parametrize(
    "spec",
    [
        DartSpec(apex_id="n5", leg_a_id="n1", leg_b_id="n3"),
        DartSpec(apex_id="n1", leg_a_id="n1", leg_b_id="n2"),
        DartSpec(apex_id="n5", leg_a_id="n1", leg_b_id="ghost"),
    ],
)
def test_invalid_specs_fail_closed(spec) -> None:
    result = unfold_dart(dart_figure(), spec)
    assert not result.ok
    assert isinstance(result.error, InvalidDartSpecError)


def test_open_and_tiny_figures_are_rejected() -> None:
    path = open_path_figure([(0.0, 0.0), (10.0, 0.0), (5.0, 10.0), (0.0, 10.0)])
    assert isinstance(
        unfold_dart(path, DartSpec(apex_id="p3", leg_a_id="p0", leg_b_id="p1")).error, InvalidDartSpecError
    )
    triangle = polygon_figure([(0.0, 0.0), (10.0, 0.0), (5.0, 10.0)])
    assert isinstance(
        unfold_dart(triangle, DartSpec(apex_id="n2", leg_a_id="n0", leg_b_id="n1")).error, InvalidDartSpecError
    )


def test_malformed_outline_is_rejected() -> None:
    bodice = dart_figure()
    broken = replace(bodice, edges=bodice.edges[:-1])
    assert isinstance(unfold_dart(broken, SPEC).error, MalformedFigureError)


def _with_cubic_edges(figure, edges, handles):
    nodes = tuple(
        replace(node, **handles[node.id]) if node.id in handles else node for node in figure.nodes
    )
    replaced = {edge.id: edge for edge in edges}
    return replace(
        figure,
        nodes=nodes,
        edges=tuple(replaced.get(edge.id, edge) for edge in figure.edges),
    )


def test_merged_node_takes_leg_b_handle() -> None:
    bodice = _with_cubic_edges(
        dart_figure(),
        [FigureEdge(id="e2", from_id="n2", to_id="n3", kind=EdgeKind.CUBIC)],
        {"n2": {"out_handle": (10.0, 0.0)}, "n3": {"in_handle": (-10.0, 0.0)}},
    )
    closed = unfold_dart(bodice, SPEC).unwrap()
    merged = closed.node("n1")
    assert merged.in_handle is None
    assert merged.out_handle is not None
    assert math.hypot(*merged.out_handle) == pytest.approx(10.0)
    assert merged.out_handle != (10.0, 0.0)


def test_legs_reading_the_same_handle_side_are_rejected() -> None:
    bodice = _with_cubic_edges(
        dart_figure(),
        [
            FigureEdge(id="e0", from_id="n1", to_id="n0", kind=EdgeKind.CUBIC),
            FigureEdge(id="e2", from_id="n2", to_id="n3", kind=EdgeKind.CUBIC),
        ],
        {"n1": {"out_handle": (-10.0, 0.0)}, "n2": {"out_handle": (10.0, 0.0)}},
    )
    assert figure_issues(bodice) == ()
    result = unfold_dart(bodice, SPEC)
    assert not result.ok
    assert isinstance(result.error, InvalidDartSpecError)
    assert "out handle" in str(result.error)
