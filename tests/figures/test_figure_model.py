"""Structural validation, cycle walking and transforms of figures."""

from __future__ import annotations

import logging
import math
from dataclasses import replace

import pytest

from figures.errors import EngineResult, MalformedFigureError, UnsupportedGeometryError, fail_closed
from figures.figure_model import (
    FigureEdge,
    FigureKind,
    FigureMeasures,
    FigureNode,
    edge_control_points,
    figure_local_to_world,
    ordered_cycle,
    ordered_path,
    outline_polyline,
    remove_figure,
    with_geometry,
    world_to_figure_local,
)
from figures.figure_validation import figure_issues, require_valid, validate_figure
from tests.helpers import circle_figure, open_path_figure, rectangle_figure


def _codes(figure) -> set[str]:
    return {issue.code for issue in figure_issues(figure)}


def test_well_formed_figures_have_no_issues(rectangle, circle) -> None:
    assert figure_issues(rectangle) == ()
    assert figure_issues(circle) == ()
    assert figure_issues(open_path_figure([(0, 0), (10, 0), (20, 5)])) == ()


def test_duplicate_ids_are_reported(rectangle) -> None:
    nodes = list(rectangle.nodes)
    nodes[1] = replace(nodes[1], id="n0")
    edges = list(rectangle.edges)
    edges[2] = replace(edges[2], id="e0")
    broken = replace(rectangle, nodes=tuple(nodes), edges=tuple(edges))
    codes = _codes(broken)
    assert "duplicate_node_id" in codes
    assert "duplicate_edge_id" in codes


def test_missing_node_reference_is_reported(rectangle) -> None:
    edges = list(rectangle.edges)
    edges[0] = replace(edges[0], to_id="ghost")
    assert _codes(replace(rectangle, edges=tuple(edges))) == {"missing_node"}


def test_non_finite_coordinates_are_reported(rectangle) -> None:
    nodes = list(rectangle.nodes)
    nodes[0] = replace(nodes[0], out_handle=(math.nan, 0.0))
    assert "non_finite_coordinate" in _codes(replace(rectangle, nodes=tuple(nodes)))


def test_closed_figure_must_form_a_single_cycle(rectangle) -> None:
    assert "not_single_cycle" in _codes(replace(rectangle, edges=rectangle.edges[:3]))

    # Two disjoint loops over the same node count.
    split = (
        FigureEdge(id="a", from_id="n0", to_id="n1"),
        FigureEdge(id="b", from_id="n1", to_id="n0"),
        FigureEdge(id="c", from_id="n2", to_id="n3"),
        FigureEdge(id="d", from_id="n3", to_id="n2"),
    )
    assert "not_single_cycle" in _codes(replace(rectangle, edges=split))


def test_validate_figure_fails_closed(rectangle) -> None:
    ok = validate_figure(rectangle)
    assert ok.ok
    assert ok.unwrap() is rectangle

    broken = replace(rectangle, edges=rectangle.edges[:2])
    result = validate_figure(broken)
    assert not result.ok
    assert isinstance(result.error, MalformedFigureError)
    with pytest.raises(MalformedFigureError):
        result.unwrap()
    with pytest.raises(MalformedFigureError):
        require_valid(broken)


def test_fail_closed_logs_and_wraps_engine_errors(caplog) -> None:
    @fail_closed("explode")
    def explode() -> None:
        raise UnsupportedGeometryError("nope")

    with caplog.at_level(logging.WARNING, logger="figures.errors"):
        result = explode()
    assert isinstance(result, EngineResult)
    assert result.error is not None and result.error.code == "unsupported_geometry"
    assert "explode failed" in caplog.text


def test_fail_closed_does_not_swallow_programming_errors() -> None:
    @fail_closed("typo")
    def typo() -> None:
        raise TypeError("bug")

    with pytest.raises(TypeError):
        typo()


def test_ordered_cycle_follows_reversed_edges(rectangle) -> None:
    edges = list(rectangle.edges)
    edges[1] = FigureEdge(id="e1", from_id="n2", to_id="n1")
    walk = ordered_cycle(replace(rectangle, edges=tuple(edges)))
    assert walk.node_ids == ("n0", "n1", "n2", "n3")
    assert [forward for _, forward in walk.steps] == [True, False, True, True]


def test_ordered_cycle_rejects_open_figures() -> None:
    with pytest.raises(MalformedFigureError):
        ordered_cycle(open_path_figure([(0, 0), (1, 0), (1, 1)]))


def test_ordered_path_starts_at_the_leaving_end() -> None:
    path = open_path_figure([(0, 0), (1, 0), (1, 1), (2, 1)])
    shuffled = replace(
        path,
        edges=(path.edges[2], FigureEdge(id="pe1", from_id="p2", to_id="p1"), path.edges[0]),
    )
    walk = ordered_path(shuffled)
    assert walk.node_ids == ("p0", "p1", "p2", "p3")
    assert [(edge.id, forward) for edge, forward in walk.steps] == [
        ("pe0", True),
        ("pe1", False),
        ("pe2", True),
    ]


def test_ordered_path_rejects_branches_and_cycles(rectangle) -> None:
    path = open_path_figure([(0, 0), (1, 0), (1, 1), (2, 1)])
    branched = replace(
        path, edges=path.edges[:2] + (FigureEdge(id="pe2", from_id="p1", to_id="p3"),)
    )
    with pytest.raises(MalformedFigureError):
        ordered_path(branched)
    with pytest.raises(MalformedFigureError):
        ordered_path(rectangle)


def test_edge_control_points_use_handle_offsets(circle) -> None:
    p0, p1, p2, p3 = edge_control_points(circle, circle.edges[0])
    start = circle.node("c0")
    end = circle.node("c1")
    assert p0 == start.point
    assert p1 == pytest.approx((start.x + start.out_handle[0], start.y + start.out_handle[1]))
    assert p2 == pytest.approx((end.x + end.in_handle[0], end.y + end.in_handle[1]))
    assert p3 == end.point
    assert edge_control_points(circle, circle.edges[0], forward=False) == (p3, p2, p1, p0)


def test_outline_polyline_is_not_repeated(rectangle) -> None:
    outline = outline_polyline(rectangle)
    assert outline == [(0.0, 0.0), (200.0, 0.0), (200.0, 120.0), (0.0, 120.0)]


def test_local_world_round_trip() -> None:
    figure = replace(rectangle_figure(), x=30.0, y=-5.0, rotation=90.0)
    world = figure_local_to_world(figure, (10.0, 0.0))
    assert world == pytest.approx((30.0, 5.0))
    assert world_to_figure_local(figure, world) == pytest.approx((10.0, 0.0))


def test_with_geometry_drops_measures(rectangle) -> None:
    cached = replace(rectangle, measures=FigureMeasures(figure_length_px=1.0))
    moved = with_geometry(cached, nodes=[replace(n, x=n.x + 1) for n in cached.nodes])
    assert moved.measures is None
    assert moved.nodes[0] == FigureNode(id="n0", x=1.0, y=0.0)
    assert moved.edges == cached.edges


def test_remove_figure_drops_dependent_seams(rectangle, circle) -> None:
    seam = replace(rectangle, id="rect-seam", kind=FigureKind.SEAM, parent_id="rect")
    other = replace(circle, id="circle-seam", kind=FigureKind.SEAM, parent_id="circle")
    remaining = remove_figure([rectangle, seam, circle, other], "rect")
    assert [figure.id for figure in remaining] == ["circle", "circle-seam"]


def test_circle_builder_is_well_formed() -> None:
    assert figure_issues(circle_figure(rx=80.0, ry=40.0)) == ()
