"""Seam allowance derivation for closed outlines."""

from __future__ import annotations

import logging
import math
from dataclasses import replace

import pytest

from figures.bounds import bounds
from figures.constants import DEFAULT_SETTINGS, EngineSettings
from figures.errors import MalformedFigureError, UnsupportedGeometryError
from figures.figure_model import EdgeKind, FigureKind, NodeMode
from figures.figure_validation import figure_issues
from figures.seam_offset import (
    SEAM_DASH,
    _trim_local_loops,
    is_seam_stale,
    offset_figure,
    offset_polygon,
    recompute_seam_figure,
    simplify_polygon,
)
from tests.helpers import open_path_figure, polygon_figure, rectangle_figure

CM = DEFAULT_SETTINGS.px_per_cm


def _flat(points):
    return [coord for point in points for coord in point]


L_SHAPE = [(0.0, 0.0), (100.0, 0.0), (100.0, 50.0), (50.0, 50.0), (50.0, 100.0), (0.0, 100.0)]


def test_rectangle_seam_grows_by_allowance(rectangle) -> None:
    seam = offset_figure(rectangle, 1.0).unwrap()
    box = bounds(seam)
    assert box.x == pytest.approx(-CM)
    assert box.y == pytest.approx(-CM)
    assert box.width == pytest.approx(200.0 + 2 * CM)
    assert box.height == pytest.approx(120.0 + 2 * CM)
    assert len(seam.nodes) == 4


def test_seam_figure_metadata(rectangle) -> None:
    seam = offset_figure(rectangle, 1.5).unwrap()
    assert seam.id == "rect-seam"
    assert seam.kind is FigureKind.SEAM
    assert seam.parent_id == "rect"
    assert seam.offset_cm == 1.5
    assert seam.closed
    assert seam.style.dash == SEAM_DASH
    assert seam.style.fill is None
    assert [node.id for node in seam.nodes] == [f"rect-seam-n{i}" for i in range(4)]
    assert [edge.id for edge in seam.edges] == [f"rect-seam-e{i}" for i in range(4)]
    assert all(edge.kind is EdgeKind.LINE for edge in seam.edges)
    assert all(node.mode is NodeMode.CORNER for node in seam.nodes)
    assert figure_issues(seam) == ()


def test_offset_then_inset_restores_rectangle(rectangle) -> None:
    grown = offset_figure(rectangle, 1.0).unwrap()
    restored = offset_figure(replace(grown, kind=None, parent_id=None), -1.0).unwrap()
    original = bounds(rectangle)
    box = bounds(restored)
    assert box.x == pytest.approx(original.x, abs=1e-6)
    assert box.y == pytest.approx(original.y, abs=1e-6)
    assert box.width == pytest.approx(original.width, abs=1e-6)
    assert box.height == pytest.approx(original.height, abs=1e-6)


def test_winding_does_not_change_offset_direction() -> None:
    clockwise = polygon_figure(list(reversed([(0.0, 0.0), (200.0, 0.0), (200.0, 120.0), (0.0, 120.0)])))
    box = bounds(offset_figure(clockwise, 1.0).unwrap())
    assert box.width == pytest.approx(200.0 + 2 * CM)


def test_concave_corner_is_cut_at_intersection() -> None:
    result = offset_polygon(L_SHAPE, 10.0)
    assert _flat(result) == pytest.approx(
        _flat([(-10.0, -10.0), (110.0, -10.0), (110.0, 60.0), (60.0, 60.0), (60.0, 110.0), (-10.0, 110.0)])
    )


def test_sharp_corners_are_bevelled() -> None:
    spike = [(0.0, 0.0), (100.0, 0.0), (50.0, 10.0)]
    result = offset_polygon(spike, 5.0)
    assert len(result) == 5

    relaxed = offset_polygon(spike, 5.0, EngineSettings(miter_limit=100.0))
    assert len(relaxed) == 3


def test_circle_seam_stays_concentric(circle) -> None:
    seam = offset_figure(circle, 1.0).unwrap()
    radii = [math.hypot(node.x, node.y) for node in seam.nodes]
    assert min(radii) == pytest.approx(50.0 + CM, abs=1.0)
    assert max(radii) == pytest.approx(50.0 + CM, abs=1.0)


def test_simplify_polygon_drops_duplicates_and_spikes() -> None:
    noisy = [(0.0, 0.0), (5.0, 0.0), (10.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]
    assert simplify_polygon(noisy) == [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]

    spiked = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (10.0, 20.0), (10.0, 10.0), (0.0, 10.0)]
    assert simplify_polygon(spiked) == [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]


def test_local_loops_are_trimmed() -> None:
    looped = [(0.0, 0.0), (12.0, 0.0), (10.0, -2.0), (10.0, 10.0), (0.0, 10.0)]
    trimmed, removed = _trim_local_loops(looped, window=4)
    assert removed == 1
    assert _flat(trimmed) == pytest.approx(_flat([(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]))


@pytest.mark.parametrize(
    "figure, offset, error",
    [
        (open_path_figure([(0.0, 0.0), (10.0, 0.0), (10.0, 10.0)]), 1.0, UnsupportedGeometryError),
        (polygon_figure([(0.0, 0.0), (10.0, 0.0), (20.0, 0.0)]), 1.0, UnsupportedGeometryError),
        (polygon_figure([(0.0, 0.0), (10.0, 0.0), (10.0, 10.0)]), math.inf, UnsupportedGeometryError),
    ],
)
def test_offset_fails_closed(figure, offset, error) -> None:
    result = offset_figure(figure, offset)
    assert not result.ok
    assert isinstance(result.error, error)


def test_malformed_parent_is_rejected(rectangle, caplog) -> None:
    broken = replace(rectangle, edges=rectangle.edges[:3])
    with caplog.at_level(logging.WARNING):
        result = offset_figure(broken, 1.0)
    assert isinstance(result.error, MalformedFigureError)
    assert "offset_figure failed" in caplog.text


def test_staleness_follows_parent_geometry(rectangle) -> None:
    seam = offset_figure(rectangle, 1.0).unwrap()
    assert not is_seam_stale(rectangle, seam)
    assert not is_seam_stale(replace(rectangle, x=300.0, rotation=45.0), seam)

    nodes = list(rectangle.nodes)
    nodes[2] = replace(nodes[2], x=260.0)
    edited = replace(rectangle, nodes=tuple(nodes))
    assert is_seam_stale(edited, seam)

    rebuilt = recompute_seam_figure(edited, seam).unwrap()
    assert rebuilt.id == seam.id
    assert rebuilt.offset_cm == seam.offset_cm
    assert not is_seam_stale(edited, rebuilt)


def test_recompute_checks_ownership(rectangle, circle) -> None:
    seam = offset_figure(rectangle, 1.0).unwrap()
    assert isinstance(recompute_seam_figure(circle, seam).error, UnsupportedGeometryError)
    assert isinstance(recompute_seam_figure(rectangle, rectangle).error, UnsupportedGeometryError)


def test_inset_of_concave_outline_mitres_the_reflex_corner() -> None:
    result = offset_polygon(L_SHAPE, -10.0)
    assert _flat(result) == pytest.approx(
        _flat([(10.0, 10.0), (90.0, 10.0), (90.0, 40.0), (40.0, 40.0), (40.0, 90.0), (10.0, 90.0)])
    )


def test_inset_past_the_inradius_collapses() -> None:
    result = offset_figure(rectangle_figure(), -2.0)
    assert not result.ok
    assert isinstance(result.error, UnsupportedGeometryError)
    assert "collapsed" in str(result.error)

    with pytest.raises(UnsupportedGeometryError):
        offset_polygon(L_SHAPE, -30.0)


def test_circle_inset_stays_concentric(circle) -> None:
    seam = offset_figure(circle, -1.0).unwrap()
    radii = [math.hypot(node.x, node.y) for node in seam.nodes]
    assert min(radii) == pytest.approx(50.0 - CM, abs=1.0)
    assert max(radii) == pytest.approx(50.0 - CM, abs=1.0)


def test_edge_allowances_build_open_segments(rectangle) -> None:
    seam = offset_figure(rectangle, {"e0": 1.0, "e1": 1.0}).unwrap()
    assert seam.id == "rect-seam"
    assert seam.kind is FigureKind.SEAM
    assert not seam.closed
    assert seam.offset_cm is None
    assert seam.edge_offsets_cm == (("e0", 1.0), ("e1", 1.0))
    assert seam.seam_segment_edge_ids == ("e0", "e1")
    assert [node.id for node in seam.nodes] == ["rect-seam-s0-n0", "rect-seam-s0-n1", "rect-seam-s1-n0", "rect-seam-s1-n1"]
    assert [edge.id for edge in seam.edges] == ["rect-seam-s0-e0", "rect-seam-s1-e0"]
    assert figure_issues(seam) == ()
    # Adjacent segments meet at the grown corner; the far ends stay square to their edge.
    assert _flat(node.point for node in seam.nodes) == pytest.approx(
        _flat([(0.0, -CM), (200.0 + CM, -CM), (200.0 + CM, -CM), (200.0 + CM, 120.0)])
    )


def test_edge_allowances_on_separate_edges(rectangle) -> None:
    seam = offset_figure(rectangle, {"e2": 2.0, "e0": 1.0, "e1": 0.0}).unwrap()
    assert seam.seam_segment_edge_ids == ("e0", "e2")
    assert seam.edge_offsets_cm == (("e0", 1.0), ("e1", 0.0), ("e2", 2.0))
    assert _flat(node.point for node in seam.nodes) == pytest.approx(
        _flat([(0.0, -CM), (200.0, -CM), (200.0, 120.0 + 2 * CM), (0.0, 120.0 + 2 * CM)])
    )


def test_edge_allowances_all_round_meet_at_every_corner(rectangle) -> None:
    seam = offset_figure(rectangle, {f"e{i}": 1.0 for i in range(4)}).unwrap()
    assert len(seam.seam_segment_edge_ids) == 4
    corners = {(round(node.x, 6), round(node.y, 6)) for node in seam.nodes}
    assert corners == {
        (round(x, 6), round(y, 6))
        for x, y in [(-CM, -CM), (200.0 + CM, -CM), (200.0 + CM, 120.0 + CM), (-CM, 120.0 + CM)]
    }


def test_edge_allowance_on_a_curved_edge(circle) -> None:
    seam = offset_figure(circle, {"ce0": 1.0}).unwrap()
    assert seam.seam_segment_edge_ids == ("ce0",)
    radii = [math.hypot(node.x, node.y) for node in seam.nodes]
    assert min(radii) == pytest.approx(50.0 + CM, abs=1.0)
    assert max(radii) == pytest.approx(50.0 + CM, abs=1.0)
    assert all(node.x >= -1e-6 and node.y >= -1e-6 for node in seam.nodes)


@pytest.mark.parametrize(
    "offsets",
    [
        {"missing": 1.0},
        {"e0": 0.0, "e1": -1.0},
        {"e0": math.nan},
    ],
)
def test_edge_allowances_fail_closed(rectangle, offsets) -> None:
    result = offset_figure(rectangle, offsets)
    assert isinstance(result.error, UnsupportedGeometryError)


def test_edge_seam_recompute_keeps_allowances(rectangle) -> None:
    seam = offset_figure(rectangle, {"e1": 1.0}).unwrap()
    nodes = list(rectangle.nodes)
    nodes[2] = replace(nodes[2], x=260.0)
    nodes[1] = replace(nodes[1], x=260.0)
    edited = replace(rectangle, nodes=tuple(nodes))
    assert is_seam_stale(edited, seam)

    rebuilt = recompute_seam_figure(edited, seam).unwrap()
    assert rebuilt.edge_offsets_cm == seam.edge_offsets_cm
    assert rebuilt.seam_segment_edge_ids == ("e1",)
    assert all(node.x == pytest.approx(260.0 + CM) for node in rebuilt.nodes)
    assert not is_seam_stale(edited, rebuilt)
