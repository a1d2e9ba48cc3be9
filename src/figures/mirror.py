"""Reflect figures across an arbitrary axis in figure-local coordinates.

Besides plain mirroring, an open half pattern drawn against a fold line can
be unfolded into the closed full piece.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Sequence

from .bounds import bounds
from .errors import MalformedFigureError, UnsupportedGeometryError, fail_closed
from .figure_model import (
    CustomSnapshot,
    DrawingTool,
    Figure,
    FigureEdge,
    FigureNode,
    ordered_path,
    with_geometry,
)
from .figure_validation import figure_issues, require_valid
from .geometry import EPSILON, Point, add, cross, dot, length, normalize, scale, sub
from .styled_curves import break_styled_link


class AxisOrientation(str, Enum):
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


@dataclass(frozen=True, slots=True)
class MirrorAxis:
    """Infinite line through ``origin`` along ``direction``."""

    origin: Point
    direction: Point

    @classmethod
    def vertical(cls, x: float) -> "MirrorAxis":
        return cls(origin=(x, 0.0), direction=(0.0, 1.0))

    @classmethod
    def horizontal(cls, y: float) -> "MirrorAxis":
        return cls(origin=(0.0, y), direction=(1.0, 0.0))

    def reflect_vector(self, vector: Point) -> Point:
        unit = normalize(self.direction)
        return sub(scale(unit, 2.0 * dot(vector, unit)), vector)

    def reflect_point(self, point: Point) -> Point:
        return add(self.origin, self.reflect_vector(sub(point, self.origin)))


def axis_through_bounds_center(
    figure: Figure, orientation: AxisOrientation | str = AxisOrientation.VERTICAL
) -> MirrorAxis:
    center = bounds(figure).center
    if AxisOrientation(orientation) is AxisOrientation.VERTICAL:
        return MirrorAxis.vertical(center[0])
    return MirrorAxis.horizontal(center[1])


def _mirror_node(node: FigureNode, axis: MirrorAxis) -> FigureNode:
    x, y = axis.reflect_point(node.point)
    # Reversed edges read the opposite handle side, so the sides trade places.
    return replace(
        node,
        x=x,
        y=y,
        in_handle=None if node.out_handle is None else axis.reflect_vector(node.out_handle),
        out_handle=None if node.in_handle is None else axis.reflect_vector(node.in_handle),
    )


def _mirror_geometry(
    nodes: Sequence[FigureNode], edges: Sequence[FigureEdge], axis: MirrorAxis
) -> tuple[tuple[FigureNode, ...], tuple[FigureEdge, ...]]:
    mirrored_nodes = tuple(_mirror_node(node, axis) for node in nodes)
    mirrored_edges = tuple(
        replace(edge, from_id=edge.to_id, to_id=edge.from_id) for edge in reversed(edges)
    )
    return mirrored_nodes, mirrored_edges


@fail_closed("mirror_figure")
def mirror_figure(figure: Figure, axis: MirrorAxis) -> Figure:
    """Reflected copy of ``figure`` with id ``"{id}-mirror"``.

    Winding is preserved by reversing the edge walk, and node modes carry
    over.  The copy is independent: seam derivation metadata is dropped and
    a styled curve becomes custom.
    """

    require_valid(figure)
    if length(axis.direction) <= EPSILON:
        raise UnsupportedGeometryError("Mirror axis direction is zero.")

    nodes, edges = _mirror_geometry(figure.nodes, figure.edges, axis)
    snapshot = figure.custom_snapshot
    if snapshot is not None:
        snap_nodes, snap_edges = _mirror_geometry(snapshot.nodes, snapshot.edges, axis)
        snapshot = CustomSnapshot(nodes=snap_nodes, edges=snap_edges, closed=snapshot.closed)

    mirrored = replace(
        with_geometry(figure, nodes=nodes, edges=edges),
        id=f"{figure.id}-mirror",
        kind=None,
        parent_id=None,
        offset_cm=None,
        edge_offsets_cm=None,
        seam_segment_edge_ids=None,
        source_signature=None,
        custom_snapshot=snapshot,
    )
    return break_styled_link(mirrored)


_UNFOLDABLE_TOOLS = frozenset({DrawingTool.LINE, DrawingTool.CURVE})


def can_unfold_half(figure: Figure) -> bool:
    """Whether ``figure`` is an open line or curve path :func:`unfold_half` accepts."""

    if figure.tool not in _UNFOLDABLE_TOOLS or figure.closed or len(figure.nodes) < 2:
        return False
    if figure_issues(figure):
        return False
    try:
        ordered_path(figure)
    except MalformedFigureError:
        return False
    return True


def suggested_unfold_axis(
    figure: Figure, orientation: AxisOrientation | str = AxisOrientation.VERTICAL
) -> MirrorAxis:
    """Fold line through the half's leftmost node, or its topmost one."""

    if AxisOrientation(orientation) is AxisOrientation.VERTICAL:
        return MirrorAxis.vertical(min((node.x for node in figure.nodes), default=0.0))
    return MirrorAxis.horizontal(min((node.y for node in figure.nodes), default=0.0))


def _axis_distance(axis: MirrorAxis, point: Point) -> float:
    return abs(cross(normalize(axis.direction), sub(point, axis.origin)))


@fail_closed("unfold_half")
def unfold_half(figure: Figure, axis: MirrorAxis, *, tolerance_px: float = 1e-6) -> Figure:
    """Close a half pattern by joining it to its reflection across ``axis``.

    The cycle runs out along the original path and back along the reversed
    reflection.  A path end lying on the fold line is shared by both halves;
    any other end is joined to its reflection by a straight edge.  The result
    has id ``"{id}-unfolded"`` and is independent of ``figure``.
    """

    require_valid(figure)
    if length(axis.direction) <= EPSILON:
        raise UnsupportedGeometryError("Fold axis direction is zero.")
    if figure.tool not in _UNFOLDABLE_TOOLS:
        raise UnsupportedGeometryError(
            f"Figure {figure.id!r} is a {figure.tool.value}; only line and curve paths unfold."
        )
    if figure.closed:
        raise UnsupportedGeometryError(f"Figure {figure.id!r} is already closed.")
    walk = ordered_path(figure)
    on_axis = {
        node.id for node in figure.nodes if _axis_distance(axis, node.point) <= tolerance_px
    }
    if len(on_axis) == len(figure.nodes):
        raise UnsupportedGeometryError(f"Figure {figure.id!r} lies on the fold line.")

    start_id, end_id = walk.node_ids[0], walk.node_ids[-1]
    shared = {node_id for node_id in (start_id, end_id) if node_id in on_axis}

    def twin(node_id: str) -> str:
        return node_id if node_id in shared else f"{node_id}-m"

    leaving = {edge.from_id for edge in figure.edges}
    nodes: list[FigureNode] = []
    for node in figure.nodes:
        if node.id not in shared:
            nodes.append(node)
            continue
        reflected = _mirror_node(node, axis)
        # The reflected edge reads the side the original edge leaves free.
        if node.id in leaving:
            nodes.append(replace(node, in_handle=reflected.in_handle))
        else:
            nodes.append(replace(node, out_handle=reflected.out_handle))
    for node_id in reversed(walk.node_ids):
        if node_id not in shared:
            nodes.append(replace(_mirror_node(figure.node(node_id), axis), id=twin(node_id)))

    edges = list(figure.edges)
    for edge, _ in reversed(walk.steps):
        edges.append(
            replace(edge, id=f"{edge.id}-m", from_id=twin(edge.to_id), to_id=twin(edge.from_id))
        )
    if end_id not in shared:
        edges.append(FigureEdge(id=f"{figure.id}-j1", from_id=end_id, to_id=twin(end_id)))
    if start_id not in shared:
        edges.append(FigureEdge(id=f"{figure.id}-j0", from_id=twin(start_id), to_id=start_id))

    return replace(
        with_geometry(figure, nodes=nodes, edges=edges, closed=True),
        id=f"{figure.id}-unfolded",
        kind=None,
        parent_id=None,
        offset_cm=None,
        edge_offsets_cm=None,
        seam_segment_edge_ids=None,
        source_signature=None,
        curve_type=None,
        styled_data=None,
        derived_from=None,
        custom_snapshot=None,
        custom_snapshot_dirty=False,
    )


__all__ = [
    "AxisOrientation",
    "MirrorAxis",
    "axis_through_bounds_center",
    "can_unfold_half",
    "mirror_figure",
    "suggested_unfold_axis",
    "unfold_half",
]
