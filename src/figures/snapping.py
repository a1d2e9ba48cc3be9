"""Magnetic snapping of a pointer position to nodes, guides and edges."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

import numpy as np

from .constants import DEFAULT_SETTINGS, EngineSettings
from .figure_model import Figure, edge_polyline, figure_local_to_world
from .geometry import Point, as_array


class SnapKind(str, Enum):
    NODE = "node"
    GUIDE = "guide"
    EDGE = "edge"


class GuideOrientation(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


# Lower wins.
_PRIORITY = {SnapKind.NODE: 0, SnapKind.GUIDE: 1, SnapKind.EDGE: 2}


@dataclass(frozen=True, slots=True)
class SnapNode:
    id: str
    point: Point


@dataclass(frozen=True, slots=True)
class SnapEdge:
    id: str
    polyline: tuple[Point, ...]


@dataclass(frozen=True, slots=True)
class GuideLine:
    """Infinite ruler guide; ``value_px`` is the y of a horizontal guide or x of a vertical one."""

    id: str
    orientation: GuideOrientation
    value_px: float


@dataclass(frozen=True, slots=True)
class SnapContext:
    nodes: tuple[SnapNode, ...] = ()
    edges: tuple[SnapEdge, ...] = ()
    guides: tuple[GuideLine, ...] = ()
    tolerance_px: float = DEFAULT_SETTINGS.snap_tolerance_px
    zoom: float = 1.0

    @property
    def effective_tolerance(self) -> float:
        """Tolerance in world units; screen pixels shrink as the view zooms in."""

        if self.zoom <= 0:
            return self.tolerance_px
        return self.tolerance_px / self.zoom


@dataclass(frozen=True, slots=True)
class SnapResult:
    point: Point
    kind: SnapKind
    target_id: str
    distance: float


def _nearest_on_polyline(point: Point, polyline: Sequence[Point]) -> tuple[Point, float] | None:
    coords = as_array(polyline)
    if len(coords) == 0:
        return None
    target = np.asarray(point, dtype=float)
    if len(coords) == 1:
        return (float(coords[0, 0]), float(coords[0, 1])), float(np.linalg.norm(coords[0] - target))
    starts = coords[:-1]
    segments = coords[1:] - starts
    seg_len_sq = np.einsum("ij,ij->i", segments, segments)
    safe = np.where(seg_len_sq > 0.0, seg_len_sq, 1.0)
    t = np.clip(np.einsum("ij,ij->i", target - starts, segments) / safe, 0.0, 1.0)
    t = np.where(seg_len_sq > 0.0, t, 0.0)
    nearest = starts + segments * t[:, None]
    distances = np.linalg.norm(nearest - target, axis=1)
    index = int(np.argmin(distances))
    return (float(nearest[index, 0]), float(nearest[index, 1])), float(distances[index])


def _candidates(point: Point, context: SnapContext, tolerance: float) -> list[tuple[int, float, int, SnapResult]]:
    found: list[tuple[int, float, int, SnapResult]] = []

    if context.nodes:
        coords = as_array([node.point for node in context.nodes])
        distances = np.hypot(coords[:, 0] - point[0], coords[:, 1] - point[1])
        for order, (node, dist) in enumerate(zip(context.nodes, distances.tolist())):
            if dist <= tolerance:
                result = SnapResult(point=node.point, kind=SnapKind.NODE, target_id=node.id, distance=dist)
                found.append((_PRIORITY[SnapKind.NODE], dist, order, result))

    for order, guide in enumerate(context.guides):
        if guide.orientation is GuideOrientation.HORIZONTAL:
            snapped = (point[0], guide.value_px)
            dist = abs(point[1] - guide.value_px)
        else:
            snapped = (guide.value_px, point[1])
            dist = abs(point[0] - guide.value_px)
        if dist <= tolerance:
            result = SnapResult(point=snapped, kind=SnapKind.GUIDE, target_id=guide.id, distance=dist)
            found.append((_PRIORITY[SnapKind.GUIDE], dist, order, result))

    for order, edge in enumerate(context.edges):
        hit = _nearest_on_polyline(point, edge.polyline)
        if hit is None:
            continue
        snapped, dist = hit
        if dist <= tolerance:
            result = SnapResult(point=snapped, kind=SnapKind.EDGE, target_id=edge.id, distance=dist)
            found.append((_PRIORITY[SnapKind.EDGE], dist, order, result))

    return found


def snap(point: Point, context: SnapContext) -> SnapResult | None:
    """Best snap target for ``point`` or ``None`` when nothing is within tolerance.

    Nodes beat guides, guides beat edges; ties go to the nearer target and
    then to the one listed first.
    """

    candidates = _candidates(point, context, context.effective_tolerance)
    if not candidates:
        return None
    return min(candidates, key=lambda item: item[:3])[3]


def snap_context_from_figures(
    figures: Iterable[Figure],
    guides: Sequence[GuideLine] = (),
    *,
    exclude_node_id: str | None = None,
    tolerance_px: float | None = None,
    zoom: float = 1.0,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> SnapContext:
    """Collect world-space snap targets from ``figures``.

    The node being dragged (``exclude_node_id``) and the edges touching it
    are left out so a node never snaps to itself.
    """

    nodes: list[SnapNode] = []
    edges: list[SnapEdge] = []
    for figure in figures:
        for node in figure.nodes:
            if node.id == exclude_node_id:
                continue
            nodes.append(SnapNode(id=node.id, point=figure_local_to_world(figure, node.point)))
        for edge in figure.edges:
            if exclude_node_id is not None and exclude_node_id in (edge.from_id, edge.to_id):
                continue
            if edge.from_id not in figure.node_map or edge.to_id not in figure.node_map:
                continue
            local = edge_polyline(figure, edge, settings=settings)
            edges.append(
                SnapEdge(
                    id=edge.id,
                    polyline=tuple(figure_local_to_world(figure, point) for point in local),
                )
            )
    return SnapContext(
        nodes=tuple(nodes),
        edges=tuple(edges),
        guides=tuple(guides),
        tolerance_px=settings.snap_tolerance_px if tolerance_px is None else tolerance_px,
        zoom=zoom,
    )


__all__ = [
    "GuideLine",
    "GuideOrientation",
    "SnapContext",
    "SnapEdge",
    "SnapKind",
    "SnapNode",
    "SnapResult",
    "snap",
    "snap_context_from_figures",
]
