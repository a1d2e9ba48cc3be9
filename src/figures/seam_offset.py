"""Seam-allowance offsetting of closed figure outlines.

The outline is flattened to a polygon, each corner is offset locally
(miter, bevel or concave cut) and short self-intersection loops between
nearby offset segments are trimmed.  Crossings between segments further
apart than ``EngineSettings.cleanup_window`` are left untouched, so very
large allowances on deeply concave outlines can still self-intersect.

Per-edge allowances offset chosen outline edges only and produce an open
seam made of one segment per edge.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Mapping, Sequence

from .constants import DEFAULT_SETTINGS, EngineSettings
from .errors import UnsupportedGeometryError, fail_closed
from .figure_model import (
    EdgeKind,
    Figure,
    FigureEdge,
    FigureKind,
    FigureNode,
    NodeMode,
    edge_polyline,
    ordered_cycle,
    outline_polyline,
)
from .figure_validation import require_valid
from .geometry import (
    EPSILON,
    Point,
    add,
    cross,
    distance,
    dot,
    line_intersection,
    normalize,
    scale,
    segment_intersection,
    signed_area,
    sub,
)
from .signature import source_signature

logger = logging.getLogger(__name__)

SEAM_DASH = (5.0, 5.0)

# Parametric margin keeping touching endpoints from counting as crossings.
_CROSSING_MARGIN = 1e-3


def seam_id_for(parent: Figure) -> str:
    return f"{parent.id}-seam"


def simplify_polygon(points: Sequence[Point], *, min_segment: float = 1e-6) -> list[Point]:
    """Drop repeated vertices, straight-through vertices and U-turn spikes."""

    result = list(points)
    while len(result) > 3:
        count = len(result)
        kept: list[Point] = []
        for index, current in enumerate(result):
            previous = kept[-1] if kept else result[index - 1]
            following = result[(index + 1) % count]
            if distance(previous, current) < min_segment:
                continue
            incoming = sub(current, previous)
            outgoing = sub(following, current)
            scale_ = math.hypot(*incoming) * math.hypot(*outgoing)
            if scale_ > EPSILON and abs(cross(incoming, outgoing)) <= 1e-9 * scale_:
                continue
            kept.append(current)
        if len(kept) < 3 or len(kept) == count:
            break
        result = kept
    return result


def simplify_polyline(points: Sequence[Point], *, min_segment: float = 1e-6) -> list[Point]:
    result: list[Point] = []
    for point in points:
        if result and distance(result[-1], point) < min_segment:
            continue
        result.append(point)
    return result


def _corner_points(
    previous: Point,
    vertex: Point,
    following: Point,
    offset_px: float,
    orientation: float,
    settings: EngineSettings,
) -> tuple[list[Point], str]:
    dir_prev = normalize(sub(vertex, previous))
    dir_next = normalize(sub(following, vertex))
    # Outward normal: right-hand side of a counter-clockwise outline.
    normal_prev = (dir_prev[1] * orientation, -dir_prev[0] * orientation)
    normal_next = (dir_next[1] * orientation, -dir_next[0] * orientation)

    prev_start = add(previous, scale(normal_prev, offset_px))
    prev_end = add(vertex, scale(normal_prev, offset_px))
    next_start = add(vertex, scale(normal_next, offset_px))
    next_end = add(following, scale(normal_next, offset_px))

    turn = cross(dir_prev, dir_next) * orientation
    # Insets flip which corners open a gap between the offset edges.
    opening = turn * math.copysign(1.0, offset_px)
    if opening > 1e-6:
        miter = line_intersection(prev_end, dir_prev, next_start, dir_next)
        if miter is None:
            return [prev_end], "parallel"
        if distance(vertex, miter) <= settings.miter_limit * abs(offset_px):
            return [miter], "miter"
        return [prev_end, next_start], "bevel"

    if abs(turn) <= 1e-6 and dot(dir_prev, dir_next) > 0.0:
        return [prev_end], "straight"

    hit = line_intersection(prev_start, dir_prev, next_start, dir_next)
    if hit is not None:
        t_prev = _project_t(hit, prev_start, prev_end)
        t_next = _project_t(hit, next_start, next_end)
        if 1e-6 < t_prev < 1.0 - 1e-6 and 1e-6 < t_next < 1.0 - 1e-6:
            return [hit], "trim"
    if distance(prev_end, next_start) > 0.1:
        return [prev_end, next_start], "overlap"
    return [prev_end], "overlap"


def _project_t(point: Point, start: Point, end: Point) -> float:
    span = sub(end, start)
    span_sq = dot(span, span)
    if span_sq <= 1e-3:
        return 0.0
    return dot(sub(point, start), span) / span_sq


def _trim_local_loops(points: list[Point], window: int) -> tuple[list[Point], int]:
    removed = 0
    for _ in range(len(points)):
        count = len(points)
        if count <= 3:
            break
        trimmed = None
        for i in range(count):
            a1 = points[i]
            a2 = points[(i + 1) % count]
            for step in range(2, min(window, count - 2) + 1):
                j = (i + step) % count
                hit = segment_intersection(a1, a2, points[j], points[(j + 1) % count])
                if hit is None:
                    continue
                point, t_a, t_b = hit
                if not (
                    _CROSSING_MARGIN < t_a < 1.0 - _CROSSING_MARGIN
                    and _CROSSING_MARGIN < t_b < 1.0 - _CROSSING_MARGIN
                ):
                    continue
                rotated = points[i:] + points[:i]
                candidate = [rotated[0], point] + rotated[step + 1 :]
                if len(candidate) >= 3:
                    trimmed = candidate
                    removed += step - 1
                    break
            if trimmed is not None:
                break
        if trimmed is None:
            break
        points = trimmed
    return points, removed


def offset_polygon(
    points: Sequence[Point],
    offset_px: float,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[Point]:
    """Offset a simple closed polygon; positive distances grow it outward."""

    polygon = simplify_polygon(points, min_segment=settings.min_segment_px)
    if len(polygon) < 3:
        raise UnsupportedGeometryError("Outline collapses to fewer than three vertices.")
    area = signed_area(polygon)
    if abs(area) <= EPSILON:
        raise UnsupportedGeometryError("Outline encloses no area.")
    orientation = 1.0 if area > 0.0 else -1.0
    logger.debug(
        "Offsetting %d vertices by %.4f px (orientation %+.0f)",
        len(polygon),
        offset_px,
        orientation,
    )

    result: list[Point] = []
    count = len(polygon)
    for index, vertex in enumerate(polygon):
        corner, decision = _corner_points(
            polygon[index - 1],
            vertex,
            polygon[(index + 1) % count],
            offset_px,
            orientation,
            settings,
        )
        logger.debug("Vertex %d: %s -> %d point(s)", index, decision, len(corner))
        result.extend(corner)

    cleaned, removed = _trim_local_loops(result, settings.cleanup_window)
    if removed:
        logger.debug("Local cleanup removed %d vertices", removed)
    cleaned = simplify_polygon(cleaned, min_segment=settings.min_segment_px)
    if len(cleaned) < 3:
        raise UnsupportedGeometryError("Offset outline collapsed.")
    # An inset deeper than the inradius turns the outline inside out.
    cleaned_area = signed_area(cleaned)
    if abs(cleaned_area) <= EPSILON or cleaned_area * orientation < 0.0:
        raise UnsupportedGeometryError("Offset outline collapsed.")
    return cleaned


def _check_parent(parent: Figure) -> None:
    require_valid(parent)
    if not parent.closed:
        raise UnsupportedGeometryError(f"Figure {parent.id!r} is not closed.")
    if len(parent.nodes) < 3:
        raise UnsupportedGeometryError(f"Figure {parent.id!r} has fewer than three nodes.")


def _seam_figure(parent: Figure, seam_id: str, **fields) -> Figure:
    return replace(
        parent,
        id=seam_id,
        kind=FigureKind.SEAM,
        parent_id=parent.id,
        source_signature=source_signature(parent),
        style=replace(parent.style, dash=SEAM_DASH, fill=None),
        curve_type=None,
        styled_data=None,
        derived_from=None,
        custom_snapshot=None,
        custom_snapshot_dirty=False,
        measures=None,
        **fields,
    )


def _build_seam(
    parent: Figure,
    seam_id: str,
    offset_cm: float,
    settings: EngineSettings,
) -> Figure:
    _check_parent(parent)
    if not math.isfinite(offset_cm):
        raise UnsupportedGeometryError("Seam allowance must be finite.")

    outline = outline_polyline(parent, settings=settings)
    offset = offset_polygon(outline, settings.offset_px(offset_cm), settings)

    nodes = tuple(
        FigureNode(id=f"{seam_id}-n{index}", x=x, y=y, mode=NodeMode.CORNER)
        for index, (x, y) in enumerate(offset)
    )
    edges = tuple(
        FigureEdge(
            id=f"{seam_id}-e{index}",
            from_id=node.id,
            to_id=nodes[(index + 1) % len(nodes)].id,
            kind=EdgeKind.LINE,
        )
        for index, node in enumerate(nodes)
    )
    logger.debug("Seam %s built with %d nodes", seam_id, len(nodes))
    return _seam_figure(
        parent,
        seam_id,
        offset_cm=float(offset_cm),
        edge_offsets_cm=None,
        seam_segment_edge_ids=None,
        nodes=nodes,
        edges=edges,
        closed=True,
    )


def _edge_allowances(parent: Figure, offsets: Mapping[str, float]) -> dict[str, float]:
    unknown = sorted(set(offsets) - set(parent.edge_map))
    if unknown:
        raise UnsupportedGeometryError(f"Figure {parent.id!r} has no edges {unknown}.")
    allowances: dict[str, float] = {}
    for edge_id, value in offsets.items():
        value = float(value)
        if not math.isfinite(value):
            raise UnsupportedGeometryError(f"Seam allowance of edge {edge_id!r} must be finite.")
        # Zero or negative entries leave the edge without a seam.
        if value > 0.0:
            allowances[edge_id] = value
    if not allowances:
        raise UnsupportedGeometryError("No edge has a positive seam allowance.")
    return allowances


def _offset_run(
    points: Sequence[Point],
    offset_px: float,
    orientation: float,
    settings: EngineSettings,
) -> list[Point]:
    """Offset an open polyline to its outward side, mitring inner vertices."""

    normals = []
    for start, end in zip(points, points[1:]):
        direction = normalize(sub(end, start))
        normals.append((direction[1] * orientation, -direction[0] * orientation))

    result = [add(points[0], scale(normals[0], offset_px))]
    for index in range(1, len(points) - 1):
        incoming, outgoing = normals[index - 1], normals[index]
        bisector = normalize(add(incoming, outgoing))
        factor = 1.0 / max(dot(bisector, incoming), 1.0 / settings.miter_limit)
        result.append(add(points[index], scale(bisector, offset_px * factor)))
    result.append(add(points[-1], scale(normals[-1], offset_px)))
    return result


def _join_runs(
    first: list[Point],
    second: list[Point],
    vertex: Point,
    reach: float,
) -> bool:
    """Meet two consecutive runs where their end segments cross."""

    hit = line_intersection(
        first[-2],
        sub(first[-1], first[-2]),
        second[0],
        sub(second[1], second[0]),
    )
    if hit is None or distance(hit, vertex) > reach:
        return False
    first[-1] = hit
    second[0] = hit
    return True


def _build_edge_seam(
    parent: Figure,
    seam_id: str,
    offsets: Mapping[str, float],
    settings: EngineSettings,
) -> Figure:
    _check_parent(parent)
    allowances = _edge_allowances(parent, offsets)
    walk = ordered_cycle(parent)
    area = signed_area(outline_polyline(parent, settings=settings))
    if abs(area) <= EPSILON:
        raise UnsupportedGeometryError("Outline encloses no area.")
    orientation = 1.0 if area > 0.0 else -1.0

    runs: list[tuple[int, str, list[Point]]] = []
    for index, (edge, forward) in enumerate(walk.steps):
        if edge.id not in allowances:
            continue
        points = simplify_polyline(
            edge_polyline(parent, edge, forward=forward, settings=settings),
            min_segment=settings.min_segment_px,
        )
        if len(points) < 2:
            continue
        offset_px = settings.offset_px(allowances[edge.id])
        runs.append((index, edge.id, _offset_run(points, offset_px, orientation, settings)))
    if not runs:
        raise UnsupportedGeometryError("Seam edges collapse to points.")

    count = len(walk.steps)
    for position, (index, edge_id, points) in enumerate(runs):
        next_index, next_edge_id, next_points = runs[(position + 1) % len(runs)]
        if next_index != (index + 1) % count or next_points is points:
            continue
        vertex = parent.node(walk.node_ids[next_index]).point
        reach = settings.miter_limit * settings.offset_px(
            max(allowances[edge_id], allowances[next_edge_id])
        )
        joined = _join_runs(points, next_points, vertex, reach)
        logger.debug("Seam join %s -> %s: %s", edge_id, next_edge_id, "met" if joined else "gap")

    nodes: list[FigureNode] = []
    edges: list[FigureEdge] = []
    for segment, (_, _, points) in enumerate(runs):
        prefix = f"{seam_id}-s{segment}"
        run_nodes = [
            FigureNode(id=f"{prefix}-n{index}", x=x, y=y, mode=NodeMode.CORNER)
            for index, (x, y) in enumerate(points)
        ]
        edges.extend(
            FigureEdge(id=f"{prefix}-e{index}", from_id=start.id, to_id=end.id, kind=EdgeKind.LINE)
            for index, (start, end) in enumerate(zip(run_nodes, run_nodes[1:]))
        )
        nodes.extend(run_nodes)
    logger.debug("Seam %s built with %d segments", seam_id, len(runs))
    return _seam_figure(
        parent,
        seam_id,
        offset_cm=None,
        edge_offsets_cm=tuple(sorted((key, float(value)) for key, value in offsets.items())),
        seam_segment_edge_ids=tuple(edge_id for _, edge_id, _ in runs),
        nodes=tuple(nodes),
        edges=tuple(edges),
        closed=False,
    )


def _derive(
    parent: Figure,
    seam_id: str,
    offset_cm: float | Mapping[str, float],
    settings: EngineSettings,
) -> Figure:
    if isinstance(offset_cm, Mapping):
        return _build_edge_seam(parent, seam_id, offset_cm, settings)
    return _build_seam(parent, seam_id, offset_cm, settings)


@fail_closed("offset_figure")
def offset_figure(
    parent: Figure,
    offset_cm: float | Mapping[str, float],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> Figure:
    """Derive the seam-allowance figure of ``parent``.

    A number offsets the whole outline into a closed seam.  A mapping of
    edge id to allowance offsets only those edges and yields an open seam
    with one segment per edge, recorded in ``seam_segment_edge_ids``.
    Consecutive segments meet where their offset lines cross.
    """

    return _derive(parent, seam_id_for(parent), offset_cm, settings)


@fail_closed("recompute_seam_figure")
def recompute_seam_figure(
    parent: Figure,
    seam: Figure,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> Figure:
    """Rebuild ``seam`` from its parent's current geometry, keeping id and allowance."""

    if seam.kind is not FigureKind.SEAM:
        raise UnsupportedGeometryError(f"Figure {seam.id!r} is not a seam.")
    if seam.edge_offsets_cm is not None:
        allowance: float | Mapping[str, float] = dict(seam.edge_offsets_cm)
    elif seam.offset_cm is not None:
        allowance = seam.offset_cm
    else:
        raise UnsupportedGeometryError(f"Seam {seam.id!r} has no allowance.")
    if seam.parent_id != parent.id:
        raise UnsupportedGeometryError(
            f"Seam {seam.id!r} belongs to {seam.parent_id!r}, not {parent.id!r}."
        )
    return _derive(parent, seam.id, allowance, settings)


def is_seam_stale(parent: Figure, seam: Figure) -> bool:
    return seam.source_signature != source_signature(parent)


__all__ = [
    "SEAM_DASH",
    "is_seam_stale",
    "offset_figure",
    "offset_polygon",
    "recompute_seam_figure",
    "seam_id_for",
    "simplify_polygon",
    "simplify_polyline",
]
