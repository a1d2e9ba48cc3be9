"""Advisory measurements derived from a figure's current geometry.

Measurement never raises: degenerate or malformed geometry degrades to
zero-valued fields so editing is never blocked.  Shape detection is a
best-effort heuristic layered on top of the per-edge lengths.
"""

from __future__ import annotations

import math
from dataclasses import replace

import numpy as np

from .constants import DEFAULT_SETTINGS, EngineSettings
from .errors import MalformedFigureError
from .figure_model import (
    CircleMeasures,
    CurveMeasures,
    CycleWalk,
    EdgeKind,
    EdgeMeasure,
    Figure,
    FigureEdge,
    FigureMeasures,
    RectangleMeasures,
    edge_control_points,
    ordered_cycle,
    ordered_path,
)
from .geometry import (
    EPSILON,
    Cubic,
    cross,
    cubic_arc_length,
    cubic_derivative,
    cubic_second_derivative,
    distance,
    length,
)

CIRCLE_SAMPLES_PER_EDGE = 24


def _edge_length(cubic: Cubic, kind: EdgeKind, settings: EngineSettings) -> float:
    p0, p1, p2, p3 = cubic
    if kind is EdgeKind.LINE:
        return distance(p0, p3)
    return cubic_arc_length(
        p0,
        p1,
        p2,
        p3,
        flatness=settings.arc_flatness,
        max_depth=settings.max_subdivision_depth,
    )


def _angle_deg(cubic: Cubic) -> float:
    p0, p3 = cubic[0], cubic[3]
    return math.degrees(math.atan2(p3[1] - p0[1], p3[0] - p0[0]))


def _sample_cubic(cubic: Cubic, steps: int) -> np.ndarray:
    t = np.linspace(0.0, 1.0, steps + 1)[:, None]
    mt = 1.0 - t
    ctrl = np.asarray(cubic, dtype=float)
    return (
        mt**3 * ctrl[0]
        + 3.0 * mt**2 * t * ctrl[1]
        + 3.0 * mt * t**2 * ctrl[2]
        + t**3 * ctrl[3]
    )


def _closed_walk(figure: Figure) -> CycleWalk | None:
    if not figure.closed:
        return None
    try:
        return ordered_cycle(figure)
    except MalformedFigureError:
        return None


def _open_walk(figure: Figure) -> CycleWalk | None:
    if figure.closed:
        return None
    try:
        return ordered_path(figure)
    except MalformedFigureError:
        return None


def _detect_circle(
    figure: Figure,
    walk: CycleWalk,
    circumference: float,
    settings: EngineSettings,
) -> CircleMeasures | None:
    if not all(edge.kind is EdgeKind.CUBIC for edge, _ in walk.steps):
        return None
    samples = np.vstack(
        [
            _sample_cubic(edge_control_points(figure, edge, forward=forward), CIRCLE_SAMPLES_PER_EDGE)
            for edge, forward in walk.steps
        ]
    )
    lower = samples.min(axis=0)
    upper = samples.max(axis=0)
    width, height = (upper - lower).tolist()
    rx = width * 0.5
    ry = height * 0.5
    if rx <= EPSILON or ry <= EPSILON:
        return None
    center = (lower + upper) * 0.5
    normalized = (samples - center) / np.array([rx, ry])
    residual = np.abs(np.hypot(normalized[:, 0], normalized[:, 1]) - 1.0)
    tolerance = settings.circle_tolerance
    if float(residual.max()) > tolerance:
        return None
    radius: float | None = None
    diameter: float | None = None
    if abs(rx - ry) <= tolerance * max(rx, ry):
        radius = (rx + ry) * 0.5
        diameter = radius * 2.0
    return CircleMeasures(
        rx_px=rx,
        ry_px=ry,
        width_px=width,
        height_px=height,
        circumference_px=circumference,
        radius_px=radius,
        diameter_px=diameter,
    )


def _detect_rectangle(
    figure: Figure,
    walk: CycleWalk,
    lengths: dict[str, float],
    settings: EngineSettings,
) -> RectangleMeasures | None:
    if len(walk.steps) != 4:
        return None
    if not all(edge.kind is EdgeKind.LINE for edge, _ in walk.steps):
        return None
    directions = []
    for edge, forward in walk.steps:
        p0, _, _, p3 = edge_control_points(figure, edge, forward=forward)
        direction = (p3[0] - p0[0], p3[1] - p0[1])
        if length(direction) <= EPSILON:
            return None
        directions.append(direction)
    for index, current in enumerate(directions):
        following = directions[(index + 1) % 4]
        cosine = (current[0] * following[0] + current[1] * following[1]) / (
            length(current) * length(following)
        )
        angle = math.degrees(math.acos(max(-1.0, min(1.0, cosine))))
        if abs(angle - 90.0) > settings.rectangle_angle_tolerance_deg:
            return None
    sides = [lengths[edge.id] for edge, _ in walk.steps]
    return RectangleMeasures(
        width_px=(sides[0] + sides[2]) * 0.5,
        height_px=(sides[1] + sides[3]) * 0.5,
    )


def _curve_measures(figure: Figure, edges: list[FigureEdge], total: float) -> CurveMeasures:
    """Tangent and radius halfway along the path, counted in edges from its start."""

    walk = _open_walk(figure)
    steps = list(walk.steps) if walk is not None else [(edge, True) for edge in edges]
    count = len(steps)
    index = min(count - 1, int(math.floor(0.5 * count)))
    local_t = 0.5 * count - index
    edge, forward = steps[index]
    p0, p1, p2, p3 = edge_control_points(figure, edge, forward=forward)
    first = cubic_derivative(p0, p1, p2, p3, local_t)
    speed = length(first)
    if speed <= EPSILON:
        return CurveMeasures(length_px=total)
    second = cubic_second_derivative(p0, p1, p2, p3, local_t)
    tangent = math.degrees(math.atan2(first[1], first[0]))
    curvature = cross(first, second) / speed**3
    radius = 1.0 / abs(curvature) if abs(curvature) > EPSILON else None
    return CurveMeasures(
        length_px=total,
        tangent_angle_deg_at_mid=tangent,
        curvature_radius_px_at_mid=radius,
    )


def compute_measures(
    figure: Figure, settings: EngineSettings = DEFAULT_SETTINGS
) -> FigureMeasures:
    """Derive lengths, angles and shape metrics from ``figure``."""

    if len(figure.nodes) < 2:
        return FigureMeasures()

    nodes = figure.node_map
    per_edge: list[EdgeMeasure] = []
    lengths: dict[str, float] = {}
    resolved: list[FigureEdge] = []
    total = 0.0
    for edge in figure.edges:
        if edge.from_id not in nodes or edge.to_id not in nodes:
            continue
        cubic = edge_control_points(figure, edge)
        edge_length = _edge_length(cubic, edge.kind, settings)
        angle = _angle_deg(cubic) if edge.kind is EdgeKind.LINE else None
        per_edge.append(
            EdgeMeasure(edge_id=edge.id, kind=edge.kind, length_px=edge_length, angle_deg=angle)
        )
        lengths[edge.id] = edge_length
        resolved.append(edge)
        total += edge_length

    if total <= EPSILON:
        return FigureMeasures(
            figure_length_px=0.0,
            per_edge=tuple(replace(item, length_px=0.0) for item in per_edge),
        )

    circle: CircleMeasures | None = None
    rectangle: RectangleMeasures | None = None
    curve: CurveMeasures | None = None

    walk = _closed_walk(figure)
    if walk is not None:
        circle = _detect_circle(figure, walk, total, settings)
        if circle is None:
            rectangle = _detect_rectangle(figure, walk, lengths, settings)
    if circle is None and rectangle is None and (not figure.closed or len(resolved) == 1):
        curve = _curve_measures(figure, resolved, total)

    return FigureMeasures(
        figure_length_px=total,
        per_edge=tuple(per_edge),
        circle=circle,
        rectangle=rectangle,
        curve=curve,
    )


def with_measures(figure: Figure, settings: EngineSettings = DEFAULT_SETTINGS) -> Figure:
    return replace(figure, measures=compute_measures(figure, settings))


__all__ = ["compute_measures", "with_measures"]
