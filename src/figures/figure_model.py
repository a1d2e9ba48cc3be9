"""Shared figure schema for the pattern-drafting engines."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

from .constants import DEFAULT_SETTINGS, EngineSettings
from .errors import MalformedFigureError, ValidationIssue
from .geometry import Cubic, Point, add, flatten_cubic, rotate, sub


class DrawingTool(str, Enum):
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    LINE = "line"
    CURVE = "curve"
    DART = "dart"


class NodeMode(str, Enum):
    SMOOTH = "smooth"
    CORNER = "corner"


class EdgeKind(str, Enum):
    LINE = "line"
    CUBIC = "cubic"


class FigureKind(str, Enum):
    SEAM = "seam"


class CurveType(str, Enum):
    STYLED = "styled"
    CUSTOM = "custom"


class TechnicalCurveId(str, Enum):
    ARC_LOW = "ARC_LOW"
    ARC_MED = "ARC_MED"
    ARC_HIGH = "ARC_HIGH"
    S_SOFT = "S_SOFT"
    S_MED = "S_MED"
    EASE_IN = "EASE_IN"
    EASE_IN_OUT = "EASE_IN_OUT"
    QUARTER_CIRCLE = "QUARTER_CIRCLE"
    HOOK_LIGHT = "HOOK_LIGHT"
    HOOK_MED = "HOOK_MED"
    HOOK_STRONG = "HOOK_STRONG"
    HOOK_DEEP = "HOOK_DEEP"
    ARC_ASYM_IN = "ARC_ASYM_IN"
    ARC_ASYM_OUT = "ARC_ASYM_OUT"


@dataclass(frozen=True, slots=True)
class FigureNode:
    """Control point on a figure outline.

    Handles are offsets from the node position; the absolute control point
    of a handle is ``node + handle``.
    """

    id: str
    x: float
    y: float
    mode: NodeMode = NodeMode.CORNER
    in_handle: Point | None = None
    out_handle: Point | None = None

    @property
    def point(self) -> Point:
        return (self.x, self.y)

    def in_control(self) -> Point:
        if self.in_handle is None:
            return self.point
        return add(self.point, self.in_handle)

    def out_control(self) -> Point:
        if self.out_handle is None:
            return self.point
        return add(self.point, self.out_handle)


@dataclass(frozen=True, slots=True)
class FigureEdge:
    """Line or cubic segment between two nodes of the same figure."""

    id: str
    from_id: str
    to_id: str
    kind: EdgeKind = EdgeKind.LINE


@dataclass(frozen=True, slots=True)
class FigureStyle:
    stroke: str = "#000000"
    stroke_width: float = 1.0
    fill: str | None = None
    opacity: float | None = None
    dash: tuple[float, ...] | None = None


@dataclass(frozen=True, slots=True)
class StyledCurveParams:
    height: float = 1.0
    bias: float = 0.0
    flip_x: bool = False
    flip_y: bool = False
    rotation_deg: float = 0.0


@dataclass(frozen=True, slots=True)
class StyledCurveData:
    """Semantic design intent bound to a technical curve template."""

    semantic_id: str
    technical_id: TechnicalCurveId
    params: StyledCurveParams = field(default_factory=StyledCurveParams)


@dataclass(frozen=True, slots=True)
class CurveOrigin:
    semantic_id: str
    technical_id: TechnicalCurveId


@dataclass(frozen=True, slots=True)
class CustomSnapshot:
    """Baseline geometry used by "revert to custom"."""

    nodes: tuple[FigureNode, ...]
    edges: tuple[FigureEdge, ...]
    closed: bool


@dataclass(frozen=True, slots=True)
class EdgeMeasure:
    edge_id: str
    kind: EdgeKind
    length_px: float
    angle_deg: float | None = None


@dataclass(frozen=True, slots=True)
class CircleMeasures:
    rx_px: float
    ry_px: float
    width_px: float
    height_px: float
    circumference_px: float
    radius_px: float | None = None
    diameter_px: float | None = None


@dataclass(frozen=True, slots=True)
class RectangleMeasures:
    width_px: float
    height_px: float


@dataclass(frozen=True, slots=True)
class CurveMeasures:
    length_px: float
    tangent_angle_deg_at_mid: float | None = None
    curvature_radius_px_at_mid: float | None = None


@dataclass(frozen=True, slots=True)
class FigureMeasures:
    """Advisory measurement cache derived from a figure's geometry."""

    figure_length_px: float = 0.0
    per_edge: tuple[EdgeMeasure, ...] = ()
    circle: CircleMeasures | None = None
    rectangle: RectangleMeasures | None = None
    curve: CurveMeasures | None = None
    version: int = 1


@dataclass(frozen=True)
class Figure:
    """One drawn pattern piece: node/edge graph plus transform and style."""

    id: str
    tool: DrawingTool
    nodes: tuple[FigureNode, ...] = ()
    edges: tuple[FigureEdge, ...] = ()
    closed: bool = False
    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0
    style: FigureStyle = field(default_factory=FigureStyle)
    kind: FigureKind | None = None
    parent_id: str | None = None
    offset_cm: float | None = None
    edge_offsets_cm: tuple[tuple[str, float], ...] | None = None
    seam_segment_edge_ids: tuple[str, ...] | None = None
    source_signature: str | None = None
    curve_type: CurveType | None = None
    styled_data: StyledCurveData | None = None
    derived_from: CurveOrigin | None = None
    custom_snapshot: CustomSnapshot | None = None
    custom_snapshot_dirty: bool = False
    measures: FigureMeasures | None = None

    @cached_property
    def node_map(self) -> Mapping[str, FigureNode]:
        return MappingProxyType({node.id: node for node in self.nodes})

    @cached_property
    def edge_map(self) -> Mapping[str, FigureEdge]:
        return MappingProxyType({edge.id: edge for edge in self.edges})

    def node(self, node_id: str) -> FigureNode:
        return self.node_map[node_id]

    @property
    def origin(self) -> Point:
        return (self.x, self.y)


@dataclass(frozen=True, slots=True)
class CycleWalk:
    """Ordered traversal of a figure's single cycle or open path."""

    steps: tuple[tuple[FigureEdge, bool], ...]
    node_ids: tuple[str, ...]


def edge_endpoints(figure: Figure, edge: FigureEdge) -> tuple[FigureNode, FigureNode]:
    return figure.node(edge.from_id), figure.node(edge.to_id)


def edge_control_points(
    figure: Figure, edge: FigureEdge, *, forward: bool = True
) -> Cubic:
    """Bézier control points of ``edge``; a line collapses its inner points."""

    start, end = edge_endpoints(figure, edge)
    if edge.kind is EdgeKind.CUBIC:
        points = (start.point, start.out_control(), end.in_control(), end.point)
    else:
        points = (start.point, start.point, end.point, end.point)
    if forward:
        return points
    return (points[3], points[2], points[1], points[0])


def edge_polyline(
    figure: Figure,
    edge: FigureEdge,
    *,
    forward: bool = True,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[Point]:
    p0, p1, p2, p3 = edge_control_points(figure, edge, forward=forward)
    if edge.kind is EdgeKind.LINE:
        return [p0, p3]
    return flatten_cubic(
        p0,
        p1,
        p2,
        p3,
        tolerance=settings.flatten_tolerance_px,
        max_depth=settings.max_subdivision_depth,
    )


def cycle_issues(figure: Figure) -> list[ValidationIssue]:
    """Issues preventing ``figure``'s edges from forming one cycle over all nodes."""

    node_ids = figure.node_map
    if not figure.nodes or len(figure.edges) != len(figure.nodes):
        return [
            ValidationIssue(
                code="not_single_cycle",
                message=(
                    f"Closed figure has {len(figure.edges)} edges for "
                    f"{len(figure.nodes)} nodes."
                ),
            )
        ]
    degree: dict[str, int] = {node_id: 0 for node_id in node_ids}
    for edge in figure.edges:
        if edge.from_id in degree:
            degree[edge.from_id] += 1
        if edge.to_id in degree:
            degree[edge.to_id] += 1
    bad = sorted(node_id for node_id, count in degree.items() if count != 2)
    if bad:
        return [
            ValidationIssue(
                code="not_single_cycle",
                message=f"Nodes {bad} do not have exactly two incident edges.",
            )
        ]
    try:
        walk = _walk_cycle(figure)
    except MalformedFigureError as exc:
        return list(exc.issues)
    if len(walk.node_ids) != len(figure.nodes):
        return [
            ValidationIssue(
                code="not_single_cycle",
                message="Closed figure edges form more than one loop.",
            )
        ]
    return []


def _walk_cycle(figure: Figure) -> CycleWalk:
    incident: dict[str, list[FigureEdge]] = {}
    for edge in figure.edges:
        incident.setdefault(edge.from_id, []).append(edge)
        if edge.to_id != edge.from_id:
            incident.setdefault(edge.to_id, []).append(edge)

    first = figure.edges[0]
    steps: list[tuple[FigureEdge, bool]] = [(first, True)]
    node_ids: list[str] = [first.from_id]
    used = {first.id}
    current = first.to_id
    start = first.from_id
    # A cycle over n nodes has exactly n steps.
    for _ in range(len(figure.edges)):
        if current == start:
            break
        node_ids.append(current)
        candidates = [edge for edge in incident.get(current, []) if edge.id not in used]
        if not candidates:
            raise MalformedFigureError(
                [
                    ValidationIssue(
                        code="not_single_cycle",
                        message=f"Outline is open at node {current!r}.",
                    )
                ]
            )
        edge = candidates[0]
        used.add(edge.id)
        forward = edge.from_id == current
        steps.append((edge, forward))
        current = edge.to_id if forward else edge.from_id
    if current != start:
        raise MalformedFigureError(
            [ValidationIssue(code="not_single_cycle", message="Outline does not return to its start.")]
        )
    return CycleWalk(steps=tuple(steps), node_ids=tuple(node_ids))


def ordered_cycle(figure: Figure) -> CycleWalk:
    """Walk the single cycle of a closed figure starting at its first edge."""

    if not figure.closed:
        raise MalformedFigureError(
            [ValidationIssue(code="not_closed", message=f"Figure {figure.id!r} is not closed.")]
        )
    issues = cycle_issues(figure)
    if issues:
        raise MalformedFigureError(issues)
    return _walk_cycle(figure)


def _path_error(message: str) -> MalformedFigureError:
    return MalformedFigureError([ValidationIssue(code="not_single_path", message=message)])


def ordered_path(figure: Figure) -> CycleWalk:
    """Walk an open figure's edges as one path from end to end.

    The walk starts at a degree-1 node, preferring one that its edge leaves
    from, so a path stored front to back is walked in storage direction.
    """

    if figure.closed:
        raise _path_error(f"Figure {figure.id!r} is closed.")
    if not figure.edges or len(figure.edges) != len(figure.nodes) - 1:
        raise _path_error(
            f"Open figure has {len(figure.edges)} edges for {len(figure.nodes)} nodes."
        )
    incident: dict[str, list[FigureEdge]] = {node.id: [] for node in figure.nodes}
    for edge in figure.edges:
        if edge.from_id not in incident or edge.to_id not in incident or edge.from_id == edge.to_id:
            raise _path_error(f"Edge {edge.id!r} does not join two distinct nodes.")
        incident[edge.from_id].append(edge)
        incident[edge.to_id].append(edge)
    ends = [node.id for node in figure.nodes if len(incident[node.id]) == 1]
    if len(ends) != 2 or any(len(edges) > 2 for edges in incident.values()):
        raise _path_error("Edges do not form a single unbranched path.")
    leaving = [node_id for node_id in ends if incident[node_id][0].from_id == node_id]
    start = leaving[0] if leaving else ends[0]

    steps: list[tuple[FigureEdge, bool]] = []
    node_ids = [start]
    used: set[str] = set()
    current = start
    for _ in range(len(figure.edges)):
        candidates = [edge for edge in incident[current] if edge.id not in used]
        if not candidates:
            break
        edge = candidates[0]
        used.add(edge.id)
        forward = edge.from_id == current
        steps.append((edge, forward))
        current = edge.to_id if forward else edge.from_id
        node_ids.append(current)
    if len(node_ids) != len(figure.nodes):
        raise _path_error("Edges do not reach every node.")
    return CycleWalk(steps=tuple(steps), node_ids=tuple(node_ids))


def outline_polyline(
    figure: Figure, *, settings: EngineSettings = DEFAULT_SETTINGS
) -> list[Point]:
    """Flattened outline of a closed figure, without repeating the first point."""

    walk = ordered_cycle(figure)
    points: list[Point] = []
    for edge, forward in walk.steps:
        points.extend(edge_polyline(figure, edge, forward=forward, settings=settings)[:-1])
    return points


def figure_local_to_world(figure: Figure, local: Point) -> Point:
    return add(rotate(local, figure.rotation), figure.origin)


def world_to_figure_local(figure: Figure, world: Point) -> Point:
    return rotate(sub(world, figure.origin), -figure.rotation)


def with_geometry(
    figure: Figure,
    *,
    nodes: Sequence[FigureNode] | None = None,
    edges: Sequence[FigureEdge] | None = None,
    closed: bool | None = None,
) -> Figure:
    """Return a copy with new geometry and the measures cache dropped."""

    return replace(
        figure,
        nodes=tuple(figure.nodes if nodes is None else nodes),
        edges=tuple(figure.edges if edges is None else edges),
        closed=figure.closed if closed is None else closed,
        measures=None,
    )


def remove_figure(figures: Iterable[Figure], figure_id: str) -> tuple[Figure, ...]:
    """Delete a figure together with the seam figures derived from it."""

    return tuple(
        figure
        for figure in figures
        if figure.id != figure_id
        and not (figure.kind is FigureKind.SEAM and figure.parent_id == figure_id)
    )


__all__ = [
    "CircleMeasures",
    "CurveMeasures",
    "CurveOrigin",
    "CurveType",
    "CustomSnapshot",
    "CycleWalk",
    "DrawingTool",
    "EdgeKind",
    "EdgeMeasure",
    "Figure",
    "FigureEdge",
    "FigureKind",
    "FigureMeasures",
    "FigureNode",
    "FigureStyle",
    "NodeMode",
    "RectangleMeasures",
    "StyledCurveData",
    "StyledCurveParams",
    "TechnicalCurveId",
    "cycle_issues",
    "edge_control_points",
    "edge_endpoints",
    "edge_polyline",
    "figure_local_to_world",
    "ordered_cycle",
    "ordered_path",
    "outline_polyline",
    "remove_figure",
    "with_geometry",
    "world_to_figure_local",
]
