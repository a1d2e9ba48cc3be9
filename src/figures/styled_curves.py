"""Semantic curve presets and the technical Bézier templates behind them.

A styled curve is an open, single cubic between the two endpoints of a
``curve`` figure.  Its inner control points come from a normalised template
running from ``(0, 0)`` to ``(1, 0)`` which is transformed by the curve's
:class:`StyledCurveParams` and projected onto the endpoint chord.  Editing
the geometry by hand breaks the styled link; the curve then becomes
``custom`` and keeps a snapshot the user can revert to.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from .errors import UnsupportedGeometryError, fail_closed
from .figure_model import (
    CurveOrigin,
    CurveType,
    CustomSnapshot,
    DrawingTool,
    EdgeKind,
    Figure,
    FigureEdge,
    FigureNode,
    NodeMode,
    StyledCurveData,
    StyledCurveParams,
    TechnicalCurveId,
    with_geometry,
)
from .geometry import EPSILON, Point, add, clamp, length, normalize, perp, rotate, scale, sub
from .signature import geometry_signature


@dataclass(frozen=True, slots=True)
class CurveTemplate:
    id: TechnicalCurveId
    label: str
    p1: Point
    p2: Point


class CurveCategory(str, Enum):
    ARMHOLE = "armhole"
    BUST = "bust"
    NECKLINE = "neckline"
    SHOULDER_COLLAR = "shoulder_collar"
    CROTCH = "crotch"
    WAIST = "waist"
    HIP = "hip"
    HEM = "hem"


@dataclass(frozen=True, slots=True)
class SemanticPreset:
    """Garment-level intent bound to a technical template."""

    id: str
    label: str
    category: CurveCategory
    technical_id: TechnicalCurveId
    default_params: StyledCurveParams = StyledCurveParams()


def _template(curve_id: TechnicalCurveId, label: str, p1: Point, p2: Point) -> CurveTemplate:
    return CurveTemplate(id=curve_id, label=label, p1=p1, p2=p2)


_T = TechnicalCurveId

TECHNICAL_CURVE_TEMPLATES: Mapping[TechnicalCurveId, CurveTemplate] = MappingProxyType(
    {
        item.id: item
        for item in (
            _template(_T.ARC_LOW, "Low arc", (0.33, 0.12), (0.66, 0.12)),
            _template(_T.ARC_MED, "Medium arc", (0.33, 0.25), (0.66, 0.25)),
            _template(_T.ARC_HIGH, "High arc", (0.33, 0.42), (0.66, 0.42)),
            _template(_T.S_SOFT, "Soft S", (0.25, 0.25), (0.75, -0.25)),
            _template(_T.S_MED, "Medium S", (0.23, 0.32), (0.77, -0.32)),
            _template(_T.EASE_IN, "Ease in", (0.12, 0.0), (0.78, 0.22)),
            _template(_T.EASE_IN_OUT, "Ease in/out", (0.2, 0.18), (0.8, 0.18)),
            _template(_T.QUARTER_CIRCLE, "Quarter circle", (0.0, 0.55), (1.0, 0.55)),
            _template(_T.HOOK_LIGHT, "Light hook", (0.12, 0.0), (0.55, 0.55)),
            _template(_T.HOOK_MED, "Medium hook", (0.1, 0.0), (0.5, 0.75)),
            _template(_T.HOOK_STRONG, "Strong hook", (0.1, 0.0), (0.45, 0.9)),
            _template(_T.HOOK_DEEP, "Deep hook", (0.08, 0.02), (0.42, 1.12)),
            _template(_T.ARC_ASYM_IN, "Asymmetric arc (in)", (0.28, 0.34), (0.72, 0.18)),
            _template(_T.ARC_ASYM_OUT, "Asymmetric arc (out)", (0.28, 0.18), (0.72, 0.34)),
        )
    }
)


def _preset(
    preset_id: str, label: str, category: CurveCategory, technical_id: TechnicalCurveId
) -> SemanticPreset:
    return SemanticPreset(id=preset_id, label=label, category=category, technical_id=technical_id)


_C = CurveCategory

SEMANTIC_CURVE_PRESETS: tuple[SemanticPreset, ...] = (
    _preset("ARMHOLE_FRONT_CLASSIC", "Classic front armhole", _C.ARMHOLE, _T.ARC_ASYM_IN),
    _preset("ARMHOLE_BACK_CLASSIC", "Classic back armhole", _C.ARMHOLE, _T.ARC_ASYM_OUT),
    _preset("ARMHOLE_ANATOMICAL", "Anatomical armhole", _C.ARMHOLE, _T.S_SOFT),
    _preset("ARMHOLE_DEEP", "Deep armhole", _C.ARMHOLE, _T.ARC_HIGH),
    _preset("ARMHOLE_STRAIGHT", "Straight armhole", _C.ARMHOLE, _T.ARC_LOW),
    _preset("ARMHOLE_SPORT", "Sport armhole", _C.ARMHOLE, _T.S_MED),
    _preset("BUST_CURVE", "Bust curve", _C.BUST, _T.ARC_MED),
    _preset("BUST_DART", "Bust dart", _C.BUST, _T.ARC_ASYM_OUT),
    _preset("PRINCESS_SEAM_BUST", "Princess seam (bust)", _C.BUST, _T.S_SOFT),
    _preset("ANATOMICAL_PANEL", "Anatomical panel line", _C.BUST, _T.S_MED),
    _preset("ANATOMICAL_WRAP", "Anatomical wrap", _C.BUST, _T.ARC_ASYM_IN),
    _preset("CROTCH_FRONT", "Front crotch", _C.CROTCH, _T.HOOK_LIGHT),
    _preset("CROTCH_BACK", "Back crotch", _C.CROTCH, _T.HOOK_STRONG),
    _preset("CROTCH_ANATOMICAL", "Anatomical crotch", _C.CROTCH, _T.HOOK_MED),
    _preset("CROTCH_STRAIGHT", "Straight crotch", _C.CROTCH, _T.EASE_IN),
    _preset("CROTCH_DEEP", "Deep crotch", _C.CROTCH, _T.HOOK_DEEP),
    _preset("WAIST_CURVE", "Waist curve", _C.WAIST, _T.ARC_LOW),
    _preset("WAIST_ANATOMICAL", "Anatomical waist", _C.WAIST, _T.ARC_MED),
    _preset("HIP_CURVE", "Hip curve", _C.HIP, _T.ARC_HIGH),
    _preset("HIP_SOFT", "Soft hip", _C.HIP, _T.ARC_MED),
    _preset("HIP_STRUCTURED", "Structured hip", _C.HIP, _T.ARC_HIGH),
    _preset("NECKLINE_ROUND", "Round neckline", _C.NECKLINE, _T.ARC_MED),
    _preset("NECKLINE_U", "U neckline", _C.NECKLINE, _T.ARC_HIGH),
    _preset("NECKLINE_CREW", "Crew neckline", _C.NECKLINE, _T.ARC_LOW),
    _preset("NECKLINE_V", "V neckline", _C.NECKLINE, _T.EASE_IN_OUT),
    _preset("NECKLINE_BOAT", "Boat neckline", _C.NECKLINE, _T.ARC_LOW),
    _preset("NECKLINE_ASYMMETRIC", "Asymmetric neckline", _C.NECKLINE, _T.ARC_ASYM_IN),
    _preset("NECKLINE_ANATOMICAL", "Anatomical neckline", _C.NECKLINE, _T.S_SOFT),
    _preset("SHOULDER_CURVE", "Shoulder curve", _C.SHOULDER_COLLAR, _T.ARC_LOW),
    _preset("SHOULDER_ANATOMICAL", "Anatomical shoulder", _C.SHOULDER_COLLAR, _T.ARC_MED),
    _preset("COLLAR_CREW", "Crew collar", _C.SHOULDER_COLLAR, _T.ARC_MED),
    _preset("COLLAR_ROUND", "Round collar", _C.SHOULDER_COLLAR, _T.ARC_HIGH),
    _preset("COLLAR_STRUCTURED", "Structured collar", _C.SHOULDER_COLLAR, _T.QUARTER_CIRCLE),
    _preset("HEM_STRAIGHT", "Straight hem", _C.HEM, _T.EASE_IN_OUT),
    _preset("HEM_ROUNDED", "Rounded hem", _C.HEM, _T.ARC_MED),
    _preset("HEM_FLARED", "Flared hem", _C.HEM, _T.ARC_HIGH),
    _preset("HEM_MULLET", "Mullet hem", _C.HEM, _T.ARC_ASYM_OUT),
    _preset("HEM_ANATOMICAL", "Anatomical hem", _C.HEM, _T.S_SOFT),
)

_PRESETS_BY_ID: Mapping[str, SemanticPreset] = MappingProxyType(
    {preset.id: preset for preset in SEMANTIC_CURVE_PRESETS}
)

CATEGORY_ORDER: tuple[tuple[CurveCategory, str], ...] = (
    (CurveCategory.ARMHOLE, "Armholes"),
    (CurveCategory.BUST, "Bust and panel lines"),
    (CurveCategory.NECKLINE, "Necklines"),
    (CurveCategory.SHOULDER_COLLAR, "Shoulders and collar"),
    (CurveCategory.CROTCH, "Crotch"),
    (CurveCategory.WAIST, "Waist"),
    (CurveCategory.HIP, "Hip"),
    (CurveCategory.HEM, "Hems"),
)


def preset_by_id(semantic_id: str) -> SemanticPreset | None:
    return _PRESETS_BY_ID.get(semantic_id)


def presets_by_category() -> tuple[tuple[CurveCategory, str, tuple[SemanticPreset, ...]], ...]:
    """Presets grouped for display as ``(category, label, presets)``."""

    return tuple(
        (
            category,
            label,
            tuple(preset for preset in SEMANTIC_CURVE_PRESETS if preset.category is category),
        )
        for category, label in CATEGORY_ORDER
    )


def transform_template_point(point: Point, params: StyledCurveParams) -> Point:
    """Apply bias, height, flips and rotation to a normalised control point."""

    x = clamp(point[0] + params.bias * 0.2, 0.0, 1.0)
    y = point[1] * params.height
    if params.flip_x:
        x = 1.0 - x
    if params.flip_y:
        y = -y
    if params.rotation_deg:
        rx, ry = rotate((x - 0.5, y), params.rotation_deg)
        x, y = rx + 0.5, ry
    return (x, y)


def project_normalized(start: Point, end: Point, point: Point) -> Point:
    """Map normalised ``(x, y)`` onto the chord ``start -> end``.

    ``x`` runs along the chord and ``y`` along its left perpendicular, both
    scaled by the chord length.
    """

    base = sub(end, start)
    chord = length(base)
    along = scale(base, point[0])
    across = scale(perp(normalize(base)), chord * point[1])
    return add(start, add(along, across))


def curve_endpoints(figure: Figure) -> tuple[FigureNode, FigureNode] | None:
    """Degree-one nodes of an open curve, falling back to first and last node."""

    if not figure.nodes or not figure.edges:
        return None
    degree = {node.id: 0 for node in figure.nodes}
    for edge in figure.edges:
        if edge.from_id in degree:
            degree[edge.from_id] += 1
        if edge.to_id in degree:
            degree[edge.to_id] += 1
    ends = [node for node in figure.nodes if degree[node.id] == 1]
    if len(ends) >= 2:
        return ends[0], ends[1]
    if len(figure.nodes) >= 2:
        return figure.nodes[0], figure.nodes[-1]
    return None


def _require_curve(figure: Figure) -> None:
    if figure.tool is not DrawingTool.CURVE:
        raise UnsupportedGeometryError(f"Figure {figure.id!r} is not a curve.")
    if figure.closed:
        raise UnsupportedGeometryError(f"Closed curve {figure.id!r} cannot be styled.")


def _styled_geometry(
    figure: Figure,
    template: CurveTemplate,
    params: StyledCurveParams,
) -> tuple[tuple[FigureNode, ...], tuple[FigureEdge, ...]]:
    endpoints = curve_endpoints(figure)
    if endpoints is None:
        raise UnsupportedGeometryError(f"Curve {figure.id!r} has no endpoints.")
    start, end = (node.point for node in endpoints)
    if length(sub(end, start)) <= EPSILON:
        raise UnsupportedGeometryError(f"Curve {figure.id!r} endpoints coincide.")

    p1 = project_normalized(start, end, transform_template_point(template.p1, params))
    p2 = project_normalized(start, end, transform_template_point(template.p2, params))

    start_id = f"{figure.id}-n0"
    end_id = f"{figure.id}-n1"
    nodes = (
        FigureNode(
            id=start_id,
            x=start[0],
            y=start[1],
            mode=NodeMode.SMOOTH,
            out_handle=sub(p1, start),
        ),
        FigureNode(
            id=end_id,
            x=end[0],
            y=end[1],
            mode=NodeMode.SMOOTH,
            in_handle=sub(p2, end),
        ),
    )
    edges = (FigureEdge(id=f"{figure.id}-e0", from_id=start_id, to_id=end_id, kind=EdgeKind.CUBIC),)
    return nodes, edges


def _styled_figure(
    figure: Figure,
    semantic_id: str,
    technical_id: TechnicalCurveId,
    params: StyledCurveParams,
) -> Figure:
    nodes, edges = _styled_geometry(figure, TECHNICAL_CURVE_TEMPLATES[technical_id], params)
    return replace(
        with_geometry(figure, nodes=nodes, edges=edges, closed=False),
        curve_type=CurveType.STYLED,
        styled_data=StyledCurveData(semantic_id=semantic_id, technical_id=technical_id, params=params),
        derived_from=CurveOrigin(semantic_id=semantic_id, technical_id=technical_id),
    )


@fail_closed("apply_styled_curve")
def apply_styled_curve(
    figure: Figure,
    semantic_id: str,
    params: StyledCurveParams | None = None,
) -> Figure:
    """Replace an open curve's geometry with the cubic of a semantic preset."""

    _require_curve(figure)
    preset = preset_by_id(semantic_id)
    if preset is None:
        raise UnsupportedGeometryError(f"Unknown curve preset {semantic_id!r}.")
    return _styled_figure(
        figure,
        preset.id,
        preset.technical_id,
        preset.default_params if params is None else params,
    )


def _require_styled(figure: Figure) -> StyledCurveData:
    _require_curve(figure)
    if figure.styled_data is None:
        raise UnsupportedGeometryError(f"Curve {figure.id!r} is not styled.")
    return figure.styled_data


@fail_closed("reapply_styled_curve")
def reapply_styled_curve(figure: Figure, **overrides) -> Figure:
    """Rebuild a styled curve with some of its params replaced."""

    data = _require_styled(figure)
    params = replace(data.params, **overrides)
    return _styled_figure(figure, data.semantic_id, data.technical_id, params)


@fail_closed("switch_technical_curve")
def switch_technical_curve(figure: Figure, technical_id: TechnicalCurveId | str) -> Figure:
    data = _require_styled(figure)
    try:
        curve_id = TechnicalCurveId(technical_id)
    except ValueError as exc:
        raise UnsupportedGeometryError(f"Unknown technical curve {technical_id!r}.") from exc
    return _styled_figure(figure, data.semantic_id, curve_id, data.params)


def _snapshot(figure: Figure) -> CustomSnapshot:
    return CustomSnapshot(nodes=figure.nodes, edges=figure.edges, closed=figure.closed)


def capture_custom(figure: Figure) -> Figure:
    """Freeze the current geometry as the custom baseline and clear the dirty flag."""

    if figure.tool is not DrawingTool.CURVE:
        return figure
    origin = figure.derived_from
    if figure.styled_data is not None:
        origin = CurveOrigin(
            semantic_id=figure.styled_data.semantic_id,
            technical_id=figure.styled_data.technical_id,
        )
    return replace(
        figure,
        curve_type=CurveType.CUSTOM,
        styled_data=None,
        derived_from=origin,
        custom_snapshot=_snapshot(figure),
        custom_snapshot_dirty=False,
    )


def break_styled_link(figure: Figure) -> Figure:
    """Turn a styled curve into a custom one; other figures pass through."""

    if figure.styled_data is None and figure.curve_type is not CurveType.STYLED:
        return figure
    return capture_custom(figure)


def refresh_custom_dirty(figure: Figure) -> Figure:
    """Raise the dirty flag once live geometry diverges from the snapshot."""

    snapshot = figure.custom_snapshot
    if snapshot is None or figure.custom_snapshot_dirty:
        return figure
    changed = geometry_signature(snapshot.nodes, snapshot.edges, snapshot.closed) != geometry_signature(
        figure.nodes, figure.edges, figure.closed
    )
    if not changed:
        return figure
    return replace(figure, custom_snapshot_dirty=True)


def revert_to_custom(figure: Figure) -> Figure:
    snapshot = figure.custom_snapshot
    if snapshot is None:
        return figure
    restored = with_geometry(figure, nodes=snapshot.nodes, edges=snapshot.edges, closed=snapshot.closed)
    return replace(restored, custom_snapshot_dirty=False)


__all__ = [
    "CATEGORY_ORDER",
    "CurveCategory",
    "CurveTemplate",
    "SEMANTIC_CURVE_PRESETS",
    "SemanticPreset",
    "TECHNICAL_CURVE_TEMPLATES",
    "apply_styled_curve",
    "break_styled_link",
    "capture_custom",
    "curve_endpoints",
    "preset_by_id",
    "presets_by_category",
    "project_normalized",
    "reapply_styled_curve",
    "refresh_custom_dirty",
    "revert_to_custom",
    "switch_technical_curve",
    "transform_template_point",
]
