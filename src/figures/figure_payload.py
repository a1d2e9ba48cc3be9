"""Plain-data payloads for figures as the host application persists them."""

from __future__ import annotations

from typing import Any, Mapping

from .figure_model import (
    CircleMeasures,
    CurveMeasures,
    CurveOrigin,
    CurveType,
    CustomSnapshot,
    DrawingTool,
    EdgeKind,
    EdgeMeasure,
    Figure,
    FigureEdge,
    FigureKind,
    FigureMeasures,
    FigureNode,
    FigureStyle,
    NodeMode,
    RectangleMeasures,
    StyledCurveData,
    StyledCurveParams,
    TechnicalCurveId,
)
from .geometry import Point


def _point_from(payload: Mapping[str, Any] | None) -> Point | None:
    if payload is None:
        return None
    return (float(payload["x"]), float(payload["y"]))


def _point_to(point: Point | None) -> dict[str, float] | None:
    if point is None:
        return None
    return {"x": float(point[0]), "y": float(point[1])}


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)


def _offset_fields(value: Any) -> dict[str, Any]:
    """``offsetCm`` holds one allowance or a mapping of edge id to allowance."""

    if isinstance(value, Mapping):
        return {
            "offset_cm": None,
            "edge_offsets_cm": tuple(sorted((str(key), float(item)) for key, item in value.items())),
        }
    return {"offset_cm": _optional_float(value), "edge_offsets_cm": None}


def node_from_mapping(payload: Mapping[str, Any]) -> FigureNode:
    return FigureNode(
        id=str(payload["id"]),
        x=float(payload["x"]),
        y=float(payload["y"]),
        mode=NodeMode(payload.get("mode", NodeMode.CORNER.value)),
        in_handle=_point_from(payload.get("inHandle")),
        out_handle=_point_from(payload.get("outHandle")),
    )


def node_to_mapping(node: FigureNode) -> dict[str, Any]:
    data: dict[str, Any] = {"id": node.id, "x": node.x, "y": node.y, "mode": node.mode.value}
    if node.in_handle is not None:
        data["inHandle"] = _point_to(node.in_handle)
    if node.out_handle is not None:
        data["outHandle"] = _point_to(node.out_handle)
    return data


def edge_from_mapping(payload: Mapping[str, Any]) -> FigureEdge:
    return FigureEdge(
        id=str(payload["id"]),
        from_id=str(payload["from"]),
        to_id=str(payload["to"]),
        kind=EdgeKind(payload.get("kind", EdgeKind.LINE.value)),
    )


def edge_to_mapping(edge: FigureEdge) -> dict[str, Any]:
    return {"id": edge.id, "from": edge.from_id, "to": edge.to_id, "kind": edge.kind.value}


def _style_from(payload: Mapping[str, Any]) -> FigureStyle:
    dash = payload.get("dash")
    return FigureStyle(
        stroke=str(payload.get("stroke", "#000000")),
        stroke_width=float(payload.get("strokeWidth", 1.0)),
        fill=payload.get("fill"),
        opacity=_optional_float(payload.get("opacity")),
        dash=None if dash is None else tuple(float(value) for value in dash),
    )


def _style_to(style: FigureStyle) -> dict[str, Any]:
    data: dict[str, Any] = {"stroke": style.stroke, "strokeWidth": style.stroke_width}
    if style.fill is not None:
        data["fill"] = style.fill
    if style.opacity is not None:
        data["opacity"] = style.opacity
    if style.dash is not None:
        data["dash"] = list(style.dash)
    return data


def _params_from(payload: Mapping[str, Any]) -> StyledCurveParams:
    return StyledCurveParams(
        height=float(payload.get("height", 1.0)),
        bias=float(payload.get("bias", 0.0)),
        flip_x=bool(payload.get("flipX", False)),
        flip_y=bool(payload.get("flipY", False)),
        rotation_deg=float(payload.get("rotationDeg", 0.0)),
    )


def _params_to(params: StyledCurveParams) -> dict[str, Any]:
    return {
        "height": params.height,
        "bias": params.bias,
        "flipX": params.flip_x,
        "flipY": params.flip_y,
        "rotationDeg": params.rotation_deg,
    }


def _measures_from(payload: Mapping[str, Any]) -> FigureMeasures:
    circle = payload.get("circle")
    rectangle = payload.get("rectangle")
    curve = payload.get("curve")
    return FigureMeasures(
        figure_length_px=float(payload.get("figureLengthPx", 0.0)),
        per_edge=tuple(
            EdgeMeasure(
                edge_id=str(item["edgeId"]),
                kind=EdgeKind(item["kind"]),
                length_px=float(item["lengthPx"]),
                angle_deg=_optional_float(item.get("angleDeg")),
            )
            for item in payload.get("perEdge", [])
        ),
        circle=None
        if circle is None
        else CircleMeasures(
            rx_px=float(circle["rxPx"]),
            ry_px=float(circle["ryPx"]),
            width_px=float(circle["widthPx"]),
            height_px=float(circle["heightPx"]),
            circumference_px=float(circle["circumferencePx"]),
            radius_px=_optional_float(circle.get("radiusPx")),
            diameter_px=_optional_float(circle.get("diameterPx")),
        ),
        rectangle=None
        if rectangle is None
        else RectangleMeasures(
            width_px=float(rectangle["widthPx"]),
            height_px=float(rectangle["heightPx"]),
        ),
        curve=None
        if curve is None
        else CurveMeasures(
            length_px=float(curve["lengthPx"]),
            tangent_angle_deg_at_mid=_optional_float(curve.get("tangentAngleDegAtMid")),
            curvature_radius_px_at_mid=_optional_float(curve.get("curvatureRadiusPxAtMid")),
        ),
        version=int(payload.get("version", 1)),
    )


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


def _measures_to(measures: FigureMeasures) -> dict[str, Any]:
    data: dict[str, Any] = {
        "version": measures.version,
        "figureLengthPx": measures.figure_length_px,
        "perEdge": [
            _drop_none(
                {
                    "edgeId": item.edge_id,
                    "kind": item.kind.value,
                    "lengthPx": item.length_px,
                    "angleDeg": item.angle_deg,
                }
            )
            for item in measures.per_edge
        ],
    }
    if measures.circle is not None:
        circle = measures.circle
        data["circle"] = _drop_none(
            {
                "rxPx": circle.rx_px,
                "ryPx": circle.ry_px,
                "widthPx": circle.width_px,
                "heightPx": circle.height_px,
                "circumferencePx": circle.circumference_px,
                "radiusPx": circle.radius_px,
                "diameterPx": circle.diameter_px,
            }
        )
    if measures.rectangle is not None:
        data["rectangle"] = {
            "widthPx": measures.rectangle.width_px,
            "heightPx": measures.rectangle.height_px,
        }
    if measures.curve is not None:
        curve = measures.curve
        data["curve"] = _drop_none(
            {
                "lengthPx": curve.length_px,
                "tangentAngleDegAtMid": curve.tangent_angle_deg_at_mid,
                "curvatureRadiusPxAtMid": curve.curvature_radius_px_at_mid,
            }
        )
    return data


def figure_from_mapping(payload: Mapping[str, Any]) -> Figure:
    """Build a :class:`Figure` from a host payload; absent optional keys take defaults."""

    styled = payload.get("styledData")
    origin = payload.get("derivedFrom")
    snapshot = payload.get("customSnapshot")
    measures = payload.get("measures")
    kind = payload.get("kind")
    curve_type = payload.get("curveType")
    segment_ids = payload.get("seamSegmentEdgeIds")
    return Figure(
        id=str(payload["id"]),
        tool=DrawingTool(payload["tool"]),
        nodes=tuple(node_from_mapping(item) for item in payload.get("nodes", [])),
        edges=tuple(edge_from_mapping(item) for item in payload.get("edges", [])),
        closed=bool(payload.get("closed", False)),
        x=float(payload.get("x", 0.0)),
        y=float(payload.get("y", 0.0)),
        rotation=float(payload.get("rotation", 0.0)),
        style=_style_from(payload),
        kind=None if kind is None else FigureKind(kind),
        parent_id=payload.get("parentId"),
        **_offset_fields(payload.get("offsetCm")),
        seam_segment_edge_ids=None
        if segment_ids is None
        else tuple(str(item) for item in segment_ids),
        source_signature=payload.get("sourceSignature"),
        curve_type=None if curve_type is None else CurveType(curve_type),
        styled_data=None
        if styled is None
        else StyledCurveData(
            semantic_id=str(styled["semanticId"]),
            technical_id=TechnicalCurveId(styled["technicalId"]),
            params=_params_from(styled.get("params", {})),
        ),
        derived_from=None
        if origin is None
        else CurveOrigin(
            semantic_id=str(origin["semanticId"]),
            technical_id=TechnicalCurveId(origin["technicalId"]),
        ),
        custom_snapshot=None
        if snapshot is None
        else CustomSnapshot(
            nodes=tuple(node_from_mapping(item) for item in snapshot.get("nodes", [])),
            edges=tuple(edge_from_mapping(item) for item in snapshot.get("edges", [])),
            closed=bool(snapshot.get("closed", False)),
        ),
        custom_snapshot_dirty=bool(payload.get("customSnapshotDirty", False)),
        measures=None if measures is None else _measures_from(measures),
    )


def figure_to_mapping(figure: Figure) -> dict[str, Any]:
    """Serialise ``figure``; optional fields that are unset are omitted."""

    data: dict[str, Any] = {
        "id": figure.id,
        "tool": figure.tool.value,
        "x": figure.x,
        "y": figure.y,
        "rotation": figure.rotation,
        "closed": figure.closed,
        "nodes": [node_to_mapping(node) for node in figure.nodes],
        "edges": [edge_to_mapping(edge) for edge in figure.edges],
    }
    data.update(_style_to(figure.style))
    if figure.kind is not None:
        data["kind"] = figure.kind.value
    if figure.parent_id is not None:
        data["parentId"] = figure.parent_id
    if figure.offset_cm is not None:
        data["offsetCm"] = figure.offset_cm
    if figure.edge_offsets_cm is not None:
        data["offsetCm"] = dict(figure.edge_offsets_cm)
    if figure.seam_segment_edge_ids is not None:
        data["seamSegmentEdgeIds"] = list(figure.seam_segment_edge_ids)
    if figure.source_signature is not None:
        data["sourceSignature"] = figure.source_signature
    if figure.curve_type is not None:
        data["curveType"] = figure.curve_type.value
    if figure.styled_data is not None:
        data["styledData"] = {
            "semanticId": figure.styled_data.semantic_id,
            "technicalId": figure.styled_data.technical_id.value,
            "params": _params_to(figure.styled_data.params),
        }
    if figure.derived_from is not None:
        data["derivedFrom"] = {
            "semanticId": figure.derived_from.semantic_id,
            "technicalId": figure.derived_from.technical_id.value,
        }
    if figure.custom_snapshot is not None:
        data["customSnapshot"] = {
            "nodes": [node_to_mapping(node) for node in figure.custom_snapshot.nodes],
            "edges": [edge_to_mapping(edge) for edge in figure.custom_snapshot.edges],
            "closed": figure.custom_snapshot.closed,
        }
    if figure.custom_snapshot_dirty:
        data["customSnapshotDirty"] = True
    if figure.measures is not None:
        data["measures"] = _measures_to(figure.measures)
    return data


__all__ = [
    "edge_from_mapping",
    "edge_to_mapping",
    "figure_from_mapping",
    "figure_to_mapping",
    "node_from_mapping",
    "node_to_mapping",
]
