"""Vector pattern-geometry engine for drafted garment figures."""

from __future__ import annotations

from importlib import import_module

__all__ = [
    "BoundingBox",
    "DEFAULT_SETTINGS",
    "DartSpec",
    "DerivationCache",
    "DrawingTool",
    "EdgeKind",
    "EngineResult",
    "EngineSettings",
    "Figure",
    "FigureEdge",
    "FigureEngineError",
    "FigureMeasures",
    "FigureNode",
    "GuideLine",
    "InvalidDartSpecError",
    "MalformedFigureError",
    "MirrorAxis",
    "NodeMode",
    "SnapContext",
    "SnapResult",
    "UnsupportedGeometryError",
    "apply_styled_curve",
    "compute_measures",
    "convert_edge_to_cubic",
    "convert_edge_to_line",
    "figure_from_mapping",
    "figure_to_mapping",
    "mirror_figure",
    "offset_figure",
    "snap",
    "source_signature",
    "unfold_dart",
    "unfold_half",
    "validate_figure",
]

_ATTRIBUTE_MODULES: dict[str, str] = {
    "BoundingBox": ".bounds",
    "DEFAULT_SETTINGS": ".constants",
    "EngineSettings": ".constants",
    "DartSpec": ".dart_unfold",
    "unfold_dart": ".dart_unfold",
    "DerivationCache": ".signature",
    "source_signature": ".signature",
    "EngineResult": ".errors",
    "FigureEngineError": ".errors",
    "InvalidDartSpecError": ".errors",
    "MalformedFigureError": ".errors",
    "UnsupportedGeometryError": ".errors",
    "DrawingTool": ".figure_model",
    "EdgeKind": ".figure_model",
    "Figure": ".figure_model",
    "FigureEdge": ".figure_model",
    "FigureMeasures": ".figure_model",
    "FigureNode": ".figure_model",
    "NodeMode": ".figure_model",
    "GuideLine": ".snapping",
    "SnapContext": ".snapping",
    "SnapResult": ".snapping",
    "snap": ".snapping",
    "MirrorAxis": ".mirror",
    "mirror_figure": ".mirror",
    "unfold_half": ".mirror",
    "apply_styled_curve": ".styled_curves",
    "compute_measures": ".measurements",
    "convert_edge_to_cubic": ".edge_convert",
    "convert_edge_to_line": ".edge_convert",
    "figure_from_mapping": ".figure_payload",
    "figure_to_mapping": ".figure_payload",
    "offset_figure": ".seam_offset",
    "validate_figure": ".figure_validation",
}


def __getattr__(name: str):
    try:
        module_name = _ATTRIBUTE_MODULES[name]
    except KeyError as exc:
        raise AttributeError(f"module 'figures' has no attribute {name!r}") from exc

    module = import_module(module_name, __name__)
    value = getattr(module, name)
    globals()[name] = value
    return value
