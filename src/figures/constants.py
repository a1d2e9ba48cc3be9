"""Unit conversions and engine tolerances shared by the figure engines."""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any, Mapping

# 96 DPI CSS reference: 96 px per inch / 2.54 cm per inch.
PX_PER_CM = 37.7952755906
PX_PER_MM = PX_PER_CM / 10.0
PX_PER_IN = 96.0

GRID_SIZE_CM = 1.0
GRID_SIZE_PX = GRID_SIZE_CM * PX_PER_CM


def px_to_cm(px: float) -> float:
    if not math.isfinite(px):
        return 0.0
    return px / PX_PER_CM


def cm_to_px(cm: float) -> float:
    if not math.isfinite(cm):
        return 0.0
    return cm * PX_PER_CM


def format_cm(cm: float, decimals: int = 2) -> str:
    safe_decimals = max(0, min(6, int(decimals)))
    safe = cm if math.isfinite(cm) else 0.0
    return f"{safe:.{safe_decimals}f} cm"


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """Tolerances and limits used by the geometry engines."""

    px_per_cm: float = PX_PER_CM
    # Relative: (control polygon - chord) / chord.
    arc_flatness: float = 1e-6
    # Absolute, in px: max distance between a flattened cubic and its chord.
    flatten_tolerance_px: float = 0.5
    max_subdivision_depth: int = 16
    miter_limit: float = 4.0
    cleanup_window: int = 4
    min_segment_px: float = 1e-6
    circle_tolerance: float = 0.02
    rectangle_angle_tolerance_deg: float = 1.0
    snap_tolerance_px: float = 10.0

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "EngineSettings":
        known = {item.name: item for item in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in payload.items():
            if key not in known:
                raise KeyError(f"Unknown engine setting {key!r}.")
            values[key] = int(value) if known[key].type in {"int", int} else float(value)
        return cls(**values)

    def offset_px(self, offset_cm: float) -> float:
        return offset_cm * self.px_per_cm


DEFAULT_SETTINGS = EngineSettings()


__all__ = [
    "DEFAULT_SETTINGS",
    "EngineSettings",
    "GRID_SIZE_CM",
    "GRID_SIZE_PX",
    "PX_PER_CM",
    "PX_PER_IN",
    "PX_PER_MM",
    "cm_to_px",
    "format_cm",
    "px_to_cm",
]
