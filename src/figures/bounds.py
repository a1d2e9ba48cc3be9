"""Axis-aligned bounding boxes of figures, used for transform handles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np

from .figure_model import EdgeKind, Figure, figure_local_to_world
from .geometry import Point, as_array


@dataclass(frozen=True, slots=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return (self.x + self.width * 0.5, self.y + self.height * 0.5)

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height


def _control_points(figure: Figure) -> list[Point]:
    nodes = figure.node_map
    points = [node.point for node in figure.nodes]
    for edge in figure.edges:
        if edge.kind is not EdgeKind.CUBIC:
            continue
        start = nodes.get(edge.from_id)
        end = nodes.get(edge.to_id)
        # The control polygon contains the curve, so handles bound it.
        if start is not None and start.out_handle is not None:
            points.append(start.out_control())
        if end is not None and end.in_handle is not None:
            points.append(end.in_control())
    return points


def bounds(figure: Figure, *, world: bool = False) -> BoundingBox:
    """Bounding box of nodes plus the handles used by cubic edges.

    Local coordinates by default; ``world=True`` applies the figure transform.
    An empty figure yields a zero box at the transform origin.
    """

    points = _control_points(figure)
    if not points:
        anchor = figure.origin if world else (0.0, 0.0)
        return BoundingBox(x=anchor[0], y=anchor[1], width=0.0, height=0.0)
    if world:
        points = [figure_local_to_world(figure, point) for point in points]
    coords = as_array(points)
    lower = coords.min(axis=0)
    upper = coords.max(axis=0)
    return BoundingBox(
        x=float(lower[0]),
        y=float(lower[1]),
        width=float(upper[0] - lower[0]),
        height=float(upper[1] - lower[1]),
    )


def union_bounds(boxes: Iterable[BoundingBox]) -> BoundingBox | None:
    items = list(boxes)
    if not items:
        return None
    corners = np.array([[box.x, box.y, box.max_x, box.max_y] for box in items], dtype=float)
    min_x = float(corners[:, 0].min())
    min_y = float(corners[:, 1].min())
    max_x = float(corners[:, 2].max())
    max_y = float(corners[:, 3].max())
    return BoundingBox(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)


__all__ = ["BoundingBox", "bounds", "union_bounds"]
