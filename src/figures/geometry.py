"""Vector, Bézier and polyline primitives used by every figure engine.

Points are plain ``(x, y)`` float tuples.  All helpers are deterministic and
side-effect free; callers are expected to pass finite coordinates.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

Point = tuple[float, float]
Cubic = tuple[Point, Point, Point, Point]

EPSILON = 1e-9

__all__ = [
    "Cubic",
    "EPSILON",
    "Point",
    "add",
    "as_array",
    "clamp",
    "cross",
    "cubic_arc_length",
    "cubic_derivative",
    "cubic_point",
    "cubic_second_derivative",
    "distance",
    "dot",
    "flatten_cubic",
    "length",
    "lerp",
    "line_intersection",
    "nearest_point_on_segment",
    "normalize",
    "perp",
    "point_in_polygon",
    "polyline_length",
    "rotate",
    "scale",
    "segment_intersection",
    "signed_area",
    "split_cubic",
    "sub",
]


def add(a: Point, b: Point) -> Point:
    return (a[0] + b[0], a[1] + b[1])


def sub(a: Point, b: Point) -> Point:
    return (a[0] - b[0], a[1] - b[1])


def scale(a: Point, k: float) -> Point:
    return (a[0] * k, a[1] * k)


def dot(a: Point, b: Point) -> float:
    return a[0] * b[0] + a[1] * b[1]


def cross(a: Point, b: Point) -> float:
    return a[0] * b[1] - a[1] * b[0]


def length(a: Point) -> float:
    return math.hypot(a[0], a[1])


def distance(a: Point, b: Point) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def normalize(a: Point) -> Point:
    norm = math.hypot(a[0], a[1])
    if norm <= EPSILON:
        return (0.0, 0.0)
    return (a[0] / norm, a[1] / norm)


def perp(a: Point) -> Point:
    """Left-hand perpendicular ``(-y, x)``."""

    return (-a[1], a[0])


def lerp(a: Point, b: Point, t: float) -> Point:
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def rotate(point: Point, degrees: float) -> Point:
    if not degrees:
        return point
    radians = math.radians(degrees)
    c = math.cos(radians)
    s = math.sin(radians)
    return (point[0] * c - point[1] * s, point[0] * s + point[1] * c)


# ----------------------------------------------------------------------
# Cubic Bézier evaluation
# ----------------------------------------------------------------------
def cubic_point(p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
    mt = 1.0 - t
    a = mt * mt * mt
    b = 3.0 * mt * mt * t
    c = 3.0 * mt * t * t
    d = t * t * t
    return (
        a * p0[0] + b * p1[0] + c * p2[0] + d * p3[0],
        a * p0[1] + b * p1[1] + c * p2[1] + d * p3[1],
    )


def cubic_derivative(p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
    mt = 1.0 - t
    a = 3.0 * mt * mt
    b = 6.0 * mt * t
    c = 3.0 * t * t
    return (
        a * (p1[0] - p0[0]) + b * (p2[0] - p1[0]) + c * (p3[0] - p2[0]),
        a * (p1[1] - p0[1]) + b * (p2[1] - p1[1]) + c * (p3[1] - p2[1]),
    )


def cubic_second_derivative(p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
    mt = 1.0 - t
    return (
        6.0 * mt * (p2[0] - 2.0 * p1[0] + p0[0]) + 6.0 * t * (p3[0] - 2.0 * p2[0] + p1[0]),
        6.0 * mt * (p2[1] - 2.0 * p1[1] + p0[1]) + 6.0 * t * (p3[1] - 2.0 * p2[1] + p1[1]),
    )


def split_cubic(
    p0: Point, p1: Point, p2: Point, p3: Point, t: float = 0.5
) -> tuple[Cubic, Cubic]:
    """De Casteljau split of a cubic at ``t``."""

    p01 = lerp(p0, p1, t)
    p12 = lerp(p1, p2, t)
    p23 = lerp(p2, p3, t)
    p012 = lerp(p01, p12, t)
    p123 = lerp(p12, p23, t)
    mid = lerp(p012, p123, t)
    return (p0, p01, p012, mid), (mid, p123, p23, p3)


def cubic_arc_length(
    p0: Point,
    p1: Point,
    p2: Point,
    p3: Point,
    *,
    flatness: float = 1e-6,
    max_depth: int = 16,
) -> float:
    """Arc length of a cubic by adaptive subdivision.

    A piece is accepted once its control polygon exceeds its chord by less
    than ``flatness`` times the polygon length; its length is then estimated
    as the mean of chord and polygon (Gravesen).  The criterion is relative,
    so scaling the control points scales the result by the same factor.
    """

    total = 0.0
    stack: list[tuple[Cubic, int]] = [((p0, p1, p2, p3), 0)]
    while stack:
        (a, b, c, d), depth = stack.pop()
        chord = distance(a, d)
        polygon = distance(a, b) + distance(b, c) + distance(c, d)
        if depth >= max_depth or polygon - chord <= flatness * polygon:
            total += 0.5 * (chord + polygon)
            continue
        left, right = split_cubic(a, b, c, d)
        # Right first so the left half is summed first.
        stack.append((right, depth + 1))
        stack.append((left, depth + 1))
    return total


def _control_deviation(p0: Point, p1: Point, p2: Point, p3: Point) -> float:
    chord = sub(p3, p0)
    chord_length = length(chord)
    if chord_length <= EPSILON:
        return max(distance(p0, p1), distance(p0, p2))
    d1 = abs(cross(chord, sub(p1, p0))) / chord_length
    d2 = abs(cross(chord, sub(p2, p0))) / chord_length
    return max(d1, d2)


def flatten_cubic(
    p0: Point,
    p1: Point,
    p2: Point,
    p3: Point,
    *,
    tolerance: float = 0.5,
    max_depth: int = 16,
) -> list[Point]:
    """Flatten a cubic into a polyline, endpoints included."""

    points: list[Point] = [p0]
    stack: list[tuple[Cubic, int]] = [((p0, p1, p2, p3), 0)]
    while stack:
        (a, b, c, d), depth = stack.pop()
        if depth >= max_depth or _control_deviation(a, b, c, d) <= tolerance:
            points.append(d)
            continue
        left, right = split_cubic(a, b, c, d)
        stack.append((right, depth + 1))
        stack.append((left, depth + 1))
    return points


# ----------------------------------------------------------------------
# Polylines and polygons
# ----------------------------------------------------------------------
def as_array(points: Sequence[Point]) -> np.ndarray:
    if not points:
        return np.zeros((0, 2), dtype=float)
    return np.asarray(points, dtype=float).reshape(-1, 2)


def polyline_length(points: Sequence[Point]) -> float:
    if len(points) < 2:
        return 0.0
    total = 0.0
    for start, end in zip(points, points[1:]):
        total += distance(start, end)
    return total


def signed_area(points: Sequence[Point]) -> float:
    """Shoelace area; positive for counter-clockwise in a y-up frame."""

    if len(points) < 3:
        return 0.0
    area = 0.0
    for (x0, y0), (x1, y1) in zip(points, list(points[1:]) + [points[0]]):
        area += x0 * y1 - x1 * y0
    return area * 0.5


def point_in_polygon(point: Point, polygon: Sequence[Point]) -> bool:
    x, y = point
    inside = False
    count = len(polygon)
    j = count - 1
    for i in range(count):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def nearest_point_on_segment(point: Point, start: Point, end: Point) -> tuple[Point, float, float]:
    """Return ``(nearest, t, distance)`` for ``point`` against segment ``start-end``."""

    seg = sub(end, start)
    seg_len_sq = dot(seg, seg)
    if seg_len_sq <= EPSILON:
        return start, 0.0, distance(point, start)
    t = clamp(dot(sub(point, start), seg) / seg_len_sq, 0.0, 1.0)
    nearest = add(start, scale(seg, t))
    return nearest, t, distance(point, nearest)


def line_intersection(
    point_a: Point,
    direction_a: Point,
    point_b: Point,
    direction_b: Point,
) -> Point | None:
    """Intersection of two infinite lines given as point + direction."""

    det = cross(direction_a, direction_b)
    if math.isclose(det, 0.0, abs_tol=1e-12):
        return None
    diff = sub(point_b, point_a)
    t = cross(diff, direction_b) / det
    return (point_a[0] + direction_a[0] * t, point_a[1] + direction_a[1] * t)


def segment_intersection(
    a1: Point, a2: Point, b1: Point, b2: Point
) -> tuple[Point, float, float] | None:
    """Proper intersection of two segments as ``(point, t_a, t_b)``."""

    da = sub(a2, a1)
    db = sub(b2, b1)
    det = cross(da, db)
    if abs(det) <= 1e-12:
        return None
    diff = sub(b1, a1)
    t_a = cross(diff, db) / det
    t_b = cross(diff, da) / det
    if t_a < 0.0 or t_a > 1.0 or t_b < 0.0 or t_b > 1.0:
        return None
    return lerp(a1, a2, t_a), t_a, t_b
