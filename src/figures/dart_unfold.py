"""Close a dart on a figure outline by pivoting one side about the apex.

The dart opening is the outline edge joining the two legs.  The side of the
outline running from ``leg_b`` away from ``leg_a`` up to the apex is rotated
about the apex until ``leg_b`` lies on the ray through ``leg_a``; the legs
then merge into one node and the opening edge disappears.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace

from .errors import InvalidDartSpecError, fail_closed
from .figure_model import EdgeKind, Figure, FigureNode, ordered_cycle, with_geometry
from .figure_validation import require_valid
from .geometry import EPSILON, Point, add, cross, dot, length, rotate, sub

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DartSpec:
    apex_id: str
    leg_a_id: str
    leg_b_id: str


def _rotate_about(point: Point, pivot: Point, degrees: float) -> Point:
    return add(pivot, rotate(sub(point, pivot), degrees))


def _rotate_node(node: FigureNode, pivot: Point, degrees: float) -> FigureNode:
    x, y = _rotate_about(node.point, pivot, degrees)
    return replace(
        node,
        x=x,
        y=y,
        in_handle=None if node.in_handle is None else rotate(node.in_handle, degrees),
        out_handle=None if node.out_handle is None else rotate(node.out_handle, degrees),
    )


def _handle_sides(figure: Figure, node_id: str, skip_id: str) -> set[str]:
    """Handle sides of ``node_id`` read by its cubic edges other than ``skip_id``."""

    sides: set[str] = set()
    for edge in figure.edges:
        if edge.id == skip_id or edge.kind is not EdgeKind.CUBIC:
            continue
        if edge.from_id == node_id:
            sides.add("out")
        if edge.to_id == node_id:
            sides.add("in")
    return sides


def _check_spec(figure: Figure, spec: DartSpec) -> None:
    if not figure.closed:
        raise InvalidDartSpecError(f"Figure {figure.id!r} is open; darts need a closed outline.")
    ids = (spec.apex_id, spec.leg_a_id, spec.leg_b_id)
    if len(set(ids)) != 3:
        raise InvalidDartSpecError("Dart apex and legs must be three distinct nodes.")
    missing = [node_id for node_id in ids if node_id not in figure.node_map]
    if missing:
        raise InvalidDartSpecError(f"Dart nodes {missing} are not on figure {figure.id!r}.")
    if len(figure.nodes) - 1 < 3:
        raise InvalidDartSpecError("Unfolding would leave fewer than three nodes.")


def _unfold(figure: Figure, spec: DartSpec) -> Figure:
    _check_spec(figure, spec)
    require_valid(figure)
    walk = ordered_cycle(figure)
    order = list(walk.node_ids)
    count = len(order)
    index_a = order.index(spec.leg_a_id)
    index_b = order.index(spec.leg_b_id)

    if index_b == (index_a + 1) % count:
        step = 1
        opening = walk.steps[index_a][0]
    elif index_a == (index_b + 1) % count:
        step = -1
        opening = walk.steps[index_b][0]
    else:
        raise InvalidDartSpecError(
            f"Dart legs {spec.leg_a_id!r} and {spec.leg_b_id!r} are not joined by an outline edge."
        )

    apex = figure.node(spec.apex_id).point
    leg_a = figure.node(spec.leg_a_id)
    leg_b = figure.node(spec.leg_b_id)
    to_b = sub(leg_b.point, apex)
    to_a = sub(leg_a.point, apex)
    if length(to_a) <= EPSILON or length(to_b) <= EPSILON:
        raise InvalidDartSpecError("Dart legs coincide with the apex.")
    angle = math.degrees(math.atan2(cross(to_b, to_a), dot(to_b, to_a)))

    side: set[str] = set()
    index = index_b
    while order[index] != spec.apex_id:
        side.add(order[index])
        index = (index + step) % count
    logger.debug("Unfolding dart at %s: rotating %d node(s) by %.4f deg", spec.apex_id, len(side), angle)

    rotated = {node.id: _rotate_node(node, apex, angle) for node in figure.nodes if node.id in side}
    moved_b = rotated[leg_b.id]

    # The merged node serves both surviving edges, so they must read opposite sides.
    sides_b = _handle_sides(figure, leg_b.id, opening.id)
    clash = _handle_sides(figure, leg_a.id, opening.id) & sides_b
    if clash:
        raise InvalidDartSpecError(
            f"Dart legs {leg_a.id!r} and {leg_b.id!r} both use their {sorted(clash)[0]} handle; "
            "the merged node cannot keep both."
        )
    merged = leg_a
    if "out" in sides_b:
        merged = replace(merged, out_handle=moved_b.out_handle)
    if "in" in sides_b:
        merged = replace(merged, in_handle=moved_b.in_handle)

    nodes = []
    for node in figure.nodes:
        if node.id == leg_b.id:
            continue
        if node.id == leg_a.id:
            nodes.append(merged)
        else:
            nodes.append(rotated.get(node.id, node))

    edges = []
    for edge in figure.edges:
        if edge.id == opening.id:
            continue
        if edge.from_id == leg_b.id:
            edge = replace(edge, from_id=leg_a.id)
        if edge.to_id == leg_b.id:
            edge = replace(edge, to_id=leg_a.id)
        edges.append(edge)

    return with_geometry(figure, nodes=nodes, edges=edges, closed=True)


@fail_closed("unfold_dart")
def unfold_dart(figure: Figure, spec: DartSpec) -> Figure:
    """Merge the dart legs of ``spec`` into one node; ``n`` nodes become ``n - 1``."""

    return _unfold(figure, spec)


__all__ = ["DartSpec", "unfold_dart"]
