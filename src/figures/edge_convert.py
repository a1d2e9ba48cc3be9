"""Switch a single edge between line and cubic without disturbing its neighbours."""

from __future__ import annotations

from dataclasses import replace

from .figure_model import EdgeKind, Figure, FigureNode, NodeMode, with_geometry
from .geometry import EPSILON, clamp, length, normalize, scale, sub

MIN_HANDLE_PX = 8.0


def _other_cubic(figure: Figure, node_id: str, edge_id: str, *, outgoing: bool) -> bool:
    for edge in figure.edges:
        if edge.id == edge_id or edge.kind is not EdgeKind.CUBIC:
            continue
        if (edge.from_id if outgoing else edge.to_id) == node_id:
            return True
    return False


def _any_other_cubic(figure: Figure, node_id: str, edge_id: str) -> bool:
    return _other_cubic(figure, node_id, edge_id, outgoing=True) or _other_cubic(
        figure, node_id, edge_id, outgoing=False
    )


def _update(nodes: list[FigureNode], node_id: str, **changes) -> list[FigureNode]:
    return [replace(node, **changes) if node.id == node_id else node for node in nodes]


def convert_edge_to_cubic(figure: Figure, edge_id: str) -> Figure:
    """Turn ``edge_id`` into a cubic with handles laid along its chord.

    Only the handle sides no other cubic edge already uses are written, so
    converting one edge never bends an adjacent curve.
    """

    edge = figure.edge_map.get(edge_id)
    if edge is None or edge.kind is EdgeKind.CUBIC:
        return figure
    start = figure.node_map.get(edge.from_id)
    end = figure.node_map.get(edge.to_id)
    if start is None or end is None:
        return figure

    chord = sub(end.point, start.point)
    chord_length = length(chord)
    direction = normalize(chord) if chord_length > EPSILON else (1.0, 0.0)
    handle_length = clamp(chord_length * 0.25, MIN_HANDLE_PX, chord_length * 0.45)

    nodes = list(figure.nodes)
    if not _other_cubic(figure, start.id, edge_id, outgoing=True):
        nodes = _update(
            nodes,
            start.id,
            mode=NodeMode.SMOOTH,
            out_handle=scale(direction, handle_length),
        )
    if not _other_cubic(figure, end.id, edge_id, outgoing=False):
        nodes = _update(
            nodes,
            end.id,
            mode=NodeMode.SMOOTH,
            in_handle=scale(direction, -handle_length),
        )
    edges = [replace(item, kind=EdgeKind.CUBIC) if item.id == edge_id else item for item in figure.edges]
    return with_geometry(figure, nodes=nodes, edges=edges)


def convert_edge_to_line(figure: Figure, edge_id: str) -> Figure:
    """Turn ``edge_id`` into a straight line, clearing only handles it alone used."""

    edge = figure.edge_map.get(edge_id)
    if edge is None or edge.kind is EdgeKind.LINE:
        return figure
    if edge.from_id not in figure.node_map or edge.to_id not in figure.node_map:
        return figure

    nodes = list(figure.nodes)
    for node_id, side, outgoing in (
        (edge.from_id, "out_handle", True),
        (edge.to_id, "in_handle", False),
    ):
        if _other_cubic(figure, node_id, edge_id, outgoing=outgoing):
            continue
        node = replace(next(item for item in nodes if item.id == node_id), **{side: None})
        if (
            not _any_other_cubic(figure, node_id, edge_id)
            and node.in_handle is None
            and node.out_handle is None
        ):
            node = replace(node, mode=NodeMode.CORNER)
        nodes = [node if item.id == node_id else item for item in nodes]

    edges = [replace(item, kind=EdgeKind.LINE) if item.id == edge_id else item for item in figure.edges]
    return with_geometry(figure, nodes=nodes, edges=edges)


__all__ = ["MIN_HANDLE_PX", "convert_edge_to_cubic", "convert_edge_to_line"]
