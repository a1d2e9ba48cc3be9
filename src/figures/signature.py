"""Content signatures and the explicit derivation cache keyed by them."""

from __future__ import annotations

import hashlib
import json
from collections import OrderedDict
from typing import Any, Callable, Hashable, Sequence, TypeVar

from .figure_model import Figure, FigureEdge, FigureNode

T = TypeVar("T")

CacheKey = tuple[str, str, str]


def _handle_payload(handle: tuple[float, float] | None) -> list[float] | None:
    if handle is None:
        return None
    return [float(handle[0]), float(handle[1])]


def geometry_payload(
    nodes: Sequence[FigureNode], edges: Sequence[FigureEdge], closed: bool
) -> dict[str, Any]:
    return {
        "closed": bool(closed),
        "nodes": [
            {
                "id": node.id,
                "x": float(node.x),
                "y": float(node.y),
                "mode": node.mode.value,
                "in": _handle_payload(node.in_handle),
                "out": _handle_payload(node.out_handle),
            }
            for node in nodes
        ],
        "edges": [
            {"id": edge.id, "from": edge.from_id, "to": edge.to_id, "kind": edge.kind.value}
            for edge in edges
        ],
    }


def geometry_signature(
    nodes: Sequence[FigureNode], edges: Sequence[FigureEdge], closed: bool
) -> str:
    encoded = json.dumps(
        geometry_payload(nodes, edges, closed),
        sort_keys=True,
        separators=(",", ":"),
        allow_nan=True,
    )
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def source_signature(figure: Figure) -> str:
    """Hash of ``figure``'s nodes, edges and closed flag.

    Transform, style and cached measures do not participate, so moving a
    figure does not make its seam stale.
    """

    return geometry_signature(figure.nodes, figure.edges, figure.closed)


class DerivationCache:
    """LRU memo of derived results keyed by ``(figure_id, operation, signature)``.

    The cache never invalidates on its own: a new signature simply misses,
    and :meth:`invalidate` drops every entry for a figure.
    """

    def __init__(self, max_entries: int = 256) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive.")
        self.max_entries = int(max_entries)
        self._entries: OrderedDict[CacheKey, Any] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    @staticmethod
    def key_for(figure: Figure, operation: str) -> CacheKey:
        return (figure.id, operation, source_signature(figure))

    def get(self, key: CacheKey) -> Any | None:
        if key not in self._entries:
            self.misses += 1
            return None
        self.hits += 1
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def invalidate(self, figure_id: str) -> int:
        stale = [key for key in self._entries if key[0] == figure_id]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def memoize(self, figure: Figure, operation: str, compute: Callable[[Figure], T]) -> T:
        key = self.key_for(figure, operation)
        if key in self._entries:
            return self.get(key)
        self.misses += 1
        value = compute(figure)
        self.put(key, value)
        return value


__all__ = [
    "CacheKey",
    "DerivationCache",
    "geometry_payload",
    "geometry_signature",
    "source_signature",
]
