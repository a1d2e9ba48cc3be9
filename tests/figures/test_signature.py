from __future__ import annotations

from dataclasses import replace

import pytest

from figures.figure_model import FigureStyle
from figures.signature import DerivationCache, geometry_signature, source_signature


def test_signature_ignores_transform_and_style(rectangle) -> None:
    moved = replace(rectangle, x=50.0, rotation=30.0, style=FigureStyle(stroke="#ff0000"))
    assert source_signature(moved) == source_signature(rectangle)


def test_signature_tracks_geometry(rectangle) -> None:
    nodes = list(rectangle.nodes)
    nodes[2] = replace(nodes[2], x=nodes[2].x + 0.5)
    assert source_signature(replace(rectangle, nodes=tuple(nodes))) != source_signature(rectangle)
    assert source_signature(replace(rectangle, closed=False)) != source_signature(rectangle)
    assert geometry_signature(rectangle.nodes, rectangle.edges, True) == source_signature(rectangle)


def test_cache_memoizes_by_signature(rectangle) -> None:
    cache = DerivationCache()
    calls: list[str] = []

    def compute(figure):
        calls.append(figure.id)
        return len(figure.nodes)

    assert cache.memoize(rectangle, "count", compute) == 4
    assert cache.memoize(rectangle, "count", compute) == 4
    assert calls == ["rect"]
    assert cache.hits == 1
    assert cache.misses == 1

    changed = replace(rectangle, nodes=rectangle.nodes[:3] + (replace(rectangle.nodes[3], y=7.0),))
    cache.memoize(changed, "count", compute)
    assert calls == ["rect", "rect"]
    assert len(cache) == 2


def test_cache_evicts_least_recent_and_invalidates(rectangle, circle) -> None:
    cache = DerivationCache(max_entries=2)
    first = cache.key_for(rectangle, "a")
    second = cache.key_for(rectangle, "b")
    third = cache.key_for(circle, "a")
    cache.put(first, 1)
    cache.put(second, 2)
    assert cache.get(first) == 1
    cache.put(third, 3)
    assert first in cache
    assert second not in cache

    assert cache.invalidate("rect") == 1
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0 and cache.hits == 0


def test_cache_requires_positive_capacity() -> None:
    with pytest.raises(ValueError):
        DerivationCache(max_entries=0)
