from __future__ import annotations

import pytest

import figures
from figures import seam_offset


def test_lazy_exports_resolve_to_module_attributes() -> None:
    assert figures.offset_figure is seam_offset.offset_figure
    for name in figures.__all__:
        assert getattr(figures, name) is not None


def test_unknown_attribute_raises() -> None:
    with pytest.raises(AttributeError):
        figures.does_not_exist
