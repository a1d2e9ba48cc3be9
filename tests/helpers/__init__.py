"""Test helper utilities exposed for import convenience."""
from .figures import (
    KAPPA,
    circle_figure,
    dart_figure,
    open_path_figure,
    polygon_figure,
    rectangle_figure,
)

__all__ = [
    "KAPPA",
    "circle_figure",
    "dart_figure",
    "open_path_figure",
    "polygon_figure",
    "rectangle_figure",
]
