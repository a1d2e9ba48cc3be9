from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

for path in (ROOT, SRC):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from tests.helpers import circle_figure, rectangle_figure  # noqa: E402


@pytest.fixture()
def rectangle():
    return rectangle_figure()


@pytest.fixture()
def circle():
    return circle_figure(radius=50.0)
