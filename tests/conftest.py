"""Pytest fixtures for svg_to_stl tests."""

import pytest
import sys
from pathlib import Path

# Allow running the tests without installing the module
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def unit_square():
    """Counter-clockwise unit square."""
    return [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]


@pytest.fixture
def l_shape():
    """Counter-clockwise concave L outline of area 3."""
    return [(0.0, 0.0), (2.0, 0.0), (2.0, 1.0), (1.0, 1.0), (1.0, 2.0), (0.0, 2.0)]


@pytest.fixture
def write_svg_file(tmp_path):
    """Write an SVG document with the given body and return its path."""
    def _write(body: str, name: str = "drawing.svg") -> Path:
        path = tmp_path / name
        path.write_text(
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100" viewBox="0 0 100 100">\n'
            f"{body}\n"
            "</svg>\n",
            encoding="utf-8",
        )
        return path
    return _write


@pytest.fixture
def square_svg(write_svg_file) -> Path:
    """A single filled 10x10 square."""
    return write_svg_file('<path id="sq" d="M 0 0 L 10 0 L 10 10 L 0 10 Z" fill="black"/>')
