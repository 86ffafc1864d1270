import pytest

from playout_lib.graphics import (
    GraphicsExtractor,
    Matrix,
    check_graphics_in_area,
    detect_table_regions,
    is_table_line,
)
from playout_lib.models import GraphicsLine, Viewport


@pytest.fixture
def viewport():
    return Viewport.for_page(0, 0, 600, 800)


def test_matrix_compose_applies_right_operand_first():
    translate = Matrix(1, 0, 0, 1, 10, 20)
    scale = Matrix(2, 0, 0, 2, 0, 0)

    assert scale.compose(translate).transform(1, 1) == (22, 42)
    assert translate.compose(scale).transform(1, 1) == (12, 22)


def test_matrix_invert_round_trips_and_detects_singular():
    m = Matrix(2, 0, 0, 4, 10, -6)
    inverse = m.invert()

    x, y = inverse.transform(*m.transform(3, 5))
    assert x == pytest.approx(3)
    assert y == pytest.approx(5)
    assert Matrix(1, 2, 2, 4, 0, 0).invert() is None


def test_extractor_restores_ctm_after_save_restore(viewport):
    operators = [
        ("save", []),
        ("concat", [1, 0, 0, 1, 100, 0]),
        ("moveTo", [0, 700]),
        ("lineTo", [200, 700]),
        ("stroke", []),
        ("restore", []),
        ("moveTo", [0, 600]),
        ("lineTo", [200, 600]),
        ("stroke", []),
    ]
    result = GraphicsExtractor().extract(operators, viewport, page_num=1)

    lines = result["lines"]
    assert len(lines) == 2
    assert all(ln.orientation == "horizontal" for ln in lines)
    assert (lines[0].min_x, lines[0].max_x, lines[0].y1) == (100, 300, 100)
    assert (lines[1].min_x, lines[1].max_x, lines[1].y1) == (0, 200, 200)


def test_extractor_skips_malformed_operators(viewport):
    operators = [
        ("moveTo", ["bad", 1]),
        ("concat", [1, 0]),
        ("moveTo", [50, 700]),
        ("lineTo", [50, 500]),
        ("stroke", []),
        ("unknownOp", [1, 2, 3]),
    ]
    result = GraphicsExtractor().extract(operators, viewport)

    assert len(result["lines"]) == 1
    assert result["lines"][0].orientation == "vertical"


def test_extractor_with_no_operators_is_empty(viewport):
    assert GraphicsExtractor().extract(None, viewport) == {"lines": [], "rectangles": []}


def test_is_table_line_requires_thin_and_long_segments():
    assert is_table_line(0, 100, 200, 100) == "horizontal"
    assert is_table_line(50, 0, 50, 100) == "vertical"
    assert is_table_line(0, 0, 10, 0) is None
    assert is_table_line(0, 0, 100, 50) is None


def test_table_regions_and_area_check(make_line):
    borders = [
        GraphicsLine(40, 95, 300, 95, "horizontal"),
        GraphicsLine(40, 160, 300, 160, "horizontal"),
        GraphicsLine(40, 95, 40, 160, "vertical"),
        GraphicsLine(300, 95, 300, 160, "vertical"),
    ]
    regions = detect_table_regions(borders)
    assert len(regions) == 1

    lines = [make_line("Alpha", 50, 100), make_line("Beta", 150, 130)]
    evidence = check_graphics_in_area(lines, {"lines": borders})
    assert evidence["has_graphics"] is True
    # The lower border and the right border lie outside the text area
    assert evidence["horizontal_lines"] == 1
    assert evidence["vertical_lines"] == 1

    assert check_graphics_in_area(lines, None)["has_graphics"] is False
