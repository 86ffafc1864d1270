import pytest

from playout_lib.models import Line, TextRun


def build_run(text, x, y, width=None, font_size=12, page_num=1, font_name="Helvetica"):
    if width is None:
        width = len(text) * font_size * 0.5
    return TextRun(text, x, y, width, font_size, page_num, font_name)


def build_line(text, x=50, y=100, font_size=12, page_num=1, font_name="Helvetica", runs=None):
    if runs is None:
        runs = [build_run(text, x, y, font_size=font_size, page_num=page_num, font_name=font_name)]
    line = Line(runs, text, page_num)
    line.is_bold = line.is_bold or "Bold" in font_name
    return line


@pytest.fixture
def make_run():
    return build_run


@pytest.fixture
def make_line():
    return build_line


@pytest.fixture
def grid_lines():
    """Four rows of three short cells at x = 50 / 150 / 250, 15pt apart."""
    cells = [
        ("Name", "Age", "City"),
        ("Alice", "30", "Paris"),
        ("Bob", "25", "Rome"),
        ("Carol", "41", "Oslo"),
    ]
    lines = []
    for row, texts in enumerate(cells):
        y = 100 + row * 15
        runs = [build_run(t, 50 + i * 100, y, width=40) for i, t in enumerate(texts)]
        lines.append(Line(runs, " ".join(texts)))
    return lines
