from playout_lib.columns import process_lines_by_columns
from playout_lib.metrics import Metrics
from playout_lib.models import Block, Column, Paragraph, Viewport

VIEWPORT = Viewport.for_page(0, 0, 612, 792)


def _one_paragraph(lines, metrics, gap_analysis):
    return [Paragraph.from_block(Block(lines))]


def test_failed_gap_analysis_only_drops_its_column(mocker, make_line):
    left = [make_line(f"Left {i}", x=50, y=100 + 14 * i) for i in range(3)]
    right = [make_line(f"Right {i}", x=320, y=100 + 14 * i) for i in range(3)]
    mocker.patch(
        "playout_lib.columns.ColumnDetector.detect",
        return_value=[Column(left, 50, 250), Column(right, 320, 560)],
    )

    def gaps(lines):
        if lines is left:
            raise ZeroDivisionError("no gaps")
        return None

    mocker.patch("playout_lib.columns.analyze_gaps", side_effect=gaps)

    elements = process_lines_by_columns(left + right, VIEWPORT, Metrics(), _one_paragraph)

    assert [el.text for el in elements] == ["Right 0 Right 1 Right 2"]
    assert elements[0].column_index == 1
    assert elements[0].column_x == 320


def test_single_column_page_is_column_zero(mocker, make_line):
    lines = [make_line(f"Line {i}", y=100 + 14 * i) for i in range(3)]
    mocker.patch("playout_lib.columns.ColumnDetector.detect", return_value=[])

    elements = process_lines_by_columns(lines, VIEWPORT, Metrics(), _one_paragraph)

    assert len(elements) == 1
    assert elements[0].column_index == 0
    assert {ln.column_index for ln in lines} == {0}
