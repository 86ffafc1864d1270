from playout_lib.models import Block, ClassificationResult, Paragraph, TableFragment
from playout_lib.tables import (
    analyze_gap_pattern,
    collect_row_candidates,
    extract_table_structure,
    merge_column_tables,
    split_table_blocks,
    validate_table_structure,
)

ROWS = [
    ("Name", "Age", "City"),
    ("Alice", "30", "Paris"),
    ("Bob", "25", "Rome"),
    ("Carol", "41", "Oslo"),
]


def _element(make_line, cells, column, cls=Paragraph):
    """`cells` is a list of (text, y); lines sit at x = 50 + 100 * column."""
    lines = [make_line(text, x=50 + 100 * column, y=y) for text, y in cells]
    for line in lines:
        line.column_index = column
    return cls.from_block(Block(lines))


def test_extract_grid_from_single_block(grid_lines):
    structure = extract_table_structure(Block(grid_lines))

    assert structure["row_count"] == 4
    assert structure["column_count"] == 3
    assert structure["rows"][0] == ["Name", "Age", "City"]
    assert structure["rows"][2] == ["Bob", "25", "Rome"]
    assert structure["has_headers"] is True


def test_extract_rejects_single_column(make_line):
    block = Block([make_line(f"Line {i}", y=100 + i * 15) for i in range(4)])

    assert extract_table_structure(block) is None


def test_columns_with_shared_rows_become_one_table(make_line):
    columns = [
        _element(make_line, [(row[col], 100 + 15 * i) for i, row in enumerate(ROWS)], col)
        for col in range(3)
    ]

    result = merge_column_tables(columns)

    assert len(result) == 1
    table = result[0]
    assert table.kind == "table"
    assert (table.row_count, table.column_count) == (4, 3)
    assert table.rows[0] == ["Name", "Age", "City"]
    assert table.rows[1] == ["Alice", "30", "Paris"]
    assert table.has_headers is True
    assert 0.0 <= table.confidence <= 1.0


def test_unused_fragment_becomes_paragraph(make_line):
    fragment = _element(make_line, [("Alice", 100), ("Bob", 115)], 0, TableFragment)

    result = merge_column_tables([fragment])

    assert [el.kind for el in result] == ["paragraph"]
    assert result[0].text == "Alice Bob"


def test_column_zero_block_is_split_at_shared_rows(make_line):
    first = _element(make_line, [("Intro", 50), ("Alice", 100), ("Bob", 115)], 0)
    second = _element(make_line, [("30", 100), ("25", 115)], 1)

    result = split_table_blocks([first, second])

    assert [el.kind for el in result] == ["paragraph", "table-fragment", "paragraph"]
    assert result[0].text == "Intro"
    assert result[1].text == "Alice Bob"
    assert result[2] is second


def test_single_column_page_is_untouched(make_line):
    only = _element(make_line, [("Alice", 100), ("Bob", 115)], 0)

    assert split_table_blocks([only]) == [only]


def test_row_candidates_need_two_columns(make_line):
    left = _element(make_line, [("a", 100.0)], 0)
    right = _element(make_line, [("b", 100.04)], 1)
    lower = _element(make_line, [("c", 105.0)], 1)

    rows = collect_row_candidates([left, right], 1.2)
    assert len(rows) == 1
    assert rows[0]["column_count"] == 2
    assert rows[0]["elements"] == [left, right]

    assert collect_row_candidates([left, lower], 1.2) == []


def test_regular_gaps_read_as_running_text(make_line):
    lines = [make_line("text", y=100 + 14 * i) for i in range(5)]
    irregular = [make_line("text", y=y) for y in (50, 100, 115)]

    assert analyze_gap_pattern(lines)["has_regular_gap_pattern"] is True
    assert analyze_gap_pattern(irregular)["has_regular_gap_pattern"] is False


def test_offset_column_lines_fill_their_row_cells(make_line):
    # The middle column sits 3.5pt lower; its keys merge into the neighbours' rows
    offsets = [0.0, 3.5, 0.0]
    columns = [
        _element(
            make_line,
            [(row[col], 100 + 15 * i + offsets[col]) for i, row in enumerate(ROWS)],
            col,
        )
        for col in range(3)
    ]

    result = merge_column_tables(columns)

    assert [el.kind for el in result] == ["table"]
    assert result[0].rows == [list(row) for row in ROWS]


def test_row_candidates_record_their_lines(make_line):
    left = _element(make_line, [("a", 129.6)], 0)
    right = _element(make_line, [("b", 133.5)], 1)

    rows = collect_row_candidates([left, right], 3.6)

    assert len(rows) == 1
    assert rows[0]["lines"][id(right)] == right.lines


def test_validation_rejects_an_oversized_cell(make_line, mocker):
    mocker.patch(
        "playout_lib.tables.classify_table",
        return_value=ClassificationResult("consensus", "table", 0.9),
    )

    def rows_with(last_cell):
        left = _element(make_line, [("a", 100), ("b", 115), ("c", 130)], 0)
        right = _element(make_line, [("d", 100), ("e", 115), (last_cell, 130)], 1)
        return collect_row_candidates([left, right], 3.6)

    assert validate_table_structure(rows_with("x" * 50))[0] is True
    assert validate_table_structure(rows_with("x" * 450))[0] is False
