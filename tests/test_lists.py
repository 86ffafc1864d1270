from playout_lib.lists import (
    group_list_items,
    indent_threshold,
    make_list_element,
    nesting_level,
    split_list_headings,
    strip_list_marker,
)
from playout_lib.models import Block, Paragraph


def _column_block(lines, column=0):
    for line in lines:
        line.column_index = column
    return Block(lines)


def _line_ids(blocks):
    return {id(ln.source or ln) for block in blocks for ln in block.lines}


def test_inline_list_is_split_from_its_heading(make_line):
    original = [make_line("Key Parameters: • CPU: 4 cores • RAM: 16GB")]

    blocks = split_list_headings([Block(original)])

    assert [b.text for b in blocks] == ["Key Parameters:", "• CPU: 4 cores", "• RAM: 16GB"]
    assert blocks[0].is_list_heading is True
    assert blocks[0].followed_by_list is True
    assert make_list_element(blocks[1]).items[0].text == "CPU: 4 cores"
    assert _line_ids(blocks) == {id(ln) for ln in original}


def test_heading_line_followed_by_list_lines(make_line):
    original = [
        make_line("Features:", y=100),
        make_line("• Fast", y=114),
        make_line("• Small", y=128),
        make_line("continues here", y=142),
    ]

    blocks = split_list_headings([Block(original)])

    assert [[ln.text for ln in b.lines] for b in blocks] == [
        ["Features:"],
        ["• Fast"],
        ["• Small", "continues here"],
    ]
    assert blocks[0].is_list_heading is True
    assert _line_ids(blocks) == {id(ln) for ln in original}


def test_sentences_are_not_split(make_line):
    block = Block([make_line("This ends here. • not a list"), make_line("Next line.", y=114)])

    assert split_list_headings([block]) == [block]


def test_list_items_from_marker_lines(make_line):
    block = Block(
        [
            make_line("1. First step", y=100),
            make_line("with more detail", x=62, y=114),
            make_line("2. Second step", y=128),
        ]
    )

    element = make_list_element(block, confidence=0.9)

    assert element.ordered is True
    assert [item.text for item in element.items] == [
        "First step with more detail",
        "Second step",
    ]
    assert all(item.is_ordered for item in element.items)


def test_strip_list_marker():
    assert strip_list_marker("• item") == "item"
    assert strip_list_marker("12) twelfth") == "twelfth"
    assert strip_list_marker("iv) roman") == "roman"
    assert strip_list_marker("plain") == "plain"


def test_nesting_level():
    threshold = indent_threshold(12)

    assert threshold == 10
    assert nesting_level(55, 50, threshold) == 0
    assert nesting_level(72, 50, threshold) == 2
    assert nesting_level(500, 50, threshold) == 5


def test_indented_list_nests_under_previous_item(make_line):
    first = make_list_element(_column_block([make_line("1. First", x=50, y=100)]))
    nested = make_list_element(
        _column_block([make_line("• a", x=80, y=114), make_line("• b", x=80, y=128)])
    )
    second = make_list_element(_column_block([make_line("2. Second", x=50, y=142)]))

    grouped = group_list_items([first, nested, second])

    assert len(grouped) == 1
    items = grouped[0].items
    assert [item.text for item in items] == ["First", "Second"]
    assert [child.text for child in items[0].children] == ["a", "b"]
    assert items[1].children == []


def test_paragraph_breaks_unordered_lists(make_line):
    before = make_list_element(_column_block([make_line("• one", y=100)]))
    text = Paragraph.from_block(_column_block([make_line("Interlude.", y=120)]))
    after = make_list_element(_column_block([make_line("• two", y=140)]))

    grouped = group_list_items([before, text, after])

    assert [el.kind for el in grouped] == ["list", "paragraph", "list"]


def test_ordered_list_resumes_after_interruption(make_line):
    first = make_list_element(_column_block([make_line("1. One", y=100)]))
    other = make_list_element(_column_block([make_line("• aside", y=120)], column=1))
    second = make_list_element(_column_block([make_line("2. Two", y=140)]))

    grouped = group_list_items([first, other, second])

    assert len(grouped) == 2
    assert [item.text for item in grouped[0].items] == ["One", "Two"]
