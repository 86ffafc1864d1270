import logging

import pytest

from playout_lib.metrics import Metrics
from playout_lib.models import (
    Block,
    Heading,
    ListElement,
    PageInput,
    Paragraph,
    Table,
    Viewport,
)
from playout_lib.page import DocumentProcessor, PageProcessor, log_page, post_process_elements

VIEWPORT = Viewport.for_page(0, 0, 612, 792)


def _page(make_run, page_num, text="Some text."):
    return PageInput(page_num, [make_run(text, 72, 100, page_num=page_num)], [], VIEWPORT)


def test_failing_stage_yields_empty_page(mocker, make_run):
    mocker.patch("playout_lib.page.LineBuilder.build", side_effect=RuntimeError("boom"))

    assert PageProcessor(Metrics()).process(_page(make_run, 1)) == []


def test_page_without_text(make_run):
    assert PageProcessor(Metrics()).process(PageInput(3, [], [], VIEWPORT)) == []


def test_table_stage_failure_keeps_elements(mocker, make_run):
    mocker.patch("playout_lib.page.split_table_blocks", side_effect=ValueError("bad"))
    mocker.patch("playout_lib.page.merge_column_tables", side_effect=ValueError("bad"))

    elements = PageProcessor(Metrics()).process(_page(make_run, 1, "A plain sentence."))

    assert [el.text for el in elements] == ["A plain sentence."]


def test_graphics_are_stored_per_page(make_run):
    metrics = Metrics()
    ops = [("moveTo", [50, 700]), ("lineTo", [300, 700]), ("stroke", [])]
    page = PageInput(2, [make_run("Cell", 60, 80, page_num=2)], ops, VIEWPORT)

    graphics = PageProcessor(metrics).extract_graphics(page)

    assert metrics.get_graphics(2) is graphics
    assert len(graphics["lines"]) == 1
    assert graphics["table_regions"] == []


@pytest.mark.parametrize("workers", [1, 3])
def test_failed_page_does_not_affect_others(mocker, make_run, workers):
    def fake_columns(lines, viewport, metrics, process_function):
        if "broken" in lines[0].text:
            raise RuntimeError("column detection exploded")
        return [Paragraph.from_block(Block(lines))]

    mocker.patch("playout_lib.page.process_lines_by_columns", side_effect=fake_columns)
    pages = [
        _page(make_run, 1, "First page."),
        _page(make_run, 2, "broken page"),
        _page(make_run, 3, "Third page."),
    ]

    elements = DocumentProcessor(Metrics(), workers=workers).process(pages)

    assert [(el.page_num, el.text) for el in elements] == [(1, "First page."), (3, "Third page.")]


def test_post_process_drops_empty_elements():
    keep = [
        Heading("Title", [], 1, 0, 0),
        Table("a b", [], 1, 0, 0, rows=[["a", "b"], ["c", "d"]]),
        ListElement("• x", [], 1, 0, 0),
    ]
    drop = [Paragraph("   ", [], 1, 0, 0), ListElement("", [], 1, 0, 0)]

    assert post_process_elements(drop[:1] + keep + drop[1:]) == keep


def test_document_end_to_end(make_run):
    body = (
        "This report summarizes the results of the annual survey across all regions.",
        "Participation increased compared to the previous year, and most answers",
        "were submitted online before the end of the collection period.",
    )
    runs = [make_run("Annual Report", 72, 60, font_size=20, font_name="Helvetica-Bold")]
    runs += [make_run(text, 72, 110 + i * 14, width=380) for i, text in enumerate(body)]
    runs += [
        make_run("• First finding", 72, 190, width=120),
        make_run("• Second finding", 72, 204, width=130),
    ]
    metrics = Metrics(base_font_size=12)

    elements = DocumentProcessor(metrics).process([PageInput(1, runs, [], VIEWPORT)])

    assert elements
    assert {el.kind for el in elements} <= {"heading", "paragraph", "list", "table"}
    assert all(el.page_num == 1 for el in elements)
    text = " ".join(el.text for el in elements)
    assert "Annual Report" in text
    assert "collection period." in text


class _RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.mark.parametrize("workers", [1, 3])
def test_page_records_carry_their_page_context(mocker, make_run, workers):
    def fake_process(page):
        log_page.warning("processing %d", page.page_num)
        return []

    mocker.patch("playout_lib.page.PageProcessor.process", side_effect=fake_process)
    handler = _RecordingHandler()
    root = logging.getLogger()
    root.addHandler(handler)
    try:
        DocumentProcessor(Metrics(), workers=workers).process(
            [_page(make_run, n) for n in (1, 2, 3, 4)]
        )
    finally:
        root.removeHandler(handler)

    tagged = {
        r.getMessage(): r.context for r in handler.records if r.getMessage().startswith("processing")
    }
    assert tagged == {f"processing {n}": f"p{n}" for n in (1, 2, 3, 4)}
