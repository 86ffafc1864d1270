import pytest

from playout_lib.api import elements_to_dicts, parse_page_selection, process_pages, process_pdf
from playout_lib.metrics import Metrics
from playout_lib.models import PageInput, Paragraph


@pytest.mark.parametrize(
    "selection, expected",
    [
        ("all", None),
        ("ALL", None),
        (None, None),
        ("", None),
        ("1,3,5-7", {1, 3, 5, 6, 7}),
        (" 2 , 4 ", {2, 4}),
        ("1-x", None),
    ],
)
def test_parse_page_selection(selection, expected):
    assert parse_page_selection(selection) == expected


def test_process_pages_uses_given_metrics(mocker):
    processor = mocker.patch("playout_lib.api.DocumentProcessor")
    processor.return_value.process.return_value = ["element"]
    metrics = Metrics(base_font_size=10)

    assert process_pages([], metrics=metrics, workers=4) == ["element"]
    processor.assert_called_once_with(metrics, workers=4)


def test_process_pages_samples_first_pages_for_metrics(mocker, make_run):
    analyze = mocker.patch("playout_lib.api.analyze_pdf_metrics", return_value=Metrics())
    mocker.patch("playout_lib.api.DocumentProcessor")
    runs = [make_run(f"page {n}", 72, 100, page_num=n) for n in (1, 2, 3)]
    pages = [PageInput(n, [run]) for n, run in zip((1, 2, 3), runs)]

    process_pages(pages)

    analyze.assert_called_once_with(runs[:2])


def test_process_pdf_parses_selection(mocker):
    source = mocker.patch("playout_lib.api.PDFSource")
    source.return_value.pages.return_value = []

    assert process_pdf("report.pdf", pages="2-3") == []
    source.assert_called_once_with("report.pdf")
    source.return_value.pages.assert_called_once_with({2, 3})


def test_process_pdf_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        process_pdf(str(tmp_path / "missing.pdf"))


def test_elements_to_dicts():
    paragraph = Paragraph("Hello.", [], 2, 10.123, 20.456, confidence=0.61234)

    assert elements_to_dicts([paragraph]) == [
        {
            "type": "paragraph",
            "text": "Hello.",
            "page": 2,
            "min_y": 10.12,
            "max_y": 20.46,
            "confidence": 0.612,
        }
    ]
