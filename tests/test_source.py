from types import SimpleNamespace

import pytest
from pdfminer.converter import PDFPageAggregator
from pdfminer.pdfinterp import PDFResourceManager
from pdfminer.utils import MATRIX_IDENTITY

from playout_lib.source import PDFSource, RecordingInterpreter, chars_to_runs


def _char(text, x0, y0=700, size=10, font="Helvetica", width=5):
    return SimpleNamespace(
        fontname=font,
        size=size,
        x0=x0,
        x1=x0 + width,
        y0=y0,
        y1=y0 + size,
        get_text=lambda: text,
    )


def test_adjacent_glyphs_form_one_run_with_word_spaces():
    chars = [_char("H", 100), _char("i", 105), _char("y", 113), _char("o", 118)]

    runs = chars_to_runs(chars, page_num=4, page_top=792)

    assert len(runs) == 1
    run = runs[0]
    assert run.text == "Hi yo"
    assert (run.x, run.y, run.width) == (100, 82, 23)
    assert (run.font_size, run.page_num, run.font_name) == (10, 4, "Helvetica")


def test_runs_break_on_font_baseline_or_gap():
    chars = [
        _char("a", 100),
        _char("b", 105, font="Helvetica-Bold"),
        _char("c", 110, font="Helvetica-Bold", y0=680),
        _char("d", 300, font="Helvetica-Bold", y0=680),
    ]

    runs = chars_to_runs(chars, page_num=1, page_top=792)

    assert [r.text for r in runs] == ["a", "b", "c", "d"]
    assert runs[1].font_name == "Helvetica-Bold"


def test_whitespace_only_glyphs_are_dropped():
    assert chars_to_runs([_char(" ", 100)], page_num=1, page_top=792) == []


def test_recording_interpreter_shares_operators_with_forms():
    rsrcmgr = PDFResourceManager()
    interpreter = RecordingInterpreter(rsrcmgr, PDFPageAggregator(rsrcmgr))

    interpreter._record("moveTo", [1, "2"])
    interpreter._record("setDash", [[3, 1], 0])
    child = interpreter.dup()
    child._record("stroke")

    assert interpreter.operators == [
        ("moveTo", [1.0, 2.0]),
        ("setDash", [[3, 1], 0]),
        ("stroke", []),
    ]


def test_close_and_stroke_is_recorded_once(mocker):
    interpreter = RecordingInterpreter(PDFResourceManager(), mocker.Mock())
    interpreter.init_state(MATRIX_IDENTITY)

    interpreter.do_m(0, 0)
    interpreter.do_l(10, 0)
    interpreter.do_s()

    assert interpreter.operators == [
        ("moveTo", [0.0, 0.0]),
        ("lineTo", [10.0, 0.0]),
        ("closePath", []),
        ("stroke", []),
    ]


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        PDFSource(str(tmp_path / "nothing.pdf"))
