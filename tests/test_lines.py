from playout_lib.lines import LineBuilder, collate_runs
from playout_lib.models import GraphicsLine


def test_runs_on_one_band_join_into_a_line(make_run):
    runs = [
        make_run("world", 85, 100.5, width=30),
        make_run("Hello", 50, 100, width=30),
        make_run("Next line", 50, 120, width=60),
    ]
    lines = LineBuilder(12).build(runs)

    assert [ln.text for ln in lines] == ["Hello world", "Next line"]
    assert lines[0].x == 50
    assert lines[0].y == 100


def test_wide_gutter_splits_a_band_into_two_lines(make_run):
    runs = [
        make_run("Hello", 50, 100, width=30),
        make_run("world", 85, 100, width=30),
        make_run("Col2", 400, 100, width=30),
        make_run("Next line", 50, 120, width=60),
    ]
    lines = LineBuilder(12).build(runs)

    assert [ln.text for ln in lines] == ["Hello world", "Col2", "Next line"]


def test_font_name_sets_style_flags(make_run):
    runs = [
        make_run("Bold title", 50, 100, font_name="ABCDEF+Helvetica-Bold"),
        make_run("Slanted", 50, 130, font_name="Times-Italic"),
    ]
    bold, italic = LineBuilder(12).build(runs)

    assert bold.is_bold and not bold.is_italic
    assert italic.is_italic and not italic.is_bold


def test_short_stroke_below_a_run_marks_it_underlined(make_run):
    runs = [make_run("Title", 50, 100, width=40), make_run("Body", 50, 140, width=40)]
    underline = GraphicsLine(50, 112.5, 90, 112.5, "horizontal")

    title, body = LineBuilder(12).build(runs, [underline])

    assert title.is_underlined
    assert not body.is_underlined


def test_non_finite_runs_are_dropped(make_run):
    runs = [make_run("ok", 50, 100), make_run("bad", float("nan"), 100)]

    assert [ln.text for ln in LineBuilder(12).build(runs)] == ["ok"]


def test_collate_runs_strips_soft_hyphens(make_run):
    runs = [make_run("co\u00adoperate", 50, 100, width=50), make_run("now", 120, 100, width=20)]

    assert collate_runs(runs) == "cooperate now"
