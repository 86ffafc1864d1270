import random

import pytest

from playout_lib.classifiers import (
    classify_heading,
    classify_list,
    classify_paragraph,
    classify_table,
    extract_list_info,
    font_size_ratio,
)
from playout_lib.metrics import Metrics
from playout_lib.models import Block

PROSE = (
    "The committee met on Tuesday to review the annual budget, and after a long "
    "discussion the members agreed to postpone the vote. A revised proposal will be "
    "circulated next week; comments are welcome until the end of the month. Staff "
    "will then prepare the final figures for approval."
)


@pytest.fixture
def metrics():
    return Metrics(base_font_size=12)


def test_large_short_text_is_heading(make_line, metrics):
    block = Block([make_line("Introduction", font_size=18)])

    result = classify_heading(block, metrics, {"is_first": True})

    assert result.kind == "heading"
    assert result.confidence >= 0.6
    assert "short_large_font" in result.details["signals"]


def test_body_prose_is_not_heading(make_line, metrics):
    block = Block([make_line(PROSE[:250])])

    result = classify_heading(block, metrics, {})

    assert result.kind == "not-heading"


def test_list_item_never_scores_as_heading(make_line, metrics):
    block = Block([make_line("1. Install", font_size=30)])

    assert classify_heading(block, metrics).kind == "not-heading"


def test_long_prose_is_paragraph(make_line, metrics):
    block = Block([make_line(PROSE + " " + PROSE)])

    result = classify_paragraph(block, metrics)

    assert result.kind == "paragraph"
    assert result.confidence >= 0.8


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1. First", {"marker": "1", "type": "numbered", "level": 0, "ordered": True}),
        ("b) second", {"marker": "b", "type": "letter", "level": 1, "ordered": True}),
        ("IV. fourth", {"marker": "IV", "type": "roman", "level": 0, "ordered": True}),
        ("• bullet", {"marker": "•", "type": "bullet", "level": 0, "ordered": False}),
        ("- dash", {"marker": "-", "type": "bullet", "level": 1, "ordered": False}),
        ("Plain text", None),
        ("", None),
    ],
)
def test_extract_list_info(text, expected):
    assert extract_list_info(text) == expected


def test_multi_line_list(make_line):
    block = Block([make_line("• alpha", y=100), make_line("• beta", y=114)])

    result = classify_list(block)

    assert result.kind == "list"
    assert result.confidence == pytest.approx(0.95)
    assert result.details["list_info"]["marker"] == "•"


def test_inline_list_marker(make_line):
    block = Block([make_line("Options: • one")])

    result = classify_list(block)

    assert result.kind == "list"
    assert result.confidence == pytest.approx(0.75)
    assert result.details["list_info"] is None


def test_plain_text_is_not_list(make_line):
    result = classify_list(Block([make_line("Nothing to enumerate here.")]))

    assert result.kind == "not-list"
    assert result.confidence == 0.0


def test_aligned_grid_is_table(grid_lines):
    result = classify_table(Block(grid_lines))

    assert result.kind == "table"
    assert result.confidence > 0.6
    assert result.details["grid-pattern"]["columns"] == 3


def test_single_line_is_not_table(make_line):
    result = classify_table(Block([make_line("Only one line")]))

    assert result.kind == "not-table"
    assert result.details["reason"] == "invalid-input"


def test_font_size_ratio_is_clamped():
    assert font_size_ratio(24, 12) == 2.0
    assert font_size_ratio(float("nan"), 12) == 1.0
    assert font_size_ratio(0.5, 12) == pytest.approx(0.1)
    assert font_size_ratio(5000, 12) == 10.0


def test_confidences_stay_in_range(make_line, metrics):
    rng = random.Random(7)
    words = ["alpha", "Beta", "1.", "•", "gamma:", "delta.", "-", "Epsilon", "42", "x"]
    for _ in range(50):
        lines = []
        for row in range(rng.randint(1, 5)):
            text = " ".join(rng.choice(words) for _ in range(rng.randint(1, 30)))
            lines.append(
                make_line(
                    text,
                    x=rng.choice([50, 80, 200]),
                    y=100 + row * rng.choice([0, 12, 40]),
                    font_size=rng.choice([8, 12, 16, 30]),
                )
            )
        block = Block(lines)
        for classify in (classify_heading, classify_paragraph, classify_list, classify_table):
            result = classify(block, metrics, {"is_first": rng.random() < 0.5})
            assert 0.0 <= result.confidence <= 1.0
