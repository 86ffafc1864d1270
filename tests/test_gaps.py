import pytest

from playout_lib.gaps import (
    analyze_gaps,
    analyze_structure,
    analyze_text_blocks,
    build_gap_context,
    is_paragraph_boundary,
)
from playout_lib.models import Block


def _lines(make_line, ys, text="Some text in a line."):
    return [make_line(text, 50, y) for y in ys]


def test_regular_spacing_is_homogeneous(make_line):
    analysis = analyze_gaps(_lines(make_line, [100, 114, 128, 142, 156]))

    assert analysis["document_type"] == "homogeneous"
    assert analysis["is_homogeneous_spacing"] is True
    assert analysis["mean"] == pytest.approx(14)
    assert analysis["normal_gap_max"] == pytest.approx(14 * 0.99)
    assert analysis["paragraph_gap_min"] == pytest.approx(42)


def test_two_gap_sizes_are_bimodal(make_line):
    ys = [100, 114, 128, 142, 172, 186, 200, 214, 244]
    analysis = analyze_gaps(_lines(make_line, ys))

    assert analysis["document_type"] == "bimodal"
    assert analysis["gap_distribution"]["total"] == 8


def test_too_few_lines_use_defaults(make_line):
    analysis = analyze_gaps(_lines(make_line, [100]))

    assert analysis["normal_gap_max"] == 18
    assert analysis["paragraph_gap_min"] == pytest.approx(18 * 1.33)
    assert analysis["document_type"] == "unknown"


def test_cross_page_gaps_are_ignored(make_line):
    lines = _lines(make_line, [100, 114]) + [make_line("Next page.", 50, 20, page_num=2)]

    assert analyze_gaps(lines)["gap_distribution"]["total"] == 1


def test_text_blocks_split_at_large_gap(make_line):
    lines = _lines(make_line, [100, 114, 128, 170, 184])
    result = analyze_text_blocks(lines, analyze_gaps(lines))

    assert [len(b.lines) for b in result["blocks"]] == [3, 2]
    assert sum(len(b.lines) for b in result["blocks"]) == len(lines)
    assert result["block_boundaries"] == [42]


def test_paragraph_boundary_rules():
    homogeneous = {
        "normal_gap_max": 13.86,
        "paragraph_gap_min": 42,
        "document_type": "homogeneous",
        "homogeneity_level": 1.0,
        "mean": 14,
    }
    block = {"combined_text": "x" * 400, "block_length": 400}

    context = build_gap_context("A sentence.", "- a list item", 14, 12, 12)
    assert is_paragraph_boundary(14, homogeneous, context, block) is True

    context = build_gap_context("A sentence.", "Another one.", 14, 12, 12)
    assert is_paragraph_boundary(14, homogeneous, context, block) is False
    assert is_paragraph_boundary(50, homogeneous, context, block) is True


def test_structure_detects_style_variation(make_line):
    title = Block([make_line("Title", 50, 80, font_name="Helvetica-Bold")])
    body = Block([make_line("Body text.", 50, 110)])

    structure = analyze_structure([title, body])
    assert structure["has_style_variation"] is True
    assert structure["is_homogeneous"] is False
    assert structure["likely_has_headings"] is True

    plain = analyze_structure([body])
    assert plain["is_homogeneous"] is True
    assert plain["likely_has_headings"] is False
