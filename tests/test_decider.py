import pytest

from playout_lib.decider import decide_element_type
from playout_lib.models import Block, ClassificationResult


def _result(kind, confidence):
    return ClassificationResult("test", kind, confidence)


NOT_HEADING = _result("not-heading", 0.3)
NOT_LIST = _result("not-list", 0.0)
NOT_TABLE = _result("not-table", 0.0)


@pytest.fixture
def block(make_line):
    return Block([make_line("A short block of text.")])


def test_very_long_text_is_always_paragraph(make_line):
    long_block = Block([make_line("word " * 70)])

    decision = decide_element_type(
        _result("heading", 0.9), _result("not-paragraph", 0.4), _result("list", 0.95),
        _result("table", 0.9), long_block,
    )

    assert decision == ("paragraph", 0.8)


def test_table_beats_weaker_paragraph(block):
    decision = decide_element_type(
        NOT_HEADING, _result("paragraph", 0.5), NOT_LIST, _result("table", 0.8), block
    )

    assert decision == ("table", 0.8)


def test_strong_list(block):
    decision = decide_element_type(
        NOT_HEADING, _result("paragraph", 0.6), _result("list", 0.9), NOT_TABLE, block, {}
    )

    assert decision == ("list", 0.9)


def test_list_heading_is_promoted(make_line):
    heading_block = Block([make_line("Options:")], is_list_heading=True)

    decision = decide_element_type(
        NOT_HEADING, _result("paragraph", 0.5), NOT_LIST, NOT_TABLE, heading_block
    )

    assert decision == ("heading", 0.8)


def test_homogeneous_document_prefers_paragraphs(block):
    structure = {"is_homogeneous": True, "likely_has_headings": False}

    weak = decide_element_type(
        _result("heading", 0.7), _result("paragraph", 0.6), NOT_LIST, NOT_TABLE, block,
        structure, {"i": 1},
    )
    strong = decide_element_type(
        _result("heading", 0.95), _result("paragraph", 0.6), NOT_LIST, NOT_TABLE, block,
        structure, {"i": 1},
    )

    assert weak == ("paragraph", 0.6)
    assert strong == ("heading", 0.95)


def test_failure_falls_back_to_paragraph():
    decision = decide_element_type(
        NOT_HEADING, _result("paragraph", 0.6), NOT_LIST, NOT_TABLE, None
    )

    assert decision == ("paragraph", 0.5)
