from playout_lib import grouper
from playout_lib.grouper import group_lines_into_elements
from playout_lib.metrics import Metrics


def _body(make_line):
    texts = [
        "The committee met twice during the spring to review the proposals.",
        "Each proposal was scored by three reviewers working independently.",
    ]
    return [make_line(text, y=100 + 14 * i) for i, text in enumerate(texts)]


def test_gap_analysis_is_derived_from_the_lines(mocker, make_line):
    spy = mocker.spy(grouper, "analyze_gaps")
    lines = _body(make_line)

    elements = group_lines_into_elements(lines, Metrics())

    spy.assert_called_once()
    assert spy.call_args.args[0] == lines
    assert elements


def test_given_gap_analysis_is_used_as_is(mocker, make_line):
    spy = mocker.spy(grouper, "analyze_gaps")
    lines = _body(make_line)
    gap_analysis = grouper.analyze_gaps(lines)
    spy.reset_mock()

    group_lines_into_elements(lines, Metrics(), gap_analysis)

    spy.assert_not_called()
