import logging
import threading

import pytest

from core.log_utils import RichLogFormatter, log_context, resolve_debug_topics, setup_logging


@pytest.mark.parametrize(
    "requested, expected",
    [
        ("tab,lis", {"tables", "lists"}),
        ("c", {"columns", "classify"}),
        (["decide"], {"decide"}),
        ("unknown", set()),
        ("", set()),
    ],
)
def test_resolve_debug_topics(requested, expected):
    assert resolve_debug_topics("playout", requested) == expected


def test_all_selects_every_topic():
    topics = resolve_debug_topics("playout", "all")

    assert {"graphics", "tables", "page", "api"} <= topics
    assert resolve_debug_topics("other", "all") == set()


def test_formatter_prefixes_every_line():
    record = logging.LogRecord(
        "playout.tables", logging.WARNING, __file__, 1, "first\nsecond", None, None
    )
    record.context = "p3"

    text = RichLogFormatter().format(record)

    assert text.splitlines() == ["WARNI:tables  [p3]: first", "WARNI:tables  [p3]: second"]


@pytest.fixture
def clean_root():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    for handler in handlers:
        root.removeHandler(handler)
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("playout.page").setLevel(logging.NOTSET)


def test_setup_logging_enables_requested_topics(clean_root, tmp_path):
    log_file = tmp_path / "run.log"

    setup_logging("playout", level=logging.WARNING, debug_topics="page", log_file=str(log_file))

    assert len(clean_root.handlers) == 2
    assert clean_root.level == logging.WARNING
    assert logging.getLogger("playout.page").level == logging.DEBUG
    assert logging.getLogger("pdfminer").level == logging.WARNING


def test_log_context_tags_records_inside_the_block(clean_root):
    handler = logging.StreamHandler()
    clean_root.addHandler(handler)

    def tag():
        record = logging.LogRecord("playout.page", logging.INFO, __file__, 1, "msg", None, None)
        handler.filter(record)
        return record.context

    with log_context("p7") as context_filter:
        assert context_filter in handler.filters
        with log_context("p8"):
            assert tag() == "p8"
        assert tag() == "p7"
    assert tag() == ""


def test_log_context_is_per_thread(clean_root):
    handler = logging.StreamHandler()
    clean_root.addHandler(handler)
    seen = {}

    def other_thread():
        record = logging.LogRecord("playout.page", logging.INFO, __file__, 1, "msg", None, None)
        handler.filter(record)
        seen["context"] = record.context

    with log_context("p1"):
        worker = threading.Thread(target=other_thread)
        worker.start()
        worker.join()

    assert seen["context"] == ""
