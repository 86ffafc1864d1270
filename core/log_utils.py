#!/usr/bin/env python3
"""
core/log_utils.py: Logging setup shared by the command-line tools.

This module contains:
- setup_logging: Installs console/file handlers and per-topic debug levels.
- resolve_debug_topics: Expands `-d` topic prefixes into logger topics.
- log_context: Tags every record emitted inside a block (e.g. with the page
  being processed).
- RichLogFormatter: A custom logging formatter for colorful console output.
"""

import logging
import threading
from contextlib import contextmanager

PROJECT_TOPICS = {
    "playout": {
        "layout",
        "graphics",
        "lines",
        "columns",
        "gaps",
        "classify",
        "decide",
        "lists",
        "tables",
        "page",
        "api",
    },
}

# Third-party loggers that only report at WARNING and above
QUIET_LIBRARIES = ("pdfminer",)


def resolve_debug_topics(project_name: str, requested) -> set:
    """
    Maps user topic names to the project's topics. "all" selects every
    topic; any other name selects the topics it is a prefix of.
    """
    valid_topics = PROJECT_TOPICS.get(project_name, set())
    if isinstance(requested, str):
        requested = requested.split(",")
    requested = [t.strip() for t in requested or [] if t.strip()]
    if "all" in requested:
        return set(valid_topics)
    return {topic for prefix in requested for topic in valid_topics if topic.startswith(prefix)}


def setup_logging(
    project_name: str,
    level=logging.INFO,
    color_logs=False,
    debug_topics=None,
    include_projects: list[str] = None,
    log_file: str = None,
):
    """Configures logging for the application."""
    root_logger = logging.getLogger()
    for h in root_logger.handlers[:]:
        root_logger.removeHandler(h)
        h.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(RichLogFormatter(use_color=color_logs))
    root_logger.addHandler(console_handler)
    root_logger.setLevel(level)

    log = logging.getLogger(project_name)
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
            file_handler.setFormatter(RichLogFormatter(use_color=False))
            root_logger.addHandler(file_handler)
            log.info("Logging to file: %s", log_file)
        except IOError as e:
            log.error("Could not open log file %s: %s", log_file, e)

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    if not debug_topics:
        return
    for proj in [project_name] + (include_projects or []):
        topics = resolve_debug_topics(proj, debug_topics)
        for topic in topics:
            logging.getLogger(f"{proj}.{topic}").setLevel(logging.DEBUG)
        if topics:
            log.info("Debug enabled for %s: %s", proj, ", ".join(sorted(topics)))


_thread_context = threading.local()


class ContextFilter(logging.Filter):
    """
    A logging filter that injects contextual information into log records.
    The context opened by `log_context` in the emitting thread takes
    precedence over the fixed `context_str`.
    """

    def __init__(self, context_str=""):
        super().__init__()
        self.context_str = context_str

    def filter(self, record):
        record.context = getattr(_thread_context, "value", "") or self.context_str
        return True


_CONTEXT_FILTER = ContextFilter()


@contextmanager
def log_context(context_str):
    """
    Tags the records emitted by the calling thread inside the block with
    `context_str`. Contexts nest; the previous one is restored on exit.
    """
    for handler in logging.getLogger().handlers:
        handler.addFilter(_CONTEXT_FILTER)
    previous = getattr(_thread_context, "value", "")
    _thread_context.value = context_str
    try:
        yield _CONTEXT_FILTER
    finally:
        _thread_context.value = previous


# --- CUSTOM LOGGING FORMATTER ---
class RichLogFormatter(logging.Formatter):
    """Formats records as `LEVEL:topic[context]: message` with optional ANSI colors.

    Args:
        use_color (bool): If True, ANSI color codes are used. Defaults to False.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[38;5;252m",  # Light Grey
        logging.INFO: "\033[38;5;111m",  # Pastel Blue
        logging.WARNING: "\033[38;5;229m",  # Pale Yellow
        logging.ERROR: "\033[38;5;210m",  # Soft Red
        logging.CRITICAL: "\033[38;5;217m",  # Light Magenta
    }
    TOPIC_WIDTH = 8

    def __init__(self, use_color=False):
        super().__init__()
        self.use_color = use_color
        self.bold, self.reset = ("\033[1m", "\033[0m") if use_color else ("", "")

    def format(self, record):
        """Prefixes every line of the message, including tracebacks."""
        color = self.LEVEL_COLORS.get(record.levelno, "") if self.use_color else ""
        level_name = record.levelname[:5]

        # "playout.tables" -> "tables"; foreign loggers keep their full name
        _, _, topic = record.name.partition(".")
        topic = (topic or record.name)[: self.TOPIC_WIDTH]

        context = getattr(record, "context", "")
        context_str = f"[{context}]" if context else ""

        prefix = (
            f"{color}{level_name:<5}{self.reset}:"
            f"{self.bold}{topic:<{self.TOPIC_WIDTH}}{self.reset}{context_str}: "
        )
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return "\n".join(f"{prefix}{line}" for line in message.split("\n"))
