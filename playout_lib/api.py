# --- playout_lib/api.py ---
"""
playout_lib/api.py: Public entry points.

This module contains:
- parse_page_selection: "1,3,5-7" -> {1, 3, 5, 6, 7}; "all" -> None.
- process_pages: runs the pipeline over already decoded PageInputs.
- process_pdf: decodes a PDF file with pdfminer.six and processes it.
- elements_to_dicts: JSON-ready export of the element sequence.
"""
import logging

from .metrics import MAX_PAGES_FOR_ANALYSIS, analyze_pdf_metrics
from .page import DocumentProcessor
from .source import PDFSource

log = logging.getLogger("playout.api")


def parse_page_selection(pages_str) -> set | None:
    """Parses a page selection string (e.g., '1,3,5-7') into a set of integers."""
    if pages_str is None or str(pages_str).strip().lower() in ("", "all"):
        return None
    pages = set()
    try:
        for p in str(pages_str).split(","):
            part = p.strip()
            if not part:
                continue
            if "-" in part:
                s, e = map(int, part.split("-"))
                pages.update(range(s, e + 1))
            else:
                pages.add(int(part))
        return pages or None
    except ValueError:
        log.error("Invalid page selection format: %s. Defaulting to 'all'.", pages_str)
        return None


def process_pages(pages, metrics=None, workers=1) -> list:
    """
    Processes decoded pages. Without explicit metrics they are derived from
    the runs of the first pages.
    """
    pages = list(pages)
    if metrics is None:
        sample = [run for page in pages[:MAX_PAGES_FOR_ANALYSIS] for run in page.text_runs]
        metrics = analyze_pdf_metrics(sample)
    return DocumentProcessor(metrics, workers=workers).process(pages)


def process_pdf(pdf_path, pages=None, workers=1) -> list:
    """Extracts the ordered layout elements of a PDF file."""
    selection = parse_page_selection(pages) if isinstance(pages, str) else pages
    decoded = list(PDFSource(pdf_path).pages(selection))
    log.info("Decoded %d pages from %s", len(decoded), pdf_path)
    return process_pages(decoded, workers=workers)


def elements_to_dicts(elements) -> list[dict]:
    return [element.to_dict() for element in elements]
