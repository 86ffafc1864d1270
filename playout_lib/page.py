# --- playout_lib/page.py ---
"""
playout_lib/page.py: Runs the layout pipeline over pages.

This module contains:
- PageProcessor: one page, from decoder output to ordered elements. Every
  stage has its own fallback; a failure anywhere yields an empty page.
- DocumentProcessor: all pages (sequentially or on a thread pool), page-order
  concatenation, cross-page list grouping and the final clean-up filter.
- post_process_elements: drops elements left without content.
"""
import logging
from concurrent.futures import ThreadPoolExecutor

from core.log_utils import log_context

from .columns import process_lines_by_columns
from .graphics import GraphicsExtractor, detect_table_regions
from .grouper import group_lines_into_elements
from .lines import LineBuilder
from .lists import group_list_items
from .metrics import Metrics
from .tables import merge_column_tables, split_table_blocks

log_page = logging.getLogger("playout.page")


class PageProcessor:
    """Turns one PageInput into an ordered list of elements."""

    def __init__(self, metrics: Metrics):
        self.metrics = metrics

    def process(self, page) -> list:
        try:
            return self._process(page)
        except Exception as e:
            log_page.warning("Error processing page %s: %s", page.page_num, e, exc_info=True)
            return []

    def _process(self, page):
        if not page.text_runs:
            log_page.warning("No text content found on page %d", page.page_num)
            return []
        graphics = self.extract_graphics(page)

        lines = LineBuilder(self.metrics.base_font_size).build(page.text_runs, graphics["lines"])
        if not lines:
            log_page.warning("No lines built on page %d", page.page_num)
            return []

        elements = process_lines_by_columns(
            lines, page.viewport, self.metrics, group_lines_into_elements
        )
        try:
            elements = split_table_blocks(elements, self.metrics)
        except Exception as e:
            log_page.warning("Table block splitting failed on page %d: %s", page.page_num, e)
        try:
            elements = merge_column_tables(elements, self.metrics)
        except Exception as e:
            log_page.warning("Column table merging failed on page %d: %s", page.page_num, e)

        log_page.debug(
            "Page %d: %d runs -> %d lines -> %d elements",
            page.page_num,
            len(page.text_runs),
            len(lines),
            len(elements),
        )
        return elements

    def extract_graphics(self, page) -> dict:
        """Extracts border lines and table regions and stores them in the metrics."""
        graphics = {"lines": [], "rectangles": []}
        if page.operators and page.viewport is not None:
            graphics = GraphicsExtractor(self.metrics.base_font_size).extract(
                page.operators, page.viewport, page.page_num
            )
        try:
            regions = detect_table_regions(graphics["lines"], self.metrics.base_font_size)
        except Exception as e:
            log_page.warning("Table region detection failed on page %d: %s", page.page_num, e)
            regions = []
        graphics["table_regions"] = regions
        self.metrics.set_graphics(page.page_num, graphics)
        if graphics["lines"] or graphics["rectangles"]:
            log_page.debug(
                "Page %d graphics: %d lines, %d rectangles, %d table regions",
                page.page_num,
                len(graphics["lines"]),
                len(graphics["rectangles"]),
                len(regions),
            )
        return graphics


# --- DOCUMENT ---
def post_process_elements(elements) -> list:
    """Removes empty headings and paragraphs, and lists with neither items nor text."""
    kept = []
    for element in elements:
        if element.kind in ("heading", "paragraph") and not (element.text or "").strip():
            continue
        if element.kind == "list" and not element.items and not (element.text or "").strip():
            continue
        kept.append(element)
    if len(kept) != len(elements):
        log_page.debug("Post-processing removed %d empty elements", len(elements) - len(kept))
    return kept


class DocumentProcessor:
    """Processes every page with one shared Metrics and joins the results."""

    def __init__(self, metrics: Metrics, workers=1):
        self.metrics = metrics
        self.workers = max(1, int(workers or 1))
        self.page_processor = PageProcessor(metrics)

    def process(self, pages) -> list:
        pages = list(pages)
        if not pages:
            return []
        if self.workers > 1 and len(pages) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                per_page = list(executor.map(self._process_page, pages))
        else:
            per_page = [self._process_page(page) for page in pages]

        elements = [element for page_elements in per_page for element in page_elements]
        try:
            elements = group_list_items(elements, self.metrics)
        except Exception as e:
            log_page.warning("List grouping failed: %s", e)
        elements = post_process_elements(elements)
        log_page.info("Processed %d pages into %d elements", len(pages), len(elements))
        return elements

    def _process_page(self, page):
        with log_context(f"p{page.page_num}"):
            return self.page_processor.process(page)
