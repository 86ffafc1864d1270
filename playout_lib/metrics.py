# --- playout_lib/metrics.py ---
"""
playout_lib/metrics.py: Document-level metrics shared by every pipeline stage.

This module contains:
- Metrics: the per-document context (base font size, gap threshold, gap
  analysis and the page-indexed graphics evidence store).
- analyze_pdf_metrics: derives the font and spacing statistics from a
  sample of text runs.
"""
import logging
import threading

from .constants import (
    DEFAULT_BASE_FONT_SIZE,
    DEFAULT_MEDIAN_FONT_SIZE,
    DEFAULT_MODE_SPACING,
    DEFAULT_PARAGRAPH_GAP_THRESHOLD,
)
from .stats import coefficient_of_variation, js_round

log = logging.getLogger("playout.layout")

# Pages sampled for the document-wide statistics
MAX_PAGES_FOR_ANALYSIS = 2


class Metrics:
    """
    Mutable per-document context. Classifiers only read it; the graphics
    store is written by the page processor under a lock so pages can be
    processed in parallel.
    """

    def __init__(
        self,
        base_font_size=DEFAULT_BASE_FONT_SIZE,
        median_font_size=DEFAULT_MEDIAN_FONT_SIZE,
        mode_spacing=DEFAULT_MODE_SPACING,
        paragraph_gap_threshold=DEFAULT_PARAGRAPH_GAP_THRESHOLD,
        font_size_variability=0.0,
    ):
        self.base_font_size = base_font_size or DEFAULT_BASE_FONT_SIZE
        self.median_font_size = median_font_size
        self.mode_spacing = mode_spacing
        self.paragraph_gap_threshold = paragraph_gap_threshold
        # Coefficient of variation of the sampled font sizes
        self.font_size_variability = font_size_variability
        self.graphics_data = {}
        self._graphics_lock = threading.Lock()

    def set_graphics(self, page_num, data: dict):
        """Stores the graphics evidence extracted for a page."""
        with self._graphics_lock:
            self.graphics_data[page_num] = data

    def get_graphics(self, page_num) -> dict | None:
        with self._graphics_lock:
            return self.graphics_data.get(page_num)

    def to_dict(self) -> dict:
        return {
            "base_font_size": self.base_font_size,
            "median_font_size": self.median_font_size,
            "mode_spacing": self.mode_spacing,
            "paragraph_gap_threshold": self.paragraph_gap_threshold,
            "font_size_variability": self.font_size_variability,
        }

    def __repr__(self):
        return (
            f"Metrics(base={self.base_font_size}, median={self.median_font_size}, "
            f"spacing={self.mode_spacing}, para_gap={self.paragraph_gap_threshold:.2f})"
        )


def _mode(values):
    """Most frequent value; ties go to the value seen first."""
    counts = {}
    for v in values:
        counts[v] = counts.get(v, 0) + 1
    best, best_count = None, 0
    for v, c in counts.items():
        if c > best_count:
            best, best_count = v, c
    return best


def analyze_pdf_metrics(runs) -> Metrics:
    """
    Computes base font size (mode, rounded to 0.5), median font size, the
    most common line spacing and the paragraph gap threshold from a sample
    of text runs.
    """
    if not runs:
        log.info("No sample runs for metrics analysis, using defaults.")
        return Metrics()

    font_sizes = sorted(
        r.font_size for r in runs if r.font_size and 0 < r.font_size < float("inf")
    )
    base_font_size = _mode([js_round(s * 2) / 2 for s in font_sizes])
    if base_font_size is None:
        base_font_size = DEFAULT_BASE_FONT_SIZE
    median_font_size = (
        font_sizes[len(font_sizes) // 2] if font_sizes else base_font_size
    )

    y_coords = sorted(r.y for r in runs if r.y and 0 < r.y < float("inf"))
    spacings = [
        b - a
        for a, b in zip(y_coords, y_coords[1:])
        if 0 < b - a < base_font_size * 10
    ]
    mode_spacing = _mode([js_round(s) for s in spacings])
    if mode_spacing is None:
        mode_spacing = DEFAULT_MODE_SPACING

    metrics = Metrics(
        base_font_size=base_font_size,
        median_font_size=median_font_size,
        mode_spacing=mode_spacing,
        paragraph_gap_threshold=max(mode_spacing * 1.5, base_font_size * 1.2),
        font_size_variability=coefficient_of_variation(font_sizes),
    )
    log.info("Document metrics: %s", metrics)
    return metrics
