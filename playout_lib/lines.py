# --- playout_lib/lines.py ---
"""
playout_lib/lines.py: Turns the decoder's text runs into visual lines.

This module contains:
- apply_font_styles: bold/italic flags inferred from font names.
- detect_underlines: marks runs that sit on a short horizontal stroke.
- collate_runs: joins the runs of one line into text.
- LineBuilder: Y-band clustering plus X-gap splitting into Line objects.
"""
import dataclasses
import logging
import math
import re

from .constants import (
    BOLD_FONT_PATTERN,
    DEFAULT_BASE_FONT_SIZE,
    DEFAULT_X_TOLERANCE,
    DEFAULT_Y_TOLERANCE,
    ITALIC_FONT_PATTERN,
    MIN_COLUMN_GAP,
    UNDERLINE_DISTANCE_FACTOR,
    UNDERLINE_MAX_DISTANCE,
    UNDERLINE_MIN_COVERAGE,
    X_TOLERANCE_MULTIPLIER,
    Y_TOLERANCE_MULTIPLIER,
)
from .models import Line
from .stats import cluster_objects, mean, median, percentile

log_lines = logging.getLogger("playout.lines")

# Strokes this long are table borders, not underlines
UNDERLINE_MAX_LENGTH = 500
UNDERLINE_MAX_WIDTH_RATIO = 1.5
UNDERLINE_BELOW_FACTOR = 0.3


def apply_font_styles(runs):
    """Sets is_bold / is_italic from the font name where the decoder did not."""
    styled = []
    for run in runs:
        name = run.font_name or ""
        bold = run.is_bold or bool(BOLD_FONT_PATTERN.search(name))
        italic = run.is_italic or bool(ITALIC_FONT_PATTERN.search(name))
        if bold != run.is_bold or italic != run.is_italic:
            run = dataclasses.replace(run, is_bold=bold, is_italic=italic)
        styled.append(run)
    return styled


def _is_underline(run, g_line):
    font_size = run.font_size or DEFAULT_BASE_FONT_SIZE
    bottom = run.y + font_size
    line_y = (g_line.y1 + g_line.y2) / 2
    y_min = bottom - font_size * UNDERLINE_DISTANCE_FACTOR
    y_max = bottom + max(UNDERLINE_MAX_DISTANCE, font_size * UNDERLINE_BELOW_FACTOR)
    if not (y_min <= line_y <= y_max):
        return False
    overlap = min(g_line.max_x, run.x1) - max(g_line.min_x, run.x)
    if overlap <= 0:
        return False
    return (
        overlap / run.width >= UNDERLINE_MIN_COVERAGE
        and g_line.length <= run.width * UNDERLINE_MAX_WIDTH_RATIO
    )


def detect_underlines(runs, graphics_lines):
    """Returns the runs with is_underlined set where a stroke sits under them."""
    candidates = [
        g
        for g in graphics_lines or []
        if g.orientation == "horizontal" and g.length < UNDERLINE_MAX_LENGTH
    ]
    if not candidates:
        return list(runs)
    result, count = [], 0
    for run in runs:
        if not run.is_underlined and run.width > 0:
            if any(_is_underline(run, g) for g in candidates):
                run = dataclasses.replace(run, is_underlined=True)
                count += 1
        result.append(run)
    if count:
        log_lines.debug("Underline detection: %d of %d runs underlined", count, len(runs))
    return result


def collate_runs(runs, x_tolerance=DEFAULT_X_TOLERANCE):
    """
    Joins runs left to right, inserting a space wherever a run starts more
    than `x_tolerance` after the previous one ended.
    """
    text, last_x1 = "", None
    for run in sorted(runs, key=lambda r: r.x):
        if last_x1 is not None and run.x > last_x1 + x_tolerance:
            text += " "
        text += run.text.replace("\u00ad", "")
        last_x1 = run.x1
    return re.sub(r"[ \t]+", " ", text).rstrip()


class LineBuilder:
    """
    Groups text runs into lines: runs are clustered by Y, then each Y band
    is split wherever the horizontal gap between runs is large enough to be
    a column gutter.
    """

    def __init__(self, base_font_size=DEFAULT_BASE_FONT_SIZE):
        self.base_font_size = base_font_size or DEFAULT_BASE_FONT_SIZE

    def build(self, runs, graphics_lines=None) -> list[Line]:
        """Builds y-sorted lines from the runs of one page."""
        runs = [
            r
            for r in runs or []
            if r.text
            and math.isfinite(r.x)
            and math.isfinite(r.y)
            and math.isfinite(r.width)
        ]
        if not runs:
            return []
        runs = detect_underlines(apply_font_styles(runs), graphics_lines)

        median_height = median([r.font_size for r in runs if r.font_size > 0])
        median_height = median_height or self.base_font_size
        y_tolerance = max(DEFAULT_Y_TOLERANCE, median_height * Y_TOLERANCE_MULTIPLIER)
        x_tolerance = max(DEFAULT_X_TOLERANCE, median_height * X_TOLERANCE_MULTIPLIER)

        lines = []
        for band in cluster_objects(runs, lambda r: r.y, y_tolerance):
            x_sorted = sorted(band, key=lambda r: r.x)
            for sub_cluster in self._split_by_x_gaps(x_sorted):
                text = collate_runs(sub_cluster, x_tolerance)
                if not text.strip():
                    continue
                lines.append(Line(sub_cluster, text.strip(), sub_cluster[0].page_num))
        lines.sort(key=lambda ln: (ln.page_num, ln.y, ln.x))
        log_lines.debug(
            "Built %d lines from %d runs (y_tol=%.2f, x_tol=%.2f)",
            len(lines),
            len(runs),
            y_tolerance,
            x_tolerance,
        )
        return lines

    @staticmethod
    def _gap_statistics(x_sorted):
        """Statistics over the gaps between consecutive run start positions."""
        starts = sorted(r.x for r in x_sorted)
        gaps = sorted(b - a for a, b in zip(starts, starts[1:]) if b - a > 0)
        font_sizes = [r.font_size or DEFAULT_BASE_FONT_SIZE for r in x_sorted]
        widths = [r.width or 0 for r in x_sorted]
        stats = {
            "avg_gap": mean(gaps),
            "median_gap": percentile(gaps, 50),
            "p75": percentile(gaps, 75),
            "p90": percentile(gaps, 90),
            "avg_font": mean(font_sizes) if font_sizes else DEFAULT_BASE_FONT_SIZE,
            "avg_width": mean(widths),
            "max_width": max(widths, default=0),
        }
        statistical = max(
            stats["p90"] * 0.7,
            stats["p75"] * 1.1,
            stats["median_gap"] * 1.8,
            stats["avg_gap"] * 1.6,
            stats["avg_font"],
            stats["avg_width"] * 1.3,
        )
        stats["column_gap_threshold"] = max(
            MIN_COLUMN_GAP,
            min(
                statistical,
                max(stats["avg_font"], stats["avg_width"] * 1.3, stats["max_width"] * 0.9),
            ),
        )
        return stats

    def _split_by_x_gaps(self, x_sorted):
        if len(x_sorted) < 2:
            return [x_sorted]
        stats = self._gap_statistics(x_sorted)
        clusters, current = [], [x_sorted[0]]
        for prev, item in zip(x_sorted, x_sorted[1:]):
            x_gap = item.x - prev.x1
            is_large = x_gap > stats["column_gap_threshold"]
            is_very_large = (
                x_gap > stats["avg_gap"] * 2.0 and x_gap > stats["median_gap"] * 2.5
            )
            is_relative = (
                stats["avg_width"] > 0
                and x_gap > stats["avg_width"]
                and x_gap > stats["avg_font"]
            )
            if is_large or is_very_large or is_relative:
                clusters.append(current)
                current = [item]
            else:
                current.append(item)
        clusters.append(current)
        if len(clusters) > 1:
            log_lines.debug(
                "Split Y band at y=%.1f into %d lines", x_sorted[0].y, len(clusters)
            )
        return clusters
