# --- playout_lib/columns.py ---
"""
playout_lib/columns.py: Multi-column detection and per-column processing.

This module contains:
- analyze_visual_structure: vertical density strips across the page width;
  empty strips between dense regions become column boundaries.
- ColumnDetector: combines line-start X clustering with the visual strips
  and assigns every line to exactly one column.
- process_lines_by_columns: runs a grouping function over each column with
  its own gap analysis and concatenates the results column by column.
"""
import logging
import math

from .constants import DEFAULT_BASE_FONT_SIZE, DEFAULT_X_TOLERANCE
from .gaps import analyze_gaps
from .models import Column
from .stats import cluster_objects, mean

log_cols = logging.getLogger("playout.columns")

# Average glyph width, relative to font size, for lines without runs
CHAR_WIDTH_FACTOR = 0.6
Y_COVERAGE_QUANTUM = 5
ASSIGNMENT_MIN_SCORE = 0.4


def line_right(line, base_font_size=DEFAULT_BASE_FONT_SIZE):
    """Right edge of a line; estimated from its text when it has no runs."""
    if getattr(line, "runs", None):
        return max(line.x, max(r.x1 for r in line.runs))
    return line.x + len(line.text or "") * base_font_size * CHAR_WIDTH_FACTOR


def analyze_visual_structure(lines, viewport, base_font_size=DEFAULT_BASE_FONT_SIZE) -> dict:
    """
    Buckets the page width and measures how much text covers each bucket.
    Runs of empty or sparse buckets wide enough to be a gutter, with dense
    text on both sides (or simply very wide), become column boundaries.
    """
    empty = {"strips": [], "column_gaps": [], "column_boundaries": [], "bucket_width": 0}
    if not lines or viewport is None:
        return empty

    width = viewport.width or 800
    height = viewport.height or 600
    bucket_width = max(10, base_font_size * 0.5)
    num_buckets = int(math.ceil(width / bucket_width))
    counts = [0] * num_buckets
    coverage = [set() for _ in range(num_buckets)]

    for line in lines:
        left, right = line.x, line_right(line, base_font_size)
        start = max(0, int(math.floor(left / bucket_width)))
        end = min(num_buckets, int(math.ceil(right / bucket_width)))
        for idx in range(start, end):
            overlap = min(right, (idx + 1) * bucket_width) - max(left, idx * bucket_width)
            if overlap > 0:
                counts[idx] += 1
                coverage[idx].add(int(math.floor(line.y / Y_COVERAGE_QUANTUM)))

    avg_per_bucket = len(lines) / num_buckets if num_buckets else 0
    max_density = max(counts, default=0) / bucket_width
    strips = []
    for idx in range(num_buckets):
        count = counts[idx]
        coverage_ratio = len(coverage[idx]) / (height / Y_COVERAGE_QUANTUM)
        density = count / bucket_width
        is_dense = (
            (count > 0 and count >= avg_per_bucket * 1.5)
            or coverage_ratio >= 0.08
            or (count > 0 and coverage_ratio >= 0.03)
            or (density > 0 and density >= max_density * 0.3)
        )
        strips.append(
            {
                "x_start": idx * bucket_width,
                "x_end": (idx + 1) * bucket_width,
                "line_count": count,
                "coverage_ratio": coverage_ratio,
                "is_dense": is_dense,
                "is_sparse": count == 0
                or (count < avg_per_bucket * 0.7 and coverage_ratio < 0.03),
            }
        )

    min_gap_width = max(base_font_size * 1.2, bucket_width * 2)
    gaps, region = [], []
    for idx, strip in enumerate(strips + [None]):
        if strip is not None and strip["is_sparse"]:
            region.append(strip)
            continue
        if not region:
            continue
        gap_width = region[-1]["x_end"] - region[0]["x_start"]
        left_idx = max(0, idx - len(region) - 1)
        left_dense = strips[left_idx]["is_dense"]
        right_dense = strip is not None and strip["is_dense"]
        between = left_dense and right_dense
        if gap_width >= min_gap_width:
            trailing_ok = strip is None and left_dense
            if between or (strip is not None and gap_width >= base_font_size * 2.5) or trailing_ok:
                gaps.append(
                    {
                        "x_start": region[0]["x_start"],
                        "x_end": region[-1]["x_end"],
                        "width": gap_width,
                        "is_between_columns": between,
                    }
                )
        region = []

    boundaries = []
    for b in sorted((g["x_start"] + g["x_end"]) / 2 for g in gaps):
        if not boundaries or b - boundaries[-1] >= base_font_size:
            boundaries.append(b)
    log_cols.debug(
        "Visual structure: %d buckets of %.1fpt, %d gaps, boundaries=%s",
        num_buckets,
        bucket_width,
        len(gaps),
        [round(b, 1) for b in boundaries],
    )
    return {
        "strips": strips,
        "column_gaps": gaps,
        "column_boundaries": boundaries,
        "bucket_width": bucket_width,
    }


class ColumnDetector:
    """
    Detects text columns two ways (line-start X clustering and empty
    vertical strips), keeps the richer answer and assigns every line to
    exactly one column. A single-column page yields an empty list.
    """

    def __init__(self, base_font_size=DEFAULT_BASE_FONT_SIZE):
        self.base_font_size = base_font_size or DEFAULT_BASE_FONT_SIZE

    def detect(self, lines, viewport=None, visual_structure=None) -> list[Column]:
        if not lines:
            return []
        min_lines = max(3, len(lines) // 20)
        by_x = self._detect_by_x_clustering(lines, min_lines)
        if visual_structure is None:
            visual_structure = analyze_visual_structure(lines, viewport, self.base_font_size)
        by_visual = self._detect_by_visual_structure(
            lines, viewport, visual_structure, min_lines
        )

        # The visual answer wins ties; otherwise the one with more columns
        if len(by_visual) >= len(by_x) and by_visual:
            columns, method = by_visual, "visual-structure"
        else:
            columns, method = by_x, "x-clustering"
        columns.sort(key=lambda c: c.x)
        self._resolve_overlaps(columns)
        if len(columns) <= 1:
            log_cols.debug("Single column layout (%d lines).", len(lines))
            return []

        self._assign_every_line(lines, columns)
        columns = [c for c in columns if c.lines]
        if len(columns) <= 1:
            return []
        for idx, column in enumerate(columns):
            column.lines.sort(key=lambda ln: (ln.y, ln.x))
            for line in column.lines:
                line.column_index = idx
        log_cols.debug("Detected %d columns via %s: %s", len(columns), method, columns)
        return columns

    def _bounds(self, lines):
        """Column extent: leftmost start to the 90th percentile right edge."""
        rights = sorted(line_right(ln, self.base_font_size) for ln in lines)
        max_x = rights[min(int(len(rights) * 0.9), len(rights) - 1)]
        return min(ln.x for ln in lines), max_x + self.base_font_size * 0.5

    def _detect_by_x_clustering(self, lines, min_lines):
        tolerance = max(DEFAULT_X_TOLERANCE, self.base_font_size * 2)
        clusters = cluster_objects(
            [ln for ln in lines if math.isfinite(ln.x) and ln.x >= 0], lambda ln: ln.x, tolerance
        )
        candidates = []
        for cluster in clusters:
            anchor = cluster[0].x
            members = [ln for ln in lines if abs(ln.x - anchor) <= tolerance]
            if len(members) >= min_lines:
                x, max_x = self._bounds(members)
                column = Column([], x, max_x)
                column.seed_lines = sorted(members, key=lambda ln: ln.y)
                candidates.append(column)
        if len(candidates) <= 1:
            return candidates

        for line in lines:
            best, best_score = None, -1.0
            for column in candidates:
                score = self._assignment_score(line, column)
                if score > best_score:
                    best, best_score = column, score
            if best is not None and best_score >= ASSIGNMENT_MIN_SCORE:
                best.lines.append(line)
                continue
            nearest = min(candidates, key=lambda c: abs(line.x - c.x))
            if abs(line.x - nearest.x) <= nearest.width * 2:
                nearest.lines.append(line)

        for column in candidates:
            if column.lines:
                column.x, column.max_x = self._bounds(column.lines)
        return [c for c in candidates if len(c.lines) >= min_lines]

    def _assignment_score(self, line, column):
        left, right = line.x, line_right(line, self.base_font_size)
        overlap = max(0.0, min(right, column.max_x) - max(left, column.x))
        line_ratio = overlap / (right - left) if right > left else 0.0
        column_ratio = overlap / column.width if column.width > 0 else 0.0
        reference = column.lines or column.seed_lines
        if not reference:
            proximity = 0.5
        else:
            distance = min(abs(line.y - ln.y) for ln in reference)
            if distance <= self.base_font_size * 3:
                proximity = 1.0
            elif distance <= self.base_font_size * 10:
                proximity = 0.7
            else:
                proximity = 0.3
        horizontal = line_ratio * 0.7 + column_ratio * 0.3
        return horizontal * 0.7 + proximity * 0.3

    def _detect_by_visual_structure(self, lines, viewport, visual, min_lines):
        boundaries = visual.get("column_boundaries") or []
        if not boundaries:
            return []
        width = viewport.width if viewport is not None and viewport.width else 1000
        edges = [0.0] + boundaries + [width]
        columns = []
        for start, end in zip(edges, edges[1:]):
            members = []
            for line in lines:
                left, right = line.x, line_right(line, self.base_font_size)
                overlap = max(0.0, min(right, end) - max(left, start))
                if right > left and overlap / (right - left) >= 0.5:
                    members.append(line)
            if len(members) >= min_lines:
                x = min(ln.x for ln in members)
                max_x = max(line_right(ln, self.base_font_size) for ln in members)
                columns.append(Column(members, x, max_x))
        return columns

    @staticmethod
    def _resolve_overlaps(columns):
        """Splits overlapping neighbours at the midpoint of the overlap."""
        for prev, column in zip(columns, columns[1:]):
            if column.x < prev.max_x:
                midpoint = (prev.max_x + column.x) / 2
                prev.max_x = midpoint
                column.x = midpoint

    def _assign_every_line(self, lines, columns):
        """
        Rebuilds the column line lists so each line sits in exactly one
        column: the one already holding it, else the one it overlaps most,
        else the nearest.
        """
        owner = {}
        for idx, column in enumerate(columns):
            for line in column.lines:
                owner.setdefault(id(line), idx)
        for column in columns:
            column.lines = []
        for line in lines:
            idx = owner.get(id(line))
            if idx is None:
                idx = self._best_column(line, columns)
            columns[idx].lines.append(line)

    def _best_column(self, line, columns):
        left, right = line.x, line_right(line, self.base_font_size)

        def rank(idx):
            column = columns[idx]
            overlap = max(0.0, min(right, column.max_x) - max(left, column.x))
            if left < column.x:
                distance = column.x - left
            elif left > column.max_x:
                distance = left - column.max_x
            else:
                distance = 0.0
            return (-overlap, distance)

        return min(range(len(columns)), key=rank)


def process_lines_by_columns(lines, viewport, metrics, process_function) -> list:
    """
    Detects columns and runs `process_function(lines, metrics, gap_analysis)`
    over each one. Elements are tagged with their column and ordered top to
    bottom inside each column, columns left to right.
    """
    if not lines:
        return []
    base = metrics.base_font_size if metrics else DEFAULT_BASE_FONT_SIZE

    try:
        visual = analyze_visual_structure(lines, viewport, base)
    except Exception as e:
        log_cols.warning("Visual structure analysis failed: %s", e)
        visual = None
    try:
        columns = ColumnDetector(base).detect(lines, viewport, visual)
    except Exception as e:
        log_cols.warning("Column detection failed, treating page as one column: %s", e)
        columns = []

    if not columns:
        for line in lines:
            line.column_index = 0
        elements = process_function(lines, metrics, None)
        for element in elements:
            element.column_index = 0
            element.column_x = min((ln.x for ln in lines), default=0.0)
        return elements

    all_elements = []
    for idx, column in enumerate(columns):
        try:
            gap_analysis = analyze_gaps(column.lines) if len(column.lines) >= 2 else None
            elements = process_function(column.lines, metrics, gap_analysis)
        except Exception as e:
            log_cols.warning(
                "Processing column %d (%d lines) failed: %s", idx, len(column.lines), e
            )
            elements = []
        for element in elements:
            element.column_index = idx
            element.column_x = column.x
        elements.sort(key=lambda el: el.min_y if el.min_y else _first_line_y(el))
        log_cols.debug(
            "Column %d: %d lines -> %d elements (avg %.0f chars)",
            idx,
            len(column.lines),
            len(elements),
            mean([len(el.text) for el in elements]),
        )
        all_elements.extend(elements)
    return all_elements


def _first_line_y(element):
    lines = getattr(element, "lines", None)
    return lines[0].y if lines else 0.0
