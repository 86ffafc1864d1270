# --- playout_lib/graphics.py ---
"""
playout_lib/graphics.py: Vector-graphics evidence for table detection.

This module contains:
- Matrix: an immutable 2x3 affine transform (compose, invert, transform).
- GraphicsExtractor: replays a page's graphics operator stream with a CTM
  stack and emits border lines and rectangles in page-view coordinates.
- is_table_line, detect_table_regions, check_graphics_in_area: helpers that
  turn the extracted primitives into table evidence.
"""
import logging
import math
from dataclasses import dataclass

from .constants import (
    DEFAULT_BASE_FONT_SIZE,
    GRAPHICS_TOLERANCE_DEFAULT,
    GRAPHICS_TOLERANCE_MULTIPLIER,
    LINE_LENGTH_MULTIPLIER,
    LINE_LENGTH_THRESHOLD,
    LINE_THICKNESS_MULTIPLIER,
    LINE_THICKNESS_THRESHOLD,
    MIN_GRAPHICS_LINES_FOR_TABLE,
    SINGULAR_DETERMINANT,
    STROKE_AXIS_TOLERANCE,
    TABLE_Y_TOLERANCE_MULTIPLIER,
)
from .models import GraphicsLine, GraphicsRectangle
from .stats import js_round

log_gfx = logging.getLogger("playout.graphics")

# Segments from constructPath must be axis-aligned to this precision
PATH_AXIS_EPSILON = 0.01


@dataclass(frozen=True)
class Matrix:
    """Affine transform [a b c d e f]: x' = a*x + c*y + e, y' = b*x + d*y + f."""

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @classmethod
    def identity(cls):
        return cls()

    @classmethod
    def from_values(cls, values):
        a, b, c, d, e, f = (float(v) for v in values[:6])
        return cls(a, b, c, d, e, f)

    def compose(self, other: "Matrix") -> "Matrix":
        """Returns the transform applying `other` first, then `self`."""
        return Matrix(
            self.a * other.a + self.c * other.b,
            self.b * other.a + self.d * other.b,
            self.a * other.c + self.c * other.d,
            self.b * other.c + self.d * other.d,
            self.a * other.e + self.c * other.f + self.e,
            self.b * other.e + self.d * other.f + self.f,
        )

    @property
    def determinant(self):
        return self.a * self.d - self.b * self.c

    def invert(self) -> "Matrix | None":
        """Inverse transform, or None when the matrix is singular."""
        det = self.determinant
        if abs(det) < SINGULAR_DETERMINANT:
            return None
        return Matrix(
            self.d / det,
            -self.b / det,
            -self.c / det,
            self.a / det,
            (self.c * self.f - self.d * self.e) / det,
            (self.b * self.e - self.a * self.f) / det,
        )

    def transform(self, x, y):
        return self.a * x + self.c * y + self.e, self.b * x + self.d * y + self.f

    def transform_rect(self, x, y, width, height):
        """Bounding box (min_x, min_y, max_x, max_y) of a transformed rectangle."""
        corners = [
            self.transform(x, y),
            self.transform(x + width, y),
            self.transform(x + width, y + height),
            self.transform(x, y + height),
        ]
        xs = [p[0] for p in corners]
        ys = [p[1] for p in corners]
        return min(xs), min(ys), max(xs), max(ys)

    @property
    def has_translation(self):
        return self.e != 0 or self.f != 0


def line_thresholds(base_font_size=DEFAULT_BASE_FONT_SIZE):
    """Returns (thickness, length) limits for a stroke to count as a border."""
    thickness = max(LINE_THICKNESS_THRESHOLD, base_font_size * LINE_THICKNESS_MULTIPLIER)
    length = max(LINE_LENGTH_THRESHOLD, base_font_size * LINE_LENGTH_MULTIPLIER)
    return thickness, length


def is_table_line(x1, y1, x2, y2, base_font_size=DEFAULT_BASE_FONT_SIZE):
    """Returns the orientation ("horizontal"/"vertical") of a border segment, or None."""
    thickness, length = line_thresholds(base_font_size)
    width, height = abs(x2 - x1), abs(y2 - y1)
    if height < thickness and width > length:
        return "horizontal"
    if width < thickness and height > length:
        return "vertical"
    return None


class GraphicsExtractor:
    """
    Replays an operator stream of `(opcode, args)` tuples. The CTM stack is
    a plain list of immutable Matrix values; save pushes, restore pops.
    """

    def __init__(self, base_font_size=DEFAULT_BASE_FONT_SIZE):
        self.base_font_size = base_font_size or DEFAULT_BASE_FONT_SIZE

    def extract(self, operators, viewport, page_num=1) -> dict:
        """
        Returns `{"lines": [GraphicsLine], "rectangles": [GraphicsRectangle]}`.
        Any failure yields empty evidence rather than an exception.
        """
        try:
            return self._extract(operators or [], viewport, page_num)
        except Exception as e:
            log_gfx.warning("Graphics extraction failed on page %s: %s", page_num, e)
            return {"lines": [], "rectangles": []}

    def _extract(self, operators, viewport, page_num):
        self._view = Matrix.from_values(viewport.transform)
        self._height, self._width = viewport.height, viewport.width
        self._ctm, self._stack = Matrix.identity(), []
        self._text_matrix, self._in_text = Matrix.identity(), False
        self._path, self._line_width = [], 1.0
        self._segments, self._rectangles = [], []

        handlers = {
            "save": self._op_save,
            "restore": self._op_restore,
            "concat": self._op_concat,
            "moveTo": self._op_move_to,
            "lineTo": self._op_line_to,
            "closePath": self._op_close_path,
            "rectangle": self._op_rectangle,
            "stroke": self._op_stroke,
            "endPath": self._op_end_path,
            "setLineWidth": self._op_set_line_width,
            "constructPath": self._op_construct_path,
            "beginText": self._op_begin_text,
            "endText": self._op_end_text,
            "setTextMatrix": self._op_set_text_matrix,
        }
        skipped = 0
        for i, (opcode, args) in enumerate(operators):
            handler = handlers.get(opcode)
            if handler is None:
                continue
            try:
                handler(list(args or []))
            except (TypeError, ValueError, IndexError, ArithmeticError) as e:
                skipped += 1
                log_gfx.debug("Skipping operator #%d (%s) on page %s: %s", i, opcode, page_num, e)

        lines = []
        for x1, y1, x2, y2, width in self._segments:
            orientation = is_table_line(x1, y1, x2, y2, self.base_font_size)
            if orientation:
                lines.append(GraphicsLine(x1, y1, x2, y2, orientation, width))
        log_gfx.debug(
            "Page %s: %d operators, %d segments -> %d border lines, %d rectangles (%d skipped)",
            page_num,
            len(operators),
            len(self._segments),
            len(lines),
            len(self._rectangles),
            skipped,
        )
        return {"lines": lines, "rectangles": self._rectangles}

    # --- Coordinate helpers ---
    def _to_view(self, x, y, matrix=None):
        if matrix is not None:
            x, y = matrix.transform(x, y)
        vx, vy = self._view.transform(x, y)
        if not (math.isfinite(vx) and math.isfinite(vy)):
            raise ValueError("non-finite coordinate")
        return vx, vy

    def _plausible(self, *ys):
        return all(-self._height * 0.5 <= y <= self._height * 2.0 for y in ys)

    def _in_viewport(self, *points):
        return all(
            -self._height * 0.5 <= y <= self._height * 2.5
            and -self._width * 0.5 <= x <= self._width * 2.5
            for x, y in points
        )

    # --- State operators ---
    def _op_save(self, args):
        self._stack.append(self._ctm)

    def _op_restore(self, args):
        if self._stack:
            self._ctm = self._stack.pop()
        else:
            log_gfx.debug("restore with an empty CTM stack")

    def _op_concat(self, args):
        if len(args) >= 6:
            self._ctm = self._ctm.compose(Matrix.from_values(args))

    def _op_set_line_width(self, args):
        if args:
            self._line_width = float(args[0])

    def _op_begin_text(self, args):
        self._in_text, self._text_matrix = True, Matrix.identity()

    def _op_end_text(self, args):
        self._in_text = False

    def _op_set_text_matrix(self, args):
        if len(args) >= 6:
            self._text_matrix = Matrix.from_values(args)

    # --- Path operators ---
    def _path_point(self, x, y):
        vx, vy = self._to_view(float(x), float(y), self._ctm)
        if vy < 0:
            vy = self._height + vy
        return vx, vy

    def _op_move_to(self, args):
        if len(args) >= 2:
            self._path = [self._path_point(args[0], args[1])]

    def _op_line_to(self, args):
        if len(args) >= 2 and self._path:
            self._path.append(self._path_point(args[0], args[1]))

    def _op_close_path(self, args):
        if len(self._path) >= 2:
            self._path.append(self._path[0])

    def _op_end_path(self, args):
        self._path = []

    def _op_stroke(self, args):
        if len(self._path) < 2:
            return
        for (sx, sy), (ex, ey) in zip(self._path, self._path[1:]):
            axis_aligned = (
                abs(sy - ey) < STROKE_AXIS_TOLERANCE or abs(sx - ex) < STROKE_AXIS_TOLERANCE
            )
            if axis_aligned and self._in_viewport((sx, sy), (ex, ey)):
                self._segments.append((sx, sy, ex, ey, self._line_width))
        self._path = []

    def _op_rectangle(self, args):
        if len(args) < 4:
            return
        x, y, w, h = (float(v) for v in args[:4])
        min_x, min_y, max_x, max_y = self._ctm.transform_rect(x, y, w, h)
        bl = self._to_view(min_x, min_y)
        tr = self._to_view(max_x, max_y)
        vx1, vx2 = min(bl[0], tr[0]), max(bl[0], tr[0])
        vy1, vy2 = min(bl[1], tr[1]), max(bl[1], tr[1])
        width, height = max_x - min_x, max_y - min_y

        thickness, length = line_thresholds(self.base_font_size)
        if height < thickness and width > length:
            # Thin filled bar drawn as a horizontal border
            mid = (vy1 + vy2) / 2
            self._segments.append((vx1, mid, vx2, mid, height))
        elif width < thickness and height > length:
            mid = (vx1 + vx2) / 2
            self._segments.append((mid, vy1, mid, vy2, width))
        else:
            self._rectangles.append(GraphicsRectangle(vx1, vy1, width, height))

    def _op_construct_path(self, args):
        """
        Handles compacted path data: args[0] is the sub-operator list and
        each following entry a coordinate array whose first four numbers
        describe one segment.
        """
        for coords in args[1:]:
            try:
                if not isinstance(coords, (list, tuple)) or len(coords) < 4:
                    continue
                x1, y1, x2, y2 = (float(v) for v in coords[:4])
            except (TypeError, ValueError) as e:
                log_gfx.debug("Skipping constructPath coordinates %r: %s", coords, e)
                continue
            horizontal = abs(y1 - y2) < PATH_AXIS_EPSILON
            vertical = abs(x1 - x2) < PATH_AXIS_EPSILON
            if not (horizontal or vertical):
                continue
            start, end = self._choose_transform(x1, y1, x2, y2)
            self._segments.append((*start, *end, self._line_width))
            if not self._path:
                self._path = [start]
            self._path.append(end)

    def _choose_transform(self, x1, y1, x2, y2):
        """
        Maps a segment through the candidate transforms and keeps the first
        plausible one, in order: CTM, CTM plus text matrix, direct.
        """
        candidates = [("ctm", self._ctm)]
        if self._in_text or self._text_matrix.has_translation:
            candidates.append(("text-matrix", self._ctm.compose(self._text_matrix)))
        candidates.append(("direct", None))

        mapped = []
        for name, matrix in candidates:
            try:
                start = self._to_view(x1, y1, matrix)
                end = self._to_view(x2, y2, matrix)
            except ValueError:
                continue
            mapped.append((name, start, end))
            if self._plausible(start[1], end[1]):
                return start, end
        if not mapped:
            raise ValueError("segment could not be mapped")
        # Nothing plausible: the CTM result is the canonical mapping
        return mapped[0][1], mapped[0][2]


def detect_table_regions(lines, base_font_size=DEFAULT_BASE_FONT_SIZE):
    """
    Finds areas where horizontal and vertical border lines intersect on at
    least two distinct X and two distinct Y positions.
    """
    tolerance = base_font_size * TABLE_Y_TOLERANCE_MULTIPLIER
    horizontal = [ln for ln in lines if ln.orientation == "horizontal"]
    vertical = [ln for ln in lines if ln.orientation == "vertical"]

    intersections = []
    for h in horizontal:
        hy = (h.y1 + h.y2) / 2
        for v in vertical:
            vx = (v.x1 + v.x2) / 2
            if (
                h.min_x - tolerance <= vx <= h.max_x + tolerance
                and v.min_y - tolerance <= hy <= v.max_y + tolerance
            ):
                intersections.append((vx, hy))
    if not intersections:
        return []

    xs = sorted(p[0] for p in intersections)
    ys = sorted(p[1] for p in intersections)
    step = tolerance if tolerance > 0 else 1
    unique_xs = {js_round(x / step) * step for x in xs}
    unique_ys = {js_round(y / step) * step for y in ys}
    if len(unique_xs) < 2 or len(unique_ys) < 2:
        return []
    region = {
        "x": xs[0],
        "y": ys[0],
        "width": max(0.0, xs[-1] - xs[0]),
        "height": max(0.0, ys[-1] - ys[0]),
        "column_count": len(unique_xs) - 1,
        "row_count": len(unique_ys) - 1,
        "intersections": len(intersections),
    }
    log_gfx.debug("Table region from graphics: %s", region)
    return [region]


def check_graphics_in_area(items, graphics_data, tolerance=None,
                           base_font_size=DEFAULT_BASE_FONT_SIZE) -> dict:
    """
    Counts border lines that fall inside the bounding area of `items`
    (elements or blocks carrying `.lines`, or lines themselves).
    """
    empty = {"has_graphics": False, "horizontal_lines": 0, "vertical_lines": 0, "total_lines": 0}
    if not graphics_data or not graphics_data.get("lines") or not items:
        return empty
    if tolerance is None:
        tolerance = max(GRAPHICS_TOLERANCE_DEFAULT, base_font_size * GRAPHICS_TOLERANCE_MULTIPLIER)

    text_lines = []
    for item in items:
        text_lines.extend(getattr(item, "lines", None) or [item])
    if not text_lines:
        return empty
    min_x = min(ln.x for ln in text_lines) - tolerance
    max_x = max(ln.x1 for ln in text_lines) + tolerance
    min_y = min(ln.y for ln in text_lines) - tolerance
    max_y = max(ln.y for ln in text_lines) + tolerance

    horizontal = vertical = 0
    for gl in graphics_data["lines"]:
        if gl.orientation == "horizontal":
            y = (gl.y1 + gl.y2) / 2
            if min_y <= y <= max_y and gl.min_x <= max_x and gl.max_x >= min_x:
                horizontal += 1
        elif gl.orientation == "vertical":
            x = (gl.x1 + gl.x2) / 2
            if min_x <= x <= max_x and gl.min_y <= max_y and gl.max_y >= min_y:
                vertical += 1
    total = horizontal + vertical
    return {
        "has_graphics": total >= MIN_GRAPHICS_LINES_FOR_TABLE,
        "horizontal_lines": horizontal,
        "vertical_lines": vertical,
        "total_lines": total,
    }
