# --- playout_lib/models.py ---
"""
playout_lib/models.py: Data models for the layout reconstruction pipeline.

Physical layer: TextRun, Line, Column, GraphicsLine, GraphicsRectangle,
Viewport, PageInput. Logical layer: Block, ClassificationResult and the Element
variants (Heading, Paragraph, ListElement, Table, TableFragment).
"""
from dataclasses import dataclass, field


# --- PHYSICAL LAYER ---
@dataclass(frozen=True)
class TextRun:
    """A positioned run of text as supplied by the PDF decoder (view coordinates)."""

    text: str
    x: float
    y: float
    width: float
    font_size: float
    page_num: int = 1
    font_name: str = ""
    is_bold: bool = False
    is_italic: bool = False
    is_underlined: bool = False

    @property
    def x1(self):
        return self.x + self.width


@dataclass(frozen=True)
class GraphicsLine:
    """A near-horizontal or near-vertical stroke in view coordinates."""

    x1: float
    y1: float
    x2: float
    y2: float
    orientation: str  # "horizontal" | "vertical"
    thickness: float = 1.0

    @property
    def min_x(self):
        return min(self.x1, self.x2)

    @property
    def max_x(self):
        return max(self.x1, self.x2)

    @property
    def min_y(self):
        return min(self.y1, self.y2)

    @property
    def max_y(self):
        return max(self.y1, self.y2)

    @property
    def length(self):
        if self.orientation == "horizontal":
            return self.max_x - self.min_x
        return self.max_y - self.min_y


@dataclass(frozen=True)
class GraphicsRectangle:
    """An axis-aligned rectangle in view coordinates."""

    x: float
    y: float
    width: float
    height: float


@dataclass
class Viewport:
    """Maps PDF user space to the top-down page view."""

    width: float
    height: float
    transform: tuple = (1.0, 0.0, 0.0, -1.0, 0.0, 0.0)

    @classmethod
    def for_page(cls, x0, y0, x1, y1):
        """Builds the y-flipping viewport for a page with the given media box."""
        return cls(x1 - x0, y1 - y0, (1.0, 0.0, 0.0, -1.0, -x0, y1))


@dataclass
class PageInput:
    """Everything the decoder supplies for one page."""

    page_num: int
    text_runs: list = field(default_factory=list)
    operators: list = field(default_factory=list)
    viewport: Viewport = None


class Line:
    """A visual line: runs sharing a Y band, ordered left to right."""

    def __init__(self, runs, text, page_num=1):
        self.runs, self.text, self.page_num = runs, text, page_num
        self.x = min(r.x for r in runs) if runs else 0.0
        self.y = min(r.y for r in runs) if runs else 0.0
        self.font_size = max((r.font_size for r in runs), default=0.0)
        self.font_name = runs[0].font_name if runs else ""
        self.is_bold = any(r.is_bold for r in runs)
        self.is_italic = any(r.is_italic for r in runs)
        self.is_underlined = any(r.is_underlined for r in runs)
        self.column_index = None
        # Set on partial copies; points at the line the text was cut from
        self.source = None

    def with_text(self, text):
        """Returns a copy of this line that carries only part of its text."""
        line = Line(self.runs, text, self.page_num)
        line.column_index = self.column_index
        line.source = self.source or self
        return line

    @property
    def x1(self):
        return max((r.x1 for r in self.runs), default=self.x)

    @property
    def width(self):
        return self.x1 - self.x

    def __repr__(self):
        return f"Line(p{self.page_num} y={self.y:.1f} x={self.x:.1f} {self.text[:30]!r})"


class Column:
    """A vertical strip of a page; owns the lines assigned to it."""

    def __init__(self, lines, x, max_x):
        self.lines, self.x, self.max_x = lines, x, max_x
        # Lines that formed the cluster, before reassignment
        self.seed_lines = []

    @property
    def width(self):
        return self.max_x - self.x

    def __repr__(self):
        return f"Column(x={self.x:.1f}-{self.max_x:.1f}, {len(self.lines)} lines)"


# --- LOGICAL LAYER ---
class Block:
    """A contiguous run of lines considered one candidate structural unit."""

    def __init__(self, lines, is_list_heading=False, followed_by_list=False):
        self.lines = sorted(lines, key=lambda ln: ln.y)
        self.is_list_heading = is_list_heading
        self.followed_by_list = followed_by_list
        self.gap_after = None
        self.average_gap = 0.0
        self.boundary_gap = None
        self.refresh()

    def refresh(self):
        """Recomputes the derived attributes from the current lines."""
        self.text = " ".join(t for t in (ln.text.strip() for ln in self.lines) if t)
        self.min_y = min((ln.y for ln in self.lines), default=0.0)
        self.max_y = max((ln.y for ln in self.lines), default=0.0)
        self.min_x = min((ln.x for ln in self.lines), default=0.0)
        # Last line wins, as the block reads top to bottom
        self.font_size = self.lines[-1].font_size if self.lines else 0.0
        self.page_num = self.lines[-1].page_num if self.lines else 1
        self.is_bold = any(ln.is_bold for ln in self.lines)
        self.is_italic = any(ln.is_italic for ln in self.lines)
        self.is_underlined = any(ln.is_underlined for ln in self.lines)
        columns = [ln.column_index for ln in self.lines if ln.column_index is not None]
        self.column_index = columns[0] if columns else None

    def __repr__(self):
        return f"Block({len(self.lines)} lines, {self.text[:30]!r})"


class ClassificationResult:
    """One classifier's verdict: a kind, a confidence in [0, 1] and details."""

    def __init__(self, algorithm, kind, confidence, details=None):
        assert 0.0 <= confidence <= 1.0, f"{algorithm}: confidence {confidence} out of range"
        self.algorithm, self.kind, self.confidence = algorithm, kind, float(confidence)
        self.details = details or {}

    @property
    def is_positive(self):
        return not self.kind.startswith("not-")

    def __repr__(self):
        return f"ClassificationResult({self.algorithm}, {self.kind}, {self.confidence:.3f})"


class Element:
    """Base class for every output unit of a page."""

    kind = "element"

    def __init__(self, text, lines, page_num, min_y, max_y, confidence=0.5):
        self.text, self.lines, self.page_num = text, lines, page_num
        self.min_y, self.max_y = min_y, max_y
        self.confidence = confidence
        self.gap_after = None
        self.column_index = None
        self.column_x = None

    @classmethod
    def from_block(cls, block, confidence=0.5, **kwargs):
        element = cls(
            block.text,
            block.lines,
            block.page_num,
            block.min_y,
            block.max_y,
            confidence=confidence,
            **kwargs,
        )
        element.gap_after = block.gap_after
        element.column_index = block.column_index
        return element

    @property
    def min_x(self):
        return min((ln.x for ln in self.lines), default=0.0)

    def to_dict(self) -> dict:
        return {
            "type": self.kind,
            "text": self.text,
            "page": self.page_num,
            "min_y": round(self.min_y, 2),
            "max_y": round(self.max_y, 2),
            "confidence": round(self.confidence, 3),
        }

    def __repr__(self):
        return f"{type(self).__name__}(p{self.page_num} {self.text[:40]!r})"


class Heading(Element):
    kind = "heading"

    def __init__(self, *args, font_size=0.0, is_bold=False, is_italic=False,
                 is_underlined=False, is_list_heading=False, followed_by_list=False, **kwargs):
        super().__init__(*args, **kwargs)
        self.font_size = font_size
        self.is_bold, self.is_italic, self.is_underlined = is_bold, is_italic, is_underlined
        self.is_list_heading, self.followed_by_list = is_list_heading, followed_by_list

    @property
    def introduces_list(self):
        return self.is_list_heading or self.followed_by_list

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            font_size=self.font_size,
            bold=self.is_bold,
            italic=self.is_italic,
            underlined=self.is_underlined,
            introduces_list=self.introduces_list,
        )
        return data


class Paragraph(Element):
    kind = "paragraph"


class TableFragment(Element):
    """Provisional column-0 sub-block suspected of holding table cells."""

    kind = "table-fragment"


class ListItem:
    """A single list entry; nested entries live in `children`."""

    def __init__(self, text, level=0, is_ordered=False, page_num=1,
                 min_y=0.0, max_y=0.0, min_x=0.0):
        self.text, self.level, self.is_ordered = text, level, is_ordered
        self.page_num, self.min_y, self.max_y, self.min_x = page_num, min_y, max_y, min_x
        self.children: list[ListItem] = []

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "level": self.level,
            "ordered": self.is_ordered,
            "page": self.page_num,
            "items": [c.to_dict() for c in self.children],
        }


class ListElement(Element):
    """A list; owns its items exclusively."""

    kind = "list"

    def __init__(self, *args, ordered=False, level=0, marker=None, pattern=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.ordered, self.level = ordered, level
        self.marker, self.pattern = marker, pattern
        self.items: list[ListItem] = []
        self.block_min_x = None

    def add_item(self, item):
        """Appends an item, nesting it under the latest shallower item."""
        parent = None
        candidates = self.items
        while candidates and candidates[-1].level < item.level:
            parent = candidates[-1]
            candidates = parent.children
        (parent.children if parent else self.items).append(item)

    def iter_items(self):
        """Yields every item depth-first, in reading order."""
        stack = list(reversed(self.items))
        while stack:
            item = stack.pop()
            yield item
            stack.extend(reversed(item.children))

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            ordered=self.ordered,
            level=self.level,
            items=[i.to_dict() for i in self.items],
        )
        return data


class Table(Element):
    """A rectangular grid of cell texts."""

    kind = "table"

    def __init__(self, *args, rows=None, has_headers=False, columns=None, **kwargs):
        super().__init__(*args, **kwargs)
        rows = [list(r) for r in rows or []]
        width = max((len(r) for r in rows), default=0)
        self.rows = [r + [""] * (width - len(r)) for r in rows]
        self.has_headers = has_headers
        self.columns = list(columns or [])

    @property
    def row_count(self):
        return len(self.rows)

    @property
    def column_count(self):
        return max((len(r) for r in self.rows), default=0)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            rows=self.rows,
            row_count=self.row_count,
            column_count=self.column_count,
            has_headers=self.has_headers,
            columns=[round(c, 2) for c in self.columns],
        )
        return data
