# --- playout_lib/tables.py ---
"""
playout_lib/tables.py: Table reconstruction.

This module contains:
- extract_table_structure: rows and cells of a single block whose lines form
  a grid (columns from clustered run positions, rows from Y bands).
- detect_table_headers: header-row detection (bold, keywords, empty cells).
- split_table_blocks: carves "table-fragment" lines out of column-0
  paragraphs when they share rows with other columns.
- merge_column_tables: joins elements of different columns that share
  normalized Y rows into Table elements.
"""
import logging
import math

from .classifiers import classify_table
from .constants import (
    DEFAULT_BASE_FONT_SIZE,
    TABLE_CELL_TOLERANCE_MULTIPLIER,
    TABLE_COLUMN_MIN_OCCURRENCE_RATIO,
    TABLE_COLUMN_TOLERANCE_MULTIPLIER,
    TABLE_GAP_CV_THRESHOLD,
    TABLE_GAP_SIZE_MULTIPLIER,
    TABLE_HEADER_BOLD_RATIO,
    TABLE_HEADER_EMPTY_CELL_RATIO,
    TABLE_HEADER_WORDS,
    TABLE_MAX_AVG_CELL_LENGTH,
    TABLE_MAX_CELL_LENGTH,
    TABLE_MAX_LONG_CELL_LENGTH,
    TABLE_MAX_LONG_CELL_RATIO,
    TABLE_MIN_COLUMNS,
    TABLE_MIN_CONFIDENCE,
    TABLE_MIN_ROWS,
    TABLE_PARAGRAPH_AVG_LINE_LENGTH,
    TABLE_PARAGRAPH_LINE_COUNT,
    TABLE_PARAGRAPH_TEXT_LENGTH,
    TABLE_ROW_GAP_MULTIPLIER,
    TABLE_ROW_TOLERANCE_MULTIPLIER,
    TABLE_Y_TOLERANCE_MULTIPLIER,
)
from .graphics import check_graphics_in_area
from .models import Block, Paragraph, Table, TableFragment
from .stats import cluster_objects, median, nearest_cluster_index, std, y_key

log_tables = logging.getLogger("playout.tables")


def _base_font(metrics):
    return getattr(metrics, "base_font_size", None) or DEFAULT_BASE_FONT_SIZE


def _line_items(lines):
    """(text, x, x1, line) for every run; partial line copies count as one item."""
    items = []
    for line in lines:
        if line.runs and line.source is None:
            items.extend((r.text, r.x, r.x1, line) for r in line.runs if r.x >= 0)
        elif line.x >= 0:
            items.append((line.text, line.x, line.x1, line))
    return items


# --- SINGLE-BLOCK EXTRACTION ---
def detect_table_columns(lines, base_font_size=DEFAULT_BASE_FONT_SIZE):
    """
    Column X positions of a grid: run start positions clustered with a
    tolerance of `base * k`, keeping clusters that occur on enough lines.
    """
    tolerance = base_font_size * TABLE_COLUMN_TOLERANCE_MULTIPLIER
    weights = {}
    for _, x, _, _ in _line_items(lines):
        weights[x] = weights.get(x, 0) + 1
    if not weights:
        return []
    clusters = cluster_objects(list(weights), lambda x: x, tolerance)
    min_occurrences = max(2, math.floor(len(lines) * TABLE_COLUMN_MIN_OCCURRENCE_RATIO))
    columns = [
        median(cluster)
        for cluster in clusters
        if sum(weights[x] for x in cluster) >= min_occurrences
    ]
    return sorted(columns)


def group_lines_into_rows(lines, base_font_size=DEFAULT_BASE_FONT_SIZE):
    """Y bands: a new row starts when the gap to the previous line exceeds the tolerance."""
    if not lines:
        return []
    tolerance = base_font_size * TABLE_ROW_TOLERANCE_MULTIPLIER
    ordered = sorted(lines, key=lambda ln: (ln.y, ln.x))
    rows = [[ordered[0]]]
    for prev, line in zip(ordered, ordered[1:]):
        if line.y - prev.y <= tolerance:
            rows[-1].append(line)
        else:
            rows.append([line])
    return rows


def _cell_index(x, x1, columns, tolerance):
    """Column of an item: largest overlap with a column span, else the nearest column."""
    width = x1 - x
    best, best_ratio = None, 0.0
    for i, column_x in enumerate(columns):
        left = column_x - tolerance
        right = columns[i + 1] - tolerance if i + 1 < len(columns) else math.inf
        if width > 0:
            ratio = (min(x1, right) - max(x, left)) / width
        else:
            ratio = 1.0 if left <= x < right else 0.0
        if ratio > best_ratio:
            best, best_ratio = i, ratio
    if best is None:
        best = nearest_cluster_index(x, columns)
    return best


def split_row_into_cells(row_lines, columns, base_font_size=DEFAULT_BASE_FONT_SIZE):
    """Distributes the items of one row over the columns; every item lands in one cell."""
    if not columns:
        return [" ".join(ln.text for ln in row_lines).strip()]
    tolerance = base_font_size * TABLE_CELL_TOLERANCE_MULTIPLIER
    cells = [[] for _ in columns]
    for text, x, x1, _ in sorted(_line_items(row_lines), key=lambda item: item[1]):
        if text and text.strip():
            cells[_cell_index(x, x1, columns, tolerance)].append(text.strip())
    return [" ".join(parts) for parts in cells]


def detect_table_headers(table_rows, row_lines) -> bool:
    """
    True if the first row looks like a header: mostly bold, containing a
    header keyword, or with clearly fewer empty cells than the body rows.
    """
    if not table_rows:
        return False
    first_row = table_rows[0]
    if row_lines and row_lines[0]:
        bold = sum(1 for ln in row_lines[0] if ln.is_bold)
        if bold / len(row_lines[0]) > TABLE_HEADER_BOLD_RATIO:
            return True
    first_text = " ".join(first_row).lower()
    if any(word in first_text for word in TABLE_HEADER_WORDS):
        return True
    first_empty = sum(1 for cell in first_row if not cell.strip())
    body = table_rows[1:]
    avg_empty = sum(sum(1 for c in row if not c.strip()) for row in body) / max(len(body), 1)
    return first_empty < avg_empty * TABLE_HEADER_EMPTY_CELL_RATIO


def extract_table_structure(block, metrics=None) -> dict | None:
    """
    Derives rows and cells from one block's own lines. Returns None when
    fewer than TABLE_MIN_COLUMNS columns or TABLE_MIN_ROWS rows are found.
    """
    lines = getattr(block, "lines", None) or []
    if not lines:
        return None
    base = _base_font(metrics)
    columns = detect_table_columns(lines, base)
    if len(columns) < TABLE_MIN_COLUMNS:
        log_tables.debug("Table extraction: %d columns, not a table", len(columns))
        return None
    rows = group_lines_into_rows(lines, base)
    if len(rows) < TABLE_MIN_ROWS:
        log_tables.debug("Table extraction: %d rows, not a table", len(rows))
        return None
    table_rows = [split_row_into_cells(row, columns, base) for row in rows]
    has_headers = detect_table_headers(table_rows, rows)
    log_tables.debug(
        "Extracted %dx%d table (headers=%s), first row %s",
        len(table_rows),
        len(columns),
        has_headers,
        [c[:20] for c in table_rows[0]],
    )
    return {
        "rows": table_rows,
        "has_headers": has_headers,
        "column_count": len(columns),
        "row_count": len(table_rows),
        "columns": columns,
    }


# --- HELPERS SHARED BY SPLITTER AND MERGER ---
def analyze_gap_pattern(lines, base_font_size=DEFAULT_BASE_FONT_SIZE) -> dict:
    """Small, regular line gaps mean running text rather than table rows."""
    result = {"has_regular_gap_pattern": False, "avg_gap": 0.0, "gap_cv": 1.0}
    if not lines or len(lines) < 3:
        return result
    ys = sorted(ln.y for ln in lines)
    gaps = [b - a for a, b in zip(ys, ys[1:]) if b - a > 0]
    if len(gaps) < 2:
        result["avg_gap"] = gaps[0] if gaps else 0.0
        return result
    avg_gap = sum(gaps) / len(gaps)
    gap_cv = std(gaps) / avg_gap if avg_gap > 0 else 1.0
    result.update(
        avg_gap=avg_gap,
        gap_cv=gap_cv,
        has_regular_gap_pattern=(
            gap_cv < TABLE_GAP_CV_THRESHOLD and avg_gap < base_font_size * TABLE_GAP_SIZE_MULTIPLIER
        ),
    )
    return result


def _has_graphics(elements, metrics, base_font_size):
    get_graphics = getattr(metrics, "get_graphics", None)
    if not elements or get_graphics is None:
        return False
    data = get_graphics(elements[0].page_num)
    if not data:
        return False
    return check_graphics_in_area(elements, data, None, base_font_size)["has_graphics"]


def _is_running_text(element):
    text_length = len(element.text or "")
    line_count = len(element.lines) or 1
    many_long_lines = (
        line_count >= TABLE_PARAGRAPH_LINE_COUNT
        and text_length / line_count > TABLE_PARAGRAPH_AVG_LINE_LENGTH
    )
    return text_length > TABLE_PARAGRAPH_TEXT_LENGTH or many_long_lines


def _sub_element(cls, lines, original):
    element = cls.from_block(Block(lines), original.confidence)
    element.column_index = original.column_index
    element.column_x = original.column_x
    element.gap_after = original.gap_after
    return element


def column_of(element):
    """Column index used for row matching; table fragments come from column 0."""
    if element.kind == TableFragment.kind:
        return 0
    return element.column_index


# --- TABLE BLOCK SPLITTER ---
def split_table_blocks(elements, metrics=None) -> list:
    """
    Splits column-0 paragraphs whose lines share normalized rows with other
    columns into a paragraph (the remaining lines) and a TableFragment.
    Paragraphs with a regular line-gap pattern stay intact.
    """
    if not elements:
        return elements
    base = _base_font(metrics)
    y_tolerance = base * TABLE_Y_TOLERANCE_MULTIPLIER
    others = [el for el in elements if el.column_index not in (None, 0)]
    if not others:
        return elements
    table_keys = set()
    for el in others:
        if el.lines:
            table_keys.update(y_key(ln.y, y_tolerance) for ln in el.lines)
        else:
            table_keys.add(y_key(el.min_y, y_tolerance))

    result, split_count = [], 0
    for element in elements:
        if element.column_index != 0 or element.kind != Paragraph.kind or not element.lines:
            result.append(element)
            continue
        graphics = _has_graphics([element], metrics, base)
        if _is_running_text(element) and not graphics:
            result.append(element)
            continue
        table_lines = [ln for ln in element.lines if y_key(ln.y, y_tolerance) in table_keys]
        regular = analyze_gap_pattern(element.lines, base)["has_regular_gap_pattern"]
        if regular or not table_lines:
            result.append(element)
            continue
        rest = [ln for ln in element.lines if y_key(ln.y, y_tolerance) not in table_keys]
        if rest:
            result.append(_sub_element(Paragraph, rest, element))
        result.append(_sub_element(TableFragment, table_lines, element))
        split_count += 1
        log_tables.debug(
            "Split %d table lines from column-0 block %r", len(table_lines), element.text[:30]
        )
    if split_count:
        log_tables.info("Table block splitter: %d column-0 blocks split", split_count)
    return result


# --- TABLE COLUMN MERGER ---
def collect_row_candidates(elements, y_tolerance) -> list[dict]:
    """
    Groups elements by the normalized Y of their lines. Returns the rows
    holding elements from at least two columns, sorted top to bottom, as
    dicts with `y`, `elements` (ordered by column), `lines` (the lines each
    element contributes, keyed by element id) and `column_count`.
    """
    rows = {}
    for element in elements:
        placed = [(ln.y, ln) for ln in element.lines if ln.y >= 0]
        if not placed:
            placed = [(element.min_y, ln) for ln in element.lines]
        for y, line in placed:
            key = y_key(y, y_tolerance)
            if key not in rows:
                # Neighbouring keys within the tolerance share a row
                key = next((k for k in rows if abs(k - key) <= y_tolerance + 0.01), key)
            row = rows.setdefault(key, {"elements": [], "lines": {}})
            if not any(m is element for m in row["elements"]):
                row["elements"].append(element)
            row["lines"].setdefault(id(element), []).append(line)

    candidates = []
    for key, row in rows.items():
        members = row["elements"]
        columns = {column_of(m) for m in members if column_of(m) is not None}
        if len(columns) < 2:
            continue
        members.sort(key=lambda m: column_of(m) if column_of(m) is not None else -1)
        candidates.append(
            {"y": key, "elements": members, "lines": row["lines"], "column_count": len(columns)}
        )
    candidates.sort(key=lambda row: row["y"])
    return candidates


def _row_lines(row, element, used):
    return [ln for ln in row["lines"].get(id(element), []) if id(ln) not in used]


def validate_table_structure(rows, metrics=None):
    """
    Re-classifies the pooled row lines and checks the cell lengths. Border
    lines drawn around the area relax the short-cell requirement.
    Returns (is_valid, confidence).
    """
    if len(rows) < TABLE_MIN_ROWS:
        return False, 0.0
    base = _base_font(metrics)
    pooled, cell_lengths, long_rows = [], [], 0
    for row in rows:
        row_lengths = []
        for element in row["elements"]:
            lines = _row_lines(row, element, set())
            pooled.extend(lines)
            row_lengths.append(len(" ".join(ln.text for ln in lines).strip()))
        cell_lengths.extend(row_lengths)
        if row_lengths and sum(row_lengths) / len(row_lengths) > TABLE_MAX_LONG_CELL_LENGTH:
            long_rows += 1
    if len(pooled) < 2:
        return False, 0.0

    classification = classify_table(Block(pooled), metrics)
    is_table = (
        classification.kind == "table" and classification.confidence >= TABLE_MIN_CONFIDENCE
    )
    avg_cell = sum(cell_lengths) / len(cell_lengths) if cell_lengths else 0.0
    max_cell = max(cell_lengths, default=0)
    reasonable_cells = avg_cell < TABLE_MAX_AVG_CELL_LENGTH and max_cell < TABLE_MAX_CELL_LENGTH
    mostly_short = long_rows / len(rows) < TABLE_MAX_LONG_CELL_RATIO
    elements = [el for row in rows for el in row["elements"]]
    graphics = _has_graphics(elements, metrics, base)
    log_tables.debug(
        "Validate %d rows: table=%.2f avg cell=%.1f max cell=%d long rows=%d graphics=%s",
        len(rows),
        classification.confidence,
        avg_cell,
        max_cell,
        long_rows,
        graphics,
    )
    if graphics:
        return is_table and reasonable_cells, classification.confidence
    return is_table and reasonable_cells and mostly_short, classification.confidence


def _create_table(rows, confidence, metrics, used):
    base = _base_font(metrics)
    width = max(row["column_count"] for row in rows)
    table_rows, row_lines, all_lines = [], [], []
    for row in rows:
        cells, lines_in_row = [], []
        for element in row["elements"]:
            lines = _row_lines(row, element, used)
            used.update(id(ln) for ln in lines)
            lines_in_row.extend(lines)
            cells.append(" ".join(ln.text.strip() for ln in lines).strip())
        table_rows.append(cells + [""] * (width - len(cells)))
        row_lines.append(lines_in_row)
        all_lines.extend(lines_in_row)

    if not all_lines:
        return None
    first = rows[0]["elements"][0]
    table = Table(
        "\n".join(" ".join(c for c in row if c) for row in table_rows),
        all_lines,
        first.page_num,
        min(ln.y for ln in all_lines),
        max(ln.y for ln in all_lines),
        confidence=confidence,
        rows=table_rows,
        has_headers=detect_table_headers(table_rows, row_lines),
        columns=detect_table_columns(all_lines, base),
    )
    table.column_index = column_of(first)
    table.column_x = first.column_x
    return table


def _as_paragraph(fragment):
    paragraph = Paragraph(
        fragment.text,
        fragment.lines,
        fragment.page_num,
        fragment.min_y,
        fragment.max_y,
        confidence=fragment.confidence,
    )
    paragraph.column_index = fragment.column_index
    paragraph.column_x = fragment.column_x
    paragraph.gap_after = fragment.gap_after
    return paragraph


def _page_tables(page_elements, metrics, used):
    """Finds the tables of one page; returns a list of (table, consumed elements)."""
    base = _base_font(metrics)
    y_tolerance = base * TABLE_Y_TOLERANCE_MULTIPLIER
    row_gap_tolerance = base * TABLE_ROW_GAP_MULTIPLIER

    candidates = []
    for element in page_elements:
        if element.kind in ("heading", "table") or column_of(element) is None:
            continue
        if element.kind == Paragraph.kind and _is_running_text(element):
            if not _has_graphics([element], metrics, base):
                continue
        candidates.append(element)
    if len(candidates) < 2:
        return []

    tables, chain = [], []

    def flush():
        if len(chain) < TABLE_MIN_ROWS:
            return
        valid, confidence = validate_table_structure(chain, metrics)
        if not valid:
            log_tables.debug("Rejected %d-row table candidate", len(chain))
            return
        table = _create_table(list(chain), confidence, metrics, used)
        if table is None:
            return
        consumed = []
        for row in chain:
            consumed.extend(el for el in row["elements"] if not any(el is c for c in consumed))
        tables.append((table, consumed))

    for row in collect_row_candidates(candidates, y_tolerance):
        if chain:
            prev = chain[-1]
            if row["y"] - prev["y"] <= row_gap_tolerance and row["column_count"] == prev["column_count"]:
                chain.append(row)
                continue
            flush()
        chain = [row]
    flush()
    return tables


def merge_column_tables(elements, metrics=None) -> list:
    """
    Builds Table elements from rows shared by several columns. Consumed
    elements are replaced by the table (placed where the first of them was);
    their lines outside the table rows stay as paragraphs. Table fragments
    that no table used become paragraphs again.
    """
    if not elements:
        return elements
    pages = {}
    for element in elements:
        pages.setdefault(element.page_num, []).append(element)

    used, consumed_ids, anchored = set(), set(), {}
    for page_num, page_elements in pages.items():
        try:
            page_tables = _page_tables(page_elements, metrics, used)
        except Exception as e:
            log_tables.warning("Page %s: merging column tables failed: %s", page_num, e)
            continue
        for table, consumed in page_tables:
            log_tables.info(
                "Page %s: %dx%d table from %d column elements",
                page_num,
                table.row_count,
                table.column_count,
                len(consumed),
            )
            anchored.setdefault(id(consumed[0]), []).append(table)
            consumed_ids.update(id(el) for el in consumed)

    result = []
    for element in elements:
        if id(element) not in consumed_ids:
            if element.kind == TableFragment.kind:
                result.append(_as_paragraph(element))
            else:
                result.append(element)
            continue
        result.extend(anchored.get(id(element), []))
        leftover = [ln for ln in element.lines if id(ln) not in used]
        if leftover:
            result.append(_sub_element(Paragraph, leftover, element))
    return result
