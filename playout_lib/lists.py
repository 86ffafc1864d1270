# --- playout_lib/lists.py ---
"""
playout_lib/lists.py: List reconstruction.

This module contains:
- split_list_headings: breaks "Heading: • item • item" blocks (on one line or
  across two lines) into a heading block plus one block per list item.
- make_list_element: turns a block decided to be a list into a ListElement
  with one ListItem per marker line.
- group_list_items: merges consecutive list elements of the same kind and
  level, nests indented lists and resumes interrupted ordered lists.
"""
import logging

from .classifiers import extract_list_info
from .constants import (
    COLON_END_PATTERN,
    CONTAINS_LIST_ITEM_PATTERN,
    DEFAULT_BASE_FONT_SIZE,
    HEADING_LIST_PATTERN,
    INLINE_MARKER_PATTERN,
    LETTER_MARKER_PATTERN,
    LIST_HEADING_MAX_LENGTH,
    LIST_INDENT_MIN,
    LIST_INDENT_MULTIPLIER,
    LIST_ITEM_START_PATTERN,
    LIST_MAX_LEVEL,
    ROMAN_MARKER_PATTERN,
    SENTENCE_END_PATTERN,
)
from .models import Block, ListElement, ListItem
from .stats import median

log_lists = logging.getLogger("playout.lists")


# --- LIST SPLITTER ---
def find_list_start(text):
    """
    Returns the offset of the marker that opens an inline list in `text`, or
    -1. A list opens after a colon, or after a short unterminated lead-in
    when at least two inline markers follow.
    """
    match = HEADING_LIST_PATTERN.search(text)
    if match:
        return match.start(1)
    matches = list(INLINE_MARKER_PATTERN.finditer(text))
    if len(matches) < 2:
        return -1
    before = text[: matches[0].start()].strip()
    if before and len(before) <= LIST_HEADING_MAX_LENGTH and not SENTENCE_END_PATTERN.search(before):
        return matches[0].start(1)
    return -1


def _split_inline_items(text):
    """Splits one marker-led line at every further marker of the same kind."""
    lead = LIST_ITEM_START_PATTERN.match(text)
    if not lead:
        return [text]
    glyph = lead.group(1)
    ordered = glyph[0].isdigit()
    cuts = [0]
    for match in INLINE_MARKER_PATTERN.finditer(text):
        marker = match.group(1)
        if marker[0].isdigit() == ordered and (ordered or marker == glyph):
            cuts.append(match.start(1))
    parts = [text[a:b].strip() for a, b in zip(cuts, cuts[1:] + [len(text)])]
    return [p for p in parts if p]


def _split_list_lines(lines, inline=False):
    """
    One block per marker line; unmarked lines extend the previous item.
    Lines before the first marker form a block of their own.
    """
    groups = []
    for line in lines:
        text = line.text.strip()
        if LIST_ITEM_START_PATTERN.match(text):
            parts = _split_inline_items(text) if inline else [text]
            if len(parts) == 1:
                groups.append([line])
            else:
                groups.extend([line.with_text(part)] for part in parts)
        elif groups:
            groups[-1].append(line)
        else:
            groups.append([line])
    return [Block(group) for group in groups]


def _split_heading_from_list(block):
    text = block.text
    if not CONTAINS_LIST_ITEM_PATTERN.search(text) or LIST_ITEM_START_PATTERN.match(text):
        return [block]
    position = find_list_start(text)
    if position <= 0:
        return [block]
    heading_text, list_text = text[:position].strip(), text[position:].strip()
    if not heading_text or not list_text:
        return [block]
    if not COLON_END_PATTERN.search(heading_text) and not LIST_ITEM_START_PATTERN.match(list_text):
        return [block]

    # Locate the line holding the split point within the joined block text
    heading_lines, list_lines, offset = [], [], 0
    for i, line in enumerate(block.lines):
        line_text = line.text.strip()
        if not line_text:
            continue
        end = offset + len(line_text)
        if position < end:
            local = position - offset
            if local <= 0:
                heading_lines, list_lines = block.lines[:i], block.lines[i:]
            else:
                heading_lines = block.lines[:i] + [line.with_text(line_text[:local].strip())]
                list_lines = [line.with_text(line_text[local:].strip())] + block.lines[i + 1:]
            break
        offset = end + 1
    if not heading_lines or not list_lines:
        return [block]

    log_lists.debug("Split inline list from heading %r", heading_text[:50])
    heading = Block(heading_lines, is_list_heading=True, followed_by_list=True)
    return [heading] + _split_list_lines(list_lines, inline=True)


def split_list_headings(blocks) -> list[Block]:
    """
    Replaces every block that combines a heading with the list it introduces
    by a heading block followed by one block per list item.
    """
    result = []
    for block in blocks:
        lines = block.lines
        if len(lines) >= 2:
            first, second = lines[0].text.strip(), lines[1].text.strip()
            introduces = first.endswith(":") or (
                len(first) <= LIST_HEADING_MAX_LENGTH and not SENTENCE_END_PATTERN.search(first)
            )
            if (
                introduces
                and LIST_ITEM_START_PATTERN.match(second)
                and not LIST_ITEM_START_PATTERN.match(first)
            ):
                log_lists.debug("Split list heading %r from %d lines", first[:50], len(lines) - 1)
                result.append(Block([lines[0]], is_list_heading=True, followed_by_list=True))
                result.extend(_split_list_lines(lines[1:]))
                continue
        result.extend(_split_heading_from_list(block))
    return result


# --- LIST ELEMENTS ---
def indent_threshold(base_font_size=DEFAULT_BASE_FONT_SIZE):
    """Horizontal distance that makes one nesting level."""
    return max((base_font_size or DEFAULT_BASE_FONT_SIZE) * LIST_INDENT_MULTIPLIER, LIST_INDENT_MIN)


def nesting_level(x, anchor_x, threshold):
    diff = x - anchor_x
    if diff < threshold:
        return 0
    return min(int(diff // threshold), LIST_MAX_LEVEL)


def strip_list_marker(text):
    """Removes a leading bullet, number, letter or roman numeral marker."""
    text = (text or "").strip()
    for pattern in (LIST_ITEM_START_PATTERN, LETTER_MARKER_PATTERN, ROMAN_MARKER_PATTERN):
        match = pattern.match(text)
        if match:
            return text[match.end():].strip()
    return text


def build_list_items(lines, base_font_size=DEFAULT_BASE_FONT_SIZE):
    """One ListItem per marker line; unmarked lines continue the previous item."""
    threshold = indent_threshold(base_font_size)
    anchor = min((ln.x for ln in lines), default=0.0)
    items = []
    for line in sorted(lines, key=lambda ln: (ln.y, ln.x)):
        text = line.text.strip()
        if not text:
            continue
        info = extract_list_info(text)
        if info is not None or not items:
            items.append(
                ListItem(
                    strip_list_marker(text) or text,
                    level=nesting_level(line.x, anchor, threshold),
                    is_ordered=bool(info and info["ordered"]),
                    page_num=line.page_num,
                    min_y=line.y,
                    max_y=line.y,
                    min_x=line.x,
                )
            )
        else:
            item = items[-1]
            item.text = f"{item.text} {text}"
            item.max_y = max(item.max_y, line.y)
    return items


def make_list_element(block, confidence=0.5, list_info=None,
                      base_font_size=DEFAULT_BASE_FONT_SIZE) -> ListElement:
    """Builds a ListElement (with its items) from a block decided to be a list."""
    info = list_info or extract_list_info(block.text) or {}
    element = ListElement.from_block(
        block,
        confidence,
        ordered=bool(info.get("ordered")),
        level=info.get("level", 0),
        marker=info.get("marker"),
        pattern=info.get("pattern") or info.get("type"),
    )
    element.block_min_x = block.min_x
    for item in build_list_items(block.lines, base_font_size):
        element.add_item(item)
    return element


# --- LIST GROUPER ---
def _anchor_x(element):
    return element.block_min_x if element.block_min_x is not None else element.min_x


def calculate_nesting_level(element, previous_lists, threshold):
    """
    Nesting level of a list from its indentation relative to the median X of
    the earlier top-level lists (or of all earlier lists if none is top-level).
    """
    if not previous_lists:
        return 0
    top_level = [_anchor_x(e) for e in previous_lists if not e.level]
    base_x = median(top_level or [_anchor_x(e) for e in previous_lists])
    return nesting_level(_anchor_x(element), base_x, threshold)


def should_group_lists(first, second) -> bool:
    """Same column, same ordered/unordered kind and same nesting level."""
    if first.column_index is not None and second.column_index is not None:
        if first.column_index != second.column_index:
            return False
    if first.ordered != second.ordered:
        return False
    return first.level == second.level


def _merge_target(element, current, processed, threshold):
    """Returns (list to extend, level offset of the new items) or (None, 0)."""
    same_column = current is not None and (
        current.column_index is None
        or element.column_index is None
        or current.column_index == element.column_index
    )
    if same_column:
        nested = nesting_level(_anchor_x(element), _anchor_x(current), threshold)
        if nested > 0:
            return current, nested
        if should_group_lists(current, element) or (
            current.ordered and element.ordered and element.level == current.level
        ):
            return current, max(0, element.level - current.level)
    if element.ordered:
        # Resume an earlier ordered list at the same level
        for previous in reversed(processed):
            if previous.kind != "list":
                break
            if previous.ordered and previous.level == element.level:
                return previous, 0
    return None, 0


def _absorb(target, element, level_offset):
    items = list(element.iter_items())
    for item in items:
        item.children = []
        item.level = min(item.level + level_offset, LIST_MAX_LEVEL)
        target.add_item(item)
    target.text = f"{target.text}\n{element.text}"
    target.lines = target.lines + element.lines
    target.min_y = min(target.min_y, element.min_y)
    target.max_y = max(target.max_y, element.max_y)
    target.page_num = max(target.page_num, element.page_num)
    target.confidence = max(target.confidence, element.confidence)
    target.gap_after = element.gap_after


def group_list_items(elements, metrics=None) -> list:
    """
    Merges list elements in reading order. Non-list elements pass through
    unchanged and break the current list; list order follows the first
    appearance of each list.
    """
    base = getattr(metrics, "base_font_size", None) or DEFAULT_BASE_FONT_SIZE
    threshold = indent_threshold(base)
    processed, current = [], None
    for element in elements:
        if element.kind != "list":
            processed.append(element)
            current = None
            continue
        element.level = calculate_nesting_level(
            element, [e for e in processed if e.kind == "list"], threshold
        )
        target, level_offset = _merge_target(element, current, processed, threshold)
        if target is None:
            if element.block_min_x is None:
                element.block_min_x = element.min_x
            processed.append(element)
            current = element
            continue
        log_lists.debug(
            "Merged list %r into %r (level offset %d)",
            element.text[:30],
            target.text[:30],
            level_offset,
        )
        _absorb(target, element, level_offset)
        current = target
    return processed
