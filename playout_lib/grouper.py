# --- playout_lib/grouper.py ---
"""
playout_lib/grouper.py: Groups the lines of one column into classified
elements.

This module contains:
- ElementGrouper: lines -> blocks (visual text blocks, or an incremental
  line-pair pass as fallback) -> list splitting -> four classifiers ->
  decider -> Heading / Paragraph / ListElement / Table.
- group_lines_into_elements: the `process_function` used per column.
"""
import logging

from .classifiers import classify_heading, classify_list, classify_paragraph, classify_table
from .constants import (
    CONTAINS_LIST_ITEM_PATTERN,
    CROSS_PAGE_BREAK_MARKER,
    DEFAULT_BASE_FONT_SIZE,
    FALLBACK_CONFIDENCE,
    LIST_ITEM_START_PATTERN,
)
from .decider import decide_element_type
from .gaps import (
    analyze_gaps,
    analyze_structure,
    analyze_text_blocks,
    build_gap_context,
    is_paragraph_boundary,
    is_text_block_boundary,
)
from .lists import make_list_element, split_list_headings
from .models import Block, Heading, Paragraph, Table
from .tables import extract_table_structure

log_layout = logging.getLogger("playout.layout")


def _looks_like_list(text):
    text = (text or "").strip()
    return bool(LIST_ITEM_START_PATTERN.match(text) or CONTAINS_LIST_ITEM_PATTERN.search(text))


class ElementGrouper:
    """Turns the y-ordered lines of one column into Elements."""

    def __init__(self, metrics=None):
        self.metrics = metrics
        self.base_font_size = getattr(metrics, "base_font_size", None) or DEFAULT_BASE_FONT_SIZE

    def group(self, lines, gap_analysis=None) -> list:
        if not lines:
            return []
        lines = sorted(lines, key=lambda ln: (ln.page_num, ln.y, ln.x))
        if gap_analysis is None:
            gap_analysis = analyze_gaps(lines)

        blocks = self.build_blocks(lines, gap_analysis)
        if not blocks:
            log_layout.warning("No blocks created from %d lines", len(lines))
            return []
        self._set_gaps(blocks)
        structure = analyze_structure(blocks)

        elements, prev_type = [], None
        for i, block in enumerate(blocks):
            next_block = blocks[i + 1] if i + 1 < len(blocks) else None
            try:
                element = self._classify_block(
                    block, i, next_block, prev_type, structure, gap_analysis
                )
            except Exception as e:
                log_layout.warning(
                    "Error classifying block %d, adding as paragraph: %s (%r)",
                    i,
                    e,
                    block.text[:100],
                )
                element = Paragraph.from_block(block, FALLBACK_CONFIDENCE)
            elements.append(element)
            prev_type = element.kind
        log_layout.debug(
            "Grouped %d lines into %d elements (%s)",
            len(lines),
            len(elements),
            ", ".join(sorted({e.kind for e in elements})),
        )
        return elements

    # --- BLOCKS ---
    def build_blocks(self, lines, gap_analysis) -> list[Block]:
        """Segments lines into blocks and splits list headings from their lists."""
        text_blocks = analyze_text_blocks(lines, gap_analysis, self.base_font_size)
        if text_blocks["blocks"]:
            blocks = text_blocks["blocks"]
        else:
            blocks = self._incremental_blocks(lines, gap_analysis, text_blocks)
        return split_list_headings(blocks)

    def _incremental_blocks(self, lines, gap_analysis, text_blocks):
        blocks, current = [], []
        for i, line in enumerate(lines):
            current.append(line)
            if i + 1 >= len(lines):
                break
            nxt = lines[i + 1]
            if nxt.page_num != line.page_num:
                blocks.append(Block(current))
                current = []
                continue
            gap = nxt.y - line.y
            prev = lines[i - 1] if i > 0 else None
            prev_gap = line.y - prev.y if prev is not None and prev.page_num == line.page_num else None
            after = lines[i + 2] if i + 2 < len(lines) else None
            next_gap = after.y - nxt.y if after is not None and after.page_num == nxt.page_num else None

            if is_text_block_boundary(gap, gap_analysis, text_blocks, prev_gap, next_gap):
                boundary = True
            else:
                block_text = " ".join(ln.text.strip() for ln in current)
                context = build_gap_context(
                    block_text,
                    nxt.text,
                    gap,
                    current[0].font_size or self.base_font_size,
                    nxt.font_size or self.base_font_size,
                    prev_gap,
                    next_gap,
                )
                boundary = is_paragraph_boundary(
                    gap,
                    gap_analysis,
                    context,
                    {
                        "combined_text": block_text,
                        "block_length": len(block_text),
                        "line_count": len(current),
                        "font_size": current[0].font_size,
                    },
                )
            if boundary:
                blocks.append(Block(current))
                current = []
        if current:
            blocks.append(Block(current))
        return blocks

    @staticmethod
    def _set_gaps(blocks):
        for block, nxt in zip(blocks, blocks[1:]):
            if block.page_num == nxt.page_num:
                block.gap_after = nxt.min_y - block.max_y
            else:
                block.gap_after = CROSS_PAGE_BREAK_MARKER
        blocks[-1].gap_after = None

    # --- CLASSIFICATION ---
    def _classify_block(self, block, i, next_block, prev_type, structure, gap_analysis):
        next_is_list = next_block is not None and _looks_like_list(next_block.text)
        context = {
            "is_first": i == 0,
            "prev_was_heading": prev_type == "heading",
            "prev_was_list": prev_type == "list",
            "next_is_list": next_is_list,
            "structure": structure,
            "gap_analysis": gap_analysis,
        }
        heading = classify_heading(block, self.metrics, context)
        paragraph = classify_paragraph(block, self.metrics, context)
        list_result = classify_list(block, self.metrics, context)
        table = classify_table(block, self.metrics, context)
        element_type, confidence = decide_element_type(
            heading,
            paragraph,
            list_result,
            table,
            block,
            structure,
            {"i": i, "gap_after": block.gap_after, "next_block": next_block},
            self.metrics,
        )
        return self._create_element(block, element_type, confidence, list_result, next_is_list)

    def _create_element(self, block, element_type, confidence, list_result, next_is_list):
        if element_type == "heading":
            return Heading.from_block(
                block,
                confidence,
                font_size=block.font_size or self.base_font_size,
                is_bold=block.is_bold,
                is_italic=block.is_italic,
                is_underlined=block.is_underlined,
                is_list_heading=block.is_list_heading,
                followed_by_list=block.followed_by_list or next_is_list,
            )
        if element_type == "list":
            return make_list_element(
                block,
                confidence,
                list_result.details.get("list_info"),
                self.base_font_size,
            )
        if element_type == "table":
            structure = extract_table_structure(block, self.metrics)
            if structure is None:
                log_layout.warning(
                    "Table extraction failed, falling back to paragraph: %r", block.text[:50]
                )
                return Paragraph.from_block(block, confidence)
            return Table.from_block(
                block,
                confidence,
                rows=structure["rows"],
                has_headers=structure["has_headers"],
                columns=structure["columns"],
            )
        return Paragraph.from_block(block, confidence)


def group_lines_into_elements(lines, metrics, gap_analysis=None) -> list:
    """Groups one column's lines into elements."""
    return ElementGrouper(metrics).group(lines, gap_analysis)
