# --- playout_lib/decider.py ---
"""
playout_lib/decider.py: Picks one final element type per block.

The decision is an ordered list of rules over the four classifier results,
the column structure and the block's neighbourhood; the first rule that
matches wins. Any failure degrades to a paragraph at FALLBACK_CONFIDENCE.
"""
import logging

from .constants import (
    CONFIDENCE_HIGH,
    CONFIDENCE_LOW,
    CONFIDENCE_MINIMUM,
    DEFAULT_BASE_FONT_SIZE,
    DEFAULT_PARAGRAPH_GAP_THRESHOLD,
    FALLBACK_CONFIDENCE,
    HEADING_BAND_MIN_CONFIDENCE,
    HEADING_CONFIDENCE_BOOST,
    HEADING_VS_PARAGRAPH_BAND,
    HEADING_VS_PARAGRAPH_LARGE_DIFF,
    IMPLICIT_HEADING_MAX_LENGTH,
    IMPLICIT_HEADING_MIN_CONFIDENCE,
    LARGER_FONT_RATIO,
    LIST_HEADING_BOOSTED_CONFIDENCE,
    LIST_HEADING_MAX_LENGTH,
    LIST_HEADING_MIN_CONFIDENCE,
    LIST_HEADING_SHORT_LENGTH,
    LIST_MIN_CONFIDENCE,
    LIST_STRONG_CONFIDENCE,
    LIST_VS_PARAGRAPH_SLACK,
    LONG_TEXT_MIN,
    MUCH_LARGER_FONT_RATIO,
    PARAGRAPH_GAP_MIN_MULTIPLIER,
    SHORT_LARGE_FONT_MIN_CONFIDENCE,
    SHORT_TEXT_MAX,
    SLIGHTLY_LARGER_FONT_RATIO,
    TABLE_MIN_CONFIDENCE,
    TABLE_OVER_PARAGRAPH_CONFIDENCE,
    VERY_LARGE_FONT_MIN_CONFIDENCE,
    VERY_LONG_TEXT_MIN,
    VERY_SHORT_TEXT,
)

log_decide = logging.getLogger("playout.decide")

HEADING, PARAGRAPH, LIST, TABLE = "heading", "paragraph", "list", "table"


def decide_element_type(heading, paragraph, list_result, table, block, structure=None,
                        context=None, metrics=None):
    """
    Returns (element_type, confidence) for a block.

    `context` holds the block index `i`, its `gap_after` and the `next_block`.
    """
    try:
        return _decide(heading, paragraph, list_result, table, block, structure or {},
                       context or {}, metrics)
    except Exception as e:
        log_decide.warning("Decision failed for %r, using paragraph: %s",
                           getattr(block, "text", "")[:50], e)
        return PARAGRAPH, FALLBACK_CONFIDENCE


def _decide(heading, paragraph, list_result, table, block, structure, context, metrics):
    text = block.text or ""
    text_length = len(text)
    is_long = text_length > LONG_TEXT_MIN
    para_conf = paragraph.confidence

    # 1. Very long text is always prose
    if text_length >= VERY_LONG_TEXT_MIN:
        return PARAGRAPH, max(para_conf, CONFIDENCE_HIGH)

    # 2. Table
    if table is not None and table.kind == TABLE and table.confidence > TABLE_MIN_CONFIDENCE:
        if table.confidence > para_conf or table.confidence > TABLE_OVER_PARAGRAPH_CONFIDENCE:
            return TABLE, table.confidence
        log_decide.debug("Table %.2f loses to paragraph %.2f", table.confidence, para_conf)

    # 3. Uniform documents: only an implicit title, or an overwhelming heading
    if structure.get("is_homogeneous") and not structure.get("likely_has_headings"):
        gap_after = context.get("gap_after")
        next_block = context.get("next_block")
        para_gap = getattr(metrics, "paragraph_gap_threshold", None) or DEFAULT_PARAGRAPH_GAP_THRESHOLD
        if (
            context.get("i") == 0
            and text_length < IMPLICIT_HEADING_MAX_LENGTH
            and gap_after
            and gap_after > para_gap * PARAGRAPH_GAP_MIN_MULTIPLIER
            and next_block is not None
            and len(next_block.text) > LONG_TEXT_MIN
            and heading.confidence > para_conf
            and heading.confidence > IMPLICIT_HEADING_MIN_CONFIDENCE
        ):
            return HEADING, heading.confidence
        if (
            heading.kind == HEADING
            and heading.confidence > CONFIDENCE_HIGH
            and heading.confidence > para_conf + HEADING_VS_PARAGRAPH_LARGE_DIFF
        ):
            return HEADING, heading.confidence
        return PARAGRAPH, para_conf

    # 4. List
    if list_result.kind == LIST and list_result.confidence > LIST_MIN_CONFIDENCE:
        best_so_far = para_conf or FALLBACK_CONFIDENCE
        if list_result.confidence >= LIST_STRONG_CONFIDENCE or (
            list_result.confidence > best_so_far
            and list_result.confidence >= para_conf - LIST_VS_PARAGRAPH_SLACK
        ):
            return LIST, list_result.confidence

    # 5. Heading that introduces a list
    introduces_list = block.is_list_heading or block.followed_by_list
    ends_with_colon = text.strip().endswith(":")
    short_with_colon = ends_with_colon and text_length < LIST_HEADING_MAX_LENGTH
    short_without_colon = not ends_with_colon and text_length < LIST_HEADING_SHORT_LENGTH
    heading_kind, heading_conf = heading.kind, heading.confidence
    if introduces_list and (short_with_colon or short_without_colon):
        heading_kind = HEADING
        heading_conf = max(heading_conf or CONFIDENCE_LOW, LIST_HEADING_BOOSTED_CONFIDENCE)
        if heading_conf >= LIST_HEADING_MIN_CONFIDENCE:
            return HEADING, heading_conf

    # 6. Heading against paragraph
    element_type, confidence = PARAGRAPH, para_conf or FALLBACK_CONFIDENCE
    if heading_kind == HEADING:
        base = getattr(metrics, "base_font_size", None) or DEFAULT_BASE_FONT_SIZE
        ratio = block.font_size / base if block.font_size else 1.0
        is_short = text_length < SHORT_TEXT_MAX
        prefer_heading = not is_long and (
            (text_length < VERY_SHORT_TEXT and ratio >= SLIGHTLY_LARGER_FONT_RATIO)
            or (is_short and ratio >= LARGER_FONT_RATIO
                and heading_conf > SHORT_LARGE_FONT_MIN_CONFIDENCE)
            or (is_short and ratio >= MUCH_LARGER_FONT_RATIO
                and heading_conf > VERY_LARGE_FONT_MIN_CONFIDENCE)
            or heading_conf > para_conf
            or (abs(heading_conf - para_conf) < HEADING_VS_PARAGRAPH_BAND
                and heading_conf > HEADING_BAND_MIN_CONFIDENCE)
        )
        if prefer_heading:
            element_type = HEADING
            confidence = min(1.0, max(heading_conf, para_conf + HEADING_CONFIDENCE_BOOST))
        elif paragraph.kind == PARAGRAPH and para_conf > CONFIDENCE_MINIMUM:
            confidence = para_conf
    elif paragraph.kind == PARAGRAPH and para_conf > CONFIDENCE_MINIMUM:
        confidence = para_conf
    elif is_long:
        confidence = max(para_conf, CONFIDENCE_HIGH)

    # 7. Long text never ends up a heading
    if is_long and element_type == HEADING:
        element_type, confidence = PARAGRAPH, CONFIDENCE_HIGH

    log_decide.debug(
        "%s (%.2f): heading=%.2f para=%.2f list=%.2f table=%.2f %r",
        element_type,
        confidence,
        heading_conf,
        para_conf,
        list_result.confidence,
        table.confidence if table is not None else 0.0,
        text[:50],
    )
    return element_type, confidence
