# --- playout_lib/classifiers.py ---
"""
playout_lib/classifiers.py: Scoring functions that rate one block as a
heading, paragraph, list or table.

Every classifier is a pure function `(block, metrics, context)` returning a
ClassificationResult with a confidence in [0, 1]. The `context` dict carries
the neighbourhood of the block:
    is_first, prev_was_heading, prev_was_list, next_is_list (bool)
    structure (dict from analyze_structure), gap_analysis (dict)
"""
import logging
import math
import re

from .constants import (
    BULLET_MARKER_PATTERN,
    DEFAULT_BASE_FONT_SIZE,
    DEFAULT_PARAGRAPH_GAP_THRESHOLD,
    HEADING_BASE_THRESHOLD_HIGH_VARIABILITY,
    HEADING_BASE_THRESHOLD_LOW_VARIABILITY,
    HEADING_DEFINITELY_NOT_LENGTH,
    HEADING_HOMOGENEOUS_BONUS,
    HEADING_LARGE_FONT_ADJUSTMENT,
    HEADING_MAX_HEADING_LENGTH,
    HEADING_MAX_LENGTH_CAPITAL,
    HEADING_MAX_LENGTH_WITH_COLON,
    HEADING_MAX_SCORE,
    HEADING_MAX_WORD_COUNT,
    HEADING_MAX_WORDS_LARGE_FONT,
    HEADING_MIN_CONFIDENCE_WHEN_DETECTED,
    HEADING_MIN_FONT_SIZE_RATIO,
    HEADING_MIN_GAP_AFTER,
    HEADING_MIN_SCORE,
    HEADING_SCORES,
    HEADING_SIGNIFICANT_GAP_MULTIPLIER,
    HEADING_SMALL_FONT_ADJUSTMENT,
    HEADING_STRONG_FONT_SIZE_RATIO,
    HEADING_VERY_LARGE_FONT_RATIO,
    LETTER_MARKER_PATTERN,
    LIST_HEADING_MAX_LENGTH,
    LIST_HEADING_SHORT_LENGTH,
    LIST_ITEM_START_PATTERN,
    MEDIUM_TEXT,
    NESTED_BULLETS,
    NUMBERED_HEADING_PATTERN,
    NUMBERED_MARKER_PATTERN,
    PARAGRAPH_MEDIUM_LENGTH,
    PARAGRAPH_SHORT_LENGTH,
    PARAGRAPH_WEIGHTS,
    ROMAN_MARKER_PATTERN,
    SENTENCE_END_PATTERN,
    SHORT_TEXT_MAX,
    TABLE_ALGORITHM_WEIGHTS,
    TABLE_ALIGNMENT_CONFIDENCE_CAP,
    TABLE_ALIGNMENT_SCORE_WEIGHT,
    TABLE_COLUMN_SCORE_MAX_COLUMNS,
    TABLE_COLUMN_SCORE_WEIGHT,
    TABLE_COLUMN_TOLERANCE_MULTIPLIER,
    TABLE_GRID_ALIGNMENT_WEIGHT,
    TABLE_GRID_CONFIDENCE_CAP,
    TABLE_GRID_MAX_COLUMNS,
    TABLE_GRID_MAX_ROWS,
    TABLE_GRID_SIZE_WEIGHT,
    TABLE_LINE_LENGTH_PENALTY_DIVISOR,
    TABLE_MAX_AVG_LINE_LENGTH,
    TABLE_MIN_COLUMNS,
    TABLE_MIN_CONFIDENCE,
    TABLE_MIN_ROWS,
    TABLE_ROW_CONFIDENCE_CAP,
    TABLE_ROW_REGULARITY_WEIGHT,
    TABLE_ROW_SMALL_GAP_RATIO,
    TABLE_ROW_SMALL_GAP_WEIGHT,
    TABLE_ROW_TOLERANCE_MULTIPLIER,
    VERY_LONG_TEXT_MIN,
    VERY_SHORT_TEXT,
    starts_with_capital,
)
from .models import ClassificationResult
from .stats import cluster_values

log_cls = logging.getLogger("playout.classify")

CONTAINED_MARKER_PATTERN = re.compile(r"([:\s]+)([•\-\*\+▪▫◦‣⁃]|\d+[.)])\s+")


def _clamp(value):
    return max(0.0, min(1.0, value))


def _base_font(metrics):
    return getattr(metrics, "base_font_size", None) or DEFAULT_BASE_FONT_SIZE


def font_size_ratio(font_size, base_font_size):
    """Ratio of a font size to the base size, clamped to [0.1, 10]."""
    base = base_font_size if base_font_size and base_font_size > 0 else DEFAULT_BASE_FONT_SIZE
    if not font_size or not math.isfinite(font_size) or font_size <= 0:
        font_size = base
    return max(0.1, min(10.0, min(font_size, 1000) / base))


# --- HEADING ---
def _heading_threshold(metrics, structure):
    variability = getattr(metrics, "font_size_variability", 0.0) or 0.0
    base = _base_font(metrics)
    threshold = (
        HEADING_BASE_THRESHOLD_HIGH_VARIABILITY
        if variability > 0.3
        else HEADING_BASE_THRESHOLD_LOW_VARIABILITY
    )
    if base < 10:
        threshold += HEADING_SMALL_FONT_ADJUSTMENT
    elif base > 16:
        threshold += HEADING_LARGE_FONT_ADJUSTMENT
    if structure and structure.get("is_homogeneous") and not structure.get("likely_has_headings"):
        threshold += HEADING_HOMOGENEOUS_BONUS
    return threshold


def _is_heading_by_size(ratio, text_length, block, metrics):
    is_short = text_length < HEADING_MAX_HEADING_LENGTH
    if text_length < VERY_SHORT_TEXT and ratio >= 1.05:
        return True
    if is_short and ratio >= 1.1:
        return True
    variability = getattr(metrics, "font_size_variability", 0.0) or 0.0
    threshold = HEADING_STRONG_FONT_SIZE_RATIO if variability > 0.3 else HEADING_MIN_FONT_SIZE_RATIO
    return ratio >= threshold and (
        ratio >= HEADING_STRONG_FONT_SIZE_RATIO or block.is_bold or block.is_italic or is_short
    )


def _is_heading_by_gap_after(gap_after, gap_analysis):
    if gap_after is None:
        return False
    if gap_analysis and gap_analysis.get("paragraph_gap_min"):
        return gap_after >= gap_analysis["paragraph_gap_min"] * HEADING_SIGNIFICANT_GAP_MULTIPLIER
    return gap_after >= HEADING_MIN_GAP_AFTER


def heading_score(block, metrics, context) -> dict:
    """Sums the positive and negative heading signals of a block."""
    text = (block.text or "").strip()
    text_length = len(text)
    words = len(text.split())
    ratio = font_size_ratio(block.font_size, _base_font(metrics))
    is_numbered = bool(NUMBERED_HEADING_PATTERN.match(text)) and ratio >= HEADING_MIN_FONT_SIZE_RATIO
    capital = starts_with_capital(text)
    scores, signals = HEADING_SCORES, []

    if is_numbered:
        signals.append("numbered")
    if text_length < LIST_HEADING_MAX_LENGTH and ratio >= 1.2:
        signals.append("short_large_font")
    introduces_list = block.is_list_heading or block.followed_by_list
    short_with_colon = text.endswith(":") and text_length < LIST_HEADING_MAX_LENGTH
    if introduces_list or (short_with_colon and context.get("next_is_list")):
        signals.append("list_heading")
    if _is_heading_by_size(ratio, text_length, block, metrics):
        signals.append("by_size")
    if capital and 2 <= words <= 6 and ratio >= HEADING_STRONG_FONT_SIZE_RATIO:
        signals.append("multi_word_capital")
    if context.get("prev_was_list"):
        signals.append("after_list")
    if block.is_bold or block.is_italic:
        signals.append("by_style")
    if text.endswith(":") and text_length < HEADING_MAX_LENGTH_WITH_COLON:
        signals.append("by_colon")
    if _is_heading_by_gap_after(block.gap_after, context.get("gap_analysis")):
        signals.append("by_gap_after")
    if capital and text_length < HEADING_MAX_LENGTH_CAPITAL and ratio >= HEADING_MIN_FONT_SIZE_RATIO:
        signals.append("short_capital")
    if context.get("is_first") or context.get("prev_was_heading"):
        signals.append("by_position")
    if context.get("is_first") and text_length < SHORT_TEXT_MAX:
        signals.append("first_element_short")
    if text_length > HEADING_DEFINITELY_NOT_LENGTH:
        signals.append("very_long_text")
    if words > HEADING_MAX_WORD_COUNT:
        signals.append("many_words")
    if text_length > MEDIUM_TEXT and words > 10:
        signals.append("long_text_many_words")
    if "." in text and words > 5 and not text.endswith("."):
        signals.append("sentence_in_middle")
    if text_length > SHORT_TEXT_MAX and not block.is_bold and ratio < 1.2:
        signals.append("long_without_formatting")

    score = sum(scores[s] for s in signals)
    threshold = _heading_threshold(metrics, context.get("structure"))
    very_large = ratio >= HEADING_VERY_LARGE_FONT_RATIO and words <= HEADING_MAX_WORDS_LARGE_FONT
    starts_as_list = bool(LIST_ITEM_START_PATTERN.match(text))
    is_heading = (
        score >= threshold or (is_numbered and score >= 2) or (very_large and score >= 1)
    ) and not starts_as_list
    return {
        "score": score,
        "threshold": threshold,
        "is_heading": is_heading,
        "signals": signals,
        "font_size_ratio": ratio,
        "text_length": text_length,
        "word_count": words,
    }


def classify_heading(block, metrics, context=None) -> ClassificationResult:
    """
    Scores a block as a heading. The raw score is normalized over its
    possible range and boosted for short, large or styled text.
    """
    context = context or {}
    result = heading_score(block, metrics, context)
    ratio, text_length = result["font_size_ratio"], result["text_length"]

    confidence = (result["score"] - HEADING_MIN_SCORE) / (HEADING_MAX_SCORE - HEADING_MIN_SCORE)
    if text_length < LIST_HEADING_MAX_LENGTH and ratio >= 1.2:
        confidence = min(1.0, confidence * 2.0)
    if context.get("is_first") and text_length < SHORT_TEXT_MAX and ratio >= 1.1:
        confidence = min(1.0, confidence * 1.8)
    if ratio >= 1.3 and text_length < SHORT_TEXT_MAX and result["score"] > 0:
        confidence = min(1.0, confidence * 1.6)
    if (block.is_bold or block.is_italic) and text_length < SHORT_TEXT_MAX:
        confidence = min(1.0, confidence * 1.4)
    if text_length < LIST_HEADING_SHORT_LENGTH and ratio >= 1.1:
        confidence = min(1.0, confidence * 1.5)
    if result["is_heading"]:
        confidence = max(confidence, HEADING_MIN_CONFIDENCE_WHEN_DETECTED)
    confidence = _clamp(confidence)

    log_cls.debug(
        "Heading score %d (threshold %d, %s) -> %.2f for %r",
        result["score"],
        result["threshold"],
        ",".join(result["signals"]) or "-",
        confidence,
        block.text[:50],
    )
    return ClassificationResult(
        "heading-scoring",
        "heading" if result["is_heading"] else "not-heading",
        confidence,
        result,
    )


# --- PARAGRAPH ---
def _paragraph_by_length(text):
    length = len(text)
    if length > PARAGRAPH_SHORT_LENGTH:
        return True, min(0.9, 0.5 + (length / PARAGRAPH_MEDIUM_LENGTH) * 0.4)
    if length == 0:
        return False, 0.1
    return False, max(0.1, 0.5 - (PARAGRAPH_SHORT_LENGTH / length) * 0.4)


def _paragraph_by_sentences(text):
    sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]
    count = len(sentences)
    if count >= 2:
        return True, min(0.8, 0.4 + count * 0.1)
    return False, max(0.2, 0.6 - count * 0.2)


def _paragraph_by_punctuation(text):
    ends_sentence = bool(SENTENCE_END_PATTERN.search(text))
    multiple = len(re.findall(r"[.,;:!?]", text)) >= 2
    is_paragraph = ends_sentence and multiple
    return is_paragraph, 0.7 if is_paragraph else 0.3


def classify_paragraph(block, metrics=None, context=None) -> ClassificationResult:
    """
    Weighted consensus of length, sentence count and punctuation. A
    sub-verdict against paragraph votes with the complement of its
    confidence. Text above VERY_LONG_TEXT_MIN is always a paragraph.
    """
    text = block.text or ""
    votes = [
        ("length", *_paragraph_by_length(text)),
        ("sentence-structure", *_paragraph_by_sentences(text)),
        ("punctuation", *_paragraph_by_punctuation(text)),
    ]
    weighted = sum(
        (conf if positive else 1.0 - conf) * weight
        for (_, positive, conf), weight in zip(votes, PARAGRAPH_WEIGHTS)
    )
    weighted = _clamp(weighted)
    details = {name: {"positive": positive, "confidence": conf} for name, positive, conf in votes}
    if len(text) > VERY_LONG_TEXT_MIN:
        return ClassificationResult("consensus", "paragraph", max(weighted, 0.8), details)
    return ClassificationResult(
        "consensus", "paragraph" if weighted > 0.5 else "not-paragraph", weighted, details
    )


# --- LIST ---
def extract_list_info(text) -> dict | None:
    """Marker, kind, ordered flag and nesting hint of a list item, or None."""
    text = (text or "").strip()
    match = NUMBERED_MARKER_PATTERN.match(text)
    if match:
        return {"marker": match.group(1), "type": "numbered", "level": 0, "ordered": True}
    match = LETTER_MARKER_PATTERN.match(text)
    if match:
        letter = match.group(1)
        return {
            "marker": letter,
            "type": "letter",
            "level": 0 if letter.isupper() else 1,
            "ordered": True,
        }
    match = ROMAN_MARKER_PATTERN.match(text)
    if match:
        numeral = match.group(1)
        return {
            "marker": numeral,
            "type": "roman",
            "level": 0 if numeral.isupper() else 1,
            "ordered": True,
        }
    match = BULLET_MARKER_PATTERN.match(text)
    if match:
        bullet = match.group(1)
        return {
            "marker": bullet,
            "type": "bullet",
            "level": 1 if bullet in NESTED_BULLETS else 0,
            "ordered": False,
        }
    return None


def find_list_items(block):
    """
    Locates list markers in a block. Returns (info, position, multi_line):
    position is 0 when the marker opens the text, -1 for a later line, or the
    character offset of an inline marker.
    """
    lines = block.lines or []
    marker_lines = [ln for ln in lines if LIST_ITEM_START_PATTERN.match(ln.text.strip())]
    multi_line = len(lines) > 1 and len(marker_lines) >= 2
    if multi_line:
        info = extract_list_info(marker_lines[0].text)
        if info is not None:
            return info, 0 if marker_lines[0] is lines[0] else -1, True

    info = extract_list_info(block.text)
    if info is not None:
        return info, 0, multi_line
    match = CONTAINED_MARKER_PATTERN.search(block.text or "")
    if match:
        position = match.start() + len(match.group(1))
        info = extract_list_info(block.text[position:])
        if info is not None:
            return info, position, multi_line
    return None, -1, multi_line


def classify_list(block, metrics=None, context=None) -> ClassificationResult:
    """Detects numbered, lettered, roman and bulleted list items."""
    info, position, multi_line = find_list_items(block)
    if info is None:
        return ClassificationResult("consensus", "not-list", 0.0, {"list_info": None})
    if multi_line:
        confidence = 0.95
    elif position == 0:
        confidence = 0.9
    else:
        confidence = 0.75
    is_list = confidence > 0.5
    details = {
        "list_info": None,
        "marker_position": position,
        "multiple_list_lines": multi_line,
        "pattern": info["type"],
    }
    opening = extract_list_info(block.text) if is_list else None
    if opening is not None:
        details["list_info"] = {
            "ordered": opening["ordered"],
            "level": opening["level"],
            "marker": opening["marker"],
            "pattern": opening["type"],
        }
    return ClassificationResult("consensus", "list" if is_list else "not-list", confidence, details)


# --- TABLE ---
def _grid_pattern(block, metrics):
    lines = block.lines or []
    if len(lines) < 4:
        return 0.0, {"reason": "too-few-lines"}
    tolerance = _base_font(metrics) * TABLE_COLUMN_TOLERANCE_MULTIPLIER
    xs = [r.x for ln in lines for r in (ln.runs or []) if r.x >= 0]
    xs += [ln.x for ln in lines if not ln.runs and ln.x >= 0]
    ys = [ln.y for ln in lines if ln.y >= 0]
    if not xs or not ys:
        return 0.0, {"reason": "no-coordinates"}
    x_clusters = cluster_values(xs, tolerance)
    y_clusters = cluster_values(ys, tolerance)
    if len(x_clusters) < TABLE_MIN_COLUMNS or len(y_clusters) < TABLE_MIN_ROWS:
        return 0.0, {
            "reason": "insufficient-clusters",
            "columns": len(x_clusters),
            "rows": len(y_clusters),
        }

    centers = [c["center"] for c in x_clusters]
    distances = [b - a for a, b in zip(centers, centers[1:])]
    min_distance = min(distances) if distances else tolerance * 2
    column_tolerance = min(min_distance * 0.2, tolerance)
    aligned = sum(
        1
        for ln in lines
        if any(abs((ln.runs[0].x if ln.runs else ln.x) - c) <= column_tolerance for c in centers)
    )
    alignment = aligned / len(lines)
    size_score = min(len(x_clusters) / TABLE_GRID_MAX_COLUMNS, 1) * min(
        len(y_clusters) / TABLE_GRID_MAX_ROWS, 1
    )
    confidence = alignment * TABLE_GRID_ALIGNMENT_WEIGHT + size_score * TABLE_GRID_SIZE_WEIGHT
    return min(confidence, TABLE_GRID_CONFIDENCE_CAP), {
        "columns": len(x_clusters),
        "rows": len(y_clusters),
        "column_positions": centers,
        "alignment": alignment,
    }


def _column_alignment(block, metrics):
    lines = block.lines or []
    if len(lines) < 3:
        return 0.0, {"reason": "too-few-lines"}
    tolerance = _base_font(metrics) * TABLE_ROW_TOLERANCE_MULTIPLIER
    starts = [(ln.runs[0].x if ln.runs else ln.x) for ln in lines]
    starts = [x for x in starts if x >= 0]
    if len(starts) < 3:
        return 0.0, {"reason": "insufficient-positions"}
    clusters = cluster_values(starts, tolerance)
    if len(clusters) < TABLE_MIN_COLUMNS:
        return 0.0, {"reason": "insufficient-columns", "columns": len(clusters)}
    centers = [c["center"] for c in clusters]
    aligned = sum(1 for x in starts if any(abs(x - c) <= tolerance for c in centers))
    alignment = aligned / len(starts)
    column_score = min(len(clusters) / TABLE_COLUMN_SCORE_MAX_COLUMNS, 1)
    confidence = alignment * TABLE_ALIGNMENT_SCORE_WEIGHT + column_score * TABLE_COLUMN_SCORE_WEIGHT
    return min(confidence, TABLE_ALIGNMENT_CONFIDENCE_CAP), {
        "column_positions": centers,
        "alignment": alignment,
    }


def _row_structure(block, metrics):
    lines = block.lines or []
    if len(lines) < 2:
        return 0.0, {"reason": "too-few-lines"}
    para_gap = getattr(metrics, "paragraph_gap_threshold", None) or DEFAULT_PARAGRAPH_GAP_THRESHOLD
    ys = sorted(ln.y for ln in lines)
    gaps = [b - a for a, b in zip(ys, ys[1:]) if b - a > 0]
    if not gaps:
        return 0.0, {"reason": "no-gaps"}
    small_ratio = sum(1 for g in gaps if g < para_gap * TABLE_ROW_SMALL_GAP_RATIO) / len(gaps)
    avg_gap = sum(gaps) / len(gaps)
    std_dev = math.sqrt(sum((g - avg_gap) ** 2 for g in gaps) / len(gaps))
    regularity = 1 - min(std_dev / avg_gap, 1) if avg_gap > 0 else 0.0
    avg_line_length = sum(len(ln.text or "") for ln in lines) / len(lines)
    if avg_line_length < TABLE_MAX_AVG_LINE_LENGTH:
        length_score = 1.0
    else:
        length_score = max(
            0.0,
            1 - (avg_line_length - TABLE_MAX_AVG_LINE_LENGTH) / TABLE_LINE_LENGTH_PENALTY_DIVISOR,
        )
    confidence = (
        small_ratio * TABLE_ROW_SMALL_GAP_WEIGHT + regularity * TABLE_ROW_REGULARITY_WEIGHT
    ) * length_score
    return min(confidence, TABLE_ROW_CONFIDENCE_CAP), {
        "small_gap_ratio": small_ratio,
        "regularity": regularity,
        "avg_line_length": avg_line_length,
    }


def classify_table(block, metrics=None, context=None) -> ClassificationResult:
    """
    Weighted vote of the grid-pattern, column-alignment and row-structure
    detectors. Only detectors with a positive confidence take part.
    """
    if not block or not block.lines or len(block.lines) < 2:
        return ClassificationResult("validation", "not-table", 0.0, {"reason": "invalid-input"})

    results = {
        "grid-pattern": _grid_pattern(block, metrics),
        "column-alignment": _column_alignment(block, metrics),
        "row-structure": _row_structure(block, metrics),
    }
    weighted, total = 0.0, 0.0
    for name, (confidence, _) in results.items():
        if confidence > 0:
            weight = TABLE_ALGORITHM_WEIGHTS.get(name, 0.33)
            weighted += confidence * weight
            total += weight
    final = _clamp(weighted / total) if total > 0 else 0.0
    log_cls.debug(
        "Table vote %.3f (%s) for %r",
        final,
        ", ".join(f"{k}={v[0]:.2f}" for k, v in results.items()),
        block.text[:50],
    )
    return ClassificationResult(
        "consensus",
        "table" if final > TABLE_MIN_CONFIDENCE else "not-table",
        final,
        {name: {"confidence": c, **d} for name, (c, d) in results.items()},
    )
