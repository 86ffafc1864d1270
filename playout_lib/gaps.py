# --- playout_lib/gaps.py ---
"""
playout_lib/gaps.py: Vertical gap statistics and block segmentation.

This module contains:
- analyze_gaps: classifies the inter-line gap distribution of a line sequence
  (homogeneous, mostly-homogeneous, bimodal or gradual) and derives the
  `normal_gap_max` / `paragraph_gap_min` thresholds.
- is_paragraph_boundary: multi-factor (visual, semantic, contextual) decision
  for a single gap, used by the incremental grouping pass.
- analyze_text_blocks / is_text_block_boundary: the "visual text block"
  segmentation of a column.
- analyze_structure: document-level homogeneity and heading likelihood.
"""
import logging
import math

from .constants import (
    COLON_END_PATTERN,
    DEFAULT_BASE_FONT_SIZE,
    DEFAULT_PARAGRAPH_GAP_RATIO,
    DEFAULT_PARAGRAPH_GAP_THRESHOLD,
    HYPHEN_END_PATTERN,
    LIST_ITEM_START_PATTERN,
    MEDIUM_TEXT,
    OUTLIER_GAP_MULTIPLIER,
    PUNCTUATION_END_PATTERN,
    SENTENCE_END_PATTERN,
    SHORT_TEXT,
    SHORT_TEXT_MAX,
    VERY_SHORT_TEXT,
    starts_with_capital,
    starts_with_lowercase,
)
from .models import Block
from .stats import js_round, mean as avg, percentile, std

log_gaps = logging.getLogger("playout.gaps")

KMEANS_MAX_ITERATIONS = 10
KMEANS_CONVERGENCE = 0.01
# Typical printable line width (points) used for the free-space estimate
ESTIMATED_LINE_WIDTH = 500


def _default_gap_analysis():
    return {
        "normal_gap_max": DEFAULT_PARAGRAPH_GAP_THRESHOLD,
        "paragraph_gap_min": DEFAULT_PARAGRAPH_GAP_THRESHOLD * DEFAULT_PARAGRAPH_GAP_RATIO,
        "mean": 0.0,
        "median": 0.0,
        "std_dev": 0.0,
        "p75": 0.0,
        "p90": 0.0,
        "p95": 0.0,
        "p99": 0.0,
        "document_type": "unknown",
        "homogeneity_level": 0.0,
        "is_homogeneous_spacing": False,
        "coefficient_of_variation": 0.0,
        "confidence": 0.0,
        "gap_distribution": {},
    }


# --- GAP DISTRIBUTION ---
def cluster_gaps(gaps, k=2):
    """Simple k-means over gap values. Returns (sorted centers, assignments)."""
    if len(gaps) < k:
        return list(gaps), [0] * len(gaps)

    sorted_gaps = sorted(gaps)
    lo, hi = sorted_gaps[0], sorted_gaps[-1]
    if k == 2:
        mid = sorted_gaps[len(sorted_gaps) // 2]
        centers = [lo + (mid - lo) * 0.5, mid + (hi - mid) * 0.5]
    else:
        centers = [lo + (hi - lo) * (i / (k - 1)) for i in range(k)]

    assignments = []
    for _ in range(KMEANS_MAX_ITERATIONS):
        assignments = [
            min(range(k), key=lambda idx, g=g: (abs(g - centers[idx]), idx)) for g in gaps
        ]
        new_centers = []
        for i in range(k):
            members = [g for g, a in zip(gaps, assignments) if a == i]
            new_centers.append(sum(members) / len(members) if members else centers[i])
        converged = all(
            abs(n - c) <= KMEANS_CONVERGENCE for n, c in zip(new_centers, centers)
        )
        centers = new_centers
        if converged:
            break
    return sorted(centers), assignments


def _homogeneity_level(cv, std_dev, close_ratio, iqr_ratio, p90p75_ratio):
    if cv < 0.02 or (std_dev < 0.1 and close_ratio > 0.9):
        return 1.0
    if cv < 0.05 or (std_dev < 0.2 and close_ratio > 0.85):
        return 0.8
    if cv < 0.10 and (close_ratio > 0.80 or iqr_ratio < 0.15):
        return 0.6
    if cv < 0.15 and (close_ratio > 0.70 or iqr_ratio < 0.20):
        return 0.4
    if cv < 0.25 and (close_ratio > 0.60 or p90p75_ratio < 0.1):
        return 0.2
    if cv < 0.35 and close_ratio > 0.55 and p90p75_ratio < 0.15:
        return 0.3
    return 0.0


def analyze_gap_distribution(gaps):
    """Determines the document type and gap thresholds from raw gap values."""
    if not gaps:
        return {
            "document_type": "unknown",
            "homogeneity_level": 0.0,
            "normal_gap_max": 18,
            "paragraph_gap_min": 24,
            "confidence": 0.0,
        }

    sorted_gaps = sorted(gaps)
    mean = avg(gaps)
    std_dev = std(gaps)
    cv = std_dev / mean if mean > 0 else 0.0
    p25, p50 = percentile(sorted_gaps, 25), percentile(sorted_gaps, 50)
    p75, p90 = percentile(sorted_gaps, 75), percentile(sorted_gaps, 90)
    p95, p99 = percentile(sorted_gaps, 95), percentile(sorted_gaps, 99)

    close_ratio = sum(1 for g in gaps if abs(g - mean) <= std_dev) / len(gaps)
    iqr_ratio = (p75 - p25) / mean if mean > 0 else 0.0
    p90p75_ratio = (p90 - p75) / p75 if p75 > 0 else 0.0

    centers, assignments = cluster_gaps(gaps, 2)
    small = [g for g, a in zip(gaps, assignments) if a == 0]
    large = [g for g, a in zip(gaps, assignments) if a == 1]
    small_mean = avg(small) if small else centers[0]
    large_mean = avg(large) if large else centers[-1]
    separation = large_mean - small_mean
    separation_ratio = separation / mean if mean > 0 else 0.0

    level = _homogeneity_level(cv, std_dev, close_ratio, iqr_ratio, p90p75_ratio)
    log_gaps.debug(
        "Homogeneity: cv=%.4f std=%.3f close=%.2f iqr=%.2f -> level %.1f",
        cv,
        std_dev,
        close_ratio,
        iqr_ratio,
        level,
    )

    if level >= 0.8:
        doc_type, confidence = "homogeneous", 0.9
        normal_gap_max, paragraph_gap_min = mean * 0.99, mean * 3.0
    elif level >= 0.4:
        doc_type, confidence = "mostly-homogeneous", 0.75
        normal_gap_max, paragraph_gap_min = mean * 1.1, max(p95, mean * 2.0)
    elif separation_ratio > 0.3 and len(small) > len(gaps) * 0.5:
        doc_type, confidence = "bimodal", 0.85
        normal_gap_max = max(small_mean * 1.2, p75)
        paragraph_gap_min = min(large_mean * 0.8, p90)
        if paragraph_gap_min <= normal_gap_max:
            paragraph_gap_min = normal_gap_max * 1.5
    else:
        doc_type, confidence = "gradual", 0.7
        normal_gap_max, paragraph_gap_min = p75, p90
        if paragraph_gap_min <= normal_gap_max:
            paragraph_gap_min = normal_gap_max * 1.5
        if paragraph_gap_min - normal_gap_max < std_dev:
            normal_gap_max = mean + std_dev * 0.5
            paragraph_gap_min = mean + std_dev * 1.5

    return {
        "document_type": doc_type,
        "homogeneity_level": level,
        "normal_gap_max": normal_gap_max,
        "paragraph_gap_min": paragraph_gap_min,
        "mean": mean,
        "median": p50,
        "std_dev": std_dev,
        "coefficient_of_variation": cv,
        "p75": p75,
        "p90": p90,
        "p95": p95,
        "p99": p99,
        "confidence": confidence,
        "cluster_separation": separation,
        "small_cluster_size": len(small),
        "large_cluster_size": len(large),
        "close_to_mean_ratio": close_ratio,
    }


def analyze_gaps(lines) -> dict:
    """
    Analyzes the gaps between consecutive same-page lines.
    Returns a dict of thresholds and distribution statistics.
    """
    if not lines or len(lines) < 2:
        return _default_gap_analysis()

    gaps, continuation, breaks = [], 0, 0
    for current, nxt in zip(lines, lines[1:]):
        if current.page_num != nxt.page_num:
            continue
        gap = nxt.y - current.y
        if not (gap > 0 and math.isfinite(gap)):
            continue
        gaps.append(gap)

        cur_text, next_text = current.text.strip(), nxt.text.strip()
        ends_sentence = bool(SENTENCE_END_PATTERN.search(cur_text))
        strong_continuation = bool(HYPHEN_END_PATTERN.search(cur_text)) or (
            not ends_sentence and starts_with_lowercase(next_text)
        )
        strong_break = ends_sentence and starts_with_capital(next_text)
        if strong_continuation and not strong_break:
            continuation += 1
        elif strong_break and not strong_continuation:
            breaks += 1

    if not gaps:
        return _default_gap_analysis()

    dist = analyze_gap_distribution(gaps)
    result = _default_gap_analysis()
    result.update({k: v for k, v in dist.items() if k in result})
    result["is_homogeneous_spacing"] = (
        dist["document_type"] == "homogeneous" or dist["homogeneity_level"] >= 0.8
    )
    result["gap_distribution"] = {
        "total": len(gaps),
        "continuation": continuation,
        "break": breaks,
        "small_cluster": dist["small_cluster_size"],
        "large_cluster": dist["large_cluster_size"],
        "close_to_mean": js_round(dist["close_to_mean_ratio"] * len(gaps)),
    }
    log_gaps.debug(
        "Gap analysis: %s (level %.1f), normal<=%.2f, paragraph>=%.2f, mean=%.2f, %d gaps",
        result["document_type"],
        result["homogeneity_level"],
        result["normal_gap_max"],
        result["paragraph_gap_min"],
        result["mean"],
        len(gaps),
    )
    return result


# --- PARAGRAPH BOUNDARIES ---
def build_gap_context(current_text, next_text, gap, current_font_size, next_font_size,
                      prev_gap=None, next_gap=None):
    """Collects the semantic and sequence features of one gap."""
    current_text, next_text = current_text.strip(), next_text.strip()
    is_outlier = (
        prev_gap is not None
        and next_gap is not None
        and gap > prev_gap * OUTLIER_GAP_MULTIPLIER
        and gap > next_gap * OUTLIER_GAP_MULTIPLIER
    )
    return {
        "current_text_end": current_text,
        "next_text_start": next_text,
        "current_ends_with_sentence_end": bool(SENTENCE_END_PATTERN.search(current_text)),
        "next_starts_with_capital": starts_with_capital(next_text),
        "next_starts_with_lowercase": starts_with_lowercase(next_text),
        "current_ends_with_hyphen": bool(HYPHEN_END_PATTERN.search(current_text)),
        "current_ends_with_punctuation": bool(PUNCTUATION_END_PATTERN.search(current_text)),
        "current_font_size": current_font_size,
        "next_font_size": next_font_size,
        "font_size_change": abs(current_font_size - next_font_size),
        "current_text_length": len(current_text),
        "next_text_length": len(next_text),
        "current_is_short": len(current_text) < SHORT_TEXT,
        "next_is_short": len(next_text) < SHORT_TEXT,
        "prev_gap": prev_gap,
        "next_gap": next_gap,
        "is_outlier": is_outlier,
    }


def is_paragraph_boundary(gap, gap_analysis, context=None, block_context=None) -> bool:
    """
    Decides whether `gap` separates two paragraphs. Special cases (list
    items, headings, font changes) are checked first, then rules specific to
    the document's gap distribution, then a weighted score for gaps that
    fall between `normal_gap_max` and `paragraph_gap_min`.
    """
    ctx, blk = context or {}, block_context or {}
    normal_gap_max = gap_analysis["normal_gap_max"]
    paragraph_gap_min = gap_analysis["paragraph_gap_min"]
    doc_type = gap_analysis.get("document_type", "unknown")
    level = gap_analysis.get("homogeneity_level", 0.0)
    mean = gap_analysis.get("mean") or 0.0
    p95 = gap_analysis.get("p95") or 0.0

    next_text = ctx.get("next_text_start", "")
    ends_sentence = ctx.get("current_ends_with_sentence_end", False)
    next_capital = ctx.get("next_starts_with_capital", False)
    next_lower = ctx.get("next_starts_with_lowercase", False)
    ends_hyphen = ctx.get("current_ends_with_hyphen", False)
    cur_font = ctx.get("current_font_size", DEFAULT_BASE_FONT_SIZE)
    font_change = ctx.get("font_size_change", 0)
    next_len = ctx.get("next_text_length", 0)
    next_short = ctx.get("next_is_short", False)
    prev_gap, next_gap = ctx.get("prev_gap"), ctx.get("next_gap")
    block_text = blk.get("combined_text", "")
    block_len = blk.get("block_length", 0)

    # List items always start a new block
    if LIST_ITEM_START_PATTERN.search(next_text):
        return True
    if LIST_ITEM_START_PATTERN.search(block_text.strip()[:50]):
        if next_lower and gap <= paragraph_gap_min * 0.9:
            return False
        if next_capital and gap >= paragraph_gap_min * 0.8:
            return True

    # Short heading-like block followed by a capitalised line
    block_short = 0 < block_len < SHORT_TEXT_MAX
    ends_colon = bool(COLON_END_PATTERN.search(ctx.get("current_text_end", "")))
    if (
        block_short
        and (not ends_sentence or ends_colon)
        and gap >= paragraph_gap_min * 0.9
        and next_capital
    ):
        return True

    if font_change > cur_font * 0.2:
        if gap >= paragraph_gap_min * 0.7:
            return True
        if gap >= normal_gap_max * 1.2 and (ends_sentence or next_capital):
            return True

    if doc_type == "homogeneous" or level >= 0.8:
        if mean > 0 and gap >= mean * 3.0:
            log_gaps.debug("Homogeneous: extreme gap %.2f (mean %.2f)", gap, mean)
            return True
        if font_change > cur_font * 0.2 and (
            0 < block_len < 150 or (mean > 0 and gap >= mean * 1.5)
        ):
            return True
        return False

    if doc_type == "mostly-homogeneous" or level >= 0.4:
        outlier_threshold = max(p95 or mean * 2.0, mean * 2.0)
        if gap >= outlier_threshold:
            if ends_sentence and next_capital and not ends_hyphen:
                return True
            if gap >= mean * 2.5:
                return True
        return False

    if gap >= paragraph_gap_min:
        return True
    if gap <= normal_gap_max:
        return False

    # Ambiguous zone: combine visual, semantic and contextual scores
    threshold_range = paragraph_gap_min - normal_gap_max
    visual = 0.5
    if threshold_range > 0.1:
        visual = max(0.0, min(1.0, (gap - normal_gap_max) / threshold_range))
    if ctx.get("is_outlier") and prev_gap is not None and next_gap is not None and mean > 0:
        boost = min(0.3, (gap - max(prev_gap, next_gap)) / mean)
        visual = min(1.0, visual + boost)

    semantic = 0.5
    if ends_hyphen:
        semantic = 0.0
    elif not ends_sentence and next_lower:
        semantic = 0.2
    elif ends_sentence and next_capital:
        semantic = 0.8
    if block_len > 500 and visual < 0.6:
        semantic *= 0.8

    if block_len > 300 and next_short and next_capital and mean > 0 and gap >= mean * 1.5:
        log_gaps.debug("Long block followed by short heading, gap %.2f: boundary", gap)
        return True
    if block_len > 300 and next_short and gap >= paragraph_gap_min * 0.8:
        semantic = max(semantic, 0.7)
    if next_len < 30 and gap >= normal_gap_max * 1.5:
        semantic = max(semantic, 0.6)

    if prev_gap is not None and next_gap is not None:
        surrounding = (prev_gap + next_gap) / 2
        if gap > surrounding * 2.0 and surrounding <= normal_gap_max:
            visual = min(1.0, visual + 0.2)
        elif gap < surrounding * 0.7 and surrounding >= paragraph_gap_min:
            visual = max(0.0, visual - 0.2)

    length_ratio_score = 0.5
    if block_len > 200 and next_len < 100 and gap >= paragraph_gap_min * 0.7:
        length_ratio_score = 0.7
    elif block_len < 100 and next_len > 300:
        length_ratio_score = 0.6
    elif block_len > 500 and next_len > 500:
        length_ratio_score = 0.3

    font_score = 0.5
    if font_change > cur_font * 0.3:
        font_score = 0.8
    elif font_change > cur_font * 0.15:
        font_score = 0.6
    elif font_change < cur_font * 0.05:
        font_score = 0.3

    sequence_score = 0.5
    if prev_gap is not None and next_gap is not None:
        neighbors = (prev_gap + next_gap) / 2
        if gap > neighbors * 1.8:
            sequence_score = 0.8
        elif gap < neighbors * 0.6:
            sequence_score = 0.2

    if doc_type == "bimodal":
        weights = (0.6, 0.25, 0.15)
    elif doc_type == "gradual":
        weights = (0.4, 0.35, 0.25)
    elif doc_type == "mostly-homogeneous":
        weights = (0.3, 0.4, 0.3)
    else:
        weights = (0.5 - level * 0.2, 0.3 + level * 0.15, 0.2 + level * 0.05)

    contextual = length_ratio_score * 0.4 + font_score * 0.4 + sequence_score * 0.2
    combined = visual * weights[0] + semantic * weights[1] + contextual * weights[2]

    if combined > 0.65:
        return True
    if combined < 0.35:
        return False
    if visual > 0.7 and semantic > 0.6:
        return True
    if visual < 0.3 and semantic < 0.4:
        return False
    if font_change > cur_font * 0.2 and gap >= normal_gap_max * 1.3:
        return True
    return combined > 0.5 and visual > 0.6


# --- VISUAL TEXT BLOCKS ---
def _line_has_free_space(line, is_short, is_moderate, ends_period):
    runs = getattr(line, "runs", None)
    if runs:
        width_ratio = runs[-1].x1 / ESTIMATED_LINE_WIDTH
        return (
            width_ratio < 0.3
            or (width_ratio < 0.5 and is_short)
            or (is_moderate and not ends_period)
        )
    return (is_short or is_moderate) and not ends_period


def check_block_boundary(effective_gap, gap_analysis, pending, current, nxt,
                         base_font_size=DEFAULT_BASE_FONT_SIZE) -> bool:
    """True if the gap between `current` and `nxt` ends the pending text block."""
    normal_gap_max = gap_analysis["normal_gap_max"]
    paragraph_gap_min = gap_analysis["paragraph_gap_min"]
    mean = gap_analysis.get("mean") or 0.0
    cur_font = current.font_size or DEFAULT_BASE_FONT_SIZE
    next_font = nxt.font_size or cur_font
    cur_text, next_text = current.text.strip(), nxt.text.strip()
    cur_len, next_len = len(cur_text), len(next_text)
    cur_capital, next_capital = starts_with_capital(cur_text), starts_with_capital(next_text)
    cur_ends_period = bool(SENTENCE_END_PATTERN.search(cur_text))

    if effective_gap >= paragraph_gap_min or effective_gap >= normal_gap_max * 1.5:
        return True
    if mean > 0 and effective_gap >= mean * 2.0:
        return True
    avg_block_gap = pending["total_gap"] / pending["gap_count"] if pending["gap_count"] else 0
    if avg_block_gap > 0 and effective_gap >= avg_block_gap * 3.0:
        return True
    # Roughly an empty line
    if effective_gap >= cur_font * 8.0:
        return True

    font_change_ratio = abs(next_font - cur_font) / cur_font
    if font_change_ratio > 0.2:
        return True
    block_text = " ".join(ln.text for ln in pending["lines"]).strip()
    if 0 < len(block_text) < SHORT_TEXT_MAX and font_change_ratio > 0.15:
        return True
    if 0 < next_len < SHORT_TEXT_MAX and next_capital and mean > 0 and effective_gap >= mean * 1.5:
        return True

    is_short = 0 < cur_len < SHORT_TEXT
    is_very_short = 0 < cur_len < VERY_SHORT_TEXT
    if mean > 0 and cur_capital and next_capital:
        larger_font = cur_font / (base_font_size or DEFAULT_BASE_FONT_SIZE) >= 1.1
        if is_short and larger_font and effective_gap >= mean * 1.2:
            return True
        if is_short and next_len > MEDIUM_TEXT and effective_gap >= mean * 0.8:
            return True
        if is_very_short and effective_gap >= mean * 1.0:
            return True

    next_is_paragraph = next_capital and next_len > 50
    is_bold = current.is_bold or any(r.is_bold for r in getattr(current, "runs", []))
    if is_bold and is_short and not cur_ends_period and next_is_paragraph and mean > 0:
        if effective_gap >= mean * 0.5:
            return True

    # Short unterminated line with free space on its right: heading candidate
    if mean > 0 and (is_short or is_very_short) and not cur_ends_period:
        free_space = _line_has_free_space(current, is_short, is_very_short, cur_ends_period)
        if free_space and cur_capital and next_is_paragraph:
            threshold = mean * (0.3 if is_very_short else 0.5)
            if effective_gap >= threshold:
                return True
    return False


def _finalize_block(pending):
    block = Block(pending["lines"])
    block.average_gap = (
        pending["total_gap"] / pending["gap_count"] if pending["gap_count"] else 0.0
    )
    block.boundary_gap = pending["boundary_gap"]
    return block


def _new_pending(boundary_gap=None):
    return {"lines": [], "total_gap": 0.0, "gap_count": 0, "boundary_gap": boundary_gap}


def analyze_text_blocks(lines, gap_analysis, base_font_size=DEFAULT_BASE_FONT_SIZE) -> dict:
    """
    Segments y-sorted lines into visual text blocks: runs of lines with small
    gaps, separated by large empty spaces. Every input line ends up in
    exactly one block, in input order.
    """
    empty = {
        "blocks": [],
        "block_boundaries": [],
        "average_block_gap": 0.0,
        "average_in_block_gap": 0.0,
        "block_count": 0,
    }
    if not lines or len(lines) < 2:
        return empty

    blocks, pending = [], _new_pending()
    for current, nxt in zip(lines, lines[1:]):
        pending["lines"].append(current)
        gap = nxt.y - current.y
        if current.page_num != nxt.page_num:
            blocks.append(_finalize_block(pending))
            pending = _new_pending()
            continue
        if not math.isfinite(gap):
            continue
        if gap < 0:
            pending["total_gap"] += 0.1
            pending["gap_count"] += 1
            continue
        effective_gap = 0.1 if gap == 0 else gap
        if check_block_boundary(effective_gap, gap_analysis, pending, current, nxt, base_font_size):
            blocks.append(_finalize_block(pending))
            pending = _new_pending(effective_gap)
        else:
            pending["total_gap"] += effective_gap
            pending["gap_count"] += 1
    pending["lines"].append(lines[-1])
    blocks.append(_finalize_block(pending))

    boundaries = [b.boundary_gap for b in blocks if b.boundary_gap is not None]
    in_block = [b.average_gap for b in blocks if b.average_gap > 0]
    log_gaps.debug("Text blocks: %d lines -> %d blocks", len(lines), len(blocks))
    return {
        "blocks": blocks,
        "block_boundaries": boundaries,
        "average_block_gap": avg(boundaries),
        "average_in_block_gap": avg(in_block),
        "block_count": len(blocks),
    }


def is_text_block_boundary(gap, gap_analysis, text_block_analysis, prev_gap=None, next_gap=None):
    """True if `gap` looks like the empty space between two visual text blocks."""
    if not text_block_analysis or not text_block_analysis.get("block_count"):
        return False
    in_block = text_block_analysis["average_in_block_gap"]
    boundaries = text_block_analysis["block_boundaries"]
    if in_block > 0 and gap >= in_block * 3.0:
        return True
    if boundaries:
        similar = [b for b in boundaries if abs(b - gap) <= gap * 0.3]
        if len(similar) >= len(boundaries) * 0.3:
            return True
    if prev_gap is not None and next_gap is not None:
        neighbors = (prev_gap + next_gap) / 2
        if neighbors > 0 and gap >= neighbors * 2.5:
            return True
    return gap >= gap_analysis["normal_gap_max"] * 2.5


# --- DOCUMENT STRUCTURE ---
def analyze_structure(blocks) -> dict:
    """
    Summarizes font and style variation across the blocks of a column.
    A document without variation is `is_homogeneous`; `likely_has_headings`
    is set when there is variation or when a short first block is followed
    by a long one.
    """
    if not blocks:
        return {
            "is_homogeneous": True,
            "has_font_variation": False,
            "has_style_variation": False,
            "first_element_context": None,
            "likely_has_headings": False,
            "total_elements": 0,
            "unique_font_sizes": [],
        }

    sizes = {js_round(b.font_size * 2) / 2 for b in blocks if b.font_size and b.font_size > 0}
    has_font_variation = len(sizes) > 1
    has_style_variation = any(b.is_bold or b.is_italic for b in blocks)

    first = blocks[0]
    second = blocks[1] if len(blocks) > 1 else None
    first_ctx = {
        "text": first.text,
        "text_length": len(first.text),
        "font_size": first.font_size,
        "is_bold": first.is_bold,
        "is_italic": first.is_italic,
        "has_next_element": second is not None,
        "next_element_length": len(second.text) if second else 0,
        "gap_after_first": (second.min_y - first.max_y) if second else None,
    }

    likely_has_headings = has_font_variation or has_style_variation
    if not likely_has_headings:
        likely_has_headings = (
            first_ctx["text_length"] < SHORT_TEXT_MAX
            and first_ctx["next_element_length"] > MEDIUM_TEXT
        )

    structure = {
        "is_homogeneous": not has_font_variation and not has_style_variation,
        "has_font_variation": has_font_variation,
        "has_style_variation": has_style_variation,
        "first_element_context": first_ctx,
        "likely_has_headings": likely_has_headings,
        "total_elements": len(blocks),
        "unique_font_sizes": sorted(sizes),
    }
    log_gaps.debug(
        "Structure: homogeneous=%s, likely headings=%s, sizes=%s",
        structure["is_homogeneous"],
        likely_has_headings,
        structure["unique_font_sizes"],
    )
    return structure
