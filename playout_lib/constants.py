# --- playout_lib/constants.py ---
"""
playout_lib/constants.py: Tunable thresholds and shared text patterns.

Every geometric tolerance is expressed as a multiplier of the base font size
so the same values work for small print and large-type documents.
"""
import re
import sys

# --- DEFAULT METRICS ---
DEFAULT_BASE_FONT_SIZE = 12
DEFAULT_MEDIAN_FONT_SIZE = 12
DEFAULT_MODE_SPACING = 12
DEFAULT_PARAGRAPH_GAP_THRESHOLD = 18
DEFAULT_PARAGRAPH_GAP_RATIO = 1.33

# Gap value stored on a block whose successor sits on another page
CROSS_PAGE_BREAK_MARKER = sys.maxsize

# --- CLUSTERING ---
DEFAULT_X_TOLERANCE = 3
DEFAULT_Y_TOLERANCE = 3
X_TOLERANCE_MULTIPLIER = 0.25
Y_TOLERANCE_MULTIPLIER = 0.15
MIN_COLUMN_GAP = 30

# --- CONFIDENCE LEVELS ---
CONFIDENCE_HIGH = 0.8
CONFIDENCE_MEDIUM = 0.6
CONFIDENCE_LOW = 0.4
CONFIDENCE_MINIMUM = 0.3
FALLBACK_CONFIDENCE = 0.5

# --- ELEMENT DECISION ---
VERY_SHORT_TEXT = 50
SHORT_TEXT = 100
SHORT_TEXT_MAX = 150
MEDIUM_TEXT = 200
LONG_TEXT_MIN = 200
VERY_LONG_TEXT_MIN = 300
IMPLICIT_HEADING_MAX_LENGTH = 150
IMPLICIT_HEADING_MIN_CONFIDENCE = 0.5
HEADING_VS_PARAGRAPH_LARGE_DIFF = 0.2
HEADING_VS_PARAGRAPH_BAND = 0.15
HEADING_BAND_MIN_CONFIDENCE = 0.4
HEADING_CONFIDENCE_BOOST = 0.15
TABLE_OVER_PARAGRAPH_CONFIDENCE = 0.7
LIST_MIN_CONFIDENCE = 0.5
LIST_STRONG_CONFIDENCE = 0.7
LIST_VS_PARAGRAPH_SLACK = 0.05
LIST_HEADING_MAX_LENGTH = 100
LIST_HEADING_SHORT_LENGTH = 50
LIST_HEADING_BOOSTED_CONFIDENCE = 0.8
LIST_HEADING_MIN_CONFIDENCE = 0.6
TABLE_MIN_CONFIDENCE = 0.6
TABLE_MIN_COLUMNS = 2
TABLE_MIN_ROWS = 2

# Font-size ratios used by the heading preference rules
SLIGHTLY_LARGER_FONT_RATIO = 1.05
LARGER_FONT_RATIO = 1.1
MUCH_LARGER_FONT_RATIO = 1.3
SHORT_LARGE_FONT_MIN_CONFIDENCE = 0.3
VERY_LARGE_FONT_MIN_CONFIDENCE = 0.2

# --- PARAGRAPH CLASSIFIER ---
PARAGRAPH_SHORT_LENGTH = 300
PARAGRAPH_MEDIUM_LENGTH = 500
PARAGRAPH_WEIGHTS = (0.4, 0.3, 0.3)

# --- HEADING CLASSIFIER ---
HEADING_MAX_LENGTH_WITH_COLON = 100
HEADING_MAX_LENGTH_CAPITAL = 80
HEADING_SCORES = {
    "numbered": 5,
    "short_large_font": 5,
    "list_heading": 5,
    "by_size": 4,
    "multi_word_capital": 4,
    "after_list": 3,
    "by_style": 3,
    "by_colon": 2,
    "by_gap_after": 3,
    "short_capital": 2,
    "by_position": 2,
    "first_element_short": 2,
    "very_long_text": -3,
    "many_words": -2,
    "long_text_many_words": -2,
    "sentence_in_middle": -1,
    "long_without_formatting": -1,
}
HEADING_MAX_SCORE = 20
HEADING_MIN_SCORE = -8
HEADING_BASE_THRESHOLD_HIGH_VARIABILITY = 3
HEADING_BASE_THRESHOLD_LOW_VARIABILITY = 4
HEADING_HOMOGENEOUS_BONUS = 1
HEADING_SMALL_FONT_ADJUSTMENT = 1
HEADING_LARGE_FONT_ADJUSTMENT = -1
HEADING_MIN_FONT_SIZE_RATIO = 1.3
HEADING_STRONG_FONT_SIZE_RATIO = 1.35
HEADING_VERY_LARGE_FONT_RATIO = 2.0
HEADING_MAX_HEADING_LENGTH = 100
HEADING_DEFINITELY_NOT_LENGTH = 300
HEADING_MAX_WORD_COUNT = 15
HEADING_MAX_WORDS_LARGE_FONT = 5
HEADING_MIN_CONFIDENCE_WHEN_DETECTED = 0.6
HEADING_MIN_GAP_AFTER = 20
HEADING_SIGNIFICANT_GAP_MULTIPLIER = 1.5

# --- GAP ANALYSIS ---
PARAGRAPH_GAP_MIN_MULTIPLIER = 1.5
OUTLIER_GAP_MULTIPLIER = 1.5
LIST_ITEM_GAP_MULTIPLIER = 0.9
LIST_ITEM_BREAK_MULTIPLIER = 0.8
HEADING_GAP_MULTIPLIER = 0.9
FONT_CHANGE_RATIO = 0.2
BOUNDARY_STRONG_SCORE = 0.65
BOUNDARY_WEAK_SCORE = 0.35

# --- LISTS ---
LIST_INDENT_MULTIPLIER = 0.15
LIST_INDENT_MIN = 10
LIST_MAX_LEVEL = 5

# --- TABLE DETECTION ---
TABLE_Y_TOLERANCE_MULTIPLIER = 0.3
TABLE_ROW_TOLERANCE_MULTIPLIER = 0.15
TABLE_COLUMN_TOLERANCE_MULTIPLIER = 0.1
TABLE_CELL_TOLERANCE_MULTIPLIER = 0.2
TABLE_ROW_GAP_MULTIPLIER = 2.5
TABLE_ALIGNMENT_TOLERANCE_MULTIPLIER = 0.15
TABLE_ALGORITHM_WEIGHTS = {
    "grid-pattern": 0.5,
    "column-alignment": 0.3,
    "row-structure": 0.2,
}
TABLE_GRID_ALIGNMENT_WEIGHT = 0.7
TABLE_GRID_SIZE_WEIGHT = 0.3
TABLE_GRID_MAX_COLUMNS = 5
TABLE_GRID_MAX_ROWS = 5
TABLE_GRID_CONFIDENCE_CAP = 0.95
TABLE_ALIGNMENT_SCORE_WEIGHT = 0.8
TABLE_COLUMN_SCORE_WEIGHT = 0.2
TABLE_COLUMN_SCORE_MAX_COLUMNS = 5
TABLE_ALIGNMENT_CONFIDENCE_CAP = 0.9
TABLE_ROW_SMALL_GAP_WEIGHT = 0.6
TABLE_ROW_REGULARITY_WEIGHT = 0.4
TABLE_ROW_CONFIDENCE_CAP = 0.85
TABLE_ROW_SMALL_GAP_RATIO = 0.7
TABLE_MAX_AVG_LINE_LENGTH = 100
TABLE_LINE_LENGTH_PENALTY_DIVISOR = 50
TABLE_GAP_CV_THRESHOLD = 0.3
TABLE_GAP_SIZE_MULTIPLIER = 2.0
TABLE_PARAGRAPH_TEXT_LENGTH = 200
TABLE_PARAGRAPH_LINE_COUNT = 10
TABLE_PARAGRAPH_AVG_LINE_LENGTH = 50
TABLE_MAX_AVG_CELL_LENGTH = 150
TABLE_MAX_CELL_LENGTH = 400
TABLE_MAX_LONG_CELL_LENGTH = 100
TABLE_MAX_LONG_CELL_RATIO = 0.5
TABLE_HEADER_BOLD_RATIO = 0.5
TABLE_HEADER_EMPTY_CELL_RATIO = 0.7
TABLE_CELL_OVERLAP_RATIO = 0.3
TABLE_COLUMN_MIN_OCCURRENCE_RATIO = 0.3
TABLE_HEADER_WORDS = (
    "parameter",
    "value",
    "compound",
    "type",
    "found",
    "name",
    "description",
    "quantity",
    "price",
    "amount",
    "title",
    "label",
    "item",
    "data",
    "result",
)

# --- GRAPHICS ---
LINE_THICKNESS_THRESHOLD = 5
LINE_THICKNESS_MULTIPLIER = 0.4
LINE_LENGTH_THRESHOLD = 20
LINE_LENGTH_MULTIPLIER = 1.5
STROKE_AXIS_TOLERANCE = 2
GRAPHICS_TOLERANCE_DEFAULT = 10
GRAPHICS_TOLERANCE_MULTIPLIER = 0.8
MIN_GRAPHICS_LINES_FOR_TABLE = 2
SINGULAR_DETERMINANT = 1e-10

# --- TEXT STYLE ---
BOLD_FONT_PATTERN = re.compile(r"bold|black|heavy|demi|semi", re.I)
ITALIC_FONT_PATTERN = re.compile(r"italic|oblique", re.I)
UNDERLINE_MAX_DISTANCE = 5
UNDERLINE_DISTANCE_FACTOR = 0.2
UNDERLINE_MIN_COVERAGE = 0.5

# --- SHARED PATTERNS ---
LIST_MARKERS = r"[•\-\*\+▪▫◦‣⁃]"
LIST_ITEM_START_PATTERN = re.compile(rf"^\s*({LIST_MARKERS}|\d+[\.\)])\s+")
CONTAINS_LIST_ITEM_PATTERN = re.compile(rf"[:\s]+({LIST_MARKERS}|\d+[\.\)])\s+")
HEADING_LIST_PATTERN = re.compile(rf":\s+({LIST_MARKERS}|\d+[\.\)])\s+")
INLINE_MARKER_PATTERN = re.compile(rf"\s+({LIST_MARKERS}|\d+[\.\)])\s+")
ORDERED_ITEM_PATTERN = re.compile(r"^\s*\d+[\.\)]\s+")
SENTENCE_END_PATTERN = re.compile(r"[.!?]\s*$")
PUNCTUATION_END_PATTERN = re.compile(r"[,;:—–-]\s*$")
HYPHEN_END_PATTERN = re.compile(r"[-—–]\s*$")
COLON_END_PATTERN = re.compile(r":\s*$")


def starts_with_capital(text: str) -> bool:
    """True if the first character is an uppercase letter (any script)."""
    return bool(text) and text[0].isupper()


def starts_with_lowercase(text: str) -> bool:
    """True if the first character is a lowercase letter (any script)."""
    return bool(text) and text[0].islower()


# --- LIST MARKER PATTERNS ---
NUMBERED_MARKER_PATTERN = re.compile(r"^\s*(\d+)[.)]\s+")
LETTER_MARKER_PATTERN = re.compile(r"^\s*([a-zA-Z])[.)]\s+")
ROMAN_MARKER_PATTERN = re.compile(
    r"^\s*(i{1,3}|iv|vi{0,3}|xi{0,2}|I{1,3}|IV|VI{0,3}|XI{0,2})[.)]\s+"
)
BULLET_MARKER_PATTERN = re.compile(rf"^\s*({LIST_MARKERS})\s+")
NUMBERED_HEADING_PATTERN = re.compile(r"^(\d+)(?:\.(\d+))?(?:\.(\d+))?[.)]\s+")
# Bullets that conventionally mark a nested level
NESTED_BULLETS = ("-", "—", "–", "*", "+")
