# --- playout_lib/source.py ---
"""
playout_lib/source.py: pdfminer.six adapter that decodes a PDF into
PageInput records.

This module contains:
- RecordingInterpreter: a PDFPageInterpreter that also records the graphics
  operators it executes as `(opcode, args)` tuples.
- chars_to_runs: merges pdfminer LTChar glyphs into positioned TextRuns.
- PDFSource: yields one PageInput (runs, operators, viewport) per page.
"""
import logging
import os

from pdfminer.converter import PDFPageAggregator
from pdfminer.layout import LTChar, LTContainer
from pdfminer.pdfinterp import LITERAL_FORM, PDFPageInterpreter, PDFResourceManager
from pdfminer.pdfpage import PDFPage
from pdfminer.pdftypes import list_value, stream_value
from pdfminer.psparser import literal_name
from pdfminer.utils import MATRIX_IDENTITY

from .models import PageInput, TextRun, Viewport

log_api = logging.getLogger("playout.api")

# Horizontal gap (in font sizes) below which two glyphs belong to one word
WORD_GAP_FACTOR = 0.15
# Horizontal gap (in font sizes) above which a new run starts
RUN_GAP_FACTOR = 1.0
BASELINE_TOLERANCE_FACTOR = 0.2


class RecordingInterpreter(PDFPageInterpreter):
    """Executes a page as usual and keeps the path and state operators."""

    def __init__(self, rsrcmgr, device):
        super().__init__(rsrcmgr, device)
        self.operators = []

    def dup(self):
        # Form XObjects run in a child interpreter; share the recording
        interpreter = super().dup()
        interpreter.operators = self.operators
        return interpreter

    def process_page(self, page):
        self.operators = []
        super().process_page(page)

    def _record(self, opcode, args=()):
        try:
            values = [float(a) for a in args]
        except (TypeError, ValueError):
            values = list(args)
        self.operators.append((opcode, values))

    def do_q(self):
        self._record("save")
        super().do_q()

    def do_Q(self):
        self._record("restore")
        super().do_Q()

    # pdfminer pops as many operands as the handler declares
    def do_cm(self, a, b, c, d, e, f):
        self._record("concat", [a, b, c, d, e, f])
        super().do_cm(a, b, c, d, e, f)

    def do_w(self, linewidth):
        self._record("setLineWidth", [linewidth])
        super().do_w(linewidth)

    def do_m(self, x, y):
        self._record("moveTo", [x, y])
        super().do_m(x, y)

    def do_l(self, x, y):
        self._record("lineTo", [x, y])
        super().do_l(x, y)

    def do_re(self, x, y, w, h):
        self._record("rectangle", [x, y, w, h])
        super().do_re(x, y, w, h)

    def do_h(self):
        self._record("closePath")
        super().do_h()

    def do_S(self):
        self._record("stroke")
        super().do_S()

    def do_n(self):
        self._record("endPath")
        super().do_n()

    def do_BT(self):
        self._record("beginText")
        super().do_BT()

    def do_ET(self):
        self._record("endText")
        super().do_ET()

    def do_Tm(self, a, b, c, d, e, f):
        self._record("setTextMatrix", [a, b, c, d, e, f])
        super().do_Tm(a, b, c, d, e, f)

    def do_Do(self, xobjid_arg):
        matrix = None
        try:
            xobj = stream_value(self.xobjmap[literal_name(xobjid_arg)])
            if xobj.get("Subtype") is LITERAL_FORM:
                matrix = list_value(xobj.get("Matrix", MATRIX_IDENTITY))
        except (KeyError, TypeError, ValueError) as e:
            log_api.debug("Cannot resolve XObject %r: %s", xobjid_arg, e)
        if matrix is None:
            super().do_Do(xobjid_arg)
            return
        self._record("save")
        self._record("concat", matrix)
        super().do_Do(xobjid_arg)
        self._record("restore")


def iter_chars(layout):
    """Yields every LTChar of a layout tree in content order."""
    for obj in layout:
        if isinstance(obj, LTChar):
            yield obj
        elif isinstance(obj, LTContainer):
            yield from iter_chars(obj)


def _continues(prev, char):
    if prev.fontname != char.fontname or abs(prev.size - char.size) > 0.1:
        return False
    if abs(prev.y0 - char.y0) > max(prev.size, 1.0) * BASELINE_TOLERANCE_FACTOR:
        return False
    gap = char.x0 - prev.x1
    return -prev.size * WORD_GAP_FACTOR <= gap < prev.size * RUN_GAP_FACTOR


def chars_to_runs(chars, page_num, page_top):
    """
    Merges glyphs that share font, size and baseline into TextRuns. Y is
    flipped to a top-down view: `y` is the top of the run.
    """
    runs, group, parts = [], [], []

    def flush():
        text = "".join(parts).strip()
        if text:
            first, last = group[0], group[-1]
            runs.append(
                TextRun(
                    text=text,
                    x=first.x0,
                    y=page_top - max(c.y1 for c in group),
                    width=last.x1 - first.x0,
                    font_size=round(first.size, 2),
                    page_num=page_num,
                    font_name=first.fontname,
                )
            )

    for char in chars:
        if group and _continues(group[-1], char):
            if char.x0 - group[-1].x1 > group[-1].size * WORD_GAP_FACTOR:
                parts.append(" ")
        elif group:
            flush()
            group, parts = [], []
        group.append(char)
        parts.append(char.get_text())
    if group:
        flush()
    return runs


class PDFSource:
    """Decodes the pages of one PDF file."""

    def __init__(self, pdf_path):
        if not os.path.exists(pdf_path):
            raise FileNotFoundError(f"PDF file not found: {pdf_path}")
        self.pdf_path = pdf_path

    def pages(self, selection=None):
        """Yields a PageInput for every selected (1-based) page."""
        rsrcmgr = PDFResourceManager()
        device = PDFPageAggregator(rsrcmgr, laparams=None)
        interpreter = RecordingInterpreter(rsrcmgr, device)
        with open(self.pdf_path, "rb") as fp:
            for page_num, page in enumerate(PDFPage.get_pages(fp), start=1):
                if selection and page_num not in selection:
                    continue
                yield self._decode(interpreter, device, page, page_num)

    @staticmethod
    def _decode(interpreter, device, page, page_num):
        x0, y0, x1, y1 = page.mediabox
        viewport = Viewport.for_page(x0, y0, x1, y1)
        try:
            interpreter.process_page(page)
        except Exception as e:
            log_api.warning("Could not decode page %d: %s", page_num, e)
            return PageInput(page_num, [], [], viewport)
        runs = chars_to_runs(iter_chars(device.get_result()), page_num, y1)
        log_api.debug(
            "Decoded page %d: %d runs, %d graphics operators",
            page_num,
            len(runs),
            len(interpreter.operators),
        )
        return PageInput(page_num, runs, list(interpreter.operators), viewport)
