#!/usr/bin/env python3
"""
playout: Reconstructs the logical layout of a PDF.

This script decodes a PDF with pdfminer.six and runs the playout_lib
pipeline over every selected page: lines, columns, blocks, classification,
list and table reconstruction. The resulting headings, paragraphs, lists
and tables are printed as JSON or rendered in the terminal.
"""

import argparse
import json
import logging
import os
import sys
import time

# --- Dependency Imports ---
try:
    from rich.console import Console
    from rich.table import Table as RichTable
    from rich.text import Text
    from rich.theme import Theme
except ImportError as e:
    print(f"Error: Missing required library. -> {e}")
    print("Please install all core dependencies with:")
    print("pip install pdfminer.six rich numpy")
    sys.exit(1)

# --- Local Application Imports ---
from core.log_utils import setup_logging
from playout_lib.api import elements_to_dicts, parse_page_selection, process_pdf

log = logging.getLogger("playout")


# --- CUSTOM ARGPARSE FORMATTER ---
class CustomHelpFormatter(
    argparse.ArgumentDefaultsHelpFormatter, argparse.RawTextHelpFormatter
):
    """
    A custom argparse formatter that combines showing default values with
    preserving newline formatting in help text.
    """

    pass


class Application:
    """Runs the layout pipeline on a PDF according to command-line arguments."""

    THEME = Theme(
        {
            "heading": "bold sky_blue2",
            "list.marker": "turquoise2",
            "table.header": "bold sky_blue2",
        }
    )

    def __init__(self, args):
        self.args = args

    def run(self):
        """Main entry point for the application logic."""
        setup_logging(
            project_name="playout",
            level=logging.INFO if self.args.verbose else logging.WARNING,
            color_logs=self.args.color_logs,
            debug_topics=self.args.debug_topics,
            log_file=self.args.log_file,
        )
        selection = parse_page_selection(self.args.pages)
        if selection is None and self.args.pages.lower() != "all":
            sys.exit(1)

        start = time.monotonic()
        elements = process_pdf(self.args.pdf_file, pages=selection, workers=self.args.workers)
        log.info(
            "Extracted %d elements in %.2fs.", len(elements), time.monotonic() - start
        )
        if not elements:
            log.error("No content could be extracted.")

        if self.args.output_file:
            with open(self.args.output_file, "w", encoding="utf-8") as f:
                self._write(elements, Console(file=f, theme=self.THEME, no_color=True, width=100))
            log.info("Output saved to %s", self.args.output_file)
        else:
            self._write(elements, Console(theme=self.THEME))

    def _write(self, elements, console):
        if self.args.format == "json":
            payload = {
                "source": os.path.basename(self.args.pdf_file),
                "elements": elements_to_dicts(elements),
            }
            console.print_json(json.dumps(payload, ensure_ascii=False))
            return
        for element in elements:
            render_element(console, element)


# --- TEXT RENDERING ---
def render_element(console, element):
    """Prints one element with rich."""
    if element.kind == "heading":
        console.print()
        console.print(Text(element.text, style="heading"))
    elif element.kind == "list":
        for number, item in enumerate(element.items, start=1):
            _render_item(console, item, number)
    elif element.kind == "table":
        table = RichTable(show_header=element.has_headers, header_style="table.header")
        rows = element.rows
        if element.has_headers and rows:
            for cell in rows[0]:
                table.add_column(cell)
            rows = rows[1:]
        else:
            for _ in range(element.column_count):
                table.add_column()
        for row in rows:
            table.add_row(*row)
        console.print(table)
    else:
        console.print(element.text)
    console.print()


def _render_item(console, item, number):
    line = Text("  " * item.level)
    line.append(f"{number}. " if item.is_ordered else "- ", style="list.marker")
    line.append(item.text)
    console.print(line)
    for child_number, child in enumerate(item.children, start=1):
        _render_item(console, child, child_number)


def parse_arguments(args=None):
    """Parses command-line arguments for the script."""
    examples = [
        "\nExamples:",
        "  python playout.py document.pdf",
        "  python playout.py document.pdf -p 1,3,5-7 -f json -o layout.json",
        "  python playout.py document.pdf -w 4 -d tables,lists --color-logs",
    ]
    parser = argparse.ArgumentParser(
        description="Reconstructs headings, paragraphs, lists and tables from a PDF.",
        formatter_class=CustomHelpFormatter,
        add_help=False,
        epilog="\n".join(examples),
    )

    g_opts = parser.add_argument_group("Main Options")
    g_opts.add_argument("pdf_file", help="Path to the input PDF file.")
    g_opts.add_argument(
        "-h",
        "--help",
        action="help",
        help="Show this help message and exit.",
    )

    g_proc = parser.add_argument_group("Processing Control")
    g_proc.add_argument(
        "-p",
        "--pages",
        default="all",
        metavar="PAGES",
        help="Pages to process (e.g., '1,3,5-7').",
    )
    g_proc.add_argument(
        "-w",
        "--workers",
        type=int,
        default=1,
        metavar="COUNT",
        help="Number of pages processed in parallel.",
    )

    g_out = parser.add_argument_group("Script Output")
    g_out.add_argument(
        "-f",
        "--format",
        choices=["json", "text"],
        default="text",
        help="Output format.",
    )
    g_out.add_argument(
        "-o",
        "--output-file",
        default=None,
        metavar="FILE",
        help="Save output to a file instead of printing it.",
    )
    g_out.add_argument(
        "--log-file",
        metavar="FILE",
        default=None,
        help="Redirect all logging output to a specified file.",
    )
    g_out.add_argument(
        "--color-logs",
        action="store_true",
        help="Enable colored logging output.",
    )
    g_out.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable INFO logging for detailed progress.",
    )
    g_out.add_argument(
        "-d",
        "--debug",
        nargs="?",
        const="all",
        dest="debug_topics",
        metavar="TOPICS",
        help="Enable DEBUG logging (all,layout,graphics,lines,columns,gaps,\n"
        "classify,decide,lists,tables,page,api).",
    )
    return parser.parse_args(args)


def main():
    """Main entry point for the script."""
    # Basic logging config for early errors before full setup
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    try:
        args = parse_arguments(sys.argv[1:])
        Application(args).run()
    except FileNotFoundError as e:
        log.critical(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        log.info("\nProcess interrupted by user. Exiting.")
        sys.exit(0)
    except Exception as e:
        log.critical("\nAn unexpected error occurred: %s", e, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
