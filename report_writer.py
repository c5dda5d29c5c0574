"""
Report Writer Module
Renders a Report tree to plain fixed-width text.

Output layout:
    - Headers:    text line, "=" underline for level 1, blank line
    - Paragraphs: word-wrapped lines, blank line
    - Tables:     "Table N. caption", blank line, "| a | b |" rows, blank line
    - Drawings, equations, images and plots are not written.
"""

import io
import logging
import textwrap
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, List, Optional, Protocol, TextIO, Union

from report_model import (
    Alignment,
    DrawingFigure,
    Equation,
    Header,
    Image,
    Paragraph,
    PlotFigure,
    Report,
    ReportStyle,
    Table,
)

logger = logging.getLogger(__name__)


DEFAULT_MAX_LINE_LENGTH = 60

TABLE_ROW_START = "| "
TABLE_CELL_SEPARATOR = " | "
TABLE_ROW_END = " |"


# ═══════════════════════════════════════════════════════════════════════════════
# WRITER PROTOCOL
# ═══════════════════════════════════════════════════════════════════════════════


class ReportWriter(Protocol):
    """Capability set a report tree calls back into, one method per item kind."""

    def write_report(self, report: Report, style: Optional[ReportStyle]) -> None: ...

    def write_header(self, header: Header) -> None: ...

    def write_paragraph(self, paragraph: Paragraph) -> None: ...

    def write_table(self, table: Table) -> None: ...

    def write_image(self, image: Image) -> None: ...

    def write_equation(self, equation: Equation) -> None: ...

    def write_drawing(self, drawing: DrawingFigure) -> None: ...

    def write_plot(self, plot: PlotFigure) -> None: ...


# ═══════════════════════════════════════════════════════════════════════════════
# LAYOUT HELPERS
# ═══════════════════════════════════════════════════════════════════════════════


def wrap_lines(text: str, max_line_length: int) -> List[str]:
    """
    Break text into lines of at most max_line_length characters.

    Breaks only at whitespace and collapses whitespace runs to one space.
    A word longer than max_line_length is kept whole on its own line.
    """
    return textwrap.wrap(
        " ".join(text.split()),
        width=max_line_length,
        break_long_words=False,
        break_on_hyphens=False,
    )


def compute_column_widths(table: Table) -> List[int]:
    """Widest cell content per column. None content counts as zero."""
    widths = []
    for j in range(len(table.columns)):
        width = 0
        for row in table.rows:
            content = row.cells[j].content
            width = max(width, len(content) if content is not None else 0)
        widths.append(width)
    return widths


def pad_cell(text: Optional[str], alignment: Alignment, width: int) -> str:
    """
    Pad cell text to width according to alignment.

    None text becomes a blank of the full width. Center pads on the right to
    (len + width) // 2 first, then on the left to width, so odd slack puts the
    extra space on the left.
    """
    if text is None:
        return "".rjust(width)

    if alignment is Alignment.LEFT:
        return text.ljust(width)
    if alignment is Alignment.RIGHT:
        return text.rjust(width)
    if alignment is Alignment.CENTER:
        text = text.ljust((len(text) + width) // 2)
        return text.rjust(width)

    raise ValueError(f"Unsupported column alignment: {alignment!r}")


def decorate_cell(index: int, count: int, padded: str) -> str:
    """Add row start, cell separator and row end delimiters to a padded cell."""
    if index == 0:
        padded = TABLE_ROW_START + padded
    if index + 1 < count:
        padded += TABLE_CELL_SEPARATOR
    if index == count - 1:
        padded += TABLE_ROW_END
    return padded


# ═══════════════════════════════════════════════════════════════════════════════
# TEXT WRITER
# ═══════════════════════════════════════════════════════════════════════════════


class TextReportWriter:
    """
    Plain text report writer.

    Borrows a writable text sink; opening, flushing and closing it is left to
    the caller (see open_text_report). Not safe for concurrent use.
    """

    def __init__(self, sink: TextIO, max_line_length: int = DEFAULT_MAX_LINE_LENGTH):
        self.sink = sink
        self.max_line_length = max_line_length
        self._table_counter = 0

    @property
    def max_line_length(self) -> int:
        return self._max_line_length

    @max_line_length.setter
    def max_line_length(self, value: int) -> None:
        if value <= 0:
            raise ValueError(f"max_line_length must be positive, got {value}")
        self._max_line_length = value

    def _write_line(self, line: str = "") -> None:
        self.sink.write(line + "\n")

    # ── Entry point ─────────────────────────────────────────────────────────

    def write_report(self, report: Report, style: Optional[ReportStyle] = None) -> None:
        """Write the whole report. The style is not used for plain text."""
        report.write(self)

    # ── Text content ────────────────────────────────────────────────────────

    def write_header(self, header: Header) -> None:
        if header.text is None:
            return

        self._write_line(header.text)
        if header.level == 1:
            self._write_line("=" * len(header.text))
        self._write_line()

    def write_paragraph(self, paragraph: Paragraph) -> None:
        for line in wrap_lines(paragraph.text, self.max_line_length):
            self._write_line(line)
        self._write_line()

    def write_table(self, table: Table) -> None:
        self._table_counter += 1
        self._write_line(f"Table {self._table_counter}. {table.caption}")
        self._write_line()

        cols = len(table.columns)
        widths = compute_column_widths(table)

        for row in table.rows:
            line = []
            for j in range(cols):
                padded = pad_cell(row.cells[j].content, table.columns[j].alignment, widths[j])
                line.append(decorate_cell(j, cols, padded))
            self._write_line("".join(line))

        self._write_line()
        logger.debug(
            "Wrote table %d: %d rows x %d columns, widths=%s",
            self._table_counter,
            len(table.rows),
            cols,
            widths,
        )

    # ── Graphical content (not written as text) ─────────────────────────────

    def write_image(self, image: Image) -> None:
        pass

    def write_equation(self, equation: Equation) -> None:
        pass

    def write_drawing(self, drawing: DrawingFigure) -> None:
        pass

    def write_plot(self, plot: PlotFigure) -> None:
        pass


# ═══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ═══════════════════════════════════════════════════════════════════════════════


@contextmanager
def open_text_report(
    target: Union[str, Path, IO],
    max_line_length: int = DEFAULT_MAX_LINE_LENGTH,
    encoding: str = "utf-8",
) -> Iterator[TextReportWriter]:
    """
    Open a sink and yield a TextReportWriter on it.

    Args:
        target: File path (created or overwritten), binary stream, or text stream
        max_line_length: Maximum paragraph line length
        encoding: Encoding used for paths and binary streams

    The sink is released on exit even when rendering fails: files opened here
    are closed, binary streams are flushed and detached (left open), text
    streams are flushed.
    """
    if isinstance(target, (str, Path)):
        with open(target, "w", encoding=encoding, newline="\n") as sink:
            yield TextReportWriter(sink, max_line_length)
        return

    if isinstance(target, io.TextIOBase):
        try:
            yield TextReportWriter(target, max_line_length)
        finally:
            target.flush()
        return

    wrapper = io.TextIOWrapper(target, encoding=encoding, newline="\n")  # type: ignore[arg-type]
    try:
        yield TextReportWriter(wrapper, max_line_length)
    finally:
        wrapper.flush()
        wrapper.detach()


def render_to_text(
    report: Report,
    max_line_length: int = DEFAULT_MAX_LINE_LENGTH,
    style: Optional[ReportStyle] = None,
) -> str:
    """
    Render a Report to a plain text string.

    Args:
        report: The Report to render
        max_line_length: Maximum paragraph line length
        style: Passed through to write_report

    Returns:
        Plain text string
    """
    buffer = io.StringIO()
    writer = TextReportWriter(buffer, max_line_length)
    writer.write_report(report, style or report.style)
    return buffer.getvalue()
