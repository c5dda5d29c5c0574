"""
Report Model Module
In-memory report document tree consumed by report writers.

A report is a tree of items. Every item writes its own content through a
ReportWriter and then its children, depth first, which defines document
order. Writers never walk the tree themselves.

Item kinds:
    - Header, Paragraph          (text content)
    - Table, ItemsTable          (tabular content)
    - Image, Equation,
      DrawingFigure, PlotFigure  (graphical content, ignored by text output)
    - ReportSection              (grouping only)
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Mapping, Optional, Sequence, TYPE_CHECKING
import logging

if TYPE_CHECKING:
    from report_writer import ReportWriter


logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════


class Alignment(Enum):
    """Horizontal alignment of a table column"""

    LEFT = auto()
    RIGHT = auto()
    CENTER = auto()


# ═══════════════════════════════════════════════════════════════════════════════
# STYLE
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ReportStyle:
    """
    Presentation hints passed to ReportWriter.write_report.

    Fonts and sizes are for writers that lay out styled output (HTML, PDF,
    Word). TextReportWriter accepts a style and ignores it.
    """

    default_font: str = "Arial"
    header_font_sizes: Sequence[float] = (16.0, 14.0, 13.0, 12.0, 11.0, 10.0)
    body_text_size: float = 11.0


# ═══════════════════════════════════════════════════════════════════════════════
# BASE ITEM
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class ReportItem:
    """A node of the report tree"""

    children: List["ReportItem"] = field(default_factory=list, init=False, repr=False)

    def write(self, writer: "ReportWriter") -> None:
        """Write this item, then its children, in document order."""
        self.write_content(writer)
        for child in self.children:
            child.write(writer)

    def write_content(self, writer: "ReportWriter") -> None:
        """Write the content of this item only. Containers write nothing."""

    # ── Builders ────────────────────────────────────────────────────────────

    def add(self, item: "ReportItem") -> "ReportItem":
        self.children.append(item)
        return item

    def add_section(self) -> "ReportSection":
        section = ReportSection()
        self.children.append(section)
        return section

    def add_header(self, level: int, text: Optional[str]) -> "Header":
        header = Header(level=level, text=text)
        self.children.append(header)
        return header

    def add_paragraph(self, text: str) -> "Paragraph":
        paragraph = Paragraph(text=text)
        self.children.append(paragraph)
        return paragraph

    def add_table(
        self,
        caption: str = "",
        columns: Optional[Sequence[Alignment]] = None,
    ) -> "Table":
        table = Table(caption=caption)
        for alignment in columns or ():
            table.columns.append(TableColumn(alignment=alignment))
        self.children.append(table)
        return table

    def add_items_table(
        self,
        caption: str,
        items: Sequence[Any],
        fields: Sequence["ItemsTableField"],
        items_in_rows: bool = True,
        has_header: bool = True,
    ) -> "ItemsTable":
        table = ItemsTable(
            caption=caption,
            items=list(items),
            fields=list(fields),
            items_in_rows=items_in_rows,
            has_header=has_header,
        )
        self.children.append(table)
        return table

    def add_image(self, source: str, caption: str = "") -> "Image":
        image = Image(source=source, caption=caption)
        self.children.append(image)
        return image

    def add_equation(self, content: str, caption: str = "") -> "Equation":
        equation = Equation(content=content, caption=caption)
        self.children.append(equation)
        return equation

    def add_drawing(self, content: str, caption: str = "") -> "DrawingFigure":
        drawing = DrawingFigure(content=content, caption=caption)
        self.children.append(drawing)
        return drawing

    def add_plot(
        self,
        plot: Any,
        caption: str = "",
        width: float = 800,
        height: float = 500,
    ) -> "PlotFigure":
        figure = PlotFigure(plot=plot, caption=caption, width=width, height=height)
        self.children.append(figure)
        return figure


# ═══════════════════════════════════════════════════════════════════════════════
# DATA MODELS
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class ReportSection(ReportItem):
    """A grouping of items without content of its own"""


@dataclass
class Header(ReportItem):
    """A header element"""

    level: int = 1
    text: Optional[str] = None

    def write_content(self, writer: "ReportWriter") -> None:
        writer.write_header(self)


@dataclass
class Paragraph(ReportItem):
    """A paragraph element"""

    text: str = ""

    def write_content(self, writer: "ReportWriter") -> None:
        writer.write_paragraph(self)


@dataclass
class TableColumn:
    """A column definition of a table"""

    alignment: Alignment = Alignment.LEFT


@dataclass
class TableCell:
    """A cell in a table. None content renders as a blank cell."""

    content: Optional[str] = None


@dataclass
class TableRow:
    """A row in a table"""

    cells: List[TableCell] = field(default_factory=list)


@dataclass
class Table(ReportItem):
    """
    A table element.

    Every row must hold exactly one cell per column. Writers rely on this
    and do not check it.
    """

    caption: str = ""
    columns: List[TableColumn] = field(default_factory=list)
    rows: List[TableRow] = field(default_factory=list)

    def add_row(self, *contents: Optional[str]) -> TableRow:
        """Append a row with one cell per given content."""
        row = TableRow(cells=[TableCell(content=c) for c in contents])
        self.rows.append(row)
        return row

    def write_content(self, writer: "ReportWriter") -> None:
        writer.write_table(self)


@dataclass
class ItemsTableField:
    """
    Describes one field of an ItemsTable.

    Args:
        header: Header text of the field
        path: Key (for mappings) or attribute name (for objects)
        format: Optional str.format spec applied to the value, e.g. "0.2f"
        alignment: Alignment of the resulting column
    """

    header: str
    path: str
    format: Optional[str] = None
    alignment: Alignment = Alignment.LEFT

    def get_text(self, item: Any) -> Optional[str]:
        """Resolve and format the field value of an item."""
        if isinstance(item, Mapping):
            value = item.get(self.path)
        else:
            value = getattr(item, self.path, None)

        if value is None:
            return None
        if self.format:
            return format(value, self.format)
        return str(value)


@dataclass
class ItemsTable(Table):
    """
    A table generated from a sequence of items.

    With items_in_rows (the default) each item becomes a row and each field a
    column. Otherwise the layout is transposed: each field becomes a row,
    with the field header in the first column.
    """

    items: List[Any] = field(default_factory=list)
    fields: List[ItemsTableField] = field(default_factory=list)
    items_in_rows: bool = True
    has_header: bool = True

    def update(self) -> None:
        """Regenerate columns and rows from items and fields."""
        self.columns = []
        self.rows = []

        if self.items_in_rows:
            self.columns = [TableColumn(alignment=f.alignment) for f in self.fields]
            if self.has_header:
                self.add_row(*(f.header for f in self.fields))
            for item in self.items:
                self.add_row(*(f.get_text(item) for f in self.fields))
        else:
            self.columns = [TableColumn(alignment=Alignment.LEFT)]
            self.columns += [TableColumn(alignment=Alignment.RIGHT) for _ in self.items]
            for f in self.fields:
                cells = [f.get_text(item) for item in self.items]
                self.add_row(f.header if self.has_header else None, *cells)

        logger.debug(
            "ItemsTable '%s' updated: %d columns, %d rows",
            self.caption,
            len(self.columns),
            len(self.rows),
        )

    def write_content(self, writer: "ReportWriter") -> None:
        self.update()
        writer.write_table(self)


@dataclass
class Image(ReportItem):
    """An image reference"""

    source: str = ""
    caption: str = ""

    def write_content(self, writer: "ReportWriter") -> None:
        writer.write_image(self)


@dataclass
class Equation(ReportItem):
    """An equation, typically LaTeX source"""

    content: str = ""
    caption: str = ""

    def write_content(self, writer: "ReportWriter") -> None:
        writer.write_equation(self)


@dataclass
class DrawingFigure(ReportItem):
    """A vector drawing, e.g. SVG source"""

    content: str = ""
    caption: str = ""

    def write_content(self, writer: "ReportWriter") -> None:
        writer.write_drawing(self)


@dataclass
class PlotFigure(ReportItem):
    """A plot to be exported by rich writers"""

    plot: Any = None
    caption: str = ""
    width: float = 800
    height: float = 500

    def write_content(self, writer: "ReportWriter") -> None:
        writer.write_plot(self)


# ═══════════════════════════════════════════════════════════════════════════════
# REPORT
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class Report(ReportItem):
    """The root of a report"""

    title: str = ""
    subtitle: str = ""
    author: str = ""
    style: ReportStyle = field(default_factory=ReportStyle)
    extra: Dict[str, str] = field(default_factory=dict)

    def count_items(self) -> Dict[str, int]:
        """Count items per kind, e.g. {"Header": 3, "Table": 1}."""
        counts: Dict[str, int] = {}
        stack: List[ReportItem] = list(self.children)
        while stack:
            item = stack.pop()
            name = type(item).__name__
            counts[name] = counts.get(name, 0) + 1
            stack.extend(item.children)
        return counts
