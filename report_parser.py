"""
Report Parser Module
Builds a Report tree from Markdown text.

Supported Markdown:
    - YAML frontmatter (title, subtitle, author)
    - ATX headings (# .. ######)
    - Paragraphs (consecutive lines merged), list items, blockquotes
    - Pipe tables with alignment row and "Table: caption" line
    - Images: ![caption](path)
    - Display equations: $$ ... $$ (single or multi-line)

Dependencies:
    Required: pyyaml, charset-normalizer
"""

from typing import Dict, List, Optional, Tuple
import re
import logging
from pathlib import Path

import yaml
from charset_normalizer import from_bytes

from report_model import Alignment, Report, ReportItem, Table, TableColumn


logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# FRONTMATTER
# ═══════════════════════════════════════════════════════════════════════════════


class FrontmatterParser:
    """Parses YAML frontmatter from markdown"""

    @staticmethod
    def parse(lines: List[str]) -> Tuple[Dict[str, str], List[str]]:
        """
        Parse YAML frontmatter and return metadata + remaining lines.

        Args:
            lines: All lines from the markdown file

        Returns:
            Tuple of (metadata dict, remaining_lines)
        """
        if not lines or lines[0].strip() != "---":
            return {}, lines

        end_idx = 0
        for i, line in enumerate(lines[1:], 1):
            if line.strip() == "---":
                end_idx = i
                break

        if end_idx == 0:
            return {}, lines

        try:
            parsed_data = yaml.safe_load("\n".join(lines[1:end_idx]))
        except yaml.YAMLError as e:
            logger.debug("Frontmatter YAML parse failed (%s); treating block as content", e)
            return {}, lines

        if not isinstance(parsed_data, dict):
            logger.debug(
                "Frontmatter parsed to %s (not mapping); treating as document content",
                type(parsed_data).__name__,
            )
            return {}, lines

        metadata = {
            str(key).strip().lower(): str(value)
            for key, value in parsed_data.items()
            if key is not None and value is not None
        }
        return metadata, lines[end_idx + 1 :]


# ═══════════════════════════════════════════════════════════════════════════════
# TEXT CLEANUP
# ═══════════════════════════════════════════════════════════════════════════════


class TextParser:
    """Strips inline Markdown emphasis that has no plain text meaning"""

    # Paired delimiters only; intraword * and __ (2*3*4, snake__case) are kept
    _STRONG_STAR_RE = re.compile(r"(?<![\w*])\*\*(?=\S)(.+?)(?<=\S)\*\*(?![\w*])")
    _STRONG_UNDERSCORE_RE = re.compile(r"(?<!\w)__(?=\S)(.+?)(?<=\S)__(?!\w)")
    _EM_STAR_RE = re.compile(r"(?<![\w*])\*(?=[^\s*])(.+?)(?<=[^\s*])\*(?![\w*])")
    _CODE_RE = re.compile(r"`([^`]+)`")
    _LINK_RE = re.compile(r"(?<!\!)\[([^\]]+)\]\(([^)]+)\)")

    @classmethod
    def cleanup_text(cls, text: str) -> str:
        text = cls._LINK_RE.sub(r"\1 (\2)", text)
        text = cls._CODE_RE.sub(r"\1", text)
        text = cls._STRONG_STAR_RE.sub(r"\1", text)
        text = cls._STRONG_UNDERSCORE_RE.sub(r"\1", text)
        text = cls._EM_STAR_RE.sub(r"\1", text)
        return text.strip()


# ═══════════════════════════════════════════════════════════════════════════════
# TABLES
# ═══════════════════════════════════════════════════════════════════════════════


class TableParser:
    """Parses markdown pipe tables"""

    CAPTION_PATTERN = re.compile(r"^(?:Table)?:\s+(.+)$")

    _SEPARATOR_CHARS = {"|", "-", " ", ":"}

    @classmethod
    def is_separator(cls, line: str) -> bool:
        stripped = line.strip()
        return "-" in stripped and set(stripped).issubset(cls._SEPARATOR_CHARS)

    @classmethod
    def parse(cls, lines: List[str], caption: str = "") -> Table:
        """
        Parse markdown table lines into a Table.

        Every row is normalised to the column count of the first row: short
        rows are padded with blank cells, extra cells are dropped.

        Args:
            lines: Lines that make up the table (starting with |)
            caption: Table caption
        """
        table = Table(caption=caption)

        data_lines = [l for l in lines if not cls.is_separator(l)]
        if not data_lines:
            return table

        col_count = len(cls._split_row(data_lines[0]))
        alignments = cls._parse_alignments(lines)
        if len(alignments) != col_count:
            alignments = [Alignment.LEFT] * col_count

        table.columns = [TableColumn(alignment=a) for a in alignments]

        for i, line in enumerate(data_lines):
            cells: List[Optional[str]] = list(cls._split_row(line))

            while len(cells) < col_count:
                cells.append(None)

            if len(cells) > col_count:
                logger.warning(
                    "Table row %d has %d columns (expected %d); extra columns dropped: %s",
                    i,
                    len(cells),
                    col_count,
                    cells[col_count:],
                )
                cells = cells[:col_count]

            table.add_row(*cells)

        return table

    @staticmethod
    def _split_row(line: str) -> List[str]:
        """Split a table row into cell contents"""
        stripped = line.strip()
        if stripped.startswith("|"):
            stripped = stripped[1:]
        if stripped.endswith("|") and not stripped.endswith("\\|"):
            stripped = stripped[:-1]
        cells = re.split(r"(?<!\\)\|", stripped)
        return [TextParser.cleanup_text(c.replace("\\|", "|")) for c in cells]

    @classmethod
    def _parse_alignments(cls, lines: List[str]) -> List[Alignment]:
        """Parse column alignments from separator line"""
        alignments: List[Alignment] = []
        for line in lines:
            if cls.is_separator(line):
                for cell in line.split("|"):
                    cell = cell.strip()
                    if not cell:
                        continue
                    if cell.startswith(":") and cell.endswith(":"):
                        alignments.append(Alignment.CENTER)
                    elif cell.endswith(":"):
                        alignments.append(Alignment.RIGHT)
                    else:
                        alignments.append(Alignment.LEFT)
                break
        return alignments


# ═══════════════════════════════════════════════════════════════════════════════
# LaTeX EQUATIONS
# ═══════════════════════════════════════════════════════════════════════════════


class LaTeXParser:
    """Detects display equations ($$ ... $$)"""

    # Single-line block equation: $$ E = mc^2 $$
    BLOCK_SINGLE_LINE_RE = re.compile(r"^\$\$(.+?)\$\$\s*$")

    # Block equation delimiter (start or end of multi-line)
    BLOCK_DELIMITER_RE = re.compile(r"^\$\$\s*$")

    @classmethod
    def is_block_delimiter(cls, line: str) -> bool:
        return bool(cls.BLOCK_DELIMITER_RE.match(line.strip()))

    @classmethod
    def is_block_single_line(cls, line: str) -> Optional[str]:
        """
        Check if line is a single-line block equation.

        Returns:
            The LaTeX expression if matched, None otherwise
        """
        m = cls.BLOCK_SINGLE_LINE_RE.match(line.strip())
        return m.group(1).strip() if m else None


# ═══════════════════════════════════════════════════════════════════════════════
# MARKDOWN PARSER (MAIN)
# ═══════════════════════════════════════════════════════════════════════════════


class MarkdownParser:
    """
    Main parser for markdown documents.

    Each heading opens a ReportSection nested under the closest preceding
    heading of a lower level; following content goes into that section.
    """

    HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+?)(?:\s+#+)?\s*$")
    LIST_ITEM_PATTERN = re.compile(r"^([-*+]|\d+[.)])\s+(.+)$")
    BLOCKQUOTE_PATTERN = re.compile(r"^>\s?(.*)$")
    IMAGE_PATTERN = re.compile(r"^!\[(.*?)\]\((.*?)\)$")
    SEPARATOR_PATTERN = re.compile(r"^(-{3,}|\*{3,}|_{3,})$")
    FENCE_PATTERN = re.compile(r"^(```|~~~)")

    def parse(self, content: str) -> Report:
        """
        Parse markdown content into a Report.

        Args:
            content: The full markdown content

        Returns:
            A Report with all parsed items
        """
        lines = content.splitlines()
        metadata, remaining_lines = FrontmatterParser.parse(lines)

        report = Report(
            title=metadata.pop("title", ""),
            subtitle=metadata.pop("subtitle", ""),
            author=metadata.pop("author", ""),
            extra=metadata,
        )
        if report.title:
            report.add_header(1, report.title)

        self._parse_items(report, remaining_lines)
        return report

    # ── Item-level parsing ──────────────────────────────────────────────────

    def _parse_items(self, report: Report, lines: List[str]) -> None:
        """Parse lines into report items"""
        sections: List[Tuple[int, ReportItem]] = []
        para_lines: List[str] = []
        pending_caption = ""
        i = 0

        def container() -> ReportItem:
            return sections[-1][1] if sections else report

        def flush_paragraph() -> None:
            if para_lines:
                container().add_paragraph(" ".join(para_lines))
                para_lines.clear()

        while i < len(lines):
            line = lines[i].strip()

            # ── Blank line ends a paragraph ─────────────────────────────────
            if not line:
                flush_paragraph()
                i += 1
                continue

            # ── Separator / code fences ─────────────────────────────────────
            if self.SEPARATOR_PATTERN.match(line) or self.FENCE_PATTERN.match(line):
                flush_paragraph()
                i += 1
                continue

            # ── Caption before a table ──────────────────────────────────────
            caption_match = TableParser.CAPTION_PATTERN.match(line)
            if caption_match and self._next_content_is_table(lines, i + 1):
                flush_paragraph()
                pending_caption = caption_match.group(1).strip()
                i += 1
                continue

            # ── Table (collect all contiguous table lines) ──────────────────
            if line.startswith("|"):
                flush_paragraph()
                table_lines: List[str] = []
                while i < len(lines) and lines[i].strip().startswith("|"):
                    table_lines.append(lines[i].strip())
                    i += 1

                caption = pending_caption
                pending_caption = ""
                if not caption:
                    caption, i = self._take_trailing_caption(lines, i)

                table = TableParser.parse(table_lines, caption=caption)
                container().add(table)
                continue

            # ── Display equations ───────────────────────────────────────────
            latex_expr = LaTeXParser.is_block_single_line(line)
            if latex_expr is not None:
                flush_paragraph()
                container().add_equation(latex_expr)
                i += 1
                continue

            if LaTeXParser.is_block_delimiter(line):
                flush_paragraph()
                latex_lines: List[str] = []
                i += 1
                while i < len(lines):
                    if LaTeXParser.is_block_delimiter(lines[i]):
                        i += 1
                        break
                    latex_lines.append(lines[i])
                    i += 1

                expression = "\n".join(latex_lines).strip()
                if expression:
                    container().add_equation(expression)
                else:
                    logger.warning("Empty LaTeX block equation before line %d; skipped", i)
                continue

            # ── Headings open a section ─────────────────────────────────────
            match = self.HEADING_PATTERN.match(line)
            if match:
                flush_paragraph()
                level = len(match.group(1))
                while sections and sections[-1][0] >= level:
                    sections.pop()
                section = container().add_section()
                section.add_header(level, TextParser.cleanup_text(match.group(2)))
                sections.append((level, section))
                i += 1
                continue

            # ── Image ───────────────────────────────────────────────────────
            match = self.IMAGE_PATTERN.match(line)
            if match:
                flush_paragraph()
                container().add_image(source=match.group(2), caption=match.group(1))
                i += 1
                continue

            # ── List item (one paragraph per item, marker kept) ─────────────
            match = self.LIST_ITEM_PATTERN.match(line)
            if match:
                flush_paragraph()
                marker = "-" if match.group(1) in ("*", "+") else match.group(1)
                container().add_paragraph(f"{marker} {TextParser.cleanup_text(match.group(2))}")
                i += 1
                continue

            # ── Blockquote lines merge like plain text ──────────────────────
            match = self.BLOCKQUOTE_PATTERN.match(line)
            if match:
                line = match.group(1).strip()
                if not line:
                    flush_paragraph()
                    i += 1
                    continue

            para_lines.append(TextParser.cleanup_text(line))
            i += 1

        flush_paragraph()

    @staticmethod
    def _next_content_is_table(lines: List[str], start: int) -> bool:
        """True if the next non-blank line (at most one blank skipped) starts a table"""
        for idx in range(start, min(start + 2, len(lines))):
            stripped = lines[idx].strip()
            if stripped:
                return stripped.startswith("|")
        return False

    @staticmethod
    def _take_trailing_caption(lines: List[str], start: int) -> Tuple[str, int]:
        """Consume a caption line following a table, returning (caption, next_index)"""
        for idx in range(start, min(start + 2, len(lines))):
            stripped = lines[idx].strip()
            if not stripped:
                continue
            match = TableParser.CAPTION_PATTERN.match(stripped)
            if match:
                return match.group(1).strip(), idx + 1
            break
        return "", start


# ═══════════════════════════════════════════════════════════════════════════════
# ENCODING UTILITIES
# ═══════════════════════════════════════════════════════════════════════════════


def _read_with_encoding(file_path: str) -> str:
    """
    Read file content with encoding detection.

    Strategy:
        1. BOM detection (UTF-8 BOM)
        2. Strict UTF-8
        3. charset_normalizer statistical detection
        4. CP1252 fallback

    Raises:
        UnicodeDecodeError: If all detection methods fail
    """
    raw_bytes = Path(file_path).read_bytes()

    if raw_bytes.startswith(b"\xef\xbb\xbf"):
        return raw_bytes.decode("utf-8-sig")

    try:
        return raw_bytes.decode("utf-8")
    except UnicodeDecodeError:
        logger.debug("%s is not valid UTF-8; detecting encoding", file_path)

    result = from_bytes(raw_bytes).best()
    if result is not None and result.encoding:
        logger.debug("Encoding detected by charset_normalizer: %s", result.encoding)
        return str(result)

    try:
        return raw_bytes.decode("cp1252")
    except UnicodeDecodeError as e:
        raise UnicodeDecodeError(
            e.encoding,
            e.object,
            e.start,
            e.end,
            f"Failed to decode {file_path} with UTF-8, detection, or CP1252",
        ) from e


# ═══════════════════════════════════════════════════════════════════════════════
# CONVENIENCE FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════════════


def parse_markdown(content: str) -> Report:
    """Parse markdown text into a Report."""
    return MarkdownParser().parse(content)


def parse_markdown_file(file_path: str) -> Report:
    """
    Parse a markdown file into a Report.

    Args:
        file_path: Path to the markdown file

    Returns:
        A Report containing all parsed content

    Raises:
        FileNotFoundError: If the file does not exist
        UnicodeDecodeError: If the content cannot be decoded
    """
    content = _read_with_encoding(file_path)
    report = parse_markdown(content)

    counts = report.count_items()
    logger.debug(
        "Parsed %s: headers=%d, paragraphs=%d, tables=%d, images=%d, equations=%d",
        file_path,
        counts.get("Header", 0),
        counts.get("Paragraph", 0),
        counts.get("Table", 0),
        counts.get("Image", 0),
        counts.get("Equation", 0),
    )
    return report
