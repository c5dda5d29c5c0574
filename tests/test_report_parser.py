"""
Tests for report_parser module.

Tests Markdown to Report conversion including:
- Frontmatter parsing
- Section nesting
- Paragraph merging
- Table parsing
- File decoding
"""

import logging

import pytest

from report_model import (
    Alignment,
    Equation,
    Header,
    Image,
    Paragraph,
    ReportSection,
    Table,
)
from report_parser import (
    FrontmatterParser,
    MarkdownParser,
    TableParser,
    TextParser,
    parse_markdown,
    parse_markdown_file,
)
from report_writer import render_to_text


def cell_contents(table):
    return [[c.content for c in row.cells] for row in table.rows]


# ═══════════════════════════════════════════════════════════════════════════════
# FRONTMATTER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestFrontmatterParser:
    """Tests for YAML frontmatter parsing."""

    def test_parse_basic_frontmatter(self):
        lines = [
            "---",
            "title: Quarterly Review",
            "Author: J. Smith",
            "---",
            "# Content starts here",
        ]

        metadata, remaining = FrontmatterParser.parse(lines)

        assert metadata == {"title": "Quarterly Review", "author": "J. Smith"}
        assert remaining == ["# Content starts here"]

    def test_parse_no_frontmatter(self):
        lines = ["# Just a heading", "Some content here."]

        metadata, remaining = FrontmatterParser.parse(lines)

        assert metadata == {}
        assert remaining == lines

    def test_non_mapping_block_is_content(self):
        """A block between rules that is not a YAML mapping stays content."""
        lines = ["---", "just some words", "---", "text"]

        metadata, remaining = FrontmatterParser.parse(lines)

        assert metadata == {}
        assert remaining == lines

    def test_invalid_yaml_is_content(self):
        lines = ["---", "title: [unclosed", "---"]

        metadata, remaining = FrontmatterParser.parse(lines)

        assert metadata == {}
        assert remaining == lines

    def test_title_becomes_report_header(self):
        report = parse_markdown("---\ntitle: Review\nsubtitle: Q3\nteam: Ops\n---\nBody")

        assert report.title == "Review"
        assert report.subtitle == "Q3"
        assert report.extra == {"team": "Ops"}
        assert isinstance(report.children[0], Header)
        assert report.children[0].level == 1
        assert report.children[0].text == "Review"


# ═══════════════════════════════════════════════════════════════════════════════
# TEXT CLEANUP TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestTextParser:
    """Tests for inline markup cleanup."""

    def test_strip_emphasis(self):
        assert TextParser.cleanup_text("**bold** and *italic* and `code`") == (
            "bold and italic and code"
        )

    def test_links_keep_target(self):
        assert TextParser.cleanup_text("see [docs](http://x.org)") == "see docs (http://x.org)"

    @pytest.mark.parametrize(
        "text",
        ["2*3*4 = 24", "snake__case__name", "a * b * c", "x**2 + y**2"],
    )
    def test_unpaired_markers_kept(self, text):
        """Asterisks and underscores that are not emphasis stay in the words."""
        assert TextParser.cleanup_text(text) == text

    def test_underscore_strong_stripped(self):
        assert TextParser.cleanup_text("a __strong__ word") == "a strong word"

    def test_paragraph_words_preserved(self):
        """Arithmetic and identifiers reach the text output unchanged."""
        report = parse_markdown("2*3*4 = 24 and snake__case__name")

        assert render_to_text(report) == "2*3*4 = 24 and snake__case__name\n\n"


# ═══════════════════════════════════════════════════════════════════════════════
# TABLE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestTableParser:
    """Tests for pipe table parsing."""

    def test_parse_with_alignments(self):
        lines = [
            "| Name | Kind | Qty |",
            "|:-----|:----:|----:|",
            "| a | x | 1 |",
        ]

        table = TableParser.parse(lines, caption="Stock")

        assert table.caption == "Stock"
        assert [c.alignment for c in table.columns] == [
            Alignment.LEFT,
            Alignment.CENTER,
            Alignment.RIGHT,
        ]
        assert cell_contents(table) == [["Name", "Kind", "Qty"], ["a", "x", "1"]]

    def test_no_separator_defaults_left(self):
        table = TableParser.parse(["| a | b |", "| c | d |"])

        assert [c.alignment for c in table.columns] == [Alignment.LEFT, Alignment.LEFT]

    def test_empty_cells_are_kept(self):
        table = TableParser.parse(["| a | | c |"])

        assert cell_contents(table) == [["a", "", "c"]]

    def test_escaped_pipe(self):
        table = TableParser.parse(["| a \\| b | c |"])

        assert cell_contents(table) == [["a | b", "c"]]

    def test_short_rows_padded(self):
        table = TableParser.parse(["| a | b | c |", "| d |"])

        assert cell_contents(table) == [["a", "b", "c"], ["d", None, None]]

    def test_long_rows_truncated_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="report_parser"):
            table = TableParser.parse(["| a | b |", "| c | d | e |"])

        assert cell_contents(table) == [["a", "b"], ["c", "d"]]
        assert "extra columns dropped" in caplog.text


# ═══════════════════════════════════════════════════════════════════════════════
# DOCUMENT STRUCTURE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestMarkdownParser:
    """Tests for item-level parsing."""

    def test_heading_sections_nest_by_level(self):
        report = parse_markdown("# A\nintro\n## B\ndetail\n# C\n")

        first, second = report.children
        assert isinstance(first, ReportSection)
        assert first.children[0] == Header(level=1, text="A")
        assert first.children[1] == Paragraph(text="intro")
        nested = first.children[2]
        assert isinstance(nested, ReportSection)
        assert nested.children[0] == Header(level=2, text="B")
        assert nested.children[1] == Paragraph(text="detail")
        assert second.children == [Header(level=1, text="C")]

    @pytest.mark.parametrize(
        "line, text",
        [
            ("## Using C#", "Using C#"),
            ("## Closed ##", "Closed"),
            ("### F# and C# ###", "F# and C#"),
        ],
    )
    def test_closing_hashes(self, line, text):
        """Only a whitespace-separated closing sequence is dropped."""
        (section,) = parse_markdown(line).children

        assert section.children[0].text == text

    def test_paragraph_lines_merge(self):
        report = parse_markdown("line one\nline two\n\nnext")

        assert report.children == [
            Paragraph(text="line one line two"),
            Paragraph(text="next"),
        ]

    def test_list_items_are_separate_paragraphs(self):
        report = parse_markdown("Intro:\n- first\n* second\n1. third")

        assert [p.text for p in report.children] == ["Intro:", "- first", "- second", "1. third"]

    def test_blockquote_markers_stripped(self):
        report = parse_markdown("> quoted\n> text")

        assert report.children == [Paragraph(text="quoted text")]

    def test_separators_and_fences_skipped(self):
        report = parse_markdown("a\n---\n```\nb\n```\n***")

        assert [p.text for p in report.children] == ["a", "b"]

    def test_caption_before_table(self):
        report = parse_markdown("Table: Sales\n\n| a | b |\n|---|--:|\n| 1 | 2 |\n")

        (table,) = report.children
        assert isinstance(table, Table)
        assert table.caption == "Sales"
        assert cell_contents(table) == [["a", "b"], ["1", "2"]]

    def test_caption_after_table(self):
        report = parse_markdown("| a |\n| 1 |\n: Totals\nafter")

        table, para = report.children
        assert table.caption == "Totals"
        assert para == Paragraph(text="after")

    def test_caption_line_without_table_is_text(self):
        report = parse_markdown("Table: not a caption")

        assert report.children == [Paragraph(text="Table: not a caption")]

    def test_image_and_equations(self):
        report = parse_markdown("![Trend](trend.png)\n$$ E = mc^2 $$\n$$\na + b\n$$\n")

        image, single, multi = report.children
        assert image == Image(source="trend.png", caption="Trend")
        assert single == Equation(content="E = mc^2")
        assert multi == Equation(content="a + b")

    def test_empty_equation_skipped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="report_parser"):
            report = parse_markdown("$$\n\n$$\ntext")

        assert report.children == [Paragraph(text="text")]
        assert "Empty LaTeX block" in caplog.text

    def test_parser_instance_reusable(self):
        parser = MarkdownParser()

        assert parser.parse("# A").count_items() == parser.parse("# A").count_items()


# ═══════════════════════════════════════════════════════════════════════════════
# END-TO-END TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestEndToEnd:
    """Markdown in, plain text out."""

    def test_render_markdown(self):
        markdown = "\n".join(
            [
                "---",
                "title: Status",
                "---",
                "## Overview",
                "The quick brown fox jumps",
                "",
                "![chart](c.png)",
                "Table: Counts",
                "| Item | n |",
                "|------|--:|",
                "| ab | 7 |",
                "| c | 10 |",
            ]
        )

        text = render_to_text(parse_markdown(markdown), max_line_length=10)

        assert text == (
            "Status\n"
            "======\n"
            "\n"
            "Overview\n"
            "\n"
            "The quick\n"
            "brown fox\n"
            "jumps\n"
            "\n"
            "Table 1. Counts\n"
            "\n"
            "| Item |  n |\n"
            "| ab   |  7 |\n"
            "| c    | 10 |\n"
            "\n"
        )


class TestParseMarkdownFile:
    """Tests for file reading."""

    def test_utf8_file(self, tmp_path):
        path = tmp_path / "doc.md"
        path.write_text("# Café\n\nnaïve text\n", encoding="utf-8")

        report = parse_markdown_file(str(path))

        section = report.children[0]
        assert section.children == [Header(level=1, text="Café"), Paragraph(text="naïve text")]

    def test_utf8_bom_file(self, tmp_path):
        path = tmp_path / "bom.md"
        path.write_bytes(b"\xef\xbb\xbf# Title\n")

        report = parse_markdown_file(str(path))

        assert report.children[0].children == [Header(level=1, text="Title")]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            parse_markdown_file(str(tmp_path / "missing.md"))

    def test_library_logs_below_info(self, tmp_path, caplog):
        """Library code leaves INFO to the command line."""
        path = tmp_path / "doc.md"
        path.write_text("# Title\n\ntext\n", encoding="utf-8")

        with caplog.at_level(logging.DEBUG, logger="report_parser"):
            parse_markdown_file(str(path))

        assert caplog.records
        assert all(r.levelno != logging.INFO for r in caplog.records)
