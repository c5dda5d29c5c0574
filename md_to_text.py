"""
MD to Plain Text Report Converter
Main entry point for converting Markdown files to fixed-width text reports.

Usage:
    python md_to_text.py input.md [output.txt]
    python md_to_text.py input.md -              # Write to stdout
    python md_to_text.py input.md -w 72          # Wrap paragraphs at 72 columns
"""

import sys
import time
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from report_parser import parse_markdown_file
from report_writer import DEFAULT_MAX_LINE_LENGTH, open_text_report


# ═══════════════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════════

OUTPUT_SUFFIX = ".txt"

# Loggers configured by the CLI (own logger + library modules)
LIBRARY_LOGGERS = ("report_model", "report_parser", "report_writer")

logger = logging.getLogger("md_to_text")


# ═══════════════════════════════════════════════════════════════════════════════
# LOGGING SETUP
# ═══════════════════════════════════════════════════════════════════════════════


class LogFormatter(logging.Formatter):
    """Custom log formatter with level-based prefixes"""

    PREFIXES = {
        logging.DEBUG: "[DEBUG]",
        logging.INFO: "[INFO]",
        logging.WARNING: "[WARNING]",
        logging.ERROR: "[ERROR]",
        logging.CRITICAL: "[CRITICAL]",
    }

    def format(self, record: logging.LogRecord) -> str:
        prefix = self.PREFIXES.get(record.levelno, "[LOG]")
        return f"{prefix} {record.getMessage()}"


def setup_logging(verbose: bool = False):
    """Configure logging for the converter. Log output goes to stderr."""
    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(LogFormatter())
    for name in ("md_to_text",) + LIBRARY_LOGGERS:
        target = logging.getLogger(name)
        target.setLevel(level)
        target.handlers.clear()
        target.addHandler(handler)


# ═══════════════════════════════════════════════════════════════════════════════
# PATH RESOLUTION
# ═══════════════════════════════════════════════════════════════════════════════


def generate_output_path(input_path: Path, output_path: Optional[str] = None) -> Optional[Path]:
    """
    Generate output file path.

    Args:
        input_path: Input markdown file path
        output_path: User-specified output path (optional, "-" for stdout)

    Returns:
        Output Path, or None for stdout
    """
    if output_path == "-":
        return None
    if output_path:
        return Path(output_path)
    return input_path.with_suffix(OUTPUT_SUFFIX)


# ═══════════════════════════════════════════════════════════════════════════════
# CONVERTER
# ═══════════════════════════════════════════════════════════════════════════════


def convert(input_path: Path, output_path: Optional[Path], width: int) -> None:
    """
    Execute the full conversion pipeline: Parse → Render.

    Raises:
        FileNotFoundError: If the input file does not exist
        UnicodeDecodeError: If the input cannot be decoded
        ValueError: If the output path would overwrite the input
        OSError: If reading the input or writing the output fails
    """
    start_time = time.perf_counter()

    if not input_path.is_file():
        raise FileNotFoundError(f"Input file not found: {input_path}")
    if input_path.suffix.lower() != ".md":
        logger.warning("Input file does not have .md extension: %s", input_path.name)
    if output_path is not None and output_path.resolve() == input_path.resolve():
        raise ValueError(f"Output path is the input file, refusing to overwrite: {input_path}")

    logger.info("Parsing: %s", input_path.name)
    report = parse_markdown_file(str(input_path))

    if output_path is None:
        with open_text_report(sys.stdout, max_line_length=width) as writer:
            writer.write_report(report, report.style)
    else:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open_text_report(output_path, max_line_length=width) as writer:
            writer.write_report(report, report.style)
        logger.info("Saved: %s", output_path)

    elapsed = time.perf_counter() - start_time
    logger.info("Conversion completed in %.2fs", elapsed)


# ═══════════════════════════════════════════════════════════════════════════════
# CLI
# ═══════════════════════════════════════════════════════════════════════════════


def positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser"""
    parser = argparse.ArgumentParser(
        description="Convert Markdown files to plain text reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python md_to_text.py report.md                 # Writes report.txt
    python md_to_text.py report.md out/report.txt  # Explicit output path
    python md_to_text.py report.md - -w 72         # Stdout, 72 columns
        """,
    )

    parser.add_argument(
        "input_file",
        help="Input Markdown file",
    )

    parser.add_argument(
        "output_file",
        nargs="?",
        help="Output text file (default: input name with .txt, '-' for stdout)",
    )

    parser.add_argument(
        "-w",
        "--width",
        type=positive_int,
        default=DEFAULT_MAX_LINE_LENGTH,
        help=f"Maximum paragraph line length (default: {DEFAULT_MAX_LINE_LENGTH})",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) output",
    )

    return parser


def run_conversion(args: argparse.Namespace) -> int:
    """
    Execute conversion for a single file.

    Returns:
        Exit code (0 = success, 1 = error)
    """
    input_path = Path(args.input_file)
    output_path = generate_output_path(input_path, args.output_file)

    try:
        convert(input_path, output_path, args.width)
        return 0

    except FileNotFoundError as e:
        logger.error("%s", e)
        return 1

    except UnicodeDecodeError as e:
        logger.error("Failed to decode file (encoding issue): %s", e)
        return 1

    except ValueError as e:
        logger.error("%s", e)
        return 1

    except OSError as e:
        logger.error("I/O error: %s", e)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1

    except Exception as e:
        logger.error("Unexpected error: %s", e)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with CLI argument parsing"""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose)

    return run_conversion(args)


if __name__ == "__main__":
    sys.exit(main())
