#!/usr/bin/env python
"""
Command-line interface for the Text Structure Reconstruction Pipeline.

Usage:
    textrecon --input <pdf> --output <output_dir> [options]

Examples:
    # Convert a PDF to styled HTML
    textrecon --input notes.pdf --output ./output

    # All formats, classifying lines by their largest glyph
    textrecon --input notes.pdf --output ./output --format all --font-metric max
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("textrecon")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        description="Text Structure Reconstruction - Recover headings, theorems, "
                    "proofs and formulas from PDF text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Convert a PDF to HTML:
    python -m textrecon.cli --input notes.pdf --output ./output

  Export every format:
    python -m textrecon.cli --input notes.pdf --output ./output --format all

  Process only specific pages without title merging:
    python -m textrecon.cli --input notes.pdf --output ./output --pages 1-5 --no-title-merge
        """
    )

    # Required arguments
    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input PDF file"
    )

    parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output directory for generated files"
    )

    # Optional arguments
    parser.add_argument(
        "--format", "-f",
        nargs="+",
        default=None,
        choices=["html", "markdown", "docx", "json", "all"],
        help="Output format(s) (default: export.output_formats, html)"
    )

    parser.add_argument(
        "--title",
        type=str,
        default=None,
        help="Document title (default: input file name without extension)"
    )

    parser.add_argument(
        "--date-format",
        type=str,
        default=None,
        help="strftime format for the generation date; %%-d gives an unpadded day "
             "(default: '%%B %%-d, %%Y')"
    )

    parser.add_argument(
        "--lang",
        type=str,
        default=None,
        help="HTML lang attribute (default: es)"
    )

    parser.add_argument(
        "--pages",
        type=str,
        default=None,
        help="Page range to process, e.g., '1-5' or '1,3,5' (default: all)"
    )

    parser.add_argument(
        "--font-metric",
        choices=["mean", "max"],
        default=None,
        help="Line font size: mean or max of its glyphs (default: mean)"
    )

    parser.add_argument(
        "--no-title-merge",
        action="store_true",
        help="Disable multi-line title merging and superscript folding"
    )

    parser.add_argument(
        "--keep-page-numbers",
        action="store_true",
        help="Do not drop page numbers found at the bottom of pages"
    )

    parser.add_argument(
        "--threshold-factor",
        type=float,
        default=None,
        help="Heading threshold as a multiple of the mean font size (default: 1.2)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Re-raise errors with a traceback"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0"
    )

    return parser


def parse_page_range(page_str: str, max_pages: int) -> List[int]:
    """Parse page range string to list of page numbers."""
    pages = []

    for part in page_str.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start, end = part.split("-", 1)
            start = max(int(start), 1)
            end = min(int(end), max_pages)
            pages.extend(range(start, end + 1))
        else:
            page = int(part)
            if 1 <= page <= max_pages:
                pages.append(page)

    return sorted(set(pages))


def check_dependencies() -> bool:
    """Check if required dependencies are available."""
    missing = []
    optional_missing = []

    try:
        import numpy
    except ImportError:
        missing.append("numpy")

    try:
        import fitz
    except ImportError:
        missing.append("PyMuPDF")

    try:
        import docx
    except ImportError:
        optional_missing.append("python-docx (for DOCX export)")

    if missing:
        logger.error("Missing required dependencies:")
        for dep in missing:
            logger.error(f"  - {dep}")
        logger.error("\nInstall with: pip install -e .")
        return False

    if optional_missing:
        logger.debug("Missing optional dependencies (some formats unavailable):")
        for dep in optional_missing:
            logger.debug(f"  - {dep}")

    return True


def build_config(args):
    """Apply command-line overrides on top of the environment configuration."""
    from .config import get_config

    config = get_config()

    if args.font_metric:
        config.lines.font_size_metric = args.font_metric
    if args.no_title_merge:
        config.titles.enabled = False
    if args.keep_page_numbers:
        config.page_numbers.enabled = False
    if args.threshold_factor is not None:
        config.classifier.threshold_factor = args.threshold_factor
    if args.format:
        config.export.output_formats = list(args.format)
    if args.date_format:
        config.export.date_format = args.date_format
    if args.lang:
        config.export.html_lang = args.lang
    if args.debug:
        config.debug_mode = True

    return config


def run_pipeline(args) -> int:
    """Run the reconstruction pipeline."""
    from .utils.io import load_pdf, detect_input_type, ensure_dir
    from .utils.assembler import DocumentAssembler
    from .utils.export import DocumentExporter

    start_time = time.time()
    config = build_config(args)

    input_path = Path(args.input)
    input_type = detect_input_type(input_path)
    if input_type != "pdf":
        logger.error(f"Unsupported input: {input_path}")
        return 1

    output_dir = ensure_dir(args.output)
    assembler = DocumentAssembler(config=config)

    logger.info("Processing document...")
    try:
        with load_pdf(input_path, sort_by_position=config.sort_by_position) as source:
            pages: Optional[List[int]] = None
            if args.pages:
                pages = parse_page_range(args.pages, source.page_count)
                logger.info(f"Processing pages: {pages}")

            document = assembler.process_document(
                source,
                title=args.title or input_path.stem,
                source_file=str(input_path),
                pages=pages,
            )
    except Exception as e:
        logger.error(f"Processing failed: {e}")
        if config.debug_mode:
            raise
        return 1

    if document.is_empty:
        logger.warning("Document produced no content; exporting an empty body")

    exporter = DocumentExporter(
        output_dir,
        input_path.stem,
        html_lang=config.export.html_lang,
        markdown_page_breaks=config.export.markdown_page_breaks,
        docx_template=config.export.docx_template or None,
    )
    export_results = exporter.export(document, config.export.output_formats)

    for fmt, path in export_results.items():
        logger.info(f"Exported {fmt}: {path}")

    elapsed = time.time() - start_time
    metrics = document.metrics

    if not args.quiet:
        print("\n" + "=" * 60)
        print("TEXT RECONSTRUCTION COMPLETE")
        print("=" * 60)
        print(f"Source: {input_path}")
        print(f"Output: {output_dir}")
        print(f"Pages processed: {metrics.pages_processed}")
        print(f"Processing time: {elapsed:.2f}s")
        print()
        print(f"Heading threshold: {metrics.threshold:.2f}")
        print(f"Lines: {metrics.lines_assembled} "
              f"(page numbers dropped: {metrics.page_numbers_dropped}, "
              f"malformed fragments: {metrics.malformed_dropped})")
        print(f"Headings: {metrics.headings_emitted} "
              f"(merged: {metrics.continuations_merged}, "
              f"superscripts: {metrics.superscripts_folded})")
        for category, count in metrics.category_counts.items():
            print(f"  {category}: {count}")
        print("=" * 60)

    return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args(argv)

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    if not check_dependencies():
        sys.exit(1)

    try:
        exit_code = run_pipeline(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.debug:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
