"""
Utility modules for the text structure reconstruction pipeline.
"""

from .fragments import TextFragment, FragmentSource, InMemoryFragmentSource, PyMuPDFFragmentSource
from .lines import Line, LineAssembler, FontSizeMetric, is_page_number_fragment
from .titles import TitleMerger, TitleBlock
from .classifier import (
    ClassifiedLine, ClassificationRule, LineCategory, Segment, StructureClassifier,
    compute_threshold, default_rules,
)
from .assembler import DocumentAssembler, ReconstructedDocument, DocumentMetrics
from .export import HtmlExporter, MarkdownExporter, DocxExporter, DocumentExporter
from .io import load_pdf, save_json, load_json, ensure_dir

__all__ = [
    # Fragments
    "TextFragment", "FragmentSource", "InMemoryFragmentSource", "PyMuPDFFragmentSource",
    # Lines
    "Line", "LineAssembler", "FontSizeMetric", "is_page_number_fragment",
    # Titles
    "TitleMerger", "TitleBlock",
    # Classification
    "ClassifiedLine", "ClassificationRule", "LineCategory", "Segment",
    "StructureClassifier", "compute_threshold", "default_rules",
    # Assembly
    "DocumentAssembler", "ReconstructedDocument", "DocumentMetrics",
    # Export
    "HtmlExporter", "MarkdownExporter", "DocxExporter", "DocumentExporter",
    # IO
    "load_pdf", "save_json", "load_json", "ensure_dir",
]
