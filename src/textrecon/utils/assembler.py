"""
Document assembler for text structure reconstruction.

Provides:
- Document data model (ReconstructedDocument, DocumentMetrics)
- Two-pass pipeline orchestration: assemble every page's lines, compute the
  global threshold, then merge titles and classify page by page
- JSON envelope generation
"""

import logging
import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ..config import PipelineConfig, get_config
from .classifier import ClassifiedLine, LineCategory, StructureClassifier, compute_threshold
from .fragments import FragmentSource, PyMuPDFFragmentSource
from .lines import Line, LineAssembler
from .titles import TitleMerger

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class DocumentMetrics:
    """Counters describing one reconstruction run."""
    pages_processed: int = 0
    fragments_seen: int = 0
    malformed_dropped: int = 0
    page_numbers_dropped: int = 0
    residual_numbers_dropped: int = 0
    lines_assembled: int = 0
    headings_emitted: int = 0
    continuations_merged: int = 0
    superscripts_folded: int = 0
    category_counts: Dict[str, int] = field(default_factory=dict)
    threshold: float = 0.0
    processing_time_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pages_processed": self.pages_processed,
            "fragments": {
                "seen": self.fragments_seen,
                "malformed_dropped": self.malformed_dropped,
                "page_numbers_dropped": self.page_numbers_dropped,
            },
            "lines": {
                "assembled": self.lines_assembled,
                "residual_numbers_dropped": self.residual_numbers_dropped,
            },
            "titles": {
                "headings": self.headings_emitted,
                "continuations_merged": self.continuations_merged,
                "superscripts_folded": self.superscripts_folded,
            },
            "categories": dict(self.category_counts),
            "threshold": round(self.threshold, 3),
            "processing_time_seconds": round(self.processing_time_seconds, 2)
        }


@dataclass
class ReconstructedDocument:
    """Complete reconstructed document."""
    title: str
    date: str
    lines: List[ClassifiedLine] = field(default_factory=list)
    source_file: str = ""
    threshold: float = 0.0
    metrics: Optional[DocumentMetrics] = None
    task_id: str = ""
    created_at: str = ""
    schema_version: str = "1.0"

    def __post_init__(self):
        if not self.task_id:
            self.task_id = str(uuid.uuid4())
        if not self.created_at:
            self.created_at = datetime.now().isoformat()

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "schema_version": self.schema_version,
            "source_file": self.source_file,
            "created_at": self.created_at,
            "metadata": {
                "title": self.title,
                "date": self.date,
            },
            "threshold": round(self.threshold, 3),
            "lines": [line.to_dict() for line in self.lines],
            "metrics": self.metrics.to_dict() if self.metrics else {}
        }


def format_date(fmt: str, when: Optional[datetime] = None) -> str:
    """
    Format the generation date shown under the document title.

    ``%-d`` is accepted on every platform and gives the day without zero
    padding. The month name follows the process locale.
    """
    when = when or datetime.now()
    return when.strftime(fmt.replace("%-d", str(when.day)))


# ============================================================================
# Document Assembler
# ============================================================================

class DocumentAssembler:
    """
    Orchestrates the reconstruction pipeline.

    Coordinates:
    - Line assembly for every page (first pass)
    - Global font-size threshold
    - Title merging and classification per page (second pass)
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        classifier: Optional[StructureClassifier] = None
    ):
        self.config = config or get_config()
        self.classifier = classifier or StructureClassifier()

    def assemble_lines(
        self,
        source: FragmentSource,
        line_assembler: LineAssembler,
        pages: Optional[Sequence[int]] = None
    ) -> List[List[Line]]:
        """
        First pass: materialise the lines of every page in page order.

        Args:
            source: Fragment source to decode
            line_assembler: Assembler whose counters record the pass
            pages: Optional 1-indexed page selection

        Returns:
            One list of lines per processed page
        """
        page_lines = []
        for page_number, fragments in source.iter_pages(pages):
            lines = list(line_assembler.assemble(fragments, page_number=page_number))
            logger.debug(f"Page {page_number}: {len(fragments)} fragments -> {len(lines)} lines")
            page_lines.append(lines)
        return page_lines

    def classify_pages(
        self,
        page_lines: List[List[Line]],
        threshold: float,
        merger: Optional[TitleMerger] = None
    ) -> List[ClassifiedLine]:
        """
        Second pass: merge titles (if enabled) and classify, page by page.

        Args:
            page_lines: Output of assemble_lines
            threshold: Global heading threshold
            merger: Title merger, or None to let the size rule mark headings

        Returns:
            Classified lines in page and arrival order
        """
        classified = []
        for lines in page_lines:
            stream = merger.merge(lines, threshold) if merger is not None else lines
            for item in stream:
                if isinstance(item, ClassifiedLine):
                    classified.append(item)
                    continue
                result = self.classifier.classify_line(item, threshold)
                if result is not None:
                    classified.append(result)
        return classified

    def process_document(
        self,
        source: FragmentSource,
        title: str,
        date: Optional[str] = None,
        source_file: str = "",
        pages: Optional[Sequence[int]] = None
    ) -> ReconstructedDocument:
        """
        Reconstruct a complete document.

        An input with no text yields an empty document rather than an error;
        exporters decide how to present it.

        Args:
            source: Fragment source for the document
            title: Document title, passed through untouched
            date: Date string, today's date if omitted
            source_file: Original source file path
            pages: Optional 1-indexed page selection

        Returns:
            ReconstructedDocument with classified lines and metrics
        """
        start_time = time.time()

        line_assembler = LineAssembler(self.config.lines, self.config.page_numbers)
        merger = TitleMerger(self.config.titles) if self.config.titles.enabled else None

        page_lines = self.assemble_lines(source, line_assembler, pages)
        all_lines = [line for lines in page_lines for line in lines]

        threshold = compute_threshold(
            [line.average_font_size for line in all_lines], self.config.classifier
        )
        logger.info(f"Assembled {len(all_lines)} lines from {len(page_lines)} page(s); "
                    f"heading threshold {threshold:.2f}")

        classified = self.classify_pages(page_lines, threshold, merger)

        if not classified:
            logger.warning(f"No text recovered from {source_file or title}")

        doc = ReconstructedDocument(
            title=title,
            date=date if date is not None else format_date(self.config.export.date_format),
            lines=classified,
            source_file=source_file,
            threshold=threshold,
        )
        doc.metrics = self._calculate_metrics(
            doc, len(page_lines), line_assembler, merger, time.time() - start_time
        )
        return doc

    def process_pdf(
        self,
        pdf_path: Union[str, Path],
        title: Optional[str] = None,
        date: Optional[str] = None,
        pages: Optional[Sequence[int]] = None
    ) -> ReconstructedDocument:
        """Decode a PDF with PyMuPDF and reconstruct it; title defaults to the file stem."""
        pdf_path = Path(pdf_path)
        with PyMuPDFFragmentSource(pdf_path, sort_by_position=self.config.sort_by_position) as source:
            return self.process_document(
                source,
                title=title or pdf_path.stem,
                date=date,
                source_file=str(pdf_path),
                pages=pages,
            )

    def _calculate_metrics(
        self,
        doc: ReconstructedDocument,
        pages_processed: int,
        line_assembler: LineAssembler,
        merger: Optional[TitleMerger],
        processing_time: float
    ) -> DocumentMetrics:
        """Collect counters from the stages that ran."""
        stats = line_assembler.stats
        metrics = DocumentMetrics(
            pages_processed=pages_processed,
            fragments_seen=stats.fragments_seen,
            malformed_dropped=stats.malformed_dropped,
            page_numbers_dropped=stats.page_numbers_dropped,
            residual_numbers_dropped=stats.residual_numbers_dropped,
            lines_assembled=stats.lines_emitted,
            threshold=doc.threshold,
            processing_time_seconds=processing_time,
        )

        if merger is not None:
            metrics.continuations_merged = merger.stats.continuations_merged
            metrics.superscripts_folded = merger.stats.superscripts_folded

        counts = Counter(line.category for line in doc.lines)
        metrics.headings_emitted = counts.get(LineCategory.HEADING, 0)
        metrics.category_counts = {
            category.value: counts[category] for category in LineCategory if counts[category]
        }
        return metrics
