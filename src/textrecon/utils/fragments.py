"""
Fragment sources for text structure reconstruction.

Provides:
- TextFragment, the positioned glyph run every later stage consumes
- FragmentSource, the page decoding interface the core depends on
- InMemoryFragmentSource for pre-decoded pages
- PyMuPDFFragmentSource, glyph-level PDF decoding via PyMuPDF rawdict
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class TextFragment:
    """A positioned run of text on a single page (usually one glyph)."""
    text: str
    x: float
    y: float
    width: float
    font_size: float
    page_width: float
    page_height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    def is_valid(self) -> bool:
        """False for non-finite or negative geometry."""
        values = (self.x, self.y, self.width, self.font_size,
                  self.page_width, self.page_height)
        for value in values:
            try:
                value = float(value)
            except (TypeError, ValueError):
                return False
            if not math.isfinite(value) or value < 0:
                return False
        return self.text is not None


# ============================================================================
# Fragment Source Interface
# ============================================================================

class FragmentSource(ABC):
    """
    Decodes a page-based document into text fragments, one page at a time.

    Implementations only need to provide page_count and decode_page; the
    reconstruction core never sees the underlying document library.
    """

    @property
    @abstractmethod
    def page_count(self) -> int:
        ...

    @abstractmethod
    def decode_page(self, page_index: int) -> List[TextFragment]:
        """Return the fragments of a 0-indexed page."""

    def iter_pages(
        self,
        pages: Optional[Sequence[int]] = None
    ) -> Iterator[Tuple[int, List[TextFragment]]]:
        """
        Yield (page_number, fragments) in document order.

        Args:
            pages: Optional 1-indexed page numbers to restrict decoding to

        Yields:
            Tuples of 1-indexed page number and that page's fragments
        """
        if pages is None:
            numbers = range(1, self.page_count + 1)
        else:
            numbers = sorted({p for p in pages if 1 <= p <= self.page_count})

        for page_number in numbers:
            yield page_number, self.decode_page(page_number - 1)

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class InMemoryFragmentSource(FragmentSource):
    """Fragment source over pages that were decoded elsewhere."""

    def __init__(self, pages: Iterable[Iterable[TextFragment]]):
        self._pages = [list(page) for page in pages]

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def decode_page(self, page_index: int) -> List[TextFragment]:
        return list(self._pages[page_index])


# ============================================================================
# PyMuPDF Source
# ============================================================================

class PyMuPDFFragmentSource(FragmentSource):
    """
    Glyph-level fragment source backed by PyMuPDF.

    Every character of every text span becomes one TextFragment whose y is
    the glyph baseline (top-down page coordinates) and whose font size is
    the span size. Fragments keep PyMuPDF's block, line and span order unless
    sort_by_position is set.
    """

    def __init__(
        self,
        pdf_path: Union[str, Path],
        sort_by_position: bool = False
    ):
        try:
            import fitz  # PyMuPDF
        except ImportError:
            raise ImportError(
                "PyMuPDF is required for PDF input. "
                "Install with: pip install PyMuPDF"
            )

        self.pdf_path = Path(pdf_path)
        if not self.pdf_path.exists():
            raise FileNotFoundError(f"PDF file not found: {self.pdf_path}")

        self.sort_by_position = sort_by_position

        try:
            self._doc = fitz.open(self.pdf_path.as_posix())
        except Exception as e:
            raise RuntimeError(f"Failed to parse PDF: {e}")

        logger.info(f"Opened PDF: {self.pdf_path} ({self._doc.page_count} pages)")

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    def decode_page(self, page_index: int) -> List[TextFragment]:
        page = self._doc.load_page(page_index)
        page_width = float(page.rect.width)
        page_height = float(page.rect.height)

        try:
            raw = page.get_text("rawdict") or {"blocks": []}
        except Exception as e:
            logger.warning(f"Could not read text of page {page_index + 1}: {e}")
            return []

        fragments = list(self._iter_fragments(raw, page_width, page_height))

        if self.sort_by_position:
            fragments.sort(key=lambda f: (round(f.y), f.x))

        logger.debug(f"Page {page_index + 1}: {len(fragments)} fragments")
        return fragments

    def _iter_fragments(
        self,
        raw: Dict[str, Any],
        page_width: float,
        page_height: float
    ) -> Iterator[TextFragment]:
        for block in raw.get("blocks", []):
            if block.get("type", 0) != 0:
                continue
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    size = float(span.get("size", 0.0))
                    for char in span.get("chars", []):
                        text = char.get("c", "")
                        if not text:
                            continue
                        x0, _, x1, _ = char.get("bbox", (0.0, 0.0, 0.0, 0.0))
                        origin = char.get("origin", (x0, 0.0))
                        yield TextFragment(
                            text=text,
                            x=float(x0),
                            y=float(origin[1]),
                            width=float(x1) - float(x0),
                            font_size=size,
                            page_width=page_width,
                            page_height=page_height,
                        )

    def close(self):
        if self._doc is not None:
            self._doc.close()
            self._doc = None
