"""
Line assembly for text structure reconstruction.

Provides:
- Line, the unit handed to title merging and classification
- Page-number suppression on individual fragments
- Vertical grouping by running baseline
- Horizontal assembly with gap-based space insertion
- Residual numeral filtering on finished lines
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Optional

import numpy as np

from ..config import LineConfig, PageNumberConfig
from .fragments import TextFragment

logger = logging.getLogger(__name__)

NUMERIC_RE = re.compile(r"^\d+$")


# ============================================================================
# Data Classes and Enums
# ============================================================================

class FontSizeMetric(Enum):
    """How a line's font size is derived from its fragments."""
    MEAN = "mean"
    MAX = "max"


@dataclass(frozen=True)
class Line:
    """One visual line of text reconstructed from a fragment group."""
    text: str
    average_font_size: float
    y_position: float
    page_number: int = 0


@dataclass
class AssemblyStats:
    """Counters accumulated by a LineAssembler across pages."""
    fragments_seen: int = 0
    malformed_dropped: int = 0
    page_numbers_dropped: int = 0
    residual_numbers_dropped: int = 0
    empty_dropped: int = 0
    lines_emitted: int = 0


@dataclass
class PageAccumulator:
    """
    Vertical grouping state for a single page.

    A fragment joins the open group while its y stays within the tolerance
    of the group's baseline; otherwise the open group is closed and a new
    one starts at the fragment's y. Closed groups are never reopened.
    """
    tolerance: float
    baseline: Optional[float] = None
    group: List[TextFragment] = field(default_factory=list)

    def add(self, fragment: TextFragment) -> Optional[List[TextFragment]]:
        """Add a fragment, returning the group it closed, if any."""
        if self.baseline is None or abs(fragment.y - self.baseline) > self.tolerance:
            closed = self.group if self.group else None
            self.baseline = fragment.y
            self.group = [fragment]
            return closed

        self.group.append(fragment)
        return None

    def flush(self) -> Optional[List[TextFragment]]:
        closed = self.group if self.group else None
        self.baseline = None
        self.group = []
        return closed


# ============================================================================
# Page Number Detection
# ============================================================================

def is_page_number_fragment(
    fragment: TextFragment,
    config: Optional[PageNumberConfig] = None
) -> bool:
    """
    Check whether a fragment looks like a printed page number.

    A fragment qualifies when it sits in the bottom band of the page, its
    text is purely numeric, and it is near the left margin, the right
    margin, or the horizontal centre.

    Args:
        fragment: Fragment to test
        config: Page-number configuration (defaults if omitted)

    Returns:
        True if the fragment should be dropped
    """
    config = config or PageNumberConfig()

    if fragment.y <= config.bottom_fraction * fragment.page_height:
        return False

    if not NUMERIC_RE.match(fragment.text.strip()):
        return False

    width = fragment.page_width
    near_left = fragment.x < config.left_margin_fraction * width
    near_right = fragment.x > config.right_margin_fraction * width
    near_center = abs(fragment.x - width / 2.0) <= config.center_tolerance

    return near_left or near_right or near_center


# ============================================================================
# Line Assembler
# ============================================================================

class LineAssembler:
    """
    Groups the fragments of one page into lines.

    Pages are independent: each call to assemble() builds its own
    PageAccumulator and drops it when the page is exhausted. Only the
    counters in `stats` persist across calls.
    """

    def __init__(
        self,
        config: Optional[LineConfig] = None,
        page_number_config: Optional[PageNumberConfig] = None
    ):
        self.config = config or LineConfig()
        self.page_number_config = page_number_config or PageNumberConfig()
        self.metric = FontSizeMetric(self.config.font_size_metric)
        self._residual_re = re.compile(self.config.residual_number_pattern)
        self.stats = AssemblyStats()

    def assemble(
        self,
        fragments: Iterable[TextFragment],
        page_number: int = 0
    ) -> Iterator[Line]:
        """
        Lazily assemble lines from a page's fragments.

        Fragments are visited in the order given; lines come out in the
        order their groups were closed, which is that same order.

        Args:
            fragments: Fragments of a single page
            page_number: 1-indexed page number attached to each line

        Yields:
            Line objects, top to bottom as encountered
        """
        accumulator = PageAccumulator(tolerance=self.config.vertical_tolerance)

        for fragment in fragments:
            self.stats.fragments_seen += 1

            if not fragment.is_valid():
                self.stats.malformed_dropped += 1
                logger.debug(f"Page {page_number}: dropping malformed fragment {fragment!r}")
                continue

            if self.page_number_config.enabled and is_page_number_fragment(
                fragment, self.page_number_config
            ):
                self.stats.page_numbers_dropped += 1
                logger.debug(f"Page {page_number}: dropping page number {fragment.text!r}")
                continue

            closed = accumulator.add(fragment)
            if closed:
                line = self.build_line(closed, page_number)
                if line is not None:
                    yield line

        closed = accumulator.flush()
        if closed:
            line = self.build_line(closed, page_number)
            if line is not None:
                yield line

    def build_line(
        self,
        group: List[TextFragment],
        page_number: int = 0
    ) -> Optional[Line]:
        """Join a fragment group left to right; None if the result is filtered."""
        ordered = sorted(group, key=lambda f: f.x)

        parts = []
        last_right = None
        for fragment in ordered:
            if (last_right is not None
                    and fragment.x - last_right > self.config.space_threshold
                    and not parts[-1][-1:].isspace()
                    and not fragment.text[:1].isspace()):
                parts.append(" ")
            parts.append(fragment.text)
            last_right = fragment.right

        text = "".join(parts).strip()

        if not text:
            self.stats.empty_dropped += 1
            return None

        if self._residual_re.match(text):
            self.stats.residual_numbers_dropped += 1
            logger.debug(f"Page {page_number}: dropping residual numeral {text!r}")
            return None

        sizes = [f.font_size for f in ordered]
        if self.metric is FontSizeMetric.MAX:
            font_size = float(np.max(sizes))
        else:
            font_size = float(np.mean(sizes))

        self.stats.lines_emitted += 1
        return Line(
            text=text,
            average_font_size=font_size,
            y_position=float(np.mean([f.y for f in ordered])),
            page_number=page_number,
        )
