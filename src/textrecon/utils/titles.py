"""
Multi-line title merging.

Walks a page's lines in arrival order and folds consecutive oversized lines
into single headings. Small lines sitting just above a heading line are
folded in as superscripts instead of breaking the heading.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Union

from ..config import TitleConfig
from .classifier import ClassifiedLine, LineCategory, Segment
from .lines import Line

logger = logging.getLogger(__name__)


@dataclass
class MergeStats:
    headings_emitted: int = 0
    continuations_merged: int = 0
    superscripts_folded: int = 0


@dataclass
class TitleBlock:
    """Heading being accumulated on the current page."""
    page_number: int
    last_y: float
    last_size: float
    segments: List[Segment] = field(default_factory=list)

    @classmethod
    def start(cls, line: Line) -> "TitleBlock":
        return cls(
            page_number=line.page_number,
            last_y=line.y_position,
            last_size=line.average_font_size,
            segments=[Segment(line.text)],
        )

    @property
    def text(self) -> str:
        return "".join(s.text for s in self.segments)

    def append_continuation(self, line: Line):
        last = self.segments[-1]
        if last.superscript:
            self.segments.append(Segment(" " + line.text))
        else:
            self.segments[-1] = Segment(last.text + " " + line.text)
        self.last_y = line.y_position
        self.last_size = line.average_font_size

    def append_superscript(self, line: Line):
        # Reference position stays on the heading body
        self.segments.append(Segment(line.text, superscript=True))

    def to_classified(self) -> ClassifiedLine:
        return ClassifiedLine(
            category=LineCategory.HEADING,
            text=self.text.strip(),
            segments=tuple(self.segments),
            page_number=self.page_number,
        )


class TitleMerger:
    """
    Two-state (idle / in title) merger over one page of lines.

    Completed headings are yielded as ClassifiedLine objects with the
    HEADING category; every other line is passed through unchanged for the
    classifier. Output order follows input order, so the merge is not
    commutative.
    """

    def __init__(self, config: Optional[TitleConfig] = None):
        self.config = config or TitleConfig()
        self.stats = MergeStats()

    def is_continuation(self, block: TitleBlock, line: Line) -> bool:
        return abs(line.y_position - block.last_y) <= self.config.continuation_tolerance

    def is_superscript(self, block: TitleBlock, line: Line) -> bool:
        return (
            line.y_position < block.last_y
            and len(line.text) <= self.config.superscript_max_chars
            and line.average_font_size < block.last_size
        )

    def merge(
        self,
        lines: Iterable[Line],
        threshold: float
    ) -> Iterator[Union[ClassifiedLine, Line]]:
        """
        Merge the oversized lines of a page into headings.

        A block left open at a page change or at the end of input is
        flushed, so state never carries from one page to the next.

        Args:
            lines: Lines of one page, in arrival order
            threshold: Document heading threshold

        Yields:
            ClassifiedLine for each completed heading, Line otherwise
        """
        block: Optional[TitleBlock] = None

        for line in lines:
            if block is not None and line.page_number != block.page_number:
                yield self._flush(block)
                block = None

            oversized = line.average_font_size > threshold

            if block is None:
                if oversized:
                    block = TitleBlock.start(line)
                else:
                    yield line
                continue

            if oversized and self.is_continuation(block, line):
                block.append_continuation(line)
                self.stats.continuations_merged += 1
            elif self.is_superscript(block, line):
                block.append_superscript(line)
                self.stats.superscripts_folded += 1
                logger.debug(f"Folded superscript {line.text!r} into heading {block.text!r}")
            elif oversized:
                yield self._flush(block)
                block = TitleBlock.start(line)
            else:
                yield self._flush(block)
                block = None
                yield line

        if block is not None:
            yield self._flush(block)

    def _flush(self, block: TitleBlock) -> ClassifiedLine:
        self.stats.headings_emitted += 1
        return block.to_classified()
