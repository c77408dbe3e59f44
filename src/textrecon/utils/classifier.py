"""
Structure classification for reconstructed lines.

Provides:
- LineCategory and ClassifiedLine, the terminal artifacts handed to exporters
- An ordered, replaceable list of (predicate, category) rules
- Global font-size threshold computation
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..config import ClassifierConfig

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes and Enums
# ============================================================================

class LineCategory(Enum):
    """Semantic categories a line can be assigned."""
    HEADING = "heading"
    EXERCISE = "exercise"
    EXAMPLE = "example"
    LEMMA = "lemma"
    NOTE = "note"
    DEFINITION = "definition"
    PROPOSITION = "proposition"
    THEOREM = "theorem"
    PROOF = "proof"
    FORMULA = "formula"
    PARAGRAPH = "paragraph"


@dataclass(frozen=True)
class Segment:
    """A run of heading text, optionally rendered as a superscript."""
    text: str
    superscript: bool = False


@dataclass(frozen=True)
class ClassifiedLine:
    """A line with its semantic category."""
    category: LineCategory
    text: str
    segments: Tuple[Segment, ...] = ()
    page_number: int = 0

    @property
    def has_superscript(self) -> bool:
        return any(s.superscript for s in self.segments)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "category": self.category.value,
            "text": self.text,
            "page_number": self.page_number,
        }
        if self.has_superscript:
            result["segments"] = [
                {"text": s.text, "superscript": s.superscript} for s in self.segments
            ]
        return result


Predicate = Callable[[str, float, float], bool]


@dataclass(frozen=True)
class ClassificationRule:
    """One entry of the ordered rule list; the first matching rule wins."""
    name: str
    category: LineCategory
    predicate: Predicate

    def matches(self, text: str, font_size: float, threshold: float) -> bool:
        return self.predicate(text, font_size, threshold)


# ============================================================================
# Rule Builders
# ============================================================================

FORMULA_SYMBOLS = "∑∫∏√"


def size_rule(category: LineCategory = LineCategory.HEADING) -> ClassificationRule:
    """Lines whose font size exceeds the document threshold."""
    return ClassificationRule(
        name="size",
        category=category,
        predicate=lambda text, size, threshold: size > threshold,
    )


def prefix_rule(
    name: str,
    category: LineCategory,
    prefixes: Sequence[str]
) -> ClassificationRule:
    """Case-insensitive prefix match against any of `prefixes`."""
    lowered = tuple(p.lower() for p in prefixes)
    return ClassificationRule(
        name=name,
        category=category,
        predicate=lambda text, size, threshold: text.lower().startswith(lowered),
    )


def formula_rule(symbols: str = FORMULA_SYMBOLS) -> ClassificationRule:
    """Lines containing any summation, integral, product or root sign."""
    pattern = re.compile(f"[{re.escape(symbols)}]")
    return ClassificationRule(
        name="formula",
        category=LineCategory.FORMULA,
        predicate=lambda text, size, threshold: pattern.search(text) is not None,
    )


def default_rules() -> List[ClassificationRule]:
    """The standard rule order, covering Spanish and English markers."""
    return [
        size_rule(),
        prefix_rule("exercise", LineCategory.EXERCISE, ("ejercicio", "exercise")),
        prefix_rule("example", LineCategory.EXAMPLE, ("ejemplo", "example")),
        prefix_rule("lemma", LineCategory.LEMMA, ("lemma", "lema")),
        prefix_rule("note", LineCategory.NOTE, ("nota:", "note:")),
        prefix_rule("definition", LineCategory.DEFINITION, ("definición", "definicion", "definition")),
        prefix_rule("proposition", LineCategory.PROPOSITION, ("proposition", "proposición", "proposicion")),
        prefix_rule("theorem", LineCategory.THEOREM, ("teorema", "theorem")),
        prefix_rule("proof", LineCategory.PROOF, ("demostración", "demostracion", "demonstration", "proof")),
        formula_rule(),
    ]


# ============================================================================
# Threshold
# ============================================================================

def compute_threshold(
    font_sizes: Sequence[float],
    config: Optional[ClassifierConfig] = None
) -> float:
    """
    Compute the document-wide heading threshold.

    The threshold is `threshold_factor` times the mean line font size. With
    no lines, or fewer than `min_threshold_lines`, the mean is replaced by
    `fallback_font_size`.

    Args:
        font_sizes: Font size of every line in the document
        config: Classifier configuration (defaults if omitted)

    Returns:
        Font size above which a line counts as a heading
    """
    config = config or ClassifierConfig()

    if len(font_sizes) == 0:
        logger.info(f"No lines to average; using fallback size {config.fallback_font_size}")
        base = config.fallback_font_size
    elif len(font_sizes) < config.min_threshold_lines:
        logger.info(
            f"Only {len(font_sizes)} line(s); using fallback size {config.fallback_font_size}"
        )
        base = config.fallback_font_size
    else:
        base = float(np.mean(font_sizes))

    return base * config.threshold_factor


# ============================================================================
# Classifier
# ============================================================================

class StructureClassifier:
    """
    Assigns each line exactly one category.

    Rules are evaluated top to bottom and the first match wins; lines that
    match nothing are paragraphs. The classifier holds no per-line state.
    """

    def __init__(
        self,
        rules: Optional[Sequence[ClassificationRule]] = None,
        default_category: LineCategory = LineCategory.PARAGRAPH
    ):
        self.rules = list(rules) if rules is not None else default_rules()
        self.default_category = default_category

    def categorize(self, text: str, font_size: float, threshold: float) -> LineCategory:
        for rule in self.rules:
            if rule.matches(text, font_size, threshold):
                return rule.category
        return self.default_category

    def classify(
        self,
        text: str,
        font_size: float,
        threshold: float,
        page_number: int = 0
    ) -> Optional[ClassifiedLine]:
        """
        Classify a line of text.

        Args:
            text: Line text
            font_size: The line's font size
            threshold: Document heading threshold
            page_number: Page the line came from

        Returns:
            ClassifiedLine, or None when the text is empty after trimming
        """
        text = (text or "").strip()
        if not text:
            return None

        category = self.categorize(text, font_size, threshold)
        return ClassifiedLine(
            category=category,
            text=text,
            segments=(Segment(text),),
            page_number=page_number,
        )

    def classify_line(self, line: Any, threshold: float) -> Optional[ClassifiedLine]:
        """Classify a Line object."""
        return self.classify(
            line.text, line.average_font_size, threshold, page_number=line.page_number
        )
