"""
Configuration and constants for the text structure reconstruction pipeline.

This module provides:
- Global logging setup
- Line assembly and page-number tolerances
- Title merging and classification parameters
- Export settings
"""

import os
from dataclasses import dataclass, field
from typing import List
import logging

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("textrecon")


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class LineConfig:
    """Line assembly configuration."""
    vertical_tolerance: float = 5.0  # Max baseline drift inside one line
    space_threshold: float = 3.0  # Horizontal gap that becomes a space
    font_size_metric: str = "mean"  # mean or max over the line's fragments
    residual_number_pattern: str = r"^\d{1,3}$"


@dataclass
class PageNumberConfig:
    """Page-number suppression configuration."""
    enabled: bool = True
    bottom_fraction: float = 0.9
    left_margin_fraction: float = 0.2
    right_margin_fraction: float = 0.8
    center_tolerance: float = 20.0


@dataclass
class TitleConfig:
    """Multi-line title merging configuration."""
    enabled: bool = True
    continuation_tolerance: float = 2.0
    superscript_max_chars: int = 5


@dataclass
class ClassifierConfig:
    """Structure classification configuration."""
    threshold_factor: float = 1.2
    fallback_font_size: float = 12.0
    # Fewer lines than this and the mean is not trusted as a body size
    min_threshold_lines: int = 2


@dataclass
class ExportConfig:
    """Export configuration."""
    html_lang: str = "es"
    date_format: str = "%B %-d, %Y"
    markdown_page_breaks: bool = False
    docx_template: str = ""
    output_formats: List[str] = field(default_factory=lambda: ["html"])


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    lines: LineConfig = field(default_factory=LineConfig)
    page_numbers: PageNumberConfig = field(default_factory=PageNumberConfig)
    titles: TitleConfig = field(default_factory=TitleConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    # Global settings
    # Content-stream order keeps a raised superscript after its base glyphs
    sort_by_position: bool = False
    debug_mode: bool = False


# ============================================================================
# Default Configuration Instance
# ============================================================================

FONT_SIZE_METRICS = ("mean", "max")


def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    metric = os.environ.get("TEXTRECON_FONT_METRIC", "").lower()
    if metric in FONT_SIZE_METRICS:
        config.lines.font_size_metric = metric
    elif metric:
        logger.warning(f"Ignoring unknown TEXTRECON_FONT_METRIC: {metric}")

    if os.environ.get("TEXTRECON_NO_TITLE_MERGE", "").lower() == "true":
        config.titles.enabled = False

    if os.environ.get("TEXTRECON_DEBUG", "").lower() == "true":
        config.debug_mode = True

    lang = os.environ.get("TEXTRECON_HTML_LANG")
    if lang:
        config.export.html_lang = lang

    formats = os.environ.get("TEXTRECON_OUTPUT_FORMATS")
    if formats:
        config.export.output_formats = [
            f.strip().lower() for f in formats.split(",") if f.strip()
        ]

    return config
