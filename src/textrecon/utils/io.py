"""
I/O utilities for the text structure reconstruction pipeline.

Handles:
- PDF opening (as a fragment source)
- JSON serialization
- Directory management
"""

import json
import logging
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Any, Union

import numpy as np

from .fragments import PyMuPDFFragmentSource

logger = logging.getLogger(__name__)


# ============================================================================
# PDF Loading
# ============================================================================

def load_pdf(
    pdf_path: Union[str, Path],
    sort_by_position: bool = False
) -> PyMuPDFFragmentSource:
    """
    Open a PDF as a fragment source.

    The returned source holds the document open; use it as a context
    manager or call close() when done.

    Args:
        pdf_path: Path to the PDF file
        sort_by_position: Order each page's glyphs by baseline, then x,
            instead of the content-stream order PyMuPDF reports

    Returns:
        PyMuPDFFragmentSource for the document

    Raises:
        FileNotFoundError: If PDF file doesn't exist
        ImportError: If PyMuPDF is not installed
        RuntimeError: If the file cannot be parsed as a PDF
    """
    return PyMuPDFFragmentSource(pdf_path, sort_by_position=sort_by_position)


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy scalars, enums and dataclasses."""

    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, Enum):
            return obj.value
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, dataclass, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


def load_json(json_path: Union[str, Path]) -> Any:
    """Load data from a JSON file."""
    json_path = Path(json_path)
    if not json_path.exists():
        raise FileNotFoundError(f"JSON file not found: {json_path}")

    with open(json_path, 'r', encoding='utf-8') as f:
        return json.load(f)


# ============================================================================
# Directory Management
# ============================================================================

def ensure_dir(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Path to the directory

    Returns:
        Path object for the directory
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def detect_input_type(input_path: Union[str, Path]) -> str:
    """
    Detect the type of input file.

    Returns:
        One of: 'pdf', 'unknown'
    """
    input_path = Path(input_path)

    if not input_path.is_file():
        return 'unknown'

    if input_path.suffix.lower() == '.pdf':
        return 'pdf'

    return 'unknown'
