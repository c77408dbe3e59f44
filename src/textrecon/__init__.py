"""
Text Structure Reconstruction
=============================

Rebuilds a semantically tagged document from the positioned text fragments
of a page-based document (PDF). Headings, exercises, examples, lemmas,
notes, definitions, propositions, theorems, proofs, formulas and
paragraphs are recovered from geometry and font-size statistics.

Main components:
- Fragment sources (PyMuPDF decoding, in-memory pages)
- Line assembly (vertical grouping, horizontal spacing, page-number removal)
- Title merging (multi-line headings, superscript folding)
- Structure classification (ordered lexical and size rules)
- Multi-format export (HTML, Markdown, DOCX, JSON)
"""

__version__ = "1.0.0"
__author__ = "Text Reconstruction Team"
