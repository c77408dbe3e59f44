"""
Export module for text structure reconstruction.

Provides:
- HTML export (styled template, one CSS class per category)
- Markdown export
- DOCX export (using python-docx)
- JSON export
"""

import html
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .classifier import ClassifiedLine, LineCategory, Segment

logger = logging.getLogger(__name__)


# ============================================================================
# HTML Exporter
# ============================================================================

HTML_STYLE = """
        body {
            font-family: Arial, sans-serif;
            line-height: 1.6;
            max-width: 1200px;
            margin: 0 auto;
            padding: 20px;
        }
        h1, h2 {
            color: #333;
        }
        h1 {
            text-align: center;
        }
        .date {
            text-align: center;
            color: #666;
            margin-bottom: 30px;
        }
        .nota {
            background-color: #f9f9f9;
            padding: 15px;
            border-left: 4px solid #666;
            margin: 20px 0;
        }
        .ejercicio {
            margin: 20px 0;
            padding: 15px;
            border: 1px solid #ddd;
            background-color: #f5f5f5;
        }
        .ejemplo {
            margin: 20px 0;
            padding: 15px;
            background-color: #e9f7ef;
        }
        .formula {
            font-family: "Times New Roman", Times, serif;
            padding: 10px 0;
            text-indent: 20px;
        }
        .definición {
            background-color: #f0f7ff;
            padding: 15px;
            margin: 20px 0;
            border-left: 4px solid #0066cc;
        }
        .lema {
            background-color: #fff3e0;
            padding: 15px;
            margin: 20px 0;
            border-left: 4px solid #ff9800;
        }
        .proposición {
            background-color: #e8f4fd;
            padding: 15px;
            margin: 20px 0;
            border-left: 4px solid #2196F3;
            box-shadow: 0 1px 3px rgba(0,0,0,0.1);
        }
        .teorema {
            background-color: #ffcdd2;
            padding: 15px;
            margin: 20px 0;
            border-left: 4px solid #f44336;
        }
        .proof {
            background-color: #e0f2f1;
            padding: 15px;
            margin: 20px 0;
            border-left: 4px solid #4caf50;
            font-style: italic;
        }"""

# CSS class per boxed category; the names match the Spanish stylesheet above
CSS_CLASSES = {
    LineCategory.NOTE: "nota",
    LineCategory.EXERCISE: "ejercicio",
    LineCategory.EXAMPLE: "ejemplo",
    LineCategory.FORMULA: "formula",
    LineCategory.DEFINITION: "definición",
    LineCategory.LEMMA: "lema",
    LineCategory.PROPOSITION: "proposición",
    LineCategory.THEOREM: "teorema",
    LineCategory.PROOF: "proof",
}


class HtmlExporter:
    """Export document to a standalone, styled HTML page."""

    def __init__(self, lang: str = "es"):
        self.lang = lang

    def export(
        self,
        document: Any,
        output_path: Union[str, Path]
    ) -> Path:
        """
        Export document to HTML file.

        Args:
            document: ReconstructedDocument
            output_path: Output file path

        Returns:
            Path to the generated HTML file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        content = self.render(document)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(content)

        logger.info(f"Exported HTML to: {output_path}")
        return output_path

    def render(self, document: Any) -> str:
        """Render the full HTML page as a string."""
        title = html.escape(document.title or "")
        body = "\n".join(
            self._line_to_html(line) for line in document.lines
        )

        return f"""<!DOCTYPE html>
<html lang="{html.escape(self.lang)}">
<head>
    <title>{title}</title>
    <meta charset="UTF-8">
    <style>{HTML_STYLE}
    </style>
</head>
<body>
    <h1>{title}</h1>
    <div class="date">{html.escape(document.date or "")}</div>
    <div class="content">
{body}
    </div>
</body>
</html>
"""

    def _line_to_html(self, line: ClassifiedLine) -> str:
        category = line.category

        if category == LineCategory.HEADING:
            return f"<h2>{self._segments_to_html(line)}</h2>"
        if category == LineCategory.PARAGRAPH:
            return f"<p>{html.escape(line.text)}</p>"
        css_class = CSS_CLASSES.get(category, category.value)
        return f'<div class="{css_class}">{html.escape(line.text)}</div>'

    def _segments_to_html(self, line: ClassifiedLine) -> str:
        if not line.segments:
            return html.escape(line.text)

        parts = []
        for segment in line.segments:
            text = html.escape(segment.text)
            parts.append(f"<sup>{text}</sup>" if segment.superscript else text)
        return "".join(parts).strip()


# ============================================================================
# Markdown Exporter
# ============================================================================

BOXED_CATEGORIES = (
    LineCategory.EXERCISE,
    LineCategory.EXAMPLE,
    LineCategory.LEMMA,
    LineCategory.NOTE,
    LineCategory.DEFINITION,
    LineCategory.PROPOSITION,
    LineCategory.THEOREM,
)


class MarkdownExporter:
    """Export document to Markdown format."""

    def __init__(self, include_page_breaks: bool = False):
        self.include_page_breaks = include_page_breaks

    def export(
        self,
        document: Any,
        output_path: Union[str, Path]
    ) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        markdown = self.render(document)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(markdown)

        logger.info(f"Exported Markdown to: {output_path}")
        return output_path

    def render(self, document: Any) -> str:
        """Generate Markdown from document structure."""
        lines = []

        if document.title:
            lines.append(f"# {document.title}")
            lines.append("")
        if document.date:
            lines.append(f"*{document.date}*")
            lines.append("")

        current_page = None
        for line in document.lines:
            if self.include_page_breaks and line.page_number != current_page:
                if current_page is not None:
                    lines.append("---")
                    lines.append(f"*Page {line.page_number}*")
                    lines.append("")
                current_page = line.page_number

            md = self._line_to_markdown(line)
            if md:
                lines.append(md)
                lines.append("")

        return "\n".join(lines)

    def _line_to_markdown(self, line: ClassifiedLine) -> str:
        category = line.category

        if category == LineCategory.HEADING:
            parts = []
            for segment in line.segments or ():
                parts.append(f"<sup>{segment.text}</sup>" if segment.superscript else segment.text)
            return f"## {''.join(parts).strip() or line.text}"

        elif category == LineCategory.FORMULA:
            return f"```\n{line.text}\n```"

        elif category == LineCategory.PROOF:
            return f"*{line.text}*"

        elif category in BOXED_CATEGORIES:
            return f"> {line.text}"

        return line.text


# ============================================================================
# DOCX Exporter
# ============================================================================

class DocxExporter:
    """Export document to DOCX format using python-docx."""

    def __init__(self, template_path: Optional[str] = None):
        self.template_path = template_path

    def export(
        self,
        document: Any,
        output_path: Union[str, Path]
    ) -> Path:
        """
        Export document to DOCX file.

        Args:
            document: ReconstructedDocument
            output_path: Output file path

        Returns:
            Path to the generated DOCX file
        """
        try:
            from docx import Document as DocxDocument
            from docx.enum.text import WD_ALIGN_PARAGRAPH
        except ImportError:
            raise ImportError(
                "python-docx is required for DOCX export. "
                "Install with: pip install python-docx"
            )

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        if self.template_path and Path(self.template_path).exists():
            doc = DocxDocument(self.template_path)
        else:
            doc = DocxDocument()

        if document.title:
            doc.add_heading(document.title, 0)
        if document.date:
            p = doc.add_paragraph(document.date)
            p.alignment = WD_ALIGN_PARAGRAPH.CENTER

        for line in document.lines:
            self._add_line_to_docx(doc, line)

        doc.save(str(output_path))
        logger.info(f"Exported DOCX to: {output_path}")

        return output_path

    def _add_line_to_docx(self, doc: Any, line: ClassifiedLine):
        """Add a classified line to the DOCX document."""
        from docx.enum.text import WD_ALIGN_PARAGRAPH

        category = line.category

        if category == LineCategory.HEADING:
            heading = doc.add_heading(level=2)
            for segment in line.segments or (Segment(line.text),):
                run = heading.add_run(segment.text)
                run.font.superscript = segment.superscript

        elif category == LineCategory.FORMULA:
            p = doc.add_paragraph(line.text)
            p.alignment = WD_ALIGN_PARAGRAPH.CENTER

        elif category == LineCategory.PROOF:
            p = doc.add_paragraph()
            p.add_run(line.text).italic = True

        elif category in BOXED_CATEGORIES:
            p = doc.add_paragraph()
            p.add_run(line.text).bold = category in (
                LineCategory.THEOREM, LineCategory.DEFINITION,
                LineCategory.LEMMA, LineCategory.PROPOSITION,
            )

        else:
            doc.add_paragraph(line.text)


# ============================================================================
# Multi-format Exporter
# ============================================================================

EXPORT_FORMATS = ("html", "markdown", "docx", "json")


class DocumentExporter:
    """Convenience class for exporting to multiple formats."""

    def __init__(
        self,
        output_dir: Union[str, Path],
        base_name: str = "document",
        html_lang: str = "es",
        markdown_page_breaks: bool = False,
        docx_template: Optional[str] = None
    ):
        self.output_dir = Path(output_dir)
        self.base_name = base_name

        self.html_exporter = HtmlExporter(lang=html_lang)
        self.markdown_exporter = MarkdownExporter(include_page_breaks=markdown_page_breaks)
        self.docx_exporter = DocxExporter(template_path=docx_template)

    def export(
        self,
        document: Any,
        formats: Optional[List[str]] = None
    ) -> Dict[str, Path]:
        """
        Export document to multiple formats.

        Args:
            document: ReconstructedDocument
            formats: List of formats ('html', 'markdown', 'docx', 'json', 'all')

        Returns:
            Dictionary mapping format to output path
        """
        if formats is None:
            formats = ["html"]

        if "all" in formats:
            formats = list(EXPORT_FORMATS)

        self.output_dir.mkdir(parents=True, exist_ok=True)

        results = {}

        if "html" in formats:
            path = self.output_dir / f"{self.base_name}.html"
            results["html"] = self.html_exporter.export(document, path)

        if "markdown" in formats:
            path = self.output_dir / f"{self.base_name}.md"
            results["markdown"] = self.markdown_exporter.export(document, path)

        if "docx" in formats:
            path = self.output_dir / f"{self.base_name}.docx"
            results["docx"] = self.docx_exporter.export(document, path)

        if "json" in formats:
            from .io import save_json
            path = self.output_dir / f"{self.base_name}.json"
            results["json"] = save_json(document.to_dict(), path)

        return results
