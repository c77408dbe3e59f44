"""
End-to-end integration tests for the Text Structure Reconstruction Pipeline.
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from textrecon.config import PipelineConfig, get_config
from textrecon.utils.assembler import DocumentAssembler
from textrecon.utils.classifier import LineCategory
from textrecon.utils.fragments import InMemoryFragmentSource, TextFragment

PAGE_WIDTH = 600.0
PAGE_HEIGHT = 800.0


def word(text, x, y, size=12.0, glyph_width=6.0):
    return [
        TextFragment(ch, x + i * glyph_width, y, glyph_width, size, PAGE_WIDTH, PAGE_HEIGHT)
        for i, ch in enumerate(text)
    ]


class TestEndToEnd:
    """End-to-end integration tests."""

    @pytest.fixture
    def lecture_pages(self):
        """Two pages of lecture notes with a page number on the first."""
        page1 = (
            word("Chapter One", 50, 80, size=24, glyph_width=12)
            + word("Some text.", 50, 120)
            + word("Exercise 1: prove it.", 50, 140)
            + word("f = ∫ g", 50, 160)
            + word("1", 300, 760)
        )
        page2 = (
            word("Theorem 2", 50, 100)
            + word("Proof. Done.", 50, 120)
        )
        return [page1, page2]

    @pytest.fixture
    def superscript_page(self):
        return [
            word("Sequence a", 50, 80, size=24, glyph_width=12)
            + word("n+1", 170, 74, size=12)
            + word("First body line", 50, 120)
            + word("Second body line", 50, 140)
            + word("Third body line", 50, 160)
        ]

    @pytest.fixture
    def assembler(self):
        return DocumentAssembler(config=PipelineConfig())

    def test_full_document(self, assembler, lecture_pages):
        doc = assembler.process_document(
            InMemoryFragmentSource(lecture_pages), title="Notes", date="today"
        )

        assert [(l.category, l.text) for l in doc.lines] == [
            (LineCategory.HEADING, "Chapter One"),
            (LineCategory.PARAGRAPH, "Some text."),
            (LineCategory.EXERCISE, "Exercise 1: prove it."),
            (LineCategory.FORMULA, "f = ∫ g"),
            (LineCategory.THEOREM, "Theorem 2"),
            (LineCategory.PROOF, "Proof. Done."),
        ]
        assert [l.page_number for l in doc.lines] == [1, 1, 1, 1, 2, 2]
        assert doc.title == "Notes"
        assert doc.date == "today"
        assert doc.is_empty is False

    def test_threshold_is_global(self, assembler, lecture_pages):
        doc = assembler.process_document(InMemoryFragmentSource(lecture_pages), title="Notes")

        # (24 + 5 * 12) / 6 = 14
        assert doc.threshold == pytest.approx(14.0 * 1.2)

    def test_page_number_excluded(self, assembler, lecture_pages):
        doc = assembler.process_document(InMemoryFragmentSource(lecture_pages), title="Notes")

        assert all(l.text != "1" for l in doc.lines)
        assert doc.metrics.page_numbers_dropped == 1

    def test_single_line_document_is_heading(self, assembler):
        fragments = [
            TextFragment("T", 0, 10, 12, 20, PAGE_WIDTH, PAGE_HEIGHT),
            TextFragment("itle", 15, 10, 30, 20, PAGE_WIDTH, PAGE_HEIGHT),
        ]

        doc = assembler.process_document(InMemoryFragmentSource([fragments]), title="t")

        assert len(doc.lines) == 1
        assert doc.lines[0].category == LineCategory.HEADING
        assert doc.lines[0].text == "Title"
        assert doc.threshold == pytest.approx(12.0 * 1.2)

    def test_superscript_fold(self, assembler, superscript_page):
        doc = assembler.process_document(InMemoryFragmentSource(superscript_page), title="t")

        heading = doc.lines[0]
        assert heading.category == LineCategory.HEADING
        assert heading.text == "Sequence an+1"
        assert heading.segments[-1].superscript is True
        assert heading.segments[-1].text == "n+1"
        assert doc.metrics.superscripts_folded == 1
        assert [l.category for l in doc.lines[1:]] == [LineCategory.PARAGRAPH] * 3

    def test_without_title_merge(self, superscript_page):
        config = PipelineConfig()
        config.titles.enabled = False
        assembler = DocumentAssembler(config=config)

        doc = assembler.process_document(InMemoryFragmentSource(superscript_page), title="t")

        assert [(l.category, l.text) for l in doc.lines[:2]] == [
            (LineCategory.HEADING, "Sequence a"),
            (LineCategory.PARAGRAPH, "n+1"),
        ]
        assert doc.metrics.superscripts_folded == 0

    def test_max_metric_changes_sensitivity(self):
        # Mixed-size line: mean 14, max 20
        page = [
            word("Ab", 50, 80, size=8) + word("cd", 62, 80, size=20),
            word("body one", 50, 120),
            word("body two", 50, 140),
        ]
        page = [page[0] + page[1] + page[2]]

        mean_doc = DocumentAssembler(config=PipelineConfig()).process_document(
            InMemoryFragmentSource(page), title="t"
        )
        config = PipelineConfig()
        config.lines.font_size_metric = "max"
        max_doc = DocumentAssembler(config=config).process_document(
            InMemoryFragmentSource(page), title="t"
        )

        assert mean_doc.lines[0].category == LineCategory.PARAGRAPH
        assert max_doc.lines[0].category == LineCategory.HEADING

    def test_page_selection(self, assembler, lecture_pages):
        doc = assembler.process_document(
            InMemoryFragmentSource(lecture_pages), title="Notes", pages=[2]
        )

        assert [l.text for l in doc.lines] == ["Theorem 2", "Proof. Done."]
        assert doc.metrics.pages_processed == 1

    def test_empty_document(self, assembler):
        doc = assembler.process_document(InMemoryFragmentSource([[], []]), title="Empty")

        assert doc.is_empty is True
        assert doc.lines == []
        assert doc.threshold == pytest.approx(14.4)
        assert doc.metrics.pages_processed == 2

    def test_malformed_fragments_never_fatal(self, assembler):
        page = word("Good line", 50, 100) + [
            TextFragment("x", float("nan"), 100, 6, 12, PAGE_WIDTH, PAGE_HEIGHT),
            TextFragment("y", 50, -5, 6, 12, PAGE_WIDTH, PAGE_HEIGHT),
        ]

        doc = assembler.process_document(InMemoryFragmentSource([page]), title="t")

        assert [l.text for l in doc.lines] == ["Good line"]
        assert doc.metrics.malformed_dropped == 2

    def test_metrics_to_dict(self, assembler, lecture_pages):
        doc = assembler.process_document(InMemoryFragmentSource(lecture_pages), title="Notes")
        data = doc.to_dict()

        assert data["metadata"]["title"] == "Notes"
        assert data["metrics"]["categories"]["heading"] == 1
        assert data["metrics"]["categories"]["proof"] == 1
        assert data["metrics"]["lines"]["assembled"] == 6
        assert len(data["lines"]) == 6


class TestPyMuPDFSource:
    """Tests against a PDF generated on the fly."""

    @pytest.fixture
    def sample_pdf(self, tmp_path):
        fitz = pytest.importorskip("fitz")

        doc = fitz.open()
        page = doc.new_page(width=595, height=842)
        page.insert_text((72, 80), "Introduction", fontsize=24)
        page.insert_text((72, 120), "This is body text.", fontsize=11)
        page.insert_text((72, 140), "Another body line.", fontsize=11)
        page.insert_text((72, 160), "Exercise 1: compute.", fontsize=11)
        page.insert_text((295, 800), "3", fontsize=11)

        path = tmp_path / "lecture.pdf"
        doc.save(str(path))
        doc.close()
        return path

    def test_decode_page(self, sample_pdf):
        from textrecon.utils.io import load_pdf

        with load_pdf(sample_pdf) as source:
            assert source.page_count == 1
            fragments = source.decode_page(0)

        assert fragments
        assert all(f.page_height == pytest.approx(842) for f in fragments)
        assert max(f.font_size for f in fragments) == pytest.approx(24)
        assert min(f.font_size for f in fragments) == pytest.approx(11)

    def test_process_pdf(self, sample_pdf):
        assembler = DocumentAssembler(config=PipelineConfig())

        doc = assembler.process_pdf(sample_pdf, date="1 de enero")

        assert doc.title == "lecture"
        assert doc.lines[0].category == LineCategory.HEADING
        assert doc.lines[0].text == "Introduction"
        assert "body" in doc.lines[1].text
        assert doc.lines[-1].category == LineCategory.EXERCISE
        assert all(l.text != "3" for l in doc.lines)
        assert doc.metrics.page_numbers_dropped == 1

    @pytest.fixture
    def superscript_pdf(self, tmp_path):
        fitz = pytest.importorskip("fitz")

        doc = fitz.open()
        page = doc.new_page(width=595, height=842)
        page.insert_text((72, 80), "Sequence a", fontsize=24)
        right = 72 + fitz.get_text_length("Sequence a", fontsize=24)
        page.insert_text((right, 72), "n+1", fontsize=12)
        for i in range(3):
            page.insert_text((72, 120 + 20 * i), f"Body line {i}", fontsize=11)

        path = tmp_path / "sequence.pdf"
        doc.save(str(path))
        doc.close()
        return path

    def test_superscript_folded_from_pdf(self, superscript_pdf):
        assembler = DocumentAssembler(config=PipelineConfig())

        doc = assembler.process_pdf(superscript_pdf, date="hoy")

        heading = doc.lines[0]
        assert heading.category == LineCategory.HEADING
        assert heading.text == "Sequence an+1"
        assert heading.segments[-1].text == "n+1"
        assert heading.segments[-1].superscript is True
        assert [(l.category, l.text) for l in doc.lines[1:]] == [
            (LineCategory.PARAGRAPH, f"Body line {i}") for i in range(3)
        ]

    def test_sort_by_position_orders_by_baseline(self, superscript_pdf):
        from textrecon.utils.fragments import PyMuPDFFragmentSource

        with PyMuPDFFragmentSource(superscript_pdf) as source:
            stream_order = source.decode_page(0)
        with PyMuPDFFragmentSource(superscript_pdf, sort_by_position=True) as source:
            sorted_order = source.decode_page(0)

        assert stream_order[0].text == "S"
        assert sorted_order[0].text == "n"

    def test_missing_pdf(self, tmp_path):
        pytest.importorskip("fitz")
        from textrecon.utils.io import load_pdf

        with pytest.raises(FileNotFoundError):
            load_pdf(tmp_path / "missing.pdf")

    def test_cli_run(self, sample_pdf, tmp_path):
        from textrecon.cli import main

        out_dir = tmp_path / "out"
        with pytest.raises(SystemExit) as exc:
            main(["--input", str(sample_pdf), "--output", str(out_dir),
                  "--format", "html", "json", "--quiet"])

        assert exc.value.code == 0
        html = (out_dir / "lecture.html").read_text(encoding="utf-8")
        assert "<h2>Introduction</h2>" in html
        assert (out_dir / "lecture.json").exists()

    def test_cli_formats_from_config(self, sample_pdf, tmp_path, monkeypatch):
        from textrecon.cli import main

        monkeypatch.setenv("TEXTRECON_OUTPUT_FORMATS", "markdown,json")
        out_dir = tmp_path / "out"
        with pytest.raises(SystemExit) as exc:
            main(["--input", str(sample_pdf), "--output", str(out_dir), "--quiet"])

        assert exc.value.code == 0
        assert (out_dir / "lecture.md").exists()
        assert (out_dir / "lecture.json").exists()
        assert not (out_dir / "lecture.html").exists()


ENV_VARS = ("TEXTRECON_FONT_METRIC", "TEXTRECON_NO_TITLE_MERGE", "TEXTRECON_DEBUG",
            "TEXTRECON_HTML_LANG", "TEXTRECON_OUTPUT_FORMATS")


class TestConfig:
    """Test environment overrides."""

    def test_defaults(self, monkeypatch):
        for name in ENV_VARS:
            monkeypatch.delenv(name, raising=False)

        config = get_config()

        assert config.lines.font_size_metric == "mean"
        assert config.lines.vertical_tolerance == 5.0
        assert config.lines.space_threshold == 3.0
        assert config.titles.enabled is True
        assert config.classifier.threshold_factor == 1.2
        assert config.sort_by_position is False
        assert config.export.output_formats == ["html"]
        assert config.export.date_format == "%B %-d, %Y"

    def test_output_formats_env(self, monkeypatch):
        monkeypatch.setenv("TEXTRECON_OUTPUT_FORMATS", "HTML, docx")

        assert get_config().export.output_formats == ["html", "docx"]

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("TEXTRECON_FONT_METRIC", "MAX")
        monkeypatch.setenv("TEXTRECON_NO_TITLE_MERGE", "true")
        monkeypatch.setenv("TEXTRECON_HTML_LANG", "en")

        config = get_config()

        assert config.lines.font_size_metric == "max"
        assert config.titles.enabled is False
        assert config.export.html_lang == "en"

    def test_unknown_metric_ignored(self, monkeypatch):
        monkeypatch.setenv("TEXTRECON_FONT_METRIC", "median")

        assert get_config().lines.font_size_metric == "mean"


class TestPageRange:
    """Test CLI page range parsing."""

    def test_ranges_and_singles(self):
        from textrecon.cli import parse_page_range

        assert parse_page_range("1-3,5", 10) == [1, 2, 3, 5]
        assert parse_page_range("8-20", 10) == [8, 9, 10]
        assert parse_page_range("0,4,11", 10) == [4]


class TestBuildConfig:
    """Test command-line overrides on top of the configuration."""

    def test_format_defaults_to_config(self, monkeypatch):
        from textrecon.cli import build_config, setup_argparser

        for name in ENV_VARS:
            monkeypatch.delenv(name, raising=False)
        args = setup_argparser().parse_args(["-i", "a.pdf", "-o", "out"])

        assert args.format is None
        assert build_config(args).export.output_formats == ["html"]

    def test_format_flag_overrides_config(self, monkeypatch):
        from textrecon.cli import build_config, setup_argparser

        monkeypatch.setenv("TEXTRECON_OUTPUT_FORMATS", "json")
        args = setup_argparser().parse_args(["-i", "a.pdf", "-o", "out", "-f", "markdown", "docx"])

        assert build_config(args).export.output_formats == ["markdown", "docx"]


class TestFormatDate:
    """Test the generation date string."""

    def test_day_not_zero_padded(self):
        from datetime import datetime
        from textrecon.utils.assembler import format_date

        when = datetime(2026, 10, 8)

        assert format_date("%B %-d, %Y", when) == when.strftime("%B") + " 8, 2026"

    def test_default_format(self):
        from datetime import datetime
        from textrecon.config import ExportConfig
        from textrecon.utils.assembler import format_date

        when = datetime(2026, 3, 1)

        assert format_date(ExportConfig().date_format, when).endswith(" 1, 2026")

    def test_plain_strftime_codes(self):
        from datetime import datetime
        from textrecon.utils.assembler import format_date

        assert format_date("%d/%m/%Y", datetime(2026, 3, 1)) == "01/03/2026"
