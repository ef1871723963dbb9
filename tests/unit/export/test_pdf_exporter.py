"""
Unit Tests for rasterization, PDF assembly and the Word exporter
"""
import logging
import re
from io import BytesIO

import pytest
from docx import Document
from PIL import Image

from valuedesk.core.exceptions import DocumentAssemblyError, RasterizationError
from valuedesk.modules.export.docx_exporter import WordReportExporter
from valuedesk.modules.export.pdf_exporter import PDFExporter, plan_page_slices
from valuedesk.modules.export.rasterizer import PillowRasterizer, mm_to_px
from valuedesk.modules.report.renderer import build_report


def _pdf_pages(content: bytes) -> int:
    return len(re.findall(rb"/Type /Page\b", content))


class TestPagePlan:
    """Test the pagination loop"""

    def test_partial_second_page(self):
        """Test content taller than one page spills onto a second"""
        assert plan_page_slices(500, 297) == [[0.0], [-297.0]]

    def test_exact_single_page(self):
        """Test an exact multiple does not add a trailing page"""
        plan = plan_page_slices(297, 297)

        assert len(plan) == 1
        assert plan[0] == [0.0, -297.0]

    def test_exact_two_pages(self):
        """Test two full pages"""
        assert len(plan_page_slices(594, 297)) == 2

    def test_empty_content(self):
        """Test zero height still yields one page"""
        assert plan_page_slices(0, 297) == [[0.0]]

    def test_invalid_page_height(self):
        """Test non-positive page height is rejected"""
        with pytest.raises(ValueError):
            plan_page_slices(100, 0)


class TestRasterizer:
    """Test the Pillow rasterizer"""

    def test_surface_is_page_width(self):
        """Test the surface is one A4 page wide and at least one page per logical page"""
        rasterizer = PillowRasterizer(dpi=48)
        document = build_report({})

        surface = rasterizer.render_surface(document, {})

        assert surface.width == mm_to_px(210, 48)
        assert surface.height >= rasterizer.page_height * len(document.pages)
        assert surface.mode == "RGB"

    def test_wrap_breaks_on_newlines(self):
        """Test explicit newlines always start a new line"""
        rasterizer = PillowRasterizer(dpi=48)
        font = rasterizer.fonts["body"]

        assert rasterizer.wrap("a\nb", font, 1000) == ["a", "b"]


class _FailingRasterizer:
    def __init__(self, error):
        self.error = error

    def render_surface(self, document, images):
        raise self.error


class TestPDFExporter:
    """Test PDF assembly"""

    def test_assemble_slices_tall_surface(self):
        """Test a surface 500mm tall becomes two A4 pages"""
        surface = Image.new("RGB", (420, 1000), (255, 255, 255))

        artifact = PDFExporter().assemble(surface)

        assert artifact.page_count == 2
        assert artifact.content.startswith(b"%PDF")
        assert _pdf_pages(artifact.content) == 2

    @pytest.mark.asyncio
    async def test_preview_report(self, sample_record):
        """Test a rendered report becomes a PDF with both valid images"""
        artifact = await PDFExporter(rasterizer=PillowRasterizer(dpi=48)).build(
            build_report(sample_record), embed=False
        )

        assert artifact.content.startswith(b"%PDF")
        assert artifact.image_count == 2
        assert artifact.page_count >= len(artifact.document.pages) - 1
        assert _pdf_pages(artifact.content) == artifact.page_count

    @pytest.mark.asyncio
    async def test_rasterization_error_propagates(self):
        """Test surface failures are surfaced unchanged"""
        exporter = PDFExporter(rasterizer=_FailingRasterizer(RasterizationError("no surface")))

        with pytest.raises(RasterizationError):
            await exporter.preview(build_report({}))

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self):
        """Test unexpected failures become DocumentAssemblyError"""
        exporter = PDFExporter(rasterizer=_FailingRasterizer(RuntimeError("boom")))

        with pytest.raises(DocumentAssemblyError) as exc_info:
            await exporter.preview(build_report({}))

        assert "boom" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unexpected_error_logged_with_context(self, caplog):
        """Test the failure is logged once with its type, origin and traceback"""
        exporter = PDFExporter(rasterizer=_FailingRasterizer(RuntimeError("boom")))

        with caplog.at_level(logging.ERROR, logger="valuedesk"):
            with pytest.raises(DocumentAssemblyError):
                await exporter.preview(build_report({}))

        errors = [r for r in caplog.records if getattr(r, "event_type", None) == "error"]
        assert len(errors) == 1
        assert errors[0].error_type == "RuntimeError"
        assert errors[0].error_context == "PDFExporter"
        assert errors[0].doc_type == "pdf"
        assert errors[0].exc_info is not None


class TestWordReportExporter:
    """Test the editable export"""

    @pytest.mark.asyncio
    async def test_builds_docx_with_tables_and_images(self, sample_record):
        """Test a .docx with editable tables and one picture per valid image"""
        content, written = await WordReportExporter().build_artifact(build_report(sample_record))

        assert content.startswith(b"PK")
        document = Document(BytesIO(content))
        assert document.tables
        assert len(document.inline_shapes) == 2
        assert document.core_properties.title == written.title

    @pytest.mark.asyncio
    async def test_failed_images_left_out(self):
        """Test images that cannot load are not embedded"""
        record = {"propertyImages": ["blob:http://localhost/abc"]}

        content, written = await WordReportExporter().build_artifact(build_report(record))

        assert len(Document(BytesIO(content)).inline_shapes) == 0
        assert len(written.pages) == 12
