"""
PDF Exporter
Rasterizes a rendered report and slices the surface into A4 PDF pages
"""

import time
from dataclasses import dataclass
from io import BytesIO
from typing import List, Optional

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from valuedesk.core.config import settings
from valuedesk.core.exceptions import DocumentAssemblyError, DocumentGenerationError
from valuedesk.core.logging_config import logger
from valuedesk.modules.export.image_loader import ImageEmbedder, ImageReadinessGate
from valuedesk.modules.export.rasterizer import PageRasterizer, PillowRasterizer
from valuedesk.modules.report.document import ReportDocument, image_blocks


def plan_page_slices(content_height_mm: float, page_height_mm: float) -> List[List[float]]:
    """
    Vertical offsets at which the surface is drawn, grouped per physical page.

    The surface is drawn at ``position`` on the current page while the
    remaining height is >= 0; a new page starts only while content remains.
    Offsets are <= 0: the surface is shifted up by one page each step.

    >>> plan_page_slices(500, 297)
    [[0.0], [-297.0]]
    """
    if page_height_mm <= 0:
        raise ValueError("page height must be positive")

    pages: List[List[float]] = [[]]
    height_left = content_height_mm
    position = 0.0
    while height_left >= 0:
        pages[-1].append(position)
        height_left -= page_height_mm
        position -= page_height_mm
        if height_left > 0:
            pages.append([])
    return pages


@dataclass
class PDFArtifact:
    content: bytes
    page_count: int
    image_count: int = 0
    document: Optional[ReportDocument] = None


class PDFExporter:
    """
    Document -> PDF bytes.

    ``export`` embeds remote images first; ``preview`` skips that step and
    otherwise produces the same file.
    """

    def __init__(
        self,
        rasterizer: Optional[PageRasterizer] = None,
        gate: Optional[ImageReadinessGate] = None,
        embedder: Optional[ImageEmbedder] = None,
    ):
        self.rasterizer = rasterizer or PillowRasterizer()
        self.gate = gate or ImageReadinessGate()
        self.embedder = embedder or ImageEmbedder()
        self.page_width_mm = settings.PAGE_WIDTH_MM
        self.page_height_mm = settings.PAGE_HEIGHT_MM

    def assemble(self, surface: Image.Image) -> PDFArtifact:
        """Slice a rasterized surface into pages; returns content and page count only"""
        px_per_mm = surface.width / self.page_width_mm
        content_height_mm = surface.height / px_per_mm
        page_height_px = int(round(self.page_height_mm * px_per_mm))
        page_width_pt, page_height_pt = A4

        buffer = BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        pdf.setTitle("Valuation Report")

        slices = plan_page_slices(content_height_mm, self.page_height_mm)
        for offsets in slices:
            for offset in offsets:
                top = int(round(-offset * px_per_mm))
                if top >= surface.height:
                    continue
                bottom = min(top + page_height_px, surface.height)
                piece = surface.crop((0, top, surface.width, bottom))
                height_pt = page_height_pt * (bottom - top) / page_height_px
                pdf.drawImage(
                    ImageReader(piece), 0, page_height_pt - height_pt,
                    width=page_width_pt, height=height_pt,
                )
            pdf.showPage()
        pdf.save()

        return PDFArtifact(content=buffer.getvalue(), page_count=len(slices))

    async def build(self, document: ReportDocument, embed: bool = True) -> PDFArtifact:
        """
        Full pipeline: embed (optional) -> readiness gate -> rasterize -> assemble.

        Raises:
            DocumentGenerationError: on any failure; nothing is returned then
        """
        start = time.time()
        try:
            if embed:
                document = await self.embedder.embed_document(document)
            prepared = await self.gate.prepare(document)
            surface = self.rasterizer.render_surface(prepared.document, prepared.images)
            artifact = self.assemble(surface)
        except DocumentGenerationError:
            raise
        except Exception as e:
            logger.log_error_with_context(e, "PDFExporter", doc_type="pdf")
            raise DocumentAssemblyError(f"PDF export failed: {e}") from e

        artifact.document = prepared.document
        artifact.image_count = len(image_blocks(prepared.document))
        logger.log_export_event("pdf", "generated", pages=artifact.page_count,
                                logical_pages=len(prepared.document.pages))
        logger.log_performance("pdf_export", (time.time() - start) * 1000, threshold_ms=5000)
        return artifact

    async def export(self, document: ReportDocument) -> bytes:
        artifact = await self.build(document, embed=True)
        return artifact.content

    async def preview(self, document: ReportDocument) -> bytes:
        artifact = await self.build(document, embed=False)
        return artifact.content
