"""
Report Export Service

Runs the per-record export pipeline strictly in sequence:

    embed images -> normalize -> derive -> render -> image gate -> rasterize/assemble -> save

A failure anywhere aborts the export; the artifact is written to a temporary
file and moved into place only once complete.
"""

import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import aiofiles
import aiofiles.os

from valuedesk.core.config import settings
from valuedesk.core.exceptions import StorageError
from valuedesk.core.logging_config import logger, set_record_id
from valuedesk.modules.export.docx_exporter import WordReportExporter
from valuedesk.modules.export.image_loader import ImageEmbedder
from valuedesk.modules.export.pdf_exporter import PDFExporter
from valuedesk.modules.report.calculator import derive
from valuedesk.modules.report.document import ReportDocument, image_blocks, page_count
from valuedesk.modules.report.normalizer import normalize
from valuedesk.modules.report.renderer import render


@dataclass
class ExportResult:
    filename: str
    path: Optional[Path]
    content: bytes
    page_count: int
    image_count: int = 0


def _clean_name_part(value: Any) -> str:
    text = str(value).strip() if value is not None else ""
    if text == "NA":
        return ""
    return text.replace("/", "_").replace("\\", "_")


def build_filename(record: Mapping, extension: str = "pdf", now: Optional[float] = None) -> str:
    """valuation_<clientName | uniqueId | millisecond timestamp>.<extension>"""
    stem = _clean_name_part(record.get("clientName")) or _clean_name_part(record.get("uniqueId"))
    if not stem:
        stem = str(int((now if now is not None else time.time()) * 1000))
    return f"valuation_{stem}.{extension}"


class ReportExportService:
    """Export a raw valuation record as PDF or DOCX"""

    def __init__(
        self,
        pdf_exporter: Optional[PDFExporter] = None,
        word_exporter: Optional[WordReportExporter] = None,
        embedder: Optional[ImageEmbedder] = None,
        export_dir: Optional[Path] = None,
    ):
        self.embedder = embedder or ImageEmbedder()
        self.pdf_exporter = pdf_exporter or PDFExporter(embedder=self.embedder)
        self.word_exporter = word_exporter or WordReportExporter()
        self.export_dir = Path(export_dir or settings.EXPORT_DIR)

    def render_record(self, record: Mapping) -> ReportDocument:
        """normalize -> derive -> render"""
        return render(derive(normalize(record)))

    async def _save(self, filename: str, content: bytes) -> Path:
        target = self.export_dir / filename
        temp_path = self.export_dir / f".{filename}.{uuid.uuid4().hex}.part"
        try:
            self.export_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(content)
            await aiofiles.os.replace(temp_path, target)
        except OSError as e:
            logger.error(f"[ExportService] Failed to write {target}: {e}")
            if temp_path.exists():
                await aiofiles.os.remove(temp_path)
            raise StorageError(f"Could not write export file: {e}", path=str(target))
        return target

    async def export_pdf(self, record: Mapping, save: bool = True) -> ExportResult:
        """Embed remote images, render, rasterize and (optionally) save a PDF"""
        set_record_id(str(record.get("uniqueId", "")))
        logger.log_export_event("pdf", "started")

        embedded = await self.embedder.embed_remote_images(record)
        document = self.render_record(embedded)
        artifact = await self.pdf_exporter.build(document, embed=False)

        filename = build_filename(record, "pdf")
        path = await self._save(filename, artifact.content) if save else None
        logger.info(
            f"[ExportService] PDF ready: {filename} ({artifact.page_count} pages, "
            f"{page_count(artifact.document)} logical pages)"
        )
        return ExportResult(
            filename=filename,
            path=path,
            content=artifact.content,
            page_count=artifact.page_count,
            image_count=artifact.image_count,
        )

    async def preview_pdf(self, record: Mapping) -> ExportResult:
        """Same PDF without the remote-image embedding step; never saved"""
        set_record_id(str(record.get("uniqueId", "")))
        document = self.render_record(record)
        artifact = await self.pdf_exporter.build(document, embed=False)
        return ExportResult(
            filename=build_filename(record, "pdf"),
            path=None,
            content=artifact.content,
            page_count=artifact.page_count,
            image_count=artifact.image_count,
        )

    async def export_docx(self, record: Mapping, save: bool = True) -> ExportResult:
        """Editable Word export of the same report"""
        set_record_id(str(record.get("uniqueId", "")))
        logger.log_export_event("docx", "started")

        embedded = await self.embedder.embed_remote_images(record)
        document = self.render_record(embedded)
        content, written = await self.word_exporter.build_artifact(document)

        filename = build_filename(record, "docx")
        path = await self._save(filename, content) if save else None
        logger.log_export_event("docx", "generated", pages=page_count(written))
        return ExportResult(
            filename=filename,
            path=path,
            content=content,
            page_count=page_count(written),
            image_count=len(image_blocks(written)),
        )
