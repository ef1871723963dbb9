"""
Document export: image loading, rasterization, PDF and Word output
"""

from valuedesk.modules.export.image_loader import ImageEmbedder, ImageReadinessGate, PreparedDocument
from valuedesk.modules.export.rasterizer import PageRasterizer, PillowRasterizer
from valuedesk.modules.export.pdf_exporter import PDFExporter, PDFArtifact, plan_page_slices
from valuedesk.modules.export.docx_exporter import WordReportExporter
from valuedesk.modules.export.export_service import ExportResult, ReportExportService, build_filename

__all__ = [
    "ImageEmbedder",
    "ImageReadinessGate",
    "PreparedDocument",
    "PageRasterizer",
    "PillowRasterizer",
    "PDFExporter",
    "PDFArtifact",
    "plan_page_slices",
    "WordReportExporter",
    "ExportResult",
    "ReportExportService",
    "build_filename",
]
