"""
WORD REPORT EXPORTER
====================
Editable .docx version of the valuation report.

Same page sequence as the PDF: one Word page per logical report page, A4
layout, page numbers in the footer, gallery images embedded.
"""

import time
from io import BytesIO
from typing import Dict, Optional, Tuple

from docx import Document
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_BREAK
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Cm, Pt, RGBColor
from PIL import Image

from valuedesk.core.config import settings
from valuedesk.core.exceptions import DocumentAssemblyError, DocumentGenerationError
from valuedesk.core.logging_config import logger
from valuedesk.modules.export.image_loader import ImageReadinessGate
from valuedesk.modules.report.document import (
    HeadingBlock,
    ImageBlock,
    ParagraphBlock,
    ReportDocument,
    SignatureBlock,
    TableBlock,
)


ALIGNMENTS = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
}


class WordReportExporter:
    """
    Build a .docx from a ReportDocument.

    Headings, paragraphs and tables stay editable text; images are embedded
    as pictures scaled to the printable width.
    """

    PRIMARY_COLOR = RGBColor(0, 51, 102)  # Dark blue
    TEXT_COLOR = RGBColor(0, 0, 0)

    PRINTABLE_WIDTH_CM = 17.0

    def __init__(self, gate: Optional[ImageReadinessGate] = None):
        self.gate = gate or ImageReadinessGate()
        self.document = None

    def _setup_document_properties(self, report: ReportDocument):
        core_props = self.document.core_properties
        core_props.title = report.title
        core_props.author = settings.VALUER_NAME
        core_props.subject = str(report.metadata.get("clientName", ""))
        core_props.keywords = "valuation, report, flat"

    def _setup_page_layout(self):
        """A4 portrait, 2 cm margins, page numbers in the footer"""
        section = self.document.sections[0]

        section.page_width = Cm(21)
        section.page_height = Cm(29.7)

        section.top_margin = Cm(2)
        section.bottom_margin = Cm(2)
        section.left_margin = Cm(2)
        section.right_margin = Cm(2)

        section.header_distance = Cm(1.0)
        section.footer_distance = Cm(1.0)

        self._add_page_numbers(section)

    def _add_field(self, paragraph, instruction: str):
        run = paragraph.add_run()
        begin = OxmlElement('w:fldChar')
        begin.set(qn('w:fldCharType'), 'begin')
        run._r.append(begin)

        instr_text = OxmlElement('w:instrText')
        instr_text.set(qn('xml:space'), 'preserve')
        instr_text.text = instruction
        run._r.append(instr_text)

        separate = OxmlElement('w:fldChar')
        separate.set(qn('w:fldCharType'), 'separate')
        run._r.append(separate)

        placeholder = paragraph.add_run("1")
        placeholder.font.size = Pt(9)

        end_run = paragraph.add_run()
        end = OxmlElement('w:fldChar')
        end.set(qn('w:fldCharType'), 'end')
        end_run._r.append(end)

    def _add_page_numbers(self, section):
        """Page X of Y, centred"""
        footer = section.footer
        footer.is_linked_to_previous = False

        paragraph = footer.paragraphs[0] if footer.paragraphs else footer.add_paragraph()
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER

        label = paragraph.add_run("Page ")
        label.font.size = Pt(9)
        self._add_field(paragraph, ' PAGE ')
        of_run = paragraph.add_run(" of ")
        of_run.font.size = Pt(9)
        self._add_field(paragraph, ' NUMPAGES ')

    # Blocks

    def _add_heading(self, block: HeadingBlock):
        paragraph = self.document.add_paragraph()
        paragraph.alignment = ALIGNMENTS.get(block.align, WD_ALIGN_PARAGRAPH.LEFT)
        run = paragraph.add_run(block.text)
        run.bold = True
        run.font.size = Pt({1: 14, 2: 12}.get(block.level, 11))
        run.font.color.rgb = self.PRIMARY_COLOR if block.level == 1 else self.TEXT_COLOR

    def _add_paragraph(self, block: ParagraphBlock):
        paragraph = self.document.add_paragraph()
        paragraph.alignment = ALIGNMENTS.get(block.align, WD_ALIGN_PARAGRAPH.LEFT)
        run = paragraph.add_run(block.text)
        run.bold = block.bold
        run.font.size = Pt(10)

    def _add_table(self, block: TableBlock):
        columns = block.column_count
        table = self.document.add_table(rows=0, cols=columns)
        table.style = 'Table Grid'
        table.alignment = WD_TABLE_ALIGNMENT.CENTER

        def fill(cells, texts, bold=False):
            for cell, text in zip(cells, texts):
                cell.text = ""
                run = cell.paragraphs[0].add_run(str(text))
                run.bold = bold
                run.font.size = Pt(8.5)

        if block.header:
            fill(table.add_row().cells, block.header, bold=True)
        for row in block.rows:
            texts = (row.item, row.label) + tuple(row.values)
            texts = (texts + ("",) * columns)[:columns]
            fill(table.add_row().cells, texts, bold=row.emphasis)

        if block.widths:
            total = sum(block.widths)
            for column, width in zip(table.columns, block.widths):
                for cell in column.cells:
                    cell.width = Cm(self.PRINTABLE_WIDTH_CM * width / total)

    def _add_signature(self, block: SignatureBlock):
        for line in block.left_lines:
            self.document.add_paragraph(line)
        for index, line in enumerate(block.lines):
            paragraph = self.document.add_paragraph()
            paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT
            run = paragraph.add_run(line)
            run.bold = index == 0

    def _add_image(self, block: ImageBlock, image: Image.Image):
        caption = self.document.add_paragraph()
        caption.alignment = WD_ALIGN_PARAGRAPH.CENTER
        caption.add_run(block.label).bold = True

        stream = BytesIO()
        image.save(stream, format="PNG")
        stream.seek(0)

        # Keep portrait photos inside the page height
        width_cm = self.PRINTABLE_WIDTH_CM
        if image.height > image.width:
            width_cm = min(width_cm, 20.0 * image.width / image.height)
        self.document.add_picture(stream, width=Cm(width_cm))
        self.document.paragraphs[-1].alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _page_break(self):
        self.document.add_paragraph().add_run().add_break(WD_BREAK.PAGE)

    def build(self, report: ReportDocument, images: Dict[str, Image.Image]) -> bytes:
        """Write all pages; images must already be loaded"""
        self.document = Document()
        self._setup_document_properties(report)
        self._setup_page_layout()

        for index, page in enumerate(report.pages):
            for block in page.blocks:
                if isinstance(block, HeadingBlock):
                    self._add_heading(block)
                elif isinstance(block, ParagraphBlock):
                    self._add_paragraph(block)
                elif isinstance(block, TableBlock):
                    self._add_table(block)
                elif isinstance(block, SignatureBlock):
                    self._add_signature(block)
                elif isinstance(block, ImageBlock) and block.source in images:
                    self._add_image(block, images[block.source])
            if index < len(report.pages) - 1:
                self._page_break()

        buffer = BytesIO()
        self.document.save(buffer)
        return buffer.getvalue()

    async def build_artifact(self, report: ReportDocument) -> Tuple[bytes, ReportDocument]:
        """
        Load images, then build the .docx. Returns the bytes and the document
        as written, without the image blocks that failed to load.

        Raises:
            DocumentGenerationError: when the document cannot be built
        """
        start = time.time()
        try:
            prepared = await self.gate.prepare(report)
            content = self.build(prepared.document, prepared.images)
        except DocumentGenerationError:
            raise
        except Exception as e:
            logger.log_error_with_context(e, "WordExporter", doc_type="docx")
            raise DocumentAssemblyError(f"Word export failed: {e}", doc_type="docx") from e

        logger.info(f"[WordExporter] Built document with {len(prepared.document.pages)} pages")
        logger.log_performance("docx_export", (time.time() - start) * 1000, threshold_ms=5000)
        return content, prepared.document

    async def export(self, report: ReportDocument) -> bytes:
        content, _ = await self.build_artifact(report)
        return content
