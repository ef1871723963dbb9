"""
Page rasterization.

The exporters only depend on the ``PageRasterizer`` protocol. The default
``PillowRasterizer`` paints every logical page onto one tall white surface,
A4-width, pages stacked top to bottom. A page whose content does not fit grows
taller, which is why the physical page count is computed from the surface
height and not from the number of logical pages.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Tuple

from PIL import Image, ImageDraw, ImageFont

from valuedesk.core.config import settings
from valuedesk.core.exceptions import RasterizationError
from valuedesk.core.logging_config import logger
from valuedesk.modules.report.document import (
    HeadingBlock,
    ImageBlock,
    ParagraphBlock,
    ReportDocument,
    ReportPage,
    SignatureBlock,
    TableBlock,
)


MM_PER_INCH = 25.4

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)
GRID = (90, 90, 90)
HEADER_FILL = (235, 235, 235)


def mm_to_px(mm: float, dpi: int) -> int:
    return int(round(mm / MM_PER_INCH * dpi))


class PageRasterizer(Protocol):
    """Anything that can turn a document into one tall raster surface"""

    def render_surface(self, document: ReportDocument, images: Dict[str, Image.Image]) -> Image.Image:
        ...


@dataclass
class _Op:
    kind: str  # "text" | "rect" | "image"
    box: Tuple[int, int, int, int]
    text: str = ""
    font: Optional[ImageFont.ImageFont] = None
    fill: Optional[Tuple[int, int, int]] = None
    image: Optional[Image.Image] = None


class PillowRasterizer:
    """Off-screen renderer built on Pillow's ImageDraw"""

    def __init__(
        self,
        dpi: Optional[int] = None,
        page_width_mm: Optional[float] = None,
        page_height_mm: Optional[float] = None,
        margin_mm: float = 12.0,
    ):
        self.dpi = dpi or settings.RASTER_DPI
        self.page_width = mm_to_px(page_width_mm or settings.PAGE_WIDTH_MM, self.dpi)
        self.page_height = mm_to_px(page_height_mm or settings.PAGE_HEIGHT_MM, self.dpi)
        self.margin = mm_to_px(margin_mm, self.dpi)
        self.content_width = self.page_width - 2 * self.margin

        scale = self.dpi / 96
        self.fonts = {
            "body": self._font(11 * scale),
            "small": self._font(10 * scale),
            "h1": self._font(17 * scale),
            "h2": self._font(14 * scale),
            "h3": self._font(12 * scale),
        }
        self.cell_padding = max(2, int(4 * scale))
        self.line_gap = max(1, int(3 * scale))

        self._measure = ImageDraw.Draw(Image.new("RGB", (1, 1), WHITE))

    @staticmethod
    def _font(size: float) -> ImageFont.ImageFont:
        return ImageFont.load_default(size=max(8, int(size)))

    # Measuring

    def _line_height(self, font) -> int:
        left, top, right, bottom = self._measure.textbbox((0, 0), "Ag", font=font)
        return (bottom - top) + self.line_gap

    def wrap(self, text: str, font, width: int) -> List[str]:
        """Greedy word wrap; explicit newlines always break"""
        lines = []
        for paragraph in str(text).split("\n"):
            words = paragraph.split(" ")
            current = ""
            for word in words:
                candidate = f"{current} {word}" if current else word
                if self._measure.textlength(candidate, font=font) <= width or not current:
                    current = candidate
                else:
                    lines.append(current)
                    current = word
            lines.append(current)
        return lines

    # Layout

    def _text_ops(self, text: str, font, x: int, y: int, width: int, align: str = "left") -> Tuple[List[_Op], int]:
        ops = []
        line_height = self._line_height(font)
        for line in self.wrap(text, font, width):
            offset = 0
            if align == "center":
                offset = max(0, int((width - self._measure.textlength(line, font=font)) / 2))
            ops.append(_Op("text", (x + offset, y, x + width, y + line_height), text=line, font=font))
            y += line_height
        return ops, y

    def _table_ops(self, block: TableBlock, y: int) -> Tuple[List[_Op], int]:
        columns = block.column_count
        widths = block.widths or tuple([1.0 / columns] * columns)
        total = sum(widths)
        col_px = [int(self.content_width * w / total) for w in widths]
        font = self.fonts["small"]
        line_height = self._line_height(font)
        pad = self.cell_padding

        rows = []
        if block.header:
            rows.append((tuple(block.header), True))
        for row in block.rows:
            cells = (row.item, row.label) + tuple(row.values)
            cells = cells + ("",) * (columns - len(cells))
            rows.append((cells[:columns], row.emphasis))

        ops = []
        for cells, shaded in rows:
            wrapped = [self.wrap(cell, font, max(1, w - 2 * pad)) for cell, w in zip(cells, col_px)]
            height = max(len(lines) for lines in wrapped) * line_height + 2 * pad
            x = self.margin
            for lines, w in zip(wrapped, col_px):
                ops.append(_Op("rect", (x, y, x + w, y + height), fill=HEADER_FILL if shaded else None))
                ty = y + pad
                for line in lines:
                    ops.append(_Op("text", (x + pad, ty, x + w - pad, ty + line_height), text=line, font=font))
                    ty += line_height
                x += w
            y += height
        return ops, y

    def _image_ops(self, block: ImageBlock, image: Image.Image, y: int) -> Tuple[List[_Op], int]:
        ops, y = self._text_ops(block.label, self.fonts["h3"], self.margin, y, self.content_width, "center")
        max_height = int(self.page_height * 0.7)
        ratio = min(self.content_width / image.width, max_height / image.height)
        width, height = max(1, int(image.width * ratio)), max(1, int(image.height * ratio))
        x = self.margin + (self.content_width - width) // 2
        y += self.cell_padding
        ops.append(_Op("image", (x, y, x + width, y + height), image=image))
        return ops, y + height

    def layout_page(self, page: ReportPage, images: Dict[str, Image.Image]) -> Tuple[List[_Op], int]:
        """Drawing ops relative to the page top, plus the page height in pixels"""
        ops: List[_Op] = []
        y = self.margin
        spacing = self.cell_padding * 2
        for block in page.blocks:
            if isinstance(block, HeadingBlock):
                font = self.fonts.get(f"h{block.level}", self.fonts["h3"])
                block_ops, y = self._text_ops(block.text, font, self.margin, y, self.content_width, block.align)
            elif isinstance(block, ParagraphBlock):
                block_ops, y = self._text_ops(block.text, self.fonts["body"], self.margin, y,
                                              self.content_width, block.align)
            elif isinstance(block, TableBlock):
                block_ops, y = self._table_ops(block, y)
            elif isinstance(block, SignatureBlock):
                half = self.content_width // 2
                start = y + spacing
                left_ops, left_end = self._text_ops("\n".join(block.left_lines), self.fonts["body"],
                                                    self.margin, start, half)
                right_ops, right_end = self._text_ops("\n".join(block.lines), self.fonts["body"],
                                                      self.margin + half, start, half, "center")
                block_ops = (left_ops if block.left_lines else []) + right_ops
                y = max(left_end, right_end)
            elif isinstance(block, ImageBlock):
                image = images.get(block.source)
                if image is None:
                    continue
                block_ops, y = self._image_ops(block, image, y)
            else:
                continue
            ops.extend(block_ops)
            y += spacing
        return ops, max(self.page_height, y + self.margin)

    # Painting

    def _paint(self, surface: Image.Image, ops: List[_Op], top: int) -> None:
        draw = ImageDraw.Draw(surface)
        for op in ops:
            x0, y0, x1, y1 = op.box
            if op.kind == "rect":
                draw.rectangle((x0, y0 + top, x1, y1 + top), fill=op.fill, outline=GRID)
            elif op.kind == "text":
                draw.text((x0, y0 + top), op.text, fill=BLACK, font=op.font)
            elif op.kind == "image":
                resized = op.image.resize((x1 - x0, y1 - y0))
                surface.paste(resized, (x0, y0 + top))

    def render_surface(self, document: ReportDocument, images: Optional[Dict[str, Image.Image]] = None) -> Image.Image:
        """
        Paint the whole document onto one surface.

        Raises:
            RasterizationError: if the surface cannot be built
        """
        images = images or {}
        try:
            layouts = [self.layout_page(page, images) for page in document.pages]
            total_height = sum(height for _, height in layouts) or self.page_height
            surface = Image.new("RGB", (self.page_width, total_height), WHITE)
        except (ValueError, MemoryError, OSError) as e:
            logger.log_error_with_context(e, "Rasterizer")
            raise RasterizationError(f"Could not build rendering surface: {e}")

        top = 0
        for ops, height in layouts:
            self._paint(surface, ops, top)
            top += height

        logger.debug(
            f"[Rasterizer] Painted {len(document.pages)} page(s) onto "
            f"{surface.width}x{surface.height}px surface"
        )
        return surface
