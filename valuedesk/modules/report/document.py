"""
Rendered document model.

Plain frozen dataclasses: the renderer builds them, the exporters consume
them. Nothing in here knows about pixels or file formats.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple, Union


PAGE_KIND_CONTENT = "content"
PAGE_KIND_IMAGE = "image"


@dataclass(frozen=True)
class HeadingBlock:
    text: str
    level: int = 1
    align: str = "left"


@dataclass(frozen=True)
class ParagraphBlock:
    text: str
    bold: bool = False
    align: str = "left"


@dataclass(frozen=True)
class TableRow:
    """One labelled row; ``values`` holds one entry per value column"""
    item: str
    label: str
    values: Tuple[str, ...] = ()
    emphasis: bool = False


@dataclass(frozen=True)
class TableBlock:
    rows: Tuple[TableRow, ...]
    header: Optional[Tuple[str, ...]] = None
    widths: Optional[Tuple[float, ...]] = None  # relative column widths

    @property
    def column_count(self) -> int:
        if self.header:
            return len(self.header)
        return 2 + max((len(row.values) for row in self.rows), default=1)


@dataclass(frozen=True)
class SignatureBlock:
    lines: Tuple[str, ...]
    left_lines: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ImageBlock:
    label: str
    source: str
    kind: str = "property"


Block = Union[HeadingBlock, ParagraphBlock, TableBlock, SignatureBlock, ImageBlock]


@dataclass(frozen=True)
class ReportPage:
    number: int
    blocks: Tuple[Block, ...]
    kind: str = PAGE_KIND_CONTENT

    def without_blocks(self, blocks_to_drop: List[Block]) -> "ReportPage":
        kept = tuple(b for b in self.blocks if not any(b is d for d in blocks_to_drop))
        return replace(self, blocks=kept)


@dataclass(frozen=True)
class ReportDocument:
    title: str
    pages: Tuple[ReportPage, ...]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_pages(self, pages: List[ReportPage]) -> "ReportDocument":
        """Copy with ``pages`` renumbered from 1"""
        renumbered = tuple(replace(page, number=i) for i, page in enumerate(pages, start=1))
        return replace(self, pages=renumbered)


def page_count(document: ReportDocument) -> int:
    return len(document.pages)


def image_blocks(document: ReportDocument) -> List[ImageBlock]:
    """Every image block in page order"""
    return [
        block
        for page in document.pages
        for block in page.blocks
        if isinstance(block, ImageBlock)
    ]
