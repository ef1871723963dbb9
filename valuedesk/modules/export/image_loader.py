"""
Image loading for export.

ImageEmbedder turns remote image references into self-contained data URIs.
ImageReadinessGate loads every image block under a timeout and strips the
ones that fail, so broken images never reach the rasterizer.
"""

import asyncio
import base64
import binascii
import copy
import io
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

import httpx
from PIL import Image, UnidentifiedImageError

from valuedesk.core.config import settings
from valuedesk.core.logging_config import logger
from valuedesk.modules.report.document import (
    PAGE_KIND_IMAGE,
    HeadingBlock,
    ImageBlock,
    ReportDocument,
)
from valuedesk.modules.report.field_schema import IMAGE_COLLECTIONS
from valuedesk.modules.report.images import IMAGE_URL_KEYS, extract_image_url


def _is_remote(url: str) -> bool:
    return url.startswith(("http://", "https://"))


def decode_data_uri(uri: str) -> bytes:
    """Payload bytes of a base64 data URI"""
    header, _, payload = uri.partition(",")
    if not header.startswith("data:") or not payload:
        raise ValueError("Malformed data URI")
    if ";base64" in header:
        return base64.b64decode(payload, validate=True)
    return payload.encode("utf-8")


def to_data_uri(content: bytes, content_type: str) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


class ImageEmbedder:
    """
    Fetch remote images and embed them as data URIs.

    A failed fetch keeps the original reference; embedding never raises for a
    single image.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self._client = client
        self.timeout = timeout if timeout is not None else settings.REMOTE_IMAGE_TIMEOUT

    async def fetch_as_data_uri(self, client: httpx.AsyncClient, url: str) -> str:
        try:
            response = await client.get(url, timeout=self.timeout)
            response.raise_for_status()
            content_type = response.headers.get("content-type", "image/jpeg").split(";")[0]
            return to_data_uri(response.content, content_type)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"[ImageEmbedder] Could not embed {url}: {e}")
            return url

    async def _embed_entry(self, client: httpx.AsyncClient, entry: Any) -> Any:
        url = extract_image_url(entry)
        if not _is_remote(url):
            return entry
        embedded = await self.fetch_as_data_uri(client, url)
        if embedded == url:
            return entry
        if isinstance(entry, Mapping):
            updated = dict(entry)
            for key in IMAGE_URL_KEYS:
                if key in updated:
                    updated[key] = embedded
                    break
            return updated
        return embedded

    async def _with_client(self, work):
        if self._client is not None:
            return await work(self._client)
        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await work(client)

    async def embed_remote_images(self, record: Mapping) -> Dict[str, Any]:
        """Copy of ``record`` with remote gallery images replaced by data URIs"""
        embedded = copy.deepcopy(dict(record))

        async def work(client):
            for key in IMAGE_COLLECTIONS:
                images = embedded.get(key)
                if isinstance(images, list) and images:
                    embedded[key] = list(await asyncio.gather(
                        *(self._embed_entry(client, entry) for entry in images)
                    ))

        await self._with_client(work)
        return embedded

    async def embed_document(self, document: ReportDocument) -> ReportDocument:
        """Copy of ``document`` with remote image block sources embedded"""
        remote = {
            block.source
            for page in document.pages
            for block in page.blocks
            if isinstance(block, ImageBlock) and _is_remote(block.source)
        }
        if not remote:
            return document

        async def work(client):
            sources = sorted(remote)
            results = await asyncio.gather(*(self.fetch_as_data_uri(client, s) for s in sources))
            return dict(zip(sources, results))

        mapping = await self._with_client(work)
        pages = [
            replace(page, blocks=tuple(
                replace(block, source=mapping.get(block.source, block.source))
                if isinstance(block, ImageBlock) else block
                for block in page.blocks
            ))
            for page in document.pages
        ]
        logger.info(f"[ImageEmbedder] Embedded {len(remote)} remote image(s)")
        return document.with_pages(pages)


@dataclass
class PreparedDocument:
    """A document whose every image block has a decoded image ready"""
    document: ReportDocument
    images: Dict[str, Image.Image] = field(default_factory=dict)
    dropped: List[str] = field(default_factory=list)


class ImageReadinessGate:
    """Load every image block under a bounded wait; drop the ones that fail"""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self._client = client
        self.timeout = timeout if timeout is not None else settings.IMAGE_LOAD_TIMEOUT

    async def _read_bytes(self, source: str) -> bytes:
        if source.startswith("data:"):
            return decode_data_uri(source)
        if _is_remote(source):
            if self._client is not None:
                response = await self._client.get(source)
            else:
                async with httpx.AsyncClient(follow_redirects=True) as client:
                    response = await client.get(source)
            response.raise_for_status()
            return response.content
        # blob: references only exist inside the browser session that made them
        raise ValueError(f"Unloadable image reference: {source[:40]}")

    @staticmethod
    def _decode(content: bytes) -> Image.Image:
        with Image.open(io.BytesIO(content)) as candidate:
            candidate.verify()
        image = Image.open(io.BytesIO(content))
        image.load()
        return image.convert("RGB")

    async def load(self, source: str) -> Image.Image:
        content = await self._read_bytes(source)
        return await asyncio.to_thread(self._decode, content)

    async def _try_load(self, source: str) -> Optional[Image.Image]:
        try:
            return await asyncio.wait_for(self.load(source), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[ImageGate] Timed out loading image after {self.timeout}s")
        except (ValueError, binascii.Error, httpx.HTTPError, httpx.InvalidURL,
                UnidentifiedImageError, OSError) as e:
            logger.warning(f"[ImageGate] Dropping image that failed to load: {e}")
        return None

    async def prepare(self, document: ReportDocument) -> PreparedDocument:
        """
        Load all images and rebuild the document without the failed ones.

        Image pages left without an image are dropped; the gallery heading
        moves to the first surviving image page.
        """
        sources = []
        for page in document.pages:
            for block in page.blocks:
                if isinstance(block, ImageBlock) and block.source not in sources:
                    sources.append(block.source)

        loaded = await asyncio.gather(*(self._try_load(s) for s in sources))
        images = {s: img for s, img in zip(sources, loaded) if img is not None}
        dropped = [s for s, img in zip(sources, loaded) if img is None]

        pages = []
        gallery_heading: Optional[HeadingBlock] = None
        for page in document.pages:
            if page.kind != PAGE_KIND_IMAGE:
                pages.append(page.without_blocks(
                    [b for b in page.blocks if isinstance(b, ImageBlock) and b.source not in images]
                ))
                continue
            for block in page.blocks:
                if isinstance(block, HeadingBlock) and gallery_heading is None:
                    gallery_heading = block
            kept = tuple(b for b in page.blocks if isinstance(b, ImageBlock) and b.source in images)
            if kept:
                pages.append(replace(page, blocks=kept))

        first_image_page = next((i for i, p in enumerate(pages) if p.kind == PAGE_KIND_IMAGE), None)
        if gallery_heading is not None and first_image_page is not None:
            page = pages[first_image_page]
            pages[first_image_page] = replace(page, blocks=(gallery_heading,) + page.blocks)

        if dropped:
            logger.info(f"[ImageGate] Removed {len(dropped)} image block(s) that failed to load")
        return PreparedDocument(document=document.with_pages(pages), images=images, dropped=dropped)
