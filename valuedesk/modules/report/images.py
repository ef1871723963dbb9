"""
Image reference helpers for the report gallery
"""

from dataclasses import dataclass
from typing import Any, List, Mapping, Sequence

import httpx


# Keys an uploaded-image object may carry its reference under, in lookup order
IMAGE_URL_KEYS = ("url", "preview", "data", "src", "secure_url")

ACCEPTED_PREFIXES = ("data:", "blob:", "http://", "https://")


def extract_image_url(entry: Any) -> str:
    """
    Pull a usable reference out of an image entry.

    Entries are either bare strings or objects with the reference under one of
    IMAGE_URL_KEYS. Returns '' when nothing acceptable is found.
    """
    if not entry:
        return ""

    url = ""
    if isinstance(entry, str):
        url = entry.strip()
    elif isinstance(entry, Mapping):
        for key in IMAGE_URL_KEYS:
            candidate = entry.get(key)
            if isinstance(candidate, str) and candidate.strip():
                url = candidate.strip()
                break

    if not url:
        return ""
    if url.startswith(ACCEPTED_PREFIXES):
        return url
    return ""


def is_valid_image_source(url: str) -> bool:
    """data: and blob: references pass; anything else must be an absolute URL"""
    if not url:
        return False
    if url.startswith(("data:", "blob:")):
        return True
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, ValueError, TypeError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.host) and " " not in url


def get_image_source(entry: Any) -> str:
    """Validated source for an entry, or '' when it cannot be shown"""
    url = extract_image_url(entry)
    return url if is_valid_image_source(url) else ""


@dataclass(frozen=True)
class GalleryImage:
    label: str
    source: str
    kind: str  # "property" | "location"


def collect_gallery(property_images: Sequence[Any], location_images: Sequence[Any]) -> List[GalleryImage]:
    """
    Valid gallery entries, property images first.

    Labels keep the position in the original list, so dropping an invalid
    entry leaves a gap in the numbering rather than renumbering.
    """
    gallery = []
    for kind, title, images in (
        ("property", "Property Image", property_images or []),
        ("location", "Location Image", location_images or []),
    ):
        for index, entry in enumerate(images, start=1):
            source = get_image_source(entry)
            if source:
                gallery.append(GalleryImage(label=f"{title} {index}", source=source, kind=kind))
    return gallery
