"""
Content page assembly with PyMuPDF.

Normalized images are placed two per page on a fixed page size by embedding
the JPEG streams directly into the document, starting from the rendered cover.
No browser is involved, which keeps large batches (hundreds of images) fast.

Layout of one content page::

    +-----------------------+
    |        margin         |
    |   +---------------+   |
    |   |   image 2k    |   |  upper half
    |   +---------------+   |
    |          gap          |
    |   +---------------+   |
    |   |  image 2k + 1 |   |  lower half
    |   +---------------+   |
    |        margin         |
    +-----------------------+
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import pymupdf

from .exceptions import RenderError
from .models import NormalizedImage

logger = logging.getLogger(__name__)

IMAGES_PER_PAGE = 2


@dataclass(frozen=True)
class PageGeometry:
    """Page size and spacing in PDF points. Defaults to A4."""

    width: float = 595.0
    height: float = 842.0
    margin: float = 36.0
    gap: float = 20.0

    def __post_init__(self) -> None:
        if self.slot_width <= 0 or self.slot_height <= 0:
            raise ValueError("Page margins and gap leave no room for images")

    @property
    def slot_width(self) -> float:
        return self.width - 2 * self.margin

    @property
    def slot_height(self) -> float:
        return (self.height - 2 * self.margin - self.gap) / IMAGES_PER_PAGE


def fit_image(width: int, height: int, box_width: float, box_height: float) -> Tuple[float, float]:
    """
    Scale ``width`` x ``height`` to fit inside the box, keeping the aspect ratio.

    One pixel maps to one point at most: small images keep their size
    instead of being enlarged.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image size {width}x{height}")
    scale = min(box_width / width, box_height / height, 1.0)
    return width * scale, height * scale


def slot_rects(geometry: PageGeometry, images: Sequence[NormalizedImage]) -> List[pymupdf.Rect]:
    """Rectangles for the (at most two) images of one content page."""
    rects = []
    for slot, image in enumerate(images[:IMAGES_PER_PAGE]):
        fitted_width, fitted_height = fit_image(image.width, image.height, geometry.slot_width, geometry.slot_height)
        x0 = geometry.margin + (geometry.slot_width - fitted_width) / 2
        y0 = geometry.margin + slot * (geometry.slot_height + geometry.gap)
        rects.append(pymupdf.Rect(x0, y0, x0 + fitted_width, y0 + fitted_height))
    return rects


def content_page_count(image_count: int) -> int:
    return math.ceil(image_count / IMAGES_PER_PAGE)


class ContentAssembler:
    def __init__(self, geometry: PageGeometry | None = None) -> None:
        self.geometry = geometry or PageGeometry()

    def assemble(self, cover_pdf: bytes, images: Sequence[NormalizedImage]) -> bytes:
        """
        Append the content pages to the cover and return the final PDF.

        Raises:
            RenderError: if the cover is not a readable PDF or an image
                cannot be embedded
        """
        try:
            document = pymupdf.open(stream=cover_pdf, filetype="pdf")
        except (RuntimeError, ValueError) as exc:
            raise RenderError(f"Cover page is not a readable PDF: {exc}") from exc

        with document:
            if document.page_count == 0:
                raise RenderError("Cover document has no pages")

            for start in range(0, len(images), IMAGES_PER_PAGE):
                pair = images[start:start + IMAGES_PER_PAGE]
                page = document.new_page(width=self.geometry.width, height=self.geometry.height)
                for offset, (image, rect) in enumerate(zip(pair, slot_rects(self.geometry, pair))):
                    try:
                        page.insert_image(rect, stream=image.data, keep_proportion=True)
                    except (RuntimeError, ValueError) as exc:
                        raise RenderError(f"Failed to embed image {start + offset}: {exc}") from exc

            logger.info(
                f"Assembled {len(images)} images on {content_page_count(len(images))} content pages"
            )
            return document.tobytes(garbage=3, deflate=True)
