"""
Image normalization.

Every input image is decoded, shrunk to fit a square bounding box and
re-encoded as JPEG at a fixed quality before it is embedded in the report.
This keeps the generated PDF small and makes the page layout independent
of the uploaded formats.
"""

from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

from .exceptions import DecodeError
from .models import NormalizedImage

DEFAULT_MAX_DIMENSION = 1024
DEFAULT_QUALITY = 75


class ImageNormalizer:
    def __init__(self, max_dimension: int = DEFAULT_MAX_DIMENSION, quality: int = DEFAULT_QUALITY) -> None:
        if max_dimension <= 0:
            raise ValueError("max_dimension must be positive")
        if not 1 <= quality <= 95:
            raise ValueError("quality must be within 1..95")
        self.max_dimension = max_dimension
        self.quality = quality

    def normalize(self, data: bytes) -> NormalizedImage:
        """
        Downsample and re-encode one image.

        The image is fitted inside ``max_dimension`` x ``max_dimension``
        with its aspect ratio preserved and is never upscaled.

        Raises:
            DecodeError: if ``data`` is not a decodable image or cannot be re-encoded
        """
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                image.thumbnail((self.max_dimension, self.max_dimension), Image.Resampling.LANCZOS)
                rgb = _to_rgb(image)
            buffer = io.BytesIO()
            rgb.save(buffer, format="JPEG", quality=self.quality, optimize=True)
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
            raise DecodeError(f"Unreadable image: {exc}") from exc

        return NormalizedImage(data=buffer.getvalue(), width=rgb.width, height=rgb.height)


def _to_rgb(image: Image.Image) -> Image.Image:
    # JPEG has no alpha channel; transparent areas become white
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image.copy()
