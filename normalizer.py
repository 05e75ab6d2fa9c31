"""Turn uploaded documents into bounded payloads for the extraction backend."""

from __future__ import annotations

import io
import logging

from PIL import Image, ImageOps

from models import NormalizedPayload, SourceDocument

# 1536px on the long edge keeps printed text legible for OCR.
MAX_IMAGE_DIMENSION = 1536
IMAGE_QUALITY = 80
OUTPUT_MEDIA_TYPE = "image/jpeg"

LOGGER = logging.getLogger(__name__)


def normalize(doc: SourceDocument) -> NormalizedPayload:
    """Compress raster images; pass PDFs, text and undecodable images through."""
    if not doc.media_type.startswith("image/"):
        return NormalizedPayload(data=doc.data, media_type=doc.media_type)

    try:
        payload = compress_image(doc.data)
    except Exception as exc:
        LOGGER.warning(
            "Image compression failed for %s, falling back to original file: %s",
            doc.filename,
            exc,
        )
        return NormalizedPayload(data=doc.data, media_type=doc.media_type)

    LOGGER.debug(
        "Compressed %s from %s to %s bytes",
        doc.filename,
        len(doc.data),
        len(payload.data),
    )
    return payload


def scaled_dimensions(width: int, height: int, max_size: int = MAX_IMAGE_DIMENSION) -> tuple[int, int]:
    """Shrink (width, height) so the longer edge equals max_size, keeping aspect ratio."""
    if max(width, height) <= max_size:
        return width, height
    if width >= height:
        return max_size, max(1, round(height * max_size / width))
    return max(1, round(width * max_size / height)), max_size


def compress_image(data: bytes) -> NormalizedPayload:
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        image = ImageOps.exif_transpose(image)
        size = scaled_dimensions(*image.size)
        if size != image.size:
            image = image.resize(size, Image.Resampling.LANCZOS)
        image = _flatten_to_rgb(image)

        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=IMAGE_QUALITY, optimize=True)

    return NormalizedPayload(data=buffer.getvalue(), media_type=OUTPUT_MEDIA_TYPE)


def _flatten_to_rgb(image: Image.Image) -> Image.Image:
    """JPEG has no alpha channel; composite transparent pixels onto white."""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image
