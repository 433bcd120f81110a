"""
Deterministic image transforms applied before OCR.

Order is fixed: rotate → grayscale → normalize → sharpen → denoise → JPEG.
Each stage can be switched off through PreprocessOptions. Failures raise
PreprocessingError; OCR callers catch it and use the untouched image.
"""

from __future__ import annotations

import io
import logging

from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from .exceptions import PreprocessingError
from .models import PreprocessOptions

logger = logging.getLogger(__name__)


def preprocess_image(image_bytes: bytes, options: PreprocessOptions | None = None) -> bytes:
    """Run the transform chain and return a re-encoded JPEG buffer."""
    opts = options or PreprocessOptions()

    try:
        with Image.open(io.BytesIO(image_bytes)) as original:
            original.load()
            logger.info(
                "Preprocessing image: %dx%d, format %s",
                original.width, original.height, original.format,
            )
            img = original.copy()

        if opts.auto_rotate:
            # Honour the EXIF orientation tag written by phone cameras
            img = ImageOps.exif_transpose(img)

        if opts.grayscale:
            img = img.convert("L")
        elif img.mode not in ("RGB", "L"):
            img = img.convert("RGB")

        if opts.normalize:
            img = ImageOps.autocontrast(img)

        if opts.sharpen:
            img = img.filter(ImageFilter.SHARPEN)

        if opts.denoise:
            img = img.filter(ImageFilter.MedianFilter(size=opts.median_size))

        out = io.BytesIO()
        img.save(out, format="JPEG", quality=opts.jpeg_quality)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise PreprocessingError(f"Image preprocessing failed: {e}") from e

    processed = out.getvalue()
    logger.info("Preprocessing complete: %d -> %d bytes", len(image_bytes), len(processed))
    return processed
