"""
Advisory image quality scoring for uploaded scans.

The metrics are cheap proxies computed from intensity statistics, not a
calibrated quality model:

    sharpness  = clamp(variance / 10000, 0, 1)
    brightness = mean / 255
    contrast   = clamp(stddev / 128, 0, 1)

    score = 100 * (0.3 * min(dpi / 300, 1)
                   + 0.3 * sharpness
                   + 0.2 * min(contrast * 2, 1)
                   + 0.2 * (1 - 2 * |brightness - 0.5|))

Use the score to tell users how to rescan, never to reject a document.
"""

from __future__ import annotations

import io
import logging
import math

from PIL import Image, ImageStat, UnidentifiedImageError

from .exceptions import ImageDecodeError
from .models import QualityAnalysis, Resolution

logger = logging.getLogger(__name__)

DEFAULT_DPI = 72.0  # What most cameras and screenshots imply when untagged

_MIN_DPI = 150
_MIN_SHARPNESS = 0.3
_MIN_CONTRAST = 0.4
_MAX_MEGAPIXELS = 20


def analyze_image_quality(image_bytes: bytes) -> QualityAnalysis:
    """Compute resolution and intensity statistics and derive a 0-100 score.

    Raises:
        ImageDecodeError: if the buffer is not a decodable image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.load()
            width, height = img.size
            dpi = _read_dpi(img)
            stats = ImageStat.Stat(img.convert("L"))
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageDecodeError(f"Could not decode image: {e}") from e

    mean = stats.mean[0]
    variance = stats.var[0]

    sharpness = _clamp(variance / 10000)
    brightness = _clamp(mean / 255)
    contrast = _clamp(math.sqrt(variance) / 128)
    resolution = Resolution(
        width=width,
        height=height,
        megapixels=round(width * height / 1_000_000, 2),
        dpi=dpi,
    )

    score = (
        0.3 * min(dpi / 300, 1)
        + 0.3 * sharpness
        + 0.2 * min(contrast * 2, 1)
        + 0.2 * (1 - abs(brightness - 0.5) * 2)
    )

    recommendations: list[str] = []
    if dpi < _MIN_DPI:
        recommendations.append(
            "Image resolution is low. For better OCR results, scan at 300 DPI or higher."
        )
    if sharpness < _MIN_SHARPNESS:
        recommendations.append("Image appears blurry. Try to capture a sharper image.")
    if contrast < _MIN_CONTRAST:
        recommendations.append("Image has low contrast. Adjust lighting or image settings.")
    if resolution.megapixels > _MAX_MEGAPIXELS:
        recommendations.append(
            "Image is very large. Consider downscaling it for faster processing."
        )

    analysis = QualityAnalysis(
        resolution=resolution,
        sharpness=round(sharpness, 4),
        brightness=round(brightness, 4),
        contrast=round(contrast, 4),
        overall_score=round(score * 100),
        recommendations=recommendations,
    )
    logger.info(
        "Image quality: %dx%d @ %.0f dpi, score %d",
        width, height, dpi, analysis.overall_score,
    )
    return analysis


def _read_dpi(img: Image.Image) -> float:
    dpi = img.info.get("dpi")
    if not dpi:
        return DEFAULT_DPI
    try:
        value = float(dpi[0])
    except (TypeError, ValueError, IndexError):
        return DEFAULT_DPI
    return value if value > 0 else DEFAULT_DPI


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(value, high))
