"""Tests for image quality analysis and OCR preprocessing."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from poa_validator.exceptions import ImageDecodeError, PreprocessingError
from poa_validator.models import PreprocessOptions
from poa_validator.preprocessing import preprocess_image
from poa_validator.quality import analyze_image_quality


def _encode(img: Image.Image, fmt: str = "PNG", **params) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt, **params)
    return buf.getvalue()


def _half_black(size: tuple[int, int] = (200, 100)) -> Image.Image:
    img = Image.new("L", size, 255)
    img.paste(0, (0, 0, size[0] // 2, size[1]))
    return img


# ═══════════════════════════════════════════════════════════════════════
# QUALITY
# ═══════════════════════════════════════════════════════════════════════


class TestImageQuality:
    def test_blank_page_scores_low(self):
        data = _encode(Image.new("RGB", (200, 100), "white"), dpi=(300, 300))
        quality = analyze_image_quality(data)

        assert quality.sharpness == 0
        assert quality.contrast == 0
        assert quality.brightness == 1
        assert quality.overall_score == 30
        assert quality.recommendations == [
            "Image appears blurry. Try to capture a sharper image.",
            "Image has low contrast. Adjust lighting or image settings.",
        ]

    def test_high_contrast_page_scores_full(self):
        quality = analyze_image_quality(_encode(_half_black(), dpi=(300, 300)))

        assert quality.sharpness == 1
        assert quality.brightness == pytest.approx(0.5, abs=0.01)
        assert quality.overall_score == 100
        assert quality.recommendations == []

    def test_resolution_reported(self):
        quality = analyze_image_quality(_encode(_half_black((400, 300)), dpi=(300, 300)))
        assert quality.resolution.width == 400
        assert quality.resolution.height == 300
        assert quality.resolution.megapixels == 0.12
        assert quality.resolution.dpi == pytest.approx(300, abs=0.01)

    def test_untagged_image_assumes_72_dpi(self):
        quality = analyze_image_quality(_encode(_half_black()))
        assert quality.resolution.dpi == 72
        assert quality.recommendations[0].startswith("Image resolution is low")

    def test_score_bounded(self):
        quality = analyze_image_quality(_encode(Image.new("L", (50, 50), 0)))
        assert 0 <= quality.overall_score <= 100

    def test_undecodable_bytes(self):
        with pytest.raises(ImageDecodeError) as exc:
            analyze_image_quality(b"definitely not an image")
        assert exc.value.code == "IMAGE_DECODE_FAILED"


# ═══════════════════════════════════════════════════════════════════════
# PREPROCESSING
# ═══════════════════════════════════════════════════════════════════════


class TestPreprocessing:
    def test_default_chain_outputs_grayscale_jpeg(self):
        out = preprocess_image(_encode(Image.new("RGB", (80, 40), (200, 30, 30))))
        with Image.open(io.BytesIO(out)) as img:
            assert img.format == "JPEG"
            assert img.mode == "L"
            assert img.size == (80, 40)

    def test_exif_orientation_applied(self):
        exif = Image.Exif()
        exif[0x0112] = 6  # rotated 90 degrees clockwise
        data = _encode(Image.new("RGB", (80, 40), "white"), "JPEG", exif=exif)

        out = preprocess_image(data)

        with Image.open(io.BytesIO(out)) as img:
            assert img.size == (40, 80)

    def test_rotation_can_be_disabled(self):
        exif = Image.Exif()
        exif[0x0112] = 6
        data = _encode(Image.new("RGB", (80, 40), "white"), "JPEG", exif=exif)

        out = preprocess_image(data, PreprocessOptions(auto_rotate=False))

        with Image.open(io.BytesIO(out)) as img:
            assert img.size == (80, 40)

    def test_color_kept_when_grayscale_off(self):
        data = _encode(Image.new("RGBA", (30, 30), (0, 0, 255, 128)))
        out = preprocess_image(data, PreprocessOptions(grayscale=False))
        with Image.open(io.BytesIO(out)) as img:
            assert img.mode == "RGB"

    def test_deterministic(self):
        data = _encode(_half_black())
        assert preprocess_image(data) == preprocess_image(data)

    def test_undecodable_bytes(self):
        with pytest.raises(PreprocessingError) as exc:
            preprocess_image(b"\x00\x01\x02")
        assert exc.value.code == "PREPROCESSING_FAILED"

    def test_median_window_minimum(self):
        with pytest.raises(ValueError):
            PreprocessOptions(median_size=1)
