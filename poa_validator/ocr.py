"""
OCR backends.

The extraction engine talks to anything with a ``recognize`` method, so tests
can swap in a fake that returns fixed text. The production backend drives
Tesseract through pytesseract.
"""

from __future__ import annotations

import io
import logging
import shlex
import string
from typing import Protocol

import pytesseract
from PIL import Image, UnidentifiedImageError

from .exceptions import ExtractionFailure
from .models import OCROptions, OCRResult

logger = logging.getLogger(__name__)

# Letters, digits and the punctuation that shows up in legal boilerplate
CHAR_WHITELIST = string.ascii_letters + string.digits + ".,!?@#$%^&*()_+-=[]{}|;:'\"<>/"


class OCRBackend(Protocol):
    def recognize(self, image_bytes: bytes, options: OCROptions) -> OCRResult: ...


class TesseractOCR:
    """Tesseract via pytesseract, with a hard per-call timeout."""

    def __init__(self, timeout: float = 60.0):
        self.timeout = timeout

    def recognize(self, image_bytes: bytes, options: OCROptions) -> OCRResult:
        config = (
            f"--oem {options.oem} --psm {options.psm} "
            f"-c tessedit_char_whitelist={shlex.quote(CHAR_WHITELIST)}"
        )
        try:
            with Image.open(io.BytesIO(image_bytes)) as img:
                img.load()
                data = pytesseract.image_to_data(
                    img,
                    lang=options.language,
                    config=config,
                    output_type=pytesseract.Output.DICT,
                    timeout=self.timeout,
                )
        except pytesseract.TesseractNotFoundError as e:
            raise ExtractionFailure("Tesseract is not installed or not on PATH") from e
        except (UnidentifiedImageError, OSError) as e:
            raise ExtractionFailure(f"OCR could not read image: {e}") from e
        except pytesseract.TesseractError as e:
            raise ExtractionFailure(f"Tesseract failed: {e.message}") from e
        except RuntimeError as e:
            # pytesseract signals its timeout with a bare RuntimeError
            raise ExtractionFailure(
                f"OCR did not finish within {self.timeout:.0f}s",
                details={"timeout": self.timeout},
            ) from e

        return _result_from_data(data)


def _result_from_data(data: dict) -> OCRResult:
    """Rebuild line-broken text and mean word confidence from image_to_data."""
    lines: dict[tuple[int, int, int], list[str]] = {}
    confidences: list[float] = []

    for i, word in enumerate(data.get("text", [])):
        word = (word or "").strip()
        if not word:
            continue
        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        lines.setdefault(key, []).append(word)
        try:
            conf = float(data["conf"][i])
        except (TypeError, ValueError):
            continue
        if conf >= 0:
            confidences.append(conf)

    text = "\n".join(" ".join(words) for words in lines.values())
    confidence = round(sum(confidences) / len(confidences), 2) if confidences else None
    word_count = sum(len(words) for words in lines.values())
    return OCRResult(text=text, confidence=confidence, word_count=word_count)
