"""
Text extraction from uploads of unknown fidelity.

Strategies, each a fallback for the previous one:

  1. Direct PDF text layer (pypdf)        → confidence 95
  2. First PDF page rendered, then OCR    → OCR confidence, else 75
  3. Image upload, preprocessed, then OCR → OCR confidence, else 50

Only when every applicable strategy is exhausted does extraction fail.
OCR results are cached by content hash so a re-upload costs nothing.
"""

from __future__ import annotations

import io
import logging
import re
from pathlib import PurePath

import fitz  # PyMuPDF
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from .cache import OCRCache
from .exceptions import (
    ExtractionFailure,
    NoTextExtracted,
    PreprocessingError,
    UnsupportedFormat,
)
from .models import (
    DetectedLink,
    ExtractedText,
    ExtractionStrategy,
    OCROptions,
    OCRResult,
    PreprocessOptions,
)
from .ocr import OCRBackend, TesseractOCR
from .preprocessing import preprocess_image

logger = logging.getLogger(__name__)


# ─── Constants ───────────────────────────────────────────────────────

IMAGE_EXTENSIONS: frozenset[str] = frozenset({
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".tif", ".webp",
})

IMAGE_MIME_TYPES: frozenset[str] = frozenset({
    "image/jpeg", "image/jpg", "image/png", "image/gif",
    "image/bmp", "image/tiff", "image/webp",
})

DIRECT_PDF_CONFIDENCE = 95.0
PDF_OCR_DEFAULT_CONFIDENCE = 75.0
IMAGE_OCR_DEFAULT_CONFIDENCE = 50.0

RENDER_DPI = 300
RENDER_MAX_DIMENSION = 2000

_URL_PATTERN = re.compile(r"https?://[^\s]+", re.IGNORECASE)


# ─── Format Dispatch ────────────────────────────────────────────────


def detect_format(filename: str) -> str:
    """Return ``"pdf"`` or ``"image"`` from the file extension."""
    ext = PurePath(filename).suffix.lower()
    if ext == ".pdf":
        return "pdf"
    if ext in IMAGE_EXTENSIONS:
        return "image"
    raise UnsupportedFormat(
        "Unsupported file format. Please upload a PDF or image file.",
        details={"filename": filename, "extension": ext},
    )


def validate_image_upload(
    filename: str, size: int, mime_type: str | None, max_bytes: int = 10 * 1024 * 1024
) -> list[str]:
    """Check an image upload before processing. Empty list = acceptable."""
    errors: list[str] = []

    if size > max_bytes:
        errors.append(f"File size exceeds maximum limit of {max_bytes // (1024 * 1024)}MB")

    ext = PurePath(filename).suffix.lower()
    if ext not in IMAGE_EXTENSIONS:
        supported = ", ".join(sorted(e.lstrip(".") for e in IMAGE_EXTENSIONS))
        errors.append(f"Unsupported file format. Supported formats: {supported}")

    if mime_type is not None and mime_type not in IMAGE_MIME_TYPES:
        errors.append(f"Invalid MIME type: {mime_type}")

    return errors


def detect_links(text: str) -> list[DetectedLink]:
    """Find URLs in OCR text, a stand-in for decoding QR payloads."""
    seen: dict[str, None] = {}
    for match in _URL_PATTERN.finditer(text):
        seen.setdefault(match.group(0).rstrip(".,;)"), None)
    return [DetectedLink(data=url) for url in seen]


# ─── Extraction Engine ──────────────────────────────────────────────


class TextExtractionEngine:
    """Picks an extraction strategy for a file and returns ExtractedText.

    Usage:
        engine = TextExtractionEngine()
        extracted = engine.extract(pdf_bytes, "poa.pdf")
        print(extracted.source_strategy, extracted.confidence)
    """

    def __init__(
        self,
        ocr_backend: OCRBackend | None = None,
        cache: OCRCache | None = None,
        preprocess_options: PreprocessOptions | None = None,
        min_direct_text_chars: int = 1,
        default_language: str = "eng",
    ):
        self.ocr_backend = ocr_backend or TesseractOCR()
        self.cache = cache if cache is not None else OCRCache()
        self.preprocess_options = preprocess_options or PreprocessOptions()
        self.min_direct_text_chars = min_direct_text_chars
        self.default_language = default_language

    def extract(
        self, data: bytes, filename: str, options: OCROptions | None = None
    ) -> ExtractedText:
        """Extract text from a PDF or image upload.

        Raises:
            UnsupportedFormat: extension is neither PDF nor a known image type.
            NoTextExtracted: OCR ran but produced only whitespace.
            ExtractionFailure: every strategy failed.
        """
        kind = detect_format(filename)
        opts = options or OCROptions(language=self.default_language)
        logger.info("Extracting text from %s (%s, %d bytes)", filename, kind, len(data))

        if kind == "pdf":
            return self.extract_from_pdf(data, opts)
        return self.extract_from_image(data, opts)

    # ─── Strategies ─────────────────────────────────────────────────

    def extract_from_pdf(self, data: bytes, options: OCROptions) -> ExtractedText:
        text = self._read_text_layer(data)
        if text is not None and len(text.strip()) >= self.min_direct_text_chars:
            logger.info("PDF text extraction successful: %d characters", len(text))
            return ExtractedText(
                text=text,
                confidence=DIRECT_PDF_CONFIDENCE,
                source_strategy=ExtractionStrategy.DIRECT_PDF,
            )

        logger.info("No usable PDF text layer, attempting OCR on the first page")
        try:
            page_image = render_first_page(data)
            ocr = self.ocr_image(page_image, options)
        except ExtractionFailure as e:
            raise ExtractionFailure(
                "PDF text extraction failed. This PDF may be scanned, image-based, "
                "or corrupted. Please try uploading as individual images.",
                details={"ocr_error": str(e)},
            ) from e

        if not ocr.text.strip():
            raise NoTextExtracted("No text could be extracted from the PDF")

        logger.info("PDF OCR successful: %d characters extracted", len(ocr.text))
        return ExtractedText(
            text=ocr.text,
            confidence=_confidence(ocr, PDF_OCR_DEFAULT_CONFIDENCE),
            source_strategy=ExtractionStrategy.PDF_OCR,
        )

    def extract_from_image(self, data: bytes, options: OCROptions) -> ExtractedText:
        try:
            ocr = self.ocr_image(data, options)
        except ExtractionFailure as e:
            raise ExtractionFailure(f"Failed to extract text from image: {e}") from e

        if not ocr.text.strip():
            raise NoTextExtracted(
                "No text could be extracted from the image. "
                "The image may be unclear or contain no text."
            )

        confidence = _confidence(ocr, IMAGE_OCR_DEFAULT_CONFIDENCE)
        logger.info(
            "Image OCR successful: %d characters extracted with %.1f%% confidence",
            len(ocr.text), confidence,
        )
        return ExtractedText(
            text=ocr.text,
            confidence=confidence,
            source_strategy=ExtractionStrategy.IMAGE_OCR,
        )

    # ─── OCR with cache ─────────────────────────────────────────────

    def ocr_image(self, image_bytes: bytes, options: OCROptions) -> OCRResult:
        """Recognize text in a raster image, consulting the cache first."""
        key = OCRCache.make_key(image_bytes, options)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("OCR result found in cache")
            return cached

        buffer = image_bytes
        if options.preprocess:
            try:
                buffer = preprocess_image(image_bytes, self.preprocess_options)
            except PreprocessingError as e:
                logger.warning("%s; running OCR on the original image", e)

        result = self.ocr_backend.recognize(buffer, options)
        self.cache.put(key, result)
        logger.info(
            "OCR recognized %d words (confidence %s)", result.word_count, result.confidence
        )
        return result

    # ─── Helpers ────────────────────────────────────────────────────

    @staticmethod
    def _read_text_layer(data: bytes) -> str | None:
        """Concatenate the embedded text of every page, or None if unreadable."""
        try:
            reader = PdfReader(io.BytesIO(data))
            pages = [page.extract_text() or "" for page in reader.pages]
        except (PyPdfError, ValueError, KeyError, TypeError, IndexError) as e:
            logger.warning("PDF parsing failed: %s", e)
            return None
        return "\n".join(pages)


def render_first_page(
    data: bytes, dpi: int = RENDER_DPI, max_dimension: int = RENDER_MAX_DIMENSION
) -> bytes:
    """Rasterize page one of a PDF to PNG, capped at max_dimension per side."""
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            if doc.page_count == 0:
                raise ExtractionFailure("PDF contains no pages")
            page = doc[0]
            zoom = min(
                dpi / 72.0,
                max_dimension / page.rect.width,
                max_dimension / page.rect.height,
            )
            pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
            return pix.tobytes("png")
    except (RuntimeError, ValueError) as e:
        raise ExtractionFailure(f"Failed to convert PDF to image: {e}") from e


def _confidence(ocr: OCRResult, default: float) -> float:
    # Zero and missing scores both count as unreported
    if ocr.confidence is None or ocr.confidence <= 0:
        return default
    return min(ocr.confidence, 100.0)
