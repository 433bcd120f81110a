"""
Main validation pipeline — orchestrates the full workflow.

Flow:
  ┌──────────────┐
  │ Upload bytes │
  └──────┬───────┘
         │
  ┌──────▼───────┐
  │  Extraction  │   ← PDF text layer → PDF OCR → image OCR
  └──────┬───────┘
         │  text + confidence
  ┌──────▼───────┐
  │    Checks    │   ← notary, witness, verbiage, date, signature
  └──────┬───────┘
         │
  ┌──────▼───────┐
  │   Verdict    │   ← overall from the three primary checks
  └──────────────┘

Design principles:
  - Only extraction can abort a run; it surfaces as ValidationFailure.
  - Every check degrades on its own; siblings always run.
  - No state is kept between calls apart from the injected OCR cache.
  - The uploaded bytes are SHA-256 hashed for the audit trail.
"""

from __future__ import annotations

import hashlib
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone

from .cache import OCRCache
from .config import Settings
from .exceptions import NoTextExtracted, POAValidationError, ValidationFailure
from .extraction import TextExtractionEngine, detect_links, validate_image_upload
from .models import (
    AdditionalChecks,
    ExtractionStrategy,
    OCROptions,
    ScanResult,
    ValidationResult,
)
from .ocr import TesseractOCR
from .quality import analyze_image_quality
from .registry import NotaryRegistryClient
from .validators import ComplianceEngine, compute_overall

logger = logging.getLogger(__name__)


def build_engines(settings: Settings) -> tuple[TextExtractionEngine, ComplianceEngine]:
    """Wire the production extraction and compliance engines from settings."""
    extraction = TextExtractionEngine(
        ocr_backend=TesseractOCR(timeout=settings.ocr_timeout),
        cache=OCRCache(capacity=settings.ocr_cache_size),
        min_direct_text_chars=settings.min_direct_pdf_text_chars,
        default_language=settings.ocr_language,
    )
    registry = None
    if settings.notary_api_url:
        registry = NotaryRegistryClient(
            settings.notary_api_url,
            api_key=settings.notary_api_key,
            timeout=settings.notary_api_timeout,
        )
    compliance = ComplianceEngine(
        registry=registry, required_witnesses=settings.required_witnesses
    )
    return extraction, compliance


class ValidationPipeline:
    """Extraction → compliance checks → ValidationResult.

    Usage:
        pipeline = ValidationPipeline()
        result = pipeline.validate(file_bytes, "poa.pdf")
        if result.overall != OverallStatus.PASS:
            for issue in result.notary.issues:
                print(issue)
    """

    def __init__(
        self,
        extraction: TextExtractionEngine | None = None,
        compliance: ComplianceEngine | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or Settings()
        if extraction is None or compliance is None:
            default_extraction, default_compliance = build_engines(self.settings)
            extraction = extraction or default_extraction
            compliance = compliance or default_compliance
        self.extraction = extraction
        self.compliance = compliance

    def validate(
        self,
        data: bytes,
        filename: str,
        ocr_options: OCROptions | None = None,
        today: date | None = None,
    ) -> ValidationResult:
        """Run the full pipeline on one uploaded file.

        Raises:
            ValidationFailure: extraction could not produce any text. The
                original error is chained and its code is in ``cause_code``.
        """
        started = time.perf_counter()
        logger.info("Starting validation for document: %s", filename)

        try:
            extracted = self.extraction.extract(data, filename, ocr_options)
            if not extracted.text.strip():
                raise NoTextExtracted("No text could be extracted from the document")
        except POAValidationError as e:
            logger.error("Validation error for %s: [%s] %s", filename, e.code, e)
            raise ValidationFailure(str(e), cause=e) from e

        result = self._assemble(
            extracted.text,
            extracted.confidence,
            extracted.source_strategy,
            started=started,
            filename=filename,
            document_hash=hashlib.sha256(data).hexdigest(),
            today=today,
        )
        logger.info(
            "Document validation completed in %dms for: %s (%s)",
            result.processing_time_ms, filename, result.overall.value,
        )
        return result

    def validate_text(self, text: str, today: date | None = None) -> ValidationResult:
        """Run the checks on text that was extracted elsewhere."""
        started = time.perf_counter()
        if not text.strip():
            error = NoTextExtracted("No text supplied for validation")
            raise ValidationFailure(str(error), cause=error) from error

        return self._assemble(
            text,
            100.0,
            None,
            started=started,
            document_hash=hashlib.sha256(text.encode("utf-8")).hexdigest(),
            today=today,
        )

    def _assemble(
        self,
        text: str,
        confidence: float,
        source_strategy: ExtractionStrategy | None,
        *,
        started: float,
        document_hash: str,
        filename: str | None = None,
        today: date | None = None,
    ) -> ValidationResult:
        checks = self.compliance.run(text, today=today)
        overall = compute_overall(checks.notary, checks.witness, checks.verbiage)

        return ValidationResult(
            notary=checks.notary,
            witness=checks.witness,
            verbiage=checks.verbiage,
            additional_checks=AdditionalChecks(date=checks.date, signature=checks.signature),
            overall=overall,
            extracted_text=text,
            ocr_confidence=confidence,
            source_strategy=source_strategy,
            processing_time_ms=_elapsed_ms(started),
            filename=filename,
            document_hash=document_hash,
        )


class ScanPipeline:
    """Full processing of a photographed or scanned page image.

    Quality analysis, text extraction and link detection run concurrently.
    A branch that fails becomes None in the result, with a warning; it never
    takes the other branches down with it.
    """

    def __init__(self, extraction: TextExtractionEngine | None = None, settings: Settings | None = None):
        self.settings = settings or Settings()
        self.extraction = extraction or build_engines(self.settings)[0]

    def process(
        self,
        image_bytes: bytes,
        filename: str = "scanned-document.jpg",
        mime_type: str | None = "image/jpeg",
        options: OCROptions | None = None,
    ) -> ScanResult:
        started = time.perf_counter()
        logger.info("Starting complete document processing for %s", filename)

        errors = validate_image_upload(
            filename, len(image_bytes), mime_type, max_bytes=self.settings.max_image_bytes
        )
        if errors:
            raise ValidationFailure("; ".join(errors))

        opts = options or OCROptions(language=self.settings.ocr_language)
        # Links are read from the raw image, without preprocessing
        link_opts = opts.model_copy(update={"preprocess": False})

        with ThreadPoolExecutor(max_workers=3) as pool:
            quality_future = pool.submit(analyze_image_quality, image_bytes)
            text_future = pool.submit(self.extraction.extract_from_image, image_bytes, opts)
            links_future = pool.submit(
                lambda: detect_links(self.extraction.ocr_image(image_bytes, link_opts).text)
            )

        warnings: list[str] = []
        branches = {}
        for name, future in (
            ("Image quality analysis", quality_future),
            ("Text extraction", text_future),
            ("Link detection", links_future),
        ):
            try:
                branches[name] = future.result()
            except Exception as e:
                logger.warning("%s failed: %s", name, e)
                branches[name] = None
                warnings.append(f"{name} failed")

        result = ScanResult(
            processing_time_ms=_elapsed_ms(started),
            image_quality=branches["Image quality analysis"],
            text_extraction=branches["Text extraction"],
            links=branches["Link detection"],
            warnings=warnings,
            processed_at=datetime.now(timezone.utc),
        )
        logger.info("Document processing completed in %dms", result.processing_time_ms)
        return result


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
