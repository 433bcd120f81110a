"""
Custom exception hierarchy for POA validation.

Each exception type maps to one stage of the pipeline. Only extraction-stage
errors abort a run; the others are caught close to where they happen and
turned into a worse verdict instead.
"""

from __future__ import annotations


class POAValidationError(Exception):
    """Base exception for all POA validation failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class UnsupportedFormat(POAValidationError):
    """The upload is neither a PDF nor a supported raster image."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("UNSUPPORTED_FORMAT", message, details)


class ExtractionFailure(POAValidationError):
    """Every text extraction strategy was exhausted."""

    def __init__(self, message: str, details: dict | None = None, code: str = "EXTRACTION_FAILED"):
        super().__init__(code, message, details)


class NoTextExtracted(ExtractionFailure):
    """Extraction ran but produced empty or whitespace-only text."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details, code="NO_TEXT_EXTRACTED")


class ImageDecodeError(POAValidationError):
    """The raster buffer could not be decoded."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("IMAGE_DECODE_FAILED", message, details)


class PreprocessingError(POAValidationError):
    """An image transform failed. Callers fall back to the original image."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("PREPROCESSING_FAILED", message, details)


class CheckExecutionError(POAValidationError):
    """A compliance check raised. The check degrades to ``fail``."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("CHECK_EXECUTION_FAILED", message, details)


class ExternalLookupFailure(POAValidationError):
    """The notary registry could not be reached or answered garbage."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("EXTERNAL_LOOKUP_FAILED", message, details)


class ValidationFailure(POAValidationError):
    """The pipeline aborted. Wraps the extraction error that caused it."""

    def __init__(self, reason: str, cause: POAValidationError | None = None):
        self.reason = reason
        self.cause_code = cause.code if cause is not None else None
        details = {"cause_code": self.cause_code} if cause is not None else {}
        super().__init__("VALIDATION_FAILED", f"Validation failed: {reason}", details)
