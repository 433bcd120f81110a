"""
Pydantic models for the validation pipeline.

Results are frozen once produced. Downstream consumers (persistence, report
rendering) rely on these shapes, so every field is typed and every
check-specific field has a default: a check that crashes must still be able
to return a well-formed ``fail`` result.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ─── Enumerations ───────────────────────────────────────────────────


class CheckStatus(str, Enum):
    """Verdict of a single compliance check."""

    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"
    NOT_CHECKED = "not_checked"


class OverallStatus(str, Enum):
    """Aggregate verdict, derived from the three primary checks."""

    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"


class ExtractionStrategy(str, Enum):
    """Which extraction path produced the text."""

    DIRECT_PDF = "direct_pdf"
    PDF_OCR = "pdf_ocr"
    IMAGE_OCR = "image_ocr"


class PoaType(str, Enum):
    DURABLE = "durable"
    NON_DURABLE = "non-durable"
    UNKNOWN = "unknown"


# ─── Options ────────────────────────────────────────────────────────


class PreprocessOptions(BaseModel):
    """Image transform chain switches. Every stage is on by default."""

    auto_rotate: bool = True
    grayscale: bool = True
    normalize: bool = True
    sharpen: bool = True
    denoise: bool = True
    median_size: int = Field(default=3, ge=3)
    jpeg_quality: int = Field(default=95, ge=1, le=100)


class OCROptions(BaseModel):
    """Caller-supplied OCR configuration.

    ``psm`` 3 is Tesseract's fully automatic page segmentation and ``oem`` 1
    its LSTM (neural net) engine.
    """

    language: str = "eng"
    preprocess: bool = True
    psm: int = 3
    oem: int = 1


# ─── Extraction ─────────────────────────────────────────────────────


class OCRResult(BaseModel):
    """Raw output of an OCR backend."""

    model_config = ConfigDict(frozen=True)

    text: str
    confidence: Optional[float] = None  # None when the engine reports nothing
    word_count: int = 0


class ExtractedText(BaseModel):
    """Text pulled out of an upload, with how much we trust it."""

    model_config = ConfigDict(frozen=True)

    text: str
    confidence: float = Field(ge=0, le=100)
    source_strategy: ExtractionStrategy


# ─── Image Quality ──────────────────────────────────────────────────


class Resolution(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    megapixels: float
    dpi: float


class QualityAnalysis(BaseModel):
    """Advisory image quality report. Heuristic, not a calibrated metric."""

    model_config = ConfigDict(frozen=True)

    resolution: Resolution
    sharpness: float = Field(ge=0, le=1)
    brightness: float = Field(ge=0, le=1)
    contrast: float = Field(ge=0, le=1)
    overall_score: int = Field(ge=0, le=100)
    recommendations: list[str] = Field(default_factory=list)


class DetectedLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "url"
    data: str
    confidence: float = 0.8


# ─── Check Results ──────────────────────────────────────────────────


class CheckResult(BaseModel):
    """Common shape of every compliance check."""

    model_config = ConfigDict(frozen=True)

    status: CheckStatus
    issues: list[str] = Field(default_factory=list)


class NotaryCheckResult(CheckResult):
    notary_name: Optional[str] = None
    commission_number: Optional[str] = None
    commission_expiry: Optional[date] = None
    is_valid: bool = False  # True only when the state registry confirmed it


class WitnessCheckResult(CheckResult):
    witness_count: int = 0
    required_witnesses: int = 1
    witness_names: list[str] = Field(default_factory=list)


class PhraseMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    phrase: str
    found: bool
    line_number: Optional[int] = None  # 1-based line of first occurrence


class VerbiageCheckResult(CheckResult):
    has_cremation_authority: bool = False
    poa_type: PoaType = PoaType.UNKNOWN
    required_phrases: list[PhraseMatch] = Field(default_factory=list)


class DateCheckResult(CheckResult):
    document_date: Optional[date] = None
    dates_found: list[date] = Field(default_factory=list)
    is_currently_valid: bool = False


class SignatureCheckResult(CheckResult):
    principal_signed: bool = False
    agent_signed: bool = False


# ─── Validation Result ──────────────────────────────────────────────


class ComplianceChecks(BaseModel):
    """All five check results for one text, before aggregation."""

    model_config = ConfigDict(frozen=True)

    notary: NotaryCheckResult
    witness: WitnessCheckResult
    verbiage: VerbiageCheckResult
    date: DateCheckResult
    signature: SignatureCheckResult


class AdditionalChecks(BaseModel):
    """Advisory checks. They add issues but never move the overall verdict."""

    model_config = ConfigDict(frozen=True)

    date: DateCheckResult
    signature: SignatureCheckResult


class ValidationResult(BaseModel):
    """The final output of the validation pipeline."""

    model_config = ConfigDict(frozen=True)

    notary: NotaryCheckResult
    witness: WitnessCheckResult
    verbiage: VerbiageCheckResult
    additional_checks: AdditionalChecks
    overall: OverallStatus
    extracted_text: str
    ocr_confidence: float
    source_strategy: Optional[ExtractionStrategy] = None
    processing_time_ms: int
    filename: Optional[str] = None
    document_hash: str = ""  # SHA-256 of the uploaded bytes for audit trail


class ScanResult(BaseModel):
    """Output of full scanned-image processing. A failed branch is None."""

    model_config = ConfigDict(frozen=True)

    processing_time_ms: int
    image_quality: Optional[QualityAnalysis] = None
    text_extraction: Optional[ExtractedText] = None
    links: Optional[list[DetectedLink]] = None
    warnings: list[str] = Field(default_factory=list)
    processed_at: datetime
