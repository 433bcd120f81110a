"""
POA Validator — FastAPI Server
===============================

Thin upload adapter over the validation pipeline.

Endpoints:
    POST /validate          Upload a PDF or image for compliance validation
    POST /validate/text     Validate already-extracted text
    POST /scan              Quality, OCR and link detection for a scanned image
    POST /quality           Image quality analysis only
    GET  /health            Health check / readiness probe

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field

from poa_validator import __version__
from poa_validator.config import Settings
from poa_validator.exceptions import ImageDecodeError, ValidationFailure
from poa_validator.models import OCROptions, QualityAnalysis, ScanResult, ValidationResult
from poa_validator.pipeline import ScanPipeline, ValidationPipeline
from poa_validator.quality import analyze_image_quality

load_dotenv()

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 25 * 1024 * 1024


# ─── Application Lifespan (build the pipelines once) ─────────────────

_pipeline: ValidationPipeline | None = None
_scan_pipeline: ScanPipeline | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build pipelines from environment settings on startup."""
    global _pipeline, _scan_pipeline  # noqa: PLW0603
    settings = Settings()
    logging.basicConfig(level=settings.log_level)
    _pipeline = ValidationPipeline(settings=settings)
    _scan_pipeline = ScanPipeline(extraction=_pipeline.extraction, settings=settings)
    yield
    _pipeline = None
    _scan_pipeline = None


# ─── FastAPI App ─────────────────────────────────────────────────────

app = FastAPI(
    title="POA Validator API",
    description=(
        "Compliance validation for scanned Powers of Attorney. "
        "Layered text extraction (PDF text layer, PDF OCR, image OCR) followed by "
        "notary, witness, verbiage, date and signature checks."
    ),
    version=__version__,
    lifespan=lifespan,
)


# ─── Request / Response Schemas ─────────────────────────────────────


class ValidateTextRequest(BaseModel):
    """Request body for the /validate/text endpoint."""

    text: str = Field(
        ...,
        min_length=10,
        description="Text already extracted from a Power of Attorney.",
    )


class HealthResponse(BaseModel):
    status: str
    version: str
    registry_configured: bool
    ocr_cache_entries: int


# ─── Helpers ─────────────────────────────────────────────────────────


def _get_pipeline() -> ValidationPipeline:
    if _pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialised")
    return _pipeline


def _get_scan_pipeline() -> ScanPipeline:
    if _scan_pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialised")
    return _scan_pipeline


async def _read_upload(file: UploadFile) -> bytes:
    if file.size and file.size > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large (max 25 MB)")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=422, detail="Uploaded file is empty")
    return content


def _failure_status(error: ValidationFailure) -> int:
    if error.cause_code == "UNSUPPORTED_FORMAT":
        return 415
    if error.cause_code is None:
        return 400
    return 422


# ─── Endpoints ───────────────────────────────────────────────────────


@app.post(
    "/validate",
    summary="Validate an uploaded Power of Attorney",
    tags=["Validation"],
    responses={
        413: {"description": "File too large (max 25 MB)"},
        415: {"description": "Not a PDF or supported image"},
        422: {"description": "No text could be extracted"},
        503: {"description": "Pipeline not yet initialised"},
    },
)
async def validate_document(
    file: UploadFile,
    language: str = Form("eng"),
    preprocess: bool = Form(True),
) -> ValidationResult:
    """Extract text from a PDF or image and run every compliance check.

    Returns the full result with:
    - **overall**: `pass`, `warning` or `fail` from notary, witness and verbiage
    - **additional_checks**: advisory date and signature checks
    - **ocr_confidence** / **source_strategy**: how the text was obtained
    """
    pipeline = _get_pipeline()
    content = await _read_upload(file)
    options = OCROptions(language=language, preprocess=preprocess)
    try:
        return await asyncio.to_thread(
            pipeline.validate, content, file.filename or "upload", options
        )
    except ValidationFailure as e:
        raise HTTPException(status_code=_failure_status(e), detail=str(e))


@app.post(
    "/validate/text",
    summary="Validate already-extracted text",
    tags=["Validation"],
    responses={503: {"description": "Pipeline not yet initialised"}},
)
def validate_text(request: ValidateTextRequest) -> ValidationResult:
    pipeline = _get_pipeline()
    try:
        return pipeline.validate_text(request.text)
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.post(
    "/scan",
    summary="Process a scanned document image",
    tags=["Scanning"],
    responses={
        400: {"description": "Image failed upload validation"},
        503: {"description": "Pipeline not yet initialised"},
    },
)
async def scan_document(file: UploadFile, language: Optional[str] = Form(None)) -> ScanResult:
    """Run quality analysis, OCR and link detection concurrently."""
    scan_pipeline = _get_scan_pipeline()
    content = await _read_upload(file)
    options = OCROptions(language=language) if language else None
    try:
        return await asyncio.to_thread(
            scan_pipeline.process,
            content,
            file.filename or "scanned-document.jpg",
            file.content_type,
            options,
        )
    except ValidationFailure as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post(
    "/quality",
    summary="Analyze image quality",
    tags=["Scanning"],
    responses={422: {"description": "Image could not be decoded"}},
)
async def image_quality(file: UploadFile) -> QualityAnalysis:
    content = await _read_upload(file)
    try:
        return await asyncio.to_thread(analyze_image_quality, content)
    except ImageDecodeError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.get(
    "/health",
    summary="Health check",
    tags=["System"],
    responses={503: {"description": "Pipeline not yet initialised"}},
)
def health_check() -> HealthResponse:
    """Returns service status and configuration info."""
    pipeline = _get_pipeline()
    return HealthResponse(
        status="healthy",
        version=__version__,
        registry_configured=pipeline.compliance.registry is not None,
        ocr_cache_entries=len(pipeline.extraction.cache),
    )
