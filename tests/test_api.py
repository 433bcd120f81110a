"""
FastAPI endpoint tests for the POA Validator API.

Uses httpx + FastAPI TestClient — no real server, no Tesseract, no registry.
"""

from __future__ import annotations

import io

import api
import pytest
from api import app
from fastapi.testclient import TestClient
from PIL import Image

from poa_validator.extraction import TextExtractionEngine
from poa_validator.pipeline import ScanPipeline, ValidationPipeline
from poa_validator.validators import ComplianceEngine

client = TestClient(app)


# ─── Sample OCR text (what the fake OCR "reads") ────────────────────

POA_TEXT = (
    "DURABLE POWER OF ATTORNEY\n"
    "State of California\n"
    "I authorize my agent to arrange cremation and the disposition of remains.\n"
    "Dated: 03/14/2024\n"
    "Principal Signature: Margaret Ellis\n"
    "Witness: Jane Doe\n"
    "Notary Public: Rosa Delgado\n"
    "Commission Number: 2291847\n"
    "Commission Expires: 12/31/2099\n"
)


def _png() -> bytes:
    buf = io.BytesIO()
    img = Image.new("L", (200, 100), 255)
    img.paste(0, (0, 0, 100, 100))
    img.save(buf, format="PNG", dpi=(300, 300))
    return buf.getvalue()


@pytest.fixture(autouse=True)
def _wire_pipelines(fake_ocr_factory, fake_registry_factory):
    """Install fake-backed pipelines for every test (bypasses lifespan)."""
    ocr = fake_ocr_factory(POA_TEXT)
    extraction = TextExtractionEngine(ocr_backend=ocr)
    api._pipeline = ValidationPipeline(
        extraction=extraction,
        compliance=ComplianceEngine(registry=fake_registry_factory(valid=True)),
    )
    api._scan_pipeline = ScanPipeline(extraction=extraction)
    yield ocr
    api._pipeline = None
    api._scan_pipeline = None


class TestHealthEndpoint:
    def test_health_returns_200(self) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200

    def test_health_response_shape(self) -> None:
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["registry_configured"] is True
        assert data["ocr_cache_entries"] == 0

    def test_not_ready_without_pipeline(self) -> None:
        api._pipeline = None
        assert client.get("/health").status_code == 503


class TestValidateEndpoint:
    def test_valid_scan_passes(self) -> None:
        resp = client.post("/validate", files={"file": ("poa.png", _png(), "image/png")})
        assert resp.status_code == 200
        data = resp.json()
        assert data["overall"] == "pass"
        assert data["source_strategy"] == "image_ocr"
        assert data["filename"] == "poa.png"
        assert len(data["document_hash"]) == 64

    def test_result_shape(self) -> None:
        data = client.post(
            "/validate", files={"file": ("poa.png", _png(), "image/png")}
        ).json()
        assert data["notary"]["notary_name"] == "Rosa Delgado"
        assert data["witness"]["witness_names"] == ["Jane Doe"]
        assert data["verbiage"]["poa_type"] == "durable"
        assert set(data["additional_checks"]) == {"date", "signature"}

    def test_form_options_reach_ocr(self, _wire_pipelines) -> None:
        client.post(
            "/validate",
            files={"file": ("poa.png", _png(), "image/png")},
            data={"preprocess": "false"},
        )
        assert _wire_pipelines.seen == [_png()]

    def test_unsupported_format_returns_415(self) -> None:
        resp = client.post(
            "/validate", files={"file": ("poa.docx", b"PK\x03\x04", "application/octet-stream")}
        )
        assert resp.status_code == 415

    def test_no_text_returns_422(self, _wire_pipelines) -> None:
        _wire_pipelines.text = "   "
        resp = client.post("/validate", files={"file": ("blank.png", _png(), "image/png")})
        assert resp.status_code == 422
        assert "No text could be extracted" in resp.json()["detail"]

    def test_empty_upload_returns_422(self) -> None:
        resp = client.post("/validate", files={"file": ("poa.png", b"", "image/png")})
        assert resp.status_code == 422

    def test_oversize_upload_returns_413(self, monkeypatch) -> None:
        monkeypatch.setattr(api, "MAX_UPLOAD_BYTES", 10)
        resp = client.post("/validate", files={"file": ("poa.png", _png(), "image/png")})
        assert resp.status_code == 413

    def test_missing_file_returns_422(self) -> None:
        assert client.post("/validate").status_code == 422


class TestValidateTextEndpoint:
    def test_text_passes(self) -> None:
        resp = client.post("/validate/text", json={"text": POA_TEXT})
        assert resp.status_code == 200
        data = resp.json()
        assert data["overall"] == "pass"
        assert data["ocr_confidence"] == 100
        assert data["source_strategy"] is None

    def test_too_short_text_returns_422(self) -> None:
        assert client.post("/validate/text", json={"text": "short"}).status_code == 422

    def test_whitespace_text_returns_422(self) -> None:
        assert client.post("/validate/text", json={"text": " " * 20}).status_code == 422


class TestScanEndpoint:
    def test_scan(self) -> None:
        resp = client.post("/scan", files={"file": ("scan.png", _png(), "image/png")})
        assert resp.status_code == 200
        data = resp.json()
        assert data["image_quality"]["overall_score"] == 100
        assert data["text_extraction"]["source_strategy"] == "image_ocr"
        assert data["links"] == []
        assert data["warnings"] == []

    def test_invalid_upload_returns_400(self) -> None:
        resp = client.post("/scan", files={"file": ("poa.pdf", b"%PDF-1.4", "application/pdf")})
        assert resp.status_code == 400
        assert "Unsupported file format" in resp.json()["detail"]


class TestQualityEndpoint:
    def test_quality(self) -> None:
        resp = client.post("/quality", files={"file": ("scan.png", _png(), "image/png")})
        assert resp.status_code == 200
        assert resp.json()["recommendations"] == []

    def test_undecodable_returns_422(self) -> None:
        resp = client.post("/quality", files={"file": ("scan.png", b"nope", "image/png")})
        assert resp.status_code == 422
