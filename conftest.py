"""Pytest configuration: project root importable, no real OCR or network."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from poa_validator.exceptions import ExternalLookupFailure  # noqa: E402
from poa_validator.models import OCROptions, OCRResult  # noqa: E402


class FakeOCR:
    """Stands in for Tesseract: fixed text, counts calls, records input."""

    def __init__(self, text: str = "", confidence: float | None = 88.0):
        self.text = text
        self.confidence = confidence
        self.calls = 0
        self.seen: list[bytes] = []

    def recognize(self, image_bytes: bytes, options: OCROptions) -> OCRResult:
        self.calls += 1
        self.seen.append(image_bytes)
        return OCRResult(
            text=self.text, confidence=self.confidence, word_count=len(self.text.split())
        )


class FakeRegistry:
    """Stands in for the notary registry client."""

    def __init__(self, valid: bool = True, fail: bool = False):
        self.valid = valid
        self.fail = fail
        self.calls: list[tuple[str, str | None]] = []

    def verify(self, commission_number: str, notary_name: str | None) -> bool:
        self.calls.append((commission_number, notary_name))
        if self.fail:
            raise ExternalLookupFailure("Notary registry lookup timed out")
        return self.valid


@pytest.fixture(autouse=True)
def _no_registry_env(monkeypatch):
    """Never let a developer's .env point the tests at a real registry."""
    monkeypatch.delenv("CA_NOTARY_API_URL", raising=False)
    monkeypatch.delenv("CA_NOTARY_API_KEY", raising=False)


@pytest.fixture
def fake_ocr_factory():
    return FakeOCR


@pytest.fixture
def fake_registry_factory():
    return FakeRegistry
