"""Tests for the bounded OCR result cache."""

from __future__ import annotations

import pytest

from poa_validator.cache import OCRCache
from poa_validator.models import OCROptions, OCRResult


def _result(text: str) -> OCRResult:
    return OCRResult(text=text, confidence=90.0, word_count=1)


class TestCacheKey:
    def test_same_bytes_same_key(self):
        assert OCRCache.make_key(b"abc", OCROptions()) == OCRCache.make_key(b"abc", OCROptions())

    def test_bytes_change_key(self):
        assert OCRCache.make_key(b"abc", OCROptions()) != OCRCache.make_key(b"abd", OCROptions())

    @pytest.mark.parametrize(
        "options",
        [
            OCROptions(language="spa"),
            OCROptions(psm=6),
            OCROptions(oem=3),
            OCROptions(preprocess=False),
        ],
    )
    def test_options_change_key(self, options):
        assert OCRCache.make_key(b"abc", options) != OCRCache.make_key(b"abc", OCROptions())


class TestOCRCache:
    def test_get_missing(self):
        assert OCRCache().get("nope") is None

    def test_put_then_get(self):
        cache = OCRCache()
        cache.put("k", _result("hello"))
        assert cache.get("k").text == "hello"
        assert "k" in cache
        assert len(cache) == 1

    def test_evicts_least_recently_used(self):
        cache = OCRCache(capacity=2)
        cache.put("a", _result("a"))
        cache.put("b", _result("b"))
        cache.get("a")  # a is now the most recent
        cache.put("c", _result("c"))

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache
        assert len(cache) == 2

    def test_overwrite_does_not_grow(self):
        cache = OCRCache(capacity=2)
        cache.put("a", _result("a"))
        cache.put("a", _result("a2"))
        assert len(cache) == 1
        assert cache.get("a").text == "a2"

    def test_clear(self):
        cache = OCRCache()
        cache.put("a", _result("a"))
        cache.clear()
        assert len(cache) == 0

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            OCRCache(capacity=0)
