"""
Bounded in-memory cache for OCR results.

Recognition dominates runtime, so repeated uploads of the same bytes within a
process reuse the earlier result. The cache is an explicit object handed to
the extraction engine, so tests and tenants each get their own.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections import OrderedDict

from .models import OCROptions, OCRResult

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


class OCRCache:
    """Thread-safe LRU map from content hash to OCRResult."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("OCR cache capacity must be at least 1")
        self.capacity = capacity
        self._entries: OrderedDict[str, OCRResult] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def make_key(image_bytes: bytes, options: OCROptions) -> str:
        """MD5 of the raw bytes, qualified by the options that change the output."""
        digest = hashlib.md5(image_bytes).hexdigest()
        return (
            f"{digest}:{options.language}:{options.psm}:{options.oem}:"
            f"{int(options.preprocess)}"
        )

    def get(self, key: str) -> OCRResult | None:
        with self._lock:
            result = self._entries.get(key)
            if result is not None:
                self._entries.move_to_end(key)
            return result

    def put(self, key: str, result: OCRResult) -> None:
        with self._lock:
            self._entries[key] = result
            self._entries.move_to_end(key)
            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("OCR cache full, evicted %s", evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
