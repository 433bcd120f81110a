"""
Runtime settings, read from the environment and an optional ``.env`` file.

Variable names follow the deployment's existing ``.env`` conventions, so the
registry and timeout fields are aliased; the rest map by field name.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline configuration. Defaults are safe for local, offline use."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
    )

    # State notary registry (no URL = lookup disabled)
    notary_api_url: Optional[str] = Field(default=None, validation_alias="CA_NOTARY_API_URL")
    notary_api_key: Optional[str] = Field(default=None, validation_alias="CA_NOTARY_API_KEY")
    notary_api_timeout: float = Field(default=5.0, validation_alias="NOTARY_API_TIMEOUT_SECONDS")

    # OCR
    ocr_language: str = "eng"
    ocr_timeout: float = Field(default=60.0, validation_alias="OCR_TIMEOUT_SECONDS")
    ocr_cache_size: int = Field(default=100, ge=1)

    # Policy
    required_witnesses: int = Field(default=1, ge=0)
    min_direct_pdf_text_chars: int = Field(default=1, ge=1)
    max_image_bytes: int = 10 * 1024 * 1024

    log_level: str = "INFO"
