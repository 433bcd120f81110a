"""
Client for the state notary commission registry.

Optional collaborator: when no URL is configured the notary check simply
recommends manual verification. Any transport problem, non-2xx response or
malformed body surfaces as ExternalLookupFailure, never as a crash.
"""

from __future__ import annotations

import logging

import httpx

from .exceptions import ExternalLookupFailure

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class NotaryRegistryClient:
    """``GET {base_url}/verify?commission=&name=`` with bearer auth.

    Usage:
        registry = NotaryRegistryClient("https://registry.example", api_key="...")
        ok = registry.verify("1234567", "Jane Smith")
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def verify(self, commission_number: str, notary_name: str | None) -> bool:
        """Return True only if the registry explicitly answers ``valid: true``."""
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        params = {"commission": commission_number, "name": notary_name or ""}

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(f"{self.base_url}/verify", params=params, headers=headers)
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as e:
            logger.warning("Notary registry timed out after %.1fs", self.timeout)
            raise ExternalLookupFailure(
                "Notary registry lookup timed out", details={"timeout": self.timeout}
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Notary registry request failed: %s", e)
            raise ExternalLookupFailure(f"Notary registry request failed: {e}") from e
        except ValueError as e:
            raise ExternalLookupFailure("Notary registry returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise ExternalLookupFailure("Notary registry returned an unexpected payload")
        return payload.get("valid") is True
