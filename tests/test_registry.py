"""
Tests for the notary registry client.

httpx.MockTransport stands in for the registry, so nothing leaves the process.
"""

from __future__ import annotations

import httpx
import pytest

from poa_validator.exceptions import ExternalLookupFailure
from poa_validator.registry import NotaryRegistryClient

BASE_URL = "https://registry.example/api/"


def _client(handler, api_key: str | None = "secret") -> NotaryRegistryClient:
    return NotaryRegistryClient(
        BASE_URL, api_key=api_key, timeout=1.0, transport=httpx.MockTransport(handler)
    )


class TestNotaryRegistryClient:
    def test_valid_commission(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"valid": True})

        assert _client(handler).verify("2291847", "Rosa Delgado") is True

        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/api/verify"
        assert request.url.params["commission"] == "2291847"
        assert request.url.params["name"] == "Rosa Delgado"
        assert request.headers["Authorization"] == "Bearer secret"

    def test_invalid_commission(self):
        client = _client(lambda request: httpx.Response(200, json={"valid": False}))
        assert client.verify("2291847", "Rosa Delgado") is False

    def test_only_literal_true_counts(self):
        client = _client(lambda request: httpx.Response(200, json={"valid": "yes"}))
        assert client.verify("2291847", None) is False

    def test_no_auth_header_without_key(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"valid": True})

        _client(handler, api_key=None).verify("2291847", None)
        assert "Authorization" not in seen[0].headers
        assert seen[0].url.params["name"] == ""

    def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("registry too slow", request=request)

        with pytest.raises(ExternalLookupFailure, match="timed out") as exc:
            _client(handler).verify("2291847", "Rosa Delgado")
        assert exc.value.code == "EXTERNAL_LOOKUP_FAILED"

    def test_server_error(self):
        client = _client(lambda request: httpx.Response(503))
        with pytest.raises(ExternalLookupFailure):
            client.verify("2291847", "Rosa Delgado")

    def test_malformed_json(self):
        client = _client(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(ExternalLookupFailure, match="invalid JSON"):
            client.verify("2291847", "Rosa Delgado")

    def test_unexpected_payload(self):
        client = _client(lambda request: httpx.Response(200, json=[True]))
        with pytest.raises(ExternalLookupFailure, match="unexpected payload"):
            client.verify("2291847", "Rosa Delgado")
