"""Tests for animegen.core.enrichment - the chat-completion client.

All tests use ``httpx.MockTransport`` so no network access occurs.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from animegen.core.enrichment import PromptEnricher
from animegen.core.errors import EnrichmentError, ValidationError
from animegen.core.styles import StyleCatalog


def _enricher(catalog: StyleCatalog, handler, api_key: str | None = "test-key") -> PromptEnricher:
    return PromptEnricher(
        httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        catalog,
        url="https://llm.test/v1/chat/completions",
        model="google/gemini-2.0-flash-001",
        api_key=api_key,
        max_tokens=3000,
    )


def _completion(content) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


class TestEnrichRequest:
    """Shape of the outbound request."""

    def test_sends_system_and_user_messages(self, catalog: StyleCatalog):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _completion("1boy, blue jacket")

        enricher = _enricher(catalog, handler)
        asyncio.run(enricher.enrich("a boy in a jacket", "3d-anime"))

        assert len(seen) == 1
        body = json.loads(seen[0].content)
        assert body["model"] == "google/gemini-2.0-flash-001"
        assert body["max_tokens"] == 3000
        assert body["messages"] == [
            {"role": "system", "content": catalog.lookup("3d-anime").system_prompt},
            {"role": "user", "content": "a boy in a jacket"},
        ]

    def test_bearer_token_header(self, catalog: StyleCatalog):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _completion("ok")

        asyncio.run(_enricher(catalog, handler).enrich("x", "2d-anime"))
        assert seen[0].headers["Authorization"] == "Bearer test-key"

    def test_no_authorization_without_key(self, catalog: StyleCatalog):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _completion("ok")

        asyncio.run(_enricher(catalog, handler, api_key=None).enrich("x", "2d-anime"))
        assert "Authorization" not in seen[0].headers


class TestEnrichResponse:
    """Handling of the completion response."""

    def test_returns_first_completion(self, catalog: StyleCatalog):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "choices": [
                        {"message": {"content": "  1boy, red hat  \n"}},
                        {"message": {"content": "ignored"}},
                    ]
                },
            )

        result = asyncio.run(_enricher(catalog, handler).enrich("boy", "2d-anime"))
        assert result == "1boy, red hat"

    @pytest.mark.parametrize(
        "payload",
        [{"choices": []}, {"choices": [{"message": {"content": ""}}]}, {"choices": [{}]}, {}],
    )
    def test_missing_content_raises(self, catalog: StyleCatalog, payload):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=payload)

        with pytest.raises(EnrichmentError, match="No content in response"):
            asyncio.run(_enricher(catalog, handler).enrich("boy", "2d-anime"))

    def test_http_error_raises(self, catalog: StyleCatalog):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": {"message": "bad key"}})

        with pytest.raises(EnrichmentError) as exc_info:
            asyncio.run(_enricher(catalog, handler).enrich("boy", "2d-anime"))
        assert exc_info.value.message.startswith("Failed to enrich prompt:")
        assert exc_info.value.status_code == 500

    def test_transport_error_raises(self, catalog: StyleCatalog):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(EnrichmentError, match="connection refused"):
            asyncio.run(_enricher(catalog, handler).enrich("boy", "2d-anime"))

    def test_non_json_body_raises(self, catalog: StyleCatalog):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        with pytest.raises(EnrichmentError):
            asyncio.run(_enricher(catalog, handler).enrich("boy", "2d-anime"))


class TestUnknownStyle:
    """Unknown styles are rejected rather than falling back to another prompt."""

    def test_unknown_style_makes_no_call(self, catalog: StyleCatalog):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _completion("ok")

        with pytest.raises(ValidationError):
            asyncio.run(_enricher(catalog, handler).enrich("boy", "anime"))
        assert seen == []
