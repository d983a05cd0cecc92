"""Prompt enrichment through a chat-completion API.

A short user prompt ("a boy wearing a blue jacket and a red hat") is expanded
into a descriptor-rich diffusion prompt by sending it to a language model
together with the style's system prompt.  The API is OpenAI-compatible
(OpenRouter by default): one ``POST`` with a system and a user message,
answer read from ``choices[0].message.content``.

There is no retry and no streaming.  Every failure, whether transport, HTTP
status or an empty completion, is reported as
:class:`~animegen.core.errors.EnrichmentError` whose message is shown to the
user verbatim.
"""

from __future__ import annotations

import logging

import httpx

from animegen.core.errors import EnrichmentError
from animegen.core.styles import StyleCatalog

logger = logging.getLogger(__name__)


class PromptEnricher:
    """Client for the chat-completion endpoint.

    Attributes:
        _client (httpx.AsyncClient): Shared HTTP client, owned by the caller.
        _catalog (StyleCatalog): Source of per-style system prompts.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        catalog: StyleCatalog,
        *,
        url: str,
        model: str,
        api_key: str | None = None,
        max_tokens: int = 3000,
    ) -> None:
        self._client = client
        self._catalog = catalog
        self.url = url
        self.model = model
        self.max_tokens = max_tokens
        self._api_key = api_key

    def build_payload(self, base_prompt: str, system_prompt: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": base_prompt},
            ],
            "max_tokens": self.max_tokens,
        }

    async def enrich(self, base_prompt: str, style_id: str) -> str:
        """Expand *base_prompt* using the system prompt of *style_id*.

        Args:
            base_prompt: The user's prompt text.
            style_id: Identifier of a style in the catalog.

        Returns:
            The enriched prompt text.

        Raises:
            ValidationError: If *style_id* is not in the catalog.
            EnrichmentError: If the API call fails or returns no content.
        """
        system_prompt = self._catalog.lookup(style_id).system_prompt
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            response = await self._client.post(
                self.url,
                json=self.build_payload(base_prompt, system_prompt),
                headers=headers,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(f"Prompt enrichment request failed: {exc}")
            raise EnrichmentError(f"Failed to enrich prompt: {exc}") from exc

        choices = payload.get("choices") if isinstance(payload, dict) else None
        content = None
        if choices:
            content = (choices[0].get("message") or {}).get("content")
        if not content:
            logger.error("Prompt enrichment returned no content")
            raise EnrichmentError("Failed to enrich prompt: No content in response")

        return content.strip()
