"""Generation orchestration: style lookup, enrichment, txt2img, persistence.

The flow is strictly linear::

    StyleLookup -> Enrich -> Generate -> Persist -> Respond

Missing fields and unknown styles are rejected before any outbound call.
Enrichment and generation failures abort the request.  Persistence is the
one step allowed to fail softly: the client still receives the generated
image data with ``imagePath`` set to ``None`` and an explicit failure marker.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from animegen.core.enrichment import PromptEnricher
from animegen.core.errors import PersistenceError, ValidationError
from animegen.core.storage import ImageStore, StoredImage
from animegen.core.styles import StyleCatalog
from animegen.core.txt2img import Txt2ImgClient

logger = logging.getLogger(__name__)

PERSISTENCE_FAILED_MESSAGE = "Failed to save image"


@dataclass
class GenerationResult:
    """Outcome of one successful generation.

    Attributes:
        response: Raw txt2img response (``images``, ``parameters``, ``info``).
        stored: Where the image was written, or ``None`` if the write failed.
        generation_time: Seconds spent in the txt2img call.
        style: Style id used.
        use_custom_folder: Storage mode at the time of the request.
    """

    response: dict[str, Any]
    stored: StoredImage | None
    generation_time: float
    style: str
    use_custom_folder: bool

    @property
    def persisted(self) -> bool:
        return self.stored is not None

    def to_response(self) -> dict[str, Any]:
        """Shape the JSON body returned by ``POST /api/v1/generate``."""
        if self.stored is None:
            return {
                **self.response,
                "imagePath": None,
                "error": PERSISTENCE_FAILED_MESSAGE,
                "persistenceFailed": True,
                "generationTime": self.generation_time,
                "style": self.style,
            }

        body = dict(self.response)
        if not self.use_custom_folder:
            # The image is reachable through imagePath; don't ship it twice.
            body.pop("images", None)
        body.update(
            imagePath=self.stored.public_url or None,
            fullFilePath=self.stored.file_path,
            generationTime=self.generation_time,
            useCustomFolder=self.use_custom_folder,
            style=self.style,
        )
        return body


class GenerationOrchestrator:
    """Sequences the services that turn a prompt into a stored image."""

    def __init__(
        self,
        catalog: StyleCatalog,
        enricher: PromptEnricher,
        generator: Txt2ImgClient,
        store: ImageStore,
    ) -> None:
        self.catalog = catalog
        self.enricher = enricher
        self.generator = generator
        self.store = store

    async def generate(self, prompt: str | None, style_id: str | None) -> GenerationResult:
        """Run the full generation flow for one request.

        Args:
            prompt: The user's prompt.
            style_id: Identifier of a catalog style.

        Returns:
            :class:`GenerationResult`.

        Raises:
            ValidationError: Missing prompt or style, or unknown style.
            EnrichmentError: The chat-completion call failed.
            GenerationError: The txt2img call failed.
        """
        if not prompt:
            raise ValidationError("Missing prompt parameter")
        if not style_id:
            raise ValidationError("Missing style parameter")

        style = self.catalog.lookup(style_id)

        enriched_prompt = await self.enricher.enrich(prompt, style.id)

        start = time.perf_counter()
        result = await self.generator.generate(enriched_prompt, style)
        generation_time = time.perf_counter() - start
        logger.info(f"Generated {style.id} image in {generation_time:.2f}s")

        try:
            stored = self.store.save(result.image, prompt)
        except PersistenceError as exc:
            logger.error(f"Save failed: {exc}")
            stored = None

        return GenerationResult(
            response=result.response,
            stored=stored,
            generation_time=generation_time,
            style=style.id,
            use_custom_folder=self.store.use_custom_folder,
        )
