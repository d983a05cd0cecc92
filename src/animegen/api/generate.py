"""Generation routes mounted under ``/api/v1/generate``."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from animegen.api.deps import get_catalog, get_orchestrator
from animegen.api.models import GenerateRequest
from animegen.core.orchestrator import GenerationOrchestrator
from animegen.core.styles import StyleCatalog

router = APIRouter(prefix="/api/v1/generate", tags=["generate"])


@router.get("/styles")
async def get_styles(catalog: StyleCatalog = Depends(get_catalog)) -> dict:
    """List the available styles as ``{"styles": [{id, name, description}]}``."""
    return {"styles": catalog.summaries()}


@router.post("")
async def generate_image(
    req: GenerateRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Enrich the prompt, render it in the requested style and store the image.

    Args:
        req: Validated :class:`GenerateRequest` payload.

    Returns:
        The txt2img response merged with ``imagePath``, ``fullFilePath``,
        ``generationTime``, ``useCustomFolder`` and ``style``.  When the
        image could not be saved, ``imagePath`` is ``None`` and
        ``persistenceFailed`` is ``True``.

    Raises:
        ValidationError: 400 for a missing prompt or style, or an unknown
            style.
        EnrichmentError: 500 when prompt enrichment fails.
    """
    result = await orchestrator.generate(req.prompt, req.style)
    return result.to_response()
