"""Client for a locally hosted txt2img API (AUTOMATIC1111 ``/sdapi/v1/txt2img``).

The enriched prompt is suffixed with the style's LoRA tags and every
:class:`~animegen.core.styles.StyleConfig` field is flattened into the request
body.  The checkpoint is selected per request through ``override_settings``
and the seed is always ``-1`` so the server draws a fresh one each call.

The response carries ``images`` (base64 PNGs), ``parameters`` and ``info``.
Only the first image is used.  Its contents are not validated.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import httpx

from animegen.core.errors import GenerationError
from animegen.core.styles import LoraWeight, StyleConfig

logger = logging.getLogger(__name__)

TXT2IMG_PATH = "/sdapi/v1/txt2img"

# The txt2img API treats -1 as "pick a random seed".
RANDOM_SEED = -1


@dataclass
class Txt2ImgResult:
    """First generated image plus the raw API response."""

    image: str
    response: dict[str, Any] = field(default_factory=dict)


def build_prompt(prompt: str, loras: Iterable[LoraWeight]) -> str:
    """Append LoRA tags to *prompt* as a space-separated suffix.

    Example::

        >>> build_prompt("1boy, blue jacket", [LoraWeight(name="more_details", strength=0.3)])
        '1boy, blue jacket <lora:more_details:0.3>'
    """
    tags = " ".join(lora.tag for lora in loras)
    return f"{prompt} {tags}" if tags else prompt


def build_payload(prompt: str, style: StyleConfig) -> dict[str, Any]:
    """Build the txt2img request body for *prompt* rendered in *style*."""
    return {
        "prompt": build_prompt(prompt, style.loras),
        "negative_prompt": style.negative_prompt,
        "steps": style.steps,
        "sampler_index": style.sampler_name,
        "width": style.width,
        "height": style.height,
        "cfg_scale": style.cfg_scale,
        "seed": RANDOM_SEED,
        "clip_skip": style.clip_skip,
        "override_settings": {
            "sd_model_checkpoint": style.base_model,
        },
        "enable_hr": style.enable_hr,
        "hr_upscaler": style.hr_upscaler,
        "hr_scale": style.hr_scale,
        "hr_second_pass_steps": style.hr_second_pass_steps,
        "denoising_strength": style.denoising_strength,
        "hr_resize_x": 0,
        "hr_resize_y": 0,
    }


class Txt2ImgClient:
    """Sends generation requests to the txt2img API."""

    def __init__(self, client: httpx.AsyncClient, *, base_url: str) -> None:
        self._client = client
        self.url = base_url.rstrip("/") + TXT2IMG_PATH

    async def generate(self, enriched_prompt: str, style: StyleConfig) -> Txt2ImgResult:
        """Render *enriched_prompt* with *style*.

        Returns:
            :class:`Txt2ImgResult` with the first base64 image.

        Raises:
            GenerationError: On transport or HTTP errors, or when the
                response holds no image.
        """
        payload = build_payload(enriched_prompt, style)
        logger.info(f"txt2img prompt: {payload['prompt']}")

        try:
            response = await self._client.post(self.url, json=payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(f"txt2img request failed: {exc}")
            raise GenerationError(f"Image generation failed: {exc}") from exc

        images = data.get("images") if isinstance(data, dict) else None
        if not images:
            raise GenerationError("Image generation failed: no image in response")

        return Txt2ImgResult(image=images[0], response=data)
