"""Tests for animegen.core.txt2img - the txt2img API client."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from animegen.core.errors import GenerationError
from animegen.core.styles import LoraWeight, StyleCatalog
from animegen.core.txt2img import RANDOM_SEED, Txt2ImgClient, build_payload, build_prompt


class TestBuildPrompt:
    """LoRA tag suffixing."""

    def test_appends_tags_in_order(self):
        loras = [LoraWeight(name="a", strength=0.3), LoraWeight(name="b", strength=0.6)]
        assert build_prompt("1girl, solo", loras) == "1girl, solo <lora:a:0.3> <lora:b:0.6>"

    def test_no_loras_leaves_prompt_untouched(self):
        assert build_prompt("1girl, solo", []) == "1girl, solo"


class TestBuildPayload:
    """Flattening a StyleConfig into the request body."""

    def test_2d_anime_payload(self, catalog: StyleCatalog):
        style = catalog.lookup("2d-anime")
        payload = build_payload("1boy", style)

        assert payload["prompt"] == "1boy <lora:more_details:0.3> <lora:晖映(BG+LGHT):0.6>"
        assert payload["negative_prompt"] == style.negative_prompt
        assert payload["steps"] == 30
        assert payload["sampler_index"] == "Euler a"
        assert payload["width"] == 512
        assert payload["height"] == 512
        assert payload["cfg_scale"] == 10
        assert payload["seed"] == RANDOM_SEED == -1
        assert payload["clip_skip"] == 2
        assert payload["override_settings"] == {"sd_model_checkpoint": style.base_model}
        assert payload["enable_hr"] is True
        assert payload["hr_upscaler"] == "R-ESRGAN 4x+ Anime6B"
        assert payload["hr_scale"] == 2
        assert payload["hr_second_pass_steps"] == 0
        assert payload["denoising_strength"] == 0.7
        assert payload["hr_resize_x"] == 0
        assert payload["hr_resize_y"] == 0

    def test_checkpoint_follows_style(self, catalog: StyleCatalog):
        payload = build_payload("x", catalog.lookup("3d-anime"))
        assert payload["override_settings"]["sd_model_checkpoint"].startswith("3dAnimationDiffusion")


class TestGenerate:
    """Txt2ImgClient.generate against a fake API."""

    def _client(self, handler) -> Txt2ImgClient:
        return Txt2ImgClient(
            httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            base_url="http://127.0.0.1:7860/",
        )

    def test_posts_to_txt2img_and_returns_first_image(self, catalog: StyleCatalog):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"images": ["first", "second"], "info": "{}"})

        result = asyncio.run(self._client(handler).generate("1boy", catalog.lookup("2d-anime")))

        assert str(seen[0].url) == "http://127.0.0.1:7860/sdapi/v1/txt2img"
        assert json.loads(seen[0].content)["prompt"].startswith("1boy <lora:")
        assert result.image == "first"
        assert result.response["images"] == ["first", "second"]

    def test_http_error_raises(self, catalog: StyleCatalog):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="CUDA out of memory")

        with pytest.raises(GenerationError):
            asyncio.run(self._client(handler).generate("1boy", catalog.lookup("2d-anime")))

    def test_empty_image_list_raises(self, catalog: StyleCatalog):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"images": []})

        with pytest.raises(GenerationError, match="no image"):
            asyncio.run(self._client(handler).generate("1boy", catalog.lookup("2d-anime")))

    def test_connection_refused_raises(self, catalog: StyleCatalog):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(GenerationError):
            asyncio.run(self._client(handler).generate("1boy", catalog.lookup("2d-anime")))
