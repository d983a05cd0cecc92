"""Shared pytest fixtures for Animegen tests."""

from __future__ import annotations

import asyncio
import base64
import io
import json
import shutil
import tempfile
from collections.abc import Callable, Generator
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from animegen.api.deps import get_orchestrator
from animegen.api.main import create_app
from animegen.core.config import AnimegenConfig
from animegen.core.enrichment import PromptEnricher
from animegen.core.orchestrator import GenerationOrchestrator
from animegen.core.storage import ImageStore
from animegen.core.styles import StyleCatalog
from animegen.core.txt2img import Txt2ImgClient

FIXED_NOW = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> AnimegenConfig:
    """Create a test configuration rooted in a temporary directory.

    The bcrypt cost factor is lowered to keep account tests fast.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        AnimegenConfig instance for testing
    """
    return AnimegenConfig(
        _env_file=None,
        openrouter_api_key="test-key",
        openrouter_url="https://llm.test/api/v1/chat/completions",
        sd_api_url="http://sd.test:7860",
        database_url=f"sqlite+aiosqlite:///{temp_dir / 'test.db'}",
        public_dir=temp_dir / "public",
        custom_folder_path=temp_dir / "custom",
        use_custom_folder=False,
        password_hash_rounds=4,
        jwt_secret="test-secret",
    )


@pytest.fixture
def catalog(test_config: AnimegenConfig) -> StyleCatalog:
    """The style catalog shipped with the package."""
    return StyleCatalog.from_json(test_config.styles_file)


@pytest.fixture
def png_b64() -> str:
    """A real 8x8 PNG encoded as base64."""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(255, 0, 0)).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def upstream(png_b64: str) -> dict:
    """Recorder and canned answers for the two upstream APIs.

    ``requests`` collects every request seen by either fake API.  ``llm`` and
    ``sd`` hold the ``(status, json_body)`` pair each response is built from.
    Tests may replace either, or set one to an exception instance to simulate
    a transport failure.
    """
    return {
        "requests": [],
        "llm": (200, {"choices": [{"message": {"content": "1boy, blue jacket, red hat, anime"}}]}),
        "sd": (
            200,
            {
                "images": [png_b64],
                "parameters": {"steps": 30},
                "info": json.dumps({"seed": 1234, "sd_model_name": "divineanimemix_V2"}),
            },
        ),
    }


@pytest.fixture
def make_orchestrator(
    catalog: StyleCatalog, upstream: dict
) -> Generator[Callable[[ImageStore], GenerationOrchestrator], None, None]:
    """Build an orchestrator whose HTTP clients talk to in-process fake APIs.

    Cleanup:
        Every HTTP client handed out is closed after the test completes
    """
    clients: list[httpx.AsyncClient] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        upstream["requests"].append(request)
        answer = upstream["llm"] if request.url.host == "llm.test" else upstream["sd"]
        if isinstance(answer, Exception):
            raise answer
        status, body = answer
        return httpx.Response(status, json=body)

    def _make(store: ImageStore) -> GenerationOrchestrator:
        transport = httpx.MockTransport(_handler)
        enrichment_http = httpx.AsyncClient(transport=transport)
        txt2img_http = httpx.AsyncClient(transport=transport)
        clients.extend([enrichment_http, txt2img_http])
        return GenerationOrchestrator(
            catalog,
            PromptEnricher(
                enrichment_http,
                catalog,
                url="https://llm.test/api/v1/chat/completions",
                model="google/gemini-2.0-flash-001",
                api_key="test-key",
            ),
            Txt2ImgClient(txt2img_http, base_url="http://sd.test:7860"),
            store,
        )

    yield _make

    for client in clients:
        asyncio.run(client.aclose())


@pytest.fixture
def image_store(test_config: AnimegenConfig) -> ImageStore:
    """Public-folder image store with a fixed clock."""
    return ImageStore(
        test_config.images_dir,
        public_path=test_config.public_path,
        use_custom_folder=False,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def test_app(test_config: AnimegenConfig):
    return create_app(test_config)


@pytest.fixture
def test_client(test_app, make_orchestrator, image_store) -> Generator[TestClient, None, None]:
    """TestClient with the real lifespan and fake upstream APIs.

    The lifespan creates the SQLite database and the real services; the
    orchestrator is then swapped for one wired to the fake upstreams.
    """
    orchestrator = make_orchestrator(image_store)
    test_app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    with TestClient(test_app) as client:
        yield client
    test_app.dependency_overrides.clear()
