"""Animegen - FastAPI Application.

This module is the single entry point for the web application.  It defines
the application factory, the module-level ``app`` instance, the exception
handlers that turn service errors into JSON, and the ``main()`` CLI function
that launches the uvicorn server.

Architecture
------------
- **Styles** are loaded once from ``data/styles.json`` into an immutable
  :class:`~animegen.core.styles.StyleCatalog`.
- **Generation** is sequenced by
  :class:`~animegen.core.orchestrator.GenerationOrchestrator`, which calls the
  chat-completion API, then the local txt2img API, then writes the image.
- **Accounts** live in a relational database reached through async
  SQLAlchemy.  Signin issues a bearer token.
- **Generated images** are served from the public directory at
  ``config.public_path`` unless the custom folder storage mode is on.
- **The HTML page** is served as a raw ``HTMLResponse``; it fetches styles
  from the API on load.

All long-lived services are built in the lifespan and stored on
``app.state``.  Route handlers receive them through :mod:`animegen.api.deps`.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/``                         Serve the front-end page
GET       ``/health``                   Liveness check
POST      ``/api/v1/user/signup``       Create an account
POST      ``/api/v1/user/signin``       Check credentials, issue a token
GET       ``/api/v1/user/me``           Profile for a bearer token
GET       ``/api/v1/generate/styles``   Available styles
POST      ``/api/v1/generate``          Enrich, render and store an image
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    animegen

Direct invocation::

    python -m animegen.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from animegen import __version__
from animegen.api import generate, users
from animegen.core.config import DEFAULT_JWT_SECRET, AnimegenConfig, config
from animegen.core.database import create_engine, create_session_factory, init_models
from animegen.core.enrichment import PromptEnricher
from animegen.core.errors import (
    AnimegenError,
    AuthenticationError,
    EnrichmentError,
    ValidationError,
)
from animegen.core.orchestrator import GenerationOrchestrator
from animegen.core.security import PasswordHasher, TokenIssuer
from animegen.core.storage import ImageStore
from animegen.core.styles import StyleCatalog
from animegen.core.txt2img import Txt2ImgClient

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


# ---------------------------------------------------------------------------
# Exception handlers.
# ---------------------------------------------------------------------------


async def _service_error_handler(request: Request, exc: AnimegenError) -> JSONResponse:
    """Return a service error's message (and extras) with its status code."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report schema violations as 400 ``{error, details}``."""
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all: log the traceback for the operator, answer with a generic 500."""
    logger.exception(f"{request.method} {request.url.path} error: {exc}")
    return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR_MESSAGE})


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(settings: AnimegenConfig | None = None) -> FastAPI:
    """Build the FastAPI application for *settings*.

    Args:
        settings: Configuration to use.  Defaults to the global ``config``.

    Returns:
        A configured :class:`FastAPI` instance.  Services are created when
        the lifespan starts, not here.
    """
    settings = settings or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Build shared services on startup and release them on shutdown.

        On startup:
            Loads the style catalog, creates the database engine and any
            missing tables, opens one HTTP client per upstream API, and
            wires the generation orchestrator.  A database failure disposes
            of the engine before propagating.

        On shutdown:
            Closes the HTTP clients and disposes of the database engine.
        """
        # --- Startup -------------------------------------------------------
        catalog = StyleCatalog.from_json(settings.styles_file)

        if not settings.openrouter_api_key:
            logger.warning("No OpenRouter API key configured; prompt enrichment will fail.")
        if settings.jwt_secret == DEFAULT_JWT_SECRET:
            logger.warning(
                "ANIMEGEN_JWT_SECRET is not set; access tokens are signed with a public default key."
            )

        if not settings.use_custom_folder:
            settings.images_dir.mkdir(parents=True, exist_ok=True)

        engine = create_engine(settings.database_url, echo=settings.database_echo)
        try:
            await init_models(engine)
        except Exception:
            await engine.dispose()
            raise

        # Opened after every fallible startup step so the finally block closes them.
        enrichment_http = httpx.AsyncClient(timeout=settings.enrichment_timeout)
        txt2img_http = httpx.AsyncClient(timeout=settings.generation_timeout)

        app.state.settings = settings
        app.state.catalog = catalog
        app.state.orchestrator = GenerationOrchestrator(
            catalog,
            PromptEnricher(
                enrichment_http,
                catalog,
                url=settings.openrouter_url,
                model=settings.enrichment_model,
                api_key=settings.openrouter_api_key,
                max_tokens=settings.enrichment_max_tokens,
            ),
            Txt2ImgClient(txt2img_http, base_url=settings.sd_api_url),
            ImageStore(
                settings.images_dir,
                public_path=settings.public_path,
                use_custom_folder=settings.use_custom_folder,
            ),
        )

        app.state.session_factory = create_session_factory(engine)
        app.state.password_hasher = PasswordHasher(settings.password_hash_rounds)
        app.state.token_issuer = TokenIssuer(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expire_minutes=settings.access_token_expire_minutes,
        )
        logger.info(f"Animegen {__version__} ready with styles: {', '.join(catalog.ids())}")

        try:
            yield  # Application runs here.
        finally:
            # --- Shutdown --------------------------------------------------
            await enrichment_http.aclose()
            await txt2img_http.aclose()
            await engine.dispose()
            logger.info("Animegen services shut down.")

    app = FastAPI(
        title="Animegen",
        description="Anime image generation with LLM prompt enrichment.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for error_class in (ValidationError, AuthenticationError, EnrichmentError):
        app.add_exception_handler(error_class, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(users.router)
    app.include_router(generate.router)

    app.mount("/static", StaticFiles(directory=str(settings.static_dir)), name="static")
    if not settings.use_custom_folder:
        # The images folder is created by the lifespan, after mounting.
        app.mount(
            settings.public_path,
            StaticFiles(directory=str(settings.images_dir), check_dir=False),
            name="generated-images",
        )

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        """Serve the front-end page.

        Raises:
            HTTPException: 404 if ``index.html`` is not found.
        """
        index_path = settings.templates_dir / "index.html"
        if index_path.exists():
            return HTMLResponse(content=index_path.read_text(encoding="utf-8"))
        raise HTTPException(status_code=404, detail="index.html not found")

    @app.get("/health")
    async def health() -> dict:
        return {"message": "Animegen backend is running"}

    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~animegen.core.config.config` (which
    loads from ``ANIMEGEN_SERVER_HOST`` and ``ANIMEGEN_SERVER_PORT``
    environment variables).  Defaults to ``0.0.0.0:10000``.

    This function is registered as the ``animegen`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "animegen.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
