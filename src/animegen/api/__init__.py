"""Animegen - FastAPI REST API layer.

Modules
-------
main
    Application factory, lifespan, exception handlers and the ``main()``
    CLI entry point.
models
    Pydantic request models.
deps
    FastAPI dependencies that pull shared services off ``app.state``.
users
    ``/api/v1/user`` routes: signup, signin and the token-protected profile.
generate
    ``/api/v1/generate`` routes: style listing and image generation.
"""
