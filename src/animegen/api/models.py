"""Pydantic request models for the Animegen API.

Models
------
GenerateRequest
    Payload for ``POST /api/v1/generate``.
CredentialsRequest
    Payload for ``POST /api/v1/user/signup`` and ``/signin``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    """Request body for the ``POST /api/v1/generate`` endpoint.

    Both fields are optional at the schema level.  Their absence is reported
    by the orchestrator as a 400 with a readable message instead of a
    schema validation error.

    Attributes:
        prompt: The user's short image description.
        style: Identifier of a catalog style (e.g. ``"2d-anime"``).
    """

    prompt: str | None = Field(
        default=None,
        description="Short image description to enrich and render.",
    )
    style: str | None = Field(
        default=None,
        description="Style identifier from GET /api/v1/generate/styles.",
    )


class CredentialsRequest(BaseModel):
    """Request body for signup and signin.

    Attributes:
        username: Account name.  Matched exactly (case-sensitive).
        password: Plain-text password.  Only its bcrypt hash is stored.
    """

    username: str = Field(..., min_length=1, max_length=150)
    password: str = Field(..., min_length=1)
