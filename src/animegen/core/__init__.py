"""Core services for the Animegen backend.

- **config.py**: Pydantic Settings configuration (``ANIMEGEN_`` prefix)
- **styles.py**: Immutable style catalog loaded from ``data/styles.json``
- **enrichment.py**: Chat-completion client that expands user prompts
- **txt2img.py**: Client for the local txt2img API
- **storage.py**: Writes generated images for the active storage mode
- **orchestrator.py**: Sequences lookup, enrichment, generation and storage
- **accounts.py / security.py / database.py**: User accounts, bcrypt
  hashing, access tokens and async SQLAlchemy plumbing
- **errors.py**: Error taxonomy mapped to HTTP responses by the API layer
"""

from animegen.core.config import AnimegenConfig, config
from animegen.core.errors import (
    AnimegenError,
    AuthenticationError,
    EnrichmentError,
    GenerationError,
    PersistenceError,
    ValidationError,
)
from animegen.core.styles import LoraWeight, StyleCatalog, StyleConfig

__all__ = [
    "AnimegenConfig",
    "config",
    "AnimegenError",
    "AuthenticationError",
    "EnrichmentError",
    "GenerationError",
    "PersistenceError",
    "ValidationError",
    "LoraWeight",
    "StyleCatalog",
    "StyleConfig",
]
