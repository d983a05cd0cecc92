"""Animegen - anime image generation with LLM prompt enrichment."""

__version__ = "0.1.0"

from animegen.core.config import AnimegenConfig, config

__all__ = [
    "AnimegenConfig",
    "config",
]
