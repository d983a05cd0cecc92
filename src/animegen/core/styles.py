"""Style catalog: immutable mapping from style id to generation parameters.

Styles are defined in ``data/styles.json``.  Each entry carries the txt2img
parameters for that look (checkpoint, LoRA weights, sampler, resolution,
hires-fix settings) and the name of a text file under
``data/system_prompts/`` holding the enrichment system prompt.

The catalog is loaded once at application startup and injected into the
services that need it.  Lookups are read-only; an unknown id is a caller
error and raises :class:`~animegen.core.errors.ValidationError` with the list
of supported ids attached.

Usage
-----
::

    catalog = StyleCatalog.from_json(config.styles_file)
    style = catalog.lookup("2d-anime")
    style.system_prompt
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator, Mapping
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field

from animegen.core.errors import ValidationError

logger = logging.getLogger(__name__)

_EXPONENT_PADDING = re.compile(r"e([+-])0*(\d)")


def format_strength(value: float) -> str:
    """Render a LoRA strength the way the txt2img UI and JavaScript write numbers.

    Integral values lose their fraction (``1`` not ``1.0``).  Other values use
    the shortest round-tripping digits, positional between ``1e-6`` and
    ``1e21`` and exponent form (``1e-7``) outside that range.
    """
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" in text and 1e-6 <= abs(value) < 1e21:
        return format(Decimal(text), "f")
    return _EXPONENT_PADDING.sub(r"e\1\2", text)


class LoraWeight(BaseModel):
    """A LoRA adapter activated at a given strength."""

    model_config = ConfigDict(frozen=True)

    name: str
    strength: float

    @property
    def tag(self) -> str:
        """Prompt tag in ``<lora:name:strength>`` syntax.

        Strengths are rendered by :func:`format_strength`.
        """
        return f"<lora:{self.name}:{format_strength(self.strength)}>"


class StyleConfig(BaseModel):
    """Generation parameters for one style.  Immutable."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    system_prompt: str
    base_model: str
    loras: tuple[LoraWeight, ...] = ()
    negative_prompt: str = ""
    steps: int = Field(default=30, ge=1)
    sampler_name: str = "Euler a"
    width: int = Field(default=512, ge=64)
    height: int = Field(default=512, ge=64)
    cfg_scale: float = 7.0
    clip_skip: int = Field(default=1, ge=1)
    enable_hr: bool = False
    hr_upscaler: str = "Latent"
    hr_scale: float = 2.0
    hr_second_pass_steps: int = Field(default=0, ge=0)
    denoising_strength: float = Field(default=0.7, ge=0.0, le=1.0)

    def summary(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "description": self.description}


class StyleCatalog:
    """Read-only registry of :class:`StyleConfig` keyed by style id."""

    def __init__(self, styles: Mapping[str, StyleConfig]) -> None:
        # Copy before wrapping so later changes to the caller's dict are not visible.
        self._styles = MappingProxyType(dict(styles))

    @classmethod
    def from_json(cls, path: Path) -> StyleCatalog:
        """Load the catalog from a ``styles.json`` file.

        System prompt files are resolved relative to a ``system_prompts``
        directory next to the JSON file.

        Args:
            path: Path to ``styles.json``.

        Returns:
            A populated catalog.

        Raises:
            FileNotFoundError: If the JSON file or a referenced system
                prompt file does not exist.
            pydantic.ValidationError: If a style entry is malformed.
        """
        with open(path, encoding="utf-8") as handle:
            raw = json.load(handle)

        prompts_dir = path.parent / "system_prompts"
        styles: dict[str, StyleConfig] = {}
        for entry in raw.get("styles", []):
            entry = dict(entry)
            prompt_file = entry.pop("system_prompt_file")
            entry["system_prompt"] = (prompts_dir / prompt_file).read_text(encoding="utf-8").strip()
            style = StyleConfig.model_validate(entry)
            styles[style.id] = style

        logger.info(f"Loaded {len(styles)} styles from {path}")
        return cls(styles)

    def lookup(self, style_id: str) -> StyleConfig:
        """Return the style registered under *style_id*.

        Raises:
            ValidationError: If the id is unknown.  The error carries
                ``supportedStyles`` so the HTTP layer can list them.
        """
        style = self._styles.get(style_id)
        if style is None:
            raise ValidationError(
                f"Unsupported style: {style_id}",
                supportedStyles=self.ids(),
            )
        return style

    def ids(self) -> list[str]:
        return list(self._styles)

    def summaries(self) -> list[dict[str, str]]:
        return [style.summary() for style in self._styles.values()]

    def __contains__(self, style_id: object) -> bool:
        return style_id in self._styles

    def __iter__(self) -> Iterator[StyleConfig]:
        return iter(self._styles.values())

    def __len__(self) -> int:
        return len(self._styles)
