"""Configuration management for Animegen.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the ANIMEGEN_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (ANIMEGEN_* prefix)
2. .env file in the project root
3. Default values defined in AnimegenConfig

The OpenRouter key is the one exception to the prefix rule: it is also read
from the plain ``OPENROUTER_API_KEY`` variable so existing ``.env`` files keep
working.

Example .env file:
    OPENROUTER_API_KEY=sk-or-...
    ANIMEGEN_SD_API_URL=http://127.0.0.1:7860
    ANIMEGEN_USE_CUSTOM_FOLDER=true
    ANIMEGEN_CUSTOM_FOLDER_PATH=/mnt/images/ai-generated

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from animegen.core.config import config

    print(config.sd_api_url)
    print(config.images_dir)

Storage Mode
------------
``use_custom_folder`` selects where generated images are written:

- ``True``: ``custom_folder_path``, an absolute folder outside the project.
  The API answers with the absolute file path.
- ``False``: ``public_dir / public_path``, which the API serves as static
  files under ``public_path``.
"""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_DIR = Path(__file__).resolve().parents[1]

# Placeholder signing key; startup warns while it is in use.
DEFAULT_JWT_SECRET = "change-me"


class AnimegenConfig(BaseSettings):
    """Main configuration for the Animegen backend.

    Attributes
    ----------
    Prompt Enrichment:
        openrouter_api_key : str | None
            Bearer token for the chat-completion API
        openrouter_url : str
            Chat-completion endpoint
        enrichment_model : str
            Model identifier sent with every enrichment request
        enrichment_max_tokens : int
            Upper bound on the enriched prompt length
        enrichment_timeout : float
            Seconds to wait for the chat-completion API

    Image Generation:
        sd_api_url : str
            Base URL of the local txt2img API
        generation_timeout : float
            Seconds to wait for an image (hires-fix renders are slow)

    Storage:
        use_custom_folder : bool
            Storage mode flag (see module docstring)
        custom_folder_path : Path
            Absolute folder used when ``use_custom_folder`` is set
        public_dir : Path
            Public asset directory served by the API
        public_path : str
            URL prefix of generated images inside ``public_dir``

    Accounts:
        database_url : str
            SQLAlchemy async database URL
        password_hash_rounds : int
            bcrypt cost factor
        jwt_secret / jwt_algorithm / access_token_expire_minutes
            Signing settings for access tokens issued on signin

    Server:
        server_host / server_port / cors_origins / log_level
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ANIMEGEN_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Prompt enrichment
    openrouter_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "openrouter_api_key", "ANIMEGEN_OPENROUTER_API_KEY", "OPENROUTER_API_KEY"
        ),
        description="Bearer token for the chat-completion API",
    )
    openrouter_url: str = Field(
        default="https://openrouter.ai/api/v1/chat/completions",
        description="Chat-completion endpoint used for prompt enrichment",
    )
    enrichment_model: str = Field(
        default="google/gemini-2.0-flash-001",
        description="Model identifier sent to the chat-completion API",
    )
    enrichment_max_tokens: int = Field(default=3000, ge=1)
    enrichment_timeout: float = Field(default=60.0, gt=0)

    # Image generation
    sd_api_url: str = Field(
        default="http://127.0.0.1:7860",
        description="Base URL of the local txt2img API",
    )
    generation_timeout: float = Field(default=600.0, gt=0)

    # Storage
    use_custom_folder: bool = Field(
        default=False,
        description="Write images to custom_folder_path instead of the public directory",
    )
    custom_folder_path: Path = Field(
        default=Path.home() / "ai-generated",
        description="Absolute folder for generated images in custom folder mode",
    )
    public_dir: Path = Field(
        default=Path("public"),
        description="Public asset directory served by the API",
    )
    public_path: str = Field(
        default="/generated-images",
        description="URL prefix of generated images inside public_dir",
    )

    # Packaged assets
    data_dir: Path = Field(default=_PACKAGE_DIR / "data")
    templates_dir: Path = Field(default=_PACKAGE_DIR / "templates")
    static_dir: Path = Field(default=_PACKAGE_DIR / "static")

    # Accounts
    database_url: str = Field(
        default="sqlite+aiosqlite:///./animegen.db",
        description="SQLAlchemy async database URL",
    )
    database_echo: bool = Field(default=False)
    password_hash_rounds: int = Field(default=10, ge=4, le=31)
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET)
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60, ge=1)

    # Server
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=10000, ge=1024, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO")

    @property
    def images_dir(self) -> Path:
        """Directory that receives generated images for the active storage mode."""
        if self.use_custom_folder:
            return self.custom_folder_path
        return self.public_dir / self.public_path.strip("/")

    @property
    def styles_file(self) -> Path:
        return self.data_dir / "styles.json"


# Global configuration instance, loaded from ANIMEGEN_* variables and .env.
config = AnimegenConfig()
