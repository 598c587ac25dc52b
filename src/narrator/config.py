"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, AnyHttpUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "openai_api_key"),
    )
    openai_base_url: Optional[AnyHttpUrl] = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_BASE_URL", "openai_base_url"),
    )
    request_timeout: float = Field(
        default=120.0,
        validation_alias=AliasChoices("OPENAI_TIMEOUT", "timeout"),
        ge=1,
    )

    default_tts_model: str = Field(
        default="gpt-4o-mini-tts",
        validation_alias=AliasChoices("TTS_DEFAULT_MODEL", "default_tts_model"),
    )
    default_tts_voice: str = Field(
        default="alloy",
        validation_alias=AliasChoices("TTS_DEFAULT_VOICE", "default_tts_voice"),
    )
    tts_response_format: str = Field(
        default="mp3",
        validation_alias=AliasChoices("TTS_RESPONSE_FORMAT", "tts_response_format"),
    )
    style_instruction_models: list[str] = Field(
        default_factory=lambda: ["gpt-4o-mini-tts"],
        validation_alias=AliasChoices(
            "STYLE_INSTRUCTION_MODELS",
            "style_instruction_models",
        ),
        description=(
            "Model name prefixes that accept free-form style instructions."
        ),
    )

    chunk_max_chars: int = Field(
        default=4000,
        ge=1,
        validation_alias=AliasChoices("CHUNK_MAX_CHARS", "chunk_max_chars"),
    )

    ffmpeg_binary: str = Field(
        default="ffmpeg",
        validation_alias=AliasChoices("FFMPEG_BINARY", "ffmpeg_binary"),
    )
    scratch_dir: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("NARRATION_SCRATCH_DIR", "scratch_dir"),
    )

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS", "cors_allow_origins"),
    )
    host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("HOST", "host"),
    )
    port: int = Field(
        default=5000,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("PORT", "port"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["Settings", "get_settings"]
