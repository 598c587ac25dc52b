"""Application factory for the FastAPI service."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from .config import get_settings
from .routers.narration import router as narration_router
from .services.assembler import FfmpegAssembler
from .services.job_registry import JobRegistry
from .services.pipeline import AudioAssembler, NarrationPipeline
from .services.synthesis import OpenAISpeechSynthesizer, SpeechSynthesizer


def _configure_logging() -> None:
    """Configure logging based on LOG_LEVEL environment variable."""
    # Load .env file first to ensure LOG_FILE is available
    load_dotenv()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handlers: list[logging.Handler] = []

    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    logging.getLogger("narrator").setLevel(log_level)
    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)
    logging.getLogger("uvicorn.error").setLevel(log_level)

    # Request bodies carry whole chunks of text; keep client chatter quiet
    if log_level > logging.DEBUG:
        for name in ("httpx", "httpcore", "openai"):
            logging.getLogger(name).setLevel(logging.WARNING)


def create_app(
    *,
    synthesizer: Optional[SpeechSynthesizer] = None,
    assembler: Optional[AudioAssembler] = None,
) -> FastAPI:
    # Configure logging first thing
    _configure_logging()

    settings = get_settings()

    owned_synthesizer: Optional[OpenAISpeechSynthesizer] = None
    if synthesizer is None:
        owned_synthesizer = OpenAISpeechSynthesizer(
            api_key=(
                settings.openai_api_key.get_secret_value()
                if settings.openai_api_key
                else None
            ),
            base_url=str(settings.openai_base_url) if settings.openai_base_url else None,
            timeout=settings.request_timeout,
            response_format=settings.tts_response_format,
            style_models=settings.style_instruction_models,
        )
        synthesizer = owned_synthesizer

    if assembler is None:
        assembler = FfmpegAssembler(
            settings.ffmpeg_binary,
            audio_format=settings.tts_response_format,
            scratch_root=settings.scratch_dir,
        )

    job_registry = JobRegistry()
    pipeline = NarrationPipeline(
        synthesizer,
        assembler,
        chunk_max_chars=settings.chunk_max_chars,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.info(
            "Narration service ready (model=%s, voice=%s, ffmpeg=%s)",
            settings.default_tts_model,
            settings.default_tts_voice,
            settings.ffmpeg_binary,
        )
        try:
            yield
        finally:
            if owned_synthesizer is not None:
                try:
                    await owned_synthesizer.aclose()
                except Exception as exc:
                    logging.warning("Error closing speech client: %s", exc)

    app = FastAPI(
        title="Narration Backend",
        version="0.1.0",
        description="Chunked text-to-speech narration with streamed progress.",
        lifespan=lifespan,
    )

    app.state.job_registry = job_registry
    app.state.narration_pipeline = pipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(narration_router)

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    async def root() -> str:
        return "TTS API is ready."

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, str | int]:
        return {
            "status": "ok",
            "pending_jobs": len(job_registry),
            "default_model": settings.default_tts_model,
            "default_voice": settings.default_tts_voice,
        }

    return app


__all__ = ["create_app"]
