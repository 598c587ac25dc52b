"""Narration submission and progress streaming routes."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from ..config import Settings, get_settings
from ..schemas.narration import (
    NarrationAccepted,
    NarrationRequest,
    NarrationResult,
)
from ..services.errors import JobNotFoundError, NarrationError
from ..services.job_registry import JobRegistry
from ..services.pipeline import FAILURE_MESSAGE, NarrationPipeline
from ..services.progress import ProgressChannel

logger = logging.getLogger(__name__)
router = APIRouter(tags=["narration"])

MISSING_FIELDS_MESSAGE = "Title and text are required."
MISSING_REQUEST_ID_MESSAGE = "requestId parameter is required."
UNKNOWN_REQUEST_ID_MESSAGE = "No data found for the given requestId."


def get_job_registry(request: Request) -> JobRegistry:
    return request.app.state.job_registry


def get_narration_pipeline(request: Request) -> NarrationPipeline:
    return request.app.state.narration_pipeline


def _sse_data(payload: dict[str, Any]) -> dict[str, str]:
    return {"data": json.dumps(payload)}


def _error_stream(message: str, status_code: int) -> EventSourceResponse:
    async def publisher():
        yield _sse_data({"error": message})

    return EventSourceResponse(publisher(), status_code=status_code)


@router.post(
    "/initiate-audio-generation",
    response_model=NarrationAccepted,
    responses={400: {"description": MISSING_FIELDS_MESSAGE}},
)
async def initiate_audio_generation(
    payload: NarrationRequest,
    registry: JobRegistry = Depends(get_job_registry),
    settings: Settings = Depends(get_settings),
) -> Any:
    """Store a narration job and return the id used to stream its progress."""

    if not payload.is_complete():
        return JSONResponse(status_code=400, content={"error": MISSING_FIELDS_MESSAGE})

    job = payload.to_job(
        default_voice=settings.default_tts_voice,
        default_model=settings.default_tts_model,
    )
    request_id = registry.put(job)
    return NarrationAccepted(request_id=request_id)


@router.get("/generate-audio-stream", response_model=None)
async def stream_audio_generation(
    request_id: Optional[str] = Query(default=None, alias="requestId"),
    registry: JobRegistry = Depends(get_job_registry),
    pipeline: NarrationPipeline = Depends(get_narration_pipeline),
) -> EventSourceResponse:
    """Run a submitted job and stream status, error and result events."""

    if not request_id:
        return _error_stream(MISSING_REQUEST_ID_MESSAGE, status_code=400)

    try:
        job = registry.take_by_id(request_id)
    except JobNotFoundError as exc:
        logger.warning("%s", exc)
        return _error_stream(UNKNOWN_REQUEST_ID_MESSAGE, status_code=404)

    async def event_publisher():
        channel = ProgressChannel()
        task = asyncio.create_task(pipeline.run(job, channel))
        try:
            async for event in channel:
                yield _sse_data(event.to_payload())
        finally:
            if not task.done():
                logger.info("Stream for %s closed early; cancelling job", request_id)
                task.cancel()

    return EventSourceResponse(event_publisher())


@router.post(
    "/generate-audio",
    response_model=NarrationResult,
    responses={
        400: {"description": MISSING_FIELDS_MESSAGE},
        502: {"description": FAILURE_MESSAGE},
    },
)
async def generate_audio(
    payload: NarrationRequest,
    pipeline: NarrationPipeline = Depends(get_narration_pipeline),
    settings: Settings = Depends(get_settings),
) -> Any:
    """Produce the narration in one request, without progress events."""

    if not payload.is_complete():
        return JSONResponse(status_code=400, content={"error": MISSING_FIELDS_MESSAGE})

    job = payload.to_job(
        default_voice=settings.default_tts_voice,
        default_model=settings.default_tts_model,
    )
    try:
        audio = await pipeline.generate(job)
    except NarrationError as exc:
        logger.error("Error generating audio for '%s': %s", job.title, exc)
        return JSONResponse(status_code=502, content={"error": FAILURE_MESSAGE})
    except Exception:
        logger.exception("Unexpected error generating audio for '%s'", job.title)
        return JSONResponse(status_code=502, content={"error": FAILURE_MESSAGE})

    return NarrationResult(
        title=job.title,
        audio_base64=base64.b64encode(audio).decode("ascii"),
    )


__all__ = ["get_job_registry", "get_narration_pipeline", "router"]
