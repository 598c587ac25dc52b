"""Pydantic models for narration requests and responses."""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ..services.job_registry import NarrationJob


class NarrationRequest(BaseModel):
    """Incoming narration submission.

    Title and text are optional at the schema level so that a missing value
    produces the service's own 400 error body instead of a 422.
    """

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    title: Optional[str] = None
    text: Optional[str] = None
    voice_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("voiceId", "voice", "voice_id"),
    )
    model_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("modelId", "model", "model_id"),
    )
    style_instructions: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "styleInstructions",
            "instructions",
            "style_instructions",
        ),
    )

    def is_complete(self) -> bool:
        return bool(self.title) and bool(self.text)

    def to_job(self, *, default_voice: str, default_model: str) -> NarrationJob:
        return NarrationJob(
            title=self.title or "",
            text=self.text or "",
            voice_id=(self.voice_id or "").strip() or default_voice,
            model_id=(self.model_id or "").strip() or default_model,
            style_instructions=self.style_instructions,
        )


class NarrationAccepted(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(alias="requestId")


class NarrationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    audio_base64: str = Field(alias="audioBase64")


class ErrorResponse(BaseModel):
    error: str


__all__ = [
    "ErrorResponse",
    "NarrationAccepted",
    "NarrationRequest",
    "NarrationResult",
]
