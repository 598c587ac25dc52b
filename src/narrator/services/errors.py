"""Error types raised by the narration pipeline."""

from __future__ import annotations


class NarrationError(RuntimeError):
    """Base class for failures that abort a single narration job."""


class ProviderError(NarrationError):
    """Raised when the speech provider fails to synthesize a chunk."""


class AssemblyError(NarrationError):
    """Raised when audio segments cannot be concatenated."""


class JobNotFoundError(NarrationError):
    """Raised when a request id is unknown or was already claimed."""

    def __init__(self, request_id: str):
        super().__init__(request_id)
        self.request_id = request_id

    def __str__(self) -> str:
        return f"No pending narration job for request id {self.request_id!r}"


__all__ = [
    "AssemblyError",
    "JobNotFoundError",
    "NarrationError",
    "ProviderError",
]
