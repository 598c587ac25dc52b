"""Chunk, synthesize and assemble a narration job while reporting progress."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional, Protocol, Sequence

from .chunker import DEFAULT_CHUNK_MAX_CHARS, split_text
from .errors import NarrationError
from .job_registry import NarrationJob
from .progress import ProgressChannel
from .synthesis import SpeechSynthesizer

logger = logging.getLogger(__name__)

STATUS_SPLITTING = "Splitting text into chunks..."
STATUS_CONCATENATING = "Concatenating audio chunks..."
STATUS_DONE = "Audio generated successfully."
FAILURE_MESSAGE = "Failed to generate audio."


def chunk_status(index: int, total: int) -> str:
    return f"Generating chunk {index + 1} of {total}..."


class AudioAssembler(Protocol):
    async def concatenate(self, buffers: Sequence[bytes]) -> bytes: ...


class NarrationPipeline:
    """
    Turn a job into one audio file.

    Stages run strictly in sequence: the text is chunked, each chunk is
    synthesized one at a time in text order, and the segments are then
    concatenated. The first failure aborts the job.
    """

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        assembler: AudioAssembler,
        *,
        chunk_max_chars: int = DEFAULT_CHUNK_MAX_CHARS,
    ) -> None:
        self.synthesizer = synthesizer
        self.assembler = assembler
        self.chunk_max_chars = chunk_max_chars

    async def generate(
        self,
        job: NarrationJob,
        channel: Optional[ProgressChannel] = None,
    ) -> bytes:
        """Produce the final audio, raising on the first collaborator error."""

        def report(message: str) -> None:
            if channel is not None:
                channel.status(message)

        start_time = time.monotonic()

        report(STATUS_SPLITTING)
        chunks = split_text(job.text, self.chunk_max_chars)
        if not chunks:
            raise NarrationError("Narration text is empty")

        segments: list[bytes] = []
        for index, chunk in enumerate(chunks):
            report(chunk_status(index, len(chunks)))
            audio = await self.synthesizer.synthesize(
                chunk,
                voice_id=job.voice_id,
                model_id=job.model_id,
                style_instructions=job.style_instructions,
            )
            segments.append(audio)

        report(STATUS_CONCATENATING)
        result = await self.assembler.concatenate(segments)

        elapsed = (time.monotonic() - start_time) * 1000
        logger.info(
            "Narration '%s' complete: %d chunk(s), %d bytes in %.0fms",
            job.title,
            len(chunks),
            len(result),
            elapsed,
        )
        return result

    async def run(self, job: NarrationJob, channel: ProgressChannel) -> None:
        """
        Run the job, always finishing ``channel`` with one terminal event.

        Failures become a single error event; cancellation closes the channel
        without one since nobody is listening anymore.
        """
        try:
            audio = await self.generate(job, channel)
        except asyncio.CancelledError:
            logger.info("Narration '%s' cancelled", job.title)
            channel.close()
            raise
        except NarrationError as exc:
            logger.error("Error generating audio for '%s': %s", job.title, exc)
            channel.fail(FAILURE_MESSAGE)
            return
        except Exception:
            logger.exception("Unexpected error generating audio for '%s'", job.title)
            channel.fail(FAILURE_MESSAGE)
            return

        channel.status(STATUS_DONE)
        channel.succeed(job.title, audio)


__all__ = [
    "AudioAssembler",
    "FAILURE_MESSAGE",
    "NarrationPipeline",
    "chunk_status",
]
