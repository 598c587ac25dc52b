"""
Narration services package.

    text ──▶ chunker ──▶ synthesis (one chunk at a time) ──▶ assembler
                              │                                  │
                              ▼                                  ▼
                        ProgressChannel ◀──────── status / result / error

- chunker: splits text at sentence periods within a length bound
- synthesis: OpenAI speech client and the SpeechSynthesizer protocol
- assembler: ffmpeg stream-copy concatenation in a scratch directory
- job_registry: pending jobs keyed by request id, claimed at most once
- progress: typed progress events and the per-job channel
- pipeline: runs the stages in order and reports progress
"""

from .assembler import FfmpegAssembler
from .chunker import split_text
from .errors import AssemblyError, JobNotFoundError, NarrationError, ProviderError
from .job_registry import JobRegistry, NarrationJob
from .pipeline import NarrationPipeline
from .progress import ErrorEvent, ProgressChannel, ResultEvent, StatusEvent
from .synthesis import OpenAISpeechSynthesizer, SpeechSynthesizer

__all__ = [
    "AssemblyError",
    "ErrorEvent",
    "FfmpegAssembler",
    "JobNotFoundError",
    "JobRegistry",
    "NarrationError",
    "NarrationJob",
    "NarrationPipeline",
    "OpenAISpeechSynthesizer",
    "ProgressChannel",
    "ProviderError",
    "ResultEvent",
    "SpeechSynthesizer",
    "StatusEvent",
    "split_text",
]
