"""In-memory holding area for submitted narration jobs."""

from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import JobNotFoundError

logger = logging.getLogger(__name__)

_ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_ID_SUFFIX_LENGTH = 11


@dataclass(frozen=True, slots=True)
class NarrationJob:
    """Everything needed to produce one narrated audio file."""

    title: str
    text: str
    voice_id: str
    model_id: str
    style_instructions: Optional[str] = None


def generate_request_id(clock: Callable[[], float] = time.time) -> str:
    """Return a millisecond timestamp followed by a random base-36 suffix."""

    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"{int(clock() * 1000)}{suffix}"


class JobRegistry:
    """
    Thread-safe map from request id to pending job.

    Jobs are claimed at most once: ``take_by_id`` removes the entry under the
    lock, so two concurrent claims for the same id cannot both succeed.
    """

    def __init__(self, id_factory: Callable[[], str] = generate_request_id) -> None:
        self._jobs: dict[str, NarrationJob] = {}
        self._lock = threading.Lock()
        self._id_factory = id_factory

    def put(self, job: NarrationJob) -> str:
        with self._lock:
            request_id = self._id_factory()
            while request_id in self._jobs:
                request_id = self._id_factory()
            self._jobs[request_id] = job
        logger.info("Registered narration job %s (%d chars)", request_id, len(job.text))
        return request_id

    def take_by_id(self, request_id: str) -> NarrationJob:
        with self._lock:
            job = self._jobs.pop(request_id, None)
        if job is None:
            raise JobNotFoundError(request_id)
        logger.info("Claimed narration job %s", request_id)
        return job

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, request_id: object) -> bool:
        with self._lock:
            return request_id in self._jobs


__all__ = ["JobRegistry", "NarrationJob", "generate_request_id"]
