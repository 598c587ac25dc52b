"""Typed progress events and the per-job channel that carries them."""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StatusEvent:
    message: str

    terminal = False

    def to_payload(self) -> dict[str, Any]:
        return {"status": self.message}


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    message: str

    terminal = True

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


@dataclass(frozen=True, slots=True)
class ResultEvent:
    title: str
    audio: bytes

    terminal = True

    def to_payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "audioBase64": base64.b64encode(self.audio).decode("ascii"),
        }


ProgressEvent = Union[StatusEvent, ErrorEvent, ResultEvent]


class ProgressChannel:
    """
    Single-producer, single-consumer queue of progress events for one job.

    The producer publishes any number of status events followed by exactly
    one terminal event (error or result). Once a terminal event is queued, or
    the channel is closed, further events are dropped. Iterating the channel
    yields events through the terminal one and then stops.
    """

    _CLOSED = object()

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: ProgressEvent) -> bool:
        if self._closed:
            logger.debug("Dropping %s published after channel close", type(event).__name__)
            return False
        self._queue.put_nowait(event)
        if event.terminal:
            self.close()
        return True

    def status(self, message: str) -> bool:
        logger.info("Narration status: %s", message)
        return self.publish(StatusEvent(message))

    def fail(self, message: str) -> bool:
        return self.publish(ErrorEvent(message))

    def succeed(self, title: str, audio: bytes) -> bool:
        return self.publish(ResultEvent(title, audio))

    def close(self) -> None:
        """Stop accepting events; the consumer drains what is already queued."""

        if not self._closed:
            self._closed = True
            self._queue.put_nowait(self._CLOSED)

    async def next_event(self) -> Optional[ProgressEvent]:
        item = await self._queue.get()
        if item is self._CLOSED:
            # Keep the sentinel so repeated reads after close also return None.
            self._queue.put_nowait(item)
            return None
        return item

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        while True:
            event = await self.next_event()
            if event is None:
                return
            yield event


__all__ = [
    "ErrorEvent",
    "ProgressChannel",
    "ProgressEvent",
    "ResultEvent",
    "StatusEvent",
]
