"""Split long narration text into provider-sized chunks."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_MAX_CHARS = 4000
SENTENCE_DELIMITER = "."


def split_text(text: str, max_len: int = DEFAULT_CHUNK_MAX_CHARS) -> list[str]:
    """
    Split text into ordered chunks of at most ``max_len`` characters.

    Each cut lands right after the last period that fits in the window when
    one exists past the chunk start, otherwise at the hard length boundary.
    Joining the returned chunks gives back ``text`` unchanged.

    Args:
        text: Text to split. Empty text yields no chunks.
        max_len: Maximum characters per chunk.

    Returns:
        List of non-empty chunks in text order.
    """
    if max_len < 1:
        raise ValueError(f"max_len must be positive, got {max_len}")

    chunks: list[str] = []
    start = 0
    length = len(text)

    while start < length:
        end = min(start + max_len, length)
        if end < length:
            period = text.rfind(SENTENCE_DELIMITER, start, end)
            if period > start:
                end = period + 1
        chunks.append(text[start:end])
        start = end

    logger.debug("Split %d chars into %d chunk(s)", length, len(chunks))
    return chunks


__all__ = ["DEFAULT_CHUNK_MAX_CHARS", "split_text"]
