"""Chunked text-to-speech narration service."""
