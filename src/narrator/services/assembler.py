"""Concatenate synthesized audio segments with ffmpeg."""

from __future__ import annotations

import asyncio
import logging
import re
import tempfile
from contextlib import suppress
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, TypeVar

from .errors import AssemblyError

logger = logging.getLogger(__name__)

_SEGMENT_PREFIX = "segment_"
_SEGMENT_PATTERN = re.compile(r"^segment_(\d+)$")
_MANIFEST_NAME = "manifest.txt"
_STDERR_TAIL_CHARS = 2000

_T = TypeVar("_T")


async def _run_in_thread(func: Callable[..., _T], *args: Any) -> _T:
    """Run blocking file I/O in a worker thread that outlives cancellation.

    A worker thread cannot be interrupted, so on cancellation this waits for
    it to stop touching the scratch directory before re-raising.
    """
    future = asyncio.ensure_future(asyncio.to_thread(func, *args))
    try:
        return await asyncio.shield(future)
    except asyncio.CancelledError:
        while not future.done():
            with suppress(asyncio.CancelledError):
                await asyncio.wait({future})
        if not future.cancelled():
            future.exception()
        raise


def _segment_index(path: Path) -> int:
    match = _SEGMENT_PATTERN.match(path.stem)
    if match is None:
        raise AssemblyError(f"Unexpected file in scratch directory: {path.name}")
    return int(match.group(1))


def _quote_concat_path(path: Path) -> str:
    # ffmpeg concat syntax: close the quote, emit an escaped quote, reopen
    escaped = str(path).replace("'", "'\\''")
    return f"'{escaped}'"


def build_manifest(segment_paths: Sequence[Path]) -> str:
    """Render an ffmpeg concat demuxer manifest for the given segments."""

    return "".join(f"file {_quote_concat_path(path)}\n" for path in segment_paths)


class FfmpegAssembler:
    """
    Join same-codec audio buffers into one file without re-encoding.

    Every call works inside a private temporary directory that holds the
    numbered segment files, the concat manifest and the output file. The
    directory is removed when the call returns or raises.
    """

    def __init__(
        self,
        binary: str = "ffmpeg",
        *,
        audio_format: str = "mp3",
        scratch_root: Optional[Path] = None,
    ) -> None:
        self.binary = binary
        self.audio_format = audio_format
        self.scratch_root = scratch_root

    def _write_segments(self, scratch_dir: Path, buffers: Sequence[bytes]) -> list[Path]:
        width = max(5, len(str(len(buffers))))
        for index, buffer in enumerate(buffers):
            name = f"{_SEGMENT_PREFIX}{index:0{width}d}.{self.audio_format}"
            (scratch_dir / name).write_bytes(buffer)

        # Directory listing order is arbitrary; order by the encoded index.
        segments = sorted(
            scratch_dir.glob(f"{_SEGMENT_PREFIX}*.{self.audio_format}"),
            key=_segment_index,
        )
        if [_segment_index(path) for path in segments] != list(range(len(buffers))):
            raise AssemblyError("Segment files do not match synthesized chunks")

        (scratch_dir / _MANIFEST_NAME).write_text(
            build_manifest(segments), encoding="utf-8"
        )
        return segments

    def build_command(self, manifest: Path, output: Path) -> list[str]:
        return [
            self.binary,
            "-hide_banner",
            "-nostdin",
            "-loglevel",
            "error",
            "-y",
            "-f",
            "concat",
            "-safe",
            "0",
            "-i",
            str(manifest),
            "-c",
            "copy",
            str(output),
        ]

    async def _run(self, command: list[str]) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise AssemblyError(f"Could not start {self.binary}: {exc}") from exc

        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            detail = detail[-_STDERR_TAIL_CHARS:]
            logger.error("ffmpeg exited %s: %s", process.returncode, detail)
            raise AssemblyError(f"ffmpeg exited {process.returncode}: {detail}")

    async def concatenate(self, buffers: Sequence[bytes]) -> bytes:
        """Return the concatenation of ``buffers`` in the order given."""

        if not buffers:
            raise AssemblyError("No audio segments to concatenate")
        if self.scratch_root is not None:
            self.scratch_root.mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory(
            prefix="narration-",
            dir=str(self.scratch_root) if self.scratch_root else None,
        ) as scratch:
            scratch_dir = Path(scratch)
            segments = await _run_in_thread(
                self._write_segments, scratch_dir, buffers
            )
            output = scratch_dir / f"narration.{self.audio_format}"

            logger.info("Concatenating %d audio segment(s)", len(segments))
            await self._run(self.build_command(scratch_dir / _MANIFEST_NAME, output))

            if not output.exists():
                raise AssemblyError("ffmpeg did not produce an output file")
            audio = await _run_in_thread(output.read_bytes)

        if not audio:
            raise AssemblyError("ffmpeg produced an empty output file")
        return audio


__all__ = ["FfmpegAssembler", "build_manifest"]
