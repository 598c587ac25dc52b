"""Tests for ffmpeg-based segment concatenation."""

from __future__ import annotations

import asyncio
import os
import threading
from pathlib import Path

import pytest

from narrator.services.assembler import FfmpegAssembler, build_manifest
from narrator.services.errors import AssemblyError


@pytest.mark.asyncio
async def test_concatenates_segments_in_order(fake_ffmpeg: Path, tmp_path: Path) -> None:
    scratch = tmp_path / "scratch"
    assembler = FfmpegAssembler(str(fake_ffmpeg), scratch_root=scratch)

    result = await assembler.concatenate([b"\x01", b"\x02"])

    assert result == b"\x01\x02"


@pytest.mark.asyncio
async def test_order_survives_more_than_ten_segments(
    fake_ffmpeg: Path, tmp_path: Path
) -> None:
    assembler = FfmpegAssembler(str(fake_ffmpeg), scratch_root=tmp_path / "scratch")
    buffers = [bytes([index]) for index in range(1, 13)]

    result = await assembler.concatenate(buffers)

    assert result == bytes(range(1, 13))


@pytest.mark.asyncio
async def test_scratch_directory_removed_after_success(
    fake_ffmpeg: Path, tmp_path: Path
) -> None:
    scratch = tmp_path / "scratch"
    assembler = FfmpegAssembler(str(fake_ffmpeg), scratch_root=scratch)

    await assembler.concatenate([b"a", b"b", b"c"])

    assert list(scratch.iterdir()) == []


@pytest.mark.asyncio
async def test_tool_failure_raises_and_cleans_up(
    failing_ffmpeg: Path, tmp_path: Path
) -> None:
    scratch = tmp_path / "scratch"
    assembler = FfmpegAssembler(str(failing_ffmpeg), scratch_root=scratch)

    with pytest.raises(AssemblyError) as excinfo:
        await assembler.concatenate([b"a", b"b"])

    assert "exited 1" in str(excinfo.value)
    assert "invalid data" in str(excinfo.value)
    assert list(scratch.iterdir()) == []


@pytest.mark.asyncio
async def test_missing_binary_raises_assembly_error(tmp_path: Path) -> None:
    scratch = tmp_path / "scratch"
    assembler = FfmpegAssembler(
        str(tmp_path / "no-such-ffmpeg"), scratch_root=scratch
    )

    with pytest.raises(AssemblyError):
        await assembler.concatenate([b"a"])

    assert list(scratch.iterdir()) == []


@pytest.mark.asyncio
async def test_empty_buffer_list_is_rejected() -> None:
    with pytest.raises(AssemblyError):
        await FfmpegAssembler().concatenate([])


@pytest.mark.asyncio
async def test_cancel_while_writing_segments_waits_and_cleans_up(
    tmp_path: Path,
) -> None:
    started = threading.Event()
    release = threading.Event()

    class BlockingWriteAssembler(FfmpegAssembler):
        def _write_segments(self, scratch_dir, buffers):
            (scratch_dir / "partial.mp3").write_bytes(b"x")
            started.set()
            release.wait(5)
            (scratch_dir / "partial.mp3").unlink()
            return super()._write_segments(scratch_dir, buffers)

    scratch = tmp_path / "scratch"
    assembler = BlockingWriteAssembler("ffmpeg", scratch_root=scratch)
    task = asyncio.create_task(assembler.concatenate([b"a", b"b"]))
    await asyncio.to_thread(started.wait, 5)

    task.cancel()
    await asyncio.sleep(0.05)
    assert not task.done()

    release.set()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert list(scratch.iterdir()) == []


@pytest.mark.asyncio
async def test_cancel_kills_ffmpeg_and_cleans_up(
    slow_ffmpeg: Path, tmp_path: Path
) -> None:
    scratch = tmp_path / "scratch"
    pid_file = tmp_path / "ffmpeg.pid"
    assembler = FfmpegAssembler(str(slow_ffmpeg), scratch_root=scratch)
    task = asyncio.create_task(assembler.concatenate([b"a", b"b"]))

    for _ in range(500):
        if pid_file.exists() and pid_file.read_text():
            break
        await asyncio.sleep(0.01)
    pid = int(pid_file.read_text())

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)
    assert list(scratch.iterdir()) == []

def test_manifest_lists_paths_and_escapes_quotes() -> None:
    manifest = build_manifest([Path("/tmp/a/segment_0.mp3"), Path("/tmp/it's/b.mp3")])

    assert manifest == (
        "file '/tmp/a/segment_0.mp3'\n"
        "file '/tmp/it'\\''s/b.mp3'\n"
    )


def test_command_uses_concat_demuxer_with_stream_copy() -> None:
    assembler = FfmpegAssembler("ffmpeg")

    command = assembler.build_command(Path("list.txt"), Path("out.mp3"))

    assert command[0] == "ffmpeg"
    assert command[command.index("-f") + 1] == "concat"
    assert command[command.index("-i") + 1] == "list.txt"
    assert command[command.index("-c") + 1] == "copy"
    assert command[-1] == "out.mp3"
