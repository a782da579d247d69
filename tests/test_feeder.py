"""Input feeder tests."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from porthole.runtime.feeder import feed_input
from porthole.sources import ChunkStream, FilePath, Literal, NoInput, OpenFile, Receive


class TestFeedInput:
    """feed_input against an in-memory channel."""

    @pytest.mark.asyncio
    async def test_no_input_writes_nothing(self, fake_channel):
        await feed_input(fake_channel, NoInput())
        assert fake_channel.writes == []

    @pytest.mark.asyncio
    async def test_receive_writes_nothing(self, fake_channel):
        await feed_input(fake_channel, Receive())
        assert fake_channel.writes == []

    @pytest.mark.asyncio
    async def test_literal_then_end_of_input(self, fake_channel):
        await feed_input(fake_channel, Literal(b"Hello world!"))
        assert fake_channel.writes == [b"Hello world!", b""]

    @pytest.mark.asyncio
    async def test_file_path_in_blocks(self, fake_channel, tmp_path: Path):
        path = tmp_path / "input.bin"
        path.write_bytes(b"abcdefghij")
        await feed_input(fake_channel, FilePath(path), block_size=4)
        assert fake_channel.writes == [b"abcd", b"efgh", b"ij", b""]

    @pytest.mark.asyncio
    async def test_open_file_left_open(self, fake_channel):
        handle = io.BytesIO(b"payload")
        await feed_input(fake_channel, OpenFile(handle))
        assert fake_channel.writes == [b"payload", b""]
        assert not handle.closed

    @pytest.mark.asyncio
    async def test_chunk_stream(self, fake_channel):
        await feed_input(fake_channel, ChunkStream([b"a", "é", 66]))
        assert fake_channel.writes == [b"a", "é".encode("utf-8"), b"B", b""]

    @pytest.mark.asyncio
    async def test_async_chunk_stream(self, fake_channel):
        async def chunks():
            yield b"Hello"
            yield b"\nWorld"

        await feed_input(fake_channel, ChunkStream(chunks()))
        assert fake_channel.writes == [b"Hello", b"\nWorld", b""]

    @pytest.mark.asyncio
    async def test_process_gone_stops_quietly(self, fake_channel):
        def chunks():
            yield b"first"
            fake_channel.closed = True
            yield b"second"

        await feed_input(fake_channel, ChunkStream(chunks()))
        assert fake_channel.writes == [b"first"]

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, fake_channel, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            await feed_input(fake_channel, FilePath(tmp_path / "missing"))

    @pytest.mark.asyncio
    async def test_unknown_source(self, fake_channel):
        with pytest.raises(TypeError):
            await feed_input(fake_channel, object())
