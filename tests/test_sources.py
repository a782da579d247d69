"""Source resolution tests."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from porthole.errors import InvalidOptions
from porthole.sources import (
    RECEIVE,
    ChunkStream,
    FilePath,
    Literal,
    NoInput,
    OpenFile,
    Receive,
    chunk_to_bytes,
    resolve_source,
)


class TestResolveSource:
    """resolve_source."""

    def test_none_is_no_input(self):
        assert resolve_source(None) == NoInput()

    def test_bytes_literal(self):
        assert resolve_source(b"abc") == Literal(b"abc")

    def test_bytearray_literal(self):
        assert resolve_source(bytearray(b"abc")) == Literal(b"abc")

    def test_text_literal_is_utf8(self):
        assert resolve_source("héllo") == Literal("héllo".encode("utf-8"))

    def test_open_file(self):
        handle = io.BytesIO(b"data")
        source = resolve_source(handle)
        assert isinstance(source, OpenFile)
        assert source.handle is handle

    def test_path(self, tmp_path: Path):
        path = tmp_path / "input.bin"
        assert resolve_source(path) == FilePath(path)

    def test_iterable(self):
        chunks = [b"a", b"b"]
        source = resolve_source(chunks)
        assert isinstance(source, ChunkStream)
        assert source.chunks is chunks

    def test_async_iterable(self):
        async def gen():
            yield b"a"

        source = resolve_source(gen())
        assert isinstance(source, ChunkStream)

    def test_variants_pass_through(self):
        assert resolve_source(RECEIVE) is RECEIVE
        assert isinstance(RECEIVE, Receive)

    def test_invalid(self):
        with pytest.raises(InvalidOptions):
            resolve_source(42)


class TestChunkToBytes:
    """chunk_to_bytes."""

    def test_single_byte_value(self):
        assert chunk_to_bytes(65) == b"A"

    def test_text(self):
        assert chunk_to_bytes("é") == "é".encode("utf-8")

    def test_memoryview(self):
        assert chunk_to_bytes(memoryview(b"xy")) == b"xy"

    def test_unsupported(self):
        with pytest.raises(TypeError):
            chunk_to_bytes(1.5)
