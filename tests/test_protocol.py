"""goon wire protocol tests."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from porthole.errors import ProtocolError
from porthole.runtime.events import DataEvent
from porthole.runtime.protocol import (
    MAX_FRAME_SIZE,
    decode_frame,
    encode_input,
    handshake_flags,
    helper_argv,
    read_frame,
)
from porthole.sinks import Buffer, Discard, Merge
from porthole.sources import Literal, NoInput, Receive


def _reader(data: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


# =============================================================================
# Handshake
# =============================================================================


class TestHandshakeFlags:
    """Helper command-line flags."""

    def test_minimal(self):
        assert handshake_flags(NoInput(), Buffer(), Buffer()) == ["-proto", "0.0"]

    def test_input_flag(self):
        assert "-in" in handshake_flags(Literal(b"x"), Buffer(), Buffer())
        assert "-in" in handshake_flags(Receive(), Buffer(), Buffer())

    def test_discarded_streams(self):
        flags = handshake_flags(NoInput(), Discard(), Discard())
        assert flags == ["-proto", "0.0", "-out", "nil", "-err", "nil"]

    def test_merge_into_out(self):
        flags = handshake_flags(NoInput(), Buffer(), Merge())
        assert flags[-2:] == ["-err", "out"]

    def test_merge_with_discarded_out(self):
        flags = handshake_flags(NoInput(), Discard(), Merge())
        assert flags == ["-proto", "0.0", "-out", "nil", "-err", "nil"]

    def test_directory(self, tmp_path: Path):
        flags = handshake_flags(NoInput(), Buffer(), Buffer(), tmp_path)
        assert flags[-2:] == ["-dir", str(tmp_path)]

    def test_helper_argv(self):
        argv = helper_argv(["goon"], ["-proto", "0.0"], ["cat", "-n"])
        assert argv == ["goon", "-proto", "0.0", "--", "cat", "-n"]


# =============================================================================
# Input framing
# =============================================================================


class TestEncodeInput:
    """Frames sent to the helper."""

    def test_end_of_input(self):
        assert encode_input(b"") == [b"\x00\x00"]

    def test_small_payload(self):
        assert encode_input(b"Hello") == [b"\x00\x05Hello"]

    def test_split_large_payload(self):
        data = b"x" * (MAX_FRAME_SIZE + 10)
        frames = encode_input(data)
        assert len(frames) == 2
        assert frames[0][:2] == b"\xff\xff"
        assert frames[1] == b"\x00\x0a" + b"x" * 10
        assert b"".join(frame[2:] for frame in frames) == data


# =============================================================================
# Output frames
# =============================================================================


class TestReadFrame:
    """Frames received from the helper."""

    @pytest.mark.asyncio
    async def test_sequence_then_clean_eof(self):
        reader = _reader(b"\x00\x03oHi" + b"\x00\x04eerr")
        assert await read_frame(reader) == b"oHi"
        assert await read_frame(reader) == b"eerr"
        assert await read_frame(reader) is None

    @pytest.mark.asyncio
    async def test_truncated_header(self):
        with pytest.raises(ProtocolError):
            await read_frame(_reader(b"\x00"))

    @pytest.mark.asyncio
    async def test_truncated_body(self):
        with pytest.raises(ProtocolError, match="expected 5 bytes, got 2"):
            await read_frame(_reader(b"\x00\x05oH"))


class TestDecodeFrame:
    """Channel tags."""

    def test_out(self):
        assert decode_frame(b"oHello") == DataEvent("out", b"Hello")

    def test_err(self):
        assert decode_frame(b"eoops") == DataEvent("err", b"oops")

    def test_tag_only(self):
        assert decode_frame(b"o") == DataEvent("out", b"")

    def test_empty_frame(self):
        with pytest.raises(ProtocolError):
            decode_frame(b"")

    def test_unknown_tag(self):
        with pytest.raises(ProtocolError, match="Unknown channel tag"):
            decode_frame(b"xdata")
