"""
Tests for the single-dot terminator filter and message stream.
"""

import io
import pytest
from unittest.mock import MagicMock
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from domain.dotstop import DotStopReader, MessageStream, MIN_READ_SIZE
from domain.errors import FilterContractViolation
from domain.models import FilterState


class ChunkedSource:
    """Byte source that returns at most `chunk` bytes per read, like a pipe or TTY."""

    def __init__(self, data: bytes, chunk: int):
        self.data = data
        self.chunk = chunk
        self.pos = 0
        self.reads = 0

    def read1(self, size: int) -> bytes:
        self.reads += 1
        n = min(size, self.chunk)
        out = self.data[self.pos:self.pos + n]
        self.pos += len(out)
        return out


def read_all(reader, size: int) -> bytes:
    """Drain reader using a fixed destination buffer size."""
    out = bytearray()
    buf = bytearray(size)
    while True:
        n = reader.readinto(buf)
        if n == 0:
            return bytes(out)
        out += buf[:n]


class TestTerminator:
    """Test detection and removal of the single-dot line."""

    def test_crlf_terminator_stripped(self):
        """Test the break-dot-break bytes are removed and the trailer dropped."""
        reader = DotStopReader(io.BytesIO(b"Hello\r\n.\r\nworld"))

        assert reader.read() == b"Hello\r"
        assert reader.state is FilterState.DONE

    def test_lf_terminator_stripped(self):
        """Test a Unix-style terminator line."""
        reader = DotStopReader(io.BytesIO(b"line one\nline two\n.\ntrailer\n"))

        assert reader.read() == b"line one\nline two"

    def test_double_dot_is_false_alarm(self):
        """Test a line holding two dots does not end the message."""
        data = b"a\r\n..\r\nb"
        reader = DotStopReader(io.BytesIO(data))

        assert reader.read() == data
        assert reader.state is not FilterState.DONE

    def test_double_dot_then_real_terminator(self):
        """Test scanning resumes after a false alarm."""
        reader = DotStopReader(io.BytesIO(b"a\n..\nb\n.\nc"))

        assert reader.read() == b"a\n..\nb"

    def test_dot_inside_line_not_terminator(self):
        """Test a dot followed by more text on the same line is ordinary data."""
        data = b"see you\n.later\nbye\n"
        reader = DotStopReader(io.BytesIO(data))

        assert reader.read() == data

    def test_dot_on_first_line_without_preceding_break(self):
        """Test a leading dot line is delivered (no line break seen yet)."""
        data = b".\nrest"
        reader = DotStopReader(io.BytesIO(data))

        assert reader.read() == data

    def test_blank_line_then_dot_ends_immediately(self):
        """Test a body that is just the terminator yields nothing."""
        reader = DotStopReader(io.BytesIO(b"\n.\nignored"))

        assert reader.read() == b""
        assert reader.state is FilterState.DONE


class TestPassthrough:
    """Test input without a terminator is delivered whole."""

    @pytest.mark.parametrize("data", [
        b"",
        b"plain text without newline",
        b"Hello\n",
        b"Hello\r\n",
        b"ends with break and dot\n.",
        b"multiple\n\nblank\r\n\r\nlines\n",
    ])
    @pytest.mark.parametrize("size", [4, 5, 8, 4096])
    def test_no_terminator_passthrough(self, data, size):
        """Test output equals input and end-of-stream only at source end."""
        source = ChunkedSource(data, chunk=3)
        reader = DotStopReader(source)

        assert read_all(reader, size) == data
        assert source.pos == len(data)

    def test_trailing_break_not_lost_at_end_of_input(self):
        """Test withheld bytes are flushed when the source ends."""
        reader = DotStopReader(ChunkedSource(b"x\n", chunk=1))

        assert read_all(reader, MIN_READ_SIZE) == b"x\n"


class TestChunkBoundaries:
    """Test results do not depend on how the input is fragmented."""

    DATA = b"first\r\nsecond ..\r\n..\r\nthird\r\n.\r\nnot body\r\n"
    EXPECTED = b"first\r\nsecond ..\r\n..\r\nthird\r"

    @pytest.mark.parametrize("chunk", [1, 2, 3, 4, 5, 7, 11, 64])
    @pytest.mark.parametrize("size", [4, 5, 6, 9, 16, 1024])
    def test_chunk_size_independence(self, chunk, size):
        """Test identical output for every fragment and buffer size."""
        reader = DotStopReader(ChunkedSource(self.DATA, chunk=chunk))

        assert read_all(reader, size) == self.EXPECTED

    @pytest.mark.parametrize("split", range(1, 8))
    def test_terminator_split_across_reads(self, split):
        """Test a terminator cut at each position is still found."""
        data = b"abc\n.\nxyz"

        class TwoPartSource:
            def __init__(self):
                self.parts = [data[:split], data[split:]]

            def read(self, size):
                if not self.parts:
                    return b""
                part = self.parts[0][:size]
                self.parts[0] = self.parts[0][size:]
                if not self.parts[0]:
                    self.parts.pop(0)
                return part

        reader = DotStopReader(TwoPartSource())

        assert read_all(reader, MIN_READ_SIZE) == b"abc"

    def test_withheld_bytes_delivered_on_false_alarm(self):
        """Test bytes held back for a possible terminator reach the caller."""
        reader = DotStopReader(ChunkedSource(b"ab\n.x\n", chunk=4))
        buf = bytearray(MIN_READ_SIZE)

        n = reader.readinto(buf)
        assert bytes(buf[:n]) == b"ab"
        assert reader.state is FilterState.SAW_DOT

        assert read_all(reader, MIN_READ_SIZE) == b"\n.x\n"


class TestReadContract:
    """Test the minimum buffer size precondition and end-of-stream behavior."""

    @pytest.mark.parametrize("size", [0, 1, 2, 3])
    def test_undersized_buffer_raises(self, size):
        """Test a buffer under 4 bytes fails loudly without reading."""
        source = ChunkedSource(b"data\n.\n", chunk=8)
        reader = DotStopReader(source)

        with pytest.raises(FilterContractViolation):
            reader.readinto(bytearray(size))

        assert source.reads == 0
        assert reader.state is FilterState.IDLE

    def test_small_read_call_raises(self):
        """Test read(n) with n < 4 goes through the same check."""
        reader = DotStopReader(io.BytesIO(b"data"))

        with pytest.raises(FilterContractViolation):
            reader.read(2)

    def test_source_not_read_after_terminator(self):
        """Test later reads return end-of-stream without touching the source."""
        source = MagicMock()
        source.read1.side_effect = [b"body\n.\ntrailer"]
        reader = DotStopReader(source)

        assert read_all(reader, 64) == b"body"
        assert reader.readinto(bytearray(64)) == 0
        assert source.read1.call_count == 1

    def test_uses_read_when_source_has_no_read1(self):
        """Test plain read() sources are supported."""
        class PlainSource:
            def __init__(self):
                self.buf = io.BytesIO(b"hi\n.\n")

            def read(self, size):
                return self.buf.read(size)

        reader = DotStopReader(PlainSource())

        assert reader.read() == b"hi"


class TestMessageStream:
    """Test concatenation of header and body readers."""

    def test_reads_parts_in_order(self):
        """Test parts are read one after the other."""
        stream = MessageStream(io.BytesIO(b"Subject: hi\n\n"), io.BytesIO(b"body\n"))

        assert stream.read() == b"Subject: hi\n\nbody\n"

    def test_with_filtered_body(self):
        """Test a filtered body ends the combined stream at the terminator."""
        body = DotStopReader(io.BytesIO(b"body\n.\nafter"))
        stream = MessageStream(io.BytesIO(b"Subject: hi\n\n"), body)

        assert stream.read() == b"Subject: hi\n\nbody"

    def test_empty_parts_skipped(self):
        """Test empty parts do not end the stream early."""
        stream = MessageStream(io.BytesIO(b""), io.BytesIO(b"x"), io.BytesIO(b""))

        assert stream.read() == b"x"
