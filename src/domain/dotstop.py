"""
Streaming readers used to build the outgoing message.

DotStopReader ends a message body at the traditional interactive terminator,
a line containing only a dot. MessageStream joins the serialized header block
and the body into the single stream handed to the delivery gateway.
"""

import io
import logging
from typing import BinaryIO

from .errors import FilterContractViolation
from .models import FilterState

logger = logging.getLogger(__name__)

# Room for up to 2 carried bytes plus at least 2 fresh ones
MIN_READ_SIZE = 4

LINE_BREAKS = (ord('\r'), ord('\n'))
DOT = ord('.')


def _advance(state: FilterState, byte: int) -> FilterState:
    """Apply one byte to the terminator state machine."""
    if state is FilterState.IDLE:
        if byte in LINE_BREAKS:
            return FilterState.SAW_BREAK
        return FilterState.IDLE
    if state is FilterState.SAW_BREAK:
        if byte in LINE_BREAKS:
            return FilterState.SAW_BREAK
        if byte == DOT:
            return FilterState.SAW_DOT
        return FilterState.IDLE
    if state is FilterState.SAW_DOT:
        if byte in LINE_BREAKS:
            return FilterState.DONE
        # ".." is a false alarm: the line holds more than a single dot
        return FilterState.IDLE
    return state


class DotStopReader(io.RawIOBase):
    """
    Reader that stops at a line consisting of a single dot.

    Wraps a byte source and passes its data through until the sequence
    line break, ".", line break appears. Those three bytes are removed and
    the reader reports end-of-stream; anything after them is never read.

    The terminator may be split across reads of any size. Up to two bytes
    that might begin a terminator are held back and rescanned with the next
    read, so readinto() needs a buffer of at least MIN_READ_SIZE bytes.
    """

    def __init__(self, source: BinaryIO):
        super().__init__()
        self._source = source
        # read1 returns what is available instead of waiting for a full buffer
        read1 = getattr(source, 'read1', None)
        self._read_fresh = read1 if read1 is not None else source.read
        self.state = FilterState.IDLE
        self._carry = b''
        self._exhausted = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        """
        Fill buffer with body bytes up to the terminator.

        Args:
            buffer: Writable buffer of at least MIN_READ_SIZE bytes

        Returns:
            int: Number of bytes written, 0 at end of message

        Raises:
            FilterContractViolation: If buffer is smaller than MIN_READ_SIZE
        """
        view = memoryview(buffer).cast('B')
        if len(view) < MIN_READ_SIZE:
            raise FilterContractViolation(
                f"DotStopReader must read at least {MIN_READ_SIZE} bytes at a time, "
                f"got a buffer of {len(view)}"
            )

        if self.state is FilterState.DONE or self._exhausted:
            return 0

        while True:
            held = len(self._carry)
            fresh = self._read_fresh(len(view) - held)

            if not fresh:
                # Source exhausted; any withheld bytes were not a terminator
                self._exhausted = True
                self.state = FilterState.IDLE
                view[:held] = self._carry
                self._carry = b''
                return held

            data = self._carry + fresh
            n = self._scan(data)
            view[:n] = data[:n]

            # Everything may have been withheld; 0 would mean end-of-stream
            if n > 0 or self.state is FilterState.DONE:
                return n

    def _scan(self, data: bytes) -> int:
        """
        Run the state machine over data and return how many bytes to deliver.

        Sets self.state and self._carry for the next call.
        """
        state = FilterState.IDLE
        for i, byte in enumerate(data):
            state = _advance(state, byte)
            if state is FilterState.DONE:
                logger.info("Found single-dot line, ending message body")
                self.state = state
                self._carry = b''
                return i + 1 - int(FilterState.DONE)

        held = int(state)
        self.state = state
        self._carry = data[len(data) - held:]
        return len(data) - held


class MessageStream(io.RawIOBase):
    """
    Concatenation of several readers, read one after the other.

    The caller's buffer is passed straight to each part, so size
    requirements of a part (e.g. DotStopReader) still apply.
    """

    def __init__(self, *parts: BinaryIO):
        super().__init__()
        self._parts = list(parts)

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while self._parts:
            n = self._parts[0].readinto(buffer)
            if n:
                return n
            self._parts.pop(0)
        return 0
