"""
Frame splitting strategies.

A splitter decides where the next frame ends inside a buffered chunk of a
byte stream. It never touches the socket: given the bytes received so far
and whether the peer has closed its side, split() returns how many bytes to
consume and the frame (or None when more input is needed).

The set of strategies is closed: line, word, single byte and fixed size.
"""

from typing import Optional, Tuple

from networking.errors import FramingError


SplitResult = Tuple[int, Optional[bytes]]

_NEED_MORE: SplitResult = (0, None)

# ASCII whitespace only: bytes >= 0x80 may be part of a multi-byte character
_WHITESPACE = frozenset(b" \t\n\v\f\r")


class Splitter:
    """Base class: subclasses implement split() and set delimiter."""

    name = "splitter"

    # written after every response frame
    delimiter = b""

    def split(self, data: bytes, at_eof: bool) -> SplitResult:
        raise NotImplementedError("Subclasses must implement split()")

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class LineSplitter(Splitter):
    """
    Frames are lines without the trailing newline.

    A carriage return right before the newline is dropped too. At end of
    stream any unterminated remainder is returned as the last line.
    """

    name = "line"
    delimiter = b"\n"

    def split(self, data: bytes, at_eof: bool) -> SplitResult:
        if at_eof and not data:
            return _NEED_MORE

        idx = data.find(b"\n")
        if idx >= 0:
            return idx + 1, _drop_cr(data[:idx])

        if at_eof:
            return len(data), _drop_cr(data)

        return _NEED_MORE


class WordSplitter(Splitter):
    """Frames are maximal runs of non-whitespace bytes."""

    name = "word"
    delimiter = b" "

    def split(self, data: bytes, at_eof: bool) -> SplitResult:
        start = 0
        while start < len(data) and data[start] in _WHITESPACE:
            start += 1

        for i in range(start, len(data)):
            if data[i] in _WHITESPACE:
                return i + 1, bytes(data[start:i])

        if at_eof and start < len(data):
            return len(data), bytes(data[start:])

        # Consume the leading whitespace so the buffer does not grow with it
        return start, None


class ByteSplitter(Splitter):
    """Every byte is a frame."""

    name = "byte"

    def split(self, data: bytes, at_eof: bool) -> SplitResult:
        if not data:
            return _NEED_MORE
        return 1, bytes(data[:1])


class FixedSizeSplitter(Splitter):
    """
    Frames are exactly `size` bytes long.

    If the stream ends with a partial frame buffered, split() raises
    FramingError.
    """

    name = "fixed"

    def __init__(self, size: int):
        if not isinstance(size, int) or size <= 0:
            raise ValueError(f"size must be a positive int, got {size!r}")
        self.size = size

    def split(self, data: bytes, at_eof: bool) -> SplitResult:
        if len(data) >= self.size:
            return self.size, bytes(data[: self.size])

        if at_eof and data:
            raise FramingError(
                f"stream closed after {len(data)} of {self.size} frame bytes"
            )

        return _NEED_MORE

    def __repr__(self) -> str:
        return f"FixedSizeSplitter({self.size})"


def _drop_cr(line: bytes) -> bytes:
    if line.endswith(b"\r"):
        return bytes(line[:-1])
    return bytes(line)


LINE = LineSplitter()
WORD = WordSplitter()
BYTE = ByteSplitter()
