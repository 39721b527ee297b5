"""
unistream - Frame Scanners

Turn a growing byte stream into discrete frames.

Two disciplines:
- LineFrameScanner: newline-delimited frames (SSE providers)
- JsonFrameScanner: balanced top-level JSON values located by tracking
  brace/bracket depth and string/escape state (bare streamed JSON arrays)

Both decode UTF-8 incrementally, so a multibyte character split across two
network reads is held until its remaining bytes arrive.
"""

import codecs
from typing import List

from ..core.models import ScanMode
from ..observability.logging import get_logger

logger = get_logger("unistream.scanner")

_OPENERS = "{["
_CLOSERS = "}]"
# Framing between elements of the outer stream array
_ENVELOPE_SEPARATORS = frozenset(",] \t\r\n")


class FrameScanner:
    """Base scanner: owns the decoder and the pending text buffer."""

    mode: ScanMode

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received but not yet emitted as a frame."""
        return self._buffer

    def feed(self, data: bytes) -> List[str]:
        """Append bytes and return every frame completed by them."""
        raise NotImplementedError

    def flush(self) -> List[str]:
        """Signal end of stream and return any remaining frames."""
        raise NotImplementedError

    def reset(self):
        """Discard all buffered state."""
        self._decoder.reset()
        self._buffer = ""

    def _decode(self, data: bytes, final: bool = False) -> str:
        return self._decoder.decode(data, final)


class LineFrameScanner(FrameScanner):
    """Newline-delimited frames; blank lines are dropped."""

    mode = ScanMode.LINES

    def feed(self, data: bytes) -> List[str]:
        self._buffer += self._decode(data)
        frames: List[str] = []
        while True:
            newline = self._buffer.find("\n")
            if newline < 0:
                break
            line = self._buffer[:newline].strip()
            self._buffer = self._buffer[newline + 1:]
            if line:
                frames.append(line)
        return frames

    def flush(self) -> List[str]:
        frames = self.feed(b"")
        self._buffer += self._decode(b"", final=True)
        tail = self._buffer.strip()
        self._buffer = ""
        if tail:
            frames.append(tail)
        return frames


class JsonFrameScanner(FrameScanner):
    """
    Balanced-JSON frames.

    With unwrap_array the opening '[' of the outer stream array is treated
    as an envelope so each element is emitted as soon as it closes, instead of
    waiting for the whole array. An empty feed is the final flush.
    """

    mode = ScanMode.JSON

    def __init__(self, unwrap_array: bool = False):
        super().__init__()
        self.unwrap_array = unwrap_array
        self._in_envelope = False
        self._reset_scan_state()

    def _reset_scan_state(self):
        # Resume point for the value currently being scanned
        self._scan_pos = 0
        self._depth = 0
        self._in_string = False
        self._escaped = False

    def reset(self):
        super().reset()
        self._in_envelope = False
        self._reset_scan_state()

    def feed(self, data: bytes) -> List[str]:
        if not data:
            return self.flush()
        self._buffer += self._decode(data)
        return self._drain()

    def flush(self) -> List[str]:
        self._buffer += self._decode(b"", final=True)
        frames = self._drain()
        tail = self._buffer.strip()
        if tail and tail[0] in _OPENERS:
            # Truncated value: surfaced so classification reports it
            logger.warning(
                "Stream ended inside an incomplete JSON value",
                pending_chars=len(tail),
            )
            frames.append(tail)
        elif tail:
            logger.warning(
                "Discarding trailing data after last JSON value",
                discarded_chars=len(tail),
                discarded_preview=tail[:80],
            )
        self._buffer = ""
        self._reset_scan_state()
        return frames

    def _drain(self) -> List[str]:
        frames: List[str] = []
        while True:
            if self._scan_pos == 0 and not self._align_to_value():
                break
            end = self._scan()
            if end < 0:
                break
            frames.append(self._buffer[:end])
            self._buffer = self._buffer[end:]
            self._reset_scan_state()
        return frames

    def _align_to_value(self) -> bool:
        """
        Move the buffer start onto the next '{' or '['.

        Returns False when the buffer holds no opener yet.
        """
        buffer = self._buffer
        start = 0
        length = len(buffer)

        while start < length and (
            buffer[start].isspace()
            or (self._in_envelope and buffer[start] in _ENVELOPE_SEPARATORS)
        ):
            start += 1

        if start < length and self.unwrap_array and not self._in_envelope and buffer[start] == "[":
            # Outer stream array: consume the bracket, scan its elements
            self._in_envelope = True
            self._buffer = buffer[start + 1:]
            return self._align_to_value()

        opener = -1
        for index in range(start, length):
            if buffer[index] in _OPENERS:
                opener = index
                break

        if opener < 0:
            # Held until an opener arrives or the stream ends
            self._buffer = buffer[start:]
            return False

        if opener > start:
            logger.warning(
                "Discarding data before JSON value",
                discarded_chars=opener - start,
                discarded_preview=buffer[start:opener][:80],
            )
        self._buffer = buffer[opener:]
        return True

    def _scan(self) -> int:
        """
        Continue scanning the current value.

        Returns the end index (exclusive) of a complete value, or -1.
        """
        buffer = self._buffer
        depth = self._depth
        in_string = self._in_string
        escaped = self._escaped
        index = self._scan_pos

        for index in range(self._scan_pos, len(buffer)):
            char = buffer[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char in _OPENERS:
                depth += 1
            elif char in _CLOSERS:
                depth -= 1
                if depth == 0:
                    return index + 1
        else:
            index = len(buffer)

        self._scan_pos = index
        self._depth = depth
        self._in_string = in_string
        self._escaped = escaped
        return -1


def create_scanner(mode: ScanMode, unwrap_array: bool = False) -> FrameScanner:
    """Build a fresh scanner for one session."""
    if mode == ScanMode.JSON:
        return JsonFrameScanner(unwrap_array=unwrap_array)
    return LineFrameScanner()
