"""
unistream Streaming Module

Frame scanning, cancellation and the stream transport state machine.
"""

from .scanner import FrameScanner, JsonFrameScanner, LineFrameScanner, create_scanner
from .cancellation import CancellationToken
from .session import StreamResult, StreamSession, TransportState
from .transport import Sink, StreamTransport

__all__ = [
    "FrameScanner",
    "JsonFrameScanner",
    "LineFrameScanner",
    "create_scanner",
    "CancellationToken",
    "StreamResult",
    "StreamSession",
    "TransportState",
    "Sink",
    "StreamTransport",
]
