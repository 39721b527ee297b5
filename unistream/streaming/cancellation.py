"""
unistream - Cancellation Token

Caller-owned signal that asks a running stream to stop at its next
suspension point (connect or next-chunk read).
"""

import asyncio
from typing import List, Optional

from ..core.errors import CANCELLED_MESSAGE


class CancellationToken:
    """
    Cooperative cancellation token.

    Child tokens inherit cancellation from their parent. Must be used from
    the event loop that runs the stream.
    """

    def __init__(self, parent: Optional["CancellationToken"] = None):
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self._children: List["CancellationToken"] = []
        if parent is not None:
            parent.link_child(self)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: Optional[str] = None):
        """Request cancellation and cascade to children."""
        if self._event.is_set():
            return
        self._reason = reason or CANCELLED_MESSAGE
        self._event.set()
        for child in list(self._children):
            child.cancel(self._reason)

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()

    def link_child(self, token: "CancellationToken") -> "CancellationToken":
        self._children.append(token)
        if self.cancelled:
            token.cancel(self._reason)
        return token

    def child(self) -> "CancellationToken":
        return CancellationToken(parent=self)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled}, reason={self._reason!r})"
