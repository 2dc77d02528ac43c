"""
Per-session control channel carrying consumer commands into a relay loop.
"""

import asyncio
from typing import Any, Optional, Tuple

from ..domain.messages import ControlMessage
from ..exceptions import ControlChannelClosedError

# Queued after every pending message when the sender closes.
_CLOSED: Any = object()


class ControlSender:
    """Send side of a control channel, held by the connection registry."""

    def __init__(self, queue: 'asyncio.Queue[Any]'):
        self._queue = queue
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, message: ControlMessage) -> None:
        """
        Enqueue a control message.

        Raises:
            ControlChannelClosedError: If the sender has been closed
        """
        if self._closed:
            raise ControlChannelClosedError("Control channel is closed")
        self._queue.put_nowait(message)

    def close(self) -> None:
        """Close the channel. Messages already queued stay ahead of the closure."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)


class ControlReceiver:
    """Receive side of a control channel, owned by the relay loop."""

    def __init__(self, queue: 'asyncio.Queue[Any]'):
        self._queue = queue
        self._exhausted = False

    async def recv(self) -> Optional[ControlMessage]:
        """
        Wait for the next control message.

        Returns:
            The next message in FIFO order, or None once the channel is closed
        """
        if self._exhausted:
            return None

        message = await self._queue.get()
        if message is _CLOSED:
            self._exhausted = True
            return None
        return message  # type: ignore[no-any-return]

    def pending(self) -> int:
        return self._queue.qsize()


def create_control_channel() -> Tuple[ControlSender, ControlReceiver]:
    """Create a connected sender/receiver pair."""
    queue: 'asyncio.Queue[Any]' = asyncio.Queue()
    return ControlSender(queue), ControlReceiver(queue)
