"""
asyncssh adapter exposing an interactive shell channel as an event stream.
"""

import asyncio
import logging
from typing import Any, Optional

import asyncssh

from ...core.domain.messages import ChannelClosed, ChannelData, ChannelEvent, ChannelExitStatus
from ...core.exceptions import ControlError, WriteError
from ...core.interfaces.sessions import IRemoteChannel

logger = logging.getLogger(__name__)


class ShellSession(asyncssh.SSHClientSession):
    """
    Client session that turns asyncssh callbacks into queued channel events.

    Callbacks run on the event loop in the order packets arrive, so the
    queue preserves transport order.
    """

    def __init__(self) -> None:
        self.events: 'asyncio.Queue[ChannelEvent]' = asyncio.Queue()

    def data_received(self, data: bytes, datatype: Optional[int]) -> None:
        self.events.put_nowait(ChannelData(bytes(data)))

    def exit_status_received(self, status: int) -> None:
        self.events.put_nowait(ChannelExitStatus(status))

    def exit_signal_received(self, signal: str, core_dumped: bool,
                             msg: str, lang: str) -> None:
        logger.info(f"Remote shell terminated by signal {signal}")

    def eof_received(self) -> bool:
        # Stay half-open: exit-status and close usually follow EOF.
        return True

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self.events.put_nowait(ChannelClosed(str(exc) if exc else None))


class AsyncSSHChannel(IRemoteChannel):
    """Remote channel backed by an asyncssh connection and session channel."""

    def __init__(self, connection: Any, channel: Any, session: ShellSession):
        self._connection = connection
        self._channel = channel
        self._session = session
        self._finished = False
        self._closed = False

    async def wait(self) -> Optional[ChannelEvent]:
        if self._finished:
            return None

        event = await self._session.events.get()
        if isinstance(event, ChannelClosed):
            self._finished = True
        return event

    async def write(self, data: bytes) -> None:
        try:
            self._channel.write(data)
        except (OSError, asyncssh.Error) as e:
            raise WriteError(f"Write to remote channel failed: {e}")

    async def resize(self, columns: int, rows: int) -> None:
        try:
            self._channel.change_terminal_size(columns, rows, 0, 0)
        except (OSError, asyncssh.Error) as e:
            raise ControlError(f"Window change request failed: {e}")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        self._channel.close()
        self._connection.close()
        await self._connection.wait_closed()
