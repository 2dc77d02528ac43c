"""
Per-session I/O relay loop.

A relay loop owns one remote channel and one control receiver. It waits on
both at once and handles exactly one event per iteration, in the order the
events become ready, until the remote side ends, the remote process exits,
or the consumer closes the control channel.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from ..domain.events import SessionEvent
from ..domain.messages import (
    ChannelClosed, ChannelData, ChannelExitStatus, ControlMessage,
    InputMessage, ResizeMessage
)
from ..domain.session import RelayState, RelayStats
from ..exceptions import ControlError, WriteError
from ..interfaces.sessions import IEventSink, IRemoteChannel
from .control import ControlReceiver

logger = logging.getLogger(__name__)

TerminationCallback = Callable[[], Awaitable[Any]]


class RelayLoop:
    """
    Relay state machine for one session.

    States move RUNNING -> TERMINATING -> TERMINATED. The termination
    callback runs exactly once, on entering TERMINATING.
    """

    def __init__(
        self,
        session_id: str,
        channel: IRemoteChannel,
        receiver: ControlReceiver,
        sink: IEventSink,
        on_terminated: Optional[TerminationCallback] = None,
        stats: Optional[RelayStats] = None
    ):
        self._session_id = session_id
        self._channel = channel
        self._receiver = receiver
        self._sink = sink
        self._on_terminated = on_terminated
        self._stats = stats or RelayStats()
        self._state = RelayState.RUNNING
        self._close_reason: Optional[str] = None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def state(self) -> RelayState:
        return self._state

    @property
    def stats(self) -> RelayStats:
        return self._stats

    @property
    def close_reason(self) -> Optional[str]:
        return self._close_reason

    async def run(self) -> RelayState:
        """Run until termination; returns the final state."""
        remote_task: Optional['asyncio.Future[Any]'] = None
        control_task: Optional['asyncio.Future[Any]'] = None

        logger.debug(f"Relay loop started for session {self._session_id}")

        try:
            while self._state == RelayState.RUNNING:
                if remote_task is None:
                    remote_task = asyncio.ensure_future(self._channel.wait())
                if control_task is None:
                    control_task = asyncio.ensure_future(self._receiver.recv())

                done, _ = await asyncio.wait(
                    {remote_task, control_task},
                    return_when=asyncio.FIRST_COMPLETED
                )

                if remote_task in done:
                    finished, remote_task = remote_task, None
                    await self._handle_remote(finished)
                else:
                    finished, control_task = control_task, None
                    await self._handle_control(finished.result())

        finally:
            for task in (remote_task, control_task):
                if task is not None and not task.done():
                    task.cancel()
                    try:
                        await task
                    except asyncio.CancelledError:
                        pass
                    except Exception as e:
                        logger.debug(f"Pending relay wait ended with error: {e}")

            await self._terminate()

        return self._state

    async def _handle_remote(self, task: 'asyncio.Future[Any]') -> None:
        """Handle one completed remote wait."""
        try:
            event = task.result()
        except Exception as e:
            logger.error(f"Remote channel error in session {self._session_id}: {e}")
            self._stats.last_error = str(e)
            await self._enter_terminating("error")
            await self._emit(SessionEvent.error(self._session_id, f"Remote channel error: {e}"))
            return

        if isinstance(event, ChannelData):
            self._stats.bytes_received += len(event.data)
            self._stats.chunks_received += 1
            await self._emit(SessionEvent.output(self._session_id, event.data))

        elif isinstance(event, ChannelExitStatus):
            logger.info(f"Session {self._session_id} remote process exited with status {event.status}")
            await self._enter_terminating("exit")
            await self._emit(SessionEvent.exit(self._session_id, event.status))

        elif event is None or isinstance(event, ChannelClosed):
            reason = event.reason if isinstance(event, ChannelClosed) else None
            logger.info(f"Session {self._session_id} remote channel closed"
                        + (f": {reason}" if reason else ""))
            await self._enter_terminating("remote_closed")

        else:
            logger.debug(f"Ignoring unknown channel event {event!r}")

    async def _handle_control(self, message: Optional[ControlMessage]) -> None:
        """Handle one control message; None means the channel closed."""
        if message is None:
            logger.info(f"Session {self._session_id} control channel closed")
            await self._enter_terminating("disconnected")
            return

        if isinstance(message, InputMessage):
            try:
                await self._channel.write(message.data)
                self._stats.inputs_forwarded += 1
            except WriteError as e:
                self._stats.write_failures += 1
                self._stats.last_error = str(e)
                logger.warning(f"Dropped input for session {self._session_id}: {e}")

        elif isinstance(message, ResizeMessage):
            try:
                await self._channel.resize(message.columns, message.rows)
                self._stats.resizes_applied += 1
            except ControlError as e:
                self._stats.resize_failures += 1
                self._stats.last_error = str(e)
                logger.warning(f"Dropped resize for session {self._session_id}: {e}")

        else:
            logger.debug(f"Ignoring unknown control message {message!r}")

    async def _enter_terminating(self, reason: str) -> None:
        """Move to TERMINATING and run the cleanup callback, once."""
        if self._state != RelayState.RUNNING:
            return

        self._state = RelayState.TERMINATING
        self._close_reason = reason

        if self._on_terminated is not None:
            try:
                await self._on_terminated()
            except Exception as e:
                logger.error(f"Cleanup failed for session {self._session_id}: {e}")

    async def _terminate(self) -> None:
        """Close the channel and emit the closed event."""
        if self._state == RelayState.TERMINATED:
            return

        # Still RUNNING only when run() was cancelled from outside.
        await self._enter_terminating("cancelled")

        try:
            await self._channel.close()
        except Exception as e:
            logger.debug(f"Error closing channel for session {self._session_id}: {e}")

        await self._emit(SessionEvent.closed(self._session_id, self._close_reason))

        self._state = RelayState.TERMINATED
        logger.info(f"Relay loop for session {self._session_id} terminated ({self._close_reason})")

    async def _emit(self, event: SessionEvent) -> None:
        try:
            await self._sink.emit(event)
        except Exception as e:
            logger.error(f"Event sink failed for {event.topic}: {e}")
