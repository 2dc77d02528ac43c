"""
Session manager: the consumer-facing command surface.

The manager schedules session establishment in the background, registers
successful sessions, starts one relay loop per session and translates
consumer commands into control messages.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from ..domain.events import SessionEvent
from ..domain.messages import InputMessage, ResizeMessage
from ..domain.session import ConnectionParameters, RelayStats, SessionRecord
from ..exceptions import (
    ControlChannelClosedError, SessionError, SessionExistsError,
    SessionNotFoundError, SessionSchedulingError, SSHConnectionError
)
from ..interfaces.lifecycle import IComponent
from ..interfaces.sessions import IEventSink, IRemoteChannel, ISessionEstablisher, ISessionManager
from .control import create_control_channel
from .registry import ConnectionRegistry
from .relay import RelayLoop

logger = logging.getLogger(__name__)


class ConnectAttempt:
    """
    Handle for a scheduled connection attempt.

    Returned as soon as the attempt is accepted; ``result()`` resolves once
    establishment has completed.
    """

    def __init__(self, session_id: str, task: 'asyncio.Task[Optional[SessionError]]'):
        self.session_id = session_id
        self._task = task

    def done(self) -> bool:
        return self._task.done()

    async def result(self) -> bool:
        """
        Wait for establishment to complete.

        Returns:
            True once the session is registered and relaying

        Raises:
            SessionError: The establishment failure that was also emitted
                as an error event
        """
        error = await asyncio.shield(self._task)
        if error is not None:
            raise error
        return True


class SessionManager(ISessionManager, IComponent):
    """
    Command surface over the connection registry and relay loops.

    The registry, establisher and sink are injected, so tests can drive the
    manager with fakes.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        establisher: ISessionEstablisher,
        sink: IEventSink,
        reject_duplicate_ids: bool = True
    ):
        self._registry = registry
        self._establisher = establisher
        self._sink = sink
        self._reject_duplicate_ids = reject_duplicate_ids

        self._running = False
        self._pending: Dict[str, ConnectAttempt] = {}
        self._relays: Dict[str, Tuple[RelayLoop, 'asyncio.Task[Any]']] = {}
        self._relay_tasks: Set['asyncio.Task[Any]'] = set()
        self._metrics: Dict[str, int] = {
            'connects_requested': 0,
            'connects_succeeded': 0,
            'connects_failed': 0
        }

    @property
    def name(self) -> str:
        return "SessionManager"

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        logger.info("Session manager started")

    async def stop(self) -> None:
        """Cancel pending attempts, disconnect every session and wait for relays."""
        if not self._running:
            return

        logger.info("Stopping session manager...")
        self._running = False

        pending = [attempt._task for attempt in self._pending.values()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        for session_id in await self._registry.list_ids():
            record = await self._registry.pop(session_id)
            if record is not None:
                record.sender.close()

        if self._relay_tasks:
            await asyncio.gather(*list(self._relay_tasks), return_exceptions=True)

        logger.info("Session manager stopped")

    async def check_health(self) -> Dict[str, Any]:
        return {
            'healthy': self._running,
            'status': 'running' if self._running else 'stopped',
            'details': {
                'active_sessions': len(self._registry),
                'pending_connects': len(self._pending),
                'relay_tasks': len(self._relay_tasks),
                **self._metrics
            }
        }

    async def connect(
        self,
        session_id: str,
        host: str,
        port: int,
        username: str,
        password: Optional[str] = None
    ) -> ConnectAttempt:
        """
        Accept a connection request and establish it in the background.

        Raises:
            ValueError: If the identifier or parameters are invalid
            SessionSchedulingError: If the manager is not running
            SessionExistsError: If the identifier is active or connecting
        """
        if not session_id:
            raise ValueError("Session id is required")

        if not self._running:
            raise SessionSchedulingError("Session manager is not running", session_id)

        params = ConnectionParameters(host=host, port=port, username=username, password=password)

        if session_id in self._pending:
            raise SessionExistsError(session_id)
        if self._reject_duplicate_ids and await self._registry.contains(session_id):
            raise SessionExistsError(session_id)

        self._metrics['connects_requested'] += 1
        task = asyncio.create_task(self._establish(session_id, params), name=f"connect-{session_id}")
        attempt = ConnectAttempt(session_id, task)
        self._pending[session_id] = attempt

        logger.info(f"Accepted connect request for session {session_id} ({params.address})")
        return attempt

    async def send_input(self, session_id: str, data: Union[bytes, str]) -> None:
        """
        Queue input for the session's remote shell.

        Raises:
            SessionNotFoundError: If the session is not registered
        """
        if isinstance(data, str):
            data = data.encode('utf-8')

        record = await self._registry.lookup(session_id)
        if record is None:
            raise SessionNotFoundError(session_id)

        try:
            record.sender.send(InputMessage(bytes(data)))
        except ControlChannelClosedError:
            raise SessionNotFoundError(session_id)

    async def disconnect(self, session_id: str) -> None:
        """
        Remove the session and close its control channel.

        Raises:
            SessionNotFoundError: If the session is not registered
        """
        record = await self._registry.pop(session_id)
        if record is None:
            raise SessionNotFoundError(session_id)

        record.sender.close()
        logger.info(f"Disconnect requested for session {session_id}")

    async def resize(self, session_id: str, columns: int, rows: int) -> None:
        """
        Queue a terminal geometry change.

        Raises:
            ValueError: If the geometry is not positive
            SessionNotFoundError: If the session is not registered
        """
        message = ResizeMessage(columns=columns, rows=rows)

        record = await self._registry.lookup(session_id)
        if record is None:
            raise SessionNotFoundError(session_id)

        try:
            record.sender.send(message)
        except ControlChannelClosedError:
            raise SessionNotFoundError(session_id)

    async def list_sessions(self) -> List[Dict[str, Any]]:
        sessions = []
        for record in await self._registry.list_records():
            info = record.to_dict()
            relay = self._relays.get(record.session_id)
            info['state'] = relay[0].state.value if relay else None
            sessions.append(info)
        return sessions

    async def get_stats(self, session_id: str) -> RelayStats:
        record = await self._registry.lookup(session_id)
        if record is None:
            raise SessionNotFoundError(session_id)
        return record.stats

    async def wait_closed(self, session_id: str) -> None:
        """Wait for the session's relay loop to finish, if it is running."""
        relay = self._relays.get(session_id)
        if relay is not None:
            await asyncio.shield(relay[1])

    def is_pending(self, session_id: str) -> bool:
        return session_id in self._pending

    async def _establish(self, session_id: str, params: ConnectionParameters) -> Optional[SessionError]:
        """Background establishment; returns the failure, if any."""
        try:
            try:
                channel = await self._establisher.establish(params)
            except SessionError as e:
                e.session_id = session_id
                return await self._fail(session_id, e)
            except Exception as e:
                logger.exception(f"Unexpected establishment error for session {session_id}")
                return await self._fail(session_id, SSHConnectionError(f"Connection failed: {e}", session_id))

            try:
                await self._start_relay(session_id, params, channel)
            except BaseException:
                await channel.close()
                raise

            self._metrics['connects_succeeded'] += 1
            return None

        finally:
            self._pending.pop(session_id, None)

    async def _start_relay(self, session_id: str, params: ConnectionParameters,
                           channel: IRemoteChannel) -> None:
        sender, receiver = create_control_channel()
        record = SessionRecord(
            session_id=session_id,
            sender=sender,
            host=params.host,
            port=params.port,
            username=params.username
        )

        replaced = await self._registry.insert(session_id, record)
        if replaced is not None:
            replaced.sender.close()

        async def cleanup() -> None:
            await self._registry.remove_if(session_id, record)

        relay = RelayLoop(session_id, channel, receiver, self._sink,
                          on_terminated=cleanup, stats=record.stats)

        await self._emit(SessionEvent.connected(session_id, params.host, params.port, params.username))

        task = asyncio.create_task(relay.run(), name=f"relay-{session_id}")
        self._relays[session_id] = (relay, task)
        self._relay_tasks.add(task)
        task.add_done_callback(lambda t: self._forget_relay(session_id, t))

        logger.info(f"Session {session_id} established ({params.address})")

    def _forget_relay(self, session_id: str, task: 'asyncio.Task[Any]') -> None:
        self._relay_tasks.discard(task)
        relay = self._relays.get(session_id)
        if relay is not None and relay[1] is task:
            del self._relays[session_id]

        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Relay task for session {session_id} failed: {task.exception()}")

    async def _fail(self, session_id: str, error: SessionError) -> SessionError:
        self._metrics['connects_failed'] += 1
        logger.warning(f"Session {session_id} failed to connect: {error}")
        await self._emit(SessionEvent.error(session_id, str(error)))
        return error

    async def _emit(self, event: SessionEvent) -> None:
        try:
            await self._sink.emit(event)
        except Exception as e:
            logger.error(f"Event sink failed for {event.topic}: {e}")
