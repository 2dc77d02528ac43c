"""
WebSocket terminal endpoint.

Clients send JSON commands (``connect``, ``input``, ``resize``,
``disconnect``, ``ping``) and receive the session events of every session
they opened on the socket. Sessions opened by a socket are disconnected when
the socket closes.
"""

import asyncio
import base64
import json
import logging
from typing import Annotated, Any, Dict, Literal, Optional, Set, Union

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from ....core.domain.events import SessionEvent, SessionEventKind
from ....core.exceptions import SessionError, SessionNotFoundError
from ....core.services.event_hub import SessionEventHub
from ....core.services.session_manager import ConnectAttempt, SessionManager
from ..dependencies import get_event_hub, get_session_manager

router = APIRouter()
logger = logging.getLogger(__name__)


class ConnectCommand(BaseModel):
    type: Literal["connect"]
    session_id: str = Field(..., min_length=1)
    host: str = Field(..., min_length=1)
    port: int = Field(22, ge=1, le=65535)
    username: str = Field(..., min_length=1)
    password: Optional[str] = None


class InputCommand(BaseModel):
    """Input is either text (``data``) or base64 encoded bytes (``data_b64``)."""
    type: Literal["input"]
    session_id: str = Field(..., min_length=1)
    data: Optional[str] = None
    data_b64: Optional[str] = None

    def payload(self) -> bytes:
        if self.data_b64 is not None:
            return base64.b64decode(self.data_b64, validate=True)
        return (self.data or "").encode('utf-8')


class ResizeCommand(BaseModel):
    type: Literal["resize"]
    session_id: str = Field(..., min_length=1)
    columns: int = Field(..., ge=1)
    rows: int = Field(..., ge=1)


class DisconnectCommand(BaseModel):
    type: Literal["disconnect"]
    session_id: str = Field(..., min_length=1)


class PingCommand(BaseModel):
    type: Literal["ping"]
    timestamp: Optional[Any] = None


TerminalCommand = Annotated[
    Union[ConnectCommand, InputCommand, ResizeCommand, DisconnectCommand, PingCommand],
    Field(discriminator="type")
]

_command_adapter: TypeAdapter[Any] = TypeAdapter(TerminalCommand)


class TerminalConnection:
    """
    Per-socket state: owned sessions and their hub subscriptions.

    A session is owned once its connected event reached this socket. The
    subscription for an identifier ends with its closed event, or with an
    error event that arrives before the session was ever connected, so a
    later session reusing the identifier is not seen here.

    Sends are serialized because relay loops of different sessions deliver
    events concurrently.
    """

    def __init__(self, websocket: WebSocket, manager: SessionManager, hub: SessionEventHub):
        self.websocket = websocket
        self.manager = manager
        self.hub = hub
        self.subscriptions: Dict[str, str] = {}
        self.owned: Set[str] = set()
        self.attempts: Dict[str, ConnectAttempt] = {}
        self._send_lock = asyncio.Lock()
        self._open = True

    async def send(self, data: Dict[str, Any]) -> None:
        async with self._send_lock:
            await self._write(data)

    async def _write(self, data: Dict[str, Any]) -> None:
        if not self._open:
            return
        try:
            await self.websocket.send_json(data)
        except Exception as e:
            self._open = False
            logger.debug(f"Dropping frame for closed terminal socket: {e}")

    async def send_error(self, message: str, command: Optional[str] = None,
                         session_id: Optional[str] = None) -> None:
        await self.send({
            "type": "error",
            "command": command,
            "session_id": session_id,
            "message": message
        })

    async def forward_event(self, event: SessionEvent) -> None:
        session_id = event.session_id

        if event.kind == SessionEventKind.CONNECTED:
            self.owned.add(session_id)
            self.attempts.pop(session_id, None)
        elif event.kind == SessionEventKind.CLOSED:
            self.owned.discard(session_id)
            self.unwatch(session_id)
        elif event.kind == SessionEventKind.ERROR and session_id not in self.owned:
            self.attempts.pop(session_id, None)
            self.unwatch(session_id)

        await self.send(event.to_dict())

    def watch(self, session_id: str) -> None:
        if session_id not in self.subscriptions:
            self.subscriptions[session_id] = self.hub.subscribe(session_id, self.forward_event)

    def unwatch(self, session_id: str) -> None:
        subscription_id = self.subscriptions.pop(session_id, None)
        if subscription_id is not None:
            self.hub.unsubscribe(subscription_id)

    async def handle(self, command: Any) -> None:
        if isinstance(command, PingCommand):
            await self.send({"type": "pong", "timestamp": command.timestamp})

        elif isinstance(command, ConnectCommand):
            already_watching = command.session_id in self.subscriptions
            # Subscribe first so the connected or error event is not missed
            self.watch(command.session_id)
            # Holding the send lock keeps "accepted" ahead of the session's events
            async with self._send_lock:
                try:
                    attempt = await self.manager.connect(
                        command.session_id, command.host, command.port,
                        command.username, command.password
                    )
                except (SessionError, ValueError):
                    if not already_watching:
                        self.unwatch(command.session_id)
                    raise
                self.attempts[command.session_id] = attempt
                await self._write({"type": "accepted", "command": "connect", "session_id": command.session_id})

        elif isinstance(command, InputCommand):
            await self.manager.send_input(command.session_id, command.payload())

        elif isinstance(command, ResizeCommand):
            await self.manager.resize(command.session_id, command.columns, command.rows)

        elif isinstance(command, DisconnectCommand):
            await self.manager.disconnect(command.session_id)

    async def close(self) -> None:
        """Disconnect the sessions this socket owns and drop its subscriptions."""
        self._open = False
        for session_id in list(self.subscriptions):
            self.unwatch(session_id)

        # Connects still in flight would otherwise leave sessions nobody owns
        for session_id, attempt in list(self.attempts.items()):
            try:
                await attempt.result()
            except SessionError:
                continue
            self.owned.add(session_id)
        self.attempts.clear()

        for session_id in list(self.owned):
            try:
                await self.manager.disconnect(session_id)
            except SessionNotFoundError:
                pass
        self.owned.clear()


@router.websocket("/terminal")
async def terminal_endpoint(
    websocket: WebSocket,
    manager: SessionManager = Depends(get_session_manager),
    hub: SessionEventHub = Depends(get_event_hub)
) -> None:
    """Interactive terminal sessions over a single WebSocket."""
    await websocket.accept()
    connection = TerminalConnection(websocket, manager, hub)
    client = websocket.client.host if websocket.client else "unknown"
    logger.info(f"Terminal socket opened from {client}")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            text = message.get("text")
            if text is None:
                await connection.send_error("Binary frames are not supported; send JSON text")
                continue

            try:
                command = _command_adapter.validate_python(json.loads(text))
            except json.JSONDecodeError:
                await connection.send_error("Invalid JSON")
                continue
            except ValidationError as e:
                await connection.send_error(f"Invalid command: {e.error_count()} validation error(s)")
                continue

            try:
                await connection.handle(command)
            except (SessionError, ValueError) as e:
                await connection.send_error(str(e), command.type, getattr(command, "session_id", None))

    except WebSocketDisconnect:
        logger.info(f"Terminal socket from {client} disconnected")

    finally:
        await connection.close()
