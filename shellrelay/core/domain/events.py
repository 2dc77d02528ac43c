"""
Outbound session event models.

Events are the only way the relay engine reports back to a consumer. Each
event is scoped to one session identifier and carries a topic name that
consumers can use as a per-session named channel.
"""

import base64
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class SessionEventKind(Enum):
    """Kinds of events emitted for a session."""
    OUTPUT = "output"
    EXIT = "exit"
    ERROR = "error"
    CONNECTED = "connected"
    CLOSED = "closed"


def event_topic(kind: SessionEventKind, session_id: str) -> str:
    """Build the per-session topic name, e.g. ``ssh-output-<id>``."""
    return f"ssh-{kind.value}-{session_id}"


@dataclass(frozen=True)
class SessionEvent:
    """
    Immutable event describing something that happened to a session.

    The payload depends on the kind: raw ``bytes`` for output, an ``int`` for
    exit, a human-readable ``str`` for error, and ``None`` or a small dict for
    the lifecycle kinds.
    """

    kind: SessionEventKind
    """Event kind."""

    session_id: str
    """Identifier of the session the event belongs to."""

    payload: Any = None
    """Event payload."""

    timestamp: float = field(default_factory=time.time)
    """Unix timestamp when the event was created."""

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    """Unique event identifier."""

    def __post_init__(self) -> None:
        """Validate event after creation."""
        if not self.session_id:
            raise ValueError("Session id cannot be empty")

        if not isinstance(self.kind, SessionEventKind):
            raise ValueError("Kind must be a SessionEventKind enum value")

        if self.kind == SessionEventKind.OUTPUT and not isinstance(self.payload, (bytes, bytearray)):
            raise ValueError("Output events carry bytes")

    @property
    def topic(self) -> str:
        """Per-session topic name of this event."""
        return event_topic(self.kind, self.session_id)

    @classmethod
    def output(cls, session_id: str, data: bytes) -> 'SessionEvent':
        return cls(SessionEventKind.OUTPUT, session_id, bytes(data))

    @classmethod
    def exit(cls, session_id: str, status: int) -> 'SessionEvent':
        return cls(SessionEventKind.EXIT, session_id, int(status))

    @classmethod
    def error(cls, session_id: str, message: str) -> 'SessionEvent':
        return cls(SessionEventKind.ERROR, session_id, message)

    @classmethod
    def connected(cls, session_id: str, host: str, port: int, username: str) -> 'SessionEvent':
        return cls(SessionEventKind.CONNECTED, session_id, {
            "host": host,
            "port": port,
            "username": username
        })

    @classmethod
    def closed(cls, session_id: str, reason: Optional[str] = None) -> 'SessionEvent':
        return cls(SessionEventKind.CLOSED, session_id, {"reason": reason})

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert event to a JSON-serialisable dictionary.

        Output payloads are base64 encoded since they are raw terminal bytes.
        """
        payload = self.payload
        if self.kind == SessionEventKind.OUTPUT:
            payload = base64.b64encode(self.payload).decode('ascii')

        return {
            'type': 'event',
            'topic': self.topic,
            'kind': self.kind.value,
            'session_id': self.session_id,
            'payload': payload,
            'timestamp': self.timestamp,
            'event_id': self.event_id
        }
