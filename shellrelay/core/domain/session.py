"""
Session domain models: connection parameters, registry records, relay state.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from ..services.control import ControlSender


class RelayState(Enum):
    """Relay loop lifecycle states."""
    RUNNING = "running"
    TERMINATING = "terminating"
    TERMINATED = "terminated"


@dataclass
class ConnectionParameters:
    """Parameters captured at connect time."""
    host: str
    port: int
    username: str
    password: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("Host is required")

        if not (1 <= self.port <= 65535):
            raise ValueError(f"Port must be between 1 and 65535, got {self.port}")

        if not self.username:
            raise ValueError("Username is required")

    @property
    def address(self) -> str:
        return f"{self.username}@{self.host}:{self.port}"


@dataclass
class RelayStats:
    """Per-session diagnostic counters."""
    bytes_received: int = 0
    chunks_received: int = 0
    inputs_forwarded: int = 0
    resizes_applied: int = 0
    write_failures: int = 0
    resize_failures: int = 0
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bytes_received': self.bytes_received,
            'chunks_received': self.chunks_received,
            'inputs_forwarded': self.inputs_forwarded,
            'resizes_applied': self.resizes_applied,
            'write_failures': self.write_failures,
            'resize_failures': self.resize_failures,
            'last_error': self.last_error
        }


@dataclass
class SessionRecord:
    """
    Registry entry for an active session.

    Holds only the control sender, never the remote connection or channel,
    which stay owned by the session's relay loop.
    """
    session_id: str
    sender: 'ControlSender'
    host: str
    port: int
    username: str
    stats: RelayStats = field(default_factory=RelayStats)
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'host': self.host,
            'port': self.port,
            'username': self.username,
            'created_at': self.created_at,
            'stats': self.stats.to_dict()
        }
