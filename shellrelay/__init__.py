"""
shellrelay - multi-session SSH terminal relay.

Opens interactive shell sessions on remote hosts, relays their output as
session events and forwards keystrokes and terminal resizes to them.
"""

__version__ = "0.1.0"

from .core.domain.events import SessionEvent, SessionEventKind
from .core.exceptions import (
    AuthenticationError, SessionError, SessionExistsError, SessionNotFoundError,
    ShellRelayError, SSHConnectionError
)
from .core.services.event_hub import SessionEventHub
from .core.services.session_manager import ConnectAttempt, SessionManager
from .application.container import Container, IContainer

__all__ = [
    "SessionEvent",
    "SessionEventKind",
    "ShellRelayError",
    "SessionError",
    "SSHConnectionError",
    "AuthenticationError",
    "SessionExistsError",
    "SessionNotFoundError",
    "SessionEventHub",
    "SessionManager",
    "ConnectAttempt",
    "Container",
    "IContainer",
]
