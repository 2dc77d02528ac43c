"""
Exception taxonomy for SSH session management.

Establishment failures (connection, authentication, channel) are reported to
consumers as error events. Lookup failures are raised to the caller. Write and
control failures are raised by remote channels and absorbed by the relay loop.
"""

from typing import Optional


class ShellRelayError(Exception):
    """Base exception for all shellrelay errors"""
    pass


class SessionError(ShellRelayError):
    """Exception bound to a single session identifier"""

    def __init__(self, message: str, session_id: Optional[str] = None):
        self.session_id = session_id
        super().__init__(message)


class SSHConnectionError(SessionError):
    """Transport could not be established (unreachable, refused, handshake)"""
    pass


class AuthenticationError(SessionError):
    """Credentials were missing or rejected by the remote peer"""
    pass


class ChannelError(SessionError):
    """PTY or shell request was rejected after authentication"""
    pass


class SessionNotFoundError(SessionError):
    """Operation referenced an identifier that is not registered"""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}", session_id)


class SessionExistsError(SessionError):
    """Identifier is already bound to an active session"""

    def __init__(self, session_id: str):
        super().__init__(f"Session already active: {session_id}", session_id)


class SessionSchedulingError(SessionError):
    """A connect request could not be scheduled"""
    pass


class WriteError(SessionError):
    """Sending data to the remote channel failed"""
    pass


class ControlError(SessionError):
    """A window-change request to the remote channel failed"""
    pass


class ControlChannelClosedError(ShellRelayError):
    """A control message was sent after the control channel was closed"""
    pass
