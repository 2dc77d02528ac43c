"""
Session interfaces for the SSH relay engine.

This module defines the contracts between the relay engine and its
collaborators: the remote channel produced by session establishment, the
establisher itself, the outbound event sink, and the consumer-facing
command surface.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

from ..domain.events import SessionEvent
from ..domain.messages import ChannelEvent
from ..domain.session import ConnectionParameters, RelayStats


class IRemoteChannel(ABC):
    """
    Interface for a live interactive shell channel.

    A remote channel is owned by exactly one relay loop.
    """

    @abstractmethod
    async def wait(self) -> Optional[ChannelEvent]:
        """
        Wait for the next event from the remote side.

        Returns:
            The next channel event in arrival order, or None once the
            channel has no more events to deliver.
        """
        pass

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """
        Send bytes to the remote shell.

        Raises:
            WriteError: If the channel can no longer accept data
        """
        pass

    @abstractmethod
    async def resize(self, columns: int, rows: int) -> None:
        """
        Send a window-change request with zero pixel dimensions.

        Raises:
            ControlError: If the request could not be sent
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the channel and its underlying connection."""
        pass


class ISessionEstablisher(ABC):
    """Interface for opening an authenticated interactive shell."""

    @abstractmethod
    async def establish(self, params: ConnectionParameters) -> IRemoteChannel:
        """
        Connect, authenticate with a password, request a PTY and a shell.

        Args:
            params: Connection parameters

        Returns:
            Live remote channel

        Raises:
            SSHConnectionError: If the transport cannot be established
            AuthenticationError: If no password is given or it is rejected
            ChannelError: If the PTY or shell request is rejected
        """
        pass


class IEventSink(ABC):
    """Interface for delivering session events to the consumer."""

    @abstractmethod
    async def emit(self, event: SessionEvent) -> None:
        """
        Deliver an event.

        Events for one session must be delivered in the order emit() is
        called.
        """
        pass


class ISessionManager(ABC):
    """
    Consumer-facing command surface.

    Every command returns quickly; network work happens in background tasks.
    """

    @abstractmethod
    async def connect(
        self,
        session_id: str,
        host: str,
        port: int,
        username: str,
        password: Optional[str] = None
    ) -> Any:
        """
        Schedule a connection attempt.

        Returns:
            A handle whose result is available once establishment completes.
            The outcome is also reported through the event sink.
        """
        pass

    @abstractmethod
    async def send_input(self, session_id: str, data: Union[bytes, str]) -> None:
        """Forward input to a session's remote shell."""
        pass

    @abstractmethod
    async def disconnect(self, session_id: str) -> None:
        """End a session."""
        pass

    @abstractmethod
    async def resize(self, session_id: str, columns: int, rows: int) -> None:
        """Change a session's terminal geometry."""
        pass

    @abstractmethod
    async def list_sessions(self) -> List[Dict[str, Any]]:
        """List active sessions."""
        pass

    @abstractmethod
    async def get_stats(self, session_id: str) -> RelayStats:
        """Get diagnostic counters for an active session."""
        pass
