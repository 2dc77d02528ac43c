"""
Core module containing the session domain, service interfaces and the
relay services, independent of the SSH library and the web framework.
"""

from .interfaces.lifecycle import IComponent, IHealthCheckable, IStartable, IStoppable
from .interfaces.sessions import IEventSink, IRemoteChannel, ISessionEstablisher, ISessionManager
from .domain.events import SessionEvent, SessionEventKind
from .domain.messages import ChannelEvent, ControlMessage
from .domain.session import ConnectionParameters, RelayState, RelayStats, SessionRecord

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "IEventSink",
    "IRemoteChannel",
    "ISessionEstablisher",
    "ISessionManager",
    "SessionEvent",
    "SessionEventKind",
    "ChannelEvent",
    "ControlMessage",
    "ConnectionParameters",
    "RelayState",
    "RelayStats",
    "SessionRecord",
]
