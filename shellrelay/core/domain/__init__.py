"""
Domain models for sessions, control messages and outbound events.
"""

from .events import SessionEvent, SessionEventKind, event_topic
from .messages import (
    ChannelClosed, ChannelData, ChannelEvent, ChannelExitStatus,
    ControlMessage, InputMessage, ResizeMessage
)
from .session import ConnectionParameters, RelayState, RelayStats, SessionRecord

__all__ = [
    "SessionEvent",
    "SessionEventKind",
    "event_topic",
    "ChannelClosed",
    "ChannelData",
    "ChannelEvent",
    "ChannelExitStatus",
    "ControlMessage",
    "InputMessage",
    "ResizeMessage",
    "ConnectionParameters",
    "RelayState",
    "RelayStats",
    "SessionRecord",
]
