"""
Core service implementations: registry, control channel, relay loop,
event hub and the session manager.
"""

from .control import ControlReceiver, ControlSender, create_control_channel
from .event_hub import SessionEventHub
from .registry import ConnectionRegistry
from .relay import RelayLoop
from .session_manager import ConnectAttempt, SessionManager

__all__ = [
    "ConnectionRegistry",
    "ControlSender",
    "ControlReceiver",
    "create_control_channel",
    "RelayLoop",
    "SessionEventHub",
    "SessionManager",
    "ConnectAttempt",
]
