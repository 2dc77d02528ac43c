"""
Core interfaces defining the contracts for all major system components.

These interfaces provide the foundation for dependency inversion and let
tests replace the SSH transport and the consumer with fakes.
"""

from .lifecycle import IStartable, IStoppable, IHealthCheckable, IComponent
from .sessions import IRemoteChannel, ISessionEstablisher, IEventSink, ISessionManager

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "IRemoteChannel",
    "ISessionEstablisher",
    "IEventSink",
    "ISessionManager",
]
