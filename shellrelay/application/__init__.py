"""
Application layer: dependency injection container and startup sequence.
"""

from .container import Container, IContainer
from .startup import ApplicationStartup

__all__ = [
    "Container",
    "IContainer",
    "ApplicationStartup",
]
