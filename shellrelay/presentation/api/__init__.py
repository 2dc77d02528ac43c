"""
REST and WebSocket API components for the presentation layer.
"""

from .app import create_app
from .dependencies import get_component, get_config, get_container

__all__ = [
    "create_app",
    "get_container",
    "get_config",
    "get_component",
]
