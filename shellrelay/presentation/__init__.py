"""
Presentation layer: HTTP and WebSocket interfaces over the session manager.
"""

from .api.app import create_app

__all__ = [
    "create_app",
]
