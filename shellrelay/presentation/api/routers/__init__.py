"""
API routers grouped by functionality.
"""

from . import health, sessions, terminal

__all__ = [
    "health",
    "sessions",
    "terminal",
]
