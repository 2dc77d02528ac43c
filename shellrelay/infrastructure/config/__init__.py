"""
Configuration models and loading.
"""

from .loader import ConfigLoader
from .models import ApplicationConfig, LoggingConfig, ServerConfig, SessionConfig

__all__ = [
    "ConfigLoader",
    "ApplicationConfig",
    "LoggingConfig",
    "ServerConfig",
    "SessionConfig",
]
