"""
asyncssh-backed session establishment and remote channel adapter.
"""

from .channel import AsyncSSHChannel, ShellSession
from .establisher import AsyncSSHEstablisher

__all__ = [
    "AsyncSSHChannel",
    "AsyncSSHEstablisher",
    "ShellSession",
]
