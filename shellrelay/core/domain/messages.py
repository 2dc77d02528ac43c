"""
Messages flowing into a session's relay loop.

Control messages originate at the consumer and travel through the control
channel. Channel events originate at the remote shell and are produced by the
remote channel adapter.
"""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class InputMessage:
    """Opaque bytes to forward to the remote shell."""
    data: bytes


@dataclass(frozen=True)
class ResizeMessage:
    """New terminal geometry."""
    columns: int
    rows: int

    def __post_init__(self) -> None:
        if self.columns <= 0 or self.rows <= 0:
            raise ValueError(
                f"Terminal geometry must be positive, got {self.columns}x{self.rows}")


ControlMessage = Union[InputMessage, ResizeMessage]


@dataclass(frozen=True)
class ChannelData:
    """Bytes received from the remote shell."""
    data: bytes


@dataclass(frozen=True)
class ChannelExitStatus:
    """Remote process exited with the given status."""
    status: int


@dataclass(frozen=True)
class ChannelClosed:
    """Remote channel reached end of stream or was closed."""
    reason: Optional[str] = None


ChannelEvent = Union[ChannelData, ChannelExitStatus, ChannelClosed]
