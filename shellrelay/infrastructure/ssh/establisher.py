"""
Session establishment over asyncssh.

Connects, authenticates with a password, requests a PTY and a shell, and maps
asyncssh failures onto the session error taxonomy.
"""

import asyncio
import logging
from typing import Any, Dict

import asyncssh

from ...core.domain.session import ConnectionParameters
from ...core.exceptions import AuthenticationError, ChannelError, SSHConnectionError
from ...core.interfaces.sessions import IRemoteChannel, ISessionEstablisher
from ..config.models import SessionConfig
from .channel import AsyncSSHChannel, ShellSession

logger = logging.getLogger(__name__)


class AsyncSSHEstablisher(ISessionEstablisher):
    """
    Opens interactive shell sessions with asyncssh.

    Only password authentication is attempted. When no known_hosts file is
    configured every server host key is accepted; this is a security gap and
    is logged on each connection.
    """

    def __init__(self, config: SessionConfig):
        self._config = config

    def connect_kwargs(self, params: ConnectionParameters) -> Dict[str, Any]:
        """Build asyncssh.connect keyword arguments."""
        kwargs: Dict[str, Any] = {
            'host': params.host,
            'port': params.port,
            'username': params.username,
            'password': params.password,
            'known_hosts': self._config.known_hosts,
            'preferred_auth': 'password',
            'client_keys': None,
            'agent_path': None,
            'keepalive_interval': self._config.keepalive_interval,
        }
        if self._config.client_version:
            kwargs['client_version'] = self._config.client_version
        return kwargs

    async def establish(self, params: ConnectionParameters) -> IRemoteChannel:
        if not params.password:
            raise AuthenticationError(
                "Authentication failed: only password authentication is supported and no password was supplied")

        if self._config.known_hosts is None:
            logger.warning(f"Host key verification disabled for {params.host}:{params.port}; accepting any host key")

        connection = await self._open_connection(params)

        try:
            channel, session = await connection.create_session(
                ShellSession,
                term_type=self._config.term_type,
                term_size=(self._config.default_columns, self._config.default_rows),
                encoding=None
            )
        except (OSError, asyncssh.Error) as e:
            connection.close()
            await connection.wait_closed()
            raise ChannelError(f"Shell request rejected by {params.host}: {e}")

        logger.debug(f"Shell channel opened on {params.address} "
                     f"({self._config.term_type}, {self._config.default_columns}x{self._config.default_rows})")
        return AsyncSSHChannel(connection, channel, session)

    async def _open_connection(self, params: ConnectionParameters) -> Any:
        target = f"{params.host}:{params.port}"
        connect = asyncssh.connect(**self.connect_kwargs(params))

        try:
            if self._config.connect_timeout:
                return await asyncio.wait_for(connect, timeout=self._config.connect_timeout)
            return await connect
        except asyncssh.PermissionDenied as e:
            raise AuthenticationError(f"Authentication failed for {params.username}@{target}: {e}")
        except asyncio.TimeoutError:
            raise SSHConnectionError(f"Connection to {target} timed out after {self._config.connect_timeout} seconds")
        except (OSError, asyncssh.Error) as e:
            raise SSHConnectionError(f"Connection to {target} failed: {e}")
