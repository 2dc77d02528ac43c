"""
Configuration models and data structures.

This module defines the configuration models used throughout the application,
providing type safety and validation for configuration values.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class SessionConfig:
    """SSH session configuration."""
    term_type: str = "xterm-256color"
    default_columns: int = 80
    default_rows: int = 24
    connect_timeout: Optional[float] = None
    keepalive_interval: float = 0.0
    # None accepts any host key (unverified); set a path to verify.
    known_hosts: Optional[str] = None
    client_version: Optional[str] = None
    reject_duplicate_ids: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_directory: str = "logs"
    max_file_size: str = "10 MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = False


@dataclass
class ServerConfig:
    """API server configuration."""
    host: str = "127.0.0.1"
    port: int = 8000
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class ApplicationConfig:
    """Main application configuration."""

    name: str = "shellrelay"
    version: str = "0.1.0"
    debug: bool = False
    environment: str = "production"

    session: SessionConfig = field(default_factory=SessionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    config_file_path: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate_ports()
        self._validate_session()
        self._validate_logging()

    def _validate_ports(self) -> None:
        if not (1 <= self.server.port <= 65535):
            raise ValueError(
                f"Server port must be between 1 and 65535, got {self.server.port}")

    def _validate_session(self) -> None:
        session = self.session

        if not session.term_type:
            raise ValueError("Terminal type cannot be empty")

        if session.default_columns <= 0 or session.default_rows <= 0:
            raise ValueError(
                f"Default terminal geometry must be positive, got "
                f"{session.default_columns}x{session.default_rows}")

        if session.connect_timeout is not None and session.connect_timeout <= 0:
            raise ValueError(
                f"Connect timeout must be positive, got {session.connect_timeout}")

        if session.keepalive_interval < 0:
            raise ValueError(
                f"Keepalive interval cannot be negative, got {session.keepalive_interval}")

    def _validate_logging(self) -> None:
        levels = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")
        if self.logging.level.upper() not in levels:
            raise ValueError(f"Unknown log level: {self.logging.level}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ApplicationConfig':
        """Create configuration from dictionary."""
        return cls(
            name=data.get('name', 'shellrelay'),
            version=data.get('version', '0.1.0'),
            debug=data.get('debug', False),
            environment=data.get('environment', 'production'),
            session=SessionConfig(**data.get('session', {})),
            logging=LoggingConfig(**data.get('logging', {})),
            server=ServerConfig(**data.get('server', {})),
            config_file_path=data.get('config_file_path')
        )
