"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All the knobs of a simplehttp server in one dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m simplehttp --port 3000                          │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── SIMPLEHTTP_PORT=3000 python -m simplehttp                 │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Configuration is validated once at startup (validate()), so a bad value
fails immediately rather than on the first connection.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional


ENV_PREFIX = "SIMPLEHTTP_"


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    Example:
        config = ServerConfig(port=8080, read_timeout_seconds=5)
        config.validate()
        server = Server(config=config)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All IPv4 interfaces (default)
    - "127.0.0.1" - Localhost only
    """

    port: int = 3030
    """The port to listen on. 0 asks the OS for a free one."""

    backlog: int = 128
    """Maximum number of connections waiting to be accepted."""

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_request_bytes: int = 1024 * 1024  # 1 MiB
    """
    Largest request (request line + headers + body) the server will
    buffer. A connection that sends more without completing a request
    is dropped.
    """

    read_timeout_seconds: float = 60
    """
    Total time allowed to receive one request, measured from the start
    of the read. 0 or less disables the deadline.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level for the CLI (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    server_name: str = "simplehttp"
    """Value of the Server header on every response."""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        SIMPLEHTTP_HOST               Bind address (default: 0.0.0.0)
        SIMPLEHTTP_PORT               Port (default: 3030)
        SIMPLEHTTP_MAX_REQUEST_BYTES  Request size ceiling (default: 1048576)
        SIMPLEHTTP_READ_TIMEOUT       Read deadline in seconds (default: 60)
        SIMPLEHTTP_LOG_LEVEL          Logging level (default: INFO)

        =====================================================================

        Args:
            environ: Mapping to read from instead of os.environ.

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str, default):
            return env.get(ENV_PREFIX + name, default)

        return cls(
            host=get("HOST", defaults.host),
            port=int(get("PORT", defaults.port)),
            max_request_bytes=int(get("MAX_REQUEST_BYTES", defaults.max_request_bytes)),
            read_timeout_seconds=float(get("READ_TIMEOUT", defaults.read_timeout_seconds)),
            log_level=get("LOG_LEVEL", defaults.log_level),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.max_request_bytes < 1:
            raise ValueError("max_request_bytes must be >= 1")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")

    @property
    def read_timeout(self) -> Optional[float]:
        """The read deadline in seconds, or None when disabled."""
        return self.read_timeout_seconds if self.read_timeout_seconds > 0 else None
