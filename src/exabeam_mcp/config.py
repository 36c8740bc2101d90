"""
Environment configuration for the Exabeam MCP server.

Values are read once at startup into immutable dataclasses and passed
explicitly to the code that needs them.
"""

import logging
import os
import sys
from dataclasses import dataclass
from typing import Mapping, Optional

from exabeam_mcp.errors import ConfigError


TRANSPORTS = ("stdio", "http", "sse", "streamable-http")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ExabeamConfig:
    """
    Exabeam endpoint and API credentials.
    - EXABEAM_URL is required.
    - EXABEAM_API_KEY and EXABEAM_API_SECRET are required together.
    """

    base_url: str
    api_key: str
    api_secret: str

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ExabeamConfig":
        env = os.environ if environ is None else environ

        base_url = env.get("EXABEAM_URL", "")
        api_key = env.get("EXABEAM_API_KEY", "")
        api_secret = env.get("EXABEAM_API_SECRET", "")

        if not base_url:
            raise ConfigError("EXABEAM_URL environment variable is required")
        if not api_key or not api_secret:
            raise ConfigError(
                "Both EXABEAM_API_KEY and EXABEAM_API_SECRET environment variables are required"
            )

        return cls(base_url=base_url, api_key=api_key, api_secret=api_secret)


@dataclass(frozen=True)
class ServerSettings:
    """How the MCP server is exposed and how much it logs."""

    transport: str = "stdio"
    host: str = "0.0.0.0"
    port: int = 9000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerSettings":
        env = os.environ if environ is None else environ

        transport = env.get("EXABEAM_MCP_TRANSPORT", cls.transport).lower()
        if transport not in TRANSPORTS:
            raise ConfigError(
                f"EXABEAM_MCP_TRANSPORT must be one of {', '.join(TRANSPORTS)}, got {transport!r}"
            )

        raw_port = env.get("EXABEAM_MCP_PORT", str(cls.port))
        try:
            port = int(raw_port)
        except ValueError:
            raise ConfigError(f"EXABEAM_MCP_PORT must be an integer, got {raw_port!r}")

        log_level = env.get("EXABEAM_MCP_LOG_LEVEL", cls.log_level).upper()
        if log_level not in LOG_LEVELS:
            raise ConfigError(
                f"EXABEAM_MCP_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}"
            )

        return cls(
            transport=transport,
            host=env.get("EXABEAM_MCP_HOST", cls.host),
            port=port,
            log_level=log_level,
        )


def configure_logging(level: str = "INFO") -> None:
    """
    Send all logging to stderr. stdout carries the MCP stdio transport.
    Calling it again only updates the level.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if getattr(root_logger, "_exabeam_logging_configured", False):
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s [%(message)s]",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(handler)
    root_logger._exabeam_logging_configured = True  # type: ignore[attr-defined]
