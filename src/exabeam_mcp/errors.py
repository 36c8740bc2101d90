"""
Error types raised by the Exabeam MCP server.
"""


class ExabeamError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(ExabeamError):
    """Raised when required environment configuration is missing or invalid."""


class AuthenticationError(ExabeamError):
    """Raised when the client-credentials token exchange fails."""


class UnknownToolError(ExabeamError):
    """Raised when a tool call names a tool that is not registered."""
