"""
Exceptions for HayesModem.

Provides detailed error information for debugging emulator failures.
"""

from typing import Optional


class ModemError(Exception):
    """
    Base exception for modem emulator errors.

    All HayesModem exceptions inherit from this class.
    """

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        response: Optional[list[str]] = None
    ) -> None:
        """
        Initialize exception with context.

        Args:
            message: Error description
            command: AT command or route that caused the error (if applicable)
            response: Related response lines (if applicable)
        """
        self.command = command
        self.response = response
        super().__init__(message)

    def __str__(self) -> str:
        """Format error message with context."""
        parts = [super().__str__()]

        if self.command:
            parts.append(f"Command: {self.command}")

        if self.response:
            parts.append(f"Response: {self.response}")

        return " | ".join(parts)


class ConfigError(ModemError):
    """
    Raised when the configuration cannot be loaded.

    This indicates:
    - Missing or unreadable file
    - Invalid YAML
    - Wrong value types or out-of-range ports
    """
    pass


class RouteError(ModemError):
    """
    Raised when a phonebook route is not a valid "host:port" pair.
    """
    pass


class AudioError(ModemError):
    """
    Raised when a sound cue cannot be resolved or played.
    """
    pass


class TransportError(ModemError):
    """
    Raised when a socket transport fails.

    This indicates:
    - Connection refused or timed out
    - DNS failure
    - Read or write failure on an open connection
    """
    pass


class RemoteClosedError(TransportError):
    """
    Raised when the remote end closes the upstream connection.
    """
    pass


class ClientDisconnectedError(TransportError):
    """
    Raised when writing to the client socket fails.

    The session treats this as the end of the session.
    """
    pass
