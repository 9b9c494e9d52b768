"""
Custom exceptions for the Prismatik API client.

These are raised by the transport and handshake helpers and caught at the
public operation boundary of PrismatikClient.
"""


class PrismatikError(Exception):
    """Base exception for all Prismatik API related errors."""
    pass


class ProtocolError(PrismatikError):
    """Raised when the server replies with unexpected content."""
    pass


class HandshakeError(ProtocolError):
    """Raised when the welcome banner is missing or wrong."""
    pass


class LockError(ProtocolError):
    """Raised when the device lock cannot be acquired."""
    pass


class ConnectionError(PrismatikError):
    """Raised when connection issues occur."""
    pass


class AuthenticationError(PrismatikError):
    """Raised when the API key is rejected."""
    pass


class ServerDisconnectionError(ConnectionError):
    """Raised when server disconnects unexpectedly."""
    pass


class TimeoutError(ConnectionError):
    """Raised when connection or operation times out."""
    pass
