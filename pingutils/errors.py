"""Errors raised while pinging a server."""


class PingError(Exception):
    """Base class for every error raised by pingutils"""


class ValidationError(PingError, ValueError):
    """The ping options are missing or invalid, raised before any I/O"""


class ServerConnectionError(PingError, ConnectionError):
    """The server could not be reached or the transport failed"""


class ProtocolError(PingError):
    """The server sent something that does not follow the status protocol"""

    PREMATURE_END = "Server prematurely ended stream."
    INVALID_PACKET = "Server returned invalid packet."
    UNEXPECTED_VALUE = "Server returned unexpected value."


class DecodeError(PingError, ValueError):
    """The status payload is not a valid status document"""
