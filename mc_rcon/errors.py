# mc_rcon/errors.py
from __future__ import annotations


class RconError(Exception):
    """Base class for everything the RCON client raises."""


class InvalidConfig(RconError, ValueError):
    pass


class NetworkError(RconError):
    """Socket-level I/O failure."""


class Disconnected(NetworkError):
    """The peer closed the connection, or the session is no longer usable."""


class ConnectTimeout(NetworkError, TimeoutError):
    pass


class AuthenticationFailed(RconError):
    """Bad password, or the auth response did not echo our request id."""


class ProtocolError(RconError):
    """Malformed frame or unexpected packet sequence."""


class MalformedPacket(ProtocolError):
    pass


class Truncated(MalformedPacket):
    pass


class LengthMismatch(MalformedPacket):
    pass


class PayloadTooLarge(RconError, ValueError):
    pass
