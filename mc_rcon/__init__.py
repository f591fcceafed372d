"""Minecraft / Source RCON client."""

__version__ = "0.3.0"

from .connection import Connection, ConnectionState
from .errors import (
    AuthenticationFailed,
    ConnectTimeout,
    Disconnected,
    InvalidConfig,
    LengthMismatch,
    MalformedPacket,
    NetworkError,
    PayloadTooLarge,
    ProtocolError,
    RconError,
    Truncated,
)
from .packet import Packet, PacketType, decode, encode
from .retry import connect_with_retry
from .session import RconConfig, Session
