# mc_rcon/session.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .connection import Connection, ConnectionState
from .errors import Disconnected, InvalidConfig, RconError
from .packet import PacketType
from .reassembly import read_response
from .util import DEFAULT_PORT, parse_address

log = logging.getLogger(__name__)

PING_COMMAND = "list"


@dataclass(frozen=True)
class RconConfig:
    address: Tuple[str, int]
    password: str
    timeout: float = 5.0
    read_timeout: Optional[float] = None

    def __post_init__(self):
        host, port = self.address
        if not host:
            raise InvalidConfig("server address is required")
        if not 0 < int(port) < 65536:
            raise InvalidConfig(f"port {port} is out of range")
        if not self.password:
            raise InvalidConfig("password cannot be empty")
        if self.timeout <= 0:
            raise InvalidConfig("timeout must be greater than 0")
        if self.read_timeout is not None and self.read_timeout <= 0:
            raise InvalidConfig("read timeout must be greater than 0")

    @classmethod
    def from_string(cls, address: str, password: str, timeout: float = 5.0,
                    read_timeout: Optional[float] = None,
                    default_port: int = DEFAULT_PORT) -> "RconConfig":
        try:
            addr = parse_address(address, default_port)
        except ValueError as e:
            raise InvalidConfig(str(e)) from None
        return cls(addr, password, timeout, read_timeout)

    @property
    def display_address(self) -> str:
        host, port = self.address
        return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"


class Session:
    """
    Public surface of the client: connect, execute, ping, reconnect.

    A session owns one authenticated Connection. It never retries; callers
    that want retries wrap `connect` (see retry.connect_with_retry) and call
    `reconnect` themselves after a NetworkError.
    """

    def __init__(self, config: RconConfig, conn: Connection):
        self.config = config
        self._conn: Optional[Connection] = conn

    @classmethod
    def connect(cls, config: RconConfig) -> "Session":
        return cls(config, _handshake(config))

    @property
    def state(self) -> ConnectionState:
        if self._conn is None:
            return ConnectionState.CLOSED
        return self._conn.state

    @property
    def server_address(self) -> str:
        return self.config.display_address

    def execute(self, command: str) -> str:
        conn = self._conn
        if conn is None or conn.state is not ConnectionState.READY:
            raise Disconnected(f"session is {self.state.value}; reconnect first")
        log.debug("exec %r", command)
        rid = conn.send_request(PacketType.EXEC_COMMAND, command)
        response = read_response(conn.read_one_packet, rid)
        log.debug("exec %r -> %d chars", command, len(response))
        return response

    def ping(self) -> None:
        self.execute(PING_COMMAND)

    def is_authenticated_and_reachable(self) -> bool:
        try:
            self.ping()
        except RconError as e:
            log.info("liveness check failed: %s", e)
            return False
        return True

    def reconnect(self, config: Optional[RconConfig] = None) -> "Session":
        """Drop the current connection and handshake again from scratch."""
        if config is not None:
            self.config = config
        self.close()
        self._conn = _handshake(self.config)
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def _handshake(config: RconConfig) -> Connection:
    log.info("connecting to %s", config.display_address)
    conn = Connection.open(config.address, config.timeout, config.read_timeout)
    try:
        conn.authenticate(config.password)
    except Exception:
        conn.close()
        raise
    log.info("connected to %s", config.display_address)
    return conn
