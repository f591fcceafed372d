# mc_rcon/connection.py
from __future__ import annotations

import contextlib
import logging
import socket
from enum import Enum
from typing import Optional, Tuple

from . import packet as codec
from .errors import (
    AuthenticationFailed,
    ConnectTimeout,
    Disconnected,
    MalformedPacket,
    NetworkError,
    ProtocolError,
)
from .packet import Packet, PacketType

log = logging.getLogger(__name__)

Address = Tuple[str, int]
FIRST_REQUEST_ID = 1


class ConnectionState(Enum):
    UNCONNECTED = "unconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    READY = "ready"
    CLOSED = "closed"
    FAULTED = "faulted"


class Connection:
    """
    One TCP socket to an RCON server.

    Strictly one exchange at a time: a request is written, then the caller
    reads packets until its response is complete, then the next request may
    go out. No locking; one owner per connection.
    """

    def __init__(self, sock: socket.socket, address: Optional[Address] = None):
        self._sock: Optional[socket.socket] = sock
        self.address = address
        self.next_request_id = FIRST_REQUEST_ID
        self.authenticated = False
        self.state = ConnectionState.CONNECTING

    @classmethod
    def open(cls, address: Address, timeout: float,
             read_timeout: Optional[float] = None) -> "Connection":
        """Connect within `timeout` seconds. No retries at this layer."""
        host, port = address
        log.debug("connecting to %s:%s (timeout %.1fs)", host, port, timeout)
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except socket.timeout as e:
            raise ConnectTimeout(f"connecting to {host}:{port} timed out after {timeout}s") from e
        except OSError as e:
            raise NetworkError(f"cannot connect to {host}:{port}: {e}") from e
        # the connect timeout does not carry over to reads unless asked for
        sock.settimeout(read_timeout)
        return cls(sock, (host, port))

    # ── request ids ───────────────────────────────────────────────────────

    def allocate_request_id(self) -> int:
        rid = self.next_request_id
        nxt = rid + 1
        # -1 is the auth-failure sentinel; stay positive so we never hand it out
        if nxt > codec.INT32_MAX or nxt == codec.AUTH_FAILED_ID:
            nxt = FIRST_REQUEST_ID
        self.next_request_id = nxt
        return rid

    # ── handshake ─────────────────────────────────────────────────────────

    def authenticate(self, password: str) -> None:
        if self.state is not ConnectionState.CONNECTING:
            raise ProtocolError(f"cannot authenticate in state {self.state.value}")
        self.state = ConnectionState.AUTHENTICATING
        rid = self.send_request(PacketType.AUTH, password)
        response = self.read_one_packet()
        if response.request_id == codec.AUTH_FAILED_ID:
            log.warning("authentication rejected by server (bad password)")
            self._fault()
            raise AuthenticationFailed("server rejected the RCON password")
        if response.request_id != rid:
            log.warning("auth response id %d does not match request id %d",
                        response.request_id, rid)
            self._fault()
            raise AuthenticationFailed(
                f"auth response id {response.request_id} does not match request {rid}"
            )
        self.authenticated = True
        self.state = ConnectionState.READY
        log.info("authenticated with %s", self._peer())

    # ── framing ───────────────────────────────────────────────────────────

    def send_request(self, kind: int, payload: str) -> int:
        """Frame and write one request; returns the request id it was given."""
        if self._sock is None:
            raise Disconnected("connection is closed")
        if kind != PacketType.AUTH and self.state is not ConnectionState.READY:
            raise ProtocolError(f"cannot send commands in state {self.state.value}")
        rid = self.allocate_request_id()
        frame = codec.encode(rid, kind, payload)
        log.debug("send type=%d id=%d size=%d", int(kind), rid, len(frame))
        try:
            self._sock.sendall(frame)
        except OSError as e:
            self._fault()
            raise NetworkError(f"send failed: {e}") from e
        return rid

    def read_one_packet(self) -> Packet:
        prefix = self._recv_exact(codec.SIZE_FIELD.size)
        (size,) = codec.SIZE_FIELD.unpack(prefix)
        if size < codec.MIN_BODY:
            self._fault()
            raise ProtocolError(f"frame too short: size field {size}")
        if size > codec.MAX_BODY:
            self._fault()
            raise ProtocolError(f"frame too large: size field {size}")
        try:
            pkt = codec.decode(prefix + self._recv_exact(size))
        except MalformedPacket:
            self._fault()
            raise
        log.debug("recv type=%d id=%d payload=%d",
                  int(pkt.type), pkt.request_id, pkt.payload_length)
        return pkt

    def _recv_exact(self, n: int) -> bytes:
        if self._sock is None:
            raise Disconnected("connection is closed")
        data = bytearray()
        while len(data) < n:
            try:
                chunk = self._sock.recv(n - len(data))
            except OSError as e:
                self._fault()
                raise NetworkError(f"receive failed: {e}") from e
            if not chunk:
                self._fault()
                raise Disconnected("server closed the connection")
            data += chunk
        return bytes(data)

    # ── lifecycle ─────────────────────────────────────────────────────────

    def _peer(self) -> str:
        if self.address is None:
            return "server"
        return f"{self.address[0]}:{self.address[1]}"

    def _fault(self) -> None:
        if self.state is not ConnectionState.CLOSED:
            self.state = ConnectionState.FAULTED
        self.authenticated = False

    def close(self) -> None:
        if self._sock is not None:
            with contextlib.suppress(OSError):
                self._sock.close()
            self._sock = None
        self.authenticated = False
        self.state = ConnectionState.CLOSED

    @property
    def closed(self) -> bool:
        return self._sock is None

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
