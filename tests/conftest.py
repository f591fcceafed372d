import struct

import pytest

from mc_rcon.connection import Connection, ConnectionState
from mc_rcon.packet import PacketType


class FakeSocket:
    """In-memory socket: scripted inbound bytes, captured outbound bytes."""

    def __init__(self, inbound=b"", chunk=None):
        self.inbound = bytearray(inbound)
        self.sent = bytearray()
        self.chunk = chunk
        self.closed = False
        self.recv_calls = 0
        self.fail_send = None
        self.fail_recv = None

    def feed(self, data):
        self.inbound += data

    def sendall(self, data):
        if self.fail_send:
            raise self.fail_send
        self.sent += data

    def recv(self, n):
        self.recv_calls += 1
        if self.fail_recv:
            raise self.fail_recv
        if self.chunk:
            n = min(n, self.chunk)
        out = bytes(self.inbound[:n])
        del self.inbound[:n]
        return out

    def settimeout(self, value):
        self.timeout = value

    def close(self):
        self.closed = True


def server_frame(rid, kind, payload=b""):
    """A frame as a server would send it; no client-side request limit."""
    body = payload.encode("utf-8") if isinstance(payload, str) else payload
    return struct.pack("<iii", 8 + len(body) + 2, rid, int(kind)) + body + b"\x00\x00"


def response(rid, text="", kind=PacketType.RESPONSE_VALUE):
    return server_frame(rid, kind, text)


def auth_ok(rid=1):
    return server_frame(rid, PacketType.EXEC_COMMAND)


def auth_bad():
    return server_frame(-1, PacketType.EXEC_COMMAND)


@pytest.fixture
def sock():
    return FakeSocket()


@pytest.fixture
def ready_conn(sock):
    """A Connection that already passed the handshake with id 1."""
    sock.feed(auth_ok(1))
    conn = Connection(sock, ("127.0.0.1", 25575))
    conn.authenticate("secret")
    assert conn.state is ConnectionState.READY
    sock.sent.clear()
    return conn
