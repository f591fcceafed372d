# mc_rcon/packet.py
"""
RCON frame codec.

Wire layout, all integers signed 32-bit little-endian:

    [size][request id][type][payload ...][0x00][0x00]

`size` counts everything after itself, so an empty payload gives size 10 and a
14 byte frame. Nothing in here does I/O.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Union

from .errors import LengthMismatch, PayloadTooLarge, Truncated

MAX_REQUEST_PAYLOAD = 1446
MAX_RESPONSE_PAYLOAD = 4096

HEADER = struct.Struct("<iii")
SIZE_FIELD = struct.Struct("<i")
TERMINATOR = b"\x00\x00"

MIN_FRAME = HEADER.size           # size + request id + type
MIN_BODY = 8                      # request id + type
MAX_BODY = MAX_RESPONSE_PAYLOAD + 10

AUTH_FAILED_ID = -1
INT32_MIN, INT32_MAX = -(2 ** 31), 2 ** 31 - 1


class PacketType(IntEnum):
    RESPONSE_VALUE = 0
    EXEC_COMMAND = 2   # also the type of the server's reply to AUTH
    AUTH = 3


def _as_type(value: int) -> int:
    try:
        return PacketType(value)
    except ValueError:
        return value


@dataclass(frozen=True)
class Packet:
    request_id: int
    type: int
    payload: str = ""
    # payload bytes declared on the wire; None for packets built locally
    wire_length: Optional[int] = field(default=None, compare=False, repr=False)

    @property
    def payload_length(self) -> int:
        if self.wire_length is not None:
            return self.wire_length
        return len(self.payload.encode("utf-8"))

    def is_command_response(self) -> bool:
        return self.type == PacketType.RESPONSE_VALUE


def encode(request_id: int, kind: int, payload: Union[str, bytes] = b"") -> bytes:
    """Serialize one frame. Raises PayloadTooLarge past 1446 payload bytes."""
    body = payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)
    if len(body) > MAX_REQUEST_PAYLOAD:
        raise PayloadTooLarge(
            f"payload is {len(body)} bytes (max {MAX_REQUEST_PAYLOAD})"
        )
    if not INT32_MIN <= request_id <= INT32_MAX:
        raise ValueError(f"request id {request_id} does not fit in int32")
    size = MIN_BODY + len(body) + len(TERMINATOR)
    return HEADER.pack(size, request_id, int(kind)) + body + TERMINATOR


def decode(data: bytes) -> Packet:
    """
    Parse one complete frame, size prefix included.

    Invalid UTF-8 is replaced rather than rejected, servers are free to send
    whatever bytes their console produced.
    """
    if len(data) < MIN_FRAME:
        raise Truncated(f"frame is {len(data)} bytes (minimum {MIN_FRAME})")
    size, request_id, kind = HEADER.unpack_from(data, 0)
    if len(data) != size + SIZE_FIELD.size:
        raise LengthMismatch(
            f"size field says {size + SIZE_FIELD.size} bytes, got {len(data)}"
        )
    payload_length = max(0, size - MIN_BODY - len(TERMINATOR))
    raw = data[MIN_FRAME:MIN_FRAME + payload_length]
    text = raw.decode("utf-8", "replace").rstrip("\x00")
    return Packet(request_id, _as_type(kind), text, wire_length=payload_length)
