# mc_rcon/reassembly.py
from __future__ import annotations

import logging
from typing import Callable

from .errors import ProtocolError
from .packet import MAX_RESPONSE_PAYLOAD, Packet

log = logging.getLogger(__name__)

MAX_FRAGMENTS = 100


def read_response(read_packet: Callable[[], Packet], expected_request_id: int,
                  max_fragments: int = MAX_FRAGMENTS) -> str:
    """
    Fold server packets into one logical response.

    A full 4096 byte payload means more is coming; the first shorter payload
    ends the response. Packets carrying another request id are late answers to
    earlier requests and are dropped. Every read counts toward `max_fragments`.
    """
    parts = []
    reads = 0
    while True:
        pkt = read_packet()
        reads += 1
        if pkt.request_id != expected_request_id:
            log.warning("dropping stale packet id=%d (waiting for %d)",
                        pkt.request_id, expected_request_id)
        elif not pkt.is_command_response():
            raise ProtocolError(
                f"expected a response packet for id {expected_request_id}, got type {int(pkt.type)}"
            )
        else:
            parts.append(pkt.payload)
            if pkt.payload_length < MAX_RESPONSE_PAYLOAD:
                log.debug("response %d complete: %d packet(s)", expected_request_id, reads)
                return "".join(parts)
        if reads > max_fragments:
            raise ProtocolError(f"too many fragments ({reads}) for request {expected_request_id}")
