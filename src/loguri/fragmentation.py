"""
Datagram fragmentation.

A rendered message that does not fit one packet is split into framed chunks.
Every chunk starts with a 12 byte header::

    magic (2) | unix seconds (4) | message id (4) | sequence (1) | total (1)

All chunks of one message share timestamp and message id. A message that would
need more chunks than allowed is never partially sent.
"""

from __future__ import annotations

import math
import random
import struct
import time
from typing import Callable, NamedTuple

from .exceptions import OversizeError

MAGIC = b"\x1e\x0f"
HEADER = struct.Struct(">2sIIBB")
HEADER_SIZE = HEADER.size
PACKET_SIZE = 0x2000


class FragmentHeader(NamedTuple):
    magic: bytes
    timestamp: int
    message_id: int
    sequence: int
    total: int


def fragment(
    payload: bytes,
    *,
    max_chunks: int = 1,
    packet_size: int = PACKET_SIZE,
    now: Callable[[], float] = time.time,
    rand: Callable[[], float] = random.random,
) -> list[bytes]:
    """Split a payload into datagrams.

    Returns ``[payload]`` unframed when it fits one packet.

    Raises:
        OversizeError: the payload needs more than ``max_chunks`` fragments.
    """
    if len(payload) <= packet_size:
        return [payload]
    capacity = packet_size - HEADER_SIZE
    count = math.ceil(len(payload) / capacity)
    if count > max_chunks:
        raise OversizeError(len(payload), count, max_chunks)

    stamp = int(now()) & 0xFFFFFFFF
    message_id = int(rand() * 0xFFFFFF)
    chunks = []
    for seq in range(count):
        offset = seq * capacity
        header = HEADER.pack(MAGIC, stamp, message_id, seq, count)
        chunks.append(header + payload[offset : offset + capacity])
    return chunks


def parse_header(packet: bytes) -> FragmentHeader:
    """Decode the header of a fragmented datagram."""
    if len(packet) < HEADER_SIZE:
        raise ValueError("packet shorter than a fragment header")
    header = FragmentHeader(*HEADER.unpack_from(packet))
    if header.magic != MAGIC:
        raise ValueError("not a fragmented datagram")
    return header
