from __future__ import annotations

"""
Signed varints for the seekgz index.

Encoding
- zig-zag map: n -> (n << 1) ^ (n >> 63), so small magnitudes of either sign stay short
- then unsigned LEB128: 7 bits per byte, high bit set on every byte but the last
- at most 10 bytes for a 64-bit value
"""

from typing import Tuple

from .errors import MalformedIndex


MAX_VARINT_LEN = 10

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1


def encode_varint(n: int) -> bytes:
    if n < _INT64_MIN or n > _INT64_MAX:
        raise ValueError(f"varint: {n} does not fit in 64 bits")
    ux = (n << 1) ^ (n >> 63)
    out = bytearray()
    while ux >= 0x80:
        out.append((ux & 0x7F) | 0x80)
        ux >>= 7
    out.append(ux)
    return bytes(out)


def decode_varint(data: bytes, pos: int = 0) -> Tuple[int, int]:
    """Decode one signed varint from ``data`` at ``pos``.

    Returns:
        ``(value, new_pos)``.

    Raises:
        MalformedIndex: the data ends before the terminating byte, or the
            value does not fit in 64 bits.
    """
    ux = 0
    shift = 0
    for i in range(MAX_VARINT_LEN):
        if pos >= len(data):
            raise MalformedIndex("varint: truncated")
        b = data[pos]
        pos += 1
        if b < 0x80:
            if i == MAX_VARINT_LEN - 1 and b > 1:
                raise MalformedIndex("varint: overflows 64 bits")
            ux |= b << shift
            x = ux >> 1
            if ux & 1:
                x = ~x
            return x, pos
        ux |= (b & 0x7F) << shift
        shift += 7
    raise MalformedIndex("varint: overflows 64 bits")


class VarintStream:
    """Sequential varint cursor over an in-memory buffer."""

    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    @property
    def remaining(self) -> int:
        return len(self.data) - self.pos

    def read(self) -> int:
        value, self.pos = decode_varint(self.data, self.pos)
        return value
