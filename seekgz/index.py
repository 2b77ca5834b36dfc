from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .errors import MalformedIndex
from .varint import VarintStream, encode_varint


@dataclass(frozen=True)
class BlockEntry:
    frame: int
    offset: int  # uncompressed offset inside the frame, separators included
    length: int


def build_index_blob(frame_table: Sequence[int], block_table: Sequence[BlockEntry]) -> bytes:
    """Serialize the frame and block tables.

    Layout: varint(frame_count), frame_count x varint(compressed_len),
    varint(block_count), block_count x (varint(frame), varint(offset), varint(length)).
    """
    out = bytearray()
    out += encode_varint(len(frame_table))
    for size in frame_table:
        out += encode_varint(size)
    out += encode_varint(len(block_table))
    for b in block_table:
        out += encode_varint(b.frame)
        out += encode_varint(b.offset)
        out += encode_varint(b.length)
    return bytes(out)


def _read_count(s: VarintStream, what: str, per_item: int) -> int:
    count = s.read()
    if count < 0:
        raise MalformedIndex(f"negative {what} count: {count}")
    # Every varint takes at least one byte; reject counts the blob cannot hold.
    if count * per_item > s.remaining:
        raise MalformedIndex(f"{what} count {count} exceeds index size")
    return count


def parse_index_blob(blob: bytes) -> Tuple[List[int], List[BlockEntry]]:
    s = VarintStream(blob)

    count = _read_count(s, "frame", 1)
    frame_table: List[int] = []
    for _ in range(count):
        size = s.read()
        if size < 0:
            raise MalformedIndex(f"negative frame length: {size}")
        frame_table.append(size)

    count = _read_count(s, "block", 3)
    block_table: List[BlockEntry] = []
    for i in range(count):
        frame = s.read()
        offset = s.read()
        length = s.read()
        if frame < 0 or frame >= len(frame_table):
            raise MalformedIndex(f"block {i} refers to missing frame {frame}")
        if offset < 0 or length < 0:
            raise MalformedIndex(f"block {i} has negative offset/length")
        block_table.append(BlockEntry(frame, offset, length))
    return frame_table, block_table


def frame_offsets(frame_table: Sequence[int]) -> List[int]:
    """Prefix sums: entry i is the byte offset of frame i, the last entry the end of all frames."""
    offs = [0]
    for size in frame_table:
        offs.append(offs[-1] + size)
    return offs
