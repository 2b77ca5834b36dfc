"""
Index trailer: the IndexBlob hidden in the FEXTRA field of empty gzip members.

Segment layout (one empty gzip member per chunk of at most 65529 bytes)
- PREFIX[10]     gzip header with FLG.FEXTRA, MTIME=0, XFL=0, OS=255
- XLEN u16le     chunk_len + 6
- SI1 SI2        0x00 0x00
- LEN u16le      chunk_len
- chunk          IndexBlob bytes
- LEN u16le      chunk_len again, so the chain can be walked from the end
- SUFFIX[13]     empty final stored block, CRC32=0, ISIZE=0

XLEN covers the subfield and the duplicate LEN, so a generic gzip reader
skips all of it and decodes the SUFFIX as an empty member body.

Segments are written last chunk first, so scanning backward from EOF finds
chunk 0 first; the blob is the payloads concatenated in discovery order.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import BinaryIO, List

from .constants import (
    EMPTY_GZIP_PREFIX,
    EMPTY_GZIP_SUFFIX,
    EMPTY_GZIP_EXTRA_SUB,
    EMPTY_GZIP_EXTRA_MAX,
    EMPTY_GZIP_SIZE_MIN,
)
from .errors import InvalidTrailer
from .ioutil import ReaderAt, write_all


logger = logging.getLogger(__name__)

_U16 = struct.Struct("<H")
_PREFIX_LEN = len(EMPTY_GZIP_PREFIX)
_SUFFIX_LEN = len(EMPTY_GZIP_SUFFIX)
# PREFIX + XLEN + SI1 SI2 + LEN
_HEAD_LEN = _PREFIX_LEN + 6
# LEN + SUFFIX
_TAIL_LEN = _SUFFIX_LEN + 2


@dataclass
class TrailerSegment:
    offset: int
    length: int
    payload: bytes


def build_trailer_segment(chunk: bytes) -> bytes:
    size = len(chunk)
    if size > EMPTY_GZIP_EXTRA_MAX:
        raise ValueError(f"trailer chunk too large: {size} > {EMPTY_GZIP_EXTRA_MAX}")
    return b"".join(
        (
            EMPTY_GZIP_PREFIX,
            _U16.pack(size + 6),
            EMPTY_GZIP_EXTRA_SUB,
            _U16.pack(size),
            chunk,
            _U16.pack(size),
            EMPTY_GZIP_SUFFIX,
        )
    )


def write_index_trailer(fh: BinaryIO, blob: bytes) -> int:
    """Append ``blob`` to ``fh`` as a chain of empty gzip members.

    All segments are built before anything is written. Returns the number of
    bytes written.
    """
    segments = [
        build_trailer_segment(blob[i : i + EMPTY_GZIP_EXTRA_MAX])
        for i in range(0, len(blob), EMPTY_GZIP_EXTRA_MAX)
    ]
    total = 0
    for seg in reversed(segments):
        total += write_all(fh, seg)
    logger.debug("wrote index trailer: %d byte(s) in %d segment(s)", len(blob), len(segments))
    return total


def scan_trailer_segments(source, size: int) -> List[TrailerSegment]:
    """Walk the trailer chain backward from ``size``.

    Returns the segments in file order. The scan stops quietly at the first
    member whose tail is not the empty-gzip suffix.

    Raises:
        InvalidTrailer: ``size`` is below the minimum archive size, or a
            segment's head does not match its tail.
    """
    if size < EMPTY_GZIP_SIZE_MIN:
        raise InvalidTrailer(f"archive too small for an index trailer: {size} bytes")
    rat = source if isinstance(source, ReaderAt) else ReaderAt(source)

    found: List[TrailerSegment] = []
    off = size
    while off > EMPTY_GZIP_SIZE_MIN:
        end = off
        off -= _TAIL_LEN
        tail = rat.read_at(off, _TAIL_LEN)
        if tail[2:] != EMPTY_GZIP_SUFFIX:
            break
        (sub_len,) = _U16.unpack_from(tail, 0)
        off -= sub_len
        if off < 0:
            raise InvalidTrailer(f"trailer chunk length {sub_len} runs past start of file")
        payload = rat.read_at(off, sub_len)
        off -= _HEAD_LEN
        if off < 0:
            raise InvalidTrailer("trailer header runs past start of file")
        head = rat.read_at(off, _HEAD_LEN)
        if head[:_PREFIX_LEN] != EMPTY_GZIP_PREFIX:
            raise InvalidTrailer(f"bad trailer header at offset {off}")
        (extra_len,) = _U16.unpack_from(head, _PREFIX_LEN)
        if extra_len != sub_len + 6:
            raise InvalidTrailer(f"extra field length {extra_len} != chunk length {sub_len} + 6")
        if head[_PREFIX_LEN + 2 : _PREFIX_LEN + 4] != EMPTY_GZIP_EXTRA_SUB:
            raise InvalidTrailer(f"unexpected extra subfield id at offset {off}")
        (inner_len,) = _U16.unpack_from(head, _PREFIX_LEN + 4)
        if inner_len != sub_len:
            raise InvalidTrailer(f"subfield length {inner_len} != trailing length {sub_len}")
        found.append(TrailerSegment(offset=off, length=end - off, payload=payload))
    found.reverse()
    return found


def read_index_trailer(source, size: int) -> bytes:
    """Recover the IndexBlob hidden at the end of an archive of ``size`` bytes."""
    segments = scan_trailer_segments(source, size)
    if not segments:
        raise InvalidTrailer("no index trailer found")
    blob = b"".join(seg.payload for seg in reversed(segments))
    logger.debug("read index trailer: %d byte(s) in %d segment(s)", len(blob), len(segments))
    return blob
