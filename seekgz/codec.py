from __future__ import annotations

import gzip
import zlib
from typing import BinaryIO, Optional

from .constants import DEFAULT_LEVEL


# zlib window bits selecting the gzip wrapper (16 + MAX_WBITS)
_GZIP_WBITS = 16 + zlib.MAX_WBITS


class FrameCompressor:
    """Streams one gzip member into ``sink``; ``reset`` starts the next member.

    The deflate stream is created on the first non-empty write. A member that
    received no data is finished at a compressing level, because an empty
    stored member ends in the same bytes as an index trailer segment.
    """

    def __init__(self, sink: Optional[BinaryIO], level: int):
        self.level = level
        self.sink = sink
        self._co = None
        self._attached = False
        if sink is not None:
            self.reset(sink)

    def reset(self, sink: BinaryIO) -> None:
        self.sink = sink
        self._co = None
        self._attached = True

    def write(self, data) -> int:
        if not self._attached:
            raise RuntimeError("compressor is not attached to a sink")
        n = len(data)
        if not n:
            return 0
        if self._co is None:
            self._co = zlib.compressobj(self.level, zlib.DEFLATED, _GZIP_WBITS)
        out = self._co.compress(data)
        if out:
            self.sink.write(out)
        return n

    def close(self) -> None:
        """Finish the member: flush the deflate body and write the CRC32/ISIZE trailer."""
        if not self._attached:
            return
        co = self._co
        if co is None:
            co = zlib.compressobj(self.level or DEFAULT_LEVEL, zlib.DEFLATED, _GZIP_WBITS)
        out = co.flush(zlib.Z_FINISH)
        self._co = None
        self._attached = False
        if out:
            self.sink.write(out)


class Codec:
    def __init__(self, level: Optional[int] = None):
        self.level = level if level is not None else DEFAULT_LEVEL
        if not (-1 <= self.level <= 9):
            raise ValueError(f"gzip level must be in -1..9, got {self.level}")

    def new_writer(self, sink: Optional[BinaryIO] = None) -> FrameCompressor:
        return FrameCompressor(sink, self.level)

    def reset(self, stream: FrameCompressor, sink: BinaryIO) -> None:
        stream.reset(sink)

    def new_reader(self, section: BinaryIO) -> gzip.GzipFile:
        return gzip.GzipFile(fileobj=section, mode="rb")
