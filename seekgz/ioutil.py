from __future__ import annotations

import io
import os
import threading
from typing import BinaryIO, Optional

from .constants import COPY_CHUNK_SIZE, SKIP_CHUNK_SIZE


def write_all(fh, data) -> int:
    """Write every byte of ``data``, retrying short writes from raw sinks.

    A ``None`` result is taken as a complete write, as from sinks whose
    ``write`` returns nothing.
    """
    total = len(memoryview(data).cast("B"))
    n = fh.write(data)
    if n is None or n >= total:
        return total
    view = memoryview(data).cast("B")[n:]
    while view:
        n = fh.write(view)
        if n is None:
            break
        view = view[n:]
    return total


class CountingWriter:
    """Pass-through sink that counts the bytes written to ``base``."""

    def __init__(self, base: BinaryIO):
        self.base = base
        self.written = 0

    def write(self, data) -> int:
        n = write_all(self.base, data)
        self.written += n
        return n

    def flush(self) -> None:
        flush = getattr(self.base, "flush", None)
        if flush is not None:
            flush()


class ReaderAt:
    """Positioned reads over bytes, a file object, or any object with ``read_at``.

    File objects backed by a real descriptor use ``os.pread`` so that
    independent sections can be read without sharing a file position. Other
    seekable streams fall back to seek+read under a lock.
    """

    def __init__(self, source):
        self.source = source
        self._view: Optional[memoryview] = None
        self._fd: Optional[int] = None
        self._custom = None
        self._lock = threading.Lock()
        if isinstance(source, (bytes, bytearray, memoryview)):
            self._view = memoryview(source).cast("B")
        elif hasattr(source, "read_at"):
            self._custom = source
        else:
            if not hasattr(source, "seek") or not hasattr(source, "read"):
                raise TypeError("source must be bytes-like, a seekable binary file, or provide read_at()")
            if hasattr(os, "pread"):
                try:
                    self._fd = source.fileno()
                except (OSError, ValueError, AttributeError):
                    self._fd = None

    def size(self) -> int:
        if self._view is not None:
            return len(self._view)
        if self._custom is not None:
            return int(self._custom.size())
        if self._fd is not None:
            return os.fstat(self._fd).st_size
        with self._lock:
            pos = self.source.tell()
            end = self.source.seek(0, io.SEEK_END)
            self.source.seek(pos)
        return end

    def read_at(self, offset: int, n: int) -> bytes:
        """Read exactly ``n`` bytes at ``offset``; EOFError on a short read."""
        if offset < 0:
            raise ValueError(f"negative offset: {offset}")
        if self._view is not None:
            b = bytes(self._view[offset : offset + n])
        elif self._custom is not None:
            b = bytes(self._custom.read_at(offset, n))
        elif self._fd is not None:
            parts = []
            got = 0
            while got < n:
                part = os.pread(self._fd, n - got, offset + got)
                if not part:
                    break
                parts.append(part)
                got += len(part)
            b = b"".join(parts)
        else:
            with self._lock:
                self.source.seek(offset)
                b = self.source.read(n)
        if len(b) != n:
            raise EOFError(f"Unexpected EOF reading {n} bytes at offset {offset}")
        return b


class SectionReader(io.RawIOBase):
    """Read-only stream over ``[offset, offset + length)`` of a ReaderAt."""

    def __init__(self, rat: ReaderAt, offset: int, length: int):
        super().__init__()
        self._rat = rat
        self._base = offset
        self._length = length
        self._pos = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._pos

    def seek(self, pos: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            new = pos
        elif whence == io.SEEK_CUR:
            new = self._pos + pos
        elif whence == io.SEEK_END:
            new = self._length + pos
        else:
            raise ValueError(f"invalid whence: {whence}")
        if new < 0:
            raise ValueError(f"negative seek position: {new}")
        self._pos = new
        return new

    def readinto(self, b) -> int:
        remain = self._length - self._pos
        if remain <= 0:
            return 0
        n = min(len(b), remain)
        data = self._rat.read_at(self._base + self._pos, n)
        b[:n] = data
        self._pos += n
        return n


def copy_stream(dst, src, chunk_size: int = COPY_CHUNK_SIZE) -> int:
    """Copy ``src`` to ``dst`` until EOF and return the byte count."""
    total = 0
    while True:
        buf = src.read(chunk_size)
        if not buf:
            return total
        dst.write(buf)
        total += len(buf)


def skip(stream, n: int) -> None:
    """Read and discard exactly ``n`` bytes from ``stream``."""
    while n > 0:
        buf = stream.read(min(n, SKIP_CHUNK_SIZE))
        if not buf:
            raise EOFError("Unexpected EOF while skipping")
        n -= len(buf)
