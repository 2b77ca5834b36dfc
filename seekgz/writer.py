from __future__ import annotations

import logging
import os
from typing import BinaryIO, List, Optional, Union

from .codec import Codec, FrameCompressor
from .constants import BLOCK_SEP, DEFAULT_FRAME_LIMIT
from .errors import WriterClosed
from .index import BlockEntry, build_index_blob
from .ioutil import CountingWriter, copy_stream
from .trailer import write_index_trailer


logger = logging.getLogger(__name__)


class FrameWriter:
    """Packs blocks into one gzip member at a time.

    ``input_size`` counts the uncompressed bytes of the open frame, separators
    included; the compressed size is counted on the way to the sink.
    """

    def __init__(self, sink: BinaryIO, codec: Codec, limit: int):
        self.sink = sink
        self.codec = codec
        self.limit = limit
        self.input_size = 0
        self._stream: FrameCompressor = codec.new_writer()
        self._counter: Optional[CountingWriter] = None

    @property
    def is_open(self) -> bool:
        return self._counter is not None

    @property
    def frame_size(self) -> int:
        return self._counter.written if self._counter is not None else 0

    def start(self) -> None:
        self.input_size = 0
        self._counter = CountingWriter(self.sink)
        self.codec.reset(self._stream, self._counter)

    def write_separator(self) -> bool:
        """Push the block separator; True once the frame has reached its limit."""
        self._stream.write(BLOCK_SEP)
        self.input_size += len(BLOCK_SEP)
        return self.input_size >= self.limit

    def write_block(self, data) -> int:
        if hasattr(data, "read"):
            n = copy_stream(self._stream, data)
        else:
            view = memoryview(data).cast("B")
            self._stream.write(view)
            n = len(view)
        self.input_size += n
        return n

    def seal(self) -> int:
        """Finish the gzip member and return its compressed length."""
        self._stream.close()
        size = self._counter.written
        self._counter = None
        return size


class ArchiveWriter:
    """Writes blocks into gzip frames and appends the hidden index on close.

    ``sink`` is a writable binary file object, or a path that the writer opens
    and closes itself.
    """

    def __init__(
        self,
        sink: Union[BinaryIO, str, "os.PathLike[str]"],
        frame_limit: int = DEFAULT_FRAME_LIMIT,
        level: Optional[int] = None,
    ):
        if frame_limit <= 0:
            raise ValueError(f"frame_limit must be positive, got {frame_limit}")
        self._owned: Optional[BinaryIO] = None
        if isinstance(sink, (str, os.PathLike)):
            self._owned = open(sink, "wb")
            sink = self._owned
        self.f: BinaryIO = sink
        self.frame_limit = frame_limit
        self.codec = Codec(level)
        self.frame = FrameWriter(self.f, self.codec, frame_limit)
        self.frame_table: List[int] = []
        self.block_table: List[BlockEntry] = []
        self._closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._closed:
            return
        if exc_type is not None:
            self.abort()
        else:
            self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def frame_count(self) -> int:
        return len(self.frame_table)

    @property
    def block_count(self) -> int:
        return len(self.block_table)

    def write_block(self, data) -> int:
        """Append one block (bytes-like or a readable binary stream).

        Returns:
            The index of the new block.
        """
        if self._closed:
            raise WriterClosed("write to closed writer")
        if not hasattr(data, "read"):
            # Rejects non-bytes-like arguments before any frame state changes.
            data = memoryview(data).cast("B")
        try:
            if self.frame.is_open and self.frame.write_separator():
                self._seal_frame()
            if not self.frame.is_open:
                self.frame.start()
            offset = self.frame.input_size
            n = self.frame.write_block(data)
        except Exception:
            # Frame state no longer matches what reached the sink.
            self._abort()
            raise
        self.block_table.append(BlockEntry(len(self.frame_table), offset, n))
        return len(self.block_table) - 1

    def close(self) -> None:
        if self._closed:
            raise WriterClosed("writer already closed")
        if self.frame.is_open:
            try:
                self._seal_frame()
            except Exception:
                self._abort()
                raise
        blob = build_index_blob(self.frame_table, self.block_table)
        try:
            write_index_trailer(self.f, blob)
            flush = getattr(self.f, "flush", None)
            if flush is not None:
                flush()
        finally:
            self._closed = True
            self._release()
        logger.debug("closed writer: %d frame(s), %d block(s)", len(self.frame_table), len(self.block_table))

    def _seal_frame(self) -> None:
        size = self.frame.seal()
        self.frame_table.append(size)
        logger.debug("sealed frame %d: %d compressed byte(s)", len(self.frame_table) - 1, size)

    def abort(self) -> None:
        """Close without writing the index trailer. Safe to call more than once."""
        if not self._closed:
            self._abort()

    def _abort(self) -> None:
        logger.debug("writer aborted; no index trailer written")
        self._closed = True
        self._release()

    def _release(self) -> None:
        if self._owned is not None:
            owned, self._owned = self._owned, None
            owned.close()
