from __future__ import annotations

import gzip
import logging
import os
from typing import BinaryIO, Iterator, List, Optional, Tuple, Union

from .codec import Codec
from .errors import BlockNotFound, MalformedIndex
from .index import BlockEntry, frame_offsets, parse_index_blob
from .ioutil import ReaderAt, SectionReader, skip
from .trailer import read_index_trailer


logger = logging.getLogger(__name__)


class ArchiveReader:
    """Random access to the blocks of a seekgz archive.

    ``source`` is a binary file object, a bytes-like object, or any object
    with ``read_at(offset, n)`` and ``size()``. Fresh ``open_frame`` /
    ``open_block`` calls each get their own decompression stream over their
    own section, so they may run concurrently when the source supports
    positioned reads.
    """

    def __init__(self, source, size: Optional[int] = None):
        self.rat = source if isinstance(source, ReaderAt) else ReaderAt(source)
        self.size = self.rat.size() if size is None else size
        self.codec = Codec()
        self._owned: Optional[BinaryIO] = None

        blob = read_index_trailer(self.rat, self.size)
        self.index_size = len(blob)
        self.frame_table, self.block_table = parse_index_blob(blob)
        self._frame_offsets = frame_offsets(self.frame_table)
        if self._frame_offsets[-1] > self.size:
            raise MalformedIndex(
                f"frames span {self._frame_offsets[-1]} byte(s) but archive is {self.size} byte(s)"
            )
        logger.debug(
            "loaded index: %d frame(s), %d block(s), %d index byte(s)",
            len(self.frame_table),
            len(self.block_table),
            self.index_size,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        if self._owned is not None:
            owned, self._owned = self._owned, None
            owned.close()

    def frame_count(self) -> int:
        return len(self.frame_table)

    def block_count(self) -> int:
        return len(self.block_table)

    @property
    def data_size(self) -> int:
        """Bytes occupied by data frames; the index trailer follows."""
        return self._frame_offsets[-1]

    def frame_span(self, index: int) -> Tuple[int, int]:
        """(byte offset, compressed length) of frame ``index``."""
        if index < 0 or index >= len(self.frame_table):
            raise BlockNotFound(f"frame {index} out of range [0, {len(self.frame_table)})")
        return self._frame_offsets[index], self.frame_table[index]

    def block_info(self, index: int) -> BlockEntry:
        if index < 0 or index >= len(self.block_table):
            raise BlockNotFound(f"block {index} out of range [0, {len(self.block_table)})")
        return self.block_table[index]

    def open_frame(self, index: int) -> gzip.GzipFile:
        """Decompression stream over exactly the compressed bytes of frame ``index``."""
        off, length = self.frame_span(index)
        return self.codec.new_reader(SectionReader(self.rat, off, length))

    def open_block(self, index: int, reusable: Optional["BlockReader"] = None) -> "BlockReader":
        """Position a BlockReader at the start of block ``index``.

        When ``reusable`` is still open on the same frame and has not read
        past the block's offset, its stream is skipped forward instead of
        reopened. Otherwise its stream is closed and a fresh one is opened.
        ``reusable`` is updated in place and returned.
        """
        block = self.block_info(index)
        off, length = self.frame_span(block.frame)

        br = reusable
        if br is not None and br.frame is not None:
            if br.base is self and self._same_frame(br.index, block.frame):
                n = block.offset - br.offset
                if n >= 0:
                    if n > 0:
                        try:
                            skip(br.frame, n)
                        except Exception:
                            br.close()
                            raise
                    br.index = index
                    br.offset = block.offset
                    br.remaining = block.length
                    logger.debug("block %d: reused frame %d stream, skipped %d byte(s)", index, block.frame, n)
                    return br
            br.close()

        stream = self.codec.new_reader(SectionReader(self.rat, off, length))
        if block.offset > 0:
            try:
                skip(stream, block.offset)
            except Exception:
                stream.close()
                raise
        logger.debug("block %d: opened frame %d at offset %d", index, block.frame, off)
        if br is None:
            return BlockReader(self, stream, index, block.offset, block.length)
        br.base = self
        br.frame = stream
        br.index = index
        br.offset = block.offset
        br.remaining = block.length
        return br

    def read_block(self, index: int) -> bytes:
        with self.open_block(index) as br:
            return br.read()

    def iter_blocks(self) -> Iterator[bytes]:
        """Yield every block in order over a single reused BlockReader."""
        br: Optional[BlockReader] = None
        try:
            for i in range(len(self.block_table)):
                br = self.open_block(i, br)
                yield br.read()
        finally:
            if br is not None:
                br.close()

    def _same_frame(self, block_index: int, frame: int) -> bool:
        if block_index < 0 or block_index >= len(self.block_table):
            return False
        return self.block_table[block_index].frame == frame


class BlockReader:
    """Bounded view over one block's decompressed bytes.

    Reads never go past ``remaining``, so the separator and the next block
    stay in the frame stream for a later ``reposition``. A BlockReader has a
    single owner; repositioning it from two callers at once is not supported.
    """

    def __init__(self, base: ArchiveReader, frame: gzip.GzipFile, index: int, offset: int, remaining: int):
        self.base = base
        self.frame: Optional[gzip.GzipFile] = frame
        self.index = index
        self.offset = offset  # decompressed position in the frame
        self.remaining = remaining

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def closed(self) -> bool:
        return self.frame is None

    def readable(self) -> bool:
        return True

    def read(self, size: Optional[int] = -1) -> bytes:
        if size is None or size < 0:
            return self.readall()
        if self.frame is None or self.remaining == 0 or size == 0:
            return b""
        data = self.frame.read(min(size, self.remaining))
        if not data:
            raise EOFError(f"frame ended inside block {self.index}")
        self.offset += len(data)
        self.remaining -= len(data)
        return data

    def readinto(self, b) -> int:
        view = memoryview(b).cast("B")
        data = self.read(len(view))
        view[: len(data)] = data
        return len(data)

    def readall(self) -> bytes:
        parts: List[bytes] = []
        while self.frame is not None and self.remaining > 0:
            parts.append(self.read(self.remaining))
        return b"".join(parts)

    def reposition(self, index: int) -> "BlockReader":
        """Move this reader to block ``index`` of the same archive."""
        return self.base.open_block(index, self)

    def close(self) -> None:
        if self.frame is None:
            return
        frame, self.frame = self.frame, None
        frame.close()


def open_reader(path: Union[str, "os.PathLike[str]"]) -> ArchiveReader:
    """Open the archive at ``path``; closing the reader closes the file."""
    f = open(path, "rb")
    try:
        r = ArchiveReader(f)
    except BaseException:
        f.close()
        raise
    r._owned = f
    return r
