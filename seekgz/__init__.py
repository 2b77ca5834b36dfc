"""
seekgz — seekable, block-addressable gzip archives.

Features:

- Blocks are packed into gzip members ("frames") separated by a blank line, so
  any gzip decompressor reads the archive as ``block_0 \\n\\n block_1 ...``.
- A frame/block index is hidden in the FEXTRA field of trailing empty gzip
  members and recovered by scanning backward from the end of the file.
- Random access to any block, with reuse of an open frame stream when blocks
  are read in increasing order.
"""

__version__ = "0.1"

from .errors import SeekGzError, InvalidTrailer, MalformedIndex, BlockNotFound, WriterClosed
from .reader import ArchiveReader, BlockReader, open_reader
from .writer import ArchiveWriter

__all__ = [
    "ArchiveReader",
    "ArchiveWriter",
    "BlockReader",
    "BlockNotFound",
    "InvalidTrailer",
    "MalformedIndex",
    "SeekGzError",
    "WriterClosed",
    "open_reader",
]
