# Empty gzip member with FLG.FEXTRA set (RFC 1952): ID1 ID2 CM FLG MTIME[4] XFL OS
EMPTY_GZIP_PREFIX = bytes([0x1F, 0x8B, 0x08, 0x04, 0x00, 0x00, 0x00, 0x00, 0x00, 0xFF])
# Final stored deflate block of length 0, then CRC32=0 and ISIZE=0
EMPTY_GZIP_SUFFIX = bytes([0x01, 0x00, 0x00, 0xFF, 0xFF, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00])
EMPTY_GZIP_EXTRA_SUB = b"\x00\x00"
EMPTY_GZIP_EXTRA_MAX = 65529  # 65535 - 6
EMPTY_GZIP_SIZE_MIN = len(EMPTY_GZIP_PREFIX) + len(EMPTY_GZIP_SUFFIX)

BLOCK_SEP = b"\n\n"

DEFAULT_FRAME_LIMIT = 1 << 17  # 128 KiB of uncompressed content
DEFAULT_LEVEL = 6

COPY_CHUNK_SIZE = 64 * 1024
SKIP_CHUNK_SIZE = 16 * 1024
