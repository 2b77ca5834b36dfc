from __future__ import annotations

import argparse
import gzip
import logging
import os
import sys
import zlib
from typing import List, Optional

from seekgz.constants import BLOCK_SEP, DEFAULT_FRAME_LIMIT, DEFAULT_LEVEL
from seekgz.errors import SeekGzError, InvalidTrailer, MalformedIndex
from seekgz.reader import open_reader
from seekgz.writer import ArchiveWriter


def cmd_pack(
    output: str,
    inputs: List[str],
    *,
    frame_limit: int = DEFAULT_FRAME_LIMIT,
    level: int = DEFAULT_LEVEL,
    split: bool = False,
    quiet: bool = False,
) -> bool:
    """Pack input files into a seekgz archive.

    Args:
        output: Destination archive path.
        inputs: Files to pack; each becomes one block.
        frame_limit: Uncompressed bytes per gzip frame before rolling over.
        level: gzip compression level.
        split: When True, split each input on the block separator and
            store every piece as its own block.
        quiet: Only print the summary line.
    """
    w = ArchiveWriter(output, frame_limit=frame_limit, level=level)
    try:
        for path in inputs:
            if split:
                with open(path, "rb") as fh:
                    pieces = fh.read().split(BLOCK_SEP)
                for piece in pieces:
                    w.write_block(piece)
                if not quiet:
                    print(f"  packed: {path} ({len(pieces)} block(s))")
            else:
                with open(path, "rb") as fh:
                    idx = w.write_block(fh)
                if not quiet:
                    print(f"  packed: {path} -> block {idx}")
        w.close()
    except BaseException:
        # Never leave a trailer-bearing archive that is missing inputs.
        w.abort()
        try:
            os.remove(output)
        except OSError:
            pass
        raise
    print(f"Wrote {output}: {w.block_count} block(s) in {w.frame_count} frame(s)")
    return True


def cmd_info(archive: str) -> bool:
    with open_reader(archive) as r:
        print(f"Archive: {archive}")
        print(f"  Size: {r.size}")
        print(f"  Frames: {r.frame_count()}")
        print(f"  Blocks: {r.block_count()}")
        print(f"  Data bytes: {r.data_size}")
        print(f"  Index bytes: {r.index_size}")
    return True


def cmd_list(archive: str) -> bool:
    with open_reader(archive) as r:
        for i, b in enumerate(r.block_table):
            print(f"{i}\t{b.frame}\t{b.offset}\t{b.length}")
    return True


def cmd_cat(archive: str, indexes: List[int]) -> bool:
    out = sys.stdout.buffer
    with open_reader(archive) as r:
        br = None
        try:
            for i in indexes:
                br = r.open_block(i, br)
                out.write(br.read())
        finally:
            if br is not None:
                br.close()
    out.flush()
    return True


def cmd_verify(archive: str) -> bool:
    """Check that a plain gzip decode of the archive matches the indexed blocks.

    Prints:
        "OK" on success, "FAIL" on mismatch.
    """
    ok = True
    with open_reader(archive) as r, gzip.open(archive, "rb") as g:
        for i, block in enumerate(r.iter_blocks()):
            expected = block if i == 0 else BLOCK_SEP + block
            got = g.read(len(expected))
            if got != expected:
                print(f"Block {i}: content differs from sequential decode", file=sys.stderr)
                ok = False
                break
        if ok and g.read(1):
            print("Trailing data after last block", file=sys.stderr)
            ok = False
    print("OK" if ok else "FAIL")
    return ok


def main(argv: Optional[List[str]] = None):
    ap = argparse.ArgumentParser(
        prog="seekgz",
        description="Seekable gzip block archive tool",
        epilog="Archives stay readable by any gzip decompressor; the block index is hidden in the trailer.",
    )
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_pack = sub.add_parser("pack", help="Pack files into an archive")
    ap_pack.add_argument("output", help="Output archive path")
    ap_pack.add_argument("inputs", nargs="+", help="Input files (one block each)")
    ap_pack.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_FRAME_LIMIT,
        help=f"Uncompressed bytes per gzip frame (default {DEFAULT_FRAME_LIMIT})",
    )
    ap_pack.add_argument("--level", type=int, default=DEFAULT_LEVEL, help=f"gzip level (default {DEFAULT_LEVEL})")
    ap_pack.add_argument("--split", action="store_true", help="Split inputs on blank lines into separate blocks")
    ap_pack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_info = sub.add_parser("info", help="Show archive information")
    ap_info.add_argument("archive", help="Archive path")

    ap_list = sub.add_parser("list", help="List blocks (index, frame, offset, length)")
    ap_list.add_argument("archive", help="Archive path")

    ap_cat = sub.add_parser("cat", help="Write blocks to stdout")
    ap_cat.add_argument("archive", help="Archive path")
    ap_cat.add_argument("indexes", nargs="+", type=int, help="Block indexes")

    ap_verify = sub.add_parser("verify", help="Compare indexed blocks with a sequential gzip decode")
    ap_verify.add_argument("archive", help="Archive path")

    args = ap.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    try:
        if args.cmd == "pack":
            cmd_pack(args.output, args.inputs, frame_limit=args.limit, level=args.level, split=args.split, quiet=args.quiet)
        elif args.cmd == "info":
            cmd_info(args.archive)
        elif args.cmd == "list":
            cmd_list(args.archive)
        elif args.cmd == "cat":
            cmd_cat(args.archive, args.indexes)
        elif args.cmd == "verify":
            sys.exit(0 if cmd_verify(args.archive) else 1)
        else:
            raise RuntimeError("Unknown command")
    except (InvalidTrailer, MalformedIndex) as e:
        print(f"Error: not a seekgz archive or index is corrupted: {e}", file=sys.stderr)
        sys.exit(2)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (SeekGzError, OSError, EOFError, ValueError, zlib.error) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
