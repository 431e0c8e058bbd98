"""
huffpack: compress and decompress files with a byte-level Huffman code

How to run:
  huffpack --compress notes.txt notes.huf
  huffpack --decompress notes.huf notes.txt
  huffpack --print notes.txt
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

import container
import huffman as huff
from huffman import HuffmanError, InputUnavailableError, OutputUnwritableError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def read_source(path: Path) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise InputUnavailableError(f"cannot read {path}: {e.strerror or e}") from e


def write_sink(path: Path, data: bytes) -> None:
    try:
        Path(path).write_bytes(data)
    except OSError as e:
        raise OutputUnwritableError(f"cannot write {path}: {e.strerror or e}") from e


def compress_file(src: Path, dst: Path) -> int:
    data = read_source(src)
    blob = container.compress(data)
    write_sink(dst, blob)
    logger.info("compressed %s (%d bytes) to %s (%d bytes)", src, len(data), dst, len(blob))
    return len(blob)


def decompress_file(src: Path, dst: Path) -> int:
    blob = read_source(src)
    data = container.decompress(blob)
    write_sink(dst, data)
    logger.info("decompressed %s (%d bytes) to %s (%d bytes)", src, len(blob), dst, len(data))
    return len(data)


def print_codes(src: Path) -> None:
    data = read_source(src)
    root = huff.build_huffman_tree(huff.freq_table(data))
    for line in huff.format_code_listing(huff.generate_huffman_codes(root)):
        print(line)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="huffpack", description="Byte-level Huffman compressor")
    mode = ap.add_mutually_exclusive_group(required=True)
    mode.add_argument("--compress", action="store_true", help="Compress INPUT into OUTPUT")
    mode.add_argument("--decompress", action="store_true", help="Decompress INPUT into OUTPUT")
    mode.add_argument("--print", action="store_true", help="Print the code of every byte value in INPUT")
    ap.add_argument("input", type=Path, help="Input file")
    ap.add_argument("output", type=Path, nargs="?", help="Output file (not used with --print)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log codec details")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    if args.print and args.output is not None:
        ap.error("--print takes only an input file")
    if not args.print and args.output is None:
        ap.error("an output file is required")

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    try:
        if args.compress:
            compress_file(args.input, args.output)
        elif args.decompress:
            decompress_file(args.input, args.output)
        else:
            print_codes(args.input)
    except HuffmanError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
