"""
Binary container for Huffman-compressed data

Layout:
  - 8 bytes, little-endian unsigned: number of payload bits before padding
  - for every byte value 0..255: one length byte, then ceil(length / 8)
    bytes holding the path MSB-first, zero padded
  - payload: the path of every input byte, packed the same way
"""

import logging
import struct
from typing import Iterable, List, Optional, Tuple

import huffman as huff
from huffman import HuffmanNode, MalformedContainerError, OversizedCodeError

logger = logging.getLogger(__name__)

BIT_COUNT = struct.Struct("<Q")


def packed_length(bit_count: int) -> int:
    return (bit_count + 7) // 8


def pack_bits(paths: Iterable[str]) -> Tuple[bytes, int]:
    """
    Pack a run of '0'/'1' strings into bytes, most significant bit first
    Returns (packed_bytes, bit_count); the last byte is padded with 0 bits
    """
    out = bytearray()
    acc = 0
    acc_bits = 0
    bit_count = 0

    for bits in paths:
        bit_count += len(bits)
        for ch in bits:
            acc = (acc << 1) | (1 if ch == '1' else 0)
            acc_bits += 1
            if acc_bits == 8:
                out.append(acc & 0xFF)
                acc = 0
                acc_bits = 0

    if acc_bits != 0:
        acc = acc << (8 - acc_bits)
        out.append(acc & 0xFF)

    return bytes(out), bit_count


def unpack_bits(packed: bytes, bit_count: int) -> str:
    return ''.join(format(byte, '08b') for byte in packed)[:bit_count]


def encode_code_table(code_table: List[Optional[str]]) -> bytes:
    if len(code_table) != huff.ALPHABET_SIZE:
        raise huff.HuffmanError(f"code table must have {huff.ALPHABET_SIZE} entries, got {len(code_table)}")

    out = bytearray()
    for symbol, path in enumerate(code_table):
        if not path:
            out.append(0)
            continue
        if len(path) > huff.MAX_CODE_LENGTH:
            raise OversizedCodeError(
                f"path for symbol {symbol} is {len(path)} bits, the length field holds at most {huff.MAX_CODE_LENGTH}")
        packed, _ = pack_bits([path])
        out.append(len(path))
        out += packed
    return bytes(out)


def encode_container(code_table: List[Optional[str]], data: bytes) -> bytes:
    header = encode_code_table(code_table)

    def paths():
        for b in data:
            path = code_table[b]
            if not path:
                raise huff.HuffmanError(f"no code for symbol {b}")
            yield path

    payload, bit_count = pack_bits(paths())
    logger.debug("encoded %d bytes into %d payload bits", len(data), bit_count)
    return BIT_COUNT.pack(bit_count) + header + payload


def read_code_table(blob: bytes) -> Tuple[int, List[Optional[str]], int]:
    """
    Parse the fixed part of a container
    Returns (payload_bit_count, code_table, payload_offset)
    """
    if len(blob) < BIT_COUNT.size:
        raise MalformedContainerError(f"container is {len(blob)} bytes, shorter than the {BIT_COUNT.size} byte header")
    bit_count, = BIT_COUNT.unpack_from(blob, 0)

    code_table: List[Optional[str]] = [None] * huff.ALPHABET_SIZE
    index = BIT_COUNT.size
    for symbol in range(huff.ALPHABET_SIZE):
        if index >= len(blob):
            raise MalformedContainerError(f"code table truncated at symbol {symbol}")
        length = blob[index]
        index += 1
        if length == 0:
            continue

        # exactly ceil(length / 8) bytes, also when length is a multiple of 8
        n = packed_length(length)
        if index + n > len(blob):
            raise MalformedContainerError(f"path for symbol {symbol} truncated")
        code_table[symbol] = unpack_bits(blob[index:index + n], length)
        index += n

    return bit_count, code_table, index


def rebuild_tree(code_table: List[Optional[str]]) -> HuffmanNode:
    """Insert every path into an empty trie, '1' going left and '0' going right"""
    root = HuffmanNode()
    inserted = 0
    for symbol, path in enumerate(code_table):
        if not path:
            continue
        node = root
        for bit in path:
            if node.is_leaf():
                raise MalformedContainerError(f"path for symbol {symbol} runs through the leaf of symbol {node.symbol}")
            if bit == '1':
                if node.left is None:
                    node.left = HuffmanNode()
                node = node.left
            else:
                if node.right is None:
                    node.right = HuffmanNode()
                node = node.right
        if node.is_leaf() or node.left is not None or node.right is not None:
            raise MalformedContainerError(f"path for symbol {symbol} is not prefix-free")
        node.symbol = symbol
        inserted += 1

    if inserted == 0:
        raise MalformedContainerError("code table is empty")
    return root


def decode_container(blob: bytes) -> bytes:
    bit_count, code_table, offset = read_code_table(blob)
    root = rebuild_tree(code_table)

    payload = blob[offset:]
    if bit_count > len(payload) * 8:
        raise MalformedContainerError(f"header declares {bit_count} payload bits, only {len(payload) * 8} present")
    if len(payload) > packed_length(bit_count):
        raise MalformedContainerError(f"{len(payload) - packed_length(bit_count)} unexpected bytes after the payload")

    decoded = bytearray()
    node = root
    bit_index = 0

    for byte in payload:
        for i in range(7, -1, -1):
            if bit_index >= bit_count:
                break
            bit = (byte >> i) & 1
            node = node.left if bit == 1 else node.right
            if node is None:
                raise MalformedContainerError(f"payload bit {bit_index} leads outside the tree")

            # Leaf
            if node.is_leaf():
                decoded.append(node.symbol)
                node = root
            bit_index += 1

    if node is not root:
        raise MalformedContainerError("payload ends in the middle of a code")

    logger.debug("decoded %d payload bits into %d bytes", bit_count, len(decoded))
    return bytes(decoded)


def compress(data: bytes) -> bytes:
    ft = huff.freq_table(data)
    root = huff.build_huffman_tree(ft)
    code_map = huff.generate_huffman_codes(root)
    logger.debug("%d unique symbols, longest path %d bits", len(code_map), max(len(p) for p in code_map.values()))
    return encode_container(huff.build_code_table(code_map), data)


def decompress(blob: bytes) -> bytes:
    return decode_container(blob)
