import random
import struct

import pytest

import container
import huffman as huff


def _empty_table():
    return [None] * 256


def test_aab_exact_layout():
    blob = container.compress(b"aab")
    assert struct.unpack_from("<Q", blob, 0)[0] == 3
    table = blob[8:8 + 256 + 2]
    assert table[:ord('a')] == bytes(ord('a'))
    assert table[ord('a'):ord('a') + 4] == bytes([1, 0x00, 1, 0x80])
    assert blob[-1:] == bytes([0b00100000])
    assert len(blob) == 8 + 256 + 2 + 1
    assert container.decompress(blob) == b"aab"


def test_single_byte_input():
    blob = container.compress(b"\xff")
    _, table, _ = container.read_code_table(blob)
    assert table[0xFF] == "1"
    assert container.decompress(blob) == b"\xff"


def test_empty_input_raises():
    with pytest.raises(huff.EmptyInputError):
        container.compress(b"")


def test_two_symbol_sizes():
    rng = random.Random(1)
    data = bytes(rng.choice(b"xy") for _ in range(300))
    assert set(data) == {ord('x'), ord('y')}
    blob = container.compress(data)
    _, _, offset = container.read_code_table(blob)
    assert offset == 8 + 256 + 2
    assert len(blob) - offset == 38
    assert container.decompress(blob) == data


@pytest.mark.parametrize("data", [
    b"a",
    b"ab",
    b"A" * 10240,
    bytes(range(256)),
    bytes(range(256)) * 3 + b"\x00" * 500,
    b"This is a test" * 100,
])
def test_round_trip(data):
    assert container.decompress(container.compress(data)) == data


def test_round_trip_random():
    rng = random.Random(42)
    for n in (1, 2, 3, 17, 1000, 10 * 1024):
        data = bytes(rng.getrandbits(8) for _ in range(n))
        assert container.decompress(container.compress(data)) == data


def test_header_bit_count_matches_paths():
    data = b"the quick brown fox jumps over the lazy dog"
    blob = container.compress(data)
    bit_count, table, _ = container.read_code_table(blob)
    assert bit_count == sum(len(table[b]) for b in data)


def test_read_code_table_matches_encoder_table():
    data = b"abracadabra"
    table = huff.code_table_for(data)
    _, decoded_table, _ = container.read_code_table(container.encode_container(table, data))
    assert decoded_table == table


def test_compress_is_deterministic():
    rng = random.Random(3)
    data = bytes(rng.randrange(0, 64) for _ in range(4000))
    assert len(set(data)) > 32
    assert container.compress(data) == container.compress(data)


def test_path_of_exactly_16_bits():
    # chain code: lengths 1..16 plus a second 16-bit path
    table = _empty_table()
    for k in range(16):
        table[k] = "0" * k + "1"
    table[16] = "0" * 16
    data = bytes(range(17)) * 2
    blob = container.encode_container(table, data)
    _, decoded_table, _ = container.read_code_table(blob)
    assert decoded_table == table
    assert container.decode_container(blob) == data


def test_long_skewed_codes_round_trip():
    fib = [1, 1]
    while len(fib) < 24:
        fib.append(fib[-1] + fib[-2])
    data = b"".join(bytes([symbol]) * count for symbol, count in enumerate(fib))
    assert container.decompress(container.compress(data)) == data


def test_pack_bits():
    assert container.pack_bits(["1", "01", "111111111"]) == (bytes([0b10111111, 0b11110000]), 12)
    assert container.pack_bits([]) == (b"", 0)


def test_oversized_code_rejected():
    table = _empty_table()
    table[0] = "1" * 256
    with pytest.raises(huff.OversizedCodeError):
        container.encode_container(table, b"\x00")


def test_byte_without_code_rejected():
    table = _empty_table()
    table[0] = "1"
    with pytest.raises(huff.HuffmanError):
        container.encode_container(table, b"\x00\x01")


def test_short_header():
    with pytest.raises(huff.MalformedContainerError):
        container.decompress(b"\x01\x02")


def test_truncated_code_table():
    blob = container.compress(b"Hello World" * 50)
    with pytest.raises(huff.MalformedContainerError):
        container.decompress(blob[:100])


def test_truncated_payload():
    blob = container.compress(b"This is a test" * 100)
    with pytest.raises(huff.MalformedContainerError):
        container.decompress(blob[:-3])


def test_bit_count_larger_than_payload():
    blob = bytearray(container.compress(b"Hello World" * 50))
    blob[0:8] = struct.pack("<Q", 2 ** 40)
    with pytest.raises(huff.MalformedContainerError):
        container.decompress(bytes(blob))


def test_trailing_bytes_rejected():
    blob = container.compress(b"Hello World" * 50)
    with pytest.raises(huff.MalformedContainerError):
        container.decompress(blob + b"\x00")


def test_empty_code_table():
    with pytest.raises(huff.MalformedContainerError):
        container.decompress(bytes(8 + 256))


def test_code_table_not_prefix_free():
    table = _empty_table()
    table[0] = "1"
    table[1] = "10"
    with pytest.raises(huff.MalformedContainerError):
        container.rebuild_tree(table)


def test_duplicate_paths_rejected():
    table = _empty_table()
    table[0] = "1"
    table[1] = "1"
    with pytest.raises(huff.MalformedContainerError):
        container.rebuild_tree(table)


def test_payload_leaves_tree():
    # only symbol 0 with path "1"; a 0 bit has nowhere to go
    blob = struct.pack("<Q", 1) + bytes([1, 0x80]) + bytes(255) + bytes([0x00])
    with pytest.raises(huff.MalformedContainerError):
        container.decompress(blob)


def test_payload_ends_mid_code():
    table = _empty_table()
    table[0] = "11"
    table[1] = "10"
    table[2] = "0"
    blob = bytearray(container.encode_container(table, b"\x00"))
    blob[0:8] = struct.pack("<Q", 1)
    with pytest.raises(huff.MalformedContainerError):
        container.decompress(bytes(blob))


def test_rebuild_tree_shape():
    root = container.rebuild_tree(huff.code_table_for(b"aab"))
    assert root.left.symbol == ord('b')
    assert root.right.symbol == ord('a')
