"""
Tests for MessagePack header encoding.

Expected values are hex strings; msgpack itself is used as a cross-check
at the size-class boundaries.
"""

import msgpack
import pytest

from mpack_codegen.headers import (
    HeaderKind, array_header, bin_header, decode_count, encode_header, encode_str, header_expr,
    map_header, size_class, size_classes, str_header,
)


# ============================================================================
# Exact bytes
# ============================================================================

@pytest.mark.parametrize("count,expected", [
    (0, "80"),
    (1, "81"),
    (15, "8f"),
    (16, "de0010"),
    (65535, "deffff"),
    (65536, "df00010000"),
    (0xFFFFFFFF, "dfffffffff"),
])
def test_map_header(count, expected):
    assert map_header(count).hex() == expected


@pytest.mark.parametrize("count,expected", [
    (0, "90"),
    (15, "9f"),
    (16, "dc0010"),
    (65535, "dcffff"),
    (65536, "dd00010000"),
])
def test_array_header(count, expected):
    assert array_header(count).hex() == expected


@pytest.mark.parametrize("length,expected", [
    (0, "a0"),
    (31, "bf"),
    (32, "d920"),
    (255, "d9ff"),
    (256, "da0100"),
    (65536, "db00010000"),
])
def test_str_header(length, expected):
    assert str_header(length).hex() == expected


@pytest.mark.parametrize("length,expected", [
    (0, "c400"),
    (255, "c4ff"),
    (256, "c50100"),
    (65536, "c600010000"),
])
def test_bin_header(length, expected):
    assert bin_header(length).hex() == expected


@pytest.mark.parametrize("count", [0, 15, 16, 65535, 65536])
def test_array_header_matches_msgpack(count):
    """Test against msgpack's own encoding of an array of nils."""
    packed = msgpack.packb([None] * count)
    header = array_header(count)
    assert packed[:len(header)] == header
    assert len(packed) == len(header) + count


@pytest.mark.parametrize("count", [0, 15, 16, 300])
def test_map_header_matches_msgpack(count):
    packed = msgpack.packb({i: None for i in range(count)})
    assert packed.startswith(map_header(count))


def test_encode_str():
    """Wire keys: fixstr header followed by the UTF-8 text."""
    assert encode_str("astring").hex() == "a7" + b"astring".hex()
    assert encode_str("k" * 40) == msgpack.packb("k" * 40)


@pytest.mark.parametrize("count", [-1, 0x100000000])
def test_out_of_range(count):
    with pytest.raises(ValueError):
        encode_header(HeaderKind.MAP, count)


# ============================================================================
# Size classes
# ============================================================================

@pytest.mark.parametrize("max_count,tags", [
    (0, [0x80]),
    (15, [0x80]),
    (16, [0x80, 0xDE]),
    (64, [0x80, 0xDE]),
    (65535, [0x80, 0xDE]),
    (65536, [0x80, 0xDE, 0xDF]),
])
def test_reachable_map_classes(max_count, tags):
    """Test that only the classes a bounded count can reach are returned."""
    assert [c.tag for c in size_classes(HeaderKind.MAP, max_count)] == tags


def test_size_class_fixed():
    assert size_class(HeaderKind.MAP, 3).fixed
    assert not size_class(HeaderKind.MAP, 16).fixed
    assert not size_class(HeaderKind.BIN, 0).fixed


@pytest.mark.parametrize("kind", list(HeaderKind))
@pytest.mark.parametrize("count", [0, 5, 31, 200, 300, 70000])
def test_header_expr_matches_encode(kind, count):
    """Test that the rendered run-time expression builds the same bytes."""
    cls = size_class(kind, count)
    assert eval(header_expr(cls, "n"), {"n": count}) == encode_header(kind, count)


# ============================================================================
# Decoding
# ============================================================================

def _reader(data):
    pos = [0]

    def read(n):
        chunk = data[pos[0]:pos[0] + n]
        pos[0] += n
        return chunk
    return read


@pytest.mark.parametrize("kind", list(HeaderKind))
@pytest.mark.parametrize("count", [0, 15, 16, 255, 256, 65535, 65536])
def test_decode_count(kind, count):
    encoded = encode_header(kind, count)
    read = _reader(encoded[1:])
    assert decode_count(kind, encoded[0], read) == (count, True)


def test_decode_count_wrong_kind():
    """A map header is not an array header; nothing past the lead is read."""
    def read(n):
        raise AssertionError("must not read")
    assert decode_count(HeaderKind.ARRAY, 0x81, read) == (0, False)
    assert decode_count(HeaderKind.MAP, 0xC0, read) == (0, False)
