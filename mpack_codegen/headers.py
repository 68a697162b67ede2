"""
Header Encoder - MessagePack length prefixes.

Collections, strings and binary blobs are prefixed by a header whose width
depends on the count it encodes:

    MAP:    0x80|n (n <= 15)  0xde + u16   0xdf + u32
    ARRAY:  0x90|n (n <= 15)  0xdc + u16   0xdd + u32
    STR:    0xa0|n (n <= 31)  0xd9 + u8    0xda + u16   0xdb + u32
    BIN:                      0xc4 + u8    0xc5 + u16   0xc6 + u32

All multi-byte counts are big-endian.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Tuple

from construct import Int8ub, Int16ub, Int32ub, Struct

MAX_COUNT = 0xFFFFFFFF


class HeaderKind(Enum):
    MAP = "map"
    ARRAY = "array"
    STR = "str"
    BIN = "bin"


@dataclass(frozen=True)
class SizeClass:
    """
    One header layout.

    Args:
        limit: largest count this class can encode
        tag: leading byte (OR'd with the count when width is 0)
        width: number of big-endian count bytes following the tag
    """
    limit: int
    tag: int
    width: int

    @property
    def fixed(self) -> bool:
        return self.width == 0


_CLASSES = {
    HeaderKind.MAP: (SizeClass(15, 0x80, 0), SizeClass(0xFFFF, 0xDE, 2), SizeClass(MAX_COUNT, 0xDF, 4)),
    HeaderKind.ARRAY: (SizeClass(15, 0x90, 0), SizeClass(0xFFFF, 0xDC, 2), SizeClass(MAX_COUNT, 0xDD, 4)),
    HeaderKind.STR: (SizeClass(31, 0xA0, 0), SizeClass(0xFF, 0xD9, 1), SizeClass(0xFFFF, 0xDA, 2),
                     SizeClass(MAX_COUNT, 0xDB, 4)),
    HeaderKind.BIN: (SizeClass(0xFF, 0xC4, 1), SizeClass(0xFFFF, 0xC5, 2), SizeClass(MAX_COUNT, 0xC6, 4)),
}

# Declarative layouts, keyed by count width
_COUNT = {1: Int8ub, 2: Int16ub, 4: Int32ub}
_LAYOUTS = {
    width: Struct("tag" / Int8ub, "count" / fmt) for width, fmt in _COUNT.items()
}


# ============================================================================
# Encoding
# ============================================================================

def size_class(kind: HeaderKind, count: int) -> SizeClass:
    """Narrowest size class able to encode ``count``."""
    if not 0 <= count <= MAX_COUNT:
        raise ValueError(f"{kind.value} header count out of range: {count}")
    for cls in _CLASSES[kind]:
        if count <= cls.limit:
            return cls
    raise AssertionError("unreachable")


def size_classes(kind: HeaderKind, max_count: int) -> List[SizeClass]:
    """
    Size classes reachable for a count known to be at most ``max_count``.

    The dynamic header emitters only generate branches for these.
    """
    last = size_class(kind, max_count)
    classes = _CLASSES[kind]
    return list(classes[:classes.index(last) + 1])


def encode_header(kind: HeaderKind, count: int) -> bytes:
    """
    Exact header bytes for ``count``.

    Examples:
        >>> encode_header(HeaderKind.MAP, 3).hex()
        '83'
        >>> encode_header(HeaderKind.MAP, 16).hex()
        'de0010'
    """
    cls = size_class(kind, count)
    if cls.fixed:
        return Int8ub.build(cls.tag | count)
    return _LAYOUTS[cls.width].build(dict(tag=cls.tag, count=count))


def map_header(count: int) -> bytes:
    return encode_header(HeaderKind.MAP, count)


def array_header(count: int) -> bytes:
    return encode_header(HeaderKind.ARRAY, count)


def str_header(length: int) -> bytes:
    return encode_header(HeaderKind.STR, length)


def bin_header(length: int) -> bytes:
    return encode_header(HeaderKind.BIN, length)


def encode_str(text: str) -> bytes:
    """Complete str object (header + UTF-8 payload), used for wire keys."""
    raw = text.encode("utf-8")
    return str_header(len(raw)) + raw


def header_expr(cls: SizeClass, varname: str) -> str:
    """Python expression building the header bytes for a run-time count."""
    if cls.fixed:
        return f"bytes((0x{cls.tag:02x} | {varname},))"
    shifts = [8 * i for i in reversed(range(cls.width))]
    parts = ", ".join(f"({varname} >> {s}) & 0xFF" if s else f"{varname} & 0xFF" for s in shifts)
    return f"bytes((0x{cls.tag:02x}, {parts}))"


# ============================================================================
# Decoding
# ============================================================================

def decode_count(kind: HeaderKind, lead: int, read: Callable[[int], bytes]) -> Tuple[int, bool]:
    """
    Decode the count of a header whose first byte is ``lead``.

    Args:
        kind: expected header kind
        lead: first header byte (already consumed)
        read: callable returning exactly n more bytes

    Returns:
        (count, matched). ``matched`` is False when ``lead`` is not a header
        of this kind; nothing beyond ``lead`` is consumed in that case.
    """
    for cls in _CLASSES[kind]:
        if cls.fixed:
            if lead & ~cls.limit & 0xFF == cls.tag:
                return lead & cls.limit, True
        elif lead == cls.tag:
            return _COUNT[cls.width].parse(bytes(read(cls.width))), True
    return 0, False
