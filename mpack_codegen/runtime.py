"""
Runtime support for generated procedures.

Generated modules bind this module as ``_rt``. It provides:
    - append_*: encode a value onto a bytearray (marshal_msg)
    - read_*_bytes: decode a value from a bytes-like object, returning
      (value, remainder) (unmarshal_msg)
    - Writer / Reader: buffered stream counterparts (encode_msg / decode_msg)
    - MsgpError and subclasses, wrap_error for path annotation

Values are packed and unpacked with msgpack; headers, fixed-width floats and
the complex extension payloads are described with Construct.
"""

from types import SimpleNamespace
from typing import Any, Callable, Tuple

import msgpack
from construct import ConstructError, Float32b, Float64b, Int8ub, Int16ub, Int32ub, Struct

from .headers import HeaderKind, array_header, bin_header, decode_count, map_header, str_header

COMPLEX64_EXT = 3
COMPLEX128_EXT = 4

NIL = 0xC0
FALSE = 0xC2
TRUE = 0xC3
FLOAT32 = 0xCA
FLOAT64 = 0xCB

Complex64Payload = Struct("real" / Float32b, "imag" / Float32b)
"""complex64 extension payload: two big-endian float32."""

Complex128Payload = Struct("real" / Float64b, "imag" / Float64b)
"""complex128 extension payload: two big-endian float64."""


class RecordValue(SimpleNamespace):
    """Attribute holder for nested records decoded without a declared type."""


# ============================================================================
# Errors
# ============================================================================

class MsgpError(ConstructError):
    """
    Error raised by generated procedures.

    ``path`` locates the failing value inside the encoded object, e.g.
    ``items[2].name``.
    """

    def __init__(self, message: str = "", path: str = ""):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} (at {self.path})"
        return self.message


class ShortBytesError(MsgpError):
    """Input ended in the middle of an object."""


class TypeMismatchError(MsgpError):
    def __init__(self, wanted: str, got: str, path: str = ""):
        self.wanted = wanted
        self.got = got
        super().__init__(f"attempted to decode type {got!r} with method for {wanted!r}", path)


class ArraySizeError(MsgpError):
    def __init__(self, wanted: int, got: int, path: str = ""):
        self.wanted = wanted
        self.got = got
        super().__init__(f"wanted array of size {wanted}; got {got}", path)


class IntOverflowError(MsgpError):
    def __init__(self, value: int, bits: int, path: str = ""):
        self.value = value
        self.bits = bits
        super().__init__(f"{value} overflows {bits}-bit integer", path)


def _join(outer: str, inner: str) -> str:
    if not outer:
        return inner
    if not inner:
        return outer
    if inner.startswith("["):
        return outer + inner
    return f"{outer}.{inner}"


def wrap_error(err: Exception, path: str) -> MsgpError:
    """
    Annotate ``err`` with the path of the value being processed.

    MsgpErrors get the path prefixed in place; anything else is wrapped in a
    MsgpError whose cause is the original exception.
    """
    if isinstance(err, MsgpError):
        err.path = _join(path, err.path)
        return err
    wrapped = MsgpError(f"{type(err).__name__}: {err}", path)
    wrapped.__cause__ = err
    return wrapped


# ============================================================================
# Object boundaries
# ============================================================================

_WIDTH = {1: Int8ub, 2: Int16ub, 4: Int32ub}

# lead byte -> payload size
_FIXED = {
    0xC0: 0, 0xC2: 0, 0xC3: 0,
    0xCA: 4, 0xCB: 8,
    0xCC: 1, 0xCD: 2, 0xCE: 4, 0xCF: 8,
    0xD0: 1, 0xD1: 2, 0xD2: 4, 0xD3: 8,
    0xD4: 2, 0xD5: 3, 0xD6: 5, 0xD7: 9, 0xD8: 17,
}
# lead byte -> (length width, extra payload bytes)
_SIZED = {
    0xC4: (1, 0), 0xC5: (2, 0), 0xC6: (4, 0),
    0xC7: (1, 1), 0xC8: (2, 1), 0xC9: (4, 1),
    0xD9: (1, 0), 0xDA: (2, 0), 0xDB: (4, 0),
}
# lead byte -> (count width, objects per count)
_CONTAINERS = {0xDC: (2, 1), 0xDD: (4, 1), 0xDE: (2, 2), 0xDF: (4, 2)}


def _span(lead: int, read: Callable[[int], bytes]) -> Tuple[int, int]:
    """(payload bytes, nested objects) of the object starting with ``lead``."""
    if lead <= 0x7F or lead >= 0xE0:
        return 0, 0
    if lead <= 0x8F:
        return 0, 2 * (lead & 0x0F)
    if lead <= 0x9F:
        return 0, lead & 0x0F
    if lead <= 0xBF:
        return lead & 0x1F, 0
    if lead in _FIXED:
        return _FIXED[lead], 0
    if lead in _SIZED:
        width, extra = _SIZED[lead]
        return _WIDTH[width].parse(bytes(read(width))) + extra, 0
    if lead in _CONTAINERS:
        width, per = _CONTAINERS[lead]
        return 0, per * _WIDTH[width].parse(bytes(read(width)))
    raise MsgpError(f"invalid prefix byte 0x{lead:02x}")


def _walk(read: Callable[[int], bytes]) -> None:
    """Consume exactly one complete object through ``read``."""
    pending = 1
    while pending:
        pending -= 1
        size, nested = _span(read(1)[0], read)
        if size:
            read(size)
        pending += nested


class _Cursor:
    """Zero-copy reader over a bytes-like buffer."""

    def __init__(self, bts):
        self.buf = memoryview(bts)
        self.pos = 0

    def read(self, n: int) -> memoryview:
        end = self.pos + n
        if end > len(self.buf):
            raise ShortBytesError(f"too few bytes left to read object: need {end - len(self.buf)} more")
        chunk = self.buf[self.pos:end]
        self.pos = end
        return chunk

    def taken(self) -> memoryview:
        return self.buf[:self.pos]

    def rest(self) -> memoryview:
        return self.buf[self.pos:]


# ============================================================================
# Value conversion from raw objects
# ============================================================================

def _unpack(raw) -> Any:
    try:
        return msgpack.unpackb(raw, raw=False, strict_map_key=False)
    except ValueError as exc:
        raise MsgpError(f"invalid msgpack object: {exc}") from exc


def _mismatch(wanted: str, value: Any) -> TypeMismatchError:
    return TypeMismatchError(wanted, "nil" if value is None else type(value).__name__)


def _to_nil(raw) -> None:
    value = _unpack(raw)
    if value is not None:
        raise _mismatch("nil", value)


def _to_bool(raw) -> bool:
    value = _unpack(raw)
    if not isinstance(value, bool):
        raise _mismatch("bool", value)
    return value


def _to_int(raw, bits: int = 64) -> int:
    value = _unpack(raw)
    if isinstance(value, bool) or not isinstance(value, int):
        raise _mismatch("int", value)
    if not -(1 << (bits - 1)) <= value < 1 << (bits - 1):
        raise IntOverflowError(value, bits)
    return value


def _to_uint(raw, bits: int = 64) -> int:
    value = _unpack(raw)
    if isinstance(value, bool) or not isinstance(value, int):
        raise _mismatch("uint", value)
    if not 0 <= value < 1 << bits:
        raise IntOverflowError(value, bits)
    return value


def _to_float32(raw) -> float:
    if raw[0] != FLOAT32:
        raise _mismatch("float32", _unpack(raw))
    return Float32b.parse(bytes(raw[1:]))


def _to_float64(raw) -> float:
    value = _unpack(raw)
    if not isinstance(value, float):
        raise _mismatch("float64", value)
    return value


def _to_complex(raw, code: int, payload: Struct) -> complex:
    value = _unpack(raw)
    if not isinstance(value, msgpack.ExtType) or value.code != code:
        raise _mismatch(f"ext({code})", value)
    parts = payload.parse(value.data)
    return complex(parts.real, parts.imag)


def _to_string(raw) -> str:
    value = _unpack(raw)
    if not isinstance(value, str):
        raise _mismatch("str", value)
    return value


def _to_bytes(raw) -> bytes:
    value = _unpack(raw)
    if not isinstance(value, bytes):
        raise _mismatch("bin", value)
    return value


def _to_map_key(raw) -> str:
    value = _unpack(raw)
    if isinstance(value, bytes):
        return value.decode("utf-8")
    if not isinstance(value, str):
        raise _mismatch("str", value)
    return value


def _to_ext(raw) -> msgpack.ExtType:
    value = _unpack(raw)
    if not isinstance(value, msgpack.ExtType):
        raise _mismatch("ext", value)
    return value


def _read_header(kind: HeaderKind, read: Callable[[int], bytes]) -> int:
    lead = read(1)[0]
    count, matched = decode_count(kind, lead, read)
    if not matched:
        raise TypeMismatchError(kind.value, f"0x{lead:02x}")
    return count


# ============================================================================
# Append (marshal_msg)
# ============================================================================

def append_nil(o: bytearray) -> None:
    o.append(NIL)


def append_bool(o: bytearray, value: bool) -> None:
    o.append(TRUE if value else FALSE)


def append_int(o: bytearray, value: int) -> None:
    o.extend(msgpack.packb(int(value)))


def append_uint(o: bytearray, value: int) -> None:
    value = int(value)
    if value < 0:
        raise IntOverflowError(value, 64)
    o.extend(msgpack.packb(value))


def append_float32(o: bytearray, value: float) -> None:
    o.append(FLOAT32)
    o.extend(Float32b.build(value))


def append_float64(o: bytearray, value: float) -> None:
    o.append(FLOAT64)
    o.extend(Float64b.build(value))


def append_complex64(o: bytearray, value: complex) -> None:
    data = Complex64Payload.build(dict(real=value.real, imag=value.imag))
    o.extend(msgpack.packb(msgpack.ExtType(COMPLEX64_EXT, data)))


def append_complex128(o: bytearray, value: complex) -> None:
    data = Complex128Payload.build(dict(real=value.real, imag=value.imag))
    o.extend(msgpack.packb(msgpack.ExtType(COMPLEX128_EXT, data)))


def append_string(o: bytearray, value: str) -> None:
    raw = value.encode("utf-8")
    o.extend(str_header(len(raw)))
    o.extend(raw)


def append_bytes(o: bytearray, value) -> None:
    raw = bytes(value)
    o.extend(bin_header(len(raw)))
    o.extend(raw)


def append_intf(o: bytearray, value: Any) -> None:
    o.extend(msgpack.packb(value, use_bin_type=True))


def append_ext(o: bytearray, value: msgpack.ExtType) -> None:
    if not isinstance(value, msgpack.ExtType):
        raise TypeError(f"expected msgpack.ExtType, got {type(value).__name__}")
    o.extend(msgpack.packb(value))


def append_map_header(o: bytearray, count: int) -> None:
    o.extend(map_header(count))


def append_array_header(o: bytearray, count: int) -> None:
    o.extend(array_header(count))


# ============================================================================
# Read from bytes (unmarshal_msg)
# ============================================================================

def next_raw_bytes(bts) -> Tuple[memoryview, memoryview]:
    """Split ``bts`` into its first complete object and the remainder."""
    cur = _Cursor(bts)
    _walk(cur.read)
    return cur.taken(), cur.rest()


def _read_with(convert: Callable, bts, *args) -> Tuple[Any, memoryview]:
    raw, rest = next_raw_bytes(bts)
    return convert(raw, *args), rest


def is_nil(bts) -> bool:
    return len(bts) > 0 and bts[0] == NIL


def skip_bytes(bts) -> memoryview:
    return next_raw_bytes(bts)[1]


def read_nil_bytes(bts):
    return _read_with(_to_nil, bts)


def read_bool_bytes(bts):
    return _read_with(_to_bool, bts)


def read_int_bytes(bts, bits: int = 64):
    return _read_with(_to_int, bts, bits)


def read_uint_bytes(bts, bits: int = 64):
    return _read_with(_to_uint, bts, bits)


def read_float32_bytes(bts):
    return _read_with(_to_float32, bts)


def read_float64_bytes(bts):
    return _read_with(_to_float64, bts)


def read_complex64_bytes(bts):
    return _read_with(_to_complex, bts, COMPLEX64_EXT, Complex64Payload)


def read_complex128_bytes(bts):
    return _read_with(_to_complex, bts, COMPLEX128_EXT, Complex128Payload)


def read_string_bytes(bts):
    return _read_with(_to_string, bts)


def read_bytes_bytes(bts):
    return _read_with(_to_bytes, bts)


def read_map_key_bytes(bts):
    return _read_with(_to_map_key, bts)


def read_intf_bytes(bts):
    return _read_with(_unpack, bts)


def read_ext_bytes(bts):
    return _read_with(_to_ext, bts)


def read_map_header_bytes(bts) -> Tuple[int, memoryview]:
    cur = _Cursor(bts)
    return _read_header(HeaderKind.MAP, cur.read), cur.rest()


def read_array_header_bytes(bts) -> Tuple[int, memoryview]:
    cur = _Cursor(bts)
    return _read_header(HeaderKind.ARRAY, cur.read), cur.rest()


# ============================================================================
# Streams (encode_msg / decode_msg)
# ============================================================================

class Writer:
    """
    Buffered MessagePack writer over a binary stream.

    Bytes are kept in memory until ``size`` is reached or ``flush`` is
    called; generated procedures never flush on their own.
    """

    def __init__(self, stream, size: int = 4096):
        self._stream = stream
        self._size = size
        self._buf = bytearray()

    def __enter__(self) -> "Writer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.flush()

    def buffered(self) -> int:
        return len(self._buf)

    def flush(self) -> None:
        if self._buf:
            self._stream.write(bytes(self._buf))
            self._buf.clear()

    def _spill(self) -> None:
        if len(self._buf) >= self._size:
            self.flush()

    def append(self, data: bytes) -> None:
        """Append already encoded bytes."""
        self._buf += data
        self._spill()

    def _write(self, append: Callable, *args) -> None:
        append(self._buf, *args)
        self._spill()

    def write_nil(self) -> None:
        self._write(append_nil)

    def write_bool(self, value: bool) -> None:
        self._write(append_bool, value)

    def write_int(self, value: int) -> None:
        self._write(append_int, value)

    def write_uint(self, value: int) -> None:
        self._write(append_uint, value)

    def write_float32(self, value: float) -> None:
        self._write(append_float32, value)

    def write_float64(self, value: float) -> None:
        self._write(append_float64, value)

    def write_complex64(self, value: complex) -> None:
        self._write(append_complex64, value)

    def write_complex128(self, value: complex) -> None:
        self._write(append_complex128, value)

    def write_string(self, value: str) -> None:
        self._write(append_string, value)

    def write_bytes(self, value) -> None:
        self._write(append_bytes, value)

    def write_intf(self, value: Any) -> None:
        self._write(append_intf, value)

    def write_ext(self, value: msgpack.ExtType) -> None:
        self._write(append_ext, value)

    def write_map_header(self, count: int) -> None:
        self._write(append_map_header, count)

    def write_array_header(self, count: int) -> None:
        self._write(append_array_header, count)


class Reader:
    """Buffered MessagePack reader over a binary stream with one-byte peek."""

    def __init__(self, stream, size: int = 4096):
        self._stream = stream
        self._size = size
        self._buf = bytearray()

    def _fill(self, n: int) -> None:
        while len(self._buf) < n:
            chunk = self._stream.read(max(self._size, n - len(self._buf)))
            if not chunk:
                raise ShortBytesError(f"unexpected end of stream: need {n - len(self._buf)} more bytes")
            self._buf += chunk

    def _read(self, n: int) -> bytes:
        self._fill(n)
        data = bytes(self._buf[:n])
        del self._buf[:n]
        return data

    def peek(self) -> int:
        """Lead byte of the next object, without consuming it."""
        self._fill(1)
        return self._buf[0]

    def read_raw(self) -> bytes:
        """Consume the next complete object and return its encoding."""
        chunks = []

        def read(n: int) -> bytes:
            data = self._read(n)
            chunks.append(data)
            return data

        _walk(read)
        return b"".join(chunks)

    def skip(self) -> None:
        self.read_raw()

    def is_nil(self) -> bool:
        return self.peek() == NIL

    def read_nil(self) -> None:
        _to_nil(self.read_raw())

    def read_bool(self) -> bool:
        return _to_bool(self.read_raw())

    def read_int(self, bits: int = 64) -> int:
        return _to_int(self.read_raw(), bits)

    def read_uint(self, bits: int = 64) -> int:
        return _to_uint(self.read_raw(), bits)

    def read_float32(self) -> float:
        return _to_float32(self.read_raw())

    def read_float64(self) -> float:
        return _to_float64(self.read_raw())

    def read_complex64(self) -> complex:
        return _to_complex(self.read_raw(), COMPLEX64_EXT, Complex64Payload)

    def read_complex128(self) -> complex:
        return _to_complex(self.read_raw(), COMPLEX128_EXT, Complex128Payload)

    def read_string(self) -> str:
        return _to_string(self.read_raw())

    def read_bytes(self) -> bytes:
        return _to_bytes(self.read_raw())

    def read_map_key(self) -> str:
        return _to_map_key(self.read_raw())

    def read_intf(self) -> Any:
        return _unpack(self.read_raw())

    def read_ext(self) -> msgpack.ExtType:
        return _to_ext(self.read_raw())

    def read_map_header(self) -> int:
        return _read_header(HeaderKind.MAP, self._read)

    def read_array_header(self) -> int:
        return _read_header(HeaderKind.ARRAY, self._read)
