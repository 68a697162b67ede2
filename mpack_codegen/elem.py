"""
Type Model - the Elem graph handed to the generators.

An Elem describes one schema position. Variants:
    - Primitive: a leaf with a wire Kind, optional conversion shim
    - Record: ordered fields, keyed (map) or positional (array) on the wire
    - Map: string keys, homogeneous values
    - Sequence: variable-length homogeneous collection
    - FixedArray: fixed-length homogeneous collection (byte arrays are blobs)
    - Nullable: optional reference to another Elem

Nodes are immutable; the front end builds them once and every generation
pass only reads them.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import List, Optional, Tuple


# ============================================================================
# Primitive Kinds
# ============================================================================

class Kind(IntEnum):
    """Wire kinds of primitive Elems."""
    INVALID = 0x00
    BOOL = 0x01
    INT8 = 0x02
    INT16 = 0x03
    INT32 = 0x04
    INT64 = 0x05
    UINT8 = 0x06
    UINT16 = 0x07
    UINT32 = 0x08
    UINT64 = 0x09
    BYTE = 0x0A
    FLOAT32 = 0x0B
    FLOAT64 = 0x0C
    COMPLEX64 = 0x0D
    COMPLEX128 = 0x0E
    STRING = 0x10
    BYTES = 0x11
    IDENT = 0x20  # named type reference
    INTF = 0x21  # opaque value
    EXT = 0x22  # extension value

    @property
    def base_name(self) -> str:
        """Name used by the runtime helpers (``append_<base_name>``)."""
        return _BASE_NAMES[self]

    @property
    def bits(self) -> int:
        """Declared width of integer kinds, 0 for everything else."""
        return _INT_BITS.get(self, 0)


SIGNED_INTS = frozenset({Kind.INT8, Kind.INT16, Kind.INT32, Kind.INT64})
UNSIGNED_INTS = frozenset({Kind.UINT8, Kind.UINT16, Kind.UINT32, Kind.UINT64, Kind.BYTE})
FLOATS = frozenset({Kind.FLOAT32, Kind.FLOAT64})
COMPLEXES = frozenset({Kind.COMPLEX64, Kind.COMPLEX128})

_INT_BITS = {
    Kind.INT8: 8, Kind.INT16: 16, Kind.INT32: 32, Kind.INT64: 64,
    Kind.UINT8: 8, Kind.UINT16: 16, Kind.UINT32: 32, Kind.UINT64: 64,
    Kind.BYTE: 8,
}

_BASE_NAMES = {
    Kind.INVALID: "invalid",
    Kind.BOOL: "bool",
    Kind.FLOAT32: "float32",
    Kind.FLOAT64: "float64",
    Kind.COMPLEX64: "complex64",
    Kind.COMPLEX128: "complex128",
    Kind.STRING: "string",
    Kind.BYTES: "bytes",
    Kind.IDENT: "ident",
    Kind.INTF: "intf",
    Kind.EXT: "ext",
}
_BASE_NAMES.update({k: "int" for k in SIGNED_INTS})
_BASE_NAMES.update({k: "uint" for k in UNSIGNED_INTS})


class ShimMode(Enum):
    """How a conversion shim maps a user type onto its wire kind."""
    CAST = "cast"  # infallible representation map
    CONVERT = "convert"  # may raise


@dataclass(frozen=True)
class Shim:
    """
    Conversion applied around wire operations.

    Args:
        to_base: callable name turning the user value into the wire value
        from_base: callable name turning the wire value back
        mode: CAST never fails, CONVERT gets an error-propagation point
    """
    to_base: str
    from_base: str
    mode: ShimMode = ShimMode.CAST

    @property
    def fallible(self) -> bool:
        return self.mode is ShimMode.CONVERT


# ============================================================================
# Elem Variants
# ============================================================================

@dataclass(frozen=True, kw_only=True)
class Elem:
    """Base of every schema node."""
    hidden: bool = False


@dataclass(frozen=True, kw_only=True)
class Primitive(Elem):
    kind: Kind
    shim: Optional[Shim] = None
    ident: Optional[str] = None

    def __post_init__(self):
        if self.kind is Kind.IDENT and not self.ident:
            raise ValueError("IDENT primitives need the referenced type name")


@dataclass(frozen=True)
class Field:
    """
    One record field.

    Args:
        name: Python attribute holding the value
        tag: wire key
        directives: directive tokens following the key (e.g. "omitempty")
        elem: nested Elem
    """
    name: str
    tag: str
    directives: Tuple[str, ...]
    elem: Elem
    hidden: bool = False

    @classmethod
    def from_tag(cls, name: str, tag: str, elem: Elem) -> "Field":
        """
        Build a field from a struct-tag style string.

        Examples:
            >>> Field.from_tag("AString", "astring,omitempty", Primitive(kind=Kind.STRING))
            >>> Field.from_tag("Secret", "-", Primitive(kind=Kind.STRING))  # hidden
        """
        parts = [p.strip() for p in tag.split(",")]
        key = parts[0] or name
        return cls(name, key, tuple(p for p in parts[1:] if p), elem, hidden=parts[0] == "-")


@dataclass(frozen=True, kw_only=True)
class Record(Elem):
    fields: Tuple[Field, ...] = ()
    as_tuple: bool = False
    type_name: Optional[str] = None

    def __post_init__(self):
        seen = set()
        for f in self.fields:
            if f.hidden:
                continue
            if f.tag in seen:
                raise ValueError(f"Duplicate wire key {f.tag!r} in record {self.type_name or ''}")
            seen.add(f.tag)

    def visible_fields(self) -> List[Field]:
        """Fields that take part in generation, in declared order."""
        return [f for f in self.fields if not f.hidden and is_printable(f.elem)]


@dataclass(frozen=True, kw_only=True)
class Map(Elem):
    value: Elem
    key_var: Optional[str] = None
    val_var: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class Sequence(Elem):
    elem: Elem
    index: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class FixedArray(Elem):
    elem: Elem
    size: int
    index: Optional[str] = None

    def __post_init__(self):
        if self.size < 0:
            raise ValueError(f"Array size must be non-negative, got {self.size}")

    @property
    def is_bytes(self) -> bool:
        """Byte arrays are written as one bin blob."""
        return isinstance(self.elem, Primitive) and self.elem.kind is Kind.BYTE


@dataclass(frozen=True, kw_only=True)
class Nullable(Elem):
    value: Elem


# ============================================================================
# Structural Queries
# ============================================================================

def children(elem: Elem) -> List[Elem]:
    """Nested Elems of a node: none, one, or one per record field."""
    if isinstance(elem, Record):
        return [f.elem for f in elem.fields]
    if isinstance(elem, Map):
        return [elem.value]
    if isinstance(elem, (Sequence, FixedArray)):
        return [elem.elem]
    if isinstance(elem, Nullable):
        return [elem.value]
    return []


def is_printable(elem: Elem) -> bool:
    """
    True when generation has something to visit.

    Hidden nodes are never printable. Records are printable even without
    fields; containers are printable when their child is.
    """
    if elem.hidden:
        return False
    if isinstance(elem, (Primitive, Record)):
        return True
    return all(is_printable(c) for c in children(elem))


# Shorthands used by fixtures and hand-built models
def prim(kind: Kind, **kwargs) -> Primitive:
    return Primitive(kind=kind, **kwargs)


def ident(name: str) -> Primitive:
    return Primitive(kind=Kind.IDENT, ident=name)


def record(*fields: Field, as_tuple: bool = False, type_name: Optional[str] = None) -> Record:
    return Record(fields=tuple(fields), as_tuple=as_tuple, type_name=type_name)


__all__ = [
    "Kind", "ShimMode", "Shim",
    "Elem", "Primitive", "Field", "Record", "Map", "Sequence", "FixedArray", "Nullable",
    "SIGNED_INTS", "UNSIGNED_INTS", "FLOATS", "COMPLEXES",
    "children", "is_printable", "prim", "ident", "record",
]
