"""
MessagePack procedure generator.

Turns an Elem type model into four Python procedures per type:

    - marshal_msg(z, b=None): append the encoding to a bytearray
    - unmarshal_msg(z, bts): parse from bytes, return the remainder
    - encode_msg(z, en): write to a runtime Writer
    - decode_msg(z, dc): read from a runtime Reader

Records, maps and sequences are filled in place; primitive and nullable roots
are returned by the read procedures instead.

Key Features:
    - omitempty / omitemptyenc / omitemptydec field directives
    - numpy presence bitmasks sized to the field count
    - dynamic map headers limited to the reachable size classes
    - static header and key bytes fused into single literal appends

Usage:
    >>> from mpack_codegen import Field, Kind, msgp_record, prim, record
    >>>
    >>> @msgp_record(record(Field.from_tag("AString", "astring,omitempty", prim(Kind.STRING))))
    >>> class OmitEmpty0:
    >>>     AString: str = ""
    >>>
    >>> OmitEmpty0().marshal_msg()
    bytearray(b'\\x80')
"""

from .api import GenOptions, compile_elem, generate, is_msgp_record, msgp_record
from .base import Generator, Method
from .bitmask import BitmaskPlan, plan_bitmask
from .context import Path
from .elem import (
    COMPLEXES, FLOATS, SIGNED_INTS, UNSIGNED_INTS,
    Elem, Field, FixedArray, Kind, Map, Nullable, Primitive, Record, Sequence, Shim, ShimMode,
    children, ident, is_printable, prim, record,
)
from .fuse import FuseBuffer
from .headers import HeaderKind, array_header, encode_header, map_header
from .printer import Printer, SourcePrinter
from .read import DecodeGen, UnmarshalGen
from .runtime import (
    ArraySizeError, IntOverflowError, MsgpError, Reader, ShortBytesError, TypeMismatchError, Writer,
)
from .tags import OMITEMPTY, OMITEMPTY_DEC, OMITEMPTY_ENC
from .write import EncodeGen, MarshalGen

__all__ = [
    # API
    "GenOptions", "generate", "compile_elem", "msgp_record", "is_msgp_record",
    # Type model
    "Kind", "ShimMode", "Shim",
    "Elem", "Primitive", "Field", "Record", "Map", "Sequence", "FixedArray", "Nullable",
    "SIGNED_INTS", "UNSIGNED_INTS", "FLOATS", "COMPLEXES",
    "children", "is_printable", "prim", "ident", "record",
    # Directives
    "OMITEMPTY", "OMITEMPTY_ENC", "OMITEMPTY_DEC",
    # Generation
    "Generator", "Method", "MarshalGen", "EncodeGen", "UnmarshalGen", "DecodeGen",
    "Printer", "SourcePrinter", "Path",
    "BitmaskPlan", "plan_bitmask", "FuseBuffer",
    "HeaderKind", "encode_header", "map_header", "array_header",
    # Runtime
    "Reader", "Writer",
    "MsgpError", "ShortBytesError", "TypeMismatchError", "ArraySizeError", "IntOverflowError",
]

__version__ = "0.1.0"
