"""
Unit tests for the Elem type model.
"""

import pytest

from mpack_codegen import (
    Field, FixedArray, Kind, Map, Nullable, Primitive, Record, Sequence, Shim, ShimMode,
    children, ident, is_printable, prim, record,
)


# ============================================================================
# Kinds
# ============================================================================

@pytest.mark.parametrize("kind,base,bits", [
    (Kind.INT8, "int", 8),
    (Kind.INT64, "int", 64),
    (Kind.UINT16, "uint", 16),
    (Kind.BYTE, "uint", 8),
    (Kind.FLOAT32, "float32", 0),
    (Kind.STRING, "string", 0),
    (Kind.BYTES, "bytes", 0),
    (Kind.COMPLEX128, "complex128", 0),
])
def test_kind_base_name_and_bits(kind, base, bits):
    """Test that kinds map to runtime helper names and declared widths."""
    assert kind.base_name == base
    assert kind.bits == bits


def test_ident_requires_name():
    """Test that IDENT primitives must name the referenced type."""
    with pytest.raises(ValueError):
        Primitive(kind=Kind.IDENT)
    assert ident("Item").ident == "Item"


def test_shim_fallible_only_for_convert():
    assert not Shim("int", "Color").fallible
    assert Shim("encode", "decode", ShimMode.CONVERT).fallible


# ============================================================================
# Fields
# ============================================================================

def test_field_from_tag_with_directive():
    """Test parsing of "key,omitempty" tags."""
    f = Field.from_tag("AString", "astring,omitempty", prim(Kind.STRING))
    assert f.name == "AString"
    assert f.tag == "astring"
    assert f.directives == ("omitempty",)
    assert not f.hidden


def test_field_from_tag_empty_key_uses_name():
    f = Field.from_tag("Count", ",omitemptyenc", prim(Kind.INT64))
    assert f.tag == "Count"
    assert f.directives == ("omitemptyenc",)


def test_field_from_tag_dash_is_hidden():
    f = Field.from_tag("Secret", "-", prim(Kind.STRING))
    assert f.hidden


def test_field_from_tag_ignores_blank_tokens():
    f = Field.from_tag("A", "a, ,omitempty,", prim(Kind.STRING))
    assert f.directives == ("omitempty",)


# ============================================================================
# Records and containers
# ============================================================================

def test_record_rejects_duplicate_wire_keys():
    """Test that two visible fields sharing a wire key are rejected."""
    with pytest.raises(ValueError, match="Duplicate wire key"):
        record(
            Field("A", "x", (), prim(Kind.INT64)),
            Field("B", "x", (), prim(Kind.INT64)),
        )


def test_record_duplicate_key_allowed_when_hidden():
    rec = record(
        Field("A", "x", (), prim(Kind.INT64)),
        Field("B", "x", (), prim(Kind.INT64), hidden=True),
    )
    assert [f.name for f in rec.visible_fields()] == ["A"]


def test_visible_fields_skip_unprintable_elems():
    rec = record(
        Field("A", "a", (), prim(Kind.INT64)),
        Field("B", "b", (), Sequence(elem=prim(Kind.INT64, hidden=True))),
    )
    assert [f.name for f in rec.visible_fields()] == ["A"]


def test_fixed_array_negative_size():
    with pytest.raises(ValueError):
        FixedArray(elem=prim(Kind.INT64), size=-1)


def test_fixed_array_of_bytes_is_blob():
    assert FixedArray(elem=prim(Kind.BYTE), size=4).is_bytes
    assert not FixedArray(elem=prim(Kind.UINT8), size=4).is_bytes


def test_children():
    """Test structural children of every variant."""
    leaf = prim(Kind.STRING)
    assert children(leaf) == []
    assert children(Map(value=leaf)) == [leaf]
    assert children(Sequence(elem=leaf)) == [leaf]
    assert children(FixedArray(elem=leaf, size=2)) == [leaf]
    assert children(Nullable(value=leaf)) == [leaf]
    assert children(record(Field("A", "a", (), leaf))) == [leaf]


def test_is_printable():
    assert is_printable(record())
    assert is_printable(Map(value=prim(Kind.INT64)))
    assert not is_printable(prim(Kind.INT64, hidden=True))
    assert not is_printable(Nullable(value=prim(Kind.INT64, hidden=True)))


def test_elems_are_immutable():
    rec = Record(fields=(), type_name="T")
    with pytest.raises(AttributeError):
        rec.type_name = "U"
