"""
Unit tests for the omitempty tag policy.
"""

import logging

import pytest

from mpack_codegen import Field, FixedArray, Kind, Map, Nullable, Shim, ident, prim, record
from mpack_codegen.tags import (
    empty_assign, empty_expr, is_dec_field, is_enc_field, is_supported_elem,
)


def _field(tag, elem=None):
    return Field.from_tag("F", tag, elem or prim(Kind.STRING))


# ============================================================================
# Directive resolution
# ============================================================================

@pytest.mark.parametrize("tag,enc,dec", [
    ("f", False, False),
    ("f,omitempty", True, True),
    ("f,omitemptyenc", True, False),
    ("f,omitemptydec", False, True),
    ("f,omitemptyenc,omitemptydec", True, True),
    ("f,somethingelse", False, False),
])
def test_directive_sides(tag, enc, dec):
    """Test which side each directive applies to."""
    f = _field(tag)
    assert is_enc_field(f) is enc
    assert is_dec_field(f) is dec


@pytest.mark.parametrize("kind", [
    Kind.BOOL, Kind.INT8, Kind.INT64, Kind.UINT32, Kind.BYTE,
    Kind.FLOAT32, Kind.FLOAT64, Kind.COMPLEX64, Kind.COMPLEX128,
    Kind.STRING, Kind.BYTES,
])
def test_supported_kinds(kind):
    assert is_supported_elem(prim(kind))


@pytest.mark.parametrize("elem", [
    ident("Inner"),
    prim(Kind.INTF),
    prim(Kind.EXT),
    record(),
    Map(value=prim(Kind.STRING)),
    FixedArray(elem=prim(Kind.BYTE), size=4),
    Nullable(value=prim(Kind.STRING)),
])
def test_unsupported_elems_degrade(elem, caplog):
    """Test that omitempty on unsupported elems is ignored with a debug record."""
    with caplog.at_level(logging.DEBUG):
        assert not is_enc_field(_field("f,omitempty", elem))
    assert "omitempty ignored" in caplog.text


def test_shimmed_primitive_qualifies_by_wire_kind():
    elem = prim(Kind.INT64, shim=Shim("int", "Color"))
    assert is_enc_field(_field("f,omitempty", elem))


# ============================================================================
# Emptiness and zero values
# ============================================================================

@pytest.mark.parametrize("kind,expr", [
    (Kind.STRING, "len(v) == 0"),
    (Kind.BYTES, "not v"),
    (Kind.BOOL, "not v"),
    (Kind.INT32, "v == 0"),
    (Kind.FLOAT64, "v == 0"),
    (Kind.COMPLEX64, "v == complex(0, 0)"),
])
def test_empty_expr(kind, expr):
    assert empty_expr(prim(kind), "v") == expr


@pytest.mark.parametrize("kind,value", [
    (Kind.STRING, ""),
    (Kind.BYTES, b""),
    (Kind.BYTES, None),
    (Kind.BOOL, False),
    (Kind.UINT64, 0),
    (Kind.FLOAT32, 0.0),
    (Kind.COMPLEX128, 0j),
])
def test_empty_expr_true_for_zero_values(kind, value):
    """Test the rendered expression against actual zero values."""
    assert eval(empty_expr(prim(kind), "v"), {"v": value})


@pytest.mark.parametrize("kind,value", [
    (Kind.STRING, "x"),
    (Kind.BYTES, b"\x00"),
    (Kind.BOOL, True),
    (Kind.INT8, -1),
    (Kind.FLOAT64, 0.5),
    (Kind.COMPLEX64, 1j),
])
def test_empty_expr_false_for_values(kind, value):
    assert not eval(empty_expr(prim(kind), "v"), {"v": value})


@pytest.mark.parametrize("kind,zero", [
    (Kind.STRING, ""),
    (Kind.BYTES, None),
    (Kind.BOOL, False),
    (Kind.INT16, 0),
    (Kind.FLOAT32, 0.0),
    (Kind.COMPLEX64, 0j),
])
def test_empty_assign(kind, zero):
    scope = {}
    exec(empty_assign(prim(kind), "v"), scope)
    assert scope["v"] == zero
    assert type(scope["v"]) is type(zero)


def test_unsupported_elem_raises():
    with pytest.raises(TypeError):
        empty_expr(record(), "v")
    with pytest.raises(TypeError):
        empty_assign(ident("Inner"), "v")
