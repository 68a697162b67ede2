"""
Tag Policy Resolver - omitempty support.

Decides, per record field, whether the write side may omit the field when
it holds its zero value ("omitempty" / "omitemptyenc") and whether the read
side should reset missing fields to their zero value ("omitempty" /
"omitemptydec").

Only plain primitives are supported. A directive on anything else silently
falls back to always-present behaviour, the same way encoding/json and
similar libraries ignore options they cannot honour.
"""

import logging
from typing import Iterable

from .elem import Elem, Field, Kind, Primitive, SIGNED_INTS, UNSIGNED_INTS, FLOATS, COMPLEXES

OMITEMPTY = "omitempty"
OMITEMPTY_ENC = "omitemptyenc"
OMITEMPTY_DEC = "omitemptydec"

_SUPPORTED_KINDS = frozenset(
    {Kind.BYTES, Kind.STRING, Kind.BOOL} | SIGNED_INTS | UNSIGNED_INTS | FLOATS | COMPLEXES
)


def is_supported_elem(elem: Elem) -> bool:
    """True if omitempty code can be generated for this Elem."""
    return isinstance(elem, Primitive) and elem.kind in _SUPPORTED_KINDS


def _tagged(field: Field, tokens: Iterable[str]) -> bool:
    wanted = set(tokens)
    if not any(d in wanted for d in field.directives):
        return False
    if not is_supported_elem(field.elem):
        logging.debug("omitempty ignored on field %s: unsupported element %r",
                      field.name, field.elem)
        return False
    return True


def is_enc_field(field: Field) -> bool:
    """Field is tagged omitempty/omitemptyenc and of a supported kind."""
    return _tagged(field, (OMITEMPTY, OMITEMPTY_ENC))


def is_dec_field(field: Field) -> bool:
    """Field is tagged omitempty/omitemptydec and of a supported kind."""
    return _tagged(field, (OMITEMPTY, OMITEMPTY_DEC))


def _kind(elem: Elem) -> Kind:
    if not is_supported_elem(elem):
        raise TypeError(f"unsupported Elem: {elem!r}")
    return elem.kind


def empty_expr(elem: Elem, varname: str) -> str:
    """
    Python expression that is true when ``varname`` holds the zero value.

    Raises:
        TypeError: for unsupported Elems (check with is_supported_elem first)
    """
    kind = _kind(elem)
    if kind is Kind.BYTES:
        # decoded zero value is None
        return f"not {varname}"
    if kind is Kind.STRING:
        return f"len({varname}) == 0"
    if kind in COMPLEXES:
        return f"{varname} == complex(0, 0)"
    if kind is Kind.BOOL:
        return f"not {varname}"
    return f"{varname} == 0"


def empty_assign(elem: Elem, varname: str) -> str:
    """Python statement assigning the zero value to ``varname``."""
    kind = _kind(elem)
    if kind is Kind.BYTES:
        return f"{varname} = None"
    if kind is Kind.STRING:
        return f'{varname} = ""'
    if kind in COMPLEXES:
        return f"{varname} = complex(0, 0)"
    if kind in FLOATS:
        return f"{varname} = 0.0"
    if kind is Kind.BOOL:
        return f"{varname} = False"
    return f"{varname} = 0"
