"""
Public API for mpack_codegen.

Provides the high-level entry points:
    - generate: Python source of the procedures for one Elem
    - compile_elem: execute that source and return the procedures
    - msgp_record: class decorator attaching the procedures as methods
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

import numpy

from . import runtime
from .base import Method
from .elem import Elem
from .printer import Printer, SourcePrinter
from .read import DecodeGen, UnmarshalGen
from .write import EncodeGen, MarshalGen

_GENERATORS = {
    Method.MARSHAL: MarshalGen,
    Method.UNMARSHAL: UnmarshalGen,
    Method.ENCODE: EncodeGen,
    Method.DECODE: DecodeGen,
}


@dataclass(frozen=True)
class GenOptions:
    """
    Generation settings.

    Args:
        receiver: name of the value argument of every procedure
        methods: procedures to emit, in order
        runtime_alias: name generated code uses for the runtime module
    """
    receiver: str = "z"
    methods: Tuple[Method, ...] = field(default=tuple(Method))
    runtime_alias: str = "_rt"


def generate(elem: Elem, options: Optional[GenOptions] = None,
             printer: Optional[Printer] = None) -> str:
    """
    Generate the procedures for ``elem``.

    Args:
        elem: root of the type model
        options: generation settings (defaults to GenOptions())
        printer: instruction sink; a SourcePrinter when omitted

    Returns:
        Python source defining one function per selected method. Empty
        when ``elem`` is hidden or has nothing to generate.

    Examples:
        >>> from mpack_codegen import Field, Kind, prim, record
        >>> rec = record(Field.from_tag("AString", "astring,omitempty", prim(Kind.STRING)))
        >>> print(generate(rec))
    """
    options = options or GenOptions()
    printer = printer or SourcePrinter(runtime_alias=options.runtime_alias)
    for method in options.methods:
        gen = _GENERATORS[method](printer, receiver=options.receiver,
                                  runtime_alias=options.runtime_alias)
        gen.execute(elem)
    if isinstance(printer, SourcePrinter):
        return printer.source()
    return ""


def compile_elem(elem: Elem, namespace: Optional[Dict[str, Any]] = None,
                 options: Optional[GenOptions] = None) -> Dict[str, Callable]:
    """
    Generate and execute the procedures for ``elem``.

    Args:
        elem: root of the type model
        namespace: names the generated code refers to (nested record types,
            IDENT types, shim callables)
        options: generation settings

    Returns:
        Mapping from method name (e.g. "marshal_msg") to function.
    """
    options = options or GenOptions()
    source = generate(elem, options)
    scope: Dict[str, Any] = dict(namespace or {})
    scope.update({"numpy": numpy, options.runtime_alias: runtime})
    logging.debug("Compiling generated procedures:\n%s", source)
    exec(compile(source, "<mpack_codegen>", "exec"), scope)  # pylint: disable=exec-used
    return {m.value: scope[m.value] for m in options.methods if m.value in scope}


def msgp_record(elem: Elem, namespace: Optional[Dict[str, Any]] = None,
                options: Optional[GenOptions] = None):
    """
    Decorator attaching generated MessagePack procedures to a class.

    The decorated class must be constructible without arguments when it is
    decoded as a nested value. The class itself is visible to the generated
    code under its own name.

    Args:
        elem: type model of one instance
        namespace: extra names the generated code refers to
        options: generation settings

    Examples:
        >>> @msgp_record(record(Field.from_tag("name", "name,omitempty", prim(Kind.STRING))))
        >>> class Person:
        >>>     name: str = ""
        >>>
        >>> data = Person().marshal_msg()      # b'\\x80'
        >>> Person().unmarshal_msg(data)
    """
    def decorator(cls):
        scope = {cls.__name__: cls}
        scope.update(namespace or {})
        for name, func in compile_elem(elem, scope, options).items():
            func.__qualname__ = f"{cls.__qualname__}.{name}"
            setattr(cls, name, func)
        cls.__msgp_elem__ = elem
        cls.__is_msgp_record__ = True
        return cls

    return decorator


def is_msgp_record(obj: Any) -> bool:
    """
    Check if a class or instance was decorated with @msgp_record.

    Args:
        obj: class or instance to check

    Returns:
        True if decorated with @msgp_record, False otherwise
    """
    cls = obj if isinstance(obj, type) else type(obj)
    return getattr(cls, "__is_msgp_record__", False)
