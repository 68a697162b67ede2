"""
Code Generation Engine - variant dispatch shared by every procedure.

A Generator walks one Elem graph depth-first and drives a Printer. The
write-direction generators (marshal, stream-encode) live in ``write.py``,
the read-direction ones (unmarshal, stream-decode) in ``read.py``; they share
the dispatch, identifier allocation and the diagnostic path threading below.
"""

import itertools
import logging
import re
from abc import ABC, abstractmethod
from enum import Enum

from .context import Path
from .elem import Elem, FixedArray, Kind, Map, Nullable, Primitive, Record, Sequence, is_printable
from .printer import Printer


class Method(Enum):
    """Procedures a generator can emit; values are the generated names."""
    MARSHAL = "marshal_msg"
    UNMARSHAL = "unmarshal_msg"
    ENCODE = "encode_msg"
    DECODE = "decode_msg"


def sanitize(name: str) -> str:
    """Identifier derived from a value expression (``z.items[zb0001]`` -> ``z_items_zb0001_``)."""
    return re.sub(r"[^0-9a-zA-Z_]", "_", name)


class Generator(ABC):
    """
    Base class of the four procedure generators.

    Args:
        printer: instruction sink
        receiver: name of the value argument of the generated procedure
        runtime_alias: name the generated module binds the runtime to
    """

    method: Method

    def __init__(self, printer: Printer, receiver: str = "z", runtime_alias: str = "_rt"):
        self.p = printer
        self.receiver = receiver
        self.rt = runtime_alias
        self._counter = itertools.count(1)

    def execute(self, elem: Elem) -> None:
        """Emit the procedure for ``elem``; hidden or unprintable Elems emit nothing."""
        if not is_printable(elem):
            logging.debug("Skipping %s for unprintable element %r", self.method.value, elem)
            return
        self._counter = itertools.count(1)
        logging.debug("Generating %s", self.method.value)
        self.procedure(elem)

    def ident(self) -> str:
        """Fresh local identifier, unique within this generation run."""
        return f"zb{next(self._counter):04d}"

    def is_root(self, vname: str) -> bool:
        return vname == self.receiver

    def next(self, elem: Elem, vname: str, path: Path) -> None:
        """Dispatch on the Elem variant."""
        if isinstance(elem, Record):
            self.gen_record(elem, vname, path)
        elif isinstance(elem, Map):
            self.gen_map(elem, vname, path)
        elif isinstance(elem, Sequence):
            self.gen_sequence(elem, vname, path)
        elif isinstance(elem, FixedArray):
            self.gen_array(elem, vname, path)
        elif isinstance(elem, Nullable):
            self.gen_nullable(elem, vname, path)
        elif isinstance(elem, Primitive):
            if elem.kind is Kind.INVALID:
                raise ValueError(f"Invalid primitive at {str(path) or self.receiver}")
            self.gen_primitive(elem, vname, path)
        else:
            raise TypeError(f"Unsupported element type: {type(elem).__name__}")

    @abstractmethod
    def procedure(self, elem: Elem) -> None:
        """Emit the procedure definition around the body for ``elem``."""

    @abstractmethod
    def gen_record(self, rec: Record, vname: str, path: Path) -> None:
        pass

    @abstractmethod
    def gen_map(self, m: Map, vname: str, path: Path) -> None:
        pass

    @abstractmethod
    def gen_sequence(self, s: Sequence, vname: str, path: Path) -> None:
        pass

    @abstractmethod
    def gen_array(self, a: FixedArray, vname: str, path: Path) -> None:
        pass

    @abstractmethod
    def gen_nullable(self, n: Nullable, vname: str, path: Path) -> None:
        pass

    @abstractmethod
    def gen_primitive(self, b: Primitive, vname: str, path: Path) -> None:
        pass
