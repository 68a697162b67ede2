"""
Write-direction generators: MarshalGen (append to a bytearray) and
EncodeGen (write to a buffered runtime Writer).

Both emit the same instruction sequence; they differ only in the sink the
bytes go to, how a nested value's own procedure is called and what an early
return looks like.
"""

from abc import abstractmethod
from contextlib import contextmanager, nullcontext
from typing import Iterator, List, Optional

from . import tags
from .base import Generator, Method, sanitize
from .bitmask import plan_bitmask
from .context import Path
from .elem import Elem, Field, FixedArray, Kind, Map, Nullable, Primitive, Record, Sequence
from .fuse import FuseBuffer
from .headers import HeaderKind, array_header, encode_str, header_expr, map_header, size_classes


class WriteGen(Generator):
    """Shared traversal of the marshal and stream-encode procedures."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._fuse = FuseBuffer()

    # ------------------------------------------------------------------
    # Sink specifics
    # ------------------------------------------------------------------

    sink: str

    @abstractmethod
    def append_value(self, base_name: str, expr: Optional[str] = None) -> None:
        """Append a primitive through the runtime (``expr`` is None for nil)."""

    @abstractmethod
    def append_header(self, kind: str, expr: str) -> None:
        """Append a map/array header for a run-time count."""

    @abstractmethod
    def delegate(self, value: str) -> str:
        """Statement calling the nested value's own procedure."""

    @abstractmethod
    def early_return(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Fusion
    # ------------------------------------------------------------------

    def fuse(self, data: bytes) -> None:
        self._fuse.fuse(data)

    def fuse_hook(self) -> None:
        """Flush pending static bytes as one literal append."""
        data = self._fuse.flush()
        if data:
            self.p.raw_bytes(self.sink, data)

    @contextmanager
    def _block(self, header: str) -> Iterator[None]:
        self.fuse_hook()
        with self.p.block(header):
            yield
            self.fuse_hook()

    @contextmanager
    def _loop(self, var: str, iterable: str) -> Iterator[None]:
        self.fuse_hook()
        with self.p.loop(var, iterable):
            yield
            self.fuse_hook()

    @contextmanager
    def _propagate(self, path: Path) -> Iterator[None]:
        self.fuse_hook()
        with self.p.propagate(path.render()):
            yield
            self.fuse_hook()

    def body(self, elem: Elem) -> None:
        self.next(elem, self.receiver, Path.root())
        self.fuse_hook()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def gen_record(self, rec: Record, vname: str, path: Path) -> None:
        fields = rec.visible_fields()
        if rec.as_tuple:
            self._tuple(fields, vname, path)
        else:
            self._mapstruct(fields, vname, path)

    def _tuple(self, fields: List[Field], vname: str, path: Path) -> None:
        self.p.comment(f"array header, size {len(fields)}")
        self.fuse(array_header(len(fields)))
        if not fields:
            self.fuse_hook()
        for f in fields:
            self.next(f.elem, f"{vname}.{f.name}", path.field(f.name))

    def _mapstruct(self, fields: List[Field], vname: str, path: Path) -> None:
        nfields = len(fields)
        omit = [tags.is_enc_field(f) for f in fields]
        plan = plan_bitmask(nfields)
        prefix = sanitize(vname)
        field_n, mask = f"{prefix}_field_n", f"{prefix}_empty_mask"

        body = nullcontext()
        if any(omit):
            self.fuse_hook()
            self.p.comment("omitempty: check for empty values")
            self.p.declare(field_n, str(nfields))
            self.p.statement(plan.declare(mask))
            for i, f in enumerate(fields):
                if omit[i]:
                    with self._block(f"if {tags.empty_expr(f.elem, f'{vname}.{f.name}')}"):
                        self.p.statement(f"{field_n} -= 1")
                        self.p.statement(plan.assign1(mask, i))

            self.p.comment(f"dynamic map header, size {field_n}")
            self.dyn_header(HeaderKind.MAP, field_n, nfields)

            # nothing left to write once every field was empty
            if self.is_root(vname):
                with self._block(f"if {field_n} == 0"):
                    self.early_return()
            else:
                body = self._block(f"if {field_n} != 0")
        else:
            self.p.comment(f"map header, size {nfields}")
            self.fuse(map_header(nfields))
            if nfields == 0:
                self.fuse_hook()

        with body:
            for i, f in enumerate(fields):
                guard = self._block(f"if {plan.read(mask, i)} == 0") if omit[i] else nullcontext()
                with guard:
                    self.p.comment(f"string {f.tag!r}")
                    self.fuse(encode_str(f.tag))
                    self.next(f.elem, f"{vname}.{f.name}", path.field(f.name))

    def dyn_header(self, kind: HeaderKind, varname: str, max_count: int) -> None:
        """
        Header for a count only known at run time but bounded by
        ``max_count``; size classes that cannot be reached are not emitted.
        """
        self.fuse_hook()
        classes = size_classes(kind, max_count)
        if len(classes) == 1:
            self.p.statement(f"{self.sink}({header_expr(classes[0], varname)})")
            return
        for n, cls in enumerate(classes):
            if n == 0:
                header = f"if {varname} <= {cls.limit}"
            elif n == len(classes) - 1:
                header = "else"
            else:
                header = f"elif {varname} <= {cls.limit}"
            with self._block(header):
                self.p.statement(f"{self.sink}({header_expr(cls, varname)})")

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def gen_map(self, m: Map, vname: str, path: Path) -> None:
        self.fuse_hook()
        key, val = m.key_var or self.ident(), m.val_var or self.ident()
        self.append_header("map", f"len({vname})")
        with self._loop(f"{key}, {val}", f"{vname}.items()"):
            self.append_value("string", key)
            self.next(m.value, val, path.key(key))

    def gen_sequence(self, s: Sequence, vname: str, path: Path) -> None:
        self.fuse_hook()
        idx = s.index or self.ident()
        self.append_header("array", f"len({vname})")
        with self._loop(idx, f"range(len({vname}))"):
            self.next(s.elem, f"{vname}[{idx}]", path.index(idx))

    def gen_array(self, a: FixedArray, vname: str, path: Path) -> None:
        if a.is_bytes:
            self.fuse_hook()
            self.append_value("bytes", vname)
            return
        idx = a.index or self.ident()
        self.p.comment(f"array header, size {a.size}")
        self.fuse(array_header(a.size))
        with self._loop(idx, f"range({a.size})"):
            self.next(a.elem, f"{vname}[{idx}]", path.index(idx))

    def gen_nullable(self, n: Nullable, vname: str, path: Path) -> None:
        with self._block(f"if {vname} is None"):
            self.append_value("nil")
        with self._block("else"):
            self.next(n.value, vname, path)

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def gen_primitive(self, b: Primitive, vname: str, path: Path) -> None:
        self.fuse_hook()
        value = vname
        if b.shim is not None:
            if b.shim.fallible:
                value = self.ident()
                with self._propagate(path):
                    self.p.declare(value, f"{b.shim.to_base}({vname})")
            else:
                value = f"{b.shim.to_base}({vname})"

        if b.kind is Kind.IDENT:
            with self._propagate(path):
                self.p.statement(self.delegate(value))
        elif b.kind in (Kind.INTF, Kind.EXT):
            with self._propagate(path):
                self.append_value(b.kind.base_name, value)
        else:
            self.append_value(b.kind.base_name, value)


class MarshalGen(WriteGen):
    """Emits ``marshal_msg(z, b=None) -> bytearray``."""

    method = Method.MARSHAL
    sink = "o.extend"

    def procedure(self, elem: Elem) -> None:
        with self.p.function(self.method.value, [self.receiver, "b=None"],
                             "Append the MessagePack encoding of the value to b."):
            self.p.declare("o", "bytearray() if b is None else b")
            self.body(elem)
            self.p.ret("o")

    def append_value(self, base_name: str, expr: Optional[str] = None) -> None:
        if expr is None:
            self.p.statement(f"{self.rt}.append_{base_name}(o)")
        else:
            self.p.statement(f"{self.rt}.append_{base_name}(o, {expr})")

    def append_header(self, kind: str, expr: str) -> None:
        self.p.statement(f"{self.rt}.append_{kind}_header(o, {expr})")

    def delegate(self, value: str) -> str:
        return f"o = {value}.{Method.MARSHAL.value}(o)"

    def early_return(self) -> None:
        self.p.ret("o")


class EncodeGen(WriteGen):
    """Emits ``encode_msg(z, en)`` writing to a runtime Writer."""

    method = Method.ENCODE
    sink = "en.append"

    def procedure(self, elem: Elem) -> None:
        with self.p.function(self.method.value, [self.receiver, "en"],
                             "Write the MessagePack encoding of the value to en."):
            self.body(elem)

    def append_value(self, base_name: str, expr: Optional[str] = None) -> None:
        self.p.statement(f"en.write_{base_name}({expr or ''})")

    def append_header(self, kind: str, expr: str) -> None:
        self.p.statement(f"en.write_{kind}_header({expr})")

    def delegate(self, value: str) -> str:
        return f"{value}.{Method.ENCODE.value}(en)"

    def early_return(self) -> None:
        self.p.ret()
