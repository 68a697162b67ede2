"""
Read-direction generators: UnmarshalGen (parse a bytes-like buffer and
return the remainder) and DecodeGen (read from a buffered runtime Reader).

Keyed records are read as a loop over the map's keys; unknown keys are
skipped. Fields tagged omitempty/omitemptydec that never appeared on the
wire are reset to their zero value after the loop, tracked with the same
bitmask plan the write side uses.

Records, maps, sequences and arrays at the root are filled in the caller's
object; other roots (primitives, nullables, byte arrays) are returned.
"""

from abc import abstractmethod
from contextlib import nullcontext
from typing import List

from . import tags
from .base import Generator, Method, sanitize
from .bitmask import plan_bitmask
from .context import Path
from .elem import Elem, Field, FixedArray, Kind, Map, Nullable, Primitive, Record, Sequence


def fills_in_place(elem: Elem) -> bool:
    """
    True when a root value of this Elem is filled in the caller's object.

    Records, maps, sequences and non-byte arrays are mutated in place;
    anything else is a new value the read procedure hands back.
    """
    if isinstance(elem, (Record, Map, Sequence)):
        return True
    if isinstance(elem, FixedArray):
        return not elem.is_bytes
    if isinstance(elem, Primitive):
        return elem.kind is Kind.IDENT and elem.shim is None
    return False


class ReadGen(Generator):
    """Shared traversal of the unmarshal and stream-decode procedures."""

    root_in_place = True

    # ------------------------------------------------------------------
    # Source specifics
    # ------------------------------------------------------------------

    @abstractmethod
    def read_value(self, base_name: str, target: str, bits: int = 0) -> None:
        """Read a primitive (or header/key) into ``target``."""

    @abstractmethod
    def read_nil(self) -> None:
        pass

    @abstractmethod
    def nil_test(self) -> str:
        """Expression true when the next object is nil."""

    @abstractmethod
    def skip(self) -> None:
        pass

    @abstractmethod
    def delegate(self, value: str) -> str:
        pass

    def body(self, elem: Elem) -> None:
        self.root_in_place = fills_in_place(elem)
        self.next(elem, self.receiver, Path.root())

    def in_place(self, vname: str) -> bool:
        """The caller's root object is filled rather than replaced."""
        return self.is_root(vname) and self.root_in_place

    def instantiate(self, type_name: str, vname: str) -> None:
        """Create a missing nested value before filling it in place."""
        if not self.in_place(vname):
            with self.p.block(f"if {vname} is None"):
                self.p.declare(vname, f"{type_name}()")

    def check_size(self, got: str, wanted: int, path: Path) -> None:
        with self.p.block(f"if {got} != {wanted}"):
            self.p.statement(
                f"raise {self.rt}.ArraySizeError(wanted={wanted}, got={got}, path={path.render()})")

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def gen_record(self, rec: Record, vname: str, path: Path) -> None:
        self.instantiate(rec.type_name or f"{self.rt}.RecordValue", vname)
        fields = rec.visible_fields()
        if rec.as_tuple:
            self._tuple(fields, vname, path)
        else:
            self._mapstruct(fields, vname, path)

    def _tuple(self, fields: List[Field], vname: str, path: Path) -> None:
        size = self.ident()
        self.read_value("array_header", size)
        self.check_size(size, len(fields), path)
        for f in fields:
            self.next(f.elem, f"{vname}.{f.name}", path.field(f.name))

    def _mapstruct(self, fields: List[Field], vname: str, path: Path) -> None:
        omit = [tags.is_dec_field(f) for f in fields]
        plan = plan_bitmask(len(fields))
        mask = f"{sanitize(vname)}_seen_mask"
        size, key = self.ident(), self.ident()

        self.read_value("map_header", size)
        if any(omit):
            self.p.comment("omitempty: track fields present on the wire")
            self.p.statement(plan.declare(mask))
        with self.p.loop("_", f"range({size})"):
            self.read_value("map_key", key)
            for i, f in enumerate(fields):
                with self.p.block(f"{'elif' if i else 'if'} {key} == {f.tag!r}"):
                    self.next(f.elem, f"{vname}.{f.name}", path.field(f.name))
                    if omit[i]:
                        self.p.statement(plan.assign1(mask, i))
            with self.p.block("else") if fields else nullcontext():
                self.skip()

        if not any(omit):
            return
        offsets = [i for i, flag in enumerate(omit) if flag]
        # single-word masks skip the per-field checks when nothing is missing
        guard = nullcontext() if plan.is_array else self.p.block(f"if {mask} != {plan.full_expr(offsets)}")
        with guard:
            self.p.comment("omitempty: zero the fields missing from the wire")
            for i in offsets:
                f = fields[i]
                with self.p.block(f"if {plan.read(mask, i)} == 0"):
                    self.p.statement(tags.empty_assign(f.elem, f"{vname}.{f.name}"))

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def gen_map(self, m: Map, vname: str, path: Path) -> None:
        size = self.ident()
        key, val = m.key_var or self.ident(), m.val_var or self.ident()
        self.read_value("map_header", size)
        if self.in_place(vname):
            self.p.statement(f"{vname}.clear()")
        else:
            self.p.declare(vname, "{}")
        with self.p.loop("_", f"range({size})"):
            self.read_value("map_key", key)
            self.p.declare(val, "None")
            self.next(m.value, val, path.key(key))
            self.p.statement(f"{vname}[{key}] = {val}")

    def gen_sequence(self, s: Sequence, vname: str, path: Path) -> None:
        size = self.ident()
        idx = s.index or self.ident()
        self.read_value("array_header", size)
        self.p.declare(f"{vname}[:]" if self.in_place(vname) else vname, f"[None] * {size}")
        with self.p.loop(idx, f"range({size})"):
            self.next(s.elem, f"{vname}[{idx}]", path.index(idx))

    def gen_array(self, a: FixedArray, vname: str, path: Path) -> None:
        if a.is_bytes:
            self.read_value("bytes", vname)
            self.check_size(f"len({vname})", a.size, path)
            return
        size = self.ident()
        idx = a.index or self.ident()
        self.read_value("array_header", size)
        self.check_size(size, a.size, path)
        self.p.declare(f"{vname}[:]" if self.in_place(vname) else vname, f"[None] * {a.size}")
        with self.p.loop(idx, f"range({a.size})"):
            self.next(a.elem, f"{vname}[{idx}]", path.index(idx))

    def gen_nullable(self, n: Nullable, vname: str, path: Path) -> None:
        with self.p.block(f"if {self.nil_test()}"):
            self.read_nil()
            self.p.declare(vname, "None")
        with self.p.block("else"):
            self.next(n.value, vname, path)

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def gen_primitive(self, b: Primitive, vname: str, path: Path) -> None:
        target = vname if b.shim is None else self.ident()
        if b.kind is Kind.IDENT:
            if b.shim is not None:
                self.p.declare(target, "None")
            self.instantiate(b.ident, target)
            with self.p.propagate(path.render()):
                self.p.statement(self.delegate(target))
        elif b.kind in (Kind.INTF, Kind.EXT):
            with self.p.propagate(path.render()):
                self.read_value(b.kind.base_name, target)
        else:
            self.read_value(b.kind.base_name, target, b.kind.bits)

        if b.shim is None:
            return
        if b.shim.fallible:
            with self.p.propagate(path.render()):
                self.p.declare(vname, f"{b.shim.from_base}({target})")
        else:
            self.p.declare(vname, f"{b.shim.from_base}({target})")


class UnmarshalGen(ReadGen):
    """
    Emits ``unmarshal_msg(z, bts)`` returning the unread remainder, or
    ``(value, remainder)`` for roots that are not filled in place.
    """

    method = Method.UNMARSHAL

    def procedure(self, elem: Elem) -> None:
        with self.p.function(self.method.value, [self.receiver, "bts"],
                             "Parse the value from bts and return the remaining bytes."):
            self.p.declare("bts", "memoryview(bts)")
            self.body(elem)
            # values that cannot be filled in place are returned with the remainder
            self.p.ret("bts" if self.root_in_place else f"{self.receiver}, bts")

    def read_value(self, base_name: str, target: str, bits: int = 0) -> None:
        args = f"bts, {bits}" if bits else "bts"
        self.p.statement(f"{target}, bts = {self.rt}.read_{base_name}_bytes({args})")

    def read_nil(self) -> None:
        self.p.statement(f"_, bts = {self.rt}.read_nil_bytes(bts)")

    def nil_test(self) -> str:
        return f"{self.rt}.is_nil(bts)"

    def skip(self) -> None:
        self.p.statement(f"bts = {self.rt}.skip_bytes(bts)")

    def delegate(self, value: str) -> str:
        return f"bts = {value}.{Method.UNMARSHAL.value}(bts)"


class DecodeGen(ReadGen):
    """Emits ``decode_msg(z, dc)``; roots not filled in place are returned."""

    method = Method.DECODE

    def procedure(self, elem: Elem) -> None:
        with self.p.function(self.method.value, [self.receiver, "dc"],
                             "Read the value from dc."):
            self.body(elem)
            if not self.root_in_place:
                self.p.ret(self.receiver)

    def read_value(self, base_name: str, target: str, bits: int = 0) -> None:
        self.p.statement(f"{target} = dc.read_{base_name}({bits or ''})")

    def read_nil(self) -> None:
        self.p.statement("dc.read_nil()")

    def nil_test(self) -> str:
        return "dc.is_nil()"

    def skip(self) -> None:
        self.p.statement("dc.skip()")

    def delegate(self, value: str) -> str:
        return f"{value}.{Method.DECODE.value}(dc)"
