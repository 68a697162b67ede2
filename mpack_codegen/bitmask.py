"""
Bitmask Planner - one presence bit per record field.

The narrowest numpy unsigned integer that holds one bit per field is used;
records with more than 64 fields get an array of uint64 words. Compared to a
list of flags this keeps the mask small enough to stay in a register for
most records.

Bit ``i`` lives in word ``i >> 6`` (array form only) at position ``i & 63``.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

_WORD_BITS = 64


@dataclass(frozen=True)
class BitmaskPlan:
    """
    Mask representation for a record with ``nfields`` fields.

    The render methods return Python source fragments; generated modules
    import numpy under the name ``numpy``.
    """
    nfields: int
    dtype: type
    words: int

    @property
    def is_array(self) -> bool:
        return self.nfields > _WORD_BITS

    @property
    def bits(self) -> int:
        """Width of one mask word."""
        return np.dtype(self.dtype).itemsize * 8

    @property
    def type_name(self) -> str:
        name = np.dtype(self.dtype).name
        return f"[{self.words}]{name}" if self.is_array else name

    def _word(self, varname: str, offset: int) -> str:
        if self.is_array:
            return f"{varname}[{offset >> 6}]"
        return varname

    def _bit(self, offset: int) -> str:
        return f"numpy.{np.dtype(self.dtype).name}(0x{1 << (offset & 0x3F):X})"

    def declare(self, varname: str) -> str:
        """Statement creating a zeroed mask."""
        name = np.dtype(self.dtype).name
        if self.is_array:
            return f"{varname} = numpy.zeros({self.words}, dtype=numpy.{name})"
        return f"{varname} = numpy.{name}(0)"

    def read(self, varname: str, offset: int) -> str:
        """
        Expression reading the bit at ``offset`` with the other bits masked
        out; compare it to 0.
        """
        return f"({self._word(varname, offset)} & {self._bit(offset)})"

    def assign1(self, varname: str, offset: int) -> str:
        """Statement setting the bit at ``offset``."""
        return f"{self._word(varname, offset)} |= {self._bit(offset)}"

    def full_expr(self, offsets: Optional[Iterable[int]] = None) -> str:
        """
        Value of a single-word mask with the bits at ``offsets`` set (every
        field bit by default).

        Raises:
            ValueError: for the array form, which has no single full value
        """
        if self.is_array:
            raise ValueError("array masks have no single full value")
        if offsets is None:
            offsets = range(self.nfields)
        value = 0
        for offset in offsets:
            value |= 1 << offset
        return f"numpy.{np.dtype(self.dtype).name}(0x{value:X})"


def plan_bitmask(nfields: int) -> BitmaskPlan:
    """
    Select the mask representation for ``nfields`` fields.

    Examples:
        >>> plan_bitmask(5).type_name
        'uint8'
        >>> plan_bitmask(64).type_name
        'uint64'
        >>> plan_bitmask(65).type_name
        '[2]uint64'
    """
    if nfields < 0:
        raise ValueError(f"field count must be non-negative, got {nfields}")
    if nfields <= 8:
        return BitmaskPlan(nfields, np.uint8, 1)
    if nfields <= 16:
        return BitmaskPlan(nfields, np.uint16, 1)
    if nfields <= 32:
        return BitmaskPlan(nfields, np.uint32, 1)
    if nfields <= _WORD_BITS:
        return BitmaskPlan(nfields, np.uint64, 1)
    return BitmaskPlan(nfields, np.uint64, (nfields >> 6) + 1)
