"""
Fusion Buffer - coalesces statically known output bytes.

Static headers and wire keys are accumulated here and emitted as a single
literal append right before anything that depends on a run-time value. The
grouping never changes the produced bytes.
"""


class FuseBuffer:
    """Pending literal bytes of one generation pass."""

    def __init__(self):
        self._pending = bytearray()

    def fuse(self, data: bytes) -> None:
        self._pending += data

    def flush(self) -> bytes:
        """Return the pending run and clear it; empty when nothing is pending."""
        data = bytes(self._pending)
        self._pending.clear()
        return data

    def __len__(self) -> int:
        return len(self._pending)

    def __bool__(self) -> bool:
        return bool(self._pending)
