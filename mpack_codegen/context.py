"""
Generation Context - diagnostic path of the value being generated.

A Path is immutable: entering a nested Elem builds a new Path for the
recursive call, nothing is pushed or popped on shared state. The rendered
form is a Python string expression embedded in the generated error
propagation points, e.g. ``f"items[{zb0001}].name"``.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Path:
    # (text, is_var) pairs; vars are rendered as f-string placeholders
    segments: Tuple[Tuple[str, bool], ...] = ()

    @classmethod
    def root(cls) -> "Path":
        return cls()

    def field(self, name: str) -> "Path":
        """Descend into a record field."""
        text = name if not self.segments else f".{name}"
        return Path(self.segments + ((text, False),))

    def index(self, var: str) -> "Path":
        """Descend into a sequence/array element indexed by ``var``."""
        return Path(self.segments + ((f"[{{{var}}}]", True),))

    def key(self, var: str) -> "Path":
        """Descend into a map value keyed by ``var``."""
        return Path(self.segments + ((f"[{{{var}!r}}]", True),))

    @property
    def dynamic(self) -> bool:
        return any(is_var for _, is_var in self.segments)

    def render(self) -> str:
        """Python expression evaluating to the path string at run time."""
        text = "".join(t for t, _ in self.segments)
        if self.dynamic:
            return 'f"' + text + '"'
        return repr(text)

    def __str__(self) -> str:
        return "".join(t for t, _ in self.segments)
