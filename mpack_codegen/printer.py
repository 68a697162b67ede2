"""
Printer - renders the instructions produced by the generators.

Generators only talk to the abstract Printer; SourcePrinter turns the
instructions into Python source text.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

_TAB = "    "


class Printer(ABC):
    """Write-only sink for procedure-body instructions."""

    @abstractmethod
    def comment(self, text: str) -> None:
        pass

    @abstractmethod
    def statement(self, text: str) -> None:
        pass

    @abstractmethod
    def declare(self, name: str, expr: str) -> None:
        pass

    @abstractmethod
    def raw_bytes(self, sink: str, data: bytes) -> None:
        """Append literal bytes through the ``sink`` callable."""

    @abstractmethod
    def ret(self, expr: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def block(self, header: str):
        """Context manager for an ``if``/``elif``/``else``/``while`` body."""

    @abstractmethod
    def loop(self, var: str, iterable: str):
        """Context manager for a ``for`` body."""

    @abstractmethod
    def propagate(self, path_expr: str):
        """Context manager for an error-propagation point annotated with a path."""

    @abstractmethod
    def function(self, name: str, args: Sequence[str], doc: str = ""):
        """Context manager for a procedure definition."""


class SourcePrinter(Printer):
    """
    Printer producing Python source.

    Args:
        runtime_alias: name the generated module binds the runtime to
    """

    def __init__(self, runtime_alias: str = "_rt"):
        self.runtime_alias = runtime_alias
        self._lines: List[str] = []
        self._depth = 0
        self._statements = 0

    def _emit(self, text: str) -> None:
        self._lines.append(f"{_TAB * self._depth}{text}")

    def comment(self, text: str) -> None:
        self._emit(f"# {text}")

    def statement(self, text: str) -> None:
        self._emit(text)
        self._statements += 1

    def declare(self, name: str, expr: str) -> None:
        self.statement(f"{name} = {expr}")

    def raw_bytes(self, sink: str, data: bytes) -> None:
        self.statement(f"{sink}({bytes(data)!r})")

    def ret(self, expr: Optional[str] = None) -> None:
        self.statement(f"return {expr}" if expr else "return")

    @contextmanager
    def _indented(self, header: str) -> Iterator[None]:
        self.statement(header)
        self._depth += 1
        before = self._statements
        try:
            yield
        finally:
            if self._statements == before:
                self.statement("pass")
            self._depth -= 1

    def block(self, header: str):
        return self._indented(f"{header}:")

    def loop(self, var: str, iterable: str):
        return self._indented(f"for {var} in {iterable}:")

    @contextmanager
    def propagate(self, path_expr: str) -> Iterator[None]:
        with self._indented("try:"):
            yield
        with self._indented("except Exception as err:  # pylint: disable=broad-exception-caught"):
            self.statement(f"raise {self.runtime_alias}.wrap_error(err, {path_expr})")

    @contextmanager
    def function(self, name: str, args: Sequence[str], doc: str = "") -> Iterator[None]:
        if self._lines:
            self._lines.extend(["", ""])
        with self._indented(f"def {name}({', '.join(args)}):"):
            if doc:
                self.statement(f'"""{doc}"""')
            yield

    def source(self) -> str:
        if not self._lines:
            return ""
        return "\n".join(self._lines) + "\n"
