"""Value cells: state that tracks its readers.

When a Cell is read while a derived cell or effect is being evaluated, the
dependency is recorded in the graph. Every write is a change: there is no
equality check, so writing the same value twice propagates twice.

Thread confinement: once the graph has a scheduler (see
DependencyGraph.set_scheduler), a write from a background thread is
marshalled to the owning thread. Owner-thread writes remain synchronous.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from cellgraph._graph import DependencyGraph, current_graph

T = TypeVar("T")


class Cell(Generic[T]):
    """A single mutable value with automatic dependency tracking."""

    __slots__ = ("_value", "_graph")

    def __init__(self, value: T, *, graph: DependencyGraph | None = None) -> None:
        self._value = value
        self._graph = graph if graph is not None else current_graph()

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    def read(self) -> T:
        """Read the value. If inside an evaluation, registers the dependency."""
        self._graph.record(self)
        return self._value

    def peek(self) -> T:
        """Read the value without registering a dependency."""
        return self._value

    def write(self, value: T) -> None:
        """Replace the value and propagate. Returns once every effect has run."""
        self._graph.submit(lambda: self._write_direct(value))

    def _write_direct(self, value: T) -> None:
        self._value = value
        self._graph.propagate(self)

    def __repr__(self) -> str:
        return f"Cell({self._value!r})"


def cell(value: T, *, graph: DependencyGraph | None = None) -> Cell[T]:
    """Create a Cell holding value.

    Usage:
        count = cell(0)
        count.read()   # 0
        count.write(5)
        count.read()   # 5
    """
    return Cell(value, graph=graph)
