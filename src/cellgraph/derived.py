"""Derived cells: cached values computed from other cells.

A Derived wraps a function. When read, it evaluates the function through the
graph, which records every cell the function reads, and caches the result.
When any of those cells changes, the graph marks it stale; the function is
only run again on the next read.

Derived cells are lazy. The function does not run before the first read.
"""

from __future__ import annotations

import enum
from typing import Callable, Generic, TypeVar

from cellgraph._graph import DependencyGraph, WatcherKind, current_graph

T = TypeVar("T")

_UNSET = object()


class DerivedState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    CACHED = "cached"
    STALE = "stale"


class Derived(Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_fn", "_value", "_state", "_graph")

    kind = WatcherKind.DERIVED

    def __init__(self, fn: Callable[[], T], *, graph: DependencyGraph | None = None) -> None:
        self._fn = fn
        self._value = _UNSET
        self._state = DerivedState.UNINITIALIZED
        self._graph = graph if graph is not None else current_graph()

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    @property
    def state(self) -> DerivedState:
        return self._state

    def read(self) -> T:
        """Read the derived value. Recomputes if stale or never evaluated."""
        if self._state is not DerivedState.CACHED:
            # Assigned only on success: a raising fn leaves the cell uncached.
            self._value = self._graph.trace(self, self._fn)
            self._state = DerivedState.CACHED

        # After trace() returns, the active watcher is our caller's.
        self._graph.record(self)
        return self._value

    def mark_stale(self) -> None:
        """Called by the graph when a dependency changed.

        Only flips the flag. Recomputation waits for the next read(), and the
        graph itself continues the walk to our dependents.
        """
        if self._state is DerivedState.CACHED:
            self._state = DerivedState.STALE

    def dispose(self) -> None:
        """Disconnect from the graph. A later read() evaluates from scratch."""
        self._graph.dispose(self)
        self._value = _UNSET
        self._state = DerivedState.UNINITIALIZED

    def __repr__(self) -> str:
        name = getattr(self._fn, "__name__", "fn")
        if self._state is DerivedState.CACHED:
            return f"Derived({name}, cached={self._value!r})"
        return f"Derived({name}, {self._state.value})"


def derived(fn: Callable[[], T], *, graph: DependencyGraph | None = None) -> Derived[T]:
    """Decorator/factory to create a Derived from a function.

    Usage:
        count = cell(0)

        @derived
        def doubled():
            return count.read() * 2

        doubled.read()  # 0
        count.write(5)
        doubled.read()  # 10
    """
    return Derived(fn, graph=graph)
