"""Effects: side effects triggered by cell changes.

Unlike Derived (which is lazy and only evaluates on read), an Effect runs
its function immediately and runs it again, once, after every write that
reaches one of the cells it read last time.

An effect stays subscribed until disposed. Owners that are torn down should
dispose their effects, either directly, with `with effect(fn):`, or by
creating them through a Scope.
"""

from __future__ import annotations

from typing import Callable

from cellgraph._graph import DependencyGraph, WatcherKind, current_graph


class Effect:
    """A reactive side effect that re-runs when its dependencies change."""

    __slots__ = ("_fn", "_graph", "_disposed", "_runs")

    kind = WatcherKind.EFFECT

    def __init__(self, fn: Callable[[], object], *, graph: DependencyGraph | None = None) -> None:
        self._fn = fn
        self._graph = graph if graph is not None else current_graph()
        self._disposed = False
        self._runs = 0
        try:
            self.rerun()  # Initial run to establish dependencies
        except BaseException:
            # No handle reaches the caller: leave nothing subscribed.
            self.dispose()
            raise

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    @property
    def runs(self) -> int:
        """How many times the function has been executed."""
        return self._runs

    @property
    def disposed(self) -> bool:
        return self._disposed

    def rerun(self) -> None:
        """Run the function again, re-tracking dependencies."""
        if self._disposed:
            return
        self._graph.trace(self, self._execute)

    def _execute(self) -> None:
        self._runs += 1
        self._fn()

    def dispose(self) -> None:
        """Stop this effect. Disconnects from all dependencies."""
        if self._disposed:
            return
        self._disposed = True
        self._graph.dispose(self)

    def __enter__(self) -> Effect:
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()

    def __repr__(self) -> str:
        name = getattr(self._fn, "__name__", "fn")
        state = "disposed" if self._disposed else "active"
        return f"Effect({name}, {state})"


def effect(fn: Callable[[], object], *, graph: DependencyGraph | None = None) -> Effect:
    """Run fn immediately, then re-run whenever any cell it reads changes.

    Returns the Effect (call .dispose() to stop).

    Usage:
        count = cell(0)
        log = []

        e = effect(lambda: log.append(count.read()))
        # log == [0]: ran immediately

        count.write(1)
        # log == [0, 1]: re-ran because count changed

        e.dispose()
        count.write(2)
        # log == [0, 1]: stopped
    """
    return Effect(fn, graph=graph)
