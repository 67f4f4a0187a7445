"""Dependency graph: the heart of cellgraph.

Records which cells each watcher read during its most recent evaluation,
and the inverse index, and walks that index outward when a cell is written.

Watchers come in two kinds (see WatcherKind): derived cells, which are only
marked stale and let the walk continue through them, and effects, which are
collected and re-run once each after the walk has finished. Because every
stale derived cell is marked before any effect runs, an effect that reaches
a cell by two paths (a diamond) runs exactly once and reads fresh values.

A graph is a plain object. Cells and effects bind to one at construction;
code that does not pass a graph explicitly gets the current one, which is
the graph installed with use_graph(), else the process default.
"""

from __future__ import annotations

import contextvars
import enum
import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator, TypeVar

from cellgraph.errors import CyclicDependency

if TYPE_CHECKING:
    from cellgraph.cell import Cell
    from cellgraph.derived import Derived
    from cellgraph.effect import Effect

    Watcher = Derived | Effect
    Readable = Cell | Derived

T = TypeVar("T")

logger = logging.getLogger("cellgraph.graph")


class WatcherKind(enum.Enum):
    """How the graph treats a watcher reached during propagation."""

    DERIVED = "derived"  # mark_stale(), then continue the walk through it
    EFFECT = "effect"  # collect, rerun() once the walk is complete


class DependencyGraph:
    """Bidirectional index between watchers and the cells they read."""

    def __init__(self) -> None:
        # Dicts are used as insertion-ordered sets throughout.
        self._watching: dict[Watcher, dict[Readable, None]] = {}
        self._watched_by: dict[Readable, dict[Watcher, None]] = {}
        self._active: list[Watcher] = []
        self._scheduler: Callable[[Callable[[], None]], object] | None = None
        self._scheduler_thread: threading.Thread | None = None

    # ─── Tracing ─────────────────────────────────────────────────────────────

    @property
    def active_watcher(self) -> Watcher | None:
        """The watcher currently being evaluated, if any."""
        return self._active[-1] if self._active else None

    def trace(self, watcher: Watcher, fn: Callable[[], T]) -> T:
        """Evaluate fn on behalf of watcher, recording every cell it reads.

        Edges left over from the watcher's previous evaluation are dropped
        first, so only what fn touches this time stays subscribed.
        """
        # Effects may re-enter: one that writes a cell it read re-runs nested.
        if watcher.kind is WatcherKind.DERIVED and watcher in self._active:
            raise CyclicDependency(watcher)

        self._unlink_dependencies(watcher)
        self._watching[watcher] = {}

        self._active.append(watcher)
        try:
            return fn()
        finally:
            self._active.pop()

    def record(self, cell: Readable) -> None:
        """Register cell as a dependency of the active watcher."""
        if not self._active:
            return
        watcher = self._active[-1]
        dependencies = self._watching.get(watcher)
        if dependencies is None:
            return  # disposed during its own evaluation
        dependencies[cell] = None
        self._watched_by.setdefault(cell, {})[watcher] = None

    # ─── Propagation ─────────────────────────────────────────────────────────

    def propagate(self, cell: Readable) -> None:
        """Invalidate everything downstream of cell, then re-run its effects.

        Runs to completion before returning. An exception from an effect
        aborts the effects still queued behind it.
        """
        pending: dict[Effect, None] = {}
        stale = 0

        # Depth-first over an explicit stack of iterators so that long
        # derived chains do not consume Python stack frames.
        walk: list[Iterator[Watcher]] = [iter(self._detach(cell))]
        while walk:
            watcher = next(walk[-1], None)
            if watcher is None:
                walk.pop()
                continue
            if watcher.kind is WatcherKind.DERIVED:
                watcher.mark_stale()
                stale += 1
                walk.append(iter(self._detach(watcher)))
            else:
                pending[watcher] = None

        logger.debug(
            "Propagating %r: %d derived marked stale, %d effects queued",
            cell, stale, len(pending),
        )
        for effect in pending:
            effect.rerun()

    def _detach(self, cell: Readable) -> list[Watcher]:
        """Unsubscribe every watcher of cell. Returns them in subscription order."""
        watchers = list(self._watched_by.pop(cell, ()))
        for watcher in watchers:
            dependencies = self._watching.get(watcher)
            if dependencies is not None:
                dependencies.pop(cell, None)
        return watchers

    def _unlink_dependencies(self, watcher: Watcher) -> None:
        for cell in self._watching.get(watcher, ()):
            watchers = self._watched_by.get(cell)
            if watchers is None:
                continue
            watchers.pop(watcher, None)
            if not watchers:
                del self._watched_by[cell]

    # ─── Disposal ────────────────────────────────────────────────────────────

    def dispose(self, watcher: Watcher) -> None:
        """Remove every edge touching watcher. Safe to call more than once.

        For a derived cell this includes the edges from its own dependents,
        which will resubscribe if they read it again.
        """
        self._unlink_dependencies(watcher)
        self._watching.pop(watcher, None)
        if watcher.kind is WatcherKind.DERIVED:
            self._detach(watcher)
        logger.debug("Disposed %r", watcher)

    # ─── Introspection ───────────────────────────────────────────────────────

    def dependencies_of(self, watcher: Watcher) -> tuple[Readable, ...]:
        """Cells read by watcher's most recent evaluation."""
        return tuple(self._watching.get(watcher, ()))

    def dependents_of(self, cell: Readable) -> tuple[Watcher, ...]:
        """Watchers subscribed to cell, in subscription order."""
        return tuple(self._watched_by.get(cell, ()))

    # ─── Thread confinement ──────────────────────────────────────────────────

    def set_scheduler(self, scheduler: Callable[[Callable[[], None]], object] | None) -> None:
        """Confine writes to the calling thread.

        Call once from the owning (usually UI) thread:
            graph.set_scheduler(app.call_from_thread)

        After this, a Cell.write() from any other thread is handed to the
        scheduler instead of touching the graph. Owner-thread writes stay
        synchronous. Pass None to remove the scheduler.
        """
        self._scheduler = scheduler
        self._scheduler_thread = threading.current_thread() if scheduler is not None else None

    def submit(self, write: Callable[[], None]) -> None:
        """Run write now, or marshal it to the owning thread."""
        if self._scheduler is not None and threading.current_thread() != self._scheduler_thread:
            self._scheduler(write)
        else:
            write()

    def __repr__(self) -> str:
        return f"DependencyGraph(watchers={len(self._watching)}, cells={len(self._watched_by)})"


# ─── Graph resolution ────────────────────────────────────────────────────────

_default_graph = DependencyGraph()

_current_graph: contextvars.ContextVar[DependencyGraph | None] = contextvars.ContextVar(
    "current_graph", default=None
)


def default_graph() -> DependencyGraph:
    """The process-wide graph used when nothing else is installed."""
    return _default_graph


def current_graph() -> DependencyGraph:
    """The graph new cells and effects bind to when none is passed."""
    graph = _current_graph.get()
    return graph if graph is not None else _default_graph


@contextmanager
def use_graph(graph: DependencyGraph) -> Iterator[DependencyGraph]:
    """Make graph the current graph for the duration of the block.

    Usage:
        graph = DependencyGraph()
        with use_graph(graph):
            count = cell(0)  # bound to graph
    """
    token = _current_graph.set(graph)
    try:
        yield graph
    finally:
        _current_graph.reset(token)
