"""Scope: owner of a group of cells, derived cells and effects.

A component acquires its reactive state through a Scope and calls dispose()
(or leaves the `with` block) on teardown. Every effect and derived cell the
scope created is disconnected from the graph, so nothing it owned keeps
running after the owner is gone.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from cellgraph._graph import DependencyGraph, current_graph
from cellgraph.cell import Cell
from cellgraph.derived import Derived
from cellgraph.effect import Effect
from cellgraph.errors import CellgraphError

T = TypeVar("T")

logger = logging.getLogger("cellgraph.scope")


class Scope:
    """Creates reactive primitives on one graph and disposes them together."""

    def __init__(self, graph: DependencyGraph | None = None) -> None:
        self._graph = graph if graph is not None else current_graph()
        self._owned: list[Derived | Effect] = []
        self._disposed = False

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    @property
    def disposed(self) -> bool:
        return self._disposed

    def cell(self, value: T) -> Cell[T]:
        self._check_open()
        return Cell(value, graph=self._graph)

    def derived(self, fn: Callable[[], T]) -> Derived[T]:
        self._check_open()
        return self.adopt(Derived(fn, graph=self._graph))

    def effect(self, fn: Callable[[], object]) -> Effect:
        self._check_open()
        return self.adopt(Effect(fn, graph=self._graph))

    def adopt(self, handle):
        """Take ownership of an existing Derived or Effect."""
        self._check_open()
        self._owned.append(handle)
        return handle

    def dispose(self) -> None:
        """Dispose everything this scope owns. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        # Effects first, so none re-runs against a derived cell being torn down.
        owned = sorted(self._owned, key=lambda h: not isinstance(h, Effect))
        for handle in owned:
            handle.dispose()
        logger.debug("Disposed scope: %d handles released", len(owned))
        self._owned.clear()

    def _check_open(self) -> None:
        if self._disposed:
            raise CellgraphError("Scope is disposed")

    def __enter__(self) -> Scope:
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()

    def __len__(self) -> int:
        return len(self._owned)
