"""Exceptions raised by the runtime itself.

Errors raised inside user functions are never wrapped; they reach the caller
of read(), write() or effect() unchanged.
"""

from __future__ import annotations


class CellgraphError(Exception):
    """Base class for errors raised by cellgraph."""


class CyclicDependency(CellgraphError):
    """A derived cell was read while its own evaluation was still running."""

    def __init__(self, watcher) -> None:
        self.watcher = watcher
        super().__init__(f"Cyclic dependency detected while evaluating {watcher!r}")
