"""cellgraph: a synchronous, glitch-free reactive runtime for Python."""

from importlib.metadata import version as _version

__version__ = _version("cellgraph")

from cellgraph._graph import (
    DependencyGraph,
    WatcherKind,
    current_graph,
    default_graph,
    use_graph,
)
from cellgraph.errors import CellgraphError, CyclicDependency
from cellgraph.cell import Cell, cell
from cellgraph.derived import Derived, DerivedState, derived
from cellgraph.effect import Effect, effect
from cellgraph.scope import Scope
# textual NOT auto-imported, opt-in only

__all__ = [
    "Cell",
    "cell",
    "Derived",
    "DerivedState",
    "derived",
    "Effect",
    "effect",
    "Scope",
    "DependencyGraph",
    "WatcherKind",
    "current_graph",
    "default_graph",
    "use_graph",
    "CellgraphError",
    "CyclicDependency",
]
