"""Textual integration for cellgraph. Opt-in, requires textual.

Effects that update widgets must not run while the widget tree is being
replaced, must not fail because a widget has already gone, and must touch
widgets only from the app's thread. effect() here enforces all of that, so
call sites can stay plain. Pause state is owned by this module, keyed by
id(app), so several apps can coexist in one process.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

from cellgraph._graph import current_graph
from cellgraph.effect import effect as _effect

_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def effect(app, fn, *, graph=None):
    """effect() that safely bridges to Textual widgets.

    Skips while the app is paused or not running, swallows NoMatches from
    widget queries, and marshals runs triggered off the app thread through
    app.call_from_thread. A skipped or marshalled run keeps the
    dependencies of the last traced run, so the effect stays subscribed.
    """
    graph = graph if graph is not None else current_graph()
    _main = threading.get_ident()
    last_dependencies: list = []

    def _guarded():
        if is_safe(app) and threading.get_ident() == _main:
            watcher = graph.active_watcher
            _safe()
            last_dependencies[:] = graph.dependencies_of(watcher)
            return
        for dependency in last_dependencies:
            dependency.read()
        if is_safe(app):
            app.call_from_thread(_safe)

    def _safe():
        try:
            fn()
        except NoMatches:
            pass

    return _effect(_guarded, graph=graph)
