"""Tests for cellgraph.textual: Textual integration layer."""

import threading

import pytest
from textual.css.query import NoMatches

from cellgraph import cell
from cellgraph import textual as ctx


class _MockApp:
    """Minimal mock matching the Textual App interface ctx needs."""

    def __init__(self, *, is_running=True):
        self.is_running = is_running
        self._call_from_thread_log = []

    def call_from_thread(self, fn, *args):
        self._call_from_thread_log.append((fn, args))
        fn(*args)


class TestEffect:
    def test_fires_when_safe(self):
        app = _MockApp()
        c = cell(1)
        log = []
        ctx.effect(app, lambda: log.append(c.read()))
        c.write(2)
        assert log == [1, 2]

    def test_skips_when_not_running(self):
        app = _MockApp(is_running=False)
        c = cell(1)
        log = []
        ctx.effect(app, lambda: log.append(c.read()))
        c.write(2)
        assert log == []

    def test_skips_during_pause(self):
        app = _MockApp()
        c = cell(1)
        log = []

        ctx.effect(app, lambda: log.append(c.read()))
        # effect fires immediately on setup
        assert log == [1]

        with ctx.pause(app):
            c.write(2)
        # Skipped during pause
        assert log == [1]

    def test_stays_subscribed_after_pause(self):
        app = _MockApp()
        c = cell(1)
        log = []
        ctx.effect(app, lambda: log.append(c.read()))
        with ctx.pause(app):
            c.write(2)
        c.write(3)
        assert log == [1, 3]

    def test_catches_nomatch(self):
        """NoMatches from widget queries are silently swallowed."""
        app = _MockApp()
        c = cell(1)
        call_count = [0]

        def _fn():
            call_count[0] += 1
            c.read()  # track dependency
            if call_count[0] > 1:
                raise NoMatches("Widget")

        ctx.effect(app, _fn)
        assert call_count[0] == 1

        # Second run raises NoMatches: silently caught
        c.write(2)
        assert call_count[0] == 2

    def test_propagates_real_errors(self):
        """Non-NoMatches exceptions propagate normally."""
        app = _MockApp()
        c = cell(1)

        def _fn():
            if c.read() == 2:
                raise ValueError("boom")

        ctx.effect(app, _fn)
        with pytest.raises(ValueError, match="boom"):
            c.write(2)

    def test_dispose_stops_effect(self):
        app = _MockApp()
        c = cell(1)
        log = []
        e = ctx.effect(app, lambda: log.append(c.read()))
        c.write(2)
        e.dispose()
        c.write(3)
        assert log == [1, 2]

    def test_thread_marshal(self):
        """Triggers from a background thread use call_from_thread."""
        app = _MockApp()
        c = cell(1)
        log = []
        ctx.effect(app, lambda: log.append(c.read()))

        t = threading.Thread(target=lambda: c.write(2))
        t.start()
        t.join()

        assert log == [1, 2]
        assert len(app._call_from_thread_log) == 1

        # Still subscribed after the marshalled run.
        c.write(3)
        assert log == [1, 2, 3]


class TestPause:
    def test_pause_restores_on_exception(self):
        app = _MockApp()
        assert ctx.is_safe(app)

        with pytest.raises(RuntimeError):
            with ctx.pause(app):
                assert not ctx.is_safe(app)
                raise RuntimeError("oops")

        # Restored despite exception
        assert ctx.is_safe(app)

    def test_pause_does_not_mutate_app(self):
        """Pause state lives in the module, not on the app."""
        app = _MockApp()
        attrs_before = set(vars(app))
        with ctx.pause(app):
            attrs_during = set(vars(app))
        assert attrs_before == attrs_during
        assert attrs_before == set(vars(app))

    def test_multiple_apps_independent(self):
        app_a = _MockApp()
        app_b = _MockApp()
        with ctx.pause(app_a):
            assert not ctx.is_safe(app_a)
            assert ctx.is_safe(app_b)
