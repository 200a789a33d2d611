import pytest

import fieldthemes.utils.deferred as deferred_mod


@pytest.fixture
def no_blender(monkeypatch):
    monkeypatch.setattr(deferred_mod, "bpy", None, raising=True)
    deferred_mod.run_pending()
    yield
    deferred_mod.run_pending()


def test_deferred_runs_once_in_order_only_when_drained(no_blender):
    calls = []
    deferred_mod.defer(lambda: calls.append("a"), label="a")
    deferred_mod.defer(lambda: calls.append("b"), label="b")

    assert calls == []
    assert deferred_mod.pending_count() == 2
    assert deferred_mod.run_pending() == 2
    assert calls == ["a", "b"]
    assert deferred_mod.run_pending() == 0
    assert calls == ["a", "b"]


def test_deferred_failure_is_logged_not_raised(no_blender, caplog):
    def _boom():
        raise RuntimeError("preview exploded")

    deferred_mod.defer(_boom, label="zone preview")
    deferred_mod.defer(lambda: None, label="after")

    assert deferred_mod.run_pending() == 2
    assert "Deferred zone preview failed: preview exploded" in caplog.text


def test_continuations_scheduled_during_drain_run_in_same_drain(no_blender):
    calls = []

    def _first():
        calls.append(1)
        deferred_mod.defer(lambda: calls.append(2), label="chained")

    deferred_mod.defer(_first, label="first")

    assert deferred_mod.run_pending() == 2
    assert calls == [1, 2]


class _FakeTimers:
    def __init__(self):
        self.registered = []

    def register(self, fn, first_interval=0.0):
        self.registered.append((fn, first_interval))


class _FakeApp:
    def __init__(self):
        self.timers = _FakeTimers()


class _FakeBpy:
    def __init__(self):
        self.app = _FakeApp()


def test_inside_blender_uses_one_shot_timer(monkeypatch):
    fake_bpy = _FakeBpy()
    monkeypatch.setattr(deferred_mod, "bpy", fake_bpy, raising=True)
    calls = []

    deferred_mod.defer(lambda: calls.append("ran"), label="timer")

    assert deferred_mod.pending_count() == 0
    (fn, interval), = fake_bpy.app.timers.registered
    assert interval == 0.0
    # Returning None unregisters the timer after the first call
    assert fn() is None
    assert calls == ["ran"]
